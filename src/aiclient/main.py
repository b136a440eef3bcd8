# Copyright (C) 2026 StableLlama
#
# This program is free software: you can redistribute it and/or modify
# it under the terms of the GNU General Public License as published by
# the Free Software Foundation, either version 3 of the License, or
# (at your option) any later version.

"""Defines the main unit so this responsibility stays isolated, testable, and easy to evolve.

Main application entry point for the aiclient API server.
Includes session setup, error handling, and router registration.
"""

from __future__ import annotations

import argparse
import os
from contextlib import asynccontextmanager
from typing import Any, Mapping, Optional

from fastapi import APIRouter, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from aiclient.api.v1.chat import router as chat_router
from aiclient.api.v1.debug import router as debug_router
from aiclient.api.v1.settings import router as settings_router
from aiclient.services.chat.chat_lifecycle_ops import ChatSession
from aiclient.services.exceptions import ServiceError


def create_app(
    config: Optional[Mapping[str, Any]] = None,
    session: Optional[ChatSession] = None,
) -> FastAPI:
    """Create the FastAPI app with one in-memory chat session.

    The session lives as long as the app; its transcript is never written to disk.
    """

    chat_session = session or ChatSession.from_config(config)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        yield
        chat_session.close()

    app = FastAPI(title="aiclient", lifespan=lifespan)
    app.state.chat_session = chat_session

    app.add_middleware(
        CORSMiddleware,
        allow_origin_regex=r"http://(localhost|127\.0\.0\.1)(:\d+)?",
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    api_v1_router = APIRouter(prefix="/api/v1")
    api_v1_router.include_router(settings_router)
    api_v1_router.include_router(chat_router)
    api_v1_router.include_router(debug_router)
    api_v1_router.add_api_route(
        "/health", endpoint=lambda: {"status": "ok"}, methods=["GET"]
    )
    app.include_router(api_v1_router)

    # --------------- global exception handler ---------------
    @app.exception_handler(ServiceError)
    async def _service_error_handler(
        _request: Request, exc: ServiceError
    ) -> JSONResponse:
        return JSONResponse(
            status_code=exc.status_code,
            content={"ok": False, "detail": exc.detail},
        )

    return app


def build_arg_parser() -> argparse.ArgumentParser:
    """Build Arg Parser."""
    parser = argparse.ArgumentParser(
        prog="aiclient",
        description="Run the aiclient chat API server",
    )
    parser.add_argument(
        "--host", default="127.0.0.1", help="Host to bind (default: 127.0.0.1)"
    )
    parser.add_argument(
        "--port", type=int, default=8000, help="Port to bind (default: 8000)"
    )
    parser.add_argument(
        "--reload",
        action="store_true",
        help="Enable auto-reload (development only)",
    )
    parser.add_argument(
        "--log-level",
        default="info",
        choices=["critical", "error", "warning", "info", "debug", "trace"],
        help="Log level for the server (default: info)",
    )
    parser.add_argument(
        "--llm-dump",
        action="store_true",
        help="Dump raw LLM request/response data to a file",
    )
    parser.add_argument(
        "--llm-dump-path",
        default=None,
        help="Path for raw LLM dump file (overrides default)",
    )
    return parser


def main(argv: Optional[list[str]] = None) -> None:
    """CLI entrypoint to run the server via a normal Python invocation.

    Examples:
      python -m aiclient.main --help
      python -m aiclient.main --host 0.0.0.0 --port 8000 --reload
    """
    parser = build_arg_parser()
    args = parser.parse_args(argv)

    if args.llm_dump:
        os.environ["AICLIENT_LLM_DUMP"] = "1"
    if args.llm_dump_path:
        os.environ["AICLIENT_LLM_DUMP_PATH"] = args.llm_dump_path

    # Import uvicorn lazily so that importing this module doesn't require it for tests/tools
    import uvicorn  # type: ignore

    # One process only: the chat session is held in memory.
    if args.reload:
        uvicorn.run(
            "aiclient.main:create_app",
            host=args.host,
            port=args.port,
            reload=True,
            log_level=args.log_level,
            factory=True,
        )
        return

    uvicorn.run(create_app(), host=args.host, port=args.port, log_level=args.log_level)


if __name__ == "__main__":
    main()
