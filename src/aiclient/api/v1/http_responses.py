# Copyright (C) 2026 StableLlama
#
# This program is free software: you can redistribute it and/or modify
# it under the terms of the GNU General Public License as published by
# the Free Software Foundation, either version 3 of the License, or
# (at your option) any later version.

"""Defines the http responses unit so this responsibility stays isolated, testable, and easy to evolve."""

from fastapi import Request
from fastapi.responses import JSONResponse

from aiclient.services.chat.chat_lifecycle_ops import ChatSession


def ok_json(status_code: int = 200, **extra: object) -> JSONResponse:
    body: dict[str, object] = {"ok": True}
    body.update(extra)
    return JSONResponse(status_code=status_code, content=body)


def error_json(detail: str, status_code: int = 400, **extra: object) -> JSONResponse:
    body: dict[str, object] = {"ok": False, "detail": detail}
    body.update(extra)
    return JSONResponse(status_code=status_code, content=body)


def get_chat_session(request: Request) -> ChatSession:
    """FastAPI dependency returning the app-wide chat session."""
    return request.app.state.chat_session
