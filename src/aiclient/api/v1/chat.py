# Copyright (C) 2026 StableLlama
#
# This program is free software: you can redistribute it and/or modify
# it under the terms of the GNU General Public License as published by
# the Free Software Foundation, either version 3 of the License, or
# (at your option) any later version.

"""Defines the chat unit so this responsibility stays isolated, testable, and easy to evolve.

API endpoints for the in-memory chat session.
"""

import asyncio
import json as _json
from typing import AsyncIterator

from fastapi import APIRouter, Depends
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse, StreamingResponse

from aiclient.api.v1.http_responses import error_json, get_chat_session, ok_json
from aiclient.models.chat import ChatSessionResponse, ChatSubmitRequest, SessionState
from aiclient.services.chat.chat_lifecycle_ops import ChatSession, PendingReply

router = APIRouter(tags=["Chat"])

_IN_FLIGHT = "A response is already in flight"


def _snapshot(state: SessionState) -> dict:
    return jsonable_encoder(ChatSessionResponse.from_state(state))


def _start(session: ChatSession, text: str) -> PendingReply | JSONResponse:
    if not text:
        return error_json("Message text is empty", status_code=400)
    pending = session.start_reply(text)
    if pending is None:
        return error_json(_IN_FLIGHT, status_code=409)
    return pending


@router.get("/chat", response_model=ChatSessionResponse)
async def api_get_chat(
    session: ChatSession = Depends(get_chat_session),
) -> ChatSessionResponse:
    """Return the current transcript and selection."""
    return ChatSessionResponse.from_state(session.state)


@router.post("/chat/messages")
async def api_send_message(
    body: ChatSubmitRequest, session: ChatSession = Depends(get_chat_session)
) -> JSONResponse:
    """Send a message and wait until the reply reaches a terminal state."""
    pending = _start(session, body.text)
    if isinstance(pending, JSONResponse):
        return pending
    await session.finish_reply(pending)
    return ok_json(chat=_snapshot(session.state))


@router.post("/chat/messages/stream")
async def api_send_message_stream(
    body: ChatSubmitRequest, session: ChatSession = Depends(get_chat_session)
):
    """Send a message and stream every session snapshot as a server-sent event.

    The in-flight slot is claimed before the response starts, so a concurrent
    request is answered with 409 instead of an event stream.
    """
    pending = _start(session, body.text)
    if isinstance(pending, JSONResponse):
        return pending

    # Seeded with the snapshot holding the new user turn and placeholder
    queue: asyncio.Queue[SessionState | None] = asyncio.Queue()
    queue.put_nowait(session.state)
    session.add_listener(queue.put_nowait)

    async def run() -> None:
        try:
            await session.finish_reply(pending)
        finally:
            session.remove_listener(queue.put_nowait)
            queue.put_nowait(None)

    task = asyncio.create_task(run())

    async def events() -> AsyncIterator[str]:
        while True:
            state = await queue.get()
            if state is None:
                break
            yield f"data: {_json.dumps(_snapshot(state))}\n\n"
        await asyncio.wait({task})
        error = task.exception()
        if error is not None:
            detail = getattr(error, "detail", str(error))
            yield f"data: {_json.dumps({'ok': False, 'detail': detail})}\n\n"
        yield "data: [DONE]\n\n"

    return StreamingResponse(events(), media_type="text/event-stream")


@router.delete("/chat")
async def api_clear_chat(session: ChatSession = Depends(get_chat_session)) -> JSONResponse:
    """Start a new conversation. Refused while a reply is pending."""
    if not session.clear_chat():
        return error_json(_IN_FLIGHT, status_code=409)
    return ok_json(chat=_snapshot(session.state))
