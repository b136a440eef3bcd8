# Copyright (C) 2026 StableLlama
#
# This program is free software: you can redistribute it and/or modify
# it under the terms of the GNU General Public License as published by
# the Free Software Foundation, either version 3 of the License, or
# (at your option) any later version.

"""Defines the chat unit so this responsibility stays isolated, testable, and easy to evolve.

Pydantic models for the in-memory chat session and its API requests/responses.
"""

from __future__ import annotations

import datetime
import uuid
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


def new_message_id() -> str:
    return uuid.uuid4().hex


class MessageStatus(str, Enum):
    PENDING = "pending"
    STREAMING = "streaming"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (MessageStatus.COMPLETED, MessageStatus.FAILED)


class ChatMessage(BaseModel):
    """One transcript entry.

    Records are frozen; the reducer swaps in an updated copy of the in-flight
    assistant message instead of mutating it.
    """

    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=new_message_id)
    content: str
    is_user: bool
    model_name: str = ""
    created_time: datetime.datetime = Field(default_factory=datetime.datetime.now)
    status: MessageStatus = MessageStatus.COMPLETED


class SessionState(BaseModel):
    """Snapshot of one chat session. Replaced, never mutated."""

    model_config = ConfigDict(frozen=True)

    messages: tuple[ChatMessage, ...] = ()
    current_profile_id: Optional[int] = None
    current_model: str = ""
    is_waiting_for_response: bool = False
    use_streaming: bool = False

    def in_flight_message(self) -> ChatMessage | None:
        for message in self.messages:
            if not message.is_user and not message.status.is_terminal:
                return message
        return None


class ChatSubmitRequest(BaseModel):
    text: str


class SelectionUpdateRequest(BaseModel):
    profile_id: Optional[int] = None
    model: Optional[str] = None
    use_streaming: Optional[bool] = None


class ChatSessionResponse(BaseModel):
    """Response body for ``GET /api/v1/chat``."""

    messages: list[ChatMessage]
    current_profile_id: Optional[int]
    current_model: str
    is_waiting_for_response: bool
    use_streaming: bool

    @classmethod
    def from_state(cls, state: SessionState) -> "ChatSessionResponse":
        return cls(
            messages=list(state.messages),
            current_profile_id=state.current_profile_id,
            current_model=state.current_model,
            is_waiting_for_response=state.is_waiting_for_response,
            use_streaming=state.use_streaming,
        )


class SelectionResponse(BaseModel):
    profile_id: Optional[int]
    model: str
    models: list[str]
    use_streaming: bool
