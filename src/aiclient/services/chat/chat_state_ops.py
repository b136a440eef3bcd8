# Copyright (C) 2026 StableLlama
#
# This program is free software: you can redistribute it and/or modify
# it under the terms of the GNU General Public License as published by
# the Free Software Foundation, either version 3 of the License, or
# (at your option) any later version.

"""Session state transitions.

``reduce_session`` is a pure function: it takes the current ``SessionState``
and one event and returns the next state plus the effects the caller has to
run. Events addressed to an unknown message, or to a message that already
reached a terminal status, leave the state untouched and yield no effects.

Assistant message lifecycle::

    pending -> streaming* -> completed | failed
"""

from __future__ import annotations

import datetime
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Union

from aiclient.models.chat import ChatMessage, MessageStatus, SessionState


class Effect(str, Enum):
    NOTIFY = "notify"
    SCROLL_TO_END = "scroll_to_end"


TRANSCRIPT_EFFECTS: tuple[Effect, ...] = (Effect.NOTIFY, Effect.SCROLL_TO_END)


@dataclass(frozen=True)
class UserSubmitted:
    user_message: ChatMessage
    placeholder: ChatMessage
    profile_id: int
    model: str


@dataclass(frozen=True)
class FragmentReceived:
    message_id: str
    content: str


@dataclass(frozen=True)
class StreamCompleted:
    message_id: str
    content: str


@dataclass(frozen=True)
class StreamFailed:
    message_id: str
    partial_content: str
    error_text: str


@dataclass(frozen=True)
class ResponseReceived:
    message_id: str
    content: str


@dataclass(frozen=True)
class RequestFailed:
    message_id: str
    error_text: str


@dataclass(frozen=True)
class ChatCleared:
    pass


@dataclass(frozen=True)
class SelectionChanged:
    profile_id: Optional[int]
    model: str
    use_streaming: Optional[bool] = None


SessionEvent = Union[
    UserSubmitted,
    FragmentReceived,
    StreamCompleted,
    StreamFailed,
    ResponseReceived,
    RequestFailed,
    ChatCleared,
    SelectionChanged,
]

Transition = tuple[SessionState, tuple[Effect, ...]]


def _unchanged(state: SessionState) -> Transition:
    return state, ()


def _open_assistant_message(state: SessionState, message_id: str) -> int | None:
    for index, message in enumerate(state.messages):
        if message.id == message_id:
            if message.is_user or message.status.is_terminal:
                return None
            return index
    return None


def _replace_at(
    state: SessionState, index: int, message: ChatMessage
) -> SessionState:
    messages = state.messages[:index] + (message,) + state.messages[index + 1 :]
    next_state = state.model_copy(update={"messages": messages})
    waiting = next_state.in_flight_message() is not None
    return next_state.model_copy(update={"is_waiting_for_response": waiting})


def _update_message(
    state: SessionState, message_id: str, content: str, status: MessageStatus
) -> Transition:
    index = _open_assistant_message(state, message_id)
    if index is None:
        return _unchanged(state)
    updated = state.messages[index].model_copy(
        update={"content": content, "status": status}
    )
    return _replace_at(state, index, updated), TRANSCRIPT_EFFECTS


def join_partial_and_error(partial: str, error_text: str) -> str:
    if not partial:
        return error_text
    return f"{partial}\n\n{error_text}"


def reduce_session(state: SessionState, event: SessionEvent) -> Transition:
    if isinstance(event, UserSubmitted):
        if state.is_waiting_for_response:
            return _unchanged(state)
        next_state = state.model_copy(
            update={
                "messages": state.messages + (event.user_message, event.placeholder),
                "current_profile_id": event.profile_id,
                "current_model": event.model,
                "is_waiting_for_response": True,
            }
        )
        return next_state, TRANSCRIPT_EFFECTS

    if isinstance(event, FragmentReceived):
        return _update_message(
            state, event.message_id, event.content, MessageStatus.STREAMING
        )

    if isinstance(event, StreamCompleted):
        return _update_message(
            state, event.message_id, event.content, MessageStatus.COMPLETED
        )

    if isinstance(event, StreamFailed):
        return _update_message(
            state,
            event.message_id,
            join_partial_and_error(event.partial_content, event.error_text),
            MessageStatus.FAILED,
        )

    if isinstance(event, ResponseReceived):
        return _update_message(
            state, event.message_id, event.content, MessageStatus.COMPLETED
        )

    if isinstance(event, RequestFailed):
        index = _open_assistant_message(state, event.message_id)
        if index is None:
            return _unchanged(state)
        placeholder = state.messages[index]
        replacement = ChatMessage(
            id=placeholder.id,
            content=event.error_text,
            is_user=False,
            model_name=placeholder.model_name,
            created_time=datetime.datetime.now(),
            status=MessageStatus.FAILED,
        )
        return _replace_at(state, index, replacement), TRANSCRIPT_EFFECTS

    if isinstance(event, ChatCleared):
        if state.is_waiting_for_response:
            return _unchanged(state)
        return state.model_copy(update={"messages": ()}), TRANSCRIPT_EFFECTS

    if isinstance(event, SelectionChanged):
        update: dict = {
            "current_profile_id": event.profile_id,
            "current_model": event.model,
        }
        if event.use_streaming is not None:
            update["use_streaming"] = event.use_streaming
        return state.model_copy(update=update), (Effect.NOTIFY,)

    raise TypeError(f"Unknown session event: {event!r}")
