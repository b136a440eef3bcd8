# Copyright (C) 2026 StableLlama
#
# This program is free software: you can redistribute it and/or modify
# it under the terms of the GNU General Public License as published by
# the Free Software Foundation, either version 3 of the License, or
# (at your option) any later version.
# Purpose: Defines the llm unit so this responsibility stays isolated, testable, and easy to evolve.

"""LLM adapter facade.

The chat session talks to the upstream API only through ``ChatTransport``.
Implementations are split into:
- llm_completion_ops: single-shot chat completion
- llm_stream_ops: streamed chat completion (SSE fragments)
"""

from __future__ import annotations

from typing import Any, AsyncIterator, Dict, Protocol, Sequence

from aiclient.models.chat import ChatMessage
from aiclient.models.profiles import ApiProfile
from aiclient.services.llm import llm_completion_ops as _llm_completion_ops
from aiclient.services.llm import llm_logging as _llm_logging
from aiclient.services.llm import llm_stream_ops as _llm_stream_ops

llm_logs = _llm_logging.llm_logs
extract_completion_content = _llm_completion_ops.extract_completion_content


class ChatTransport(Protocol):
    async def send_chat_request(
        self,
        profile: ApiProfile,
        model: str,
        message: str,
        history: Sequence[ChatMessage],
    ) -> Dict[str, Any]: ...

    def send_stream_chat_request(
        self,
        profile: ApiProfile,
        model: str,
        message: str,
        history: Sequence[ChatMessage],
    ) -> AsyncIterator[str]: ...


class HttpChatTransport:
    """``ChatTransport`` over an OpenAI-compatible HTTP endpoint."""

    async def send_chat_request(
        self,
        profile: ApiProfile,
        model: str,
        message: str,
        history: Sequence[ChatMessage],
    ) -> Dict[str, Any]:
        return await _llm_completion_ops.send_chat_request(
            profile=profile, model=model, message=message, history=history
        )

    def send_stream_chat_request(
        self,
        profile: ApiProfile,
        model: str,
        message: str,
        history: Sequence[ChatMessage],
    ) -> AsyncIterator[str]:
        return _llm_stream_ops.send_stream_chat_request(
            profile=profile, model=model, message=message, history=history
        )
