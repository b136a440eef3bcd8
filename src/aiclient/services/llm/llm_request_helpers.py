# Copyright (C) 2026 StableLlama
#
# This program is free software: you can redistribute it and/or modify
# it under the terms of the GNU General Public License as published by
# the Free Software Foundation, either version 3 of the License, or
# (at your option) any later version.

"""Defines the llm request helpers unit so this responsibility stays isolated, testable, and easy to evolve."""

from __future__ import annotations

import json as _json
from typing import Any, Dict, Iterable

import httpx

from aiclient.core.config import DEFAULT_TIMEOUT_S
from aiclient.models.chat import ChatMessage, MessageStatus
from aiclient.services.exceptions import TransportError


def validate_base_url(base_url: str) -> None:
    """Reject base URLs that are not plain http(s) endpoints."""
    if not base_url:
        raise TransportError("Missing base_url in profile")
    if not (base_url.startswith("http://") or base_url.startswith("https://")):
        raise TransportError(f"Invalid base_url scheme: {base_url}")
    if any(c in base_url for c in "@[]"):
        raise TransportError(f"Potentially dangerous base_url: {base_url}")


def chat_completions_url(base_url: str) -> str:
    return str(base_url).rstrip("/") + "/chat/completions"


def build_headers(api_key: str | None) -> Dict[str, str]:
    headers: Dict[str, str] = {"Content-Type": "application/json"}
    if api_key:
        headers["Authorization"] = f"Bearer {api_key}"
    return headers


def build_timeout(timeout_s: int) -> httpx.Timeout:
    try:
        return httpx.Timeout(float(timeout_s or DEFAULT_TIMEOUT_S))
    except (TypeError, ValueError):
        return httpx.Timeout(float(DEFAULT_TIMEOUT_S))


def build_chat_messages(
    history: Iterable[ChatMessage], message: str
) -> list[dict[str, str]]:
    """Turn the transcript plus the new user text into OpenAI chat messages.

    Assistant entries that never completed (placeholders, error notices) are
    not part of the conversation and are left out.
    """
    messages: list[dict[str, str]] = []
    for item in history:
        if not item.is_user and item.status != MessageStatus.COMPLETED:
            continue
        messages.append(
            {"role": "user" if item.is_user else "assistant", "content": item.content}
        )
    messages.append({"role": "user", "content": message})
    return messages


def build_chat_body(
    model: str, messages: list[dict[str, str]], stream: bool
) -> Dict[str, Any]:
    return {"model": model, "messages": messages, "stream": stream}


def decode_error_body(raw: bytes) -> Any:
    """Return the upstream error payload as JSON when possible, else as text."""
    text = raw.decode("utf-8", errors="ignore")
    try:
        return _json.loads(text)
    except ValueError:
        return text
