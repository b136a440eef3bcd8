# Copyright (C) 2026 StableLlama
#
# This program is free software: you can redistribute it and/or modify
# it under the terms of the GNU General Public License as published by
# the Free Software Foundation, either version 3 of the License, or
# (at your option) any later version.

"""Defines the llm stream ops unit so this responsibility stays isolated, testable, and easy to evolve."""

from __future__ import annotations

import json as _json
from typing import Any, AsyncIterator, Sequence

import httpx

from aiclient.models.chat import ChatMessage
from aiclient.models.profiles import ApiProfile
from aiclient.services.exceptions import StreamError, TransportError
from aiclient.services.llm.llm_logging import (
    add_llm_log,
    create_log_entry,
    finish_log_entry,
)
from aiclient.services.llm.llm_request_helpers import (
    build_chat_body,
    build_chat_messages,
    build_headers,
    build_timeout,
    chat_completions_url,
    decode_error_body,
    validate_base_url,
)

DONE_MARKER = "[DONE]"


def parse_stream_line(line: str) -> str | None:
    """Return the content fragment carried by one SSE line, if any.

    Returns ``DONE_MARKER`` for the terminating line. Raises ``StreamError``
    when the upstream reports an error object inside the stream.
    """
    if not line.startswith("data:"):
        return None
    data = line[len("data:") :].strip()
    if data == DONE_MARKER:
        return DONE_MARKER
    try:
        obj: Any = _json.loads(data)
    except ValueError:
        return None
    if not isinstance(obj, dict):
        return None
    if obj.get("error"):
        err = obj["error"]
        detail = err.get("message") if isinstance(err, dict) else str(err)
        raise StreamError(detail or "Upstream stream error", response_body=err)
    try:
        content = obj["choices"][0]["delta"].get("content")
    except (KeyError, IndexError, TypeError, AttributeError):
        return None
    return content if isinstance(content, str) and content else None


async def send_stream_chat_request(
    *,
    profile: ApiProfile,
    model: str,
    message: str,
    history: Sequence[ChatMessage],
) -> AsyncIterator[str]:
    """Stream content fragments from the chat completions endpoint.

    Fragments are yielded in arrival order. The iterator ends at ``[DONE]``
    or when the upstream closes the stream; every failure surfaces as
    ``StreamError``.
    """
    try:
        validate_base_url(profile.base_url)
    except TransportError as e:
        raise StreamError(e.detail) from e

    url = chat_completions_url(profile.base_url)
    headers = build_headers(profile.api_key)
    body = build_chat_body(model, build_chat_messages(history, message), stream=True)

    log_entry = create_log_entry(url, "POST", headers, body, streaming=True)
    add_llm_log(log_entry)

    try:
        async with httpx.AsyncClient(timeout=build_timeout(profile.timeout_s)) as client:
            async with client.stream("POST", url, headers=headers, json=body) as resp:
                log_entry["response"]["status_code"] = resp.status_code
                if resp.status_code >= 400:
                    error_body = decode_error_body(await resp.aread())
                    log_entry["response"]["body"] = error_body
                    raise StreamError(
                        f"Upstream returned HTTP {resp.status_code}",
                        response_status=resp.status_code,
                        response_body=error_body,
                    )
                async for line in resp.aiter_lines():
                    if not line.strip():
                        continue
                    fragment = parse_stream_line(line)
                    if fragment == DONE_MARKER:
                        break
                    if fragment is None:
                        continue
                    log_entry["response"]["chunks"].append(fragment)
                    log_entry["response"]["full_content"] += fragment
                    yield fragment
    except StreamError as e:
        finish_log_entry(log_entry, error=e.detail)
        raise
    except Exception as e:
        # httpx.HTTPError, httpx.InvalidURL and the like
        finish_log_entry(log_entry, error=str(e) or type(e).__name__)
        raise StreamError(str(e) or type(e).__name__) from e
    finish_log_entry(log_entry)
