# Copyright (C) 2026 StableLlama
#
# This program is free software: you can redistribute it and/or modify
# it under the terms of the GNU General Public License as published by
# the Free Software Foundation, either version 3 of the License, or
# (at your option) any later version.

"""Defines the llm completion ops unit so this responsibility stays isolated, testable, and easy to evolve."""

from __future__ import annotations

from typing import Any, Dict, Sequence

import httpx

from aiclient.models.chat import ChatMessage
from aiclient.models.profiles import ApiProfile
from aiclient.services.exceptions import TransportError
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
    validate_base_url,
)


async def _execute_llm_request(
    url: str, headers: Dict[str, str], body: Dict[str, Any], timeout_s: int
) -> Dict[str, Any]:
    log_entry = create_log_entry(url, "POST", headers, body)
    add_llm_log(log_entry)

    async with httpx.AsyncClient(timeout=build_timeout(timeout_s)) as client:
        try:
            r = await client.post(url, headers=headers, json=body)
            log_entry["response"]["status_code"] = r.status_code
            r.raise_for_status()
            resp_json = r.json()
        except httpx.HTTPStatusError as e:
            resp = e.response
            try:
                error_body: Any = resp.json()
            except ValueError:
                error_body = resp.text
            finish_log_entry(log_entry, error=str(e))
            log_entry["response"]["body"] = error_body
            raise TransportError(
                f"Upstream returned HTTP {resp.status_code}",
                response_status=resp.status_code,
                response_body=error_body,
            ) from e
        except httpx.HTTPError as e:
            finish_log_entry(log_entry, error=str(e))
            raise TransportError(str(e) or type(e).__name__) from e
        except ValueError as e:
            finish_log_entry(log_entry, error=str(e))
            raise TransportError(f"Invalid JSON in response: {e}") from e

    finish_log_entry(log_entry)
    log_entry["response"]["body"] = resp_json
    if not isinstance(resp_json, dict):
        raise TransportError("Unexpected response payload")
    return resp_json


async def send_chat_request(
    *,
    profile: ApiProfile,
    model: str,
    message: str,
    history: Sequence[ChatMessage],
) -> Dict[str, Any]:
    """Call the OpenAI-compatible chat completions endpoint and return JSON.

    Raises ``TransportError`` for network failures, non-success statuses and
    undecodable bodies.
    """
    validate_base_url(profile.base_url)
    body = build_chat_body(model, build_chat_messages(history, message), stream=False)
    return await _execute_llm_request(
        chat_completions_url(profile.base_url),
        build_headers(profile.api_key),
        body,
        profile.timeout_s,
    )


def extract_completion_content(response: Dict[str, Any]) -> str:
    """Return ``choices[0].message.content`` of a chat completion payload."""
    try:
        content = response["choices"][0]["message"]["content"]
    except (KeyError, IndexError, TypeError) as e:
        raise TransportError("Response has no completion choices") from e
    if content is None:
        return ""
    if not isinstance(content, str):
        raise TransportError("Completion content is not text")
    return content
