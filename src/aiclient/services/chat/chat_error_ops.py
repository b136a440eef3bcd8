# Copyright (C) 2026 StableLlama
#
# This program is free software: you can redistribute it and/or modify
# it under the terms of the GNU General Public License as published by
# the Free Software Foundation, either version 3 of the License, or
# (at your option) any later version.

"""Defines the chat error ops unit so this responsibility stays isolated, testable, and easy to evolve."""

from __future__ import annotations

import json as _json
from typing import Any

from aiclient.services.exceptions import StreamError, TransportError


def _render_body(body: Any) -> str:
    if body is None:
        return ""
    if isinstance(body, str):
        return body
    try:
        return _json.dumps(body, ensure_ascii=False)
    except (TypeError, ValueError):
        return str(body)


def _describe(exc: BaseException) -> str:
    if isinstance(exc, TransportError):
        return exc.detail
    text = str(exc)
    return text or type(exc).__name__


def describe_request_error(exc: BaseException) -> str:
    """Text shown in place of the assistant reply after a failed request."""
    if isinstance(exc, TransportError) and exc.response_status is not None:
        return (
            f"request failed: status {exc.response_status} - "
            f"{_render_body(exc.response_body)}"
        )
    return f"request failed: {_describe(exc)}"


def describe_stream_error(exc: BaseException) -> str:
    """Text shown after the partial reply of a failed stream."""
    if isinstance(exc, StreamError) and exc.response_status is not None:
        return (
            f"stream failed: status {exc.response_status} - "
            f"{_render_body(exc.response_body)}"
        )
    return f"stream failed: {_describe(exc)}"
