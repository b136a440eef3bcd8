# Copyright (C) 2026 StableLlama
#
# This program is free software: you can redistribute it and/or modify
# it under the terms of the GNU General Public License as published by
# the Free Software Foundation, either version 3 of the License, or
# (at your option) any later version.
# Purpose: Defines the config unit so this responsibility stays isolated, testable, and easy to evolve.

"""
Configuration loading utilities for aiclient.

Conventions:
- Client config: resources/config/client.json (AICLIENT_CONFIG_PATH overrides the path)
- API profiles: data/profiles.json (AICLIENT_PROFILES_PATH overrides the path)
- Environment variables override JSON values.
- JSON values can reference environment variables using ${VAR_NAME} placeholders.
"""

from __future__ import annotations

import copy
import json
import os
import re
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

BASE_DIR = Path(__file__).resolve().parent.parent.parent.parent
CONFIG_DIR = BASE_DIR / "resources" / "config"
DATA_DIR = BASE_DIR / "data"
LOGS_DIR = DATA_DIR / "logs"

DEFAULT_SCROLL_DELAY_MS = 100
DEFAULT_TIMEOUT_S = 60
DEFAULT_PENDING_TEXT = "Thinking..."

CLIENT_DEFAULTS: Dict[str, Any] = {
    "chat": {
        "use_streaming": False,
        "scroll_delay_ms": DEFAULT_SCROLL_DELAY_MS,
        "pending_text": DEFAULT_PENDING_TEXT,
    },
    "timeout_s": DEFAULT_TIMEOUT_S,
    "default_profiles": [],
}

_ENV_PATTERN = re.compile(r"\$\{([A-Z0-9_]+)\}")
_TRUTHY = ("1", "true", "TRUE", "yes", "on")


def _interpolate_env(value: Any) -> Any:
    """Interpolate ${VAR} placeholders within strings using environment variables.

    Non-string types are returned unchanged.
    """
    if isinstance(value, str):

        def replace(match: re.Match[str]) -> str:
            var = match.group(1)
            return os.getenv(var, match.group(0))  # leave placeholder if unset

        return _ENV_PATTERN.sub(replace, value)
    if isinstance(value, dict):
        return {k: _interpolate_env(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_interpolate_env(v) for v in value]
    return value


def _deep_merge(base: Dict[str, Any], override: Mapping[str, Any]) -> Dict[str, Any]:
    """Deeply merge mapping 'override' into dict 'base'. Returns new dict.

    - For dict values, merges recursively.
    - For lists and scalars, override replaces base.
    """
    result: Dict[str, Any] = dict(base)
    for k, v in override.items():
        if isinstance(v, Mapping) and isinstance(result.get(k), Mapping):
            result[k] = _deep_merge(dict(result[k]), v)  # type: ignore[index]
        else:
            result[k] = v
    return result


def load_json_file(path: os.PathLike[str] | str | None) -> Dict[str, Any]:
    """Load JSON from path if it exists; return empty dict if missing.

    Raises ValueError for malformed JSON.
    """
    if path is None:
        return {}
    p = Path(path)
    if not p.exists():
        return {}
    try:
        with p.open("r", encoding="utf-8") as f:
            data = json.load(f)
        return data if isinstance(data, dict) else {}
    except json.JSONDecodeError as e:
        raise ValueError(f"Invalid JSON at {p}: {e}") from e


def _env_overrides_for_client() -> Dict[str, Any]:
    """Collect AICLIENT_* environment variables into a nested dict structure.

    Supported variables:
    - AICLIENT_USE_STREAMING -> chat.use_streaming (bool)
    - AICLIENT_SCROLL_DELAY_MS -> chat.scroll_delay_ms (int if parseable)
    - AICLIENT_TIMEOUT_S -> timeout_s (int if parseable)
    """
    result: Dict[str, Any] = {}
    use_streaming = os.getenv("AICLIENT_USE_STREAMING")
    scroll_delay = os.getenv("AICLIENT_SCROLL_DELAY_MS")
    timeout_s = os.getenv("AICLIENT_TIMEOUT_S")

    chat: Dict[str, Any] = {}
    if use_streaming is not None:
        chat["use_streaming"] = use_streaming in _TRUTHY
    if scroll_delay is not None:
        try:
            chat["scroll_delay_ms"] = int(scroll_delay)
        except ValueError:
            chat["scroll_delay_ms"] = scroll_delay
    if chat:
        result["chat"] = chat
    if timeout_s is not None:
        try:
            result["timeout_s"] = int(timeout_s)
        except ValueError:
            result["timeout_s"] = timeout_s
    return result


def get_client_config_path() -> Path:
    return Path(os.getenv("AICLIENT_CONFIG_PATH") or CONFIG_DIR / "client.json")


def get_profiles_path() -> Path:
    return Path(os.getenv("AICLIENT_PROFILES_PATH") or DATA_DIR / "profiles.json")


def load_client_config(
    path: os.PathLike[str] | str | None = None,
    defaults: Optional[Mapping[str, Any]] = None,
) -> Dict[str, Any]:
    """Load client configuration applying precedence and interpolation.

    Precedence: env overrides > JSON file > defaults
    """
    if path is None:
        path = get_client_config_path()
    defaults = copy.deepcopy(dict(CLIENT_DEFAULTS if defaults is None else defaults))
    json_config = load_json_file(path)
    json_config = _interpolate_env(json_config)
    # Merge JSON over defaults, then env over that
    merged = _deep_merge(defaults, json_config)
    merged = _deep_merge(merged, _env_overrides_for_client())
    return merged


def get_scroll_delay_s(config: Mapping[str, Any]) -> float:
    chat = config.get("chat") or {}
    try:
        return max(0, int(chat.get("scroll_delay_ms", DEFAULT_SCROLL_DELAY_MS))) / 1000
    except (TypeError, ValueError):
        return DEFAULT_SCROLL_DELAY_MS / 1000


def drop_unresolved_env(entry: Mapping[str, Any]) -> Dict[str, Any]:
    """Replace string values still holding a ${VAR} placeholder with None.

    Used for records seeded from config, where an unset variable must not end
    up as a literal credential.
    """
    return {
        k: None if isinstance(v, str) and _ENV_PATTERN.search(v) else v
        for k, v in entry.items()
    }
