# Copyright (C) 2026 StableLlama
#
# This program is free software: you can redistribute it and/or modify
# it under the terms of the GNU General Public License as published by
# the Free Software Foundation, either version 3 of the License, or
# (at your option) any later version.

"""Defines the conftest unit so this responsibility stays isolated, testable, and easy to evolve."""

import os
import tempfile
import pytest
from pathlib import Path

# Global temporary directory for the whole test session
# This acts as a safety net to prevent tests from writing to the real data folder
# if an individual test forgets to redirect.
_SESSION_TEMP_DIR = None

_REDIRECTED_VARS = ("AICLIENT_PROFILES_PATH", "AICLIENT_CONFIG_PATH", "AICLIENT_LLM_DUMP")


@pytest.fixture(scope="session", autouse=True)
def session_temp_env():
    global _SESSION_TEMP_DIR
    _SESSION_TEMP_DIR = tempfile.TemporaryDirectory(prefix="aiclient_test_session_")

    originals = {name: os.environ.get(name) for name in _REDIRECTED_VARS}

    os.environ["AICLIENT_PROFILES_PATH"] = str(
        Path(_SESSION_TEMP_DIR.name) / "profiles.json"
    )
    os.environ["AICLIENT_CONFIG_PATH"] = str(
        Path(_SESSION_TEMP_DIR.name) / "client.json"
    )
    os.environ.pop("AICLIENT_LLM_DUMP", None)

    yield

    if _SESSION_TEMP_DIR:
        _SESSION_TEMP_DIR.cleanup()

    for name, value in originals.items():
        if value is not None:
            os.environ[name] = value
        else:
            os.environ.pop(name, None)
