# Copyright (C) 2026 StableLlama
#
# This program is free software: you can redistribute it and/or modify
# it under the terms of the GNU General Public License as published by
# the Free Software Foundation, either version 3 of the License, or
# (at your option) any later version.
# Purpose: Defines the profiles unit so this responsibility stays isolated, testable, and easy to evolve.

"""
Pydantic models for API profiles and the settings requests that edit them.
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from aiclient.core.config import DEFAULT_TIMEOUT_S


def split_model_names(models: str | None) -> list[str]:
    """Split a comma-separated model string, dropping blanks."""
    if not models:
        return []
    return [name.strip() for name in models.split(",") if name.strip()]


class ApiProfile(BaseModel):
    """One stored API connection. Edits replace the record wholesale."""

    model_config = ConfigDict(frozen=True)

    id: int
    service_name: str
    base_url: str
    models: str = ""
    api_key: Optional[str] = None
    timeout_s: int = DEFAULT_TIMEOUT_S

    def model_names(self) -> list[str]:
        return split_model_names(self.models)


class ProfileCreateRequest(BaseModel):
    service_name: str = Field(min_length=1)
    base_url: str = Field(min_length=1)
    models: str = ""
    api_key: Optional[str] = None
    timeout_s: int = DEFAULT_TIMEOUT_S


class ProfileUpdateRequest(BaseModel):
    service_name: Optional[str] = None
    base_url: Optional[str] = None
    models: Optional[str] = None
    api_key: Optional[str] = None
    timeout_s: Optional[int] = None


# ---------------------------------------------------------------------------
# Response models
# ---------------------------------------------------------------------------


class ProfilePublic(BaseModel):
    """Profile as returned to clients; the API key is never echoed back."""

    id: int
    service_name: str
    base_url: str
    models: list[str]
    has_api_key: bool
    timeout_s: int

    @classmethod
    def from_profile(cls, profile: ApiProfile) -> "ProfilePublic":
        return cls(
            id=profile.id,
            service_name=profile.service_name,
            base_url=profile.base_url,
            models=profile.model_names(),
            has_api_key=bool(profile.api_key),
            timeout_s=profile.timeout_s,
        )
