# Copyright (C) 2026 StableLlama
#
# This program is free software: you can redistribute it and/or modify
# it under the terms of the GNU General Public License as published by
# the Free Software Foundation, either version 3 of the License, or
# (at your option) any later version.

"""Defines the chat selection ops unit so this responsibility stays isolated, testable, and easy to evolve.

Keeps the session's profile/model choice consistent with the stored profiles.
"""

from __future__ import annotations

from typing import Sequence

from aiclient.models.profiles import ApiProfile, split_model_names
from aiclient.services.exceptions import NoProfileConfiguredError

__all__ = [
    "split_model_names",
    "reconcile_profile",
    "reconcile_model",
    "resolve_selection",
]


def reconcile_profile(
    profiles: Sequence[ApiProfile], current_id: int | None
) -> ApiProfile | None:
    """Return the profile with ``current_id``, else the first profile.

    Returns None only when ``profiles`` is empty.
    """
    if not profiles:
        return None
    if current_id is not None:
        for profile in profiles:
            if profile.id == current_id:
                return profile
    return profiles[0]


def reconcile_model(profile: ApiProfile, current_model: str | None) -> str:
    """Return ``current_model`` if the profile lists it, else its first model."""
    names = profile.model_names()
    if current_model and current_model in names:
        return current_model
    return names[0] if names else ""


def resolve_selection(
    profiles: Sequence[ApiProfile],
    current_id: int | None,
    current_model: str | None,
) -> tuple[ApiProfile, str]:
    profile = reconcile_profile(profiles, current_id)
    if profile is None:
        raise NoProfileConfiguredError()
    return profile, reconcile_model(profile, current_model)
