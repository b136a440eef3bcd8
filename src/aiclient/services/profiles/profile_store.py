# Copyright (C) 2026 StableLlama
#
# This program is free software: you can redistribute it and/or modify
# it under the terms of the GNU General Public License as published by
# the Free Software Foundation, either version 3 of the License, or
# (at your option) any later version.

"""Defines the profile store unit so this responsibility stays isolated, testable, and easy to evolve.

API profiles live in a single JSON document::

    {"next_id": 3, "profiles": [{"id": 1, "service_name": ..., ...}, ...]}

Ids are never reused, so a deleted profile id cannot silently resolve to a
different profile held by a running session.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict, Iterable, List, Mapping

from pydantic import ValidationError

from aiclient.core.config import get_profiles_path
from aiclient.models.profiles import ApiProfile
from aiclient.services.exceptions import (
    BadRequestError,
    NotFoundError,
    PersistenceError,
)

_EDITABLE_FIELDS = ("service_name", "base_url", "models", "api_key", "timeout_s")


def _empty_document() -> Dict[str, Any]:
    return {"next_id": 1, "profiles": []}


class ProfileStore:
    """JSON-file backed CRUD over ``ApiProfile`` records."""

    def __init__(self, path: Path | str | None = None):
        self.path = Path(path) if path is not None else get_profiles_path()

    def _load(self) -> Dict[str, Any]:
        if not self.path.exists():
            return _empty_document()
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except json.JSONDecodeError as e:
            raise PersistenceError(f"Invalid profile store at {self.path}: {e}") from e
        except OSError as e:
            raise PersistenceError(f"Cannot read profile store: {e}") from e
        if not isinstance(data, dict):
            return _empty_document()
        profiles = data.get("profiles")
        if not isinstance(profiles, list):
            profiles = []
        next_id = data.get("next_id")
        if not isinstance(next_id, int):
            next_id = 1
        highest = max(
            (
                p["id"]
                for p in profiles
                if isinstance(p, dict) and isinstance(p.get("id"), int)
            ),
            default=0,
        )
        return {"next_id": max(next_id, highest + 1), "profiles": profiles}

    def _save(self, document: Dict[str, Any]) -> None:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self.path.write_text(json.dumps(document, indent=2), encoding="utf-8")
        except OSError as e:
            raise PersistenceError(f"Cannot write profile store: {e}") from e

    def list_profiles(self) -> List[ApiProfile]:
        """Return all stored profiles in insertion order; skip broken records."""
        result: List[ApiProfile] = []
        for raw in self._load()["profiles"]:
            if not isinstance(raw, dict):
                continue
            try:
                result.append(ApiProfile.model_validate(raw))
            except ValidationError:
                continue
        return result

    def get_profile_by_id(self, profile_id: int) -> ApiProfile | None:
        for profile in self.list_profiles():
            if profile.id == profile_id:
                return profile
        return None

    def create_profile(self, data: Mapping[str, Any]) -> ApiProfile:
        document = self._load()
        fields = {k: data[k] for k in _EDITABLE_FIELDS if k in data}
        try:
            profile = ApiProfile(id=document["next_id"], **fields)
        except ValidationError as e:
            raise BadRequestError(f"Invalid profile: {e}") from e
        document["profiles"].append(profile.model_dump())
        document["next_id"] = profile.id + 1
        self._save(document)
        return profile

    def update_profile(self, profile_id: int, data: Mapping[str, Any]) -> ApiProfile:
        """Replace the stored record with a merged copy; ``None`` values are ignored."""
        document = self._load()
        for index, raw in enumerate(document["profiles"]):
            if not isinstance(raw, dict) or raw.get("id") != profile_id:
                continue
            merged = dict(raw)
            for key in _EDITABLE_FIELDS:
                if data.get(key) is not None:
                    merged[key] = data[key]
            try:
                profile = ApiProfile.model_validate(merged)
            except ValidationError as e:
                raise BadRequestError(f"Invalid profile: {e}") from e
            document["profiles"][index] = profile.model_dump()
            self._save(document)
            return profile
        raise NotFoundError(f"Profile {profile_id} not found")

    def delete_profile(self, profile_id: int) -> bool:
        document = self._load()
        kept = [
            p
            for p in document["profiles"]
            if not (isinstance(p, dict) and p.get("id") == profile_id)
        ]
        if len(kept) == len(document["profiles"]):
            return False
        document["profiles"] = kept
        self._save(document)
        return True

    def init_default_profiles(
        self, defaults: Iterable[Mapping[str, Any]] = ()
    ) -> List[ApiProfile]:
        """Seed ``defaults`` into an empty store and return the profile list.

        A store that already holds profiles is returned unchanged.
        """
        profiles = self.list_profiles()
        if profiles:
            return profiles
        for entry in defaults:
            if isinstance(entry, Mapping):
                self.create_profile(entry)
        return self.list_profiles()
