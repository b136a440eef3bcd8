# Copyright (C) 2026 StableLlama
#
# This program is free software: you can redistribute it and/or modify
# it under the terms of the GNU General Public License as published by
# the Free Software Foundation, either version 3 of the License, or
# (at your option) any later version.

"""Covers CRUD and default seeding of the JSON profile store."""

import json
import tempfile
from pathlib import Path
from unittest import TestCase

from aiclient.services.exceptions import (
    BadRequestError,
    NotFoundError,
    PersistenceError,
)
from aiclient.services.profiles.profile_store import ProfileStore


class ProfileStoreTest(TestCase):
    def setUp(self):
        self.td = tempfile.TemporaryDirectory()
        self.addCleanup(self.td.cleanup)
        self.path = Path(self.td.name) / "nested" / "profiles.json"
        self.store = ProfileStore(self.path)

    def test_empty_store_lists_nothing(self):
        self.assertEqual(self.store.list_profiles(), [])
        self.assertIsNone(self.store.get_profile_by_id(1))

    def test_create_assigns_increasing_ids_and_persists(self):
        a = self.store.create_profile(
            {"service_name": "A", "base_url": "http://a", "models": "m1,m2"}
        )
        b = self.store.create_profile(
            {"service_name": "B", "base_url": "http://b", "models": "x"}
        )
        self.assertEqual((a.id, b.id), (1, 2))
        self.assertTrue(self.path.exists())

        reopened = ProfileStore(self.path)
        self.assertEqual([p.service_name for p in reopened.list_profiles()], ["A", "B"])
        self.assertEqual(reopened.get_profile_by_id(1).model_names(), ["m1", "m2"])

    def test_deleted_ids_are_not_reused(self):
        first = self.store.create_profile({"service_name": "A", "base_url": "http://a"})
        self.assertTrue(self.store.delete_profile(first.id))
        second = self.store.create_profile({"service_name": "B", "base_url": "http://b"})
        self.assertNotEqual(first.id, second.id)

    def test_update_replaces_record_and_ignores_none(self):
        created = self.store.create_profile(
            {"service_name": "A", "base_url": "http://a", "models": "m1", "api_key": "k"}
        )
        updated = self.store.update_profile(
            created.id, {"models": "m2, m3", "api_key": None}
        )
        self.assertEqual(updated.model_names(), ["m2", "m3"])
        self.assertEqual(updated.api_key, "k")
        self.assertEqual(self.store.get_profile_by_id(created.id), updated)
        # the previously fetched record is a separate immutable value
        self.assertEqual(created.models, "m1")

    def test_update_unknown_profile_raises_not_found(self):
        with self.assertRaises(NotFoundError):
            self.store.update_profile(42, {"models": "x"})

    def test_delete_unknown_profile_returns_false(self):
        self.assertFalse(self.store.delete_profile(42))

    def test_create_rejects_missing_fields(self):
        with self.assertRaises(BadRequestError):
            self.store.create_profile({"service_name": "A"})

    def test_init_default_profiles_seeds_only_empty_store(self):
        defaults = [{"service_name": "Seed", "base_url": "http://seed", "models": "s"}]
        seeded = self.store.init_default_profiles(defaults)
        self.assertEqual([p.service_name for p in seeded], ["Seed"])

        again = self.store.init_default_profiles(
            [{"service_name": "Other", "base_url": "http://other"}]
        )
        self.assertEqual([p.service_name for p in again], ["Seed"])

    def test_broken_records_are_skipped(self):
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(
            json.dumps(
                {
                    "next_id": 3,
                    "profiles": [
                        {"id": 1, "service_name": "ok", "base_url": "http://ok"},
                        {"id": 2},
                        {"id": None, "service_name": "n", "base_url": "http://n"},
                        {"id": "seven", "service_name": "s", "base_url": "http://s"},
                        "junk",
                    ],
                }
            ),
            encoding="utf-8",
        )
        self.assertEqual([p.id for p in self.store.list_profiles()], [1])

        created = self.store.create_profile(
            {"service_name": "new", "base_url": "http://new"}
        )
        self.assertEqual(created.id, 3)

    def test_malformed_file_raises_persistence_error(self):
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text("{oops", encoding="utf-8")
        with self.assertRaises(PersistenceError):
            self.store.list_profiles()
