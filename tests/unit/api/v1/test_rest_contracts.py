# Copyright (C) 2026 StableLlama
#
# This program is free software: you can redistribute it and/or modify
# it under the terms of the GNU General Public License as published by
# the Free Software Foundation, either version 3 of the License, or
# (at your option) any later version.

"""Adds REST API contract tests for successful execution and graceful invalid-input handling across backend endpoints."""

import asyncio
import json
import tempfile
from pathlib import Path
from unittest import TestCase

import httpx
from fastapi.testclient import TestClient

from aiclient.main import create_app
from aiclient.services.chat.chat_lifecycle_ops import ChatSession
from aiclient.services.exceptions import TransportError
from aiclient.services.profiles.profile_store import ProfileStore


class ScriptedTransport:
    def __init__(self):
        self.reply = "hi there"
        self.fragments = ["hi", " there"]
        self.error = None

    async def send_chat_request(self, profile, model, message, history):
        if self.error is not None:
            raise self.error
        return {"choices": [{"message": {"content": self.reply}}]}

    async def send_stream_chat_request(self, profile, model, message, history):
        for fragment in self.fragments:
            yield fragment


class GatedStreamTransport(ScriptedTransport):
    def __init__(self):
        super().__init__()
        self.gate = None
        self.calls = []

    async def send_stream_chat_request(self, profile, model, message, history):
        self.calls.append(message)
        await self.gate.wait()
        for fragment in self.fragments:
            yield fragment


class RestContractsTest(TestCase):
    def setUp(self):
        self.td = tempfile.TemporaryDirectory()
        self.addCleanup(self.td.cleanup)

        self.store = ProfileStore(Path(self.td.name) / "profiles.json")
        self.transport = ScriptedTransport()
        self.session = ChatSession(self.store, self.transport, scroll_delay_s=0)
        self.app = create_app(session=self.session)
        self.client = TestClient(self.app)

    def _create_profile(self, name="A", models="gpt-a,gpt-b", api_key="k"):
        r = self.client.post(
            "/api/v1/settings/profiles",
            json={
                "service_name": name,
                "base_url": f"http://{name.lower()}.test/v1",
                "models": models,
                "api_key": api_key,
            },
        )
        self.assertEqual(r.status_code, 201, r.text)
        return r.json()

    def test_health_and_debug_endpoints(self):
        r_health = self.client.get("/api/v1/health")
        self.assertEqual(r_health.status_code, 200)
        self.assertEqual(r_health.json().get("status"), "ok")

        r_logs = self.client.get("/api/v1/debug/llm_logs")
        self.assertEqual(r_logs.status_code, 200)
        self.assertIsInstance(r_logs.json(), list)

        r_clear = self.client.delete("/api/v1/debug/llm_logs")
        self.assertEqual(r_clear.status_code, 200)

    def test_send_message_end_to_end(self):
        self._create_profile()

        r = self.client.post("/api/v1/chat/messages", json={"text": "hello"})
        self.assertEqual(r.status_code, 200, r.text)
        chat = r.json()["chat"]
        self.assertEqual(
            [(m["is_user"], m["content"]) for m in chat["messages"]],
            [(True, "hello"), (False, "hi there")],
        )
        self.assertFalse(chat["is_waiting_for_response"])
        self.assertEqual(chat["current_model"], "gpt-a")

        r_get = self.client.get("/api/v1/chat")
        self.assertEqual(len(r_get.json()["messages"]), 2)

    def test_send_without_profile_is_a_notice(self):
        r = self.client.post("/api/v1/chat/messages", json={"text": "hello"})
        self.assertEqual(r.status_code, 400)
        self.assertEqual(r.json(), {"ok": False, "detail": "No API profile configured"})
        self.assertEqual(self.client.get("/api/v1/chat").json()["messages"], [])

    def test_empty_text_is_rejected(self):
        self._create_profile()
        r = self.client.post("/api/v1/chat/messages", json={"text": ""})
        self.assertEqual(r.status_code, 400)
        self.assertFalse(r.json()["ok"])

    def test_transport_failure_is_shown_in_transcript(self):
        self._create_profile()
        self.transport.error = TransportError(
            "HTTP 503", response_status=503, response_body="unavailable"
        )
        r = self.client.post("/api/v1/chat/messages", json={"text": "hello"})
        self.assertEqual(r.status_code, 200)
        messages = r.json()["chat"]["messages"]
        self.assertEqual(len(messages), 2)
        self.assertEqual(messages[1]["content"], "request failed: status 503 - unavailable")
        self.assertEqual(messages[1]["status"], "failed")

    def test_streamed_send_emits_snapshots(self):
        self._create_profile()
        self.client.put("/api/v1/settings/selection", json={"use_streaming": True})

        r = self.client.post("/api/v1/chat/messages/stream", json={"text": "hello"})
        self.assertEqual(r.status_code, 200)
        self.assertTrue(r.headers["content-type"].startswith("text/event-stream"))

        events = [
            line[len("data: ") :]
            for line in r.text.splitlines()
            if line.startswith("data: ")
        ]
        self.assertEqual(events[-1], "[DONE]")
        snapshots = [json.loads(e) for e in events[:-1]]
        contents = [s["messages"][-1]["content"] for s in snapshots]
        self.assertEqual(contents, ["Thinking...", "hi", "hi there", "hi there"])
        self.assertFalse(snapshots[-1]["is_waiting_for_response"])

    def test_clear_chat(self):
        self._create_profile()
        self.client.post("/api/v1/chat/messages", json={"text": "hello"})

        r = self.client.delete("/api/v1/chat")
        self.assertEqual(r.status_code, 200)
        self.assertEqual(r.json()["chat"]["messages"], [])

    def test_profile_crud_hides_api_key(self):
        created = self._create_profile(api_key="top-secret")
        self.assertNotIn("api_key", created)
        self.assertTrue(created["has_api_key"])
        self.assertEqual(created["models"], ["gpt-a", "gpt-b"])

        r_list = self.client.get("/api/v1/settings/profiles")
        self.assertEqual([p["id"] for p in r_list.json()], [created["id"]])
        self.assertNotIn("top-secret", r_list.text)

        r_put = self.client.put(
            f"/api/v1/settings/profiles/{created['id']}", json={"models": "gpt-c"}
        )
        self.assertEqual(r_put.status_code, 200, r_put.text)
        self.assertEqual(r_put.json()["models"], ["gpt-c"])
        self.assertEqual(self.session.profiles[0].models, "gpt-c")

        r_get = self.client.get(f"/api/v1/settings/profiles/{created['id']}")
        self.assertEqual(r_get.json()["models"], ["gpt-c"])

        r_del = self.client.delete(f"/api/v1/settings/profiles/{created['id']}")
        self.assertEqual(r_del.status_code, 200)
        self.assertEqual(
            self.client.get(f"/api/v1/settings/profiles/{created['id']}").status_code,
            404,
        )
        self.assertEqual(
            self.client.delete(f"/api/v1/settings/profiles/{created['id']}").status_code,
            404,
        )

    def test_invalid_profile_payload(self):
        r = self.client.post("/api/v1/settings/profiles", json={"service_name": ""})
        self.assertEqual(r.status_code, 422)
        r = self.client.put("/api/v1/settings/profiles/77", json={"models": "x"})
        self.assertEqual(r.status_code, 404)

    def test_selection_reconciles_with_store(self):
        a = self._create_profile("A", "m1,m2")
        b = self._create_profile("B", "x1,x2")

        r = self.client.get("/api/v1/settings/selection")
        self.assertEqual(r.json()["profile_id"], a["id"])
        self.assertEqual(r.json()["model"], "m1")
        self.assertFalse(r.json()["use_streaming"])

        r = self.client.put(
            "/api/v1/settings/selection",
            json={"profile_id": b["id"], "model": "x2", "use_streaming": True},
        )
        self.assertEqual(r.status_code, 200, r.text)
        self.assertEqual(
            (r.json()["profile_id"], r.json()["model"], r.json()["use_streaming"]),
            (b["id"], "x2", True),
        )

        self.client.put(f"/api/v1/settings/profiles/{b['id']}", json={"models": "x9"})
        r = self.client.get("/api/v1/settings/selection")
        self.assertEqual((r.json()["profile_id"], r.json()["model"]), (b["id"], "x9"))
        self.assertTrue(r.json()["use_streaming"])

        r = self.client.put("/api/v1/settings/selection", json={"profile_id": 999})
        self.assertEqual(r.status_code, 404)

    def test_selection_without_profiles(self):
        r = self.client.get("/api/v1/settings/selection")
        self.assertEqual(r.status_code, 400)
        self.assertEqual(r.json()["detail"], "No API profile configured")

    def test_send_while_reply_pending_is_conflict(self):
        self._create_profile()
        pending = self.session.start_reply("busy")
        self.assertIsNotNone(pending)

        for path in ("/api/v1/chat/messages", "/api/v1/chat/messages/stream"):
            r = self.client.post(path, json={"text": "hello"})
            self.assertEqual(r.status_code, 409, path)
            self.assertEqual(
                r.json(), {"ok": False, "detail": "A response is already in flight"}
            )
        self.assertEqual(len(self.session.state.messages), 2)

    def test_concurrent_stream_posts_are_single_flight(self):
        self._create_profile()
        self.client.put("/api/v1/settings/selection", json={"use_streaming": True})
        transport = GatedStreamTransport()
        self.session.transport = transport

        async def scenario():
            transport.gate = asyncio.Event()
            async with httpx.AsyncClient(
                transport=httpx.ASGITransport(app=self.app), base_url="http://test"
            ) as client:
                first = asyncio.create_task(
                    client.post("/api/v1/chat/messages/stream", json={"text": "first"})
                )
                for _ in range(1000):
                    if transport.calls:
                        break
                    await asyncio.sleep(0)
                second = await client.post(
                    "/api/v1/chat/messages/stream", json={"text": "second"}
                )
                transport.gate.set()
                return await first, second

        first, second = asyncio.run(scenario())

        self.assertEqual(transport.calls, ["first"])
        self.assertEqual(second.status_code, 409)
        self.assertEqual(second.json()["detail"], "A response is already in flight")

        self.assertEqual(first.status_code, 200)
        events = [
            line[len("data: ") :]
            for line in first.text.splitlines()
            if line.startswith("data: ")
        ]
        self.assertEqual(events[-1], "[DONE]")
        final = json.loads(events[-2])
        self.assertEqual(
            [(m["is_user"], m["content"]) for m in final["messages"]],
            [(True, "first"), (False, "hi there")],
        )
