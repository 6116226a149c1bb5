#!/usr/bin/env python3
"""
Tests for event store backends and exit transports.

Run with: python3 -m pytest scripts/activity_tracker/test_store.py -v
"""

import json
import tempfile
import unittest
from pathlib import Path

import httpx

from activity_tracker.schema import EventRecord
from activity_tracker.store import (
    BeaconTransport,
    EventStoreError,
    JSONLEventStore,
    JSONLReader,
    RestEventStore,
)


def make_record(user_id="user-1", action="open"):
    return EventRecord(
        user_id=user_id,
        session_id="sess-1",
        event_type="click",
        event_category="interaction",
        page_path="/home",
        page_title="Home",
        component="Nav",
        action=action,
        metadata={"k": "v"},
        device_type="desktop",
        browser="firefox",
        screen_size="1280x720",
        referrer=None,
        duration_ms=None
    )


class TestRestEventStore(unittest.IsolatedAsyncioTestCase):
    """Test HTTP batch insert."""

    async def test_posts_records_to_table_endpoint(self):
        requests = []

        def handler(request):
            requests.append(request)
            return httpx.Response(201)

        store = RestEventStore(
            "https://db.example/", api_key="anon-key", transport=httpx.MockTransport(handler)
        )
        await store.insert_batch([make_record(action="a"), make_record(action="b")])
        await store.aclose()

        self.assertEqual(len(requests), 1)
        request = requests[0]
        self.assertEqual(str(request.url), "https://db.example/rest/v1/user_activity")
        self.assertEqual(request.headers["apikey"], "anon-key")
        self.assertEqual(request.headers["Authorization"], "Bearer anon-key")
        body = json.loads(request.content)
        self.assertEqual([r["action"] for r in body], ["a", "b"])
        self.assertEqual(body[0]["metadata"], {"k": "v"})

    async def test_error_status_raises(self):
        store = RestEventStore(
            "https://db.example",
            transport=httpx.MockTransport(lambda request: httpx.Response(401, text="bad key"))
        )
        with self.assertRaises(EventStoreError) as ctx:
            await store.insert_batch([make_record()])
        await store.aclose()

        self.assertIn("401", str(ctx.exception))

    async def test_connection_error_raises(self):
        def handler(request):
            raise httpx.ConnectError("refused", request=request)

        store = RestEventStore("https://db.example", transport=httpx.MockTransport(handler))
        with self.assertRaises(EventStoreError):
            await store.insert_batch([make_record()])
        await store.aclose()

    async def test_empty_batch_skips_request(self):
        calls = []
        store = RestEventStore(
            "https://db.example",
            transport=httpx.MockTransport(lambda request: calls.append(request) or httpx.Response(201))
        )
        await store.insert_batch([])
        await store.aclose()

        self.assertEqual(calls, [])


class TestBeaconTransport(unittest.TestCase):
    """Test fire-and-forget sends."""

    def test_sends_body(self):
        requests = []

        def handler(request):
            requests.append(request)
            return httpx.Response(201)

        BeaconTransport(api_key="k", transport=httpx.MockTransport(handler)).send(
            "https://db.example/rest/v1/user_activity", '[{"a": 1}]'
        )

        self.assertEqual(requests[0].content, b'[{"a": 1}]')
        self.assertEqual(requests[0].headers["apikey"], "k")

    def test_transport_errors_suppressed(self):
        def handler(request):
            raise httpx.ConnectError("gone", request=request)

        BeaconTransport(transport=httpx.MockTransport(handler)).send("https://db.example/x", "[]")


class TestJSONLEventStore(unittest.IsolatedAsyncioTestCase):
    """Test offline JSONL store."""

    def setUp(self):
        self.tmpdir = tempfile.TemporaryDirectory()
        self.path = Path(self.tmpdir.name) / "nested" / "activity.jsonl"

    def tearDown(self):
        self.tmpdir.cleanup()

    async def test_insert_and_read_back(self):
        store = JSONLEventStore(self.path)
        await store.insert_batch([make_record(action="a")])
        await store.insert_batch([make_record(user_id="user-2", action="b")])

        entries = JSONLReader.read_log(self.path)
        self.assertEqual([e["action"] for e in entries], ["a", "b"])

        only_user_2 = JSONLReader.read_log(self.path, filter_fn=lambda e: e["user_id"] == "user-2")
        self.assertEqual(len(only_user_2), 1)

    def test_exit_send_appends(self):
        store = JSONLEventStore(self.path)
        store.send("", json.dumps([make_record().to_dict()]))

        self.assertEqual(len(JSONLReader.read_log(self.path)), 1)

    def test_exit_send_ignores_garbage(self):
        JSONLEventStore(self.path).send("", "not json")

        self.assertEqual(JSONLReader.read_log(self.path), [])

    def test_read_missing_file(self):
        self.assertEqual(JSONLReader.read_log(Path(self.tmpdir.name) / "missing.jsonl"), [])


if __name__ == "__main__":
    unittest.main()
