#!/usr/bin/env python3
"""
Tests for schemas, device classification and session identity.

Run with: python3 -m pytest scripts/activity_tracker/test_context.py -v
"""

import re
import unittest

from activity_tracker.context import DeviceClassifier, PageState, SessionIdentity
from activity_tracker.schema import Event, EventType

USER_AGENTS = {
    "chrome_desktop": (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/126.0.0.0 Safari/537.36"
    ),
    "edge_desktop": (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/126.0.0.0 Safari/537.36 Edg/126.0.2592.68"
    ),
    "firefox_desktop": "Mozilla/5.0 (X11; Linux x86_64; rv:127.0) Gecko/20100101 Firefox/127.0",
    "safari_iphone": (
        "Mozilla/5.0 (iPhone; CPU iPhone OS 17_5 like Mac OS X) AppleWebKit/605.1.15 "
        "(KHTML, like Gecko) Version/17.5 Mobile/15E148 Safari/604.1"
    ),
    "safari_ipad": (
        "Mozilla/5.0 (iPad; CPU OS 17_5 like Mac OS X) AppleWebKit/605.1.15 "
        "(KHTML, like Gecko) Version/17.5 Safari/604.1"
    ),
}


class TestEventSchema(unittest.TestCase):
    """Test event type validation and immutability."""

    def test_allowed_types(self):
        self.assertEqual(
            EventType.get_allowed_types(),
            {"page_view", "feature_use", "click", "form_submit", "error", "search"}
        )
        self.assertFalse(EventType.is_valid("purchase"))

    def test_unknown_type_rejected(self):
        with self.assertRaises(ValueError):
            Event(event_type="purchase", event_category="x")

    def test_negative_duration_rejected(self):
        with self.assertRaises(ValueError):
            Event(event_type="page_view", event_category="navigation", duration_ms=-1)

    def test_enum_member_accepted(self):
        event = Event(event_type=EventType.CLICK, event_category="interaction")
        self.assertEqual(event.event_type, "click")

    def test_event_is_frozen(self):
        event = Event(event_type="click", event_category="interaction")
        with self.assertRaises(AttributeError):
            event.action = "changed"

    def test_metadata_copied_on_creation(self):
        metadata = {"a": 1}
        event = Event(event_type="click", event_category="interaction", metadata=metadata)
        metadata["a"] = 2

        self.assertEqual(event.metadata, {"a": 1})


class TestDeviceClassifier(unittest.TestCase):
    """Test user-agent classification."""

    def classify(self, name, width=0, height=0):
        return DeviceClassifier.classify(PageState(user_agent=USER_AGENTS[name], width=width, height=height))

    def test_browsers(self):
        self.assertEqual(self.classify("chrome_desktop").browser, "chrome")
        self.assertEqual(self.classify("edge_desktop").browser, "edge")
        self.assertEqual(self.classify("firefox_desktop").browser, "firefox")
        self.assertEqual(self.classify("safari_iphone").browser, "safari")

    def test_device_types(self):
        self.assertEqual(self.classify("chrome_desktop").device_type, "desktop")
        self.assertEqual(self.classify("safari_iphone").device_type, "mobile")
        self.assertEqual(self.classify("safari_ipad").device_type, "tablet")

    def test_unknown_user_agent(self):
        info = DeviceClassifier.classify(PageState(user_agent="curl/8.5.0"))
        self.assertEqual(info.browser, "unknown")
        self.assertEqual(info.device_type, "desktop")

    def test_screen_size_is_live(self):
        page = PageState(user_agent=USER_AGENTS["chrome_desktop"], width=1280, height=720)
        self.assertEqual(DeviceClassifier.classify(page).screen_size, "1280x720")

        page.resize(800, 600)
        self.assertEqual(DeviceClassifier.classify(page).screen_size, "800x600")


class TestSessionIdentity(unittest.TestCase):
    """Test session token lifecycle."""

    def test_generated_once_and_stored(self):
        storage = {}
        session = SessionIdentity(storage)

        first = session.get_session_id()
        second = session.get_session_id()

        self.assertEqual(first, second)
        self.assertEqual(storage["activity_session_id"], first)
        self.assertRegex(first, re.compile(r"^\d{13}-[0-9a-z]{9}$"))

    def test_existing_token_reused(self):
        session = SessionIdentity({"activity_session_id": "existing"})
        self.assertEqual(session.get_session_id(), "existing")

    def test_separate_storages_get_separate_tokens(self):
        self.assertNotEqual(
            SessionIdentity({}).get_session_id(),
            SessionIdentity({}).get_session_id()
        )


if __name__ == "__main__":
    unittest.main()
