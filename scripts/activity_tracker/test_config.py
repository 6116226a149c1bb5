#!/usr/bin/env python3
"""
Tests for tracker configuration.

Run with: python3 -m pytest scripts/activity_tracker/test_config.py -v
"""

import json
import os
import tempfile
import unittest
from pathlib import Path
from unittest.mock import patch

from activity_tracker.config import TrackerConfig


class TestTrackerConfig(unittest.TestCase):
    """Test defaults, file merge and env overrides."""

    def setUp(self):
        self.tmpdir = tempfile.TemporaryDirectory()
        self.config_path = Path(self.tmpdir.name) / "activity_tracker.json"

    def tearDown(self):
        self.tmpdir.cleanup()

    @patch.dict(os.environ, {}, clear=True)
    def test_defaults(self):
        config = TrackerConfig(self.config_path)

        self.assertTrue(config.is_enabled("tracking"))
        self.assertEqual(config.get("tracking.batch_size"), 10)
        self.assertEqual(config.get("tracking.flush_interval_sec"), 5.0)
        self.assertEqual(config.get("tracking.min_page_duration_ms"), 1000)
        self.assertEqual(config.get("event_store.table"), "user_activity")
        self.assertEqual(config.get("missing.key", "fallback"), "fallback")

    @patch.dict(os.environ, {}, clear=True)
    def test_file_merged_over_defaults(self):
        self.config_path.write_text(json.dumps({
            "tracking": {"batch_size": 25},
            "event_store": {"url": "https://db.example"}
        }))
        config = TrackerConfig(self.config_path)

        self.assertEqual(config.get("tracking.batch_size"), 25)
        self.assertEqual(config.get("tracking.flush_interval_sec"), 5.0)
        self.assertEqual(config.get("event_store.url"), "https://db.example")

    @patch.dict(os.environ, {}, clear=True)
    def test_invalid_file_falls_back_to_defaults(self):
        self.config_path.write_text("{not json")
        config = TrackerConfig(self.config_path)

        with patch("sys.stderr"):
            self.assertEqual(config.get("tracking.batch_size"), 10)

    @patch.dict(os.environ, {
        "ACTIVITY_TRACKER_ENABLED": "false",
        "ACTIVITY_TRACKER_STORE_URL": "https://env.example",
        "SUPABASE_ANON_KEY": "secret",
    }, clear=True)
    def test_env_overrides(self):
        config = TrackerConfig(self.config_path)

        self.assertFalse(config.is_enabled("tracking"))
        self.assertEqual(config.get("event_store.url"), "https://env.example")
        self.assertEqual(config.get("event_store.api_key"), "secret")

    @patch.dict(os.environ, {}, clear=True)
    def test_set_and_reload(self):
        config = TrackerConfig(self.config_path)
        config.set("tracking.batch_size", 3)
        self.assertEqual(config.get("tracking.batch_size"), 3)

        config.reload()
        self.assertEqual(config.get("tracking.batch_size"), 10)

    @patch.dict(os.environ, {}, clear=True)
    def test_get_all_is_a_copy(self):
        config = TrackerConfig(self.config_path)
        settings = config.get_all()
        settings["tracking"]["batch_size"] = 99

        self.assertEqual(config.get("tracking.batch_size"), 10)


if __name__ == "__main__":
    unittest.main()
