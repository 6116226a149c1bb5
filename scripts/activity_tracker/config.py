"""
Configuration management for the activity tracker.

Provides configuration with:
- JSON file loading with defaults
- Environment variable overrides
- Dot-notation access
- Feature enable/disable flags
"""

import copy
import json
import os
import sys
from pathlib import Path
from typing import Any, Optional


class TrackerConfig:
    """
    Configuration manager for the activity tracker.

    Usage:
        from activity_tracker.config import config

        if config.is_enabled('tracking'):
            # ... tracking code

        batch_size = config.get('tracking.batch_size')
    """

    def __init__(self, config_path: Optional[Path] = None):
        """
        Initialize config (loaded lazily on first access).

        Args:
            config_path: Path to activity_tracker.json (optional)
        """
        self.config_path = Path(config_path) if config_path else None
        self._config = None
        self._config_loaded = False

    def load(self, config_path: Optional[Path] = None):
        """
        Load configuration from file.

        Args:
            config_path: Path to activity_tracker.json (optional)
        """
        if config_path is not None:
            self.config_path = Path(config_path)
            self._config_loaded = False

        if self._config_loaded:
            return  # Already loaded

        path = self.config_path
        if path is None:
            env_path = os.environ.get("ACTIVITY_TRACKER_CONFIG")
            path = Path(env_path) if env_path else Path.cwd() / "activity_tracker.json"

        self._config = self._get_defaults()

        if path.exists():
            try:
                with open(path) as f:
                    self._merge(self._config, json.load(f))
            except Exception as e:
                print(f"Warning: Failed to load config from {path}: {e}", file=sys.stderr)

        # Apply environment variable overrides
        self._apply_env_overrides()

        self._config_loaded = True

    def _get_defaults(self) -> dict:
        """
        Get default configuration.

        Returns:
            Dictionary with default settings
        """
        return {
            "version": "1.0.0",
            "tracking": {
                "enabled": True,
                "batch_size": 10,
                "flush_interval_sec": 5.0,
                "min_page_duration_ms": 1000,
                "session_storage_key": "activity_session_id"
            },
            "event_store": {
                "url": "",
                "table": "user_activity",
                "api_key_env": "SUPABASE_ANON_KEY",
                "timeout_sec": 10.0,
                "beacon_timeout_sec": 2.0,
                "log_path": ""
            }
        }

    def _merge(self, target: dict, source: dict):
        """Recursively merge file settings over defaults."""
        for key, value in source.items():
            if key in target and isinstance(target[key], dict) and isinstance(value, dict):
                self._merge(target[key], value)
            else:
                target[key] = value

    def _apply_env_overrides(self):
        """Apply environment variable overrides to configuration."""
        store = self._config.setdefault("event_store", {})

        # Check for API key
        api_key_env = store.get("api_key_env", "SUPABASE_ANON_KEY")
        if api_key_env in os.environ:
            store["api_key"] = os.environ[api_key_env]

        # ACTIVITY_TRACKER_ENABLED=false
        if "ACTIVITY_TRACKER_ENABLED" in os.environ:
            value = os.environ["ACTIVITY_TRACKER_ENABLED"].lower()
            self._config.setdefault("tracking", {})["enabled"] = value in ("true", "1", "yes")

        if "ACTIVITY_TRACKER_STORE_URL" in os.environ:
            store["url"] = os.environ["ACTIVITY_TRACKER_STORE_URL"]

        if "ACTIVITY_TRACKER_LOG_PATH" in os.environ:
            store["log_path"] = os.environ["ACTIVITY_TRACKER_LOG_PATH"]

    def get(self, key: str, default: Any = None) -> Any:
        """
        Get configuration value with dot notation.

        Args:
            key: Configuration key (e.g., "tracking.batch_size")
            default: Default value if key not found

        Returns:
            Configuration value or default
        """
        if not self._config_loaded:
            self.load()

        keys = key.split('.')
        value = self._config

        for k in keys:
            if isinstance(value, dict):
                value = value.get(k)
            else:
                return default

        return value if value is not None else default

    def set(self, key: str, value: Any):
        """
        Set configuration value (runtime only, not persisted).

        Args:
            key: Configuration key (dot notation)
            value: Value to set
        """
        if not self._config_loaded:
            self.load()

        keys = key.split('.')
        config = self._config

        # Navigate to parent
        for k in keys[:-1]:
            if k not in config:
                config[k] = {}
            config = config[k]

        config[keys[-1]] = value

    def is_enabled(self, feature: str) -> bool:
        """
        Check if a feature is enabled.

        Args:
            feature: Feature name (e.g., "tracking")

        Returns:
            True if enabled, False otherwise
        """
        return bool(self.get(f"{feature}.enabled", False))

    def reload(self):
        """Force reload configuration from file."""
        self._config_loaded = False
        self.load()

    def get_all(self) -> dict:
        """
        Get entire configuration dictionary.

        Returns:
            Deep copy of the full configuration
        """
        if not self._config_loaded:
            self.load()
        return copy.deepcopy(self._config)


# Shared instance for import
config = TrackerConfig()
