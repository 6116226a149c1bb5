"""
Context utilities for activity tracking.

Provides the live page state, the device/browser classifier and the
per-session identity token. All of these are consulted at send time,
never at capture time.
"""

import re
import secrets
import string
import time
from typing import MutableMapping, Optional

from .schema import DeviceInfo

_BASE36 = string.digits + string.ascii_lowercase


class PageState:
    """
    Live navigation and environment state for the current page.

    The host application updates this as the user navigates or resizes;
    readers always see the latest values.
    """

    def __init__(
        self,
        path: str = "/",
        title: str = "",
        referrer: Optional[str] = None,
        user_agent: str = "",
        width: int = 0,
        height: int = 0
    ):
        self.path = path
        self.title = title
        self.referrer = referrer
        self.user_agent = user_agent
        self.width = width
        self.height = height

    def update(self, path: Optional[str] = None, title: Optional[str] = None):
        """Apply a navigation change."""
        if path is not None:
            self.path = path
        if title is not None:
            self.title = title

    def resize(self, width: int, height: int):
        """Apply a viewport change."""
        self.width = width
        self.height = height

    def screen_size(self) -> str:
        """Current viewport as a width x height string."""
        return f"{self.width}x{self.height}"


class DeviceClassifier:
    """Derive a coarse device/browser fingerprint from the user agent."""

    MOBILE = re.compile(r"mobile", re.IGNORECASE)
    TABLET = re.compile(r"tablet|ipad", re.IGNORECASE)

    # Order matters: Edge and Chrome user agents also mention Safari,
    # and Edge user agents also mention Chrome.
    BROWSERS = (
        ("edge", re.compile(r"edg(e|a|ios)?/", re.IGNORECASE)),
        ("firefox", re.compile(r"firefox|fxios", re.IGNORECASE)),
        ("chrome", re.compile(r"chrome|crios", re.IGNORECASE)),
        ("safari", re.compile(r"safari", re.IGNORECASE)),
    )

    @classmethod
    def device_type(cls, user_agent: str) -> str:
        if cls.MOBILE.search(user_agent):
            return "mobile"
        if cls.TABLET.search(user_agent):
            return "tablet"
        return "desktop"

    @classmethod
    def browser(cls, user_agent: str) -> str:
        for name, pattern in cls.BROWSERS:
            if pattern.search(user_agent):
                return name
        return "unknown"

    @classmethod
    def classify(cls, page_state: PageState) -> DeviceInfo:
        """
        Classify the current environment.

        Recomputed on every call since the viewport can change between
        flushes.

        Args:
            page_state: Live page state

        Returns:
            DeviceInfo for the current environment
        """
        ua = page_state.user_agent or ""
        return DeviceInfo(
            device_type=cls.device_type(ua),
            browser=cls.browser(ua),
            screen_size=page_state.screen_size()
        )


class SessionIdentity:
    """Random session token persisted in session-scoped storage."""

    def __init__(
        self,
        storage: Optional[MutableMapping[str, str]] = None,
        key: str = "activity_session_id"
    ):
        """
        Initialize session identity.

        Args:
            storage: Session-scoped key-value storage (in-memory dict by default)
            key: Storage key for the token
        """
        self.storage = storage if storage is not None else {}
        self.key = key

    @staticmethod
    def generate() -> str:
        """Generate a new token: epoch millis plus 9 random base36 chars."""
        suffix = "".join(secrets.choice(_BASE36) for _ in range(9))
        return f"{int(time.time() * 1000)}-{suffix}"

    def get_session_id(self) -> str:
        """
        Get the session token, creating and storing one if absent.

        Returns:
            Session ID string
        """
        session_id = self.storage.get(self.key)
        if not session_id:
            session_id = self.generate()
            self.storage[self.key] = session_id
        return session_id
