"""
Event schemas for activity tracking.

Defines the event type enum, the immutable captured event, and the
wire-format record handed to the event store.
"""

from dataclasses import dataclass, field, asdict
from enum import Enum
from typing import Any, Dict, Optional, Set


class EventType(Enum):
    """Allowed event types for tracking."""

    PAGE_VIEW = "page_view"
    FEATURE_USE = "feature_use"
    CLICK = "click"
    FORM_SUBMIT = "form_submit"
    ERROR = "error"
    SEARCH = "search"

    @classmethod
    def is_valid(cls, event_type: str) -> bool:
        """Check if an event type string is valid."""
        try:
            cls(event_type)
            return True
        except ValueError:
            return False

    @classmethod
    def get_allowed_types(cls) -> Set[str]:
        """Get all allowed event type strings."""
        return {e.value for e in cls}


@dataclass(frozen=True)
class Event:
    """
    A single captured interaction signal awaiting delivery.

    page_path and page_title are left as None when the caller omits them;
    they are back-filled from the live page state at send time.
    """
    event_type: str
    event_category: str
    page_path: Optional[str] = None
    page_title: Optional[str] = None
    component: Optional[str] = None
    action: Optional[str] = None
    metadata: Dict[str, Any] = field(default_factory=dict)
    duration_ms: Optional[int] = None

    def __post_init__(self):
        if isinstance(self.event_type, EventType):
            object.__setattr__(self, "event_type", self.event_type.value)
        if not EventType.is_valid(self.event_type):
            raise ValueError(f"Unknown event type: {self.event_type!r}")
        if self.duration_ms is not None and self.duration_ms < 0:
            raise ValueError(f"duration_ms must be non-negative, got {self.duration_ms}")
        # Own copy so later caller mutations never reach a queued event
        object.__setattr__(self, "metadata", dict(self.metadata or {}))


@dataclass
class DeviceInfo:
    """Coarse device/browser fingerprint."""
    device_type: str = "desktop"  # "mobile", "tablet", "desktop"
    browser: str = "unknown"  # "chrome", "firefox", "safari", "edge", "unknown"
    screen_size: str = "0x0"

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return asdict(self)


@dataclass
class EventRecord:
    """Wire-format row accepted by the event store."""
    user_id: str
    session_id: str
    event_type: str
    event_category: str
    page_path: Optional[str]
    page_title: Optional[str]
    component: Optional[str]
    action: Optional[str]
    metadata: Dict[str, Any]
    device_type: str
    browser: str
    screen_size: str
    referrer: Optional[str]
    duration_ms: Optional[int]

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return asdict(self)
