"""
Page view tracking with dwell time.

Translates navigation changes into page_view events: one for the page
being left (with how long it was visible) and one for the page entered.
"""

import time
from typing import Callable, Optional

from .collector import EventCollector
from .context import PageState
from .identity import IdentityResolver
from .schema import Event, EventType


class PageViewTracker:
    """Observe navigation and emit page_view events."""

    def __init__(
        self,
        collector: EventCollector,
        resolver: IdentityResolver,
        page_state: PageState,
        min_duration_ms: int = 1000,
        clock: Callable[[], float] = time.monotonic
    ):
        """
        Initialize tracker.

        Args:
            collector: Where page_view events are recorded
            resolver: Actor identity
            page_state: Live page state, updated on navigation
            min_duration_ms: Visits at or below this are not reported
            clock: Monotonic clock in seconds
        """
        self.collector = collector
        self.resolver = resolver
        self.page_state = page_state
        self.min_duration_ms = min_duration_ms
        self.clock = clock

        self.last_path = ""
        self.entered_at = clock()

    def on_navigate(self, path: str, title: Optional[str] = None):
        """
        Handle a navigation change.

        Args:
            path: New page path
            title: New page title (keeps the current title if omitted)
        """
        if path == self.last_path:
            return

        self.page_state.update(path, title)

        now = self.clock()
        elapsed_ms = (now - self.entered_at) * 1000

        # Redirect chains produce sub-second visits; skip them
        if self.last_path and self.resolver.current_user_id() and elapsed_ms > self.min_duration_ms:
            self.collector.record(Event(
                event_type=EventType.PAGE_VIEW.value,
                event_category="navigation",
                page_path=self.last_path,
                duration_ms=round(elapsed_ms)
            ))

        self.entered_at = now
        self.last_path = path

        if self.resolver.current_user_id():
            self.collector.record(Event(
                event_type=EventType.PAGE_VIEW.value,
                event_category="navigation",
                page_path=path,
                page_title=title
            ))

    def on_teardown(self):
        """Final best-effort flush when the page/process goes away."""
        self.collector.flush_on_exit()
