"""
Public capture API.

Wires identity, session, delivery, collection and page-view tracking into
one ActivityTracker per page/process.

Usage:
    tracker = create_tracker(identity_provider=auth, page_state=page)
    await tracker.start()
    tracker.install_exit_hook()

    tracker.navigate("/dashboard", "Dashboard")
    tracker.track_click("BookingModal", "confirm")
    tracker.track_search("tajweed", results_count=3)
"""

import atexit
import sys
import time
from pathlib import Path
from typing import Any, Callable, Dict, MutableMapping, Optional

from .collector import EventCollector
from .config import TrackerConfig, config as default_config
from .context import PageState, SessionIdentity
from .delivery import DeliverySink
from .identity import IdentityProvider, IdentityResolver
from .page_views import PageViewTracker
from .schema import Event, EventType
from .store import (
    BeaconTransport,
    BestEffortTransport,
    EventStore,
    JSONLEventStore,
    RestEventStore,
    rest_endpoint,
)


class ActivityTracker:
    """Facade over the telemetry pipeline."""

    def __init__(
        self,
        resolver: IdentityResolver,
        collector: EventCollector,
        page_views: PageViewTracker,
        sink: DeliverySink
    ):
        self.resolver = resolver
        self.collector = collector
        self.page_views = page_views
        self.sink = sink
        self._exit_hook_installed = False

    @property
    def page_state(self) -> PageState:
        return self.page_views.page_state

    async def start(self):
        """Resolve the initial actor and subscribe to auth changes."""
        await self.resolver.start()

    def track_event(
        self,
        event_type: str,
        event_category: str,
        page_path: Optional[str] = None,
        page_title: Optional[str] = None,
        component: Optional[str] = None,
        action: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None,
        duration_ms: Optional[int] = None
    ):
        """
        Record an event.

        Never raises: invalid events are reported and dropped.
        """
        try:
            event = Event(
                event_type=event_type,
                event_category=event_category,
                page_path=page_path,
                page_title=page_title,
                component=component,
                action=action,
                metadata=metadata or {},
                duration_ms=duration_ms
            )
        except ValueError as e:
            print(f"Warning: Invalid activity event dropped: {e}", file=sys.stderr)
            return

        self.collector.record(event)

    def track_feature(self, component: str, action: str, metadata: Optional[Dict[str, Any]] = None):
        self.track_event(
            EventType.FEATURE_USE.value, "feature",
            component=component, action=action, metadata=metadata
        )

    def track_click(self, component: str, action: str, metadata: Optional[Dict[str, Any]] = None):
        self.track_event(
            EventType.CLICK.value, "interaction",
            component=component, action=action, metadata=metadata
        )

    def track_form_submit(self, form_name: str, success: bool, metadata: Optional[Dict[str, Any]] = None):
        self.track_event(
            EventType.FORM_SUBMIT.value, "form",
            component=form_name, action="success" if success else "failure", metadata=metadata
        )

    def track_search(self, query: str, results_count: int, metadata: Optional[Dict[str, Any]] = None):
        self.track_event(
            EventType.SEARCH.value, "search",
            action=query, metadata={**(metadata or {}), "results_count": results_count}
        )

    def navigate(self, path: str, title: Optional[str] = None):
        """Report a navigation change."""
        self.page_views.on_navigate(path, title)

    def teardown(self):
        """Page/process is going away: exit-safe flush of the queue."""
        self.page_views.on_teardown()

    def install_exit_hook(self):
        """Run teardown() at interpreter exit."""
        if not self._exit_hook_installed:
            atexit.register(self.teardown)
            self._exit_hook_installed = True

    def remove_exit_hook(self):
        if self._exit_hook_installed:
            atexit.unregister(self.teardown)
            self._exit_hook_installed = False

    async def close(self):
        """Flush the queue, wait for deliveries and release resources."""
        self.resolver.stop()
        self.remove_exit_hook()
        self.collector.flush()
        await self.collector.drain()

        aclose = getattr(self.sink.event_store, "aclose", None)
        if aclose is not None:
            await aclose()


def _default_store(config: TrackerConfig) -> EventStore:
    log_path = config.get('event_store.log_path')
    if log_path:
        return JSONLEventStore(Path(log_path))

    url = config.get('event_store.url')
    if not url:
        raise ValueError(
            "No event store configured: set event_store.url or event_store.log_path"
        )

    return RestEventStore(
        url,
        table=config.get('event_store.table', 'user_activity'),
        api_key=config.get('event_store.api_key'),
        timeout=config.get('event_store.timeout_sec', 10.0)
    )


def create_tracker(
    identity_provider: Optional[IdentityProvider] = None,
    event_store: Optional[EventStore] = None,
    exit_transport: Optional[BestEffortTransport] = None,
    page_state: Optional[PageState] = None,
    session_storage: Optional[MutableMapping[str, str]] = None,
    config: Optional[TrackerConfig] = None,
    clock: Callable[[], float] = time.monotonic
) -> ActivityTracker:
    """
    Build an ActivityTracker from configuration.

    Args:
        identity_provider: Authentication backend
        event_store: Normal-path store (built from config if omitted)
        exit_transport: Teardown transport (derived from the store if omitted)
        page_state: Live page state (new blank state if omitted)
        session_storage: Session-scoped storage for the session token
        config: Configuration source (shared config by default)
        clock: Monotonic clock for dwell time

    Returns:
        Wired ActivityTracker
    """
    config = config or default_config
    page_state = page_state or PageState()

    if event_store is None:
        event_store = _default_store(config)

    exit_url = ""
    if isinstance(event_store, RestEventStore):
        exit_url = event_store.endpoint
    elif config.get('event_store.url'):
        exit_url = rest_endpoint(config.get('event_store.url'), config.get('event_store.table', 'user_activity'))

    if exit_transport is None:
        if isinstance(event_store, JSONLEventStore):
            exit_transport = event_store
        elif exit_url:
            api_key = (
                event_store.api_key if isinstance(event_store, RestEventStore)
                else config.get('event_store.api_key')
            )
            exit_transport = BeaconTransport(
                api_key=api_key,
                timeout=config.get('event_store.beacon_timeout_sec', 2.0)
            )

    resolver = IdentityResolver(identity_provider)
    session = SessionIdentity(
        session_storage,
        key=config.get('tracking.session_storage_key', 'activity_session_id')
    )
    sink = DeliverySink(
        resolver,
        event_store,
        session=session,
        page_state=page_state,
        exit_transport=exit_transport,
        exit_url=exit_url
    )
    collector = EventCollector(resolver, sink, config=config)
    page_views = PageViewTracker(
        collector,
        resolver,
        page_state,
        min_duration_ms=config.get('tracking.min_page_duration_ms', 1000),
        clock=clock
    )

    return ActivityTracker(resolver, collector, page_views, sink)
