"""
Batch delivery to the event store.

Turns a queue snapshot into wire records and hands it to either the
normal asynchronous store or the exit-safe transport. Delivery is
at-most-once: failed batches are reported and dropped, never re-queued.
"""

import json
import sys
from typing import List, Optional, Sequence

from .context import DeviceClassifier, PageState, SessionIdentity
from .identity import IdentityResolver
from .schema import Event, EventRecord
from .store import BestEffortTransport, EventStore


class DeliverySink:
    """Stateless transformation of batches into event-store records."""

    def __init__(
        self,
        resolver: IdentityResolver,
        event_store: EventStore,
        session: Optional[SessionIdentity] = None,
        page_state: Optional[PageState] = None,
        exit_transport: Optional[BestEffortTransport] = None,
        exit_url: str = ""
    ):
        """
        Initialize sink.

        Args:
            resolver: Actor identity, read at send time
            event_store: Normal-path batch store
            session: Session token source
            page_state: Live page state for back-fill and device info
            exit_transport: Fire-and-forget transport for teardown
            exit_url: Endpoint the exit transport posts to
        """
        self.resolver = resolver
        self.event_store = event_store
        self.session = session or SessionIdentity()
        self.page_state = page_state or PageState()
        self.exit_transport = exit_transport
        self.exit_url = exit_url

    def _record(self, user_id: str, event: Event) -> EventRecord:
        device = DeviceClassifier.classify(self.page_state)
        return EventRecord(
            user_id=user_id,
            session_id=self.session.get_session_id(),
            event_type=event.event_type,
            event_category=event.event_category,
            page_path=event.page_path or self.page_state.path,
            page_title=event.page_title or self.page_state.title,
            component=event.component,
            action=event.action,
            metadata=event.metadata or {},
            device_type=device.device_type,
            browser=device.browser,
            screen_size=device.screen_size,
            referrer=self.page_state.referrer or None,
            duration_ms=event.duration_ms
        )

    def build_records(self, batch: Sequence[Event]) -> List[EventRecord]:
        """
        Build wire records for a batch.

        Actor, session and device are read fresh here, not at record time.

        Returns:
            Records in batch order, or [] if no actor is known
        """
        user_id = self.resolver.current_user_id()
        if not user_id:
            if batch:
                print(f"Warning: No signed-in user at send time, dropping {len(batch)} events",
                      file=sys.stderr)
            return []
        return [self._record(user_id, event) for event in batch]

    async def send_batch(self, batch: Sequence[Event]):
        """Normal path: insert the batch, reporting and dropping on failure."""
        records = self.build_records(batch)
        if not records:
            return

        try:
            await self.event_store.insert_batch(records)
        except Exception as e:
            print(f"Warning: Failed to deliver {len(records)} activity events: {e}",
                  file=sys.stderr)

    def send_on_exit(self, batch: Sequence[Event]):
        """Exit-safe path: one-way send, no response, never raises."""
        if self.exit_transport is None:
            if batch:
                print(f"Warning: No exit transport configured, dropping {len(batch)} events",
                      file=sys.stderr)
            return

        records = self.build_records(batch)
        if not records:
            return

        body = json.dumps([r.to_dict() for r in records], ensure_ascii=False, default=str)
        try:
            self.exit_transport.send(self.exit_url, body)
        except Exception:
            # Teardown: nothing can observe the failure
            pass

    async def track_activity(self, user_id: str, event: Event) -> bool:
        """
        Insert a single event immediately, bypassing the queue.

        Args:
            user_id: Actor to attribute the event to
            event: Event to deliver

        Returns:
            True if the store accepted the record, False otherwise
        """
        try:
            await self.event_store.insert_batch([self._record(user_id, event)])
            return True
        except Exception as e:
            print(f"Warning: Error tracking activity: {e}", file=sys.stderr)
            return False
