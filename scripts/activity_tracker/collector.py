"""
Event collector for user activity.

Holds the pending queue and decides when to flush it:
- Immediately once the queue reaches batch_size
- Otherwise within flush_interval of the first event after an idle queue

The timer is armed once per idle -> active transition and is never pushed
out by later events (bounded latency, not a sliding debounce).
"""

import asyncio
import sys
from typing import List, Optional, Set

from .config import TrackerConfig, config as default_config
from .delivery import DeliverySink
from .identity import IdentityResolver
from .schema import Event


class EventCollector:
    """
    Pending-event queue plus admission and flush policy.

    One instance per page/process. Mutations are safe without locks only
    because every call runs on the single event-loop thread; a threaded
    host must guard append + threshold check + swap with a lock.
    """

    def __init__(
        self,
        resolver: IdentityResolver,
        sink: DeliverySink,
        batch_size: Optional[int] = None,
        flush_interval: Optional[float] = None,
        enabled: Optional[bool] = None,
        config: Optional[TrackerConfig] = None,
        loop: Optional[asyncio.AbstractEventLoop] = None
    ):
        """
        Initialize collector.

        Args:
            resolver: Actor identity gating admission
            sink: Batch delivery
            batch_size: Flush when queue reaches this size
            flush_interval: Max seconds between first queued event and flush
            enabled: Override tracking.enabled
            config: Configuration source (shared config by default)
            loop: Event loop for timers and send tasks (running loop by default)
        """
        config = config or default_config
        self.resolver = resolver
        self.sink = sink
        self.batch_size = batch_size if batch_size is not None else config.get('tracking.batch_size', 10)
        self.flush_interval = (
            flush_interval if flush_interval is not None
            else config.get('tracking.flush_interval_sec', 5.0)
        )
        self.enabled = enabled if enabled is not None else config.is_enabled('tracking')
        self._loop = loop

        self.queue: List[Event] = []
        self._flush_timer: Optional[asyncio.TimerHandle] = None
        self._send_tasks: Set[asyncio.Task] = set()
        self._warned_no_loop = False

    @property
    def timer_pending(self) -> bool:
        return self._flush_timer is not None

    def _get_loop(self) -> Optional[asyncio.AbstractEventLoop]:
        """Event loop for timers and sends, or None outside a running loop."""
        if self._loop is None or self._loop.is_closed():
            try:
                self._loop = asyncio.get_running_loop()
            except RuntimeError:
                if not self._warned_no_loop:
                    print("Warning: No running event loop; activity events stay queued "
                          "until a flush or teardown", file=sys.stderr)
                    self._warned_no_loop = True
                return None
        return self._loop

    def record(self, event: Event):
        """
        Queue an event, possibly triggering a flush.

        Dropped silently when no actor is signed in; there is no buffering
        until login.

        Args:
            event: Event to queue
        """
        if not self.enabled or not self.resolver.current_user_id():
            return

        self.queue.append(event)

        if len(self.queue) >= self.batch_size:
            self.flush()
        elif self._flush_timer is None:
            loop = self._get_loop()
            if loop is not None:
                self._flush_timer = loop.call_later(self.flush_interval, self.flush)

    def _take_batch(self) -> List[Event]:
        """Swap the queue for an empty one and disarm the timer."""
        if self._flush_timer is not None:
            self._flush_timer.cancel()
            self._flush_timer = None

        batch, self.queue = self.queue, []
        return batch

    def flush(self):
        """
        Start delivery of the current queue without waiting for it.

        Outside a running loop the queue is left intact for the exit path.
        """
        if not self.queue:
            return

        loop = self._get_loop()
        if loop is None:
            return

        batch = self._take_batch()
        task = loop.create_task(self.sink.send_batch(batch))
        self._send_tasks.add(task)
        task.add_done_callback(self._send_tasks.discard)

    def flush_on_exit(self):
        """Hand the queue to the exit-safe path; clears it synchronously."""
        batch = self._take_batch()
        if batch:
            self.sink.send_on_exit(batch)

    async def drain(self):
        """Wait for in-flight batch deliveries to finish."""
        while self._send_tasks:
            await asyncio.gather(*list(self._send_tasks), return_exceptions=True)
