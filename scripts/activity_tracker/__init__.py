"""
User activity telemetry.

Captures page views, clicks, feature usage, form submissions and searches
for signed-in users, batches them, and delivers them to an event store
without blocking the caller. A final exit-safe flush covers page teardown.
"""

from .schema import EventType, Event, DeviceInfo, EventRecord
from .config import TrackerConfig, config
from .context import PageState, DeviceClassifier, SessionIdentity
from .identity import IdentityProvider, IdentityResolver
from .store import (
    EventStore,
    EventStoreError,
    BestEffortTransport,
    RestEventStore,
    BeaconTransport,
    JSONLEventStore,
    JSONLReader,
)
from .delivery import DeliverySink
from .collector import EventCollector
from .page_views import PageViewTracker
from .tracker import ActivityTracker, create_tracker

__all__ = [
    # Schemas
    'EventType',
    'Event',
    'DeviceInfo',
    'EventRecord',
    # Config
    'TrackerConfig',
    'config',
    # Context
    'PageState',
    'DeviceClassifier',
    'SessionIdentity',
    'IdentityProvider',
    'IdentityResolver',
    # Delivery
    'EventStore',
    'EventStoreError',
    'BestEffortTransport',
    'RestEventStore',
    'BeaconTransport',
    'JSONLEventStore',
    'JSONLReader',
    'DeliverySink',
    # Pipeline
    'EventCollector',
    'PageViewTracker',
    'ActivityTracker',
    'create_tracker',
]

__version__ = '1.0.0'
