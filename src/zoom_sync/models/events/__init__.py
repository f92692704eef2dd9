"""
Event system for the display sync engine

Typed events published on the EventBus; the bus doubles as the
diagnostic channel for provider and device failures.
"""

# Event type, base class, and sources
from zoom_sync.models.events.types import EventType
from zoom_sync.models.events.base import Event
from zoom_sync.models.events.sources import EventSource

# Hardware events
from zoom_sync.models.events.hardware import KeyboardKeyPressEvent

# Sync engine events
from zoom_sync.models.events.sync_events import (
    SyncStateChangedEvent,
    SnapshotUpdatedEvent,
    ProviderFailedEvent,
    PersistentFailureEvent,
    FrameTransmittedEvent,
)

__all__ = [
    # Type, base, and sources
    "EventType",
    "Event",
    "EventSource",

    # Hardware
    "KeyboardKeyPressEvent",

    # Sync engine
    "SyncStateChangedEvent",
    "SnapshotUpdatedEvent",
    "ProviderFailedEvent",
    "PersistentFailureEvent",
    "FrameTransmittedEvent",
]
