"""
Sync engine events - the diagnostic channel

Published on the EventBus by the scheduler, aggregator and coordinator.
"""

from dataclasses import dataclass
from typing import Optional

from zoom_sync.models.enums import DisplayMode, FieldID, PayloadKind, SyncState
from zoom_sync.models.events.base import Event
from zoom_sync.models.events.types import EventType
from zoom_sync.models.events.sources import EventSource


@dataclass(init=False)
class SyncStateChangedEvent(Event):
    """Coordinator moved between states"""
    old_state: SyncState
    new_state: SyncState
    reason: str

    def __init__(self, old_state: SyncState, new_state: SyncState, reason: str = ""):
        super().__init__(type=EventType.SYNC_STATE_CHANGED, source=EventSource.SYNC_COORDINATOR)
        self.old_state = old_state
        self.new_state = new_state
        self.reason = reason


@dataclass(init=False)
class SnapshotUpdatedEvent(Event):
    """Aggregator accepted a reading"""
    field: FieldID
    version: int
    ok: bool

    def __init__(self, field: FieldID, version: int, ok: bool):
        super().__init__(type=EventType.SNAPSHOT_UPDATED, source=EventSource.STATE_AGGREGATOR)
        self.field = field
        self.version = version
        self.ok = ok


@dataclass(init=False)
class ProviderFailedEvent(Event):
    """Provider failed permanently and was stopped (published once)"""
    provider: str
    field: FieldID
    code: str
    message: str

    def __init__(self, provider: str, field: FieldID, code: str, message: str):
        super().__init__(type=EventType.PROVIDER_FAILED, source=EventSource.PROVIDER_SCHEDULER)
        self.provider = provider
        self.field = field
        self.code = code
        self.message = message


@dataclass(init=False)
class PersistentFailureEvent(Event):
    """Reconnect attempts exhausted; coordinator continues at the slow cadence"""
    attempts: int
    last_error: Optional[str]
    retry_interval: float

    def __init__(self, attempts: int, last_error: Optional[str], retry_interval: float):
        super().__init__(type=EventType.PERSISTENT_FAILURE, source=EventSource.SYNC_COORDINATOR)
        self.attempts = attempts
        self.last_error = last_error
        self.retry_interval = retry_interval


@dataclass(init=False)
class FrameTransmittedEvent(Event):
    """A payload was acknowledged by the device"""
    kind: PayloadKind
    size: int
    digest: str
    mode: DisplayMode
    duration: float

    def __init__(self, kind: PayloadKind, size: int, digest: str, mode: DisplayMode, duration: float):
        super().__init__(type=EventType.FRAME_TRANSMITTED, source=EventSource.SYNC_COORDINATOR)
        self.kind = kind
        self.size = size
        self.digest = digest
        self.mode = mode
        self.duration = duration
