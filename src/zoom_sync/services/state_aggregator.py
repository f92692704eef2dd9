"""State aggregator - single writer of telemetry state"""

import time
from typing import Dict, Mapping, Optional

from zoom_sync.models.enums import FieldID, FieldStatus
from zoom_sync.models.events import SnapshotUpdatedEvent
from zoom_sync.models.reading import ProviderReading
from zoom_sync.models.snapshot import FieldReading, Snapshot
from zoom_sync.services.event_bus import EventBus
from zoom_sync.utils.logger import get_logger, LogCategory

log = get_logger().for_category(LogCategory.STATE)


class StateAggregator:
    """
    Merges provider readings into an immutable Snapshot

    Owns one FieldReading per field and replaces the whole entry map on
    every update, so readers of current() never observe a partial write.

    - ok reading         -> value replaced, FRESH
    - transient failure  -> value kept, AGING until it ages past freshness
    - permanent failure  -> UNAVAILABLE
    """

    def __init__(
        self,
        freshness: Optional[Mapping[FieldID, Optional[float]]] = None,
        event_bus: Optional[EventBus] = None,
    ):
        self._freshness: Dict[FieldID, Optional[float]] = dict(freshness or {})
        self._entries: Mapping[FieldID, FieldReading] = {fid: FieldReading() for fid in FieldID}
        self._version = 0
        self.event_bus = event_bus

    @property
    def version(self) -> int:
        """Increments on every accepted update"""
        return self._version

    def set_freshness(self, field: FieldID, threshold: Optional[float]) -> None:
        self._freshness[field] = threshold

    def update(self, field: FieldID, reading: ProviderReading) -> None:
        previous = self._entries[field]

        if reading.is_ok:
            entry = previous.with_value(reading.value, reading.timestamp)
        else:
            entry = previous.with_failure(reading.error.message, reading.is_permanent)
            log.debug(
                "Field failure recorded",
                field=field.name,
                permanent=reading.is_permanent,
                error=reading.error.message,
            )

        entries = dict(self._entries)
        entries[field] = entry
        self._entries = entries
        self._version += 1

        if self.event_bus:
            self.event_bus.publish_nowait(SnapshotUpdatedEvent(field, self._version, reading.is_ok))

    def field_status(self, field: FieldID, now: Optional[float] = None) -> FieldStatus:
        now = time.time() if now is None else now
        return self._entries[field].status(now, self._freshness.get(field))

    def current(self, now: Optional[float] = None) -> Snapshot:
        """Latest merged snapshot with statuses evaluated at `now`. Never blocks."""
        now = time.time() if now is None else now
        entries = self._entries
        statuses = {fid: entry.status(now, self._freshness.get(fid)) for fid, entry in entries.items()}
        return Snapshot.build(entries, statuses, taken_at=now, version=self._version)
