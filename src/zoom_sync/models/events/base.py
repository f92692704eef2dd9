from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Any, Dict

from zoom_sync.models.events.types import EventType
from zoom_sync.models.events.sources import EventSource

_META_FIELDS = ("type", "source", "timestamp")


@dataclass(init=False)
class Event:
    """
    Base event: type, source and a wall-clock timestamp set on creation.
    Subclasses define their own __init__ and call super().__init__().
    """

    type: EventType
    source: EventSource | None
    timestamp: float = field(default_factory=time.time)

    def __init__(self, *, type: EventType, source: EventSource | None):
        self.type = type
        self.source = source
        self.timestamp = time.time()

    def to_data(self) -> Dict[str, Any]:
        """Event payload without the metadata fields (used by log_middleware)"""
        return {k: v for k, v in self.__dict__.items() if k not in _META_FIELDS}
