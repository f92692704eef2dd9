"""
Snapshot model - merged, immutable view of the latest telemetry.

FieldReading is the aggregator's last-known-good entry for one field.
Snapshot bundles all entries together with their statuses evaluated at
a single point in time, so the renderer sees one consistent picture.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field, replace
from types import MappingProxyType
from typing import Any, Dict, Mapping, Optional

from zoom_sync.models.enums import FieldID, FieldStatus
from zoom_sync.models.reading import Location, WeatherReport


@dataclass(frozen=True)
class FieldReading:
    """
    Last-known-good entry for one field.

    value/observed_at describe the last successful poll (None if never).
    failing is set by a transient failure and cleared by the next success.
    permanent is set when the provider gave up for good.
    """

    value: Any = None
    observed_at: Optional[float] = None
    last_error: Optional[str] = None
    failing: bool = False
    permanent: bool = False

    @property
    def observed(self) -> bool:
        return self.observed_at is not None

    def with_value(self, value: Any, observed_at: float) -> "FieldReading":
        return FieldReading(value=value, observed_at=observed_at)

    def with_failure(self, error: str, permanent: bool) -> "FieldReading":
        return replace(self, last_error=error, failing=True, permanent=self.permanent or permanent)

    def status(self, now: float, freshness: Optional[float]) -> FieldStatus:
        if self.permanent:
            return FieldStatus.UNAVAILABLE
        if self.observed_at is None:
            return FieldStatus.MISSING
        if freshness is not None and now - self.observed_at > freshness:
            return FieldStatus.STALE
        if self.failing:
            return FieldStatus.AGING
        return FieldStatus.FRESH


def _freeze(mapping: Dict) -> Mapping:
    return MappingProxyType(dict(mapping))


@dataclass(frozen=True)
class Snapshot:
    """
    Immutable snapshot of every telemetry field.

    Equality ignores taken_at: two snapshots with the same readings and
    statuses describe the same screen.
    """

    readings: Mapping[FieldID, FieldReading] = field(default_factory=lambda: _freeze({}))
    statuses: Mapping[FieldID, FieldStatus] = field(default_factory=lambda: _freeze({}))
    taken_at: float = field(default_factory=time.time, compare=False)
    version: int = field(default=0, compare=False)

    @classmethod
    def build(
        cls,
        readings: Mapping[FieldID, FieldReading],
        statuses: Mapping[FieldID, FieldStatus],
        taken_at: Optional[float] = None,
        version: int = 0,
    ) -> "Snapshot":
        return cls(
            readings=_freeze(readings),
            statuses=_freeze(statuses),
            taken_at=time.time() if taken_at is None else taken_at,
            version=version,
        )

    # === Field access ===

    def status(self, field_id: FieldID) -> FieldStatus:
        return self.statuses.get(field_id, FieldStatus.MISSING)

    def value(self, field_id: FieldID) -> Any:
        """Last known value regardless of status (None if never observed)."""
        reading = self.readings.get(field_id)
        return reading.value if reading else None

    def usable(self, field_id: FieldID) -> Any:
        """Value only if it may be shown, else None."""
        if self.status(field_id).is_degraded:
            return None
        return self.value(field_id)

    @property
    def cpu_temp(self) -> Optional[float]:
        return self.value(FieldID.CPU_TEMP)

    @property
    def gpu_temp(self) -> Optional[float]:
        return self.value(FieldID.GPU_TEMP)

    @property
    def download_rate(self) -> Optional[float]:
        return self.value(FieldID.DOWNLOAD_RATE)

    @property
    def location(self) -> Optional[Location]:
        return self.value(FieldID.LOCATION)

    @property
    def weather(self) -> Optional[WeatherReport]:
        return self.value(FieldID.WEATHER)

    @property
    def timestamps(self) -> Dict[FieldID, Optional[float]]:
        return {fid: r.observed_at for fid, r in self.readings.items()}

    def __hash__(self) -> int:
        return hash((tuple(sorted(self.readings.items(), key=lambda kv: kv[0].value)),
                     tuple(sorted(self.statuses.items(), key=lambda kv: kv[0].value))))
