"""
Provider readings and telemetry value objects.

ProviderReading is the result of one poll: either a typed value with a
timestamp, or a classified failure.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Generic, Optional, TypeVar

from zoom_sync.models.enums import WeatherIcon
from zoom_sync.models.errors import ProviderError

T = TypeVar("T")


@dataclass(frozen=True)
class Location:
    """Geolocation of the host"""
    latitude: float
    longitude: float
    city: str = ""
    region: str = ""
    country: str = ""

    @property
    def name(self) -> str:
        return self.city or self.region or self.country or f"{self.latitude:.2f},{self.longitude:.2f}"


@dataclass(frozen=True)
class WeatherReport:
    """Current conditions plus today's range, temperatures in °C"""
    condition: str
    icon: WeatherIcon
    temp: float
    low: float
    high: float
    location: str = ""


@dataclass(frozen=True)
class ProviderReading(Generic[T]):
    """
    Result of one provider poll.

    Exactly one of value / error is meaningful:
    - ok reading: error is None
    - failed reading: error holds the classified ProviderError
    """

    value: Optional[T] = None
    error: Optional[ProviderError] = None
    timestamp: float = field(default_factory=time.time)

    @classmethod
    def ok(cls, value: T, timestamp: Optional[float] = None) -> "ProviderReading[T]":
        return cls(value=value, error=None, timestamp=time.time() if timestamp is None else timestamp)

    @classmethod
    def failed(cls, error: ProviderError, timestamp: Optional[float] = None) -> "ProviderReading[T]":
        return cls(value=None, error=error, timestamp=time.time() if timestamp is None else timestamp)

    @property
    def is_ok(self) -> bool:
        return self.error is None

    @property
    def is_permanent(self) -> bool:
        return self.error is not None and self.error.is_permanent

    @property
    def is_transient(self) -> bool:
        return self.error is not None and not self.error.is_permanent
