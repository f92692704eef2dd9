"""
Device control commands

Small fixed-size updates the screen module renders itself (clock, weather
widget, system info widget) plus slot management commands.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Optional, Union

from zoom_sync.models.enums import ScreenPosition, WeatherIcon


@dataclass(frozen=True)
class SetTimeCommand:
    when: datetime


@dataclass(frozen=True)
class SetWeatherCommand:
    icon: WeatherIcon
    current: int
    low: int
    high: int


@dataclass(frozen=True)
class SetSystemInfoCommand:
    """Missing values are sent as 0, which the module shows as blank"""
    cpu_temp: Optional[int] = None
    gpu_temp: Optional[int] = None
    download_rate: Optional[float] = None


@dataclass(frozen=True)
class ResetScreenCommand:
    pass


@dataclass(frozen=True)
class SetScreenCommand:
    """Reset to the logo screen, then step to position"""
    position: ScreenPosition


@dataclass(frozen=True)
class ClearImageCommand:
    pass


@dataclass(frozen=True)
class ClearAnimationCommand:
    pass


Command = Union[
    SetTimeCommand,
    SetWeatherCommand,
    SetSystemInfoCommand,
    ResetScreenCommand,
    SetScreenCommand,
    ClearImageCommand,
    ClearAnimationCommand,
]
