"""Unit conversion helpers"""

from typing import Optional

from zoom_sync.models.enums import TemperatureUnit


def celsius_to(value: Optional[float], unit: TemperatureUnit) -> Optional[float]:
    """Convert a °C value to the display unit (None passes through)"""
    if value is None:
        return None
    if unit == TemperatureUnit.FAHRENHEIT:
        return value * 9.0 / 5.0 + 32.0
    return value


def clamp_byte(value: Optional[float]) -> int:
    """Round into 0..255 for single-byte device fields (None -> 0)"""
    if value is None:
        return 0
    return max(0, min(255, int(round(value))))


def wrap_byte(value: Optional[float]) -> int:
    """Two's complement byte, so sub-zero temperatures survive the u8 field"""
    if value is None:
        return 0
    return int(round(value)) & 0xFF
