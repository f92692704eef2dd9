"""CPU temperature provider (psutil sensors)"""

from typing import Dict, List

import psutil

from zoom_sync.models.enums import FieldID
from zoom_sync.models.errors import PermanentProviderError, TransientProviderError
from zoom_sync.providers.base import DataProvider
from zoom_sync.providers.registry import register_provider

# Checked in order when no sensor is configured
PREFERRED_SENSORS = ("coretemp", "k10temp", "zenpower", "cpu_thermal", "cpu-thermal", "acpitz")


@register_provider("cpu_temp")
class CpuTempProvider(DataProvider):
    """
    Reads the hottest matching CPU sensor in °C

    Options:
        sensor: psutil sensor group name (e.g. "k10temp")
        label: substring of the entry label (e.g. "Tctl", "Package")
    """

    field = FieldID.CPU_TEMP

    async def fetch(self) -> float:
        return await self._run_blocking(self._read)

    def _read(self) -> float:
        if not hasattr(psutil, "sensors_temperatures"):
            raise PermanentProviderError("Temperature sensors are not supported on this platform")

        groups: Dict[str, List] = psutil.sensors_temperatures()
        if not groups:
            raise PermanentProviderError("No temperature sensors found")

        sensor = self.options.get("sensor")
        if sensor:
            if sensor not in groups:
                raise PermanentProviderError(
                    f"Sensor '{sensor}' not found",
                    {"available": sorted(groups)},
                )
            entries = groups[sensor]
        else:
            name = next((s for s in PREFERRED_SENSORS if s in groups), next(iter(groups)))
            entries = groups[name]

        label = self.options.get("label")
        if label:
            entries = [e for e in entries if label.lower() in (e.label or "").lower()]
            if not entries:
                raise PermanentProviderError(f"No sensor entry matches label '{label}'")

        readings = [e.current for e in entries if e.current is not None]
        if not readings:
            raise TransientProviderError("Sensor returned no reading")
        return float(max(readings))
