"""Download rate provider (psutil network counters)"""

import time
from typing import Optional, Tuple

import psutil

from zoom_sync.models.enums import FieldID
from zoom_sync.models.errors import PermanentProviderError, TransientProviderError
from zoom_sync.providers.base import DataProvider
from zoom_sync.providers.registry import register_provider


@register_provider("download_rate")
class DownloadRateProvider(DataProvider):
    """
    Received bytes per second between two polls, in MB/s

    The first poll only records a baseline and reports a transient
    failure; counter resets re-baseline the same way.

    Options:
        interface: NIC name (default: all interfaces)
    """

    field = FieldID.DOWNLOAD_RATE

    def __init__(self, config, **context):
        super().__init__(config, **context)
        self.interface: Optional[str] = self.options.get("interface")
        self._last: Optional[Tuple[int, float]] = None

    async def fetch(self) -> float:
        received = await self._run_blocking(self._read_counter)
        now = time.monotonic()

        last, self._last = self._last, (received, now)
        if last is None:
            raise TransientProviderError("Collecting baseline")

        delta_bytes = received - last[0]
        delta_time = now - last[1]
        if delta_bytes < 0 or delta_time <= 0:
            raise TransientProviderError("Network counters reset")

        return delta_bytes / delta_time / 1_000_000

    def _read_counter(self) -> int:
        if self.interface:
            counters = psutil.net_io_counters(pernic=True)
            if self.interface not in counters:
                raise PermanentProviderError(
                    f"Network interface '{self.interface}' not found",
                    {"available": sorted(counters)},
                )
            return counters[self.interface].bytes_recv
        return psutil.net_io_counters().bytes_recv
