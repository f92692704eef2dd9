"""GPU temperature provider (NVML)"""

import pynvml

from zoom_sync.models.enums import FieldID
from zoom_sync.models.errors import PermanentProviderError, TransientProviderError
from zoom_sync.providers.base import DataProvider
from zoom_sync.providers.registry import register_provider
from zoom_sync.utils.logger import get_logger, LogCategory

log = get_logger().for_category(LogCategory.PROVIDER)


@register_provider("gpu_temp")
class GpuTempProvider(DataProvider):
    """
    Reads the core temperature of one NVIDIA GPU in °C

    NVML is initialised on the first poll and shut down in close().
    A missing driver or GPU is permanent.

    Options:
        index: GPU index (default 0)
    """

    field = FieldID.GPU_TEMP

    def __init__(self, config, **context):
        super().__init__(config, **context)
        self.index = int(self.options.get("index", 0))
        self._handle = None

    async def fetch(self) -> float:
        return await self._run_blocking(self._read)

    def _read(self) -> float:
        if self._handle is None:
            try:
                pynvml.nvmlInit()
                self._handle = pynvml.nvmlDeviceGetHandleByIndex(self.index)
            except pynvml.NVMLError as e:
                raise PermanentProviderError(f"NVML unavailable: {e}", {"index": self.index}) from e
            log.info("NVML initialised", index=self.index)

        try:
            return float(pynvml.nvmlDeviceGetTemperature(self._handle, pynvml.NVML_TEMPERATURE_GPU))
        except pynvml.NVMLError as e:
            raise TransientProviderError(f"NVML read failed: {e}") from e

    async def close(self) -> None:
        if self._handle is None:
            return
        self._handle = None
        try:
            await self._run_blocking(pynvml.nvmlShutdown)
        except pynvml.NVMLError as e:
            log.warn("NVML shutdown failed", error=str(e))
