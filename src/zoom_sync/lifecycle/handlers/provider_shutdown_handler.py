from __future__ import annotations

from zoom_sync.lifecycle.shutdown_protocol import IShutdownHandler
from zoom_sync.services.provider_scheduler import ProviderScheduler
from zoom_sync.utils.logger import get_logger, LogCategory

log = get_logger().for_category(LogCategory.SHUTDOWN)


class ProviderShutdownHandler(IShutdownHandler):
    """
    Shutdown handler for data providers.

    Cancels in-flight polls and closes HTTP clients / NVML.

    Priority: 110 (before the sync loop, which only reads the snapshot)
    """

    def __init__(self, scheduler: ProviderScheduler):
        self.scheduler = scheduler

    @property
    def shutdown_priority(self) -> int:
        return 110

    async def shutdown(self) -> None:
        log.info("Stopping data providers...")
        await self.scheduler.stop()
