from __future__ import annotations

import asyncio
from typing import Optional

from zoom_sync.engine.sync_coordinator import SyncCoordinator
from zoom_sync.lifecycle.shutdown_protocol import IShutdownHandler
from zoom_sync.utils.logger import get_logger, LogCategory

log = get_logger().for_category(LogCategory.SHUTDOWN)


class SyncShutdownHandler(IShutdownHandler):
    """
    Shutdown handler for the sync coordinator.

    Lets an in-flight transmission finish, then releases the device.
    If the loop does not stop within grace seconds its task is cancelled;
    the transmission itself is shielded and still completes.

    Priority: 100
    """

    def __init__(self, coordinator: SyncCoordinator, task: Optional[asyncio.Task] = None, grace: float = 4.0):
        self.coordinator = coordinator
        self.task = task
        self.grace = grace

    @property
    def shutdown_priority(self) -> int:
        return 100

    async def shutdown(self) -> None:
        log.info("Stopping sync coordinator...", state=self.coordinator.state.name)
        await self.coordinator.stop(timeout=self.grace)

        if self.task and not self.task.done():
            log.warn("Sync loop still running, cancelling")
            self.task.cancel()
            await asyncio.gather(self.task, return_exceptions=True)

        release = getattr(self.coordinator.channel, "shutdown_executor", None)
        if release is not None:
            release()
        log.info("Sync coordinator stopped", **self.coordinator.get_metrics())
