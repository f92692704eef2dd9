from __future__ import annotations

import asyncio
from typing import Optional

from zoom_sync.hardware.input.input_listener import InputListener
from zoom_sync.lifecycle.shutdown_protocol import IShutdownHandler
from zoom_sync.utils.logger import get_logger, LogCategory

log = get_logger().for_category(LogCategory.SHUTDOWN)


class InputShutdownHandler(IShutdownHandler):
    """
    Shutdown handler for the keyboard listener.

    Stops triggers first so no new signals arrive mid-shutdown.

    Priority: 120
    """

    def __init__(self, listener: InputListener, task: Optional[asyncio.Task] = None):
        self.listener = listener
        self.task = task

    @property
    def shutdown_priority(self) -> int:
        return 120

    async def shutdown(self) -> None:
        log.info("Stopping keyboard input...")
        await self.listener.stop()
        if self.task and not self.task.done():
            self.task.cancel()
            await asyncio.gather(self.task, return_exceptions=True)
        log.debug("Keyboard input stopped")
