from __future__ import annotations

import asyncio
from typing import List, Optional

from zoom_sync.lifecycle.shutdown_protocol import IShutdownHandler
from zoom_sync.lifecycle.task_registry import TaskRegistry
from zoom_sync.utils.logger import get_logger, LogCategory

log = get_logger().for_category(LogCategory.SHUTDOWN)


class TaskCancellationHandler(IShutdownHandler):
    """
    Cancels whatever tracked tasks are still running.

    The task executing the shutdown sequence and any explicitly excluded
    tasks are left alone.

    Priority: 40 (last)
    """

    def __init__(self, exclude_tasks: Optional[List[asyncio.Task]] = None):
        self.exclude_tasks = exclude_tasks or []

    @property
    def shutdown_priority(self) -> int:
        return 40

    async def shutdown(self) -> None:
        current = asyncio.current_task()
        exclude = list(self.exclude_tasks)
        if current:
            exclude.append(current)

        tasks = TaskRegistry.instance().get_tasks_for_shutdown(exclude=exclude)
        if not tasks:
            log.debug("No background tasks left to cancel")
            return

        log.info(f"Cancelling {len(tasks)} remaining background task{'s' if len(tasks) != 1 else ''}...")
        for task in tasks:
            task.cancel(msg="shutdown")
            log.debug(f"Cancelled task: {task.get_name()}")

        await asyncio.gather(*tasks, return_exceptions=True)
        log.debug("All tasks cancelled")
