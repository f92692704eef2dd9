"""
Task Registry

Every long-lived coroutine (sync loop, provider polls, keyboard listener)
is started through create_tracked_task() so shutdown can find it and a
crash is logged with the description it was started under.
"""

from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass
from enum import Enum, auto
from typing import Dict, List, Optional

from zoom_sync.utils.logger import get_logger, LogCategory

log = get_logger().for_category(LogCategory.TASK)


class TaskCategory(Enum):
    SYNC = auto()        # sync coordinator loop; critical
    PROVIDER = auto()    # one per provider
    INPUT = auto()       # keyboard listener
    EVENTBUS = auto()    # fire-and-forget publishes
    SYSTEM = auto()
    GENERAL = auto()


@dataclass(frozen=True)
class TaskInfo:
    id: int
    category: TaskCategory
    description: str
    started_at: float


@dataclass
class TaskRecord:
    task: asyncio.Task
    info: TaskInfo
    ended_at: Optional[float] = None
    error: Optional[BaseException] = None

    @property
    def cancelled(self) -> bool:
        return self.task.cancelled()

    @property
    def running(self) -> bool:
        return not self.task.done()


class TaskRegistry:
    """Process-wide task bookkeeping (one instance per event loop in tests)"""

    _instance: Optional["TaskRegistry"] = None

    def __init__(self) -> None:
        self._records: Dict[asyncio.Task, TaskRecord] = {}
        self._ids = 0

    @classmethod
    def instance(cls) -> "TaskRegistry":
        if cls._instance is None:
            cls._instance = cls()
        return cls._instance

    @classmethod
    def reset(cls) -> None:
        cls._instance = None

    def register(self, task: asyncio.Task, category: TaskCategory, description: str) -> TaskInfo:
        self._ids += 1
        info = TaskInfo(id=self._ids, category=category, description=description, started_at=time.time())
        self._records[task] = TaskRecord(task=task, info=info)
        task.add_done_callback(self._on_done)
        log.debug(f"[Task {info.id}] Started ({category.name}) - {description}")
        return info

    def _on_done(self, task: asyncio.Task) -> None:
        record = self._records.get(task)
        if record is None:
            return
        record.ended_at = time.time()

        if task.cancelled():
            log.debug(f"[Task {record.info.id}] Cancelled")
            return

        record.error = task.exception()
        if record.error is not None:
            log.error(
                f"[Task {record.info.id}] FAILED: {record.error}",
                description=record.info.description,
                error_type=type(record.error).__name__,
            )
        else:
            log.debug(f"[Task {record.info.id}] Finished")

    def record_for(self, task: asyncio.Task) -> Optional[TaskRecord]:
        return self._records.get(task)

    def list_all(self) -> List[TaskRecord]:
        return list(self._records.values())

    def active(self, category: Optional[TaskCategory] = None) -> List[TaskRecord]:
        return [
            r for r in self._records.values()
            if r.running and (category is None or r.info.category == category)
        ]

    def failed(self) -> List[TaskRecord]:
        return [r for r in self._records.values() if r.error is not None]

    def cancelled(self) -> List[TaskRecord]:
        return [r for r in self._records.values() if r.cancelled]

    def summary(self) -> str:
        return (
            f"Tasks: total={len(self._records)}, running={len(self.active())}, "
            f"failed={len(self.failed())}, cancelled={len(self.cancelled())}"
        )

    def get_tasks_for_shutdown(self, exclude: Optional[List[asyncio.Task]] = None) -> List[asyncio.Task]:
        skip = set(exclude or [])
        tasks = [r.task for r in self.active() if r.task not in skip]
        log.debug(f"Shutdown: {len(tasks)} tasks to cancel")
        return tasks


def create_tracked_task(coro, *, category: TaskCategory, description: str) -> asyncio.Task:
    task = asyncio.get_running_loop().create_task(coro, name=description)
    TaskRegistry.instance().register(task, category, description)
    return task
