import asyncio

import pytest

from zoom_sync.lifecycle.handlers import TaskCancellationHandler
from zoom_sync.lifecycle.shutdown_coordinator import ShutdownCoordinator
from zoom_sync.lifecycle.task_registry import TaskCategory, TaskRegistry, create_tracked_task


class RecordingHandler:
    def __init__(self, name, priority, calls, delay=0.0, error=None):
        self.name = name
        self.priority = priority
        self.calls = calls
        self.delay = delay
        self.error = error

    @property
    def shutdown_priority(self):
        return self.priority

    async def shutdown(self):
        if self.delay:
            await asyncio.sleep(self.delay)
        self.calls.append(self.name)
        if self.error:
            raise self.error


@pytest.mark.asyncio
async def test_request_shutdown_first_reason_wins():
    coordinator = ShutdownCoordinator()
    coordinator.request_shutdown("KEYBOARD")
    coordinator.request_shutdown("SIGTERM")

    await asyncio.wait_for(coordinator.wait_for_shutdown(), timeout=1)
    assert coordinator.is_shutting_down
    assert coordinator.reason == "KEYBOARD"


@pytest.mark.asyncio
async def test_handlers_run_by_priority_and_survive_failures():
    calls = []
    coordinator = ShutdownCoordinator(timeout_per_handler=0.05)
    coordinator.register(RecordingHandler("tasks", 40, calls))
    coordinator.register(RecordingHandler("sync", 100, calls, error=RuntimeError("boom")))
    coordinator.register(RecordingHandler("input", 120, calls))
    coordinator.register(RecordingHandler("slow", 110, calls, delay=1))

    await coordinator.shutdown_all()

    assert calls == ["input", "sync", "tasks"]


def test_register_rejects_non_handlers():
    with pytest.raises(ValueError):
        ShutdownCoordinator().register(object())


@pytest.mark.asyncio
async def test_critical_task_failure_triggers_shutdown():
    async def crash():
        await asyncio.sleep(0.01)
        raise RuntimeError("sync loop died")

    create_tracked_task(crash(), category=TaskCategory.SYNC, description="Sync coordinator")
    coordinator = ShutdownCoordinator()

    await asyncio.wait_for(coordinator.wait_for_shutdown(), timeout=1)
    assert coordinator.reason == "Task failure: Sync coordinator"


@pytest.mark.asyncio
async def test_clean_sync_exit_is_a_shutdown_request():
    async def finish():
        await asyncio.sleep(0.01)

    create_tracked_task(finish(), category=TaskCategory.SYNC, description="Sync coordinator")
    coordinator = ShutdownCoordinator()

    await asyncio.wait_for(coordinator.wait_for_shutdown(), timeout=1)
    assert coordinator.reason == "Task finished: Sync coordinator"


@pytest.mark.asyncio
async def test_provider_failure_is_not_critical():
    async def crash():
        raise RuntimeError("provider died")

    create_tracked_task(crash(), category=TaskCategory.PROVIDER, description="Provider poll: gpu_temp")
    coordinator = ShutdownCoordinator()

    waiter = asyncio.ensure_future(coordinator.wait_for_shutdown())
    await asyncio.sleep(0.3)
    assert not waiter.done()

    coordinator.request_shutdown("TEST")
    await asyncio.wait_for(waiter, timeout=1)


@pytest.mark.asyncio
async def test_task_cancellation_handler():
    forever = create_tracked_task(asyncio.sleep(60), category=TaskCategory.GENERAL, description="sleeper")
    kept = create_tracked_task(asyncio.sleep(60), category=TaskCategory.GENERAL, description="kept")

    await TaskCancellationHandler(exclude_tasks=[kept]).shutdown()

    assert forever.cancelled()
    assert not kept.done()
    assert len(TaskRegistry.instance().cancelled()) == 1
    kept.cancel()
