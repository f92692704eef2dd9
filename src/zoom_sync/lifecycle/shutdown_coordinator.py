"""
Shutdown coordinator that orchestrates graceful shutdown of all components.

Manages signal handlers, shutdown sequencing, and error handling across
multiple shutdown handlers in priority order.
"""

import asyncio
import signal
from typing import List, Optional, Dict, Set

from zoom_sync.lifecycle.task_registry import TaskRegistry
from zoom_sync.utils.logger import get_logger, LogCategory

log = get_logger().for_category(LogCategory.SHUTDOWN)


class ShutdownCoordinator:
    """
    Coordinates graceful shutdown of multiple components.

    Maintains a list of shutdown handlers and executes them in priority order
    when shutdown is triggered. Shutdown can be triggered by an OS signal,
    by request_shutdown() (keyboard shutdown trigger, CLI), or by the
    failure of a critical task.

    Example:
        coordinator = ShutdownCoordinator()
        coordinator.register(InputShutdownHandler(...))
        coordinator.register(SyncShutdownHandler(...))

        coordinator.setup_signal_handlers(loop)
        await coordinator.wait_for_shutdown()
        await coordinator.shutdown_all()
    """

    def __init__(self, timeout_per_handler: float = 5.0, total_timeout: float = 15.0):
        """
        Args:
            timeout_per_handler: Timeout for each individual handler (seconds)
            total_timeout: Total timeout for entire shutdown sequence (seconds)
        """
        self._handlers: List = []
        self._shutdown_event: Optional[asyncio.Event] = None
        self._timeout_per_handler = timeout_per_handler
        self._total_timeout = total_timeout
        self._shutdown_trigger: Dict[str, Optional[str]] = {"reason": None}

    @property
    def reason(self) -> Optional[str]:
        return self._shutdown_trigger["reason"]

    def register(self, handler) -> None:
        """
        Register a shutdown handler.

        Handler must have a shutdown_priority property (int) and an
        async shutdown() method.
        """
        if not hasattr(handler, "shutdown_priority"):
            raise ValueError(f"Handler {handler} missing shutdown_priority property")
        if not hasattr(handler, "shutdown"):
            raise ValueError(f"Handler {handler} missing shutdown() method")

        self._handlers.append(handler)
        log.debug(f"Registered shutdown handler: {handler.__class__.__name__}")

    def _ensure_event(self) -> asyncio.Event:
        if self._shutdown_event is None:
            self._shutdown_event = asyncio.Event()
        return self._shutdown_event

    def setup_signal_handlers(self, loop: asyncio.AbstractEventLoop) -> None:
        """
        Install SIGINT / SIGTERM handlers that trigger shutdown.

        Event loops without add_signal_handler (Windows) keep the default
        KeyboardInterrupt behaviour.
        """
        self._ensure_event()

        def signal_handler(sig: signal.Signals) -> None:
            log.info(f"Signal {sig.name} received → triggering shutdown")
            self.request_shutdown(sig.name)

        try:
            for sig in (signal.SIGINT, signal.SIGTERM):
                loop.add_signal_handler(sig, lambda s=sig: signal_handler(s))
        except NotImplementedError:
            log.warn("Signal handlers not supported on this event loop")
            return

        log.info("Signal handlers installed (SIGINT, SIGTERM)")

    def request_shutdown(self, reason: str = "REQUESTED") -> None:
        """Trigger shutdown from application code (first reason wins)."""
        event = self._ensure_event()
        if event.is_set():
            return
        self._shutdown_trigger["reason"] = reason
        event.set()

    @property
    def is_shutting_down(self) -> bool:
        return self._shutdown_event is not None and self._shutdown_event.is_set()

    def _get_critical_task_categories(self) -> Set[str]:
        """
        Task categories whose failure brings the application down.

        Provider and input tasks degrade gracefully, so only the sync loop
        is critical.
        """
        return {"SYNC"}

    def _get_critical_tasks_from_registry(self, critical_categories: Set[str]) -> List[asyncio.Task]:
        registry = TaskRegistry.instance()
        return [
            r.task for r in registry.active()
            if r.info.category.name in critical_categories
        ]

    def _check_critical_task_failures(self, critical_categories: Set[str]) -> bool:
        """Check if any critical task has already failed (sets the trigger reason)."""
        for failed_record in TaskRegistry.instance().failed():
            if failed_record.info.category.name in critical_categories:
                log.error(
                    f"Critical task failed: {failed_record.info.description} "
                    f"(category: {failed_record.info.category.name})"
                )
                self._shutdown_trigger["reason"] = f"Task failure: {failed_record.info.description}"
                return True
        return False

    async def _wait_for_critical_task_completion(self, critical_tasks: List[asyncio.Task]) -> Optional[bool]:
        """
        Wait for either shutdown signal or critical task completion.

        Returns:
            True if shutdown was requested
            False if a critical task FAILED
            None to keep monitoring
        """
        if not critical_tasks:
            try:
                await asyncio.wait_for(self._shutdown_event.wait(), timeout=0.2)
                return True
            except asyncio.TimeoutError:
                return None

        wait_set: Set[asyncio.Task] = set(critical_tasks)
        shutdown_waiter = asyncio.create_task(self._shutdown_event.wait())
        wait_set.add(shutdown_waiter)

        try:
            done, _ = await asyncio.wait(wait_set, return_when=asyncio.FIRST_COMPLETED)

            if shutdown_waiter in done:
                return True

            for completed_task in done:
                if self._handle_critical_task_completion(completed_task):
                    return False
            return None
        finally:
            # Only the waiter is ours to cancel; critical tasks are long-lived
            if not shutdown_waiter.done():
                shutdown_waiter.cancel()

    def _handle_critical_task_completion(self, completed_task: asyncio.Task) -> bool:
        """
        Handle the completion of a critical task.

        A clean return (the sync loop exits after a ShutdownSignal) is a
        shutdown request, an exception is a failure. Both end monitoring;
        the return value says whether it was a failure.
        """
        if completed_task.cancelled():
            return False

        record = TaskRegistry.instance().record_for(completed_task)
        task_name = record.info.description if record else completed_task.get_name()

        exc = completed_task.exception()
        if exc is not None:
            log.error(f"Critical task failed: {task_name} - {exc}")
            self._shutdown_trigger["reason"] = f"Task failure: {task_name}"
            return True

        log.info(f"Critical task finished: {task_name}")
        self.request_shutdown(f"Task finished: {task_name}")
        return False

    async def wait_for_shutdown(self) -> None:
        """
        Wait for shutdown request or critical task failure.

        Monitors OS signals, request_shutdown() calls and critical tasks
        registered in the TaskRegistry.
        """
        self._ensure_event()
        critical_categories = self._get_critical_task_categories()

        while not self._shutdown_event.is_set():
            if self._check_critical_task_failures(critical_categories):
                return

            critical_tasks = self._get_critical_tasks_from_registry(critical_categories)
            result = await self._wait_for_critical_task_completion(critical_tasks)

            if result is True or self._shutdown_event.is_set():
                log.debug("Shutdown triggered")
                return
            elif result is False:
                return

    async def shutdown_all(self) -> None:
        """
        Execute graceful shutdown of all handlers in priority order.

        Each handler has its own timeout (timeout_per_handler) and the entire
        sequence has a global timeout (total_timeout). One failing handler
        never stops the others.
        """
        log.info("Initiating graceful shutdown sequence...", reason=self.reason or "UNKNOWN")

        sorted_handlers = sorted(self._handlers, key=lambda h: h.shutdown_priority, reverse=True)

        loop = asyncio.get_running_loop()
        start_time = loop.time()

        for handler in sorted_handlers:
            handler_name = handler.__class__.__name__

            elapsed = loop.time() - start_time
            if elapsed > self._total_timeout:
                log.error(f"Total shutdown timeout exceeded ({elapsed:.1f}s > {self._total_timeout}s)")
                break

            try:
                log.debug(f"Shutting down {handler_name} (priority={handler.shutdown_priority})...")
                await asyncio.wait_for(handler.shutdown(), timeout=self._timeout_per_handler)
                log.debug(f"✓ {handler_name} shutdown complete")

            except asyncio.TimeoutError:
                log.error(f"{handler_name} shutdown timeout ({self._timeout_per_handler}s)")

            except Exception as e:
                log.error(f"Error shutting down {handler_name}: {e}", error_type=type(e).__name__)

        log.info("✓ Shutdown sequence complete", tasks=TaskRegistry.instance().summary())

    def get_handler(self, handler_type: type):
        """Get a registered handler by type (tests, debugging)."""
        for handler in self._handlers:
            if isinstance(handler, handler_type):
                return handler
        return None
