"""
Provider scheduler - runs every data provider on its own cadence

One tracked task per provider. Readings go straight into the
StateAggregator; the scheduler never blocks on one provider for another.
"""

import asyncio
from dataclasses import dataclass
from typing import Dict, List, Optional

from zoom_sync.lifecycle.task_registry import TaskCategory, create_tracked_task
from zoom_sync.models.events import ProviderFailedEvent
from zoom_sync.providers.base import DataProvider
from zoom_sync.services.event_bus import EventBus
from zoom_sync.services.state_aggregator import StateAggregator
from zoom_sync.utils.logger import get_logger, LogCategory

log = get_logger().for_category(LogCategory.PROVIDER)


def backoff_delay(failures: int, base: float, maximum: float) -> float:
    """base * 2**(failures-1), capped at maximum"""
    if failures <= 0:
        return 0.0
    return min(base * (2 ** (failures - 1)), maximum)


@dataclass
class ProviderStats:
    polls: int = 0
    failures: int = 0
    consecutive_failures: int = 0
    stopped: bool = False
    last_error: Optional[str] = None


class ProviderScheduler:
    """
    Schedules provider polls and classifies their outcomes

    - ok: next poll after the provider interval
    - transient failure: retry with exponential backoff
    - permanent failure: provider stopped, ProviderFailedEvent published once
    """

    def __init__(
        self,
        providers: List[DataProvider],
        aggregator: StateAggregator,
        event_bus: Optional[EventBus] = None,
    ):
        self.providers = list(providers)
        self.aggregator = aggregator
        self.event_bus = event_bus
        self.running = False
        self._tasks: Dict[str, asyncio.Task] = {}
        self._stats: Dict[str, ProviderStats] = {p.name: ProviderStats() for p in self.providers}

    async def start(self) -> None:
        if self.running:
            log.warn("ProviderScheduler already running")
            return

        self.running = True
        for provider in self.providers:
            self._tasks[provider.name] = create_tracked_task(
                self._poll_loop(provider),
                category=TaskCategory.PROVIDER,
                description=f"Provider poll: {provider.name}",
            )
        log.info("Provider scheduler started", providers=", ".join(p.name for p in self.providers) or "none")

    async def _poll_loop(self, provider: DataProvider) -> None:
        stats = self._stats[provider.name]
        cfg = provider.config

        while self.running:
            reading = await provider.poll_async()
            stats.polls += 1
            self.aggregator.update(provider.field, reading)

            if reading.is_ok:
                if stats.consecutive_failures:
                    log.info(f"{provider.name} recovered", after_failures=stats.consecutive_failures)
                stats.consecutive_failures = 0
                delay = provider.interval

            elif reading.is_permanent:
                stats.failures += 1
                stats.stopped = True
                stats.last_error = reading.error.message
                log.error(
                    f"{provider.name} failed permanently, polling stopped",
                    code=reading.error.code,
                    error=reading.error.message,
                )
                if self.event_bus:
                    await self.event_bus.publish(ProviderFailedEvent(
                        provider=provider.name,
                        field=provider.field,
                        code=reading.error.code,
                        message=reading.error.message,
                    ))
                return

            else:
                stats.failures += 1
                stats.consecutive_failures += 1
                stats.last_error = reading.error.message
                delay = backoff_delay(stats.consecutive_failures, cfg.backoff_base, cfg.backoff_max)
                log.debug(
                    f"{provider.name} poll failed, retrying",
                    error=reading.error.message,
                    attempt=stats.consecutive_failures,
                    retry_in=f"{delay:.1f}s",
                )

            await asyncio.sleep(delay)

    async def stop(self) -> None:
        """Cancel in-flight polls and release provider resources"""
        if not self.running:
            return
        self.running = False

        tasks = [t for t in self._tasks.values() if not t.done()]
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        self._tasks.clear()

        for provider in self.providers:
            try:
                await provider.close()
            except Exception as e:
                log.warn(f"Error closing {provider.name}", error=str(e))

        log.info("Provider scheduler stopped")

    def is_stopped(self, name: str) -> bool:
        return self._stats[name].stopped

    def get_metrics(self) -> Dict[str, dict]:
        return {
            name: {
                "polls": s.polls,
                "failures": s.failures,
                "consecutive_failures": s.consecutive_failures,
                "stopped": s.stopped,
                "last_error": s.last_error,
            }
            for name, s in self._stats.items()
        }
