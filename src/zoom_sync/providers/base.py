"""
Data provider abstraction

A DataProvider wraps one external source behind a uniform polling
interface. Subclasses implement fetch(); poll_async() adds the timeout
and turns every outcome into a ProviderReading, so callers never see an
exception from a poll.
"""

import asyncio
import functools
from abc import ABC, abstractmethod
from typing import Any, Callable

from zoom_sync.models.config import ProviderConfig
from zoom_sync.models.enums import FieldID
from zoom_sync.models.errors import ProviderError, TransientProviderError
from zoom_sync.models.reading import ProviderReading
from zoom_sync.utils.logger import get_logger, LogCategory

log = get_logger().for_category(LogCategory.PROVIDER)


class DataProvider(ABC):
    """
    Base class for all data providers

    Class attributes:
        field: FieldID this provider feeds in the aggregator
    """

    field: FieldID

    def __init__(self, config: ProviderConfig, **context):
        self.config = config
        self.name = config.name
        self.interval = config.interval
        self.timeout = config.timeout
        self.options = dict(config.options)

    async def poll_async(self) -> ProviderReading:
        """
        Poll the source once, bounded by the configured timeout

        Timeouts and unclassified exceptions are transient failures.
        """
        try:
            value = await asyncio.wait_for(self.fetch(), timeout=self.timeout)
            return ProviderReading.ok(value)
        except asyncio.TimeoutError:
            return ProviderReading.failed(
                TransientProviderError(f"{self.name} poll timed out after {self.timeout}s")
            )
        except ProviderError as e:
            return ProviderReading.failed(e)
        except Exception as e:
            return ProviderReading.failed(
                TransientProviderError(f"{self.name} poll failed: {e}", {"error_type": type(e).__name__})
            )

    @abstractmethod
    async def fetch(self) -> Any:
        """Fetch one value. Raise ProviderError subclasses to classify failures."""
        ...

    async def close(self) -> None:
        """Release resources. Override if needed."""

    async def _run_blocking(self, fn: Callable, *args, **kwargs) -> Any:
        """Run a blocking library call in the default executor"""
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, functools.partial(fn, *args, **kwargs))

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(name={self.name}, field={self.field.name})"
