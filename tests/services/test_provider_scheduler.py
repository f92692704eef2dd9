import asyncio

import pytest

from zoom_sync.models.enums import FieldID, FieldStatus
from zoom_sync.models.errors import PermanentProviderError, TransientProviderError
from zoom_sync.models.events import EventType
from zoom_sync.providers.base import DataProvider
from zoom_sync.services.event_bus import EventBus
from zoom_sync.services.provider_scheduler import ProviderScheduler, backoff_delay
from zoom_sync.services.state_aggregator import StateAggregator


class ScriptedProvider(DataProvider):
    """Returns (or raises) scripted outcomes, then repeats the last one"""

    def __init__(self, config, outcomes, field=FieldID.CPU_TEMP):
        super().__init__(config)
        self.field = field
        self.outcomes = list(outcomes)
        self.calls = 0
        self.closed = False

    async def fetch(self):
        self.calls += 1
        outcome = self.outcomes.pop(0) if len(self.outcomes) > 1 else self.outcomes[0]
        if isinstance(outcome, Exception):
            raise outcome
        return outcome

    async def close(self):
        self.closed = True


def test_backoff_delay_doubles_and_caps():
    assert backoff_delay(0, 1, 30) == 0.0
    assert [backoff_delay(n, 1, 30) for n in range(1, 7)] == [1, 2, 4, 8, 16, 30]


@pytest.mark.asyncio
async def test_permanent_failure_stops_only_that_provider(provider_config):
    bus = EventBus()
    failures = []
    bus.subscribe(EventType.PROVIDER_FAILED, failures.append)

    aggregator = StateAggregator({FieldID.CPU_TEMP: 60, FieldID.GPU_TEMP: 60}, event_bus=bus)
    gpu = ScriptedProvider(
        provider_config("gpu_temp", FieldID.GPU_TEMP, interval=0.01),
        [PermanentProviderError("NVML unavailable")],
        field=FieldID.GPU_TEMP,
    )
    cpu = ScriptedProvider(provider_config("cpu_temp", interval=0.01), [55.0])

    scheduler = ProviderScheduler([gpu, cpu], aggregator, bus)
    await scheduler.start()
    await asyncio.sleep(0.1)
    await scheduler.stop()

    assert gpu.calls == 1
    assert cpu.calls > 3
    assert scheduler.is_stopped("gpu_temp")
    assert not scheduler.is_stopped("cpu_temp")
    assert len(failures) == 1
    assert failures[0].provider == "gpu_temp"

    snap = aggregator.current()
    assert snap.status(FieldID.GPU_TEMP) == FieldStatus.UNAVAILABLE
    assert snap.usable(FieldID.CPU_TEMP) == 55.0
    assert gpu.closed and cpu.closed


@pytest.mark.asyncio
async def test_transient_failures_back_off_then_recover(provider_config):
    aggregator = StateAggregator({FieldID.CPU_TEMP: 60})
    provider = ScriptedProvider(
        provider_config(interval=0.01, backoff_base=0.01, backoff_max=0.02),
        [TransientProviderError("busy"), TransientProviderError("busy"), 42.0],
    )
    scheduler = ProviderScheduler([provider], aggregator)

    await scheduler.start()
    await asyncio.sleep(0.15)
    await scheduler.stop()

    metrics = scheduler.get_metrics()["cpu_temp"]
    assert metrics["failures"] == 2
    assert metrics["consecutive_failures"] == 0
    assert aggregator.current().usable(FieldID.CPU_TEMP) == 42.0


@pytest.mark.asyncio
async def test_slow_provider_times_out_as_transient(provider_config):
    class SlowProvider(ScriptedProvider):
        async def fetch(self):
            await asyncio.sleep(1)

    provider = SlowProvider(provider_config(timeout=0.01), [0])
    reading = await provider.poll_async()

    assert reading.is_transient
    assert "timed out" in reading.error.message


@pytest.mark.asyncio
async def test_unexpected_exception_is_transient(provider_config):
    provider = ScriptedProvider(provider_config(), [KeyError("temp")])
    reading = await provider.poll_async()
    assert reading.is_transient
    assert reading.error.details["error_type"] == "KeyError"


@pytest.mark.asyncio
async def test_stop_cancels_in_flight_polls(provider_config):
    class HangingProvider(ScriptedProvider):
        async def fetch(self):
            await asyncio.sleep(10)

    provider = HangingProvider(provider_config(timeout=30), [0])
    scheduler = ProviderScheduler([provider], StateAggregator({}))
    await scheduler.start()
    await asyncio.sleep(0.01)

    await asyncio.wait_for(scheduler.stop(), timeout=1)
    assert provider.closed
