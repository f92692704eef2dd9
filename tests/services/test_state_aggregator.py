import asyncio

import pytest

from zoom_sync.models.enums import FieldID, FieldStatus
from zoom_sync.models.errors import PermanentProviderError, TransientProviderError
from zoom_sync.models.events import EventType
from zoom_sync.models.reading import ProviderReading
from zoom_sync.services.event_bus import EventBus
from zoom_sync.services.state_aggregator import StateAggregator


@pytest.fixture
def aggregator():
    return StateAggregator({FieldID.CPU_TEMP: 60, FieldID.GPU_TEMP: 60})


def test_initial_snapshot_is_all_missing(aggregator):
    snap = aggregator.current(now=0.0)
    assert all(snap.status(f) == FieldStatus.MISSING for f in FieldID)
    assert aggregator.version == 0


def test_value_older_than_threshold_is_not_shown(aggregator):
    """CPU last succeeded 90 s ago with a 60 s threshold"""
    aggregator.update(FieldID.CPU_TEMP, ProviderReading.ok(71.0, timestamp=1000.0))

    snap = aggregator.current(now=1090.0)

    assert snap.status(FieldID.CPU_TEMP) == FieldStatus.STALE
    assert snap.usable(FieldID.CPU_TEMP) is None
    assert snap.value(FieldID.CPU_TEMP) == 71.0


def test_transient_failure_keeps_last_value(aggregator):
    aggregator.update(FieldID.CPU_TEMP, ProviderReading.ok(50.0, timestamp=1000.0))
    aggregator.update(FieldID.CPU_TEMP, ProviderReading.failed(TransientProviderError("timeout"), timestamp=1005.0))

    snap = aggregator.current(now=1010.0)
    assert snap.status(FieldID.CPU_TEMP) == FieldStatus.AGING
    assert snap.usable(FieldID.CPU_TEMP) == 50.0


def test_permanent_failure_marks_field_unavailable(aggregator):
    aggregator.update(FieldID.GPU_TEMP, ProviderReading.failed(PermanentProviderError("no GPU"), timestamp=1000.0))
    aggregator.update(FieldID.CPU_TEMP, ProviderReading.ok(40.0, timestamp=1000.0))

    snap = aggregator.current(now=1001.0)
    assert snap.status(FieldID.GPU_TEMP) == FieldStatus.UNAVAILABLE
    assert snap.status(FieldID.CPU_TEMP) == FieldStatus.FRESH


def test_snapshots_are_not_affected_by_later_updates(aggregator):
    aggregator.update(FieldID.CPU_TEMP, ProviderReading.ok(40.0, timestamp=1000.0))
    before = aggregator.current(now=1001.0)
    aggregator.update(FieldID.CPU_TEMP, ProviderReading.ok(80.0, timestamp=1002.0))

    assert before.value(FieldID.CPU_TEMP) == 40.0
    assert aggregator.current(now=1003.0).value(FieldID.CPU_TEMP) == 80.0
    assert aggregator.version == 2


def test_field_without_threshold_never_goes_stale():
    aggregator = StateAggregator({FieldID.LOCATION: None})
    aggregator.update(FieldID.LOCATION, ProviderReading.ok("somewhere", timestamp=0.0))
    assert aggregator.field_status(FieldID.LOCATION, now=1e7) == FieldStatus.FRESH


def test_set_freshness_applies_to_next_snapshot(aggregator):
    aggregator.update(FieldID.CPU_TEMP, ProviderReading.ok(40.0, timestamp=1000.0))
    aggregator.set_freshness(FieldID.CPU_TEMP, 5)
    assert aggregator.field_status(FieldID.CPU_TEMP, now=1010.0) == FieldStatus.STALE


@pytest.mark.asyncio
async def test_updates_are_published():
    bus = EventBus()
    aggregator = StateAggregator({}, event_bus=bus)
    received = []
    bus.subscribe(EventType.SNAPSHOT_UPDATED, received.append)

    aggregator.update(FieldID.CPU_TEMP, ProviderReading.ok(40.0))
    await asyncio.sleep(0)

    assert len(received) == 1
    assert received[0].field == FieldID.CPU_TEMP
    assert received[0].version == 1
    assert received[0].ok
