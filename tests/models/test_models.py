"""Domain model invariants: frames, readings, snapshots, payloads"""

import numpy as np
import pytest

from zoom_sync.models.enums import FieldID, FieldStatus, PayloadKind
from zoom_sync.models.errors import (
    DeviceDisconnectedError,
    DeviceRejectedError,
    DeviceTimeoutError,
    DimensionMismatchError,
    PermanentProviderError,
    TransientProviderError,
)
from zoom_sync.models.frame import EncodedPayload, Frame, FrameSequence, rgb565_to_rgb888, rgb888_to_rgb565
from zoom_sync.models.reading import Location, ProviderReading
from zoom_sync.models.snapshot import FieldReading, Snapshot


class TestFrame:
    def test_rejects_wrong_dimensions(self):
        with pytest.raises(DimensionMismatchError):
            Frame(np.zeros((10, 12), dtype=np.uint16), width=10, height=10)

    def test_pixels_are_read_only(self):
        frame = Frame.solid(4, 3, 0xF800)
        with pytest.raises(ValueError):
            frame.pixels[0, 0] = 0

    def test_black_and_white_survive_565_round_trip(self):
        rgb = np.array([[[0, 0, 0], [255, 255, 255]]], dtype=np.uint8)
        assert np.array_equal(rgb565_to_rgb888(rgb888_to_rgb565(rgb)), rgb)

    def test_primary_colours_pack_to_expected_565(self):
        rgb = np.array([[[255, 0, 0], [0, 255, 0], [0, 0, 255]]], dtype=np.uint8)
        assert rgb888_to_rgb565(rgb).tolist() == [[0xF800, 0x07E0, 0x001F]]

    def test_equality_is_by_pixels(self):
        assert Frame.solid(4, 4, 7) == Frame.solid(4, 4, 7)
        assert Frame.solid(4, 4, 7) != Frame.solid(4, 4, 8)


class TestFrameSequence:
    def test_single_frame(self):
        seq = FrameSequence.single(Frame.solid(4, 4))
        assert len(seq) == 1
        assert not seq.is_animated

    def test_default_durations(self):
        seq = FrameSequence(frames=(Frame.solid(4, 4, 1), Frame.solid(4, 4, 2)))
        assert seq.durations_ms == (100, 100)

    def test_mixed_sizes_rejected(self):
        with pytest.raises(DimensionMismatchError):
            FrameSequence.of([Frame.solid(4, 4), Frame.solid(5, 4)], [100, 100])

    def test_duration_count_must_match(self):
        with pytest.raises(ValueError):
            FrameSequence.of([Frame.solid(4, 4), Frame.solid(4, 4, 1)], [100])

    def test_empty_rejected(self):
        with pytest.raises(ValueError):
            FrameSequence.of([], [])


class TestEncodedPayload:
    def test_digest_depends_on_kind_and_data(self):
        a = EncodedPayload(PayloadKind.IMAGE, b"abc", 1, 1)
        b = EncodedPayload(PayloadKind.ANIMATION, b"abc", 1, 1)
        c = EncodedPayload(PayloadKind.IMAGE, b"abc", 1, 1)
        assert a.digest != b.digest
        assert a.digest == c.digest
        assert a.size == 3


class TestProviderReading:
    def test_ok(self):
        reading = ProviderReading.ok(42.0, timestamp=10.0)
        assert reading.is_ok
        assert not reading.is_permanent
        assert reading.timestamp == 10.0

    def test_failure_classification(self):
        assert ProviderReading.failed(TransientProviderError("x")).is_transient
        assert ProviderReading.failed(PermanentProviderError("x")).is_permanent
        assert PermanentProviderError("x").code == "PROVIDER_PERMANENT"


class TestFieldReading:
    def test_never_observed_is_missing(self):
        assert FieldReading().status(now=100.0, freshness=60) == FieldStatus.MISSING

    def test_fresh_then_stale(self):
        entry = FieldReading().with_value(50.0, observed_at=100.0)
        assert entry.status(now=130.0, freshness=60) == FieldStatus.FRESH
        assert entry.status(now=190.0, freshness=60) == FieldStatus.STALE

    def test_no_threshold_never_stale(self):
        entry = FieldReading().with_value(50.0, observed_at=0.0)
        assert entry.status(now=1e9, freshness=None) == FieldStatus.FRESH

    def test_transient_failure_ages_but_keeps_value(self):
        entry = FieldReading().with_value(50.0, observed_at=100.0).with_failure("timeout", permanent=False)
        assert entry.value == 50.0
        assert entry.status(now=110.0, freshness=60) == FieldStatus.AGING
        assert entry.status(now=200.0, freshness=60) == FieldStatus.STALE

    def test_success_clears_failure(self):
        entry = FieldReading().with_failure("timeout", permanent=False).with_value(1.0, observed_at=5.0)
        assert not entry.failing
        assert entry.last_error is None

    def test_permanent_failure_is_unavailable(self):
        entry = FieldReading().with_value(50.0, observed_at=100.0).with_failure("no sensor", permanent=True)
        assert entry.status(now=101.0, freshness=60) == FieldStatus.UNAVAILABLE

    def test_degraded_statuses(self):
        assert FieldStatus.MISSING.is_degraded
        assert FieldStatus.STALE.is_degraded
        assert FieldStatus.UNAVAILABLE.is_degraded
        assert not FieldStatus.FRESH.is_degraded
        assert not FieldStatus.AGING.is_degraded


class TestSnapshot:
    def _snapshot(self, taken_at, cpu_status=FieldStatus.FRESH):
        readings = {FieldID.CPU_TEMP: FieldReading(value=55.0, observed_at=1.0)}
        statuses = {FieldID.CPU_TEMP: cpu_status}
        return Snapshot.build(readings, statuses, taken_at=taken_at)

    def test_equality_ignores_capture_time(self):
        assert self._snapshot(1.0) == self._snapshot(2.0)
        assert hash(self._snapshot(1.0)) == hash(self._snapshot(2.0))

    def test_usable_hides_degraded_values(self):
        assert self._snapshot(1.0).usable(FieldID.CPU_TEMP) == 55.0
        stale = self._snapshot(1.0, FieldStatus.STALE)
        assert stale.usable(FieldID.CPU_TEMP) is None
        assert stale.value(FieldID.CPU_TEMP) == 55.0

    def test_unknown_field_is_missing(self):
        snap = self._snapshot(1.0)
        assert snap.status(FieldID.WEATHER) == FieldStatus.MISSING
        assert snap.weather is None

    def test_readings_are_immutable(self):
        snap = self._snapshot(1.0)
        with pytest.raises(TypeError):
            snap.readings[FieldID.GPU_TEMP] = FieldReading()


class TestLocation:
    def test_name_fallbacks(self):
        assert Location(1.0, 2.0, city="Warsaw").name == "Warsaw"
        assert Location(1.0, 2.0, country="PL").name == "PL"
        assert Location(1.234, 5.678).name == "1.23,5.68"


class TestDeviceErrors:
    def test_transient_classification(self):
        assert DeviceTimeoutError("t").transient
        assert DeviceRejectedError("r").transient
        assert not DeviceDisconnectedError("d").transient
        assert DeviceTimeoutError("t").code == "DEVICE_TIMEOUT"
