import numpy as np
import pytest

from zoom_sync.engine.encoder import FrameEncoder
from zoom_sync.models.config import DisplayConfig
from zoom_sync.models.enums import PayloadKind
from zoom_sync.models.errors import PayloadTooLargeError, RenderError
from zoom_sync.models.frame import Frame, FrameSequence

PALETTE = np.array([0x0000, 0xFFFF, 0xF800, 0x07E0, 0x001F, 0x8410, 0x1234, 0xBEEF], dtype=np.uint16)


def random_frame(width, height, seed, values=None):
    rng = np.random.default_rng(seed)
    if values is None:
        pixels = rng.integers(0, 0x10000, size=(height, width), dtype=np.uint16)
    else:
        pixels = rng.choice(values, size=(height, width))
    return Frame(pixels, width, height)


@pytest.fixture
def encoder(small_display):
    return FrameEncoder(small_display)


def test_raw_layout_is_low_high_alpha(encoder):
    frame = Frame(np.full((12, 16), 0xF800, dtype=np.uint16), 16, 12)
    payload = encoder.encode(FrameSequence.single(frame))

    assert payload.kind == PayloadKind.IMAGE
    assert payload.size == 16 * 12 * 3
    assert payload.data[:3] == bytes([0x00, 0xF8, 0xFF])


def test_raw_round_trip(encoder):
    frame = random_frame(16, 12, seed=1)
    payload = encoder.encode(FrameSequence.single(frame))
    assert encoder.decode(payload).frames == (frame,)


def test_gif_round_trip(encoder):
    frames = [random_frame(16, 12, seed=s, values=PALETTE) for s in range(3)]
    payload = encoder.encode(FrameSequence.of(frames, [100, 200, 300]))

    assert payload.kind == PayloadKind.ANIMATION
    assert payload.data[:6] == b"GIF89a"
    assert payload.frame_count == 3

    decoded = encoder.decode(payload)
    assert decoded.frames == tuple(frames)
    assert decoded.durations_ms == (100, 200, 300)


def test_encoding_is_deterministic(encoder):
    frames = [random_frame(16, 12, seed=s, values=PALETTE) for s in range(2)]
    seq = FrameSequence.of(frames, [100, 100])
    first, second = encoder.encode(seq), encoder.encode(seq)
    assert first.data == second.data
    assert first.digest == second.digest


def test_repeated_frames_are_collapsed(encoder):
    a = random_frame(16, 12, seed=1, values=PALETTE)
    b = random_frame(16, 12, seed=2, values=PALETTE)
    payload = encoder.encode(FrameSequence.of([a, a, b], [100, 100, 200]))

    assert payload.frame_count == 2
    assert payload.durations_ms == (200, 200)


def test_identical_frames_become_an_image(encoder):
    a = random_frame(16, 12, seed=1)
    payload = encoder.encode(FrameSequence.of([a, a, a], [100, 100, 100]))
    assert payload.kind == PayloadKind.IMAGE


def test_payload_too_large():
    encoder = FrameEncoder(DisplayConfig(width=16, height=12, max_payload_bytes=100))
    with pytest.raises(PayloadTooLargeError) as exc:
        encoder.encode(FrameSequence.single(random_frame(16, 12, seed=0)))
    assert exc.value.details["size"] == 16 * 12 * 3


def test_full_size_image_fits_default_limit(display):
    encoder = FrameEncoder(display)
    payload = encoder.encode(FrameSequence.single(Frame.solid(110, 110)))
    assert payload.size == 110 * 110 * 3


def test_too_many_colours_for_gif():
    encoder = FrameEncoder(DisplayConfig(width=32, height=32))
    a = random_frame(32, 32, seed=1)
    b = random_frame(32, 32, seed=2)
    with pytest.raises(RenderError) as exc:
        encoder.encode(FrameSequence.of([a, b], [100, 100]))
    assert exc.value.code == "TOO_MANY_COLORS"


@pytest.mark.parametrize("limit, accepted", [
    (16 * 12 * 3, False),
    (16 * 12 * 3 + 1, True),
])
def test_limit_is_exclusive(limit, accepted):
    encoder = FrameEncoder(DisplayConfig(width=16, height=12, max_payload_bytes=limit))
    sequence = FrameSequence.single(random_frame(16, 12, seed=0))
    if accepted:
        assert encoder.encode(sequence).size == limit - 1
    else:
        with pytest.raises(PayloadTooLargeError):
            encoder.encode(sequence)


def test_collapsed_animation_is_scaled_to_image_slot(encoder):
    still = Frame(np.full((17, 17), 0x07E0, dtype=np.uint16), 17, 17)
    payload = encoder.encode(FrameSequence.of([still, still], [100, 100]))

    assert payload.kind == PayloadKind.IMAGE
    assert (payload.width, payload.height) == (16, 12)
    assert payload.size == 16 * 12 * 3
    assert np.all(encoder.decode(payload).frames[0].pixels == 0x07E0)
