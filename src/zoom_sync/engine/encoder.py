"""
Frame Encoder - FrameSequence <-> wire payload

IMAGE payload (single frame):
    per pixel: RGB565 low byte, RGB565 high byte, alpha (0xFF)
ANIMATION payload (several frames):
    GIF, one exact local palette per frame, per-frame delays, infinite loop

Both directions are deterministic. Decoding recovers every RGB565 value;
the GIF palette carries the bit-replicated RGB888 expansion, which maps
back onto the same RGB565 value.
"""

import io
from typing import List, Tuple

import numpy as np
from PIL import Image, ImageSequence

from zoom_sync.models.config import DisplayConfig
from zoom_sync.models.enums import PayloadKind
from zoom_sync.models.errors import DimensionMismatchError, PayloadTooLargeError, RenderError
from zoom_sync.models.frame import DEFAULT_FRAME_DURATION_MS, EncodedPayload, Frame, FrameSequence
from zoom_sync.utils.logger import get_logger, LogCategory

log = get_logger().for_category(LogCategory.RENDER)

ALPHA_OPAQUE = 0xFF
BYTES_PER_PIXEL = 3
MAX_PALETTE = 256


def _collapse_repeats(sequence: FrameSequence) -> Tuple[List[Frame], List[int]]:
    """Merge identical consecutive frames, summing their delays"""
    frames: List[Frame] = []
    durations: List[int] = []
    for frame, duration in zip(sequence.frames, sequence.durations_ms):
        if frames and frames[-1] == frame:
            durations[-1] += duration
        else:
            frames.append(frame)
            durations.append(duration)
    return frames, durations


class FrameEncoder:
    """Serialises frame sequences into the screen module's upload formats"""

    def __init__(self, display: DisplayConfig):
        self.display = display
        self.max_payload_bytes = display.max_payload_bytes

    # ------------------------------------------------------------------
    # Encode
    # ------------------------------------------------------------------

    def encode(self, sequence: FrameSequence) -> EncodedPayload:
        """
        Raises:
            PayloadTooLargeError: encoded size is max_payload_bytes or more
            RenderError: a frame has more than 256 colours (animation only)
        """
        frames, durations = _collapse_repeats(sequence)

        if len(frames) == 1:
            frame = self._to_image_size(frames[0])
            payload = EncodedPayload(
                kind=PayloadKind.IMAGE,
                data=self._encode_raw(frame),
                width=frame.width,
                height=frame.height,
                frame_count=1,
                durations_ms=(0,),
            )
        else:
            payload = EncodedPayload(
                kind=PayloadKind.ANIMATION,
                data=self._encode_gif(frames, durations),
                width=sequence.width,
                height=sequence.height,
                frame_count=len(frames),
                durations_ms=tuple(durations),
            )

        if payload.size >= self.max_payload_bytes:
            raise PayloadTooLargeError(payload.size, self.max_payload_bytes)

        log.debug("Payload encoded", kind=payload.kind.name, bytes=payload.size, frames=payload.frame_count)
        return payload

    def _to_image_size(self, frame: Frame) -> Frame:
        """An animation that collapsed to one frame still has to fit the image slot"""
        size = (self.display.width, self.display.height)
        if frame.size == size:
            return frame
        img = Image.fromarray(frame.to_rgb888()).resize(size, Image.Resampling.LANCZOS)
        return Frame.from_rgb888(np.asarray(img), *size)

    @staticmethod
    def _encode_raw(frame: Frame) -> bytes:
        pixels = frame.pixels.reshape(-1)
        out = np.empty((pixels.size, BYTES_PER_PIXEL), dtype=np.uint8)
        out[:, 0] = pixels & 0xFF
        out[:, 1] = pixels >> 8
        out[:, 2] = ALPHA_OPAQUE
        return out.tobytes()

    @staticmethod
    def _to_palette_image(frame: Frame) -> Image.Image:
        colors, indices = np.unique(frame.pixels.reshape(-1), return_inverse=True)
        if colors.size > MAX_PALETTE:
            raise RenderError(
                code="TOO_MANY_COLORS",
                message=f"Animation frame has {colors.size} colours (max {MAX_PALETTE})",
                details={"colors": int(colors.size)},
            )

        expanded = Frame(colors.reshape(1, -1), colors.size, 1).to_rgb888().reshape(-1, 3)
        palette = np.zeros((MAX_PALETTE, 3), dtype=np.uint8)
        palette[: colors.size] = expanded

        # putpalette turns the "L" index image into a "P" image
        img = Image.fromarray(indices.reshape(frame.height, frame.width).astype(np.uint8))
        img.putpalette(palette.reshape(-1).tolist())
        return img

    def _encode_gif(self, frames: List[Frame], durations: List[int]) -> bytes:
        images = [self._to_palette_image(f) for f in frames]
        buf = io.BytesIO()
        images[0].save(
            buf,
            format="GIF",
            save_all=True,
            append_images=images[1:],
            duration=list(durations),
            loop=0,
            optimize=False,
            disposal=1,
        )
        return buf.getvalue()

    # ------------------------------------------------------------------
    # Decode (round-trip verification, previews)
    # ------------------------------------------------------------------

    def decode(self, payload: EncodedPayload) -> FrameSequence:
        if payload.kind == PayloadKind.IMAGE:
            return FrameSequence.single(self._decode_raw(payload))
        return self._decode_gif(payload)

    @staticmethod
    def _decode_raw(payload: EncodedPayload) -> Frame:
        expected = payload.width * payload.height * BYTES_PER_PIXEL
        if len(payload.data) != expected:
            raise DimensionMismatchError(
                (payload.width, payload.height),
                (len(payload.data) // BYTES_PER_PIXEL, 1),
            )
        raw = np.frombuffer(payload.data, dtype=np.uint8).reshape(-1, BYTES_PER_PIXEL)
        pixels = raw[:, 0].astype(np.uint16) | (raw[:, 1].astype(np.uint16) << 8)
        return Frame(pixels.reshape(payload.height, payload.width), payload.width, payload.height)

    @staticmethod
    def _decode_gif(payload: EncodedPayload) -> FrameSequence:
        frames: List[Frame] = []
        durations: List[int] = []
        with Image.open(io.BytesIO(payload.data)) as img:
            for gif_frame in ImageSequence.Iterator(img):
                rgb = np.asarray(gif_frame.convert("RGB"))
                frames.append(Frame.from_rgb888(rgb, payload.width, payload.height))
                durations.append(int(gif_frame.info.get("duration", DEFAULT_FRAME_DURATION_MS)))
        return FrameSequence.of(frames, durations)
