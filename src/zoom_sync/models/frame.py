"""
Frame models - pixel buffers in the screen module's native colour format

Frame          - one full-resolution RGB565 buffer
FrameSequence  - ordered frames plus per-frame durations (animation)
EncodedPayload - wire-ready bytes produced by the encoder
"""

from __future__ import annotations

import hashlib
from dataclasses import dataclass, field
from typing import Sequence, Tuple

import numpy as np

from zoom_sync.models.enums import PayloadKind
from zoom_sync.models.errors import DimensionMismatchError


DEFAULT_FRAME_DURATION_MS = 100


def rgb888_to_rgb565(rgb: np.ndarray) -> np.ndarray:
    """Pack an (H, W, 3) uint8 array into (H, W) uint16 RGB565"""
    r = (rgb[..., 0].astype(np.uint16) >> 3) << 11
    g = (rgb[..., 1].astype(np.uint16) >> 2) << 5
    b = rgb[..., 2].astype(np.uint16) >> 3
    return (r | g | b).astype(np.uint16)


def rgb565_to_rgb888(pixels: np.ndarray) -> np.ndarray:
    """
    Expand RGB565 to RGB888 by bit replication

    5-bit 0b11111 -> 0xFF, 0b00000 -> 0x00, so white and black survive
    the round trip exactly.
    """
    p = pixels.astype(np.uint16)
    r5 = (p >> 11) & 0x1F
    g6 = (p >> 5) & 0x3F
    b5 = p & 0x1F
    r = (r5 << 3) | (r5 >> 2)
    g = (g6 << 2) | (g6 >> 4)
    b = (b5 << 3) | (b5 >> 2)
    return np.stack([r, g, b], axis=-1).astype(np.uint8)


class Frame:
    """
    Fixed-resolution RGB565 pixel buffer

    Always fully populated: construction takes a complete (height, width)
    buffer and rejects anything else. The stored array is read-only.
    """

    __slots__ = ("_pixels",)

    def __init__(self, pixels: np.ndarray, width: int, height: int):
        arr = np.asarray(pixels)
        if arr.ndim != 2 or arr.shape != (height, width):
            actual = (arr.shape[1], arr.shape[0]) if arr.ndim == 2 else (arr.size, 1)
            raise DimensionMismatchError((width, height), actual)
        arr = np.ascontiguousarray(arr, dtype=np.uint16).copy()
        arr.setflags(write=False)
        self._pixels = arr

    @classmethod
    def from_rgb888(cls, rgb: np.ndarray, width: int, height: int) -> "Frame":
        arr = np.asarray(rgb, dtype=np.uint8)
        if arr.ndim != 3 or arr.shape[:2] != (height, width) or arr.shape[2] != 3:
            raise DimensionMismatchError((width, height), (arr.shape[1], arr.shape[0]) if arr.ndim >= 2 else (0, 0))
        return cls(rgb888_to_rgb565(arr), width, height)

    @classmethod
    def solid(cls, width: int, height: int, value: int = 0) -> "Frame":
        return cls(np.full((height, width), value, dtype=np.uint16), width, height)

    @property
    def pixels(self) -> np.ndarray:
        return self._pixels

    @property
    def width(self) -> int:
        return self._pixels.shape[1]

    @property
    def height(self) -> int:
        return self._pixels.shape[0]

    @property
    def size(self) -> Tuple[int, int]:
        return self.width, self.height

    def to_rgb888(self) -> np.ndarray:
        return rgb565_to_rgb888(self._pixels)

    def tobytes(self) -> bytes:
        return self._pixels.tobytes()

    def __eq__(self, other) -> bool:
        if not isinstance(other, Frame):
            return NotImplemented
        return self._pixels.shape == other._pixels.shape and bool(np.array_equal(self._pixels, other._pixels))

    def __hash__(self) -> int:
        return hash((self._pixels.shape, self._pixels.tobytes()))

    def __repr__(self) -> str:
        return f"Frame({self.width}x{self.height})"


@dataclass(frozen=True)
class FrameSequence:
    """Ordered frames with per-frame display durations"""

    frames: Tuple[Frame, ...]
    durations_ms: Tuple[int, ...] = ()

    def __post_init__(self):
        frames = tuple(self.frames)
        if not frames:
            raise ValueError("FrameSequence needs at least one frame")
        size = frames[0].size
        for frame in frames[1:]:
            if frame.size != size:
                raise DimensionMismatchError(size, frame.size)
        durations = tuple(int(d) for d in self.durations_ms) or (DEFAULT_FRAME_DURATION_MS,) * len(frames)
        if len(durations) != len(frames):
            raise ValueError(f"{len(frames)} frames but {len(durations)} durations")
        object.__setattr__(self, "frames", frames)
        object.__setattr__(self, "durations_ms", durations)

    @classmethod
    def single(cls, frame: Frame) -> "FrameSequence":
        return cls(frames=(frame,), durations_ms=(0,))

    @classmethod
    def of(cls, frames: Sequence[Frame], durations_ms: Sequence[int]) -> "FrameSequence":
        return cls(frames=tuple(frames), durations_ms=tuple(durations_ms))

    @property
    def is_animated(self) -> bool:
        return len(self.frames) > 1

    @property
    def width(self) -> int:
        return self.frames[0].width

    @property
    def height(self) -> int:
        return self.frames[0].height

    def __len__(self) -> int:
        return len(self.frames)

    def __iter__(self):
        return iter(self.frames)


@dataclass(frozen=True)
class EncodedPayload:
    """Wire-ready payload for one upload slot on the screen module"""

    kind: PayloadKind
    data: bytes
    width: int
    height: int
    frame_count: int = 1
    durations_ms: Tuple[int, ...] = ()
    digest: str = field(default="", compare=False)

    def __post_init__(self):
        if not self.digest:
            h = hashlib.sha1()
            h.update(self.kind.name.encode())
            h.update(self.data)
            object.__setattr__(self, "digest", h.hexdigest())

    @property
    def size(self) -> int:
        return len(self.data)

    def __repr__(self) -> str:
        return (f"EncodedPayload(kind={self.kind.name}, {self.width}x{self.height}, "
                f"frames={self.frame_count}, bytes={len(self.data)}, digest={self.digest[:8]})")
