"""
Frame Renderer - turns a snapshot or an image asset into RGB565 frames

Pure with respect to its input: the same snapshot (values and statuses)
or the same asset file always yields the same pixels. Nothing time-based
is drawn; the module's own clock is set with SetTimeCommand instead.
"""

from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple

import numpy as np
from PIL import Image, ImageDraw, ImageFont, ImageOps, ImageSequence, UnidentifiedImageError

from zoom_sync.models.config import DashboardConfig, DisplayConfig
from zoom_sync.models.enums import FieldID, FieldStatus
from zoom_sync.models.errors import UnsupportedAssetError
from zoom_sync.models.frame import DEFAULT_FRAME_DURATION_MS, Frame, FrameSequence
from zoom_sync.models.snapshot import Snapshot
from zoom_sync.utils.logger import get_logger, LogCategory
from zoom_sync.utils.units import celsius_to

log = get_logger().for_category(LogCategory.RENDER)

PLACEHOLDER = "--"
MIN_FRAME_DURATION_MS = 20

# What Pillow raises for files it can open but not decode
DECODE_ERRORS = (OSError, ValueError, EOFError, SyntaxError, Image.DecompressionBombError)

FONT_PATHS = (
    "/usr/share/fonts/truetype/dejavu/DejaVuSansMono.ttf",
    "/usr/share/fonts/TTF/DejaVuSansMono.ttf",
)

AGING_COLOR = (150, 150, 150)
LABEL_COLOR = (120, 180, 255)


@dataclass(frozen=True)
class ImageAsset:
    """Static image file rendered as a single frame"""
    path: str


@dataclass(frozen=True)
class AnimationAsset:
    """Animated file (GIF, APNG, WebP) rendered frame by frame"""
    path: str


def _load_font(size: int):
    for path in FONT_PATHS:
        try:
            return ImageFont.truetype(path, size)
        except (IOError, OSError):
            continue
    return ImageFont.load_default()


def normalize_duration(duration_ms) -> int:
    """GIF timing has 10 ms resolution; very short delays are clamped"""
    try:
        value = int(duration_ms)
    except (TypeError, ValueError):
        value = DEFAULT_FRAME_DURATION_MS
    if value <= 0:
        value = DEFAULT_FRAME_DURATION_MS
    return max(MIN_FRAME_DURATION_MS, int(round(value / 10.0)) * 10)


class FrameRenderer:
    """
    Renders dashboards and assets for the two upload slots

    Single frames use display.width x height; anything that becomes an
    animation (animated assets, paged dashboards) uses the animation size.

    render() dispatches on the input type:
        Snapshot        -> dashboard (one frame, or one per page)
        ImageAsset      -> one frame
        AnimationAsset  -> one frame per source frame (capped)
    """

    def __init__(self, display: DisplayConfig, dashboard: Optional[DashboardConfig] = None):
        self.display = display
        self.dashboard = dashboard or DashboardConfig()
        self.width = display.width
        self.height = display.height
        self.animation_size = (display.animation_width, display.animation_height)
        self._font = _load_font(max(10, self.height // 9))
        self._font_small = _load_font(max(8, self.height // 12))

    # ------------------------------------------------------------------
    # Dispatch
    # ------------------------------------------------------------------

    def render(self, source) -> FrameSequence:
        if isinstance(source, Snapshot):
            return self.render_snapshot(source)
        if isinstance(source, ImageAsset):
            return self.render_image(source.path)
        if isinstance(source, AnimationAsset):
            return self.render_animation(source.path)
        raise TypeError(f"Cannot render {type(source).__name__}")

    # ------------------------------------------------------------------
    # Dashboard
    # ------------------------------------------------------------------

    def _fmt_temp(self, snapshot: Snapshot, field: FieldID) -> str:
        value = snapshot.usable(field)
        if value is None:
            return PLACEHOLDER
        unit = self.dashboard.temperature_unit
        return f"{celsius_to(value, unit):.0f}°{unit.value}"

    def _fmt_rate(self, snapshot: Snapshot) -> str:
        value = snapshot.usable(FieldID.DOWNLOAD_RATE)
        if value is None:
            return PLACEHOLDER
        return f"{value:.1f}MB/s" if value < 100 else f"{value:.0f}MB/s"

    def _system_rows(self, snapshot: Snapshot) -> List[Tuple[str, str, FieldStatus]]:
        return [
            ("CPU", self._fmt_temp(snapshot, FieldID.CPU_TEMP), snapshot.status(FieldID.CPU_TEMP)),
            ("GPU", self._fmt_temp(snapshot, FieldID.GPU_TEMP), snapshot.status(FieldID.GPU_TEMP)),
            ("NET", self._fmt_rate(snapshot), snapshot.status(FieldID.DOWNLOAD_RATE)),
        ]

    def _weather_rows(self, snapshot: Snapshot) -> List[Tuple[str, str, FieldStatus]]:
        status = snapshot.status(FieldID.WEATHER)
        weather = snapshot.usable(FieldID.WEATHER)
        location = snapshot.usable(FieldID.LOCATION)
        unit = self.dashboard.temperature_unit

        if weather is None:
            rows = [("WX", PLACEHOLDER, status), ("", PLACEHOLDER, status)]
        else:
            low = celsius_to(weather.low, unit)
            high = celsius_to(weather.high, unit)
            rows = [
                ("WX", f"{celsius_to(weather.temp, unit):.0f}°{unit.value}", status),
                ("", f"{low:.0f}/{high:.0f} {weather.condition}", status),
            ]

        place = weather.location if weather is not None and weather.location else None
        if place is None and location is not None:
            place = location.name
        rows.append(("", place or PLACEHOLDER, snapshot.status(FieldID.LOCATION)))
        return rows

    def _draw_rows(self, rows: Sequence[Tuple[str, str, FieldStatus]], size: Optional[Tuple[int, int]] = None) -> Frame:
        width, height = size or (self.width, self.height)
        img = Image.new("RGB", (width, height), self.display.background)
        draw = ImageDraw.Draw(img)

        line_height = height // max(len(rows), 1)
        label_width = width // 3
        for i, (label, text, status) in enumerate(rows):
            y = i * line_height + 2
            color = AGING_COLOR if status == FieldStatus.AGING else self.display.foreground
            if label:
                draw.text((3, y), label, fill=LABEL_COLOR, font=self._font)
                draw.text((label_width + 3, y), text, fill=color, font=self._font)
            else:
                draw.text((3, y), text, fill=color, font=self._font_small)

        return Frame.from_rgb888(np.asarray(img), width, height)

    def render_snapshot(self, snapshot: Snapshot) -> FrameSequence:
        """
        Dashboard rendering

        Degraded fields (missing, stale, unavailable) show "--"; aging
        fields keep their value in a dimmer colour.
        """
        system = self._system_rows(snapshot)
        weather = self._weather_rows(snapshot)

        page_ms = self.dashboard.page_duration_ms
        if page_ms > 0:
            frames = [self._draw_rows(system, self.animation_size), self._draw_rows(weather, self.animation_size)]
            return FrameSequence.of(frames, [normalize_duration(page_ms)] * len(frames))

        return FrameSequence.single(self._draw_rows(system + weather))

    # ------------------------------------------------------------------
    # Assets
    # ------------------------------------------------------------------

    def _open(self, path: str) -> Image.Image:
        try:
            img = Image.open(path)
            img.load()
            return img
        except FileNotFoundError as e:
            raise UnsupportedAssetError(path, "file not found") from e
        except UnidentifiedImageError as e:
            raise UnsupportedAssetError(path, "not a recognised image format") from e
        except Image.DecompressionBombError as e:
            raise UnsupportedAssetError(path, "image too large to decode") from e
        except DECODE_ERRORS as e:
            raise UnsupportedAssetError(path, str(e)) from e

    def _fit(self, img: Image.Image, size: Tuple[int, int]) -> Image.Image:
        """Composite alpha on the background, then scale + centre-crop"""
        rgba = img.convert("RGBA")
        background = Image.new("RGBA", rgba.size, self.display.background + (255,))
        rgb = Image.alpha_composite(background, rgba).convert("RGB")
        return ImageOps.fit(rgb, size, Image.Resampling.LANCZOS, centering=(0.5, 0.5))

    def render_image(self, path: str) -> FrameSequence:
        img = self._open(path)
        try:
            fitted = self._fit(img, (self.width, self.height))
        except DECODE_ERRORS as e:
            raise UnsupportedAssetError(path, f"cannot convert image: {e}") from e
        log.debug("Image rendered", path=path, source_size=f"{img.width}x{img.height}")
        return FrameSequence.single(Frame.from_rgb888(np.asarray(fitted), self.width, self.height))

    def render_animation(self, path: str) -> FrameSequence:
        """
        One frame per source frame, each reduced to at most 256 colours

        Source frames beyond max_animation_frames are dropped.
        """
        img = self._open(path)
        width, height = self.animation_size
        frames: List[Frame] = []
        durations: List[int] = []

        try:
            for index, source_frame in enumerate(ImageSequence.Iterator(img)):
                if index >= self.display.max_animation_frames:
                    log.warn("Animation truncated", path=path, max_frames=self.display.max_animation_frames)
                    break
                fitted = self._limit_colors(self._fit(source_frame, self.animation_size))
                frames.append(Frame.from_rgb888(np.asarray(fitted), width, height))
                durations.append(normalize_duration(source_frame.info.get("duration", DEFAULT_FRAME_DURATION_MS)))
        except DECODE_ERRORS as e:
            raise UnsupportedAssetError(path, f"corrupt animation: {e}") from e

        if not frames:
            raise UnsupportedAssetError(path, "no frames")

        log.debug("Animation rendered", path=path, frames=len(frames))
        return FrameSequence.of(frames, durations)

    @staticmethod
    def _limit_colors(img: Image.Image) -> Image.Image:
        if img.getcolors(256) is not None:
            return img
        return img.quantize(colors=256, method=Image.Quantize.MEDIANCUT, dither=Image.Dither.NONE).convert("RGB")

    # ------------------------------------------------------------------
    # Fallback
    # ------------------------------------------------------------------

    def placeholder(self, text: str = PLACEHOLDER) -> FrameSequence:
        """Single fallback frame with centred text"""
        img = Image.new("RGB", (self.width, self.height), self.display.background)
        draw = ImageDraw.Draw(img)
        left, top, right, bottom = draw.textbbox((0, 0), text, font=self._font)
        x = (self.width - (right - left)) // 2 - left
        y = (self.height - (bottom - top)) // 2 - top
        draw.text((x, y), text, fill=self.display.foreground, font=self._font)
        return FrameSequence.single(Frame.from_rgb888(np.asarray(img), self.width, self.height))
