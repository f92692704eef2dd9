"""
Configuration models - immutable, validated view of config.yaml

ConfigManager loads YAML into a dict and builds these dataclasses once at
startup. Nothing downstream reads the raw dict.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional, Tuple

from zoom_sync.models.enums import DeviceBackend, DisplayMode, FieldID, TemperatureUnit


@dataclass(frozen=True)
class DisplayConfig:
    """
    Screen geometry and payload limits

    The image slot takes width x height; the animation slot has its own
    size (111x111 on the Zoom65 v3).
    """
    width: int = 110
    height: int = 110
    animation_width: int = 111
    animation_height: int = 111
    max_payload_bytes: int = 1013808
    max_animation_frames: int = 120
    background: Tuple[int, int, int] = (0, 0, 0)
    foreground: Tuple[int, int, int] = (255, 255, 255)


@dataclass(frozen=True)
class DashboardConfig:
    page_duration_ms: int = 0
    temperature_unit: TemperatureUnit = TemperatureUnit.CELSIUS


@dataclass(frozen=True)
class SyncTimingConfig:
    """Sync coordinator cadence, retry and backoff settings (seconds)"""
    refresh_interval: float = 60.0
    reconnect_backoff: float = 1.0
    reconnect_backoff_max: float = 30.0
    reconnect_attempts: int = 5
    persistent_retry_interval: float = 60.0
    send_attempts: int = 3
    send_backoff: float = 0.5
    device_timeout: float = 5.0
    send_commands: bool = True
    select_screen: bool = True


@dataclass(frozen=True)
class DeviceConfig:
    """
    Screen module transport settings

    commands maps command names (set_time, upload_start, ...) to their
    2-byte method ids. version_command is the raw report that asks the
    firmware for its version byte.
    """
    backend: DeviceBackend = DeviceBackend.VIRTUAL
    vendor_id: Optional[int] = None
    product_id: Optional[int] = None
    usage_page: Optional[int] = None
    usage: Optional[int] = None
    approved_versions: Tuple[int, ...] = ()
    version_command: Tuple[int, ...] = ()
    commands: Mapping[str, Tuple[int, int]] = field(default_factory=dict)
    chunk_size: int = 24
    simulated_latency: float = 0.0


@dataclass(frozen=True)
class ProviderConfig:
    """One data provider entry from providers:"""
    name: str
    field: FieldID
    enabled: bool = True
    interval: float = 5.0
    timeout: float = 5.0
    freshness: Optional[float] = 60.0
    backoff_base: float = 1.0
    backoff_max: float = 300.0
    options: Mapping[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class InputConfig:
    enabled: bool = True
    device_name: Optional[str] = None
    triggers: Mapping[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class AssetConfig:
    image: Optional[str] = None
    animation: Optional[str] = None


@dataclass(frozen=True)
class SyncConfig:
    """Root configuration object, consumed once at coordinator construction"""
    display: DisplayConfig = field(default_factory=DisplayConfig)
    dashboard: DashboardConfig = field(default_factory=DashboardConfig)
    sync: SyncTimingConfig = field(default_factory=SyncTimingConfig)
    device: DeviceConfig = field(default_factory=DeviceConfig)
    providers: Tuple[ProviderConfig, ...] = ()
    input: InputConfig = field(default_factory=InputConfig)
    assets: AssetConfig = field(default_factory=AssetConfig)
    modes: Tuple[DisplayMode, ...] = (DisplayMode.DASHBOARD,)
    initial_mode: DisplayMode = DisplayMode.DASHBOARD

    def freshness_thresholds(self) -> Dict[FieldID, Optional[float]]:
        return {p.field: p.freshness for p in self.providers}

    def provider(self, name: str) -> Optional[ProviderConfig]:
        for p in self.providers:
            if p.name == name:
                return p
        return None
