"""
Config Manager

Loads config.yaml (with optional include: list) and builds the frozen
SyncConfig the rest of the engine consumes.
"""

from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Tuple, Union

import yaml

from zoom_sync.models.config import (
    AssetConfig,
    DashboardConfig,
    DeviceConfig,
    DisplayConfig,
    InputConfig,
    ProviderConfig,
    SyncConfig,
    SyncTimingConfig,
)
from zoom_sync.models.enums import DeviceBackend, DisplayMode, FieldID, TemperatureUnit
from zoom_sync.models.errors import ConfigError
from zoom_sync.utils.enum_helper import EnumHelper
from zoom_sync.utils.logger import get_logger, LogCategory

log = get_logger().for_category(LogCategory.CONFIG)

PACKAGE_DIR = Path(__file__).parent.parent

# Field fed by each built-in provider type unless `field:` overrides it
DEFAULT_PROVIDER_FIELDS = {
    "cpu_temp": FieldID.CPU_TEMP,
    "gpu_temp": FieldID.GPU_TEMP,
    "download_rate": FieldID.DOWNLOAD_RATE,
    "geolocation": FieldID.LOCATION,
    "weather": FieldID.WEATHER,
}


class ConfigManager:
    """
    Main configuration manager with include system support

    Example:
        manager = ConfigManager()
        manager.load()
        config = manager.config          # SyncConfig
        raw = manager.data               # merged dict
    """

    def __init__(
        self,
        config_path: Union[str, Path, None] = None,
        defaults_path: Union[str, Path] = "config/factory_defaults.yaml",
    ):
        """
        Args:
            config_path: Main config file. None uses the bundled config/config.yaml.
            defaults_path: Fallback file, relative to the package when not absolute
        """
        self.config_path = Path(config_path) if config_path else PACKAGE_DIR / "config" / "config.yaml"
        defaults = Path(defaults_path)
        self.factory_defaults_path = defaults if defaults.is_absolute() else PACKAGE_DIR / defaults
        self.data: Dict[str, Any] = {}
        self.config: Optional[SyncConfig] = None
        self.used_defaults = False

    def load(self) -> SyncConfig:
        """
        Load YAML configuration and build SyncConfig

        Process:
        1. Load the main config file
        2. If it has an 'include:' list, load and merge those files in order
           (keys in the main file override included ones)
        3. Fall back to factory defaults when the main file cannot be read
        4. Validate into dataclasses (ConfigError on bad values)
        """
        try:
            main_config = self._read_yaml(self.config_path)

            if "include" in main_config:
                log.info("Using include-based configuration", path=str(self.config_path))
                merged = self._load_with_includes(main_config["include"], self.config_path.parent)
                merged.update({k: v for k, v in main_config.items() if k != "include"})
                self.data = merged
            else:
                log.info("Using monolithic configuration", path=str(self.config_path))
                self.data = main_config

        except (OSError, yaml.YAMLError) as ex:
            log.error("Failed to load config", path=str(self.config_path), error=str(ex), error_type=type(ex).__name__)
            log.warn("Falling back to factory defaults")
            self.data = self._read_yaml(self.factory_defaults_path)
            self.used_defaults = True

        self.config = self.build(self.data)
        log.info(
            "Configuration ready",
            backend=self.config.device.backend.value,
            providers=", ".join(p.name for p in self.config.providers if p.enabled) or "none",
            modes=", ".join(m.name for m in self.config.modes),
        )
        return self.config

    @staticmethod
    def _read_yaml(path: Path) -> Dict[str, Any]:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
        if data is None:
            return {}
        if not isinstance(data, dict):
            raise ConfigError(f"{path.name} must contain a mapping at the top level")
        return data

    def _load_with_includes(self, include_list: List[str], config_dir: Path) -> Dict[str, Any]:
        """Merge included files in order (later files win per top-level key)"""
        if not isinstance(include_list, list):
            raise ConfigError("include: must be a list of file names", key="include")

        merged: Dict[str, Any] = {}
        for filename in include_list:
            filepath = config_dir / filename
            try:
                file_data = self._read_yaml(filepath)
            except FileNotFoundError:
                log.error(f"File not found: {filename}")
                raise
            merged.update(file_data)
            log.info(f"Loaded {filename}", keys=str(list(file_data.keys())))

        log.info("Config merge complete", total_keys=len(merged))
        return merged

    # ------------------------------------------------------------------
    # dict -> dataclasses
    # ------------------------------------------------------------------

    @classmethod
    def build(cls, data: Mapping[str, Any]) -> SyncConfig:
        """Validate a merged config dict. Raises ConfigError."""
        sync_data = cls._section(data, "sync")
        modes = cls._modes(sync_data.get("modes", ["dashboard"]))
        initial_mode = cls._enum(DisplayMode, sync_data.get("initial_mode", modes[0].name), "sync.initial_mode")

        assets = cls._assets(cls._section(data, "assets"))
        for mode in set(modes) | {initial_mode}:
            if mode == DisplayMode.IMAGE and not assets.image:
                log.warn("Image mode enabled without assets.image; placeholder will be shown")
            if mode == DisplayMode.ANIMATION and not assets.animation:
                log.warn("Animation mode enabled without assets.animation; placeholder will be shown")

        return SyncConfig(
            display=cls._display(cls._section(data, "display")),
            dashboard=cls._dashboard(cls._section(data, "dashboard")),
            sync=cls._timing(sync_data),
            device=cls._device(cls._section(data, "device")),
            providers=cls._providers(data.get("providers") or {}),
            input=cls._input(cls._section(data, "input")),
            assets=assets,
            modes=modes,
            initial_mode=initial_mode,
        )

    # === Helpers ===

    @staticmethod
    def _section(data: Mapping[str, Any], key: str) -> Mapping[str, Any]:
        value = data.get(key) or {}
        if not isinstance(value, dict):
            raise ConfigError(f"'{key}' must be a mapping", key=key)
        return value

    @staticmethod
    def _number(section: Mapping[str, Any], key: str, default, path: str, minimum: float = 0, integer: bool = False):
        value = section.get(key, default)
        if value is None:
            return None
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise ConfigError(f"{path}.{key} must be a number, got {value!r}", key=f"{path}.{key}")
        if value < minimum:
            raise ConfigError(f"{path}.{key} must be >= {minimum}, got {value}", key=f"{path}.{key}")
        if integer:
            if int(value) != value:
                raise ConfigError(f"{path}.{key} must be an integer, got {value}", key=f"{path}.{key}")
            return int(value)
        return float(value)

    @staticmethod
    def _enum(enum_class, value, path: str):
        try:
            return EnumHelper.to_enum(enum_class, value)
        except (ValueError, TypeError) as e:
            choices = ", ".join(EnumHelper.list_names(enum_class, lowercase=True))
            raise ConfigError(f"{path}: invalid value {value!r} (choose from {choices})", key=path) from e

    @staticmethod
    def _color(value, path: str) -> Tuple[int, int, int]:
        if not isinstance(value, (list, tuple)) or len(value) != 3 or not all(
            isinstance(c, int) and 0 <= c <= 255 for c in value
        ):
            raise ConfigError(f"{path} must be [r, g, b] with 0-255 components", key=path)
        return tuple(value)

    @classmethod
    def _modes(cls, value) -> Tuple[DisplayMode, ...]:
        if not isinstance(value, list) or not value:
            raise ConfigError("sync.modes must be a non-empty list", key="sync.modes")
        modes = tuple(cls._enum(DisplayMode, m, "sync.modes") for m in value)
        if len(set(modes)) != len(modes):
            raise ConfigError("sync.modes contains duplicates", key="sync.modes")
        return modes

    @staticmethod
    def _byte_list(value, path: str) -> Tuple[int, ...]:
        if value is None:
            return ()
        if not isinstance(value, list) or not all(isinstance(b, int) and 0 <= b <= 255 for b in value):
            raise ConfigError(f"{path} must be a list of byte values", key=path)
        return tuple(value)

    # === Sections ===

    @classmethod
    def _display(cls, s: Mapping[str, Any]) -> DisplayConfig:
        d = DisplayConfig()
        return DisplayConfig(
            width=cls._number(s, "width", d.width, "display", minimum=1, integer=True),
            height=cls._number(s, "height", d.height, "display", minimum=1, integer=True),
            animation_width=cls._number(s, "animation_width", d.animation_width, "display", minimum=1, integer=True),
            animation_height=cls._number(s, "animation_height", d.animation_height, "display", minimum=1, integer=True),
            max_payload_bytes=cls._number(s, "max_payload_bytes", d.max_payload_bytes, "display", minimum=1, integer=True),
            max_animation_frames=cls._number(s, "max_animation_frames", d.max_animation_frames, "display", minimum=1, integer=True),
            background=cls._color(s.get("background", list(d.background)), "display.background"),
            foreground=cls._color(s.get("foreground", list(d.foreground)), "display.foreground"),
        )

    @classmethod
    def _dashboard(cls, s: Mapping[str, Any]) -> DashboardConfig:
        return DashboardConfig(
            page_duration_ms=cls._number(s, "page_duration_ms", 0, "dashboard", integer=True),
            temperature_unit=cls._enum(TemperatureUnit, s.get("temperature_unit", "C"), "dashboard.temperature_unit"),
        )

    @classmethod
    def _timing(cls, s: Mapping[str, Any]) -> SyncTimingConfig:
        d = SyncTimingConfig()
        flags = {}
        for name in ("send_commands", "select_screen"):
            value = s.get(name, getattr(d, name))
            if not isinstance(value, bool):
                raise ConfigError(f"sync.{name} must be true or false", key=f"sync.{name}")
            flags[name] = value
        return SyncTimingConfig(
            refresh_interval=cls._number(s, "refresh_interval", d.refresh_interval, "sync", minimum=0.01),
            reconnect_backoff=cls._number(s, "reconnect_backoff", d.reconnect_backoff, "sync"),
            reconnect_backoff_max=cls._number(s, "reconnect_backoff_max", d.reconnect_backoff_max, "sync"),
            reconnect_attempts=cls._number(s, "reconnect_attempts", d.reconnect_attempts, "sync", minimum=1, integer=True),
            persistent_retry_interval=cls._number(s, "persistent_retry_interval", d.persistent_retry_interval, "sync", minimum=0.01),
            send_attempts=cls._number(s, "send_attempts", d.send_attempts, "sync", minimum=1, integer=True),
            send_backoff=cls._number(s, "send_backoff", d.send_backoff, "sync"),
            device_timeout=cls._number(s, "device_timeout", d.device_timeout, "sync", minimum=0.01),
            **flags,
        )

    @classmethod
    def _device(cls, s: Mapping[str, Any]) -> DeviceConfig:
        backend = cls._enum(DeviceBackend, s.get("backend", "virtual"), "device.backend")

        commands: Dict[str, Tuple[int, int]] = {}
        raw_commands = s.get("commands") or {}
        if not isinstance(raw_commands, dict):
            raise ConfigError("device.commands must be a mapping", key="device.commands")
        for name, method_id in raw_commands.items():
            ids = cls._byte_list(method_id, f"device.commands.{name}")
            if len(ids) != 2:
                raise ConfigError(f"device.commands.{name} must be two bytes", key=f"device.commands.{name}")
            commands[name] = ids

        approved = s.get("approved_versions") or []
        if not isinstance(approved, list) or not all(isinstance(v, int) for v in approved):
            raise ConfigError("device.approved_versions must be a list of integers", key="device.approved_versions")

        return DeviceConfig(
            backend=backend,
            vendor_id=cls._number(s, "vendor_id", None, "device", integer=True),
            product_id=cls._number(s, "product_id", None, "device", integer=True),
            usage_page=cls._number(s, "usage_page", None, "device", integer=True),
            usage=cls._number(s, "usage", None, "device", integer=True),
            approved_versions=tuple(approved),
            version_command=cls._byte_list(s.get("version_command"), "device.version_command"),
            commands=commands,
            chunk_size=cls._number(s, "chunk_size", 24, "device", minimum=1, integer=True),
            simulated_latency=cls._number(s, "simulated_latency", 0.0, "device"),
        )

    @classmethod
    def _providers(cls, raw) -> Tuple[ProviderConfig, ...]:
        if not isinstance(raw, dict):
            raise ConfigError("providers must be a mapping of provider name to settings", key="providers")

        providers = []
        for name, settings in raw.items():
            settings = settings or {}
            path = f"providers.{name}"
            if not isinstance(settings, dict):
                raise ConfigError(f"{path} must be a mapping", key=path)

            if "field" in settings:
                field = cls._enum(FieldID, settings["field"], f"{path}.field")
            elif name in DEFAULT_PROVIDER_FIELDS:
                field = DEFAULT_PROVIDER_FIELDS[name]
            else:
                raise ConfigError(f"{path}.field is required for custom providers", key=f"{path}.field")

            options = settings.get("options") or {}
            if not isinstance(options, dict):
                raise ConfigError(f"{path}.options must be a mapping", key=f"{path}.options")

            providers.append(ProviderConfig(
                name=name,
                field=field,
                enabled=bool(settings.get("enabled", True)),
                interval=cls._number(settings, "interval", 5.0, path, minimum=0.01),
                timeout=cls._number(settings, "timeout", 5.0, path, minimum=0.01),
                freshness=cls._number(settings, "freshness", 60.0, path, minimum=0.01),
                backoff_base=cls._number(settings, "backoff_base", 1.0, path),
                backoff_max=cls._number(settings, "backoff_max", 300.0, path),
                options=options,
            ))

        fields = [p.field for p in providers if p.enabled]
        duplicates = {f.name for f in fields if fields.count(f) > 1}
        if duplicates:
            raise ConfigError(f"Several enabled providers feed {', '.join(sorted(duplicates))}", key="providers")
        return tuple(providers)

    @classmethod
    def _input(cls, s: Mapping[str, Any]) -> InputConfig:
        triggers = s.get("triggers") or {}
        if not isinstance(triggers, dict):
            raise ConfigError("input.triggers must map key combos to actions", key="input.triggers")
        return InputConfig(
            enabled=bool(s.get("enabled", True)),
            device_name=s.get("device_name"),
            triggers={str(k): str(v) for k, v in triggers.items()},
        )

    @staticmethod
    def _assets(s: Mapping[str, Any]) -> AssetConfig:
        def resolve(value) -> Optional[str]:
            if not value:
                return None
            return str(Path(value).expanduser())

        return AssetConfig(image=resolve(s.get("image")), animation=resolve(s.get("animation")))
