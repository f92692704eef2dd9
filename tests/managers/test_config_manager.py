import textwrap

import pytest

from zoom_sync.managers.config_manager import ConfigManager
from zoom_sync.models.enums import DeviceBackend, DisplayMode, FieldID, TemperatureUnit
from zoom_sync.models.errors import ConfigError


def write(path, text):
    path.write_text(textwrap.dedent(text), encoding="utf-8")
    return path


def test_bundled_config_loads():
    manager = ConfigManager()
    config = manager.load()

    assert not manager.used_defaults
    assert config.device.backend == DeviceBackend.VIRTUAL
    assert (config.display.width, config.display.height) == (110, 110)
    assert (config.display.animation_width, config.display.animation_height) == (111, 111)
    assert config.sync.select_screen
    assert config.modes == (DisplayMode.DASHBOARD, DisplayMode.IMAGE, DisplayMode.ANIMATION)
    assert [p.name for p in config.providers] == ["cpu_temp", "gpu_temp", "download_rate", "geolocation", "weather"]
    assert config.provider("geolocation").freshness is None
    assert config.provider("weather").field == FieldID.WEATHER
    assert config.input.triggers["CTRL+F24"] == "shutdown"
    assert "~" not in config.assets.image


def test_includes_are_merged_and_main_file_wins(tmp_path):
    write(tmp_path / "timing.yaml", """
        sync:
          refresh_interval: 10
        dashboard:
          temperature_unit: F
    """)
    main = write(tmp_path / "main.yaml", """
        include:
          - timing.yaml
        sync:
          refresh_interval: 20
    """)

    manager = ConfigManager(main)
    config = manager.load()

    assert config.sync.refresh_interval == 20
    assert config.dashboard.temperature_unit == TemperatureUnit.FAHRENHEIT
    assert "include" not in manager.data


def test_missing_file_falls_back_to_factory_defaults(tmp_path):
    manager = ConfigManager(tmp_path / "absent.yaml")
    config = manager.load()

    assert manager.used_defaults
    assert [p.name for p in config.providers] == ["cpu_temp", "download_rate"]
    assert not config.input.enabled
    assert config.modes == (DisplayMode.DASHBOARD,)


def test_malformed_yaml_falls_back(tmp_path):
    broken = write(tmp_path / "broken.yaml", "sync: [unclosed\n")
    manager = ConfigManager(broken)
    manager.load()
    assert manager.used_defaults


def test_top_level_must_be_mapping(tmp_path):
    with pytest.raises(ConfigError):
        ConfigManager(write(tmp_path / "list.yaml", "- a\n- b\n")).load()


def test_hex_device_ids(tmp_path):
    path = write(tmp_path / "hid.yaml", """
        device:
          backend: hid
          vendor_id: 0x1234
          product_id: 0xABCD
          usage_page: 0xFF60
          version_command: [0x00, 0x01]
          commands:
            set_time: [0x01, 0x02]
    """)
    device = ConfigManager(path).load().device

    assert device.backend == DeviceBackend.HID
    assert (device.vendor_id, device.product_id, device.usage_page) == (0x1234, 0xABCD, 0xFF60)
    assert device.version_command == (0, 1)
    assert device.commands["set_time"] == (1, 2)


def test_empty_config_uses_defaults():
    config = ConfigManager.build({})
    assert config.sync.refresh_interval == 60
    assert config.modes == (DisplayMode.DASHBOARD,)
    assert config.initial_mode == DisplayMode.DASHBOARD
    assert config.providers == ()


def test_provider_field_defaults_and_overrides():
    config = ConfigManager.build({"providers": {
        "cpu_temp": {"interval": 2},
        "my_gpu": {"field": "gpu_temp", "options": {"index": 1}},
    }})
    assert config.provider("cpu_temp").field == FieldID.CPU_TEMP
    assert config.provider("cpu_temp").interval == 2.0
    assert config.provider("my_gpu").field == FieldID.GPU_TEMP
    assert config.freshness_thresholds()[FieldID.CPU_TEMP] == 60.0


def test_disabled_duplicate_is_allowed():
    config = ConfigManager.build({"providers": {
        "cpu_temp": {},
        "backup_cpu": {"field": "cpu_temp", "enabled": False},
    }})
    assert len(config.providers) == 2


@pytest.mark.parametrize("data", [
    {"sync": {"send_attempts": 0}},
    {"sync": {"refresh_interval": "often"}},
    {"sync": {"modes": []}},
    {"sync": {"modes": ["dashboard", "dashboard"]}},
    {"sync": {"modes": ["slideshow"]}},
    {"sync": {"send_commands": "yes"}},
    {"sync": {"select_screen": 1}},
    {"display": {"animation_width": 0}},
    {"display": {"width": 110.5}},
    {"display": {"background": [0, 0, 300]}},
    {"dashboard": {"temperature_unit": "K"}},
    {"device": {"backend": "usb"}},
    {"device": {"commands": {"set_time": [1, 2, 3]}}},
    {"device": {"approved_versions": "any"}},
    {"providers": ["cpu_temp"]},
    {"providers": {"thermometer": {}}},
    {"providers": {"cpu_temp": {}, "other": {"field": "cpu_temp"}}},
    {"input": {"triggers": ["F13"]}},
    {"display": "big"},
])
def test_invalid_values(data):
    with pytest.raises(ConfigError):
        ConfigManager.build(data)
