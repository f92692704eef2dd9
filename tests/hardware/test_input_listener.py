import asyncio
import os
from types import SimpleNamespace

import pytest

from zoom_sync.hardware.input import InputListener, VirtualKeyboardAdapter, combo_name, parse_combo
from zoom_sync.hardware.input.input_listener import parse_action
from zoom_sync.hardware.input.keyboard import create_keyboard_adapter
from zoom_sync.models.config import InputConfig
from zoom_sync.models.enums import DisplayMode, SignalSource
from zoom_sync.models.errors import ConfigError
from zoom_sync.models.events import EventType
from zoom_sync.models.signals import ModeCycleSignal, ResyncSignal, ShutdownSignal
from zoom_sync.runtime import runtime_info as runtime_module
from zoom_sync.runtime.runtime_info import RuntimeInfo
from zoom_sync.services.event_bus import EventBus

TRIGGERS = {
    "F13": "resync",
    "ctrl+f13": "cycle",
    "F14": "mode:image",
    "F24+CTRL": "shutdown",
}


@pytest.mark.parametrize("text, expected", [
    ("f13", "F13"),
    ("ctrl+f13", "CTRL+F13"),
    ("F13+ALT+CTRL", "CTRL+ALT+F13"),
    (" shift + a ", "SHIFT+A"),
])
def test_parse_combo(text, expected):
    assert parse_combo(text) == expected


@pytest.mark.parametrize("text", ["CTRL", "A+B", ""])
def test_parse_combo_needs_one_key(text):
    with pytest.raises(ConfigError):
        parse_combo(text)


def test_combo_name_orders_modifiers():
    assert combo_name("f13", ["alt", "CTRL"]) == "CTRL+ALT+F13"


def test_parse_action():
    assert isinstance(parse_action("resync")(), ResyncSignal)
    assert isinstance(parse_action("shutdown")(), ShutdownSignal)
    assert parse_action("cycle")() == ModeCycleSignal(source=SignalSource.KEYBOARD)
    assert parse_action("mode:animation")().target_mode == DisplayMode.ANIMATION

    with pytest.raises(ConfigError):
        parse_action("mode:slideshow")
    with pytest.raises(ConfigError):
        parse_action("reboot")


@pytest.mark.asyncio
async def test_presses_become_signals():
    adapter = VirtualKeyboardAdapter()
    bus = EventBus()
    presses = []
    bus.subscribe(EventType.KEYBOARD_KEYPRESS, presses.append)
    listener = InputListener(adapter, TRIGGERS, event_bus=bus)

    adapter.press("f13")
    adapter.press("A")
    adapter.press("F13", ["CTRL"])
    adapter.press("F14")
    adapter.press("F24", ["CTRL"])
    await adapter.close()

    received = []
    await listener.forward_to(received.append)

    assert [type(s) for s in received] == [ResyncSignal, ModeCycleSignal, ModeCycleSignal, ShutdownSignal]
    assert received[1].target_mode is None
    assert received[2].target_mode == DisplayMode.IMAGE
    assert len(presses) == 5


@pytest.mark.asyncio
async def test_listener_resubscribes_after_device_loss():
    adapter = VirtualKeyboardAdapter()
    listener = InputListener(adapter, TRIGGERS, restart_delay=0.01)
    received = []

    task = asyncio.create_task(listener.forward_to(received.append))
    adapter.fail()
    await asyncio.sleep(0.05)
    adapter.press("F13")
    await asyncio.sleep(0.01)
    await listener.stop()
    await asyncio.wait_for(task, timeout=1)

    assert listener.restarts == 1
    assert adapter.iterations == 2
    assert received == [ResyncSignal(source=SignalSource.KEYBOARD)]


def test_invalid_trigger_rejected_at_construction():
    with pytest.raises(ConfigError):
        InputListener(VirtualKeyboardAdapter(), {"CTRL": "resync"})


def test_disabled_input_has_no_adapter():
    assert create_keyboard_adapter(InputConfig(enabled=False)) is None


def test_unreadable_input_devices_mean_no_adapter(monkeypatch):
    monkeypatch.setattr(RuntimeInfo, "has_evdev", classmethod(lambda cls: True))
    monkeypatch.setattr(RuntimeInfo, "readable_input_devices", classmethod(lambda cls: []))

    assert create_keyboard_adapter(InputConfig(enabled=True)) is None


def test_readable_input_devices_skips_denied_nodes(monkeypatch, tmp_path):
    for name in ("event0", "event1", "mouse0"):
        (tmp_path / name).touch()
    monkeypatch.setattr(runtime_module, "INPUT_DEVICE_GLOB", str(tmp_path / "event*"))
    monkeypatch.setattr(runtime_module, "os", SimpleNamespace(
        access=lambda path, mode: path.endswith("event1"),
        R_OK=os.R_OK,
    ))

    assert RuntimeInfo.readable_input_devices() == [str(tmp_path / "event1")]


def test_evdev_adapter_when_a_device_is_readable(monkeypatch):
    pytest.importorskip("evdev")
    monkeypatch.setattr(RuntimeInfo, "has_evdev", classmethod(lambda cls: True))
    monkeypatch.setattr(RuntimeInfo, "readable_input_devices", classmethod(lambda cls: ["/dev/input/event3"]))

    adapter = create_keyboard_adapter(InputConfig(enabled=True, device_name="Zoom65"))
    assert type(adapter).__name__ == "EvdevKeyboardAdapter"
    assert adapter.device_name == "Zoom65"


def test_evdev_key_names():
    evdev_adapter = pytest.importorskip("zoom_sync.hardware.input.keyboard.evdev_keyboard_adapter")
    normalize = evdev_adapter.EvdevKeyboardAdapter._normalize_key_name

    assert normalize("KEY_F13") == "F13"
    assert normalize("KEY_LEFTCTRL") == ""
    assert normalize("KEY_A") == "A"
    assert normalize("KEY_LEFT") == "LEFT"
    assert normalize("") == ""
