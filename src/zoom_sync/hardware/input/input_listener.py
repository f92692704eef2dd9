"""
Input Listener - keyboard presses to control signals

Triggers map normalised key combos to actions:

    F13        -> resync
    CTRL+F13   -> cycle
    CTRL+F24   -> shutdown
    F14        -> mode:image

Modifier order in a combo does not matter; "ctrl+f13" and "F13+CTRL"
are the same trigger.
"""

import asyncio
from typing import AsyncIterator, Callable, Dict, Iterable, Mapping, Optional

from zoom_sync.models.enums import DisplayMode, SignalSource
from zoom_sync.models.errors import ConfigError
from zoom_sync.models.events import KeyboardKeyPressEvent
from zoom_sync.models.signals import ControlSignal, ModeCycleSignal, ResyncSignal, ShutdownSignal
from zoom_sync.services.event_bus import EventBus
from zoom_sync.utils.enum_helper import EnumHelper
from zoom_sync.utils.logger import get_logger, LogCategory
from .keyboard.keyboard_adapter_interface import IKeyboardAdapter

log = get_logger().for_category(LogCategory.INPUT)

MODIFIER_ORDER = ("CTRL", "SHIFT", "ALT")

SignalFactory = Callable[[], ControlSignal]


def combo_name(key: str, modifiers: Iterable[str] = ()) -> str:
    """Canonical combo: modifiers in CTRL, SHIFT, ALT order, then the key"""
    mods = {m.upper() for m in modifiers}
    ordered = [m for m in MODIFIER_ORDER if m in mods]
    return "+".join(ordered + [key.upper()])


def parse_combo(text: str) -> str:
    parts = [p.strip().upper() for p in str(text).split("+") if p.strip()]
    keys = [p for p in parts if p not in MODIFIER_ORDER]
    if len(keys) != 1:
        raise ConfigError(f"Trigger '{text}' must name exactly one non-modifier key", key="input.triggers")
    return combo_name(keys[0], [p for p in parts if p in MODIFIER_ORDER])


def parse_action(action: str) -> SignalFactory:
    name = str(action).strip().lower()
    if name == "resync":
        return lambda: ResyncSignal(source=SignalSource.KEYBOARD)
    if name == "cycle":
        return lambda: ModeCycleSignal(source=SignalSource.KEYBOARD)
    if name == "shutdown":
        return lambda: ShutdownSignal(source=SignalSource.KEYBOARD)
    if name.startswith("mode:"):
        try:
            mode = EnumHelper.from_string(DisplayMode, name[len("mode:"):])
        except ValueError as e:
            raise ConfigError(f"Unknown display mode in trigger action '{action}'", key="input.triggers") from e
        return lambda: ModeCycleSignal(target_mode=mode, source=SignalSource.KEYBOARD)
    raise ConfigError(f"Unknown trigger action '{action}'", key="input.triggers")


class InputListener:
    """
    Turns key presses into ControlSignals

    signals() is lazy and unbounded; it ends only when the adapter is
    closed. forward_to() pumps signals into a sink and re-subscribes after
    adapter errors (device unplugged, permission lost).
    """

    def __init__(
        self,
        adapter: IKeyboardAdapter,
        triggers: Mapping[str, str],
        event_bus: Optional[EventBus] = None,
        restart_delay: float = 2.0,
    ):
        self.adapter = adapter
        self.event_bus = event_bus
        self.restart_delay = restart_delay
        self.restarts = 0
        self._triggers: Dict[str, SignalFactory] = {
            parse_combo(combo): parse_action(action) for combo, action in triggers.items()
        }
        self._running = False

    @property
    def trigger_keys(self):
        return sorted(self._triggers)

    def resolve(self, press: KeyboardKeyPressEvent) -> Optional[ControlSignal]:
        factory = self._triggers.get(combo_name(press.key, press.modifiers))
        return factory() if factory else None

    async def signals(self) -> AsyncIterator[ControlSignal]:
        async for press in self.adapter.keys():
            if self.event_bus:
                await self.event_bus.publish(press)
            signal = self.resolve(press)
            if signal is None:
                continue
            log.info("Trigger pressed", combo=combo_name(press.key, press.modifiers), signal=type(signal).__name__)
            yield signal

    async def forward_to(self, sink: Callable[[ControlSignal], None]) -> None:
        """Runs until cancelled, stop() or the adapter stream ends"""
        self._running = True
        log.info("Input listener started", triggers=", ".join(self.trigger_keys) or "none")
        while self._running:
            try:
                async for signal in self.signals():
                    sink(signal)
                return
            except asyncio.CancelledError:
                raise
            except OSError as e:
                self.restarts += 1
                log.warn("Keyboard input lost, re-subscribing", error=str(e), retry_in=f"{self.restart_delay}s")
                await asyncio.sleep(self.restart_delay)

    async def stop(self) -> None:
        self._running = False
        await self.adapter.close()
