from typing import AsyncIterator, Dict, List, Optional

from evdev import InputDevice, ecodes, list_devices

from zoom_sync.models.enums import KeyboardSource
from zoom_sync.models.events import KeyboardKeyPressEvent
from zoom_sync.utils.logger import get_logger, LogCategory

log = get_logger().for_category(LogCategory.INPUT)

KEY_DOWN = 1

PURE_MODIFIERS = {
    "LEFTCTRL", "RIGHTCTRL", "LEFTSHIFT", "RIGHTSHIFT",
    "LEFTALT", "RIGHTALT", "LEFTMETA", "RIGHTMETA",
}


class EvdevKeyboardAdapter:
    """
    Physical keyboard input via Linux evdev (/dev/input/event*)

    - Reads with InputDevice.async_read_loop() on the running loop
    - Maps keycodes via ecodes.bytype
    - Tracks modifiers (CTRL/SHIFT/ALT)
    - Prefers the device whose name contains device_name (e.g. "Zoom65"),
      otherwise the device with the most keys
    """

    def __init__(self, device_name: Optional[str] = None, device_path: Optional[str] = None):
        self.device_name = device_name
        self.device_path = device_path
        self.device: Optional[InputDevice] = None
        self._modifiers: Dict[str, bool] = {
            "CTRL": False,
            "SHIFT": False,
            "ALT": False,
        }

    def _find_keyboard_device(self) -> Optional[str]:
        """
        Detect and select the keyboard input device.

        Returns:
            Path to the best /dev/input/eventX device, or None.
        """
        candidates = []

        for path in list_devices():
            try:
                device = InputDevice(path)
            except OSError as e:
                log.debug(f"Cannot inspect {path}", error=str(e))
                continue

            try:
                caps = device.capabilities()
                name = device.name
            finally:
                device.close()

            if ecodes.EV_KEY not in caps:
                continue

            raw_keys = caps.get(ecodes.EV_KEY, [])
            key_codes = [code if isinstance(code, int) else code[0] for code in raw_keys]

            if self.device_name:
                if self.device_name.lower() in name.lower():
                    candidates.append((path, name, len(key_codes)))
                continue

            has_letters = any(ecodes.KEY_A <= code <= ecodes.KEY_Z for code in key_codes)
            if has_letters and ecodes.KEY_SPACE in key_codes and ecodes.KEY_ENTER in key_codes:
                candidates.append((path, name, len(key_codes)))

        if not candidates:
            log.warn("No matching keyboard input device", device_name=self.device_name)
            return None

        # More keys first: the full keyboard interface over media-key interfaces
        candidates.sort(key=lambda x: -x[2])
        best_path, best_name, num_keys = candidates[0]
        log.info("Selected keyboard device", name=best_name, path=best_path, total_keys=num_keys)
        return best_path

    def _open(self) -> InputDevice:
        path = self.device_path or self._find_keyboard_device()
        if not path:
            raise OSError("No keyboard input device available")
        device = InputDevice(path)
        log.info("Listening for keyboard input", device=device.name, path=path)
        return device

    async def keys(self) -> AsyncIterator[KeyboardKeyPressEvent]:
        self.device = self._open()
        try:
            async for event in self.device.async_read_loop():
                if event.type != ecodes.EV_KEY:
                    continue
                press = self._handle_key_event(event)
                if press is not None:
                    yield press
        finally:
            await self.close()

    def _handle_key_event(self, event) -> Optional[KeyboardKeyPressEvent]:
        key_name = ecodes.bytype[ecodes.EV_KEY].get(event.code)
        if key_name is None:
            log.debug(f"Unknown key code: {event.code}")
            return None
        # Some codes map to several aliases
        if isinstance(key_name, (list, tuple)):
            key_name = key_name[0]

        pressed = event.value == KEY_DOWN
        self._update_modifier_state(key_name, pressed=pressed)

        # Key down only (ignore up / repeat)
        if not pressed:
            return None

        normalized = self._normalize_key_name(key_name)
        if not normalized:
            return None

        modifiers: List[str] = [k for k, v in self._modifiers.items() if v]
        return KeyboardKeyPressEvent(normalized, modifiers, KeyboardSource.EVDEV)

    def _update_modifier_state(self, key_name: str, pressed: bool) -> None:
        k = (key_name or "").upper()
        if "CTRL" in k:
            self._modifiers["CTRL"] = pressed
        elif "SHIFT" in k:
            self._modifiers["SHIFT"] = pressed
        elif "ALT" in k:
            self._modifiers["ALT"] = pressed

    @staticmethod
    def _normalize_key_name(key_name: str) -> str:
        """
        Drop the KEY_ prefix.
        Empty string for modifier-only keys.
        """
        if not key_name:
            return ""
        nk = key_name.replace("KEY_", "")
        if nk in PURE_MODIFIERS:
            return ""
        return nk

    async def close(self) -> None:
        if self.device is None:
            return
        try:
            self.device.close()
        except OSError as e:
            log.debug("Keyboard device close failed", error=str(e))
        self.device = None
        for k in self._modifiers:
            self._modifiers[k] = False
