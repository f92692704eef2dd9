from typing import Optional

from zoom_sync.models.config import InputConfig
from zoom_sync.runtime.runtime_info import RuntimeInfo
from zoom_sync.utils.logger import get_logger, LogCategory
from .keyboard_adapter_interface import IKeyboardAdapter

log = get_logger().for_category(LogCategory.INPUT)


def create_keyboard_adapter(config: InputConfig) -> Optional[IKeyboardAdapter]:
    """
    Keyboard adapter factory.

    Returns None when input is disabled, evdev is unavailable (non-Linux,
    package missing) or no event device is readable (user not in the
    input group); sync is then timer-driven only.
    """
    if not config.enabled:
        log.info("Keyboard input disabled")
        return None

    if not RuntimeInfo.has_evdev():
        log.info("evdev not available, keyboard triggers disabled")
        return None

    if not RuntimeInfo.readable_input_devices():
        log.warn("No readable /dev/input device, keyboard triggers disabled", hint="add the user to the input group")
        return None

    from .evdev_keyboard_adapter import EvdevKeyboardAdapter
    log.info("Using evdev keyboard adapter", device_name=config.device_name)
    return EvdevKeyboardAdapter(device_name=config.device_name)
