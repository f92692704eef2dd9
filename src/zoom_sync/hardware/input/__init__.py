from zoom_sync.hardware.input.input_listener import InputListener, combo_name, parse_combo
from zoom_sync.hardware.input.keyboard import IKeyboardAdapter, VirtualKeyboardAdapter, create_keyboard_adapter

__all__ = [
    "InputListener",
    "IKeyboardAdapter",
    "VirtualKeyboardAdapter",
    "create_keyboard_adapter",
    "combo_name",
    "parse_combo",
]
