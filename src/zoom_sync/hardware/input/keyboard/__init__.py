from .keyboard_adapter_interface import IKeyboardAdapter
from .keyboard_adapter_factory import create_keyboard_adapter
from .virtual_keyboard_adapter import VirtualKeyboardAdapter

__all__ = [
    "IKeyboardAdapter",
    "VirtualKeyboardAdapter",
    "create_keyboard_adapter",
]
