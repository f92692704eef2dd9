"""Hardware input events (keyboard)"""

from dataclasses import dataclass
from typing import List, Optional

from zoom_sync.models.enums import KeyboardSource
from zoom_sync.models.events.base import Event
from zoom_sync.models.events.types import EventType
from zoom_sync.models.events.sources import EventSource


@dataclass(init=False)
class KeyboardKeyPressEvent(Event):
    """Keyboard key press event"""
    key: str
    modifiers: List[str]
    keyboard: KeyboardSource

    def __init__(self, key: str, modifiers: Optional[List[str]] = None, keyboard: KeyboardSource = KeyboardSource.EVDEV):
        """
        Args:
            key: Normalised key name (e.g. 'F13', 'A')
            modifiers: Active modifier names (e.g. ['CTRL', 'SHIFT'])
            keyboard: Adapter that produced the event
        """
        super().__init__(
            type=EventType.KEYBOARD_KEYPRESS,
            source=EventSource.HARDWARE,
        )
        self.key = key
        self.modifiers = modifiers or []
        self.keyboard = keyboard
