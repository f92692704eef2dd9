from typing import AsyncIterator, Protocol

from zoom_sync.models.events import KeyboardKeyPressEvent


class IKeyboardAdapter(Protocol):
    """
    Keyboard input abstraction.

    Implementations:
    - yield one KeyboardKeyPressEvent per key-down (modifier-only presses excluded)
    - raise OSError when the underlying device goes away
    - may be iterated again after an error or close()
    """

    def keys(self) -> AsyncIterator[KeyboardKeyPressEvent]:
        ...

    async def close(self) -> None:
        ...
