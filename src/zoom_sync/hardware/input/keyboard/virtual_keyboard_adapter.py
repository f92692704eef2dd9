"""
Virtual keyboard adapter

Key presses are injected programmatically (tests, CLI). Stands in where
no evdev device is available.
"""

import asyncio
from typing import AsyncIterator, List, Optional, Union

from zoom_sync.models.enums import KeyboardSource
from zoom_sync.models.events import KeyboardKeyPressEvent

_CLOSED = object()


class VirtualKeyboardAdapter:
    def __init__(self):
        self._queue: asyncio.Queue = asyncio.Queue()
        self.iterations = 0

    def press(self, key: str, modifiers: Optional[List[str]] = None) -> None:
        self._queue.put_nowait(KeyboardKeyPressEvent(key.upper(), modifiers, KeyboardSource.VIRTUAL))

    def fail(self, error: Union[Exception, None] = None) -> None:
        """Next read raises error (OSError by default), as a vanished device would"""
        self._queue.put_nowait(error or OSError("Virtual keyboard detached"))

    async def keys(self) -> AsyncIterator[KeyboardKeyPressEvent]:
        self.iterations += 1
        while True:
            item = await self._queue.get()
            if item is _CLOSED:
                return
            if isinstance(item, BaseException):
                raise item
            yield item

    async def close(self) -> None:
        self._queue.put_nowait(_CLOSED)
