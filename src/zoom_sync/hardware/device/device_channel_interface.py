"""
IDeviceChannel Protocol
=======================
Hardware abstraction for the screen module transport.
The single serialized path to the device; only the sync coordinator uses it.
"""

from __future__ import annotations

from typing import Optional, Protocol

from zoom_sync.models.commands import Command
from zoom_sync.models.device import DeviceHandle
from zoom_sync.models.frame import EncodedPayload


class IDeviceChannel(Protocol):
    """
    Protocol defining the device transport contract.

    All implementations must provide:
    - open: acquire the device, return an exclusive DeviceHandle
    - send_frame: upload an encoded payload into its slot
    - send_command: send one control command
    - close: release the device (open() may be called again afterwards)

    Failures raise DeviceError subclasses; every operation is bounded
    by a timeout (DeviceTimeoutError).
    """

    @property
    def handle(self) -> Optional[DeviceHandle]:
        """Current handle, None while closed."""
        ...

    async def open(self) -> DeviceHandle:
        ...

    async def send_frame(self, payload: EncodedPayload) -> None:
        ...

    async def send_command(self, command: Command) -> None:
        ...

    async def close(self) -> None:
        ...
