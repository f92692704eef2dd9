"""
Virtual device channel

In-memory stand-in for the screen module: records every payload and
command. Used for dry runs (device.backend: virtual) and in tests, where
failures can be scripted per operation.
"""

from __future__ import annotations

import asyncio
from collections import deque
from typing import Deque, List, Optional

from zoom_sync.models.commands import Command
from zoom_sync.models.device import DeviceHandle
from zoom_sync.models.errors import DeviceDisconnectedError, DeviceError, DeviceNotFoundError
from zoom_sync.models.frame import EncodedPayload
from zoom_sync.utils.logger import get_logger, LogCategory

log = get_logger().for_category(LogCategory.DEVICE)


class VirtualDeviceChannel:

    def __init__(self, latency: float = 0.0, firmware_version: int = 0):
        self.latency = latency
        self.firmware_version = firmware_version
        self.attached = True

        self.frames: List[EncodedPayload] = []
        self.commands: List[Command] = []
        self.open_count = 0
        self.close_count = 0
        self.in_flight = 0
        self.max_in_flight = 0

        self._handle: Optional[DeviceHandle] = None
        self._frame_failures: Deque[DeviceError] = deque()
        self._open_failures: Deque[DeviceError] = deque()

    @property
    def handle(self) -> Optional[DeviceHandle]:
        return self._handle

    # === Scripting ===

    def fail_next_frames(self, *errors: DeviceError) -> None:
        """Queue errors raised by the next send_frame calls, in order"""
        self._frame_failures.extend(errors)

    def fail_next_opens(self, *errors: DeviceError) -> None:
        self._open_failures.extend(errors)

    def detach(self) -> None:
        """Simulate unplugging: current handle dies, open() fails until attach()"""
        self.attached = False
        if self._handle is not None:
            self._handle.invalidate()
            self._handle = None

    def attach(self) -> None:
        self.attached = True

    # === IDeviceChannel ===

    async def open(self) -> DeviceHandle:
        self.open_count += 1
        if self._open_failures:
            raise self._open_failures.popleft()
        if not self.attached:
            raise DeviceNotFoundError("Virtual device detached")
        if self._handle is not None:
            self._handle.invalidate()
        self._handle = DeviceHandle(path="virtual://zoom65", firmware_version=self.firmware_version, product="virtual")
        log.debug("Virtual device opened", opens=self.open_count)
        return self._handle

    def _require_handle(self) -> None:
        if self._handle is None or not self._handle.valid:
            raise DeviceDisconnectedError("Virtual device not open")

    async def send_frame(self, payload: EncodedPayload) -> None:
        self._require_handle()
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            if self.latency:
                await asyncio.sleep(self.latency)
            if self._frame_failures:
                error = self._frame_failures.popleft()
                if not error.transient and self._handle is not None:
                    self._handle.invalidate()
                    self._handle = None
                raise error
            if not self.attached:
                raise DeviceDisconnectedError("Virtual device detached mid-transfer")
            self.frames.append(payload)
            log.debug("Virtual frame stored", kind=payload.kind.name, bytes=payload.size, digest=payload.digest[:8])
        finally:
            self.in_flight -= 1

    async def send_command(self, command: Command) -> None:
        self._require_handle()
        self.commands.append(command)

    async def close(self) -> None:
        self.close_count += 1
        if self._handle is not None:
            self._handle.invalidate()
            self._handle = None
