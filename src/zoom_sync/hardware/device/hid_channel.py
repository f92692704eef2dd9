"""
HID device channel for the Zoom65 v3 screen module

hidapi calls block, so they run on a dedicated single-thread executor;
that also serialises every report on the wire.
"""

from __future__ import annotations

import asyncio
import functools
from concurrent.futures import ThreadPoolExecutor
from typing import List, Optional

import hid

from zoom_sync.hardware.device import protocol
from zoom_sync.models.commands import Command, ResetScreenCommand
from zoom_sync.models.config import DeviceConfig
from zoom_sync.models.device import DeviceHandle
from zoom_sync.models.errors import (
    ConfigError,
    DeviceDisconnectedError,
    DeviceError,
    DeviceNotFoundError,
    DeviceRejectedError,
    DeviceTimeoutError,
)
from zoom_sync.models.frame import EncodedPayload
from zoom_sync.utils.logger import get_logger, LogCategory

log = get_logger().for_category(LogCategory.DEVICE)

READ_SIZE = 64


class HidDeviceChannel:
    """
    hidapi transport

    Device lookup: vendor/product id plus usage page/usage. The firmware
    version byte must be in approved_versions (when that list is set).
    """

    def __init__(self, config: DeviceConfig, timeout: float = 5.0):
        if config.vendor_id is None or config.product_id is None:
            raise ConfigError("HID backend needs device.vendor_id and device.product_id", key="device")
        if not config.version_command:
            raise ConfigError("HID backend needs device.version_command", key="device.version_command")
        protocol.validate_methods(config.commands)

        self.config = config
        self.timeout = timeout
        self._read_timeout_ms = int(timeout * 1000)
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="zoom-hid")
        self._device = None
        self._handle: Optional[DeviceHandle] = None

    @property
    def handle(self) -> Optional[DeviceHandle]:
        return self._handle

    # ------------------------------------------------------------------
    # Executor plumbing
    # ------------------------------------------------------------------

    async def _call(self, fn, *args, timeout: Optional[float] = None):
        loop = asyncio.get_running_loop()
        future = loop.run_in_executor(self._executor, functools.partial(fn, *args))
        try:
            return await asyncio.wait_for(future, timeout=timeout or self.timeout)
        except asyncio.TimeoutError as e:
            raise DeviceTimeoutError(f"{fn.__name__} timed out") from e
        except DeviceError as e:
            if not e.transient:
                self._drop_handle()
            raise

    def _drop_handle(self) -> None:
        if self._handle is not None:
            self._handle.invalidate()
        self._handle = None

    # ------------------------------------------------------------------
    # Blocking I/O (executor thread only)
    # ------------------------------------------------------------------

    def _find_device(self) -> dict:
        try:
            candidates = hid.enumerate(self.config.vendor_id, self.config.product_id)
        except (OSError, ValueError) as e:
            raise DeviceNotFoundError(f"HID enumeration failed: {e}") from e

        for info in candidates:
            if self.config.usage_page is not None and info.get("usage_page") != self.config.usage_page:
                continue
            if self.config.usage is not None and info.get("usage") != self.config.usage:
                continue
            return info

        raise DeviceNotFoundError(
            "Screen module not found",
            {"vendor_id": hex(self.config.vendor_id), "product_id": hex(self.config.product_id)},
        )

    def _open_blocking(self) -> DeviceHandle:
        self._close_blocking()

        info = self._find_device()
        device = hid.device()
        try:
            device.open_path(info["path"])
        except (OSError, IOError) as e:
            raise DeviceDisconnectedError(f"Failed to open device: {e}", {"path": str(info["path"])}) from e
        self._device = device

        device_version = self._read_version()
        approved = self.config.approved_versions
        if approved and device_version not in approved:
            self._close_blocking()
            raise DeviceRejectedError(
                f"Unsupported firmware version {device_version}",
                {"approved": list(approved)},
            )

        path = info["path"].decode(errors="replace") if isinstance(info["path"], bytes) else str(info["path"])
        return DeviceHandle(path=path, firmware_version=device_version, product=info.get("product_string") or "")

    def _write(self, report: bytes) -> None:
        if self._device is None:
            raise DeviceDisconnectedError("Device is not open")
        try:
            written = self._device.write(report)
        except (OSError, IOError, ValueError) as e:
            raise DeviceDisconnectedError(f"HID write failed: {e}") from e
        if written is not None and written < 0:
            raise DeviceDisconnectedError("HID write failed")

    def _read(self) -> List[int]:
        try:
            reply = self._device.read(READ_SIZE, self._read_timeout_ms)
        except (OSError, IOError, ValueError) as e:
            raise DeviceDisconnectedError(f"HID read failed: {e}") from e
        if not reply:
            raise DeviceTimeoutError("No reply from device")
        return list(reply)

    def _read_version(self) -> int:
        self._write(bytes(self.config.version_command))
        reply = self._read()
        if len(reply) < 3 or reply[0] != 1:
            raise DeviceRejectedError("Unexpected version reply", {"reply": reply[:8]})
        return reply[2]

    def _update(self, method_name: str, payload: bytes = b"") -> None:
        self._write(protocol.build_update_report(self.config.commands[method_name], payload))
        protocol.check_reply(self._read(), method_name)

    def _command_blocking(self, command: Command) -> None:
        for method_id, payload in protocol.command_updates(command, self.config.commands):
            self._write(protocol.build_update_report(method_id, payload))
            protocol.check_reply(self._read(), type(command).__name__)

    def _upload_blocking(self, payload: EncodedPayload) -> None:
        data = payload.data
        self._update("upload_start", bytes([payload.kind.value]))
        self._update("upload_length", len(data).to_bytes(4, "big"))

        for index, report in enumerate(protocol.build_chunk_reports(data, payload.kind, self.config.chunk_size)):
            self._write(report)
            protocol.check_reply(self._read(), f"chunk {index}")

        self._update("upload_end", bytes([1]))
        self._command_blocking(ResetScreenCommand())

    def _close_blocking(self) -> None:
        if self._device is None:
            return
        try:
            self._device.close()
        except (OSError, IOError) as e:
            log.debug("HID close failed", error=str(e))
        self._device = None

    # ------------------------------------------------------------------
    # IDeviceChannel
    # ------------------------------------------------------------------

    async def open(self) -> DeviceHandle:
        self._drop_handle()
        handle = await self._call(self._open_blocking)
        self._handle = handle
        log.info("Screen module connected", path=handle.path, firmware=handle.firmware_version)
        return handle

    async def send_frame(self, payload: EncodedPayload) -> None:
        # Each report is individually bounded by the read timeout
        reports = protocol.chunk_count(payload.size, self.config.chunk_size) + 5
        log.debug("Uploading payload", kind=payload.kind.name, bytes=payload.size, reports=reports)
        await self._call(self._upload_blocking, payload, timeout=self.timeout * reports)

    async def send_command(self, command: Command) -> None:
        reports = len(protocol.command_updates(command, self.config.commands))
        await self._call(self._command_blocking, command, timeout=self.timeout * reports)

    async def close(self) -> None:
        self._drop_handle()
        loop = asyncio.get_running_loop()
        await loop.run_in_executor(self._executor, self._close_blocking)
        log.debug("Screen module released")

    def shutdown_executor(self) -> None:
        self._executor.shutdown(wait=False)
