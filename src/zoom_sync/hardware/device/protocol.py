"""
Zoom65 v3 screen module report framing

Pure functions, no transport: builds the 33-byte output reports and
validates replies, so the HID channel stays a thin I/O loop.

Update report:  00 58 <len+3> A5 <method_id:2> <payload...>
Chunk report:   00 58 <2+len+4(+pad)> <index:2 BE> <chunk> [pad] <crc32:4 BE>
                crc32 covers index, chunk, pad and two zero bytes after them
Reply:          58 01 01 ... on success
"""

import struct
import zlib
from typing import Iterator, List, Mapping, Sequence, Tuple

from zoom_sync.models.commands import (
    ClearAnimationCommand,
    ClearImageCommand,
    Command,
    ResetScreenCommand,
    SetScreenCommand,
    SetSystemInfoCommand,
    SetTimeCommand,
    SetWeatherCommand,
)
from zoom_sync.models.enums import PayloadKind
from zoom_sync.models.errors import ConfigError, DeviceRejectedError
from zoom_sync.utils.units import clamp_byte, wrap_byte

REPORT_SIZE = 33
REPORT_MAGIC = 88
UPDATE_MARKER = 165
CHUNK_SIZE = 24

# Method ids every device config must define
REQUIRED_METHODS = (
    "set_time",
    "set_weather",
    "set_system_info",
    "reset_screen",
    "screen_up",
    "screen_down",
    "screen_switch",
    "clear_image",
    "clear_animation",
    "upload_start",
    "upload_length",
    "upload_end",
)

MethodMap = Mapping[str, Tuple[int, int]]
Update = Tuple[Tuple[int, int], bytes]


def validate_methods(methods: MethodMap) -> None:
    missing = [name for name in REQUIRED_METHODS if name not in methods]
    if missing:
        raise ConfigError(f"Device method ids missing: {', '.join(missing)}", key="device.commands")


def build_update_report(method_id: Sequence[int], payload: bytes = b"") -> bytes:
    if len(payload) > REPORT_SIZE - 6:
        raise ValueError(f"Update payload too long ({len(payload)} bytes)")
    buf = bytearray(REPORT_SIZE)
    buf[1] = REPORT_MAGIC
    buf[2] = len(payload) + 3
    buf[3] = UPDATE_MARKER
    buf[4] = method_id[0]
    buf[5] = method_id[1]
    buf[6:6 + len(payload)] = payload
    return bytes(buf)


def encode_download_rate(rate_mb_s: float) -> bytes:
    """Half-precision float, big-endian"""
    rate = max(0.0, min(float(rate_mb_s), 65504.0))
    return struct.pack(">e", rate)


def encode_command(command: Command, methods: MethodMap) -> Update:
    """Map a single-report Command onto (method_id, payload bytes)"""
    if isinstance(command, SetTimeCommand):
        t = command.when
        return methods["set_time"], bytes([t.year % 100, t.month, t.day, t.hour, t.minute, t.second])
    if isinstance(command, SetWeatherCommand):
        return methods["set_weather"], bytes([
            command.icon.value,
            wrap_byte(command.current),
            wrap_byte(command.low),
            wrap_byte(command.high),
        ])
    if isinstance(command, SetSystemInfoCommand):
        rate = encode_download_rate(command.download_rate or 0.0)
        return methods["set_system_info"], bytes([
            clamp_byte(command.cpu_temp),
            clamp_byte(command.gpu_temp),
        ]) + rate
    if isinstance(command, ResetScreenCommand):
        return methods["reset_screen"], b""
    if isinstance(command, ClearImageCommand):
        return methods["clear_image"], b""
    if isinstance(command, ClearAnimationCommand):
        return methods["clear_animation"], b""
    raise TypeError(f"Unknown command {type(command).__name__}")


def command_updates(command: Command, methods: MethodMap) -> List[Update]:
    """
    Every update report a Command needs, in send order

    SetScreenCommand is a walk: reset to the logo screen, move up or down
    to the row, then switch along it.
    """
    if not isinstance(command, SetScreenCommand):
        return [encode_command(command, methods)]

    position = command.position
    step = methods["screen_up"] if position.row < 0 else methods["screen_down"]
    updates: List[Update] = [(methods["reset_screen"], b"")]
    updates += [(step, b"")] * abs(position.row)
    updates += [(methods["screen_switch"], b"")] * position.column
    return updates


def chunk_checksum(data: bytes) -> bytes:
    return (zlib.crc32(data) & 0xFFFFFFFF).to_bytes(4, "big")


def build_chunk_reports(data: bytes, kind: PayloadKind, chunk_size: int = CHUNK_SIZE) -> Iterator[bytes]:
    """
    Split an upload into chunk reports

    The final animation chunk is zero-padded so the checksum lands on a
    4-byte boundary.
    """
    final_index = len(data) // chunk_size
    for index, start in enumerate(range(0, len(data), chunk_size)):
        chunk = data[start:start + chunk_size]
        buf = bytearray(REPORT_SIZE)
        buf[1] = REPORT_MAGIC
        buf[2] = 2 + len(chunk) + 4
        buf[3] = (index >> 8) & 0xFF
        buf[4] = index & 0xFF
        buf[5:5 + len(chunk)] = chunk

        offset = 5 + len(chunk)
        if kind == PayloadKind.ANIMATION and index == final_index:
            padding = (4 - (len(data) % chunk_size) % 4) % 4
            buf[2] += padding
            offset += padding

        buf[offset:offset + 4] = chunk_checksum(bytes(buf[3:offset + 2]))
        yield bytes(buf)


def chunk_count(size: int, chunk_size: int = CHUNK_SIZE) -> int:
    return (size + chunk_size - 1) // chunk_size


def check_reply(reply: Sequence[int], context: str) -> None:
    """
    Raises:
        DeviceRejectedError: wrong magic byte or failure status
    """
    if len(reply) < 3 or reply[0] != REPORT_MAGIC:
        raise DeviceRejectedError(f"Unexpected reply to {context}", {"reply": list(reply[:8])})
    if reply[1] != 1 or reply[2] != 1:
        raise DeviceRejectedError(f"Device rejected {context}", {"reply": list(reply[:8])})
