"""Device handle - exclusive ownership token for the screen transport"""

import time
from dataclasses import dataclass, field
from typing import Optional


@dataclass
class DeviceHandle:
    """
    Returned by IDeviceChannel.open()

    Only the sync coordinator holds a handle. A channel invalidates it on
    close or transport error; an invalid handle is never reused.
    """

    path: str
    firmware_version: Optional[int] = None
    product: str = ""
    opened_at: float = field(default_factory=time.time)
    valid: bool = True

    def invalidate(self) -> None:
        self.valid = False

    def __repr__(self) -> str:
        state = "valid" if self.valid else "invalid"
        return f"DeviceHandle({self.path}, fw={self.firmware_version}, {state})"
