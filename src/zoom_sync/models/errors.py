"""
Error taxonomy for the display sync engine

Every error carries a machine-readable code, a message and a details dict,
so diagnostics and logs can report them uniformly.

ProviderError   - data source failures (transient vs permanent)
RenderError     - asset and frame geometry problems
DeviceError     - transport failures talking to the screen module
ConfigError     - invalid configuration (construction-time, fatal)
"""

from typing import Optional

from zoom_sync.models.enums import FailureKind


class DomainError(Exception):
    """Base class for domain-specific errors"""
    def __init__(
        self,
        code: str,
        message: str,
        details: Optional[dict] = None,
    ):
        self.code = code
        self.message = message
        self.details = details or {}
        super().__init__(message)


# ---------------------------------------------------------------------------
# Providers
# ---------------------------------------------------------------------------

class ProviderError(DomainError):
    """A data provider poll failed"""
    kind: FailureKind = FailureKind.TRANSIENT

    def __init__(self, message: str, details: Optional[dict] = None):
        super().__init__(code=f"PROVIDER_{self.kind.name}", message=message, details=details)

    @property
    def is_permanent(self) -> bool:
        return self.kind == FailureKind.PERMANENT


class TransientProviderError(ProviderError):
    """Network hiccup, timeout, source temporarily unavailable - retry with backoff"""
    kind = FailureKind.TRANSIENT


class PermanentProviderError(ProviderError):
    """Misconfiguration or unsupported platform - report once, stop retrying"""
    kind = FailureKind.PERMANENT


# ---------------------------------------------------------------------------
# Rendering
# ---------------------------------------------------------------------------

class RenderError(DomainError):
    """Rendering or encoding failed for a specific input"""


class UnsupportedAssetError(RenderError):
    """Asset can't be read or isn't an image"""
    def __init__(self, path: str, reason: str):
        super().__init__(
            code="UNSUPPORTED_ASSET",
            message=f"Unsupported asset '{path}': {reason}",
            details={"path": path, "reason": reason},
        )


class DimensionMismatchError(RenderError):
    """Pixel buffer doesn't match the screen resolution"""
    def __init__(self, expected: tuple, actual: tuple):
        super().__init__(
            code="DIMENSION_MISMATCH",
            message=f"Expected {expected[0]}x{expected[1]} frame, got {actual[0]}x{actual[1]}",
            details={"expected": expected, "actual": actual},
        )


class PayloadTooLargeError(RenderError):
    """Encoded payload does not fit below the module's upload limit"""
    def __init__(self, size: int, limit: int):
        super().__init__(
            code="PAYLOAD_TOO_LARGE",
            message=f"Encoded payload is {size} bytes (limit {limit})",
            details={"size": size, "limit": limit},
        )


# ---------------------------------------------------------------------------
# Device
# ---------------------------------------------------------------------------

class DeviceError(DomainError):
    """Base class for device channel failures"""
    code_name = "DEVICE_ERROR"
    transient = False

    def __init__(self, message: str, details: Optional[dict] = None):
        super().__init__(code=self.code_name, message=message, details=details)


class DeviceTimeoutError(DeviceError):
    """Operation exceeded its timeout"""
    code_name = "DEVICE_TIMEOUT"
    transient = True


class DeviceRejectedError(DeviceError):
    """Device answered with a failure status"""
    code_name = "DEVICE_REJECTED"
    transient = True


class DeviceDisconnectedError(DeviceError):
    """Transport went away (unplugged, I/O error, closed handle)"""
    code_name = "DEVICE_DISCONNECTED"


class DeviceNotFoundError(DeviceError):
    """No matching device is attached"""
    code_name = "DEVICE_NOT_FOUND"


# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------

class ConfigError(DomainError):
    """Invalid configuration - fatal at construction time"""
    def __init__(self, message: str, key: Optional[str] = None):
        super().__init__(
            code="CONFIG_ERROR",
            message=message,
            details={"key": key} if key else {},
        )
