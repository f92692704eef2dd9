"""
Enums for the display sync engine
"""

from enum import Enum, auto


class FieldID(Enum):
    """Telemetry fields tracked by the state aggregator"""
    CPU_TEMP = auto()
    GPU_TEMP = auto()
    DOWNLOAD_RATE = auto()
    LOCATION = auto()
    WEATHER = auto()


class FieldStatus(Enum):
    """
    Per-field freshness as seen by the renderer

    MISSING: never observed
    FRESH: observed within the freshness threshold
    AGING: last poll failed transiently, previous value still within threshold
    STALE: last good value is older than the freshness threshold
    UNAVAILABLE: provider failed permanently
    """
    MISSING = auto()
    FRESH = auto()
    AGING = auto()
    STALE = auto()
    UNAVAILABLE = auto()

    @property
    def is_degraded(self) -> bool:
        return self in (FieldStatus.MISSING, FieldStatus.STALE, FieldStatus.UNAVAILABLE)


class FailureKind(Enum):
    """Provider failure classification"""
    TRANSIENT = auto()   # retry with backoff
    PERMANENT = auto()   # report once, stop polling


class DisplayMode(Enum):
    """What feeds the next rendering pass"""
    DASHBOARD = auto()   # telemetry snapshot
    IMAGE = auto()       # static image asset
    ANIMATION = auto()   # animated asset (GIF)


class SyncState(Enum):
    """Sync coordinator states"""
    IDLE = auto()
    CONNECTING = auto()
    RENDERING = auto()
    TRANSMITTING = auto()
    DISCONNECTED = auto()
    SHUTTING_DOWN = auto()


class PayloadKind(Enum):
    """Wire payload slot on the screen module"""
    IMAGE = 1       # raw RGB565 + alpha buffer
    ANIMATION = 2   # GIF


class ScreenPosition(Enum):
    """
    Built-in screens of the module, as (row, column) from the logo screen

    reset_screen returns to the logo at (0, 0). Negative rows are reached
    with screen_up, positive rows with screen_down, and columns with
    screen_switch.
    """
    CPU = (-1, 0)
    GPU = (-1, 1)
    DOWNLOAD = (-1, 2)
    MELETRIX = (0, 0)
    ZOOM65 = (0, 1)
    IMAGE = (0, 2)
    GIF = (0, 3)
    TIME = (1, 0)
    WEATHER = (1, 1)
    BATTERY = (2, 0)

    @property
    def row(self) -> int:
        return self.value[0]

    @property
    def column(self) -> int:
        return self.value[1]

    @classmethod
    def for_payload(cls, kind: "PayloadKind") -> "ScreenPosition":
        return cls.GIF if kind == PayloadKind.ANIMATION else cls.IMAGE


class SignalSource(Enum):
    """Where a control signal came from"""
    KEYBOARD = auto()
    TIMER = auto()
    CLI = auto()
    SYSTEM = auto()


class KeyboardSource(Enum):
    EVDEV = auto()
    VIRTUAL = auto()


class TemperatureUnit(Enum):
    CELSIUS = "C"
    FAHRENHEIT = "F"


class WeatherIcon(Enum):
    """Weather icon ids understood by the screen module"""
    DAY_CLEAR = 0
    DAY_PARTLY_CLOUDY = 1
    DAY_PARTLY_RAINY = 2
    NIGHT_PARTLY_CLEAR = 3
    NIGHT_CLEAR = 4
    CLOUDY = 5
    RAINY = 6
    SNOWFALL = 7
    THUNDERSTORM = 8


class DeviceBackend(Enum):
    HID = "hid"
    VIRTUAL = "virtual"


class LogLevel(Enum):
    """Log severity levels"""
    DEBUG = auto()
    INFO = auto()
    WARN = auto()
    ERROR = auto()


class LogCategory(Enum):
    """Log categories for grouping related events"""
    CONFIG = auto()      # Configuration loading, validation
    HARDWARE = auto()    # Runtime capability detection
    DEVICE = auto()      # Device channel (HID transport)
    PROVIDER = auto()    # Data providers and scheduler
    STATE = auto()       # Snapshot aggregation
    RENDER = auto()      # Frame rendering and encoding
    INPUT = auto()       # Keyboard input
    SYNC = auto()        # Sync coordinator state machine
    EVENT = auto()       # Event bus events and handling
    SYSTEM = auto()      # Startup, shutdown, errors

    SHUTDOWN = auto()
    TASK = auto()

    GENERAL = auto()     # Default general category
