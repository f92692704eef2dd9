from enum import Enum, auto


class EventType(Enum):
    # Hardware
    KEYBOARD_KEYPRESS = auto()

    # Telemetry
    SNAPSHOT_UPDATED = auto()
    PROVIDER_FAILED = auto()

    # Sync / device
    SYNC_STATE_CHANGED = auto()
    FRAME_TRANSMITTED = auto()
    PERSISTENT_FAILURE = auto()
