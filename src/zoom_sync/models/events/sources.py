from enum import Enum, auto


class EventSource(Enum):
    """Event source identifiers for application events"""
    HARDWARE = auto()           # Keyboard input
    PROVIDER_SCHEDULER = auto() # Provider polling tasks
    STATE_AGGREGATOR = auto()   # Snapshot updates
    SYNC_COORDINATOR = auto()   # State machine and device transfers
