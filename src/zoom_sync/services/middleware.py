"""
Middleware for EventBus

Middleware = pipeline functions that process events before handlers.
Can modify events, block events, or log/validate events.
"""

from enum import Enum

from zoom_sync.models.events import Event, EventType
from zoom_sync.utils.logger import get_logger, LogCategory, LogLevel
from zoom_sync.utils.enum_helper import EnumHelper

log = get_logger().for_category(LogCategory.EVENT)

# Frequent, low-signal events are logged at DEBUG
_QUIET_EVENTS = {EventType.SNAPSHOT_UPDATED, EventType.KEYBOARD_KEYPRESS}
_LOUD_EVENTS = {EventType.PROVIDER_FAILED, EventType.PERSISTENT_FAILURE}


def _format_value(value) -> str:
    if isinstance(value, Enum):
        return value.name
    if isinstance(value, float):
        return f"{value:.3f}"
    return str(value)


def log_middleware(event: Event) -> Event:
    """
    Log all events

    Usage:
        event_bus.add_middleware(log_middleware)
    """
    source_str = EnumHelper.to_name(event.source)
    data_str = ", ".join(f"{k}={_format_value(v)}" for k, v in event.to_data().items())

    if event.type in _LOUD_EVENTS:
        level = LogLevel.WARN
    elif event.type in _QUIET_EVENTS:
        level = LogLevel.DEBUG
    else:
        level = LogLevel.INFO

    log.log(f"Event: {event.type.name} from {source_str} | {data_str}", level)
    return event
