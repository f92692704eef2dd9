"""
Event Bus - Central event routing system

Implements pub-sub pattern:
- Publishers: publish(event)
- Subscribers: subscribe(event_type, handler, priority, filter_fn)
- Middleware: add_middleware(middleware_fn)

Also serves as the diagnostic channel: permanent provider failures and
persistent device failures are reported here exactly once.
"""

import asyncio
from typing import Callable, List, Dict, Optional
from dataclasses import dataclass

from zoom_sync.models.events import Event, EventType
from zoom_sync.utils.logger import get_logger, LogCategory

log = get_logger().for_category(LogCategory.EVENT)


@dataclass
class EventHandler:
    """Event handler registration"""
    handler: Callable[[Event], None]
    priority: int
    filter_fn: Optional[Callable[[Event], bool]]


class EventBus:
    """
    Central event bus for pub-sub event handling

    Features:
    - Priority-based handler execution (high priority first)
    - Per-handler filtering (fine-grained control)
    - Middleware pipeline (logging, blocking)
    - Async/sync handler support (auto-detected)
    - Fault tolerance (one handler crash doesn't stop others)

    Example:
        bus = EventBus()

        bus.subscribe(
            EventType.SYNC_STATE_CHANGED,
            handler_fn,
            priority=10,
            filter_fn=lambda e: e.new_state == SyncState.DISCONNECTED
        )

        await bus.publish(SyncStateChangedEvent(SyncState.IDLE, SyncState.RENDERING))
    """

    def __init__(self, history_limit: int = 100):
        self._handlers: Dict[EventType, List[EventHandler]] = {}

        # Applied in registration order
        self._middleware: List[Callable[[Event], Optional[Event]]] = []

        # Circular buffer for diagnostics
        self._event_history: List[Event] = []
        self._history_limit = history_limit

    def subscribe(
        self,
        event_type: EventType,
        handler: Callable[[Event], None],
        priority: int = 0,
        filter_fn: Optional[Callable[[Event], bool]] = None
    ) -> None:
        """
        Subscribe to event type

        Args:
            event_type: Which events to listen for
            handler: Function to call (can be async or sync)
            priority: Execution priority (higher = called first, default: 0)
            filter_fn: Optional filter (return True = handle, False = skip)
        """
        handlers = self._handlers.setdefault(event_type, [])
        handlers.append(EventHandler(handler, priority, filter_fn))
        handlers.sort(key=lambda h: h.priority, reverse=True)

        log.debug(
            "Event handler subscribed",
            event_type=event_type.name,
            handler=getattr(handler, "__name__", repr(handler)),
            priority=priority
        )

    def unsubscribe(self, event_type: EventType, handler: Callable[[Event], None]) -> None:
        handlers = self._handlers.get(event_type, [])
        self._handlers[event_type] = [h for h in handlers if h.handler != handler]

    def add_middleware(self, middleware: Callable[[Event], Optional[Event]]) -> None:
        """
        Add middleware to event processing pipeline

        Middleware can modify events (return modified event), block events
        (return None), or just observe them. Runs in registration order.
        """
        self._middleware.append(middleware)
        log.debug("Middleware registered", middleware=middleware.__name__)

    async def publish(self, event: Event) -> None:
        """
        Publish event to all subscribers

        Flow:
        1. Apply middleware (can modify or block event)
        2. Save to event history
        3. Execute matching handlers by priority (high → low)
        4. Catch and log handler exceptions (fault tolerance)
        """
        for middleware in self._middleware:
            processed_event = middleware(event)
            if processed_event is None:
                return
            event = processed_event

        self._event_history.append(event)
        if len(self._event_history) > self._history_limit:
            self._event_history.pop(0)

        handlers = self._handlers.get(event.type, [])
        if not handlers:
            return

        for handler_entry in list(handlers):
            if handler_entry.filter_fn and not handler_entry.filter_fn(event):
                continue

            try:
                if asyncio.iscoroutinefunction(handler_entry.handler):
                    await handler_entry.handler(event)
                else:
                    handler_entry.handler(event)
            except Exception as e:
                log.error(
                    f"Event handler failed: {getattr(handler_entry.handler, '__name__', '?')} for {event.type.name}",
                    exception=e
                )

    def publish_nowait(self, event: Event) -> Optional[asyncio.Task]:
        """
        Schedule publish() from synchronous code

        Returns the task, or None when no loop is running (event dropped).
        """
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            log.debug("No running loop, event dropped", event_type=event.type.name)
            return None
        return loop.create_task(self.publish(event))

    def get_event_history(self, limit: int = 10, event_type: Optional[EventType] = None) -> List[Event]:
        """
        Get recent events from history (newest last)

        Args:
            limit: Number of recent events to return
            event_type: Optional type filter
        """
        events = self._event_history
        if event_type is not None:
            events = [e for e in events if e.type == event_type]
        return events[-limit:]

    def clear_history(self) -> None:
        self._event_history.clear()
