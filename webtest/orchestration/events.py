"""
Outgoing engine events and the bus that delivers them.

The engine never mutates view state directly; it publishes what should be
shown (screenshot, highlight box, notifications, results) and the hosting
UI subscribes.
"""

from collections import defaultdict
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Callable, Dict, List, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field

from webtest.monitoring.logger import get_logger, log_engine_event

logger = get_logger(__name__)


class EngineEventType(str, Enum):
    """Types of events published by the engine."""

    SEQUENCE_CHANGED = "sequence_changed"
    RECORDING_STATE_CHANGED = "recording_state_changed"
    SCREENSHOT_CHANGED = "screenshot_changed"
    HIGHLIGHT_CHANGED = "highlight_changed"
    ELEMENTS_CHANGED = "elements_changed"
    EXECUTION_STARTED = "execution_started"
    EXECUTION_FINISHED = "execution_finished"
    PLAYBACK_PROGRESS = "playback_progress"
    PLAYBACK_FINISHED = "playback_finished"
    NOTIFICATION = "notification"


class NotificationSeverity(str, Enum):
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


class Notification(BaseModel):
    """User-facing notice."""

    severity: NotificationSeverity = NotificationSeverity.INFO
    title: str
    message: str = ""


class EngineEvent(BaseModel):
    """One published event."""

    id: UUID = Field(default_factory=uuid4)
    type: EngineEventType
    payload: Dict[str, Any] = Field(default_factory=dict)
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


EventHandler = Callable[[EngineEvent], None]


class EventBus:
    """
    Synchronous publish-subscribe bus for engine events.

    Handlers run in subscription order inside publish(). A handler that
    raises is logged and the remaining handlers still receive the event.
    """

    def __init__(self, history_limit: int = 500, screenshot_history_limit: int = 20):
        self._subscribers: Dict[EngineEventType, List[EventHandler]] = defaultdict(list)
        self._wildcard: List[EventHandler] = []
        self._history: List[EngineEvent] = []
        self._history_limit = history_limit
        # Only the newest screenshot events keep their image data in history
        self._screenshot_history_limit = screenshot_history_limit

    def subscribe(self, event_type: EngineEventType, handler: EventHandler) -> None:
        """
        Subscribe to events of one type.

        Args:
            event_type: Type of event to receive
            handler: Callback receiving the event
        """
        self._subscribers[event_type].append(handler)
        logger.debug(f"Subscription added for {event_type.value}")

    def subscribe_all(self, handler: EventHandler) -> None:
        """Subscribe to every event type."""
        self._wildcard.append(handler)

    def unsubscribe(self, event_type: Optional[EngineEventType], handler: EventHandler) -> None:
        """
        Remove a subscription.

        Args:
            event_type: Type subscribed to, or None for a subscribe_all handler
            handler: Callback to remove
        """
        handlers = self._wildcard if event_type is None else self._subscribers[event_type]
        if handler in handlers:
            handlers.remove(handler)

    def publish(
        self,
        event_type: EngineEventType,
        payload: Optional[Dict[str, Any]] = None,
    ) -> EngineEvent:
        """
        Publish an event to its subscribers.

        Returns:
            The published event
        """
        event = EngineEvent(type=event_type, payload=payload or {})
        self._add_to_history(event)
        log_engine_event(event_type.value, event.payload)

        for handler in list(self._subscribers.get(event_type, [])) + list(self._wildcard):
            try:
                handler(event)
            except Exception:
                logger.exception(f"Event handler failed for {event_type.value}")

        return event

    def notify(
        self,
        severity: NotificationSeverity,
        title: str,
        message: str = "",
    ) -> EngineEvent:
        """Publish a user-facing notification."""
        notification = Notification(severity=severity, title=title, message=message)
        log = logger.warning if severity == NotificationSeverity.ERROR else logger.info
        log(f"{title}: {message}" if message else title)
        return self.publish(EngineEventType.NOTIFICATION, notification.model_dump(mode="json"))

    def _add_to_history(self, event: EngineEvent) -> None:
        self._history.append(event)
        if len(self._history) > self._history_limit:
            self._history = self._history[-self._history_limit:]
        if event.type == EngineEventType.SCREENSHOT_CHANGED:
            self._strip_old_screenshots()

    def _strip_old_screenshots(self) -> None:
        kept = 0
        for index in range(len(self._history) - 1, -1, -1):
            event = self._history[index]
            if event.type != EngineEventType.SCREENSHOT_CHANGED:
                continue
            if event.payload.get("screenshot") is None:
                continue
            kept += 1
            if kept > self._screenshot_history_limit:
                payload = dict(event.payload, screenshot=None, screenshot_stripped=True)
                self._history[index] = event.model_copy(update={"payload": payload})

    def get_history(
        self,
        event_type: Optional[EngineEventType] = None,
        limit: int = 100,
    ) -> List[EngineEvent]:
        """
        Get recent events, newest last.

        Args:
            event_type: Filter by event type
            limit: Maximum number of events to return
        """
        history = self._history
        if event_type is not None:
            history = [e for e in history if e.type == event_type]
        return history[-limit:]

    def clear_history(self) -> None:
        """Clear event history."""
        self._history.clear()
