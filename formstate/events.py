"""Event system for the formstate validation engine.

This module provides the event records and the event emitter the presentation
layer subscribes to. Field changes, validations, submits and resets each emit
a typed FormEvent.

Events never carry field values, only identifiers, codes and states, so a
password cannot leak into a listener or a log line.
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional
import json
import logging
import uuid

from .types import EventType

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FormEvent:
    """A single event in the life of a form.

    Attributes:
        event_id: Unique event identifier (e.g., "evt_3f2a...")
        type: Event type from EventType enum
        ts: UTC timestamp when the event occurred
        field_id: The field concerned, for field-level events
        payload: Optional event-specific data (error codes, states, field ids)

    Examples:
        >>> event = FormEvent.create(EventType.FIELD_CHANGED, field_id="email")
        >>> event.type
        <EventType.FIELD_CHANGED: 'field.changed'>
    """
    event_id: str
    type: EventType
    ts: datetime
    field_id: Optional[str] = None
    payload: Optional[Dict[str, Any]] = None

    def __post_init__(self):
        if isinstance(self.type, str) and not isinstance(self.type, EventType):
            object.__setattr__(self, "type", EventType(self.type))

    @classmethod
    def create(
        cls,
        event_type: EventType,
        field_id: Optional[str] = None,
        payload: Optional[Dict[str, Any]] = None,
    ) -> "FormEvent":
        """Create an event with a fresh id and the current UTC time."""
        return cls(
            event_id=f"evt_{uuid.uuid4().hex[:16]}",
            type=event_type,
            ts=datetime.now(timezone.utc),
            field_id=field_id,
            payload=payload,
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert event to dictionary for serialization.

        Returns:
            Dictionary with all event fields, suitable for JSON serialization.
            Timestamp is formatted as ISO 8601 string.
        """
        result: Dict[str, Any] = {
            "eventId": self.event_id,
            "type": self.type.value,
            "ts": self.ts.isoformat(),
        }
        if self.field_id is not None:
            result["fieldId"] = self.field_id
        if self.payload is not None:
            result["payload"] = self.payload
        return result

    def to_jsonl(self) -> str:
        """Convert event to JSONL format (single-line JSON)."""
        return json.dumps(self.to_dict(), separators=(',', ':'))


EventListener = Callable[[FormEvent], None]
"""Type alias for event listener callbacks.

Listeners are called synchronously, inside the event handler that emitted
the event, and must not feed new events back into the form.
"""


class EventEmitter:
    """Event emitter for managing event listeners and dispatching events.

    Features:
    - Type-specific subscriptions (listen to specific event types)
    - Wildcard subscriptions (listen to all events)
    - Synchronous dispatch (listeners called in registration order)
    - Error isolation (a failing listener is logged and skipped)

    Examples:
        >>> emitter = EventEmitter()
        >>> seen = []
        >>> emitter.on(EventType.FORM_SUBMITTED, seen.append)
        >>> emitter.emit(FormEvent.create(EventType.FORM_SUBMITTED))
        >>> len(seen)
        1
    """

    def __init__(self):
        self._listeners: Dict[EventType, List[EventListener]] = {}
        self._any_listeners: List[EventListener] = []

    def on(self, event_type: EventType, listener: EventListener) -> None:
        """Subscribe to a specific event type."""
        self._listeners.setdefault(event_type, []).append(listener)

    def on_any(self, listener: EventListener) -> None:
        """Subscribe to all event types (wildcard subscription)."""
        self._any_listeners.append(listener)

    def off(self, event_type: EventType, listener: EventListener) -> None:
        """Unsubscribe from a specific event type. Unknown listeners are ignored."""
        listeners = self._listeners.get(event_type, [])
        if listener in listeners:
            listeners.remove(listener)

    def off_any(self, listener: EventListener) -> None:
        """Unsubscribe from wildcard subscription. Unknown listeners are ignored."""
        if listener in self._any_listeners:
            self._any_listeners.remove(listener)

    def emit(self, event: FormEvent) -> None:
        """Dispatch an event to all registered listeners.

        Type-specific listeners run first, then wildcard listeners. A listener
        that raises is logged and does not stop the others.
        """
        # Copy so listeners may unsubscribe while being called
        listeners = list(self._listeners.get(event.type, [])) + list(self._any_listeners)
        for listener in listeners:
            try:
                listener(event)
            except Exception:
                logger.exception("Listener %r failed on %s", listener, event.type.value)

    def clear(self) -> None:
        """Remove all event listeners."""
        self._listeners.clear()
        self._any_listeners.clear()

    def listener_count(self, event_type: Optional[EventType] = None) -> int:
        """Get count of registered listeners.

        Args:
            event_type: If provided, count listeners for this type only.
                        If None, count all listeners (including wildcard).
        """
        if event_type is not None:
            return len(self._listeners.get(event_type, []))
        return len(self._any_listeners) + sum(len(l) for l in self._listeners.values())


__all__ = [
    "FormEvent",
    "EventListener",
    "EventEmitter",
]
