"""Event emitter for worker lifecycle notifications."""

from typing import Callable, Dict, List


class EventEmitter:
    """Ordered, synchronous event channel keyed by event type.

    Events are plain dataclass instances. Handlers registered for an event's
    class are called in registration order at the moment the event is
    emitted, so every subscriber sees events in exactly the order the worker
    produced them.

    Example:
        >>> emitter = EventEmitter()
        >>> emitter.on(ProgressEvent, lambda e: print(e.path))
        >>> emitter.emit(ProgressEvent(path='src/app.py', index=1, total=3))
        src/app.py
    """

    def __init__(self):
        """Initialize empty event handlers dictionary."""
        self._handlers: Dict[type, List[Callable]] = {}
        self._catch_all: List[Callable] = []

    def on(self, event_type: type, handler: Callable) -> 'EventEmitter':
        """Subscribe to an event type.

        Args:
            event_type: Event class to listen for
            handler: Callable invoked with the event instance

        Returns:
            Self for method chaining
        """
        self._handlers.setdefault(event_type, []).append(handler)
        return self

    def on_any(self, handler: Callable) -> 'EventEmitter':
        """Subscribe to every event regardless of type."""
        self._catch_all.append(handler)
        return self

    def emit(self, event) -> None:
        """Deliver an event to its type's handlers, then catch-all handlers.

        Args:
            event: Event instance to publish
        """
        for handler in self._handlers.get(type(event), []):
            handler(event)
        for handler in self._catch_all:
            handler(event)
