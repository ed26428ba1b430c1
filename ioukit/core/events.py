"""IOU Kit event hooks — observability and deletion notifications."""

import logging
import threading
from collections import defaultdict
from typing import Any, Callable

logger = logging.getLogger(__name__)

# Event types
DOCUMENT_INGESTED = "document.ingested"
DOCUMENT_DELETED = "document.deleted"
DOCUMENT_RETRACTED = "document.retracted"
COMMUNITIES_DETECTED = "graph.communities_detected"
INVARIANT_VIOLATED = "graph.invariant_violated"


class EventBus:
    """Simple synchronous event bus.

    Handlers run on the emitting thread.  A failing handler is logged and
    skipped so one bad subscriber cannot break ingestion.
    """

    def __init__(self):
        self._handlers: dict[str, list[Callable]] = defaultdict(list)
        self._lock = threading.Lock()

    def on(self, event: str, handler: Callable) -> None:
        """Register a handler for an event."""
        with self._lock:
            self._handlers[event].append(handler)

    def off(self, event: str, handler: Callable) -> None:
        """Unregister a handler for an event."""
        with self._lock:
            self._handlers[event] = [
                h for h in self._handlers[event] if h != handler
            ]

    def emit(self, event: str, **kwargs: Any) -> list[Any]:
        """Emit an event, calling all registered handlers in order."""
        with self._lock:
            handlers = list(self._handlers.get(event, []))
        results = []
        for handler in handlers:
            try:
                results.append(handler(**kwargs))
            except Exception as e:
                logger.error("Error in event handler for %s: %s", event, e)
        return results


# Global event bus instance
event_bus = EventBus()
