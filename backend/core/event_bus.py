# core/event_bus.py — InMemoryEventBus implementation
#
# Synchronous single-process pub/sub. The maintenance module never talks to
# notification channels directly; it publishes here and the notifications
# module subscribes. A failing subscriber is logged and skipped, which is what
# makes notification delivery fire-and-forget for the publisher.

import logging
import threading
from collections import defaultdict
from typing import Callable, Any

from core.interfaces.event_bus import EventBus, Event

log = logging.getLogger("event_bus")

WILDCARD = "*"


class InMemoryEventBus(EventBus):
    """
    Synchronous in-process event bus.

    Handlers run in registration order on the publisher's thread; wildcard
    handlers run after the type-specific ones. Subscription changes are
    guarded by a lock because scheduler workers may publish concurrently.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._handlers: dict[str, list[Callable[[Event], Any]]] = defaultdict(list)

    def publish(self, event: Event) -> int:
        with self._lock:
            handlers = list(self._handlers.get(event.event_type, []))
            handlers += [h for h in self._handlers.get(WILDCARD, []) if h not in handlers]

        failures = 0
        for handler in handlers:
            try:
                handler(event)
            except Exception as e:
                failures += 1
                log.error(
                    f"Handler {handler!r} raised for '{event.event_type}' "
                    f"from {event.source_module}: {e}",
                    exc_info=True,
                )
        return failures

    def subscribe(self, event_type: str, handler: Callable[[Event], Any]) -> None:
        """Register handler for event_type ("*" receives every event)."""
        with self._lock:
            if handler not in self._handlers[event_type]:
                self._handlers[event_type].append(handler)

    def unsubscribe(self, event_type: str, handler: Callable) -> None:
        with self._lock:
            if handler in self._handlers.get(event_type, []):
                self._handlers[event_type].remove(handler)

    def clear(self) -> None:
        """Drop every subscription (used when the app is rebuilt, e.g. in tests)."""
        with self._lock:
            self._handlers.clear()


# ---------------------------------------------------------------------------
# Singleton
# ---------------------------------------------------------------------------

_bus: InMemoryEventBus = InMemoryEventBus()


def get_event_bus() -> InMemoryEventBus:
    """Return the application-level event bus singleton."""
    return _bus
