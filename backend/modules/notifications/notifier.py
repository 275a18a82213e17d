"""EventBusNotifier — the Notifier implementation used by the maintenance module."""

import logging

from core.events import NOTIFY_EVENT_TYPES
from core.interfaces.event_bus import Event, EventBus
from core.interfaces.notification import Notifier

log = logging.getLogger("cartcare.notifications")


class EventBusNotifier(Notifier):
    """Publishes maintenance.* events; subscribers do the actual delivery."""

    def __init__(self, bus: EventBus, source_module: str = "maintenance"):
        self.bus = bus
        self.source_module = source_module

    def notify(self, event_kind: str, payload: dict) -> None:
        event_type = NOTIFY_EVENT_TYPES.get(event_kind)
        if event_type is None:
            raise ValueError(f"Unknown notification kind {event_kind!r}")
        failures = self.bus.publish(Event(
            event_type=event_type,
            source_module=self.source_module,
            data=payload,
        ))
        if failures:
            log.warning(f"{failures} subscriber(s) failed handling {event_type}")
