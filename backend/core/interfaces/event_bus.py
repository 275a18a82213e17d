# core/interfaces/event_bus.py
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Callable, Any


@dataclass
class Event:
    event_type: str     # e.g. "maintenance.overdue", "maintenance.completed"
    source_module: str  # e.g. "maintenance", "notifications"
    data: dict
    occurred_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


class EventBus(ABC):
    """In-process pub/sub between modules. Delivery is best-effort."""

    @abstractmethod
    def publish(self, event: Event) -> int:
        """Deliver event to subscribers; returns how many handlers raised."""

    @abstractmethod
    def subscribe(self, event_type: str, handler: Callable[[Event], Any]) -> None: ...

    @abstractmethod
    def unsubscribe(self, event_type: str, handler: Callable) -> None: ...
