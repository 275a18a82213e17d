# core/interfaces/notification.py
from abc import ABC, abstractmethod


class Notifier(ABC):
    """What the maintenance module calls to raise human-facing alerts.

    event_kind is one of core.events.NOTIFY_OVERDUE / NOTIFY_UPCOMING /
    NOTIFY_COMPLETED. Fire-and-forget: callers log and ignore failures.
    """

    @abstractmethod
    def notify(self, event_kind: str, payload: dict) -> None:
        ...
