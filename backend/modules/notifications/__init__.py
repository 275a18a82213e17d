MODULE_ID = "notifications"
MODULE_VERSION = "1.0.0"
MODULE_DESCRIPTION = "Maintenance alerts over the event bus with an optional webhook channel"

ROUTES = []

TABLES = []

PUBLISHES = []

SUBSCRIBES = [
    "maintenance.overdue",
    "maintenance.upcoming",
    "maintenance.completed",
]

IMPLEMENTS = ["Notifier"]

REQUIRES = []

DAEMONS = []


def register(app, registry) -> None:
    """Register the event-bus backed Notifier."""
    from core.event_bus import get_event_bus
    from modules.notifications.notifier import EventBusNotifier

    registry.register_provider("Notifier", EventBusNotifier(get_event_bus()))


def register_subscribers(bus) -> None:
    """Subscribe the delivery channels to every maintenance event."""
    from modules.notifications.channels import on_maintenance_event

    for event_type in SUBSCRIBES:
        bus.subscribe(event_type, on_maintenance_event)
