"""
Auto-schedule runner — one scheduler tick for cron.

    cartcare-autoschedule          # console script
    python -m modules.maintenance.runner

Exits 0 when the run finishes (including runs with per-cart errors) and 1
when the maintenance store is unreachable.
"""

import logging
import sys

log = logging.getLogger("cartcare.autoschedule")


def build_scheduler(session_factory=None):
    """Wire a MaintenanceScheduler from settings, outside of the FastAPI app."""
    from core.config import settings
    from core.db import SessionLocal
    from core.event_bus import get_event_bus
    from modules.advisory import build_advisory_generator
    from modules.maintenance.scheduler import MaintenanceScheduler, SchedulerConfig
    from modules.maintenance.store import SqlMaintenanceStore
    from modules.notifications import register_subscribers
    from modules.notifications.notifier import EventBusNotifier
    from modules.providers.resolver import SqlProviderResolver

    session_factory = session_factory or SessionLocal
    bus = get_event_bus()
    register_subscribers(bus)
    return MaintenanceScheduler(
        SqlMaintenanceStore(session_factory),
        SqlProviderResolver(session_factory),
        notifier=EventBusNotifier(bus),
        advisory=build_advisory_generator(settings),
        config=SchedulerConfig.from_settings(settings),
    )


def main(session_factory=None) -> int:
    from sqlalchemy.exc import OperationalError

    from core.db import init_db
    from core.interfaces.maintenance_store import StoreUnavailableError

    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s [autoschedule] %(levelname)s %(message)s",
    )
    try:
        if session_factory is None:
            init_db()
        scheduler = build_scheduler(session_factory)
        scheduler.store.ping()
        result = scheduler.run()
    except (StoreUnavailableError, OperationalError) as e:
        log.error(f"Auto-schedule aborted, store unavailable: {e}")
        return 1
    log.info(f"Auto-schedule finished: {result.requests_created} requests created")
    return 0


if __name__ == "__main__":
    sys.exit(main())
