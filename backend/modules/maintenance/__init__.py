MODULE_ID = "maintenance"
MODULE_VERSION = "1.0.0"
MODULE_DESCRIPTION = "Risk scoring, recurring schedules, service requests, and the auto-scheduler"

ROUTES = [
    "maintenance.routes",
]

TABLES = [
    "service_requests",
    "maintenance_schedules",
    "maintenance_runs",
]

PUBLISHES = [
    "maintenance.overdue",
    "maintenance.upcoming",
    "maintenance.completed",
]

SUBSCRIBES = []

IMPLEMENTS = ["MaintenanceStore"]

REQUIRES = ["ProviderResolver", "AdvisoryGenerator", "Notifier"]

DAEMONS = ["maintenance.runner"]


def register(app, registry) -> None:
    """Register the maintenance routes and the SQL-backed MaintenanceStore."""
    from core.db import SessionLocal
    from modules.maintenance import routes
    from modules.maintenance.store import SqlMaintenanceStore

    registry.register_provider("MaintenanceStore", SqlMaintenanceStore(SessionLocal))
    app.include_router(routes.router, prefix="/api")
