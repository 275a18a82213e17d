MODULE_ID = "fleet"
MODULE_VERSION = "1.0.0"
MODULE_DESCRIPTION = "Carts and their daily usage telemetry"

ROUTES = []

TABLES = [
    "carts",
    "cart_telemetry",
]

PUBLISHES = []

SUBSCRIBES = []

IMPLEMENTS = []

REQUIRES = []

DAEMONS = []


def register(app, registry) -> None:
    """Fleet owns tables only; carts are read and written through MaintenanceStore."""
    import modules.fleet.models  # noqa: F401
