MODULE_ID = "providers"
MODULE_VERSION = "1.0.0"
MODULE_DESCRIPTION = "Service providers, store-provider links, and the Link Resolver"

ROUTES = []

TABLES = [
    "service_providers",
    "store_provider_links",
]

PUBLISHES = []

SUBSCRIBES = []

IMPLEMENTS = ["ProviderResolver"]

REQUIRES = []

DAEMONS = []


def register(app, registry) -> None:
    """Register the SQL-backed ProviderResolver."""
    from core.db import SessionLocal
    from modules.providers.resolver import SqlProviderResolver

    registry.register_provider("ProviderResolver", SqlProviderResolver(SessionLocal))
