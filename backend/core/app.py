# core/app.py — App factory with dynamic module discovery
#
# Creates and configures the FastAPI application. Discovers all modules under
# backend/modules/, resolves load order from REQUIRES/IMPLEMENTS declarations,
# and calls each module's register(app, registry) function.
#
# main.py is just: from core.app import create_app; app = create_app()

import importlib
import logging
import pathlib
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

log = logging.getLogger("cartcare.api")

_version_file = pathlib.Path(__file__).parent.parent.parent / "VERSION"
if _version_file.exists():
    __version__ = _version_file.read_text().strip()
else:
    __version__ = "0.4.0"


# ---------------------------------------------------------------------------
# Module discovery helpers
# ---------------------------------------------------------------------------

def _discover_modules() -> list[str]:
    """Return module package names under backend/modules/ that carry a MODULE_ID."""
    modules_dir = pathlib.Path(__file__).parent.parent / "modules"
    found = []
    for entry in sorted(modules_dir.iterdir()):
        if not (entry / "__init__.py").exists():
            continue
        pkg_name = f"modules.{entry.name}"
        try:
            mod = importlib.import_module(pkg_name)
        except Exception as exc:
            log.warning(f"Module discovery: skipping {pkg_name!r} — {exc}")
            continue
        if hasattr(mod, "MODULE_ID"):
            found.append(pkg_name)
    return found


def _resolve_load_order(pkg_names: list[str]) -> list[str]:
    """Topologically sort modules so that providers load before their consumers.

    Kahn's algorithm over REQUIRES -> IMPLEMENTS edges. Modules caught in a
    cycle (or requiring an interface nobody implements) are appended in
    discovery order with a warning rather than aborting startup.
    """
    manifests = {pkg: importlib.import_module(pkg) for pkg in pkg_names}

    providers: dict[str, str] = {}
    for pkg, mod in manifests.items():
        for iface in getattr(mod, "IMPLEMENTS", []):
            providers[iface] = pkg

    deps: dict[str, set[str]] = {pkg: set() for pkg in pkg_names}
    for pkg, mod in manifests.items():
        for iface in getattr(mod, "REQUIRES", []):
            provider_pkg = providers.get(iface)
            if provider_pkg and provider_pkg != pkg:
                deps[pkg].add(provider_pkg)

    in_degree = {pkg: len(d) for pkg, d in deps.items()}
    queue = sorted(pkg for pkg in pkg_names if in_degree[pkg] == 0)
    ordered: list[str] = []

    while queue:
        pkg = queue.pop(0)
        ordered.append(pkg)
        for other, d in deps.items():
            if pkg in d:
                in_degree[other] -= 1
                if in_degree[other] == 0:
                    queue.append(other)
                    queue.sort()

    remaining = [pkg for pkg in pkg_names if pkg not in ordered]
    if remaining:
        log.warning(
            f"Module load order: circular or unresolvable dependencies for "
            f"{remaining} — appending in discovery order."
        )
        ordered.extend(remaining)
    return ordered


def _setup_middleware(app: FastAPI) -> None:
    from core.config import settings

    cors_origins = [o.strip() for o in settings.cors_origins.split(",") if o.strip()]
    if "*" in cors_origins:
        log.warning("CORS origin '*' is not allowed with credentials — ignoring CORS_ORIGINS.")
        cors_origins = []

    app.add_middleware(
        CORSMiddleware,
        allow_origins=cors_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PATCH", "OPTIONS"],
        allow_headers=["Authorization", "Content-Type", "Accept"],
    )


# ---------------------------------------------------------------------------
# App factory
# ---------------------------------------------------------------------------

def create_app() -> FastAPI:
    """Create and fully configure the CartCare FastAPI application.

    1. Discover modules and resolve their load order.
    2. Call each module's register(app, registry) so routes and interface
       providers exist before the first request.
    3. On startup (lifespan): create tables, validate REQUIRES, and wire
       event bus subscribers.
    """
    from core.db import init_db
    from core.event_bus import get_event_bus
    from core.registry import registry

    ordered_pkgs = _resolve_load_order(_discover_modules())
    log.info(f"Module load order: {[p.split('.')[-1] for p in ordered_pkgs]}")

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        init_db()
        registry.validate_dependencies()

        bus = get_event_bus()
        for pkg in ordered_pkgs:
            mod = importlib.import_module(pkg)
            if hasattr(mod, "register_subscribers"):
                mod.register_subscribers(bus)
        log.info("Event bus initialized with module subscribers")
        yield

    app = FastAPI(
        title="CartCare",
        description="Cart fleet maintenance — risk scoring and automated service scheduling",
        version=__version__,
        lifespan=lifespan,
        docs_url="/api/docs",
        redoc_url="/api/redoc",
    )
    _setup_middleware(app)

    @app.get("/health", tags=["System"], include_in_schema=False)
    def health():
        return {"status": "ok", "version": __version__}

    for pkg in ordered_pkgs:
        mod = importlib.import_module(pkg)
        registry.record_requires(getattr(mod, "MODULE_ID", pkg), getattr(mod, "REQUIRES", []))
        if hasattr(mod, "register"):
            try:
                mod.register(app, registry)
                log.debug(f"Registered module: {pkg}")
            except Exception as exc:
                log.error(f"Failed to register module {pkg!r}: {exc}", exc_info=True)

    return app
