# core/registry.py — Module Registry for dependency injection
#
# Tracks interface providers registered by modules ("MaintenanceStore",
# "ProviderResolver", "AdvisoryGenerator", "Notifier"). Supports validation that
# all declared REQUIRES dependencies have been satisfied before app startup.

import logging
from typing import Any

log = logging.getLogger("cartcare.registry")


class ModuleRegistry:
    """
    Lightweight dependency injection registry.

    Modules call register_provider() to advertise what interfaces they implement.
    Other modules call get_provider() to retrieve an implementation.
    validate_dependencies() checks that every REQUIRES declaration across all
    loaded modules has a matching registered provider.
    """

    def __init__(self):
        self._providers: dict[str, Any] = {}
        self._declared_requires: list[tuple[str, str]] = []  # (module_id, interface)

    def register_provider(self, interface_name: str, impl: Any) -> None:
        """Register an implementation for the named interface (last writer wins)."""
        existing = self._providers.get(interface_name)
        if existing is not None and existing is not impl:
            log.warning(
                f"Interface '{interface_name}' already registered by "
                f"{type(existing).__name__!r}; overwriting with {type(impl).__name__!r}"
            )
        self._providers[interface_name] = impl
        log.debug(f"Registered provider for '{interface_name}': {type(impl).__name__}")

    def get_provider(self, interface_name: str) -> Any:
        """Return the registered provider for an interface, or None if missing."""
        provider = self._providers.get(interface_name)
        if provider is None:
            log.warning(
                f"No provider registered for interface '{interface_name}'. "
                "Check that the required module is loaded."
            )
        return provider

    def record_requires(self, module_id: str, requires: list[str]) -> None:
        for iface in requires:
            self._declared_requires.append((module_id, iface))

    def validate_dependencies(self) -> bool:
        """Log every unsatisfied REQUIRES declaration; True when none are missing."""
        missing = [
            (module_id, iface) for module_id, iface in self._declared_requires
            if iface not in self._providers
        ]
        for module_id, iface in missing:
            log.error(
                f"Unsatisfied dependency: module '{module_id}' requires "
                f"'{iface}' but no provider is registered."
            )
        if not missing:
            log.info(
                f"All module dependencies satisfied "
                f"({len(self._declared_requires)} declarations checked)."
            )
        return not missing

    def reset(self) -> None:
        self._providers.clear()
        self._declared_requires.clear()

    @property
    def providers(self) -> dict[str, Any]:
        """Read-only view of all registered providers."""
        return dict(self._providers)


registry = ModuleRegistry()
