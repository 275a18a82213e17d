# core/interfaces/provider.py
from abc import ABC, abstractmethod
from typing import Optional


class ProviderResolver(ABC):
    """What the maintenance module needs from the providers module."""

    @abstractmethod
    def resolve_active_provider(self, store_id: int) -> Optional[int]:
        """Return the id of an active service provider linked to store_id, or None."""
        ...
