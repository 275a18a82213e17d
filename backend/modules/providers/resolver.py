"""
Link Resolver — picks the provider that receives automated work for a store.

A store may be linked to several providers; the oldest accepted link to an
active provider wins so repeated runs route a store's work consistently.
"""

import logging
from typing import Optional

from sqlalchemy.exc import DBAPIError, OperationalError
from sqlalchemy.orm import sessionmaker

from core.base import ProviderLinkStatus
from core.interfaces.maintenance_store import StoreUnavailableError
from core.interfaces.provider import ProviderResolver
from modules.providers.models import ServiceProvider, StoreProviderLink

log = logging.getLogger("cartcare.store")


class SqlProviderResolver(ProviderResolver):

    def __init__(self, session_factory: sessionmaker):
        self._session_factory = session_factory

    def resolve_active_provider(self, store_id: int) -> Optional[int]:
        try:
            with self._session_factory() as db:
                row = (
                    db.query(StoreProviderLink.provider_id)
                    .join(ServiceProvider, ServiceProvider.id == StoreProviderLink.provider_id)
                    .filter(
                        StoreProviderLink.store_id == store_id,
                        StoreProviderLink.status == ProviderLinkStatus.ACCEPTED,
                        ServiceProvider.is_active.is_(True),
                    )
                    .order_by(StoreProviderLink.id)
                    .first()
                )
        except OperationalError as e:
            raise StoreUnavailableError(f"Provider lookup failed: {e.orig or e}") from e
        except DBAPIError as e:
            if e.connection_invalidated:
                raise StoreUnavailableError(f"Provider lookup lost its connection: {e}") from e
            raise
        return row[0] if row else None
