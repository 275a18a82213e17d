"""
modules/providers/models.py — ORM models for the providers domain.

Owns tables: service_providers, store_provider_links
"""

from sqlalchemy import (
    Column, Integer, String, Boolean, DateTime, ForeignKey,
    Enum as SQLEnum, UniqueConstraint,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from core.base import Base, ProviderLinkStatus, _ENUM_VALUES


class ServiceProvider(Base):
    """A maintenance company that services carts."""
    __tablename__ = "service_providers"

    id = Column(Integer, primary_key=True)
    company_name = Column(String(200), nullable=False)
    contact_email = Column(String(200), nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, server_default=func.now())

    links = relationship("StoreProviderLink", back_populates="provider")


class StoreProviderLink(Base):
    """A store's connection to a provider. Only accepted links can receive work."""
    __tablename__ = "store_provider_links"
    __table_args__ = (UniqueConstraint("store_id", "provider_id", name="uq_store_provider"),)

    id = Column(Integer, primary_key=True)
    store_id = Column(Integer, nullable=False, index=True)
    provider_id = Column(Integer, ForeignKey("service_providers.id"), nullable=False)
    status = Column(SQLEnum(ProviderLinkStatus, values_callable=_ENUM_VALUES),
                    default=ProviderLinkStatus.PENDING, nullable=False)
    created_at = Column(DateTime, server_default=func.now())

    provider = relationship("ServiceProvider", back_populates="links")
