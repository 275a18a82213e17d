"""
modules/fleet/models.py — ORM models for the fleet domain.

Owns tables: carts, cart_telemetry

Carts belong to a store (store_id is the owning organization's id; the
organizations domain is external, so there is no FK).
"""

from sqlalchemy import (
    Column, Integer, String, Float, Date, DateTime, ForeignKey,
    Enum as SQLEnum, Text, UniqueConstraint,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from core.base import Base, CartStatus, _ENUM_VALUES


class Cart(Base):
    """A tracked cart (the asset being maintained)."""
    __tablename__ = "carts"

    id = Column(Integer, primary_key=True)
    store_id = Column(Integer, nullable=False, index=True)
    qr_code = Column(String(100), nullable=True, unique=True)
    status = Column(SQLEnum(CartStatus, values_callable=_ENUM_VALUES), default=CartStatus.ACTIVE, nullable=False)
    last_maintenance = Column(DateTime, nullable=True)
    issue_notes = Column(Text, nullable=True)
    created_at = Column(DateTime, server_default=func.now())

    telemetry = relationship("CartTelemetry", back_populates="cart", order_by="CartTelemetry.metric_date")


class CartTelemetry(Base):
    """One row of usage metrics per cart per calendar day."""
    __tablename__ = "cart_telemetry"
    __table_args__ = (UniqueConstraint("cart_id", "metric_date", name="uq_cart_telemetry_day"),)

    id = Column(Integer, primary_key=True)
    cart_id = Column(Integer, ForeignKey("carts.id"), nullable=False, index=True)
    metric_date = Column(Date, nullable=False)
    usage_hours = Column(Float, default=0, nullable=False)
    issues_reported = Column(Integer, default=0, nullable=False)
    downtime_minutes = Column(Float, default=0, nullable=False)
    maintenance_cost = Column(Float, default=0, nullable=False)  # currency minor-unit agnostic

    cart = relationship("Cart", back_populates="telemetry")
