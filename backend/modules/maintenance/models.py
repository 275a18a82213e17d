"""
modules/maintenance/models.py — ORM models for the maintenance domain.

Owns tables: service_requests, maintenance_schedules, maintenance_runs

Note: ServiceRequest has ForeignKeys to carts.id and service_providers.id,
referenced by table name string to avoid cross-module model imports.
"""

from sqlalchemy import (
    Column, Integer, String, Float, DateTime, Boolean,
    ForeignKey, Enum as SQLEnum, Text, Index, JSON, text,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from core.base import (
    Base, RequestCategory, RequestPriority, RequestStatus, RecurrenceUnit, _ENUM_VALUES,
)


class ServiceRequest(Base):
    """A unit of maintenance work on one cart. Never deleted, only transitioned."""
    __tablename__ = "service_requests"

    id = Column(Integer, primary_key=True)
    cart_id = Column(Integer, ForeignKey("carts.id"), nullable=False, index=True)
    store_id = Column(Integer, nullable=False, index=True)
    provider_id = Column(Integer, ForeignKey("service_providers.id"), nullable=True)

    category = Column(SQLEnum(RequestCategory, values_callable=_ENUM_VALUES), nullable=False)
    priority = Column(SQLEnum(RequestPriority, values_callable=_ENUM_VALUES),
                      default=RequestPriority.MEDIUM, nullable=False)
    status = Column(SQLEnum(RequestStatus, values_callable=_ENUM_VALUES),
                    default=RequestStatus.PENDING, nullable=False)

    scheduled_date = Column(DateTime, nullable=True)
    completed_date = Column(DateTime, nullable=True)  # Set only on completion

    description = Column(Text, nullable=True)
    advisory = Column(Text, nullable=True)     # Generated narrative, supplementary only
    notes = Column(Text, nullable=True)
    actual_duration = Column(Integer, nullable=True)  # minutes
    cost = Column(Float, nullable=True)

    # Created by the auto-scheduler (risk sweep or recurrence sweep)
    is_automated = Column(Boolean, default=False, nullable=False)
    schedule_id = Column(Integer, ForeignKey("maintenance_schedules.id"), nullable=True)

    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    schedule = relationship("MaintenanceSchedule", back_populates="requests")


# At most one open automated request per cart. Partial unique index so the
# database itself rejects the second insert from an overlapping run.
OPEN_AUTOMATED_REQUEST_INDEX = "uq_service_requests_open_automated"

Index(
    OPEN_AUTOMATED_REQUEST_INDEX,
    ServiceRequest.cart_id,
    unique=True,
    sqlite_where=text("is_automated = 1 AND status IN ('pending', 'scheduled')"),
    postgresql_where=text("is_automated IS TRUE AND status IN ('pending', 'scheduled')"),
)


class MaintenanceSchedule(Base):
    """Recurring preventive maintenance rule for one cart."""
    __tablename__ = "maintenance_schedules"

    id = Column(Integer, primary_key=True)
    cart_id = Column(Integer, ForeignKey("carts.id"), nullable=False, index=True)
    provider_id = Column(Integer, ForeignKey("service_providers.id"), nullable=True)
    schedule_type = Column(SQLEnum(RecurrenceUnit, values_callable=_ENUM_VALUES), nullable=False)
    frequency = Column(Integer, default=1, nullable=False)  # every N units
    maintenance_type = Column(String(100), default="routine", nullable=False)
    estimated_duration = Column(Integer, default=60)  # minutes
    next_due_date = Column(DateTime, nullable=False, index=True)
    last_completed = Column(DateTime, nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime, server_default=func.now())

    requests = relationship("ServiceRequest", back_populates="schedule")


class MaintenanceRun(Base):
    """
    Log of auto-scheduler executions for monitoring.
    """
    __tablename__ = "maintenance_runs"

    id = Column(Integer, primary_key=True)
    started_at = Column(DateTime, nullable=False)
    finished_at = Column(DateTime, nullable=False)

    assets_scanned = Column(Integer, default=0)
    high_risk_found = Column(Integer, default=0)
    requests_created = Column(Integer, default=0)
    schedules_due = Column(Integer, default=0)
    schedules_advanced = Column(Integer, default=0)
    skipped = Column(JSON, nullable=True)  # {reason: count}
    errors = Column(Integer, default=0)
    cancelled = Column(Boolean, default=False)
