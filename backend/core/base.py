"""
core/base.py — Declarative Base and shared enums.

All ORM models import Base from here.
All shared enums (used across multiple domain modules) live here
to avoid circular imports between domain modules.
"""

from enum import Enum
from sqlalchemy.orm import declarative_base

Base = declarative_base()

# SQLAlchemy 2.x defaults to using enum member NAMES as DB values.
# We want member VALUES (lowercase strings) instead.
_ENUM_VALUES = lambda x: [e.value for e in x]


class CartStatus(str, Enum):
    ACTIVE = "active"
    OUT_OF_SERVICE = "out_of_service"
    RETIRED = "retired"


class RequestCategory(str, Enum):
    ROUTINE = "routine"
    EMERGENCY = "emergency"
    INSPECTION = "inspection"
    REPAIR = "repair"


class RequestPriority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    URGENT = "urgent"


class RequestStatus(str, Enum):
    """Status progression for service requests."""
    PENDING = "pending"           # Created, not yet booked with the provider
    SCHEDULED = "scheduled"       # Provider confirmed a visit
    IN_PROGRESS = "in_progress"   # Technician on site
    COMPLETED = "completed"
    CANCELLED = "cancelled"


# Statuses that count as "open" for duplicate prevention on automated requests
OPEN_REQUEST_STATUSES = (RequestStatus.PENDING, RequestStatus.SCHEDULED)

TERMINAL_REQUEST_STATUSES = (RequestStatus.COMPLETED, RequestStatus.CANCELLED)


class RecurrenceUnit(str, Enum):
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    QUARTERLY = "quarterly"
    YEARLY = "yearly"


class RiskTier(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class ProviderLinkStatus(str, Enum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    REJECTED = "rejected"
