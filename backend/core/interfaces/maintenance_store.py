# core/interfaces/maintenance_store.py
#
# What the maintenance scheduler needs from persistent storage. Values crossing
# this boundary are plain dataclasses, never ORM rows, so the scheduler can be
# driven by an in-memory fake in tests and by SqlMaintenanceStore in production.
# All datetimes are timezone-aware UTC.

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Optional

from core.base import (
    CartStatus, RecurrenceUnit, RequestCategory, RequestPriority, RequestStatus,
)


class StoreUnavailableError(RuntimeError):
    """The backing store cannot be reached; fatal for a whole scheduler run."""


@dataclass(frozen=True)
class Asset:
    id: int
    store_id: int
    status: CartStatus = CartStatus.ACTIVE
    last_maintenance: Optional[datetime] = None
    issue_notes: Optional[str] = None
    qr_code: Optional[str] = None


@dataclass(frozen=True)
class TelemetryRecord:
    cart_id: int
    metric_date: date
    usage_hours: float = 0.0
    issues_reported: int = 0
    downtime_minutes: float = 0.0
    maintenance_cost: float = 0.0


@dataclass
class ServiceRequest:
    cart_id: int
    store_id: int
    category: RequestCategory
    priority: RequestPriority
    provider_id: Optional[int] = None
    status: RequestStatus = RequestStatus.PENDING
    scheduled_date: Optional[datetime] = None
    description: str = ""
    is_automated: bool = False
    schedule_id: Optional[int] = None
    advisory: Optional[str] = None
    completed_date: Optional[datetime] = None
    actual_duration: Optional[int] = None
    cost: Optional[float] = None
    notes: Optional[str] = None
    id: Optional[int] = None
    created_at: Optional[datetime] = None


@dataclass(frozen=True)
class ScheduleRule:
    id: int
    cart_id: int
    unit: RecurrenceUnit
    frequency: int
    next_due: datetime
    store_id: Optional[int] = None
    provider_id: Optional[int] = None
    last_completed: Optional[datetime] = None
    is_active: bool = True
    maintenance_type: str = "routine"
    estimated_duration: int = 60


@dataclass
class AssetWindow:
    """An active asset paired with its telemetry window, or the error reading it."""
    asset: Asset
    records: list[TelemetryRecord] = field(default_factory=list)
    error: Optional[Exception] = None


@dataclass(frozen=True)
class CreateResult:
    """Outcome of an insert-if-absent. created=False means an open request already existed."""
    request: ServiceRequest
    created: bool


class MaintenanceStore(ABC):
    """Repository contract for carts, telemetry, service requests and schedule rules.

    Implementations raise StoreUnavailableError
    when the backing store cannot be reached at all; any other exception is
    treated by callers as a failure of that one operation.
    """

    @abstractmethod
    def ping(self) -> None:
        """Raise StoreUnavailableError unless the store answers."""

    # -- carts and telemetry -------------------------------------------------

    @abstractmethod
    def list_active_assets(self) -> list[Asset]: ...

    @abstractmethod
    def get_telemetry_window(self, cart_id: int, window_days: int, now: datetime) -> list[TelemetryRecord]:
        """Most recent window_days daily records dated on or before now, oldest first."""

    def list_active_assets_with_telemetry(self, window_days: int, now: datetime) -> list[AssetWindow]:
        """Pair every active asset with its window. A failed read is captured per asset."""
        windows = []
        for asset in self.list_active_assets():
            try:
                windows.append(AssetWindow(asset, self.get_telemetry_window(asset.id, window_days, now)))
            except StoreUnavailableError:
                raise
            except Exception as e:
                windows.append(AssetWindow(asset, error=e))
        return windows

    @abstractmethod
    def record_telemetry(self, cart_id: int, metric_date: date, usage_hours: float = 0,
                         issues_reported: int = 0, downtime_minutes: float = 0,
                         maintenance_cost: float = 0) -> None:
        """Add the given increments to the (cart, day) row, creating it if absent."""

    @abstractmethod
    def mark_cart_serviced(self, cart_id: int, serviced_at: datetime) -> None: ...

    # -- service requests ----------------------------------------------------

    @abstractmethod
    def find_open_automated_request(self, cart_id: int) -> Optional[ServiceRequest]: ...

    @abstractmethod
    def create_service_request(self, request: ServiceRequest) -> CreateResult:
        """Insert request. For automated requests this is insert-if-absent and
        must stay correct when called concurrently for the same cart."""

    @abstractmethod
    def get_service_request(self, request_id: int) -> Optional[ServiceRequest]: ...

    @abstractmethod
    def save_service_request(self, request: ServiceRequest) -> ServiceRequest:
        """Persist the mutable fields of an existing request."""

    @abstractmethod
    def attach_advisory(self, request_id: int, text: str) -> None: ...

    @abstractmethod
    def list_overdue_requests(self, now: datetime) -> list[ServiceRequest]:
        """Pending requests whose scheduled date is before now."""

    @abstractmethod
    def list_upcoming_requests(self, now: datetime, window_days: int) -> list[ServiceRequest]:
        """Pending requests scheduled between now and now + window_days."""

    # -- schedule rules ------------------------------------------------------

    @abstractmethod
    def list_due_schedule_rules(self, now: datetime) -> list[ScheduleRule]:
        """Active rules whose next due date is at or before now."""

    @abstractmethod
    def get_schedule_rule(self, rule_id: int) -> Optional[ScheduleRule]: ...

    @abstractmethod
    def create_schedule_rule(self, rule: ScheduleRule) -> ScheduleRule:
        """Insert rule (its id is ignored) and return it with the assigned id."""

    @abstractmethod
    def advance_schedule_rule(self, rule_id: int, new_next_due: datetime,
                              last_completed: Optional[datetime]) -> None: ...

    # -- run log -------------------------------------------------------------

    @abstractmethod
    def record_run(self, started_at: datetime, finished_at: datetime, counters: dict) -> None: ...

    @abstractmethod
    def list_runs(self, limit: int = 20) -> list[dict]: ...
