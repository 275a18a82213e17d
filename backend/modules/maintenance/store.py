"""
SqlMaintenanceStore — SQLAlchemy implementation of MaintenanceStore.

Every operation opens its own short-lived session so scheduler workers on
different threads never share one.

Error translation at this boundary:
  - OperationalError (lock wait exceeded, database unreachable) and any
    DBAPIError that invalidated the connection become StoreUnavailableError.
  - An IntegrityError on an automated insert whose cart already has an open
    automated request means another run got there first; it is returned as
    CreateResult(existing, created=False) instead of raised.
"""

import logging
from contextlib import contextmanager
from datetime import date, datetime, timedelta, timezone
from typing import Optional

from sqlalchemy import text
from sqlalchemy.exc import DBAPIError, IntegrityError, OperationalError
from sqlalchemy.orm import Session, sessionmaker

from core.base import CartStatus, OPEN_REQUEST_STATUSES, RequestStatus
from core.interfaces.maintenance_store import (
    Asset, CreateResult, MaintenanceStore, ScheduleRule, ServiceRequest,
    StoreUnavailableError, TelemetryRecord,
)
from modules.fleet.models import Cart, CartTelemetry
from modules.maintenance.models import (
    MaintenanceRun, MaintenanceSchedule, ServiceRequest as ServiceRequestRow,
)

log = logging.getLogger("cartcare.store")

# Request fields a caller may change after creation
_MUTABLE_REQUEST_FIELDS = (
    "provider_id", "priority", "status", "scheduled_date", "completed_date",
    "description", "advisory", "notes", "actual_duration", "cost",
)


def _utc(dt: Optional[datetime]) -> Optional[datetime]:
    """DB datetimes are naive UTC; hand them out as aware UTC."""
    if dt is None:
        return None
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def _naive(dt: Optional[datetime]) -> Optional[datetime]:
    """Aware datetimes are stored as naive UTC."""
    if dt is None or dt.tzinfo is None:
        return dt
    return dt.astimezone(timezone.utc).replace(tzinfo=None)


def _to_asset(row: Cart) -> Asset:
    return Asset(
        id=row.id,
        store_id=row.store_id,
        status=row.status,
        last_maintenance=_utc(row.last_maintenance),
        issue_notes=row.issue_notes,
        qr_code=row.qr_code,
    )


def _to_request(row: ServiceRequestRow) -> ServiceRequest:
    return ServiceRequest(
        id=row.id,
        cart_id=row.cart_id,
        store_id=row.store_id,
        provider_id=row.provider_id,
        category=row.category,
        priority=row.priority,
        status=row.status,
        scheduled_date=_utc(row.scheduled_date),
        completed_date=_utc(row.completed_date),
        description=row.description or "",
        advisory=row.advisory,
        notes=row.notes,
        actual_duration=row.actual_duration,
        cost=row.cost,
        is_automated=bool(row.is_automated),
        schedule_id=row.schedule_id,
        created_at=_utc(row.created_at),
    )


def _to_rule(row: MaintenanceSchedule, store_id: Optional[int]) -> ScheduleRule:
    return ScheduleRule(
        id=row.id,
        cart_id=row.cart_id,
        store_id=store_id,
        provider_id=row.provider_id,
        unit=row.schedule_type,
        frequency=row.frequency,
        next_due=_utc(row.next_due_date),
        last_completed=_utc(row.last_completed),
        is_active=bool(row.is_active),
        maintenance_type=row.maintenance_type,
        estimated_duration=row.estimated_duration or 0,
    )


class SqlMaintenanceStore(MaintenanceStore):

    def __init__(self, session_factory: sessionmaker):
        self._session_factory = session_factory

    @contextmanager
    def _session(self):
        db: Session = self._session_factory()
        try:
            yield db
        except OperationalError as e:
            db.rollback()
            raise StoreUnavailableError(f"Store unavailable: {e.orig or e}") from e
        except DBAPIError as e:
            db.rollback()
            if e.connection_invalidated:
                raise StoreUnavailableError(f"Store connection lost: {e.orig or e}") from e
            raise
        finally:
            db.close()

    def ping(self) -> None:
        with self._session() as db:
            db.execute(text("SELECT 1"))

    # -- carts and telemetry -------------------------------------------------

    def list_active_assets(self) -> list[Asset]:
        with self._session() as db:
            rows = db.query(Cart).filter(Cart.status == CartStatus.ACTIVE).order_by(Cart.id).all()
            return [_to_asset(r) for r in rows]

    def get_telemetry_window(self, cart_id: int, window_days: int, now: datetime) -> list[TelemetryRecord]:
        with self._session() as db:
            rows = (
                db.query(CartTelemetry)
                .filter(CartTelemetry.cart_id == cart_id, CartTelemetry.metric_date <= now.date())
                .order_by(CartTelemetry.metric_date.desc())
                .limit(window_days)
                .all()
            )
            return [
                TelemetryRecord(
                    cart_id=r.cart_id,
                    metric_date=r.metric_date,
                    usage_hours=r.usage_hours or 0,
                    issues_reported=r.issues_reported or 0,
                    downtime_minutes=r.downtime_minutes or 0,
                    maintenance_cost=r.maintenance_cost or 0,
                )
                for r in reversed(rows)
            ]

    def record_telemetry(self, cart_id: int, metric_date: date, usage_hours: float = 0,
                         issues_reported: int = 0, downtime_minutes: float = 0,
                         maintenance_cost: float = 0) -> None:
        increments = {
            "usage_hours": usage_hours,
            "issues_reported": issues_reported,
            "downtime_minutes": downtime_minutes,
            "maintenance_cost": maintenance_cost,
        }
        # Two attempts: a concurrent writer may create the day's row between
        # our read and our insert, in which case the second pass updates it.
        for attempt in (1, 2):
            with self._session() as db:
                row = db.query(CartTelemetry).filter(
                    CartTelemetry.cart_id == cart_id, CartTelemetry.metric_date == metric_date,
                ).first()
                if row is None:
                    db.add(CartTelemetry(cart_id=cart_id, metric_date=metric_date, **increments))
                else:
                    for col, inc in increments.items():
                        setattr(row, col, (getattr(row, col) or 0) + inc)
                try:
                    db.commit()
                    return
                except IntegrityError:
                    db.rollback()
                    if attempt == 2:
                        raise

    def mark_cart_serviced(self, cart_id: int, serviced_at: datetime) -> None:
        with self._session() as db:
            db.query(Cart).filter(Cart.id == cart_id).update({Cart.last_maintenance: _naive(serviced_at)})
            db.commit()

    # -- service requests ----------------------------------------------------

    @staticmethod
    def _open_automated(db: Session, cart_id: int) -> Optional[ServiceRequestRow]:
        return (
            db.query(ServiceRequestRow)
            .filter(
                ServiceRequestRow.cart_id == cart_id,
                ServiceRequestRow.is_automated.is_(True),
                ServiceRequestRow.status.in_(OPEN_REQUEST_STATUSES),
            )
            .order_by(ServiceRequestRow.id)
            .first()
        )

    def find_open_automated_request(self, cart_id: int) -> Optional[ServiceRequest]:
        with self._session() as db:
            row = self._open_automated(db, cart_id)
            return _to_request(row) if row else None

    def create_service_request(self, request: ServiceRequest) -> CreateResult:
        with self._session() as db:
            if request.is_automated:
                existing = self._open_automated(db, request.cart_id)
                if existing is not None:
                    return CreateResult(_to_request(existing), created=False)

            row = ServiceRequestRow(
                cart_id=request.cart_id,
                store_id=request.store_id,
                provider_id=request.provider_id,
                category=request.category,
                priority=request.priority,
                status=request.status,
                scheduled_date=_naive(request.scheduled_date),
                description=request.description,
                advisory=request.advisory,
                notes=request.notes,
                is_automated=request.is_automated,
                schedule_id=request.schedule_id,
            )
            db.add(row)
            try:
                db.commit()
            except IntegrityError:
                db.rollback()
                if not request.is_automated:
                    raise
                existing = self._open_automated(db, request.cart_id)
                if existing is None:
                    raise
                log.info(
                    f"Cart {request.cart_id}: concurrent run already opened request "
                    f"{existing.id}; insert skipped"
                )
                return CreateResult(_to_request(existing), created=False)
            db.refresh(row)
            return CreateResult(_to_request(row), created=True)

    def get_service_request(self, request_id: int) -> Optional[ServiceRequest]:
        with self._session() as db:
            row = db.get(ServiceRequestRow, request_id)
            return _to_request(row) if row else None

    def save_service_request(self, request: ServiceRequest) -> ServiceRequest:
        with self._session() as db:
            row = db.get(ServiceRequestRow, request.id)
            if row is None:
                raise LookupError(f"Service request {request.id} does not exist")
            for field in _MUTABLE_REQUEST_FIELDS:
                value = getattr(request, field)
                if isinstance(value, datetime):
                    value = _naive(value)
                setattr(row, field, value)
            db.commit()
            db.refresh(row)
            return _to_request(row)

    def attach_advisory(self, request_id: int, text: str) -> None:
        with self._session() as db:
            db.query(ServiceRequestRow).filter(ServiceRequestRow.id == request_id).update(
                {ServiceRequestRow.advisory: text}
            )
            db.commit()

    def list_overdue_requests(self, now: datetime) -> list[ServiceRequest]:
        with self._session() as db:
            rows = (
                db.query(ServiceRequestRow)
                .filter(
                    ServiceRequestRow.status == RequestStatus.PENDING,
                    ServiceRequestRow.scheduled_date < _naive(now),
                )
                .order_by(ServiceRequestRow.scheduled_date)
                .all()
            )
            return [_to_request(r) for r in rows]

    def list_upcoming_requests(self, now: datetime, window_days: int) -> list[ServiceRequest]:
        with self._session() as db:
            rows = (
                db.query(ServiceRequestRow)
                .filter(
                    ServiceRequestRow.status == RequestStatus.PENDING,
                    ServiceRequestRow.scheduled_date >= _naive(now),
                    ServiceRequestRow.scheduled_date <= _naive(now + timedelta(days=window_days)),
                )
                .order_by(ServiceRequestRow.scheduled_date)
                .all()
            )
            return [_to_request(r) for r in rows]

    # -- schedule rules ------------------------------------------------------

    def list_due_schedule_rules(self, now: datetime) -> list[ScheduleRule]:
        with self._session() as db:
            rows = (
                db.query(MaintenanceSchedule, Cart.store_id)
                .join(Cart, Cart.id == MaintenanceSchedule.cart_id)
                .filter(
                    MaintenanceSchedule.is_active.is_(True),
                    MaintenanceSchedule.next_due_date <= _naive(now),
                )
                .order_by(MaintenanceSchedule.next_due_date, MaintenanceSchedule.id)
                .all()
            )
            return [_to_rule(rule, store_id) for rule, store_id in rows]

    def get_schedule_rule(self, rule_id: int) -> Optional[ScheduleRule]:
        with self._session() as db:
            row = (
                db.query(MaintenanceSchedule, Cart.store_id)
                .join(Cart, Cart.id == MaintenanceSchedule.cart_id)
                .filter(MaintenanceSchedule.id == rule_id)
                .first()
            )
            return _to_rule(*row) if row else None

    def create_schedule_rule(self, rule: ScheduleRule) -> ScheduleRule:
        with self._session() as db:
            row = MaintenanceSchedule(
                cart_id=rule.cart_id,
                provider_id=rule.provider_id,
                schedule_type=rule.unit,
                frequency=rule.frequency,
                maintenance_type=rule.maintenance_type,
                estimated_duration=rule.estimated_duration,
                next_due_date=_naive(rule.next_due),
                last_completed=_naive(rule.last_completed),
                is_active=rule.is_active,
            )
            db.add(row)
            db.commit()
            db.refresh(row)
            store_id = db.query(Cart.store_id).filter(Cart.id == row.cart_id).scalar()
            return _to_rule(row, store_id)

    def advance_schedule_rule(self, rule_id: int, new_next_due: datetime,
                              last_completed: Optional[datetime]) -> None:
        with self._session() as db:
            db.query(MaintenanceSchedule).filter(MaintenanceSchedule.id == rule_id).update({
                MaintenanceSchedule.next_due_date: _naive(new_next_due),
                MaintenanceSchedule.last_completed: _naive(last_completed),
            })
            db.commit()

    # -- run log -------------------------------------------------------------

    def record_run(self, started_at: datetime, finished_at: datetime, counters: dict) -> None:
        with self._session() as db:
            db.add(MaintenanceRun(
                started_at=_naive(started_at),
                finished_at=_naive(finished_at),
                assets_scanned=counters.get("assets_scanned", 0),
                high_risk_found=counters.get("high_risk_found", 0),
                requests_created=counters.get("requests_created", 0),
                schedules_due=counters.get("schedules_due", 0),
                schedules_advanced=counters.get("schedules_advanced", 0),
                skipped=counters.get("skipped") or {},
                errors=counters.get("errors", 0),
                cancelled=bool(counters.get("cancelled", False)),
            ))
            db.commit()

    def list_runs(self, limit: int = 20) -> list[dict]:
        with self._session() as db:
            rows = db.query(MaintenanceRun).order_by(MaintenanceRun.id.desc()).limit(limit).all()
            return [{
                "id": r.id,
                "started_at": _utc(r.started_at),
                "finished_at": _utc(r.finished_at),
                "assets_scanned": r.assets_scanned,
                "high_risk_found": r.high_risk_found,
                "requests_created": r.requests_created,
                "schedules_due": r.schedules_due,
                "schedules_advanced": r.schedules_advanced,
                "skipped": r.skipped or {},
                "errors": r.errors,
                "cancelled": bool(r.cancelled),
            } for r in rows]
