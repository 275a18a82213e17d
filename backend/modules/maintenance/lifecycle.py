"""
Service request lifecycle: manual creation, status transitions, completion
and schedule rule creation. Thin orchestration over MaintenanceStore; the
HTTP routes and tests both call these functions.
"""

import logging
from datetime import datetime, timezone
from typing import Optional

from core.base import (
    RecurrenceUnit, RequestCategory, RequestPriority, RequestStatus, TERMINAL_REQUEST_STATUSES,
)
from core.events import NOTIFY_COMPLETED
from core.interfaces.maintenance_store import MaintenanceStore, ScheduleRule, ServiceRequest
from core.interfaces.notification import Notifier
from modules.maintenance.errors import InvalidTransitionError, RequestNotFoundError
from modules.maintenance.recurrence import next_due_date

log = logging.getLogger("cartcare.maintenance")

ALLOWED_TRANSITIONS = {
    RequestStatus.PENDING: {RequestStatus.SCHEDULED, RequestStatus.IN_PROGRESS, RequestStatus.CANCELLED},
    RequestStatus.SCHEDULED: {RequestStatus.IN_PROGRESS, RequestStatus.CANCELLED},
    RequestStatus.IN_PROGRESS: {RequestStatus.COMPLETED},
    RequestStatus.COMPLETED: set(),
    RequestStatus.CANCELLED: set(),
}


def _now(now: Optional[datetime]) -> datetime:
    return now or datetime.now(timezone.utc)


def _get(store: MaintenanceStore, request_id: int) -> ServiceRequest:
    req = store.get_service_request(request_id)
    if req is None:
        raise RequestNotFoundError(request_id)
    return req


def create_request(store: MaintenanceStore, cart_id: int, store_id: int,
                   category: RequestCategory, priority: RequestPriority = RequestPriority.MEDIUM,
                   provider_id: Optional[int] = None, scheduled_date: Optional[datetime] = None,
                   description: str = "", now: Optional[datetime] = None) -> ServiceRequest:
    """Open a manual request and count it as a reported issue on today's telemetry."""
    now = _now(now)
    result = store.create_service_request(ServiceRequest(
        cart_id=cart_id,
        store_id=store_id,
        provider_id=provider_id,
        category=category,
        priority=priority,
        status=RequestStatus.PENDING,
        scheduled_date=scheduled_date,
        description=description,
        is_automated=False,
    ))
    store.record_telemetry(cart_id, now.date(), issues_reported=1)
    log.info(f"Cart {cart_id}: manual {category.value} request {result.request.id} opened")
    return result.request


def transition_request(store: MaintenanceStore, request_id: int, new_status: RequestStatus,
                       now: Optional[datetime] = None, notifier: Optional[Notifier] = None) -> ServiceRequest:
    """Move a request along the state machine.

    Moving to completed runs complete_request, so the cart and its schedule
    rule record the service exactly as the /complete route does.
    """
    req = _get(store, request_id)
    new_status = RequestStatus(new_status)
    if new_status not in ALLOWED_TRANSITIONS[req.status]:
        raise InvalidTransitionError(request_id, req.status.value, new_status.value)
    if new_status == RequestStatus.COMPLETED:
        return complete_request(store, notifier, request_id, now=now)
    req.status = new_status
    return store.save_service_request(req)


def complete_request(store: MaintenanceStore, notifier: Optional[Notifier], request_id: int,
                     notes: Optional[str] = None, actual_duration: Optional[int] = None,
                     cost: Optional[float] = None, now: Optional[datetime] = None) -> ServiceRequest:
    """
    Close out a request from any open state.

    Side effects: the cart's last maintenance becomes `now`, cost and
    duration are added to today's telemetry as maintenance cost and downtime,
    and the originating schedule rule (if any) records the completion.
    """
    now = _now(now)
    req = _get(store, request_id)
    if req.status in TERMINAL_REQUEST_STATUSES:
        raise InvalidTransitionError(request_id, req.status.value, RequestStatus.COMPLETED.value)

    req.status = RequestStatus.COMPLETED
    req.completed_date = now
    req.notes = notes if notes is not None else req.notes
    req.actual_duration = actual_duration
    req.cost = cost
    saved = store.save_service_request(req)

    store.mark_cart_serviced(req.cart_id, now)
    store.record_telemetry(
        req.cart_id, now.date(),
        downtime_minutes=actual_duration or 0,
        maintenance_cost=cost or 0,
    )
    if req.schedule_id is not None:
        rule = store.get_schedule_rule(req.schedule_id)
        if rule is not None:
            store.advance_schedule_rule(rule.id, rule.next_due, now)

    if notifier is not None:
        try:
            notifier.notify(NOTIFY_COMPLETED, {"request_id": saved.id, "cart_id": saved.cart_id})
        except Exception as e:
            log.warning(f"Completion notification for request {saved.id} failed: {e}")
    log.info(f"Request {saved.id} completed (cart {saved.cart_id})")
    return saved


def create_schedule_rule(store: MaintenanceStore, cart_id: int, unit: RecurrenceUnit, frequency: int,
                         provider_id: Optional[int] = None, maintenance_type: str = "routine",
                         estimated_duration: int = 60, now: Optional[datetime] = None) -> ScheduleRule:
    """Create a recurring rule whose first visit is one period after `now`."""
    now = _now(now)
    unit = RecurrenceUnit(unit)
    return store.create_schedule_rule(ScheduleRule(
        id=0,
        cart_id=cart_id,
        unit=unit,
        frequency=frequency,
        next_due=next_due_date(unit, frequency, now),
        provider_id=provider_id,
        maintenance_type=maintenance_type,
        estimated_duration=estimated_duration,
    ))
