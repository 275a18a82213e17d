"""Maintenance routes — auto-schedule trigger, risk view, service requests, schedule rules, run log."""

import logging
from datetime import datetime, timezone

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.exc import IntegrityError

from core.config import settings
from core.interfaces.maintenance_store import MaintenanceStore, StoreUnavailableError
from core.registry import registry
from modules.maintenance import lifecycle
from modules.maintenance.errors import InvalidTransitionError, RequestNotFoundError
from modules.maintenance.scheduler import MaintenanceScheduler, SchedulerConfig
from modules.maintenance.schemas import (
    CartRiskResponse, RunLogResponse, RunResponse, ScheduleRuleCreate, ScheduleRuleResponse,
    ServiceRequestComplete, ServiceRequestCreate, ServiceRequestResponse, ServiceRequestStatusUpdate,
)

log = logging.getLogger("cartcare.api")
router = APIRouter()


# ============== Dependencies ==============

def get_store() -> MaintenanceStore:
    store = registry.get_provider("MaintenanceStore")
    if store is None:
        raise HTTPException(status_code=503, detail="Maintenance store is not configured")
    return store


def get_notifier():
    return registry.get_provider("Notifier")


def get_scheduler(store: MaintenanceStore = Depends(get_store)) -> MaintenanceScheduler:
    resolver = registry.get_provider("ProviderResolver")
    if resolver is None:
        raise HTTPException(status_code=503, detail="Provider resolver is not configured")
    return MaintenanceScheduler(
        store,
        resolver,
        notifier=registry.get_provider("Notifier"),
        advisory=registry.get_provider("AdvisoryGenerator"),
        config=SchedulerConfig.from_settings(settings),
    )


def _unavailable(e: StoreUnavailableError) -> HTTPException:
    log.error(f"Maintenance store unavailable: {e}")
    return HTTPException(status_code=503, detail="Maintenance store unavailable")


# ============== Auto-schedule ==============

@router.post("/maintenance/auto-schedule/run", response_model=RunResponse, tags=["Maintenance"])
def run_auto_schedule(scheduler: MaintenanceScheduler = Depends(get_scheduler)):
    """Run the recurrence and risk sweeps once and return the run counters."""
    try:
        result = scheduler.run()
    except StoreUnavailableError as e:
        raise _unavailable(e)
    return result.as_dict()


@router.get("/maintenance/risk", response_model=list[CartRiskResponse], tags=["Maintenance"])
def list_cart_risk(scheduler: MaintenanceScheduler = Depends(get_scheduler)):
    """Current risk assessment for every active cart."""
    try:
        scored = scheduler.assess_fleet(datetime.now(timezone.utc))
    except StoreUnavailableError as e:
        raise _unavailable(e)

    rows = []
    for window, assessment in scored:
        row = {"cart_id": window.asset.id, "store_id": window.asset.store_id}
        if assessment is None:
            row["error"] = str(window.error)
        else:
            row.update(
                score=assessment.score,
                tier=assessment.tier,
                total_usage_hours=assessment.total_usage_hours,
                total_issues=assessment.total_issues,
                avg_downtime_minutes=assessment.avg_downtime_minutes,
                days_since_maintenance=assessment.days_since_maintenance,
            )
        rows.append(row)
    rows.sort(key=lambda r: r.get("score") or 0, reverse=True)
    return rows


@router.get("/maintenance/runs", response_model=list[RunLogResponse], tags=["Maintenance"])
def list_runs(limit: int = Query(20, ge=1, le=200), store: MaintenanceStore = Depends(get_store)):
    """Most recent auto-schedule runs, newest first."""
    try:
        return store.list_runs(limit)
    except StoreUnavailableError as e:
        raise _unavailable(e)


# ============== Service requests ==============

@router.get("/maintenance/overdue", response_model=list[ServiceRequestResponse], tags=["Maintenance"])
def list_overdue(store: MaintenanceStore = Depends(get_store)):
    try:
        return store.list_overdue_requests(datetime.now(timezone.utc))
    except StoreUnavailableError as e:
        raise _unavailable(e)


@router.get("/maintenance/upcoming", response_model=list[ServiceRequestResponse], tags=["Maintenance"])
def list_upcoming(days: int = Query(7, ge=1, le=90), store: MaintenanceStore = Depends(get_store)):
    try:
        return store.list_upcoming_requests(datetime.now(timezone.utc), days)
    except StoreUnavailableError as e:
        raise _unavailable(e)


@router.post("/maintenance/requests", response_model=ServiceRequestResponse, status_code=201, tags=["Maintenance"])
def create_service_request(data: ServiceRequestCreate, store: MaintenanceStore = Depends(get_store)):
    """Open a manual service request."""
    try:
        return lifecycle.create_request(
            store,
            cart_id=data.cart_id,
            store_id=data.store_id,
            category=data.category,
            priority=data.priority,
            provider_id=data.provider_id,
            scheduled_date=data.scheduled_date,
            description=data.description,
        )
    except IntegrityError:
        raise HTTPException(status_code=400, detail="Unknown cart or provider")
    except StoreUnavailableError as e:
        raise _unavailable(e)


@router.patch("/maintenance/requests/{request_id}/status", response_model=ServiceRequestResponse, tags=["Maintenance"])
def update_request_status(request_id: int, data: ServiceRequestStatusUpdate,
                          store: MaintenanceStore = Depends(get_store), notifier=Depends(get_notifier)):
    try:
        return lifecycle.transition_request(store, request_id, data.status, notifier=notifier)
    except RequestNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except InvalidTransitionError as e:
        raise HTTPException(status_code=409, detail=str(e))
    except StoreUnavailableError as e:
        raise _unavailable(e)


@router.post("/maintenance/requests/{request_id}/complete", response_model=ServiceRequestResponse, tags=["Maintenance"])
def complete_service_request(request_id: int, data: ServiceRequestComplete,
                             store: MaintenanceStore = Depends(get_store), notifier=Depends(get_notifier)):
    """Mark a request completed and record its cost and downtime against the cart."""
    try:
        return lifecycle.complete_request(
            store, notifier, request_id,
            notes=data.notes, actual_duration=data.actual_duration, cost=data.cost,
        )
    except RequestNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except InvalidTransitionError as e:
        raise HTTPException(status_code=409, detail=str(e))
    except StoreUnavailableError as e:
        raise _unavailable(e)


# ============== Schedule rules ==============

@router.post("/maintenance/schedules", response_model=ScheduleRuleResponse, status_code=201, tags=["Maintenance"])
def create_schedule(data: ScheduleRuleCreate, store: MaintenanceStore = Depends(get_store)):
    """Create a recurring maintenance rule; the first visit is one period from now."""
    try:
        return lifecycle.create_schedule_rule(
            store,
            cart_id=data.cart_id,
            unit=data.unit,
            frequency=data.frequency,
            provider_id=data.provider_id,
            maintenance_type=data.maintenance_type,
            estimated_duration=data.estimated_duration,
        )
    except IntegrityError:
        raise HTTPException(status_code=400, detail="Unknown cart or provider")
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except StoreUnavailableError as e:
        raise _unavailable(e)
