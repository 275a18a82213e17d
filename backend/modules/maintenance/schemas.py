"""
modules/maintenance/schemas.py — Pydantic schemas for the maintenance domain.
"""

from datetime import datetime
from typing import Optional, List, Dict
from pydantic import BaseModel, Field, ConfigDict

from core.base import RecurrenceUnit, RequestCategory, RequestPriority, RequestStatus, RiskTier


# ============== Service Requests ==============

class ServiceRequestCreate(BaseModel):
    cart_id: int
    store_id: int
    category: RequestCategory = RequestCategory.REPAIR
    priority: RequestPriority = RequestPriority.MEDIUM
    provider_id: Optional[int] = None
    scheduled_date: Optional[datetime] = None
    description: str = Field("", max_length=2000)


class ServiceRequestStatusUpdate(BaseModel):
    status: RequestStatus


class ServiceRequestComplete(BaseModel):
    notes: Optional[str] = None
    actual_duration: Optional[int] = Field(None, ge=0)  # minutes
    cost: Optional[float] = Field(None, ge=0)


class ServiceRequestResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    cart_id: int
    store_id: int
    provider_id: Optional[int] = None
    category: RequestCategory
    priority: RequestPriority
    status: RequestStatus
    scheduled_date: Optional[datetime] = None
    completed_date: Optional[datetime] = None
    description: str = ""
    advisory: Optional[str] = None
    notes: Optional[str] = None
    actual_duration: Optional[int] = None
    cost: Optional[float] = None
    is_automated: bool = False
    schedule_id: Optional[int] = None
    created_at: Optional[datetime] = None


# ============== Schedule Rules ==============

class ScheduleRuleCreate(BaseModel):
    cart_id: int
    unit: RecurrenceUnit
    frequency: int = Field(1, ge=1)
    provider_id: Optional[int] = None
    maintenance_type: str = Field("routine", min_length=1, max_length=100)
    estimated_duration: int = Field(60, ge=0)


class ScheduleRuleResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    cart_id: int
    store_id: Optional[int] = None
    provider_id: Optional[int] = None
    unit: RecurrenceUnit
    frequency: int
    next_due: datetime
    last_completed: Optional[datetime] = None
    is_active: bool
    maintenance_type: str
    estimated_duration: int


# ============== Risk & Runs ==============

class CartRiskResponse(BaseModel):
    cart_id: int
    store_id: int
    score: Optional[int] = None
    tier: Optional[RiskTier] = None
    total_usage_hours: Optional[float] = None
    total_issues: Optional[int] = None
    avg_downtime_minutes: Optional[float] = None
    days_since_maintenance: Optional[int] = None
    error: Optional[str] = None  # telemetry could not be read


class RunResponse(BaseModel):
    started_at: datetime
    finished_at: Optional[datetime] = None
    assets_scanned: int = 0
    high_risk_found: int = 0
    requests_created: int = 0
    schedules_due: int = 0
    schedules_advanced: int = 0
    advisories_attached: int = 0
    skipped: Dict[str, int] = {}
    errors: int = 0
    cancelled: bool = False
    created_request_ids: List[int] = []


class RunLogResponse(BaseModel):
    id: int
    started_at: datetime
    finished_at: datetime
    assets_scanned: int
    high_risk_found: int
    requests_created: int
    schedules_due: int
    schedules_advanced: int
    skipped: Dict[str, int] = {}
    errors: int
    cancelled: bool
