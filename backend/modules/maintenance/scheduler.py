"""
Maintenance Scheduler — the auto-schedule batch.

One run:
  1. Recurrence sweep: every active schedule rule that is due produces one
     routine request and is advanced past `now`.
  2. Risk sweep: every active cart is scored over its telemetry window; carts
     in an actionable tier get one automated inspection request, created at
     most once per open condition.
  3. Overdue and upcoming requests are announced through the Notifier.

The store is the only shared state. Each cart is evaluated independently, so
the risk sweep may run on a thread pool; counters are merged on the calling
thread from per-cart outcomes.
"""

import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from dataclasses import asdict, dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Optional

from core.base import RequestCategory, RequestPriority, RequestStatus
from core.events import NOTIFY_OVERDUE, NOTIFY_UPCOMING
from core.interfaces.advisory import AdvisoryGenerator
from core.interfaces.maintenance_store import (
    AssetWindow, MaintenanceStore, ScheduleRule, ServiceRequest, StoreUnavailableError,
)
from core.interfaces.notification import Notifier
from core.interfaces.provider import ProviderResolver
from modules.maintenance.recurrence import next_due_after
from modules.maintenance.risk import RiskAssessment, assess_window

log = logging.getLogger("cartcare.scheduler")

# Skip reasons reported in RunResult.skipped
SKIP_DUPLICATE = "duplicate"
SKIP_NO_PROVIDER = "no_provider"
SKIP_TELEMETRY_ERROR = "telemetry_error"
SKIP_PROVIDER_ERROR = "provider_error"
SKIP_CANCELLED = "cancelled"


@dataclass
class SchedulerConfig:
    """Configuration for the scheduler."""
    window_days: int = 7
    upcoming_window_days: int = 3
    max_workers: int = 1
    request_lead_days: int = 2  # risk requests are booked this far out

    @classmethod
    def from_settings(cls, settings, **overrides):
        """Create config from the application Settings object."""
        values = dict(
            window_days=settings.telemetry_window_days,
            upcoming_window_days=settings.upcoming_window_days,
            max_workers=settings.autoschedule_max_workers,
        )
        values.update(overrides)
        return cls(**values)


@dataclass
class RunResult:
    """Counters for one scheduler run."""
    started_at: datetime
    finished_at: Optional[datetime] = None
    assets_scanned: int = 0
    high_risk_found: int = 0
    requests_created: int = 0
    schedules_due: int = 0
    schedules_advanced: int = 0
    advisories_attached: int = 0
    skipped: dict = field(default_factory=dict)
    errors: int = 0
    cancelled: bool = False
    created_request_ids: list = field(default_factory=list)

    def skip(self, reason: str) -> None:
        self.skipped[reason] = self.skipped.get(reason, 0) + 1

    @property
    def skipped_total(self) -> int:
        return sum(self.skipped.values())

    def as_dict(self) -> dict:
        data = asdict(self)
        data["started_at"] = self.started_at.isoformat()
        data["finished_at"] = self.finished_at.isoformat() if self.finished_at else None
        return data


@dataclass
class AssetOutcome:
    """What happened to one cart during the risk sweep."""
    cart_id: int
    assessment: Optional[RiskAssessment] = None
    request_id: Optional[int] = None
    skip_reason: Optional[str] = None
    error: bool = False
    advisory_attached: bool = False


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _request_payload(req: ServiceRequest) -> dict:
    return {
        "id": req.id,
        "cart_id": req.cart_id,
        "store_id": req.store_id,
        "provider_id": req.provider_id,
        "category": req.category.value,
        "priority": req.priority.value,
        "status": req.status.value,
        "scheduled_date": req.scheduled_date.isoformat() if req.scheduled_date else None,
    }


def risk_description(assessment: RiskAssessment) -> str:
    return (
        "Automated alert: High-risk cart detected. "
        f"Issues: {assessment.total_issues}, "
        f"Avg downtime: {round(assessment.avg_downtime_minutes)}min, "
        f"Days since maintenance: {assessment.days_since_maintenance}, "
        f"Risk score: {assessment.score} ({assessment.tier.value})"
    )


class MaintenanceScheduler:
    """
    Runs the recurrence and risk sweeps against a MaintenanceStore.

    Collaborators are injected; `advisory` may be None. Only StoreUnavailableError
    escapes run(): every other failure is contained to the rule or cart it
    happened on.
    """

    def __init__(
        self,
        store: MaintenanceStore,
        resolver: ProviderResolver,
        notifier: Optional[Notifier] = None,
        advisory: Optional[AdvisoryGenerator] = None,
        config: Optional[SchedulerConfig] = None,
    ):
        self.store = store
        self.resolver = resolver
        self.notifier = notifier
        self.advisory = advisory
        self.config = config or SchedulerConfig()

    def run(self, now: Optional[datetime] = None,
            cancel_event: Optional[threading.Event] = None) -> RunResult:
        now = now or _utc_now()
        if now.tzinfo is None:
            now = now.replace(tzinfo=timezone.utc)
        result = RunResult(started_at=now)

        self._recurrence_sweep(now, result, cancel_event)
        self._risk_sweep(now, result, cancel_event)

        self._notify(NOTIFY_OVERDUE, self.store.list_overdue_requests(now))
        self._notify(
            NOTIFY_UPCOMING,
            self.store.list_upcoming_requests(now, self.config.upcoming_window_days),
            window_days=self.config.upcoming_window_days,
        )

        result.finished_at = _utc_now()
        log.info(
            f"Auto-schedule run: {result.assets_scanned} carts scanned, "
            f"{result.high_risk_found} high risk, {result.requests_created} requests created, "
            f"{result.schedules_advanced}/{result.schedules_due} schedules advanced, "
            f"{result.skipped_total} skipped {result.skipped or ''}, {result.errors} errors"
            + (" (cancelled)" if result.cancelled else "")
        )
        try:
            self.store.record_run(result.started_at, result.finished_at, result.as_dict())
        except Exception as e:
            log.warning(f"Could not record auto-schedule run: {e}")
        return result

    # -- recurrence sweep ----------------------------------------------------

    def _recurrence_sweep(self, now: datetime, result: RunResult,
                          cancel_event: Optional[threading.Event]) -> None:
        rules = self.store.list_due_schedule_rules(now)
        result.schedules_due = len(rules)
        for rule in rules:
            if cancel_event is not None and cancel_event.is_set():
                result.cancelled = True
                result.skip(SKIP_CANCELLED)
                continue
            try:
                self._apply_rule(rule, now, result)
            except StoreUnavailableError:
                raise
            except Exception as e:
                result.errors += 1
                log.error(f"Schedule rule {rule.id} (cart {rule.cart_id}) failed: {e}", exc_info=True)

    def _apply_rule(self, rule: ScheduleRule, now: datetime, result: RunResult) -> None:
        provider_id = rule.provider_id
        if provider_id is None and rule.store_id is not None:
            provider_id = self.resolver.resolve_active_provider(rule.store_id)
        if provider_id is None:
            # Left due so the visit is produced once a provider is linked
            result.skip(SKIP_NO_PROVIDER)
            log.info(f"Schedule rule {rule.id}: no active provider for store {rule.store_id}")
            return

        request = ServiceRequest(
            cart_id=rule.cart_id,
            store_id=rule.store_id,
            provider_id=provider_id,
            category=RequestCategory.ROUTINE,
            priority=RequestPriority.MEDIUM,
            status=RequestStatus.PENDING,
            scheduled_date=max(rule.next_due, now),
            description=(
                f"Scheduled {rule.maintenance_type} maintenance "
                f"(every {rule.frequency} {rule.unit.value}), "
                f"estimated {rule.estimated_duration}min"
            ),
            is_automated=True,
            schedule_id=rule.id,
        )
        created = self.store.create_service_request(request)
        if created.created:
            result.requests_created += 1
            result.created_request_ids.append(created.request.id)
        else:
            result.skip(SKIP_DUPLICATE)

        new_due = next_due_after(rule.unit, rule.frequency, rule.next_due, now)
        self.store.advance_schedule_rule(rule.id, new_due, rule.last_completed)
        result.schedules_advanced += 1
        log.debug(f"Schedule rule {rule.id} advanced to {new_due.isoformat()}")

    # -- risk sweep ----------------------------------------------------------

    def assess_fleet(self, now: Optional[datetime] = None) -> list[tuple[AssetWindow, Optional[RiskAssessment]]]:
        """Score every active cart without creating anything."""
        now = now or _utc_now()
        scored = []
        for window in self.store.list_active_assets_with_telemetry(self.config.window_days, now):
            assessment = None
            if window.error is None:
                assessment = assess_window(window.records, window.asset.last_maintenance, now)
            scored.append((window, assessment))
        return scored

    def _risk_sweep(self, now: datetime, result: RunResult,
                    cancel_event: Optional[threading.Event]) -> None:
        windows = self.store.list_active_assets_with_telemetry(self.config.window_days, now)

        if self.config.max_workers > 1 and len(windows) > 1:
            with ThreadPoolExecutor(max_workers=self.config.max_workers,
                                    thread_name_prefix="autoschedule") as pool:
                futures = [pool.submit(self._evaluate_asset, w, now, cancel_event) for w in windows]
                try:
                    outcomes = [f.result() for f in futures]
                except StoreUnavailableError:
                    pool.shutdown(wait=False, cancel_futures=True)
                    raise
        else:
            outcomes = [self._evaluate_asset(w, now, cancel_event) for w in windows]

        for outcome in outcomes:
            if outcome.skip_reason == SKIP_CANCELLED:
                result.cancelled = True
            else:
                result.assets_scanned += 1
            if outcome.assessment is not None and outcome.assessment.actionable:
                result.high_risk_found += 1
            if outcome.skip_reason:
                result.skip(outcome.skip_reason)
            if outcome.error:
                result.errors += 1
            if outcome.request_id is not None:
                result.requests_created += 1
                result.created_request_ids.append(outcome.request_id)
            if outcome.advisory_attached:
                result.advisories_attached += 1

    def _evaluate_asset(self, window: AssetWindow, now: datetime,
                        cancel_event: Optional[threading.Event]) -> AssetOutcome:
        asset = window.asset
        outcome = AssetOutcome(cart_id=asset.id)

        if cancel_event is not None and cancel_event.is_set():
            outcome.skip_reason = SKIP_CANCELLED
            return outcome

        if window.error is not None:
            log.error(f"Cart {asset.id}: telemetry read failed: {window.error}")
            outcome.skip_reason = SKIP_TELEMETRY_ERROR
            outcome.error = True
            return outcome

        try:
            self._act_on_risk(window, now, outcome)
        except StoreUnavailableError:
            raise
        except Exception as e:
            log.error(f"Cart {asset.id}: evaluation failed: {e}", exc_info=True)
            outcome.error = True
        return outcome

    def _act_on_risk(self, window: AssetWindow, now: datetime, outcome: AssetOutcome) -> None:
        asset = window.asset
        assessment = assess_window(window.records, asset.last_maintenance, now)
        outcome.assessment = assessment
        if not assessment.actionable:
            return

        if self.store.find_open_automated_request(asset.id) is not None:
            outcome.skip_reason = SKIP_DUPLICATE
            return

        try:
            provider_id = self.resolver.resolve_active_provider(asset.store_id)
        except StoreUnavailableError:
            raise
        except Exception as e:
            log.warning(f"Cart {asset.id}: provider lookup for store {asset.store_id} failed: {e}")
            outcome.skip_reason = SKIP_PROVIDER_ERROR
            outcome.error = True
            return
        if provider_id is None:
            log.info(f"Cart {asset.id} is {assessment.tier.value} risk but store {asset.store_id} has no active provider")
            outcome.skip_reason = SKIP_NO_PROVIDER
            return

        created = self.store.create_service_request(ServiceRequest(
            cart_id=asset.id,
            store_id=asset.store_id,
            provider_id=provider_id,
            category=RequestCategory.INSPECTION,
            priority=RequestPriority.HIGH,
            status=RequestStatus.PENDING,
            scheduled_date=now + timedelta(days=self.config.request_lead_days),
            description=risk_description(assessment),
            is_automated=True,
        ))
        if not created.created:
            outcome.skip_reason = SKIP_DUPLICATE
            return

        request_id = created.request.id
        outcome.request_id = request_id
        log.info(f"Cart {asset.id}: opened inspection request {request_id} (score {assessment.score})")
        outcome.advisory_attached = self._attach_advisory(request_id, assessment)

    def _attach_advisory(self, request_id: int, assessment: RiskAssessment) -> bool:
        if self.advisory is None:
            return False
        try:
            text = self.advisory.generate_advisory(assessment.summary())
            if not text:
                return False
            self.store.attach_advisory(request_id, text)
            return True
        except StoreUnavailableError:
            raise
        except Exception as e:
            log.warning(f"Advisory for request {request_id} skipped: {e}")
            return False

    # -- notifications -------------------------------------------------------

    def _notify(self, event_kind: str, requests: list[ServiceRequest], **extra) -> None:
        if not requests or self.notifier is None:
            return
        payload = {"requests": [_request_payload(r) for r in requests], "count": len(requests)}
        payload.update(extra)
        try:
            self.notifier.notify(event_kind, payload)
        except Exception as e:
            log.warning(f"Notifier failed for {event_kind!r} ({len(requests)} requests): {e}")
