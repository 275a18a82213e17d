"""
Request lifecycle tests — manual creation, transitions, completion side effects.
"""

from datetime import timedelta

import pytest

from core.base import RecurrenceUnit, RequestCategory, RequestPriority, RequestStatus
from core.events import NOTIFY_COMPLETED
from core.interfaces.maintenance_store import ServiceRequest
from modules.fleet.models import CartTelemetry
from modules.maintenance import lifecycle
from modules.maintenance.errors import InvalidTransitionError, RequestNotFoundError
from modules.maintenance.recurrence import next_due_date
from modules.maintenance.scheduler import MaintenanceScheduler

from helpers import RecordingNotifier, add_cart, add_provider, add_week


def _manual(store, cart_id, now):
    return lifecycle.create_request(
        store, cart_id=cart_id, store_id=1, category=RequestCategory.REPAIR,
        priority=RequestPriority.HIGH, description="Squeaky wheel", now=now,
    )


def _telemetry(session_factory, cart_id, day):
    with session_factory() as db:
        return db.query(CartTelemetry).filter_by(cart_id=cart_id, metric_date=day).one()


class TestCreateRequest:
    def test_manual_request_counts_an_issue(self, store, session_factory, now):
        cart_id = add_cart(session_factory)
        req = _manual(store, cart_id, now)
        assert req.id is not None
        assert req.status == RequestStatus.PENDING
        assert not req.is_automated
        assert _telemetry(session_factory, cart_id, now.date()).issues_reported == 1

    def test_two_reports_same_day_accumulate(self, store, session_factory, now):
        cart_id = add_cart(session_factory)
        _manual(store, cart_id, now)
        _manual(store, cart_id, now + timedelta(hours=1))
        assert _telemetry(session_factory, cart_id, now.date()).issues_reported == 2


class TestTransitions:
    @pytest.mark.parametrize("path", [
        [RequestStatus.SCHEDULED, RequestStatus.IN_PROGRESS, RequestStatus.COMPLETED],
        [RequestStatus.IN_PROGRESS, RequestStatus.COMPLETED],
        [RequestStatus.CANCELLED],
        [RequestStatus.SCHEDULED, RequestStatus.CANCELLED],
    ])
    def test_allowed_paths(self, store, session_factory, now, path):
        req = _manual(store, add_cart(session_factory), now)
        for status in path:
            req = lifecycle.transition_request(store, req.id, status, now=now)
        assert req.status == path[-1]

    def test_completed_date_set_on_completion_only(self, store, session_factory, now):
        req = _manual(store, add_cart(session_factory), now)
        req = lifecycle.transition_request(store, req.id, RequestStatus.IN_PROGRESS, now=now)
        assert req.completed_date is None
        req = lifecycle.transition_request(store, req.id, RequestStatus.COMPLETED, now=now)
        assert req.completed_date == now

    @pytest.mark.parametrize("start,target", [
        ([], RequestStatus.COMPLETED),
        ([RequestStatus.CANCELLED], RequestStatus.PENDING),
        ([RequestStatus.IN_PROGRESS], RequestStatus.CANCELLED),
        ([RequestStatus.IN_PROGRESS, RequestStatus.COMPLETED], RequestStatus.SCHEDULED),
    ])
    def test_rejected_transitions(self, store, session_factory, now, start, target):
        req = _manual(store, add_cart(session_factory), now)
        for status in start:
            lifecycle.transition_request(store, req.id, status, now=now)
        with pytest.raises(InvalidTransitionError):
            lifecycle.transition_request(store, req.id, target, now=now)

    def test_unknown_request(self, store):
        with pytest.raises(RequestNotFoundError):
            lifecycle.transition_request(store, 404, RequestStatus.SCHEDULED)


class TestComplete:
    def test_completion_side_effects(self, store, session_factory, now):
        cart_id = add_cart(session_factory, last_maintenance=now - timedelta(days=200))
        req = _manual(store, cart_id, now - timedelta(days=1))
        notifier = RecordingNotifier()

        done = lifecycle.complete_request(
            store, notifier, req.id, notes="Replaced caster", actual_duration=45, cost=80.0, now=now,
        )

        assert done.status == RequestStatus.COMPLETED
        assert done.completed_date == now
        assert done.actual_duration == 45
        assert done.cost == 80.0
        assert done.notes == "Replaced caster"
        assert store.list_active_assets()[0].last_maintenance == now
        row = _telemetry(session_factory, cart_id, now.date())
        assert row.maintenance_cost == 80.0
        assert row.downtime_minutes == 45
        assert notifier.sent == [(NOTIFY_COMPLETED, {"request_id": req.id, "cart_id": cart_id})]

    def test_completion_records_on_schedule_rule(self, store, session_factory, now):
        cart_id = add_cart(session_factory)
        rule = lifecycle.create_schedule_rule(store, cart_id, RecurrenceUnit.MONTHLY, 1, now=now - timedelta(days=40))
        req = store.create_service_request(ServiceRequest(
            cart_id=cart_id, store_id=1, category=RequestCategory.ROUTINE,
            priority=RequestPriority.MEDIUM, is_automated=True, schedule_id=rule.id,
        )).request

        lifecycle.complete_request(store, None, req.id, now=now)

        updated = store.get_schedule_rule(rule.id)
        assert updated.last_completed == now
        assert updated.next_due == rule.next_due

    def test_completion_through_transition_has_the_same_side_effects(self, store, session_factory, now):
        cart_id = add_cart(session_factory, last_maintenance=now - timedelta(days=200))
        rule = lifecycle.create_schedule_rule(store, cart_id, RecurrenceUnit.WEEKLY, 1, now=now - timedelta(days=10))
        req = store.create_service_request(ServiceRequest(
            cart_id=cart_id, store_id=1, category=RequestCategory.ROUTINE,
            priority=RequestPriority.MEDIUM, is_automated=True, schedule_id=rule.id,
        )).request
        notifier = RecordingNotifier()

        lifecycle.transition_request(store, req.id, RequestStatus.IN_PROGRESS, now=now, notifier=notifier)
        done = lifecycle.transition_request(store, req.id, RequestStatus.COMPLETED, now=now, notifier=notifier)

        assert done.status == RequestStatus.COMPLETED
        assert store.list_active_assets()[0].last_maintenance == now
        assert store.get_schedule_rule(rule.id).last_completed == now
        assert notifier.sent == [(NOTIFY_COMPLETED, {"request_id": req.id, "cart_id": cart_id})]

    def test_completed_cart_is_not_flagged_again(self, store, resolver, session_factory, now):
        add_provider(session_factory, store_id=1)
        # 10 + 20 + 15 + 20 = 65 (high); servicing drops the last 20
        cart_id = add_cart(session_factory, last_maintenance=now - timedelta(days=95))
        add_week(session_factory, cart_id, now.date(), usage_hours=120, issues=4, downtime_minutes=70)
        scheduler = MaintenanceScheduler(store, resolver)
        assert scheduler.run(now=now).requests_created == 1
        req = store.find_open_automated_request(cart_id)

        lifecycle.transition_request(store, req.id, RequestStatus.IN_PROGRESS, now=now)
        lifecycle.transition_request(store, req.id, RequestStatus.COMPLETED, now=now)

        later = now + timedelta(hours=1)
        assert store.list_active_assets()[0].last_maintenance == now
        assert scheduler.run(now=later).requests_created == 0
        assert store.find_open_automated_request(cart_id) is None

    def test_completing_terminal_request_is_rejected(self, store, session_factory, now):
        req = _manual(store, add_cart(session_factory), now)
        lifecycle.transition_request(store, req.id, RequestStatus.CANCELLED)
        with pytest.raises(InvalidTransitionError):
            lifecycle.complete_request(store, None, req.id, now=now)

    def test_notifier_failure_does_not_undo_completion(self, store, session_factory, now):
        req = _manual(store, add_cart(session_factory), now)
        done = lifecycle.complete_request(store, RecordingNotifier(error=RuntimeError("down")), req.id, now=now)
        assert store.get_service_request(done.id).status == RequestStatus.COMPLETED


class TestScheduleRules:
    def test_first_due_is_one_period_out(self, store, session_factory, now):
        cart_id = add_cart(session_factory, store_id=3)
        rule = lifecycle.create_schedule_rule(store, cart_id, "quarterly", 2, now=now)
        assert rule.id > 0
        assert rule.store_id == 3
        assert rule.unit == RecurrenceUnit.QUARTERLY
        assert rule.next_due == next_due_date(RecurrenceUnit.QUARTERLY, 2, now)

    def test_invalid_frequency(self, store, session_factory, now):
        cart_id = add_cart(session_factory)
        with pytest.raises(ValueError):
            lifecycle.create_schedule_rule(store, cart_id, RecurrenceUnit.DAILY, 0, now=now)
