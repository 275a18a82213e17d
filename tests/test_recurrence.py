"""
Recurrence calculator tests — calendar arithmetic and catch-up stepping.
"""

from datetime import date, datetime, timedelta, timezone

import pytest

from core.base import RecurrenceUnit
from modules.maintenance.recurrence import next_due_after, next_due_date


def _dt(y, m, d, h=9):
    return datetime(y, m, d, h, 0, tzinfo=timezone.utc)


class TestNextDueDate:
    def test_daily(self):
        assert next_due_date(RecurrenceUnit.DAILY, 3, _dt(2024, 6, 1)) == _dt(2024, 6, 4)

    def test_weekly_times_two_is_fourteen_days(self):
        start = _dt(2024, 6, 1)
        assert next_due_date(RecurrenceUnit.WEEKLY, 2, start) == start + timedelta(days=14)

    def test_monthly_clamps_to_month_end_in_leap_year(self):
        assert next_due_date(RecurrenceUnit.MONTHLY, 1, _dt(2024, 1, 31)) == _dt(2024, 2, 29)

    def test_monthly_clamps_to_month_end_in_common_year(self):
        assert next_due_date(RecurrenceUnit.MONTHLY, 1, _dt(2023, 1, 31)) == _dt(2023, 2, 28)

    def test_quarterly_is_three_months(self):
        assert next_due_date(RecurrenceUnit.QUARTERLY, 1, _dt(2024, 11, 30)) == _dt(2025, 2, 28)

    def test_yearly_from_leap_day(self):
        assert next_due_date(RecurrenceUnit.YEARLY, 1, _dt(2024, 2, 29)) == _dt(2025, 2, 28)

    def test_accepts_plain_string_unit(self):
        assert next_due_date("monthly", 2, date(2024, 1, 15)) == date(2024, 3, 15)

    def test_preserves_time_and_timezone(self):
        result = next_due_date(RecurrenceUnit.MONTHLY, 1, _dt(2024, 3, 10, h=17))
        assert result.hour == 17
        assert result.tzinfo == timezone.utc

    @pytest.mark.parametrize("frequency", [0, -1, True, 1.5, None])
    def test_invalid_frequency_raises(self, frequency):
        with pytest.raises(ValueError):
            next_due_date(RecurrenceUnit.DAILY, frequency, _dt(2024, 6, 1))

    def test_invalid_unit_raises(self):
        with pytest.raises(ValueError):
            next_due_date("fortnightly", 1, _dt(2024, 6, 1))


class TestNextDueAfter:
    def test_single_step_when_recently_due(self):
        due = _dt(2024, 6, 10)
        assert next_due_after(RecurrenceUnit.WEEKLY, 1, due, _dt(2024, 6, 15)) == _dt(2024, 6, 17)

    def test_long_overdue_rule_skips_missed_periods(self):
        due = _dt(2024, 1, 15)
        result = next_due_after(RecurrenceUnit.MONTHLY, 1, due, _dt(2024, 6, 15, h=12))
        assert result == _dt(2024, 7, 15)

    def test_result_is_strictly_after_now(self):
        due = _dt(2024, 6, 1)
        now = _dt(2024, 6, 8)  # exactly one week later
        assert next_due_after(RecurrenceUnit.WEEKLY, 1, due, now) == _dt(2024, 6, 15)

    def test_month_end_does_not_drift(self):
        due = _dt(2024, 1, 31)
        assert next_due_after(RecurrenceUnit.MONTHLY, 1, due, _dt(2024, 3, 1)) == _dt(2024, 3, 31)
