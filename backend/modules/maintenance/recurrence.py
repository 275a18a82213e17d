"""
Recurrence Calculator — next due date for a preventive maintenance rule.

Calendar units use dateutil.relativedelta, which clamps to the end of the
target month: Jan 31 + 1 month is Feb 29 (leap year) or Feb 28, and
Feb 29 + 1 year is Feb 28. Time of day and tzinfo are preserved.
"""

from datetime import date, datetime, timedelta
from typing import Union

from dateutil.relativedelta import relativedelta

from core.base import RecurrenceUnit

DateLike = Union[date, datetime]


def step_for(unit, frequency: int):
    """Return the timedelta/relativedelta for one recurrence of `frequency` units."""
    unit = RecurrenceUnit(unit)
    if isinstance(frequency, bool) or not isinstance(frequency, int) or frequency < 1:
        raise ValueError(f"frequency must be a positive integer, got {frequency!r}")

    if unit is RecurrenceUnit.DAILY:
        return timedelta(days=frequency)
    if unit is RecurrenceUnit.WEEKLY:
        return timedelta(days=7 * frequency)
    if unit is RecurrenceUnit.MONTHLY:
        return relativedelta(months=frequency)
    if unit is RecurrenceUnit.QUARTERLY:
        return relativedelta(months=3 * frequency)
    return relativedelta(years=frequency)


def next_due_date(unit, frequency: int, reference: DateLike) -> DateLike:
    """Add `frequency` units of `unit` to `reference`.

    Raises ValueError for an unknown unit or a frequency below 1.
    """
    return reference + step_for(unit, frequency)


def next_due_after(unit, frequency: int, due: datetime, now: datetime) -> datetime:
    """First occurrence strictly after `now`, stepping from `due`.

    A rule that fell several periods behind is advanced past `now` in one go
    instead of producing one visit per missed period. Each step is computed
    from the original `due` so month-end clamping does not drift
    (Jan 31 -> Feb 29 -> Mar 31, not Mar 29).
    """
    step_for(unit, frequency)
    n = 1
    candidate = next_due_date(unit, frequency * n, due)
    while candidate <= now:
        n += 1
        candidate = next_due_date(unit, frequency * n, due)
    return candidate
