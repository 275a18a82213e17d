"""
Risk Scorer for cart maintenance.

Turns a cart's rolling telemetry into a 0-100 score and a tier. Four
independent factors each contribute a capped number of points; the sum is
clamped to [0, 100]. Thresholds are coarse step functions so the score is
monotonic in every input and easy to audit against the raw metrics.

Pure: no I/O and no clock reads (callers pass `now`).
"""

import math
import sys
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Iterable, Optional, Sequence

from core.base import RiskTier

# Days-since-maintenance used for carts that were never serviced
NEVER_SERVICED_DAYS = 999

# (exclusive lower bound, points), checked top-down; first match wins.
USAGE_HOURS_POINTS: Sequence[tuple[float, int]] = ((200, 30), (150, 20), (100, 10))
ISSUES_POINTS: Sequence[tuple[float, int]] = ((5, 30), (3, 20), (1, 10))
DOWNTIME_MINUTES_POINTS: Sequence[tuple[float, int]] = ((120, 20), (60, 15), (30, 10))
DAYS_SINCE_MAINTENANCE_POINTS: Sequence[tuple[float, int]] = ((90, 20), (60, 15), (30, 10))

# (inclusive minimum score, tier), checked top-down.
TIER_THRESHOLDS: Sequence[tuple[int, RiskTier]] = (
    (75, RiskTier.CRITICAL),
    (50, RiskTier.HIGH),
    (25, RiskTier.MEDIUM),
)

# Tiers that make the scheduler open an inspection request
ACTIONABLE_TIERS = frozenset({RiskTier.HIGH, RiskTier.CRITICAL})


@dataclass(frozen=True)
class RiskAssessment:
    score: int
    tier: RiskTier
    total_usage_hours: float
    total_issues: int
    avg_downtime_minutes: float
    days_since_maintenance: int

    @property
    def actionable(self) -> bool:
        return self.tier in ACTIONABLE_TIERS

    def summary(self) -> str:
        """Compact one-line description of the inputs, used in request text and advisory prompts."""
        return (
            f"Issues: {self.total_issues}, "
            f"Avg downtime: {self.avg_downtime_minutes:.0f}min, "
            f"Days since maintenance: {self.days_since_maintenance}, "
            f"Usage: {self.total_usage_hours:.1f}h, "
            f"Risk score: {self.score} ({self.tier.value})"
        )


def _points(value: float, table: Iterable[tuple[float, int]]) -> int:
    for bound, pts in table:
        if value > bound:
            return pts
    return 0


def tier_for(score: int) -> RiskTier:
    for minimum, tier in TIER_THRESHOLDS:
        if score >= minimum:
            return tier
    return RiskTier.LOW


def _clean(value, default=0.0, ceiling=sys.float_info.max) -> float:
    if value is None:
        return default
    value = float(value)
    if math.isnan(value) or value == -math.inf:
        return default
    if value == math.inf:
        # still earns the top band but stays convertible to int
        return ceiling
    return value


def score(
    usage_hours_sum: Optional[float],
    issues_sum: Optional[float],
    avg_downtime_minutes: Optional[float],
    days_since_last_maintenance: Optional[float],
) -> RiskAssessment:
    """Score one cart from its window aggregates.

    None/NaN inputs count as zero, except days_since_last_maintenance which
    falls back to NEVER_SERVICED_DAYS. Infinite days cap at NEVER_SERVICED_DAYS.
    """
    usage = _clean(usage_hours_sum)
    issues = _clean(issues_sum)
    downtime = _clean(avg_downtime_minutes)
    days = _clean(days_since_last_maintenance, default=NEVER_SERVICED_DAYS, ceiling=NEVER_SERVICED_DAYS)

    total = (
        _points(usage, USAGE_HOURS_POINTS)
        + _points(issues, ISSUES_POINTS)
        + _points(downtime, DOWNTIME_MINUTES_POINTS)
        + _points(days, DAYS_SINCE_MAINTENANCE_POINTS)
    )
    total = max(0, min(100, total))

    return RiskAssessment(
        score=total,
        tier=tier_for(total),
        total_usage_hours=usage,
        total_issues=int(issues),
        avg_downtime_minutes=downtime,
        days_since_maintenance=int(days),
    )


def days_since(last_maintenance: Optional[datetime], now: datetime) -> int:
    """Whole days between last_maintenance and now; NEVER_SERVICED_DAYS when unknown."""
    if last_maintenance is None:
        return NEVER_SERVICED_DAYS
    if last_maintenance.tzinfo is None:
        last_maintenance = last_maintenance.replace(tzinfo=timezone.utc)
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    return max(0, math.floor((now - last_maintenance).total_seconds() / 86400))


def assess_window(records, last_maintenance: Optional[datetime], now: datetime) -> RiskAssessment:
    """Aggregate a telemetry window (sequence of TelemetryRecord) and score it.

    Average downtime divides by max(len(records), 1), so an empty window
    scores only on days since maintenance.
    """
    records = list(records)
    usage = sum(_clean(r.usage_hours) for r in records)
    issues = sum(int(_clean(r.issues_reported)) for r in records)
    downtime = sum(_clean(r.downtime_minutes) for r in records) / max(len(records), 1)
    return score(usage, issues, downtime, days_since(last_maintenance, now))
