"""Detect deals that have gone dark: no recent activity and nothing scheduled."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from app.config import settings
from app.models.deal import DealSnapshot
from app.models.results import AggravatingFactors, StalledDealResult, StalledSeverity
from app.services.compliance.business_calendar import (
    business_days_since,
    days_until,
    is_past,
    resolve_now,
)
from app.services.compliance.risk import next_step_overdue

CLOSE_DATE_WARNING_DAYS = 14


@dataclass(frozen=True)
class StalledThresholds:
    """Business days without activity for each severity, plus the minimum deal age."""

    watch: int = 7
    warning: int = 10
    critical: int = 14
    min_age: int = 7

    def __post_init__(self) -> None:
        if min(self.watch, self.warning, self.critical, self.min_age) < 0:
            raise ValueError("Stalled thresholds must be non-negative.")
        if not self.watch <= self.warning <= self.critical:
            raise ValueError(
                "Stalled thresholds must satisfy watch <= warning <= critical, "
                f"got {self.watch}/{self.warning}/{self.critical}."
            )

    @classmethod
    def from_settings(cls) -> StalledThresholds:
        return cls(
            watch=settings.stalled_watch_days,
            warning=settings.stalled_warning_days,
            critical=settings.stalled_critical_days,
            min_age=settings.stalled_min_age_days,
        )


STALLED_PRESETS: dict[str, StalledThresholds] = {
    "strict": StalledThresholds(watch=3, warning=5, critical=8),
    "default": StalledThresholds(),
    "lenient": StalledThresholds(watch=10, warning=15, critical=20),
}


def _not_stalled() -> StalledDealResult:
    return StalledDealResult(is_stalled=False)


def _severity(days_since_activity: int, thresholds: StalledThresholds) -> StalledSeverity:
    if days_since_activity > thresholds.critical:
        return StalledSeverity.CRITICAL
    if days_since_activity > thresholds.warning:
        return StalledSeverity.WARNING
    return StalledSeverity.WATCH


def aggravating_factors(
    deal: DealSnapshot, *, now: datetime | None = None
) -> AggravatingFactors:
    close_date_in_past = deal.close_date is not None and is_past(deal.close_date, now=now)
    close_date_soon = (
        deal.close_date is not None
        and not close_date_in_past
        and days_until(deal.close_date, now=now) <= CLOSE_DATE_WARNING_DAYS
    )
    return AggravatingFactors(
        close_date_in_past=close_date_in_past,
        close_date_within_14_days=close_date_soon,
        no_next_step=not deal.has_next_step,
        next_step_overdue=next_step_overdue(deal, now=now),
    )


def check_staleness(
    deal: DealSnapshot,
    thresholds: StalledThresholds | None = None,
    *,
    now: datetime | None = None,
) -> StalledDealResult:
    """Classify ``deal`` as stalled (with severity) or not.

    Severity depends only on business days since the last activity. A future
    scheduled activity always clears staleness, and deals younger than
    ``min_age`` business days are never stalled.
    """
    limits = thresholds or StalledThresholds()
    current = resolve_now(now)

    if deal.created_at is None:
        return _not_stalled()
    deal_age = business_days_since(deal.created_at, now=current)
    if deal_age <= limits.min_age:
        return _not_stalled()

    if deal.last_activity_date is None:
        # Never touched: stalled since creation.
        days_since_activity = deal_age
    else:
        days_since_activity = business_days_since(deal.last_activity_date, now=current)
    if days_since_activity <= limits.watch:
        return _not_stalled()

    if deal.next_activity_date is not None and not is_past(deal.next_activity_date, now=current):
        return _not_stalled()

    return StalledDealResult(
        is_stalled=True,
        severity=_severity(days_since_activity, limits),
        days_since_activity=days_since_activity,
        aggravating_factors=aggravating_factors(deal, now=current),
    )
