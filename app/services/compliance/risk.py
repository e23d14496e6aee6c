"""Multi-factor staleness/risk assessment for a single open deal.

Five independent signals are checked in a fixed order: stage age, activity
drought, missing next step, overdue close date and overdue next step. The
level is a count, not a weighted score: two signals of any kind make a deal
stale, one makes it at risk.
"""

from __future__ import annotations

from datetime import datetime

from app.models.deal import CONFIDENT_NEXT_STEP_STATUSES, DealSnapshot
from app.models.results import RiskAssessment, RiskFactor, RiskFactorKind, RiskLevel
from app.services.compliance.business_calendar import (
    days_until,
    elapsed_days,
    is_past,
    resolve_now,
)
from app.services.compliance.stages import (
    STAGE_THRESHOLDS,
    StageCategory,
    stage_category,
    stage_entry_date,
)

# Deals younger than this (calendar days) are not flagged for having no activity at all.
NO_ACTIVITY_GRACE_DAYS = 7


def _plural(count: int, word: str) -> str:
    return f"{count} {word}" if count == 1 else f"{count} {word}s"


def risk_level_for(factor_count: int) -> RiskLevel:
    if factor_count >= 2:
        return RiskLevel.STALE
    if factor_count == 1:
        return RiskLevel.AT_RISK
    return RiskLevel.HEALTHY


def next_step_overdue(deal: DealSnapshot, *, now: datetime | None = None) -> bool:
    return bool(
        deal.next_step_due_date
        and deal.next_step_status in CONFIDENT_NEXT_STEP_STATUSES
        and is_past(deal.next_step_due_date, now=now)
    )


def assess_risk(deal: DealSnapshot, *, now: datetime | None = None) -> RiskAssessment:
    current = resolve_now(now)
    category = stage_category(deal.stage_name)
    if category is StageCategory.CLOSED:
        return RiskAssessment(level=RiskLevel.HEALTHY)

    thresholds = STAGE_THRESHOLDS[category]
    factors: list[RiskFactor] = []

    days_in_stage: int | None = None
    entered_at = stage_entry_date(deal)
    if entered_at is not None:
        days_in_stage = elapsed_days(entered_at, now=current)
        # The stale band and the at-risk band both count as a single factor.
        if days_in_stage >= thresholds.at_risk:
            factors.append(
                RiskFactor(
                    kind=RiskFactorKind.STAGE_AGE,
                    message=f"In stage {days_in_stage} days (expected: {thresholds.expected})",
                )
            )

    days_since_activity: int | None = None
    if deal.last_activity_date is not None:
        days_since_activity = elapsed_days(deal.last_activity_date, now=current)
        if days_since_activity > thresholds.inactivity_sla:
            factors.append(
                RiskFactor(
                    kind=RiskFactorKind.ACTIVITY_DROUGHT,
                    message=(
                        f"No activity in {days_since_activity} days "
                        f"(SLA: {thresholds.inactivity_sla})"
                    ),
                )
            )
    elif deal.created_at is not None:
        if elapsed_days(deal.created_at, now=current) > NO_ACTIVITY_GRACE_DAYS:
            factors.append(
                RiskFactor(kind=RiskFactorKind.ACTIVITY_DROUGHT, message="No activity recorded")
            )

    has_future_activity = deal.next_activity_date is not None and deal.next_activity_date > current
    if not deal.has_next_step and not has_future_activity:
        factors.append(
            RiskFactor(
                kind=RiskFactorKind.NO_NEXT_STEP,
                message="No next step or activity scheduled",
            )
        )

    if deal.close_date is not None and is_past(deal.close_date, now=current):
        days_overdue = -days_until(deal.close_date, now=current)
        factors.append(
            RiskFactor(
                kind=RiskFactorKind.OVERDUE,
                message=f"Close date passed {days_overdue} days ago",
            )
        )

    if next_step_overdue(deal, now=current):
        days_overdue = -days_until(deal.next_step_due_date, now=current)
        factors.append(
            RiskFactor(
                kind=RiskFactorKind.OVERDUE_NEXT_STEP,
                message=f"Next step overdue by {_plural(days_overdue, 'day')}",
            )
        )

    return RiskAssessment(
        level=risk_level_for(len(factors)),
        factors=factors,
        days_in_stage=days_in_stage,
        days_since_activity=days_since_activity,
    )
