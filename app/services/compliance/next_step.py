"""Next-step compliance: a deal needs a stated next step that is not overdue."""

from __future__ import annotations

from datetime import date, datetime

from app.models.deal import CONFIDENT_NEXT_STEP_STATUSES, DealSnapshot, NextStepStatus
from app.models.results import NextStepCheckResult, NextStepQueueStatus
from app.services.compliance.business_calendar import days_until, is_past

MISSING_REASON = "This deal has no next step defined. Add one to keep it moving."


def check_next_step(
    next_step: str | None,
    next_step_due_date: date | None,
    next_step_status: NextStepStatus | str | None,
    *,
    now: datetime | None = None,
) -> NextStepCheckResult:
    """Vague (``date_unclear``) and blocked (``awaiting_external``) steps are never overdue."""
    if not next_step or not next_step.strip():
        return NextStepCheckResult(status=NextStepQueueStatus.MISSING, reason=MISSING_REASON)

    status = NextStepStatus(next_step_status) if next_step_status else None
    if (
        next_step_due_date is not None
        and status in CONFIDENT_NEXT_STEP_STATUSES
        and is_past(next_step_due_date, now=now)
    ):
        days_overdue = abs(days_until(next_step_due_date, now=now))
        unit = "day" if days_overdue == 1 else "days"
        return NextStepCheckResult(
            status=NextStepQueueStatus.OVERDUE,
            days_overdue=days_overdue,
            reason=f"Next step is {days_overdue} {unit} overdue. Update or complete it.",
        )

    return NextStepCheckResult(status=NextStepQueueStatus.COMPLIANT)


def check_deal_next_step(deal: DealSnapshot, *, now: datetime | None = None) -> NextStepCheckResult:
    return check_next_step(
        deal.next_step,
        deal.next_step_due_date,
        deal.next_step_status,
        now=now,
    )
