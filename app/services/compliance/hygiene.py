"""Required-field hygiene checks and the commitment-driven remediation states.

A deal missing required fields moves between four states::

    needs_commitment  new deal (grace period), no fix-by date yet
    pending           fix-by date set and not yet passed
    escalated         no commitment on an older deal, a missed date, or a
                      regression after an earlier fix
    compliant         nothing missing; any commitment is moot

``compliant`` and ``escalated`` are reachable from every state, and nothing
guarantees forward progress: a missed commitment replaced by a new one takes
the deal from escalated back to pending.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from datetime import datetime

from app.config import settings
from app.models.hygiene import (
    SALES_REQUIRED_FIELDS,
    CommitmentStatus,
    HygieneCommitment,
    HygieneRequirement,
)
from app.models.results import (
    HygieneCheckResult,
    HygieneStatus,
    HygieneStatusResult,
    MissingField,
)
from app.services.compliance.business_calendar import (
    DateLike,
    business_days_since,
    days_until,
    is_past,
    parse_timestamp,
)

# Reported age for records with no creation timestamp; they are treated as old.
UNKNOWN_AGE_BUSINESS_DAYS = 999


def _field_value(record: object, field: str) -> object:
    if isinstance(record, Mapping):
        return record.get(field)
    return getattr(record, field, None)


def _is_missing(value: object, requirement: HygieneRequirement) -> bool:
    if value is None or value == "":
        return True
    if requirement.zero_is_missing and not isinstance(value, bool) and value == 0:
        return True
    return False


def check_hygiene(
    record: object, required_fields: Iterable[HygieneRequirement] = SALES_REQUIRED_FIELDS
) -> HygieneCheckResult:
    """List the required fields ``record`` leaves empty, in configuration order."""
    missing = [
        MissingField(field=requirement.field, label=requirement.label)
        for requirement in required_fields
        if _is_missing(_field_value(record, requirement.field), requirement)
    ]
    return HygieneCheckResult(is_compliant=not missing, missing_fields=missing)


def is_new_deal(created_at: DateLike | None, *, now: datetime | None = None) -> bool:
    if created_at is None:
        return False
    return business_days_since(created_at, now=now) <= settings.new_deal_grace_business_days


def _plural_days(count: int) -> str:
    return f"{count} day" if count == 1 else f"{count} days"


def hygiene_reason(
    status: HygieneStatus,
    missing_fields: Iterable[MissingField],
    commitment: HygieneCommitment | None,
    *,
    now: datetime | None = None,
) -> str:
    """Owner-facing explanation of why the deal sits in the hygiene queue."""
    field_list = ", ".join(field.label for field in missing_fields)

    if status is HygieneStatus.NEEDS_COMMITMENT:
        return f"New deal missing: {field_list}. Please set a date to complete."

    if status is HygieneStatus.PENDING:
        days_left = days_until(commitment.commitment_date, now=now) if commitment else 0
        if days_left == 0:
            return f"Missing: {field_list}. Due today."
        if days_left == 1:
            return f"Missing: {field_list}. Due tomorrow."
        return f"Missing: {field_list}. Due in {days_left} days."

    if status is HygieneStatus.ESCALATED:
        # A regressed fix reports as action required, whatever its old date.
        if (
            commitment is not None
            and commitment.status is CommitmentStatus.PENDING
            and is_past(commitment.commitment_date, now=now)
        ):
            days_overdue = abs(days_until(commitment.commitment_date, now=now))
            return f"OVERDUE by {_plural_days(days_overdue)}: Still missing {field_list}."
        return f"Missing required fields: {field_list}. Action required."

    return ""


def company_hygiene_reason(missing_fields: Iterable[MissingField]) -> str:
    field_list = ", ".join(field.label for field in missing_fields)
    return f"Missing required fields: {field_list}."


def _resolve_status(
    commitment: HygieneCommitment | None, *, is_new: bool, now: datetime | None
) -> HygieneStatus:
    if commitment is None:
        return HygieneStatus.NEEDS_COMMITMENT if is_new else HygieneStatus.ESCALATED
    # Fixed once and regressed since.
    if commitment.status is CommitmentStatus.COMPLETED:
        return HygieneStatus.ESCALATED
    if is_past(commitment.commitment_date, now=now):
        return HygieneStatus.ESCALATED
    return HygieneStatus.PENDING


def determine_hygiene_status(
    deal: object,
    commitment: HygieneCommitment | None,
    *,
    required_fields: Iterable[HygieneRequirement] = SALES_REQUIRED_FIELDS,
    now: datetime | None = None,
) -> HygieneStatusResult:
    """Classify ``deal`` given its most recent pending commitment, if any.

    A compliant deal ignores ``commitment``; callers are expected to mark any
    outstanding commitment completed.
    """
    check = check_hygiene(deal, required_fields)
    created_at = parse_timestamp(_field_value(deal, "created_at"))
    business_days_old = (
        business_days_since(created_at, now=now) if created_at else UNKNOWN_AGE_BUSINESS_DAYS
    )
    new_deal = is_new_deal(created_at, now=now)

    if check.is_compliant:
        return HygieneStatusResult(
            status=HygieneStatus.COMPLIANT,
            missing_fields=[],
            reason="",
            business_days_old=business_days_old,
            is_new_deal=new_deal,
        )

    status = _resolve_status(commitment, is_new=new_deal, now=now)
    return HygieneStatusResult(
        status=status,
        missing_fields=check.missing_fields,
        reason=hygiene_reason(status, check.missing_fields, commitment, now=now),
        business_days_old=business_days_old,
        is_new_deal=new_deal,
    )
