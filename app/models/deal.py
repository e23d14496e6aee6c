"""Point-in-time CRM snapshots consumed by the queue classifiers."""
# ruff: noqa: UP017

from __future__ import annotations

from datetime import date, datetime, timezone
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_validator

from app.services.compliance.business_calendar import parse_timestamp


class NextStepStatus(str, Enum):
    """Outcome of the upstream next-step date extraction."""

    DATE_FOUND = "date_found"
    DATE_INFERRED = "date_inferred"
    DATE_UNCLEAR = "date_unclear"
    AWAITING_EXTERNAL = "awaiting_external"
    NO_DATE = "no_date"
    EMPTY = "empty"
    UNPARSEABLE = "unparseable"


# Only a confidently extracted date can make a next step overdue.
CONFIDENT_NEXT_STEP_STATUSES = frozenset({NextStepStatus.DATE_FOUND, NextStepStatus.DATE_INFERRED})

_DEAL_TIMESTAMPS = (
    "created_at",
    "last_activity_date",
    "next_activity_date",
    "sql_entered_at",
    "demo_scheduled_entered_at",
    "demo_completed_entered_at",
)


def _blank_to_none(value: object) -> object:
    # CRM exports use "" for cleared date/enum properties.
    if isinstance(value, str) and not value.strip():
        return None
    return value


def _coerce_timestamp(value: object) -> object:
    # Bare dates are midnight in the business timezone, not UTC.
    if isinstance(value, str) or (isinstance(value, date) and not isinstance(value, datetime)):
        return parse_timestamp(value)
    return value


def _as_utc(value: datetime | None) -> datetime | None:
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class DealSnapshot(BaseModel):
    """Immutable view of one CRM deal as of the last sync."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    id: str
    deal_name: str | None = None
    owner_id: str | None = None
    pipeline: str | None = None
    stage_name: str | None = Field(default=None, description="Display label of the current stage.")
    amount: float | None = None
    close_date: date | None = None
    created_at: datetime | None = Field(default=None, description="CRM creation timestamp.")
    last_activity_date: datetime | None = None
    next_activity_date: datetime | None = None

    next_step: str | None = None
    next_step_status: NextStepStatus | None = None
    next_step_due_date: date | None = None

    sql_entered_at: datetime | None = None
    demo_scheduled_entered_at: datetime | None = None
    demo_completed_entered_at: datetime | None = None

    deal_substage: str | None = None
    lead_source: str | None = None
    products: str | None = None
    deal_collaborator: str | None = None

    @field_validator("close_date", "next_step_due_date", "next_step_status", mode="before")
    @classmethod
    def _blank_is_unknown(cls, value: object) -> object:
        return _blank_to_none(value)

    @field_validator(*_DEAL_TIMESTAMPS, mode="before")
    @classmethod
    def _parse_timestamp(cls, value: object) -> object:
        return _coerce_timestamp(value)

    @field_validator(*_DEAL_TIMESTAMPS, mode="after")
    @classmethod
    def _pin_utc(cls, value: datetime | None) -> datetime | None:
        return _as_utc(value)

    @property
    def has_next_step(self) -> bool:
        return bool(self.next_step and self.next_step.strip())


class CompanySnapshot(BaseModel):
    """Customer-success view of a CRM company record."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    id: str
    name: str | None = None
    owner_id: str | None = None
    sentiment: str | None = None
    auto_renew: str | None = None
    contract_end: date | None = None
    mrr: float | None = None
    contract_status: str | None = None
    qbr_notes: str | None = None

    @field_validator("contract_end", mode="before")
    @classmethod
    def _blank_is_unknown(cls, value: object) -> object:
        return _blank_to_none(value)
