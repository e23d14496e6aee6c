"""Engagement records associated with a deal (calls, emails, meetings, tasks)."""
# ruff: noqa: UP017

from __future__ import annotations

from datetime import datetime, timezone

from pydantic import BaseModel, ConfigDict, field_validator

from app.services.compliance.business_calendar import parse_timestamp

OUTGOING_EMAIL = "OUTGOING_EMAIL"
INCOMING_EMAIL = "INCOMING_EMAIL"
# Generic direction tag some CRM email logs carry instead of OUTGOING_EMAIL.
GENERIC_EMAIL = "EMAIL"

_TIMESTAMP_FIELDS = ("timestamp", "created_at", "start_time", "due_at")


class _Engagement(BaseModel):
    model_config = ConfigDict(frozen=True, extra="ignore")

    id: str

    @field_validator(*_TIMESTAMP_FIELDS, mode="before", check_fields=False)
    @classmethod
    def _parse_timestamp(cls, value: object) -> object:
        # Blank is unknown; bare dates are midnight in the business timezone.
        if isinstance(value, str):
            return parse_timestamp(value)
        return value

    @field_validator(*_TIMESTAMP_FIELDS, mode="after", check_fields=False)
    @classmethod
    def _pin_utc(cls, value: datetime | None) -> datetime | None:
        if value is None:
            return None
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)


class CallRecord(_Engagement):
    """Logged call; every call counts as a touch, connected or not."""

    timestamp: datetime | None = None


class EmailRecord(_Engagement):
    timestamp: datetime | None = None
    direction: str | None = None
    from_email: str | None = None


class MeetingRecord(_Engagement):
    """Meeting engagement; ``created_at`` is when it was booked."""

    created_at: datetime | None = None
    start_time: datetime | None = None


class TaskRecord(_Engagement):
    subject: str | None = None
    status: str | None = None
    due_at: datetime | None = None
