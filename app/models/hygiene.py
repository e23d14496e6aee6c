"""Required-field configuration and owner commitments for the hygiene queues."""
# ruff: noqa: UP017

from __future__ import annotations

from datetime import date, datetime, timezone
from enum import Enum
from uuid import UUID, uuid4

from pydantic import BaseModel, ConfigDict, Field, field_validator


class HygieneRequirement(BaseModel):
    """A required field and the label shown to the deal owner."""

    model_config = ConfigDict(frozen=True)

    field: str
    label: str
    zero_is_missing: bool = Field(
        default=False,
        description="Treat a numeric 0 as missing (monetary fields).",
    )


class HygienePipeline(str, Enum):
    SALES = "sales"
    UPSELL = "upsell"
    CUSTOMER_SUCCESS = "customer_success"


SALES_REQUIRED_FIELDS: tuple[HygieneRequirement, ...] = (
    HygieneRequirement(field="deal_substage", label="Substage"),
    HygieneRequirement(field="close_date", label="Close Date"),
    HygieneRequirement(field="amount", label="Amount", zero_is_missing=True),
    HygieneRequirement(field="lead_source", label="Lead Source"),
    HygieneRequirement(field="products", label="Products"),
)

UPSELL_REQUIRED_FIELDS: tuple[HygieneRequirement, ...] = (
    HygieneRequirement(field="amount", label="Amount", zero_is_missing=True),
    HygieneRequirement(field="close_date", label="Close Date"),
    HygieneRequirement(field="products", label="Products"),
)

CS_REQUIRED_FIELDS: tuple[HygieneRequirement, ...] = (
    HygieneRequirement(field="sentiment", label="Sentiment"),
    HygieneRequirement(field="auto_renew", label="Renewal"),
    HygieneRequirement(field="contract_end", label="Contract End Date"),
    HygieneRequirement(field="mrr", label="MRR", zero_is_missing=True),
    HygieneRequirement(field="contract_status", label="Contract Status"),
    HygieneRequirement(field="qbr_notes", label="QBR Notes"),
)

REQUIRED_FIELDS_BY_PIPELINE: dict[HygienePipeline, tuple[HygieneRequirement, ...]] = {
    HygienePipeline.SALES: SALES_REQUIRED_FIELDS,
    HygienePipeline.UPSELL: UPSELL_REQUIRED_FIELDS,
    HygienePipeline.CUSTOMER_SUCCESS: CS_REQUIRED_FIELDS,
}


class CommitmentStatus(str, Enum):
    PENDING = "pending"
    COMPLETED = "completed"
    ESCALATED = "escalated"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class HygieneCommitment(BaseModel):
    """An owner's promise to fill the missing fields of a deal by ``commitment_date``."""

    model_config = ConfigDict(frozen=True)

    id: UUID = Field(default_factory=uuid4)
    deal_id: str
    owner_id: str | None = None
    commitment_date: date
    status: CommitmentStatus = CommitmentStatus.PENDING
    created_at: datetime = Field(default_factory=_utcnow)
    resolved_at: datetime | None = None

    @field_validator("created_at", "resolved_at", mode="after")
    @classmethod
    def _pin_utc(cls, value: datetime | None) -> datetime | None:
        # Seed files may carry naive timestamps; those are UTC.
        if value is None:
            return None
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)
