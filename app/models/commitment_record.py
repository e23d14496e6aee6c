"""SQLModel mapping for stored hygiene commitments."""
# ruff: noqa: UP017

from __future__ import annotations

from datetime import date, datetime, timezone
from uuid import UUID, uuid4

import sqlalchemy as sa
from sqlalchemy import Column, Date, DateTime, String, Uuid
from sqlalchemy.ext.compiler import compiles
from sqlalchemy.sql import expression
from sqlmodel import Field, SQLModel

from app.models.hygiene import CommitmentStatus, HygieneCommitment


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class UtcNow(expression.FunctionElement):
    """Dialect-aware server default that pins timestamps to UTC."""

    type = DateTime(timezone=True)
    inherit_cache = True


@compiles(UtcNow)
def _utc_now_default(
    element, compiler, **kwargs
) -> str:  # pragma: no cover - trivial sql generator
    return "CURRENT_TIMESTAMP"


@compiles(UtcNow, "postgresql")
def _utc_now_default_postgres(
    element, compiler, **kwargs
) -> str:  # pragma: no cover - trivial sql generator
    return "timezone('utc', now())"


class CommitmentRecord(SQLModel, table=True):
    """ORM row for a HygieneCommitment."""

    __tablename__ = "hygiene_commitments"
    __table_args__ = (
        sa.Index("ix_hygiene_commitments_deal_status", "deal_id", "status"),
    )

    id: UUID = Field(
        default_factory=uuid4,
        sa_column=Column(Uuid(as_uuid=True), primary_key=True, nullable=False),
    )
    deal_id: str = Field(sa_column=Column(String(length=64), nullable=False))
    owner_id: str | None = Field(
        default=None, sa_column=Column(String(length=64), nullable=True)
    )
    commitment_date: date = Field(sa_column=Column(Date, nullable=False))
    status: str = Field(
        default=CommitmentStatus.PENDING.value,
        sa_column=Column(String(length=16), nullable=False),
    )
    created_at: datetime = Field(
        default_factory=_utcnow,
        sa_column=Column(
            DateTime(timezone=True),
            nullable=False,
            server_default=UtcNow(),
        ),
    )
    resolved_at: datetime | None = Field(
        default=None,
        sa_column=Column(DateTime(timezone=True), nullable=True),
    )

    def to_commitment(self) -> HygieneCommitment:
        return HygieneCommitment(
            id=self.id,
            deal_id=self.deal_id,
            owner_id=self.owner_id,
            commitment_date=self.commitment_date,
            status=CommitmentStatus(self.status),
            # SQLite returns naive values; the model pins them back to UTC.
            created_at=self.created_at,
            resolved_at=self.resolved_at,
        )
