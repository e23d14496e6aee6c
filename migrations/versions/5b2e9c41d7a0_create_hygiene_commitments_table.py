"""Create hygiene_commitments table.

The composite index serves the pending-commitment lookup the hygiene queue
runs for every deal in a batch (``WHERE deal_id IN (...) AND status = 'pending'``).
"""

from __future__ import annotations

import logging

from alembic import op
import sqlalchemy as sa

revision = "5b2e9c41d7a0"
down_revision = None
branch_labels = None
depends_on = None

logger = logging.getLogger(__name__)


def upgrade() -> None:
    op.create_table(
        "hygiene_commitments",
        sa.Column("id", sa.Uuid(as_uuid=True), nullable=False),
        sa.Column("deal_id", sa.String(length=64), nullable=False),
        sa.Column("owner_id", sa.String(length=64), nullable=True),
        sa.Column("commitment_date", sa.Date(), nullable=False),
        sa.Column("status", sa.String(length=16), nullable=False, server_default="pending"),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("CURRENT_TIMESTAMP"),
        ),
        sa.Column("resolved_at", sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint("id", name="pk_hygiene_commitments"),
        sa.CheckConstraint(
            "status IN ('pending', 'completed', 'escalated')",
            name="ck_hygiene_commitments_status",
        ),
    )
    op.create_index(
        "ix_hygiene_commitments_deal_status",
        "hygiene_commitments",
        ["deal_id", "status"],
        unique=False,
    )
    logger.info("commitments.migration.applied", extra={"revision": revision})


def downgrade() -> None:
    op.drop_index("ix_hygiene_commitments_deal_status", table_name="hygiene_commitments")
    op.drop_table("hygiene_commitments")
