"""Stage-label heuristics shared by the risk classifiers.

Stage categories are inferred from the CRM display label. Precedence is
closed, then mid (demo), then late, then early, so "Demo Lost" is closed.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum

from app.models.deal import DealSnapshot


class StageCategory(str, Enum):
    EARLY = "early"
    MID = "mid"
    LATE = "late"
    CLOSED = "closed"


@dataclass(frozen=True)
class StageThresholds:
    """Days in stage (expected / at-risk / stale) and days without activity."""

    expected: int
    at_risk: int
    stale: int
    inactivity_sla: int


STAGE_THRESHOLDS: dict[StageCategory, StageThresholds] = {
    StageCategory.EARLY: StageThresholds(expected=21, at_risk=32, stale=42, inactivity_sla=7),
    StageCategory.MID: StageThresholds(expected=14, at_risk=21, stale=28, inactivity_sla=10),
    StageCategory.LATE: StageThresholds(expected=30, at_risk=45, stale=60, inactivity_sla=15),
}

CLOSED_KEYWORDS = ("closed", "disqualified", "lost")
MID_KEYWORDS = ("demo",)
LATE_KEYWORDS = ("proposal", "negotiation", "contract", "legal", "procurement")


def stage_category(stage_name: str | None) -> StageCategory:
    if not stage_name:
        return StageCategory.EARLY
    lower = stage_name.lower()
    if any(keyword in lower for keyword in CLOSED_KEYWORDS):
        return StageCategory.CLOSED
    if any(keyword in lower for keyword in MID_KEYWORDS):
        return StageCategory.MID
    if any(keyword in lower for keyword in LATE_KEYWORDS):
        return StageCategory.LATE
    # SQL, MQL, Discovery, Qualified and anything unrecognised.
    return StageCategory.EARLY


def stage_entry_date(deal: DealSnapshot) -> datetime | None:
    """When the deal entered its current stage, falling back to its creation time."""
    lower = (deal.stage_name or "").strip().lower()
    if lower == "sql" and deal.sql_entered_at:
        return deal.sql_entered_at
    if "demo" in lower and "scheduled" in lower and deal.demo_scheduled_entered_at:
        return deal.demo_scheduled_entered_at
    if "demo" in lower and "completed" in lower and deal.demo_completed_entered_at:
        return deal.demo_completed_entered_at
    return deal.created_at
