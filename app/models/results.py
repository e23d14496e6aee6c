"""Serializable classification results returned by the compliance services."""

from __future__ import annotations

from datetime import date, datetime
from enum import Enum

from pydantic import BaseModel, Field


class RiskLevel(str, Enum):
    HEALTHY = "healthy"
    AT_RISK = "at_risk"
    STALE = "stale"


class RiskFactorKind(str, Enum):
    STAGE_AGE = "stage_age"
    ACTIVITY_DROUGHT = "activity_drought"
    NO_NEXT_STEP = "no_next_step"
    OVERDUE = "overdue"
    OVERDUE_NEXT_STEP = "overdue_next_step"


class RiskFactor(BaseModel):
    kind: RiskFactorKind
    message: str


class RiskAssessment(BaseModel):
    level: RiskLevel
    factors: list[RiskFactor] = Field(default_factory=list)
    days_in_stage: int | None = None
    days_since_activity: int | None = None


class MissingField(BaseModel):
    field: str
    label: str


class HygieneCheckResult(BaseModel):
    is_compliant: bool
    missing_fields: list[MissingField] = Field(default_factory=list)


class HygieneStatus(str, Enum):
    COMPLIANT = "compliant"
    NEEDS_COMMITMENT = "needs_commitment"
    PENDING = "pending"
    ESCALATED = "escalated"


class HygieneStatusResult(BaseModel):
    status: HygieneStatus
    missing_fields: list[MissingField] = Field(default_factory=list)
    reason: str = ""
    business_days_old: int
    is_new_deal: bool


class StalledSeverity(str, Enum):
    WATCH = "watch"
    WARNING = "warning"
    CRITICAL = "critical"


class AggravatingFactors(BaseModel):
    """Display-only context; never feeds severity."""

    close_date_in_past: bool = False
    close_date_within_14_days: bool = False
    no_next_step: bool = False
    next_step_overdue: bool = False


class StalledDealResult(BaseModel):
    is_stalled: bool
    severity: StalledSeverity | None = None
    days_since_activity: int = 0
    aggravating_factors: AggravatingFactors = Field(default_factory=AggravatingFactors)


class NextStepQueueStatus(str, Enum):
    COMPLIANT = "compliant"
    MISSING = "missing"
    OVERDUE = "overdue"


class NextStepCheckResult(BaseModel):
    status: NextStepQueueStatus
    days_overdue: int | None = None
    reason: str = ""


class TouchCounts(BaseModel):
    calls: int = 0
    emails: int = 0
    total: int = 0
    last_touch_date: datetime | None = None


class CadenceStatus(str, Enum):
    ON_TRACK = "on_track"
    BEHIND = "behind"
    CRITICAL = "critical"


class Week1TouchAnalysis(BaseModel):
    touches: TouchCounts
    target: int
    gap: int
    status: CadenceStatus
    week1_end_date: datetime
    is_in_week1: bool
    meeting_booked: bool = False
    meeting_booked_date: datetime | None = None


class QuarterInfo(BaseModel):
    year: int
    quarter: int
    start_date: datetime
    end_date: datetime
    label: str

    @property
    def first_day(self) -> date:
        return self.start_date.date()

    @property
    def last_day(self) -> date:
        return self.end_date.date()


class QuarterProgress(BaseModel):
    days_elapsed: int
    total_days: int
    percent_complete: float


class OverdueTask(BaseModel):
    task_id: str
    subject: str
    due_at: datetime
    days_overdue: int


class OverdueTasksResult(BaseModel):
    has_overdue_tasks: bool
    overdue_count: int
    overdue_tasks: list[OverdueTask] = Field(default_factory=list)
    oldest_overdue_days: int = 0
