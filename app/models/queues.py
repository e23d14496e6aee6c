"""Request and response payloads for the operational queues."""

from __future__ import annotations

from pydantic import BaseModel, Field

from app.models.deal import DealSnapshot
from app.models.engagement import CallRecord, EmailRecord, MeetingRecord, TaskRecord
from app.models.hygiene import HygieneCommitment, HygienePipeline
from app.models.results import (
    HygieneStatus,
    MissingField,
    NextStepCheckResult,
    OverdueTasksResult,
    RiskAssessment,
    StalledDealResult,
    Week1TouchAnalysis,
)


class DealQueueEntry(BaseModel):
    """Identifying columns shared by every deal queue row."""

    deal_id: str
    deal_name: str | None = None
    owner_id: str | None = None
    stage_name: str | None = None
    amount: float | None = None

    @classmethod
    def identity(cls, deal: DealSnapshot) -> dict[str, object]:
        return {
            "deal_id": deal.id,
            "deal_name": deal.deal_name,
            "owner_id": deal.owner_id,
            "stage_name": deal.stage_name,
            "amount": deal.amount,
        }


class HygieneQueueEntry(DealQueueEntry):
    status: HygieneStatus
    missing_fields: list[MissingField] = Field(default_factory=list)
    reason: str
    business_days_old: int
    is_new_deal: bool
    commitment: HygieneCommitment | None = None


class HygieneQueueCounts(BaseModel):
    total: int = 0
    needs_commitment: int = 0
    pending: int = 0
    escalated: int = 0


class HygieneQueueResponse(BaseModel):
    pipeline: HygienePipeline
    entries: list[HygieneQueueEntry] = Field(default_factory=list)
    counts: HygieneQueueCounts = Field(default_factory=HygieneQueueCounts)


class CompanyHygieneEntry(BaseModel):
    company_id: str
    name: str | None = None
    owner_id: str | None = None
    missing_fields: list[MissingField] = Field(default_factory=list)
    reason: str


class CompanyHygieneResponse(BaseModel):
    entries: list[CompanyHygieneEntry] = Field(default_factory=list)
    total: int = 0


class RiskQueueEntry(DealQueueEntry):
    assessment: RiskAssessment


class RiskQueueCounts(BaseModel):
    total: int = 0
    at_risk: int = 0
    stale: int = 0


class RiskQueueResponse(BaseModel):
    entries: list[RiskQueueEntry] = Field(default_factory=list)
    counts: RiskQueueCounts = Field(default_factory=RiskQueueCounts)


class StalledQueueEntry(DealQueueEntry):
    result: StalledDealResult


class StalledQueueCounts(BaseModel):
    total: int = 0
    critical: int = 0
    warning: int = 0
    watch: int = 0


class StalledQueueResponse(BaseModel):
    entries: list[StalledQueueEntry] = Field(default_factory=list)
    counts: StalledQueueCounts = Field(default_factory=StalledQueueCounts)


class NextStepQueueEntry(DealQueueEntry):
    next_step: str | None = None
    result: NextStepCheckResult


class NextStepQueueCounts(BaseModel):
    total: int = 0
    missing: int = 0
    overdue: int = 0


class NextStepQueueResponse(BaseModel):
    entries: list[NextStepQueueEntry] = Field(default_factory=list)
    counts: NextStepQueueCounts = Field(default_factory=NextStepQueueCounts)


class Week1DealActivity(BaseModel):
    """A new deal together with the engagements logged against it."""

    deal: DealSnapshot
    calls: list[CallRecord] = Field(default_factory=list)
    emails: list[EmailRecord] = Field(default_factory=list)
    meetings: list[MeetingRecord] = Field(default_factory=list)


class Week1QueueEntry(DealQueueEntry):
    analysis: Week1TouchAnalysis


class Week1QueueCounts(BaseModel):
    total: int = 0
    on_track: int = 0
    behind: int = 0
    critical: int = 0
    meeting_booked: int = 0
    avg_touches_excluding_meetings: float = 0.0


class Week1QueueResponse(BaseModel):
    target: int
    entries: list[Week1QueueEntry] = Field(default_factory=list)
    counts: Week1QueueCounts = Field(default_factory=Week1QueueCounts)


class DealTasks(BaseModel):
    deal: DealSnapshot
    tasks: list[TaskRecord] = Field(default_factory=list)


class OverdueTasksQueueEntry(DealQueueEntry):
    result: OverdueTasksResult


class OverdueTasksQueueResponse(BaseModel):
    entries: list[OverdueTasksQueueEntry] = Field(default_factory=list)
    total_deals: int = 0
    total_tasks: int = 0


class HygieneSummary(BaseModel):
    total: int = 0
    escalated: int = 0


class NextStepSummary(BaseModel):
    total: int = 0
    overdue: int = 0


class QueueSummary(BaseModel):
    hygiene: HygieneSummary = Field(default_factory=HygieneSummary)
    next_step: NextStepSummary = Field(default_factory=NextStepSummary)
