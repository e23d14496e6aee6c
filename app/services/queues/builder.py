"""Batch classification of CRM snapshots into the operational queues."""

from __future__ import annotations

import logging
import time
from collections.abc import Iterator, Sequence
from contextlib import contextmanager
from datetime import datetime
from typing import Any

from app.config import settings
from app.models.deal import CompanySnapshot, DealSnapshot
from app.models.hygiene import (
    CS_REQUIRED_FIELDS,
    REQUIRED_FIELDS_BY_PIPELINE,
    HygienePipeline,
    HygieneRequirement,
)
from app.models.queues import (
    CompanyHygieneEntry,
    CompanyHygieneResponse,
    DealQueueEntry,
    DealTasks,
    HygieneQueueEntry,
    HygieneQueueResponse,
    HygieneSummary,
    NextStepQueueEntry,
    NextStepQueueResponse,
    NextStepSummary,
    OverdueTasksQueueEntry,
    OverdueTasksQueueResponse,
    QueueSummary,
    RiskQueueEntry,
    RiskQueueResponse,
    StalledQueueEntry,
    StalledQueueResponse,
    Week1DealActivity,
    Week1QueueEntry,
    Week1QueueResponse,
)
from app.models.results import (
    CadenceStatus,
    HygieneStatus,
    NextStepQueueStatus,
    RiskLevel,
    StalledSeverity,
)
from app.observability.metrics import metrics as default_metrics
from app.services.commitments.repositories import (
    CommitmentRepository,
    InMemoryCommitmentRepository,
    get_commitment_repository,
)
from app.services.compliance.business_calendar import resolve_now
from app.services.compliance.hygiene import (
    check_hygiene,
    company_hygiene_reason,
    determine_hygiene_status,
)
from app.services.compliance.next_step import check_deal_next_step
from app.services.compliance.overdue_tasks import check_overdue_tasks
from app.services.compliance.risk import assess_risk
from app.services.compliance.staleness import StalledThresholds, check_staleness
from app.services.compliance.touch_cadence import analyze_week1

logger = logging.getLogger(__name__)

_SEVERITY_RANK = {
    StalledSeverity.CRITICAL: 0,
    StalledSeverity.WARNING: 1,
    StalledSeverity.WATCH: 2,
}


def _deal_requirements(pipeline: HygienePipeline) -> tuple[HygieneRequirement, ...]:
    if pipeline is HygienePipeline.CUSTOMER_SUCCESS:
        raise ValueError("Customer success hygiene runs on companies, not deals.")
    return REQUIRED_FIELDS_BY_PIPELINE[pipeline]


class QueueBuilder:
    """Runs the compliance classifiers over a batch and assembles queue payloads.

    Classification itself is pure; the builder only reads pending commitments
    and closes out the ones whose deal has become compliant.
    """

    def __init__(
        self,
        repository: CommitmentRepository | None = None,
        *,
        metrics: Any | None = None,
    ) -> None:
        self._repository = repository or InMemoryCommitmentRepository()
        self._metrics = metrics or default_metrics

    def hygiene_queue(
        self,
        deals: Sequence[DealSnapshot],
        pipeline: HygienePipeline = HygienePipeline.SALES,
        *,
        now: datetime | None = None,
    ) -> HygieneQueueResponse:
        current = resolve_now(now)
        required_fields = _deal_requirements(pipeline)
        response = HygieneQueueResponse(pipeline=pipeline)

        with self._timed("hygiene", pipeline=pipeline.value):
            pending = self._repository.get_pending_many(deal.id for deal in deals)
            for deal in deals:
                commitment = pending.get(deal.id)
                result = determine_hygiene_status(
                    deal, commitment, required_fields=required_fields, now=current
                )
                if result.status is HygieneStatus.COMPLIANT:
                    if commitment is not None:
                        self._repository.complete(deal.id, now=current)
                    continue
                response.entries.append(
                    HygieneQueueEntry(
                        **DealQueueEntry.identity(deal),
                        status=result.status,
                        missing_fields=result.missing_fields,
                        reason=result.reason,
                        business_days_old=result.business_days_old,
                        is_new_deal=result.is_new_deal,
                        commitment=commitment,
                    )
                )

        counts = response.counts
        counts.total = len(response.entries)
        counts.needs_commitment = self._count(response.entries, HygieneStatus.NEEDS_COMMITMENT)
        counts.pending = self._count(response.entries, HygieneStatus.PENDING)
        counts.escalated = self._count(response.entries, HygieneStatus.ESCALATED)
        self._record("hygiene", counts.total, pipeline=pipeline.value)
        logger.info(
            "queues.hygiene.built",
            extra={"pipeline": pipeline.value, "deal_count": len(deals), **counts.model_dump()},
        )
        return response

    def company_hygiene_queue(self, companies: Sequence[CompanySnapshot]) -> CompanyHygieneResponse:
        response = CompanyHygieneResponse()
        with self._timed("cs_hygiene"):
            for company in companies:
                check = check_hygiene(company, CS_REQUIRED_FIELDS)
                if check.is_compliant:
                    continue
                response.entries.append(
                    CompanyHygieneEntry(
                        company_id=company.id,
                        name=company.name,
                        owner_id=company.owner_id,
                        missing_fields=check.missing_fields,
                        reason=company_hygiene_reason(check.missing_fields),
                    )
                )
        response.total = len(response.entries)
        self._record("cs_hygiene", response.total)
        logger.info(
            "queues.cs_hygiene.built",
            extra={"company_count": len(companies), "total": response.total},
        )
        return response

    def risk_queue(
        self, deals: Sequence[DealSnapshot], *, now: datetime | None = None
    ) -> RiskQueueResponse:
        current = resolve_now(now)
        response = RiskQueueResponse()
        with self._timed("at_risk"):
            for deal in deals:
                assessment = assess_risk(deal, now=current)
                if assessment.level is RiskLevel.HEALTHY:
                    continue
                response.entries.append(
                    RiskQueueEntry(**DealQueueEntry.identity(deal), assessment=assessment)
                )

        counts = response.counts
        counts.total = len(response.entries)
        counts.at_risk = sum(1 for e in response.entries if e.assessment.level is RiskLevel.AT_RISK)
        counts.stale = sum(1 for e in response.entries if e.assessment.level is RiskLevel.STALE)
        self._record("at_risk", counts.total)
        logger.info(
            "queues.at_risk.built",
            extra={"deal_count": len(deals), **counts.model_dump()},
        )
        return response

    def stalled_queue(
        self,
        deals: Sequence[DealSnapshot],
        thresholds: StalledThresholds | None = None,
        *,
        now: datetime | None = None,
    ) -> StalledQueueResponse:
        current = resolve_now(now)
        limits = thresholds or StalledThresholds.from_settings()
        response = StalledQueueResponse()
        with self._timed("stalled"):
            for deal in deals:
                result = check_staleness(deal, limits, now=current)
                if not result.is_stalled:
                    continue
                response.entries.append(
                    StalledQueueEntry(**DealQueueEntry.identity(deal), result=result)
                )
        response.entries.sort(
            key=lambda entry: (
                _SEVERITY_RANK[entry.result.severity],
                -entry.result.days_since_activity,
            )
        )

        counts = response.counts
        counts.total = len(response.entries)
        for entry in response.entries:
            severity = entry.result.severity
            setattr(counts, severity.value, getattr(counts, severity.value) + 1)
        self._record("stalled", counts.total)
        logger.info(
            "queues.stalled.built",
            extra={"deal_count": len(deals), **counts.model_dump()},
        )
        return response

    def next_step_queue(
        self, deals: Sequence[DealSnapshot], *, now: datetime | None = None
    ) -> NextStepQueueResponse:
        current = resolve_now(now)
        response = NextStepQueueResponse()
        with self._timed("next_step"):
            for deal in deals:
                result = check_deal_next_step(deal, now=current)
                if result.status is NextStepQueueStatus.COMPLIANT:
                    continue
                response.entries.append(
                    NextStepQueueEntry(
                        **DealQueueEntry.identity(deal),
                        next_step=deal.next_step,
                        result=result,
                    )
                )

        counts = response.counts
        counts.total = len(response.entries)
        counts.missing = sum(
            1 for e in response.entries if e.result.status is NextStepQueueStatus.MISSING
        )
        counts.overdue = sum(
            1 for e in response.entries if e.result.status is NextStepQueueStatus.OVERDUE
        )
        self._record("next_step", counts.total)
        logger.info(
            "queues.next_step.built",
            extra={"deal_count": len(deals), **counts.model_dump()},
        )
        return response

    def week1_queue(
        self,
        items: Sequence[Week1DealActivity],
        target: int | None = None,
        *,
        company_domain: str | None = None,
        now: datetime | None = None,
    ) -> Week1QueueResponse:
        current = resolve_now(now)
        touch_target = target if target is not None else settings.week1_touch_target
        response = Week1QueueResponse(target=touch_target)
        with self._timed("week1"):
            for item in items:
                if item.deal.created_at is None:
                    logger.warning(
                        "queues.week1.skipped",
                        extra={"deal_id": item.deal.id, "reason": "missing_created_at"},
                    )
                    continue
                analysis = analyze_week1(
                    item.calls,
                    item.emails,
                    item.deal.created_at,
                    touch_target,
                    item.meetings,
                    company_domain=company_domain,
                    now=current,
                )
                response.entries.append(
                    Week1QueueEntry(**DealQueueEntry.identity(item.deal), analysis=analysis)
                )

        counts = response.counts
        counts.total = len(response.entries)
        without_meeting = [e for e in response.entries if not e.analysis.meeting_booked]
        counts.meeting_booked = counts.total - len(without_meeting)
        # A booked meeting forces on_track; those deals are counted only as meeting_booked.
        for entry in without_meeting:
            status = entry.analysis.status
            if status is CadenceStatus.ON_TRACK:
                counts.on_track += 1
            elif status is CadenceStatus.BEHIND:
                counts.behind += 1
            else:
                counts.critical += 1
        if without_meeting:
            touches = sum(e.analysis.touches.total for e in without_meeting)
            counts.avg_touches_excluding_meetings = round(touches / len(without_meeting), 1)
        self._record("week1", counts.total)
        logger.info(
            "queues.week1.built",
            extra={"deal_count": len(items), "target": touch_target, **counts.model_dump()},
        )
        return response

    def overdue_tasks_queue(
        self, items: Sequence[DealTasks], *, now: datetime | None = None
    ) -> OverdueTasksQueueResponse:
        current = resolve_now(now)
        response = OverdueTasksQueueResponse()
        with self._timed("overdue_tasks"):
            for item in items:
                result = check_overdue_tasks(item.tasks, now=current)
                if not result.has_overdue_tasks:
                    continue
                response.entries.append(
                    OverdueTasksQueueEntry(**DealQueueEntry.identity(item.deal), result=result)
                )
        response.entries.sort(key=lambda entry: entry.result.oldest_overdue_days, reverse=True)
        response.total_deals = len(response.entries)
        response.total_tasks = sum(entry.result.overdue_count for entry in response.entries)
        self._record("overdue_tasks", response.total_deals)
        logger.info(
            "queues.overdue_tasks.built",
            extra={
                "deal_count": len(items),
                "total_deals": response.total_deals,
                "total_tasks": response.total_tasks,
            },
        )
        return response

    def summary(
        self,
        deals: Sequence[DealSnapshot],
        pipeline: HygienePipeline = HygienePipeline.SALES,
        *,
        now: datetime | None = None,
    ) -> QueueSummary:
        """Headline counts for the dashboard; never writes to the repository."""
        current = resolve_now(now)
        required_fields = _deal_requirements(pipeline)
        hygiene = HygieneSummary()
        next_step = NextStepSummary()
        with self._timed("summary"):
            pending = self._repository.get_pending_many(deal.id for deal in deals)
            for deal in deals:
                status = determine_hygiene_status(
                    deal, pending.get(deal.id), required_fields=required_fields, now=current
                ).status
                if status is not HygieneStatus.COMPLIANT:
                    hygiene.total += 1
                    hygiene.escalated += int(status is HygieneStatus.ESCALATED)

                step = check_deal_next_step(deal, now=current).status
                if step is not NextStepQueueStatus.COMPLIANT:
                    next_step.total += 1
                    next_step.overdue += int(step is NextStepQueueStatus.OVERDUE)
        logger.info(
            "queues.summary.built",
            extra={
                "deal_count": len(deals),
                "hygiene_total": hygiene.total,
                "next_step_total": next_step.total,
            },
        )
        return QueueSummary(hygiene=hygiene, next_step=next_step)

    @staticmethod
    def _count(entries: Sequence[HygieneQueueEntry], status: HygieneStatus) -> int:
        return sum(1 for entry in entries if entry.status is status)

    def _record(self, queue: str, size: int, **tags: str) -> None:
        self._metrics.gauge("queues.size", size, tags={"queue": queue, **tags})

    @contextmanager
    def _timed(self, queue: str, **tags: str) -> Iterator[None]:
        start = time.perf_counter()
        try:
            yield
        except Exception as exc:
            self._metrics.increment(
                "queues.errors",
                tags={"queue": queue, "code": getattr(exc, "code", type(exc).__name__), **tags},
            )
            raise
        finally:
            elapsed_ms = (time.perf_counter() - start) * 1000
            self._metrics.timing("queues.latency_ms", elapsed_ms, tags={"queue": queue, **tags})


_BUILDER_INSTANCE: QueueBuilder | None = None


def get_queue_builder() -> QueueBuilder:
    """Singleton accessor used by API routes; shares the commitment repository."""
    global _BUILDER_INSTANCE  # noqa: PLW0603
    if _BUILDER_INSTANCE is None:
        _BUILDER_INSTANCE = QueueBuilder(get_commitment_repository())
    return _BUILDER_INSTANCE
