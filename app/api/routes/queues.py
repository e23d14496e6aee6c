"""API endpoints that classify CRM snapshots into the operational queues."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import NoReturn

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel, Field

from app.api.errors import map_error_code
from app.models.deal import CompanySnapshot, DealSnapshot
from app.models.hygiene import HygienePipeline
from app.models.queues import (
    CompanyHygieneResponse,
    DealTasks,
    HygieneQueueResponse,
    NextStepQueueResponse,
    OverdueTasksQueueResponse,
    QueueSummary,
    RiskQueueResponse,
    StalledQueueResponse,
    Week1DealActivity,
    Week1QueueResponse,
)
from app.services.commitments.errors import CommitmentError
from app.services.compliance.errors import ComplianceError
from app.services.compliance.staleness import STALLED_PRESETS, StalledThresholds
from app.services.queues.builder import QueueBuilder, get_queue_builder

router = APIRouter()
logger = logging.getLogger(__name__)

_NOW_QUERY = Query(None, description="Evaluate as of this instant instead of the current time.")


class DealBatchRequest(BaseModel):
    deals: list[DealSnapshot] = Field(default_factory=list)


class CompanyBatchRequest(BaseModel):
    companies: list[CompanySnapshot] = Field(default_factory=list)


class StalledQueueRequest(DealBatchRequest):
    """Deals plus either a named preset or explicit thresholds (thresholds win)."""

    preset: str | None = Field(default=None, description="strict, default or lenient.")
    thresholds: StalledThresholds | None = None


class Week1QueueRequest(BaseModel):
    items: list[Week1DealActivity] = Field(default_factory=list)
    target: int | None = Field(default=None, ge=1)


class OverdueTasksRequest(BaseModel):
    items: list[DealTasks] = Field(default_factory=list)


@router.post("/queues/hygiene", response_model=HygieneQueueResponse)
async def hygiene_queue(
    payload: DealBatchRequest,
    pipeline: HygienePipeline = Query(HygienePipeline.SALES),
    now: datetime | None = _NOW_QUERY,
    builder: QueueBuilder = Depends(get_queue_builder),
) -> HygieneQueueResponse:
    if pipeline is HygienePipeline.CUSTOMER_SUCCESS:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail="Use /api/queues/cs-hygiene for customer success accounts.",
        )
    try:
        return builder.hygiene_queue(payload.deals, pipeline, now=now)
    except (CommitmentError, ComplianceError) as exc:
        _raise_for("queues.hygiene.api_error", exc)


@router.post("/queues/cs-hygiene", response_model=CompanyHygieneResponse)
async def cs_hygiene_queue(
    payload: CompanyBatchRequest,
    builder: QueueBuilder = Depends(get_queue_builder),
) -> CompanyHygieneResponse:
    return builder.company_hygiene_queue(payload.companies)


@router.post("/queues/at-risk", response_model=RiskQueueResponse)
async def at_risk_queue(
    payload: DealBatchRequest,
    now: datetime | None = _NOW_QUERY,
    builder: QueueBuilder = Depends(get_queue_builder),
) -> RiskQueueResponse:
    try:
        return builder.risk_queue(payload.deals, now=now)
    except ComplianceError as exc:
        _raise_for("queues.at_risk.api_error", exc)


@router.post("/queues/stalled-deals", response_model=StalledQueueResponse)
async def stalled_deals_queue(
    payload: StalledQueueRequest,
    now: datetime | None = _NOW_QUERY,
    builder: QueueBuilder = Depends(get_queue_builder),
) -> StalledQueueResponse:
    thresholds = payload.thresholds
    if thresholds is None and payload.preset:
        thresholds = STALLED_PRESETS.get(payload.preset.lower())
        if thresholds is None:
            raise HTTPException(
                status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
                detail=f"Unknown preset {payload.preset!r}; expected one of {sorted(STALLED_PRESETS)}.",
            )
    try:
        return builder.stalled_queue(payload.deals, thresholds, now=now)
    except ComplianceError as exc:
        _raise_for("queues.stalled.api_error", exc)


@router.post("/queues/next-step", response_model=NextStepQueueResponse)
async def next_step_queue(
    payload: DealBatchRequest,
    now: datetime | None = _NOW_QUERY,
    builder: QueueBuilder = Depends(get_queue_builder),
) -> NextStepQueueResponse:
    return builder.next_step_queue(payload.deals, now=now)


@router.post("/queues/week1", response_model=Week1QueueResponse)
async def week1_queue(
    payload: Week1QueueRequest,
    now: datetime | None = _NOW_QUERY,
    builder: QueueBuilder = Depends(get_queue_builder),
) -> Week1QueueResponse:
    try:
        return builder.week1_queue(payload.items, payload.target, now=now)
    except ComplianceError as exc:
        _raise_for("queues.week1.api_error", exc)


@router.post("/queues/overdue-tasks", response_model=OverdueTasksQueueResponse)
async def overdue_tasks_queue(
    payload: OverdueTasksRequest,
    now: datetime | None = _NOW_QUERY,
    builder: QueueBuilder = Depends(get_queue_builder),
) -> OverdueTasksQueueResponse:
    return builder.overdue_tasks_queue(payload.items, now=now)


@router.post("/queues/summary", response_model=QueueSummary)
async def queue_summary(
    payload: DealBatchRequest,
    pipeline: HygienePipeline = Query(HygienePipeline.SALES),
    now: datetime | None = _NOW_QUERY,
    builder: QueueBuilder = Depends(get_queue_builder),
) -> QueueSummary:
    if pipeline is HygienePipeline.CUSTOMER_SUCCESS:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail="Customer success accounts have no deal summary.",
        )
    try:
        return builder.summary(payload.deals, pipeline, now=now)
    except (CommitmentError, ComplianceError) as exc:
        _raise_for("queues.summary.api_error", exc)


def _raise_for(event: str, exc: CommitmentError | ComplianceError) -> NoReturn:
    logger.error(event, extra={"code": exc.code})
    raise HTTPException(status_code=map_error_code(exc.code), detail=str(exc)) from exc
