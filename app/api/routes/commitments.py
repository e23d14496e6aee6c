"""Owner commitments to fix a deal's missing hygiene fields by a given date."""

from __future__ import annotations

import logging
from datetime import date
from typing import NoReturn

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, Field

from app.api.errors import map_error_code
from app.models.hygiene import HygieneCommitment
from app.services.commitments.errors import CommitmentError
from app.services.commitments.repositories import (
    CommitmentRepository,
    get_commitment_repository,
)

router = APIRouter()
logger = logging.getLogger(__name__)


class SetCommitmentRequest(BaseModel):
    commitment_date: date = Field(description="Date (YYYY-MM-DD) the owner will complete the fields by.")
    owner_id: str | None = None


class CommitmentResponse(BaseModel):
    deal_id: str
    commitment: HygieneCommitment | None = None


class CompleteCommitmentResponse(BaseModel):
    deal_id: str
    completed: int


@router.get("/queues/{deal_id}/commitment", response_model=CommitmentResponse)
async def get_commitment(
    deal_id: str,
    repository: CommitmentRepository = Depends(get_commitment_repository),
) -> CommitmentResponse:
    """Return the most recent pending commitment for a deal, if any."""
    try:
        commitment = repository.get_pending(deal_id)
    except CommitmentError as exc:
        _raise_for(deal_id, exc)
    return CommitmentResponse(deal_id=deal_id, commitment=commitment)


@router.post(
    "/queues/{deal_id}/commitment",
    response_model=CommitmentResponse,
    status_code=status.HTTP_201_CREATED,
)
async def set_commitment(
    deal_id: str,
    payload: SetCommitmentRequest,
    repository: CommitmentRepository = Depends(get_commitment_repository),
) -> CommitmentResponse:
    """Create or move the pending commitment date for a deal."""
    try:
        commitment = repository.set_commitment(
            deal_id, payload.commitment_date, owner_id=payload.owner_id
        )
    except CommitmentError as exc:
        _raise_for(deal_id, exc)
    return CommitmentResponse(deal_id=deal_id, commitment=commitment)


@router.delete("/queues/{deal_id}/commitment", response_model=CompleteCommitmentResponse)
async def complete_commitment(
    deal_id: str,
    repository: CommitmentRepository = Depends(get_commitment_repository),
) -> CompleteCommitmentResponse:
    try:
        completed = repository.complete(deal_id)
    except CommitmentError as exc:
        _raise_for(deal_id, exc)
    if not completed:
        _raise_for(
            deal_id,
            CommitmentError("No pending commitment for deal.", code="404_COMMITMENT_NOT_FOUND"),
        )
    return CompleteCommitmentResponse(deal_id=deal_id, completed=completed)


def _raise_for(deal_id: str, exc: CommitmentError) -> NoReturn:
    logger.error("commitments.api_error", extra={"deal_id": deal_id, "code": exc.code})
    raise HTTPException(status_code=map_error_code(exc.code), detail=str(exc)) from exc
