from __future__ import annotations

import logging
import time

from fastapi import APIRouter, Depends, HTTPException

from app.config import settings
from app.services.commitments.repositories import (
    CommitmentRepository,
    SQLCommitmentRepository,
    get_commitment_repository,
)

logger = logging.getLogger(__name__)
router = APIRouter()


@router.get("")
async def health_check():
    """Liveness only; never touches the commitment store."""
    return {
        "status": "healthy",
        "version": settings.app_version,
        "environment": settings.environment,
    }


@router.get("/ready")
async def readiness_check(
    repository: CommitmentRepository = Depends(get_commitment_repository),
):
    start = time.perf_counter()
    available = repository.ping()
    latency_ms = round((time.perf_counter() - start) * 1000, 2)
    backend = "database" if isinstance(repository, SQLCommitmentRepository) else "memory"
    if not available:
        logger.warning("health.not_ready", extra={"backend": backend, "latency_ms": latency_ms})
        raise HTTPException(status_code=503, detail="Commitment store is not available")

    return {
        "status": "ready",
        "version": settings.app_version,
        "environment": settings.environment,
        "commitment_store": backend,
        "store_latency_ms": latency_ms,
    }
