from __future__ import annotations

import logging
from datetime import datetime

from fastapi import APIRouter, HTTPException, Query
from pydantic import BaseModel

from app.api.errors import map_error_code
from app.models.results import QuarterInfo, QuarterProgress
from app.services.compliance.errors import InvalidQuarterError
from app.services.compliance.fiscal import (
    get_current_quarter,
    get_quarter_info,
    get_quarter_progress,
)

router = APIRouter()
logger = logging.getLogger(__name__)


class QuarterResponse(BaseModel):
    quarter: QuarterInfo
    progress: QuarterProgress


@router.get("/quarters/current", response_model=QuarterResponse)
async def current_quarter(
    now: datetime | None = Query(None, description="Evaluate as of this instant."),
) -> QuarterResponse:
    quarter = get_current_quarter(now=now)
    return QuarterResponse(quarter=quarter, progress=get_quarter_progress(quarter, now=now))


@router.get("/quarters/{year}/{quarter}", response_model=QuarterResponse)
async def quarter_detail(
    year: int,
    quarter: int,
    now: datetime | None = Query(None, description="Evaluate as of this instant."),
) -> QuarterResponse:
    try:
        info = get_quarter_info(year, quarter)
    except InvalidQuarterError as exc:
        logger.error("quarters.api_error", extra={"year": year, "quarter": quarter, "code": exc.code})
        raise HTTPException(status_code=map_error_code(exc.code), detail=str(exc)) from exc
    return QuarterResponse(quarter=info, progress=get_quarter_progress(info, now=now))
