"""Fiscal quarter boundaries and progress in the business timezone."""

from __future__ import annotations

import re
from datetime import MAXYEAR, MINYEAR, date, datetime, time, timedelta

from app.models.results import QuarterInfo, QuarterProgress
from app.services.compliance.business_calendar import (
    DateLike,
    business_timezone,
    resolve_now,
    to_business_date,
)
from app.services.compliance.errors import InvalidQuarterError

_QUARTER_LABEL = re.compile(r"^Q([1-4])\s+(\d{4})$")

MIN_YEAR = MINYEAR
# Q4 of MAXYEAR would end past the last representable business-timezone instant.
MAX_YEAR = MAXYEAR - 1


def format_quarter_label(year: int, quarter: int) -> str:
    return f"Q{quarter} {year}"


def parse_quarter_label(label: str) -> tuple[int, int] | None:
    """Parse ``"Q1 2025"`` into ``(2025, 1)``; ``None`` when the label is malformed."""
    match = _QUARTER_LABEL.match(label.strip())
    if not match:
        return None
    return int(match.group(2)), int(match.group(1))


def _last_day_of_quarter(year: int, quarter: int) -> date:
    end_month = quarter * 3
    if end_month == 12:
        return date(year, 12, 31)
    return date(year, end_month + 1, 1) - timedelta(days=1)


def get_quarter_info(year: int, quarter: int) -> QuarterInfo:
    if quarter < 1 or quarter > 4:
        raise InvalidQuarterError(f"Quarter must be between 1 and 4, got {quarter}.")
    if year < MIN_YEAR or year > MAX_YEAR:
        raise InvalidQuarterError(f"Year must be between {MIN_YEAR} and {MAX_YEAR}, got {year}.")
    tz = business_timezone()
    first_day = date(year, (quarter - 1) * 3 + 1, 1)
    last_day = _last_day_of_quarter(year, quarter)
    return QuarterInfo(
        year=year,
        quarter=quarter,
        start_date=datetime.combine(first_day, time.min, tzinfo=tz),
        end_date=datetime.combine(last_day, time.max, tzinfo=tz),
        label=format_quarter_label(year, quarter),
    )


def get_quarter_for_date(value: DateLike) -> QuarterInfo:
    civil = to_business_date(value)
    return get_quarter_info(civil.year, (civil.month - 1) // 3 + 1)


def get_current_quarter(*, now: datetime | None = None) -> QuarterInfo:
    return get_quarter_for_date(resolve_now(now))


def is_date_in_quarter(value: DateLike, quarter: QuarterInfo) -> bool:
    """Bare dates are civil dates in the business timezone, not UTC midnight."""
    civil = to_business_date(value)
    return quarter.first_day <= civil <= quarter.last_day


def get_quarter_progress(
    quarter: QuarterInfo | None = None, *, now: datetime | None = None
) -> QuarterProgress:
    current = resolve_now(now)
    info = quarter or get_current_quarter(now=current)
    effective = min(max(to_business_date(current), info.first_day), info.last_day)
    total_days = (info.last_day - info.first_day).days + 1
    days_elapsed = (effective - info.first_day).days + 1
    percent = min(100.0, max(0.0, days_elapsed / total_days * 100))
    return QuarterProgress(
        days_elapsed=days_elapsed,
        total_days=total_days,
        percent_complete=round(percent, 2),
    )
