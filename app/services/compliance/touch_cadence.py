"""Week 1 outreach cadence for newly created deals.

A touch is any logged call or an outbound email. Week 1 runs from midnight of
the creation day through the end of the fifth business day after it. Booking
a meeting inside that window counts as full compliance on its own.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from datetime import datetime, time

from app.config import settings
from app.models.engagement import (
    GENERIC_EMAIL,
    OUTGOING_EMAIL,
    CallRecord,
    EmailRecord,
    MeetingRecord,
)
from app.models.results import CadenceStatus, TouchCounts, Week1TouchAnalysis
from app.services.compliance.business_calendar import (
    DateLike,
    add_business_days,
    business_timezone,
    parse_timestamp,
    resolve_now,
    to_business_date,
)
from app.services.compliance.errors import InvalidDateError

DEFAULT_TOUCH_TARGET = 6
# Allowed shortfall before "behind" becomes "critical".
OPEN_WINDOW_TOLERANCE = 3
CLOSED_WINDOW_TOLERANCE = 2


def _sender_suffix(company_domain: str | None) -> str:
    if company_domain is None:
        return settings.company_email_suffix
    return f"@{company_domain.strip().lstrip('@').lower()}"


def is_outbound_email(email: EmailRecord, company_domain: str | None = None) -> bool:
    """Outbound means sent by the rep; prospect replies never count."""
    if email.direction == OUTGOING_EMAIL:
        return True
    if email.direction == GENERIC_EMAIL and email.from_email:
        return email.from_email.strip().lower().endswith(_sender_suffix(company_domain))
    return False


def _within(moment: datetime | None, start: datetime, end: datetime) -> bool:
    return moment is not None and start <= moment <= end


def count_touches_in_range(
    calls: Iterable[CallRecord],
    emails: Iterable[EmailRecord],
    start: datetime,
    end: datetime,
    *,
    company_domain: str | None = None,
) -> TouchCounts:
    """Count calls and outbound emails with timestamps in ``[start, end]``."""
    call_times = [call.timestamp for call in calls if _within(call.timestamp, start, end)]
    email_times = [
        email.timestamp
        for email in emails
        if is_outbound_email(email, company_domain) and _within(email.timestamp, start, end)
    ]
    touch_times = call_times + email_times
    return TouchCounts(
        calls=len(call_times),
        emails=len(email_times),
        total=len(touch_times),
        last_touch_date=max(touch_times) if touch_times else None,
    )


def week1_window(deal_created_at: DateLike) -> tuple[datetime, datetime]:
    tz = business_timezone()
    created_day = to_business_date(deal_created_at)
    start = datetime.combine(created_day, time.min, tzinfo=tz)
    last_day = add_business_days(created_day, settings.week1_window_business_days)
    end = datetime.combine(last_day, time.max, tzinfo=tz)
    return start, end


def _cadence_status(total: int, target: int, *, window_open: bool) -> CadenceStatus:
    if total >= target:
        return CadenceStatus.ON_TRACK
    gap = target - total
    tolerance = OPEN_WINDOW_TOLERANCE if window_open else CLOSED_WINDOW_TOLERANCE
    return CadenceStatus.BEHIND if gap <= tolerance else CadenceStatus.CRITICAL


def _earliest_booking(
    meetings: Iterable[MeetingRecord], start: datetime, end: datetime
) -> datetime | None:
    booked = [m.created_at for m in meetings if _within(m.created_at, start, end)]
    return min(booked) if booked else None


def analyze_week1(
    calls: Sequence[CallRecord],
    emails: Sequence[EmailRecord],
    deal_created_at: DateLike | str,
    target: int = DEFAULT_TOUCH_TARGET,
    meetings: Sequence[MeetingRecord] | None = None,
    *,
    company_domain: str | None = None,
    now: datetime | None = None,
) -> Week1TouchAnalysis:
    created = parse_timestamp(deal_created_at)
    if created is None:
        raise InvalidDateError("Week 1 analysis requires the deal creation timestamp.")
    start, end = week1_window(created)
    window_open = resolve_now(now) <= end

    touches = count_touches_in_range(calls, emails, start, end, company_domain=company_domain)
    status = _cadence_status(touches.total, target, window_open=window_open)
    gap = max(0, target - touches.total)

    booked_at = _earliest_booking(meetings or (), start, end)
    if booked_at is not None:
        status = CadenceStatus.ON_TRACK
        gap = 0

    return Week1TouchAnalysis(
        touches=touches,
        target=target,
        gap=gap,
        status=status,
        week1_end_date=end,
        is_in_week1=window_open,
        meeting_booked=booked_at is not None,
        meeting_booked_date=booked_at,
    )
