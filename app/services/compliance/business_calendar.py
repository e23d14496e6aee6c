"""Business-day arithmetic and past/future predicates.

Calendar dates are taken in the business timezone, a fixed UTC offset
(``settings.business_utc_offset_hours``) rather than the server's local time,
so a sync running in UTC and a rep in New York agree on what "today" is.
Weekends are skipped; there is no holiday calendar.
"""
# ruff: noqa: UP017

from __future__ import annotations

from datetime import date, datetime, timedelta, timezone

from app.config import settings
from app.services.compliance.errors import InvalidDateError

DateLike = date | datetime

_SATURDAY = 5
_SECONDS_PER_DAY = 86400


def business_timezone() -> timezone:
    return timezone(timedelta(hours=settings.business_utc_offset_hours))


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def resolve_now(now: datetime | None) -> datetime:
    if now is None:
        return utcnow()
    if now.tzinfo is None:
        return now.replace(tzinfo=timezone.utc)
    return now


def parse_timestamp(value: str | DateLike | None) -> datetime | None:
    """Coerce ISO-8601 strings, dates and datetimes into aware datetimes.

    ``None`` and blank strings are unknown and return ``None``. Bare dates are
    midnight in the business timezone. Anything else that fails to parse is a
    caller bug and raises ``InvalidDateError``.
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=timezone.utc)
    if isinstance(value, date):
        return datetime.combine(value, datetime.min.time(), tzinfo=business_timezone())
    text = value.strip()
    if not text:
        return None
    if len(text) == 10:
        try:
            return parse_timestamp(date.fromisoformat(text))
        except ValueError as exc:
            raise InvalidDateError(f"Unparseable date: {value!r}") from exc
    try:
        parsed = datetime.fromisoformat(text.replace("Z", "+00:00"))
    except ValueError as exc:
        raise InvalidDateError(f"Unparseable timestamp: {value!r}") from exc
    return parse_timestamp(parsed)


def to_business_date(value: DateLike) -> date:
    """Civil date of ``value`` in the business timezone."""
    if isinstance(value, datetime):
        aware = value if value.tzinfo else value.replace(tzinfo=timezone.utc)
        return aware.astimezone(business_timezone()).date()
    return value


def today(*, now: datetime | None = None) -> date:
    return to_business_date(resolve_now(now))


def business_days_between(start: DateLike, end: DateLike) -> int:
    """Weekdays in ``[start, end)``; zero when ``end`` is not after ``start``."""
    first = to_business_date(start)
    last = to_business_date(end)
    total_days = (last - first).days
    if total_days <= 0:
        return 0
    full_weeks, remainder = divmod(total_days, 7)
    count = full_weeks * 5
    weekday = first.weekday()
    for offset in range(remainder):
        if (weekday + offset) % 7 < _SATURDAY:
            count += 1
    return count


def business_days_since(value: DateLike, *, now: datetime | None = None) -> int:
    return business_days_between(value, today(now=now))


def add_business_days(value: DateLike, days: int) -> date:
    """Step forward ``days`` weekdays from ``value``; the start day itself is not counted."""
    current = to_business_date(value)
    added = 0
    while added < days:
        current += timedelta(days=1)
        if current.weekday() < _SATURDAY:
            added += 1
    return current


def days_until(value: DateLike, *, now: datetime | None = None) -> int:
    """Signed calendar days from today to ``value``; negative once it has passed."""
    return (to_business_date(value) - today(now=now)).days


def is_past(value: DateLike, *, now: datetime | None = None) -> bool:
    """True when ``value`` falls on a civil day before today."""
    return to_business_date(value) < today(now=now)


def elapsed_days(start: DateLike, *, now: datetime | None = None) -> int:
    """Whole 24h periods between ``start`` and now (calendar days, floored)."""
    moment = parse_timestamp(start)
    delta = resolve_now(now) - moment
    return int(delta.total_seconds() // _SECONDS_PER_DAY)
