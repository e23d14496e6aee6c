# ruff: noqa: UP017
from __future__ import annotations

from datetime import date, datetime, timedelta, timezone

import pytest

from app.services.compliance.business_calendar import (
    add_business_days,
    business_days_between,
    business_days_since,
    business_timezone,
    days_until,
    elapsed_days,
    is_past,
    parse_timestamp,
    to_business_date,
)
from app.services.compliance.errors import InvalidDateError
from tests.helpers.deals import NOW

EASTERN = timezone(timedelta(hours=-5))


def test_business_timezone_uses_configured_offset():
    assert business_timezone().utcoffset(None) == timedelta(hours=-5)


def test_parse_bare_date_is_business_midnight():
    assert parse_timestamp("2025-01-06") == datetime(2025, 1, 6, tzinfo=EASTERN)
    assert parse_timestamp(date(2025, 1, 6)) == datetime(2025, 1, 6, tzinfo=EASTERN)


def test_parse_timestamp_accepts_z_suffix_and_naive_values():
    assert parse_timestamp("2025-01-06T14:00:00Z") == datetime(2025, 1, 6, 14, tzinfo=timezone.utc)
    naive = parse_timestamp(datetime(2025, 1, 6, 14))
    assert naive.tzinfo is timezone.utc


@pytest.mark.parametrize("value", [None, "", "   "])
def test_parse_timestamp_blank_is_unknown(value):
    assert parse_timestamp(value) is None


@pytest.mark.parametrize("value", ["not-a-date", "2025-13-01", "06/01/2025 10:00"])
def test_parse_timestamp_rejects_malformed_input(value):
    with pytest.raises(InvalidDateError) as excinfo:
        parse_timestamp(value)
    assert excinfo.value.code == "E_INVALID_DATE"


def test_to_business_date_shifts_late_utc_evening_back_a_day():
    # 03:00 UTC on Jan 1 is 22:00 on Dec 31 in the business timezone.
    assert to_business_date(datetime(2025, 1, 1, 3, tzinfo=timezone.utc)) == date(2024, 12, 31)
    assert to_business_date(date(2025, 1, 1)) == date(2025, 1, 1)


@pytest.mark.parametrize(
    ("start", "end", "expected"),
    [
        (date(2025, 1, 6), date(2025, 1, 13), 5),  # Mon -> Mon
        (date(2025, 1, 10), date(2025, 1, 13), 1),  # Fri -> Mon
        (date(2025, 1, 11), date(2025, 1, 13), 0),  # Sat -> Mon
        (date(2025, 1, 6), date(2025, 1, 22), 12),
        (date(2025, 1, 6), date(2025, 1, 6), 0),
        (date(2025, 1, 13), date(2025, 1, 6), 0),
    ],
)
def test_business_days_between(start, end, expected):
    assert business_days_between(start, end) == expected


def test_business_days_since_counts_to_business_today():
    assert business_days_since(date(2025, 1, 6), now=NOW) == 7
    assert business_days_since(date(2025, 1, 15), now=NOW) == 0


@pytest.mark.parametrize(
    ("start", "days", "expected"),
    [
        (date(2025, 1, 10), 1, date(2025, 1, 13)),
        (date(2025, 1, 6), 5, date(2025, 1, 13)),
        (date(2025, 1, 11), 1, date(2025, 1, 13)),
        (date(2025, 1, 6), 0, date(2025, 1, 6)),
    ],
)
def test_add_business_days_skips_weekends(start, days, expected):
    assert add_business_days(start, days) == expected


def test_days_until_is_signed():
    assert days_until(date(2025, 1, 20), now=NOW) == 5
    assert days_until(date(2025, 1, 10), now=NOW) == -5
    assert days_until(date(2025, 1, 15), now=NOW) == 0


def test_is_past_compares_civil_days():
    assert is_past(date(2025, 1, 14), now=NOW)
    assert not is_past(date(2025, 1, 15), now=NOW)
    # 04:00 UTC on the 15th is still the 14th in the business timezone.
    assert is_past(datetime(2025, 1, 15, 4, tzinfo=timezone.utc), now=NOW)


def test_elapsed_days_floors_whole_days():
    assert elapsed_days(datetime(2025, 1, 14, 17, tzinfo=timezone.utc), now=NOW) == 1
    assert elapsed_days(datetime(2025, 1, 14, 17, 1, tzinfo=timezone.utc), now=NOW) == 0
