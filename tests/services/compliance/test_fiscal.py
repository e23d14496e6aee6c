# ruff: noqa: UP017
from __future__ import annotations

from datetime import date, datetime, time, timedelta, timezone

import pytest

from app.services.compliance.errors import InvalidQuarterError
from app.services.compliance.fiscal import (
    format_quarter_label,
    get_current_quarter,
    get_quarter_for_date,
    get_quarter_info,
    get_quarter_progress,
    is_date_in_quarter,
    parse_quarter_label,
)

EASTERN = timezone(timedelta(hours=-5))


def test_quarter_boundaries_are_in_business_timezone():
    info = get_quarter_info(2025, 1)

    assert info.label == "Q1 2025"
    assert info.start_date == datetime(2025, 1, 1, tzinfo=EASTERN)
    assert info.end_date == datetime.combine(date(2025, 3, 31), time.max, tzinfo=EASTERN)


@pytest.mark.parametrize(
    ("quarter", "first_day", "last_day"),
    [
        (1, date(2024, 1, 1), date(2024, 3, 31)),
        (2, date(2024, 4, 1), date(2024, 6, 30)),
        (3, date(2024, 7, 1), date(2024, 9, 30)),
        (4, date(2024, 10, 1), date(2024, 12, 31)),
    ],
)
def test_quarter_first_and_last_days(quarter, first_day, last_day):
    info = get_quarter_info(2024, quarter)
    assert info.first_day == first_day
    assert info.last_day == last_day


@pytest.mark.parametrize("quarter", [0, 5, -1])
def test_invalid_quarter_raises(quarter):
    with pytest.raises(InvalidQuarterError) as excinfo:
        get_quarter_info(2025, quarter)
    assert excinfo.value.code == "E_INVALID_QUARTER"


@pytest.mark.parametrize("year", [0, -1, 9999, 10000])
def test_year_outside_calendar_range_raises(year):
    with pytest.raises(InvalidQuarterError) as excinfo:
        get_quarter_info(year, 1)
    assert excinfo.value.code == "E_INVALID_QUARTER"


def test_quarter_boundary_close_dates():
    q1 = get_quarter_info(2025, 1)
    q2 = get_quarter_info(2025, 2)

    assert is_date_in_quarter(date(2025, 3, 31), q1)
    assert not is_date_in_quarter(date(2025, 3, 31), q2)
    assert is_date_in_quarter(date(2025, 4, 1), q2)
    assert not is_date_in_quarter(date(2025, 4, 1), q1)


def test_utc_instant_after_midnight_stays_in_previous_quarter():
    # 03:00 UTC on Apr 1 is still Mar 31 in the business timezone.
    instant = datetime(2025, 4, 1, 3, tzinfo=timezone.utc)
    assert get_quarter_for_date(instant).label == "Q1 2025"
    assert is_date_in_quarter(instant, get_quarter_info(2025, 1))


def test_current_quarter_uses_business_today():
    assert get_current_quarter(now=datetime(2025, 1, 1, 3, tzinfo=timezone.utc)).label == "Q4 2024"
    assert get_current_quarter(now=datetime(2025, 1, 1, 6, tzinfo=timezone.utc)).label == "Q1 2025"


def test_quarter_progress_counts_both_boundary_days():
    q1 = get_quarter_info(2025, 1)
    progress = get_quarter_progress(q1, now=datetime(2025, 2, 14, 17, tzinfo=timezone.utc))

    assert progress.total_days == 90
    assert progress.days_elapsed == 45
    assert progress.percent_complete == 50.0


def test_quarter_progress_clamps_outside_quarter():
    q1 = get_quarter_info(2025, 1)

    after = get_quarter_progress(q1, now=datetime(2025, 6, 1, tzinfo=timezone.utc))
    before = get_quarter_progress(q1, now=datetime(2024, 12, 1, 17, tzinfo=timezone.utc))

    assert (after.days_elapsed, after.percent_complete) == (90, 100.0)
    assert (before.days_elapsed, before.percent_complete) == (1, 1.11)


def test_quarter_progress_defaults_to_current_quarter():
    progress = get_quarter_progress(now=datetime(2025, 4, 1, 17, tzinfo=timezone.utc))
    assert progress.total_days == 91
    assert progress.days_elapsed == 1


def test_quarter_label_round_trip():
    assert format_quarter_label(2024, 3) == "Q3 2024"
    assert parse_quarter_label("Q3 2024") == (2024, 3)
    assert parse_quarter_label(" Q1 2025 ") == (2025, 1)


@pytest.mark.parametrize("label", ["Q5 2024", "2024 Q1", "Q1", ""])
def test_parse_quarter_label_rejects_malformed(label):
    assert parse_quarter_label(label) is None
