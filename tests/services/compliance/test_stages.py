from __future__ import annotations

import pytest

from app.services.compliance.stages import (
    STAGE_THRESHOLDS,
    StageCategory,
    stage_category,
    stage_entry_date,
)
from tests.helpers.deals import days_ago, make_deal


@pytest.mark.parametrize(
    ("stage_name", "expected"),
    [
        ("Closed Won", StageCategory.CLOSED),
        ("closed lost", StageCategory.CLOSED),
        ("Disqualified", StageCategory.CLOSED),
        ("Demo Lost", StageCategory.CLOSED),
        ("Demo - Scheduled", StageCategory.MID),
        ("Demo - Completed", StageCategory.MID),
        ("Proposal", StageCategory.LATE),
        ("Contract Sent", StageCategory.LATE),
        ("Legal Review", StageCategory.LATE),
        ("SQL", StageCategory.EARLY),
        ("Discovery", StageCategory.EARLY),
        ("Something New", StageCategory.EARLY),
        ("", StageCategory.EARLY),
        (None, StageCategory.EARLY),
    ],
)
def test_stage_category(stage_name, expected):
    assert stage_category(stage_name) is expected


def test_thresholds_per_category():
    early = STAGE_THRESHOLDS[StageCategory.EARLY]
    mid = STAGE_THRESHOLDS[StageCategory.MID]
    late = STAGE_THRESHOLDS[StageCategory.LATE]

    assert (early.expected, early.at_risk, early.stale, early.inactivity_sla) == (21, 32, 42, 7)
    assert (mid.expected, mid.at_risk, mid.stale, mid.inactivity_sla) == (14, 21, 28, 10)
    assert (late.expected, late.at_risk, late.stale, late.inactivity_sla) == (30, 45, 60, 15)
    assert StageCategory.CLOSED not in STAGE_THRESHOLDS


def test_stage_entry_prefers_tracked_timestamps():
    created, sql, scheduled, completed = days_ago(40), days_ago(30), days_ago(20), days_ago(10)
    tracked = {
        "created_at": created,
        "sql_entered_at": sql,
        "demo_scheduled_entered_at": scheduled,
        "demo_completed_entered_at": completed,
    }

    assert stage_entry_date(make_deal(stage_name="SQL", **tracked)) == sql
    assert stage_entry_date(make_deal(stage_name="Demo - Scheduled", **tracked)) == scheduled
    assert stage_entry_date(make_deal(stage_name="Demo - Completed", **tracked)) == completed
    assert stage_entry_date(make_deal(stage_name="Proposal", **tracked)) == created


def test_stage_entry_falls_back_to_creation_date():
    created = days_ago(19)
    assert stage_entry_date(make_deal(stage_name="SQL", created_at=created)) == created
    assert stage_entry_date(make_deal(stage_name="SQL", created_at=None)) is None
