# ruff: noqa: UP017
from __future__ import annotations

from datetime import date, datetime, timezone

import pytest

from app.models.deal import CompanySnapshot
from app.models.hygiene import (
    CS_REQUIRED_FIELDS,
    UPSELL_REQUIRED_FIELDS,
    CommitmentStatus,
    HygieneCommitment,
)
from app.models.results import HygieneStatus
from app.services.compliance.hygiene import (
    UNKNOWN_AGE_BUSINESS_DAYS,
    check_hygiene,
    company_hygiene_reason,
    determine_hygiene_status,
    is_new_deal,
)
from tests.helpers.deals import NOW, make_deal


def _commitment(day: date, status: CommitmentStatus = CommitmentStatus.PENDING) -> HygieneCommitment:
    return HygieneCommitment(deal_id="deal-1", commitment_date=day, status=status)


def _labels(result) -> list[str]:
    return [field.label for field in result.missing_fields]


def test_missing_fields_follow_configuration_order():
    deal = make_deal(products="", amount=0, deal_substage=None)

    result = check_hygiene(deal)

    assert not result.is_compliant
    assert _labels(result) == ["Substage", "Amount", "Products"]


def test_check_hygiene_is_idempotent():
    deal = make_deal(lead_source="", close_date=None)
    assert check_hygiene(deal) == check_hygiene(deal)


def test_zero_is_only_missing_for_monetary_fields():
    record = {"amount": 0, "close_date": "2025-02-01", "products": 0}
    assert _labels(check_hygiene(record, UPSELL_REQUIRED_FIELDS)) == ["Amount"]


def test_upsell_fields():
    deal = make_deal(deal_substage=None, lead_source=None, products=None)
    assert _labels(check_hygiene(deal, UPSELL_REQUIRED_FIELDS)) == ["Products"]


def test_customer_success_fields():
    company = CompanySnapshot(
        id="co-1",
        sentiment="Positive",
        auto_renew="Yes",
        contract_end="2025-12-31",
        mrr=0,
        contract_status="Active",
        qbr_notes=None,
    )

    result = check_hygiene(company, CS_REQUIRED_FIELDS)

    assert _labels(result) == ["MRR", "QBR Notes"]
    assert company_hygiene_reason(result.missing_fields) == "Missing required fields: MRR, QBR Notes."


@pytest.mark.parametrize(
    "commitment",
    [
        None,
        _commitment(date(2025, 1, 20)),
        _commitment(date(2025, 1, 1)),
        _commitment(date(2025, 1, 20), CommitmentStatus.COMPLETED),
    ],
)
def test_complete_deal_is_compliant_whatever_the_commitment(commitment):
    result = determine_hygiene_status(make_deal(), commitment, now=NOW)

    assert result.status is HygieneStatus.COMPLIANT
    assert result.missing_fields == []
    assert result.reason == ""


def test_new_deal_needs_commitment_then_escalates_with_age():
    # Created Monday 2025-01-06; seven business days old on Wednesday the 15th.
    deal = make_deal(created_at="2025-01-06", amount=None)

    fresh = determine_hygiene_status(deal, None, now=NOW)
    aged = determine_hygiene_status(deal, None, now=datetime(2025, 1, 16, 17, tzinfo=timezone.utc))

    assert fresh.status is HygieneStatus.NEEDS_COMMITMENT
    assert fresh.is_new_deal and fresh.business_days_old == 7
    assert fresh.reason == "New deal missing: Amount. Please set a date to complete."
    assert aged.status is HygieneStatus.ESCALATED
    assert not aged.is_new_deal and aged.business_days_old == 8
    assert aged.reason == "Missing required fields: Amount. Action required."


@pytest.mark.parametrize(
    ("commitment_date", "reason"),
    [
        (date(2025, 1, 15), "Missing: Amount, Products. Due today."),
        (date(2025, 1, 16), "Missing: Amount, Products. Due tomorrow."),
        (date(2025, 1, 20), "Missing: Amount, Products. Due in 5 days."),
    ],
)
def test_future_commitment_is_pending(commitment_date, reason):
    deal = make_deal(amount=0, products=None)

    result = determine_hygiene_status(deal, _commitment(commitment_date), now=NOW)

    assert result.status is HygieneStatus.PENDING
    assert result.reason == reason


@pytest.mark.parametrize(
    ("commitment_date", "reason"),
    [
        (date(2025, 1, 14), "OVERDUE by 1 day: Still missing Amount."),
        (date(2025, 1, 10), "OVERDUE by 5 days: Still missing Amount."),
    ],
)
def test_missed_commitment_escalates(commitment_date, reason):
    result = determine_hygiene_status(make_deal(amount=None), _commitment(commitment_date), now=NOW)

    assert result.status is HygieneStatus.ESCALATED
    assert result.reason == reason


def test_regression_after_completed_commitment_escalates():
    commitment = _commitment(date(2025, 1, 20), CommitmentStatus.COMPLETED)

    result = determine_hygiene_status(make_deal(amount=None), commitment, now=NOW)

    assert result.status is HygieneStatus.ESCALATED
    assert result.reason == "Missing required fields: Amount. Action required."


def test_regression_after_completed_commitment_ignores_past_commitment_date():
    commitment = _commitment(date(2025, 1, 10), CommitmentStatus.COMPLETED)

    result = determine_hygiene_status(make_deal(amount=None), commitment, now=NOW)

    assert result.status is HygieneStatus.ESCALATED
    assert result.reason == "Missing required fields: Amount. Action required."


def test_new_deal_with_commitment_follows_commitment():
    deal = make_deal(created_at="2025-01-13", amount=None)

    result = determine_hygiene_status(deal, _commitment(date(2025, 1, 14)), now=NOW)

    assert result.is_new_deal
    assert result.status is HygieneStatus.ESCALATED


def test_pending_can_return_after_escalation():
    deal = make_deal(amount=None)
    missed = determine_hygiene_status(deal, _commitment(date(2025, 1, 10)), now=NOW)
    reset = determine_hygiene_status(deal, _commitment(date(2025, 1, 17)), now=NOW)

    assert missed.status is HygieneStatus.ESCALATED
    assert reset.status is HygieneStatus.PENDING


def test_unknown_creation_date_is_treated_as_old():
    result = determine_hygiene_status(make_deal(created_at=None, amount=None), None, now=NOW)

    assert result.status is HygieneStatus.ESCALATED
    assert result.business_days_old == UNKNOWN_AGE_BUSINESS_DAYS
    assert not result.is_new_deal


def test_mapping_records_are_supported():
    record = {"created_at": "2025-01-14", "amount": 100, "close_date": "2025-02-01"}

    result = determine_hygiene_status(record, None, now=NOW)

    assert result.status is HygieneStatus.NEEDS_COMMITMENT
    assert _labels(result) == ["Substage", "Lead Source", "Products"]
    assert is_new_deal(date(2025, 1, 14), now=NOW)
    assert not is_new_deal(None, now=NOW)
