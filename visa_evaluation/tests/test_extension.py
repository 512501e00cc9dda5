"""
Tests for the extension strategy: continuity deltas, the extension ceiling and helpers.
"""

from datetime import date

import pytest

from visa_evaluation.logic.constants import MAX_EXTENSIONS, MAX_STAY_YEARS
from visa_evaluation.logic.strategies.extension import (
    ExtensionStrategy,
    employment_gap_days,
    salary_trend,
)


@pytest.fixture
def strategy(provider, rule_evaluator):
    return ExtensionStrategy(provider, rule_evaluator)


def test_contract_continuity_deltas(strategy):
    score, details = strategy.score_contract_continuity({
        "contract": {
            "remaining_months": 2,
            "employer_changes": 3,
            "gap_days": 100,
            "salary_trend": "decreasing",
        }
    })

    assert details["deltas"] == {
        "remaining_months": -15,
        "employer_changes": -20,
        "gap_days": -25,
        "salary_trend": -10,
    }
    assert score == 30
    # rescaled into the 20-point slot
    assert score * 20 / 100 == 6


def test_contract_continuity_derives_signals_from_history(strategy):
    score, details = strategy.score_contract_continuity({
        "employment_history": [
            {"employer": "A", "start_date": "2020-01-01", "end_date": "2021-01-01"},
            {"employer": "B", "start_date": "2021-01-11", "end_date": "2023-01-01"},
        ],
        "salary_history": [30_000_000, 32_000_000, 35_000_000],
    })

    # one employer change (0), a 10-day gap (-5), rising salary (+10)
    assert details["deltas"] == {"employer_changes": 0, "gap_days": -5, "salary_trend": 10}
    assert score == 100


@pytest.mark.parametrize("visa_type", ["E-1", "E-7", "H-1", "F-4"])
def test_extension_limit(strategy, visa_type):
    max_extensions = MAX_EXTENSIONS.get(visa_type, 3)
    max_years = MAX_STAY_YEARS.get(visa_type, 5)

    for previous in range(max_extensions + 2):
        for months in (0, 12, max_years * 12 - 1, max_years * 12, max_years * 12 + 6):
            limit = strategy.check_extension_limit(visa_type, previous, months)
            expected_blocked = previous >= max_extensions or months / 12 >= max_years
            assert limit.allowed is not expected_blocked
            if limit.allowed:
                assert limit.remaining_extensions == max_extensions - previous
                assert limit.remaining_years == pytest.approx(round(max_years - months / 12, 2))
            else:
                assert limit.reason


def test_extension_limit_compares_unrounded_stay(strategy):
    # 59.95 months is just under five years even though it displays as 5.0
    below = strategy.check_extension_limit("D-4", 0, 59.95)
    assert below.allowed is True
    assert below.stay_years == 5.0
    assert below.remaining_years == 0.0

    assert strategy.check_extension_limit("D-4", 0, 60).allowed is False


def test_expired_contract_takes_the_lowest_band(strategy):
    expired, details = strategy.score_contract_continuity({"contract": {"remaining_months": -1}})
    short, _ = strategy.score_contract_continuity({"contract": {"remaining_months": 2}})

    assert details["deltas"] == {"remaining_months": -15}
    assert expired == 85
    assert expired <= short


def test_stay_history_penalties_and_bonuses(strategy):
    score, details = strategy.score_stay_history({
        "stay_history": {
            "violations": [{"type": "overstay"}, "address_unreported"],
            "consistent_tax_payment": True,
            "departures": 0,
        }
    })

    assert [v["penalty"] for v in details["violations"]] == [30, 10]
    assert score == 100 - 30 - 10 + 10 + 5


def test_document_readiness(strategy):
    score, details = strategy.score_document_readiness({
        "documents": ["passport", "employment_contract", "tax_certificate"],
    })

    assert score == 55
    assert "alien_registration_card" in details["missing"]


def test_employment_gap_days_counts_only_gaps():
    history = [
        {"start_date": "2022-03-01", "end_date": None},
        {"start_date": "2020-01-01", "end_date": "2022-01-30"},
    ]
    assert employment_gap_days(history, today=date(2024, 1, 1)) == 30
    assert employment_gap_days([]) == 0


@pytest.mark.parametrize("salaries, trend", [
    ([100, 110, 120], "increasing"),
    ([{"amount": 120}, {"amount": 100}], "decreasing"),
    ([100, 120, 100], "stable"),
    ([], "stable"),
])
def test_salary_trend(salaries, trend):
    assert salary_trend(salaries) == trend


def test_extension_over_the_limit_is_blocked(strategy, make_context):
    context = make_context("E-7", "extension", {
        "current_visa": {"type": "E-7", "status": "valid"},
        "stay_history": {"violations": []},
        "previous_extensions": 3,
        "total_stay_months": 30,
    })

    outcome = strategy.evaluate(context)

    assert outcome.blocked is True
    assert outcome.final_score == 0
    assert "extensions" in outcome.block_reason
    assert any(rec.type == "extension_limit" for rec in outcome.recommendations)


def test_professor_extension_includes_compliance_review(strategy, make_context):
    context = make_context("E-1", "extension", {
        "current_visa": {"type": "E-1", "status": "valid"},
        "stay_history": {"violations": [], "consistent_tax_payment": True},
        "annual_income": 40_000_000,
        "tax": {"delays": 1},
        "recent_activity": {"courses_taught": 3, "weekly_hours": 9},
        "performance": {"courses_taught": 4, "publications": 3, "supervised_students": 2, "attendance_rate": 0.96},
    })

    outcome = strategy.evaluate(context)

    review = outcome.extras["compliance_review"]
    assert review["passed"] is True
    assert [check["name"] for check in review["checks"]] == ["income", "tax", "recent_activity"]
    assert outcome.scores["performance"].score == 30 + 25 + 6 + 10
    assert outcome.scores["performance"].details["points"] == pytest.approx(21.3)
