"""
Tests for the detailed academic evaluator used by the professor visa.
"""

import pytest

from visa_evaluation.logic.academic_evaluator import AcademicEvaluator
from visa_evaluation.logic.constants import ACADEMIC_MAX_POINTS, MANUAL_MINIMUM_POINTS


@pytest.fixture
def evaluator():
    return AcademicEvaluator(reference_income=44_000_000, passing_score=70)


@pytest.fixture
def mid_career_profile():
    return {
        "education": "masters",
        "experience_years": 3,
        "publications": 5,
        "age": 35,
        "language": "intermediate",
        "institution_type": "university",
    }


def test_senior_academic_scores_above_passing(evaluator, professor_profile):
    evaluation = evaluator.evaluate_new(professor_profile)

    points = {factor.factor: factor.points for factor in evaluation.breakdown}
    assert points == {
        "academic": 25,
        "experience": 30,
        "research": 25,
        "language": 16,
        "age": 15,
        "institution": 0,
    }
    assert evaluation.raw_points == 111
    assert evaluation.max_points == ACADEMIC_MAX_POINTS
    assert evaluation.score == 79.3
    assert evaluation.score >= 70
    assert evaluation.level == "good"


def test_factors_are_capped(evaluator):
    evaluation = evaluator.evaluate_new({
        "education": "doctorate",
        "major_field": "medicine",
        "experience_years": 20,
        "position": "professor",
        "publications": 50,
        "research_projects": 10,
        "academic_awards": 10,
        "topik_level": 6,
        "age": 40,
        "institution_type": "university",
    })

    assert all(factor.points <= factor.max_points for factor in evaluation.breakdown)
    assert evaluation.raw_points == ACADEMIC_MAX_POINTS
    assert evaluation.score == 100


def test_manual_minimum_is_checked_on_raw_points(evaluator):
    # strong language, age and institution but weak core qualifications
    evaluation = evaluator.evaluate_new({
        "education": "bachelor",
        "experience_years": 1,
        "publications": 0,
        "language": "native",
        "age": 40,
        "institution_type": "university",
    })

    check = evaluation.manual_score_check
    assert check.actual_score == 12 + 10 + 0
    assert check.minimum_required == MANUAL_MINIMUM_POINTS
    assert check.passed is False
    assert "below" in check.message


def test_growth_potential_ranks_by_gain_over_difficulty(evaluator, mid_career_profile):
    evaluation = evaluator.evaluate_new(mid_career_profile)
    growth = evaluation.growth_potential

    assert {factor.factor for factor in growth.factors} == {
        "education_upgrade",
        "experience_gap",
        "publication_growth",
        "language_upgrade",
    }
    assert [action.factor for action in growth.priority_actions] == [
        "language_upgrade",
        "experience_gap",
        "publication_growth",
    ]
    assert growth.total_potential == 15.1
    assert growth.projected_score == round(evaluation.score + 15.1, 1)


def test_no_growth_at_the_top(evaluator, professor_profile):
    growth = evaluator.evaluate_new(professor_profile).growth_potential

    assert growth.factors == []
    assert growth.total_potential == 0


def test_roadmap_splits_gap_into_three_phases(evaluator, mid_career_profile):
    evaluation = evaluator.evaluate_new(mid_career_profile)
    roadmap = evaluation.improvement_roadmap

    assert evaluation.score == 64.3
    assert roadmap.gap == 5.7
    assert [(phase.start_month, phase.end_month) for phase in roadmap.phases] == [(0, 3), (3, 6), (6, 12)]
    assert [phase.target_gain for phase in roadmap.phases] == [1.7, 2.3, 1.7]
    assert roadmap.phases[-1].expected_score == pytest.approx(70, abs=0.1)
    assert "language_upgrade" in roadmap.phases[1].focus
    assert roadmap.timeframe == "0-3 months"
    assert "institution" in roadmap.strengths


def test_roadmap_is_empty_when_already_passing(evaluator, professor_profile):
    roadmap = evaluator.evaluate_new(professor_profile).improvement_roadmap

    assert roadmap.gap == 0
    assert roadmap.phases == []
    assert roadmap.timeframe == "ready"
    assert "institution" in roadmap.weaknesses


def test_risk_factors(evaluator):
    risks = evaluator.identify_risks({
        "education": "bachelor",
        "experience_years": 1,
        "online_ratio": 0.7,
        "workplaces": ["A", "B", "C"],
    })

    assert [risk.factor for risk in risks] == [
        "low_degree",
        "limited_experience",
        "online_teaching",
        "multiple_workplaces",
    ]


def test_extension_review_passes_with_partial_credit(evaluator):
    evaluation = evaluator.evaluate({
        "position_grade": "E-1-2",
        "annual_income": 49_500_000,
        "tax": {"delays": 2},
        "recent_activity": {"courses_taught": 2, "weekly_hours": 4},
    }, "extension")

    review = evaluation.extension_review
    checks = {check.name: check for check in review.checks}

    assert evaluation.mode == "extension"
    assert evaluation.breakdown == []
    assert checks["income"].required == pytest.approx(44_000_000 * 1.125)
    assert checks["income"].passed is True
    assert checks["tax"].score == 80
    assert checks["recent_activity"].score == 50
    assert review.passed is True
    assert review.score == round((100 + 80 + 50) / 3, 1)


def test_extension_review_fails_on_unpaid_tax(evaluator):
    review = evaluator.review_extension({"annual_income": 10_000_000, "tax": {"unpaid": True}})

    checks = {check.name: check for check in review.checks}
    assert checks["tax"].score == 0
    assert checks["income"].passed is False
    assert review.passed is False


def test_change_pipeline_reports_current_visa_status(evaluator, professor_profile):
    valid = evaluator.evaluate({**professor_profile, "current_visa": {"type": "E-2", "status": "valid"}}, "change")
    expired = evaluator.evaluate({**professor_profile, "current_visa": {"type": "E-2", "status": "expired"}}, "change")

    assert valid.mode == "change"
    assert valid.current_visa_valid is True
    assert expired.current_visa_valid is False
    assert valid.score == evaluator.evaluate_new(professor_profile).score
