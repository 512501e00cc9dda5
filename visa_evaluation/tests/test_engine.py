"""
Tests for the evaluation orchestrator and its service helpers.
"""

import logging

import pytest

from visa_evaluation.logic.constants import EXIT_AND_REAPPLY_PATH, ErrorCode
from visa_evaluation.logic.contracts import BaseRequirements, EvaluationRequest
from visa_evaluation.logic.engine import EvaluationEngine, evaluate_visa
from visa_evaluation.logic.errors import InvalidInputError
from visa_evaluation.logic.runner import (
    build_engine,
    get_change_paths,
    get_visa_requirements,
    list_supported_visa_types,
)
from visa_evaluation.logic.strategies import STRATEGY_REGISTRY, BaseStrategy
from visa_evaluation.logic.strategies.new_application import NewApplicationStrategy


# =============================================================================
# SUCCESSFUL EVALUATIONS
# =============================================================================

def test_professor_application_is_eligible(engine, professor_profile):
    envelope = engine.evaluate({"visa_type": "E-1", "mode": "new", "data": professor_profile})

    assert envelope.success is True
    assert envelope.error is None
    result = envelope.result
    # 40 eligibility + 15 pending documents + 30% of the 79.3 detailed score
    assert result.score == 78.8
    assert result.eligible is True
    assert result.passing_score == 70
    assert result.next_steps.template_name == "eligible-path"
    assert result.next_steps.current_step == "evaluation-complete"

    # detailed evaluation surfaced at the top level
    assert len(result.score_breakdown) == 6
    assert result.manual_score_check.passed is True
    assert result.growth_potential is not None
    assert result.improvement_roadmap.timeframe == "ready"
    assert result.details["academic_evaluation"]["score"] == 79.3
    assert set(result.details["scores"]) == {"eligibility", "documents", "expertise"}

    assert envelope.metadata.visa_type == "E-1"
    assert envelope.metadata.mode == "new"
    assert envelope.metadata.version
    assert envelope.evaluation_id.startswith("EVAL-")


def test_evaluation_is_idempotent(engine, professor_profile):
    request = {"visa_type": "E-1", "mode": "new", "data": professor_profile}

    first = engine.evaluate(request)
    second = engine.evaluate(request)

    assert first.result.score == second.result.score
    assert first.result.eligible == second.result.eligible
    assert first.evaluation_id != second.evaluation_id


def test_request_model_is_accepted(engine, professor_profile):
    envelope = engine.evaluate(EvaluationRequest(visa_type="E-1", mode="new", data=professor_profile))
    assert envelope.success is True


def test_unconfigured_change_is_blocked(engine):
    envelope = engine.evaluate({
        "visa_type": "E-7",
        "mode": "change",
        "data": {
            "current_visa": {"type": "H-2", "status": "valid"},
            "change_reason": "I received a job offer from a design company",
        },
    })

    result = envelope.result
    assert envelope.success is True
    assert result.blocked is True
    assert result.score == 0
    assert result.eligible is False
    assert result.block_reason
    assert result.next_steps.template_name == "ineligible-path"
    assert result.details["alternatives"][-1]["path"] == [EXIT_AND_REAPPLY_PATH, "E-7"]
    assert result.recommendations[0].priority == "critical"
    assert result.details["validations"] is None


def test_legal_change_goes_to_conditional_review(engine):
    envelope = engine.evaluate({
        "visa_type": "D-10",
        "mode": "change",
        "data": {
            "current_visa": {"type": "D-2", "status": "valid"},
            "education": "bachelor",
            "change_reason": "Graduated with a degree and now seeking a job",
        },
    })

    result = envelope.result
    assert result.score == 93.5
    assert result.eligible is True
    assert result.next_steps.template_name == "conditional-review-path"
    assert result.next_steps.estimated_days == 11
    # low complexity shown one tier higher for a change
    assert result.complexity == "medium"


def test_extension_over_the_limit_is_blocked(engine):
    envelope = engine.evaluate({
        "visa_type": "E-2",
        "mode": "extension",
        "data": {
            "current_visa": {"type": "E-2", "status": "valid"},
            "stay_history": {"violations": []},
            "previous_extensions": 5,
        },
    })

    assert envelope.result.blocked is True
    assert envelope.result.score == 0
    assert envelope.result.eligible is False
    assert envelope.result.details["extension_limit"]["allowed"] is False


@pytest.mark.parametrize("visa_type, mode, complexity, days", [
    ("E-1", "new", "medium", (7, 30)),
    ("D-2", "new", "low", (5, 15)),
    ("F-5", "change", "very-high", (90, 270)),
])
def test_processing_time_and_complexity(engine, visa_type, mode, complexity, days):
    envelope = engine.evaluate({"visa_type": visa_type, "mode": mode, "data": {}})

    assert envelope.success is True
    assert envelope.result.complexity == complexity
    assert (envelope.result.processing_time.min, envelope.result.processing_time.max) == days
    assert envelope.result.processing_time.unit == "days"


# =============================================================================
# INPUT VALIDATION
# =============================================================================

@pytest.mark.parametrize("request_body, code", [
    ({"mode": "new", "data": {}}, ErrorCode.MISSING_REQUIRED_FIELD),
    ({"visa_type": "E-1", "data": {}}, ErrorCode.MISSING_REQUIRED_FIELD),
    ({"visa_type": "Z-9", "mode": "new", "data": {}}, ErrorCode.INVALID_VISA_TYPE),
    ({"visa_type": "E-1", "mode": "renewal", "data": {}}, ErrorCode.INVALID_APPLICATION_TYPE),
    ({"visa_type": "F-5", "mode": "extension", "data": {}}, ErrorCode.INVALID_APPLICATION_TYPE),
    ({"visa_type": "E-1", "mode": "new"}, ErrorCode.INVALID_APPLICANT_DATA),
    ({"visa_type": "E-1", "mode": "new", "data": ["education"]}, ErrorCode.INVALID_APPLICANT_DATA),
    ("not a request", ErrorCode.INVALID_APPLICANT_DATA),
    ({"visa_type": ["E-1"], "mode": "new", "data": {}}, ErrorCode.INVALID_VISA_TYPE),
])
def test_invalid_input_returns_failure_envelope(engine, request_body, code):
    envelope = engine.evaluate(request_body)

    assert envelope.success is False
    assert envelope.result is None
    assert envelope.error.code == code.value
    assert envelope.error.message
    assert envelope.evaluation_id.startswith("EVAL-")
    assert envelope.metadata.timestamp


def test_inner_exception_becomes_failure_envelope(engine, monkeypatch):
    def explode(context):
        raise RuntimeError("scoring backend unavailable")

    monkeypatch.setattr(engine.strategies["new"], "evaluate", explode)

    envelope = engine.evaluate({"visa_type": "E-2", "mode": "new", "data": {}})

    assert envelope.success is False
    assert envelope.error.code == ErrorCode.EVALUATION_FAILED.value
    assert "scoring backend unavailable" in envelope.error.message
    assert envelope.metadata.visa_type == "E-2"


# =============================================================================
# STRATEGY REGISTRATION
# =============================================================================

class BrokenStrategy(NewApplicationStrategy):
    def __init__(self, config_provider, rule_evaluator):
        raise RuntimeError("missing scoring tables")


def test_broken_strategy_falls_back_to_generic(provider, caplog):
    registry = {**STRATEGY_REGISTRY, "new": BrokenStrategy}

    with caplog.at_level(logging.WARNING):
        engine = EvaluationEngine(config_provider=provider, strategy_registry=registry)

    assert type(engine.strategies["new"]) is BaseStrategy
    assert "BrokenStrategy" in caplog.text

    envelope = engine.evaluate({"visa_type": "E-2", "mode": "new", "data": {"education": "bachelor"}})
    assert envelope.success is True
    assert set(envelope.result.details["scores"]) == {"eligibility", "documents"}


def test_unregistered_mode_is_reported(provider):
    engine = EvaluationEngine(config_provider=provider, strategy_registry={"new": NewApplicationStrategy})

    envelope = engine.evaluate({"visa_type": "E-2", "mode": "extension", "data": {}})

    assert envelope.success is False
    assert envelope.error.code == ErrorCode.INVALID_APPLICATION_TYPE.value


# =============================================================================
# BATCH AND WORKFLOW
# =============================================================================

def test_batch_isolates_failures(engine, professor_profile):
    requests = [
        {"visa_type": "E-1", "mode": "new", "data": professor_profile},
        {"visa_type": "Z-9", "mode": "new", "data": {}},
        None,
        {"visa_type": "E-7", "mode": "change", "data": {"current_visa": {"type": "H-2"}}},
    ]

    batch = engine.evaluate_batch(requests)

    assert batch.total == 4
    assert batch.successful == 2
    assert batch.failed == 2
    assert [item.index for item in batch.results] == [0, 1, 2, 3]
    assert [item.success for item in batch.results] == [True, False, False, True]
    assert batch.results[1].input == requests[1]
    assert batch.results[1].error.code == ErrorCode.INVALID_VISA_TYPE.value
    assert all(item.timestamp for item in batch.results)


def test_workflow_passthrough(engine):
    assert engine.advance_workflow("eligible-path", "payment-required", "pay-later").status == "paused"
    assert engine.is_legal_transition("eligible-path", "evaluation-complete", "legal-matching")
    assert not engine.is_legal_transition("eligible-path", "evaluation-complete", "final-review")


def test_evaluate_visa_convenience(engine, professor_profile):
    envelope = evaluate_visa("E-1", "new", professor_profile, engine=engine)
    assert envelope.result.eligible is True


# =============================================================================
# SERVICE HELPERS
# =============================================================================

def test_build_engine_registers_every_mode(provider):
    engine = build_engine(provider)
    assert set(engine.strategies) == {"new", "extension", "change"}


def test_visa_requirements(engine):
    requirements = get_visa_requirements(engine, "E-1", "new")

    assert requirements["passing_score"] == 70
    assert "institution_type" in requirements["required_fields"]
    assert "career_certificate" in requirements["required_documents"]["special"]
    assert requirements["base_requirements"]["education"] == "masters"


def test_visa_requirements_rejects_unsupported_mode(engine):
    with pytest.raises(InvalidInputError) as excinfo:
        get_visa_requirements(engine, "H-1", "change")
    assert excinfo.value.code == ErrorCode.INVALID_APPLICATION_TYPE.value


def test_change_paths_and_supported_types(provider):
    paths = get_change_paths(provider, "D-4")
    assert [path["to_visa"] for path in paths] == ["D-2"]
    assert get_change_paths(provider, "H-2") == []

    visas = {visa["code"]: visa for visa in list_supported_visa_types(provider)}
    assert "E-1" in visas
    assert visas["F-5"]["supported_modes"] == ["new", "change"]


def test_replaced_visa_record_is_used_by_later_evaluations(provider, engine):
    request = {"visa_type": "D-10", "mode": "new", "data": {"education": "bachelor"}}
    before = engine.evaluate(request)
    original = provider.get_visa_config("D-10")

    provider.replace_visa_config(
        original.model_copy(update={"base_requirements": BaseRequirements(education="masters")})
    )
    after = engine.evaluate(request)

    assert before.result.details["scores"]["eligibility"]["score"] == 100
    assert after.result.details["scores"]["eligibility"]["score"] == 0
    assert get_visa_requirements(engine, "D-10", "new")["base_requirements"]["education"] == "masters"
    assert original.base_requirements.education == "bachelor"
    assert provider.get_visa_config("D-10") is not original
