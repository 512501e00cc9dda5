"""
Shared fixtures for the visa evaluation tests.
"""

import pytest

from visa_evaluation.logic.config_provider import ConfigurationProvider
from visa_evaluation.logic.constants import Mode
from visa_evaluation.logic.contracts import EvaluationContext
from visa_evaluation.logic.engine import EvaluationEngine
from visa_evaluation.logic.rule_engine import RuleEvaluator

REFERENCE_INCOME = 44_000_000


@pytest.fixture
def provider():
    return ConfigurationProvider.default(reference_income=REFERENCE_INCOME)


@pytest.fixture
def rule_evaluator(provider):
    return RuleEvaluator(provider)


@pytest.fixture
def engine(provider):
    return EvaluationEngine(config_provider=provider)


@pytest.fixture
def make_context(provider):
    """Build an evaluation context without going through the engine."""

    def _make(visa_type, mode, data):
        return EvaluationContext(
            evaluation_id="EVAL-TEST",
            visa_type=visa_type,
            mode=Mode(mode).value,
            visa_config=provider.get_visa_config(visa_type),
            mode_config=provider.get_application_mode_config(mode),
            data=data,
            timestamp="2026-01-01T00:00:00+00:00",
        )

    return _make


@pytest.fixture
def professor_profile():
    """Senior academic applying for a professor visa."""
    return {
        "education": "doctorate",
        "experience": 10,
        "publications": 20,
        "age": 45,
        "language": "advanced",
    }
