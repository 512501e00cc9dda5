"""
Visa Evaluation Logic Module

Provides the deterministic decision engine for visa applications.
"""

from .contracts import (
    ApplicationModeConfig,
    ChangePathRule,
    EvaluationContext,
    EvaluationEnvelope,
    EvaluationRequest,
    EvaluationResult,
    BatchResult,
    ScoreComponent,
    StrategyOutcome,
    VisaConfig,
    WorkflowPlan,
    WorkflowTransition,
)
from .config_provider import ConfigurationProvider
from .constants import Complexity, EducationLevel, ErrorCode, Mode, Priority
from .engine import EvaluationEngine, evaluate_visa
from .errors import EvaluationError, InvalidInputError, StrategyUnavailableError
from .rule_engine import RuleEvaluator, RuleSet
from .runner import build_engine, get_change_paths, get_visa_requirements, list_supported_visa_types
from .workflow import WorkflowPlanner

__all__ = [
    # Main engine
    "EvaluationEngine",
    "evaluate_visa",
    "build_engine",

    # Collaborators
    "ConfigurationProvider",
    "RuleEvaluator",
    "RuleSet",
    "WorkflowPlanner",

    # Service helpers
    "get_visa_requirements",
    "get_change_paths",
    "list_supported_visa_types",

    # Contracts
    "ApplicationModeConfig",
    "ChangePathRule",
    "EvaluationContext",
    "EvaluationEnvelope",
    "EvaluationRequest",
    "EvaluationResult",
    "BatchResult",
    "ScoreComponent",
    "StrategyOutcome",
    "VisaConfig",
    "WorkflowPlan",
    "WorkflowTransition",

    # Errors
    "EvaluationError",
    "InvalidInputError",
    "StrategyUnavailableError",

    # Enums
    "Mode",
    "Complexity",
    "EducationLevel",
    "Priority",
    "ErrorCode",
]
