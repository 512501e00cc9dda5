"""
Output Assembler

Transforms a strategy outcome into the caller-facing response envelope:
evaluation identifiers, processing-time estimates, displayed complexity,
and success/failure envelopes.
"""

import math
import time
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from .. import settings
from .constants import (
    COMPLEXITY_MULTIPLIERS,
    COMPLEXITY_ORDER,
    DEFAULT_PROCESSING_DAYS,
    Complexity,
    Mode,
    mode_value,
)
from .contracts import (
    EnvelopeMetadata,
    ErrorInfo,
    EvaluationContext,
    EvaluationEnvelope,
    EvaluationResult,
    ProcessingTime,
    StrategyOutcome,
    VisaConfig,
    WorkflowPlan,
)
from .ranker import rank_recommendations


def generate_evaluation_id() -> str:
    """Time-based identifier with a random suffix, e.g. EVAL-1718000000000-3FA85F64."""
    return f"EVAL-{int(time.time() * 1000)}-{uuid.uuid4().hex[:8]}".upper()


def now_timestamp() -> str:
    return datetime.now(timezone.utc).isoformat()


def estimate_processing_time(visa_config: Optional[VisaConfig]) -> ProcessingTime:
    """Baseline processing days scaled by the visa's complexity multiplier."""
    if visa_config is None:
        low, high = DEFAULT_PROCESSING_DAYS
        multiplier = COMPLEXITY_MULTIPLIERS[Complexity.MEDIUM.value]
    else:
        low, high = visa_config.processing_days.min, visa_config.processing_days.max
        multiplier = COMPLEXITY_MULTIPLIERS.get(visa_config.complexity, 1.0)

    return ProcessingTime(
        min=math.ceil(low * multiplier),
        max=math.ceil(high * multiplier),
    )


def display_complexity(complexity: str, mode: str) -> str:
    """Complexity shown to the applicant; a change is one tier harder."""
    if mode_value(mode) != Mode.CHANGE.value or complexity not in COMPLEXITY_ORDER:
        return complexity
    index = COMPLEXITY_ORDER.index(complexity)
    return COMPLEXITY_ORDER[min(index + 1, len(COMPLEXITY_ORDER) - 1)]


def build_metadata(visa_type: Any, mode: Any, timestamp: Optional[str] = None) -> EnvelopeMetadata:
    return EnvelopeMetadata(
        visa_type=visa_type if isinstance(visa_type, str) else None,
        mode=mode_value(mode) if mode is not None else None,
        timestamp=timestamp or now_timestamp(),
        version=settings.ENGINE_VERSION,
    )


def assemble_result(
    context: EvaluationContext,
    outcome: StrategyOutcome,
    score: float,
    eligible: bool,
    next_steps: WorkflowPlan,
) -> EvaluationResult:
    """Build the result payload, surfacing any detailed evaluation at the top level."""
    details: Dict[str, Any] = {
        "scores": {name: component.model_dump() for name, component in outcome.scores.items()},
        "strategy_score": outcome.final_score,
        "validations": outcome.validations.model_dump() if outcome.validations else None,
        **outcome.extras,
    }
    if outcome.alternatives:
        details["alternatives"] = [alternative.model_dump() for alternative in outcome.alternatives]

    academic = outcome.academic_evaluation
    if academic is not None:
        details["academic_evaluation"] = {
            "mode": academic.mode,
            "score": academic.score,
            "raw_points": academic.raw_points,
            "max_points": academic.max_points,
            "level": academic.level,
            "risk_factors": [risk.model_dump() for risk in academic.risk_factors],
            "current_visa_valid": academic.current_visa_valid,
        }

    result = EvaluationResult(
        eligible=eligible,
        score=score,
        passing_score=context.mode_config.passing_score,
        details=details,
        recommendations=rank_recommendations(outcome.recommendations),
        required_documents=outcome.required_documents,
        next_steps=next_steps,
        processing_time=estimate_processing_time(context.visa_config),
        complexity=display_complexity(context.visa_config.complexity, context.mode),
        blocked=outcome.blocked,
        block_reason=outcome.block_reason,
    )

    if academic is not None:
        if academic.breakdown:
            result.score_breakdown = academic.breakdown
        result.growth_potential = academic.growth_potential
        result.improvement_roadmap = academic.improvement_roadmap
        result.manual_score_check = academic.manual_score_check

    return result


def assemble_success(context: EvaluationContext, result: EvaluationResult) -> EvaluationEnvelope:
    return EvaluationEnvelope(
        success=True,
        evaluation_id=context.evaluation_id,
        result=result,
        metadata=build_metadata(context.visa_type, context.mode, context.timestamp),
    )


def assemble_failure(
    evaluation_id: str,
    code: str,
    message: str,
    details: Optional[Dict[str, Any]] = None,
    visa_type: Any = None,
    mode: Any = None,
) -> EvaluationEnvelope:
    return EvaluationEnvelope(
        success=False,
        evaluation_id=evaluation_id,
        error=ErrorInfo(code=code, message=message, details=details or {}),
        metadata=build_metadata(visa_type, mode),
    )
