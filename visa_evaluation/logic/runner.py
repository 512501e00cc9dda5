"""
Engine Runner

Startup wiring and read-only lookups used by the API layer:
1. Builds the engine once at process start
2. Describes a visa's requirements for a given mode
3. Lists supported visas and the change paths leaving a visa

This is a pure orchestration layer - NO scoring.
"""

import logging
from typing import Any, Dict, List, Optional

from .config_provider import ConfigurationProvider
from .engine import EvaluationEngine
from .output_assembler import estimate_processing_time, generate_evaluation_id

logger = logging.getLogger(__name__)


def build_engine(provider: Optional[ConfigurationProvider] = None) -> EvaluationEngine:
    """Construct the provider, rule evaluator, planner and engine in one place."""
    engine = EvaluationEngine(config_provider=provider or ConfigurationProvider.default())
    logger.info(f"🚀 Visa evaluation engine ready ({', '.join(engine.strategies)})")
    return engine


def get_visa_requirements(engine: EvaluationEngine, visa_type: str, mode: str) -> Dict[str, Any]:
    """
    Requirements an applicant must meet for one visa and mode.

    Raises:
        InvalidInputError: unknown visa type or unsupported mode
    """
    context = engine.build_context(
        generate_evaluation_id(),
        {"visa_type": visa_type, "mode": mode, "data": {}},
    )
    rule_set = engine.rule_evaluator.get_rule_set(context.visa_type, context.mode)
    documents = engine.rule_evaluator.get_document_requirements(context)

    return {
        "visa_type": context.visa_type,
        "mode": context.mode,
        "name": context.visa_config.name,
        "category": context.visa_config.category,
        "base_requirements": context.visa_config.base_requirements.model_dump(),
        "required_fields": list(rule_set.required),
        "passing_score": context.mode_config.passing_score,
        "scoring_weights": dict(context.mode_config.scoring_weights),
        "required_documents": documents.model_dump(),
        "processing_time": estimate_processing_time(context.visa_config).model_dump(),
        "complexity": context.visa_config.complexity,
    }


def get_change_paths(provider: ConfigurationProvider, from_visa: str) -> List[Dict[str, Any]]:
    """Every configured change rule leaving `from_visa`."""
    return [
        {
            "to_visa": rule.to_visa,
            "allowed": rule.allowed,
            "difficulty": rule.difficulty,
            "success_rate": rule.success_rate,
            "conditions": rule.conditions.model_dump(exclude_none=True),
        }
        for rule in provider.get_change_paths_from(from_visa)
    ]


def list_supported_visa_types(provider: ConfigurationProvider) -> List[Dict[str, Any]]:
    visas = []
    for code in provider.get_supported_visa_types():
        config = provider.get_visa_config(code)
        visas.append({
            "code": config.code,
            "name": config.name,
            "category": config.category,
            "supported_modes": list(config.supported_modes),
            "complexity": config.complexity,
        })
    return visas
