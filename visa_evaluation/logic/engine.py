"""
Visa Evaluation Engine

Main orchestrator that wires configuration, rules, strategies and the workflow
planner into a single pipeline. This is the primary entry point for evaluations.
"""

import logging
from typing import Any, Dict, Iterable, List, Optional, Type, Union

from .aggregator import compute_final_score
from .config_provider import ConfigurationProvider
from .constants import ErrorCode, Mode, mode_value
from .contracts import (
    BatchItem,
    BatchResult,
    EvaluationContext,
    EvaluationEnvelope,
    EvaluationRequest,
    WorkflowTransition,
)
from .errors import EvaluationError, InvalidInputError, StrategyUnavailableError
from .output_assembler import (
    assemble_failure,
    assemble_result,
    assemble_success,
    generate_evaluation_id,
    now_timestamp,
)
from .rule_engine import RuleEvaluator
from .strategies import FALLBACK_STRATEGY, STRATEGY_REGISTRY, BaseStrategy
from .workflow import WorkflowPlanner

logger = logging.getLogger(__name__)


class EvaluationEngine:
    """
    Orchestrates one evaluation from raw request to response envelope.

    Pipeline flow:
    1. Validation - reject unknown visa types, unsupported modes, malformed data
    2. Context - resolve the visa and mode records into one immutable context
    3. Strategy - dispatch to the scoring strategy registered for the mode
    4. Post-processing - final score, eligibility, workflow plan
    5. Output Assembly - build the success or failure envelope

    Every collaborator is built once and passed in; nothing is initialized lazily.
    """

    def __init__(
        self,
        config_provider: Optional[ConfigurationProvider] = None,
        rule_evaluator: Optional[RuleEvaluator] = None,
        workflow_planner: Optional[WorkflowPlanner] = None,
        strategy_registry: Optional[Dict[str, Type[BaseStrategy]]] = None,
    ):
        self.config_provider = config_provider or ConfigurationProvider.default()
        self.rule_evaluator = rule_evaluator or RuleEvaluator(self.config_provider)
        self.workflow_planner = workflow_planner or WorkflowPlanner()
        self.strategies = self._load_strategies(
            strategy_registry if strategy_registry is not None else STRATEGY_REGISTRY
        )

    def _load_strategies(self, registry: Dict[str, Type[BaseStrategy]]) -> Dict[str, BaseStrategy]:
        """Instantiate each registered strategy, substituting the generic one on failure."""
        strategies: Dict[str, BaseStrategy] = {}
        for mode, strategy_class in registry.items():
            try:
                strategies[mode_value(mode)] = strategy_class(self.config_provider, self.rule_evaluator)
            except Exception as exc:
                logger.warning(
                    f"⚠️ Strategy {strategy_class.__name__} for mode '{mode_value(mode)}' "
                    f"failed to initialize ({exc}); using {FALLBACK_STRATEGY.__name__}"
                )
                strategies[mode_value(mode)] = FALLBACK_STRATEGY(self.config_provider, self.rule_evaluator)
        return strategies

    def get_strategy(self, mode: str) -> BaseStrategy:
        strategy = self.strategies.get(mode_value(mode))
        if strategy is None:
            raise StrategyUnavailableError(mode_value(mode))
        return strategy

    # -------------------------------------------------------------------------
    # Evaluation
    # -------------------------------------------------------------------------

    def evaluate(self, request: Union[EvaluationRequest, Dict[str, Any]]) -> EvaluationEnvelope:
        """
        Evaluate one application.

        Args:
            request: EvaluationRequest or a dict with visa_type, mode and data

        Returns:
            EvaluationEnvelope; failures are returned as envelopes, never raised
        """
        evaluation_id = generate_evaluation_id()
        visa_type, mode = _request_keys(request)

        try:
            context = self.build_context(evaluation_id, request)
            logger.info(f"🛂 [{evaluation_id}] Evaluating {context.visa_type} ({context.mode})")

            strategy = self.get_strategy(context.mode)
            outcome = strategy.evaluate(context)

            # Post-processing
            if outcome.blocked:
                score = 0.0
            else:
                score = round(compute_final_score(outcome.scores), 1)
            eligible = not outcome.blocked and score >= context.mode_config.passing_score
            next_steps = self.workflow_planner.plan(eligible, context.visa_type, context.mode)

            result = assemble_result(context, outcome, score, eligible, next_steps)
            logger.info(
                f"✅ [{evaluation_id}] {context.visa_type} ({context.mode}) "
                f"score={score} eligible={eligible}"
                + (f" blocked: {outcome.block_reason}" if outcome.blocked else "")
            )
            return assemble_success(context, result)

        except InvalidInputError as exc:
            logger.warning(f"⚠️ [{evaluation_id}] Rejected input: {exc.message}")
            return assemble_failure(evaluation_id, exc.code, exc.message, exc.details, visa_type, mode)
        except EvaluationError as exc:
            logger.error(f"❌ [{evaluation_id}] Evaluation error: {exc.message}")
            return assemble_failure(evaluation_id, exc.code, exc.message, exc.details, visa_type, mode)
        except Exception as exc:
            logger.exception(f"❌ [{evaluation_id}] Evaluation failed: {exc}")
            return assemble_failure(
                evaluation_id,
                ErrorCode.EVALUATION_FAILED.value,
                f"Evaluation failed: {exc}",
                {"exception": type(exc).__name__},
                visa_type,
                mode,
            )

    def build_context(
        self,
        evaluation_id: str,
        request: Union[EvaluationRequest, Dict[str, Any]],
    ) -> EvaluationContext:
        """Validate the request and resolve it into a fresh, immutable context."""
        if isinstance(request, EvaluationRequest):
            request = request.model_dump()
        if not isinstance(request, dict):
            raise InvalidInputError(
                "Evaluation request must be an object",
                code=ErrorCode.INVALID_APPLICANT_DATA.value,
            )

        visa_type = request.get("visa_type")
        mode = request.get("mode")
        missing = [name for name, value in (("visa_type", visa_type), ("mode", mode)) if not value]
        if missing:
            raise InvalidInputError(
                f"Missing required field(s): {', '.join(missing)}",
                code=ErrorCode.MISSING_REQUIRED_FIELD.value,
                details={"fields": missing},
            )

        visa_config = self.config_provider.get_visa_config(visa_type) if isinstance(visa_type, str) else None
        if visa_config is None:
            raise InvalidInputError(
                f"Unknown visa type: {visa_type}",
                code=ErrorCode.INVALID_VISA_TYPE.value,
                details={
                    "visa_type": visa_type,
                    "supported": self.config_provider.get_supported_visa_types(),
                },
            )

        try:
            mode = Mode(mode_value(mode)).value
        except ValueError:
            raise InvalidInputError(
                f"Unknown application mode: {mode}",
                code=ErrorCode.INVALID_APPLICATION_TYPE.value,
                details={"mode": mode, "supported": [m.value for m in Mode]},
            )
        if not visa_config.supports(mode):
            raise InvalidInputError(
                f"{visa_type} does not support mode '{mode}'",
                code=ErrorCode.INVALID_APPLICATION_TYPE.value,
                details={"visa_type": visa_type, "mode": mode, "supported": list(visa_config.supported_modes)},
            )

        mode_config = self.config_provider.get_application_mode_config(mode)
        if mode_config is None:
            raise InvalidInputError(
                f"No configuration for application mode '{mode}'",
                code=ErrorCode.INVALID_APPLICATION_TYPE.value,
                details={"mode": mode},
            )

        data = request.get("data")
        if not isinstance(data, dict):
            raise InvalidInputError(
                "Applicant data must be an object",
                code=ErrorCode.INVALID_APPLICANT_DATA.value,
                details={"received": type(data).__name__},
            )

        return EvaluationContext(
            evaluation_id=evaluation_id,
            visa_type=visa_type,
            mode=mode,
            visa_config=visa_config,
            mode_config=mode_config,
            data=dict(data),
            timestamp=now_timestamp(),
        )

    def evaluate_batch(self, requests: Iterable[Any]) -> BatchResult:
        """
        Evaluate requests one after another.

        A failing item is recorded with its error; the remaining items still run.
        """
        items: List[BatchItem] = []
        for index, request in enumerate(requests):
            envelope = self.evaluate(request)
            items.append(BatchItem(
                index=index,
                input=request.model_dump() if isinstance(request, EvaluationRequest) else request,
                success=envelope.success,
                evaluation_id=envelope.evaluation_id,
                result=envelope.result,
                error=envelope.error,
                timestamp=envelope.metadata.timestamp,
            ))

        successful = sum(1 for item in items if item.success)
        logger.info(f"📦 Batch evaluated: {len(items)} total, {successful} ok, {len(items) - successful} failed")
        return BatchResult(
            total=len(items),
            successful=successful,
            failed=len(items) - successful,
            results=items,
        )

    # -------------------------------------------------------------------------
    # Workflow passthrough
    # -------------------------------------------------------------------------

    def advance_workflow(
        self,
        template_name: str,
        current_step: str,
        action: Optional[str] = None,
    ) -> WorkflowTransition:
        return self.workflow_planner.advance(template_name, current_step, action)

    def is_legal_transition(self, template_name: str, from_step: str, to_step: str) -> bool:
        return self.workflow_planner.is_legal_transition(template_name, from_step, to_step)


def _request_keys(request: Any):
    """Best-effort visa type and mode for failure metadata."""
    if isinstance(request, EvaluationRequest):
        return request.visa_type, request.mode
    if isinstance(request, dict):
        return request.get("visa_type"), request.get("mode")
    return None, None


def evaluate_visa(
    visa_type: str,
    mode: str,
    data: Dict[str, Any],
    engine: Optional[EvaluationEngine] = None,
) -> EvaluationEnvelope:
    """
    Convenience function to run one evaluation.

    Args:
        visa_type: Visa code, e.g. "E-7"
        mode: new, extension or change
        data: Applicant data
        engine: Optional engine; a default one is built otherwise

    Returns:
        EvaluationEnvelope
    """
    engine = engine or EvaluationEngine()
    return engine.evaluate({"visa_type": visa_type, "mode": mode, "data": data})
