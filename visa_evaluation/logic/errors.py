"""
Evaluation Errors

Exceptions raised inside the engine. The orchestrator converts every one of them
into a failure envelope; none of these cross the public boundary.
"""

from typing import Any, Dict, Optional

from .constants import ErrorCode


class EvaluationError(Exception):
    """Base error carrying a stable code and structured details."""

    def __init__(
        self,
        message: str,
        code: str = ErrorCode.EVALUATION_FAILED.value,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.code = code
        self.message = message
        self.details = details or {}


class InvalidInputError(EvaluationError):
    """Request rejected before any scoring begins."""


class StrategyUnavailableError(EvaluationError):
    """No scoring strategy is registered for the requested mode."""

    def __init__(self, mode: str):
        super().__init__(
            f"No evaluation strategy registered for mode '{mode}'",
            code=ErrorCode.INVALID_APPLICATION_TYPE.value,
            details={"mode": mode},
        )
