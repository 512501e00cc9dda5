"""
Visa Evaluation API Routes

Exposes the evaluation engine via REST API under /visa.
"""

import logging
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from . import settings
from .logic.engine import EvaluationEngine
from .logic.errors import InvalidInputError
from .logic.runner import get_change_paths, get_visa_requirements, list_supported_visa_types

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/visa", tags=["visa"])


# =============================================================================
# REQUEST/RESPONSE SCHEMAS
# =============================================================================

class EvaluateRequest(BaseModel):
    """Request body for the evaluation endpoint."""
    visa_type: Optional[str] = Field(default=None, description="Visa code, e.g. 'E-7'")
    mode: Optional[str] = Field(default=None, description="Application mode: new, extension or change")
    data: Any = Field(
        default=None,
        description="Applicant data",
        examples=[{
            "education": "doctorate",
            "experience_years": 10,
            "publications": 20,
            "age": 45,
            "language_level": "advanced",
        }],
    )


class BatchEvaluateRequest(BaseModel):
    evaluations: List[Any] = Field(..., description="Evaluation requests, processed in order")


class WorkflowAdvanceRequest(BaseModel):
    template: str = Field(..., description="Workflow template name, e.g. 'eligible-path'")
    current_step: str = Field(..., description="Step the applicant is on")
    action: Optional[str] = Field(default=None, description="Chosen action, e.g. 'pay-later'")


def get_engine(request: Request) -> EvaluationEngine:
    """Engine built once at startup and stored on the application state."""
    return request.app.state.engine


# =============================================================================
# ENDPOINTS
# =============================================================================

@router.post("/evaluate", summary="Evaluate a visa application")
def evaluate(body: EvaluateRequest, engine: EvaluationEngine = Depends(get_engine)):
    """
    Evaluate one application.

    **Response:**
    - `success=true` with score, eligibility, recommendations and next steps
    - `success=false` (HTTP 400) with a stable error code
    """
    envelope = engine.evaluate(body.model_dump())
    content = envelope.model_dump(mode="json")
    if not envelope.success:
        return JSONResponse(status_code=400, content=content)
    return content


@router.post("/batch-evaluate", summary="Evaluate several applications")
def batch_evaluate(body: BatchEvaluateRequest, engine: EvaluationEngine = Depends(get_engine)):
    """Each item succeeds or fails on its own; one bad input never fails the batch."""
    return engine.evaluate_batch(body.evaluations).model_dump(mode="json")


@router.post("/workflow/advance", summary="Advance a workflow by one step")
def advance_workflow(body: WorkflowAdvanceRequest, engine: EvaluationEngine = Depends(get_engine)):
    transition = engine.advance_workflow(body.template, body.current_step, body.action)
    content = transition.model_dump(mode="json")
    if transition.status == "error":
        return JSONResponse(status_code=400, content=content)
    return content


@router.get("/supported-types", summary="List supported visa types")
def supported_types(engine: EvaluationEngine = Depends(get_engine)):
    visas = list_supported_visa_types(engine.config_provider)
    return {"visa_types": visas, "count": len(visas)}


@router.get("/requirements/{visa_type}/{mode}", summary="Requirements for a visa and mode")
def requirements(visa_type: str, mode: str, engine: EvaluationEngine = Depends(get_engine)):
    try:
        return get_visa_requirements(engine, visa_type, mode)
    except InvalidInputError as e:
        return JSONResponse(
            status_code=400,
            content={"error": {"code": e.code, "message": e.message, "details": e.details}},
        )


@router.get("/change-paths/{visa_type}", summary="Change paths leaving a visa")
def change_paths(visa_type: str, engine: EvaluationEngine = Depends(get_engine)):
    if engine.config_provider.get_visa_config(visa_type) is None:
        return JSONResponse(
            status_code=404,
            content={"error": {"code": "INVALID_VISA_TYPE", "message": f"Unknown visa type: {visa_type}"}},
        )
    paths: List[Dict[str, Any]] = get_change_paths(engine.config_provider, visa_type)
    return {"from_visa": visa_type, "paths": paths, "count": len(paths)}


# =============================================================================
# HEALTH CHECK
# =============================================================================

@router.get("/health", summary="Visa engine health check")
def health_check():
    """Check if the evaluation engine is operational."""
    return {"status": "ok", "engine": "visa-evaluation", "version": settings.ENGINE_VERSION}
