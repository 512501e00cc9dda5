"""
Data Contracts for the Visa Evaluation Engine

Defines Pydantic models for configuration records, the per-call evaluation context,
strategy outcomes, workflow plans, and the caller-facing response envelope.
These contracts are the API boundary for the engine.
"""

from typing import Any, Dict, List, Optional, Tuple
from pydantic import BaseModel, Field

from .constants import Complexity, Mode


# =============================================================================
# CONFIGURATION RECORDS
# =============================================================================

class BaseRequirements(BaseModel):
    """Minimum requirements a visa places on every applicant."""
    education: Optional[str] = None
    experience_years: Optional[float] = None
    age_min: Optional[int] = None
    age_max: Optional[int] = None
    points: Optional[float] = None
    stay_years: Optional[float] = None
    flags: Tuple[str, ...] = ()  # boolean applicant fields that must be truthy

    class Config:
        frozen = True


class ProcessingDays(BaseModel):
    """Baseline processing window before complexity adjustment."""
    min: int = 7
    max: int = 30

    class Config:
        frozen = True


class VisaConfig(BaseModel):
    """
    Immutable configuration for one visa category.
    Loaded once at process start; reloading replaces the whole record.
    """
    code: str
    name: str
    category: str
    base_requirements: BaseRequirements = Field(default_factory=BaseRequirements)
    supported_modes: Tuple[Mode, ...] = (Mode.NEW, Mode.EXTENSION, Mode.CHANGE)
    complexity: Complexity = Complexity.MEDIUM
    processing_days: ProcessingDays = Field(default_factory=ProcessingDays)
    special_documents: Tuple[str, ...] = ()
    special_rules: Dict[str, Any] = Field(default_factory=dict)

    class Config:
        frozen = True
        use_enum_values = True

    def supports(self, mode: str) -> bool:
        return mode in self.supported_modes


class ApplicationModeConfig(BaseModel):
    """Passing score, component weights and document lists for one mode."""
    mode: Mode
    passing_score: float
    scoring_weights: Dict[str, float]
    required_documents: Tuple[str, ...] = ()
    optional_documents: Tuple[str, ...] = ()

    class Config:
        frozen = True
        use_enum_values = True


class ChangeConditions(BaseModel):
    """Structured conditions attached to a change path."""
    education: Optional[str] = None
    job_offer: bool = False
    salary_floor: Optional[float] = None
    salary_income_fraction: Optional[float] = None  # fraction of reference income
    min_stay_months: Optional[int] = None
    language_level: Optional[int] = None

    class Config:
        frozen = True


class ChangePathRule(BaseModel):
    """Whether and how one visa may be changed into another."""
    from_visa: str
    to_visa: str
    allowed: bool = True
    conditions: ChangeConditions = Field(default_factory=ChangeConditions)
    difficulty: str = "medium"
    success_rate: int = 70

    class Config:
        frozen = True


# =============================================================================
# EVALUATION INPUT
# =============================================================================

class EvaluationRequest(BaseModel):
    """One evaluation call: visa type, application mode and applicant data."""
    visa_type: str
    mode: str
    data: Dict[str, Any] = Field(default_factory=dict)


class EvaluationContext(BaseModel):
    """
    Fully-resolved inputs for one evaluation.
    Built fresh per call and never shared between calls.
    """
    evaluation_id: str
    visa_type: str
    mode: Mode
    visa_config: VisaConfig
    mode_config: ApplicationModeConfig
    data: Dict[str, Any]
    timestamp: str

    class Config:
        frozen = True
        use_enum_values = True


# =============================================================================
# STRATEGY OUTPUT
# =============================================================================

class ScoreComponent(BaseModel):
    """One named component of a final score (0-100) and its weight."""
    score: float = Field(ge=0.0, le=100.0)
    weight: float = Field(ge=0.0)
    details: Dict[str, Any] = Field(default_factory=dict)


class ValidationResult(BaseModel):
    """Return value of a single field validator."""
    valid: bool
    message: str = ""


class RuleEntry(BaseModel):
    """One rule outcome recorded by the rule evaluator."""
    rule: str
    field: Optional[str] = None
    message: str = ""


class RuleOutcome(BaseModel):
    """Aggregated rule-evaluation result."""
    passed: List[RuleEntry] = Field(default_factory=list)
    failed: List[RuleEntry] = Field(default_factory=list)
    warnings: List[RuleEntry] = Field(default_factory=list)
    score: float = 0.0


class Recommendation(BaseModel):
    """Actionable hint shown to the applicant."""
    type: str
    priority: str
    message: str
    action: Optional[str] = None
    details: Dict[str, Any] = Field(default_factory=dict)


class RequiredDocuments(BaseModel):
    """Documents the applicant must (or may) submit."""
    required: List[str] = Field(default_factory=list)
    optional: List[str] = Field(default_factory=list)
    special: List[str] = Field(default_factory=list)
    conditional: List[str] = Field(default_factory=list)


class AlternativePath(BaseModel):
    """Suggested route when a direct change is not allowed."""
    path: List[str]
    description: str
    estimated_time: str
    success_rate: Optional[int] = None


class ChangePathAssessment(BaseModel):
    """Legality of a requested visa change."""
    allowed: bool
    from_visa: Optional[str] = None
    to_visa: str
    reason: Optional[str] = None
    rule: Optional[ChangePathRule] = None
    alternatives: List[AlternativePath] = Field(default_factory=list)


class RiskFactor(BaseModel):
    """Risk identified during a detailed evaluation."""
    factor: str
    severity: str  # high/moderate/low
    description: str


# =============================================================================
# DETAILED ACADEMIC EVALUATION
# =============================================================================

class FactorScore(BaseModel):
    """One capped factor of the multi-factor points score."""
    factor: str
    points: float
    max_points: float
    explanation: str = ""

    @property
    def ratio(self) -> float:
        return self.points / self.max_points if self.max_points else 0.0


class GrowthFactor(BaseModel):
    """A factor the applicant could improve, with its projected effect."""
    factor: str
    description: str
    potential_gain: float  # normalized points
    months: int
    difficulty: str
    priority: float = 0.0


class GrowthPotential(BaseModel):
    factors: List[GrowthFactor] = Field(default_factory=list)
    priority_actions: List[GrowthFactor] = Field(default_factory=list)
    total_potential: float = 0.0
    projected_score: float = 0.0


class RoadmapPhase(BaseModel):
    phase: int
    start_month: int
    end_month: int
    target_gain: float
    expected_score: float
    focus: List[str] = Field(default_factory=list)


class ImprovementRoadmap(BaseModel):
    current_score: float
    target_score: float
    gap: float
    phases: List[RoadmapPhase] = Field(default_factory=list)
    strengths: List[str] = Field(default_factory=list)
    weaknesses: List[str] = Field(default_factory=list)
    timeframe: str = ""


class ManualScoreCheck(BaseModel):
    """Raw-points floor that applies regardless of the normalized score."""
    actual_score: float
    minimum_required: float
    passed: bool
    message: str


class ThresholdCheck(BaseModel):
    """Pass/fail check with partial credit, used by the extension review."""
    name: str
    passed: bool
    score: float
    actual: Optional[float] = None
    required: Optional[float] = None
    message: str = ""


class ExtensionReview(BaseModel):
    checks: List[ThresholdCheck] = Field(default_factory=list)
    passed: bool = True
    score: float = 0.0


class AcademicEvaluation(BaseModel):
    """Output of the detailed evaluator for point-scored visa categories."""
    mode: str
    score: float = 0.0
    raw_points: float = 0.0
    max_points: float = 0.0
    level: str = ""
    breakdown: List[FactorScore] = Field(default_factory=list)
    growth_potential: Optional[GrowthPotential] = None
    improvement_roadmap: Optional[ImprovementRoadmap] = None
    manual_score_check: Optional[ManualScoreCheck] = None
    extension_review: Optional[ExtensionReview] = None
    current_visa_valid: Optional[bool] = None
    risk_factors: List[RiskFactor] = Field(default_factory=list)


class ExtensionLimit(BaseModel):
    """Outcome of the extension-ceiling check."""
    allowed: bool
    reason: Optional[str] = None
    previous_extensions: int = 0
    max_extensions: int
    remaining_extensions: int = 0
    stay_years: float = 0.0
    max_stay_years: float
    remaining_years: float = 0.0


class StrategyOutcome(BaseModel):
    """Raw result of a scoring strategy, before orchestrator post-processing."""
    scores: Dict[str, ScoreComponent] = Field(default_factory=dict)
    validations: Optional[RuleOutcome] = None
    recommendations: List[Recommendation] = Field(default_factory=list)
    required_documents: RequiredDocuments = Field(default_factory=RequiredDocuments)
    final_score: float = 0.0
    blocked: bool = False
    block_reason: Optional[str] = None
    alternatives: List[AlternativePath] = Field(default_factory=list)
    academic_evaluation: Optional[AcademicEvaluation] = None
    extras: Dict[str, Any] = Field(default_factory=dict)


# =============================================================================
# WORKFLOW
# =============================================================================

class StepDefinition(BaseModel):
    name: str
    description: str
    actions: Tuple[str, ...] = ()
    estimated_days: int = 0
    required: bool = True

    class Config:
        frozen = True


class WorkflowTemplate(BaseModel):
    """Ordered steps plus the adjacency map of legal transitions."""
    name: str
    description: str
    steps: Tuple[str, ...]
    transitions: Dict[str, Tuple[str, ...]]

    class Config:
        frozen = True


class NextStep(BaseModel):
    step: str
    name: str
    required: bool
    estimated_days: int


class WorkflowPlan(BaseModel):
    current_step: str
    next_steps: List[NextStep] = Field(default_factory=list)
    template_name: Optional[str] = None
    estimated_days: int = 0
    actions: List[str] = Field(default_factory=list)
    description: str = ""
    error: Optional[str] = None


class WorkflowTransition(BaseModel):
    status: str  # proceed / paused / completed / error
    current_step: Optional[str] = None
    step_details: Optional[StepDefinition] = None
    next_possible_steps: List[str] = Field(default_factory=list)
    resume_from: Optional[str] = None
    message: str = ""


# =============================================================================
# RESPONSE ENVELOPE
# =============================================================================

class ProcessingTime(BaseModel):
    min: int
    max: int
    unit: str = "days"


class EvaluationResult(BaseModel):
    """Caller-facing result of a successful evaluation."""
    eligible: bool
    score: float = Field(ge=0.0, le=100.0)
    passing_score: float
    details: Dict[str, Any] = Field(default_factory=dict)
    recommendations: List[Recommendation] = Field(default_factory=list)
    required_documents: RequiredDocuments = Field(default_factory=RequiredDocuments)
    next_steps: WorkflowPlan
    processing_time: ProcessingTime
    complexity: str
    blocked: bool = False
    block_reason: Optional[str] = None

    # Surfaced from the detailed evaluator for point-scored categories
    score_breakdown: Optional[List[FactorScore]] = None
    growth_potential: Optional[GrowthPotential] = None
    improvement_roadmap: Optional[ImprovementRoadmap] = None
    manual_score_check: Optional[ManualScoreCheck] = None


class EnvelopeMetadata(BaseModel):
    visa_type: Optional[str] = None
    mode: Optional[str] = None
    timestamp: str
    version: str


class ErrorInfo(BaseModel):
    code: str
    message: str
    details: Dict[str, Any] = Field(default_factory=dict)


class EvaluationEnvelope(BaseModel):
    """Response envelope: either a result or a structured error, never both."""
    success: bool
    evaluation_id: str
    result: Optional[EvaluationResult] = None
    error: Optional[ErrorInfo] = None
    metadata: EnvelopeMetadata


class BatchItem(BaseModel):
    index: int
    input: Any = None
    success: bool
    evaluation_id: Optional[str] = None
    result: Optional[EvaluationResult] = None
    error: Optional[ErrorInfo] = None
    timestamp: str


class BatchResult(BaseModel):
    total: int
    successful: int
    failed: int
    results: List[BatchItem] = Field(default_factory=list)
