"""
New Application Strategy

Scores a first-time application from three weighted components:
eligibility, documents (presence/verification blended with authenticity)
and expertise (a visa-specific formula, or the detailed academic evaluator
for point-scored categories).
"""

from typing import Any, Dict, List, Optional, Tuple

from ..academic_evaluator import AcademicEvaluator
from ..aggregator import clamp_score
from ..config_provider import ConfigurationProvider
from ..constants import (
    ACCREDITED_INSTITUTION_TYPES,
    GENERAL_EDUCATION_POINTS,
    POINT_SCORED_VISAS,
    PREPARATION_THRESHOLD,
    SPECIALIST_SALARY_FRACTION,
    UNACCREDITED_INSTITUTION_FACTOR,
    Mode,
    Priority,
)
from ..contracts import (
    AcademicEvaluation,
    EvaluationContext,
    Recommendation,
    ScoreComponent,
    StrategyOutcome,
)
from ..education import normalize_education
from ..rule_engine import RuleEvaluator, field_value
from .base import BaseStrategy


def _count(value: Any) -> float:
    """Length of a list, or the number itself."""
    if isinstance(value, (list, tuple, set)):
        return float(len(value))
    return float(value or 0)


class NewApplicationStrategy(BaseStrategy):
    """Strategy for first-time applications."""

    mode = Mode.NEW.value

    def __init__(self, config_provider: ConfigurationProvider, rule_evaluator: RuleEvaluator):
        super().__init__(config_provider, rule_evaluator)
        mode_config = config_provider.get_application_mode_config(Mode.NEW)
        self.academic_evaluator = AcademicEvaluator(
            reference_income=config_provider.reference_income,
            passing_score=mode_config.passing_score if mode_config else PREPARATION_THRESHOLD,
        )

    def evaluate(self, context: EvaluationContext) -> StrategyOutcome:
        data = context.data

        # Step 1: Eligibility
        eligibility_score, eligibility_details = self.validate_eligibility(
            data, context.visa_config.base_requirements
        )
        eligibility_score, eligibility_details = self._apply_institution_check(
            context, eligibility_score, eligibility_details
        )

        # Step 2: Documents
        required_documents = self.get_required_documents(context)
        checked_documents = required_documents.required + required_documents.special
        document_score, document_details = self.validate_documents(data, checked_documents)
        authenticity_score, authenticity_details = self.evaluate_document_authenticity(data)
        document_details = {
            **document_details,
            "validation_score": document_score,
            "authenticity_score": authenticity_score,
            "authenticity": authenticity_details,
        }
        documents_component = round((document_score + authenticity_score) / 2, 1)

        # Step 3: Expertise
        expertise_score, expertise_details, academic = self.evaluate_expertise(context)

        scores = {
            "eligibility": ScoreComponent(
                score=eligibility_score,
                weight=self.weight(context, "eligibility"),
                details=eligibility_details,
            ),
            "documents": ScoreComponent(
                score=documents_component,
                weight=self.weight(context, "documents"),
                details=document_details,
            ),
            "expertise": ScoreComponent(
                score=expertise_score,
                weight=self.weight(context, "expertise"),
                details=expertise_details,
            ),
        }
        final_score = self.aggregate_scores(scores)

        recommendations = self.generate_recommendations(
            context,
            final_score,
            missing_documents=document_details.get("missing", []),
            unmet_requirements=eligibility_details.get("unmet", []),
        )
        recommendations.extend(self._new_application_recommendations(context, final_score, academic))

        return StrategyOutcome(
            scores=scores,
            validations=self.rule_evaluator.apply_rules(context),
            recommendations=recommendations,
            required_documents=required_documents,
            final_score=final_score,
            academic_evaluation=academic,
        )

    def _apply_institution_check(
        self,
        context: EvaluationContext,
        score: float,
        details: Dict[str, Any],
    ) -> Tuple[float, Dict[str, Any]]:
        """Penalize a supplied but unaccredited inviting institution on academic visas."""
        institution = context.data.get("institution_type")
        if context.visa_type not in POINT_SCORED_VISAS or not institution:
            return score, details
        if str(institution).lower() in ACCREDITED_INSTITUTION_TYPES:
            return score, {**details, "met": details["met"] + ["accredited institution"]}
        return (
            round(score * UNACCREDITED_INSTITUTION_FACTOR, 1),
            {**details, "unmet": details["unmet"] + [f"accredited institution (got {institution})"]},
        )

    # -------------------------------------------------------------------------
    # Expertise formulas
    # -------------------------------------------------------------------------

    def evaluate_expertise(
        self,
        context: EvaluationContext,
    ) -> Tuple[float, Dict[str, Any], Optional[AcademicEvaluation]]:
        """
        Visa-specific expertise score on a 0-100 scale.

        Returns:
            (score, details, detailed academic evaluation if one was run)
        """
        data = context.data
        if context.visa_type in POINT_SCORED_VISAS:
            academic = self.academic_evaluator.evaluate(data, context.mode)
            return academic.score, {
                "method": "detailed",
                "raw_points": academic.raw_points,
                "max_points": academic.max_points,
                "level": academic.level,
            }, academic

        if context.visa_type == "E-2":
            score, details = self._teaching_expertise(data)
        elif context.visa_type == "E-7":
            score, details = self._specialist_expertise(data)
        else:
            score, details = self._general_expertise(data)
        return round(clamp_score(score), 1), details, None

    def _teaching_expertise(self, data: Dict[str, Any]) -> Tuple[float, Dict[str, Any]]:
        certificate = 40 if data.get("teaching_certificate") else 0
        major = 30 if data.get("relevant_major") else 0
        experience = min(float(field_value(data, "experience_years") or 0) * 5, 30)
        return certificate + major + experience, {
            "method": "teaching",
            "certificate": certificate,
            "relevant_major": major,
            "experience": experience,
        }

    def _specialist_expertise(self, data: Dict[str, Any]) -> Tuple[float, Dict[str, Any]]:
        certifications = 40 if _count(data.get("certifications")) > 0 else 0
        experience = min(float(field_value(data, "experience_years") or 0) * 8, 40)

        salary_floor = float(
            data.get("minimum_salary")
            or self.config_provider.reference_income * SPECIALIST_SALARY_FRACTION
        )
        salary = float(data.get("salary") or 0)
        ratio = salary / salary_floor if salary_floor else 0.0
        if ratio >= 1.5:
            salary_points = 20
        elif ratio >= 1.0:
            salary_points = 10
        else:
            salary_points = 0

        return certifications + experience + salary_points, {
            "method": "specialist",
            "certifications": certifications,
            "experience": experience,
            "salary_ratio": round(ratio, 2),
            "salary": salary_points,
        }

    def _general_expertise(self, data: Dict[str, Any]) -> Tuple[float, Dict[str, Any]]:
        experience = min(float(field_value(data, "experience_years") or 0) * 10, 50)
        education = GENERAL_EDUCATION_POINTS.get(normalize_education(data.get("education")) or "", 0)
        skills = min(_count(data.get("skills")) * 5, 20)
        return experience + education + skills, {
            "method": "general",
            "experience": experience,
            "education": education,
            "skills": skills,
        }

    # -------------------------------------------------------------------------
    # Recommendations
    # -------------------------------------------------------------------------

    def _new_application_recommendations(
        self,
        context: EvaluationContext,
        score: float,
        academic: Optional[AcademicEvaluation],
    ) -> List[Recommendation]:
        recommendations: List[Recommendation] = []

        if score < PREPARATION_THRESHOLD:
            recommendations.append(Recommendation(
                type="preparation",
                priority=Priority.MEDIUM.value,
                message="Strengthen your qualifications and documents before filing",
                action="view-suggestions",
            ))

        if context.data.get("interview_required"):
            recommendations.append(Recommendation(
                type="interview",
                priority=Priority.MEDIUM.value,
                message="Prepare for the immigration interview",
                action="schedule-visit",
            ))

        if academic is None:
            return recommendations

        if academic.manual_score_check and not academic.manual_score_check.passed:
            recommendations.append(Recommendation(
                type="requirement",
                priority=Priority.HIGH.value,
                message=academic.manual_score_check.message,
            ))

        for risk in academic.risk_factors:
            recommendations.append(Recommendation(
                type="risk",
                priority=Priority.HIGH.value if risk.severity == "high" else Priority.MEDIUM.value,
                message=risk.description,
                details={"factor": risk.factor},
            ))

        if academic.growth_potential:
            for action in academic.growth_potential.priority_actions:
                recommendations.append(Recommendation(
                    type="growth",
                    priority=Priority.LOW.value,
                    message=action.description,
                    details={
                        "factor": action.factor,
                        "potential_gain": action.potential_gain,
                        "months": action.months,
                        "difficulty": action.difficulty,
                    },
                ))

        return recommendations
