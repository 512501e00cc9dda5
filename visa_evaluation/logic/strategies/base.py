"""
Base Strategy

Shared helpers for the per-mode scoring strategies: eligibility and document
checks, document authenticity, required-document assembly and the common
recommendations. Its own `evaluate` is the generic fallback used when a
specialized strategy cannot be constructed.
"""

import logging
from typing import Any, Dict, List, Optional, Tuple

from ..aggregator import aggregate_scores
from ..config_provider import ConfigurationProvider
from ..constants import (
    AUTHENTICITY_SCORES,
    DEFAULT_COMPONENT_WEIGHT,
    FAMILY_DOCUMENTS,
    NATIONALITY_DOCUMENTS,
    NEAR_PASSING_MARGIN,
    PENDING_DOCUMENT_SCORE,
    Complexity,
    Priority,
)
from ..contracts import (
    BaseRequirements,
    EvaluationContext,
    Recommendation,
    RequiredDocuments,
    ScoreComponent,
    StrategyOutcome,
)
from ..education import meets_education
from ..rule_engine import RuleEvaluator, field_value

logger = logging.getLogger(__name__)


def document_map(data: Dict[str, Any]) -> Optional[Dict[str, Any]]:
    """
    Submitted documents keyed by name, or None when nothing was submitted.

    Accepts either a mapping of name -> entry or a plain list of names.
    """
    documents = data.get("documents")
    if documents is None:
        return None
    if isinstance(documents, (list, tuple)):
        return {str(name): True for name in documents}
    return dict(documents)


def is_verified(entry: Any) -> bool:
    if isinstance(entry, dict):
        return bool(entry.get("verified")) or str(entry.get("status", "")).lower() == "verified"
    if isinstance(entry, str):
        return entry.lower() == "verified"
    return False


class BaseStrategy:
    """
    Common scoring behaviour shared by every application mode.

    Args:
        config_provider: Source of visa and change-path records
        rule_evaluator: Rule sets applied to every submission
    """

    mode: Optional[str] = None

    def __init__(self, config_provider: ConfigurationProvider, rule_evaluator: RuleEvaluator):
        self.config_provider = config_provider
        self.rule_evaluator = rule_evaluator

    def evaluate(self, context: EvaluationContext) -> StrategyOutcome:
        """Generic evaluation: eligibility and documents weighted equally."""
        data = context.data
        requirements = context.visa_config.base_requirements

        eligibility_score, eligibility_details = self.validate_eligibility(data, requirements)
        required_documents = self.get_required_documents(context)
        document_score, document_details = self.validate_documents(data, required_documents.required)

        scores = {
            "eligibility": ScoreComponent(score=eligibility_score, weight=50, details=eligibility_details),
            "documents": ScoreComponent(score=document_score, weight=50, details=document_details),
        }
        final_score = self.aggregate_scores(scores)

        return StrategyOutcome(
            scores=scores,
            validations=self.rule_evaluator.apply_rules(context),
            recommendations=self.generate_recommendations(
                context,
                final_score,
                missing_documents=document_details.get("missing", []),
                unmet_requirements=eligibility_details.get("unmet", []),
            ),
            required_documents=required_documents,
            final_score=final_score,
        )

    # -------------------------------------------------------------------------
    # Shared helpers
    # -------------------------------------------------------------------------

    def weight(self, context: EvaluationContext, component: str) -> float:
        return context.mode_config.scoring_weights.get(component, DEFAULT_COMPONENT_WEIGHT)

    def aggregate_scores(self, scores: Dict[str, ScoreComponent]) -> float:
        return aggregate_scores(scores)

    def validate_eligibility(
        self,
        data: Dict[str, Any],
        requirements: BaseRequirements,
    ) -> Tuple[float, Dict[str, Any]]:
        """
        Check the visa's base requirements.

        Returns:
            (met / checked * 100, details with met and unmet lists);
            100 when the visa has no requirements
        """
        met: List[str] = []
        unmet: List[str] = []

        def record(ok: bool, label: str) -> None:
            (met if ok else unmet).append(label)

        if requirements.education:
            record(
                meets_education(data.get("education"), requirements.education),
                f"education: {requirements.education} or higher",
            )

        if requirements.experience_years:
            years = float(field_value(data, "experience_years") or 0)
            record(
                years >= requirements.experience_years,
                f"experience: {requirements.experience_years:g}+ years",
            )

        if requirements.age_min is not None or requirements.age_max is not None:
            age = data.get("age")
            in_range = age is not None and (
                (requirements.age_min is None or int(age) >= requirements.age_min)
                and (requirements.age_max is None or int(age) <= requirements.age_max)
            )
            record(in_range, f"age: {requirements.age_min or '-'} to {requirements.age_max or '-'}")

        if requirements.points:
            record(
                float(data.get("points") or 0) >= requirements.points,
                f"points: {requirements.points:g}+",
            )

        if requirements.stay_years:
            stay_years = float(data.get("total_stay_months") or 0) / 12
            record(
                stay_years >= requirements.stay_years,
                f"stay: {requirements.stay_years:g}+ years",
            )

        for flag in requirements.flags:
            record(bool(data.get(flag)), flag)

        checked = len(met) + len(unmet)
        score = round(len(met) / checked * 100, 1) if checked else 100.0
        return score, {"met": met, "unmet": unmet}

    def validate_documents(
        self,
        data: Dict[str, Any],
        required: List[str],
    ) -> Tuple[float, Dict[str, Any]]:
        """
        Fraction of required documents that are present and verified.

        When no documents have been submitted at all the check is pending
        and scores a neutral value.
        """
        documents = document_map(data)
        if documents is None:
            return PENDING_DOCUMENT_SCORE, {"pending": True, "missing": list(required), "unverified": []}

        missing = [name for name in required if not documents.get(name)]
        unverified = [name for name in required if documents.get(name) and not is_verified(documents[name])]
        valid = len(required) - len(missing) - len(unverified)
        score = round(valid / len(required) * 100, 1) if required else 0.0
        return score, {"pending": False, "missing": missing, "unverified": unverified}

    def evaluate_document_authenticity(self, data: Dict[str, Any]) -> Tuple[float, Dict[str, Any]]:
        """Average authenticity credit across submitted documents."""
        documents = document_map(data) or {}
        per_document: Dict[str, float] = {}
        untranslated = 0

        for name, entry in documents.items():
            if not entry:
                continue
            info = entry if isinstance(entry, dict) else {}
            if info.get("apostilled"):
                per_document[name] = AUTHENTICITY_SCORES["apostilled"]
            elif info.get("notarized"):
                per_document[name] = AUTHENTICITY_SCORES["notarized"]
            elif is_verified(entry):
                per_document[name] = AUTHENTICITY_SCORES["verified"]
            else:
                per_document[name] = AUTHENTICITY_SCORES["unverified"]

            if info.get("requires_translation") and not info.get("translation_certified"):
                untranslated += 1

        if not per_document:
            return PENDING_DOCUMENT_SCORE, {"documents": {}, "uncertified_translations": untranslated}

        score = round(sum(per_document.values()) / len(per_document), 1)
        return score, {"documents": per_document, "uncertified_translations": untranslated}

    def get_required_documents(self, context: EvaluationContext) -> RequiredDocuments:
        """Mode and visa documents plus those triggered by the applicant's situation."""
        documents = self.rule_evaluator.get_document_requirements(context)
        data = context.data

        conditional: List[str] = []
        if data.get("family_accompanying"):
            conditional.extend(FAMILY_DOCUMENTS)
        nationality = str(data.get("nationality") or "").upper()
        conditional.extend(NATIONALITY_DOCUMENTS.get(nationality, ()))

        return documents.model_copy(update={"conditional": conditional})

    def generate_recommendations(
        self,
        context: EvaluationContext,
        score: float,
        missing_documents: Optional[List[str]] = None,
        unmet_requirements: Optional[List[str]] = None,
    ) -> List[Recommendation]:
        recommendations: List[Recommendation] = []

        for name in missing_documents or []:
            recommendations.append(Recommendation(
                type="document",
                priority=Priority.HIGH.value,
                message=f"Submit the required document: {name}",
                action="upload-documents",
                details={"document": name},
            ))

        for requirement in unmet_requirements or []:
            recommendations.append(Recommendation(
                type="requirement",
                priority=Priority.HIGH.value,
                message=f"Requirement not met: {requirement}",
                details={"requirement": requirement},
            ))

        passing = context.mode_config.passing_score
        if passing - NEAR_PASSING_MARGIN <= score < passing:
            recommendations.append(Recommendation(
                type="score",
                priority=Priority.MEDIUM.value,
                message=f"Score is {passing - score:.1f} points below passing; small improvements may be enough",
                details={"score": score, "passing_score": passing},
            ))

        if context.visa_config.complexity in (Complexity.HIGH.value, Complexity.VERY_HIGH.value):
            recommendations.append(Recommendation(
                type="legal",
                priority=Priority.LOW.value,
                message="This visa category is complex; consider consulting an immigration lawyer",
                action="view-lawyers",
            ))

        return recommendations
