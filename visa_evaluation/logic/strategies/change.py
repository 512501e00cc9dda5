"""
Change Strategy

Scores a change from the applicant's current visa to the requested one.
Legality is checked first; an illegal change is blocked with suggested
alternative routes and is not scored further. A legal change is scored
from five weighted components: changeability conditions, prior stay
history, new-visa requirements, reason validity and documents.
"""

from typing import Any, Dict, List, Optional, Tuple

from ..academic_evaluator import AcademicEvaluator
from ..aggregator import clamp_score
from ..classifier import classify_reason, reason_base_score
from ..config_provider import ConfigurationProvider
from ..constants import (
    CHANGE_CONDITION_PENALTIES,
    CHANGE_VIOLATION_PENALTIES,
    CLEAN_RECORD_BONUS,
    DEFAULT_CHANGE_PENALTY,
    EXIT_AND_REAPPLY_PATH,
    EXPIRING_VISA_DAYS,
    EXPIRING_VISA_PENALTY,
    EXPIRY_WARNING_DAYS,
    LOW_SUCCESS_RATE,
    MAX_INTERMEDIATE_ALTERNATIVES,
    PENDING_DOCUMENT_SCORE,
    POINT_SCORED_VISAS,
    SUPPORTING_DOCUMENT_BONUS,
    ErrorCode,
    Mode,
    Priority,
)
from ..contracts import (
    AcademicEvaluation,
    AlternativePath,
    ChangePathAssessment,
    ChangePathRule,
    EvaluationContext,
    Recommendation,
    ScoreComponent,
    StrategyOutcome,
)
from ..education import meets_education
from ..rule_engine import RuleEvaluator
from .base import BaseStrategy, document_map


def current_visa_of(data: Dict[str, Any]) -> Dict[str, Any]:
    current = data.get("current_visa") or {}
    return current if isinstance(current, dict) else {"type": str(current)}


class ChangeStrategy(BaseStrategy):
    """Strategy for changing status from one visa type to another."""

    mode = Mode.CHANGE.value

    def __init__(self, config_provider: ConfigurationProvider, rule_evaluator: RuleEvaluator):
        super().__init__(config_provider, rule_evaluator)
        self.academic_evaluator = AcademicEvaluator(reference_income=config_provider.reference_income)

    def evaluate(self, context: EvaluationContext) -> StrategyOutcome:
        data = context.data
        current = current_visa_of(data)

        # Step 1: Legality
        assessment = self.evaluate_change_path(current.get("type"), context.visa_type)
        if not assessment.allowed:
            return self._blocked_outcome(context, assessment)

        rule = assessment.rule

        # Step 2: Score components
        changeability, changeability_details = self.check_change_conditions(data, rule)
        stay_score, stay_details = self.score_stay_history(data)
        requirements_score, requirements_details, academic = self.score_new_requirements(context)
        reason_score, reason_details = self.score_reason(data)
        document_score, document_details = self.score_documents(context)

        scores = {
            "changeability": ScoreComponent(
                score=changeability, weight=self.weight(context, "changeability"), details=changeability_details
            ),
            "stay_history": ScoreComponent(
                score=stay_score, weight=self.weight(context, "stay_history"), details=stay_details
            ),
            "new_requirements": ScoreComponent(
                score=requirements_score, weight=self.weight(context, "new_requirements"), details=requirements_details
            ),
            "reason": ScoreComponent(
                score=reason_score, weight=self.weight(context, "reason"), details=reason_details
            ),
            "documents": ScoreComponent(
                score=document_score, weight=self.weight(context, "documents"), details=document_details
            ),
        }
        final_score = self.aggregate_scores(scores)

        recommendations = self.generate_recommendations(
            context,
            final_score,
            missing_documents=document_details.get("missing", []),
            unmet_requirements=requirements_details.get("unmet", []),
        )
        recommendations.extend(self._change_recommendations(current, rule, changeability_details))

        return StrategyOutcome(
            scores=scores,
            validations=self.rule_evaluator.apply_rules(context),
            recommendations=recommendations,
            required_documents=self.get_required_documents(context),
            final_score=final_score,
            academic_evaluation=academic,
            extras={"change_path": assessment.model_dump()},
        )

    # -------------------------------------------------------------------------
    # Legality and alternatives
    # -------------------------------------------------------------------------

    def evaluate_change_path(self, from_visa: Optional[str], to_visa: str) -> ChangePathAssessment:
        """
        Look up the change rule for (from_visa, to_visa).

        Returns:
            ChangePathAssessment; when the change is not allowed it always
            carries at least the exit-and-reapply alternative
        """
        if not from_visa:
            return ChangePathAssessment(
                allowed=False,
                to_visa=to_visa,
                reason="Current visa type is required to evaluate a change",
                alternatives=self.suggest_alternative_paths(None, to_visa),
            )

        rule = self.config_provider.get_change_path_rule(from_visa, to_visa)
        if rule is None or not rule.allowed:
            return ChangePathAssessment(
                allowed=False,
                from_visa=from_visa,
                to_visa=to_visa,
                reason=f"Change from {from_visa} to {to_visa} is not permitted",
                rule=rule,
                alternatives=self.suggest_alternative_paths(from_visa, to_visa),
            )

        return ChangePathAssessment(allowed=True, from_visa=from_visa, to_visa=to_visa, rule=rule)

    def suggest_alternative_paths(self, from_visa: Optional[str], to_visa: str) -> List[AlternativePath]:
        """Single-hop routes through an intermediate visa, then exit-and-reapply."""
        candidates: List[Tuple[int, str, AlternativePath]] = []

        if from_visa:
            for first in self.config_provider.get_change_paths_from(from_visa):
                middle = first.to_visa
                if not first.allowed or middle == to_visa:
                    continue
                second = self.config_provider.get_change_path_rule(middle, to_visa)
                if second is None or not second.allowed:
                    continue
                success_rate = round(first.success_rate * second.success_rate / 100)
                candidates.append((success_rate, middle, AlternativePath(
                    path=[from_visa, middle, to_visa],
                    description=f"Change to {middle} first, then to {to_visa}",
                    estimated_time="6-12 months",
                    success_rate=success_rate,
                )))

        candidates.sort(key=lambda item: (-item[0], item[1]))
        alternatives = [path for _, _, path in candidates[:MAX_INTERMEDIATE_ALTERNATIVES]]

        alternatives.append(AlternativePath(
            path=[EXIT_AND_REAPPLY_PATH, to_visa],
            description=f"Leave the country and apply for {to_visa} from abroad",
            estimated_time="1-3 months",
        ))
        return alternatives

    def _blocked_outcome(self, context: EvaluationContext, assessment: ChangePathAssessment) -> StrategyOutcome:
        recommendations = [
            Recommendation(
                type="change_not_allowed",
                priority=Priority.CRITICAL.value,
                message=assessment.reason or "This visa change is not permitted",
                details={"code": ErrorCode.CHANGE_NOT_ALLOWED.value},
            )
        ]
        for alternative in assessment.alternatives:
            recommendations.append(Recommendation(
                type="alternative",
                priority=Priority.HIGH.value,
                message=alternative.description,
                details=alternative.model_dump(),
            ))

        # Illegal pairs stop here; no rule validation or component scoring runs
        return StrategyOutcome(
            recommendations=recommendations,
            required_documents=self.get_required_documents(context),
            final_score=0.0,
            blocked=True,
            block_reason=assessment.reason,
            alternatives=assessment.alternatives,
            extras={"change_path": assessment.model_dump()},
        )

    # -------------------------------------------------------------------------
    # Components
    # -------------------------------------------------------------------------

    def check_change_conditions(self, data: Dict[str, Any], rule: ChangePathRule) -> Tuple[float, Dict[str, Any]]:
        """Start at 100 and subtract a fixed penalty per unmet condition."""
        conditions = rule.conditions
        unmet: List[str] = []

        if conditions.education and not meets_education(data.get("education"), conditions.education):
            unmet.append("education")

        if conditions.job_offer and not data.get("job_offer"):
            unmet.append("job_offer")

        salary_floor = conditions.salary_floor
        if salary_floor is None and conditions.salary_income_fraction:
            salary_floor = conditions.salary_income_fraction * self.config_provider.reference_income
        if salary_floor and float(data.get("salary") or 0) < salary_floor:
            unmet.append("salary")

        if conditions.min_stay_months:
            stay = float(data.get("stay_months") or data.get("total_stay_months") or 0)
            if stay < conditions.min_stay_months:
                unmet.append("stay_months")

        if conditions.language_level:
            level = int(data.get("language_level") or data.get("topik_level") or 0)
            if level < conditions.language_level:
                unmet.append("language_level")

        score = 100 - sum(CHANGE_CONDITION_PENALTIES[name] for name in unmet)
        return round(clamp_score(score), 1), {
            "unmet": unmet,
            "conditions": conditions.model_dump(),
            "salary_floor": salary_floor,
        }

    def score_stay_history(self, data: Dict[str, Any]) -> Tuple[float, Dict[str, Any]]:
        history = data.get("stay_history") or {}
        current = current_visa_of(data)
        score = 100.0
        adjustments: Dict[str, float] = {}

        expiry_days = current.get("expiry_days")
        if expiry_days is not None and int(expiry_days) < EXPIRING_VISA_DAYS:
            adjustments["expiring_visa"] = -EXPIRING_VISA_PENALTY

        violations = history.get("violations") or []
        for index, violation in enumerate(violations):
            kind = str(violation.get("type") if isinstance(violation, dict) else violation).upper()
            adjustments[f"{kind.lower()}_{index}"] = -CHANGE_VIOLATION_PENALTIES.get(kind, DEFAULT_CHANGE_PENALTY)
        if not violations:
            adjustments["clean_record"] = CLEAN_RECORD_BONUS

        score += sum(adjustments.values())
        return round(clamp_score(score), 1), {"adjustments": adjustments}

    def score_new_requirements(
        self,
        context: EvaluationContext,
    ) -> Tuple[float, Dict[str, Any], Optional[AcademicEvaluation]]:
        """Average of target-visa eligibility and a target-specific score."""
        data = context.data
        eligibility, eligibility_details = self.validate_eligibility(data, context.visa_config.base_requirements)

        academic: Optional[AcademicEvaluation] = None
        target = context.visa_type
        if target in POINT_SCORED_VISAS:
            academic = self.academic_evaluator.evaluate(data, context.mode)
            special, special_details = academic.score, {"method": "detailed", "level": academic.level}
        elif target == "E-7":
            special, special_details = self._specialist_requirements(data)
        elif target == "F-2":
            points = float(data.get("points") or 0)
            special = 100.0 if points >= 80 else 0.0
            special_details = {"points": points}
        else:
            special, special_details = 100.0, {}

        score = round(clamp_score((eligibility + special) / 2), 1)
        return score, {
            "eligibility": eligibility,
            "special": special,
            "special_details": special_details,
            **eligibility_details,
        }, academic

    def _specialist_requirements(self, data: Dict[str, Any]) -> Tuple[float, Dict[str, Any]]:
        score = 100.0
        details: Dict[str, Any] = {}
        relevance = data.get("major_relevance")
        if relevance is not None and float(relevance) < 80:
            score -= 20
            details["major_relevance"] = -20
        if data.get("employer_eligible") is False:
            score -= 40
            details["employer_eligible"] = -40
        return clamp_score(score), details

    def score_reason(self, data: Dict[str, Any]) -> Tuple[float, Dict[str, Any]]:
        reason = str(data.get("change_reason") or "").strip()
        if not reason:
            return 0.0, {"category": None}
        category = classify_reason(reason)
        score = reason_base_score(category)
        if data.get("supporting_documents"):
            score += SUPPORTING_DOCUMENT_BONUS
        return clamp_score(score), {
            "category": category,
            "supporting_documents": bool(data.get("supporting_documents")),
        }

    def score_documents(self, context: EvaluationContext) -> Tuple[float, Dict[str, Any]]:
        data = context.data
        required = list(context.mode_config.required_documents) + list(context.visa_config.special_documents)
        if data.get("current_employer"):
            required.append("release_letter")

        documents = document_map(data)
        if documents is None:
            return PENDING_DOCUMENT_SCORE, {"pending": True, "missing": required}

        missing = [name for name in required if not documents.get(name)]
        score = round((len(required) - len(missing)) / len(required) * 100, 1) if required else 100.0
        return score, {"pending": False, "missing": missing}

    # -------------------------------------------------------------------------
    # Recommendations
    # -------------------------------------------------------------------------

    def _change_recommendations(
        self,
        current: Dict[str, Any],
        rule: ChangePathRule,
        changeability_details: Dict[str, Any],
    ) -> List[Recommendation]:
        recommendations: List[Recommendation] = []

        for condition in changeability_details["unmet"]:
            recommendations.append(Recommendation(
                type="condition",
                priority=Priority.HIGH.value,
                message=f"Change condition not met: {condition.replace('_', ' ')}",
                details={"condition": condition},
            ))

        if rule.success_rate < LOW_SUCCESS_RATE:
            recommendations.append(Recommendation(
                type="success_rate",
                priority=Priority.MEDIUM.value,
                message=f"This change path has a low historical success rate ({rule.success_rate}%)",
                action="view-lawyers",
                details={"difficulty": rule.difficulty},
            ))

        expiry_days = current.get("expiry_days")
        if expiry_days is not None and int(expiry_days) < EXPIRY_WARNING_DAYS:
            recommendations.append(Recommendation(
                type="visa_expiry",
                priority=Priority.HIGH.value,
                message=f"Current visa expires in {int(expiry_days)} days; file the change promptly",
                details={"expiry_days": int(expiry_days)},
            ))

        return recommendations
