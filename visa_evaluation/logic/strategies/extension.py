"""
Extension Strategy

Scores a stay extension as absolute points out of 100:
- stay history (40): violations, tax and departure pattern
- performance (30): visa-type-specific activity tables
- contract continuity (20): remaining months, employer changes, gaps, salary trend, tenure
- document readiness (10): fixed checklist

An extension ceiling (count and cumulative stay) blocks the application
outright, whatever the points total.
"""

from datetime import date
from typing import Any, Dict, List, Optional, Tuple

from ..academic_evaluator import AcademicEvaluator
from ..aggregator import clamp_score, component_points, sum_points
from ..config_provider import ConfigurationProvider
from ..constants import (
    CONSISTENT_TAX_BONUS,
    CONTRACT_EXPIRY_WARNING_MONTHS,
    DEFAULT_EXTENSION_PENALTY,
    DEFAULT_MAX_EXTENSIONS,
    DEFAULT_MAX_STAY_YEARS,
    EMPLOYER_CHANGE_BANDS,
    EXTENSION_DOCUMENT_POINTS,
    EXTENSION_VIOLATION_PENALTIES,
    FREQUENT_DEPARTURE_PENALTY,
    GAP_DAY_BANDS,
    LONG_STAY_PER_DEPARTURE_DAYS,
    LOW_DEPARTURE_BONUS,
    LOW_PERFORMANCE_THRESHOLD,
    MAX_EXTENSIONS,
    MAX_STAY_YEARS,
    POINT_SCORED_VISAS,
    REMAINING_MONTHS_BANDS,
    SALARY_TREND_DELTAS,
    SHORT_STAY_PER_DEPARTURE_DAYS,
    SOCIAL_CONTRIBUTION_BONUS,
    TENURE_BANDS,
    Mode,
    Priority,
)
from ..contracts import (
    AcademicEvaluation,
    EvaluationContext,
    ExtensionLimit,
    Recommendation,
    ScoreComponent,
    StrategyOutcome,
)
from ..rule_engine import RuleEvaluator
from .base import BaseStrategy, document_map


def _band_delta(value: float, bands: List[Tuple[float, float]]) -> float:
    """Delta of the first band whose lower bound the value reaches."""
    for threshold, delta in bands:
        if value >= threshold:
            return delta
    return 0.0


def _parse_date(value: Any) -> Optional[date]:
    if value is None or value == "":
        return None
    if isinstance(value, date):
        return value
    return date.fromisoformat(str(value)[:10])


def employment_gap_days(history: List[Dict[str, Any]], today: Optional[date] = None) -> int:
    """
    Total days between consecutive employment periods.

    Entries carry `start_date` and `end_date` (ISO); an open end means
    the job is current.
    """
    today = today or date.today()
    periods = []
    for entry in history:
        start = _parse_date(entry.get("start_date"))
        if start is None:
            continue
        periods.append((start, _parse_date(entry.get("end_date")) or today))
    periods.sort()

    gap = 0
    for (_, previous_end), (next_start, _) in zip(periods, periods[1:]):
        gap += max(0, (next_start - previous_end).days)
    return gap


def salary_trend(salaries: List[Any]) -> str:
    """Direction of a salary series by counting rises against falls."""
    amounts = [
        float(item.get("amount", 0)) if isinstance(item, dict) else float(item)
        for item in salaries
    ]
    rises = sum(1 for a, b in zip(amounts, amounts[1:]) if b > a)
    falls = sum(1 for a, b in zip(amounts, amounts[1:]) if b < a)
    if rises > falls:
        return "increasing"
    if falls > rises:
        return "decreasing"
    return "stable"


class ExtensionStrategy(BaseStrategy):
    """Strategy for extending the current stay."""

    mode = Mode.EXTENSION.value

    def __init__(self, config_provider: ConfigurationProvider, rule_evaluator: RuleEvaluator):
        super().__init__(config_provider, rule_evaluator)
        self.academic_evaluator = AcademicEvaluator(reference_income=config_provider.reference_income)

    def evaluate(self, context: EvaluationContext) -> StrategyOutcome:
        data = context.data

        # Step 1: Extension ceiling
        limit = self.check_extension_limit(
            context.visa_type,
            int(data.get("previous_extensions") or 0),
            float(data.get("total_stay_months") or 0),
        )

        # Step 2: Score components as absolute points
        stay_score, stay_details = self.score_stay_history(data)
        performance_score, performance_details = self.score_performance(context.visa_type, data)
        continuity_score, continuity_details = self.score_contract_continuity(data)
        document_score, document_details = self.score_document_readiness(data)

        scores = {
            "stay_history": ScoreComponent(
                score=stay_score, weight=self.weight(context, "stay_history"), details=stay_details
            ),
            "performance": ScoreComponent(
                score=performance_score, weight=self.weight(context, "performance"), details=performance_details
            ),
            "continuity": ScoreComponent(
                score=continuity_score, weight=self.weight(context, "continuity"), details=continuity_details
            ),
            "documents": ScoreComponent(
                score=document_score, weight=self.weight(context, "documents"), details=document_details
            ),
        }
        for name, points in component_points(scores).items():
            scores[name].details["points"] = points

        final_score = sum_points(scores)
        blocked = not limit.allowed
        if blocked:
            final_score = 0.0

        # Step 3: Compliance review for point-scored categories
        academic: Optional[AcademicEvaluation] = None
        if context.visa_type in POINT_SCORED_VISAS:
            academic = self.academic_evaluator.evaluate(data, context.mode)

        recommendations = self.generate_recommendations(
            context,
            final_score,
            missing_documents=document_details["missing"],
        )
        recommendations.extend(self._extension_recommendations(data, limit, performance_score, academic))

        extras: Dict[str, Any] = {"extension_limit": limit.model_dump()}
        if academic is not None:
            extras["compliance_review"] = academic.extension_review.model_dump()

        return StrategyOutcome(
            scores=scores,
            validations=self.rule_evaluator.apply_rules(context),
            recommendations=recommendations,
            required_documents=self.get_required_documents(context),
            final_score=final_score,
            blocked=blocked,
            block_reason=limit.reason if blocked else None,
            academic_evaluation=academic,
            extras=extras,
        )

    # -------------------------------------------------------------------------
    # Extension ceiling
    # -------------------------------------------------------------------------

    def check_extension_limit(
        self,
        visa_type: str,
        previous_extensions: int,
        total_stay_months: float,
    ) -> ExtensionLimit:
        """
        Blocks when the extension count or the cumulative stay reaches the visa's maximum.
        """
        max_extensions = MAX_EXTENSIONS.get(visa_type, DEFAULT_MAX_EXTENSIONS)
        max_stay_years = MAX_STAY_YEARS.get(visa_type, DEFAULT_MAX_STAY_YEARS)
        exact_years = total_stay_months / 12
        stay_years = round(exact_years, 2)

        reason = None
        if previous_extensions >= max_extensions:
            reason = f"Maximum number of extensions reached ({previous_extensions}/{max_extensions})"
        elif exact_years >= max_stay_years:
            reason = f"Maximum cumulative stay reached ({stay_years:g}/{max_stay_years:g} years)"

        if reason:
            return ExtensionLimit(
                allowed=False,
                reason=reason,
                previous_extensions=previous_extensions,
                max_extensions=max_extensions,
                stay_years=stay_years,
                max_stay_years=max_stay_years,
            )

        return ExtensionLimit(
            allowed=True,
            previous_extensions=previous_extensions,
            max_extensions=max_extensions,
            remaining_extensions=max_extensions - previous_extensions,
            stay_years=stay_years,
            max_stay_years=max_stay_years,
            remaining_years=round(max_stay_years - exact_years, 2),
        )

    # -------------------------------------------------------------------------
    # Stay history
    # -------------------------------------------------------------------------

    def score_stay_history(self, data: Dict[str, Any]) -> Tuple[float, Dict[str, Any]]:
        history = data.get("stay_history") or {}
        score = 100.0
        penalties: List[Dict[str, Any]] = []

        for violation in history.get("violations") or []:
            kind = str(violation.get("type") if isinstance(violation, dict) else violation).upper()
            penalty = EXTENSION_VIOLATION_PENALTIES.get(kind, DEFAULT_EXTENSION_PENALTY)
            score -= penalty
            penalties.append({"type": kind, "penalty": penalty})

        bonuses: Dict[str, float] = {}
        if history.get("consistent_tax_payment"):
            bonuses["tax"] = CONSISTENT_TAX_BONUS
        if history.get("social_contribution"):
            bonuses["social_contribution"] = SOCIAL_CONTRIBUTION_BONUS

        departures = int(history.get("departures") or 0)
        stay_days = float(history.get("total_stay_days") or float(data.get("total_stay_months") or 0) * 30)
        if departures == 0:
            bonuses["departures"] = LOW_DEPARTURE_BONUS
        else:
            average = stay_days / departures
            if average >= LONG_STAY_PER_DEPARTURE_DAYS:
                bonuses["departures"] = LOW_DEPARTURE_BONUS
            elif average < SHORT_STAY_PER_DEPARTURE_DAYS:
                bonuses["departures"] = -FREQUENT_DEPARTURE_PENALTY

        score += sum(bonuses.values())
        return round(clamp_score(score), 1), {"violations": penalties, "adjustments": bonuses}

    # -------------------------------------------------------------------------
    # Performance
    # -------------------------------------------------------------------------

    def score_performance(self, visa_type: str, data: Dict[str, Any]) -> Tuple[float, Dict[str, Any]]:
        performance = data.get("performance") or {}
        scorers = {
            "E-1": self._academic_performance,
            "E-2": self._teaching_performance,
            "E-7": self._professional_performance,
            "D-2": self._student_performance,
        }
        scorer = scorers.get(visa_type, self._general_performance)
        score, details = scorer(performance)
        return round(clamp_score(score), 1), details

    def _academic_performance(self, perf: Dict[str, Any]) -> Tuple[float, Dict[str, Any]]:
        courses = float(perf.get("courses_taught") or 0)
        publications = float(perf.get("publications") or 0)
        supervised = float(perf.get("supervised_students") or 0)
        attendance = float(perf.get("attendance_rate") or 0)

        details = {
            "courses": _band_delta(courses, [(6, 40), (4, 30), (2, 20), (1, 10)]),
            "publications": _band_delta(publications, [(5, 30), (3, 25), (2, 20), (1, 15)]),
            "supervision": min(supervised * 3, 20),
            "attendance": _band_delta(attendance, [(0.95, 10), (0.9, 7), (0.8, 5)]),
        }
        score = sum(details.values())
        if perf.get("unauthorized_work"):
            score *= 0.5
            details["unauthorized_work"] = "halved"
        if perf.get("address_not_reported"):
            score -= 10
            details["address_not_reported"] = -10
        return score, details

    def _teaching_performance(self, perf: Dict[str, Any]) -> Tuple[float, Dict[str, Any]]:
        details = {
            "weekly_hours": _band_delta(float(perf.get("weekly_hours") or 0), [(15, 40), (10, 30), (6, 20)]),
            "student_evaluation": _band_delta(
                float(perf.get("student_evaluation") or 0), [(4.5, 30), (4.0, 20), (3.5, 10)]
            ),
            "attendance": _band_delta(float(perf.get("attendance_rate") or 0), [(0.95, 20), (0.9, 10)]),
            "extra_activities": 10 if perf.get("extra_activities") else 0,
        }
        return sum(details.values()), details

    def _professional_performance(self, perf: Dict[str, Any]) -> Tuple[float, Dict[str, Any]]:
        contribution = str(perf.get("contribution") or "").lower()
        details = {
            "projects": min(float(perf.get("projects_completed") or 0) * 10, 40),
            "contribution": {"high": 30, "medium": 20}.get(contribution, 0),
            "teamwork": _band_delta(float(perf.get("teamwork_score") or 0), [(4, 20), (3, 10)]),
            "new_certifications": 10 if perf.get("new_certifications") else 0,
        }
        return sum(details.values()), details

    def _student_performance(self, perf: Dict[str, Any]) -> Tuple[float, Dict[str, Any]]:
        details = {
            "gpa": _band_delta(float(perf.get("gpa") or 0), [(4.0, 40), (3.5, 30), (3.0, 20), (2.5, 10)]),
            "attendance": _band_delta(float(perf.get("attendance_rate") or 0), [(0.9, 30), (0.8, 20), (0.7, 10)]),
            "credits": _band_delta(float(perf.get("credit_ratio") or 0), [(0.9, 20), (0.7, 10)]),
            "topik": _band_delta(float(perf.get("topik_level") or 0), [(4, 10), (3, 5)]),
        }
        return sum(details.values()), details

    def _general_performance(self, perf: Dict[str, Any]) -> Tuple[float, Dict[str, Any]]:
        evaluation = str(perf.get("evaluation") or "").lower()
        details = {
            "base": 50,
            "attendance": 20 if float(perf.get("attendance_rate") or 0) >= 0.95 else 0,
            "evaluation": {"excellent": 30, "good": 20}.get(evaluation, 0),
        }
        return sum(details.values()), details

    # -------------------------------------------------------------------------
    # Contract continuity
    # -------------------------------------------------------------------------

    def score_contract_continuity(self, data: Dict[str, Any]) -> Tuple[float, Dict[str, Any]]:
        """
        Start from 100 and apply signed deltas for each continuity signal.

        Gap days, employer changes and salary trend may be supplied directly
        under `contract` or derived from `employment_history` / `salary_history`.
        """
        contract = data.get("contract") or {}
        history = data.get("employment_history") or []
        deltas: Dict[str, float] = {}

        remaining = contract.get("remaining_months")
        if remaining is not None:
            deltas["remaining_months"] = _band_delta(float(remaining), REMAINING_MONTHS_BANDS)

        changes = contract.get("employer_changes")
        if changes is None and history:
            employers = [entry.get("employer") for entry in history]
            changes = sum(1 for a, b in zip(employers, employers[1:]) if a != b)
        if changes is not None:
            deltas["employer_changes"] = _band_delta(int(changes), EMPLOYER_CHANGE_BANDS)

        gap_days = contract.get("gap_days")
        if gap_days is None and history:
            gap_days = employment_gap_days(history)
        if gap_days is not None:
            deltas["gap_days"] = _band_delta(int(gap_days), GAP_DAY_BANDS)

        trend = contract.get("salary_trend")
        if trend is None and data.get("salary_history"):
            trend = salary_trend(data["salary_history"])
        if trend is not None:
            deltas["salary_trend"] = SALARY_TREND_DELTAS.get(str(trend).lower(), 0)

        tenure = contract.get("tenure_months")
        if tenure is not None:
            deltas["tenure"] = _band_delta(float(tenure), TENURE_BANDS)

        score = clamp_score(100 + sum(deltas.values()))
        return round(score, 1), {"deltas": deltas, "salary_trend": trend}

    # -------------------------------------------------------------------------
    # Documents
    # -------------------------------------------------------------------------

    def score_document_readiness(self, data: Dict[str, Any]) -> Tuple[float, Dict[str, Any]]:
        documents = document_map(data) or {}
        present = [name for name in EXTENSION_DOCUMENT_POINTS if documents.get(name)]
        missing = [name for name in EXTENSION_DOCUMENT_POINTS if name not in present]
        score = sum(EXTENSION_DOCUMENT_POINTS[name] for name in present)
        return float(score), {"present": present, "missing": missing}

    # -------------------------------------------------------------------------
    # Recommendations
    # -------------------------------------------------------------------------

    def _extension_recommendations(
        self,
        data: Dict[str, Any],
        limit: ExtensionLimit,
        performance_score: float,
        academic: Optional[AcademicEvaluation],
    ) -> List[Recommendation]:
        recommendations: List[Recommendation] = []

        if not limit.allowed:
            recommendations.append(Recommendation(
                type="extension_limit",
                priority=Priority.CRITICAL.value,
                message=f"{limit.reason}; consider changing to another visa type",
                action="view-suggestions",
                details=limit.model_dump(),
            ))

        if performance_score < LOW_PERFORMANCE_THRESHOLD:
            recommendations.append(Recommendation(
                type="performance",
                priority=Priority.MEDIUM.value,
                message="Activity record is weak; gather evidence of your work during this stay",
                details={"performance_score": performance_score},
            ))

        remaining = (data.get("contract") or {}).get("remaining_months")
        if remaining is not None and float(remaining) < CONTRACT_EXPIRY_WARNING_MONTHS:
            recommendations.append(Recommendation(
                type="contract",
                priority=Priority.HIGH.value,
                message="Your contract expires soon; renew it before applying",
                details={"remaining_months": remaining},
            ))

        if academic is not None and academic.extension_review is not None:
            for check in academic.extension_review.checks:
                if not check.passed:
                    recommendations.append(Recommendation(
                        type="compliance",
                        priority=Priority.HIGH.value,
                        message=check.message,
                        details={"check": check.name, "score": check.score},
                    ))

        return recommendations
