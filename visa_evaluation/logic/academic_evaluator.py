"""
Academic Detailed Evaluator

Multi-factor points evaluation for the professor (academic) visa category.

Branches by application mode:
- new: six capped factors normalized to 0-100, plus a growth-potential
  projection, an improvement roadmap and a raw-points minimum check
- extension: threshold checks (income floor, tax compliance, recent activity)
  with partial credit and no points accumulation
- change: the new-application evaluation plus a current-visa status check
"""

import math
from typing import Any, Dict, List, Optional, Tuple

from .constants import (
    ACADEMIC_FACTOR_CAPS,
    ACADEMIC_MAX_POINTS,
    ACADEMIC_PASSING_SCORE,
    ACTIVITY_PASSING_SCORE,
    AWARD_POINTS_CAP,
    AWARD_POINTS_EACH,
    DEFAULT_INSTITUTION_POINTS,
    DEFAULT_POSITION_GRADE,
    DEGREE_POINTS,
    DIFFICULTY_WEIGHTS,
    EDUCATION_UPGRADE_MONTHS,
    FIELD_WEIGHTS,
    INCOME_FLOOR_FRACTIONS,
    INSTITUTION_POINTS,
    LANGUAGE_ORDER,
    LANGUAGE_POINTS,
    LANGUAGE_UPGRADE_MONTHS,
    LOWEST_SCORE_LEVEL,
    MANUAL_MINIMUM_POINTS,
    MAX_ONLINE_RATIO,
    MAX_PRIORITY_ACTIONS,
    MAX_WORKPLACES,
    MIN_EXPERIENCE_YEARS,
    MIN_WEEKLY_HOURS,
    MONTHS_PER_PUBLICATION,
    POSITION_POINTS,
    PROJECT_POINTS_CAP,
    PROJECT_POINTS_EACH,
    PROMOTION_LADDER,
    PROMOTION_MONTHS,
    PUBLICATION_BANDS,
    ROADMAP_PHASES,
    SCORE_LEVELS,
    STRENGTH_RATIO,
    TAX_DELAY_PENALTY,
    TAX_PASSING_SCORE,
    TEACHING_EXPERIENCE_BANDS,
    TOPIK_POINTS,
    WEAKNESS_RATIO,
    Mode,
    mode_value,
)
from .contracts import (
    AcademicEvaluation,
    ExtensionReview,
    FactorScore,
    GrowthFactor,
    GrowthPotential,
    ImprovementRoadmap,
    ManualScoreCheck,
    RiskFactor,
    RoadmapPhase,
    ThresholdCheck,
)
from .education import education_ordinal, next_education_level, normalize_education
from .rule_engine import field_value

# Factors counted by the raw-points minimum check
MANUAL_CHECK_FACTORS = ("academic", "experience", "research")


def _band(value: float, bands: List[Tuple[float, float]]) -> float:
    """Points for the first band whose lower bound the value reaches."""
    for threshold, points in bands:
        if value >= threshold:
            return points
    return 0.0


def _next_threshold(value: float, bands: List[Tuple[float, float]]) -> Optional[float]:
    """Smallest band threshold strictly above the value."""
    above = [threshold for threshold, _ in bands if threshold > value]
    return min(above) if above else None


def _key(value: Any) -> str:
    return str(value or "").strip().lower().replace(" ", "_").replace("-", "_")


def _to_normalized(raw_points: float) -> float:
    return round(raw_points / ACADEMIC_MAX_POINTS * 100, 1)


class AcademicEvaluator:
    """
    Detailed evaluator for point-scored academic visas.

    Args:
        reference_income: National-income benchmark for income floors
        passing_score: Target score used by the improvement roadmap
    """

    def __init__(self, reference_income: float, passing_score: float = ACADEMIC_PASSING_SCORE):
        self.reference_income = reference_income
        self.passing_score = passing_score

    def evaluate(self, data: Dict[str, Any], mode: str) -> AcademicEvaluation:
        mode = mode_value(mode)
        if mode == Mode.EXTENSION.value:
            return self.evaluate_extension(data)
        if mode == Mode.CHANGE.value:
            return self.evaluate_change(data)
        return self.evaluate_new(data)

    # -------------------------------------------------------------------------
    # New application pipeline
    # -------------------------------------------------------------------------

    def evaluate_new(self, data: Dict[str, Any]) -> AcademicEvaluation:
        breakdown = self.score_factors(data)
        raw_points = round(sum(factor.points for factor in breakdown), 1)
        score = _to_normalized(raw_points)
        growth = self.assess_growth_potential(data, breakdown, score)

        return AcademicEvaluation(
            mode=Mode.NEW.value,
            score=score,
            raw_points=raw_points,
            max_points=ACADEMIC_MAX_POINTS,
            level=self.score_level(score),
            breakdown=breakdown,
            growth_potential=growth,
            improvement_roadmap=self.build_roadmap(score, breakdown, growth),
            manual_score_check=self.check_manual_minimum(breakdown),
            risk_factors=self.identify_risks(data),
        )

    def score_factors(self, data: Dict[str, Any]) -> List[FactorScore]:
        """The six capped factors, in a fixed order."""
        return [
            self._academic_factor(data),
            self._experience_factor(data),
            self._research_factor(data),
            self._language_factor(data),
            self._age_factor(data),
            self._institution_factor(data),
        ]

    def _capped(self, factor: str, points: float, explanation: str) -> FactorScore:
        cap = ACADEMIC_FACTOR_CAPS[factor]
        return FactorScore(
            factor=factor,
            points=round(min(points, cap), 1),
            max_points=cap,
            explanation=explanation,
        )

    def _field_weight(self, data: Dict[str, Any]) -> float:
        field = data.get("major_field")
        if not field:
            return 1.0
        return FIELD_WEIGHTS.get(_key(field), FIELD_WEIGHTS["other"])

    def _academic_points(self, level: Optional[str], data: Dict[str, Any]) -> float:
        return DEGREE_POINTS.get(level or "", 0) * self._field_weight(data)

    def _academic_factor(self, data: Dict[str, Any]) -> FactorScore:
        level = normalize_education(data.get("education"))
        points = self._academic_points(level, data)
        return self._capped("academic", points, f"Degree: {level or 'unknown'}")

    def _position_points(self, data: Dict[str, Any], position: Optional[str] = None) -> float:
        return POSITION_POINTS.get(position if position is not None else _key(data.get("position")), 0)

    def _experience_points(self, years: float, position_points: float) -> float:
        return _band(years, TEACHING_EXPERIENCE_BANDS) + position_points

    def _experience_factor(self, data: Dict[str, Any]) -> FactorScore:
        years = float(field_value(data, "experience_years") or 0)
        points = self._experience_points(years, self._position_points(data))
        return self._capped("experience", points, f"{years:g} years of teaching/professional experience")

    def _research_points(self, publications: float, data: Dict[str, Any]) -> float:
        projects = min(float(data.get("research_projects") or 0) * PROJECT_POINTS_EACH, PROJECT_POINTS_CAP)
        awards = min(float(data.get("academic_awards") or 0) * AWARD_POINTS_EACH, AWARD_POINTS_CAP)
        return _band(publications, PUBLICATION_BANDS) + projects + awards

    def _research_factor(self, data: Dict[str, Any]) -> FactorScore:
        publications = float(data.get("publications") or 0)
        points = self._research_points(publications, data)
        return self._capped("research", points, f"{publications:g} publications")

    def _language_points(self, data: Dict[str, Any]) -> float:
        named = LANGUAGE_POINTS.get(_key(data.get("language")), 0)
        topik = data.get("topik_level")
        numeric = TOPIK_POINTS.get(int(topik), 0) if topik is not None else 0
        return max(named, numeric)

    def _language_factor(self, data: Dict[str, Any]) -> FactorScore:
        label = data.get("language") or (f"TOPIK {data['topik_level']}" if data.get("topik_level") else "none")
        return self._capped("language", self._language_points(data), f"Language proficiency: {label}")

    def _age_factor(self, data: Dict[str, Any]) -> FactorScore:
        age = data.get("age")
        if age is None:
            return self._capped("age", 0, "Age not provided")
        age = int(age)
        if age < 30:
            points = 10
        elif age < 50:
            points = 15
        elif age < 60:
            points = 10
        else:
            points = 5
        return self._capped("age", points, f"Age {age}")

    def _institution_factor(self, data: Dict[str, Any]) -> FactorScore:
        institution = _key(data.get("institution_type"))
        if not institution:
            return self._capped("institution", 0, "No inviting institution")
        points = INSTITUTION_POINTS.get(institution, DEFAULT_INSTITUTION_POINTS)
        return self._capped("institution", points, f"Inviting institution: {institution}")

    @staticmethod
    def score_level(score: float) -> str:
        for threshold, level in SCORE_LEVELS:
            if score >= threshold:
                return level
        return LOWEST_SCORE_LEVEL

    def check_manual_minimum(self, breakdown: List[FactorScore]) -> ManualScoreCheck:
        """Raw core points must clear an absolute floor, whatever the normalized score."""
        actual = round(sum(f.points for f in breakdown if f.factor in MANUAL_CHECK_FACTORS), 1)
        passed = actual >= MANUAL_MINIMUM_POINTS
        if passed:
            message = f"Core qualification points {actual:g} meet the minimum of {MANUAL_MINIMUM_POINTS}"
        else:
            message = f"Core qualification points {actual:g} are below the minimum of {MANUAL_MINIMUM_POINTS}"
        return ManualScoreCheck(
            actual_score=actual,
            minimum_required=MANUAL_MINIMUM_POINTS,
            passed=passed,
            message=message,
        )

    def identify_risks(self, data: Dict[str, Any]) -> List[RiskFactor]:
        risks: List[RiskFactor] = []

        if education_ordinal(data.get("education")) <= education_ordinal("bachelor"):
            risks.append(RiskFactor(
                factor="low_degree",
                severity="high",
                description="A master's degree or higher is normally expected for teaching posts",
            ))

        if float(field_value(data, "experience_years") or 0) < MIN_EXPERIENCE_YEARS:
            risks.append(RiskFactor(
                factor="limited_experience",
                severity="moderate",
                description=f"Less than {MIN_EXPERIENCE_YEARS} years of teaching experience",
            ))

        if float(data.get("online_ratio") or 0) > MAX_ONLINE_RATIO:
            risks.append(RiskFactor(
                factor="online_teaching",
                severity="high",
                description="More than half of the teaching load is online",
            ))

        workplaces = data.get("workplaces") or 0
        count = len(workplaces) if isinstance(workplaces, (list, tuple)) else int(workplaces)
        if count > MAX_WORKPLACES:
            risks.append(RiskFactor(
                factor="multiple_workplaces",
                severity="moderate",
                description=f"Working at more than {MAX_WORKPLACES} institutions concurrently",
            ))

        return risks

    # -------------------------------------------------------------------------
    # Growth potential
    # -------------------------------------------------------------------------

    def assess_growth_potential(
        self,
        data: Dict[str, Any],
        breakdown: List[FactorScore],
        score: float,
    ) -> GrowthPotential:
        """
        Project achievable improvements per factor.

        Each candidate carries a gain in normalized points, the months needed
        and a difficulty tier. Priority = gain / difficulty weight; the top
        three become priority actions.
        """
        points = {factor.factor: factor.points for factor in breakdown}
        candidates = [
            self._education_upgrade(data, points["academic"]),
            self._experience_growth(data, points["experience"]),
            self._title_promotion(data, points["experience"]),
            self._publication_growth(data, points["research"]),
            self._language_upgrade(data, points["language"]),
        ]
        factors = [factor for factor in candidates if factor is not None and factor.potential_gain > 0]
        for factor in factors:
            factor.priority = round(factor.potential_gain / DIFFICULTY_WEIGHTS[factor.difficulty], 2)

        ranked = sorted(factors, key=lambda factor: factor.priority, reverse=True)
        total = round(min(sum(f.potential_gain for f in factors), 100 - score), 1)

        return GrowthPotential(
            factors=factors,
            priority_actions=ranked[:MAX_PRIORITY_ACTIONS],
            total_potential=total,
            projected_score=round(score + total, 1),
        )

    def _gain(self, factor: str, current: float, improved: float) -> float:
        improved = min(improved, ACADEMIC_FACTOR_CAPS[factor])
        return _to_normalized(max(0.0, improved - current))

    def _education_upgrade(self, data: Dict[str, Any], current: float) -> Optional[GrowthFactor]:
        level = normalize_education(data.get("education"))
        target = next_education_level(level)
        if target is None:
            return None
        return GrowthFactor(
            factor="education_upgrade",
            description=f"Complete a {target} degree",
            potential_gain=self._gain("academic", current, self._academic_points(target, data)),
            months=EDUCATION_UPGRADE_MONTHS.get(level or "high_school", 48),
            difficulty="high",
        )

    def _experience_growth(self, data: Dict[str, Any], current: float) -> Optional[GrowthFactor]:
        years = float(field_value(data, "experience_years") or 0)
        threshold = _next_threshold(years, TEACHING_EXPERIENCE_BANDS)
        if threshold is None:
            return None
        improved = self._experience_points(threshold, self._position_points(data))
        return GrowthFactor(
            factor="experience_gap",
            description=f"Reach {threshold:g} years of experience",
            potential_gain=self._gain("experience", current, improved),
            months=math.ceil((threshold - years) * 12),
            difficulty="medium",
        )

    def _title_promotion(self, data: Dict[str, Any], current: float) -> Optional[GrowthFactor]:
        position = _key(data.get("position"))
        target = PROMOTION_LADDER.get(position)
        if target is None:
            return None
        years = float(field_value(data, "experience_years") or 0)
        improved = self._experience_points(years, POSITION_POINTS[target])
        return GrowthFactor(
            factor="title_promotion",
            description=f"Promotion to {target.replace('_', ' ')}",
            potential_gain=self._gain("experience", current, improved),
            months=PROMOTION_MONTHS,
            difficulty="high",
        )

    def _publication_growth(self, data: Dict[str, Any], current: float) -> Optional[GrowthFactor]:
        publications = float(data.get("publications") or 0)
        threshold = _next_threshold(publications, PUBLICATION_BANDS)
        if threshold is None:
            return None
        return GrowthFactor(
            factor="publication_growth",
            description=f"Reach {threshold:g} publications",
            potential_gain=self._gain("research", current, self._research_points(threshold, data)),
            months=int((threshold - publications) * MONTHS_PER_PUBLICATION),
            difficulty="medium",
        )

    def _language_upgrade(self, data: Dict[str, Any], current: float) -> Optional[GrowthFactor]:
        level = _key(data.get("language"))
        if level in ("native", "advanced"):
            return None
        if level in LANGUAGE_ORDER:
            target = LANGUAGE_ORDER[LANGUAGE_ORDER.index(level) + 1]
        else:
            target = "intermediate"
        return GrowthFactor(
            factor="language_upgrade",
            description=f"Certify {target} language proficiency",
            potential_gain=self._gain("language", current, LANGUAGE_POINTS[target]),
            months=LANGUAGE_UPGRADE_MONTHS,
            difficulty="medium",
        )

    # -------------------------------------------------------------------------
    # Improvement roadmap
    # -------------------------------------------------------------------------

    def build_roadmap(
        self,
        score: float,
        breakdown: List[FactorScore],
        growth: GrowthPotential,
    ) -> ImprovementRoadmap:
        """Split the gap to the passing score into three time-boxed phases."""
        gap = round(max(0.0, self.passing_score - score), 1)
        phases: List[RoadmapPhase] = []

        if gap > 0:
            expected = score
            for index, (start, end, share, cap) in enumerate(ROADMAP_PHASES, start=1):
                target_gain = round(min(gap * share, cap), 1)
                expected = round(expected + target_gain, 1)
                phases.append(RoadmapPhase(
                    phase=index,
                    start_month=start,
                    end_month=end,
                    target_gain=target_gain,
                    expected_score=expected,
                    focus=[
                        factor.factor for factor in growth.factors
                        if (start < factor.months <= end) or (start == 0 and factor.months == 0)
                    ],
                ))

        return ImprovementRoadmap(
            current_score=score,
            target_score=self.passing_score,
            gap=gap,
            phases=phases,
            strengths=[f.factor for f in breakdown if f.ratio >= STRENGTH_RATIO],
            weaknesses=[f.factor for f in breakdown if f.ratio < WEAKNESS_RATIO],
            timeframe=self._timeframe(gap),
        )

    @staticmethod
    def _timeframe(gap: float) -> str:
        if gap <= 0:
            return "ready"
        if gap <= 10:
            return "0-3 months"
        if gap <= 25:
            return "3-6 months"
        return "6-12 months"

    # -------------------------------------------------------------------------
    # Extension pipeline
    # -------------------------------------------------------------------------

    def evaluate_extension(self, data: Dict[str, Any]) -> AcademicEvaluation:
        review = self.review_extension(data)
        return AcademicEvaluation(
            mode=Mode.EXTENSION.value,
            score=review.score,
            level=self.score_level(review.score),
            extension_review=review,
            risk_factors=self.identify_risks(data),
        )

    def review_extension(self, data: Dict[str, Any]) -> ExtensionReview:
        checks = [
            self.check_income(data),
            self.check_tax_compliance(data),
            self.check_recent_activity(data),
        ]
        return ExtensionReview(
            checks=checks,
            passed=all(check.passed for check in checks),
            score=round(sum(check.score for check in checks) / len(checks), 1),
        )

    def income_floor(self, position_grade: Optional[str]) -> float:
        fraction = INCOME_FLOOR_FRACTIONS.get(position_grade or DEFAULT_POSITION_GRADE)
        if fraction is None:
            fraction = INCOME_FLOOR_FRACTIONS[DEFAULT_POSITION_GRADE]
        return self.reference_income * fraction

    def check_income(self, data: Dict[str, Any]) -> ThresholdCheck:
        floor = self.income_floor(data.get("position_grade"))
        income = float(data.get("annual_income") or 0)
        passed = income >= floor
        return ThresholdCheck(
            name="income",
            passed=passed,
            score=round(min(100.0, income / floor * 100), 1) if floor else 100.0,
            actual=income,
            required=floor,
            message="Income meets the floor" if passed else "Income is below the floor for this position",
        )

    def check_tax_compliance(self, data: Dict[str, Any]) -> ThresholdCheck:
        tax = data.get("tax") or {}
        delays = int(tax.get("delays") or 0)
        if tax.get("unpaid"):
            return ThresholdCheck(
                name="tax",
                passed=False,
                score=0.0,
                actual=delays,
                message="Unpaid taxes on record",
            )
        score = float(max(0, 100 - TAX_DELAY_PENALTY * delays))
        passed = score >= TAX_PASSING_SCORE
        return ThresholdCheck(
            name="tax",
            passed=passed,
            score=score,
            actual=delays,
            required=TAX_PASSING_SCORE,
            message=f"{delays} late tax payment(s)",
        )

    def check_recent_activity(self, data: Dict[str, Any]) -> ThresholdCheck:
        recent = data.get("recent_activity") or {}
        courses = float(recent.get("courses_taught") or 0)
        hours = float(recent.get("weekly_hours") or data.get("weekly_hours") or 0)
        met = int(courses > 0) + int(hours >= MIN_WEEKLY_HOURS)
        score = {2: 100.0, 1: 50.0, 0: 0.0}[met]
        return ThresholdCheck(
            name="recent_activity",
            passed=score >= ACTIVITY_PASSING_SCORE,
            score=score,
            actual=float(met),
            required=2.0,
            message=f"{courses:g} course(s) taught, {hours:g} weekly hours",
        )

    # -------------------------------------------------------------------------
    # Change pipeline
    # -------------------------------------------------------------------------

    def evaluate_change(self, data: Dict[str, Any]) -> AcademicEvaluation:
        evaluation = self.evaluate_new(data)
        current = data.get("current_visa") or {}
        status = str(current.get("status", "")).lower() if isinstance(current, dict) else ""
        return evaluation.model_copy(update={
            "mode": Mode.CHANGE.value,
            "current_visa_valid": status == "valid",
        })
