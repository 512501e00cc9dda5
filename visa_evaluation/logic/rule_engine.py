"""
Rule Evaluator

Scores a submission against named rule sets: a generic template per application
mode, merged with an optional visa-specific override. Validators that raise are
recorded as warnings so one broken rule never aborts an evaluation.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Optional, Tuple

from .config_provider import ConfigurationProvider
from .constants import (
    ACCREDITED_INSTITUTION_TYPES,
    FIELD_ALIASES,
    MAX_ONLINE_RATIO,
    MAX_WORKPLACES,
    MIN_CHANGE_REASON_LENGTH,
    MIN_WEEKLY_HOURS,
    RULE_AGE_BANDS,
    RULE_DEGREE_POINTS,
    RULE_EXPERIENCE_POINTS_CAP,
    RULE_EXPERIENCE_POINTS_EACH,
    RULE_PUBLICATION_POINTS_CAP,
    RULE_PUBLICATION_POINTS_EACH,
    RULE_TOPIK_POINTS,
    Mode,
    mode_value,
)
from .contracts import (
    EvaluationContext,
    RequiredDocuments,
    RuleEntry,
    RuleOutcome,
    ValidationResult,
)
from .education import meets_education, normalize_education

logger = logging.getLogger(__name__)

# Validators receive the field value; checks look at the whole context
Validator = Callable[[Any, EvaluationContext], ValidationResult]
Check = Callable[[EvaluationContext], ValidationResult]

ACADEMIC_MINIMUM_POINTS = 60


@dataclass(frozen=True)
class RuleSet:
    """Required fields, per-field validators and cross-cutting checks."""
    required: Tuple[str, ...] = ()
    validators: Dict[str, Validator] = field(default_factory=dict)
    checks: Dict[str, Check] = field(default_factory=dict)

    def merge(self, override: Optional["RuleSet"]) -> "RuleSet":
        """New rule set with the override layered on top; neither input changes."""
        if override is None:
            return self
        required = self.required + tuple(f for f in override.required if f not in self.required)
        return RuleSet(
            required=required,
            validators={**self.validators, **override.validators},
            checks={**self.checks, **override.checks},
        )


def field_value(data: Dict[str, Any], name: str) -> Any:
    """Look up an applicant field, honouring accepted aliases."""
    if name in data:
        return data[name]
    for alias in FIELD_ALIASES.get(name, ()):
        if alias in data:
            return data[alias]
    return None


def is_present(value: Any) -> bool:
    return value is not None and value != ""


def _ok(message: str = "") -> ValidationResult:
    return ValidationResult(valid=True, message=message)


def _fail(message: str) -> ValidationResult:
    return ValidationResult(valid=False, message=message)


class RuleEvaluator:
    """
    Holds the generic per-mode rule templates plus visa overrides.

    Args:
        config_provider: Used by the change-path legality check
    """

    def __init__(self, config_provider: ConfigurationProvider):
        self.config_provider = config_provider
        self._templates: Dict[str, RuleSet] = {
            Mode.NEW.value: RuleSet(
                required=("education", "experience_years"),
                validators={
                    "education": self._validate_education,
                    "experience_years": self._validate_experience,
                    "criminal_record": self._validate_criminal_record,
                    "age": self._validate_age,
                },
            ),
            Mode.EXTENSION.value: RuleSet(
                required=("current_visa", "stay_history"),
                validators={
                    "current_visa": self._validate_current_visa,
                    "stay_history": self._validate_stay_history,
                    "activity_proof": self._validate_activity_proof,
                },
            ),
            Mode.CHANGE.value: RuleSet(
                required=("current_visa", "change_reason"),
                validators={
                    "current_visa": self._validate_current_visa,
                    "change_reason": self._validate_change_reason,
                    "new_qualifications": self._validate_new_qualifications,
                },
                checks={"change_path": self._check_change_path},
            ),
        }
        academic_duties = {
            "weekly_hours": self._validate_weekly_hours,
            "online_ratio": self._validate_online_ratio,
            "workplaces": self._validate_workplaces,
        }
        self._overrides: Dict[Tuple[str, str], RuleSet] = {
            ("E-1", Mode.NEW.value): RuleSet(
                required=("institution_type",),
                validators={"institution_type": self._validate_institution_type, **academic_duties},
                checks={"minimum_points": self._check_academic_points},
            ),
            ("E-1", Mode.EXTENSION.value): RuleSet(validators=dict(academic_duties)),
            ("E-7", Mode.NEW.value): RuleSet(checks={"minimum_points": self._check_declared_points}),
            ("F-2", Mode.NEW.value): RuleSet(checks={"minimum_points": self._check_declared_points}),
        }

    # -------------------------------------------------------------------------
    # Rule set lookup
    # -------------------------------------------------------------------------

    def get_rule_set(self, visa_type: str, mode: str) -> RuleSet:
        """Generic template for the mode merged with the visa's override, if any."""
        key = mode_value(mode)
        template = self._templates.get(key, RuleSet())
        return template.merge(self._overrides.get((visa_type, key)))

    def register_override(self, visa_type: str, mode: str, rule_set: RuleSet) -> None:
        """Install (or replace) a visa-specific rule set."""
        self._overrides[(visa_type, mode_value(mode))] = rule_set

    # -------------------------------------------------------------------------
    # Evaluation
    # -------------------------------------------------------------------------

    def apply_rules(self, context: EvaluationContext) -> RuleOutcome:
        """
        Score the applicant data against the merged rule set.

        Returns:
            RuleOutcome with passed/failed/warning entries and
            score = passed / (passed + failed) * 100 (0 when no rule ran)
        """
        rule_set = self.get_rule_set(context.visa_type, context.mode)
        data = context.data
        outcome = RuleOutcome()

        for name in rule_set.required:
            if not is_present(field_value(data, name)):
                outcome.failed.append(RuleEntry(
                    rule="required",
                    field=name,
                    message=f"Missing required field: {name}",
                ))

        for name, validator in rule_set.validators.items():
            value = field_value(data, name)
            if not is_present(value):
                continue
            self._record(outcome, name, name, lambda: validator(value, context), context)

        for name, check in rule_set.checks.items():
            self._record(outcome, name, None, lambda: check(context), context)

        ran = len(outcome.passed) + len(outcome.failed)
        outcome.score = round(len(outcome.passed) / ran * 100, 1) if ran else 0.0
        return outcome

    def _record(
        self,
        outcome: RuleOutcome,
        rule: str,
        field_name: Optional[str],
        run: Callable[[], ValidationResult],
        context: EvaluationContext,
    ) -> None:
        try:
            result = run()
        except Exception as e:
            logger.warning(f"⚠️ [{context.evaluation_id}] Rule '{rule}' raised: {e}")
            outcome.warnings.append(RuleEntry(
                rule=rule,
                field=field_name,
                message=f"Validation error: {e}",
            ))
            return

        entry = RuleEntry(rule=rule, field=field_name, message=result.message)
        if result.valid:
            outcome.passed.append(entry)
        else:
            outcome.failed.append(entry)

    def get_document_requirements(self, context: EvaluationContext) -> RequiredDocuments:
        """Mode-level documents plus the visa's special documents."""
        return RequiredDocuments(
            required=list(context.mode_config.required_documents),
            optional=list(context.mode_config.optional_documents),
            special=list(context.visa_config.special_documents),
        )

    # -------------------------------------------------------------------------
    # Generic validators
    # -------------------------------------------------------------------------

    def _validate_education(self, value: Any, context: EvaluationContext) -> ValidationResult:
        level = normalize_education(value)
        if level is None:
            return _fail(f"Unrecognized education level: {value}")
        required = context.visa_config.base_requirements.education
        if required and not meets_education(level, required):
            return _fail(f"Education {level} is below the required {required}")
        return _ok(f"Education {level} accepted")

    def _validate_experience(self, value: Any, context: EvaluationContext) -> ValidationResult:
        years = float(value)
        if years < 0:
            return _fail("Experience cannot be negative")
        required = context.visa_config.base_requirements.experience_years
        if required and years < required:
            return _fail(f"{years:g} years of experience, {required:g} required")
        return _ok(f"{years:g} years of experience")

    def _validate_criminal_record(self, value: Any, context: EvaluationContext) -> ValidationResult:
        if str(value).strip().lower() in ("clean", "none"):
            return _ok("No criminal record")
        return _fail("Criminal record reported")

    def _validate_age(self, value: Any, context: EvaluationContext) -> ValidationResult:
        age = int(value)
        requirements = context.visa_config.base_requirements
        if requirements.age_min is not None and age < requirements.age_min:
            return _fail(f"Minimum age is {requirements.age_min}")
        if requirements.age_max is not None and age > requirements.age_max:
            return _fail(f"Maximum age is {requirements.age_max}")
        return _ok("Age within range")

    def _validate_current_visa(self, value: Any, context: EvaluationContext) -> ValidationResult:
        status = str(value.get("status", "")).lower()
        if status != "valid":
            return _fail(f"Current visa status is '{status or 'unknown'}'")
        return _ok("Current visa is valid")

    def _validate_stay_history(self, value: Any, context: EvaluationContext) -> ValidationResult:
        violations = value.get("violations") or []
        if any(str(v.get("type", "")).upper() == "CRIMINAL_RECORD" for v in violations):
            return _fail("Stay history contains a criminal record")
        return _ok(f"{len(violations)} stay violation(s) on record")

    def _validate_activity_proof(self, value: Any, context: EvaluationContext) -> ValidationResult:
        return _ok("Activity proof supplied") if value else _fail("Activity proof is empty")

    def _validate_change_reason(self, value: Any, context: EvaluationContext) -> ValidationResult:
        if len(str(value).strip()) < MIN_CHANGE_REASON_LENGTH:
            return _fail("Change reason is too short")
        return _ok("Change reason provided")

    def _validate_new_qualifications(self, value: Any, context: EvaluationContext) -> ValidationResult:
        return _ok("New qualifications listed") if value else _fail("No new qualifications listed")

    def _check_change_path(self, context: EvaluationContext) -> ValidationResult:
        current = context.data.get("current_visa") or {}
        from_visa = current.get("type") if isinstance(current, dict) else None
        if not from_visa:
            return _fail("Current visa type is unknown")
        rule = self.config_provider.get_change_path_rule(from_visa, context.visa_type)
        if rule is None or not rule.allowed:
            return _fail(f"Change from {from_visa} to {context.visa_type} is not permitted")
        return _ok(f"Change from {from_visa} to {context.visa_type} is permitted")

    # -------------------------------------------------------------------------
    # Visa-specific validators
    # -------------------------------------------------------------------------

    def _validate_institution_type(self, value: Any, context: EvaluationContext) -> ValidationResult:
        if str(value).lower() not in ACCREDITED_INSTITUTION_TYPES:
            return _fail(f"Institution type '{value}' is not an accredited institution")
        return _ok("Accredited institution")

    def _validate_weekly_hours(self, value: Any, context: EvaluationContext) -> ValidationResult:
        hours = float(value)
        if hours < MIN_WEEKLY_HOURS:
            return _fail(f"At least {MIN_WEEKLY_HOURS} teaching hours per week required")
        return _ok(f"{hours:g} teaching hours per week")

    def _validate_online_ratio(self, value: Any, context: EvaluationContext) -> ValidationResult:
        ratio = float(value)
        if ratio > MAX_ONLINE_RATIO:
            return _fail(f"Online teaching may not exceed {MAX_ONLINE_RATIO:.0%}")
        return _ok("Online teaching share acceptable")

    def _validate_workplaces(self, value: Any, context: EvaluationContext) -> ValidationResult:
        count = len(value) if isinstance(value, (list, tuple)) else int(value)
        if count > MAX_WORKPLACES:
            return _fail(f"At most {MAX_WORKPLACES} concurrent workplaces allowed")
        return _ok(f"{count} concurrent workplace(s)")

    def _check_academic_points(self, context: EvaluationContext) -> ValidationResult:
        points = academic_rule_points(context.data)
        if points < ACADEMIC_MINIMUM_POINTS:
            return _fail(f"{points:g} points, {ACADEMIC_MINIMUM_POINTS} required")
        return _ok(f"{points:g} points")

    def _check_declared_points(self, context: EvaluationContext) -> ValidationResult:
        required = context.visa_config.base_requirements.points or 0
        points = float(context.data.get("points") or 0)
        if points < required:
            return _fail(f"{points:g} points, {required:g} required")
        return _ok(f"{points:g} points")


def academic_rule_points(data: Dict[str, Any]) -> float:
    """
    Simple points total used by the academic minimum-points rule.

    Degree, experience, publications, age and TOPIK level each contribute
    a capped amount.
    """
    points = RULE_DEGREE_POINTS.get(normalize_education(data.get("education")) or "", 0)

    experience = float(field_value(data, "experience_years") or 0)
    points += min(experience * RULE_EXPERIENCE_POINTS_EACH, RULE_EXPERIENCE_POINTS_CAP)

    publications = float(data.get("publications") or 0)
    points += min(publications * RULE_PUBLICATION_POINTS_EACH, RULE_PUBLICATION_POINTS_CAP)

    age = data.get("age")
    if age is not None:
        for upper, age_points in RULE_AGE_BANDS:
            if int(age) < upper:
                points += age_points
                break

    topik = data.get("topik_level")
    if topik is not None:
        points += RULE_TOPIK_POINTS.get(int(topik), 0)

    return points
