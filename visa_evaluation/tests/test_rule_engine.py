"""
Tests for the rule evaluator: required fields, validator isolation and rule-set merging.
"""

from visa_evaluation.logic.contracts import ValidationResult
from visa_evaluation.logic.rule_engine import RuleEvaluator, RuleSet, academic_rule_points


def _rules(outcome):
    return {(entry.rule, entry.field) for entry in outcome.failed}


def test_missing_required_field_is_a_failure(rule_evaluator, make_context):
    context = make_context("E-2", "new", {"education": "bachelor"})

    outcome = rule_evaluator.apply_rules(context)

    assert ("required", "experience_years") in _rules(outcome)
    assert any(entry.rule == "education" for entry in outcome.passed)


def test_experience_alias_satisfies_required_field(rule_evaluator, make_context):
    context = make_context("E-2", "new", {"education": "bachelor", "experience": 3})

    outcome = rule_evaluator.apply_rules(context)

    assert outcome.failed == []
    assert outcome.score == 100.0


def test_raising_validator_is_recorded_as_warning(rule_evaluator, make_context):
    # current_visa should be a mapping; a plain string breaks the validator
    context = make_context("E-2", "extension", {
        "current_visa": "E-2",
        "stay_history": {"violations": []},
    })

    outcome = rule_evaluator.apply_rules(context)

    assert [entry.rule for entry in outcome.warnings] == ["current_visa"]
    assert outcome.passed and not outcome.failed
    assert outcome.score == 100.0


def test_rule_score_is_passed_over_ran(rule_evaluator, make_context):
    context = make_context("E-2", "new", {
        "education": "high_school",
        "experience_years": 2,
        "criminal_record": "clean",
    })

    outcome = rule_evaluator.apply_rules(context)

    # education fails (below bachelor); experience and criminal record pass
    assert len(outcome.passed) == 2
    assert len(outcome.failed) == 1
    assert outcome.score == 66.7


def test_no_rules_scores_zero(provider, make_context):
    evaluator = RuleEvaluator(provider)
    evaluator._templates["new"] = RuleSet()

    outcome = evaluator.apply_rules(make_context("E-2", "new", {}))

    assert outcome.score == 0.0


def test_merge_layers_override_without_mutating_inputs():
    def passes(value, context):
        return ValidationResult(valid=True)

    base = RuleSet(required=("education",), validators={"education": passes})
    override = RuleSet(required=("education", "points"), validators={"points": passes})

    merged = base.merge(override)

    assert merged.required == ("education", "points")
    assert set(merged.validators) == {"education", "points"}
    assert base.required == ("education",)
    assert set(base.validators) == {"education"}
    assert set(override.validators) == {"points"}
    assert base.merge(None) is base


def test_visa_override_is_merged_into_template(rule_evaluator):
    rule_set = rule_evaluator.get_rule_set("E-1", "new")

    assert rule_set.required == ("education", "experience_years", "institution_type")
    assert "minimum_points" in rule_set.checks
    assert "minimum_points" not in rule_evaluator.get_rule_set("E-2", "new").checks


def test_change_path_check(rule_evaluator, make_context):
    legal = make_context("D-10", "change", {
        "current_visa": {"type": "D-2", "status": "valid"},
        "change_reason": "Graduated and looking for work",
    })
    illegal = make_context("E-7", "change", {
        "current_visa": {"type": "H-2", "status": "valid"},
        "change_reason": "Found a better job offer",
    })

    assert any(entry.rule == "change_path" for entry in rule_evaluator.apply_rules(legal).passed)
    assert ("change_path", None) in _rules(rule_evaluator.apply_rules(illegal))


def test_academic_rule_points():
    data = {"education": "doctorate", "experience": 10, "publications": 20, "age": 45, "topik_level": 5}
    # 40 degree + 30 experience (capped) + 30 publications (capped) + 10 age + 15 TOPIK
    assert academic_rule_points(data) == 125
    assert academic_rule_points({}) == 0


def test_registered_override_applies_to_its_visa_only(provider, make_context):
    evaluator = RuleEvaluator(provider)
    evaluator.register_override("E-2", "new", RuleSet(required=("teaching_certificate",)))
    data = {"education": "bachelor", "experience": 3}

    outcome = evaluator.apply_rules(make_context("E-2", "new", data))

    assert _rules(outcome) == {("required", "teaching_certificate")}
    assert evaluator.apply_rules(make_context("E-4", "new", data)).failed == []
