"""
Tests for the post-evaluation workflow state machine.
"""

import itertools

import pytest

from visa_evaluation.logic.workflow import (
    CONDITIONAL_REVIEW_PATH,
    ELIGIBLE_PATH,
    ERROR_STEP,
    INELIGIBLE_PATH,
    INITIAL_STEP,
    PAY_LATER,
    SKIP_LEGAL_MATCHING,
    STEP_DEFINITIONS,
    WORKFLOW_TEMPLATES,
    WorkflowPlanner,
)


@pytest.fixture
def planner():
    return WorkflowPlanner()


@pytest.mark.parametrize("eligible, visa_type, mode, expected", [
    (False, "E-1", "new", INELIGIBLE_PATH),
    (False, "E-7", "change", INELIGIBLE_PATH),
    (True, "E-1", "new", ELIGIBLE_PATH),
    (True, "E-2", "extension", ELIGIBLE_PATH),
    (True, "E-1", "change", CONDITIONAL_REVIEW_PATH),
    (True, "E-7", "new", CONDITIONAL_REVIEW_PATH),
    (True, "F-5", "new", CONDITIONAL_REVIEW_PATH),
])
def test_template_selection(planner, eligible, visa_type, mode, expected):
    assert planner.select_template(eligible, visa_type, mode) == expected


def test_every_template_starts_at_evaluation_complete():
    for template in WORKFLOW_TEMPLATES.values():
        assert template.steps[0] == INITIAL_STEP
        assert all(step in STEP_DEFINITIONS for step in template.steps)


@pytest.mark.parametrize("template_name, total_days", [
    (ELIGIBLE_PATH, 6),
    (INELIGIBLE_PATH, 0),
    (CONDITIONAL_REVIEW_PATH, 11),
])
def test_estimated_days_cover_the_whole_template(planner, template_name, total_days):
    plan = planner.plan_for_template(template_name)
    assert plan.estimated_days == total_days

    # the total does not shrink as the applicant moves forward
    later = planner.plan_for_template(template_name, WORKFLOW_TEMPLATES[template_name].steps[-1])
    assert later.estimated_days == total_days


def test_plan_for_eligible_applicant(planner):
    plan = planner.plan(True, "E-1", "new")

    assert plan.current_step == INITIAL_STEP
    assert plan.template_name == ELIGIBLE_PATH
    assert [step.step for step in plan.next_steps] == ["legal-matching", "payment-required"]
    assert plan.next_steps[0].required is False
    assert plan.actions == ["view-result", "download-report"]
    assert plan.error is None


def test_unknown_template_or_step_returns_error_state(planner):
    plan = planner.plan_for_template("no-such-path")
    assert plan.current_step == ERROR_STEP
    assert plan.error

    plan = planner.plan_for_template(ELIGIBLE_PATH, "reapplication-guide")
    assert plan.current_step == ERROR_STEP


def test_advance_takes_first_target(planner):
    transition = planner.advance(ELIGIBLE_PATH, INITIAL_STEP)

    assert transition.status == "proceed"
    assert transition.current_step == "legal-matching"
    assert transition.step_details.name == "Legal matching"
    assert transition.next_possible_steps == ["payment-required"]


def test_advance_skip_legal_matching(planner):
    transition = planner.advance(ELIGIBLE_PATH, INITIAL_STEP, SKIP_LEGAL_MATCHING)

    assert transition.status == "proceed"
    assert transition.current_step == "payment-required"


def test_advance_pay_later_pauses(planner):
    transition = planner.advance(ELIGIBLE_PATH, "payment-required", PAY_LATER)

    assert transition.status == "paused"
    assert transition.resume_from == "payment-required"
    assert transition.current_step == "payment-required"


def test_advance_from_terminal_step_completes(planner):
    transition = planner.advance(INELIGIBLE_PATH, "reapplication-guide")
    assert transition.status == "completed"


def test_advance_with_unknown_step_is_an_error(planner):
    transition = planner.advance(ELIGIBLE_PATH, "no-such-step")

    assert transition.status == "error"
    assert transition.current_step == ERROR_STEP


def test_is_legal_transition_matches_adjacency(planner):
    for name, template in WORKFLOW_TEMPLATES.items():
        for source, target in itertools.product(template.steps, repeat=2):
            expected = target in template.transitions.get(source, ())
            assert planner.is_legal_transition(name, source, target) is expected


def test_steps_from_another_template_are_never_legal(planner):
    assert not planner.is_legal_transition(ELIGIBLE_PATH, INITIAL_STEP, "improvement-suggestions")
    assert not planner.is_legal_transition(INELIGIBLE_PATH, INITIAL_STEP, "legal-matching")
    assert not planner.is_legal_transition(CONDITIONAL_REVIEW_PATH, "condition-review", "final-review")
    assert not planner.is_legal_transition("no-such-path", INITIAL_STEP, "legal-matching")


def test_required_actions_drop_skip_and_defer(planner):
    assert planner.required_actions("legal-matching") == ["view-lawyers", "select-lawyer"]
    assert planner.required_actions("payment-required") == ["pay-now"]
    assert planner.required_actions("no-such-step") == []
