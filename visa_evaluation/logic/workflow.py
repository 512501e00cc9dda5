"""
Workflow Planner

Static finite-state machine describing what an applicant does after an evaluation.
Every template starts at `evaluation-complete`; terminal steps are template-specific.
Unknown templates or steps produce an explicit `error` pseudo-state instead of raising.
"""

import logging
from typing import Dict, List, Optional

from .constants import CONDITIONAL_REVIEW_VISAS, ErrorCode, Mode, mode_value
from .contracts import NextStep, StepDefinition, WorkflowPlan, WorkflowTemplate, WorkflowTransition

logger = logging.getLogger(__name__)

INITIAL_STEP = "evaluation-complete"
ERROR_STEP = "error"

ELIGIBLE_PATH = "eligible-path"
INELIGIBLE_PATH = "ineligible-path"
CONDITIONAL_REVIEW_PATH = "conditional-review-path"

SKIP_LEGAL_MATCHING = "skip-legal-matching"
PAY_LATER = "pay-later"


# =============================================================================
# STEP DEFINITIONS
# =============================================================================

STEP_DEFINITIONS: Dict[str, StepDefinition] = {
    "evaluation-complete": StepDefinition(
        name="Evaluation complete",
        description="Review your evaluation result",
        actions=("view-result", "download-report"),
        estimated_days=0,
    ),
    "legal-matching": StepDefinition(
        name="Legal matching",
        description="Match with an immigration lawyer",
        actions=("view-lawyers", "select-lawyer", SKIP_LEGAL_MATCHING),
        estimated_days=1,
        required=False,
    ),
    "payment-required": StepDefinition(
        name="Payment",
        description="Pay the application service fee",
        actions=("pay-now", PAY_LATER),
        estimated_days=0,
    ),
    "document-submission": StepDefinition(
        name="Document submission",
        description="Upload the required documents",
        actions=("upload-documents", "check-requirements"),
        estimated_days=3,
    ),
    "final-review": StepDefinition(
        name="Final review",
        description="Review the complete application",
        actions=("review-application", "edit-application"),
        estimated_days=1,
    ),
    "application-submission": StepDefinition(
        name="Application submission",
        description="Submit the application to the immigration office",
        actions=("submit-application", "schedule-visit"),
        estimated_days=1,
    ),
    "improvement-suggestions": StepDefinition(
        name="Improvement suggestions",
        description="See what would raise your score",
        actions=("view-suggestions", "consult-expert"),
        estimated_days=0,
    ),
    "reapplication-guide": StepDefinition(
        name="Reapplication guide",
        description="Plan a future reapplication",
        actions=("save-for-later", "set-reminder"),
        estimated_days=0,
    ),
    "condition-review": StepDefinition(
        name="Condition review",
        description="Review the conditions attached to this application",
        actions=("review-conditions", "consult-expert"),
        estimated_days=2,
    ),
    "additional-documents": StepDefinition(
        name="Additional documents",
        description="Submit documents proving the conditions are met",
        actions=("upload-documents", "request-extension"),
        estimated_days=5,
    ),
    "re-evaluation": StepDefinition(
        name="Re-evaluation",
        description="Re-run the evaluation with the new evidence",
        actions=("request-re-evaluation",),
        estimated_days=3,
    ),
    "proceed-or-reject": StepDefinition(
        name="Proceed or reject",
        description="Decide whether to proceed with the application",
        actions=("proceed-application", "withdraw-application"),
        estimated_days=1,
    ),
}


# =============================================================================
# TEMPLATES
# =============================================================================

WORKFLOW_TEMPLATES: Dict[str, WorkflowTemplate] = {
    ELIGIBLE_PATH: WorkflowTemplate(
        name=ELIGIBLE_PATH,
        description="Eligible applicants proceed to application",
        steps=(
            "evaluation-complete",
            "legal-matching",
            "payment-required",
            "document-submission",
            "final-review",
            "application-submission",
        ),
        transitions={
            "evaluation-complete": ("legal-matching", "payment-required"),
            "legal-matching": ("payment-required",),
            "payment-required": ("document-submission",),
            "document-submission": ("final-review",),
            "final-review": ("application-submission",),
        },
    ),
    INELIGIBLE_PATH: WorkflowTemplate(
        name=INELIGIBLE_PATH,
        description="Ineligible applicants get improvement guidance",
        steps=("evaluation-complete", "improvement-suggestions", "reapplication-guide"),
        transitions={
            "evaluation-complete": ("improvement-suggestions",),
            "improvement-suggestions": ("reapplication-guide",),
        },
    ),
    CONDITIONAL_REVIEW_PATH: WorkflowTemplate(
        name=CONDITIONAL_REVIEW_PATH,
        description="Eligible subject to an additional review of conditions",
        steps=(
            "evaluation-complete",
            "condition-review",
            "additional-documents",
            "re-evaluation",
            "proceed-or-reject",
        ),
        transitions={
            "evaluation-complete": ("condition-review",),
            "condition-review": ("additional-documents",),
            "additional-documents": ("re-evaluation",),
            "re-evaluation": ("proceed-or-reject",),
        },
    ),
}


class WorkflowPlanner:
    """Selects a workflow template and walks its transitions."""

    def __init__(
        self,
        templates: Optional[Dict[str, WorkflowTemplate]] = None,
        steps: Optional[Dict[str, StepDefinition]] = None,
    ):
        self.templates = templates if templates is not None else WORKFLOW_TEMPLATES
        self.steps = steps if steps is not None else STEP_DEFINITIONS

    def select_template(self, eligible: bool, visa_type: str, mode: str) -> str:
        if not eligible:
            return INELIGIBLE_PATH
        if mode_value(mode) == Mode.CHANGE.value or visa_type in CONDITIONAL_REVIEW_VISAS:
            return CONDITIONAL_REVIEW_PATH
        return ELIGIBLE_PATH

    def plan(self, eligible: bool, visa_type: str, mode: str) -> WorkflowPlan:
        """
        Build the next-steps bundle for an evaluation outcome.

        Returns:
            WorkflowPlan positioned at the template's initial step. `estimated_days`
            covers every step of the chosen template, not only the remaining ones.
        """
        return self.plan_for_template(self.select_template(eligible, visa_type, mode))

    def plan_for_template(self, template_name: str, current_step: str = INITIAL_STEP) -> WorkflowPlan:
        template = self.templates.get(template_name)
        if template is None:
            return self._error_plan(f"Unknown workflow template: {template_name}")
        if current_step not in template.steps or current_step not in self.steps:
            return self._error_plan(f"Unknown step '{current_step}' in {template_name}")

        next_steps: List[NextStep] = []
        for target in template.transitions.get(current_step, ()):
            definition = self.steps.get(target)
            if definition is None:
                return self._error_plan(f"Step '{target}' has no definition")
            next_steps.append(NextStep(
                step=target,
                name=definition.name,
                required=definition.required,
                estimated_days=definition.estimated_days,
            ))

        missing = [step for step in template.steps if step not in self.steps]
        if missing:
            return self._error_plan(f"Steps without definition: {', '.join(missing)}")

        current = self.steps[current_step]
        return WorkflowPlan(
            current_step=current_step,
            next_steps=next_steps,
            template_name=template_name,
            estimated_days=sum(self.steps[step].estimated_days for step in template.steps),
            actions=list(current.actions),
            description=current.description,
        )

    def advance(self, template_name: str, current_step: str, action: Optional[str] = None) -> WorkflowTransition:
        """
        Apply one transition from the current step.

        A skip action removes `legal-matching` from the candidates, a pay-later
        action pauses instead of moving, and otherwise the first target is taken.
        """
        template = self.templates.get(template_name)
        if template is None:
            return self._error_transition(f"Unknown workflow template: {template_name}")
        if current_step not in template.steps:
            return self._error_transition(f"Unknown step '{current_step}' in {template_name}")

        if action == PAY_LATER:
            return WorkflowTransition(
                status="paused",
                current_step=current_step,
                resume_from="payment-required",
                message="Payment deferred; resume when ready",
            )

        candidates = list(template.transitions.get(current_step, ()))
        if action == SKIP_LEGAL_MATCHING:
            candidates = [step for step in candidates if step != "legal-matching"]

        if not candidates:
            return WorkflowTransition(
                status="completed",
                current_step=current_step,
                message="Workflow complete",
            )

        next_step = candidates[0]
        definition = self.steps.get(next_step)
        if definition is None:
            return self._error_transition(f"Step '{next_step}' has no definition")

        return WorkflowTransition(
            status="proceed",
            current_step=next_step,
            step_details=definition,
            next_possible_steps=list(template.transitions.get(next_step, ())),
        )

    def is_legal_transition(self, template_name: str, from_step: str, to_step: str) -> bool:
        template = self.templates.get(template_name)
        if template is None:
            return False
        return to_step in template.transitions.get(from_step, ())

    def required_actions(self, step: str) -> List[str]:
        """Actions of a step excluding the skip/defer ones."""
        definition = self.steps.get(step)
        if definition is None:
            return []
        return [
            action for action in definition.actions
            if not action.startswith("skip-") and not action.endswith("-later")
        ]

    def _error_plan(self, message: str) -> WorkflowPlan:
        logger.warning(f"⚠️ Workflow error: {message}")
        return WorkflowPlan(current_step=ERROR_STEP, error=message, description=ErrorCode.UNKNOWN_WORKFLOW.value)

    def _error_transition(self, message: str) -> WorkflowTransition:
        logger.warning(f"⚠️ Workflow error: {message}")
        return WorkflowTransition(status="error", current_step=ERROR_STEP, message=message)
