"""
Step Wizard Navigation

Step sequences per user type and the sidebar rules: a step is completed,
current or upcoming relative to the current step, and only completed or
current steps can be navigated to.
"""

import enum

from .schemas import ApplicationStep, UserType

NEW_APPLICANT_STEPS: tuple[ApplicationStep, ...] = (
    ApplicationStep.PERSONAL_INFO,
    ApplicationStep.ACADEMIC_DETAILS,
    ApplicationStep.PROGRAM_SELECTION,
    ApplicationStep.REVIEW,
    ApplicationStep.PAYMENT,
)

EXISTING_APPLICANT_STEPS: tuple[ApplicationStep, ...] = (
    ApplicationStep.LOGIN,
    ApplicationStep.PAYMENT,
)

STEP_TITLES: dict[ApplicationStep, str] = {
    ApplicationStep.PERSONAL_INFO: "Personal Information",
    ApplicationStep.ACADEMIC_DETAILS: "Academic Details",
    ApplicationStep.PROGRAM_SELECTION: "Program Selection",
    ApplicationStep.REVIEW: "Review & Submit",
    ApplicationStep.PAYMENT: "Payment",
    ApplicationStep.LOGIN: "Login",
    ApplicationStep.SUCCESS: "Success",
    ApplicationStep.VIEW_APPLICATION: "View Application",
    ApplicationStep.EDIT_CONTINUE: "Continue Application",
}


class StepStatus(str, enum.Enum):
    COMPLETED = "completed"
    CURRENT = "current"
    UPCOMING = "upcoming"


def steps_for(user_type: UserType | None) -> tuple[ApplicationStep, ...]:
    """Sequence shown for a user type. Anything but `existing` gets the new track."""
    if user_type == UserType.EXISTING:
        return EXISTING_APPLICANT_STEPS
    return NEW_APPLICANT_STEPS


def step_status(
    step: ApplicationStep,
    current_step: ApplicationStep,
    user_type: UserType | None,
) -> StepStatus:
    """
    Status of `step` relative to `current_step`.

    When the current step is outside the sequence (e.g. `success`) every
    step in the sequence counts as completed.
    """
    sequence = steps_for(user_type)
    if current_step not in sequence:
        return StepStatus.COMPLETED
    if step not in sequence:
        return StepStatus.UPCOMING

    step_index = sequence.index(step)
    current_index = sequence.index(current_step)
    if step_index < current_index:
        return StepStatus.COMPLETED
    if step_index == current_index:
        return StepStatus.CURRENT
    return StepStatus.UPCOMING


def can_navigate(
    step: ApplicationStep,
    current_step: ApplicationStep,
    user_type: UserType | None,
) -> bool:
    return step_status(step, current_step, user_type) in (StepStatus.COMPLETED, StepStatus.CURRENT)


def next_step(step: ApplicationStep, user_type: UserType | None) -> ApplicationStep | None:
    """The step after `step` in its sequence, or None at the end."""
    sequence = steps_for(user_type)
    if step not in sequence:
        return None
    index = sequence.index(step)
    return sequence[index + 1] if index + 1 < len(sequence) else None


def describe_steps(current_step: ApplicationStep, user_type: UserType | None) -> list[dict]:
    """Sidebar model: one entry per step with its status and clickability."""
    entries = []
    for step in steps_for(user_type):
        status = step_status(step, current_step, user_type)
        entries.append(
            {
                "id": step.value,
                "title": STEP_TITLES[step],
                "status": status.value,
                "clickable": status != StepStatus.UPCOMING,
            }
        )
    return entries
