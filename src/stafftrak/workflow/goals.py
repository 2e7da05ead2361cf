"""Goal lifecycle: draft → submitted → approved, or back to draft with feedback."""

from datetime import datetime
from typing import Optional
from uuid import UUID

from stafftrak.models import Goal, GoalStatus, StaffMember

from .base import Transition, now_utc, updated

# revision_requested is still found on older rows; it is editable like draft.
EDITABLE_STATUSES = (GoalStatus.DRAFT, GoalStatus.REVISION_REQUESTED)

SUBMIT = Transition(Goal, "submit", EDITABLE_STATUSES, GoalStatus.SUBMITTED)
APPROVE = Transition(Goal, "approve", [GoalStatus.SUBMITTED], GoalStatus.APPROVED, needs_staff=True)
REQUEST_REVISION = Transition(
    Goal, "request_revision", [GoalStatus.SUBMITTED], GoalStatus.DRAFT, needs_staff=True
)


@SUBMIT.handles
def submit(goal: Goal, actor_id: UUID, at: Optional[datetime] = None) -> Goal:
    """Staff member sends a goal to their evaluator for approval."""
    SUBMIT.check(goal)
    SUBMIT.require_actor(actor_id, goal.staff_id, "only the goal owner can submit it")
    SUBMIT.require_text(goal.title, "title")

    return updated(
        goal,
        status=GoalStatus.SUBMITTED,
        submitted_at=at or now_utc(),
    )


def _check_evaluator(transition: Transition, goal: Goal, staff: StaffMember, evaluator_id: UUID) -> None:
    if staff.id != goal.staff_id:
        raise ValueError(f"Staff member {staff.id} does not own goal {goal.id}")
    transition.require_actor(
        evaluator_id,
        staff.evaluator_id,
        "only the staff member's assigned evaluator can review goals",
    )


@APPROVE.handles
def approve(
    goal: Goal,
    staff: StaffMember,
    evaluator_id: UUID,
    feedback: Optional[str] = None,
    at: Optional[datetime] = None,
) -> Goal:
    """Assigned evaluator approves a submitted goal."""
    APPROVE.check(goal)
    _check_evaluator(APPROVE, goal, staff, evaluator_id)

    return updated(
        goal,
        status=GoalStatus.APPROVED,
        approved_at=at or now_utc(),
        approved_by=evaluator_id,
        evaluator_feedback=feedback.strip() if feedback and feedback.strip() else None,
    )


@REQUEST_REVISION.handles
def request_revision(
    goal: Goal,
    staff: StaffMember,
    evaluator_id: UUID,
    feedback: Optional[str] = None,
) -> Goal:
    """
    Assigned evaluator sends a submitted goal back to the staff member.

    Feedback explaining what to revise is mandatory. The goal returns to
    draft so the staff member can edit and resubmit it.
    """
    REQUEST_REVISION.check(goal)
    _check_evaluator(REQUEST_REVISION, goal, staff, evaluator_id)
    text = REQUEST_REVISION.require_text(feedback, "evaluator_feedback")

    return updated(
        goal,
        status=GoalStatus.DRAFT,
        evaluator_feedback=text,
        submitted_at=None,
    )
