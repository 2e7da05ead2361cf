"""Meeting lifecycle: scheduled → in_progress → completed, then staff sign-off."""

from datetime import datetime
from typing import Optional
from uuid import UUID

from stafftrak.models import Meeting, MeetingStatus

from .base import Transition, now_utc, updated

START = Transition(Meeting, "start", [MeetingStatus.SCHEDULED], MeetingStatus.IN_PROGRESS)
COMPLETE = Transition(
    Meeting, "complete", [MeetingStatus.SCHEDULED, MeetingStatus.IN_PROGRESS], MeetingStatus.COMPLETED
)
STAFF_SIGN_OFF = Transition(Meeting, "staff_sign_off", [MeetingStatus.COMPLETED])


@START.handles
def start(meeting: Meeting, actor_id: UUID, at: Optional[datetime] = None) -> Meeting:
    START.check(meeting)
    START.require_actor(actor_id, meeting.evaluator_id, "only the meeting's evaluator can start it")

    return updated(meeting, status=MeetingStatus.IN_PROGRESS, started_at=at or now_utc())


@COMPLETE.handles
def complete(
    meeting: Meeting,
    actor_id: UUID,
    notes: Optional[str] = None,
    action_items: Optional[str] = None,
    at: Optional[datetime] = None,
) -> Meeting:
    """
    Evaluator closes the meeting.

    Completing is the evaluator's signature: completed_at and
    evaluator_signed_at are always written together.
    """
    COMPLETE.check(meeting)
    COMPLETE.require_actor(actor_id, meeting.evaluator_id, "only the meeting's evaluator can complete it")

    signed_at = at or now_utc()
    return updated(
        meeting,
        status=MeetingStatus.COMPLETED,
        started_at=meeting.started_at or signed_at,
        completed_at=signed_at,
        evaluator_signed_at=signed_at,
        notes=notes if notes is not None else meeting.notes,
        action_items=action_items if action_items is not None else meeting.action_items,
    )


@STAFF_SIGN_OFF.handles
def staff_sign_off(meeting: Meeting, actor_id: UUID, at: Optional[datetime] = None) -> Meeting:
    """Staff member acknowledges a completed meeting. Allowed once."""
    STAFF_SIGN_OFF.check(meeting)
    if meeting.staff_signed_at is not None:
        raise STAFF_SIGN_OFF.reject(meeting, "staff member has already signed off")
    STAFF_SIGN_OFF.require_actor(actor_id, meeting.staff_id, "only the staff member can sign off")

    return updated(meeting, staff_signed_at=at or now_utc())
