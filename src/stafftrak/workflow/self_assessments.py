"""Self-reflection lifecycle: saved as a draft any number of times, submitted once."""

from datetime import datetime
from typing import Any, Dict, Optional
from uuid import UUID

from stafftrak.models import SelfAssessment, SelfAssessmentStatus

from .base import Transition, now_utc, updated
from .errors import MissingRequiredField

SAVE_RESPONSES = Transition(SelfAssessment, "save_responses", [SelfAssessmentStatus.DRAFT])
SUBMIT = Transition(
    SelfAssessment, "submit", [SelfAssessmentStatus.DRAFT], SelfAssessmentStatus.SUBMITTED
)


def _has_answers(responses: Dict[str, Any]) -> bool:
    return any(v is not None and str(v).strip() for v in responses.values())


@SAVE_RESPONSES.handles
def save_responses(assessment: SelfAssessment, actor_id: UUID, responses: Dict[str, Any]) -> SelfAssessment:
    SAVE_RESPONSES.check(assessment)
    SAVE_RESPONSES.require_actor(actor_id, assessment.staff_id, "only the staff member can edit their self-reflection")

    return updated(assessment, responses={**assessment.responses, **responses})


@SUBMIT.handles
def submit(
    assessment: SelfAssessment,
    actor_id: UUID,
    responses: Optional[Dict[str, Any]] = None,
    at: Optional[datetime] = None,
) -> SelfAssessment:
    """Submit the self-reflection, optionally saving final responses in the same write."""
    SUBMIT.check(assessment)
    SUBMIT.require_actor(actor_id, assessment.staff_id, "only the staff member can submit their self-reflection")

    merged = {**assessment.responses, **(responses or {})}
    if not _has_answers(merged):
        raise MissingRequiredField(SUBMIT.record_name, "responses", SUBMIT.action)

    return updated(assessment, responses=merged, submitted_at=at or now_utc())
