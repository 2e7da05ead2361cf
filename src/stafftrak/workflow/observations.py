"""
Observation lifecycle.

    scheduled → in_progress → completed
    scheduled | in_progress → cancelled

Informal observations may be completed straight from scheduled. Formal
observations also carry a pre-observation form (filled by the staff member
before the visit) and a post-observation reflection (after completion).
"""

from datetime import datetime
from typing import Any, Dict, Optional
from uuid import UUID

from stafftrak.models import Observation, ObservationStatus

from .base import Transition, now_utc, updated
from .errors import MissingRequiredField

OPEN_STATUSES = (ObservationStatus.SCHEDULED, ObservationStatus.IN_PROGRESS)

START = Transition(Observation, "start", [ObservationStatus.SCHEDULED], ObservationStatus.IN_PROGRESS)
COMPLETE = Transition(Observation, "complete", OPEN_STATUSES, ObservationStatus.COMPLETED)
CANCEL = Transition(Observation, "cancel", OPEN_STATUSES, ObservationStatus.CANCELLED)
SUBMIT_PRE_FORM = Transition(Observation, "submit_pre_observation_form", OPEN_STATUSES)
SUBMIT_POST_FORM = Transition(Observation, "submit_post_observation_form", [ObservationStatus.COMPLETED])


@START.handles
def start(observation: Observation, actor_id: UUID, at: Optional[datetime] = None) -> Observation:
    START.check(observation)
    START.require_actor(actor_id, observation.observer_id, "only the observer can start an observation")

    return updated(
        observation,
        status=ObservationStatus.IN_PROGRESS,
        started_at=at or now_utc(),
    )


@COMPLETE.handles
def complete(
    observation: Observation,
    actor_id: UUID,
    feedback: Optional[str] = None,
    next_steps: Optional[str] = None,
    share_notes_with_staff: bool = False,
    at: Optional[datetime] = None,
) -> Observation:
    """Observer closes the observation with feedback for the staff member."""
    COMPLETE.check(observation)
    if observation.is_formal and observation.status == ObservationStatus.SCHEDULED:
        raise COMPLETE.reject(observation, "formal observations must be started before completion")
    COMPLETE.require_actor(actor_id, observation.observer_id, "only the observer can complete an observation")
    text = COMPLETE.require_text(feedback, "feedback")

    ended_at = at or now_utc()
    return updated(
        observation,
        status=ObservationStatus.COMPLETED,
        started_at=observation.started_at or ended_at,
        ended_at=ended_at,
        feedback=text,
        next_steps=next_steps.strip() if next_steps else None,
        share_notes_with_staff=share_notes_with_staff,
    )


@CANCEL.handles
def cancel(
    observation: Observation,
    actor_id: UUID,
    reason: Optional[str] = None,
    at: Optional[datetime] = None,
) -> Observation:
    CANCEL.check(observation)
    CANCEL.require_actor(actor_id, observation.observer_id, "only the observer can cancel an observation")

    return updated(
        observation,
        status=ObservationStatus.CANCELLED,
        cancelled_at=at or now_utc(),
        cancel_reason=reason,
    )


def _check_form(transition: Transition, observation: Observation, actor_id: UUID, form: Optional[Dict[str, Any]]):
    transition.check(observation)
    if not observation.is_formal:
        raise transition.reject(observation, "only formal observations have observation forms")
    transition.require_actor(actor_id, observation.staff_id, "only the observed staff member fills observation forms")
    if not form or not any(str(v).strip() for v in form.values() if v is not None):
        raise MissingRequiredField(transition.record_name, "form", transition.action)


@SUBMIT_PRE_FORM.handles
def submit_pre_observation_form(
    observation: Observation,
    actor_id: UUID,
    form: Optional[Dict[str, Any]] = None,
    at: Optional[datetime] = None,
) -> Observation:
    _check_form(SUBMIT_PRE_FORM, observation, actor_id, form)

    return updated(
        observation,
        pre_observation_form=dict(form),
        pre_observation_submitted_at=at or now_utc(),
    )


@SUBMIT_POST_FORM.handles
def submit_post_observation_form(
    observation: Observation,
    actor_id: UUID,
    form: Optional[Dict[str, Any]] = None,
    at: Optional[datetime] = None,
) -> Observation:
    _check_form(SUBMIT_POST_FORM, observation, actor_id, form)

    return updated(
        observation,
        post_observation_form=dict(form),
        post_observation_submitted_at=at or now_utc(),
    )
