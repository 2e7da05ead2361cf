"""
Summative evaluation lifecycle.

    draft → pending_staff_signature → completed

While in draft the evaluator scores rubric domains; the overall score and
rating are recomputed from the domain scores on every update and are never
set directly.
"""

import numbers
from datetime import datetime
from typing import Dict, Mapping, Optional, Union
from uuid import UUID

from stafftrak.models import DomainScore, SummativeEvaluation, SummativeStatus
from stafftrak.models.utils import overall_from_domains

from .base import Transition, now_utc, updated
from .errors import MissingRequiredField

UPDATE_DOMAIN_SCORES = Transition(SummativeEvaluation, "update_domain_scores", [SummativeStatus.DRAFT])
SUBMIT_TO_STAFF = Transition(
    SummativeEvaluation, "submit_to_staff", [SummativeStatus.DRAFT], SummativeStatus.PENDING_STAFF_SIGNATURE
)
STAFF_SIGN = Transition(
    SummativeEvaluation, "staff_sign", [SummativeStatus.PENDING_STAFF_SIGNATURE], SummativeStatus.COMPLETED
)

DomainInput = Union[DomainScore, Mapping[str, object], int, float, None]


def _as_domain_score(value: DomainInput, existing: Optional[DomainScore]) -> DomainScore:
    """Accept a DomainScore, a {"score", "feedback"} mapping or a bare score."""
    if isinstance(value, DomainScore):
        return value
    if value is None or (isinstance(value, numbers.Real) and not isinstance(value, bool)):
        return DomainScore(score=value, feedback=existing.feedback if existing else None)
    if not isinstance(value, Mapping):
        raise ValueError(f"domain score must be a number or a mapping, got {type(value).__name__}")
    merged = existing.model_dump() if existing else {}
    merged.update(value)
    return DomainScore.model_validate(merged)


def with_domain_scores(
    evaluation: SummativeEvaluation,
    domain_scores: Dict[str, DomainScore],
    **changes,
) -> SummativeEvaluation:
    """Copy with new domain scores and the overall score/rating derived from them."""
    overall_score, overall_rating = overall_from_domains(
        {domain_id: d.score for domain_id, d in domain_scores.items()}
    )
    return updated(
        evaluation,
        domain_scores=domain_scores,
        overall_score=overall_score,
        overall_rating=overall_rating,
        **changes,
    )


@UPDATE_DOMAIN_SCORES.handles
def update_domain_scores(
    evaluation: SummativeEvaluation,
    actor_id: UUID,
    scores: Mapping[str, DomainInput],
) -> SummativeEvaluation:
    """Merge domain scores/feedback into the draft and recompute the overall result."""
    UPDATE_DOMAIN_SCORES.check(evaluation)
    UPDATE_DOMAIN_SCORES.require_actor(actor_id, evaluation.evaluator_id, "only the evaluator can score domains")

    domain_scores = dict(evaluation.domain_scores)
    for domain_id, value in scores.items():
        domain_scores[domain_id] = _as_domain_score(value, domain_scores.get(domain_id))

    return with_domain_scores(evaluation, domain_scores)


def score_domain(
    evaluation: SummativeEvaluation,
    actor_id: UUID,
    domain_id: str,
    score: Optional[int],
    feedback: Optional[str] = None,
) -> SummativeEvaluation:
    """Score a single rubric domain."""
    value = {"score": score} if feedback is None else {"score": score, "feedback": feedback}
    return update_domain_scores(evaluation, actor_id, {domain_id: value})


@SUBMIT_TO_STAFF.handles
def submit_to_staff(
    evaluation: SummativeEvaluation,
    actor_id: UUID,
    at: Optional[datetime] = None,
) -> SummativeEvaluation:
    """Evaluator signs and releases the evaluation to the staff member."""
    SUBMIT_TO_STAFF.check(evaluation)
    SUBMIT_TO_STAFF.require_actor(actor_id, evaluation.evaluator_id, "only the evaluator can submit the evaluation")

    # Recompute rather than trust a stored overall score.
    scored = with_domain_scores(evaluation, dict(evaluation.domain_scores))
    if scored.overall_score is None:
        raise MissingRequiredField(SUBMIT_TO_STAFF.record_name, "overall_score", SUBMIT_TO_STAFF.action)

    return updated(
        scored,
        status=SummativeStatus.PENDING_STAFF_SIGNATURE,
        evaluator_signature_at=at or now_utc(),
    )


@STAFF_SIGN.handles
def staff_sign(
    evaluation: SummativeEvaluation,
    actor_id: UUID,
    staff_comments: Optional[str] = None,
    at: Optional[datetime] = None,
) -> SummativeEvaluation:
    """Staff member signs; the evaluation is complete."""
    STAFF_SIGN.check(evaluation)
    STAFF_SIGN.require_actor(actor_id, evaluation.staff_id, "only the evaluated staff member can sign")
    if evaluation.evaluator_signature_at is None:
        raise MissingRequiredField(STAFF_SIGN.record_name, "evaluator_signature_at", STAFF_SIGN.action)

    signed_at = at or now_utc()
    return updated(
        evaluation,
        status=SummativeStatus.COMPLETED,
        staff_signature_at=signed_at,
        completed_at=signed_at,
        staff_comments=staff_comments if staff_comments is not None else evaluation.staff_comments,
    )
