"""
Dashboard projections: evaluator headline numbers and staff action items.
"""

import logging
import math
from datetime import date, datetime, timedelta, timezone
from typing import List, Mapping, Optional
from uuid import UUID

from stafftrak.compliance import DeadlineCalendar, evaluate
from stafftrak.models import (
    ActionItem,
    ActionSeverity,
    ComplianceRecord,
    EntitySnapshot,
    EvaluatorDashboardStats,
    GoalStatus,
    MeetingStatus,
    ObservationStatus,
    SelfAssessmentStatus,
    StaffEntities,
    StaffMember,
    SummativeStatus,
)
from stafftrak.models.utils import current_evaluation


logger = logging.getLogger(__name__)

OPEN_OBSERVATION_STATUSES = (ObservationStatus.SCHEDULED, ObservationStatus.IN_PROGRESS)


def _as_utc(value: datetime) -> datetime:
    """Stored timestamps without a zone are UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _plural(count: int, word: str) -> str:
    return f"{count} {word}{'' if count == 1 else 's'}"


def _days_until_label(when: datetime, now: datetime) -> str:
    days = math.ceil((when - now) / timedelta(days=1))
    if days <= 0:
        return "today"
    if days == 1:
        return "tomorrow"
    return f"{days} days"


def evaluator_dashboard_stats(
    evaluator_id: UUID,
    snapshot: EntitySnapshot,
    calendar: DeadlineCalendar,
    as_of: date,
    records: Optional[List[ComplianceRecord]] = None,
) -> EvaluatorDashboardStats:
    """
    Headline counts for an evaluator's dashboard.

    Args:
        evaluator_id: Evaluator the dashboard belongs to
        snapshot: Records covering at least the evaluator's caseload
        calendar: Deadline calendar used for the overdue count
        as_of: Date overdue milestones are judged against
        records: Precomputed compliance records for the caseload, evaluated
            from the snapshot when omitted

    Returns:
        EvaluatorDashboardStats
    """
    caseload = [s for s in snapshot.staff_members() if s.evaluator_id == evaluator_id]
    caseload_ids = {s.id for s in caseload}

    if records is None:
        by_staff = snapshot.split_by_staff()
        records = [
            evaluate(staff, by_staff.get(staff.id, StaffEntities()), calendar, as_of)
            for staff in caseload
        ]

    overdue_items = sum(
        len(r.overdue_milestones) for r in records if r.staff_id in caseload_ids
    )

    return EvaluatorDashboardStats(
        evaluator_id=evaluator_id,
        staff_assigned=len(caseload),
        observations_due=sum(
            1 for o in snapshot.observations
            if o.observer_id == evaluator_id and o.status in OPEN_OBSERVATION_STATUSES
        ),
        pending_goals=sum(
            1 for g in snapshot.goals
            if g.staff_id in caseload_ids and g.status == GoalStatus.SUBMITTED
        ),
        overdue_items=overdue_items,
        pending_signatures=sum(
            1 for e in snapshot.summative_evaluations
            if e.evaluator_id == evaluator_id and e.status == SummativeStatus.PENDING_STAFF_SIGNATURE
        ),
    )


def staff_action_items(
    staff: StaffMember,
    entities: StaffEntities,
    now: Optional[datetime] = None,
    window_days: Optional[int] = None,
    school_year: Optional[str] = None,
    observer_names: Optional[Mapping[UUID, str]] = None,
) -> List[ActionItem]:
    """
    What a staff member should do next, most pressing kinds first in the
    order the dashboard lists them.

    Args:
        staff: The staff member whose dashboard is being built
        entities: That staff member's cycle records
        now: Reference time for the upcoming-observation window
        window_days: Size of the upcoming-observation window, defaults to
            the configured COMPLIANCE_UPCOMING_WINDOW_DAYS
        school_year: Only self-assessments for this year (or undated ones)
            count as done
        observer_names: Observer display names for the observation item

    Returns:
        List of ActionItem
    """
    if window_days is None:
        from stafftrak.config import settings

        window_days = settings.compliance.upcoming_window_days

    now = _as_utc(now or datetime.now(timezone.utc))
    own = entities.only_for(staff.id)
    observer_names = observer_names or {}
    items: List[ActionItem] = []

    # Drafts sent back with feedback are listed under goal_revisions instead.
    draft_goals = [g for g in own.goals if g.status == GoalStatus.DRAFT and not g.evaluator_feedback]
    if draft_goals:
        items.append(ActionItem(
            kind="draft_goals",
            severity=ActionSeverity.WARNING,
            title=f"{_plural(len(draft_goals), 'draft goal')} to submit",
            description="Submit your goals for evaluator approval",
            count=len(draft_goals),
            related_ids=[g.id for g in draft_goals],
        ))

    # Goals sent back carry evaluator feedback whichever status they landed in.
    returned_goals = [
        g for g in own.goals
        if g.status == GoalStatus.REVISION_REQUESTED
        or (g.status == GoalStatus.DRAFT and g.evaluator_feedback)
    ]
    if returned_goals:
        verb = "needs" if len(returned_goals) == 1 else "need"
        items.append(ActionItem(
            kind="goal_revisions",
            severity=ActionSeverity.URGENT,
            title=f"{_plural(len(returned_goals), 'goal')} {verb} revision",
            description="Your evaluator requested changes",
            count=len(returned_goals),
            related_ids=[g.id for g in returned_goals],
        ))

    reflected = any(
        sa.status == SelfAssessmentStatus.SUBMITTED
        and (school_year is None or sa.school_year in (None, school_year))
        for sa in own.self_assessments
    )
    if not reflected:
        items.append(ActionItem(
            kind="self_reflection",
            severity=ActionSeverity.WARNING,
            title="Complete your self-reflection",
            description="Required before your initial goals meeting",
        ))

    evaluation = current_evaluation(own.summative_evaluations)
    if evaluation is not None and evaluation.status == SummativeStatus.PENDING_STAFF_SIGNATURE:
        items.append(ActionItem(
            kind="summative_signature",
            severity=ActionSeverity.URGENT,
            title="Sign your summative evaluation",
            description="Your evaluation is ready for review and signature",
            related_ids=[evaluation.id],
        ))

    window_end = now + timedelta(days=window_days)
    upcoming = sorted(
        (
            o for o in own.observations
            if o.status == ObservationStatus.SCHEDULED
            and o.scheduled_at is not None
            and now <= _as_utc(o.scheduled_at) <= window_end
        ),
        key=lambda o: _as_utc(o.scheduled_at),
    )
    if upcoming:
        next_obs = upcoming[0]
        kind_label = "Formal" if next_obs.is_formal else "Informal"
        observer = observer_names.get(next_obs.observer_id, "your evaluator")
        items.append(ActionItem(
            kind="upcoming_observation",
            severity=ActionSeverity.INFO,
            title=f"Observation in {_days_until_label(_as_utc(next_obs.scheduled_at), now)}",
            description=f"{kind_label} observation with {observer}",
            count=len(upcoming),
            related_ids=[o.id for o in upcoming],
        ))

    needs_pre_form = [
        o for o in own.observations
        if o.is_formal
        and o.status == ObservationStatus.SCHEDULED
        and o.pre_observation_submitted_at is None
    ]
    if needs_pre_form:
        items.append(ActionItem(
            kind="pre_observation_form",
            severity=ActionSeverity.WARNING,
            title="Pre-observation form needed",
            description="Complete before your formal observation",
            count=len(needs_pre_form),
            related_ids=[o.id for o in needs_pre_form],
        ))

    unsigned_meetings = [
        m for m in own.meetings
        if m.status == MeetingStatus.COMPLETED and m.staff_signed_at is None
    ]
    if unsigned_meetings:
        items.append(ActionItem(
            kind="meeting_sign_off",
            severity=ActionSeverity.WARNING,
            title=f"{_plural(len(unsigned_meetings), 'meeting')} to sign off",
            description="Review the meeting notes and add your signature",
            count=len(unsigned_meetings),
            related_ids=[m.id for m in unsigned_meetings],
        ))

    logger.debug(f"{len(items)} action items for {staff.full_name} ({staff.id})")
    return items
