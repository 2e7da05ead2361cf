"""
Compliance evaluator.

Combines one staff member's cycle records with a DeadlineCalendar into a
ComplianceRecord: an ordered milestone list (complete / pending / overdue)
and an on-track flag. Everything here is a pure function of its arguments;
the caller fetches the records and chooses the as-of date.
"""

import logging
from datetime import date
from typing import List, Optional, Tuple

from stafftrak.models import (
    ComplianceRecord,
    EntitySnapshot,
    GoalStatus,
    MeetingStatus,
    Milestone,
    MilestoneStatus,
    ObservationStatus,
    SelfAssessmentStatus,
    StaffEntities,
    StaffMember,
    SummativeStatus,
)

from .calendar import CompliancePolicy, DeadlineCalendar, MilestoneDefinition, MilestoneKind


logger = logging.getLogger(__name__)


def _self_reflection_done(entities: StaffEntities, school_year: str) -> bool:
    return any(
        sa.status == SelfAssessmentStatus.SUBMITTED
        and sa.school_year in (None, school_year)
        for sa in entities.self_assessments
    )


def _approved_goals(entities: StaffEntities) -> int:
    return sum(1 for g in entities.goals if g.status == GoalStatus.APPROVED)


def _meeting_done(entities: StaffEntities, definition: MilestoneDefinition) -> bool:
    return any(
        m.meeting_type == definition.meeting_type and m.status == MeetingStatus.COMPLETED
        for m in entities.meetings
    )


def counted_observations(entities: StaffEntities, policy: CompliancePolicy) -> int:
    """Completed observations that count toward the Observations milestone."""
    count = 0
    for obs in entities.observations:
        if obs.status != ObservationStatus.COMPLETED:
            continue
        if obs.is_formal and policy.formal_requires_forms and not obs.has_observation_forms:
            continue
        count += 1
    return count


def _summative_done(entities: StaffEntities) -> bool:
    return any(e.status == SummativeStatus.COMPLETED for e in entities.summative_evaluations)


def milestone_completion(
    definition: MilestoneDefinition,
    staff: StaffMember,
    entities: StaffEntities,
    calendar: DeadlineCalendar,
) -> Tuple[bool, Optional[str]]:
    """
    Whether one milestone is met, plus a progress detail for count-based kinds.

    Completion looks only at record state, never at the as-of date, so a
    milestone that is complete stays complete on every later date.
    """
    kind = definition.kind

    if kind == MilestoneKind.SELF_REFLECTION:
        return _self_reflection_done(entities, calendar.school_year), None

    if kind == MilestoneKind.GOALS_APPROVED:
        required = calendar.required_count(definition, staff)
        approved = _approved_goals(entities)
        return approved >= required, f"{approved}/{required} approved"

    if kind == MilestoneKind.MEETING:
        return _meeting_done(entities, definition), None

    if kind == MilestoneKind.OBSERVATIONS:
        required = calendar.required_count(definition, staff)
        done = counted_observations(entities, calendar.policy)
        return done >= required, f"{done}/{required} complete"

    if kind == MilestoneKind.SUMMATIVE:
        return _summative_done(entities), None

    raise ValueError(f"Unknown milestone kind: {kind}")


def milestone_status(completed: bool, due_date: date, as_of: date) -> MilestoneStatus:
    """Complete beats everything; otherwise overdue only after the due date."""
    if completed:
        return MilestoneStatus.COMPLETE
    if as_of > due_date:
        return MilestoneStatus.OVERDUE
    return MilestoneStatus.PENDING


def evaluate(
    staff: StaffMember,
    entities: StaffEntities,
    calendar: DeadlineCalendar,
    as_of: date,
) -> ComplianceRecord:
    """
    Compute a staff member's compliance record as of a date.

    Args:
        staff: The staff member being evaluated
        entities: That staff member's cycle records (records belonging to
            anyone else are ignored)
        calendar: Deadline calendar for the school year
        as_of: Date the milestones are judged against

    Returns:
        ComplianceRecord with milestones in calendar order
    """
    own = entities.only_for(staff.id)
    milestones: List[Milestone] = []

    for definition in calendar.applicable_milestones(staff):
        completed, detail = milestone_completion(definition, staff, own, calendar)
        milestones.append(Milestone(
            key=definition.key,
            name=definition.name,
            due_date=definition.due,
            completed=completed,
            status=milestone_status(completed, definition.due, as_of),
            detail=detail,
        ))

    next_step = next((m for m in milestones if m.status == MilestoneStatus.PENDING), None)
    on_track = not any(m.status == MilestoneStatus.OVERDUE for m in milestones)

    logger.debug(
        f"Compliance for {staff.full_name} ({staff.id}) as of {as_of}: "
        f"{'on track' if on_track else 'NOT on track'}, "
        f"{sum(1 for m in milestones if m.completed)}/{len(milestones)} complete"
    )

    return ComplianceRecord(
        staff_id=staff.id,
        staff_name=staff.full_name,
        staff_category=staff.staff_category,
        evaluator_id=staff.evaluator_id,
        school_year=calendar.school_year,
        as_of=as_of,
        milestones=milestones,
        on_track=on_track,
        next_step=next_step,
    )


def evaluate_roster(
    snapshot: EntitySnapshot,
    calendar: DeadlineCalendar,
    as_of: date,
) -> List[ComplianceRecord]:
    """Compliance records for every active staff member in the snapshot, in roster order."""
    by_staff = snapshot.split_by_staff()
    empty = StaffEntities()

    records = [
        evaluate(staff, by_staff.get(staff.id, empty), calendar, as_of)
        for staff in snapshot.staff_members()
    ]

    logger.info(
        f"Evaluated {len(records)} staff for {calendar.school_year} as of {as_of}: "
        f"{sum(1 for r in records if not r.on_track)} not on track"
    )
    return records
