"""
Fleet-wide aggregates over compliance records and raw cycle records.

Every function is a read-only fold over data the caller already fetched;
nothing here touches the store or changes a record.
"""

import logging
from collections import defaultdict
from datetime import date, datetime, timezone
from typing import Dict, Iterable, List, Optional, Sequence
from uuid import UUID

from stafftrak.compliance import DeadlineCalendar, evaluate_roster
from stafftrak.models import (
    ComplianceRecord,
    EntitySnapshot,
    EvaluationFunnel,
    EvaluatorObservationStats,
    FleetReport,
    MilestoneCompletion,
    MilestoneStatus,
    Observation,
    ObservationStatus,
    OffTrackStaff,
    StaffCategory,
    StaffMember,
    StaffRole,
    SummativeEvaluation,
    SummativeStatus,
)
from stafftrak.models.utils import current_evaluation, percent, safe_rate


logger = logging.getLogger(__name__)

UNKNOWN_EVALUATOR = "Unknown Evaluator"


def staff_not_on_track(records: Iterable[ComplianceRecord]) -> List[OffTrackStaff]:
    """Staff with at least one overdue milestone, each with only its overdue subset."""
    return [
        OffTrackStaff(
            staff_id=record.staff_id,
            staff_name=record.staff_name,
            staff_category=record.staff_category,
            evaluator_id=record.evaluator_id,
            overdue=record.overdue_milestones,
            next_step=record.next_step,
        )
        for record in records
        if not record.on_track
    ]


def not_on_track_count(records: Iterable[ComplianceRecord]) -> int:
    return sum(1 for record in records if not record.on_track)


def observation_stats_by_evaluator(
    observations: Iterable[Observation],
    roster: Sequence[StaffMember],
) -> List[EvaluatorObservationStats]:
    """
    Observation totals and completion rate per observer.

    Args:
        observations: Observations to fold (typically one tenant, one year)
        roster: Profiles used for evaluator names and assigned-staff counts

    Returns:
        One entry per observer, plus evaluators who have assigned staff but
        no observations yet, sorted by evaluator name
    """
    people = {person.id: person for person in roster}
    names = {person_id: person.full_name for person_id, person in people.items()}

    assigned: Dict[UUID, int] = defaultdict(int)
    for person in people.values():
        if person.role == StaffRole.STAFF and person.is_active and person.evaluator_id:
            assigned[person.evaluator_id] += 1

    counts: Dict[UUID, Dict[ObservationStatus, int]] = defaultdict(lambda: defaultdict(int))
    for obs in observations:
        counts[obs.observer_id][obs.status] += 1

    stats = []
    for evaluator_id in set(counts) | set(assigned):
        by_status = counts.get(evaluator_id, {})
        total = sum(by_status.values())
        completed = by_status.get(ObservationStatus.COMPLETED, 0)

        stats.append(EvaluatorObservationStats(
            evaluator_id=evaluator_id,
            evaluator_name=names.get(evaluator_id, UNKNOWN_EVALUATOR),
            assigned_staff=assigned.get(evaluator_id, 0),
            total=total,
            completed=completed,
            scheduled=by_status.get(ObservationStatus.SCHEDULED, 0),
            in_progress=by_status.get(ObservationStatus.IN_PROGRESS, 0),
            cancelled=by_status.get(ObservationStatus.CANCELLED, 0),
            completion_rate=safe_rate(completed, total),
            completion_percent=percent(completed, total),
        ))

    stats.sort(key=lambda s: (s.evaluator_name, str(s.evaluator_id)))
    return stats


def _funnel_bucket(evaluation: Optional[SummativeEvaluation]) -> str:
    if evaluation is None:
        return "not_started"
    if evaluation.status == SummativeStatus.COMPLETED:
        return "completed"
    if evaluation.status == SummativeStatus.PENDING_STAFF_SIGNATURE:
        return "pending_signature"
    return "in_progress"


def evaluation_funnel(
    roster: Iterable[StaffMember],
    evaluations: Iterable[SummativeEvaluation],
) -> EvaluationFunnel:
    """
    Summative evaluation status counts by staff category.

    not_started counts staff with no evaluation record at all. When a staff
    member has several records the most recent one decides the bucket.
    """
    by_staff: Dict[UUID, List[SummativeEvaluation]] = defaultdict(list)
    for evaluation in evaluations:
        by_staff[evaluation.staff_id].append(evaluation)

    funnel = EvaluationFunnel()
    for staff in roster:
        bucket = _funnel_bucket(current_evaluation(by_staff.get(staff.id, [])))

        groups = [funnel.all]
        if staff.staff_category == StaffCategory.LICENSED:
            groups.append(funnel.licensed)
        elif staff.staff_category == StaffCategory.CLASSIFIED:
            groups.append(funnel.classified)

        for counts in groups:
            counts.total += 1
            setattr(counts, bucket, getattr(counts, bucket) + 1)

    return funnel


def milestone_completion_rates(
    records: Sequence[ComplianceRecord],
    calendar: DeadlineCalendar,
) -> List[MilestoneCompletion]:
    """Per-milestone complete/pending/overdue tallies, in calendar order."""
    rates = []
    for definition in calendar.milestones:
        tally = MilestoneCompletion(key=definition.key, name=definition.name, due_date=definition.due)

        for record in records:
            milestone = record.milestone(definition.key)
            if milestone is None:
                continue
            tally.applicable += 1
            if milestone.status == MilestoneStatus.COMPLETE:
                tally.complete += 1
            elif milestone.status == MilestoneStatus.OVERDUE:
                tally.overdue += 1
            else:
                tally.pending += 1

        tally.percent_complete = percent(tally.complete, tally.applicable)
        rates.append(tally)

    return rates


def build_fleet_report(
    snapshot: EntitySnapshot,
    calendar: DeadlineCalendar,
    as_of: date,
    tenant_id: Optional[UUID] = None,
    records: Optional[List[ComplianceRecord]] = None,
    generated_at: Optional[datetime] = None,
) -> FleetReport:
    """
    Assemble the full reports view from one snapshot.

    Args:
        snapshot: Roster, profiles and cycle records to report on
        calendar: Deadline calendar for the school year
        as_of: Date milestones are judged against
        tenant_id: Tenant the snapshot belongs to, for labelling
        records: Precomputed compliance records; evaluated from the
            snapshot when omitted
        generated_at: Report timestamp, defaults to now (UTC)

    Returns:
        FleetReport
    """
    if records is None:
        records = evaluate_roster(snapshot, calendar, as_of)

    staff = snapshot.staff_members()
    people = list(snapshot.profiles) + list(snapshot.roster)

    report = FleetReport(
        tenant_id=tenant_id,
        school_year=calendar.school_year,
        as_of=as_of,
        generated_at=generated_at or datetime.now(timezone.utc),
        staff_count=len(records),
        on_track_count=sum(1 for r in records if r.on_track),
        not_on_track=staff_not_on_track(records),
        observation_stats=observation_stats_by_evaluator(snapshot.observations, people),
        evaluation_funnel=evaluation_funnel(staff, snapshot.summative_evaluations),
        milestone_completion=milestone_completion_rates(records, calendar),
    )

    logger.info(
        f"Fleet report {calendar.school_year} as of {as_of}: "
        f"{report.on_track_count}/{report.staff_count} on track, "
        f"{len(report.observation_stats)} evaluators"
    )
    return report
