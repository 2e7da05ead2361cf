"""Tests for the evaluation-cycle service over an in-memory store."""

import logging
from datetime import date, datetime, timedelta, timezone
from uuid import uuid4

import pytest

from stafftrak.database import InMemoryEntityStore
from stafftrak.models import (
    Goal,
    GoalStatus,
    MeetingStatus,
    MeetingType,
    Meeting,
    ObservationStatus,
    Rating,
    SummativeEvaluation,
    SummativeStatus,
)
from stafftrak.services import EvaluationCycleService
from stafftrak.workflow import InvalidTransition, NotAuthorized, NotFound

AT = datetime(2025, 10, 1, 15, tzinfo=timezone.utc)


@pytest.fixture
def store(staff, classified_staff, evaluator):
    return InMemoryEntityStore([staff, classified_staff, evaluator])


@pytest.fixture
def service(store, calendar):
    return EvaluationCycleService(store, calendar=calendar)


class TestApply:

    @pytest.mark.asyncio
    async def test_submit_and_approve_persist(self, service, store, staff, evaluator, make_goal):
        goal = make_goal()
        store.add(goal)

        await service.submit_goal(goal.id, actor_id=staff.id, at=AT)
        approved = await service.approve_goal(goal.id, evaluator_id=evaluator.id, feedback="Great", at=AT)

        assert approved.status == GoalStatus.APPROVED
        stored = await store.get(Goal, goal.id)
        assert stored.status == GoalStatus.APPROVED
        assert stored.approved_by == evaluator.id
        assert stored.submitted_at == AT
        assert stored.evaluator_feedback == "Great"

    @pytest.mark.asyncio
    async def test_request_revision_returns_to_draft(self, service, store, staff, evaluator, make_goal):
        goal = make_goal(status=GoalStatus.SUBMITTED, submitted_at=AT)
        store.add(goal)

        returned = await service.request_goal_revision(goal.id, evaluator.id, "Add a baseline")

        assert returned.status == GoalStatus.DRAFT
        assert returned.evaluator_feedback == "Add a baseline"
        assert (await store.get(Goal, goal.id)).submitted_at is None

    @pytest.mark.asyncio
    async def test_rejected_action_writes_nothing(self, service, store, staff, make_goal, caplog):
        goal = make_goal(status=GoalStatus.SUBMITTED, submitted_at=AT)
        store.add(goal)

        with caplog.at_level(logging.WARNING, logger="stafftrak.services.cycle"):
            with pytest.raises(NotAuthorized):
                await service.approve_goal(goal.id, evaluator_id=staff.id)

        assert (await store.get(Goal, goal.id)) == goal
        assert "Rejected Goal.approve" in caplog.text

    @pytest.mark.asyncio
    async def test_invalid_transition(self, service, store, staff, make_goal):
        goal = make_goal(status=GoalStatus.APPROVED)
        store.add(goal)

        with pytest.raises(InvalidTransition):
            await service.submit_goal(goal.id, actor_id=staff.id)

    @pytest.mark.asyncio
    async def test_unknown_action(self, service, store, make_goal):
        goal = make_goal()
        store.add(goal)

        with pytest.raises(InvalidTransition, match="unknown action"):
            await service.apply("goal", goal.id, "archive")

    @pytest.mark.asyncio
    async def test_missing_record(self, service, staff):
        with pytest.raises(NotFound):
            await service.submit_goal(uuid4(), actor_id=staff.id)

    @pytest.mark.asyncio
    async def test_meeting_then_sign_off(self, service, store, staff, evaluator, make_meeting):
        meeting = make_meeting(MeetingType.INITIAL_GOALS)
        store.add(meeting)

        await service.complete_meeting(meeting.id, actor_id=evaluator.id, notes="Goals agreed", at=AT)
        signed = await service.sign_off_meeting(meeting.id, actor_id=staff.id, at=AT)

        assert signed.status == MeetingStatus.COMPLETED
        assert (await store.get(Meeting, meeting.id)).staff_signed_at == AT

    @pytest.mark.asyncio
    async def test_observation_lifecycle(self, service, store, evaluator, make_observation):
        observation = make_observation()
        store.add(observation)

        await service.start_observation(observation.id, actor_id=evaluator.id, at=AT)
        done = await service.complete_observation(observation.id, actor_id=evaluator.id, feedback="Strong pacing")

        assert done.status == ObservationStatus.COMPLETED
        assert done.started_at == AT

    @pytest.mark.asyncio
    async def test_summative_scoring_and_signatures(self, service, store, staff, evaluator, make_evaluation):
        evaluation = make_evaluation()
        store.add(evaluation)

        await service.score_domain(evaluation.id, evaluator.id, "1a", 4)
        scored = await service.score_domain(evaluation.id, evaluator.id, "1b", 3, feedback="Good routines")
        assert scored.overall_score == 3.5
        assert scored.overall_rating == Rating.HIGHLY_EFFECTIVE

        await service.submit_summative(evaluation.id, actor_id=evaluator.id, at=AT)
        signed = await service.sign_summative(evaluation.id, actor_id=staff.id, at=AT)

        assert signed.status == SummativeStatus.COMPLETED
        stored = await store.get(SummativeEvaluation, evaluation.id)
        assert stored.domain_scores["1b"].feedback == "Good routines"
        assert stored.completed_at == AT


class TestComplianceQueries:

    @pytest.mark.asyncio
    async def test_compliance_for_reads_fresh_records(self, service, store, staff, evaluator, make_goal):
        goals = [make_goal(status=GoalStatus.SUBMITTED, submitted_at=AT) for _ in range(3)]
        store.add(*goals)
        as_of = date(2025, 10, 20)

        before = await service.compliance_for(staff.id, as_of)
        assert before.milestone("goals_approved").detail == "0/3 approved"

        for goal in goals:
            await service.approve_goal(goal.id, evaluator_id=evaluator.id)

        after = await service.compliance_for(staff.id, as_of)
        assert after.milestone("goals_approved").completed
        assert "goals_approved" not in [m.key for m in after.overdue_milestones]

    @pytest.mark.asyncio
    async def test_fleet_report(self, service, tenant_id, staff, classified_staff):
        report = await service.fleet_report(tenant_id, date(2025, 11, 3))

        assert report.tenant_id == tenant_id
        assert report.staff_count == 2
        assert report.not_on_track_count == 2

    @pytest.mark.asyncio
    async def test_evaluator_dashboard(self, service, store, tenant_id, evaluator, make_goal):
        store.add(make_goal(status=GoalStatus.SUBMITTED, submitted_at=AT))

        stats = await service.evaluator_dashboard(tenant_id, evaluator.id, date(2025, 9, 1))

        assert stats.staff_assigned == 2
        assert stats.pending_goals == 1
        assert stats.overdue_items == 0

    @pytest.mark.asyncio
    async def test_action_items_name_the_observer(self, service, store, staff, make_observation):
        store.add(make_observation(scheduled_at=datetime.now(timezone.utc) + timedelta(days=2)))

        items = await service.action_items(staff.id)

        upcoming = next(i for i in items if i.kind == "upcoming_observation")
        assert upcoming.description == "Informal observation with Pat Principal"
