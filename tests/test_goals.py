"""Tests for the goal workflow."""

from datetime import datetime, timezone
from uuid import uuid4

import pytest

from stafftrak.models import GoalStatus
from stafftrak.workflow import InvalidTransition, MissingRequiredField, NotAuthorized, goals

SUBMITTED_AT = datetime(2025, 9, 10, 9, tzinfo=timezone.utc)
APPROVED_AT = datetime(2025, 9, 12, 15, tzinfo=timezone.utc)


class TestSubmit:

    def test_submit_draft(self, staff, make_goal):
        goal = make_goal()
        submitted = goals.submit(goal, actor_id=staff.id, at=SUBMITTED_AT)

        assert submitted.status == GoalStatus.SUBMITTED
        assert submitted.submitted_at == SUBMITTED_AT
        # Input record is untouched.
        assert goal.status == GoalStatus.DRAFT
        assert goal.submitted_at is None

    def test_revision_requested_goal_can_be_resubmitted(self, staff, make_goal):
        goal = make_goal(status=GoalStatus.REVISION_REQUESTED)
        assert goals.submit(goal, actor_id=staff.id).status == GoalStatus.SUBMITTED

    def test_cannot_submit_twice(self, staff, make_goal):
        submitted = goals.submit(make_goal(), actor_id=staff.id)
        with pytest.raises(InvalidTransition) as exc_info:
            goals.submit(submitted, actor_id=staff.id)

        assert exc_info.value.current_status == "submitted"
        assert exc_info.value.action == "submit"
        assert exc_info.value.target_status == "submitted"

    def test_only_owner_can_submit(self, evaluator, make_goal):
        with pytest.raises(NotAuthorized):
            goals.submit(make_goal(), actor_id=evaluator.id)

    def test_title_required(self, staff, make_goal):
        with pytest.raises(MissingRequiredField) as exc_info:
            goals.submit(make_goal(title="   "), actor_id=staff.id)
        assert exc_info.value.field == "title"


class TestReview:

    @pytest.fixture
    def submitted_goal(self, staff, make_goal):
        return goals.submit(make_goal(), actor_id=staff.id, at=SUBMITTED_AT)

    def test_approve(self, staff, evaluator, submitted_goal):
        approved = goals.approve(submitted_goal, staff, evaluator.id, feedback=" Nice work ", at=APPROVED_AT)

        assert approved.status == GoalStatus.APPROVED
        assert approved.approved_at == APPROVED_AT
        assert approved.approved_by == evaluator.id
        assert approved.evaluator_feedback == "Nice work"

    def test_approve_twice_is_invalid(self, staff, evaluator, submitted_goal):
        approved = goals.approve(submitted_goal, staff, evaluator.id)
        with pytest.raises(InvalidTransition) as exc_info:
            goals.approve(approved, staff, evaluator.id)
        assert exc_info.value.current_status == "approved"

    def test_cannot_approve_draft(self, staff, evaluator, make_goal):
        with pytest.raises(InvalidTransition):
            goals.approve(make_goal(), staff, evaluator.id)

    def test_only_assigned_evaluator_can_approve(self, staff, submitted_goal):
        with pytest.raises(NotAuthorized):
            goals.approve(submitted_goal, staff, uuid4())

    def test_staff_must_own_goal(self, classified_staff, evaluator, submitted_goal):
        with pytest.raises(ValueError, match="does not own"):
            goals.approve(submitted_goal, classified_staff, evaluator.id)

    def test_request_revision_returns_goal_to_draft(self, staff, evaluator, submitted_goal):
        returned = goals.request_revision(submitted_goal, staff, evaluator.id, feedback="Make it measurable")

        assert returned.status == GoalStatus.DRAFT
        assert returned.evaluator_feedback == "Make it measurable"
        assert returned.submitted_at is None

        resubmitted = goals.submit(returned, actor_id=staff.id)
        assert resubmitted.status == GoalStatus.SUBMITTED

    def test_request_revision_needs_feedback(self, staff, evaluator, submitted_goal):
        with pytest.raises(MissingRequiredField) as exc_info:
            goals.request_revision(submitted_goal, staff, evaluator.id, feedback="")
        assert exc_info.value.field == "evaluator_feedback"

    def test_cannot_request_revision_on_approved_goal(self, staff, evaluator, submitted_goal):
        approved = goals.approve(submitted_goal, staff, evaluator.id)
        with pytest.raises(InvalidTransition):
            goals.request_revision(approved, staff, evaluator.id, feedback="Too late")
