"""Tests for generic workflow dispatch."""

from uuid import uuid4

import pytest

from stafftrak.models import GoalStatus, MeetingType, ObservationStatus, StaffMember
from stafftrak.workflow import (
    InvalidTransition,
    Transition,
    available_actions,
    changed_fields,
    current_status,
    transition,
)
from stafftrak.workflow import base


class TestDispatch:

    def test_transition_by_name(self, staff, evaluator, make_goal):
        submitted = transition(make_goal(), "submit", actor_id=staff.id)
        approved = transition(submitted, "approve", staff=staff, evaluator_id=evaluator.id)
        assert approved.status == GoalStatus.APPROVED

    def test_unknown_action(self, make_goal):
        with pytest.raises(InvalidTransition, match="unknown action"):
            transition(make_goal(), "publish")

    def test_current_status(self, make_observation, make_self_assessment):
        assert current_status(make_observation()) == ObservationStatus.SCHEDULED
        assert current_status(make_self_assessment()).value == "draft"

    def test_records_without_status(self, staff):
        with pytest.raises(TypeError):
            current_status(staff)

    def test_available_actions(self, make_goal, make_meeting):
        assert available_actions(make_goal()) == ["submit"]
        assert set(available_actions(make_goal(status=GoalStatus.SUBMITTED))) == {"approve", "request_revision"}
        assert available_actions(make_goal(status=GoalStatus.APPROVED)) == []
        assert set(available_actions(make_meeting(MeetingType.MID_YEAR_REVIEW))) == {"start", "complete"}

    def test_duplicate_registration_rejected(self):
        action = f"noop-{uuid4()}"
        Transition(StaffMember, action, [])
        try:
            with pytest.raises(ValueError, match="Duplicate"):
                Transition(StaffMember, action, [])
        finally:
            base._REGISTRY.pop((StaffMember, action))


class TestChangedFields:

    def test_only_changed_fields(self, staff, make_goal):
        goal = make_goal()
        submitted = transition(goal, "submit", actor_id=staff.id)

        changes = changed_fields(goal, submitted)
        assert set(changes) == {"status", "submitted_at"}
        assert changes["status"] == GoalStatus.SUBMITTED

    def test_no_changes(self, make_goal):
        goal = make_goal()
        assert changed_fields(goal, goal) == {}
