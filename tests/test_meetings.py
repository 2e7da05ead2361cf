"""Tests for the meeting workflow."""

from datetime import datetime, timezone

import pytest

from stafftrak.models import MeetingStatus, MeetingType
from stafftrak.workflow import InvalidTransition, NotAuthorized, meetings

HELD_AT = datetime(2025, 10, 20, 14, tzinfo=timezone.utc)


class TestMeetingWorkflow:

    @pytest.fixture
    def meeting(self, make_meeting):
        return make_meeting(MeetingType.INITIAL_GOALS)

    def test_complete_signs_for_evaluator(self, evaluator, meeting):
        done = meetings.complete(meeting, actor_id=evaluator.id, notes="Agreed on goals", at=HELD_AT)

        assert done.status == MeetingStatus.COMPLETED
        assert done.completed_at == HELD_AT
        assert done.evaluator_signed_at == HELD_AT
        assert done.started_at == HELD_AT
        assert done.notes == "Agreed on goals"
        assert done.staff_signed_at is None

    def test_start_then_complete_keeps_start_time(self, evaluator, meeting):
        started = meetings.start(meeting, actor_id=evaluator.id, at=HELD_AT)
        assert started.status == MeetingStatus.IN_PROGRESS

        done = meetings.complete(started, actor_id=evaluator.id)
        assert done.started_at == HELD_AT
        assert done.completed_at >= HELD_AT

    def test_only_evaluator_completes(self, staff, meeting):
        with pytest.raises(NotAuthorized):
            meetings.complete(meeting, actor_id=staff.id)

    def test_cannot_complete_twice(self, evaluator, meeting):
        done = meetings.complete(meeting, actor_id=evaluator.id)
        with pytest.raises(InvalidTransition):
            meetings.complete(done, actor_id=evaluator.id)

    def test_staff_sign_off(self, staff, evaluator, meeting):
        done = meetings.complete(meeting, actor_id=evaluator.id)
        signed = meetings.staff_sign_off(done, actor_id=staff.id, at=HELD_AT)

        assert signed.staff_signed_at == HELD_AT
        assert signed.status == MeetingStatus.COMPLETED

    def test_staff_sign_off_only_once(self, staff, evaluator, meeting):
        signed = meetings.staff_sign_off(meetings.complete(meeting, actor_id=evaluator.id), actor_id=staff.id)
        with pytest.raises(InvalidTransition, match="already signed off"):
            meetings.staff_sign_off(signed, actor_id=staff.id)

    def test_cannot_sign_off_before_completion(self, staff, meeting):
        with pytest.raises(InvalidTransition):
            meetings.staff_sign_off(meeting, actor_id=staff.id)

    def test_only_staff_member_signs_off(self, evaluator, meeting):
        done = meetings.complete(meeting, actor_id=evaluator.id)
        with pytest.raises(NotAuthorized):
            meetings.staff_sign_off(done, actor_id=evaluator.id)
