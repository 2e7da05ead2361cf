"""Shared fixtures: a small tenant with one evaluator and two staff members."""

from datetime import date
from uuid import uuid4

import pytest

from stafftrak.compliance import load_calendar
from stafftrak.models import (
    Goal,
    GoalType,
    Meeting,
    Observation,
    SelfAssessment,
    StaffCategory,
    StaffMember,
    StaffRole,
    SummativeEvaluation,
)


@pytest.fixture
def tenant_id():
    return uuid4()


@pytest.fixture
def evaluator(tenant_id):
    return StaffMember(
        id=uuid4(),
        tenant_id=tenant_id,
        full_name="Pat Principal",
        role=StaffRole.EVALUATOR,
    )


@pytest.fixture
def staff(tenant_id, evaluator):
    """Licensed teacher in their sixth year (permanent track)."""
    return StaffMember(
        id=uuid4(),
        tenant_id=tenant_id,
        full_name="Lee Licensed",
        role="licensed_staff",
        staff_category=StaffCategory.LICENSED,
        evaluator_id=evaluator.id,
        hire_date=date(2020, 8, 15),
    )


@pytest.fixture
def classified_staff(tenant_id, evaluator):
    return StaffMember(
        id=uuid4(),
        tenant_id=tenant_id,
        full_name="Casey Classified",
        role="classified_staff",
        staff_category=StaffCategory.CLASSIFIED,
        evaluator_id=evaluator.id,
        hire_date=date(2018, 1, 10),
    )


@pytest.fixture
def calendar():
    return load_calendar("2025-2026")


@pytest.fixture
def make_goal(staff):
    def factory(owner=None, **fields):
        owner = owner or staff
        fields.setdefault("goal_type", GoalType.STUDENT_LEARNING)
        fields.setdefault("title", "Raise reading fluency")
        return Goal(id=uuid4(), tenant_id=owner.tenant_id, staff_id=owner.id, **fields)
    return factory


@pytest.fixture
def make_observation(staff):
    def factory(owner=None, **fields):
        owner = owner or staff
        fields.setdefault("observer_id", owner.evaluator_id)
        return Observation(id=uuid4(), tenant_id=owner.tenant_id, staff_id=owner.id, **fields)
    return factory


@pytest.fixture
def make_meeting(staff):
    def factory(meeting_type, owner=None, **fields):
        owner = owner or staff
        fields.setdefault("evaluator_id", owner.evaluator_id)
        return Meeting(
            id=uuid4(), tenant_id=owner.tenant_id, staff_id=owner.id, meeting_type=meeting_type, **fields
        )
    return factory


@pytest.fixture
def make_self_assessment(staff):
    def factory(owner=None, **fields):
        owner = owner or staff
        fields.setdefault("school_year", "2025-2026")
        return SelfAssessment(id=uuid4(), tenant_id=owner.tenant_id, staff_id=owner.id, **fields)
    return factory


@pytest.fixture
def make_evaluation(staff):
    def factory(owner=None, **fields):
        owner = owner or staff
        fields.setdefault("evaluator_id", owner.evaluator_id)
        return SummativeEvaluation(id=uuid4(), tenant_id=owner.tenant_id, staff_id=owner.id, **fields)
    return factory
