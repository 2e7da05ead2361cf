"""Tests for record models, snapshots and model utilities."""

from datetime import date, datetime, timedelta, timezone
from decimal import Decimal
from uuid import uuid4

import pytest
from pydantic import ValidationError

from stafftrak.models import (
    EntitySnapshot,
    MeetingStatus,
    MeetingType,
    Rating,
    StaffCategory,
    StaffMember,
    StaffRole,
    SummativeStatus,
    load_snapshot_file,
)
from stafftrak.models.utils import (
    current_evaluation,
    mean_score,
    overall_from_domains,
    percent,
    safe_rate,
    score_to_rating,
)


class TestStaffMember:
    """Profile parsing and tenure."""

    def test_role_strings_are_parsed(self, tenant_id):
        for raw, expected in [
            ("licensed_staff", StaffRole.STAFF),
            ("classified_staff", StaffRole.STAFF),
            ("evaluator", StaffRole.EVALUATOR),
            ("district_admin", StaffRole.ADMIN),
            ("hr", StaffRole.ADMIN),
            (" HR ", StaffRole.ADMIN),
            ("superintendent", StaffRole.OTHER),
            ("other", StaffRole.OTHER),
        ]:
            member = StaffMember(id=uuid4(), tenant_id=tenant_id, full_name="X", role=raw)
            assert member.role == expected

    def test_category_read_from_staff_type_column(self, tenant_id):
        member = StaffMember.model_validate({
            "id": uuid4(), "tenant_id": tenant_id, "full_name": "X",
            "role": "staff", "staff_type": "classified",
        })
        assert member.staff_category == StaffCategory.CLASSIFIED

    def test_category_inferred_from_legacy_role(self, tenant_id):
        member = StaffMember.model_validate({
            "id": uuid4(), "tenant_id": tenant_id, "full_name": "X", "role": "licensed_staff",
        })
        assert member.staff_category == StaffCategory.LICENSED
        assert member.role == StaffRole.STAFF

    def test_years_at_school_counts_hire_year_as_year_one(self, tenant_id):
        member = StaffMember(id=uuid4(), tenant_id=tenant_id, full_name="X", hire_date=date(2023, 8, 20))
        assert member.years_at_school_on(date(2023, 8, 20)) == 1
        assert member.years_at_school_on(date(2024, 8, 19)) == 1
        assert member.years_at_school_on(date(2024, 8, 20)) == 2
        assert member.years_at_school_on(date(2026, 9, 1)) == 4

    def test_years_at_school_falls_back_to_stored_value(self, tenant_id):
        member = StaffMember(id=uuid4(), tenant_id=tenant_id, full_name="X", years_at_school=7)
        assert member.years_at_school_on(date(2025, 9, 1)) == 7

    def test_probationary(self, tenant_id):
        member = StaffMember(id=uuid4(), tenant_id=tenant_id, full_name="X", hire_date=date(2023, 8, 20))
        assert member.is_probationary(3, on=date(2025, 9, 1))
        assert not member.is_probationary(3, on=date(2026, 9, 1))

    def test_unknown_tenure_is_probationary(self, tenant_id):
        member = StaffMember(id=uuid4(), tenant_id=tenant_id, full_name="X")
        assert member.is_probationary(3, on=date(2025, 9, 1))


class TestRecordInvariants:

    def test_legacy_meeting_types_are_normalised(self, make_meeting):
        assert make_meeting("end_year_review").meeting_type == MeetingType.END_OF_YEAR_REVIEW
        assert make_meeting("mid_year").meeting_type == MeetingType.MID_YEAR_REVIEW

    def test_unknown_meeting_type_rejected(self, make_meeting):
        with pytest.raises(ValidationError):
            make_meeting("annual_picnic")

    def test_meeting_signature_requires_completion(self, make_meeting):
        with pytest.raises(ValidationError, match="require status 'completed'"):
            make_meeting(
                MeetingType.INITIAL_GOALS,
                status=MeetingStatus.SCHEDULED,
                evaluator_signed_at=datetime.now(timezone.utc),
            )

    def test_completed_summative_requires_staff_signature(self, make_evaluation):
        with pytest.raises(ValidationError, match="staff_signature_at"):
            make_evaluation(status=SummativeStatus.COMPLETED)

    def test_domain_score_range(self, make_evaluation):
        with pytest.raises(ValidationError):
            make_evaluation(domain_scores={"1a": {"score": 5}})

    def test_self_assessment_status_derived_from_submission(self, make_self_assessment):
        assert make_self_assessment().status.value == "draft"
        assert make_self_assessment(submitted_at=datetime.now(timezone.utc)).status.value == "submitted"


class TestScoring:
    """Summative averaging and rating bands."""

    def test_mean_rounds_half_up(self):
        assert mean_score([4, 3, 3]) == Decimal("3.33")
        assert mean_score([4, 4, 3]) == Decimal("3.67")
        assert mean_score([]) is None

    @pytest.mark.parametrize("score,rating", [
        (4.0, Rating.HIGHLY_EFFECTIVE),
        (3.5, Rating.HIGHLY_EFFECTIVE),
        (3.49, Rating.EFFECTIVE),
        (2.5, Rating.EFFECTIVE),
        (2.49, Rating.DEVELOPING),
        (1.5, Rating.DEVELOPING),
        (1.49, Rating.NEEDS_IMPROVEMENT),
        (1.0, Rating.NEEDS_IMPROVEMENT),
    ])
    def test_rating_bands(self, score, rating):
        assert score_to_rating(score) == rating

    def test_rating_applies_to_rounded_score(self):
        assert score_to_rating(mean_score([3.5, 3.49])) == Rating.HIGHLY_EFFECTIVE  # 3.495 -> 3.50
        assert overall_from_domains({"a": 4, "b": 4, "c": 3, "d": 3}) == (3.5, Rating.HIGHLY_EFFECTIVE)

    def test_overall_ignores_unscored_domains(self):
        assert overall_from_domains({"a": 4, "b": 2, "c": None}) == (3.0, Rating.EFFECTIVE)

    def test_overall_undefined_without_scores(self):
        assert overall_from_domains({"a": None}) == (None, None)


class TestRates:

    def test_safe_rate_zero_denominator(self):
        assert safe_rate(0, 0) == 0.0
        assert safe_rate(5, 0) == 0.0

    def test_safe_rate(self):
        assert safe_rate(1, 4) == 0.25

    def test_percent_rounds_half_up(self):
        assert percent(1, 8) == 13
        assert percent(2, 3) == 67
        assert percent(1, 0) == 0


class TestCurrentEvaluation:

    def test_latest_by_created_at(self, make_evaluation):
        base = datetime(2025, 9, 1, tzinfo=timezone.utc)
        older = make_evaluation(created_at=base)
        newer = make_evaluation(created_at=base + timedelta(days=30))
        undated = make_evaluation()
        assert current_evaluation([older, newer, undated]) is newer

    def test_none_when_no_evaluations(self):
        assert current_evaluation([]) is None


class TestSnapshot:

    def test_staff_members_excludes_evaluators_and_inactive(self, staff, evaluator, tenant_id):
        inactive = StaffMember(id=uuid4(), tenant_id=tenant_id, full_name="Gone", role="staff", is_active=False)
        snapshot = EntitySnapshot(roster=[staff, evaluator, inactive])
        assert snapshot.staff_members() == [staff]
        assert len(snapshot.staff_members(include_inactive=True)) == 2

    def test_split_by_staff(self, staff, classified_staff, make_goal, make_meeting):
        goal = make_goal()
        other_goal = make_goal(owner=classified_staff)
        meeting = make_meeting(MeetingType.INITIAL_GOALS)
        snapshot = EntitySnapshot(roster=[staff, classified_staff], goals=[goal, other_goal], meetings=[meeting])

        grouped = snapshot.split_by_staff()
        assert grouped[staff.id].goals == [goal]
        assert grouped[staff.id].meetings == [meeting]
        assert grouped[classified_staff.id].goals == [other_goal]
        assert grouped[classified_staff.id].meetings == []

    def test_display_name(self, staff, evaluator):
        snapshot = EntitySnapshot(roster=[staff], profiles=[evaluator])
        assert snapshot.display_name(evaluator.id) == "Pat Principal"
        assert snapshot.display_name(uuid4()) is None
        assert snapshot.display_name(None) is None

    def test_load_snapshot_file(self, tmp_path, staff, make_goal):
        goal = make_goal()
        path = tmp_path / "snapshot.json"
        path.write_text(EntitySnapshot(roster=[staff], goals=[goal]).model_dump_json())

        loaded = load_snapshot_file(path)
        assert loaded.roster[0].id == staff.id
        assert loaded.roster[0].staff_category == StaffCategory.LICENSED
        assert loaded.goals == [goal]
