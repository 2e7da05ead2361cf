"""
Record models mapping to the StaffTrak Supabase tables.

These Pydantic models map to the existing schema:
- public.profiles
- public.goals
- public.observations
- public.meetings
- public.self_assessments
- public.summative_evaluations

Status columns are stored as plain text; here they are closed enums so an
unknown status fails validation at the boundary instead of leaking into the
workflow layer.
"""

from datetime import date, datetime
from enum import Enum
from typing import Any, Dict, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class StaffRole(str, Enum):
    """Application roles."""
    STAFF = "staff"
    EVALUATOR = "evaluator"
    ADMIN = "admin"
    # Accounts outside the evaluation cycle (district office, support)
    OTHER = "other"


class StaffCategory(str, Enum):
    """Staff categories drive rubric choice and cycle requirements."""
    LICENSED = "licensed"
    CLASSIFIED = "classified"


class GoalType(str, Enum):
    STUDENT_LEARNING = "slg"
    PROFESSIONAL_GROWTH = "pgg"
    IMPROVEMENT = "improvement"


class GoalStatus(str, Enum):
    DRAFT = "draft"
    SUBMITTED = "submitted"
    APPROVED = "approved"
    REVISION_REQUESTED = "revision_requested"


class ObservationType(str, Enum):
    FORMAL = "formal"
    INFORMAL = "informal"


class ObservationStatus(str, Enum):
    SCHEDULED = "scheduled"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class MeetingType(str, Enum):
    INITIAL_GOALS = "initial_goals"
    MID_YEAR_REVIEW = "mid_year_review"
    END_OF_YEAR_REVIEW = "end_of_year_review"


class MeetingStatus(str, Enum):
    SCHEDULED = "scheduled"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"


class SelfAssessmentStatus(str, Enum):
    DRAFT = "draft"
    SUBMITTED = "submitted"


class SummativeStatus(str, Enum):
    DRAFT = "draft"
    PENDING_STAFF_SIGNATURE = "pending_staff_signature"
    COMPLETED = "completed"


class Rating(str, Enum):
    """Four-tier summative rating bands."""
    HIGHLY_EFFECTIVE = "Highly Effective"
    EFFECTIVE = "Effective"
    DEVELOPING = "Developing"
    NEEDS_IMPROVEMENT = "Needs Improvement"


# Older rows were written with a couple of different meeting_type spellings.
_LEGACY_MEETING_TYPES = {
    "end_year_review": MeetingType.END_OF_YEAR_REVIEW,
    "mid_year": MeetingType.MID_YEAR_REVIEW,
}


class StaffMember(BaseModel):
    """Maps to public.profiles."""
    model_config = ConfigDict(from_attributes=True, populate_by_name=True)

    id: UUID
    tenant_id: UUID
    full_name: str
    email: Optional[str] = None
    role: StaffRole = StaffRole.STAFF
    staff_category: Optional[StaffCategory] = Field(None, alias="staff_type")
    evaluator_id: Optional[UUID] = None
    hire_date: Optional[date] = None
    years_at_school: Optional[int] = None
    is_active: bool = True

    @field_validator("role", mode="before")
    @classmethod
    def parse_role(cls, v):
        """Parse profile.role strings into StaffRole."""
        if v is None or isinstance(v, StaffRole):
            return v or StaffRole.STAFF

        role_lower = str(v).strip().lower()
        if "admin" in role_lower or role_lower == "hr":
            return StaffRole.ADMIN
        elif "evaluator" in role_lower:
            return StaffRole.EVALUATOR
        elif "staff" in role_lower:
            # licensed_staff / classified_staff
            return StaffRole.STAFF
        return StaffRole.OTHER

    @model_validator(mode="before")
    @classmethod
    def category_from_raw_role(cls, data):
        """Older profiles carry the category only inside role (licensed_staff)."""
        if isinstance(data, dict) and not (data.get("staff_type") or data.get("staff_category")):
            raw_role = str(data.get("role") or "")
            if raw_role.startswith("licensed"):
                data = {**data, "staff_type": StaffCategory.LICENSED}
            elif raw_role.startswith("classified"):
                data = {**data, "staff_type": StaffCategory.CLASSIFIED}
        return data

    def years_at_school_on(self, on: date) -> Optional[int]:
        """
        Years at school as of a date, counted from hire_date.

        Year 1 starts on the hire date; a further year is counted only once
        the hire anniversary has passed. Falls back to the stored
        years_at_school when no hire date is recorded.
        """
        if self.hire_date is None:
            return self.years_at_school

        years = on.year - self.hire_date.year
        if (on.month, on.day) < (self.hire_date.month, self.hire_date.day):
            years -= 1
        return max(years, 0) + 1

    def is_probationary(self, probationary_years: int, on: Optional[date] = None) -> bool:
        """Licensed staff within their first N years are on the probationary track."""
        years = self.years_at_school_on(on) if on else self.years_at_school
        if years is None:
            return True
        return years <= probationary_years


class Goal(BaseModel):
    """Maps to public.goals."""
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    tenant_id: UUID
    staff_id: UUID
    goal_type: GoalType
    title: str = ""
    description: Optional[str] = None
    status: GoalStatus = GoalStatus.DRAFT
    submitted_at: Optional[datetime] = None
    approved_at: Optional[datetime] = None
    approved_by: Optional[UUID] = None
    evaluator_feedback: Optional[str] = None
    created_at: Optional[datetime] = None


class Observation(BaseModel):
    """Maps to public.observations."""
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    tenant_id: UUID
    staff_id: UUID
    observer_id: UUID
    observation_type: ObservationType = ObservationType.INFORMAL
    status: ObservationStatus = ObservationStatus.SCHEDULED
    scheduled_at: Optional[datetime] = None
    started_at: Optional[datetime] = None
    ended_at: Optional[datetime] = None
    feedback: Optional[str] = None
    next_steps: Optional[str] = None
    share_notes_with_staff: bool = False
    pre_observation_form: Optional[Dict[str, Any]] = None
    pre_observation_submitted_at: Optional[datetime] = None
    post_observation_form: Optional[Dict[str, Any]] = None
    post_observation_submitted_at: Optional[datetime] = None
    cancelled_at: Optional[datetime] = None
    cancel_reason: Optional[str] = None
    created_at: Optional[datetime] = None

    @property
    def is_formal(self) -> bool:
        return self.observation_type == ObservationType.FORMAL

    @property
    def has_observation_forms(self) -> bool:
        """Both formal sub-forms have been submitted."""
        return (
            self.pre_observation_submitted_at is not None
            and self.post_observation_submitted_at is not None
        )


class Meeting(BaseModel):
    """Maps to public.meetings."""
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    tenant_id: UUID
    staff_id: UUID
    evaluator_id: UUID
    meeting_type: MeetingType
    status: MeetingStatus = MeetingStatus.SCHEDULED
    scheduled_at: Optional[datetime] = None
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    evaluator_signed_at: Optional[datetime] = None
    staff_signed_at: Optional[datetime] = None
    notes: Optional[str] = None
    action_items: Optional[str] = None
    created_at: Optional[datetime] = None

    @field_validator("meeting_type", mode="before")
    @classmethod
    def normalise_meeting_type(cls, v):
        if isinstance(v, str) and v in _LEGACY_MEETING_TYPES:
            return _LEGACY_MEETING_TYPES[v]
        return v

    @model_validator(mode="after")
    def signatures_require_completion(self):
        """Sign-off timestamps only exist on completed meetings."""
        if self.status != MeetingStatus.COMPLETED and (self.evaluator_signed_at or self.staff_signed_at):
            raise ValueError("meeting sign-off timestamps require status 'completed'")
        return self


class SelfAssessment(BaseModel):
    """Maps to public.self_assessments."""
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    tenant_id: UUID
    staff_id: UUID
    school_year: Optional[str] = None
    responses: Dict[str, Any] = Field(default_factory=dict)
    submitted_at: Optional[datetime] = None
    created_at: Optional[datetime] = None

    @property
    def status(self) -> SelfAssessmentStatus:
        if self.submitted_at is not None:
            return SelfAssessmentStatus.SUBMITTED
        return SelfAssessmentStatus.DRAFT


class DomainScore(BaseModel):
    """Score and feedback for one rubric domain."""
    score: Optional[int] = Field(None, ge=1, le=4)
    feedback: Optional[str] = None


class SummativeEvaluation(BaseModel):
    """Maps to public.summative_evaluations."""
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    tenant_id: UUID
    staff_id: UUID
    evaluator_id: UUID
    status: SummativeStatus = SummativeStatus.DRAFT
    domain_scores: Dict[str, DomainScore] = Field(default_factory=dict)
    overall_score: Optional[float] = None
    overall_rating: Optional[Rating] = None

    areas_of_strength: Optional[str] = None
    areas_for_growth: Optional[str] = None
    recommended_support: Optional[str] = None
    additional_comments: Optional[str] = None
    staff_comments: Optional[str] = None

    evaluator_signature_at: Optional[datetime] = None
    staff_signature_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    created_at: Optional[datetime] = None

    @model_validator(mode="after")
    def completion_requires_staff_signature(self):
        """A completed evaluation always carries the staff signature."""
        if self.status == SummativeStatus.COMPLETED and self.staff_signature_at is None:
            raise ValueError("completed summative evaluation requires staff_signature_at")
        return self

    def entered_scores(self) -> Dict[str, int]:
        """Domain scores that have actually been entered."""
        return {
            domain_id: domain.score
            for domain_id, domain in self.domain_scores.items()
            if domain.score is not None
        }
