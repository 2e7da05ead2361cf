"""
Derived output schemas for the compliance and reporting layers:
Milestone → ComplianceRecord → fleet-wide report sections.

Nothing here is persisted. Every instance is computed from a snapshot of
store records and can be thrown away and recomputed at any time.
"""

from datetime import date, datetime
from enum import Enum
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, Field

from .database import StaffCategory


class MilestoneStatus(str, Enum):
    COMPLETE = "complete"
    PENDING = "pending"
    OVERDUE = "overdue"


class Milestone(BaseModel):
    """One dated checkpoint of the evaluation cycle for one staff member."""
    key: str
    name: str
    due_date: date
    completed: bool
    status: MilestoneStatus
    detail: Optional[str] = None  # e.g. "2/3 approved"


class ComplianceRecord(BaseModel):
    """Milestone status list and on-track flag for one staff member."""
    staff_id: UUID
    staff_name: str
    staff_category: Optional[StaffCategory] = None
    evaluator_id: Optional[UUID] = None
    school_year: str
    as_of: date

    milestones: List[Milestone] = []
    on_track: bool = True
    next_step: Optional[Milestone] = None

    @property
    def overdue_milestones(self) -> List[Milestone]:
        return [m for m in self.milestones if m.status == MilestoneStatus.OVERDUE]

    @property
    def completed_count(self) -> int:
        return sum(1 for m in self.milestones if m.completed)

    @property
    def progress_percent(self) -> int:
        """Share of applicable milestones already complete."""
        if not self.milestones:
            return 0
        return round(self.completed_count * 100 / len(self.milestones))

    def milestone(self, key: str) -> Optional[Milestone]:
        return next((m for m in self.milestones if m.key == key), None)


class OffTrackStaff(BaseModel):
    """Staff member with at least one overdue milestone."""
    staff_id: UUID
    staff_name: str
    staff_category: Optional[StaffCategory] = None
    evaluator_id: Optional[UUID] = None
    overdue: List[Milestone] = []
    next_step: Optional[Milestone] = None


class EvaluatorObservationStats(BaseModel):
    """Observation workload and completion for one observer."""
    evaluator_id: UUID
    evaluator_name: str = "Unknown Evaluator"
    assigned_staff: int = 0
    total: int = 0
    completed: int = 0
    scheduled: int = 0
    in_progress: int = 0
    cancelled: int = 0
    completion_rate: float = 0.0  # completed / total, 0.0 when total is 0
    completion_percent: int = 0


class StatusCounts(BaseModel):
    """Summative evaluation funnel for one group of staff."""
    total: int = 0
    not_started: int = 0
    in_progress: int = 0
    pending_signature: int = 0
    completed: int = 0


class EvaluationFunnel(BaseModel):
    licensed: StatusCounts = Field(default_factory=StatusCounts)
    classified: StatusCounts = Field(default_factory=StatusCounts)
    all: StatusCounts = Field(default_factory=StatusCounts)


class MilestoneCompletion(BaseModel):
    """Fleet-wide tally for one milestone."""
    key: str
    name: str
    due_date: date
    applicable: int = 0
    complete: int = 0
    pending: int = 0
    overdue: int = 0
    percent_complete: int = 0


class FleetReport(BaseModel):
    """Everything the reports screen shows, as one read-only projection."""
    tenant_id: Optional[UUID] = None
    school_year: str
    as_of: date
    generated_at: datetime

    staff_count: int = 0
    on_track_count: int = 0
    not_on_track: List[OffTrackStaff] = []
    observation_stats: List[EvaluatorObservationStats] = []
    evaluation_funnel: EvaluationFunnel = Field(default_factory=EvaluationFunnel)
    milestone_completion: List[MilestoneCompletion] = []

    @property
    def not_on_track_count(self) -> int:
        return len(self.not_on_track)


class EvaluatorDashboardStats(BaseModel):
    """Headline numbers on an evaluator's dashboard."""
    evaluator_id: UUID
    staff_assigned: int = 0
    observations_due: int = 0
    pending_goals: int = 0
    overdue_items: int = 0
    pending_signatures: int = 0


class ActionSeverity(str, Enum):
    INFO = "info"
    WARNING = "warning"
    URGENT = "urgent"


class ActionItem(BaseModel):
    """Something a staff member should do next."""
    kind: str
    severity: ActionSeverity
    title: str
    description: str
    count: int = 1
    related_ids: List[UUID] = []
