"""
Core data models for the StaffTrak engine.

This package contains:
- Record models mapping to the Supabase tables
- Derived compliance and reporting schemas
- Snapshot containers handed to the compliance and reporting layers
"""

from .database import (
    DomainScore,
    Goal,
    GoalStatus,
    GoalType,
    Meeting,
    MeetingStatus,
    MeetingType,
    Observation,
    ObservationStatus,
    ObservationType,
    Rating,
    SelfAssessment,
    SelfAssessmentStatus,
    StaffCategory,
    StaffMember,
    StaffRole,
    SummativeEvaluation,
    SummativeStatus,
)
from .outputs import (
    ActionItem,
    ActionSeverity,
    ComplianceRecord,
    EvaluationFunnel,
    EvaluatorDashboardStats,
    EvaluatorObservationStats,
    FleetReport,
    Milestone,
    MilestoneCompletion,
    MilestoneStatus,
    OffTrackStaff,
    StatusCounts,
)
from .snapshot import EntitySnapshot, StaffEntities, load_snapshot_file
from . import utils

__all__ = [
    # Record models
    "StaffMember",
    "Goal",
    "Observation",
    "Meeting",
    "SelfAssessment",
    "SummativeEvaluation",
    "DomainScore",

    # Enums
    "StaffRole",
    "StaffCategory",
    "GoalType",
    "GoalStatus",
    "ObservationType",
    "ObservationStatus",
    "MeetingType",
    "MeetingStatus",
    "SelfAssessmentStatus",
    "SummativeStatus",
    "Rating",

    # Derived outputs
    "Milestone",
    "MilestoneStatus",
    "ComplianceRecord",
    "OffTrackStaff",
    "EvaluatorObservationStats",
    "StatusCounts",
    "EvaluationFunnel",
    "MilestoneCompletion",
    "FleetReport",
    "EvaluatorDashboardStats",
    "ActionItem",
    "ActionSeverity",

    # Snapshots
    "StaffEntities",
    "EntitySnapshot",
    "load_snapshot_file",

    # Utilities
    "utils",
]
