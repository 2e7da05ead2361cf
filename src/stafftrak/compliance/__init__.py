"""
Compliance tracking: deadline calendars and the per-staff evaluator.
"""

from .calendar import (
    CALENDAR_DIR,
    CalendarError,
    CompliancePolicy,
    DeadlineCalendar,
    MilestoneDefinition,
    MilestoneKind,
    available_school_years,
    load_calendar,
    parse_calendar,
)
from .evaluator import (
    counted_observations,
    evaluate,
    evaluate_roster,
    milestone_completion,
    milestone_status,
)

__all__ = [
    # Calendar
    'CALENDAR_DIR',
    'CalendarError',
    'CompliancePolicy',
    'DeadlineCalendar',
    'MilestoneDefinition',
    'MilestoneKind',
    'load_calendar',
    'parse_calendar',
    'available_school_years',

    # Evaluator
    'evaluate',
    'evaluate_roster',
    'milestone_completion',
    'milestone_status',
    'counted_observations',
]
