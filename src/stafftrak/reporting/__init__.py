"""
Read-only reporting over compliance records and cycle snapshots.
"""

from .aggregates import (
    UNKNOWN_EVALUATOR,
    build_fleet_report,
    evaluation_funnel,
    milestone_completion_rates,
    not_on_track_count,
    observation_stats_by_evaluator,
    staff_not_on_track,
)
from .dashboard import evaluator_dashboard_stats, staff_action_items

__all__ = [
    'UNKNOWN_EVALUATOR',
    'staff_not_on_track',
    'not_on_track_count',
    'observation_stats_by_evaluator',
    'evaluation_funnel',
    'milestone_completion_rates',
    'build_fleet_report',
    'evaluator_dashboard_stats',
    'staff_action_items',
]
