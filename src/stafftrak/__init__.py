"""
StaffTrak evaluation-cycle engine

Workflow state machines, deadline calendars, compliance tracking and
aggregate reporting for staff evaluation cycles.
"""

__version__ = "0.1.0"
