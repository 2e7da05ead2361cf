"""
Workflow state machines for evaluation-cycle records.

Goals, observations, meetings, self-assessments and summative evaluations
each move through their own closed set of statuses. Every action is a pure
function returning an updated copy of the record.
"""

from .errors import (
    InvalidTransition,
    MissingRequiredField,
    NotAuthorized,
    NotFound,
    StaffTrakError,
    WorkflowError,
)
from .base import Transition, changed_fields
from .machine import available_actions, current_status, get_transition, transition
from . import goals, meetings, observations, self_assessments, summative

__all__ = [
    # Errors
    'StaffTrakError',
    'WorkflowError',
    'InvalidTransition',
    'MissingRequiredField',
    'NotAuthorized',
    'NotFound',

    # Dispatch
    'Transition',
    'transition',
    'current_status',
    'get_transition',
    'available_actions',
    'changed_fields',

    # Per-record machines
    'goals',
    'observations',
    'meetings',
    'self_assessments',
    'summative',
]
