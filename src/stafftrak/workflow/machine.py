"""Uniform entry points over the per-record state machines."""

from enum import Enum
from typing import Any, List

from pydantic import BaseModel

from . import goals, meetings, observations, self_assessments, summative  # noqa: F401  (registers transitions)
from .base import Transition, lookup, transitions_for
from .errors import InvalidTransition


def current_status(record: BaseModel) -> Enum:
    """Status of any workflow record."""
    status = getattr(record, "status", None)
    if not isinstance(status, Enum):
        raise TypeError(f"{type(record).__name__} has no workflow status")
    return status


def get_transition(record: BaseModel, action: str) -> Transition:
    found = lookup(type(record), action)
    if found is None or found.handler is None:
        raise InvalidTransition(type(record).__name__, current_status(record), action, reason="unknown action")
    return found


def transition(record: BaseModel, action: str, **kwargs: Any) -> BaseModel:
    """
    Apply a named action to a record and return the updated copy.

    kwargs are passed straight through to the action function (actor_id,
    at, feedback, staff, ...). Raises a WorkflowError subclass when the
    action is not allowed; the input record is never modified.
    """
    return get_transition(record, action).handler(record, **kwargs)


def available_actions(record: BaseModel) -> List[str]:
    """Actions whose status precondition the record currently satisfies."""
    status = current_status(record)
    return [t.action for t in transitions_for(type(record)) if status in t.sources]
