"""
Shared machinery for the per-record state machines.

Each action is declared once as a Transition (record type, action name,
allowed source statuses, target status) and bound to the pure function that
performs it. The function checks every precondition first and only then
builds the updated copy, so a rejected action never leaves a half-updated
record behind.
"""

import logging
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Callable, Dict, FrozenSet, Iterable, List, Optional, Tuple, Type, TypeVar

from pydantic import BaseModel

from .errors import InvalidTransition, MissingRequiredField, NotAuthorized


logger = logging.getLogger(__name__)

R = TypeVar("R", bound=BaseModel)

_REGISTRY: Dict[Tuple[type, str], "Transition"] = {}


class Transition:
    """One allowed action on one record type."""

    def __init__(
        self,
        record_type: Type[BaseModel],
        action: str,
        sources: Iterable[Enum],
        target: Optional[Enum] = None,
        needs_staff: bool = False,
    ):
        self.record_type = record_type
        self.action = action
        self.sources: FrozenSet[Enum] = frozenset(sources)
        self.target = target
        self.needs_staff = needs_staff
        self.handler: Optional[Callable[..., BaseModel]] = None

        key = (record_type, action)
        if key in _REGISTRY:
            raise ValueError(f"Duplicate transition {record_type.__name__}.{action}")
        _REGISTRY[key] = self

    @property
    def record_name(self) -> str:
        return self.record_type.__name__

    def handles(self, fn: Callable[..., R]) -> Callable[..., R]:
        """Decorator binding the function that performs this action."""
        self.handler = fn
        return fn

    def check(self, record: BaseModel) -> None:
        """Raise InvalidTransition unless the record is in a source status."""
        if record.status not in self.sources:
            raise InvalidTransition(self.record_name, record.status, self.action, self.target)

    def reject(self, record: BaseModel, reason: str) -> InvalidTransition:
        return InvalidTransition(self.record_name, record.status, self.action, self.target, reason)

    def require_actor(self, actor_id: Any, expected_id: Any, reason: str) -> None:
        if actor_id is None or actor_id != expected_id:
            raise NotAuthorized(self.record_name, self.action, actor_id, reason)

    def require_text(self, value: Optional[str], field: str) -> str:
        """Non-blank text or MissingRequiredField."""
        if value is None or not str(value).strip():
            raise MissingRequiredField(self.record_name, field, self.action)
        return str(value).strip()

    def __repr__(self) -> str:
        sources = ", ".join(sorted(s.value for s in self.sources))
        target = self.target.value if self.target is not None else "-"
        return f"<Transition {self.record_name}.{self.action} [{sources}] -> {target}>"


def lookup(record_type: type, action: str) -> Optional[Transition]:
    return _REGISTRY.get((record_type, action))


def transitions_for(record_type: type) -> List[Transition]:
    return [t for (rt, _), t in _REGISTRY.items() if rt is record_type]


def now_utc() -> datetime:
    return datetime.now(timezone.utc)


def updated(record: R, **changes: Any) -> R:
    """
    Validated copy of record with changes applied.

    Goes through model validation (unlike model_copy) so record-level
    invariants are re-checked on the result.
    """
    data = record.model_dump()
    data.update(changes)
    return type(record).model_validate(data)


def changed_fields(before: BaseModel, after: BaseModel) -> Dict[str, Any]:
    """Fields whose values differ between two versions of the same record."""
    old = before.model_dump(mode="json")
    new = after.model_dump(mode="json")
    return {
        name: getattr(after, name)
        for name in new
        if old.get(name) != new[name]
    }
