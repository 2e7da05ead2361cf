"""
Entity store interface and an in-memory implementation.

The store is the only stateful collaborator of the engine: the workflow
machines, the compliance evaluator and reporting all work on records the
store hands out. Records are addressed by their model class (or its short
name) plus an id or a RecordFilter.
"""

import logging
from abc import ABC, abstractmethod
from collections import defaultdict
from dataclasses import dataclass
from typing import Any, Collection, Dict, Iterable, List, Mapping, Optional, Type, Union
from uuid import UUID

from pydantic import BaseModel

from stafftrak.models import (
    EntitySnapshot,
    Goal,
    Meeting,
    Observation,
    SelfAssessment,
    StaffMember,
    SummativeEvaluation,
)
from stafftrak.workflow.errors import NotFound


logger = logging.getLogger(__name__)

RecordType = Type[BaseModel]

RECORD_TYPES: Dict[str, RecordType] = {
    "staff": StaffMember,
    "goal": Goal,
    "observation": Observation,
    "meeting": Meeting,
    "self_assessment": SelfAssessment,
    "summative_evaluation": SummativeEvaluation,
}

# Cycle collections in EntitySnapshot order.
CYCLE_COLLECTIONS: Dict[str, RecordType] = {
    "goals": Goal,
    "observations": Observation,
    "meetings": Meeting,
    "self_assessments": SelfAssessment,
    "summative_evaluations": SummativeEvaluation,
}

_EVALUATOR_FIELDS: Dict[RecordType, str] = {
    StaffMember: "evaluator_id",
    Observation: "observer_id",
    Meeting: "evaluator_id",
    SummativeEvaluation: "evaluator_id",
}


def resolve_record_type(record_type: Union[str, RecordType]) -> RecordType:
    """Accept a model class or its short name ("goal", "meeting", ...)."""
    if isinstance(record_type, str):
        try:
            return RECORD_TYPES[record_type]
        except KeyError:
            raise ValueError(
                f"Unknown record type '{record_type}'. Expected one of: {', '.join(RECORD_TYPES)}"
            ) from None
    if record_type not in RECORD_TYPES.values():
        raise ValueError(f"{record_type.__name__} is not a stored record type")
    return record_type


def staff_field(record_type: RecordType) -> str:
    """Field holding the owning staff member's id."""
    return "id" if record_type is StaffMember else "staff_id"


def evaluator_field(record_type: RecordType) -> Optional[str]:
    """Field holding the evaluator/observer id, None for types without one."""
    return _EVALUATOR_FIELDS.get(record_type)


def _status_value(status: Any) -> str:
    return getattr(status, "value", status)


@dataclass
class RecordFilter:
    """
    Conjunction of optional conditions; None means "don't filter on this".

    staff_id/staff_ids match the owning staff member (the profile's own id for
    StaffMember). evaluator_id matches observer_id on observations and
    evaluator_id elsewhere.
    """
    tenant_id: Optional[UUID] = None
    staff_id: Optional[UUID] = None
    staff_ids: Optional[Collection[UUID]] = None
    evaluator_id: Optional[UUID] = None
    statuses: Optional[Collection[Any]] = None
    ids: Optional[Collection[UUID]] = None
    is_active: Optional[bool] = None

    def status_values(self) -> Optional[List[str]]:
        if self.statuses is None:
            return None
        return sorted({_status_value(s) for s in self.statuses})

    def validate_for(self, record_type: RecordType) -> None:
        if self.evaluator_id is not None and evaluator_field(record_type) is None:
            raise ValueError(f"{record_type.__name__} records cannot be filtered by evaluator")
        if self.is_active is not None and record_type is not StaffMember:
            raise ValueError(f"{record_type.__name__} records have no active flag")
        if self.statuses is not None and record_type is StaffMember:
            raise ValueError("StaffMember records have no status")

    def matches(self, record: BaseModel) -> bool:
        record_type = type(record)
        owner = getattr(record, staff_field(record_type))

        if self.tenant_id is not None and record.tenant_id != self.tenant_id:
            return False
        if self.staff_id is not None and owner != self.staff_id:
            return False
        if self.staff_ids is not None and owner not in set(self.staff_ids):
            return False
        if self.evaluator_id is not None and getattr(record, evaluator_field(record_type)) != self.evaluator_id:
            return False
        if self.statuses is not None and _status_value(record.status) not in self.status_values():
            return False
        if self.ids is not None and record.id not in set(self.ids):
            return False
        if self.is_active is not None and record.is_active != self.is_active:
            return False
        return True


class EntityStore(ABC):
    """Async record store addressed by record type and id/filter."""

    @abstractmethod
    async def get(self, record_type: Union[str, RecordType], record_id: UUID) -> Optional[BaseModel]:
        """Fetch one record, None when it does not exist."""

    @abstractmethod
    async def find(
        self,
        record_type: Union[str, RecordType],
        record_filter: Optional[RecordFilter] = None,
    ) -> List[BaseModel]:
        """Fetch all records matching a filter."""

    @abstractmethod
    async def update_fields(
        self,
        record_type: Union[str, RecordType],
        record_id: UUID,
        fields: Mapping[str, Any],
    ) -> BaseModel:
        """
        Write the given fields of one record in a single update and return
        the stored record. Raises NotFound when the record does not exist.
        """

    async def require(self, record_type: Union[str, RecordType], record_id: UUID) -> BaseModel:
        """get() that raises NotFound instead of returning None."""
        record_type = resolve_record_type(record_type)
        record = await self.get(record_type, record_id)
        if record is None:
            raise NotFound(record_type.__name__, record_id)
        return record

    async def load_snapshot(
        self,
        tenant_id: UUID,
        evaluator_id: Optional[UUID] = None,
        staff_id: Optional[UUID] = None,
    ) -> EntitySnapshot:
        """
        Fetch a consistent working set for the compliance and reporting layers.

        Args:
            tenant_id: Tenant to load
            evaluator_id: Limit the roster to this evaluator's caseload
            staff_id: Limit the roster to one staff member

        Returns:
            EntitySnapshot with every tenant profile in profiles and the
            selected staff plus their cycle records
        """
        profiles = await self.find(StaffMember, RecordFilter(tenant_id=tenant_id))

        roster = [
            p for p in profiles
            if (evaluator_id is None or p.evaluator_id == evaluator_id)
            and (staff_id is None or p.id == staff_id)
        ]
        scoped = evaluator_id is not None or staff_id is not None
        record_filter = RecordFilter(
            tenant_id=tenant_id,
            staff_ids=[p.id for p in roster] if scoped else None,
        )

        collections = {}
        for name, record_type in CYCLE_COLLECTIONS.items():
            collections[name] = await self.find(record_type, record_filter)

        logger.debug(
            f"Loaded snapshot for tenant {tenant_id}: {len(roster)} roster, "
            + ", ".join(f"{len(v)} {k}" for k, v in collections.items())
        )
        return EntitySnapshot(roster=roster, profiles=profiles, **collections)


class InMemoryEntityStore(EntityStore):
    """
    Dict-backed store for tests and snapshot files.

    Records are copied on the way in and out so callers can never mutate
    stored state except through update_fields.
    """

    def __init__(self, records: Optional[Iterable[BaseModel]] = None):
        self._records: Dict[RecordType, Dict[UUID, BaseModel]] = defaultdict(dict)
        if records:
            self.add(*records)

    @classmethod
    def from_snapshot(cls, snapshot: EntitySnapshot) -> "InMemoryEntityStore":
        store = cls()
        store.add(*snapshot.roster, *snapshot.profiles)
        for name in CYCLE_COLLECTIONS:
            store.add(*getattr(snapshot, name))
        return store

    def add(self, *records: BaseModel) -> None:
        for record in records:
            record_type = resolve_record_type(type(record))
            self._records[record_type][record.id] = record.model_copy(deep=True)

    async def get(self, record_type, record_id):
        record_type = resolve_record_type(record_type)
        record = self._records[record_type].get(record_id)
        return record.model_copy(deep=True) if record is not None else None

    async def find(self, record_type, record_filter=None):
        record_type = resolve_record_type(record_type)
        record_filter = record_filter or RecordFilter()
        record_filter.validate_for(record_type)
        return [
            record.model_copy(deep=True)
            for record in self._records[record_type].values()
            if record_filter.matches(record)
        ]

    async def update_fields(self, record_type, record_id, fields):
        record_type = resolve_record_type(record_type)
        current = self._records[record_type].get(record_id)
        if current is None:
            raise NotFound(record_type.__name__, record_id)

        unknown = set(fields) - set(record_type.model_fields)
        if unknown:
            raise ValueError(f"Unknown {record_type.__name__} fields: {sorted(unknown)}")

        data = current.model_dump()
        data.update(fields)
        stored = record_type.model_validate(data)
        self._records[record_type][record_id] = stored
        return stored.model_copy(deep=True)
