"""
Postgres-backed entity store over the StaffTrak Supabase tables.

Queries are built with positional $n parameters and executed through the
shared asyncpg pool. JSONB columns come back as text from asyncpg and are
decoded here before the rows are validated into record models.
"""

import json
import logging
from enum import Enum
from typing import Any, Dict, FrozenSet, List, Mapping, Optional, Tuple
from uuid import UUID

import asyncpg
from pydantic import BaseModel, TypeAdapter

from stafftrak.models import (
    Goal,
    Meeting,
    Observation,
    SelfAssessment,
    SelfAssessmentStatus,
    StaffMember,
    SummativeEvaluation,
)
from stafftrak.workflow.errors import NotFound

from .connection import DatabasePool, get_database_pool
from .store import EntityStore, RecordFilter, RecordType, evaluator_field, resolve_record_type, staff_field


logger = logging.getLogger(__name__)

TABLES: Dict[RecordType, str] = {
    StaffMember: "public.profiles",
    Goal: "public.goals",
    Observation: "public.observations",
    Meeting: "public.meetings",
    SelfAssessment: "public.self_assessments",
    SummativeEvaluation: "public.summative_evaluations",
}

JSON_COLUMNS: Dict[RecordType, FrozenSet[str]] = {
    Observation: frozenset({"pre_observation_form", "post_observation_form"}),
    SelfAssessment: frozenset({"responses"}),
    SummativeEvaluation: frozenset({"domain_scores"}),
}

ORDER_BY: Dict[RecordType, str] = {
    StaffMember: "full_name",
}

# Model field -> column where the names differ.
COLUMN_NAMES: Dict[RecordType, Dict[str, str]] = {
    StaffMember: {"staff_category": "staff_type"},
}

_JSON = TypeAdapter(Any)


def column_for(record_type: RecordType, field_name: str) -> str:
    return COLUMN_NAMES.get(record_type, {}).get(field_name, field_name)


def decode_row(record_type: RecordType, row: Mapping[str, Any]) -> BaseModel:
    """Validate a fetched row into its record model, decoding JSONB text."""
    data = dict(row)
    for column in JSON_COLUMNS.get(record_type, ()):
        value = data.get(column)
        if isinstance(value, str):
            try:
                data[column] = json.loads(value)
            except json.JSONDecodeError:
                logger.warning(f"Could not parse {column} JSON for {record_type.__name__} {data.get('id')}")
                data[column] = None
    return record_type.model_validate(data)


def encode_value(record_type: RecordType, column: str, value: Any) -> Any:
    """Python value -> asyncpg parameter for one column."""
    if column in JSON_COLUMNS.get(record_type, ()):
        return None if value is None else json.dumps(_JSON.dump_python(value, mode="json"))
    if isinstance(value, Enum):
        return value.value
    return value


def build_where(record_type: RecordType, record_filter: RecordFilter) -> Tuple[str, List[Any]]:
    """WHERE clause and parameters for a RecordFilter."""
    record_filter.validate_for(record_type)
    where_conditions: List[str] = []
    params: List[Any] = []

    def add(template: str, value: Any) -> None:
        params.append(value)
        where_conditions.append(template.format(p=f"${len(params)}"))

    owner = staff_field(record_type)

    if record_filter.tenant_id is not None:
        add("tenant_id = {p}", record_filter.tenant_id)

    if record_filter.staff_id is not None:
        add(f"{owner} = {{p}}", record_filter.staff_id)

    if record_filter.staff_ids is not None:
        add(f"{owner} = ANY({{p}}::uuid[])", list(record_filter.staff_ids))

    if record_filter.evaluator_id is not None:
        add(f"{evaluator_field(record_type)} = {{p}}", record_filter.evaluator_id)

    statuses = record_filter.status_values()
    if statuses is not None:
        if record_type is SelfAssessment:
            # Self-assessment status is derived from submitted_at.
            wanted = set(statuses)
            if wanted == {SelfAssessmentStatus.SUBMITTED.value}:
                where_conditions.append("submitted_at IS NOT NULL")
            elif wanted == {SelfAssessmentStatus.DRAFT.value}:
                where_conditions.append("submitted_at IS NULL")
            elif not wanted & {s.value for s in SelfAssessmentStatus}:
                where_conditions.append("false")
        else:
            add("status = ANY({p}::text[])", statuses)

    if record_filter.ids is not None:
        add("id = ANY({p}::uuid[])", list(record_filter.ids))

    if record_filter.is_active is not None:
        add("is_active = {p}", record_filter.is_active)

    clause = f"WHERE {' AND '.join(where_conditions)}" if where_conditions else ""
    return clause, params


class PostgresEntityStore(EntityStore):
    """EntityStore over the Supabase tables."""

    def __init__(self, pool: Optional[DatabasePool] = None):
        self._pool = pool

    async def _get_pool(self) -> DatabasePool:
        if self._pool is None:
            self._pool = await get_database_pool()
        return self._pool

    async def get(self, record_type, record_id):
        record_type = resolve_record_type(record_type)
        query = f"SELECT * FROM {TABLES[record_type]} WHERE id = $1"

        pool = await self._get_pool()
        row = await pool.execute_query_one(query, record_id)
        return decode_row(record_type, row) if row else None

    async def find(self, record_type, record_filter=None):
        record_type = resolve_record_type(record_type)
        where, params = build_where(record_type, record_filter or RecordFilter())
        order_by = ORDER_BY.get(record_type, "created_at")

        query = f"""
        SELECT *
        FROM {TABLES[record_type]}
        {where}
        ORDER BY {order_by}
        """

        pool = await self._get_pool()
        rows = await pool.execute_query(query, *params)
        return [decode_row(record_type, row) for row in rows]

    async def update_fields(self, record_type, record_id, fields):
        record_type = resolve_record_type(record_type)
        if not fields:
            return await self.require(record_type, record_id)

        unknown = set(fields) - set(record_type.model_fields)
        if unknown:
            raise ValueError(f"Unknown {record_type.__name__} fields: {sorted(unknown)}")

        assignments = []
        params: List[Any] = []
        for field_name, value in fields.items():
            column = column_for(record_type, field_name)
            params.append(encode_value(record_type, column, value))
            assignments.append(f"{column} = ${len(params)}")
        params.append(record_id)

        query = f"""
        UPDATE {TABLES[record_type]}
        SET {', '.join(assignments)}
        WHERE id = ${len(params)}
        RETURNING *
        """

        pool = await self._get_pool()
        try:
            row = await pool.execute_query_one(query, *params)
        except asyncpg.PostgresError as e:
            logger.error(f"Failed to update {record_type.__name__} {record_id}: {e}")
            raise

        if row is None:
            raise NotFound(record_type.__name__, record_id)

        logger.debug(f"Updated {record_type.__name__} {record_id}: {sorted(fields)}")
        return decode_row(record_type, row)


async def fetch_tenant_ids(pool: Optional[DatabasePool] = None) -> List[UUID]:
    """Distinct tenants that have profiles, for the connection test."""
    pool = pool or await get_database_pool()
    rows = await pool.execute_query("SELECT DISTINCT tenant_id FROM public.profiles ORDER BY tenant_id")
    return [row["tenant_id"] for row in rows]
