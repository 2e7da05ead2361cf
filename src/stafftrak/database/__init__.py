"""
Entity store for StaffTrak records.

This package provides:
- The EntityStore interface and RecordFilter
- An in-memory store for tests and snapshot files
- A Postgres store over the Supabase tables with async connection pooling
"""

from .connection import (
    DatabaseConnectionError,
    DatabasePool,
    PoolConfig,
    close_database_pool,
    create_pool_config_from_settings,
    get_database_pool,
)
from .queries import PostgresEntityStore, TABLES, build_where, decode_row, encode_value, fetch_tenant_ids
from .store import (
    RECORD_TYPES,
    EntityStore,
    InMemoryEntityStore,
    RecordFilter,
    resolve_record_type,
)

__all__ = [
    # Connection management
    'DatabasePool',
    'PoolConfig',
    'DatabaseConnectionError',
    'get_database_pool',
    'close_database_pool',
    'create_pool_config_from_settings',

    # Stores
    'EntityStore',
    'RecordFilter',
    'InMemoryEntityStore',
    'PostgresEntityStore',
    'RECORD_TYPES',
    'TABLES',
    'resolve_record_type',
    'build_where',
    'decode_row',
    'encode_value',
    'fetch_tenant_ids',
]
