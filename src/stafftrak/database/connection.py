"""
asyncpg pool for the StaffTrak Postgres tables.

One pool per process, created lazily by get_database_pool() and shared by
every PostgresEntityStore. Queries go through execute_query /
execute_query_one so failures are logged in one place.
"""

import logging
import urllib.parse
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Iterable, List, Optional

import asyncpg

from stafftrak.workflow.errors import StaffTrakError


logger = logging.getLogger(__name__)


class DatabaseConnectionError(StaffTrakError):
    """The pool could not be created, or was used before/after its lifetime."""
    pass


@dataclass
class PoolConfig:
    """asyncpg.create_pool arguments."""
    dsn: str
    min_size: int = 1
    max_size: int = 10
    max_queries: int = 50000
    max_inactive_connection_lifetime: float = 300.0
    command_timeout: float = 60.0

    @classmethod
    def from_database_config(cls, database) -> "PoolConfig":
        """Build from a DatabaseConfig, rejecting unusable URLs up front."""
        if not database.url:
            raise DatabaseConnectionError("DATABASE_URL is not configured")

        parsed = urllib.parse.urlparse(database.url)
        if not parsed.hostname or not parsed.path.lstrip("/"):
            raise DatabaseConnectionError("DATABASE_URL must name a host and a database")

        return cls(dsn=database.url, min_size=database.pool_min_size, max_size=database.pool_max_size)

    @property
    def safe_dsn(self) -> str:
        """DSN with the password masked, for logging."""
        parsed = urllib.parse.urlparse(self.dsn)
        if not parsed.password:
            return self.dsn
        netloc = parsed.netloc.replace(f":{parsed.password}@", ":***@")
        return parsed._replace(netloc=netloc).geturl()


class DatabasePool:
    """Lifecycle wrapper around an asyncpg pool."""

    def __init__(self, config: PoolConfig):
        self.config = config
        self._pool: Optional[asyncpg.Pool] = None

    @property
    def is_initialized(self) -> bool:
        return self._pool is not None

    async def initialize(self) -> None:
        if self._pool is not None:
            return

        try:
            self._pool = await asyncpg.create_pool(
                dsn=self.config.dsn,
                min_size=self.config.min_size,
                max_size=self.config.max_size,
                max_queries=self.config.max_queries,
                max_inactive_connection_lifetime=self.config.max_inactive_connection_lifetime,
                command_timeout=self.config.command_timeout,
            )
        except (OSError, asyncpg.PostgresError, asyncpg.InterfaceError) as e:
            logger.error(f"Could not open database pool to {self.config.safe_dsn}: {e}")
            raise DatabaseConnectionError(f"Failed to connect to database: {e}") from e

        logger.info(
            f"Database pool open: {self.config.safe_dsn} "
            f"({self.config.min_size}-{self.config.max_size} connections)"
        )

    async def close(self) -> None:
        if self._pool is None:
            return
        await self._pool.close()
        self._pool = None
        logger.info("Database pool closed")

    @asynccontextmanager
    async def acquire_connection(self):
        """
        Borrow a connection for several statements.

        Usage:
            async with pool.acquire_connection() as conn:
                async with conn.transaction():
                    ...
        """
        if self._pool is None:
            raise DatabaseConnectionError("Database pool is not open")

        async with self._pool.acquire() as connection:
            yield connection

    async def _run(self, fetch: Callable[[asyncpg.Connection], Awaitable[Any]], query: str) -> Any:
        async with self.acquire_connection() as conn:
            try:
                return await fetch(conn)
            except asyncpg.PostgresError as e:
                first_line = next((line.strip() for line in query.splitlines() if line.strip()), "")
                logger.error(f"Query failed ({first_line} ...): {e}")
                raise

    async def execute_query(self, query: str, *args) -> List[asyncpg.Record]:
        """All rows of a query."""
        return await self._run(lambda conn: conn.fetch(query, *args), query)

    async def execute_query_one(self, query: str, *args) -> Optional[asyncpg.Record]:
        """First row of a query, None when it returns nothing."""
        return await self._run(lambda conn: conn.fetchrow(query, *args), query)

    async def health_check(self) -> bool:
        """True when a trivial round trip succeeds."""
        try:
            row = await self.execute_query_one("SELECT 1 AS ok")
        except (DatabaseConnectionError, asyncpg.PostgresError, OSError) as e:
            logger.error(f"Database health check failed: {e}")
            return False
        return row is not None and row["ok"] == 1

    async def missing_tables(self, tables: Iterable[str]) -> List[str]:
        """Which of the given schema-qualified tables do not exist."""
        missing = []
        for table in tables:
            row = await self.execute_query_one("SELECT to_regclass($1) IS NOT NULL AS present", table)
            if not row["present"]:
                missing.append(table)
        return missing


def create_pool_config_from_settings(settings=None) -> PoolConfig:
    """PoolConfig from DATABASE_URL / DATABASE_POOL_* settings."""
    if settings is None:
        from stafftrak.config import settings

    return PoolConfig.from_database_config(settings.database)


_global_pool: Optional[DatabasePool] = None


async def get_database_pool() -> DatabasePool:
    """The process-wide pool, opened on first use."""
    global _global_pool

    if _global_pool is None:
        _global_pool = DatabasePool(create_pool_config_from_settings())
    await _global_pool.initialize()
    return _global_pool


async def close_database_pool() -> None:
    global _global_pool

    if _global_pool is not None:
        await _global_pool.close()
        _global_pool = None
