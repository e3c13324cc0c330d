"""
Data access gateways for the driver analytics service.

Two variants share one contract (``acquire_handle`` / ``execute`` / ``close``):

- ``SingleConnectionGateway``: one psycopg ``AsyncConnection`` created lazily
  on first use and reused for every query. Queries from concurrent requests
  are serialized on that single connection.
- ``PooledGateway``: one psycopg_pool ``AsyncConnectionPool`` opened lazily on
  first use. Each query checks out a connection and returns it on every exit
  path, including failures.

Gateways are plain objects built at startup and handed to the service layer;
there is no module-level handle. Both keep ``GatewayStats`` so the number of
queries in flight at the store boundary can be observed.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Protocol, Sequence, runtime_checkable

import psycopg
from psycopg import AsyncConnection
from psycopg.rows import dict_row
from psycopg_pool import AsyncConnectionPool, PoolTimeout

from driver_analytics.config import Settings, get_settings
from driver_analytics.errors import DatabaseConnectionError, QueryError
from driver_analytics.utils.logging import get_logger

log = get_logger(__name__)

Row = Dict[str, Any]
Params = Optional[Sequence[Any]]

GATEWAY_KINDS = ("single", "pooled")


def build_dsn(settings: Optional[Settings] = None) -> str:
    """Compose a DSN string from settings."""
    settings = settings or get_settings()
    return (
        f"postgresql://{settings.db_user}:{settings.db_password}"
        f"@{settings.db_host}:{settings.db_port}/{settings.db_name}"
    )


def _connection_kwargs(settings: Settings) -> Dict[str, Any]:
    """Keyword arguments applied to every connection, pooled or not."""
    kwargs: Dict[str, Any] = {
        "autocommit": True,
        "row_factory": dict_row,
        "connect_timeout": settings.db_connect_timeout_seconds,
    }
    if settings.db_statement_timeout_ms > 0:
        kwargs["options"] = f"-c statement_timeout={settings.db_statement_timeout_ms}"
    return kwargs


async def _run_query(conn: AsyncConnection, query: str, params: Params) -> List[Row]:
    async with conn.cursor() as cur:
        await cur.execute(query, params)
        if cur.description is None:
            return []
        return list(await cur.fetchall())


@dataclass
class GatewayStats:
    """
    Counters observed at the store boundary.

    ``peak_in_flight`` is the highest number of queries that were executing
    against the store at the same time since the gateway was created.
    """

    queries: int = 0
    failures: int = 0
    in_flight: int = 0
    peak_in_flight: int = 0
    handles_created: int = 0

    def enter(self) -> None:
        self.queries += 1
        self.in_flight += 1
        self.peak_in_flight = max(self.peak_in_flight, self.in_flight)

    def exit(self, failed: bool = False) -> None:
        self.in_flight -= 1
        if failed:
            self.failures += 1

    def as_dict(self) -> Dict[str, int]:
        return {
            "queries": self.queries,
            "failures": self.failures,
            "in_flight": self.in_flight,
            "peak_in_flight": self.peak_in_flight,
            "handles_created": self.handles_created,
        }


@runtime_checkable
class DataGateway(Protocol):
    """
    Common interface for both gateway variants.

    Attributes
    ----------
    kind : str
        ``"single"`` or ``"pooled"``.
    stats : GatewayStats
        Live counters for this gateway.
    """

    kind: str
    stats: GatewayStats

    async def acquire_handle(self) -> Any:
        """Return the lazily created connection or pool."""
        ...

    async def execute(self, query: str, params: Params = None) -> List[Row]:
        """Run a parameterized query and return its rows as dicts."""
        ...

    async def close(self) -> None:
        """Release the underlying handle."""
        ...


class SingleConnectionGateway:
    """
    One process-wide connection, lazily created and memoized.

    Every ``execute`` call waits on the same lock, so at most one query runs
    against the store at any moment regardless of how many requests are in
    progress. A connection that psycopg reports as broken is discarded and a
    new one is created on the next call.
    """

    kind: str = "single"

    def __init__(self, settings: Optional[Settings] = None, dsn_override: Optional[str] = None) -> None:
        self._settings = settings or get_settings()
        self._dsn = dsn_override or build_dsn(self._settings)
        self._conn: Optional[AsyncConnection] = None
        self._init_lock = asyncio.Lock()
        self._query_lock = asyncio.Lock()
        self.stats = GatewayStats()

    async def acquire_handle(self) -> AsyncConnection:
        conn = self._conn
        if conn is not None and not conn.broken:
            return conn
        async with self._init_lock:
            if self._conn is None or self._conn.broken:
                self._conn = await self._connect()
            return self._conn

    async def _connect(self) -> AsyncConnection:
        try:
            conn = await AsyncConnection.connect(self._dsn, **_connection_kwargs(self._settings))
        except psycopg.Error as exc:
            log.error(
                "Database connection failed",
                extra={"gateway": self.kind, "error": str(exc)},
            )
            raise DatabaseConnectionError(f"Could not connect to database: {exc}") from exc
        self.stats.handles_created += 1
        log.info("Connected to database", extra={"gateway": self.kind})
        return conn

    async def execute(self, query: str, params: Params = None) -> List[Row]:
        async with self._query_lock:
            # Resolved under the lock so a connection lost by the previous
            # query is replaced before this one runs.
            conn = await self.acquire_handle()
            self.stats.enter()
            failed = False
            try:
                return await _run_query(conn, query, params)
            except psycopg.Error as exc:
                failed = True
                log.warning("Query failed", extra={"gateway": self.kind, "error": str(exc)})
                raise QueryError(f"Query failed: {exc}", cause=exc) from exc
            finally:
                self.stats.exit(failed=failed)

    async def close(self) -> None:
        async with self._query_lock, self._init_lock:
            if self._conn is not None:
                await self._conn.close()
                self._conn = None


class PooledGateway:
    """
    Bounded pool of connections, lazily opened and memoized.

    At most ``max_size`` queries run concurrently; extra callers wait for a
    connection in arrival order. Connections go back to the pool whether the
    query succeeds or fails.
    """

    kind: str = "pooled"

    def __init__(
        self,
        settings: Optional[Settings] = None,
        min_size: Optional[int] = None,
        max_size: Optional[int] = None,
        dsn_override: Optional[str] = None,
    ) -> None:
        self._settings = settings or get_settings()
        self._dsn = dsn_override or build_dsn(self._settings)
        self.min_size = min_size if min_size is not None else self._settings.pool_min_size
        self.max_size = max_size if max_size is not None else self._settings.pool_max_size
        self._timeout = self._settings.pool_timeout_seconds
        self._pool: Optional[AsyncConnectionPool] = None
        self._init_lock = asyncio.Lock()
        self.stats = GatewayStats()

    async def acquire_handle(self) -> AsyncConnectionPool:
        pool = self._pool
        if pool is not None:
            return pool
        async with self._init_lock:
            if self._pool is None:
                self._pool = await self._open_pool()
            return self._pool

    async def _open_pool(self) -> AsyncConnectionPool:
        pool = AsyncConnectionPool(
            conninfo=self._dsn,
            min_size=self.min_size,
            max_size=self.max_size,
            kwargs=_connection_kwargs(self._settings),
            timeout=self._timeout,
            open=False,
        )
        try:
            await pool.open(wait=True, timeout=self._timeout)
        except (PoolTimeout, psycopg.Error) as exc:
            await pool.close()
            log.error(
                "Database pool could not be opened",
                extra={"gateway": self.kind, "error": str(exc)},
            )
            raise DatabaseConnectionError(f"Could not open connection pool: {exc}") from exc
        self.stats.handles_created += 1
        log.info(
            "Connection pool opened",
            extra={"gateway": self.kind, "min_size": self.min_size, "max_size": self.max_size},
        )
        return pool

    async def execute(self, query: str, params: Params = None) -> List[Row]:
        pool = await self.acquire_handle()
        try:
            async with pool.connection() as conn:
                self.stats.enter()
                failed = False
                try:
                    return await _run_query(conn, query, params)
                except psycopg.Error:
                    failed = True
                    raise
                finally:
                    self.stats.exit(failed=failed)
        except PoolTimeout as exc:
            log.error("Connection checkout timed out", extra={"gateway": self.kind})
            raise DatabaseConnectionError(f"No connection available: {exc}") from exc
        except psycopg.Error as exc:
            log.warning("Query failed", extra={"gateway": self.kind, "error": str(exc)})
            raise QueryError(f"Query failed: {exc}", cause=exc) from exc

    async def close(self) -> None:
        async with self._init_lock:
            if self._pool is not None:
                await self._pool.close()
                self._pool = None


def create_gateway(
    kind: str,
    settings: Optional[Settings] = None,
    dsn_override: Optional[str] = None,
) -> DataGateway:
    """
    Build a gateway by name.

    Raises
    ------
    ValueError
        If ``kind`` is not one of ``GATEWAY_KINDS``.
    """
    if kind == "single":
        return SingleConnectionGateway(settings=settings, dsn_override=dsn_override)
    if kind == "pooled":
        return PooledGateway(settings=settings, dsn_override=dsn_override)
    raise ValueError(f"Unknown gateway '{kind}'. Available: {', '.join(GATEWAY_KINDS)}")


__all__ = [
    "GATEWAY_KINDS",
    "DataGateway",
    "GatewayStats",
    "PooledGateway",
    "Row",
    "SingleConnectionGateway",
    "build_dsn",
    "create_gateway",
]
