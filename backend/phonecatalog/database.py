"""
Database connection pool and query execution.

``Database`` is created once at startup, handed to whatever needs it and
closed on shutdown. It wraps an async SQLAlchemy engine with a bounded pool.
"""
import time
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from typing import Any, AsyncGenerator, Awaitable, Callable, Dict, List, Optional, Sequence, TypeVar

from sqlalchemy import text
from sqlalchemy.engine import make_url
from sqlalchemy.exc import DBAPIError, TimeoutError as PoolTimeoutError
from sqlalchemy.ext.asyncio import (
    AsyncConnection,
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import AsyncAdaptedQueuePool

from phonecatalog.errors import DatabaseConnectionError
from phonecatalog.logging_config import get_logger
from phonecatalog.models import Base
from phonecatalog.queries import BuiltQuery, SQLDialect, get_dialect


log = get_logger("database")

T = TypeVar("T")


@dataclass
class ExecutionResult:
    """Rows of an executed statement plus what was run and how long it took."""

    rows: List[Dict[str, Any]]
    elapsed_ms: float
    sql: str
    params: List[Any] = field(default_factory=list)


class Database:
    """
    Owned connection pool for the catalog database.

    The engine is created lazily on first use. Waiting for a free connection
    is bounded by ``pool_timeout``; exhaustion surfaces as
    DatabaseConnectionError.
    """

    def __init__(
        self,
        url: str,
        pool_size: int = 10,
        pool_timeout: float = 30.0,
        log_queries: bool = False,
    ) -> None:
        self.url = url
        self.pool_size = pool_size
        self.pool_timeout = pool_timeout
        self.log_queries = log_queries
        self.dialect: SQLDialect = get_dialect(make_url(url).get_backend_name())

        self._engine: Optional[AsyncEngine] = None
        self._session_factory: Optional[async_sessionmaker[AsyncSession]] = None
        self._is_connected = False

    def _create_engine(self) -> AsyncEngine:
        return create_async_engine(
            self.url,
            poolclass=AsyncAdaptedQueuePool,
            pool_size=self.pool_size,
            max_overflow=0,
            pool_timeout=self.pool_timeout,
            pool_pre_ping=True,
        )

    @property
    def engine(self) -> AsyncEngine:
        if self._engine is None:
            self._engine = self._create_engine()
        return self._engine

    @property
    def session_factory(self) -> async_sessionmaker[AsyncSession]:
        if self._session_factory is None:
            self._session_factory = async_sessionmaker(
                self.engine, class_=AsyncSession, expire_on_commit=False
            )
        return self._session_factory

    async def connect(self) -> AsyncEngine:
        """
        Make sure the pool is up and a connection can be made.

        Raises DatabaseConnectionError if the database is unreachable.
        """
        engine = self.engine
        if self._is_connected:
            return engine

        try:
            async with engine.connect() as conn:
                await conn.execute(text("SELECT 1"))
        except PoolTimeoutError as e:
            raise DatabaseConnectionError("Timed out waiting for a database connection") from e
        except (DBAPIError, OSError) as e:
            log.error("database_connect_failed", backend=self.dialect.name, error=str(e))
            raise DatabaseConnectionError("Failed to connect to database") from e

        self._is_connected = True
        log.info("database_connected", backend=self.dialect.name, pool_size=self.pool_size)
        return engine

    async def _reset(self) -> None:
        """Drop every pooled connection; the next call reconnects."""
        self._is_connected = False
        if self._engine is not None:
            await self._engine.dispose()

    async def execute(self, sql: str, params: Optional[Sequence[Any]] = None) -> ExecutionResult:
        """
        Run one parameterized statement.

        ``params`` are positional and must match the dialect's placeholders.
        If the connection turns out to be dead, the pool is rebuilt and the
        statement tried once more.
        """
        params = list(params or [])
        try:
            return await self._execute_once(sql, params)
        except DBAPIError as e:
            if not e.connection_invalidated:
                log.error(
                    "query_failed",
                    sql=sql[:200],
                    params=params,
                    error=str(e.orig),
                )
                raise
            log.warning("database_disconnected", error=str(e.orig))
            await self._reset()
            return await self._execute_once(sql, params)

    async def _execute_once(self, sql: str, params: List[Any]) -> ExecutionResult:
        engine = await self.connect()
        started = time.perf_counter()
        try:
            async with engine.connect() as conn:
                result = await conn.exec_driver_sql(sql, tuple(params))
                rows = [dict(row) for row in result.mappings()] if result.returns_rows else []
                await conn.commit()
        except PoolTimeoutError as e:
            raise DatabaseConnectionError("Timed out waiting for a database connection") from e
        elapsed_ms = round((time.perf_counter() - started) * 1000, 2)

        if self.log_queries:
            log.info(
                "query_executed",
                elapsed_ms=elapsed_ms,
                sql=sql[:100] + ("..." if len(sql) > 100 else ""),
                params=params or None,
            )
        return ExecutionResult(rows=rows, elapsed_ms=elapsed_ms, sql=sql, params=params)

    async def run(self, query: BuiltQuery) -> ExecutionResult:
        """Execute a query produced by the query builder."""
        return await self.execute(query.sql, query.params)

    @asynccontextmanager
    async def begin(self) -> AsyncGenerator[AsyncConnection, None]:
        """
        Dedicated connection inside a transaction.

        Commits when the block exits cleanly, rolls back and re-raises
        otherwise. The connection goes back to the pool either way.
        """
        engine = await self.connect()
        try:
            async with engine.begin() as conn:
                yield conn
        except PoolTimeoutError as e:
            raise DatabaseConnectionError("Timed out waiting for a database connection") from e

    async def transaction(self, fn: Callable[[AsyncConnection], Awaitable[T]]) -> T:
        """Run ``fn`` with a transactional connection and return its result."""
        async with self.begin() as conn:
            return await fn(conn)

    @asynccontextmanager
    async def session(self) -> AsyncGenerator[AsyncSession, None]:
        """
        ORM session bound to the pool.

        Usage:
            async with db.session() as session:
                async with session.begin():
                    ...
        """
        await self.connect()
        async with self.session_factory() as session:
            yield session

    async def is_healthy(self) -> bool:
        """Liveness probe; failures are reported, not retried."""
        try:
            await self.execute("SELECT 1")
            return True
        except (DatabaseConnectionError, DBAPIError) as e:
            log.warning("health_check_failed", error=str(e))
            return False

    def pool_stats(self) -> Dict[str, int]:
        if self._engine is None:
            return {
                "totalConnections": self.pool_size,
                "activeConnections": 0,
                "freeConnections": 0,
            }
        pool = self._engine.sync_engine.pool
        return {
            "totalConnections": self.pool_size,
            "activeConnections": pool.checkedout(),
            "freeConnections": pool.checkedin(),
        }

    async def create_tables(self) -> None:
        """Create all catalog tables."""
        engine = await self.connect()
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    async def drop_tables(self) -> None:
        """Drop all catalog tables (use with caution)."""
        engine = await self.connect()
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.drop_all)

    async def close(self) -> None:
        if self._engine is not None:
            await self._engine.dispose()
            self._engine = None
            self._session_factory = None
        self._is_connected = False
        log.info("database_pool_closed")
