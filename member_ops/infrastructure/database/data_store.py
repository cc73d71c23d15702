"""
Data Store Collaborator

The relational store is owned by the domain code; the health layer only
needs a liveness query, one aggregate-count query and pool figures. This
module defines that narrow contract and an SQLAlchemy-backed implementation.

Author: Platform Team
Date: 2025-10-02
"""

from typing import Any, Protocol, runtime_checkable

from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine

from member_ops.core.exceptions import DatabaseProbeError
from member_ops.core.logging.logger import get_logger

logger = get_logger(__name__)

DEFAULT_STATS_QUERY = """
SELECT
    (SELECT COUNT(*) FROM users) AS total_users,
    (SELECT COUNT(*) FROM businesses) AS total_businesses,
    (SELECT COUNT(*) FROM deals WHERE status = 'active') AS active_deals,
    (SELECT COUNT(*) FROM sessions WHERE expires > CURRENT_TIMESTAMP) AS active_sessions
"""


@runtime_checkable
class DataStore(Protocol):
    """What the health layer needs from the database."""

    async def ping(self) -> None:
        """Run a liveness query. Raises DatabaseProbeError on failure."""
        ...

    async def fetch_stats(self) -> dict[str, Any]:
        """Run the aggregate-count query."""
        ...

    def pool_status(self) -> dict[str, Any]:
        ...

    async def dispose(self) -> None:
        ...


class SQLAlchemyDataStore:
    """
    DataStore over an SQLAlchemy AsyncEngine.

    Usage:
        store = SQLAlchemyDataStore.from_url("postgresql+asyncpg://...")
        await store.ping()
        stats = await store.fetch_stats()
    """

    def __init__(self, engine: AsyncEngine, stats_query: str = DEFAULT_STATS_QUERY):
        self._engine = engine
        self._stats_query = text(stats_query)

    @classmethod
    def from_url(cls, database_url: str, **kwargs) -> "SQLAlchemyDataStore":
        engine = create_async_engine(database_url, pool_pre_ping=True)
        return cls(engine, **kwargs)

    @property
    def engine(self) -> AsyncEngine:
        return self._engine

    async def ping(self) -> None:
        try:
            async with self._engine.connect() as conn:
                await conn.execute(text("SELECT 1 AS health_check"))
        except (SQLAlchemyError, OSError) as e:
            raise DatabaseProbeError.from_exception(e, message=f"Database liveness query failed: {e}") from e

    async def fetch_stats(self) -> dict[str, Any]:
        try:
            async with self._engine.connect() as conn:
                result = await conn.execute(self._stats_query)
                row = result.mappings().first()
        except (SQLAlchemyError, OSError) as e:
            raise DatabaseProbeError.from_exception(e, message=f"Database stats query failed: {e}") from e
        return dict(row) if row is not None else {}

    def pool_status(self) -> dict[str, Any]:
        """Pool figures where the pool implementation exposes them."""
        pool = self._engine.pool
        status: dict[str, Any] = {"class": type(pool).__name__}
        for name in ("size", "checkedout", "overflow"):
            getter = getattr(pool, name, None)
            if callable(getter):
                try:
                    status[name] = getter()
                except (AttributeError, TypeError):
                    continue
        if "checkedout" in status:
            status["checked_out"] = status.pop("checkedout")
        return status

    async def dispose(self) -> None:
        await self._engine.dispose()
        logger.info("Database engine disposed", stage="DB.3")
