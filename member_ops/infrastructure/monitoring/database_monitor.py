"""
Database Health Watchdog

Periodically pings the data store in the background and keeps a
consecutive-failure count. After DB_MONITOR_MAX_ERRORS failures in a row
the database is marked unhealthy and a critical alert is logged; the next
successful ping clears it. Advisory only: nothing is blocked by this state
unless a route opts into ``require_healthy_database``.
"""

import asyncio
import time
from typing import Any

from member_ops.core.config.constants import DB_SLOW_RESPONSE_MS
from member_ops.core.config.settings import Settings, get_settings
from member_ops.core.logging.logger import get_logger, log_stage
from member_ops.infrastructure.database.data_store import DataStore

logger = get_logger(__name__)


class DatabaseHealthMonitor:
    """
    Background liveness watchdog for the data store.

    Usage:
        monitor = DatabaseHealthMonitor(data_store, settings)
        monitor.start()
        ...
        monitor.get_health()
        await monitor.shutdown()
    """

    def __init__(self, data_store: DataStore, settings: Settings | None = None):
        settings = settings or get_settings()
        self._data_store = data_store
        self._interval = settings.database.DB_MONITOR_INTERVAL
        self._max_errors = settings.database.DB_MONITOR_MAX_ERRORS
        self._timeout = settings.database.DB_HEALTH_TIMEOUT

        self.is_healthy = True
        self.connection_errors = 0
        self.last_health_check = time.time()
        self._task: asyncio.Task | None = None

    def start(self) -> None:
        if self._task is None or self._task.done():
            self._task = asyncio.create_task(self._run(), name="db-health-monitor")
            log_stage(logger, "DB.W", "Database health monitoring started", interval=self._interval)

    async def shutdown(self) -> None:
        task, self._task = self._task, None
        if task is not None:
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self._interval)
            await self.check_once()

    async def check_once(self) -> bool:
        """
        Run one probe and update state. Any error raised by the ping,
        a timeout included, counts as a failure.

        STAGE-DB.W.1: Watchdog probe

        Returns:
            True if the ping succeeded
        """
        start = time.perf_counter()
        try:
            await asyncio.wait_for(self._data_store.ping(), timeout=self._timeout)
        except Exception as e:
            self.connection_errors += 1
            logger.warning(
                "Database health check failed",
                stage="DB.W.1",
                connection_errors=self.connection_errors,
                max_errors=self._max_errors,
                error=str(e) or type(e).__name__,
                error_type=type(e).__name__,
            )
            if self.connection_errors >= self._max_errors:
                if self.is_healthy:
                    logger.critical(
                        "Database marked unhealthy after consecutive failures",
                        stage="DB.W.2",
                        connection_errors=self.connection_errors,
                        error=str(e) or type(e).__name__,
                    )
                self.is_healthy = False
            return False

        response_ms = (time.perf_counter() - start) * 1000
        self.connection_errors = 0
        self.is_healthy = True
        self.last_health_check = time.time()

        if response_ms > DB_SLOW_RESPONSE_MS:
            logger.warning("Slow database response", stage="DB.W.1", response_ms=round(response_ms, 1))
        else:
            logger.debug("Database health check passed", stage="DB.W.1", response_ms=round(response_ms, 1))
        return True

    def get_health(self) -> dict[str, Any]:
        return {
            "is_healthy": self.is_healthy,
            "last_health_check": self.last_health_check,
            "connection_errors": self.connection_errors,
            "seconds_since_last_check": round(time.time() - self.last_health_check, 3),
        }
