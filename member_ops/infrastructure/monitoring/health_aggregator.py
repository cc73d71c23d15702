#!/usr/bin/env python3
"""
Health Aggregator

This module combines independent probes into one health verdict:
- Database liveness + aggregate counts (under a deadline)
- Cache round-trip integrity
- Process and host metrics (psutil)
- Request metrics from the RequestTracker

Combination rule:
    healthy  iff database is healthy AND cache is not unhealthy
    degraded otherwise

A degraded cache (answering, but not returning what was written) does not
fail the system; only a database failure or an outright cache error does.
No probe raises; failures become status fields.
"""

import asyncio
import os
import platform
import time
from datetime import datetime, timezone
from typing import Any

import psutil

from member_ops.core.config.constants import (
    AVG_RESPONSE_WARNING_MS,
    HEALTH_PROBE_KEY_PREFIX,
    HEALTH_PROBE_TTL,
    HEALTH_REPORT_SLOW_REQUESTS,
    MEMORY_WARNING_MB,
    SLOW_REQUEST_CRITICAL_COUNT,
    HealthStatus,
)
from member_ops.core.config.settings import Settings, get_settings
from member_ops.core.logging.logger import get_logger
from member_ops.infrastructure.cache.cache_service import CacheService
from member_ops.infrastructure.database.data_store import DataStore
from member_ops.infrastructure.monitoring.database_monitor import DatabaseHealthMonitor
from member_ops.infrastructure.monitoring.request_tracker import RequestTracker

logger = get_logger(__name__)

_MB = 1024 * 1024


def utc_timestamp() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


def _safe(read, default):
    """Run a metric read, returning ``default`` if the platform refuses it."""
    try:
        return read()
    except (psutil.Error, OSError, AttributeError, ValueError):
        return default


class HealthAggregator:
    """
    On-demand health reporting for operational endpoints.

    STAGE-H: Health check orchestration

    Usage:
        aggregator = HealthAggregator(cache_service, data_store, tracker, settings)
        report = await aggregator.get_health_report()
        report["status"]                  # "healthy" | "degraded"
        aggregator.get_recommendations()
    """

    def __init__(
        self,
        cache_service: CacheService,
        data_store: DataStore | None,
        request_tracker: RequestTracker,
        settings: Settings | None = None,
        db_monitor: DatabaseHealthMonitor | None = None,
    ):
        self._cache = cache_service
        self._data_store = data_store
        self._tracker = request_tracker
        self._settings = settings or get_settings()
        self._db_monitor = db_monitor
        self._started_at = time.time()
        self._last_system: dict[str, Any] | None = None

    @property
    def started_at(self) -> float:
        return self._started_at

    def uptime_seconds(self) -> float:
        return time.time() - self._started_at

    # -------------------------------------------------------------------------
    # Probes
    # -------------------------------------------------------------------------

    def get_system_metrics(self) -> dict[str, Any]:
        """
        STAGE-H.SYS: Process and host metrics.

        Every read that fails is reported as zero.
        """
        now = time.time()
        process = _safe(psutil.Process, None)

        vm = _safe(psutil.virtual_memory, None)
        total = getattr(vm, "total", 0)
        free = getattr(vm, "available", 0)

        mem_info = _safe(process.memory_info, None) if process is not None else None
        rss = getattr(mem_info, "rss", 0)
        vms = getattr(mem_info, "vms", 0)

        process_started = _safe(process.create_time, now) if process is not None else now
        boot_time = _safe(psutil.boot_time, now)

        system = {
            "uptime_ms": round((now - self._started_at) * 1000),
            "process_uptime_ms": round((now - process_started) * 1000),
            "system_uptime_ms": round((now - boot_time) * 1000),
            "memory": {
                "system": {"total": total, "free": free, "used": max(total - free, 0)},
                "process": {"rss": rss, "vms": vms},
                "usage": {"rss_mb": round(rss / _MB), "vms_mb": round(vms / _MB)},
            },
            "cpu": {
                "cores": _safe(psutil.cpu_count, 0) or 0,
                "load_average": list(_safe(psutil.getloadavg, (0.0, 0.0, 0.0))),
                "platform": _safe(platform.system, "") or os.name,
                "arch": _safe(platform.machine, ""),
            },
        }
        self._last_system = system
        return system

    async def get_database_health(self, timeout: float | None = None) -> dict[str, Any]:
        """
        STAGE-H.DB: Liveness query plus aggregate counts, under a deadline.
        """
        if self._data_store is None:
            return {
                "status": HealthStatus.UNHEALTHY.value,
                "error": "Data store not configured",
                "connection_time_ms": None,
            }

        timeout = timeout if timeout is not None else self._settings.database.DB_HEALTH_TIMEOUT
        data_store = self._data_store

        async def _probe() -> dict[str, Any]:
            await data_store.ping()
            return await data_store.fetch_stats()

        start = time.perf_counter()
        try:
            stats = await asyncio.wait_for(_probe(), timeout=timeout)
        except asyncio.TimeoutError:
            logger.warning("Database probe timed out", stage="H.DB", timeout=timeout)
            result = {
                "status": HealthStatus.UNHEALTHY.value,
                "error": f"Database probe timed out after {timeout}s",
                "connection_time_ms": None,
            }
        except Exception as e:
            logger.warning("Database probe failed", stage="H.DB", error=str(e))
            result = {
                "status": HealthStatus.UNHEALTHY.value,
                "error": str(e),
                "connection_time_ms": None,
            }
        else:
            result = {
                "status": HealthStatus.HEALTHY.value,
                "connection_time_ms": round((time.perf_counter() - start) * 1000, 2),
                "stats": stats,
                "pool": _safe(data_store.pool_status, {}),
            }

        if self._db_monitor is not None:
            result["watchdog"] = self._db_monitor.get_health()
        return result

    async def get_cache_health(self) -> dict[str, Any]:
        """
        STAGE-H.CACHE: Write, read back and delete a disposable probe key.
        """
        try:
            stats = await self._cache.get_stats()
            probe_key = f"{HEALTH_PROBE_KEY_PREFIX}{int(time.time() * 1000)}"
            probe_value = {"test": True}

            await self._cache.set(probe_key, probe_value, HEALTH_PROBE_TTL)
            retrieved = await self._cache.get(probe_key)
            await self._cache.delete(probe_key)

            is_working = isinstance(retrieved, dict) and retrieved.get("test") is True
            return {
                "status": (HealthStatus.HEALTHY if is_working else HealthStatus.DEGRADED).value,
                "stats": stats,
                "backend": stats.get("backend"),
            }
        except Exception as e:
            logger.warning("Cache probe failed", stage="H.CACHE", error=str(e))
            return {"status": HealthStatus.UNHEALTHY.value, "error": str(e)}

    # -------------------------------------------------------------------------
    # Aggregates
    # -------------------------------------------------------------------------

    async def get_health_report(self) -> dict[str, Any]:
        """
        STAGE-H.1: Full health report, probes run concurrently.
        """
        system, database, cache = await asyncio.gather(
            asyncio.to_thread(self.get_system_metrics),
            self.get_database_health(),
            self.get_cache_health(),
        )

        healthy = (
            database.get("status") == HealthStatus.HEALTHY.value
            and cache.get("status") != HealthStatus.UNHEALTHY.value
        )
        return {
            "status": (HealthStatus.HEALTHY if healthy else HealthStatus.DEGRADED).value,
            "timestamp": utc_timestamp(),
            "services": {"database": database, "cache": cache, "system": system},
            "performance": {
                "requests": self._tracker.metrics(),
                "slow_requests": self._tracker.slow_requests(limit=HEALTH_REPORT_SLOW_REQUESTS),
            },
        }

    def get_recommendations(self) -> list[dict[str, Any]]:
        """
        Advisory findings over the latest metrics. Empty when nothing stands out.
        """
        system = self._last_system or self.get_system_metrics()
        requests = self._tracker.metrics()
        recommendations: list[dict[str, Any]] = []

        memory_mb = system.get("memory", {}).get("usage", {}).get("rss_mb", 0)
        if memory_mb > MEMORY_WARNING_MB:
            recommendations.append(
                {
                    "type": "memory",
                    "severity": "warning",
                    "message": "High memory usage detected. Consider optimizing memory-intensive operations.",
                    "value": f"{memory_mb}MB",
                }
            )

        avg_ms = requests["avg_response_time_ms"]
        if avg_ms > AVG_RESPONSE_WARNING_MS:
            recommendations.append(
                {
                    "type": "performance",
                    "severity": "warning",
                    "message": "Average response time is high. Consider adding more caching or optimizing queries.",
                    "value": f"{round(avg_ms)}ms",
                }
            )

        slow_count = requests["slow_request_count"]
        if slow_count > SLOW_REQUEST_CRITICAL_COUNT:
            recommendations.append(
                {
                    "type": "performance",
                    "severity": "critical",
                    "message": "Too many slow requests detected. Review slow request log and optimize.",
                    "value": f"{slow_count} slow requests",
                }
            )

        return recommendations

    def reset_metrics(self) -> None:
        self._tracker.reset()
