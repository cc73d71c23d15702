"""
Operational Routes
==================

Health, metrics and cache administration endpoints for operators.

| Method & Path        | Access                                      |
|----------------------|---------------------------------------------|
| GET  /health         | open; 503 unless healthy                    |
| GET  /health/detailed| admin only in production                    |
| GET  /metrics        | admin only in production                    |
| POST /cache/clear    | admin only                                  |
| GET  /cache/stats    | admin only in production                    |
| GET  /system         | admin only in production                    |
| POST /metrics/reset  | refused in production                       |

Authorization failures surface as 403 ``{"error": message}``.
"""

import asyncio
import os
import platform
from typing import Any

from fastapi import APIRouter
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from member_ops.application.api.dependencies import (
    AdminOnly,
    AdminOutsideDev,
    CacheServiceDep,
    HealthAggregatorDep,
    NonProductionOnly,
    RequestTrackerDep,
    SettingsDep,
)
from member_ops.core.config.constants import HealthStatus
from member_ops.core.logging.logger import get_logger
from member_ops.infrastructure.monitoring.health_aggregator import utc_timestamp

logger = get_logger(__name__)

router = APIRouter(tags=["Monitoring"])


class ActionResponse(BaseModel):
    """Acknowledgement for operator actions."""

    success: bool
    message: str
    timestamp: str


def _environment_block(settings) -> dict[str, Any]:
    return {
        "environment": settings.app.ENVIRONMENT,
        "app_version": settings.app.APP_VERSION,
        "python_version": platform.python_version(),
        "implementation": platform.python_implementation(),
        "pid": os.getpid(),
    }


@router.get("/health")
async def health(aggregator: HealthAggregatorDep, settings: SettingsDep):
    """
    Basic health check.

    Returns 200 when healthy and 503 otherwise, so load balancers can act
    on the status code alone.
    """
    try:
        report = await aggregator.get_health_report()
    except Exception as e:
        logger.error("Health check failed", stage="OPS.1", error=str(e), exc_info=True)
        return JSONResponse(
            status_code=503,
            content={
                "status": HealthStatus.ERROR.value,
                "message": "Health check failed",
                "timestamp": utc_timestamp(),
            },
        )

    status_code = 200 if report["status"] == HealthStatus.HEALTHY.value else 503
    return JSONResponse(
        status_code=status_code,
        content={
            "status": report["status"],
            "timestamp": report["timestamp"],
            "uptime": round(aggregator.uptime_seconds(), 3),
            "version": settings.app.APP_VERSION,
        },
    )


@router.get("/health/detailed", dependencies=[AdminOutsideDev])
async def health_detailed(aggregator: HealthAggregatorDep, settings: SettingsDep):
    """Full health report with recommendations."""
    report = await aggregator.get_health_report()
    return {
        **report,
        "recommendations": aggregator.get_recommendations(),
        "environment": settings.app.ENVIRONMENT,
        "python_version": platform.python_version(),
    }


@router.get("/metrics", dependencies=[AdminOutsideDev])
async def metrics(aggregator: HealthAggregatorDep, tracker: RequestTrackerDep):
    system, database, cache = await asyncio.gather(
        asyncio.to_thread(aggregator.get_system_metrics),
        aggregator.get_database_health(),
        aggregator.get_cache_health(),
    )
    return {
        "timestamp": utc_timestamp(),
        "system": system,
        "cache": cache,
        "database": database,
        "requests": tracker.metrics(),
    }


@router.post("/cache/clear", response_model=ActionResponse, dependencies=[AdminOnly])
async def cache_clear(cache: CacheServiceDep):
    success = await cache.flush()
    logger.info("Cache cleared by operator", stage="OPS.2", success=success)
    return ActionResponse(
        success=success,
        message="Cache cleared successfully" if success else "Cache clear failed",
        timestamp=utc_timestamp(),
    )


@router.get("/cache/stats", dependencies=[AdminOutsideDev])
async def cache_stats(cache: CacheServiceDep):
    stats = await cache.get_stats()
    return {**stats, "timestamp": utc_timestamp()}


@router.get("/system", dependencies=[AdminOutsideDev])
async def system_info(aggregator: HealthAggregatorDep, settings: SettingsDep):
    system = await asyncio.to_thread(aggregator.get_system_metrics)
    return {
        **system,
        "environment": _environment_block(settings),
        "timestamp": utc_timestamp(),
    }


@router.post("/metrics/reset", response_model=ActionResponse, dependencies=[NonProductionOnly])
async def metrics_reset(aggregator: HealthAggregatorDep):
    aggregator.reset_metrics()
    return ActionResponse(
        success=True,
        message="Performance metrics reset successfully",
        timestamp=utc_timestamp(),
    )
