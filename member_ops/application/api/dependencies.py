"""
FastAPI Dependency Injection Module
===================================

Services are built once in the application lifespan and stored on
``app.state``. Route handlers receive them through the dependency
functions below instead of importing module-level singletons, so tests can
build an app with their own fakes.

Example:
    @router.get("/cache/stats")
    async def cache_stats(cache: CacheServiceDep):
        return await cache.get_stats()

The authenticated user is provided by the external session layer on
``request.state.user``, either as a mapping or as an object; the helpers
here read it without depending on its concrete type.
"""

from typing import Annotated, Any

from fastapi import Depends, Request

from member_ops.core.config.settings import Settings, get_settings
from member_ops.core.exceptions import AuthorizationError, DatabaseUnavailableError
from member_ops.infrastructure.cache.cache_service import CacheService
from member_ops.infrastructure.monitoring.database_monitor import DatabaseHealthMonitor
from member_ops.infrastructure.monitoring.health_aggregator import HealthAggregator
from member_ops.infrastructure.monitoring.request_tracker import RequestTracker

# ============================================================================
# SERVICE PROVIDERS
# ============================================================================


def _from_state(request: Request, name: str) -> Any:
    service = getattr(request.app.state, name, None)
    if service is None:
        raise RuntimeError(
            f"{name} not initialized in app.state. "
            "This indicates the application lifespan startup didn't complete properly."
        )
    return service


def get_app_settings(request: Request) -> Settings:
    """Settings the app was built with, falling back to the process settings."""
    return getattr(request.app.state, "settings", None) or get_settings()


def get_cache_service(request: Request) -> CacheService:
    return _from_state(request, "cache_service")


def get_request_tracker(request: Request) -> RequestTracker:
    return _from_state(request, "request_tracker")


def get_health_aggregator(request: Request) -> HealthAggregator:
    return _from_state(request, "health_aggregator")


# ============================================================================
# USER HELPERS
# ============================================================================


def get_current_user(request: Request) -> Any | None:
    return getattr(request.state, "user", None)


def user_field(user: Any, name: str) -> Any:
    """Read ``name`` from a mapping-style or attribute-style user."""
    if user is None:
        return None
    if isinstance(user, dict):
        return user.get(name)
    return getattr(user, name, None)


def is_admin(user: Any) -> bool:
    return user_field(user, "user_type") == "admin"


# ============================================================================
# GUARDS
# ============================================================================


def require_admin(request: Request) -> None:
    """Admin only, in every environment."""
    if not is_admin(get_current_user(request)):
        raise AuthorizationError("Admin access required")


def require_admin_in_production(request: Request) -> None:
    """Admin only when running in production; open otherwise."""
    settings = get_app_settings(request)
    if settings.is_production and not is_admin(get_current_user(request)):
        raise AuthorizationError("Admin access required")


def require_non_production(request: Request) -> None:
    if get_app_settings(request).is_production:
        raise AuthorizationError("Not available in production")


def require_healthy_database(request: Request) -> None:
    """
    Reject the request with 503 while the database watchdog reports the
    database unhealthy. Opt-in per route.
    """
    monitor: DatabaseHealthMonitor | None = getattr(request.app.state, "db_monitor", None)
    if monitor is not None and not monitor.is_healthy:
        raise DatabaseUnavailableError("Database service temporarily unavailable")


# ============================================================================
# TYPE ALIASES
# ============================================================================

SettingsDep = Annotated[Settings, Depends(get_app_settings)]
CacheServiceDep = Annotated[CacheService, Depends(get_cache_service)]
RequestTrackerDep = Annotated[RequestTracker, Depends(get_request_tracker)]
HealthAggregatorDep = Annotated[HealthAggregator, Depends(get_health_aggregator)]

AdminOnly = Depends(require_admin)
AdminOutsideDev = Depends(require_admin_in_production)
NonProductionOnly = Depends(require_non_production)
HealthyDatabase = Depends(require_healthy_database)
