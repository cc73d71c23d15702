"""
Middleware Package
==================

AVAILABLE MIDDLEWARE:
---------------------
1. error_handler: JSON 500 for anything that escapes the handlers
2. request_context: X-Request-ID correlation for logs and responses
3. request_tracking: request counters, slow request ring, X-Response-Time

ROUTE DECORATORS:
-----------------
- response_cache: read-through caching of handler responses
- invalidation: pattern invalidation after successful handlers

MIDDLEWARE ORDERING:
--------------------
Starlette runs the middleware added last first. ``setup_middleware``
registers them so that a request passes through:

    error handling → request context → request tracking → handler

so errors are caught around everything, and the request id is bound before
the tracker logs a slow request.
"""

from fastapi import FastAPI

from member_ops.core.config.settings import Settings, get_settings
from member_ops.core.logging.logger import get_logger

from .error_handler import ErrorHandlingMiddleware, add_error_handling_middleware
from .invalidation import (
    invalidate_business_cache,
    invalidate_cache,
    invalidate_deals_cache,
    invalidate_system_cache,
    invalidate_user_cache,
)
from .request_context import RequestContextMiddleware
from .request_tracking import RequestTrackingMiddleware, add_request_tracking_middleware
from .response_cache import (
    ResponseCacheConfig,
    business_directory_cache,
    cache_response,
    deals_cache,
    drain,
    plans_cache,
    system_settings_cache,
    user_profile_cache,
)

logger = get_logger(__name__)


def setup_middleware(app: FastAPI, settings: Settings | None = None):
    """Register all middleware components in the correct order."""
    settings = settings or get_settings()

    add_request_tracking_middleware(app)
    app.add_middleware(RequestContextMiddleware)
    add_error_handling_middleware(app, include_traceback=(settings.app.ENVIRONMENT == "development"))

    logger.info("All middleware components registered successfully")


__all__ = [
    "setup_middleware",
    # Middleware
    "ErrorHandlingMiddleware",
    "RequestContextMiddleware",
    "RequestTrackingMiddleware",
    # Read-through caching
    "ResponseCacheConfig",
    "cache_response",
    "drain",
    "business_directory_cache",
    "deals_cache",
    "user_profile_cache",
    "plans_cache",
    "system_settings_cache",
    # Invalidation
    "invalidate_cache",
    "invalidate_business_cache",
    "invalidate_deals_cache",
    "invalidate_user_cache",
    "invalidate_system_cache",
]
