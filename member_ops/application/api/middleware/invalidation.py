"""
Cache Invalidation Decorator
============================

After the wrapped handler returns a 2xx response, every configured pattern
is resolved (a string, or a callable taking the Request) and passed to
``CacheService.delete_pattern``, one after another. Invalidation errors are
logged and never reach the caller. A handler that raises is not followed by
invalidation.

The trigger is the status code alone. When a cached read handler is also
wrapped with invalidation, a 200 cache hit still invalidates:

    @invalidate_cache(["deals:.*"])
    @cache_response()
    async def handler(request): ...
"""

import functools
import re
from collections.abc import Callable, Sequence

from starlette.requests import Request
from starlette.responses import Response

from member_ops.application.api.dependencies import get_current_user, user_field
from member_ops.application.api.middleware.response_cache import Handler, find_request, resolve_cache
from member_ops.core.logging.logger import get_logger
from member_ops.infrastructure.cache.cache_service import CacheService

logger = get_logger(__name__)

Pattern = str | Callable[[Request], str]


def _status_of(result) -> int:
    if isinstance(result, Response):
        return result.status_code
    return 200


async def run_invalidation(cache: CacheService, patterns: Sequence[Pattern], request: Request) -> None:
    for pattern in patterns:
        try:
            resolved = pattern(request) if callable(pattern) else pattern
            await cache.delete_pattern(resolved)
            logger.debug("Cache INVALIDATED", stage="INV.1", pattern=resolved)
        except Exception as e:
            logger.warning("Cache invalidation error", stage="INV.1", error=str(e))


def invalidate_cache(
    patterns: Sequence[Pattern],
    cache: CacheService | None = None,
) -> Callable[[Handler], Handler]:
    """
    Invalidate cache keys matching ``patterns`` after a successful handler.

    Args:
        patterns: Regex strings or callables producing one from the Request
        cache: CacheService to use; defaults to ``request.app.state.cache_service``
    """
    patterns = tuple(patterns)

    def decorator(handler: Handler) -> Handler:
        @functools.wraps(handler)
        async def wrapper(*args, **kwargs):
            result = await handler(*args, **kwargs)

            status = _status_of(result)
            if not 200 <= status < 300:
                return result

            request = find_request(args, kwargs)
            if request is None:
                return result
            service = resolve_cache(request, cache)
            if service is not None:
                await run_invalidation(service, patterns, request)
            return result

        return wrapper

    return decorator


# ============================================================================
# PRESETS
# ============================================================================


def _user_pattern(request: Request) -> str:
    user_id = request.path_params.get("id") or user_field(get_current_user(request), "id")
    return f"^user:.*:{re.escape(str(user_id))}$"


def invalidate_business_cache(cache: CacheService | None = None):
    # Deals hang off businesses
    return invalidate_cache(["businesses:*", "deals:*"], cache)


def invalidate_deals_cache(cache: CacheService | None = None):
    return invalidate_cache(["deals:*"], cache)


def invalidate_user_cache(cache: CacheService | None = None):
    return invalidate_cache([_user_pattern], cache)


def invalidate_system_cache(cache: CacheService | None = None):
    return invalidate_cache(["system:*", "plans:*"], cache)
