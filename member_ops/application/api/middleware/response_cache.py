"""
Response Cache Decorator (read-through)
=======================================

Wraps an async route handler so that qualifying requests are answered from
the CacheService when possible:

1. condition(request) is false → the handler runs unchanged
2. key = key_generator(request); a cached payload is returned directly as
   JSON with ``X-Cache: HIT`` and the handler is not called
3. on a miss the handler runs; a 200 response with a JSON body (``[]`` and
   ``{}`` count, ``null`` does not) is written to the cache by a detached
   background task, and the response goes out immediately with
   ``X-Cache: MISS``

A failed background write only produces a log line. Concurrent misses for
the same key each run the handler and each write the cache; there is no
per-key locking.

Handlers must accept the Starlette ``Request`` (positionally or as a
keyword) and return either a Response or a JSON-able payload, which is
treated as a 200 JSON response.

Usage:
    @router.get("/deals")
    @deals_cache()
    async def list_deals(request: Request):
        ...
"""

import asyncio
import functools
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import Any

import orjson
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse
from starlette.requests import Request
from starlette.responses import Response

from member_ops.application.api.dependencies import get_current_user, user_field
from member_ops.core.config.constants import HEADER_CACHE
from member_ops.core.logging.logger import get_logger
from member_ops.infrastructure.cache.cache_service import CacheService

logger = get_logger(__name__)

Handler = Callable[..., Awaitable[Any]]

# Strong references to in-flight cache writes until they finish
_pending_writes: set[asyncio.Task] = set()


def default_key_generator(request: Request) -> str:
    """``METHOD:path`` plus ``?query`` when the request has a query string."""
    key = f"{request.method}:{request.url.path}"
    if request.url.query:
        key += f"?{request.url.query}"
    return key


def is_get_request(request: Request) -> bool:
    return request.method == "GET"


@dataclass
class ResponseCacheConfig:
    ttl: int = 300
    key_generator: Callable[[Request], str] = field(default=default_key_generator)
    condition: Callable[[Request], bool] = field(default=is_get_request)


def find_request(args: tuple, kwargs: dict) -> Request | None:
    """Locate the Request among a handler's call arguments."""
    for value in (*args, *kwargs.values()):
        if isinstance(value, Request):
            return value
    return None


def resolve_cache(request: Request, cache: CacheService | None) -> CacheService | None:
    if cache is not None:
        return cache
    return getattr(request.app.state, "cache_service", None)


def as_response(result: Any) -> tuple[Response, Any]:
    """
    Normalize a handler result into (response, json_body).

    json_body is None when the response is not JSON.
    """
    if isinstance(result, Response):
        if isinstance(result, JSONResponse) or result.media_type == "application/json":
            try:
                return result, orjson.loads(result.body)
            except (orjson.JSONDecodeError, AttributeError, TypeError):
                return result, None
        return result, None

    body = jsonable_encoder(result)
    return JSONResponse(content=body), body


def _log_write_outcome(key: str, task: asyncio.Task) -> None:
    _pending_writes.discard(task)
    if task.cancelled():
        return
    error = task.exception()
    if error is not None:
        logger.warning("Background cache write failed", stage="RC.3", key=key, error=str(error))
    elif task.result() is False:
        logger.debug("Background cache write not stored", stage="RC.3", key=key)


def schedule_cache_write(cache: CacheService, key: str, body: Any, ttl: int) -> asyncio.Task:
    """Start a detached cache write; it never affects the response."""
    task = asyncio.create_task(cache.set(key, body, ttl))
    _pending_writes.add(task)
    task.add_done_callback(functools.partial(_log_write_outcome, key))
    return task


async def drain() -> None:
    """Wait for all in-flight background cache writes (tests, shutdown)."""
    while _pending_writes:
        await asyncio.gather(*list(_pending_writes), return_exceptions=True)


def cache_response(
    config: ResponseCacheConfig | None = None,
    cache: CacheService | None = None,
) -> Callable[[Handler], Handler]:
    """
    Read-through caching for an async route handler.

    Args:
        config: TTL, key generator and condition; defaults to
            ResponseCacheConfig()
        cache: CacheService to use; defaults to ``request.app.state.cache_service``
    """
    config = config or ResponseCacheConfig()

    def decorator(handler: Handler) -> Handler:
        @functools.wraps(handler)
        async def wrapper(*args, **kwargs):
            request = find_request(args, kwargs)
            if request is None or not config.condition(request):
                return await handler(*args, **kwargs)

            service = resolve_cache(request, cache)
            if service is None:
                return await handler(*args, **kwargs)

            key = config.key_generator(request)
            cached = await service.get(key)
            if cached is not None:
                logger.debug("Cache HIT", stage="RC.1", key=key)
                return JSONResponse(content=cached, headers={HEADER_CACHE: "HIT"})

            result = await handler(*args, **kwargs)
            response, body = as_response(result)

            if response.status_code == 200 and body is not None:
                schedule_cache_write(service, key, body, config.ttl)
                logger.debug("Cache SET scheduled", stage="RC.2", key=key, ttl=config.ttl)

            response.headers[HEADER_CACHE] = "MISS"
            return response

        return wrapper

    return decorator


# ============================================================================
# PRESETS
# ============================================================================


def _directory_key(request: Request) -> str:
    params = request.query_params
    key = "businesses:directory"
    if params.get("category"):
        key += f":category:{params['category']}"
    if params.get("verified"):
        key += f":verified:{params['verified']}"
    return key


def _deals_key(request: Request) -> str:
    params = request.query_params
    key = "deals:list"
    if params.get("category"):
        key += f":category:{params['category']}"
    if params.get("businessId"):
        key += f":business:{params['businessId']}"
    if params.get("active"):
        key += f":active:{params['active']}"
    return key


def _profile_user_id(request: Request) -> Any:
    return request.path_params.get("id") or user_field(get_current_user(request), "id")


def _profile_key(request: Request) -> str:
    return f"user:profile:{_profile_user_id(request)}"


def _authenticated_get(request: Request) -> bool:
    return request.method == "GET" and get_current_user(request) is not None


def business_directory_cache(cache: CacheService | None = None):
    return cache_response(ResponseCacheConfig(ttl=600, key_generator=_directory_key), cache)


def deals_cache(cache: CacheService | None = None):
    return cache_response(ResponseCacheConfig(ttl=300, key_generator=_deals_key), cache)


def user_profile_cache(cache: CacheService | None = None):
    return cache_response(
        ResponseCacheConfig(ttl=180, key_generator=_profile_key, condition=_authenticated_get), cache
    )


def plans_cache(cache: CacheService | None = None):
    return cache_response(ResponseCacheConfig(ttl=1800, key_generator=lambda _: "plans:all"), cache)


def system_settings_cache(cache: CacheService | None = None):
    return cache_response(ResponseCacheConfig(ttl=3600, key_generator=lambda _: "system:settings"), cache)
