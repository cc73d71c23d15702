#!/usr/bin/env python3
"""
Cache Service

Architecture:
    CacheService (Public API, fail-open)
        └── BackendSelector
              ├── RedisClient (distributed)
              └── LocalStore (local)

Every operation resolves the active backend from the selector at call time;
the service itself holds no backend-selection state. No operation raises:
errors are logged at warning level and the documented neutral value is
returned instead (None for get, False for the boolean operations).

Values are JSON-encoded with orjson on both backends, so a cached payload
round-trips identically whichever backend is active.

Author: Platform Team
Date: 2025-10-02
"""

import asyncio
import re
from collections.abc import Callable
from typing import Any

import orjson

from member_ops.core.config.constants import BackendKind
from member_ops.core.config.settings import Settings, get_settings
from member_ops.core.exceptions import CacheError, CacheSerializationError
from member_ops.core.logging.logger import get_logger
from member_ops.infrastructure.cache.backend_selector import ActiveBackend, BackendSelector

logger = get_logger(__name__)


def _encode(value: Any) -> str:
    try:
        return orjson.dumps(value).decode("utf-8")
    except TypeError as e:
        raise CacheSerializationError(
            f"Value is not JSON serializable: {e}", details={"type": type(value).__name__}
        ) from e


def _decode(raw: str) -> Any:
    try:
        return orjson.loads(raw)
    except orjson.JSONDecodeError as e:
        raise CacheSerializationError(f"Cached payload is not valid JSON: {e}") from e


class CacheService:
    """
    The public cache API used by handlers, decorators and health probes.

    Usage:
        service = CacheService(selector)
        await service.set("businesses:all", {"count": 5}, ttl=600)
        await service.get("businesses:all")          # {"count": 5}
        await service.delete_pattern("businesses:.*")
        await service.get("businesses:all")          # None
    """

    def __init__(self, selector: BackendSelector, settings: Settings | None = None):
        self._selector = selector
        self._settings = settings or get_settings()

    @property
    def selector(self) -> BackendSelector:
        return self._selector

    @property
    def default_ttl(self) -> int:
        return self._settings.cache.CACHE_DEFAULT_TTL

    def _handle_error(self, op: str, backend: ActiveBackend, error: Exception, **context) -> None:
        """Log a swallowed backend error and let the selector react to it."""
        logger.warning(
            f"Cache {op} failed",
            stage=f"CACHE.{op.upper()}",
            backend=backend.kind.value,
            error=str(error),
            error_type=type(error).__name__,
            **context,
        )
        if backend.is_distributed:
            self._selector.report_failure(error)

    # -------------------------------------------------------------------------
    # Core Operations
    # -------------------------------------------------------------------------

    async def get(self, key: str) -> Any | None:
        """
        STAGE-CACHE.GET: Read a value.

        Returns None on a miss, on an undecodable payload, or on any backend error.
        """
        backend = self._selector.active
        try:
            if backend.is_distributed:
                raw = await backend.redis.get(key)
            else:
                raw = await backend.local.get(key)
            if raw is None:
                return None
            return _decode(raw)
        except CacheSerializationError as e:
            logger.warning("Discarding undecodable cache entry", stage="CACHE.GET", key=key, error=str(e))
            return None
        except CacheError as e:
            self._handle_error("get", backend, e, key=key)
            return None

    async def set(self, key: str, value: Any, ttl: int | None = None) -> bool:
        """
        STAGE-CACHE.SET: Store a JSON-serializable value.

        Args:
            key: Cache key
            value: Payload, anything orjson can encode
            ttl: Seconds to live. None uses CACHE_DEFAULT_TTL, 0 never expires
        """
        if ttl is None:
            ttl = self.default_ttl
        backend = self._selector.active
        try:
            payload = _encode(value)
            if backend.is_distributed:
                await backend.redis.set(key, payload, ttl=ttl)
            else:
                await backend.local.set(key, payload, ttl=ttl)
            return True
        except CacheSerializationError as e:
            logger.warning("Refusing to cache unserializable value", stage="CACHE.SET", key=key, error=str(e))
            return False
        except CacheError as e:
            self._handle_error("set", backend, e, key=key)
            return False

    async def delete(self, key: str) -> bool:
        """STAGE-CACHE.DEL: Remove one key. True when the backend accepted the command."""
        backend = self._selector.active
        try:
            if backend.is_distributed:
                await backend.redis.delete(key)
            else:
                await backend.local.delete(key)
            return True
        except CacheError as e:
            self._handle_error("delete", backend, e, key=key)
            return False

    async def flush(self) -> bool:
        """STAGE-CACHE.FLUSH: Clear the active backend only."""
        backend = self._selector.active
        try:
            if backend.is_distributed:
                await backend.redis.flushdb()
            else:
                await backend.local.clear()
            logger.info("Cache flushed", stage="CACHE.FLUSH", backend=backend.kind.value)
            return True
        except CacheError as e:
            self._handle_error("flush", backend, e)
            return False

    async def delete_pattern(self, pattern: str) -> bool:
        """
        STAGE-CACHE.DELP: Delete every key whose name matches a regular expression.

        The local backend scans its key set. The distributed backend only
        supports this when CACHE_REDIS_PATTERN_SCAN is enabled; otherwise the
        call is a logged no-op that still reports success.
        """
        try:
            regex = re.compile(pattern)
        except re.error as e:
            logger.warning("Invalid cache key pattern", stage="CACHE.DELP", pattern=pattern, error=str(e))
            return False

        backend = self._selector.active
        try:
            if backend.is_distributed:
                if not self._settings.cache.CACHE_REDIS_PATTERN_SCAN:
                    logger.warning(
                        "Pattern delete not supported on distributed cache, skipped",
                        stage="CACHE.DELP",
                        pattern=pattern,
                    )
                    return True
                deleted = await backend.redis.scan_delete(regex)
            else:
                deleted = await backend.local.delete_matching(regex)
            logger.debug("Cache pattern deleted", stage="CACHE.DELP", pattern=pattern, deleted=deleted)
            return True
        except CacheError as e:
            self._handle_error("delete_pattern", backend, e, pattern=pattern)
            return False

    async def get_stats(self) -> dict[str, Any]:
        """
        STAGE-CACHE.STATS: Backend-specific statistics.

        Distributed: {"backend", "connected", "keys"}; keys is omitted when
        the server cannot be asked. Local: {"backend", "keys", "hits",
        "misses", "hit_rate"}.
        """
        backend = self._selector.active
        if not backend.is_distributed:
            return {"backend": BackendKind.LOCAL.value, **(await backend.local.stats())}

        stats: dict[str, Any] = {
            "backend": BackendKind.DISTRIBUTED.value,
            "connected": backend.redis.is_connected(),
        }
        try:
            stats["keys"] = await backend.redis.dbsize()
        except CacheError as e:
            self._handle_error("stats", backend, e)
            stats["connected"] = False
        return stats

    # -------------------------------------------------------------------------
    # Advanced Patterns
    # -------------------------------------------------------------------------

    async def get_or_set(
        self,
        key: str,
        fetch: Callable[[], Any],
        ttl: int | None = None,
    ) -> Any:
        """
        Get from cache or fetch and cache the result (cache-aside pattern).

        STAGE-CACHE.AS: Cache-aside

        Only truthy fetched values are stored, so empty results are fetched
        again on the next call. Errors raised by ``fetch`` propagate.

        Args:
            key: Cache key
            fetch: Sync or async callable producing the value on a miss
            ttl: Time-to-live in seconds
        """
        cached = await self.get(key)
        if cached is not None:
            return cached

        if asyncio.iscoroutinefunction(fetch):
            value = await fetch()
        else:
            value = fetch()
            if asyncio.iscoroutine(value):
                value = await value

        if value:
            await self.set(key, value, ttl)

        return value
