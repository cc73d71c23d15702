"""
Redis Client

Architecture:
    RedisClient (Public API)
        ├── ConnectionManager (Connection lifecycle)
        └── OperationExecutor (Command execution with error translation)

Error translation:
    - redis ConnectionError / TimeoutError → CacheConnectionError
      (the backend selector falls back to the local store on these)
    - any other RedisError → CacheKeyError

Author: Platform Team
Date: 2025-10-02
"""

import re
from typing import Any

import redis.asyncio as redis
from redis.exceptions import ConnectionError, RedisError, TimeoutError

from member_ops.core.config.settings import Settings, get_settings
from member_ops.core.exceptions import CacheConnectionError, CacheKeyError
from member_ops.core.logging.logger import get_logger

logger = get_logger(__name__)


def _redact_url(url: str) -> str:
    """Hide the password part of a redis:// URL for logging."""
    return re.sub(r"//([^:@/]*):[^@/]*@", r"//\1:***@", url)


# =============================================================================
# LAYER 1: CONNECTION MANAGEMENT
# =============================================================================


class ConnectionManager:
    """
    Manages the Redis connection lifecycle.

    The client is built from REDIS_URL with decoded (str) responses and the
    configured socket timeouts. A connection counts as established only
    after a successful PING.
    """

    def __init__(self, settings: Settings):
        self._settings = settings
        self._client: redis.Redis | None = None
        self._is_connected = False

    @property
    def url(self) -> str:
        return self._settings.redis.REDIS_URL or "redis://localhost:6379/0"

    async def connect(self) -> redis.Redis:
        """
        Establish connection to Redis.

        STAGE-REDIS.2: Connection establishment

        Raises:
            CacheConnectionError: If the server cannot be reached
        """
        if self._is_connected and self._client:
            return self._client

        redis_settings = self._settings.redis
        try:
            self._client = redis.from_url(
                self.url,
                decode_responses=True,
                socket_timeout=redis_settings.REDIS_SOCKET_TIMEOUT,
                socket_connect_timeout=redis_settings.REDIS_SOCKET_CONNECT_TIMEOUT,
            )
            await self._client.ping()
            self._is_connected = True

            logger.info("Redis connected successfully", stage="REDIS.2", url=_redact_url(self.url))
            return self._client

        except (ConnectionError, TimeoutError, OSError) as e:
            await self._close_client()
            logger.warning("Failed to connect to Redis", stage="REDIS.2", error=str(e))
            raise CacheConnectionError(
                message=f"Failed to connect to Redis: {e}",
                details={"url": _redact_url(self.url)},
            ) from e

    async def disconnect(self) -> None:
        """
        Close the Redis connection.

        STAGE-REDIS.3: Connection cleanup
        """
        await self._close_client()
        logger.info("Redis disconnected", stage="REDIS.3")

    async def _close_client(self) -> None:
        client, self._client = self._client, None
        self._is_connected = False
        if client is not None:
            try:
                await client.aclose()
            except RedisError as e:
                logger.debug("Error while closing Redis client", stage="REDIS.3", error=str(e))

    def mark_disconnected(self) -> None:
        self._is_connected = False

    def get_client(self) -> redis.Redis | None:
        return self._client

    def is_connected(self) -> bool:
        return self._is_connected


# =============================================================================
# LAYER 2: OPERATION EXECUTION
# =============================================================================


class OperationExecutor:
    """
    Executes Redis commands with consistent error translation.

    Error Handling Strategy:
    - Transport failures mark the connection down and raise CacheConnectionError
    - Command failures raise CacheKeyError with the key in details
    """

    def __init__(self, conn_mgr: ConnectionManager):
        self._conn_mgr = conn_mgr

    def _client(self) -> redis.Redis:
        client = self._conn_mgr.get_client()
        if client is None or not self._conn_mgr.is_connected():
            raise CacheConnectionError("Redis client is not connected")
        return client

    async def run(self, op: str, coro_factory, **context) -> Any:
        """
        Run one command and translate redis errors.

        Args:
            op: Command name for logs (GET, SET, ...)
            coro_factory: Callable taking the client and returning an awaitable
            **context: Extra fields for logs and error details
        """
        client = self._client()
        try:
            return await coro_factory(client)
        except (ConnectionError, TimeoutError, OSError) as e:
            self._conn_mgr.mark_disconnected()
            logger.warning(f"Redis {op} lost connection", stage=f"REDIS.{op}", error=str(e), **context)
            raise CacheConnectionError(
                message=f"Redis {op} failed: {e}", details={"operation": op, **context}
            ) from e
        except RedisError as e:
            logger.error(f"Redis {op} failed", stage=f"REDIS.{op}", error=str(e), **context)
            raise CacheKeyError(
                message=f"Redis {op} failed: {e}", details={"operation": op, **context}
            ) from e


# =============================================================================
# PUBLIC API
# =============================================================================


class RedisClient:
    """
    Async Redis client used as the distributed cache backend.

    Usage:
        client = RedisClient(settings)
        await client.connect()

        await client.set("key", "value", ttl=300)
        value = await client.get("key")

        await client.disconnect()
    """

    def __init__(self, settings: Settings | None = None):
        """
        Initialize Redis client.

        STAGE-REDIS.1: Client initialization
        """
        self._settings = settings or get_settings()
        self._conn_mgr = ConnectionManager(self._settings)
        self._executor = OperationExecutor(self._conn_mgr)

    async def connect(self) -> None:
        """Connect and PING. Raises CacheConnectionError on failure."""
        await self._conn_mgr.connect()

    async def disconnect(self) -> None:
        await self._conn_mgr.disconnect()

    def is_connected(self) -> bool:
        return self._conn_mgr.is_connected()

    async def ping(self) -> bool:
        """
        Check Redis connection health.

        Returns:
            True if healthy, False otherwise
        """
        if not self._conn_mgr.is_connected():
            return False
        try:
            return bool(await self._executor.run("PING", lambda c: c.ping()))
        except (CacheConnectionError, CacheKeyError):
            return False

    async def get(self, key: str) -> str | None:
        return await self._executor.run("GET", lambda c: c.get(key), key=key)

    async def set(self, key: str, value: str, ttl: int | None = None) -> bool:
        """SET with an expiry when ttl > 0, plain SET otherwise."""
        if ttl and ttl > 0:
            result = await self._executor.run("SET", lambda c: c.set(key, value, ex=ttl), key=key)
        else:
            result = await self._executor.run("SET", lambda c: c.set(key, value), key=key)
        return bool(result)

    async def delete(self, *keys: str) -> int:
        return await self._executor.run("DEL", lambda c: c.delete(*keys), keys=list(keys))

    async def flushdb(self) -> bool:
        return bool(await self._executor.run("FLUSHDB", lambda c: c.flushdb()))

    async def dbsize(self) -> int:
        return int(await self._executor.run("DBSIZE", lambda c: c.dbsize()))

    async def scan_delete(self, pattern: re.Pattern[str], batch_size: int = 500) -> int:
        """
        Delete every key whose name matches the compiled regex.

        Walks the keyspace with SCAN and deletes matches in batches. Not atomic:
        keys written during the walk may be missed.
        """

        async def _scan_and_delete(client: redis.Redis) -> int:
            deleted = 0
            batch: list[str] = []
            async for key in client.scan_iter(count=batch_size):
                if pattern.search(key):
                    batch.append(key)
                if len(batch) >= batch_size:
                    deleted += await client.delete(*batch)
                    batch = []
            if batch:
                deleted += await client.delete(*batch)
            return deleted

        return await self._executor.run("SCAN", _scan_and_delete, pattern=pattern.pattern)
