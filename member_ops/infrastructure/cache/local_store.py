"""
In-Process TTL Store

The local cache backend. Used when no distributed cache is configured and
as the permanent fallback once the distributed backend fails.

This is a per-process store, not shared across workers. There is no size
bound and no eviction other than TTL expiry.

Author: Platform Team
Date: 2025-10-02
"""

import asyncio
import re
import time

from member_ops.core.config.constants import LOCAL_CACHE_DEFAULT_TTL
from member_ops.core.logging.logger import get_logger

logger = get_logger(__name__)

# Expiry time for entries stored with ttl 0
_NEVER = float("inf")


class LocalStore:
    """
    In-memory key/value storage with per-key TTL.

    STAGE-2.1: Local in-memory cache

    Implementation Details:
    - dict of key → (value, expires_at) on the monotonic clock
    - asyncio.Lock around every mutation
    - Expired entries are invisible to get/keys immediately and removed
      physically by the periodic sweep
    - Hits/misses counted on get
    """

    def __init__(self, default_ttl: int = LOCAL_CACHE_DEFAULT_TTL, check_period: float = 60.0):
        """
        Args:
            default_ttl: TTL used when set() receives None
            check_period: Seconds between expiry sweeps
        """
        self._default_ttl = default_ttl
        self._check_period = check_period
        self._entries: dict[str, tuple[str, float]] = {}
        self._lock = asyncio.Lock()
        self._hits = 0
        self._misses = 0
        self._sweeper: asyncio.Task | None = None

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    def start(self) -> None:
        """Start the periodic expiry sweep on the running loop."""
        if self._sweeper is None or self._sweeper.done():
            self._sweeper = asyncio.create_task(self._sweep_loop(), name="local-cache-sweeper")
            logger.debug("Local cache sweeper started", stage="2.1", period=self._check_period)

    async def shutdown(self) -> None:
        task, self._sweeper = self._sweeper, None
        if task is not None:
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass

    async def _sweep_loop(self) -> None:
        while True:
            await asyncio.sleep(self._check_period)
            removed = await self.sweep()
            if removed:
                logger.debug("Expired local cache entries removed", stage="2.1", removed=removed)

    async def sweep(self) -> int:
        """Remove expired entries. Returns how many were removed."""
        now = time.monotonic()
        async with self._lock:
            expired = [k for k, (_, expires_at) in self._entries.items() if expires_at <= now]
            for key in expired:
                del self._entries[key]
        return len(expired)

    # -------------------------------------------------------------------------
    # Operations
    # -------------------------------------------------------------------------

    async def get(self, key: str) -> str | None:
        async with self._lock:
            entry = self._entries.get(key)
            if entry is not None and entry[1] <= time.monotonic():
                del self._entries[key]
                entry = None

            if entry is None:
                self._misses += 1
                return None

            self._hits += 1
            return entry[0]

    async def set(self, key: str, value: str, ttl: int | None = None) -> None:
        """
        Store a value. ttl None uses the default TTL, ttl 0 never expires.
        """
        if ttl is None:
            ttl = self._default_ttl
        expires_at = time.monotonic() + ttl if ttl > 0 else _NEVER
        async with self._lock:
            self._entries[key] = (value, expires_at)

    async def delete(self, key: str) -> bool:
        async with self._lock:
            return self._entries.pop(key, None) is not None

    async def clear(self) -> None:
        async with self._lock:
            self._entries.clear()

    async def keys(self) -> list[str]:
        """Live (unexpired) keys."""
        now = time.monotonic()
        async with self._lock:
            return [k for k, (_, expires_at) in self._entries.items() if expires_at > now]

    async def delete_matching(self, pattern: re.Pattern[str]) -> int:
        """Delete every live key the regex matches anywhere in the name."""
        now = time.monotonic()
        async with self._lock:
            matched = [
                k
                for k, (_, expires_at) in self._entries.items()
                if expires_at > now and pattern.search(k)
            ]
            for key in matched:
                del self._entries[key]
        return len(matched)

    async def stats(self) -> dict[str, int | float]:
        keys = await self.keys()
        lookups = self._hits + self._misses
        return {
            "keys": len(keys),
            "hits": self._hits,
            "misses": self._misses,
            "hit_rate": (self._hits / lookups) if lookups else 0.0,
        }
