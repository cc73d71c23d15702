"""
Cache-Related Exceptions

All exceptions related to caching operations (Redis, in-process store).
They are raised by the low-level clients and caught at the CacheService
boundary, which fails open.

Author: Platform Team
Date: 2025-10-02
"""

from member_ops.core.exceptions.base import MemberOpsError


class CacheError(MemberOpsError):
    """Base exception for cache-related errors."""
    pass


class CacheConnectionError(CacheError):
    """
    Raised when unable to reach the distributed cache.

    Common causes:
    - Redis server is down
    - Network connectivity issues
    - Incorrect REDIS_URL
    - Authentication failure

    The backend selector treats this as the signal to fall back to the
    local store.
    """
    pass


class CacheKeyError(CacheError):
    """
    Raised when a cache command fails on a reachable server.

    Common causes:
    - Wrong value type stored at the key
    - Server-side memory limit
    """
    pass


class CacheSerializationError(CacheError):
    """Raised when a value cannot be encoded to or decoded from JSON."""
    pass
