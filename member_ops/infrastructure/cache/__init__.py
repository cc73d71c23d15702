"""
Cache Infrastructure

- **redis_client.py**: distributed backend client
- **local_store.py**: in-process TTL store
- **backend_selector.py**: active backend choice and fallback
- **cache_service.py**: fail-open public cache API
- **keys.py**: key builders and entity invalidation helpers
"""

from member_ops.infrastructure.cache.backend_selector import ActiveBackend, BackendSelector
from member_ops.infrastructure.cache.cache_service import CacheService
from member_ops.infrastructure.cache.keys import CacheInvalidator, CacheKeys
from member_ops.infrastructure.cache.local_store import LocalStore
from member_ops.infrastructure.cache.redis_client import RedisClient

__all__ = [
    "ActiveBackend",
    "BackendSelector",
    "CacheService",
    "CacheInvalidator",
    "CacheKeys",
    "LocalStore",
    "RedisClient",
]
