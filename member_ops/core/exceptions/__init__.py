"""
Exception Module

Structured exception hierarchy for the cache and monitoring layers.

Module Structure:
-----------------
- **base.py**: MemberOpsError base class + ConfigurationError
- **cache.py**: Cache-related exceptions (Redis, local store, serialization)
- **monitoring.py**: Database probe and availability exceptions
- **auth.py**: Authorization failures on operational endpoints

Usage:
------
```python
from member_ops.core.exceptions import CacheConnectionError, AuthorizationError
from member_ops.core.exceptions.monitoring import DatabaseProbeError
```
"""

from member_ops.core.exceptions.auth import AuthorizationError
from member_ops.core.exceptions.base import ConfigurationError, MemberOpsError
from member_ops.core.exceptions.cache import (
    CacheConnectionError,
    CacheError,
    CacheKeyError,
    CacheSerializationError,
)
from member_ops.core.exceptions.monitoring import (
    DatabaseProbeError,
    DatabaseUnavailableError,
    MonitoringError,
)

__all__ = [
    # Base
    "MemberOpsError",
    "ConfigurationError",
    # Cache
    "CacheError",
    "CacheConnectionError",
    "CacheKeyError",
    "CacheSerializationError",
    # Monitoring
    "MonitoringError",
    "DatabaseUnavailableError",
    "DatabaseProbeError",
    # Auth
    "AuthorizationError",
]
