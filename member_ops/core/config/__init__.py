"""
Configuration Module

Centralized, type-safe configuration for the cache and monitoring layers.

Components:
-----------
- **settings.py**: Pydantic-based configuration with environment variable loading
- **constants.py**: Fixed thresholds, enums, header names

Usage:
------
```python
from member_ops.core.config import get_settings
from member_ops.core.config.constants import BackendKind

settings = get_settings()
if settings.redis.REDIS_URL:
    ...
```

Testing:
-------
```python
import os
from member_ops.core.config import reload_settings

os.environ["ENVIRONMENT"] = "production"
settings = reload_settings()
assert settings.is_production
```
"""

from member_ops.core.config.constants import (
    AVG_RESPONSE_WARNING_MS,
    HEADER_CACHE,
    HEADER_REQUEST_ID,
    HEADER_RESPONSE_TIME,
    MEMORY_WARNING_MB,
    SLOW_REQUEST_BUFFER_SIZE,
    SLOW_REQUEST_CRITICAL_COUNT,
    SLOW_REQUEST_THRESHOLD_MS,
    BackendKind,
    HealthStatus,
)
from member_ops.core.config.settings import Settings, get_settings, reload_settings

__all__ = [
    # Settings
    "Settings",
    "get_settings",
    "reload_settings",
    # Enums
    "BackendKind",
    "HealthStatus",
    # Thresholds
    "SLOW_REQUEST_THRESHOLD_MS",
    "SLOW_REQUEST_BUFFER_SIZE",
    "MEMORY_WARNING_MB",
    "AVG_RESPONSE_WARNING_MS",
    "SLOW_REQUEST_CRITICAL_COUNT",
    # HTTP headers
    "HEADER_REQUEST_ID",
    "HEADER_RESPONSE_TIME",
    "HEADER_CACHE",
]
