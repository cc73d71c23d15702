"""
System Constants and Enumerations

Fixed thresholds, key prefixes and header names shared by the cache and
monitoring layers. Values here are not runtime-configurable.

Author: Platform Team
Date: 2025-10-02
"""

from enum import Enum

# ============================================================================
# Backend Kinds
# ============================================================================


class BackendKind(str, Enum):
    """
    Cache backends.

    DISTRIBUTED: Redis, shared across processes
    LOCAL: In-process TTL store, per worker
    """

    DISTRIBUTED = "distributed"
    LOCAL = "local"


# ============================================================================
# Health Status
# ============================================================================


class HealthStatus(str, Enum):
    """Health status enumeration."""

    HEALTHY = "healthy"
    DEGRADED = "degraded"
    UNHEALTHY = "unhealthy"
    ERROR = "error"


# ============================================================================
# Cache
# ============================================================================

LOCAL_CACHE_DEFAULT_TTL = 300  # seconds, 0 = never expires
HEALTH_PROBE_KEY_PREFIX = "health_check_"
HEALTH_PROBE_TTL = 5  # seconds

# ============================================================================
# Request Tracking
# ============================================================================

SLOW_REQUEST_THRESHOLD_MS = 1000
SLOW_REQUEST_BUFFER_SIZE = 100
HEALTH_REPORT_SLOW_REQUESTS = 10  # slow records included in a health report

# ============================================================================
# Recommendation Thresholds
# ============================================================================

MEMORY_WARNING_MB = 500
AVG_RESPONSE_WARNING_MS = 500
SLOW_REQUEST_CRITICAL_COUNT = 10

# ============================================================================
# Database Watchdog
# ============================================================================

DB_SLOW_RESPONSE_MS = 5000

# ============================================================================
# HTTP Headers
# ============================================================================

HEADER_REQUEST_ID = "X-Request-ID"
HEADER_RESPONSE_TIME = "X-Response-Time"
HEADER_CACHE = "X-Cache"
