"""
Monitoring Exceptions

DatabaseProbeError is raised by the data store and turned into an
"unhealthy" verdict by the HealthAggregator and the database watchdog.
DatabaseUnavailableError is the one that reaches the HTTP layer, from
routes guarded by ``require_healthy_database``.

Author: Platform Team
Date: 2025-10-02
"""

from member_ops.core.exceptions.base import MemberOpsError


class MonitoringError(MemberOpsError):
    """Base exception for all monitoring operations."""

    pass


class DatabaseProbeError(MonitoringError):
    """
    Raised when the data store liveness or stats query fails.

    COMMON CAUSES:
    --------------
    - Database unreachable
    - Probe exceeded DB_HEALTH_TIMEOUT
    - Stats query references a missing table
    """

    pass


class DatabaseUnavailableError(MonitoringError):
    """
    The database watchdog currently reports the database unhealthy.

    Rendered by the application as
    ``{"success": false, "message": message, "error": error_code}`` with
    ``status_code``.
    """

    status_code = 503
    error_code = "UNHEALTHY_DATABASE"
