"""
Monitoring Infrastructure

- **request_tracker.py**: request counters and slow request ring
- **health_aggregator.py**: combined health verdict and recommendations
- **database_monitor.py**: background database watchdog
"""

from member_ops.infrastructure.monitoring.database_monitor import DatabaseHealthMonitor
from member_ops.infrastructure.monitoring.health_aggregator import HealthAggregator
from member_ops.infrastructure.monitoring.request_tracker import RequestTracker, SlowRequestRecord

__all__ = [
    "DatabaseHealthMonitor",
    "HealthAggregator",
    "RequestTracker",
    "SlowRequestRecord",
]
