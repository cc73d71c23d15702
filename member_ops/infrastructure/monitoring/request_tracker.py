"""
Request Tracker

Aggregate request counters plus a bounded record of slow requests.

Metrics kept:
- total requests, counts per HTTP method and per status code
- avg_response_time_ms, updated as (avg + duration) / 2 on every request;
  this is a smoothing update weighted toward the latest sample, not a
  running mean, and reports built on it rely on that exact formula
- slow_request_count and a FIFO ring of the most recent slow requests

All mutations happen under a threading.Lock so the tracker can be fed from
the event loop and from threadpool-run handlers alike.
"""

import threading
from collections import Counter, deque
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from typing import Any

from member_ops.core.config.constants import SLOW_REQUEST_BUFFER_SIZE, SLOW_REQUEST_THRESHOLD_MS
from member_ops.core.logging.logger import get_logger

logger = get_logger(__name__)


def _utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


@dataclass(frozen=True)
class SlowRequestRecord:
    method: str
    path: str
    duration_ms: float
    user_agent: str | None = None
    client_ip: str | None = None
    timestamp: str = field(default_factory=_utc_now_iso)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


class RequestTracker:
    """
    Per-process request metrics.

    Usage:
        tracker = RequestTracker(slow_threshold_ms=1000, capacity=100)
        tracker.record_request("GET", "/deals", 200, 12.5)
        tracker.metrics()
        tracker.slow_requests(limit=10)
    """

    def __init__(
        self,
        slow_threshold_ms: float = SLOW_REQUEST_THRESHOLD_MS,
        capacity: int = SLOW_REQUEST_BUFFER_SIZE,
    ):
        self._slow_threshold_ms = slow_threshold_ms
        self._lock = threading.Lock()
        self._slow: deque[SlowRequestRecord] = deque(maxlen=capacity)
        self._reset_counters()

    def _reset_counters(self) -> None:
        self._total = 0
        self._by_method: Counter[str] = Counter()
        self._by_status: Counter[int] = Counter()
        self._avg_response_time_ms = 0.0
        self._slow_request_count = 0

    @property
    def slow_threshold_ms(self) -> float:
        return self._slow_threshold_ms

    @property
    def capacity(self) -> int:
        return self._slow.maxlen or 0

    def record_request(
        self,
        method: str,
        path: str,
        status_code: int,
        duration_ms: float,
        user_agent: str | None = None,
        client_ip: str | None = None,
    ) -> None:
        """
        Record one completed request.

        STAGE-M.1: Request accounting
        """
        is_slow = duration_ms > self._slow_threshold_ms
        with self._lock:
            self._total += 1
            self._by_method[method] += 1
            self._by_status[status_code] += 1
            self._avg_response_time_ms = (self._avg_response_time_ms + duration_ms) / 2
            if is_slow:
                self._slow_request_count += 1
                self._slow.append(
                    SlowRequestRecord(
                        method=method,
                        path=path,
                        duration_ms=duration_ms,
                        user_agent=user_agent,
                        client_ip=client_ip,
                    )
                )

        if is_slow:
            logger.warning(
                f"Slow request detected: {method} {path}",
                stage="M.1",
                duration_ms=round(duration_ms, 2),
                threshold_ms=self._slow_threshold_ms,
                status_code=status_code,
            )

    def metrics(self) -> dict[str, Any]:
        """Snapshot of the aggregate counters."""
        with self._lock:
            return {
                "total": self._total,
                "by_method": dict(self._by_method),
                "by_status": {str(code): count for code, count in self._by_status.items()},
                "avg_response_time_ms": self._avg_response_time_ms,
                "slow_request_count": self._slow_request_count,
            }

    def slow_requests(self, limit: int | None = None) -> list[dict[str, Any]]:
        """Slow request records in arrival order; the last ``limit`` when given."""
        with self._lock:
            records = list(self._slow)
        if limit is not None:
            records = records[-limit:] if limit > 0 else []
        return [record.to_dict() for record in records]

    def reset(self) -> None:
        """Zero all counters and clear the slow request buffer."""
        with self._lock:
            self._reset_counters()
            self._slow.clear()
        logger.info("Request metrics reset", stage="M.2")
