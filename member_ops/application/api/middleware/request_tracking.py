"""
Request Tracking Middleware
===========================

Measures every request with time.perf_counter() and feeds the
RequestTracker held on ``app.state.request_tracker``. The measured
duration covers the inner middleware and the route handler, and is
returned to the client in the X-Response-Time header (milliseconds).

A handler that raises is recorded as a 500, matching the response the
error middleware sends for it; the exception is then re-raised.
"""

import time
from collections.abc import Callable

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from member_ops.core.config.constants import HEADER_RESPONSE_TIME
from member_ops.core.logging.logger import get_logger
from member_ops.infrastructure.monitoring.request_tracker import RequestTracker

logger = get_logger(__name__)


class RequestTrackingMiddleware(BaseHTTPMiddleware):
    """
    Records method, path, status and duration of each request.

    The tracker can be passed in directly; otherwise it is looked up on
    ``request.app.state`` at dispatch time so the lifespan can create it.
    """

    def __init__(self, app, tracker: RequestTracker | None = None):
        super().__init__(app)
        self._tracker = tracker

    def _resolve_tracker(self, request: Request) -> RequestTracker | None:
        if self._tracker is not None:
            return self._tracker
        return getattr(request.app.state, "request_tracker", None)

    def _record(self, request: Request, status_code: int, duration_ms: float) -> None:
        tracker = self._resolve_tracker(request)
        if tracker is None:
            return
        tracker.record_request(
            method=request.method,
            path=request.url.path,
            status_code=status_code,
            duration_ms=duration_ms,
            user_agent=request.headers.get("user-agent"),
            client_ip=request.client.host if request.client else None,
        )

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        start_time = time.perf_counter()

        try:
            response = await call_next(request)
        except Exception:
            self._record(request, 500, (time.perf_counter() - start_time) * 1000)
            raise

        duration_ms = (time.perf_counter() - start_time) * 1000
        self._record(request, response.status_code, duration_ms)

        response.headers[HEADER_RESPONSE_TIME] = f"{duration_ms:.2f}ms"
        return response


def add_request_tracking_middleware(app, tracker: RequestTracker | None = None):
    """Add request tracking middleware to the FastAPI application."""
    app.add_middleware(RequestTrackingMiddleware, tracker=tracker)
    logger.info("Request tracking middleware registered")
