"""
Catch-all error middleware.

Outermost layer of the middleware stack. Any exception that got past the
route handlers, the FastAPI exception handlers and the inner middleware is
logged once and answered with a JSON 500:

    {"error": "internal_server_error", "message": ..., "error_type": ...,
     "request_id": ...}

With ``include_traceback`` (development only) the body also carries
``detail`` and ``traceback``.
"""

import traceback
from collections.abc import Callable
from typing import Any

from fastapi import Request, Response
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from member_ops.core.config.constants import HEADER_REQUEST_ID
from member_ops.core.logging.logger import get_logger, get_request_id

logger = get_logger(__name__)

GENERIC_ERROR_MESSAGE = "An unexpected error occurred while processing your request"


class ErrorHandlingMiddleware(BaseHTTPMiddleware):
    def __init__(self, app, include_traceback: bool = False):
        super().__init__(app)
        self.include_traceback = include_traceback

    def _error_body(self, error: Exception, request_id: str | None) -> dict[str, Any]:
        body: dict[str, Any] = {
            "error": "internal_server_error",
            "message": GENERIC_ERROR_MESSAGE,
            "error_type": type(error).__name__,
        }
        if request_id:
            body["request_id"] = request_id
        if self.include_traceback:
            body["detail"] = str(error)
            body["traceback"] = "".join(traceback.format_exception(error))
        return body

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        try:
            return await call_next(request)
        except Exception as e:
            # The context middleware has already cleared the ContextVar here
            request_id = getattr(request.state, "request_id", None) or get_request_id()

            logger.error(
                "Unhandled error in route",
                stage="ERR.1",
                method=request.method,
                path=request.url.path,
                error_type=type(e).__name__,
                error_message=str(e),
                request_id=request_id,
                exc_info=True,
            )

            return JSONResponse(
                status_code=500,
                content=self._error_body(e, request_id),
                headers={HEADER_REQUEST_ID: request_id} if request_id else None,
            )


def add_error_handling_middleware(app, include_traceback: bool = False) -> None:
    app.add_middleware(ErrorHandlingMiddleware, include_traceback=include_traceback)
    logger.info("Error middleware registered", stage="ERR.0", include_traceback=include_traceback)
