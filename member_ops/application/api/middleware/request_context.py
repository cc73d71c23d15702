"""
Request Context Middleware
==========================

Binds a correlation id to every request. The id is taken from the incoming
X-Request-ID header or generated, stored in the logging context so every
log line of the request carries it, and echoed in the response header.
"""

import uuid
from collections.abc import Callable

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from member_ops.core.config.constants import HEADER_REQUEST_ID
from member_ops.core.logging.logger import clear_request_id, set_request_id


class RequestContextMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = request.headers.get(HEADER_REQUEST_ID) or str(uuid.uuid4())
        set_request_id(request_id)
        request.state.request_id = request_id

        try:
            response = await call_next(request)
            response.headers[HEADER_REQUEST_ID] = request_id
            return response
        finally:
            clear_request_id()
