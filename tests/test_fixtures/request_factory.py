"""
Request Factory for Test Data

Builds Starlette Request objects for calling decorated handlers directly,
without an ASGI server.
"""

from typing import Any

from starlette.requests import Request


class RequestFactory:
    """Factory for creating Request objects."""

    @staticmethod
    def build(
        method: str = "GET",
        path: str = "/",
        query: str = "",
        path_params: dict[str, Any] | None = None,
        user: Any = None,
        app: Any = None,
    ) -> Request:
        scope = {
            "type": "http",
            "method": method,
            "path": path,
            "query_string": query.encode(),
            "headers": [],
            "path_params": path_params or {},
            "state": {},
        }
        if app is not None:
            scope["app"] = app
        request = Request(scope)
        if user is not None:
            request.state.user = user
        return request

    @staticmethod
    def get(path: str, query: str = "", **kwargs) -> Request:
        return RequestFactory.build("GET", path, query, **kwargs)

    @staticmethod
    def post(path: str, **kwargs) -> Request:
        return RequestFactory.build("POST", path, **kwargs)
