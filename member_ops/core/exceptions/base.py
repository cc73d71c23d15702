"""
Root of the member_ops exception tree.

Cache, monitoring and authorization errors live in their own modules and
all derive from ``MemberOpsError`` so a single handler can render any of
them.
"""

from typing import Any


class MemberOpsError(Exception):
    """
    Error carrying a message, an optional request correlation id and a
    free-form ``details`` mapping.

        raise CacheConnectionError(
            "Redis unreachable",
            details={"url": "redis://cache:6379/0", "attempts": 10},
        )
    """

    def __init__(
        self,
        message: str,
        request_id: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.request_id = request_id
        self.details: dict[str, Any] = dict(details) if details else {}

    @property
    def error_type(self) -> str:
        return type(self).__name__

    def to_dict(self) -> dict[str, Any]:
        """JSON-ready body for API error responses and structured logs."""
        return {
            "error_type": self.error_type,
            "message": self.message,
            "request_id": self.request_id,
            "details": self.details,
        }

    def with_suggestion(self, suggestion: str) -> "MemberOpsError":
        return self.with_context(suggestion=suggestion)

    def with_context(self, **context: Any) -> "MemberOpsError":
        self.details.update(context)
        return self

    def __repr__(self) -> str:
        parts = [f"message={self.message!r}"]
        if self.request_id:
            parts.append(f"request_id={self.request_id!r}")
        if self.details:
            parts.append(f"details={self.details!r}")
        return f"{self.error_type}({', '.join(parts)})"

    @classmethod
    def from_exception(
        cls,
        exc: BaseException,
        message: str | None = None,
        request_id: str | None = None,
        **details: Any,
    ) -> "MemberOpsError":
        """
        Wrap a third-party exception, keeping its class name and text:

            except SQLAlchemyError as e:
                raise DatabaseProbeError.from_exception(e, operation="ping") from e
        """
        wrapped = {"original_error": type(exc).__name__, "original_message": str(exc)}
        wrapped.update(details)
        return cls(message or str(exc), request_id=request_id, details=wrapped)


class ConfigurationError(MemberOpsError):
    """Invalid or missing configuration detected at startup."""
