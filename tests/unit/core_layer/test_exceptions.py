"""
Unit Tests for Core Exceptions
"""

import pytest

from member_ops.core.exceptions import (
    AuthorizationError,
    CacheConnectionError,
    CacheError,
    CacheKeyError,
    CacheSerializationError,
    ConfigurationError,
    DatabaseProbeError,
    DatabaseUnavailableError,
    MemberOpsError,
    MonitoringError,
)


@pytest.mark.unit
class TestMemberOpsError:
    """Test the base exception class."""

    def test_defaults(self):
        error = MemberOpsError("boom")

        assert str(error) == "boom"
        assert error.request_id is None
        assert error.details == {}

    def test_details_are_copied(self):
        details = {"key": "value"}
        error = MemberOpsError("boom", details=details)
        error.with_context(extra=1)

        assert details == {"key": "value"}
        assert error.details == {"key": "value", "extra": 1}

    def test_to_dict(self):
        error = CacheKeyError("bad key", request_id="req-1", details={"key": "k"})

        assert error.to_dict() == {
            "error_type": "CacheKeyError",
            "message": "bad key",
            "request_id": "req-1",
            "details": {"key": "k"},
        }

    def test_with_suggestion_chains(self):
        error = ConfigurationError("missing").with_suggestion("set REDIS_URL")

        assert isinstance(error, ConfigurationError)
        assert error.details["suggestion"] == "set REDIS_URL"

    def test_repr_includes_request_id(self):
        assert "request_id='abc'" in repr(MemberOpsError("x", request_id="abc"))

    def test_from_exception_wraps_original(self):
        original = OSError("connection refused")
        error = DatabaseProbeError.from_exception(original, operation="ping")

        assert isinstance(error, DatabaseProbeError)
        assert error.message == "connection refused"
        assert error.details == {
            "original_error": "OSError",
            "original_message": "connection refused",
            "operation": "ping",
        }


@pytest.mark.unit
class TestHierarchy:
    """Test exception inheritance used by catch sites."""

    @pytest.mark.parametrize("cls", [CacheConnectionError, CacheKeyError, CacheSerializationError])
    def test_cache_errors(self, cls):
        assert issubclass(cls, CacheError)
        assert issubclass(cls, MemberOpsError)

    @pytest.mark.parametrize("cls", [DatabaseProbeError, DatabaseUnavailableError])
    def test_monitoring_errors(self, cls):
        assert issubclass(cls, MonitoringError)

    def test_authorization_error_is_forbidden(self):
        error = AuthorizationError("Admin access required")

        assert error.status_code == 403
        assert isinstance(error, MemberOpsError)

    def test_database_unavailable_is_service_unavailable(self):
        error = DatabaseUnavailableError("Database service temporarily unavailable")

        assert error.status_code == 503
        assert error.error_code == "UNHEALTHY_DATABASE"
