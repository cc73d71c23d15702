"""
Unit Tests for the Request Middleware Stack

Covers request id correlation, request tracking, the X-Response-Time header,
and the JSON 500 fallback.
"""

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from member_ops.application.api.middleware import setup_middleware
from member_ops.application.api.middleware.request_tracking import add_request_tracking_middleware
from member_ops.application.app import create_app
from member_ops.core.exceptions import CacheKeyError
from member_ops.infrastructure.monitoring.request_tracker import RequestTracker
from tests.test_fixtures import FakeDataStore, build_settings


def _app_with_failing_routes(settings=None):
    app = create_app(settings or build_settings(), data_store=FakeDataStore())

    @app.get("/boom")
    async def boom():
        raise RuntimeError("unexpected")

    @app.get("/cache-error")
    async def cache_error():
        raise CacheKeyError("bad key", details={"key": "k"})

    return app


@pytest.mark.unit
class TestRequestContext:
    """Test X-Request-ID handling."""

    def test_generates_request_id(self):
        with TestClient(create_app(build_settings(), data_store=FakeDataStore())) as client:
            response = client.get("/health")

        assert len(response.headers["X-Request-ID"]) == 36

    def test_echoes_incoming_request_id(self):
        with TestClient(create_app(build_settings(), data_store=FakeDataStore())) as client:
            response = client.get("/health", headers={"X-Request-ID": "req-abc"})

        assert response.headers["X-Request-ID"] == "req-abc"


@pytest.mark.unit
class TestRequestTracking:
    """Test the tracking middleware."""

    def test_records_every_request(self):
        with TestClient(create_app(build_settings(), data_store=FakeDataStore())) as client:
            client.get("/health")
            client.get("/does-not-exist")
            metrics = client.app.state.request_tracker.metrics()

        assert metrics["total"] == 2
        assert metrics["by_method"] == {"GET": 2}
        assert metrics["by_status"] == {"200": 1, "404": 1}

    def test_raising_route_counted_as_500(self):
        settings = build_settings(SLOW_REQUEST_THRESHOLD_MS=0)
        with TestClient(_app_with_failing_routes(settings)) as client:
            response = client.get("/boom")
            tracker = client.app.state.request_tracker
            metrics = tracker.metrics()
            slow = tracker.slow_requests()

        assert response.status_code == 500
        assert metrics["total"] == 1
        assert metrics["by_status"] == {"500": 1}
        assert slow[0]["path"] == "/boom"

    def test_response_time_header(self):
        with TestClient(create_app(build_settings(), data_store=FakeDataStore())) as client:
            response = client.get("/health")

        header = response.headers["X-Response-Time"]
        assert header.endswith("ms")
        assert float(header[:-2]) >= 0

    def test_slow_requests_recorded_with_client_details(self):
        settings = build_settings(SLOW_REQUEST_THRESHOLD_MS=0)
        with TestClient(create_app(settings, data_store=FakeDataStore())) as client:
            client.get("/health", headers={"User-Agent": "ops-client/1.0"})
            slow = client.app.state.request_tracker.slow_requests()

        assert slow[0]["path"] == "/health"
        assert slow[0]["user_agent"] == "ops-client/1.0"
        assert slow[0]["client_ip"] == "testclient"

    def test_explicit_tracker(self):
        tracker = RequestTracker()
        app = FastAPI()

        @app.get("/ping")
        async def ping():
            return {"pong": True}

        add_request_tracking_middleware(app, tracker=tracker)

        with TestClient(app) as client:
            client.get("/ping")

        assert tracker.metrics()["total"] == 1

    def test_missing_tracker_is_tolerated(self):
        app = FastAPI()

        @app.get("/ping")
        async def ping():
            return {"pong": True}

        setup_middleware(app, build_settings())

        with TestClient(app) as client:
            response = client.get("/ping")

        assert response.status_code == 200
        assert "X-Response-Time" in response.headers


@pytest.mark.unit
class TestErrorHandling:
    """Test the JSON error fallbacks."""

    def test_unhandled_exception_becomes_json_500(self):
        with TestClient(_app_with_failing_routes()) as client:
            response = client.get("/boom", headers={"X-Request-ID": "req-err"})

        assert response.status_code == 500
        data = response.json()
        assert data["error"] == "internal_server_error"
        assert data["error_type"] == "RuntimeError"
        assert data["request_id"] == "req-err"
        assert "traceback" not in data

    def test_traceback_included_in_development(self):
        with TestClient(_app_with_failing_routes(build_settings(ENVIRONMENT="development"))) as client:
            data = client.get("/boom").json()

        assert data["detail"] == "unexpected"
        assert "RuntimeError" in data["traceback"]

    def test_member_ops_error_rendered(self):
        with TestClient(_app_with_failing_routes()) as client:
            response = client.get("/cache-error")

        assert response.status_code == 500
        data = response.json()
        assert data["error_type"] == "CacheKeyError"
        assert data["message"] == "bad key"
        assert data["details"] == {"key": "k"}
