"""
Pytest Configuration and Shared Test Fixtures

This module provides pytest configuration and reusable fixtures for all tests.
All fixtures defined here are automatically available to all test files.
"""

import os
import sys

import pytest

# Add project root to sys.path
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from member_ops.core.config.settings import Settings  # noqa: E402
from member_ops.infrastructure.cache.backend_selector import BackendSelector  # noqa: E402
from member_ops.infrastructure.cache.cache_service import CacheService  # noqa: E402
from member_ops.infrastructure.cache.local_store import LocalStore  # noqa: E402
from member_ops.infrastructure.monitoring.request_tracker import RequestTracker  # noqa: E402
from tests.test_fixtures.cache_factory import FakeRedisClient  # noqa: E402
from tests.test_fixtures.data_store_factory import FakeDataStore  # noqa: E402
from tests.test_fixtures.settings_factory import build_settings  # noqa: E402


# ============================================================================
# Configuration Fixtures
# ============================================================================


@pytest.fixture
def test_settings() -> Settings:
    return build_settings()


@pytest.fixture
def production_settings() -> Settings:
    return build_settings(ENVIRONMENT="production", REDIS_URL="redis://cache:6379/0")


# ============================================================================
# Cache Fixtures
# ============================================================================


@pytest.fixture
def local_store() -> LocalStore:
    return LocalStore(default_ttl=300, check_period=60)


@pytest.fixture
def fake_redis() -> FakeRedisClient:
    return FakeRedisClient()


@pytest.fixture
async def local_selector(test_settings, local_store):
    """Selector running on the local backend (no REDIS_URL)."""
    selector = BackendSelector(test_settings, local_store=local_store)
    await selector.initialize()
    yield selector
    await selector.shutdown()


@pytest.fixture
async def distributed_selector(fake_redis):
    """Selector running on a connected fake Redis."""
    settings = build_settings(REDIS_URL="redis://cache:6379/0")
    selector = BackendSelector(settings, redis_client=fake_redis)
    await selector.initialize()
    yield selector
    await selector.shutdown()


@pytest.fixture
def cache_service(local_selector, test_settings) -> CacheService:
    return CacheService(local_selector, test_settings)


@pytest.fixture
def distributed_cache_service(distributed_selector) -> CacheService:
    return CacheService(distributed_selector, build_settings(REDIS_URL="redis://cache:6379/0"))


# ============================================================================
# Monitoring Fixtures
# ============================================================================


@pytest.fixture
def request_tracker() -> RequestTracker:
    return RequestTracker(slow_threshold_ms=1000, capacity=100)


@pytest.fixture
def fake_data_store() -> FakeDataStore:
    return FakeDataStore()


# ============================================================================
# Environment-Based Integration Toggles
# ============================================================================


@pytest.fixture(scope="session")
def use_real_redis():
    """Check if real Redis should be used for integration tests."""
    return os.getenv("USE_REAL_REDIS", "0").lower() in ("1", "true", "yes")
