"""
Test Fixtures Package

Shared test utilities and helpers for consistent testing across all modules.
"""

from .cache_factory import CacheTestFactory, FakeRedisClient
from .data_store_factory import FakeDataStore
from .request_factory import RequestFactory
from .settings_factory import build_settings

__all__ = ["CacheTestFactory", "FakeRedisClient", "FakeDataStore", "RequestFactory", "build_settings"]
