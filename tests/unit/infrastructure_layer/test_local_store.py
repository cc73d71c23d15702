"""
Unit Tests for the In-Process TTL Store
"""

import asyncio
import re
import time
from types import SimpleNamespace

import pytest

from member_ops.infrastructure.cache import local_store as local_store_module
from member_ops.infrastructure.cache.local_store import LocalStore


@pytest.fixture
def clock(monkeypatch):
    """Controllable monotonic clock for the store module only."""
    state = SimpleNamespace(now=time.monotonic())
    monkeypatch.setattr(local_store_module, "time", SimpleNamespace(monotonic=lambda: state.now))
    return state


@pytest.mark.unit
class TestBasicOperations:
    """Test get/set/delete/clear."""

    @pytest.mark.asyncio
    async def test_set_then_get(self, local_store):
        await local_store.set("k", '"v"')
        assert await local_store.get("k") == '"v"'

    @pytest.mark.asyncio
    async def test_missing_key_returns_none(self, local_store):
        assert await local_store.get("missing") is None

    @pytest.mark.asyncio
    async def test_delete_reports_presence(self, local_store):
        await local_store.set("k", "1")

        assert await local_store.delete("k") is True
        assert await local_store.delete("k") is False

    @pytest.mark.asyncio
    async def test_clear_removes_everything(self, local_store):
        await local_store.set("a", "1")
        await local_store.set("b", "2")
        await local_store.clear()

        assert await local_store.keys() == []


@pytest.mark.unit
class TestExpiry:
    """Test TTL handling."""

    @pytest.mark.asyncio
    async def test_entry_expires_after_ttl(self, clock):
        store = LocalStore(default_ttl=300)
        await store.set("k", "1", ttl=1)

        clock.now += 0.5
        assert await store.get("k") == "1"

        clock.now += 1
        assert await store.get("k") is None

    @pytest.mark.asyncio
    async def test_none_ttl_uses_default(self, clock):
        store = LocalStore(default_ttl=10)
        await store.set("k", "1")

        clock.now += 9
        assert await store.get("k") == "1"
        clock.now += 2
        assert await store.get("k") is None

    @pytest.mark.asyncio
    async def test_zero_ttl_never_expires(self, clock):
        store = LocalStore(default_ttl=10)
        await store.set("k", "1", ttl=0)

        clock.now += 10**9
        assert await store.get("k") == "1"

    @pytest.mark.asyncio
    async def test_expired_keys_hidden_from_keys(self, clock):
        store = LocalStore()
        await store.set("short", "1", ttl=1)
        await store.set("long", "1", ttl=100)

        clock.now += 5
        assert await store.keys() == ["long"]

    @pytest.mark.asyncio
    async def test_sweep_removes_expired(self, clock):
        store = LocalStore()
        await store.set("short", "1", ttl=1)
        await store.set("long", "1", ttl=100)

        clock.now += 5
        assert await store.sweep() == 1
        assert await store.sweep() == 0

    @pytest.mark.asyncio
    async def test_background_sweeper_runs(self):
        store = LocalStore(check_period=0.01)
        await store.set("k", "1", ttl=1)
        store.start()
        try:
            await asyncio.sleep(1.2)
            assert store._entries == {}
        finally:
            await store.shutdown()

    @pytest.mark.asyncio
    async def test_shutdown_without_start_is_safe(self, local_store):
        await local_store.shutdown()


@pytest.mark.unit
class TestPatternsAndStats:
    @pytest.mark.asyncio
    async def test_delete_matching_uses_search(self, local_store):
        await local_store.set("deals:all", "1")
        await local_store.set("deals:category:food", "1")
        await local_store.set("businesses:all", "1")

        removed = await local_store.delete_matching(re.compile("deals:"))

        assert removed == 2
        assert await local_store.keys() == ["businesses:all"]

    @pytest.mark.asyncio
    async def test_stats_counts_hits_and_misses(self, local_store):
        await local_store.set("k", "1")
        await local_store.get("k")
        await local_store.get("k")
        await local_store.get("missing")

        stats = await local_store.stats()

        assert stats["keys"] == 1
        assert stats["hits"] == 2
        assert stats["misses"] == 1
        assert stats["hit_rate"] == pytest.approx(2 / 3)

    @pytest.mark.asyncio
    async def test_stats_hit_rate_zero_without_lookups(self, local_store):
        assert (await local_store.stats())["hit_rate"] == 0.0
