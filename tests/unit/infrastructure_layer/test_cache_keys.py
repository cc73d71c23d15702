"""
Unit Tests for Cache Key Builders and CacheInvalidator
"""

import pytest

from member_ops.infrastructure.cache.keys import CacheInvalidator, CacheKeys


@pytest.mark.unit
class TestCacheKeys:
    """Test key naming."""

    @pytest.mark.parametrize(
        "key, expected",
        [
            (CacheKeys.businesses.all(), "businesses:all"),
            (CacheKeys.businesses.by_category("retail"), "businesses:category:retail"),
            (CacheKeys.businesses.by_user(7), "businesses:user:7"),
            (CacheKeys.businesses.by_id(3), "business:3"),
            (CacheKeys.deals.by_business(3), "deals:business:3"),
            (CacheKeys.deals.by_id(42), "deal:42"),
            (CacheKeys.users.by_email("a@b.io"), "user:email:a@b.io"),
            (CacheKeys.plans.by_id(1), "plan:1"),
            (CacheKeys.system.settings(), "system:settings"),
        ],
    )
    def test_key_format(self, key, expected):
        assert key == expected


@pytest.mark.unit
class TestCacheInvalidator:
    """Test entity-level invalidation against the local backend."""

    @pytest.mark.asyncio
    async def test_business_invalidation(self, cache_service):
        for key in (
            "businesses:all",
            "businesses:verified",
            "businesses:category:food",
            "business:3",
            "business:4",
            "deals:business:3",
            "deals:business:33",
        ):
            await cache_service.set(key, 1)

        await CacheInvalidator(cache_service).invalidate_business_caches(3)

        remaining = await cache_service.selector.local_store.keys()
        assert sorted(remaining) == ["business:4", "deals:business:33"]

    @pytest.mark.asyncio
    async def test_deal_invalidation(self, cache_service):
        for key in (
            "deals:all",
            "deals:active",
            "deals:featured",
            "deals:public",
            "deals:category:food",
            "deal:9",
            "deals:business:3",
            "deal:10",
        ):
            await cache_service.set(key, 1)

        await CacheInvalidator(cache_service).invalidate_deal_caches(deal_id=9, business_id=3)

        assert await cache_service.selector.local_store.keys() == ["deal:10"]

    @pytest.mark.asyncio
    async def test_user_invalidation_without_id(self, cache_service):
        await cache_service.set("users:stats", 1)
        await cache_service.set("user:5", 1)

        await CacheInvalidator(cache_service).invalidate_user_caches()

        assert await cache_service.selector.local_store.keys() == ["user:5"]

    @pytest.mark.asyncio
    async def test_user_invalidation_with_id(self, cache_service):
        await cache_service.set("users:stats", 1)
        await cache_service.set("user:5", 1)

        await CacheInvalidator(cache_service).invalidate_user_caches(5)

        assert await cache_service.selector.local_store.keys() == []
