"""
Unit Tests for the Cache Invalidation Decorator
"""

from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi.responses import JSONResponse

from member_ops.application.api.middleware.invalidation import (
    invalidate_business_cache,
    invalidate_cache,
    invalidate_deals_cache,
    invalidate_system_cache,
    invalidate_user_cache,
)
from member_ops.application.api.middleware.response_cache import cache_response
from tests.test_fixtures import RequestFactory


def _mock_cache():
    cache = MagicMock()
    cache.delete_pattern = AsyncMock(return_value=True)
    return cache


@pytest.mark.unit
class TestInvalidationTrigger:
    """Test when invalidation fires."""

    @pytest.mark.asyncio
    async def test_fires_once_on_201(self):
        cache = _mock_cache()
        handler = AsyncMock(return_value=JSONResponse(status_code=201, content={"id": 1}))

        response = await invalidate_deals_cache(cache)(handler)(RequestFactory.post("/deals"))

        assert response.status_code == 201
        cache.delete_pattern.assert_awaited_once_with("deals:*")

    @pytest.mark.asyncio
    async def test_skipped_on_422(self):
        cache = _mock_cache()
        handler = AsyncMock(return_value=JSONResponse(status_code=422, content={"error": "bad"}))

        await invalidate_deals_cache(cache)(handler)(RequestFactory.post("/deals"))

        cache.delete_pattern.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_plain_payload_counts_as_success(self):
        cache = _mock_cache()

        result = await invalidate_cache(["x:.*"], cache)(AsyncMock(return_value={"ok": True}))(
            RequestFactory.post("/x")
        )

        assert result == {"ok": True}
        cache.delete_pattern.assert_awaited_once_with("x:.*")

    @pytest.mark.asyncio
    async def test_handler_error_propagates_without_invalidation(self):
        cache = _mock_cache()
        handler = AsyncMock(side_effect=ValueError("bad input"))

        with pytest.raises(ValueError):
            await invalidate_deals_cache(cache)(handler)(RequestFactory.post("/deals"))

        cache.delete_pattern.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_invalidation_errors_are_swallowed(self):
        cache = _mock_cache()
        cache.delete_pattern.side_effect = [RuntimeError("down"), True]
        handler = AsyncMock(return_value={"ok": True})

        result = await invalidate_business_cache(cache)(handler)(RequestFactory.post("/businesses"))

        assert result == {"ok": True}
        assert cache.delete_pattern.await_count == 2

    @pytest.mark.asyncio
    async def test_patterns_run_in_order(self):
        cache = _mock_cache()

        await invalidate_system_cache(cache)(AsyncMock(return_value={"ok": 1}))(RequestFactory.post("/s"))

        patterns = [call.args[0] for call in cache.delete_pattern.await_args_list]
        assert patterns == ["system:*", "plans:*"]

    @pytest.mark.asyncio
    async def test_callable_pattern_receives_request(self):
        cache = _mock_cache()
        pattern = MagicMock(return_value="deals:business:3")
        request = RequestFactory.post("/deals")

        await invalidate_cache([pattern], cache)(AsyncMock(return_value={"ok": 1}))(request)

        pattern.assert_called_once_with(request)
        cache.delete_pattern.assert_awaited_once_with("deals:business:3")


@pytest.mark.unit
class TestWithRealCache:
    """Test invalidation end to end against the local backend."""

    @pytest.mark.asyncio
    async def test_cache_hit_still_invalidates(self, cache_service):
        await cache_service.set("GET:/deals", {"deals": []})
        handler = AsyncMock()
        wrapped = invalidate_cache(["deals"], cache_service)(cache_response(cache=cache_service)(handler))

        response = await wrapped(RequestFactory.get("/deals"))

        assert response.headers["X-Cache"] == "HIT"
        handler.assert_not_awaited()
        assert await cache_service.get("GET:/deals") is None

    @pytest.mark.asyncio
    async def test_user_preset_targets_one_user(self, cache_service):
        for key in ("user:profile:5", "user:profile:55", "user:settings:5", "user:profile:6"):
            await cache_service.set(key, 1)

        await invalidate_user_cache(cache_service)(AsyncMock(return_value={"ok": 1}))(
            RequestFactory.build("PUT", "/users/5", path_params={"id": "5"})
        )

        remaining = sorted(await cache_service.selector.local_store.keys())
        assert remaining == ["user:profile:55", "user:profile:6"]

    @pytest.mark.asyncio
    async def test_user_preset_falls_back_to_current_user(self, cache_service):
        await cache_service.set("user:profile:8", 1)

        await invalidate_user_cache(cache_service)(AsyncMock(return_value={"ok": 1}))(
            RequestFactory.build("PUT", "/profile", user={"id": 8})
        )

        assert await cache_service.get("user:profile:8") is None
