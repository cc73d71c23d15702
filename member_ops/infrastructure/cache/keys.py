"""
Cache Key Builders and Invalidation Helpers

Key naming is ``<entity>:<qualifier>[:<value>]``. Invalidation patterns are
regular expressions matched against key names (see CacheService.delete_pattern).

Author: Platform Team
Date: 2025-10-02
"""

import re
from typing import Any

from member_ops.core.logging.logger import get_logger
from member_ops.infrastructure.cache.cache_service import CacheService

logger = get_logger(__name__)


class CacheKeys:
    """
    Key builders grouped by entity.

    Usage:
        CacheKeys.businesses.by_category("retail")   # "businesses:category:retail"
        CacheKeys.deals.by_id(42)                    # "deal:42"
    """

    class businesses:
        @staticmethod
        def all() -> str:
            return "businesses:all"

        @staticmethod
        def verified() -> str:
            return "businesses:verified"

        @staticmethod
        def by_category(category: str) -> str:
            return f"businesses:category:{category}"

        @staticmethod
        def by_user(user_id: Any) -> str:
            return f"businesses:user:{user_id}"

        @staticmethod
        def by_id(business_id: Any) -> str:
            return f"business:{business_id}"

    class deals:
        @staticmethod
        def all() -> str:
            return "deals:all"

        @staticmethod
        def active() -> str:
            return "deals:active"

        @staticmethod
        def by_category(category: str) -> str:
            return f"deals:category:{category}"

        @staticmethod
        def by_business(business_id: Any) -> str:
            return f"deals:business:{business_id}"

        @staticmethod
        def featured() -> str:
            return "deals:featured"

        @staticmethod
        def by_id(deal_id: Any) -> str:
            return f"deal:{deal_id}"

        @staticmethod
        def public() -> str:
            return "deals:public"

    class users:
        @staticmethod
        def by_id(user_id: Any) -> str:
            return f"user:{user_id}"

        @staticmethod
        def by_email(email: str) -> str:
            return f"user:email:{email}"

        @staticmethod
        def stats() -> str:
            return "users:stats"

    class plans:
        @staticmethod
        def all() -> str:
            return "plans:all"

        @staticmethod
        def active() -> str:
            return "plans:active"

        @staticmethod
        def by_id(plan_id: Any) -> str:
            return f"plan:{plan_id}"

    class system:
        @staticmethod
        def settings() -> str:
            return "system:settings"

        @staticmethod
        def stats() -> str:
            return "system:stats"


class CacheInvalidator:
    """
    Drops the cache entries related to an entity after it changes.

    Called by domain code after a successful write, next to (not instead of)
    the route-level ``invalidate_cache`` decorators.
    """

    def __init__(self, cache: CacheService):
        self._cache = cache

    async def invalidate_business_caches(self, business_id: Any = None) -> None:
        await self._cache.delete(CacheKeys.businesses.all())
        await self._cache.delete(CacheKeys.businesses.verified())
        await self._cache.delete_pattern(r"^businesses:category:")

        if business_id is not None:
            await self._cache.delete(CacheKeys.businesses.by_id(business_id))
            await self._cache.delete_pattern(f"^{re.escape(CacheKeys.deals.by_business(business_id))}$")

        logger.debug("Business caches invalidated", stage="CACHE.INV", business_id=business_id)

    async def invalidate_deal_caches(self, deal_id: Any = None, business_id: Any = None) -> None:
        for key in (
            CacheKeys.deals.all(),
            CacheKeys.deals.active(),
            CacheKeys.deals.featured(),
            CacheKeys.deals.public(),
        ):
            await self._cache.delete(key)
        await self._cache.delete_pattern(r"^deals:category:")

        if deal_id is not None:
            await self._cache.delete(CacheKeys.deals.by_id(deal_id))

        if business_id is not None:
            await self._cache.delete(CacheKeys.deals.by_business(business_id))

        logger.debug("Deal caches invalidated", stage="CACHE.INV", deal_id=deal_id, business_id=business_id)

    async def invalidate_user_caches(self, user_id: Any = None) -> None:
        await self._cache.delete(CacheKeys.users.stats())

        if user_id is not None:
            await self._cache.delete(CacheKeys.users.by_id(user_id))

        logger.debug("User caches invalidated", stage="CACHE.INV", user_id=user_id)
