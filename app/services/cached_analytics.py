# app/services/cached_analytics.py
"""
Cache-aside coordination for the analytics queries

Reads: derive key -> cache get -> hit returns the cached payload untouched,
miss computes through AnalyticsService and stores the result.
Writes: after an order is persisted the affected keys are dropped before the
mutation reports success.
"""
import logging
from fastapi import Request
from typing import Any, Awaitable, Callable, Dict, List

from app.cache.cache_config import CacheKeys, CacheTTL
from app.cache.redis_manager import RedisCache
from app.services.analytics_service import AnalyticsService, DEFAULT_PAGE_SIZE
from app.utils.metrics import CACHE_INVALIDATIONS

logger = logging.getLogger(__name__)

class CachedAnalyticsService:
    def __init__(self, analytics: AnalyticsService, cache: RedisCache, ttl: int = CacheTTL.ANALYTICS):
        self.analytics = analytics
        self.cache = cache
        self.ttl = ttl

    async def _read_through(self, cache_key: str, compute: Callable[[], Awaitable[Any]]) -> Any:
        cached_result = await self.cache.get(cache_key)
        if cached_result is not None:
            logger.info(f"⚡ Cache HIT: {cache_key}")
            return cached_result

        logger.info(f"💾 Cache MISS: {cache_key}")
        result = await compute()

        # Failures propagate before this point, so only successful results are stored
        await self.cache.set(cache_key, result, self.ttl)
        return result

    async def get_customer_spending(self, customer_id: str) -> Dict[str, Any]:
        return await self._read_through(
            CacheKeys.customer_spending(customer_id),
            lambda: self.analytics.get_customer_spending(customer_id)
        )

    async def get_top_selling_products(self, limit: int) -> List[Dict[str, Any]]:
        return await self._read_through(
            CacheKeys.top_products(limit),
            lambda: self.analytics.get_top_selling_products(limit)
        )

    async def get_sales_analytics(self, start_date: str, end_date: str) -> Dict[str, Any]:
        return await self._read_through(
            CacheKeys.sales_analytics(start_date, end_date),
            lambda: self.analytics.get_sales_analytics(start_date, end_date)
        )

    async def get_customer_orders(self, customer_id: str, page: int = 1, limit: int = DEFAULT_PAGE_SIZE) -> Dict[str, Any]:
        # Paginated history is always read from the store
        return await self.analytics.get_customer_orders(customer_id, page, limit)

    async def list_customers(self) -> List[Dict[str, Any]]:
        return await self.analytics.list_customers()

    async def invalidate_order_caches(self, customer_id: str) -> int:
        """
        Drop every cached aggregate a new order for `customer_id` can change

        The customer's spending entry goes by exact key; top-products and
        sales-analytics entries go by prefix since any limit or date range
        may include the new order.
        """
        removed = 0

        if await self.cache.delete(CacheKeys.customer_spending(customer_id)):
            removed += 1
            CACHE_INVALIDATIONS.labels(cache_type=CacheKeys.CUSTOMER_SPENDING).inc()

        for prefix in (CacheKeys.TOP_PRODUCTS, CacheKeys.SALES_ANALYTICS):
            deleted = await self.cache.delete_prefix(prefix)
            if deleted:
                CACHE_INVALIDATIONS.labels(cache_type=prefix).inc(deleted)
            removed += deleted

        logger.info(f"✅ Invalidated {removed} analytics cache entries after order for customer {customer_id}")
        return removed

    async def invalidate_all(self) -> int:
        """Drop every analytics entry (used after a bulk data load)"""
        removed = 0
        for prefix in (CacheKeys.CUSTOMER_SPENDING, CacheKeys.TOP_PRODUCTS, CacheKeys.SALES_ANALYTICS):
            removed += await self.cache.delete_prefix(prefix)
        logger.info(f"✅ Invalidated {removed} analytics cache entries")
        return removed

def get_analytics(request: Request) -> CachedAnalyticsService:
    return request.app.state.analytics
