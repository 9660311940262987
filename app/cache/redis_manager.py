# app/cache/redis_manager.py
import redis.asyncio as redis
import json
from typing import Any, Optional
import logging

from app.cache.cache_config import CacheTTL, CacheKeys
from app.utils.metrics import CACHE_HITS, CACHE_MISSES, CACHE_ERRORS

logger = logging.getLogger(__name__)

class RedisCache:
    """
    Thin typed wrapper over a Redis connection
    Values are JSON documents. Backend failures are absorbed: a failed read is
    a miss and a failed write/delete is a logged no-op.
    """

    def __init__(self, redis_url: str = "redis://localhost:6379/0", client: Optional[redis.Redis] = None):
        self.redis_url = redis_url
        self.redis = client

    async def connect(self):
        """Initialize Redis connection pool"""
        try:
            self.redis = redis.from_url(
                self.redis_url,
                max_connections=20,
                retry_on_timeout=True,
                decode_responses=False
            )

            # Test connection
            await self.redis.ping()

            logger.info("✅ Redis connection pool initialized")

        except Exception as e:
            # The API still serves every request uncached
            logger.error(f"❌ Redis initialization failed, caching degraded: {e}")

    async def close(self):
        """Close Redis connections gracefully"""
        if self.redis:
            await self.redis.aclose()
            logger.info("✅ Redis connection closed")

    async def ping(self) -> bool:
        if self.redis is None:
            return False
        return bool(await self.redis.ping())

    async def get(self, key: str) -> Optional[Any]:
        """Get a cached value, None on miss or backend failure"""
        cache_type = CacheKeys.query_type(key)
        try:
            if self.redis is None:
                logger.warning("Redis not initialized, skipping cache")
                CACHE_MISSES.labels(cache_type=cache_type).inc()
                return None

            value = await self.redis.get(key)

            if value is None:
                logger.debug(f"❌ Cache MISS: {key}")
                CACHE_MISSES.labels(cache_type=cache_type).inc()
                return None

            logger.debug(f"✅ Cache HIT: {key}")
            CACHE_HITS.labels(cache_type=cache_type).inc()
            return json.loads(value)

        except Exception as e:
            logger.error(f"Redis GET error for key {key}: {e}")
            CACHE_ERRORS.labels(operation="get").inc()
            CACHE_MISSES.labels(cache_type=cache_type).inc()
            return None

    async def set(self, key: str, value: Any, ttl: int = CacheTTL.ANALYTICS) -> bool:
        """Store a value with a relative expiry"""
        try:
            if self.redis is None:
                return False

            serialized_value = json.dumps(value, default=str)

            await self.redis.setex(key, ttl, serialized_value)
            logger.debug(f"💾 Cache SET: {key} (TTL: {ttl}s)")
            return True

        except Exception as e:
            logger.error(f"Redis SET error for key {key}: {e}")
            CACHE_ERRORS.labels(operation="set").inc()
            return False

    async def delete(self, key: str) -> bool:
        """Delete one exact key"""
        try:
            if self.redis is None:
                return False
            result = await self.redis.delete(key)
            logger.debug(f"🗑️ Cache DELETE: {key}")
            return bool(result)
        except Exception as e:
            logger.error(f"Redis DELETE error for key {key}: {e}")
            CACHE_ERRORS.labels(operation="delete").inc()
            return False

    async def delete_pattern(self, pattern: str) -> int:
        """Delete all keys matching a glob pattern"""
        try:
            if self.redis is None:
                return 0

            keys = []
            async for key in self.redis.scan_iter(match=pattern):
                keys.append(key)

            if keys:
                deleted_count = await self.redis.delete(*keys)
                logger.info(f"🗑️ Deleted {deleted_count} keys matching pattern: {pattern}")
                return deleted_count

            return 0
        except Exception as e:
            logger.error(f"Redis DELETE PATTERN error for {pattern}: {e}")
            CACHE_ERRORS.labels(operation="delete_pattern").inc()
            return 0

    async def delete_prefix(self, prefix: str) -> int:
        """Delete every key under `prefix:`"""
        return await self.delete_pattern(CacheKeys.prefix_pattern(prefix))
