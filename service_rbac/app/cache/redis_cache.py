"""
Redis caching layer for RBAC decisions.
"""

from typing import Dict, Any, Optional

import redis.asyncio as redis
from shared.logging import get_logger
from shared.errors import CacheError
from .decision_cache import DecisionCache


class RedisDecisionCache(DecisionCache):
    """Redis-backed decision cache shared between engine instances.

    Lookup and write failures are logged and treated as misses, so the
    decision is recomputed from storage. Failing to clear raises, since a
    cache that cannot be invalidated would keep serving stale grants.
    """

    DECISION_PREFIX = "rbac:decision:"

    def __init__(self, redis_url: str, ttl_seconds: int = 300):
        self.redis_url = redis_url
        self.ttl_seconds = ttl_seconds
        self.logger = get_logger("rbac.cache.redis")
        self.redis: Optional[redis.Redis] = None

    async def start(self):
        """Start the Redis cache."""
        try:
            self.redis = redis.from_url(
                self.redis_url,
                encoding="utf-8",
                decode_responses=True,
                socket_connect_timeout=5,
                socket_timeout=5,
                retry_on_timeout=True,
                health_check_interval=30
            )

            await self.redis.ping()

            self.logger.info("Redis cache started")

        except Exception as e:
            self.logger.error("Failed to start Redis cache", error=str(e))
            raise CacheError("Failed to start Redis cache", {"error": str(e)})

    async def stop(self):
        """Stop the Redis cache."""
        if self.redis:
            await self.redis.aclose()
            self.redis = None
            self.logger.info("Redis cache stopped")

    async def get(self, key: str) -> Optional[bool]:
        """Get a cached decision."""
        try:
            cached = await self.redis.get(self._decision_key(key))
            if cached is None:
                return None

            self.logger.debug("Cache hit for decision", cache_key=key)
            return cached == "1"

        except Exception as e:
            self.logger.error("Error getting cached decision", error=str(e))
            return None

    async def set(self, key: str, allowed: bool) -> None:
        """Cache a decision."""
        try:
            await self.redis.setex(
                self._decision_key(key),
                self.ttl_seconds,
                "1" if allowed else "0"
            )
        except Exception as e:
            self.logger.error("Error caching decision", error=str(e))

    async def clear(self) -> None:
        """Clear all cached decisions."""
        try:
            decision_keys = await self.redis.keys(f"{self.DECISION_PREFIX}*")
            if decision_keys:
                await self.redis.delete(*decision_keys)

            self.logger.info("Decision cache cleared", count=len(decision_keys))

        except Exception as e:
            self.logger.error("Error clearing decision cache", error=str(e))
            raise CacheError("Failed to clear decision cache", {"error": str(e)})

    async def get_cache_stats(self) -> Dict[str, Any]:
        """Get cache statistics."""
        try:
            info = await self.redis.info()
            decision_keys = await self.redis.keys(f"{self.DECISION_PREFIX}*")

            return {
                "redis_version": info.get("redis_version"),
                "used_memory": info.get("used_memory_human"),
                "decision_keys": len(decision_keys),
                "hit_rate": self._calculate_hit_rate(info)
            }

        except Exception as e:
            self.logger.error("Error getting cache stats", error=str(e))
            return {}

    def _decision_key(self, key: str) -> str:
        return f"{self.DECISION_PREFIX}{key}"

    def _calculate_hit_rate(self, info: Dict[str, Any]) -> float:
        """Calculate cache hit rate."""
        hits = info.get("keyspace_hits", 0)
        misses = info.get("keyspace_misses", 0)
        total = hits + misses

        if total == 0:
            return 0.0

        return hits / total
