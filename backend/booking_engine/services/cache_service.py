"""
Redis caching service for offering listings.

CACHING STRATEGY
================

What we cache:
  - Offering listing responses (paginated, JSON-serialized)
  - Cache key pattern: "offerings:list:page={page}&size={size}&upcoming={upcoming}&kind={kind}"

Invalidation strategy:
  - Any occupancy change (booking with completed payment, cancellation of a
    paid booking, payment update, reconciliation fix) deletes all listing keys
  - TTL-based expiry as safety net (5 minutes)

What we never cache:
  - Single offerings, availability checks, counts and audit history. Those
    drive booking decisions and must show the committed occupancy.

Redis is optional: when it is disabled or down every call degrades to a
cache miss and the database answers.
"""

import json
from typing import Optional

import redis.asyncio as redis
from booking_engine.core.config import get_settings
from booking_engine.core.logging import get_logger
from booking_engine.core.metrics import record_cache_operation

logger = get_logger(__name__)
settings = get_settings()

LIST_KEY_PREFIX = "offerings:list:"

_redis_client: Optional[redis.Redis] = None


async def get_redis() -> Optional[redis.Redis]:
    """Get or create Redis connection. Returns None if Redis is disabled."""
    global _redis_client

    if not settings.REDIS_ENABLED:
        return None

    if _redis_client is None:
        try:
            _redis_client = redis.from_url(
                settings.REDIS_URL,
                encoding="utf-8",
                decode_responses=True,
                socket_connect_timeout=5,
                socket_timeout=5,
                retry_on_timeout=True,
            )
            await _redis_client.ping()
            logger.info("redis_connected", url=settings.REDIS_URL)
        except Exception as e:
            logger.error("redis_connection_failed", error=str(e))
            _redis_client = None
            return None

    return _redis_client


async def close_redis() -> None:
    """Close Redis connection on shutdown."""
    global _redis_client
    if _redis_client:
        await _redis_client.aclose()
        _redis_client = None


def _make_list_key(page: int, page_size: int, upcoming_only: bool, kind: Optional[str]) -> str:
    return f"{LIST_KEY_PREFIX}page={page}&size={page_size}&upcoming={upcoming_only}&kind={kind or 'all'}"


async def get_cached_offerings(
    page: int,
    page_size: int,
    upcoming_only: bool,
    kind: Optional[str] = None,
) -> Optional[dict]:
    """Retrieve cached offering list response."""
    client = await get_redis()
    if not client:
        return None

    key = _make_list_key(page, page_size, upcoming_only, kind)
    try:
        data = await client.get(key)
        record_cache_operation("get", hit=bool(data))
        if data:
            logger.debug("cache_hit", key=key)
            return json.loads(data)
        logger.debug("cache_miss", key=key)
    except Exception as e:
        logger.error("cache_get_error", key=key, error=str(e))

    return None


async def set_cached_offerings(
    page: int,
    page_size: int,
    upcoming_only: bool,
    kind: Optional[str],
    data: dict,
) -> None:
    """Cache offering list response with TTL."""
    client = await get_redis()
    if not client:
        return

    key = _make_list_key(page, page_size, upcoming_only, kind)
    try:
        await client.setex(key, settings.REDIS_CACHE_TTL, json.dumps(data, default=str))
        logger.debug("cache_set", key=key, ttl=settings.REDIS_CACHE_TTL)
    except Exception as e:
        logger.error("cache_set_error", key=key, error=str(e))


async def invalidate_offering_cache() -> None:
    """
    Invalidate all cached offering listings.
    Uses SCAN to find and delete all keys matching the prefix.
    """
    client = await get_redis()
    if not client:
        return

    try:
        deleted = 0
        async for key in client.scan_iter(match=f"{LIST_KEY_PREFIX}*", count=100):
            await client.delete(key)
            deleted += 1
        logger.info("cache_invalidated", keys_deleted=deleted)
    except Exception as e:
        logger.error("cache_invalidation_error", error=str(e))


async def get_cache_stats() -> dict:
    """Get Redis cache statistics for monitoring."""
    client = await get_redis()
    if not client:
        return {"status": "disabled"}

    try:
        info = await client.info("stats")
        hits = info.get("keyspace_hits", 0)
        misses = info.get("keyspace_misses", 0)
        return {
            "status": "connected",
            "hits": hits,
            "misses": misses,
            "hit_rate": round(hits / max(hits + misses, 1) * 100, 2),
        }
    except Exception as e:
        return {"status": "error", "error": str(e)}
