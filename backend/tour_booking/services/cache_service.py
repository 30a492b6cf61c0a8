"""
Redis caching service for public trip listings.

CACHING STRATEGY
================

What we cache:
  - Published trip listing responses (paginated, JSON-serialized)
  - Cache key pattern: "trips:list:<sorted query string>"

Invalidation strategy:
  - On booking creation/cancellation: seats_available changed
  - On trip create/update/publish/unpublish/archive/override
  - TTL-based expiry as safety net (REDIS_CACHE_TTL)

  All listing keys share the "trips:list:" prefix so we can SCAN and delete them.

Why NOT cache single trips or availability:
  - Booking needs real-time seat counts; the database is authoritative
  - Stale availability would show seats that are already gone
"""

import json
import time
from typing import Any, Optional

import redis.asyncio as redis
from tour_booking.core.config import get_settings
from tour_booking.core.logging import get_logger
from tour_booking.core.metrics import record_cache_operation

logger = get_logger(__name__)
settings = get_settings()

LIST_KEY_PREFIX = "trips:list:"

_redis_client: Optional[redis.Redis] = None
# While Redis is down, listings go straight to the database; reconnects are
# attempted at most once per RECONNECT_INTERVAL seconds.
RECONNECT_INTERVAL = 30.0
_reconnect_after = 0.0


async def get_redis() -> Optional[redis.Redis]:
    """Get or create Redis connection. Returns None if Redis is disabled or down."""
    global _redis_client, _reconnect_after

    if not settings.REDIS_ENABLED:
        return None

    if _redis_client is None:
        if time.monotonic() < _reconnect_after:
            return None
        try:
            _redis_client = redis.from_url(
                settings.REDIS_URL,
                encoding="utf-8",
                decode_responses=True,
                socket_connect_timeout=2,
                socket_timeout=2,
                retry_on_timeout=True,
            )
            await _redis_client.ping()
            logger.info("redis_connected", url=settings.REDIS_URL)
        except Exception as e:
            logger.error("redis_connection_failed", error=str(e), retry_in=RECONNECT_INTERVAL)
            _redis_client = None
            _reconnect_after = time.monotonic() + RECONNECT_INTERVAL
            return None

    return _redis_client


async def close_redis() -> None:
    """Close Redis connection on shutdown."""
    global _redis_client
    if _redis_client:
        await _redis_client.aclose()
        _redis_client = None


def make_trip_list_key(params: dict[str, Any]) -> str:
    parts = [f"{k}={params[k]}" for k in sorted(params) if params[k] is not None]
    return LIST_KEY_PREFIX + "&".join(parts)


async def get_cached_trips(params: dict[str, Any]) -> Optional[dict]:
    """Retrieve a cached trip list response."""
    client = await get_redis()
    if not client:
        return None

    key = make_trip_list_key(params)
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


async def set_cached_trips(params: dict[str, Any], data: dict) -> None:
    """Cache a trip list response with TTL."""
    client = await get_redis()
    if not client:
        return

    key = make_trip_list_key(params)
    try:
        await client.setex(key, settings.REDIS_CACHE_TTL, json.dumps(data, default=str))
        record_cache_operation("set", hit=False)
        logger.debug("cache_set", key=key, ttl=settings.REDIS_CACHE_TTL)
    except Exception as e:
        logger.error("cache_set_error", key=key, error=str(e))


async def invalidate_trip_cache() -> None:
    """Invalidate all cached trip listings by key prefix."""
    client = await get_redis()
    if not client:
        return

    try:
        keys = [key async for key in client.scan_iter(match=f"{LIST_KEY_PREFIX}*", count=100)]
        deleted = await client.delete(*keys) if keys else 0
        logger.info("cache_invalidated", keys_deleted=deleted)
    except Exception as e:
        logger.error("cache_invalidation_error", error=str(e))


async def get_cache_stats() -> dict:
    """Get Redis cache statistics for the health endpoint."""
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
