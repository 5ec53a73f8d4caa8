"""
Redis caching service for provider daily schedules.

CACHING STRATEGY
================

What we cache:
  - A provider's reservations for one calendar day (UTC), JSON-serialized
  - Cache key pattern: "schedule:provider:{provider_id}:v{version}:{YYYY-MM-DD}"
  - Generation counter: "schedule:provider:{provider_id}:version"

Invalidation strategy:
  - After every committed write that touches a provider's timeline (reserve,
    status change, reschedule, cancel, reprice, payment), INCR the provider's
    generation and delete its cached days
  - TTL-based expiry as safety net (REDIS_CACHE_TTL)

  Readers fetch the generation before querying the database and write the
  result under that generation. A reader that raced a write therefore stores
  its stale day under a generation nobody reads any more, instead of
  overwriting a freshly invalidated key.

What is never cached:
  - Conflict checks. They always read the database inside the writing
    transaction; a stale schedule would let an overlapping reservation in.

Redis is optional. With REDIS_ENABLED=false, or when the server cannot be
reached, every function here degrades to a no-op / cache miss.
"""

import json
from datetime import date
from typing import List, Optional

import redis.asyncio as redis
from redis.exceptions import RedisError

from reservation_api.core.config import get_settings
from reservation_api.core.logging import get_logger
from reservation_api.core.metrics import record_cache_operation, redis_connection_errors

logger = get_logger(__name__)
settings = get_settings()

SCHEDULE_KEY_PREFIX = "schedule:provider"

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
        except (RedisError, OSError) as e:
            redis_connection_errors.inc()
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


def version_key(provider_id: int) -> str:
    return f"{SCHEDULE_KEY_PREFIX}:{provider_id}:version"


def schedule_key(provider_id: int, day: date, version: int = 0) -> str:
    return f"{SCHEDULE_KEY_PREFIX}:{provider_id}:v{version}:{day.isoformat()}"


async def get_schedule_version(provider_id: int) -> Optional[int]:
    """
    Current cache generation of a provider's schedule, or None when the cache
    is unavailable. Read it before querying the database and pass it to both
    get_cached_schedule and set_cached_schedule.
    """
    client = await get_redis()
    if not client:
        return None

    try:
        return int(await client.get(version_key(provider_id)) or 0)
    except (RedisError, ValueError) as e:
        logger.error("cache_version_error", provider_id=provider_id, error=str(e))
        return None


async def get_cached_schedule(provider_id: int, day: date, version: Optional[int]) -> Optional[List[dict]]:
    """Retrieve a cached daily schedule, or None on miss."""
    if version is None:
        return None
    client = await get_redis()
    if not client:
        return None

    key = schedule_key(provider_id, day, version)
    try:
        data = await client.get(key)
        if data:
            record_cache_operation("get", hit=True)
            logger.debug("cache_hit", key=key)
            return json.loads(data)
        record_cache_operation("get", hit=False)
        logger.debug("cache_miss", key=key)
    except (RedisError, ValueError) as e:
        logger.error("cache_get_error", key=key, error=str(e))

    return None


async def set_cached_schedule(
    provider_id: int, day: date, version: Optional[int], reservations: List[dict]
) -> None:
    """Cache a daily schedule with TTL under the generation it was read at."""
    if version is None:
        return
    client = await get_redis()
    if not client:
        return

    key = schedule_key(provider_id, day, version)
    try:
        await client.setex(key, settings.REDIS_CACHE_TTL, json.dumps(reservations, default=str))
        record_cache_operation("set", hit=True)
        logger.debug("cache_set", key=key, ttl=settings.REDIS_CACHE_TTL)
    except RedisError as e:
        logger.error("cache_set_error", key=key, error=str(e))


async def invalidate_provider_schedule(provider_id: int) -> None:
    """
    Bump the provider's cache generation, then delete the cached days.
    The bump alone makes every existing entry unreachable; the SCAN only
    frees memory early.
    """
    client = await get_redis()
    if not client:
        return

    try:
        version = await client.incr(version_key(provider_id))
        deleted = 0
        async for key in client.scan_iter(match=f"{SCHEDULE_KEY_PREFIX}:{provider_id}:v[0-9]*", count=100):
            await client.delete(key)
            deleted += 1
        logger.info("cache_invalidated", provider_id=provider_id, version=version, keys_deleted=deleted)
    except RedisError as e:
        logger.error("cache_invalidation_error", provider_id=provider_id, error=str(e))


async def get_cache_stats() -> dict:
    """Get Redis cache statistics for monitoring."""
    client = await get_redis()
    if not client:
        return {"status": "disabled"}

    try:
        info = await client.info("stats")
        keyspace = await client.info("keyspace")
        hits = info.get("keyspace_hits", 0)
        misses = info.get("keyspace_misses", 0)
        return {
            "status": "connected",
            "hits": hits,
            "misses": misses,
            "hit_rate": round(hits / max(hits + misses, 1) * 100, 2),
            "keys": keyspace,
        }
    except RedisError as e:
        return {"status": "error", "error": str(e)}
