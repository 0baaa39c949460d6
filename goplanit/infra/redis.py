"""Redis configuration, client management, and the best-effort JSON cache."""

import json
import logging
from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

from redis.asyncio import ConnectionPool, Redis
from redis.exceptions import RedisError

from goplanit.core.config import settings

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Redis connection pool
redis_pool: ConnectionPool | None = None
redis_client: Redis | None = None


def create_redis_client(url: str | None = None) -> Redis:
    """Create a standalone async Redis client.

    Celery tasks run each pipeline in a fresh event loop, so they build their
    own client instead of sharing the API process pool.
    """
    return Redis.from_url(
        url or str(settings.REDIS_URL),
        max_connections=settings.REDIS_MAX_CONNECTIONS,
        decode_responses=True,
    )


async def init_redis() -> Redis:
    """Initialize Redis connection pool and client."""
    global redis_pool, redis_client

    redis_pool = ConnectionPool.from_url(
        str(settings.REDIS_URL),
        max_connections=settings.REDIS_MAX_CONNECTIONS,
        decode_responses=True,
    )
    redis_client = Redis(connection_pool=redis_pool)

    # Test connection
    await redis_client.ping()

    return redis_client


async def get_redis() -> Redis:
    """Get Redis client instance."""
    if redis_client is None:
        return await init_redis()
    return redis_client


async def close_redis() -> None:
    """Close Redis connections."""
    global redis_pool, redis_client

    if redis_client:
        await redis_client.aclose()
        redis_client = None

    if redis_pool:
        await redis_pool.disconnect()
        redis_pool = None


class CacheService:
    """JSON cache on top of Redis.

    Every operation is best-effort: Redis or serialization failures are
    logged and reported as a miss (reads) or ``False`` (writes), never raised.
    """

    def __init__(self, redis: Redis, default_ttl: int | None = None) -> None:
        self.redis = redis
        self.default_ttl = default_ttl or settings.REDIS_DEFAULT_TTL

    async def get(self, key: str) -> Any | None:
        """Get a JSON value from cache."""
        try:
            value = await self.redis.get(key)
            if value is None:
                return None
            return json.loads(value)
        except (RedisError, ValueError) as e:
            logger.error(f"Cache get error for {key}: {e}")
            return None

    async def set(self, key: str, value: Any, ttl: int | None = None) -> bool:
        """Set a JSON value in cache with optional TTL."""
        try:
            payload = json.dumps(value)
            return bool(await self.redis.set(key, payload, ex=ttl or self.default_ttl))
        except (RedisError, TypeError, ValueError) as e:
            logger.error(f"Cache set error for {key}: {e}")
            return False

    async def delete(self, key: str) -> bool:
        """Delete a key from cache."""
        try:
            return bool(await self.redis.delete(key))
        except RedisError as e:
            logger.error(f"Cache delete error for {key}: {e}")
            return False

    async def mget(self, keys: list[str]) -> list[Any | None]:
        """Get several JSON values at once, ``None`` for each miss."""
        if not keys:
            return []
        try:
            values = await self.redis.mget(keys)
        except RedisError as e:
            logger.error(f"Cache mget error: {e}")
            return [None] * len(keys)

        results: list[Any | None] = []
        for key, value in zip(keys, values):
            if value is None:
                results.append(None)
                continue
            try:
                results.append(json.loads(value))
            except ValueError as e:
                logger.error(f"Cache decode error for {key}: {e}")
                results.append(None)
        return results

    async def get_or_compute(
        self,
        key: str,
        compute: Callable[[], Awaitable[T]],
        ttl: int | None = None,
    ) -> T:
        """Return the cached value, or compute it and back-fill the cache.

        Errors raised by ``compute`` propagate and nothing is cached.
        """
        cached = await self.get(key)
        if cached is not None:
            return cached

        fresh = await compute()
        if fresh is not None:
            await self.set(key, fresh, ttl)
        return fresh
