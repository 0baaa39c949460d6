"""
Tests for the Redis-backed JSON cache.

Covers round-tripping, batched reads, compute-and-backfill, and the
best-effort behaviour when Redis is unavailable.
"""

import json

import pytest
from unittest.mock import AsyncMock
from redis.exceptions import ConnectionError as RedisConnectionError

from goplanit.infra.redis import CacheService


class TestCacheService:
    """Tests for basic get/set/delete."""

    @pytest.mark.asyncio
    async def test_set_then_get(self, cache, fake_redis):
        """Test values are stored as JSON with the given TTL."""
        assert await cache.set("k", {"a": 1}, ttl=30) is True

        assert json.loads(fake_redis.store["k"]) == {"a": 1}
        assert fake_redis.ttls["k"] == 30
        assert await cache.get("k") == {"a": 1}

    @pytest.mark.asyncio
    async def test_default_ttl_applies(self, cache, fake_redis):
        """Test the default TTL is used when none is given."""
        await cache.set("k", [1, 2])
        assert fake_redis.ttls["k"] == 60

    @pytest.mark.asyncio
    async def test_get_missing_returns_none(self, cache):
        assert await cache.get("missing") is None

    @pytest.mark.asyncio
    async def test_delete(self, cache, fake_redis):
        await cache.set("k", "v")
        assert await cache.delete("k") is True
        assert "k" not in fake_redis.store
        assert await cache.delete("k") is False

    @pytest.mark.asyncio
    async def test_corrupt_value_is_a_miss(self, cache, fake_redis):
        """Test undecodable entries are reported as misses."""
        fake_redis.store["k"] = "{not json"
        assert await cache.get("k") is None

    @pytest.mark.asyncio
    async def test_unserializable_value_is_not_stored(self, cache, fake_redis):
        assert await cache.set("k", {"when": object()}) is False
        assert "k" not in fake_redis.store


class TestCacheServiceMget:
    """Tests for batched reads."""

    @pytest.mark.asyncio
    async def test_mget_preserves_slots(self, cache):
        await cache.set("a", 1)
        await cache.set("c", {"x": 3})

        assert await cache.mget(["a", "b", "c"]) == [1, None, {"x": 3}]

    @pytest.mark.asyncio
    async def test_mget_empty(self, cache):
        assert await cache.mget([]) == []


class TestCacheServiceGetOrCompute:
    """Tests for compute-and-backfill."""

    @pytest.mark.asyncio
    async def test_miss_computes_and_backfills(self, cache, fake_redis):
        compute = AsyncMock(return_value={"fresh": True})

        result = await cache.get_or_compute("k", compute, ttl=120)

        assert result == {"fresh": True}
        compute.assert_awaited_once()
        assert fake_redis.ttls["k"] == 120

    @pytest.mark.asyncio
    async def test_hit_skips_compute(self, cache):
        await cache.set("k", ["cached"])
        compute = AsyncMock(return_value=["fresh"])

        assert await cache.get_or_compute("k", compute) == ["cached"]
        compute.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_none_result_is_not_cached(self, cache, fake_redis):
        compute = AsyncMock(return_value=None)

        assert await cache.get_or_compute("k", compute) is None
        assert "k" not in fake_redis.store

    @pytest.mark.asyncio
    async def test_compute_error_propagates(self, cache, fake_redis):
        compute = AsyncMock(side_effect=RuntimeError("provider down"))

        with pytest.raises(RuntimeError, match="provider down"):
            await cache.get_or_compute("k", compute)
        assert "k" not in fake_redis.store


class TestCacheServiceRedisDown:
    """Tests that Redis failures never escape the cache."""

    @pytest.fixture
    def broken_cache(self):
        redis = AsyncMock()
        error = RedisConnectionError("connection refused")
        redis.get.side_effect = error
        redis.set.side_effect = error
        redis.delete.side_effect = error
        redis.mget.side_effect = error
        return CacheService(redis, default_ttl=60)

    @pytest.mark.asyncio
    async def test_operations_degrade(self, broken_cache):
        assert await broken_cache.get("k") is None
        assert await broken_cache.set("k", 1) is False
        assert await broken_cache.delete("k") is False
        assert await broken_cache.mget(["a", "b"]) == [None, None]

    @pytest.mark.asyncio
    async def test_get_or_compute_still_returns_value(self, broken_cache):
        compute = AsyncMock(return_value={"ok": 1})
        assert await broken_cache.get_or_compute("k", compute) == {"ok": 1}
