"""Tests for the JSON key-value store."""

import json
from unittest.mock import AsyncMock

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

from polymarket_signal_engine.storage.kv import DAY_SECONDS, JsonStore, ttl_days


class TestTtlDays:
    """Tests for TTL helpers."""

    def test_ttl_days(self) -> None:
        """Test converting days to seconds."""
        assert ttl_days(1) == DAY_SECONDS
        assert ttl_days(30) == 30 * 86400
        assert ttl_days(0.5) == 43200


class TestJsonStore:
    """Tests for JsonStore."""

    @pytest.mark.asyncio
    async def test_round_trip(self, fake_redis) -> None:
        """Test writing and reading a document with a TTL."""
        store = JsonStore(fake_redis)

        assert await store.set_json("k", {"a": [1, 2]}, ex=60)
        assert await store.get_json("k") == {"a": [1, 2]}
        assert fake_redis.ttls["k"] == 60
        assert store.redis is fake_redis

    @pytest.mark.asyncio
    async def test_missing_key(self, fake_redis) -> None:
        """Test that a missing key reads as None."""
        assert await JsonStore(fake_redis).get_json("missing") is None

    @pytest.mark.asyncio
    async def test_bytes_decoded(self) -> None:
        """Test that byte payloads from Redis are decoded."""
        redis = AsyncMock()
        redis.get.return_value = json.dumps({"x": 1}).encode()

        assert await JsonStore(redis).get_json("k") == {"x": 1}

    @pytest.mark.asyncio
    async def test_corrupt_value(self) -> None:
        """Test that undecodable JSON reads as None."""
        redis = AsyncMock()
        redis.get.return_value = "{not json"

        assert await JsonStore(redis).get_json("k") is None

    @pytest.mark.asyncio
    async def test_read_failure(self) -> None:
        """Test that a Redis error on read is swallowed as None."""
        redis = AsyncMock()
        redis.get.side_effect = RedisConnectionError("down")

        assert await JsonStore(redis).get_json("k") is None

    @pytest.mark.asyncio
    async def test_write_failure(self) -> None:
        """Test that a Redis error on write returns False."""
        redis = AsyncMock()
        redis.set.side_effect = RedisConnectionError("down")

        assert await JsonStore(redis).set_json("k", {"a": 1}) is False

    @pytest.mark.asyncio
    async def test_delete(self, fake_redis) -> None:
        """Test deleting a key."""
        store = JsonStore(fake_redis)
        await store.set_json("k", 1)

        assert await store.delete("k")
        assert await store.get_json("k") is None
