"""JSON key-value access to Redis with guarded reads and writes.

Every record the engine persists (signals, factor statistics, wallet
ledgers, indexes) is a plain JSON document stored under a single key with
an optional TTL. The store offers only get-then-put; there is no
compare-and-swap, so concurrent writers resolve as last-write-wins.

A failed read is indistinguishable from a missing key, and a failed write
returns ``False``. Callers treat both as "no new information" rather than
aborting the scan or settlement that issued them.
"""

from __future__ import annotations

import json
import logging
from datetime import timedelta
from typing import Any

from redis.asyncio import Redis
from redis.exceptions import RedisError

logger = logging.getLogger(__name__)

DAY_SECONDS = 24 * 60 * 60


def ttl_days(days: float) -> int:
    """Return a TTL in whole seconds for the given number of days."""
    return int(timedelta(days=days).total_seconds())


class JsonStore:
    """Thin JSON codec over an async Redis client.

    Example:
        ```python
        redis = Redis.from_url("redis://localhost:6379")
        store = JsonStore(redis)

        await store.set_json("factor_stats_v2", {"volumeHuge": {...}}, ex=ttl_days(90))
        stats = await store.get_json("factor_stats_v2") or {}
        ```
    """

    def __init__(self, redis: Redis) -> None:
        self._redis = redis

    @property
    def redis(self) -> Redis:
        """Underlying Redis client."""
        return self._redis

    async def get_json(self, key: str) -> Any | None:
        """Read and decode a JSON value, or None if missing or unreadable."""
        try:
            raw = await self._redis.get(key)
        except RedisError as e:
            logger.warning("Store read failed for %s: %s", key, e)
            return None
        if raw is None:
            return None
        try:
            if isinstance(raw, bytes):
                raw = raw.decode()
            return json.loads(raw)
        except (UnicodeDecodeError, ValueError) as e:
            logger.warning("Failed to decode stored value for %s: %s", key, e)
            return None

    async def set_json(self, key: str, value: Any, *, ex: int | None = None) -> bool:
        """Encode and write a JSON value. Returns False if the write failed."""
        try:
            payload = json.dumps(value, default=str)
        except (TypeError, ValueError) as e:
            logger.warning("Failed to encode value for %s: %s", key, e)
            return False
        try:
            await self._redis.set(key, payload, ex=ex)
        except RedisError as e:
            logger.warning("Store write failed for %s: %s", key, e)
            return False
        return True

    async def delete(self, key: str) -> bool:
        """Delete a key. Returns False if the delete failed."""
        try:
            await self._redis.delete(key)
        except RedisError as e:
            logger.warning("Store delete failed for %s: %s", key, e)
            return False
        return True
