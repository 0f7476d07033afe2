"""Pytest configuration and fixtures."""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any
from unittest.mock import AsyncMock

import pytest

WALLET_A = "0xaaaa567890123456789012345678901234567890"
WALLET_B = "0xbbbb567890123456789012345678901234567890"
WALLET_C = "0xcccc567890123456789012345678901234567890"


@pytest.fixture
def now() -> datetime:
    """Fixed reference time for deterministic tests."""
    return datetime(2026, 1, 15, 18, 0, tzinfo=UTC)


@pytest.fixture
def fake_redis():
    """In-memory stand-in for ``redis.asyncio.Redis``.

    Values live in ``fake_redis.data`` and TTLs passed via ``ex=`` are
    recorded in ``fake_redis.ttls``.
    """
    data: dict[str, Any] = {}
    ttls: dict[str, int | None] = {}

    async def get(key: str) -> Any:
        return data.get(key)

    async def set(key: str, value: Any, ex: int | None = None) -> bool:
        data[key] = value
        ttls[key] = ex
        return True

    async def delete(*keys: str) -> int:
        removed = 0
        for key in keys:
            if data.pop(key, None) is not None:
                removed += 1
            ttls.pop(key, None)
        return removed

    redis = AsyncMock()
    redis.get = AsyncMock(side_effect=get)
    redis.set = AsyncMock(side_effect=set)
    redis.delete = AsyncMock(side_effect=delete)
    redis.data = data
    redis.ttls = ttls
    return redis


def make_trade_payload(
    *,
    slug: str = "nba-lal-bos-2026-01-15",
    title: str = "Lakers vs. Celtics",
    wallet: str = WALLET_A,
    usd: float = 1_000.0,
    price: float = 0.5,
    outcome: str = "Yes",
    outcome_index: int | None = 0,
    side: str = "BUY",
    timestamp: datetime | float | None = None,
    event_slug: str | None = None,
) -> dict[str, Any]:
    """Create a Data API ``/trades`` record for testing."""
    if timestamp is None:
        ts: float = datetime(2026, 1, 15, 17, 0, tzinfo=UTC).timestamp()
    elif isinstance(timestamp, datetime):
        ts = timestamp.timestamp()
    else:
        ts = timestamp
    payload: dict[str, Any] = {
        "proxyWallet": wallet,
        "side": side,
        "slug": slug,
        "eventSlug": event_slug if event_slug is not None else slug,
        "title": title,
        "outcome": outcome,
        "price": price,
        "usdcSize": usd,
        "timestamp": int(ts),
        "transactionHash": f"0x{abs(hash((slug, wallet, usd, ts))):x}",
    }
    if outcome_index is not None:
        payload["outcomeIndex"] = outcome_index
    return payload


@pytest.fixture
def trade_payload():
    """Factory for raw trade payloads."""
    return make_trade_payload
