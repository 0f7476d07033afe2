"""Storage layer for the signal engine (JSON documents in Redis)."""

from polymarket_signal_engine.storage.kv import DAY_SECONDS, JsonStore, ttl_days

__all__ = [
    "DAY_SECONDS",
    "JsonStore",
    "ttl_days",
]
