"""Async HTTP adapters for the Polymarket Data and Gamma APIs.

``PolymarketDataClient`` is the default ``TradeFeed`` and ``MarketMetadata``
implementation. It is plumbing: the engine only relies on the protocols in
``polymarket_signal_engine.interfaces``.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable, Iterable
from datetime import UTC, datetime, time, timedelta
from functools import wraps
from typing import Any, ParamSpec, TypeVar

import httpx
from redis.asyncio import Redis

from polymarket_signal_engine.ingestor.classifier import slug_event_date
from polymarket_signal_engine.ingestor.models import EventTiming
from polymarket_signal_engine.storage.kv import JsonStore

logger = logging.getLogger(__name__)

# Default configuration
DEFAULT_DATA_API_URL = "https://data-api.polymarket.com"
DEFAULT_GAMMA_API_URL = "https://gamma-api.polymarket.com"
DEFAULT_TIMEOUT_SECONDS = 8.0
DEFAULT_MAX_RETRIES = 2
DEFAULT_RETRY_BASE_DELAY = 0.5
DEFAULT_TIMING_CACHE_TTL_SECONDS = 10 * 60
DEFAULT_MAX_TIMING_LOOKUPS = 20
DEFAULT_EVENT_DURATION = timedelta(hours=3)
TIMING_CACHE_KEY_PREFIX = "event_timing_"

# Typical UTC start hour by slug prefix, used when Gamma has no record.
SLUG_START_HOURS: tuple[tuple[tuple[str, ...], int], ...] = (
    (("nba-", "nhl-"), 0),
    (("nfl-",), 18),
    (("cbb-", "ncaab-"), 23),
)

_HEADERS = {
    "Accept": "application/json",
    "User-Agent": "polymarket-signal-engine/0.1",
}

P = ParamSpec("P")
T = TypeVar("T")


class DataSourceError(Exception):
    """Raised when an upstream data source fails or returns garbage."""


class RetryError(DataSourceError):
    """Raised when all retry attempts are exhausted."""

    def __init__(self, message: str, last_exception: Exception | None = None) -> None:
        super().__init__(message)
        self.last_exception = last_exception


def with_retry(
    max_retries: int = DEFAULT_MAX_RETRIES,
    base_delay: float = DEFAULT_RETRY_BASE_DELAY,
    retry_on: tuple[type[Exception], ...] = (httpx.TransportError, DataSourceError),
) -> Callable[[Callable[P, Awaitable[T]]], Callable[P, Awaitable[T]]]:
    """Decorator for adding retry logic with exponential backoff to coroutines.

    Args:
        max_retries: Maximum number of retry attempts.
        base_delay: Base delay in seconds (doubles with each retry).
        retry_on: Tuple of exception types to retry on.

    Returns:
        Decorated coroutine function with retry logic.
    """

    def decorator(func: Callable[P, Awaitable[T]]) -> Callable[P, Awaitable[T]]:
        @wraps(func)
        async def wrapper(*args: P.args, **kwargs: P.kwargs) -> T:
            last_exception: Exception | None = None

            for attempt in range(max_retries + 1):
                try:
                    return await func(*args, **kwargs)
                except retry_on as e:
                    last_exception = e
                    if attempt == max_retries:
                        break

                    delay = base_delay * (2**attempt)
                    logger.warning(
                        "Attempt %d/%d failed: %s. Retrying in %.1f seconds...",
                        attempt + 1,
                        max_retries + 1,
                        str(e),
                        delay,
                    )
                    await asyncio.sleep(delay)

            raise RetryError(
                f"All {max_retries + 1} attempts failed for {func.__name__}",
                last_exception=last_exception,
            )

        return wrapper

    return decorator


def slug_estimated_timing(slug: str) -> EventTiming | None:
    """Estimate event start/end from the date embedded in a slug."""
    event_date = slug_event_date(slug)
    if event_date is None:
        return None
    slug_lower = slug.lower()
    hour = 0
    for prefixes, start_hour in SLUG_START_HOURS:
        if slug_lower.startswith(prefixes):
            hour = start_hour
            break
    start = datetime.combine(event_date, time(hour), tzinfo=UTC)
    return EventTiming(
        event_start_time=start,
        event_end_time=start + DEFAULT_EVENT_DURATION,
        source="slug-estimate",
    )


class PolymarketDataClient:
    """Recent trades from the Data API and event timing from the Gamma API.

    Example:
        ```python
        async with PolymarketDataClient() as client:
            trades = await client.fetch_recent_trades(1500)
            timing = await client.get_event_timing("nba-lal-bos-2026-01-28")
        ```
    """

    def __init__(
        self,
        data_api_url: str = DEFAULT_DATA_API_URL,
        gamma_api_url: str = DEFAULT_GAMMA_API_URL,
        *,
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
        redis: Redis | None = None,
        timing_cache_ttl_seconds: int = DEFAULT_TIMING_CACHE_TTL_SECONDS,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        """Initialize the client.

        Args:
            data_api_url: Data API base URL.
            gamma_api_url: Gamma API base URL.
            timeout_seconds: Per-request timeout.
            redis: Optional Redis client used to cache event timing lookups.
            timing_cache_ttl_seconds: TTL for cached event timing.
            http_client: Optional pre-built httpx client (tests inject a mock transport).
        """
        self._data_api_url = data_api_url.rstrip("/")
        self._gamma_api_url = gamma_api_url.rstrip("/")
        self._timeout = httpx.Timeout(timeout_seconds)
        self._store = JsonStore(redis) if redis is not None else None
        self._timing_cache_ttl = timing_cache_ttl_seconds
        self._client = http_client
        self._owns_client = http_client is None

    async def _ensure_client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(timeout=self._timeout, headers=_HEADERS)
            self._owns_client = True
        return self._client

    async def close(self) -> None:
        """Close the underlying HTTP client if this instance created it."""
        if self._client is not None and self._owns_client and not self._client.is_closed:
            await self._client.aclose()

    async def __aenter__(self) -> PolymarketDataClient:
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.close()

    @with_retry()
    async def _get_json(self, url: str, params: dict[str, Any]) -> Any:
        client = await self._ensure_client()
        response = await client.get(url, params=params)
        if response.status_code >= 500 or response.status_code == 429:
            raise DataSourceError(f"{url} returned HTTP {response.status_code}")
        if response.status_code >= 400:
            # Client errors are not retried.
            raise _NonRetryableError(f"{url} returned HTTP {response.status_code}")
        try:
            return response.json()
        except ValueError as e:
            raise _NonRetryableError(f"{url} returned invalid JSON: {e}") from e

    async def _request(self, url: str, params: dict[str, Any]) -> Any:
        try:
            return await self._get_json(url, params)
        except _NonRetryableError as e:
            raise DataSourceError(str(e)) from e
        except httpx.HTTPError as e:
            raise DataSourceError(f"{url} request failed: {e}") from e

    async def fetch_recent_trades(self, limit: int) -> list[dict[str, Any]]:
        """Fetch the most recent trades across all markets.

        Raises:
            DataSourceError: If the Data API cannot be reached or answers garbage.
        """
        data = await self._request(f"{self._data_api_url}/trades", {"limit": limit})
        if isinstance(data, dict):
            data = data.get("data", [])
        if not isinstance(data, list):
            raise DataSourceError("Data API /trades did not return a list")
        trades = [t for t in data if isinstance(t, dict)]
        logger.debug("Fetched %d trades from Data API", len(trades))
        return trades

    async def get_event_timing(self, slug: str) -> EventTiming | None:
        """Event start/end for a slug: Gamma event, then Gamma market, then slug date."""
        if not slug:
            return None

        cache_key = f"{TIMING_CACHE_KEY_PREFIX}{slug}"
        if self._store is not None:
            cached = await self._store.get_json(cache_key)
            if isinstance(cached, dict):
                return EventTiming.from_dict(cached)

        timing = await self._gamma_event_timing(slug)
        if timing is None:
            timing = await self._gamma_market_timing(slug)
        if timing is None:
            timing = slug_estimated_timing(slug)
        if timing is None:
            return None

        if self._store is not None:
            await self._store.set_json(cache_key, timing.to_dict(), ex=self._timing_cache_ttl)
        return timing

    async def batch_event_timing(
        self,
        slugs: Iterable[str],
        *,
        max_lookups: int = DEFAULT_MAX_TIMING_LOOKUPS,
    ) -> dict[str, EventTiming]:
        """Look up event timing for up to ``max_lookups`` slugs concurrently."""
        lookup = list(dict.fromkeys(s for s in slugs if s))[:max_lookups]
        results = await asyncio.gather(
            *(self.get_event_timing(slug) for slug in lookup),
            return_exceptions=True,
        )
        timing_map: dict[str, EventTiming] = {}
        for slug, result in zip(lookup, results, strict=True):
            if isinstance(result, EventTiming):
                timing_map[slug] = result
            elif isinstance(result, Exception):
                logger.warning("Event timing lookup failed for %s: %s", slug, result)
        return timing_map

    async def _gamma_event_timing(self, slug: str) -> EventTiming | None:
        try:
            events = await self._request(
                f"{self._gamma_api_url}/events", {"slug": slug, "limit": 1}
            )
        except DataSourceError as e:
            logger.debug("Gamma event lookup failed for %s: %s", slug, e)
            return None
        if not isinstance(events, list) or not events or not isinstance(events[0], dict):
            return None
        event = events[0]
        return EventTiming(
            event_start_time=_parse_iso(event.get("startDate")),
            event_end_time=_parse_iso(event.get("endDate")),
            source="gamma-event",
        )

    async def _gamma_market_timing(self, slug: str) -> EventTiming | None:
        try:
            markets = await self._request(
                f"{self._gamma_api_url}/markets", {"slug": slug, "limit": 1}
            )
        except DataSourceError as e:
            logger.debug("Gamma market lookup failed for %s: %s", slug, e)
            return None
        if not isinstance(markets, list) or not markets or not isinstance(markets[0], dict):
            return None
        return EventTiming(
            event_start_time=None,
            event_end_time=_parse_iso(markets[0].get("endDate")),
            source="gamma-market",
        )


class _NonRetryableError(Exception):
    """Internal marker for upstream answers that retrying cannot fix."""


def _parse_iso(raw: Any) -> datetime | None:
    if not isinstance(raw, str) or not raw:
        return None
    try:
        parsed = datetime.fromisoformat(raw.replace("Z", "+00:00"))
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed.astimezone(UTC)
