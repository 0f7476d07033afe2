"""Collaborator interfaces consumed by the signal engine.

The engine talks to upstream providers only through these protocols. The
default implementations live in ``ingestor.polymarket_api`` and
``signals.settlement``; tests substitute in-memory fakes.
"""

from __future__ import annotations

from collections.abc import Iterable
from datetime import datetime
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

if TYPE_CHECKING:
    from polymarket_signal_engine.ingestor.models import EventTiming
    from polymarket_signal_engine.signals.models import GameResult, PriceSettlement


@runtime_checkable
class TradeFeed(Protocol):
    """Source of recent raw trade records."""

    async def fetch_recent_trades(self, limit: int) -> list[dict[str, Any]]:
        """Return up to ``limit`` of the most recent trades, newest first."""
        ...


@runtime_checkable
class SettlementOracle(Protocol):
    """Resolves a market from its trading price."""

    async def check_market(
        self,
        slug: str,
        detected_at: datetime | None,
        now: datetime,
    ) -> PriceSettlement | None:
        """Return a settlement verdict, or None when the source is unavailable."""
        ...


@runtime_checkable
class ScoreOracle(Protocol):
    """Final scores for sports games."""

    async def find_game(self, sport: str, home: str, away: str) -> GameResult | None:
        """Return the matching game, or None when it cannot be found."""
        ...


@runtime_checkable
class MarketMetadata(Protocol):
    """Event start/end lookups for market slugs."""

    async def get_event_timing(self, slug: str) -> EventTiming | None:
        """Return event timing for a slug, or None when unknown."""
        ...

    async def batch_event_timing(
        self,
        slugs: Iterable[str],
        *,
        max_lookups: int,
    ) -> dict[str, EventTiming]:
        """Return event timing for up to ``max_lookups`` slugs, keyed by slug."""
        ...
