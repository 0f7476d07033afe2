"""Settlement oracles and result evaluation.

Two sources decide a signal's outcome:

- ``PriceSettlementOracle`` reads the latest trade price of a market from the
  public trade feed. A market trading at the extremes is treated as resolved.
- ``evaluate_game_result`` scores a finished game against the signal's pick,
  covering moneyline and point-spread markets.
"""

from __future__ import annotations

import logging
import re
from datetime import UTC, datetime, time
from typing import TYPE_CHECKING, Any

from polymarket_signal_engine.ingestor.classifier import MarketClassifier, slug_event_date
from polymarket_signal_engine.ingestor.models import parse_timestamp
from polymarket_signal_engine.ingestor.polymarket_api import DataSourceError
from polymarket_signal_engine.outcomes import SignalOutcome
from polymarket_signal_engine.signals.models import (
    UNKNOWN_OUTCOME,
    GameResult,
    PriceSettlement,
    ScoreSettlement,
)

if TYPE_CHECKING:
    from polymarket_signal_engine.interfaces import TradeFeed

logger = logging.getLogger(__name__)

# Default configuration
DEFAULT_SETTLEMENT_TRADE_LIMIT = 2000
DEFAULT_WIN_PRICE = 0.95
DEFAULT_LOSS_PRICE = 0.05
DEFAULT_NO_TRADES_UNKNOWN_HOURS = 12.0
DEFAULT_AMBIGUOUS_UNKNOWN_HOURS = 24.0

# Slug dates are US local; the whole day is assumed to have passed at 23:59:59.
_EVENT_DAY_END = time(23, 59, 59)

_SPREAD_RE = re.compile(r"spread-(home|away)-(\d+)pt?(\d)?", re.IGNORECASE)

_OPPOSITE_OUTCOME = {"yes": "No", "no": "Yes"}


def base_market_slug(slug: str) -> str | None:
    """Strip a ``-spread...`` or ``-total...`` suffix from a derivative market slug.

    Returns None when the slug is not a spread or total market.
    """
    if "-spread" not in slug and "-total" not in slug:
        return None
    return re.sub(r"-total.*$", "", re.sub(r"-spread.*$", "", slug))


def hours_since_event(slug: str, detected_at: datetime | None, now: datetime) -> float:
    """Hours elapsed since the event a market refers to.

    Uses the end of the slug date when the slug carries one, otherwise the
    signal's detection time. Returns 0 when neither is known.
    """
    event_date = slug_event_date(slug)
    if event_date is not None:
        reference = datetime.combine(event_date, _EVENT_DAY_END, tzinfo=UTC)
    elif detected_at is not None:
        reference = detected_at
    else:
        return 0.0
    return (now - reference).total_seconds() / 3600


def _trade_price(trade: dict[str, Any]) -> float | None:
    try:
        return float(trade.get("price"))  # type: ignore[arg-type]
    except (TypeError, ValueError):
        return None


def _trade_time(trade: dict[str, Any]) -> float:
    ts = parse_timestamp(trade.get("timestamp"))
    return ts.timestamp() if ts else 0.0


def resolve_price_settlement(
    market_trades: list[dict[str, Any]],
    hours_since: float,
    *,
    win_price: float = DEFAULT_WIN_PRICE,
    loss_price: float = DEFAULT_LOSS_PRICE,
    no_trades_unknown_hours: float = DEFAULT_NO_TRADES_UNKNOWN_HOURS,
    ambiguous_unknown_hours: float = DEFAULT_AMBIGUOUS_UNKNOWN_HOURS,
) -> PriceSettlement:
    """Decide a market's outcome from its latest trade.

    Args:
        market_trades: Raw trade records of the market.
        hours_since: Hours elapsed since the event.

    Returns:
        A settled verdict naming the winning outcome, an UNKNOWN verdict for
        stale markets, or an unsettled verdict.

    Example:
        ```python
        resolve_price_settlement([{"price": 0.97, "outcome": "Yes", "timestamp": 1}], 2)
        # PriceSettlement(settled=True, winning_outcome="Yes", resolution_price=0.97)
        ```
    """
    priced = [t for t in market_trades if _trade_price(t) is not None]
    if not priced:
        if hours_since > no_trades_unknown_hours:
            return PriceSettlement(
                settled=True,
                winning_outcome=UNKNOWN_OUTCOME,
                resolution_price=0.0,
                note=f"Event {round(hours_since)}h ago, no recent trades",
            )
        return PriceSettlement(settled=False)

    latest = max(priced, key=_trade_time)
    price = _trade_price(latest) or 0.0
    outcome = str(latest.get("outcome") or "")

    if price >= win_price:
        return PriceSettlement(
            settled=True,
            winning_outcome=outcome or "Yes",
            resolution_price=price,
        )

    if price <= loss_price:
        return PriceSettlement(
            settled=True,
            winning_outcome=_OPPOSITE_OUTCOME.get(outcome.lower(), "No"),
            resolution_price=1 - price,
        )

    if hours_since > ambiguous_unknown_hours:
        return PriceSettlement(
            settled=True,
            winning_outcome=UNKNOWN_OUTCOME,
            resolution_price=price,
            note=f"Event {round(hours_since)}h ago, ambiguous price",
        )

    return PriceSettlement(settled=False, resolution_price=price)


class PriceSettlementOracle:
    """Settles markets from the latest prices on the public trade feed.

    Implements the ``SettlementOracle`` protocol.

    Example:
        ```python
        oracle = PriceSettlementOracle(PolymarketDataClient())
        verdict = await oracle.check_market("nba-lal-bos-2026-01-15", None, now)
        if verdict and verdict.settled:
            print(verdict.winning_outcome)
        ```
    """

    def __init__(
        self,
        feed: TradeFeed,
        *,
        trade_limit: int = DEFAULT_SETTLEMENT_TRADE_LIMIT,
    ) -> None:
        """Initialize the oracle.

        Args:
            feed: Source of recent trades.
            trade_limit: Number of recent trades scanned for the market.
        """
        self._feed = feed
        self._trade_limit = trade_limit

    async def check_market(
        self,
        slug: str,
        detected_at: datetime | None,
        now: datetime,
    ) -> PriceSettlement | None:
        """Return a verdict for the market, or None when the feed is unavailable."""
        try:
            trades = await self._feed.fetch_recent_trades(self._trade_limit)
        except DataSourceError as e:
            logger.warning("Settlement lookup failed for %s: %s", slug, e)
            return None

        market_trades = _trades_for(trades, slug)
        if not market_trades:
            base = base_market_slug(slug)
            if base:
                market_trades = _trades_for(trades, base)

        verdict = resolve_price_settlement(
            market_trades,
            hours_since_event(slug, detected_at, now),
        )
        logger.debug(
            "Price settlement for %s: settled=%s outcome=%s (%d trades)",
            slug,
            verdict.settled,
            verdict.winning_outcome,
            len(market_trades),
        )
        return verdict


def _trades_for(trades: list[dict[str, Any]], slug: str) -> list[dict[str, Any]]:
    return [t for t in trades if t.get("slug") == slug or t.get("eventSlug") == slug]


def _names_match(a: str, b: str) -> bool:
    a, b = a.lower(), b.lower()
    if not a or not b:
        return False
    return a in b or b in a


def evaluate_game_result(
    game: GameResult,
    slug: str,
    pick: str,
    classifier: MarketClassifier,
) -> ScoreSettlement:
    """Score a game result against a signal's pick.

    Spread markets (``...-spread-home-6pt5``) compare the margin with the
    spread; everything else is a moneyline. The pick is expanded to a full
    team name and matched by substring in either direction.

    Args:
        game: Game reported by the score provider.
        slug: Market slug.
        pick: Team or side the signal backed.
        classifier: Used to expand team codes.

    Returns:
        ``pending`` until the game completes, ``no_scores`` if a completed game
        has no score, else a settled WIN or LOSS.
    """
    if not game.completed:
        return ScoreSettlement(status="pending")
    if not game.has_scores:
        return ScoreSettlement(status="no_scores")

    home = game.home_score or 0
    away = game.away_score or 0
    if home > away:
        winner = game.home_team
    elif away > home:
        winner = game.away_team
    else:
        winner = "tie"

    pick_name = classifier.team_full_name(pick)

    match = _SPREAD_RE.search(slug) if "spread" in slug.lower() else None
    if match:
        side = match.group(1).lower()
        points = float(f"{match.group(2)}.{match.group(3) or '5'}")
        if side == "away":
            covered = game.away_team if away + points > home else game.home_team
        else:
            covered = game.home_team if home - away > points else game.away_team
        outcome = SignalOutcome.WIN if _names_match(covered, pick_name) else SignalOutcome.LOSS
        return ScoreSettlement(
            status="settled",
            outcome=outcome,
            home_score=home,
            away_score=away,
            winner=covered,
            spread=points,
        )

    outcome = SignalOutcome.WIN if _names_match(winner, pick_name) else SignalOutcome.LOSS
    return ScoreSettlement(
        status="settled",
        outcome=outcome,
        home_score=home,
        away_score=away,
        winner=winner,
    )
