"""Trade aggregation into per-market windows.

The aggregator turns one bounded batch of raw trade payloads into
``MarketWindow`` objects keyed by market. It is pure: no I/O, no clock
reads beyond the ``now`` it is handed.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Any

from polymarket_signal_engine.ingestor.classifier import MarketClassifier
from polymarket_signal_engine.ingestor.models import (
    MarketWindow,
    Trade,
    TradeParseError,
)

logger = logging.getLogger(__name__)

# Default configuration
DEFAULT_MIN_TRADE_USD = Decimal("10")
DEFAULT_MAX_TRADES_PER_MARKET = 10
DEFAULT_MAX_PRICE = Decimal("0.95")
DEFAULT_MIN_PRICE = Decimal("0.05")

_VS_TITLE_RE = re.compile(r"^(.+?)\s+vs\.?\s+(.+)$", re.IGNORECASE)


@dataclass
class AggregationStats:
    """Counters for every filter applied while aggregating one batch."""

    total: int = 0
    gambling: int = 0
    no_timestamp: int = 0
    unparseable: int = 0
    old_trade: int = 0
    bad_price: int = 0
    too_small: int = 0
    no_market_key: int = 0
    not_sports: int = 0
    passed: int = 0

    def to_dict(self) -> dict[str, int]:
        """Convert to a plain dictionary."""
        return {
            "total": self.total,
            "gambling": self.gambling,
            "no_timestamp": self.no_timestamp,
            "unparseable": self.unparseable,
            "old_trade": self.old_trade,
            "bad_price": self.bad_price,
            "too_small": self.too_small,
            "no_market_key": self.no_market_key,
            "not_sports": self.not_sports,
            "passed": self.passed,
        }


@dataclass
class AggregationResult:
    """Market windows built from one batch, with the filter counters."""

    windows: dict[str, MarketWindow] = field(default_factory=dict)
    stats: AggregationStats = field(default_factory=AggregationStats)


class TradeAggregator:
    """Groups raw trades into market windows.

    Filters are applied in a fixed order and each drop is counted:

    1. gambling title
    2. unparseable payload or missing timestamp
    3. older than the lookback cutoff
    4. price at or beyond the 0.95 / 0.05 extremes
    5. notional below the minimum
    6. missing market key
    7. non-game market when ``sports_only`` is set

    Example:
        ```python
        aggregator = TradeAggregator(MarketClassifier())
        result = aggregator.aggregate(raw_trades, hours_back=48, now=datetime.now(UTC))
        for key, window in result.windows.items():
            print(key, window.total_volume, window.wallet_count)
        ```
    """

    def __init__(
        self,
        classifier: MarketClassifier,
        *,
        min_trade_usd: Decimal = DEFAULT_MIN_TRADE_USD,
        max_trades_per_market: int = DEFAULT_MAX_TRADES_PER_MARKET,
    ) -> None:
        """Initialize the aggregator.

        Args:
            classifier: Market classifier used for the gambling and sports filters.
            min_trade_usd: Trades with a smaller notional are dropped.
            max_trades_per_market: Raw trades retained per window.
        """
        self._classifier = classifier
        self._min_trade_usd = Decimal(str(min_trade_usd))
        self._max_trades = max_trades_per_market

    def aggregate(
        self,
        payloads: Iterable[dict[str, Any]],
        *,
        hours_back: float,
        now: datetime,
        sports_only: bool = False,
    ) -> AggregationResult:
        """Aggregate a batch of raw trade payloads.

        Args:
            payloads: Raw trade records from the feed.
            hours_back: Lookback horizon in hours.
            now: Reference time for the cutoff.
            sports_only: Drop markets that are not actual games.

        Returns:
            AggregationResult with non-empty windows keyed by market key.
        """
        result = AggregationResult()
        stats = result.stats
        cutoff = now - timedelta(hours=hours_back)

        for payload in payloads:
            stats.total += 1
            title = str(payload.get("title") or payload.get("market") or payload.get("question") or "")
            if self._classifier.is_gambling(title):
                stats.gambling += 1
                continue

            try:
                trade = Trade.from_api_payload(payload)
            except TradeParseError as e:
                if e.reason == "no_timestamp":
                    stats.no_timestamp += 1
                elif e.reason == "bad_price":
                    stats.bad_price += 1
                else:
                    stats.unparseable += 1
                continue

            if trade.timestamp < cutoff:
                stats.old_trade += 1
                continue
            if trade.price >= DEFAULT_MAX_PRICE or trade.price <= DEFAULT_MIN_PRICE:
                stats.bad_price += 1
                continue
            if trade.size_usd < self._min_trade_usd:
                stats.too_small += 1
                continue

            market_key = trade.market_key
            if not market_key:
                stats.no_market_key += 1
                continue
            if sports_only and not self._classifier.is_sports_game(trade.title, market_key):
                stats.not_sports += 1
                continue

            stats.passed += 1
            window = result.windows.get(market_key)
            if window is None:
                window = MarketWindow(
                    market_key=market_key,
                    title=trade.title,
                    event_slug=trade.event_slug,
                )
                result.windows[market_key] = window
            self._accumulate(window, trade)

        for key in [k for k, w in result.windows.items() if w.total_volume <= 0]:
            del result.windows[key]

        logger.debug(
            "Aggregated %d trades into %d markets (%s)",
            stats.passed,
            len(result.windows),
            stats.to_dict(),
        )
        return result

    def _accumulate(self, window: MarketWindow, trade: Trade) -> None:
        if len(window.trades) < self._max_trades:
            window.trades.append(trade)

        usd = trade.size_usd
        window.total_volume += usd
        if usd > window.largest_bet:
            window.largest_bet = usd
            window.largest_bet_outcome = trade.outcome or None

        if window.first_trade_time is None or trade.timestamp < window.first_trade_time:
            window.first_trade_time = trade.timestamp
        if window.last_trade_time is None or trade.timestamp > window.last_trade_time:
            window.last_trade_time = trade.timestamp

        if trade.wallet_address:
            window.wallets.add(trade.wallet_address)

        if trade.is_yes_no:
            match = _VS_TITLE_RE.match((window.title or trade.title).strip())
            if match:
                team = match.group(2).strip() if trade.outcome.lower() in ("no", "false") else match.group(1).strip()
                window.outcome_volumes[team] = window.outcome_volumes.get(team, Decimal(0)) + usd
        else:
            name = trade.outcome
            window.outcome_volumes[name] = window.outcome_volumes.get(name, Decimal(0)) + usd

        if trade.is_no_side:
            window.no_volume += usd
        else:
            window.yes_volume += usd
