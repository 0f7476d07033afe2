"""Heuristic factor scorer for market windows.

This module provides the HeuristicScorer class that turns an aggregated
market window into a base score and the list of factors that produced it.
"""

from __future__ import annotations

import logging
from decimal import Decimal

from polymarket_signal_engine.detector.models import FactorRef, HeuristicScore
from polymarket_signal_engine.ingestor.models import MarketWindow
from polymarket_signal_engine.learning.buckets import event_timing_factor, hours_before_event

logger = logging.getLogger(__name__)

MAX_SCORE = 100

# (minimum largest bet, factor, points), checked in order
DEFAULT_WHALE_TIERS: tuple[tuple[int, str, int], ...] = (
    (100_000, "whaleSize100k", 80),
    (50_000, "whaleSize50k", 60),
    (25_000, "whaleSize25k", 45),
    (15_000, "whaleSize15k", 30),
    (8_000, "whaleSize8k", 20),
    (5_000, "whaleSize5k", 15),
    (3_000, "whaleSize3k", 10),
)

# (max wallets, minimum total volume, points), checked in order
DEFAULT_CONCENTRATION_TIERS: tuple[tuple[int, int, int], ...] = (
    (1, 10_000, 25),
    (2, 20_000, 15),
)
CONCENTRATION_FACTOR = "concentrated"

# (minimum total volume, factor, points), checked in order
DEFAULT_VOLUME_TIERS: tuple[tuple[int, str, int], ...] = (
    (500_000, "volumeHuge", 25),
    (100_000, "vol_100k_plus", 15),
    (50_000, "vol_50k_100k", 12),
    (25_000, "vol_25k_50k", 10),
    (10_000, "vol_10k_25k", 8),
)
DEFAULT_VOLUME_FLOOR = ("vol_under_10k", 5)

WINNING_WALLET_FACTOR = "winningWallet"
WINNING_WALLET_POINTS = 30


def _entry_price_factor(cents: int) -> FactorRef | None:
    if cents <= 15:
        return FactorRef("buyDeepLongshot", 35, "Buying at <15% (deep longshot)")
    if cents <= 25:
        return FactorRef("buyLongshot", 20, "Buying at 15-25% (longshot)")
    if cents <= 40:
        return FactorRef("buyUnderdog", 10, "Buying at 25-40% (underdog)")
    if cents >= 85:
        return FactorRef("buyHeavyFavorite", 10, "Buying at 85%+ (heavy favorite)")
    if cents >= 70:
        return FactorRef("buyFavorite", 8, "Buying at 70-85% (favorite)")
    return None


class HeuristicScorer:
    """Additive factor model over a market window.

    Every factor family is evaluated independently and contributes at most
    one factor:

    - Largest bet size (whale tiers)
    - Wallet concentration relative to volume
    - Total market volume
    - Directional entry price of the largest trade
    - Bet timing relative to the slug-estimated event start
    - Presence of a proven winning wallet

    Scoring Formula:
        score = min(100, sum(factor.points for factor in breakdown))

    Example:
        ```python
        scorer = HeuristicScorer()
        result = scorer.score(window, has_winning_wallet=False)
        print(result.score, result.factor_names)
        ```
    """

    def __init__(
        self,
        *,
        whale_tiers: tuple[tuple[int, str, int], ...] = DEFAULT_WHALE_TIERS,
        concentration_tiers: tuple[tuple[int, int, int], ...] = DEFAULT_CONCENTRATION_TIERS,
        volume_tiers: tuple[tuple[int, str, int], ...] = DEFAULT_VOLUME_TIERS,
        winning_wallet_points: int = WINNING_WALLET_POINTS,
    ) -> None:
        self._whale_tiers = whale_tiers
        self._concentration_tiers = concentration_tiers
        self._volume_tiers = volume_tiers
        self._winning_wallet_points = winning_wallet_points

    def score(self, window: MarketWindow, *, has_winning_wallet: bool = False) -> HeuristicScore:
        """Score a market window.

        Args:
            window: Aggregated market window.
            has_winning_wallet: True if one of its top trades came from a winning wallet.

        Returns:
            HeuristicScore with the clamped score and the factor breakdown.
        """
        breakdown: list[FactorRef] = []

        whale = self._whale_factor(window.largest_bet)
        if whale is not None:
            breakdown.append(whale)

        concentration = self._concentration_factor(window.wallet_count, window.total_volume)
        if concentration is not None:
            breakdown.append(concentration)

        breakdown.append(self._volume_factor(window.total_volume))

        entry_price = self.entry_price_cents(window)
        if entry_price is not None:
            price_factor = _entry_price_factor(entry_price)
            if price_factor is not None:
                breakdown.append(price_factor)

        hours = hours_before_event(window.market_key, window.last_trade_time)
        if hours is not None:
            breakdown.append(FactorRef(*event_timing_factor(hours)))

        if has_winning_wallet:
            breakdown.append(FactorRef(WINNING_WALLET_FACTOR, self._winning_wallet_points))

        total = min(MAX_SCORE, max(0, sum(f.points for f in breakdown)))
        logger.debug(
            "Scored market %s: %d (%s)",
            window.market_key,
            total,
            ", ".join(f"{f.name}+{f.points}" for f in breakdown),
        )
        return HeuristicScore(score=total, breakdown=tuple(breakdown), entry_price_cents=entry_price)

    @staticmethod
    def entry_price_cents(window: MarketWindow) -> int | None:
        """Effective entry price of the largest trade, inverted for a SELL."""
        trade = window.largest_trade
        if trade is None:
            return None
        cents = trade.price_cents
        return 100 - cents if trade.is_sell else cents

    def _whale_factor(self, largest_bet: Decimal) -> FactorRef | None:
        for floor, name, points in self._whale_tiers:
            if largest_bet >= floor:
                return FactorRef(name, points)
        return None

    def _concentration_factor(self, wallet_count: int, total_volume: Decimal) -> FactorRef | None:
        for max_wallets, min_volume, points in self._concentration_tiers:
            if wallet_count <= max_wallets and total_volume >= min_volume:
                return FactorRef(CONCENTRATION_FACTOR, points)
        return None

    def _volume_factor(self, total_volume: Decimal) -> FactorRef:
        for floor, name, points in self._volume_tiers:
            if total_volume >= floor:
                return FactorRef(name, points)
        return FactorRef(*DEFAULT_VOLUME_FLOOR)
