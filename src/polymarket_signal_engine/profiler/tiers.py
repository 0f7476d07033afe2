"""Wallet tier classification."""

from __future__ import annotations

from dataclasses import dataclass

from polymarket_signal_engine.profiler.models import WalletStat, WalletTier

DEFAULT_MIN_TIER_BETS = 3


@dataclass(frozen=True)
class TierRule:
    """Thresholds a wallet must meet for one tier.

    FADE is the only tier bounded from above; it uses ``max_win_rate``.
    """

    tier: WalletTier
    min_bets: int
    min_win_rate: int | None = None
    max_win_rate: int | None = None
    min_volume: float = 0.0

    def matches(self, win_rate: int, total_bets: int, total_volume: float) -> bool:
        """Return True if the wallet satisfies every threshold."""
        if total_bets < self.min_bets or total_volume < self.min_volume:
            return False
        if self.min_win_rate is not None and win_rate < self.min_win_rate:
            return False
        return not (self.max_win_rate is not None and win_rate > self.max_win_rate)


# Checked in order; the first satisfied rule wins.
DEFAULT_TIER_RULES: tuple[TierRule, ...] = (
    TierRule(WalletTier.INSIDER, min_bets=15, min_win_rate=75, min_volume=100_000),
    TierRule(WalletTier.ELITE, min_bets=10, min_win_rate=68, min_volume=50_000),
    TierRule(WalletTier.STRONG, min_bets=8, min_win_rate=60, min_volume=20_000),
    TierRule(WalletTier.AVERAGE, min_bets=5, min_win_rate=50),
    TierRule(WalletTier.FADE, min_bets=8, max_win_rate=42),
)


def classify_tier(
    win_rate: int,
    total_bets: int,
    total_volume: float,
    *,
    rules: tuple[TierRule, ...] = DEFAULT_TIER_RULES,
    min_bets: int = DEFAULT_MIN_TIER_BETS,
) -> WalletTier | None:
    """Tier for a wallet's record, or None below the minimum sample size.

    Example:
        ```python
        classify_tier(80, 20, 150_000)   # WalletTier.INSIDER
        classify_tier(40, 10, 5_000)     # WalletTier.FADE
        classify_tier(90, 2, 1_000_000)  # None
        ```
    """
    if total_bets < min_bets:
        return None
    for rule in rules:
        if rule.matches(win_rate, total_bets, total_volume):
            return rule.tier
    return None


def tier_for(
    stat: WalletStat,
    *,
    rules: tuple[TierRule, ...] = DEFAULT_TIER_RULES,
    min_bets: int = DEFAULT_MIN_TIER_BETS,
) -> WalletTier | None:
    """Tier for a wallet record."""
    return classify_tier(
        stat.win_rate, stat.total_bets, stat.total_volume, rules=rules, min_bets=min_bets
    )
