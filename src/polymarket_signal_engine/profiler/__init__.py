"""Wallet reputation ledger."""

from polymarket_signal_engine.profiler.ledger import WalletLedger
from polymarket_signal_engine.profiler.models import (
    WalletBet,
    WalletStat,
    WalletTier,
    WalletTradeLedger,
    WinnerInfo,
)
from polymarket_signal_engine.profiler.tiers import TierRule, classify_tier, tier_for

__all__ = [
    "TierRule",
    "WalletBet",
    "WalletLedger",
    "WalletStat",
    "WalletTier",
    "WalletTradeLedger",
    "WinnerInfo",
    "classify_tier",
    "tier_for",
]
