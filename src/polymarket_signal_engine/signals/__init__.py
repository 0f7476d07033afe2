"""Signal persistence, settlement oracles and lifecycle."""

from polymarket_signal_engine.signals.lifecycle import SignalLifecycleManager
from polymarket_signal_engine.signals.models import (
    GameResult,
    PriceSettlement,
    ScoreSettlement,
    SettlementReport,
    Signal,
    SignalOutcome,
    SignalState,
    TopTrade,
    profit_pct,
)
from polymarket_signal_engine.signals.settlement import (
    PriceSettlementOracle,
    base_market_slug,
    evaluate_game_result,
    hours_since_event,
    resolve_price_settlement,
)

__all__ = [
    "GameResult",
    "PriceSettlement",
    "PriceSettlementOracle",
    "ScoreSettlement",
    "SettlementReport",
    "Signal",
    "SignalLifecycleManager",
    "SignalOutcome",
    "SignalState",
    "TopTrade",
    "base_market_slug",
    "evaluate_game_result",
    "hours_since_event",
    "profit_pct",
    "resolve_price_settlement",
]
