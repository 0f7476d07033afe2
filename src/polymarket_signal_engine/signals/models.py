"""Data models for emitted signals and their settlement."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any

from polymarket_signal_engine.detector.models import FactorRef
from polymarket_signal_engine.ingestor.models import EPOCH, parse_timestamp
from polymarket_signal_engine.learning.models import SignalMetadata
from polymarket_signal_engine.outcomes import SignalOutcome
from polymarket_signal_engine.rounding import round_half_up

__all__ = [
    "GameResult",
    "PriceSettlement",
    "ScoreSettlement",
    "SettlementReport",
    "Signal",
    "SignalOutcome",
    "SignalState",
    "TopTrade",
    "profit_pct",
]

UNKNOWN_OUTCOME = "UNKNOWN"


class SignalState(str, Enum):
    """Lifecycle state of a signal."""

    PENDING = "PENDING"
    SETTLED = "SETTLED"
    UNKNOWN = "UNKNOWN"


def _iso(value: datetime | None) -> str | None:
    return value.isoformat() if value else None


def _int(raw: Any, default: int = 0) -> int:
    try:
        return int(raw)
    except (TypeError, ValueError):
        return default


def _float(raw: Any, default: float = 0.0) -> float:
    try:
        return float(raw)
    except (TypeError, ValueError):
        return default


def profit_pct(outcome: SignalOutcome, display_price: int | None) -> int:
    """Return on a unit stake at the signal's display price, in percent.

    A loss is always -100. A win pays ``(1 - p) / p`` for an entry price ``p``.
    """
    if outcome == SignalOutcome.LOSS:
        return -100
    if not display_price or display_price <= 0:
        return 0
    p = display_price / 100
    return round_half_up((1 - p) / p * 100)


@dataclass(frozen=True)
class TopTrade:
    """One of the largest trades behind a signal."""

    wallet: str
    amount: int
    price: float
    time: datetime
    outcome: str = ""
    outcome_index: int | None = None
    side: str = "BUY"
    is_winner: bool = False
    winner_info: dict[str, Any] | None = None

    def to_dict(self) -> dict[str, Any]:
        """Convert to a JSON-serializable dictionary."""
        return {
            "wallet": self.wallet,
            "amount": self.amount,
            "price": self.price,
            "time": self.time.isoformat(),
            "outcome": self.outcome,
            "outcome_index": self.outcome_index,
            "side": self.side,
            "is_winner": self.is_winner,
            "winner_info": self.winner_info,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> TopTrade:
        """Create from a dictionary."""
        raw_index = data.get("outcome_index")
        return cls(
            wallet=str(data.get("wallet") or ""),
            amount=_int(data.get("amount")),
            price=_float(data.get("price")),
            time=parse_timestamp(data.get("time")) or EPOCH,
            outcome=str(data.get("outcome") or ""),
            outcome_index=_int(raw_index) if raw_index is not None else None,
            side=str(data.get("side") or "BUY"),
            is_winner=bool(data.get("is_winner", False)),
            winner_info=data.get("winner_info") if isinstance(data.get("winner_info"), dict) else None,
        )


@dataclass
class Signal:
    """A scored market window persisted for later settlement.

    Attributes:
        id: Unique signal id.
        market_slug: Market slug (the aggregation key).
        event_slug: Parent event slug.
        market_title: Human-readable market title.
        direction: Dominant binary side (YES or NO).
        dominant_outcome: Outcome label carrying the most volume.
        direction_percent: Share of volume on the dominant side.
        display_price: Price of the largest trade, 0..100.
        score: Heuristic base score.
        ai_score: Score after the learned multiplier.
        ai_multiplier: Learned multiplier.
        confidence: Blended confidence in [40, 95].
        score_breakdown: Factors that produced the base score.
        top_trades: Largest trades by descending amount.
        has_winning_wallet: True if a proven winner is in the top trades.
        winning_wallet_info: Winner details, including the wallet address.
        market_type: Learning category of the market.
        total_volume: Total market volume in USD.
        largest_bet: Largest single bet in USD.
        unique_wallets: Distinct wallets in the window.
        trade_count: Trades retained for the window.
        first_trade_time: Earliest trade in the window.
        last_trade_time: Latest trade in the window.
        event_start_time: Event start, when known.
        event_end_time: Event end, when known.
        detected_at: Time the signal was stored.
        wallets: Wallets of the top trades, settled with the signal.
        outcome: None while pending, then WIN, LOSS or UNKNOWN.
        settled_at: Settlement time.
        profit_pct: Return at the display price for decisive outcomes.
        settled_by: Settlement source (``polymarket`` or ``odds-api``).
        game_score: Final ``home-away`` score for score settlements.
    """

    id: str
    market_slug: str
    direction: str
    score: int
    ai_score: int
    confidence: int
    event_slug: str = ""
    market_title: str = ""
    dominant_outcome: str | None = None
    direction_percent: int = 0
    display_price: int | None = None
    ai_multiplier: float = 1.0
    score_breakdown: list[FactorRef] = field(default_factory=list)
    top_trades: list[TopTrade] = field(default_factory=list)
    has_winning_wallet: bool = False
    winning_wallet_info: dict[str, Any] | None = None
    market_type: str | None = None
    total_volume: int = 0
    largest_bet: int = 0
    unique_wallets: int = 0
    trade_count: int = 0
    first_trade_time: datetime | None = None
    last_trade_time: datetime | None = None
    event_start_time: datetime | None = None
    event_end_time: datetime | None = None
    detected_at: datetime | None = None
    wallets: list[str] = field(default_factory=list)
    boost_reasons: list[str] = field(default_factory=list)
    penalty_reasons: list[str] = field(default_factory=list)
    outcome: SignalOutcome | None = None
    settled_at: datetime | None = None
    profit_pct: int | None = None
    settled_by: str | None = None
    game_score: str | None = None

    @property
    def state(self) -> SignalState:
        """Lifecycle state derived from the outcome."""
        if self.outcome is None:
            return SignalState.PENDING
        if self.outcome == SignalOutcome.UNKNOWN:
            return SignalState.UNKNOWN
        return SignalState.SETTLED

    @property
    def is_pending(self) -> bool:
        """Return True until an outcome is recorded."""
        return self.outcome is None

    @property
    def factor_names(self) -> list[str]:
        """Names of the breakdown factors."""
        return [f.name for f in self.score_breakdown]

    @property
    def winner_win_rate(self) -> int | None:
        """Win rate of the winning wallet, if any."""
        if not self.winning_wallet_info:
            return None
        return _int(self.winning_wallet_info.get("win_rate"))

    def learning_metadata(self) -> SignalMetadata:
        """The metadata the learning store buckets into patterns."""
        return SignalMetadata(
            market_type=self.market_type,
            total_volume=float(self.total_volume),
            detected_at=self.detected_at,
            wallet_count=self.unique_wallets,
            market_slug=self.market_slug,
            last_trade_time=self.last_trade_time,
            factors=tuple(self.factor_names),
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to a JSON-serializable dictionary."""
        return {
            "id": self.id,
            "market_slug": self.market_slug,
            "event_slug": self.event_slug,
            "market_title": self.market_title,
            "direction": self.direction,
            "dominant_outcome": self.dominant_outcome,
            "direction_percent": self.direction_percent,
            "display_price": self.display_price,
            "score": self.score,
            "ai_score": self.ai_score,
            "ai_multiplier": self.ai_multiplier,
            "confidence": self.confidence,
            "score_breakdown": [f.to_dict() for f in self.score_breakdown],
            "top_trades": [t.to_dict() for t in self.top_trades],
            "has_winning_wallet": self.has_winning_wallet,
            "winning_wallet_info": self.winning_wallet_info,
            "market_type": self.market_type,
            "total_volume": self.total_volume,
            "largest_bet": self.largest_bet,
            "unique_wallets": self.unique_wallets,
            "trade_count": self.trade_count,
            "first_trade_time": _iso(self.first_trade_time),
            "last_trade_time": _iso(self.last_trade_time),
            "event_start_time": _iso(self.event_start_time),
            "event_end_time": _iso(self.event_end_time),
            "detected_at": _iso(self.detected_at),
            "wallets": list(self.wallets),
            "boost_reasons": list(self.boost_reasons),
            "penalty_reasons": list(self.penalty_reasons),
            "outcome": self.outcome.value if self.outcome else None,
            "settled_at": _iso(self.settled_at),
            "profit_pct": self.profit_pct,
            "settled_by": self.settled_by,
            "game_score": self.game_score,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Signal:
        """Create from a dictionary.

        Breakdown entries may be factor objects or bare names.
        """
        breakdown = [
            ref
            for ref in (FactorRef.from_value(v) for v in data.get("score_breakdown") or [])
            if ref is not None
        ]
        top_trades = [
            TopTrade.from_dict(t) for t in data.get("top_trades") or [] if isinstance(t, dict)
        ]
        raw_price = data.get("display_price")
        profit = data.get("profit_pct")
        info = data.get("winning_wallet_info")
        return cls(
            id=str(data.get("id") or ""),
            market_slug=str(data.get("market_slug") or ""),
            event_slug=str(data.get("event_slug") or ""),
            market_title=str(data.get("market_title") or ""),
            direction=str(data.get("direction") or "YES"),
            dominant_outcome=data.get("dominant_outcome"),
            direction_percent=_int(data.get("direction_percent")),
            display_price=_int(raw_price) if raw_price is not None else None,
            score=_int(data.get("score")),
            ai_score=_int(data.get("ai_score")),
            ai_multiplier=_float(data.get("ai_multiplier"), 1.0),
            confidence=_int(data.get("confidence")),
            score_breakdown=breakdown,
            top_trades=top_trades,
            has_winning_wallet=bool(data.get("has_winning_wallet", False)),
            winning_wallet_info=info if isinstance(info, dict) else None,
            market_type=data.get("market_type"),
            total_volume=_int(data.get("total_volume")),
            largest_bet=_int(data.get("largest_bet")),
            unique_wallets=_int(data.get("unique_wallets")),
            trade_count=_int(data.get("trade_count")),
            first_trade_time=parse_timestamp(data.get("first_trade_time")),
            last_trade_time=parse_timestamp(data.get("last_trade_time")),
            event_start_time=parse_timestamp(data.get("event_start_time")),
            event_end_time=parse_timestamp(data.get("event_end_time")),
            detected_at=parse_timestamp(data.get("detected_at")),
            wallets=[str(w) for w in data.get("wallets") or [] if w],
            boost_reasons=[str(r) for r in data.get("boost_reasons") or []],
            penalty_reasons=[str(r) for r in data.get("penalty_reasons") or []],
            outcome=SignalOutcome.parse(data.get("outcome")),
            settled_at=parse_timestamp(data.get("settled_at")),
            profit_pct=_int(profit) if profit is not None else None,
            settled_by=data.get("settled_by"),
            game_score=data.get("game_score"),
        )


@dataclass(frozen=True)
class PriceSettlement:
    """Verdict of the price-based settlement heuristic.

    Attributes:
        settled: False while the market is still trading at an ambiguous price.
        winning_outcome: Winning outcome label, or ``UNKNOWN``.
        resolution_price: Price the verdict was derived from.
        note: Diagnostic for UNKNOWN verdicts.
    """

    settled: bool
    winning_outcome: str | None = None
    resolution_price: float | None = None
    note: str | None = None

    @property
    def is_unknown(self) -> bool:
        """Return True for a settled but undecidable market."""
        return self.settled and self.winning_outcome == UNKNOWN_OUTCOME

    def outcome_for(self, *picks: str | None) -> SignalOutcome | None:
        """WIN if any pick names the winning outcome, LOSS otherwise.

        Returns None while unsettled and UNKNOWN for undecidable markets.
        """
        if not self.settled:
            return None
        if self.is_unknown:
            return SignalOutcome.UNKNOWN
        winner = (self.winning_outcome or "").lower()
        if any(pick and pick.lower() == winner for pick in picks):
            return SignalOutcome.WIN
        return SignalOutcome.LOSS


@dataclass(frozen=True)
class GameResult:
    """A game as reported by a score provider."""

    home_team: str
    away_team: str
    completed: bool
    home_score: int | None = None
    away_score: int | None = None

    @property
    def has_scores(self) -> bool:
        """Return True once both scores are known."""
        return self.home_score is not None and self.away_score is not None


@dataclass(frozen=True)
class ScoreSettlement:
    """Evaluation of a game result against a signal's pick.

    ``status`` is ``pending``, ``no_scores`` or ``settled``; only settled
    evaluations carry an outcome.
    """

    status: str
    outcome: SignalOutcome | None = None
    home_score: int | None = None
    away_score: int | None = None
    winner: str | None = None
    spread: float | None = None

    @property
    def is_settled(self) -> bool:
        """Return True when the game produced a WIN or LOSS."""
        return self.status == "settled" and self.outcome is not None

    @property
    def game_score(self) -> str | None:
        """Final score formatted as ``home-away``."""
        if self.home_score is None or self.away_score is None:
            return None
        return f"{self.home_score}-{self.away_score}"


@dataclass
class SettlementReport:
    """Outcome counts of one settlement pass."""

    processed: int = 0
    wins: int = 0
    losses: int = 0
    unknown: int = 0
    errors: int = 0
    still_pending: int = 0

    def to_dict(self) -> dict[str, int]:
        """Convert to a JSON-serializable dictionary."""
        return {
            "processed": self.processed,
            "wins": self.wins,
            "losses": self.losses,
            "unknown": self.unknown,
            "errors": self.errors,
            "still_pending": self.still_pending,
        }
