"""Data models for the wallet reputation ledger."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any

from polymarket_signal_engine.ingestor.models import EPOCH, parse_timestamp
from polymarket_signal_engine.outcomes import SignalOutcome
from polymarket_signal_engine.rounding import round_half_up, win_rate_percent

DEFAULT_ENTRY_PRICE = 0.5


class WalletTier(str, Enum):
    """Reputation tier of a wallet with enough settled bets."""

    INSIDER = "INSIDER"
    ELITE = "ELITE"
    STRONG = "STRONG"
    AVERAGE = "AVERAGE"
    FADE = "FADE"


def _float(raw: Any, default: float = 0.0) -> float:
    try:
        return float(raw)
    except (TypeError, ValueError):
        return default


def _int(raw: Any, default: int = 0) -> int:
    try:
        return int(raw)
    except (TypeError, ValueError):
        return default


def _iso(value: datetime | None) -> str | None:
    return value.isoformat() if value else None


def _tier(raw: Any) -> WalletTier | None:
    if isinstance(raw, WalletTier):
        return raw
    try:
        return WalletTier(str(raw).upper()) if raw else None
    except ValueError:
        return None


@dataclass
class WalletBet:
    """A single bet attributed to a wallet, open until its signal settles."""

    id: str
    market: str
    amount: float
    price: float
    timestamp: datetime
    signal_id: str | None = None
    market_title: str | None = None
    direction: str | None = None
    outcome: SignalOutcome | None = None
    settled_at: datetime | None = None
    invested: float = 0.0
    returned: float = 0.0
    pnl: float = 0.0
    roi: int = 0
    current_price: float = 0.0
    current_value: float = 0.0
    unrealized_pnl: float = 0.0

    @property
    def is_pending(self) -> bool:
        """Return True until an outcome is recorded."""
        return self.outcome is None

    @property
    def dedup_key(self) -> str:
        """Collision key: market (or signal id) lowercased plus the rounded amount."""
        market = (self.market or self.signal_id or "").lower()
        return f"{market}-{round_half_up(self.amount)}"

    def matches_market(self, needle: str | None) -> bool:
        """True if the bet's market contains ``needle`` (case-insensitive)."""
        if not needle or not self.market:
            return False
        return needle.lower() in self.market.lower()

    def settle(self, outcome: SignalOutcome, *, now: datetime) -> None:
        """Record a WIN or LOSS and compute the realized P&L.

        A winning bet returns ``stake / entry price``; a losing bet returns nothing.
        """
        invested = self.invested or self.amount
        entry_price = self.price or DEFAULT_ENTRY_PRICE
        if outcome == SignalOutcome.WIN:
            self.returned = invested / entry_price
            self.pnl = self.returned - invested
        else:
            self.returned = 0.0
            self.pnl = -invested
        self.roi = round_half_up(self.pnl / invested * 100) if invested > 0 else 0
        self.outcome = outcome
        self.settled_at = now

    def to_dict(self) -> dict[str, Any]:
        """Convert to a JSON-serializable dictionary."""
        return {
            "id": self.id,
            "signal_id": self.signal_id,
            "market": self.market,
            "market_title": self.market_title,
            "direction": self.direction,
            "amount": self.amount,
            "price": self.price,
            "timestamp": _iso(self.timestamp),
            "outcome": self.outcome.value if self.outcome else None,
            "settled_at": _iso(self.settled_at),
            "invested": self.invested,
            "returned": self.returned,
            "pnl": self.pnl,
            "roi": self.roi,
            "current_price": self.current_price,
            "current_value": self.current_value,
            "unrealized_pnl": self.unrealized_pnl,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> WalletBet:
        """Create from a dictionary."""
        amount = _float(data.get("amount"))
        price = _float(data.get("price"))
        timestamp = parse_timestamp(data.get("timestamp")) or EPOCH
        return cls(
            id=str(data.get("id") or ""),
            signal_id=data.get("signal_id"),
            market=str(data.get("market") or ""),
            market_title=data.get("market_title"),
            direction=data.get("direction"),
            amount=amount,
            price=price,
            timestamp=timestamp,
            outcome=SignalOutcome.parse(data.get("outcome")),
            settled_at=parse_timestamp(data.get("settled_at")),
            invested=_float(data.get("invested"), amount),
            returned=_float(data.get("returned")),
            pnl=_float(data.get("pnl")),
            roi=_int(data.get("roi")),
            current_price=_float(data.get("current_price"), price),
            current_value=_float(data.get("current_value"), amount),
            unrealized_pnl=_float(data.get("unrealized_pnl")),
        )


@dataclass
class WalletStat:
    """Reputation record of one wallet.

    Attributes:
        address: Lowercased wallet address.
        first_seen: Time the wallet was first tracked.
        total_bets: Settled bets (wins + losses).
        wins: Settled wins.
        losses: Settled losses.
        pending: Bets awaiting settlement.
        total_volume: Sum of all tracked bet amounts.
        win_rate: Whole-number win rate.
        profit_loss: Realized P&L in USD.
        tier: Reputation tier, None below the minimum sample size.
        current_streak: Positive for consecutive wins, negative for losses.
        best_streak: Longest winning streak.
        last_bet_at: Time of the most recent tracked bet.
        recent_bets: Most recent bets, newest first.
    """

    address: str
    first_seen: datetime | None = None
    total_bets: int = 0
    wins: int = 0
    losses: int = 0
    pending: int = 0
    total_volume: float = 0.0
    win_rate: int = 0
    profit_loss: float = 0.0
    tier: WalletTier | None = None
    current_streak: int = 0
    best_streak: int = 0
    last_bet_at: datetime | None = None
    recent_bets: list[WalletBet] = field(default_factory=list)

    @property
    def record_label(self) -> str:
        """Record formatted as ``"7W-3L"``."""
        return f"{self.wins}W-{self.losses}L"

    def is_winner(self, *, min_bets: int = 3, min_win_rate: int = 55) -> bool:
        """Return True for a proven winning wallet."""
        return self.total_bets >= min_bets and self.win_rate >= min_win_rate

    def apply_outcome(self, outcome: SignalOutcome, pnl: float) -> None:
        """Count a settled bet and update streaks and P&L."""
        self.pending = max(0, self.pending - 1)
        if outcome == SignalOutcome.WIN:
            self.wins += 1
            self.current_streak = max(0, self.current_streak) + 1
            self.best_streak = max(self.best_streak, self.current_streak)
        else:
            self.losses += 1
            self.current_streak = min(0, self.current_streak) - 1
        self.total_bets = self.wins + self.losses
        self.win_rate = win_rate_percent(self.wins, self.total_bets)
        self.profit_loss += pnl

    def recount(self) -> None:
        """Recompute counters from the retained bets."""
        self.wins = sum(1 for b in self.recent_bets if b.outcome == SignalOutcome.WIN)
        self.losses = sum(1 for b in self.recent_bets if b.outcome == SignalOutcome.LOSS)
        self.pending = sum(1 for b in self.recent_bets if b.outcome is None)
        self.total_bets = self.wins + self.losses
        self.win_rate = win_rate_percent(self.wins, self.total_bets)

    def to_dict(self) -> dict[str, Any]:
        """Convert to a JSON-serializable dictionary."""
        return {
            "address": self.address,
            "first_seen": _iso(self.first_seen),
            "total_bets": self.total_bets,
            "wins": self.wins,
            "losses": self.losses,
            "pending": self.pending,
            "total_volume": self.total_volume,
            "win_rate": self.win_rate,
            "profit_loss": self.profit_loss,
            "tier": self.tier.value if self.tier else None,
            "current_streak": self.current_streak,
            "best_streak": self.best_streak,
            "last_bet_at": _iso(self.last_bet_at),
            "recent_bets": [b.to_dict() for b in self.recent_bets],
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> WalletStat:
        """Create from a dictionary."""
        raw_bets = data.get("recent_bets")
        bets: list[WalletBet] = []
        if isinstance(raw_bets, list):
            bets = [WalletBet.from_dict(b) for b in raw_bets if isinstance(b, dict)]
        return cls(
            address=str(data.get("address") or "").lower(),
            first_seen=parse_timestamp(data.get("first_seen")),
            total_bets=_int(data.get("total_bets")),
            wins=_int(data.get("wins")),
            losses=_int(data.get("losses")),
            pending=_int(data.get("pending")),
            total_volume=_float(data.get("total_volume")),
            win_rate=_int(data.get("win_rate")),
            profit_loss=_float(data.get("profit_loss")),
            tier=_tier(data.get("tier")),
            current_streak=_int(data.get("current_streak")),
            best_streak=_int(data.get("best_streak")),
            last_bet_at=parse_timestamp(data.get("last_bet_at")),
            recent_bets=bets,
        )


@dataclass
class WalletTradeLedger:
    """Open and resolved bets of a wallet, newest first."""

    open: list[WalletBet] = field(default_factory=list)
    resolved: list[WalletBet] = field(default_factory=list)
    last_updated: datetime | None = None

    def to_dict(self) -> dict[str, Any]:
        """Convert to a JSON-serializable dictionary."""
        return {
            "open": [b.to_dict() for b in self.open],
            "resolved": [b.to_dict() for b in self.resolved],
            "last_updated": _iso(self.last_updated),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> WalletTradeLedger:
        """Create from a dictionary."""

        def bets(raw: Any) -> list[WalletBet]:
            if not isinstance(raw, list):
                return []
            return [WalletBet.from_dict(b) for b in raw if isinstance(b, dict)]

        return cls(
            open=bets(data.get("open")),
            resolved=bets(data.get("resolved")),
            last_updated=parse_timestamp(data.get("last_updated")),
        )


@dataclass(frozen=True)
class WinnerInfo:
    """Denormalized winner record served from the winners cache."""

    win_rate: int
    record: str
    total_bets: int
    tier: str = "WINNER"
    is_winner: bool = True

    @classmethod
    def from_stat(cls, stat: WalletStat) -> WinnerInfo:
        """Build from a full wallet record."""
        return cls(
            win_rate=stat.win_rate,
            record=stat.record_label,
            total_bets=stat.total_bets,
            tier=stat.tier.value if stat.tier else "WINNER",
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to a JSON-serializable dictionary."""
        return {
            "is_winner": self.is_winner,
            "win_rate": self.win_rate,
            "record": self.record,
            "tier": self.tier,
            "total_bets": self.total_bets,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> WinnerInfo:
        """Create from a dictionary."""
        return cls(
            win_rate=_int(data.get("win_rate")),
            record=str(data.get("record") or "0W-0L"),
            total_bets=_int(data.get("total_bets")),
            tier=str(data.get("tier") or "WINNER"),
            is_winner=bool(data.get("is_winner", True)),
        )
