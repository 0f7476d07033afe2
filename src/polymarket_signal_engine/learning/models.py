"""Data models for the factor learning store."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from polymarket_signal_engine.ingestor.models import parse_timestamp
from polymarket_signal_engine.outcomes import SignalOutcome
from polymarket_signal_engine.rounding import win_rate_percent

MIN_FACTOR_WEIGHT = 0.5
MAX_FACTOR_WEIGHT = 2.0
NEUTRAL_WIN_RATE = 50


def clamp_weight(weight: float) -> float:
    """Clamp a factor weight to [0.5, 2.0]."""
    return max(MIN_FACTOR_WEIGHT, min(MAX_FACTOR_WEIGHT, weight))


def performance_weight(win_rate: int) -> float:
    """Weight a factor earns from its win rate alone."""
    return MIN_FACTOR_WEIGHT + win_rate / 100 * 1.5


def _int(raw: Any, default: int = 0) -> int:
    try:
        return int(raw)
    except (TypeError, ValueError):
        return default


def _iso(value: datetime | None) -> str | None:
    return value.isoformat() if value else None


@dataclass
class FactorStat:
    """Win/loss record and learned weight of one scoring factor.

    Attributes:
        wins: Settled wins on signals carrying this factor.
        losses: Settled losses on signals carrying this factor.
        win_rate: Whole-number win rate (50 until the first settlement).
        weight: Learned weight in [0.5, 2.0].
        sample_size: wins + losses.
        last_updated: Time of the last update.
        is_discovered: True if promoted from a pattern candidate.
        discovered_at: Promotion time for discovered factors.
        category: Pattern category for discovered factors.
    """

    wins: int = 0
    losses: int = 0
    win_rate: int = NEUTRAL_WIN_RATE
    weight: float = 1.0
    sample_size: int = 0
    last_updated: datetime | None = None
    is_discovered: bool = False
    discovered_at: datetime | None = None
    category: str | None = None

    @property
    def total(self) -> int:
        """Settled samples."""
        return self.wins + self.losses

    def record(
        self,
        outcome: SignalOutcome,
        *,
        now: datetime,
        full_confidence_samples: int = 10,
    ) -> None:
        """Count a settled outcome and recompute win rate and weight."""
        if outcome == SignalOutcome.WIN:
            self.wins += 1
        else:
            self.losses += 1
        total = self.total
        self.sample_size = total
        self.win_rate = win_rate_percent(self.wins, total)
        sample_multiplier = min(1.0, total / full_confidence_samples)
        self.weight = clamp_weight(
            MIN_FACTOR_WEIGHT
            + (performance_weight(self.win_rate) - MIN_FACTOR_WEIGHT) * sample_multiplier
        )
        self.last_updated = now

    def to_dict(self) -> dict[str, Any]:
        """Convert to a JSON-serializable dictionary."""
        data: dict[str, Any] = {
            "wins": self.wins,
            "losses": self.losses,
            "win_rate": self.win_rate,
            "weight": self.weight,
            "sample_size": self.sample_size,
            "last_updated": _iso(self.last_updated),
            "is_discovered": self.is_discovered,
        }
        if self.discovered_at is not None:
            data["discovered_at"] = _iso(self.discovered_at)
        if self.category is not None:
            data["category"] = self.category
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> FactorStat:
        """Create from a dictionary."""
        wins = _int(data.get("wins"))
        losses = _int(data.get("losses"))
        try:
            weight = float(data.get("weight", 1.0))
        except (TypeError, ValueError):
            weight = 1.0
        return cls(
            wins=wins,
            losses=losses,
            win_rate=_int(data.get("win_rate"), NEUTRAL_WIN_RATE),
            weight=clamp_weight(weight),
            sample_size=_int(data.get("sample_size"), wins + losses),
            last_updated=parse_timestamp(data.get("last_updated")),
            is_discovered=bool(data.get("is_discovered", False)),
            discovered_at=parse_timestamp(data.get("discovered_at")),
            category=data.get("category"),
        )


@dataclass
class PatternStat:
    """Win/loss record of one metadata pattern (market type, bracket, bucket)."""

    wins: int = 0
    losses: int = 0
    win_rate: int = NEUTRAL_WIN_RATE
    category: str | None = None

    @property
    def total(self) -> int:
        """Settled samples."""
        return self.wins + self.losses

    def record(self, outcome: SignalOutcome) -> None:
        """Count a settled outcome."""
        if outcome == SignalOutcome.WIN:
            self.wins += 1
        else:
            self.losses += 1
        self.win_rate = win_rate_percent(self.wins, self.total)

    def to_dict(self) -> dict[str, Any]:
        """Convert to a JSON-serializable dictionary."""
        data: dict[str, Any] = {
            "wins": self.wins,
            "losses": self.losses,
            "win_rate": self.win_rate,
        }
        if self.category is not None:
            data["category"] = self.category
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> PatternStat:
        """Create from a dictionary."""
        return cls(
            wins=_int(data.get("wins")),
            losses=_int(data.get("losses")),
            win_rate=_int(data.get("win_rate"), NEUTRAL_WIN_RATE),
            category=data.get("category"),
        )


def combo_key(first: str, second: str) -> str:
    """Order-independent key of a factor pair."""
    a, b = sorted((first, second))
    return f"{a} + {b}"


@dataclass
class FactorCombo:
    """Win/loss record of an unordered factor pair."""

    factors: tuple[str, str]
    wins: int = 0
    losses: int = 0
    win_rate: int = NEUTRAL_WIN_RATE
    last_updated: datetime | None = None

    @property
    def key(self) -> str:
        """Stored key, ``"a + b"`` with the names sorted."""
        return combo_key(*self.factors)

    @property
    def total(self) -> int:
        """Settled samples."""
        return self.wins + self.losses

    @property
    def record_label(self) -> str:
        """Record formatted as ``"7W-3L"``."""
        return f"{self.wins}W-{self.losses}L"

    def record(self, outcome: SignalOutcome, *, now: datetime) -> None:
        """Count a settled outcome."""
        if outcome == SignalOutcome.WIN:
            self.wins += 1
        else:
            self.losses += 1
        self.win_rate = win_rate_percent(self.wins, self.total)
        self.last_updated = now

    def to_dict(self) -> dict[str, Any]:
        """Convert to a JSON-serializable dictionary."""
        return {
            "factors": list(self.factors),
            "wins": self.wins,
            "losses": self.losses,
            "win_rate": self.win_rate,
            "last_updated": _iso(self.last_updated),
        }

    @classmethod
    def from_dict(cls, key: str, data: dict[str, Any]) -> FactorCombo:
        """Create from a stored entry, recovering the pair from the key if needed."""
        raw = data.get("factors")
        if isinstance(raw, (list, tuple)) and len(raw) == 2:
            a, b = sorted((str(raw[0]), str(raw[1])))
        else:
            parts = key.split(" + ", 1)
            a, b = (parts[0], parts[1]) if len(parts) == 2 else (key, "")
        return cls(
            factors=(a, b),
            wins=_int(data.get("wins")),
            losses=_int(data.get("losses")),
            win_rate=_int(data.get("win_rate"), NEUTRAL_WIN_RATE),
            last_updated=parse_timestamp(data.get("last_updated")),
        )


@dataclass(frozen=True)
class SignalMetadata:
    """The slice of a settled signal the learning store buckets into patterns."""

    market_type: str | None = None
    total_volume: float = 0.0
    detected_at: datetime | None = None
    wallet_count: int = 0
    market_slug: str = ""
    last_trade_time: datetime | None = None
    factors: tuple[str, ...] = field(default_factory=tuple)
