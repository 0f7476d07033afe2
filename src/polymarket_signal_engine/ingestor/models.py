"""Data models for the ingestor module."""

from __future__ import annotations

import contextlib
from dataclasses import dataclass, field
from datetime import UTC, datetime
from decimal import Decimal, InvalidOperation
from typing import Any, Literal

from polymarket_signal_engine.rounding import round_half_up

# Wallet strings shorter than this are placeholders, not addresses.
MIN_WALLET_ADDRESS_LENGTH = 11

YES_LABELS = frozenset({"yes", "true"})
NO_LABELS = frozenset({"no", "false", "0"})

EPOCH = datetime.fromtimestamp(0, tz=UTC)


class TradeParseError(Exception):
    """Raised when a raw trade payload cannot be turned into a Trade.

    Attributes:
        reason: Short diagnostic code used to count drops (e.g. "no_timestamp").
    """

    def __init__(self, message: str, *, reason: str) -> None:
        super().__init__(message)
        self.reason = reason


def parse_timestamp(raw: Any) -> datetime | None:
    """Parse epoch seconds, epoch milliseconds or an ISO-8601 string into UTC."""
    if raw is None or raw == "" or isinstance(raw, bool):
        return None
    if isinstance(raw, (int, float)):
        ts = float(raw)
        if ts <= 0:
            return None
        if ts > 1e10:
            ts /= 1000.0
        try:
            return datetime.fromtimestamp(ts, tz=UTC)
        except (OverflowError, OSError, ValueError):
            return None
    if isinstance(raw, str):
        text = raw.strip()
        if text.replace(".", "", 1).isdigit():
            return parse_timestamp(float(text))
        with contextlib.suppress(ValueError):
            parsed = datetime.fromisoformat(text.replace("Z", "+00:00"))
            if parsed.tzinfo is None:
                parsed = parsed.replace(tzinfo=UTC)
            return parsed.astimezone(UTC)
    return None


def _to_decimal(raw: Any) -> Decimal | None:
    if raw is None or raw == "":
        return None
    try:
        value = Decimal(str(raw))
    except (InvalidOperation, ValueError):
        return None
    if not value.is_finite():
        return None
    return value


def _first_present(data: dict[str, Any], *keys: str) -> Any:
    for key in keys:
        value = data.get(key)
        if value not in (None, ""):
            return value
    return None


@dataclass(frozen=True)
class Trade:
    """A single trade observed on the Polymarket public trade feed.

    ``size_usd`` is the notional of the trade in USDC. Feeds that only report
    a share count are converted with ``shares * price``.
    """

    trade_id: str
    wallet_address: str
    side: Literal["BUY", "SELL"]
    outcome: str
    outcome_index: int | None
    price: Decimal
    size_usd: Decimal
    timestamp: datetime

    # Market identifiers
    slug: str = ""
    event_slug: str = ""
    condition_id: str = ""
    title: str = ""

    @classmethod
    def from_api_payload(cls, data: dict[str, Any]) -> Trade:
        """Create a Trade from a Data API ``/trades`` record.

        The notional is ``usd_value`` or ``usdcSize`` when present. Otherwise
        ``size``/``amount`` is read as a share count, as the Data API reports
        it, and the notional is shares times price.

        Args:
            data: Raw trade record.

        Returns:
            Trade instance.

        Raises:
            TradeParseError: If the timestamp, price or size is missing or invalid.
        """
        timestamp = parse_timestamp(_first_present(data, "timestamp", "createdAt", "matchTime"))
        if timestamp is None:
            raise TradeParseError("trade has no usable timestamp", reason="no_timestamp")

        price = _to_decimal(data.get("price"))
        if price is None:
            raise TradeParseError("trade has no usable price", reason="bad_price")

        size_usd = _to_decimal(_first_present(data, "usd_value", "usdcSize"))
        if size_usd is None:
            shares = _to_decimal(_first_present(data, "size", "amount"))
            if shares is None:
                raise TradeParseError("trade has no usable size", reason="bad_size")
            size_usd = shares * price

        wallet = _first_present(data, "proxyWallet", "user", "maker", "taker")
        wallet_address = str(wallet) if isinstance(wallet, str) else ""
        if len(wallet_address) < MIN_WALLET_ADDRESS_LENGTH:
            wallet_address = ""

        side_raw = str(data.get("side", "BUY")).upper()
        side: Literal["BUY", "SELL"] = "SELL" if side_raw == "SELL" else "BUY"

        outcome_index: int | None = None
        raw_index = data.get("outcomeIndex", data.get("outcome_index"))
        if raw_index is not None:
            with contextlib.suppress(TypeError, ValueError):
                outcome_index = int(raw_index)

        return cls(
            trade_id=str(_first_present(data, "transactionHash", "id") or ""),
            wallet_address=wallet_address,
            side=side,
            outcome=str(data.get("outcome") or ""),
            outcome_index=outcome_index,
            price=price,
            size_usd=size_usd,
            timestamp=timestamp,
            slug=str(_first_present(data, "slug", "market_slug") or ""),
            event_slug=str(data.get("eventSlug") or ""),
            condition_id=str(data.get("conditionId") or ""),
            title=str(_first_present(data, "title", "market", "question") or ""),
        )

    @property
    def market_key(self) -> str:
        """Grouping key: slug, falling back to event slug, condition id, then title."""
        return self.slug or self.event_slug or self.condition_id or self.title

    @property
    def is_sell(self) -> bool:
        """Return True if this is a sell trade."""
        return self.side == "SELL"

    @property
    def is_yes_no(self) -> bool:
        """Return True if the outcome label is a plain Yes/No style label."""
        return self.outcome.lower() in ("yes", "no", "true", "false")

    @property
    def is_no_side(self) -> bool:
        """Return True if the trade is on the second (No / team two) outcome."""
        return self.outcome_index == 1 or self.outcome.lower() in NO_LABELS

    @property
    def price_cents(self) -> int:
        """Trade price as a whole-number percentage."""
        return round_half_up(self.price * 100)


@dataclass
class MarketWindow:
    """Aggregate of the trades seen on one market within the lookback horizon.

    Built fresh on every scan and never persisted.
    """

    market_key: str
    title: str = ""
    event_slug: str = ""
    trades: list[Trade] = field(default_factory=list)
    wallets: set[str] = field(default_factory=set)
    total_volume: Decimal = Decimal(0)
    largest_bet: Decimal = Decimal(0)
    largest_bet_outcome: str | None = None
    first_trade_time: datetime | None = None
    last_trade_time: datetime | None = None
    yes_volume: Decimal = Decimal(0)
    no_volume: Decimal = Decimal(0)
    outcome_volumes: dict[str, Decimal] = field(default_factory=dict)

    @property
    def wallet_count(self) -> int:
        """Number of distinct wallets in the window."""
        return len(self.wallets)

    @property
    def direction(self) -> Literal["YES", "NO"]:
        """Dominant binary side by volume (ties resolve to NO)."""
        return "YES" if self.yes_volume > self.no_volume else "NO"

    @property
    def direction_percent(self) -> int:
        """Share of volume on the dominant side, as a percentage."""
        if self.total_volume <= 0:
            return 0
        dominant = max(self.yes_volume, self.no_volume)
        return round(float(dominant / self.total_volume * 100))

    @property
    def dominant_outcome(self) -> str | None:
        """Outcome label carrying the most volume, if any labels were seen."""
        best: str | None = None
        best_volume = Decimal(0)
        for name, volume in self.outcome_volumes.items():
            if volume > best_volume:
                best, best_volume = name, volume
        return best

    def top_trades(self, limit: int | None = None) -> list[Trade]:
        """Retained trades sorted by descending notional."""
        ordered = sorted(self.trades, key=lambda t: t.size_usd, reverse=True)
        return ordered if limit is None else ordered[:limit]

    @property
    def largest_trade(self) -> Trade | None:
        """Largest retained trade, if any."""
        top = self.top_trades(1)
        return top[0] if top else None


@dataclass(frozen=True)
class EventTiming:
    """Event start/end estimates for a market slug."""

    event_start_time: datetime | None
    event_end_time: datetime | None
    source: str

    def to_dict(self) -> dict[str, Any]:
        """Convert to a JSON-serializable dictionary."""
        return {
            "event_start_time": self.event_start_time.isoformat() if self.event_start_time else None,
            "event_end_time": self.event_end_time.isoformat() if self.event_end_time else None,
            "source": self.source,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> EventTiming:
        """Create from a dictionary."""
        return cls(
            event_start_time=parse_timestamp(data.get("event_start_time")),
            event_end_time=parse_timestamp(data.get("event_end_time")),
            source=str(data.get("source", "")),
        )
