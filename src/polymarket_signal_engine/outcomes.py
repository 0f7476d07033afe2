"""Settlement outcome shared by signals, wallets and the learning store."""

from __future__ import annotations

from enum import Enum


class SignalOutcome(str, Enum):
    """Terminal outcome of a signal."""

    WIN = "WIN"
    LOSS = "LOSS"
    UNKNOWN = "UNKNOWN"

    @property
    def is_decisive(self) -> bool:
        """Return True for WIN or LOSS."""
        return self is not SignalOutcome.UNKNOWN

    @classmethod
    def parse(cls, raw: object) -> SignalOutcome | None:
        """Parse a stored outcome string, returning None for pending or garbage."""
        if isinstance(raw, cls):
            return raw
        if not isinstance(raw, str):
            return None
        try:
            return cls(raw.upper())
        except ValueError:
            return None
