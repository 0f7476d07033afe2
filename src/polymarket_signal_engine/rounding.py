"""Half-up rounding shared by every percentage the engine persists."""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal


def round_half_up(value: float | int | Decimal) -> int:
    """Round to the nearest integer with halves rounded away from zero."""
    return int(Decimal(str(value)).quantize(Decimal(1), rounding=ROUND_HALF_UP))


def round_cents(value: float | int | Decimal) -> float:
    """Round a dollar amount to two decimals."""
    return float(Decimal(str(value)).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP))


def win_rate_percent(wins: int, total: int) -> int:
    """Whole-number win rate, 0 when there are no samples."""
    if total <= 0:
        return 0
    return round_half_up(Decimal(wins) / Decimal(total) * 100)
