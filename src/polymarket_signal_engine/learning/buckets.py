"""Bucketing of signal metadata into learnable pattern names."""

from __future__ import annotations

from datetime import datetime

from polymarket_signal_engine.ingestor.classifier import estimated_event_start

# (minimum volume, bracket name), checked in order
VOLUME_BRACKETS: tuple[tuple[float, str], ...] = (
    (100_000, "vol_100k_plus"),
    (50_000, "vol_50k_100k"),
    (25_000, "vol_25k_50k"),
    (10_000, "vol_10k_25k"),
)
VOLUME_BRACKET_FLOOR = "vol_under_10k"

WEEKDAY_NAMES = ("monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday")

# (max hours before event, factor, points, description); the first match wins
EVENT_TIMING_FACTORS: tuple[tuple[float, str, int, str], ...] = (
    (0, "betDuringEvent", 20, "Bet placed during/after event start"),
    (2, "betLast2Hours", 25, "Bet placed within 2h of event"),
    (6, "betSameDay", 15, "Bet placed same day (2-6h before)"),
    (24, "betDayBefore", 8, "Bet placed day before event"),
    (72, "betEarlyDays", 5, "Bet placed 1-3 days before event"),
)
EVENT_TIMING_FLOOR = ("betVeryEarly", 3, "Bet placed 3+ days before event")

TIMING_FACTOR_NAMES: tuple[str, ...] = (
    *(name for _, name, _, _ in EVENT_TIMING_FACTORS),
    EVENT_TIMING_FLOOR[0],
)


def volume_bracket(volume: float) -> str:
    """Volume bracket name for a market's total volume."""
    for floor, name in VOLUME_BRACKETS:
        if volume >= floor:
            return name
    return VOLUME_BRACKET_FLOOR


def time_block(at: datetime) -> str:
    """UTC time-of-day block."""
    hour = at.hour
    if 5 <= hour < 12:
        return "morning_5_12"
    if 12 <= hour < 17:
        return "afternoon_12_17"
    if 17 <= hour < 22:
        return "evening_17_22"
    return "night_22_5"


def weekday_pattern(at: datetime) -> str:
    """UTC weekday pattern name, e.g. ``day_sunday``."""
    return f"day_{WEEKDAY_NAMES[at.weekday()]}"


def wallet_count_bucket(wallet_count: int) -> str:
    """Bucket for the number of distinct wallets in a market."""
    if wallet_count <= 1:
        return "single_wallet"
    if wallet_count == 2:
        return "two_wallets"
    if wallet_count <= 5:
        return "few_wallets_3_5"
    return "many_wallets_6_plus"


def hours_before_event(slug: str | None, bet_time: datetime | None) -> float | None:
    """Hours between a bet and the slug-estimated event start (negative once started)."""
    if bet_time is None:
        return None
    start = estimated_event_start(slug)
    if start is None:
        return None
    return (start - bet_time).total_seconds() / 3600.0


def event_timing_factor(hours_before: float) -> tuple[str, int, str]:
    """Timing factor ``(name, points, description)`` for hours before the event."""
    for max_hours, name, points, desc in EVENT_TIMING_FACTORS:
        if hours_before <= max_hours:
            return name, points, desc
    return EVENT_TIMING_FLOOR
