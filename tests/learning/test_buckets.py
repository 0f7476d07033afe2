"""Tests for metadata bucketing."""

from datetime import UTC, datetime

import pytest

from polymarket_signal_engine.learning.buckets import (
    TIMING_FACTOR_NAMES,
    event_timing_factor,
    hours_before_event,
    time_block,
    volume_bracket,
    wallet_count_bucket,
    weekday_pattern,
)


@pytest.mark.parametrize(
    ("volume", "bracket"),
    [
        (250_000, "vol_100k_plus"),
        (100_000, "vol_100k_plus"),
        (75_000, "vol_50k_100k"),
        (30_000, "vol_25k_50k"),
        (10_000, "vol_10k_25k"),
        (9_999, "vol_under_10k"),
        (0, "vol_under_10k"),
    ],
)
def test_volume_bracket(volume: float, bracket: str) -> None:
    """Test volume bracket boundaries."""
    assert volume_bracket(volume) == bracket


@pytest.mark.parametrize(
    ("hour", "block"),
    [(5, "morning_5_12"), (12, "afternoon_12_17"), (17, "evening_17_22"), (22, "night_22_5"), (3, "night_22_5")],
)
def test_time_block(hour: int, block: str) -> None:
    """Test UTC time-of-day blocks."""
    assert time_block(datetime(2026, 1, 15, hour, tzinfo=UTC)) == block


def test_weekday_pattern() -> None:
    """Test weekday pattern names."""
    assert weekday_pattern(datetime(2026, 1, 15, tzinfo=UTC)) == "day_thursday"
    assert weekday_pattern(datetime(2026, 1, 18, tzinfo=UTC)) == "day_sunday"


@pytest.mark.parametrize(
    ("count", "bucket"),
    [(0, "single_wallet"), (1, "single_wallet"), (2, "two_wallets"), (5, "few_wallets_3_5"), (6, "many_wallets_6_plus")],
)
def test_wallet_count_bucket(count: int, bucket: str) -> None:
    """Test wallet count buckets."""
    assert wallet_count_bucket(count) == bucket


class TestEventTiming:
    """Tests for bet timing relative to the event."""

    def test_hours_before_event(self) -> None:
        """Test hours until the slug-estimated start."""
        bet = datetime(2026, 1, 15, 17, 0, tzinfo=UTC)
        assert hours_before_event("nba-lal-bos-2026-01-15", bet) == 7.0

    def test_unknown_inputs(self) -> None:
        """Test that missing dates or times give None."""
        assert hours_before_event("will-it-rain", datetime(2026, 1, 15, tzinfo=UTC)) is None
        assert hours_before_event("nba-lal-bos-2026-01-15", None) is None

    @pytest.mark.parametrize(
        ("hours", "name", "points"),
        [
            (-1, "betDuringEvent", 20),
            (0, "betDuringEvent", 20),
            (1.5, "betLast2Hours", 25),
            (5, "betSameDay", 15),
            (20, "betDayBefore", 8),
            (48, "betEarlyDays", 5),
            (100, "betVeryEarly", 3),
        ],
    )
    def test_event_timing_factor(self, hours: float, name: str, points: int) -> None:
        """Test the timing factor table."""
        factor_name, factor_points, _ = event_timing_factor(hours)
        assert (factor_name, factor_points) == (name, points)

    def test_timing_factor_names(self) -> None:
        """Test that every timing factor name is listed once."""
        assert len(TIMING_FACTOR_NAMES) == 6
        assert TIMING_FACTOR_NAMES[-1] == "betVeryEarly"
