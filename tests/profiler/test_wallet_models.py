"""Tests for wallet ledger data models."""

from datetime import datetime

import pytest

from polymarket_signal_engine.outcomes import SignalOutcome
from polymarket_signal_engine.profiler.models import (
    WalletBet,
    WalletStat,
    WalletTier,
    WalletTradeLedger,
    WinnerInfo,
)


def create_bet(now: datetime, **overrides) -> WalletBet:
    """Create a pending bet."""
    defaults = {
        "id": "bet-1",
        "market": "nba-lal-bos-2026-01-15",
        "amount": 1_000.0,
        "price": 0.4,
        "timestamp": now,
        "signal_id": "sig-1",
        "invested": 1_000.0,
    }
    defaults.update(overrides)
    return WalletBet(**defaults)


class TestWalletBet:
    """Tests for WalletBet."""

    def test_settle_win(self, now: datetime) -> None:
        """Test that a win returns stake divided by entry price."""
        bet = create_bet(now)
        bet.settle(SignalOutcome.WIN, now=now)

        assert bet.returned == pytest.approx(2_500.0)
        assert bet.pnl == pytest.approx(1_500.0)
        assert bet.roi == 150
        assert not bet.is_pending

    def test_settle_loss(self, now: datetime) -> None:
        """Test that a loss forfeits the stake."""
        bet = create_bet(now)
        bet.settle(SignalOutcome.LOSS, now=now)

        assert bet.returned == 0.0
        assert bet.pnl == -1_000.0
        assert bet.roi == -100
        assert bet.settled_at == now

    def test_missing_price_defaults_to_even(self, now: datetime) -> None:
        """Test that a zero price settles at 0.5."""
        bet = create_bet(now, price=0.0)
        bet.settle(SignalOutcome.WIN, now=now)
        assert bet.returned == pytest.approx(2_000.0)

    def test_dedup_key(self, now: datetime) -> None:
        """Test the lowercased market plus rounded amount key."""
        assert create_bet(now, market="NBA-Game", amount=999.5).dedup_key == "nba-game-1000"
        assert create_bet(now, market="", amount=10).dedup_key == "sig-1-10"

    def test_matches_market(self, now: datetime) -> None:
        """Test case-insensitive substring matching."""
        bet = create_bet(now)
        assert bet.matches_market("LAL-BOS")
        assert not bet.matches_market("nfl")
        assert not bet.matches_market(None)

    def test_dict_round_trip(self, now: datetime) -> None:
        """Test conversion to and from a dictionary."""
        bet = create_bet(now, direction="YES", market_title="Lakers vs. Celtics")
        bet.settle(SignalOutcome.WIN, now=now)
        assert WalletBet.from_dict(bet.to_dict()) == bet


class TestWalletStat:
    """Tests for WalletStat."""

    def test_apply_outcome_streaks(self) -> None:
        """Test win/loss counters and streaks."""
        stat = WalletStat(address="0xabc", pending=4)
        for outcome in (SignalOutcome.WIN, SignalOutcome.WIN, SignalOutcome.LOSS, SignalOutcome.WIN):
            stat.apply_outcome(outcome, 10.0)

        assert stat.wins + stat.losses == stat.total_bets == 4
        assert stat.pending == 0
        assert stat.win_rate == 75
        assert stat.current_streak == 1
        assert stat.best_streak == 2
        assert stat.profit_loss == 40.0

    def test_losing_streak(self) -> None:
        """Test that consecutive losses give a negative streak."""
        stat = WalletStat(address="0xabc")
        stat.apply_outcome(SignalOutcome.LOSS, -5.0)
        stat.apply_outcome(SignalOutcome.LOSS, -5.0)

        assert stat.current_streak == -2
        assert stat.pending == 0

    def test_is_winner(self) -> None:
        """Test the winner threshold."""
        assert WalletStat(address="a", total_bets=3, win_rate=55).is_winner()
        assert not WalletStat(address="a", total_bets=2, win_rate=100).is_winner()
        assert not WalletStat(address="a", total_bets=10, win_rate=54).is_winner()

    def test_recount(self, now: datetime) -> None:
        """Test recomputing counters from retained bets."""
        won = create_bet(now, id="1", outcome=SignalOutcome.WIN)
        lost = create_bet(now, id="2", outcome=SignalOutcome.LOSS)
        open_bet = create_bet(now, id="3")
        stat = WalletStat(address="a", recent_bets=[won, lost, open_bet], wins=9, total_bets=9)

        stat.recount()

        assert (stat.wins, stat.losses, stat.pending, stat.total_bets, stat.win_rate) == (1, 1, 1, 2, 50)

    def test_from_dict_lowercases_and_parses_tier(self) -> None:
        """Test that addresses are lowercased and unknown tiers dropped."""
        stat = WalletStat.from_dict({"address": "0xABC", "tier": "elite"})
        assert stat.address == "0xabc"
        assert stat.tier == WalletTier.ELITE
        assert WalletStat.from_dict({"address": "0x1", "tier": "bogus"}).tier is None


class TestWalletTradeLedger:
    """Tests for WalletTradeLedger."""

    def test_dict_round_trip(self, now: datetime) -> None:
        """Test conversion to and from a dictionary."""
        ledger = WalletTradeLedger(open=[create_bet(now)], resolved=[], last_updated=now)
        assert WalletTradeLedger.from_dict(ledger.to_dict()) == ledger


class TestWinnerInfo:
    """Tests for WinnerInfo."""

    def test_from_stat(self) -> None:
        """Test building a winner record from a wallet."""
        stat = WalletStat(address="a", wins=7, losses=3, total_bets=10, win_rate=70, tier=WalletTier.ELITE)

        info = WinnerInfo.from_stat(stat)

        assert info == WinnerInfo(win_rate=70, record="7W-3L", total_bets=10, tier="ELITE")
        assert WinnerInfo.from_dict(info.to_dict()) == info

    def test_default_tier(self) -> None:
        """Test that a wallet without a tier is labelled WINNER."""
        assert WinnerInfo.from_stat(WalletStat(address="a")).tier == "WINNER"
