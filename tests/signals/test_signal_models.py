"""Tests for signal data models."""

from datetime import UTC, datetime

import pytest

from polymarket_signal_engine.detector.models import FactorRef
from polymarket_signal_engine.outcomes import SignalOutcome
from polymarket_signal_engine.signals.models import (
    PriceSettlement,
    ScoreSettlement,
    Signal,
    SignalState,
    TopTrade,
    profit_pct,
)


def create_signal(**overrides) -> Signal:
    """Create a pending signal."""
    defaults = {
        "id": "abc123",
        "market_slug": "nba-lal-bos-2026-01-15",
        "direction": "YES",
        "score": 72,
        "ai_score": 80,
        "confidence": 70,
        "dominant_outcome": "Lakers",
        "display_price": 40,
        "score_breakdown": [FactorRef("whaleSize50k", 60), FactorRef("vol_25k_50k", 10)],
        "market_type": "sports-nba",
        "total_volume": 30_000,
        "unique_wallets": 2,
        "detected_at": datetime(2026, 1, 15, 18, 0, tzinfo=UTC),
        "last_trade_time": datetime(2026, 1, 15, 17, 0, tzinfo=UTC),
        "wallets": ["0xaaaa567890123456789012345678901234567890"],
    }
    defaults.update(overrides)
    return Signal(**defaults)


class TestProfitPct:
    """Tests for profit_pct."""

    @pytest.mark.parametrize(
        ("price", "expected"),
        [(40, 150), (50, 100), (80, 25), (25, 300)],
    )
    def test_win(self, price: int, expected: int) -> None:
        """Test the win payout at the display price."""
        assert profit_pct(SignalOutcome.WIN, price) == expected

    def test_loss(self) -> None:
        """Test that a loss is always -100."""
        assert profit_pct(SignalOutcome.LOSS, 40) == -100
        assert profit_pct(SignalOutcome.LOSS, None) == -100

    def test_missing_price(self) -> None:
        """Test that a win without a usable price is 0."""
        assert profit_pct(SignalOutcome.WIN, None) == 0
        assert profit_pct(SignalOutcome.WIN, 0) == 0


class TestSignal:
    """Tests for Signal."""

    def test_state(self) -> None:
        """Test the derived lifecycle state."""
        assert create_signal().state == SignalState.PENDING
        assert create_signal(outcome=SignalOutcome.WIN).state == SignalState.SETTLED
        assert create_signal(outcome=SignalOutcome.UNKNOWN).state == SignalState.UNKNOWN
        assert not create_signal(outcome=SignalOutcome.UNKNOWN).is_pending

    def test_learning_metadata(self) -> None:
        """Test the metadata slice handed to the learning store."""
        meta = create_signal().learning_metadata()

        assert meta.market_type == "sports-nba"
        assert meta.total_volume == 30_000.0
        assert meta.wallet_count == 2
        assert meta.factors == ("whaleSize50k", "vol_25k_50k")

    def test_winner_win_rate(self) -> None:
        """Test reading the winning wallet's win rate."""
        assert create_signal().winner_win_rate is None
        signal = create_signal(winning_wallet_info={"wallet": "0xa", "win_rate": 68})
        assert signal.winner_win_rate == 68

    def test_dict_round_trip(self) -> None:
        """Test conversion to and from a dictionary."""
        signal = create_signal(
            top_trades=[
                TopTrade(
                    wallet="0xaaaa",
                    amount=12_000,
                    price=0.4,
                    time=datetime(2026, 1, 15, 17, 0, tzinfo=UTC),
                    outcome="Yes",
                    outcome_index=0,
                )
            ],
            outcome=SignalOutcome.LOSS,
            settled_at=datetime(2026, 1, 16, 6, 0, tzinfo=UTC),
            profit_pct=-100,
            settled_by="polymarket",
        )
        assert Signal.from_dict(signal.to_dict()) == signal

    def test_from_dict_legacy_breakdown(self) -> None:
        """Test that bare factor names in stored breakdowns are accepted."""
        signal = Signal.from_dict(
            {"id": "x", "market_slug": "m", "score_breakdown": ["volumeHuge", {"name": "winningWallet"}]}
        )

        assert signal.factor_names == ["volumeHuge", "winningWallet"]
        assert signal.direction == "YES"
        assert signal.is_pending


class TestPriceSettlement:
    """Tests for PriceSettlement."""

    def test_outcome_for(self) -> None:
        """Test WIN when any pick names the winner."""
        verdict = PriceSettlement(settled=True, winning_outcome="Yes", resolution_price=0.97)

        assert verdict.outcome_for("YES", None) == SignalOutcome.WIN
        assert verdict.outcome_for("NO", "Celtics") == SignalOutcome.LOSS

    def test_unsettled_and_unknown(self) -> None:
        """Test unsettled and undecidable verdicts."""
        assert PriceSettlement(settled=False).outcome_for("YES") is None
        unknown = PriceSettlement(settled=True, winning_outcome="UNKNOWN")
        assert unknown.is_unknown
        assert unknown.outcome_for("YES") == SignalOutcome.UNKNOWN


class TestScoreSettlement:
    """Tests for ScoreSettlement."""

    def test_game_score(self) -> None:
        """Test the home-away score label."""
        settlement = ScoreSettlement(
            status="settled", outcome=SignalOutcome.WIN, home_score=110, away_score=102
        )
        assert settlement.is_settled
        assert settlement.game_score == "110-102"
        assert ScoreSettlement(status="pending").game_score is None
