"""Tests for HeuristicScorer."""

from datetime import UTC, datetime
from decimal import Decimal

import pytest

from polymarket_signal_engine.detector.models import FactorRef, factor_names
from polymarket_signal_engine.detector.scorer import HeuristicScorer
from polymarket_signal_engine.ingestor.models import MarketWindow, Trade


def create_window(
    trade_payload,
    *,
    largest: float = 1_000.0,
    total: float | None = None,
    wallets: int = 3,
    price: float = 0.5,
    side: str = "BUY",
    slug: str = "nba-lal-bos-2026-01-15",
    last_trade_time: datetime | None = None,
) -> MarketWindow:
    """Build a window whose largest trade is ``largest`` at ``price``."""
    trade = Trade.from_api_payload(trade_payload(usd=largest, price=price, side=side, slug=slug))
    return MarketWindow(
        market_key=slug,
        title="Lakers vs. Celtics",
        trades=[trade],
        wallets={f"0x{i:040x}" for i in range(wallets)},
        total_volume=Decimal(str(total if total is not None else largest)),
        largest_bet=Decimal(str(largest)),
        last_trade_time=last_trade_time,
    )


@pytest.fixture
def scorer() -> HeuristicScorer:
    """Scorer with the default tables."""
    return HeuristicScorer()


class TestHeuristicScorer:
    """Tests for factor evaluation."""

    def test_clamped_to_100(self, scorer: HeuristicScorer, trade_payload) -> None:
        """Test that a whale, concentrated, huge, deep-longshot market clamps at 100."""
        window = create_window(
            trade_payload, largest=120_000, total=600_000, wallets=1, price=0.10
        )

        result = scorer.score(window)

        assert result.factor_names == [
            "whaleSize100k",
            "concentrated",
            "volumeHuge",
            "buyDeepLongshot",
        ]
        assert sum(f.points for f in result.breakdown) == 80 + 25 + 25 + 35
        assert result.score == 100
        assert result.entry_price_cents == 10

    @pytest.mark.parametrize(
        ("largest", "expected"),
        [
            (100_000, ("whaleSize100k", 80)),
            (60_000, ("whaleSize50k", 60)),
            (25_000, ("whaleSize25k", 45)),
            (15_000, ("whaleSize15k", 30)),
            (9_000, ("whaleSize8k", 20)),
            (5_000, ("whaleSize5k", 15)),
            (3_000, ("whaleSize3k", 10)),
        ],
    )
    def test_whale_tiers(
        self,
        scorer: HeuristicScorer,
        trade_payload,
        largest: float,
        expected: tuple[str, int],
    ) -> None:
        """Test each whale tier threshold."""
        result = scorer.score(create_window(trade_payload, largest=largest, wallets=5))
        assert (result.breakdown[0].name, result.breakdown[0].points) == expected

    def test_small_market(self, scorer: HeuristicScorer, trade_payload) -> None:
        """Test that a small even-odds market only gets the volume floor."""
        result = scorer.score(create_window(trade_payload, largest=500, wallets=4))

        assert result.factor_names == ["vol_under_10k"]
        assert result.score == 5

    def test_two_wallet_concentration(self, scorer: HeuristicScorer, trade_payload) -> None:
        """Test the two-wallet concentration tier."""
        window = create_window(trade_payload, largest=1_000, total=20_000, wallets=2)

        result = scorer.score(window)

        assert FactorRef("concentrated", 15) in result.breakdown
        assert "vol_10k_25k" in result.factor_names

    @pytest.mark.parametrize(
        ("price", "factor"),
        [
            (0.15, "buyDeepLongshot"),
            (0.20, "buyLongshot"),
            (0.35, "buyUnderdog"),
            (0.72, "buyFavorite"),
            (0.90, "buyHeavyFavorite"),
        ],
    )
    def test_entry_price_factors(
        self, scorer: HeuristicScorer, trade_payload, price: float, factor: str
    ) -> None:
        """Test the entry price bands."""
        result = scorer.score(create_window(trade_payload, price=price, wallets=5))
        assert factor in result.factor_names

    def test_sell_inverts_price(self, scorer: HeuristicScorer, trade_payload) -> None:
        """Test that selling at 90 is treated as buying the other side at 10."""
        result = scorer.score(create_window(trade_payload, price=0.90, side="SELL", wallets=5))

        assert result.entry_price_cents == 10
        assert "buyDeepLongshot" in result.factor_names

    def test_event_timing_factor(self, scorer: HeuristicScorer, trade_payload) -> None:
        """Test that a bet 7 hours before the estimated start is a day-before bet."""
        window = create_window(
            trade_payload,
            wallets=5,
            last_trade_time=datetime(2026, 1, 15, 17, 0, tzinfo=UTC),
        )

        result = scorer.score(window)

        assert FactorRef("betDayBefore", 8, "Bet placed day before event") in result.breakdown

    def test_winning_wallet(self, scorer: HeuristicScorer, trade_payload) -> None:
        """Test the winning wallet factor."""
        result = scorer.score(create_window(trade_payload, wallets=5), has_winning_wallet=True)

        assert result.factor_names[-1] == "winningWallet"
        assert result.score == 5 + 30

    def test_winning_wallet_points_configurable(self, trade_payload) -> None:
        """Test that the winning wallet bonus follows the constructor."""
        scorer = HeuristicScorer(winning_wallet_points=45)
        result = scorer.score(create_window(trade_payload, wallets=5), has_winning_wallet=True)

        assert result.breakdown[-1] == FactorRef("winningWallet", 45)
        assert result.score == 5 + 45


class TestFactorRef:
    """Tests for breakdown entry parsing."""

    def test_from_value_shapes(self) -> None:
        """Test that strings, compact dicts and legacy dicts all resolve."""
        assert FactorRef.from_value("volumeHuge") == FactorRef("volumeHuge")
        assert FactorRef.from_value({"factor": "winningWallet", "points": 30}) == FactorRef(
            "winningWallet", 30
        )
        assert FactorRef.from_value({"name": "buyLongshot", "score": "20"}) == FactorRef(
            "buyLongshot", 20
        )
        assert FactorRef.from_value({"points": 5}) is None
        assert FactorRef.from_value(42) is None

    def test_factor_names(self) -> None:
        """Test resolving a mixed breakdown to names."""
        assert factor_names(["a", {"factor": "b"}, {}, None]) == ["a", "b"]

    def test_to_dict(self) -> None:
        """Test the compact stored form."""
        assert FactorRef("x", 3, "desc").to_dict() == {"factor": "x", "points": 3, "desc": "desc"}
        assert FactorRef("x").to_dict() == {"factor": "x", "points": 0}
