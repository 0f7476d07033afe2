"""Tests for settlement oracles and game evaluation."""

from datetime import UTC, datetime
from unittest.mock import AsyncMock

import pytest

from polymarket_signal_engine.ingestor.classifier import MarketClassifier
from polymarket_signal_engine.ingestor.polymarket_api import DataSourceError
from polymarket_signal_engine.outcomes import SignalOutcome
from polymarket_signal_engine.signals.models import UNKNOWN_OUTCOME, GameResult
from polymarket_signal_engine.signals.settlement import (
    PriceSettlementOracle,
    base_market_slug,
    evaluate_game_result,
    hours_since_event,
    resolve_price_settlement,
)

SLUG = "nba-lal-bos-2026-01-15"


def create_trade(price: float, timestamp: int, *, outcome: str = "Yes", slug: str = SLUG) -> dict:
    """Create a raw trade record for settlement."""
    return {"slug": slug, "eventSlug": slug, "price": price, "outcome": outcome, "timestamp": timestamp}


class TestHelpers:
    """Tests for slug helpers."""

    def test_base_market_slug(self) -> None:
        """Test stripping spread and total suffixes."""
        assert base_market_slug("nba-lal-bos-2026-01-15-spread-home-6pt5") == SLUG
        assert base_market_slug("nba-lal-bos-2026-01-15-total-221pt5") == SLUG
        assert base_market_slug(SLUG) is None

    def test_hours_since_event_uses_slug_date(self) -> None:
        """Test that the end of the slug date is the reference."""
        now = datetime(2026, 1, 16, 11, 59, 59, tzinfo=UTC)
        assert hours_since_event(SLUG, None, now) == pytest.approx(12.0)

    def test_hours_since_event_falls_back(self) -> None:
        """Test the detection time fallback and the zero default."""
        detected = datetime(2026, 1, 15, 10, 0, tzinfo=UTC)
        now = datetime(2026, 1, 15, 16, 0, tzinfo=UTC)

        assert hours_since_event("will-it-rain", detected, now) == pytest.approx(6.0)
        assert hours_since_event("will-it-rain", None, now) == 0.0


class TestResolvePriceSettlement:
    """Tests for the price heuristic."""

    def test_latest_trade_high(self) -> None:
        """Test that a latest price of 0.95+ settles for that outcome."""
        trades = [create_trade(0.50, 100), create_trade(0.97, 200, outcome="Lakers")]

        verdict = resolve_price_settlement(trades, 2)

        assert verdict.settled
        assert verdict.winning_outcome == "Lakers"
        assert verdict.resolution_price == 0.97

    def test_latest_trade_low(self) -> None:
        """Test that a latest price of 0.05- settles for the opposite outcome."""
        verdict = resolve_price_settlement([create_trade(0.03, 300, outcome="Yes")], 2)

        assert verdict.winning_outcome == "No"
        assert verdict.resolution_price == pytest.approx(0.97)

    def test_low_named_outcome_defaults_to_no(self) -> None:
        """Test that a collapsed named outcome resolves to No."""
        verdict = resolve_price_settlement([create_trade(0.02, 300, outcome="Lakers")], 2)
        assert verdict.winning_outcome == "No"

    def test_ordering_uses_timestamp(self) -> None:
        """Test that the newest trade wins regardless of list order."""
        trades = [create_trade(0.98, 500), create_trade(0.50, 100)]
        assert resolve_price_settlement(trades, 1).settled

    def test_ambiguous_recent(self) -> None:
        """Test that a mid price within a day stays unsettled."""
        verdict = resolve_price_settlement([create_trade(0.6, 100)], 10)

        assert not verdict.settled
        assert verdict.resolution_price == 0.6

    def test_ambiguous_stale_is_unknown(self) -> None:
        """Test that a mid price more than 24h after the event is UNKNOWN."""
        verdict = resolve_price_settlement([create_trade(0.6, 100)], 30)

        assert verdict.is_unknown
        assert verdict.note == "Event 30h ago, ambiguous price"

    def test_no_trades(self) -> None:
        """Test no trades: pending within 12h, UNKNOWN after."""
        assert not resolve_price_settlement([], 6).settled
        stale = resolve_price_settlement([], 13)
        assert stale.winning_outcome == UNKNOWN_OUTCOME
        assert stale.resolution_price == 0.0
        assert stale.note == "Event 13h ago, no recent trades"


class TestPriceSettlementOracle:
    """Tests for PriceSettlementOracle."""

    @pytest.mark.asyncio
    async def test_filters_market_trades(self) -> None:
        """Test that only the signal's market is considered."""
        feed = AsyncMock()
        feed.fetch_recent_trades.return_value = [
            create_trade(0.99, 200, slug="other-market"),
            create_trade(0.60, 100),
        ]
        oracle = PriceSettlementOracle(feed, trade_limit=500)

        verdict = await oracle.check_market(SLUG, None, datetime(2026, 1, 16, 1, 0, tzinfo=UTC))

        assert verdict is not None
        assert not verdict.settled
        feed.fetch_recent_trades.assert_awaited_once_with(500)

    @pytest.mark.asyncio
    async def test_spread_falls_back_to_base(self) -> None:
        """Test that a spread market uses base market trades when it has none."""
        feed = AsyncMock()
        feed.fetch_recent_trades.return_value = [create_trade(0.97, 100, outcome="Yes")]
        oracle = PriceSettlementOracle(feed)

        verdict = await oracle.check_market(
            f"{SLUG}-spread-home-6pt5", None, datetime(2026, 1, 16, 1, 0, tzinfo=UTC)
        )

        assert verdict is not None
        assert verdict.winning_outcome == "Yes"

    @pytest.mark.asyncio
    async def test_feed_failure(self) -> None:
        """Test that a feed failure returns None."""
        feed = AsyncMock()
        feed.fetch_recent_trades.side_effect = DataSourceError("down")

        assert await PriceSettlementOracle(feed).check_market(SLUG, None, datetime.now(UTC)) is None


class TestEvaluateGameResult:
    """Tests for evaluate_game_result."""

    @pytest.fixture
    def classifier(self) -> MarketClassifier:
        """Classifier with the default rules."""
        return MarketClassifier()

    def test_pending(self, classifier: MarketClassifier) -> None:
        """Test that an incomplete game is pending."""
        game = GameResult("Boston Celtics", "Los Angeles Lakers", completed=False)
        assert evaluate_game_result(game, SLUG, "lal", classifier).status == "pending"

    def test_no_scores(self, classifier: MarketClassifier) -> None:
        """Test that a completed game without scores is reported."""
        game = GameResult("Boston Celtics", "Los Angeles Lakers", completed=True)
        assert evaluate_game_result(game, SLUG, "lal", classifier).status == "no_scores"

    def test_moneyline_win(self, classifier: MarketClassifier) -> None:
        """Test that a team code pick is expanded and matched."""
        game = GameResult("Boston Celtics", "Los Angeles Lakers", True, home_score=102, away_score=110)

        result = evaluate_game_result(game, SLUG, "lal", classifier)

        assert result.outcome == SignalOutcome.WIN
        assert result.winner == "Los Angeles Lakers"
        assert result.game_score == "102-110"

    def test_moneyline_nickname(self, classifier: MarketClassifier) -> None:
        """Test substring matching of a nickname pick."""
        game = GameResult("Boston Celtics", "Los Angeles Lakers", True, home_score=120, away_score=110)
        assert evaluate_game_result(game, SLUG, "Celtics", classifier).outcome == SignalOutcome.WIN
        assert evaluate_game_result(game, SLUG, "Lakers", classifier).outcome == SignalOutcome.LOSS

    def test_tie_is_loss(self, classifier: MarketClassifier) -> None:
        """Test that a tie loses for any team pick."""
        game = GameResult("Boston Celtics", "Los Angeles Lakers", True, home_score=100, away_score=100)

        result = evaluate_game_result(game, SLUG, "Celtics", classifier)

        assert result.winner == "tie"
        assert result.outcome == SignalOutcome.LOSS

    def test_empty_pick_never_matches(self, classifier: MarketClassifier) -> None:
        """Test that an empty pick is a loss rather than a match."""
        game = GameResult("Boston Celtics", "Los Angeles Lakers", True, home_score=120, away_score=110)
        assert evaluate_game_result(game, SLUG, "", classifier).outcome == SignalOutcome.LOSS

    def test_home_spread(self, classifier: MarketClassifier) -> None:
        """Test a home spread of 6.5 points."""
        slug = f"{SLUG}-spread-home-6pt5"
        covered = GameResult("Boston Celtics", "Los Angeles Lakers", True, home_score=110, away_score=100)
        missed = GameResult("Boston Celtics", "Los Angeles Lakers", True, home_score=105, away_score=100)

        result = evaluate_game_result(covered, slug, "bos", classifier)

        assert result.outcome == SignalOutcome.WIN
        assert result.spread == 6.5
        assert evaluate_game_result(missed, slug, "bos", classifier).outcome == SignalOutcome.LOSS

    def test_away_spread(self, classifier: MarketClassifier) -> None:
        """Test an away spread where the underdog covers while losing."""
        slug = f"{SLUG}-spread-away-4pt5"
        game = GameResult("Boston Celtics", "Los Angeles Lakers", True, home_score=104, away_score=101)

        result = evaluate_game_result(game, slug, "lal", classifier)

        assert result.outcome == SignalOutcome.WIN
        assert result.winner == "Los Angeles Lakers"
