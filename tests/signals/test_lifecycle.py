"""Tests for the signal lifecycle manager."""

from datetime import UTC, datetime, timedelta
from unittest.mock import AsyncMock, call

import pytest
from conftest import WALLET_A, WALLET_B
from redis.exceptions import RedisError

from polymarket_signal_engine.detector.models import FactorRef
from polymarket_signal_engine.outcomes import SignalOutcome
from polymarket_signal_engine.signals.lifecycle import (
    EFFECTS_KEY_PREFIX,
    PENDING_INDEX_KEY,
    PENDING_SIGNAL_TTL_SECONDS,
    SETTLED_SIGNAL_TTL_SECONDS,
    SignalLifecycleManager,
)
from polymarket_signal_engine.signals.models import GameResult, PriceSettlement, Signal

SLUG = "nba-lal-bos-2026-01-15"
SETTLE_TIME = datetime(2026, 1, 16, 6, 0, tzinfo=UTC)


def create_signal(signal_id: str = "sig001", **overrides) -> Signal:
    """Create a pending Lakers signal."""
    defaults = {
        "id": signal_id,
        "market_slug": SLUG,
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
        "wallets": [WALLET_A, WALLET_B],
        "detected_at": datetime(2026, 1, 15, 18, 0, tzinfo=UTC),
        "event_start_time": datetime(2026, 1, 16, 0, 0, tzinfo=UTC),
    }
    defaults.update(overrides)
    return Signal(**defaults)


@pytest.fixture
def ledger() -> AsyncMock:
    """Wallet ledger double."""
    return AsyncMock()


@pytest.fixture
def learning() -> AsyncMock:
    """Learning store double."""
    return AsyncMock()


@pytest.fixture
def oracle() -> AsyncMock:
    """Price oracle double that has not settled."""
    mock = AsyncMock()
    mock.check_market.return_value = PriceSettlement(settled=False)
    return mock


@pytest.fixture
def manager(fake_redis, ledger, learning, oracle) -> SignalLifecycleManager:
    """Manager without a score oracle."""
    return SignalLifecycleManager(
        fake_redis,
        wallet_ledger=ledger,
        learning_store=learning,
        settlement_oracle=oracle,
    )


class TestStoreSignal:
    """Tests for signal persistence."""

    @pytest.mark.asyncio
    async def test_store_indexes_once(self, manager, fake_redis) -> None:
        """Test that a signal is saved and indexed exactly once."""
        assert await manager.store_signal(create_signal())
        assert not await manager.store_signal(create_signal())

        assert await manager.pending_ids() == ["sig001"]
        assert fake_redis.ttls["signal_sig001"] == PENDING_SIGNAL_TTL_SECONDS
        assert (await manager.get_signal("sig001")).market_slug == SLUG

    @pytest.mark.asyncio
    async def test_index_cap_keeps_newest(self, fake_redis, ledger, learning, oracle) -> None:
        """Test that the pending index is trimmed to its cap."""
        manager = SignalLifecycleManager(
            fake_redis,
            wallet_ledger=ledger,
            learning_store=learning,
            settlement_oracle=oracle,
            pending_index_cap=3,
        )
        for i in range(5):
            await manager.store_signal(create_signal(f"s{i}"))

        assert await manager.pending_ids() == ["s2", "s3", "s4"]

    @pytest.mark.asyncio
    async def test_missing_signal(self, manager) -> None:
        """Test reads and settlement of an unknown id."""
        assert await manager.get_signal("nope") is None
        assert await manager.settle_signal("nope", now=SETTLE_TIME) is None


class TestPriceSettlement:
    """Tests for settlement through the price oracle."""

    @pytest.mark.asyncio
    async def test_future_event_stays_pending(self, manager, oracle) -> None:
        """Test that an event that has not started is not checked."""
        await manager.store_signal(create_signal())

        outcome = await manager.settle_signal("sig001", now=datetime(2026, 1, 15, 20, 0, tzinfo=UTC))

        assert outcome is None
        oracle.check_market.assert_not_awaited()
        assert await manager.pending_ids() == ["sig001"]

    @pytest.mark.asyncio
    async def test_unsettled_stays_pending(self, manager, oracle) -> None:
        """Test that an unsettled verdict keeps the signal pending."""
        await manager.store_signal(create_signal())

        assert await manager.settle_signal("sig001", now=SETTLE_TIME) is None
        oracle.check_market.assert_awaited_once_with(
            SLUG, datetime(2026, 1, 15, 18, 0, tzinfo=UTC), SETTLE_TIME
        )

    @pytest.mark.asyncio
    async def test_win_records_everything(self, manager, oracle, ledger, learning, fake_redis) -> None:
        """Test that a WIN is saved and fed to the ledger and learning store."""
        oracle.check_market.return_value = PriceSettlement(
            settled=True, winning_outcome="Lakers", resolution_price=0.97
        )
        signal = create_signal()
        await manager.store_signal(signal)

        outcome = await manager.settle_signal("sig001", now=SETTLE_TIME)

        assert outcome == SignalOutcome.WIN
        stored = await manager.get_signal("sig001")
        assert stored.outcome == SignalOutcome.WIN
        assert stored.profit_pct == 150
        assert stored.settled_by == "polymarket"
        assert stored.settled_at == SETTLE_TIME
        assert fake_redis.ttls["signal_sig001"] == SETTLED_SIGNAL_TTL_SECONDS
        assert await manager.pending_ids() == []

        ledger.record_outcome.assert_has_awaits(
            [
                call(WALLET_A, "sig001", SignalOutcome.WIN, market=SLUG, now=SETTLE_TIME),
                call(WALLET_B, "sig001", SignalOutcome.WIN, market=SLUG, now=SETTLE_TIME),
            ]
        )
        learning.update_factor_stats.assert_awaited_once_with(
            signal.score_breakdown, SignalOutcome.WIN, now=SETTLE_TIME
        )
        learning.track_factor_combo.assert_awaited_once()
        learning.track_signal_metadata.assert_awaited_once_with(
            signal.learning_metadata(), SignalOutcome.WIN, now=SETTLE_TIME
        )

    @pytest.mark.asyncio
    async def test_loss_when_other_side_wins(self, manager, oracle) -> None:
        """Test that a verdict for the other team is a LOSS."""
        oracle.check_market.return_value = PriceSettlement(
            settled=True, winning_outcome="Celtics", resolution_price=0.98
        )
        await manager.store_signal(create_signal())

        assert await manager.settle_signal("sig001", now=SETTLE_TIME) == SignalOutcome.LOSS
        assert (await manager.get_signal("sig001")).profit_pct == -100

    @pytest.mark.asyncio
    async def test_unknown_feeds_nothing(self, manager, oracle, ledger, learning, fake_redis) -> None:
        """Test that an UNKNOWN verdict is terminal and not learned from."""
        oracle.check_market.return_value = PriceSettlement(
            settled=True, winning_outcome="UNKNOWN", note="Event 30h ago, ambiguous price"
        )
        await manager.store_signal(create_signal())

        outcome = await manager.settle_signal("sig001", now=SETTLE_TIME)

        assert outcome == SignalOutcome.UNKNOWN
        assert fake_redis.ttls["signal_sig001"] == PENDING_SIGNAL_TTL_SECONDS
        ledger.record_outcome.assert_not_awaited()
        learning.update_factor_stats.assert_not_awaited()
        assert await manager.pending_ids() == []

    @pytest.mark.asyncio
    async def test_settlement_is_idempotent(self, manager, oracle, ledger) -> None:
        """Test that a settled signal is never recorded twice."""
        oracle.check_market.return_value = PriceSettlement(
            settled=True, winning_outcome="Yes", resolution_price=0.97
        )
        await manager.store_signal(create_signal())

        first = await manager.settle_signal("sig001", now=SETTLE_TIME)
        second = await manager.settle_signal("sig001", now=SETTLE_TIME + timedelta(hours=1))

        assert first == second == SignalOutcome.WIN
        assert ledger.record_outcome.await_count == 2
        oracle.check_market.assert_awaited_once()


class TestProcessPending:
    """Tests for the batch settlement pass."""

    @pytest.mark.asyncio
    async def test_report_counts(self, manager, oracle) -> None:
        """Test the counters of a mixed pass."""
        await manager.store_signal(create_signal("win"))
        await manager.store_signal(create_signal("wait", market_slug="nba-mia-nyk-2026-01-15"))

        async def check(slug, detected_at, now):
            if slug == SLUG:
                return PriceSettlement(settled=True, winning_outcome="Yes", resolution_price=0.97)
            return PriceSettlement(settled=False)

        oracle.check_market.side_effect = check

        report = await manager.process_pending(now=SETTLE_TIME)

        assert (report.processed, report.wins, report.losses, report.unknown) == (1, 1, 0, 0)
        assert report.still_pending == 1
        assert await manager.pending_ids() == ["wait"]

    @pytest.mark.asyncio
    async def test_error_keeps_signal_pending(self, manager, oracle) -> None:
        """Test that a failing settlement is counted and retried later."""
        oracle.check_market.side_effect = RuntimeError("boom")
        await manager.store_signal(create_signal())

        report = await manager.process_pending(now=SETTLE_TIME)

        assert report.errors == 1
        assert report.processed == 0
        assert await manager.pending_ids() == ["sig001"]

    @pytest.mark.asyncio
    async def test_failed_effect_resumes_next_pass(
        self, manager, oracle, ledger, learning, fake_redis
    ) -> None:
        """Test that a failing learning update keeps the signal pending and resumes once."""
        oracle.check_market.return_value = PriceSettlement(
            settled=True, winning_outcome="Lakers", resolution_price=0.97
        )
        learning.update_factor_stats.side_effect = [RuntimeError("store down"), None]
        await manager.store_signal(create_signal())

        first = await manager.process_pending(now=SETTLE_TIME)

        assert first.errors == 1
        assert (await manager.get_signal("sig001")).is_pending
        assert await manager.pending_ids() == ["sig001"]
        assert fake_redis.data[EFFECTS_KEY_PREFIX + "sig001"] == '["wallets"]'
        learning.track_factor_combo.assert_not_awaited()

        second = await manager.process_pending(now=SETTLE_TIME + timedelta(hours=1))

        assert (second.processed, second.wins, second.errors) == (1, 1, 0)
        assert (await manager.get_signal("sig001")).outcome == SignalOutcome.WIN
        assert await manager.pending_ids() == []
        assert ledger.record_outcome.await_count == 2
        assert learning.update_factor_stats.await_count == 2
        assert learning.track_factor_combo.await_count == 1
        assert learning.track_signal_metadata.await_count == 1

    @pytest.mark.asyncio
    async def test_unsaved_settlement_stays_pending(
        self, manager, oracle, learning, fake_redis
    ) -> None:
        """Test that a settlement whose record cannot be written is retried without reapplying effects."""
        oracle.check_market.return_value = PriceSettlement(
            settled=True, winning_outcome="Lakers", resolution_price=0.97
        )
        await manager.store_signal(create_signal())
        original_set = fake_redis.set.side_effect

        async def failing_signal_write(key, value, ex=None):
            if key == "signal_sig001":
                raise RedisError("read only replica")
            return await original_set(key, value, ex=ex)

        fake_redis.set.side_effect = failing_signal_write
        report = await manager.process_pending(now=SETTLE_TIME)

        assert report.processed == 0
        assert await manager.pending_ids() == ["sig001"]

        fake_redis.set.side_effect = original_set
        await manager.process_pending(now=SETTLE_TIME)

        assert (await manager.get_signal("sig001")).outcome == SignalOutcome.WIN
        assert learning.update_factor_stats.await_count == 1

    @pytest.mark.asyncio
    async def test_drops_missing_ids(self, manager, fake_redis) -> None:
        """Test that ids without a stored signal leave the index."""
        await manager.store_signal(create_signal())
        del fake_redis.data["signal_sig001"]

        report = await manager.process_pending(now=SETTLE_TIME)

        assert report.processed == 0
        assert await manager.pending_ids() == []
        assert fake_redis.data[PENDING_INDEX_KEY] == "[]"


class TestScoreSettlement:
    """Tests for settlement from final scores."""

    @pytest.fixture
    def scores(self) -> AsyncMock:
        """Score oracle double."""
        return AsyncMock()

    @pytest.fixture
    def score_manager(self, fake_redis, ledger, learning, oracle, scores) -> SignalLifecycleManager:
        """Manager with the score oracle enabled."""
        return SignalLifecycleManager(
            fake_redis,
            wallet_ledger=ledger,
            learning_store=learning,
            settlement_oracle=oracle,
            score_oracle=scores,
            odds_enabled=True,
        )

    @pytest.mark.asyncio
    async def test_final_score_settles(self, score_manager, scores, oracle) -> None:
        """Test a moneyline WIN from the final score."""
        scores.find_game.return_value = GameResult(
            "Boston Celtics", "Los Angeles Lakers", True, home_score=102, away_score=110
        )
        await score_manager.store_signal(create_signal())

        outcome = await score_manager.settle_signal("sig001", now=SETTLE_TIME)

        assert outcome == SignalOutcome.WIN
        scores.find_game.assert_awaited_once_with("basketball_nba", "bos", "lal")
        oracle.check_market.assert_not_awaited()
        stored = await score_manager.get_signal("sig001")
        assert stored.settled_by == "odds-api"
        assert stored.game_score == "102-110"

    @pytest.mark.asyncio
    async def test_game_in_progress_stays_pending(self, score_manager, scores, oracle) -> None:
        """Test that an unfinished game does not fall back to prices."""
        scores.find_game.return_value = GameResult("Boston Celtics", "Los Angeles Lakers", False)
        await score_manager.store_signal(create_signal())

        assert await score_manager.settle_signal("sig001", now=SETTLE_TIME) is None
        oracle.check_market.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_missing_game_falls_back_to_price(self, score_manager, scores, oracle) -> None:
        """Test the price oracle fallback when no game matches."""
        scores.find_game.return_value = None
        oracle.check_market.return_value = PriceSettlement(
            settled=True, winning_outcome="No", resolution_price=0.96
        )
        await score_manager.store_signal(create_signal())

        assert await score_manager.settle_signal("sig001", now=SETTLE_TIME) == SignalOutcome.LOSS
        assert (await score_manager.get_signal("sig001")).settled_by == "polymarket"

    @pytest.mark.asyncio
    async def test_disabled_skips_scores(self, fake_redis, ledger, learning, oracle, scores) -> None:
        """Test that the score oracle is ignored unless enabled."""
        manager = SignalLifecycleManager(
            fake_redis,
            wallet_ledger=ledger,
            learning_store=learning,
            settlement_oracle=oracle,
            score_oracle=scores,
        )
        await manager.store_signal(create_signal())

        await manager.settle_signal("sig001", now=SETTLE_TIME)

        scores.find_game.assert_not_awaited()
