"""Tests for the learned AI multiplier."""

from unittest.mock import AsyncMock

import pytest

from polymarket_signal_engine.detector.ai_scorer import AIScoreAdjuster, compute_ai_multiplier
from polymarket_signal_engine.learning.models import FactorStat


def create_stat(wins: int, losses: int) -> FactorStat:
    """Create a factor stat with a consistent win rate."""
    total = wins + losses
    return FactorStat(
        wins=wins,
        losses=losses,
        win_rate=round(wins / total * 100) if total else 50,
        sample_size=total,
    )


class TestComputeAIMultiplier:
    """Tests for compute_ai_multiplier."""

    def test_no_history_is_neutral(self) -> None:
        """Test that unknown factors leave the score unchanged."""
        result = compute_ai_multiplier(72, ["whaleSize50k", "volumeHuge"], {})

        assert result.multiplier == 1.0
        assert result.ai_score == 72
        assert not result.should_hide

    def test_small_samples_ignored(self) -> None:
        """Test that factors below the minimum sample count are skipped."""
        stats = {"volumeHuge": create_stat(4, 0)}
        assert compute_ai_multiplier(50, ["volumeHuge"], stats).multiplier == 1.0

    def test_hot_factor_boost(self) -> None:
        """Test the boost for a factor winning 70%+ with full confidence."""
        stats = {"volumeHuge": create_stat(16, 4)}

        result = compute_ai_multiplier(50, ["volumeHuge"], stats)

        assert result.multiplier == 1.3
        assert result.ai_score == 65
        assert result.boost_reasons == ("volumeHuge(80%)",)

    def test_confidence_scales_boost(self) -> None:
        """Test that 10 samples give half the boost."""
        stats = {"volumeHuge": create_stat(8, 2)}
        assert compute_ai_multiplier(50, ["volumeHuge"], stats).multiplier == 1.15

    def test_cold_factor_penalty(self) -> None:
        """Test the penalty for a factor winning 25% or less."""
        stats = {"buyLongshot": create_stat(4, 16)}

        result = compute_ai_multiplier(50, ["buyLongshot"], stats)

        assert result.multiplier == 0.6
        assert result.ai_score == 30
        assert result.penalty_reasons == ("buyLongshot(20%)",)

    def test_market_type_evaluated(self) -> None:
        """Test that the market type counts as a factor."""
        stats = {"sports-nba": create_stat(16, 4)}
        result = compute_ai_multiplier(50, [], stats, market_type="sports-nba")
        assert result.multiplier == 1.3

    def test_faded_collapse_hides(self) -> None:
        """Test that a faded market type at 15% or less hides the signal."""
        stats = {"sports-mma": create_stat(2, 18)}

        result = compute_ai_multiplier(60, ["whaleSize5k"], stats, market_type="sports-mma")

        assert result.should_hide
        assert result.multiplier == 0.4

    def test_unfaded_collapse_does_not_hide(self) -> None:
        """Test that a collapsed factor outside the fade list only penalizes."""
        stats = {"sports-nba": create_stat(2, 18)}
        result = compute_ai_multiplier(60, [], stats, market_type="sports-nba")
        assert not result.should_hide

    def test_multiplier_bounds(self) -> None:
        """Test that the multiplier stays within [0.3, 2.0]."""
        hot = {f"f{i}": create_stat(20, 0) for i in range(5)}
        cold = {f"f{i}": create_stat(0, 20) for i in range(5)}

        high = compute_ai_multiplier(50, list(hot), hot)
        low = compute_ai_multiplier(50, list(cold), cold)

        assert high.multiplier == 2.0
        assert high.ai_score == 100
        assert low.multiplier == 0.3
        assert low.ai_score == 15

    def test_winning_wallet_overrides(self) -> None:
        """Test that a winning wallet clears hide and floors the multiplier at 1."""
        stats = {"sports-mma": create_stat(1, 19)}

        result = compute_ai_multiplier(
            60, ["whaleSize5k"], stats, market_type="sports-mma", has_winning_wallet=True
        )

        assert not result.should_hide
        assert result.multiplier == 1.0
        assert result.ai_score == 60

    def test_winning_wallet_not_duplicated(self) -> None:
        """Test that winningWallet already in the factors is evaluated once."""
        stats = {"winningWallet": create_stat(16, 4)}

        result = compute_ai_multiplier(
            50, ["winningWallet"], stats, has_winning_wallet=True
        )

        assert result.multiplier == 1.3


class TestAIScoreAdjuster:
    """Tests for AIScoreAdjuster."""

    @pytest.mark.asyncio
    async def test_loads_stats_from_store(self) -> None:
        """Test that factor stats are loaded when not supplied."""
        store = AsyncMock()
        store.get_factor_stats.return_value = {"volumeHuge": create_stat(16, 4)}
        adjuster = AIScoreAdjuster(store)

        result = await adjuster.adjust(50, ["volumeHuge"])

        assert result.ai_score == 65
        store.get_factor_stats.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_uses_given_stats(self) -> None:
        """Test that preloaded stats skip the store."""
        store = AsyncMock()
        adjuster = AIScoreAdjuster(store, fade_factors=("sports-nba",))

        result = await adjuster.adjust(
            50,
            [],
            market_type="sports-nba",
            factor_stats={"sports-nba": create_stat(1, 19)},
        )

        assert result.should_hide
        store.get_factor_stats.assert_not_awaited()
