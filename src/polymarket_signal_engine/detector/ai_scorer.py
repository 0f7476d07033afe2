"""Learned multiplier applied on top of the heuristic score.

Each factor of a signal (plus its market type and, when present, the
winning-wallet marker) is looked up in the learned factor statistics. Hot
factors boost the score, cold factors penalize it, and a collapse of a
factor on the fade list hides the signal entirely.

Multiplier per factor with ``n`` settled samples and ``c = min(1, n / 20)``:

    win_rate >= 70  ->  x (1 + 0.3c)
    win_rate >= 55  ->  x (1 + 0.1c)
    win_rate <= 15  ->  x (0.4c + 1 - c), hide if the factor is faded
    win_rate <= 25  ->  x (0.6c + 1 - c)
    win_rate <= 35  ->  x (0.8c + 1 - c)

The product is clamped to [0.3, 2.0]. A winning wallet then forces the
multiplier to at least 1 and clears the hide flag.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping, Sequence
from typing import TYPE_CHECKING

from polymarket_signal_engine.detector.models import AIScoreResult
from polymarket_signal_engine.detector.scorer import WINNING_WALLET_FACTOR
from polymarket_signal_engine.rounding import round_half_up

if TYPE_CHECKING:
    from polymarket_signal_engine.learning.models import FactorStat
    from polymarket_signal_engine.learning.store import FactorLearningStore

logger = logging.getLogger(__name__)

# Default configuration
DEFAULT_MIN_SAMPLES = 5
DEFAULT_FADE_FACTORS: tuple[str, ...] = ("sports-mma",)
CONFIDENCE_SAMPLES = 20
MIN_MULTIPLIER = 0.3
MAX_MULTIPLIER = 2.0


def _penalty(strength: float, confidence: float) -> float:
    return strength * confidence + (1 - confidence)


def compute_ai_multiplier(
    base_score: int,
    factor_names: Sequence[str],
    factor_stats: Mapping[str, FactorStat],
    *,
    market_type: str | None = None,
    has_winning_wallet: bool = False,
    fade_factors: Iterable[str] = DEFAULT_FADE_FACTORS,
    min_samples: int = DEFAULT_MIN_SAMPLES,
) -> AIScoreResult:
    """Apply learned factor performance to a base score.

    Args:
        base_score: Heuristic score in [0, 100].
        factor_names: Names of the factors that fired.
        factor_stats: Learned statistics keyed by factor name.
        market_type: Market type, evaluated as one more factor.
        has_winning_wallet: True if a proven winner is in the top trades.
        fade_factors: Factors whose collapse hides the signal.
        min_samples: Factors with fewer settled samples are ignored.

    Returns:
        AIScoreResult with the rounded multiplier and adjusted score.
    """
    names = list(factor_names)
    if market_type:
        names.append(market_type)
    if has_winning_wallet and WINNING_WALLET_FACTOR not in names:
        names.append(WINNING_WALLET_FACTOR)
    faded = {f.lower() for f in fade_factors}

    multiplier = 1.0
    should_hide = False
    boosts: list[str] = []
    penalties: list[str] = []

    for name in names:
        stat = factor_stats.get(name)
        if stat is None or stat.total < min_samples:
            continue
        win_rate = stat.win_rate
        confidence = min(1.0, stat.total / CONFIDENCE_SAMPLES)

        if win_rate >= 70:
            multiplier *= 1 + 0.3 * confidence
            boosts.append(f"{name}({win_rate}%)")
        elif win_rate >= 55:
            multiplier *= 1 + 0.1 * confidence
        elif win_rate <= 15:
            multiplier *= _penalty(0.4, confidence)
            penalties.append(f"{name}({win_rate}%)")
            if name.lower() in faded:
                should_hide = True
        elif win_rate <= 25:
            multiplier *= _penalty(0.6, confidence)
            penalties.append(f"{name}({win_rate}%)")
        elif win_rate <= 35:
            multiplier *= _penalty(0.8, confidence)

    multiplier = max(MIN_MULTIPLIER, min(MAX_MULTIPLIER, multiplier))
    if has_winning_wallet:
        should_hide = False
        multiplier = max(multiplier, 1.0)

    return AIScoreResult(
        ai_score=round_half_up(base_score * multiplier),
        multiplier=round(multiplier, 2),
        should_hide=should_hide,
        boost_reasons=tuple(boosts),
        penalty_reasons=tuple(penalties),
    )


class AIScoreAdjuster:
    """Reads learned factor statistics and applies the multiplier.

    Example:
        ```python
        adjuster = AIScoreAdjuster(learning_store)
        result = await adjuster.adjust(72, ["whaleSize50k", "volumeHuge"], market_type="sports-nba")
        if not result.should_hide:
            print(result.ai_score, result.multiplier)
        ```
    """

    def __init__(
        self,
        learning_store: FactorLearningStore,
        *,
        fade_factors: Iterable[str] = DEFAULT_FADE_FACTORS,
        min_samples: int = DEFAULT_MIN_SAMPLES,
    ) -> None:
        self._learning = learning_store
        self._fade_factors = tuple(fade_factors)
        self._min_samples = min_samples

    async def adjust(
        self,
        base_score: int,
        factor_names: Sequence[str],
        *,
        market_type: str | None = None,
        has_winning_wallet: bool = False,
        factor_stats: Mapping[str, FactorStat] | None = None,
    ) -> AIScoreResult:
        """Compute the AI score, loading factor statistics unless given."""
        if factor_stats is None:
            factor_stats = await self._learning.get_factor_stats()
        result = compute_ai_multiplier(
            base_score,
            factor_names,
            factor_stats,
            market_type=market_type,
            has_winning_wallet=has_winning_wallet,
            fade_factors=self._fade_factors,
            min_samples=self._min_samples,
        )
        if result.should_hide:
            logger.debug(
                "Signal hidden by weak factors: %s",
                ", ".join(result.penalty_reasons),
            )
        return result
