"""Historical confidence estimate for a freshly scored signal.

The estimate is a weighted mean of the win rates the learning store has
observed for the signal's factors and metadata buckets:

    factors (weighted by learned weight, n >= 3)   x 3
    market type (n >= 5)                           x 1
    volume bracket (n >= 5)                        x 1
    time-of-day block (n >= 5)                     x 0.5
    first event-timing pattern present (n >= 5)    x 1.5
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from datetime import datetime
from typing import TYPE_CHECKING, Any

from polymarket_signal_engine.detector.models import (
    ConfidenceComponent,
    ConfidenceResult,
    factor_names,
)
from polymarket_signal_engine.learning.buckets import TIMING_FACTOR_NAMES, time_block, volume_bracket
from polymarket_signal_engine.rounding import round_half_up

if TYPE_CHECKING:
    from polymarket_signal_engine.learning.models import PatternStat
    from polymarket_signal_engine.learning.store import FactorLearningStore, LearningSnapshot

logger = logging.getLogger(__name__)

# Default configuration
FACTOR_MIN_SAMPLES = 3
PATTERN_MIN_SAMPLES = 5
FACTOR_COMPONENT_WEIGHT = 3.0
MARKET_TYPE_COMPONENT_WEIGHT = 1.0
VOLUME_COMPONENT_WEIGHT = 1.0
TIME_COMPONENT_WEIGHT = 0.5
EVENT_TIMING_COMPONENT_WEIGHT = 1.5

MIN_CONFIDENCE = 40
MAX_CONFIDENCE = 95
HISTORY_BLEND = 0.6
MAX_WALLET_BOOST = 15


def _pattern_component(
    source: str,
    pattern: PatternStat | None,
    weight: float,
    min_samples: int,
) -> ConfidenceComponent | None:
    if pattern is None or pattern.total < min_samples:
        return None
    return ConfidenceComponent(source=source, confidence=pattern.win_rate, weight=weight)


def estimate_confidence(
    snapshot: LearningSnapshot,
    factors: Sequence[Any],
    *,
    market_type: str | None = None,
    total_volume: float = 0.0,
    detected_at: datetime | None = None,
    factor_min_samples: int = FACTOR_MIN_SAMPLES,
    pattern_min_samples: int = PATTERN_MIN_SAMPLES,
) -> ConfidenceResult | None:
    """Weighted-mean confidence from a learning snapshot.

    Args:
        snapshot: Factor statistics and pattern maps.
        factors: Factor names or breakdown entries of the signal.
        market_type: Market type of the signal.
        total_volume: Total market volume in USD.
        detected_at: Time the signal was detected.
        factor_min_samples: Samples a factor needs before it counts.
        pattern_min_samples: Samples a pattern bucket needs before it counts.

    Returns:
        ConfidenceResult, or None when no component has enough history.
    """
    names = factor_names(factors)
    components: list[ConfidenceComponent] = []

    total_weight = 0.0
    weighted_win_rate = 0.0
    for name in names:
        stat = snapshot.factor_stats.get(name)
        if stat is None or stat.sample_size < factor_min_samples:
            continue
        weight = stat.weight or 1.0
        total_weight += weight
        weighted_win_rate += stat.win_rate * weight
    if total_weight > 0:
        components.append(
            ConfidenceComponent(
                source="factors",
                confidence=round_half_up(weighted_win_rate / total_weight),
                weight=FACTOR_COMPONENT_WEIGHT,
            )
        )

    candidates: list[ConfidenceComponent | None] = []
    if market_type:
        candidates.append(
            _pattern_component(
                "market_type",
                snapshot.market_types.get(market_type),
                MARKET_TYPE_COMPONENT_WEIGHT,
                pattern_min_samples,
            )
        )
    if total_volume > 0:
        candidates.append(
            _pattern_component(
                "volume",
                snapshot.volume_brackets.get(volume_bracket(total_volume)),
                VOLUME_COMPONENT_WEIGHT,
                pattern_min_samples,
            )
        )
    if detected_at is not None:
        candidates.append(
            _pattern_component(
                "time",
                snapshot.time_patterns.get(time_block(detected_at)),
                TIME_COMPONENT_WEIGHT,
                pattern_min_samples,
            )
        )
    components.extend(c for c in candidates if c is not None)

    for timing_name in TIMING_FACTOR_NAMES:
        if timing_name not in names:
            continue
        timing = _pattern_component(
            "event_timing",
            snapshot.candidates.get(timing_name),
            EVENT_TIMING_COMPONENT_WEIGHT,
            pattern_min_samples,
        )
        if timing is not None:
            components.append(timing)
            break

    if not components:
        return None

    weight_sum = sum(c.weight for c in components)
    mean = sum(c.confidence * c.weight for c in components) / weight_sum
    return ConfidenceResult(
        confidence=max(0, min(100, round_half_up(mean))),
        components=tuple(components),
    )


def blend_confidence(
    ai_score: int,
    estimate: ConfidenceResult | None,
    *,
    winner_win_rate: int | None = None,
    history_blend: float = HISTORY_BLEND,
) -> int:
    """Final signal confidence in [40, 95].

    The baseline is derived from the AI score and boosted for a winning
    wallet; a historical estimate, when available, is blended in with
    weight ``history_blend`` (60% by default).
    """
    confidence = round_half_up(50 + ai_score / 100 * 25)
    if winner_win_rate is not None:
        confidence += min(MAX_WALLET_BOOST, round_half_up((winner_win_rate - 50) / 3))
    if estimate is not None and estimate.data_points >= 1:
        confidence = round_half_up(
            estimate.confidence * history_blend + confidence * (1 - history_blend)
        )
    return max(MIN_CONFIDENCE, min(MAX_CONFIDENCE, confidence))


class ConfidenceEstimator:
    """Confidence estimates backed by the factor learning store.

    Example:
        ```python
        estimator = ConfidenceEstimator(learning_store)
        estimate = await estimator.estimate(
            ["whaleSize50k", "volumeHuge", "sports-nba"],
            market_type="sports-nba",
            total_volume=620_000,
            detected_at=window.first_trade_time,
        )
        confidence = blend_confidence(ai_score, estimate)
        ```
    """

    def __init__(
        self,
        learning_store: FactorLearningStore,
        *,
        factor_min_samples: int = FACTOR_MIN_SAMPLES,
        pattern_min_samples: int = PATTERN_MIN_SAMPLES,
    ) -> None:
        self._learning = learning_store
        self._factor_min_samples = factor_min_samples
        self._pattern_min_samples = pattern_min_samples

    async def estimate(
        self,
        factors: Sequence[Any],
        *,
        market_type: str | None = None,
        total_volume: float = 0.0,
        detected_at: datetime | None = None,
    ) -> ConfidenceResult | None:
        """Load the learning snapshot and estimate confidence."""
        snapshot = await self._learning.load_snapshot()
        result = estimate_confidence(
            snapshot,
            factors,
            market_type=market_type,
            total_volume=total_volume,
            detected_at=detected_at,
            factor_min_samples=self._factor_min_samples,
            pattern_min_samples=self._pattern_min_samples,
        )
        if result is not None:
            logger.debug(
                "Confidence %d from %d components", result.confidence, result.data_points
            )
        return result
