"""Settlement-driven factor learning.

The store keeps per-factor win/loss statistics with a learned weight, a set
of metadata pattern maps (market type, volume bracket, time of day, wallet
count, event timing), the list of patterns auto-promoted to factors, and
statistics for every unordered factor pair.

All state lives in Redis as JSON documents. Every read and write goes
through ``JsonStore``, so an unavailable store reads as "no data" and never
blocks scoring or settlement.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass, field
from datetime import UTC, datetime
from itertools import combinations
from typing import Any, TypeVar

from redis.asyncio import Redis

from polymarket_signal_engine.detector.models import factor_names
from polymarket_signal_engine.learning.buckets import (
    event_timing_factor,
    hours_before_event,
    time_block,
    volume_bracket,
    wallet_count_bucket,
    weekday_pattern,
)
from polymarket_signal_engine.learning.models import (
    FactorCombo,
    FactorStat,
    PatternStat,
    SignalMetadata,
    clamp_weight,
    combo_key,
    performance_weight,
)
from polymarket_signal_engine.outcomes import SignalOutcome
from polymarket_signal_engine.rounding import round_half_up
from polymarket_signal_engine.storage.kv import JsonStore, ttl_days

logger = logging.getLogger(__name__)

# Storage keys
FACTOR_STATS_KEY = "factor_stats_v2"
PATTERN_CANDIDATES_KEY = "pattern_candidates"
MARKET_TYPE_STATS_KEY = "market_type_stats"
VOLUME_BRACKETS_KEY = "volume_brackets"
TIME_PATTERNS_KEY = "time_patterns"
DISCOVERED_PATTERNS_KEY = "discovered_patterns"
FACTOR_COMBOS_KEY = "factor_combos_v1"
LEARNING_TTL_SECONDS = ttl_days(90)

# Default configuration
DEFAULT_FULL_CONFIDENCE_SAMPLES = 10
DEFAULT_PROMOTION_MIN_SAMPLES = 10
DEFAULT_PROMOTION_HIGH_WIN_RATE = 60
DEFAULT_PROMOTION_LOW_WIN_RATE = 35
DEFAULT_COMBO_MIN_SAMPLES = 2
DEFAULT_DISCOVERED_CATEGORY = "auto_discovered"

# View thresholds
NEAR_PROMOTION_MIN_SAMPLES = 5
COMBO_VIEW_MIN_SAMPLES = 3
COMBO_BEST_WIN_RATE = 60
COMBO_WORST_WIN_RATE = 40
COMBO_VIEW_LIMIT = 10
STRONG_COMBO_MIN_SAMPLES = 5
RECOMMENDATION_MIN_FACTORS = 3
RECOMMENDATION_MIN_SAMPLES = 3

WALLET_COUNT_CATEGORY = "wallet_count"
EVENT_TIMING_CATEGORY = "event_timing"

# (minimum average win rate, message), checked in order
RECOMMENDATION_BANDS: tuple[tuple[float, str], ...] = (
    (60, "System is running hot! High confidence in signals with top factors."),
    (55, "System performing above average. Follow signals with strong factor combinations."),
    (45, "System at baseline. Be selective - prioritize signals with proven factors."),
    (35, "System underperforming. Consider waiting or fading weak signals."),
)
RECOMMENDATION_FLOOR = "System in drawdown. Recommend pausing until patterns stabilize."

T = TypeVar("T")


@dataclass
class LearningSnapshot:
    """Everything the confidence estimator reads, loaded in one pass."""

    factor_stats: dict[str, FactorStat] = field(default_factory=dict)
    market_types: dict[str, PatternStat] = field(default_factory=dict)
    volume_brackets: dict[str, PatternStat] = field(default_factory=dict)
    time_patterns: dict[str, PatternStat] = field(default_factory=dict)
    candidates: dict[str, PatternStat] = field(default_factory=dict)


def _parse_map(raw: Any, factory: Callable[[dict[str, Any]], T]) -> dict[str, T]:
    if not isinstance(raw, dict):
        return {}
    parsed: dict[str, T] = {}
    for name, entry in raw.items():
        if not isinstance(entry, dict):
            continue
        try:
            parsed[str(name)] = factory(entry)
        except (TypeError, ValueError) as e:
            logger.debug("Skipping malformed entry %s: %s", name, e)
    return parsed


def _dump_map(entries: dict[str, Any]) -> dict[str, dict[str, Any]]:
    return {name: entry.to_dict() for name, entry in entries.items()}


class FactorLearningStore:
    """Online learning of factor weights and metadata patterns.

    Example:
        ```python
        store = FactorLearningStore(redis)
        await store.update_factor_stats(["whaleSize100k", "volumeHuge"], SignalOutcome.WIN)
        stats = await store.get_factor_stats()
        print(stats["volumeHuge"].weight)
        ```
    """

    def __init__(
        self,
        redis: Redis,
        *,
        full_confidence_samples: int = DEFAULT_FULL_CONFIDENCE_SAMPLES,
        promotion_min_samples: int = DEFAULT_PROMOTION_MIN_SAMPLES,
        promotion_high_win_rate: int = DEFAULT_PROMOTION_HIGH_WIN_RATE,
        promotion_low_win_rate: int = DEFAULT_PROMOTION_LOW_WIN_RATE,
        combo_min_samples: int = DEFAULT_COMBO_MIN_SAMPLES,
    ) -> None:
        """Initialize the store.

        Args:
            redis: Async Redis client.
            full_confidence_samples: Samples after which a weight fully tracks its win rate.
            promotion_min_samples: Samples a pattern needs before promotion.
            promotion_high_win_rate: Win rate at or above which a pattern is promoted.
            promotion_low_win_rate: Win rate at or below which a pattern is promoted.
            combo_min_samples: Factor pairs with fewer samples are pruned on rewrite.
        """
        self._store = JsonStore(redis)
        self._full_confidence_samples = full_confidence_samples
        self._promotion_min_samples = promotion_min_samples
        self._promotion_high = promotion_high_win_rate
        self._promotion_low = promotion_low_win_rate
        self._combo_min_samples = combo_min_samples

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def get_factor_stats(self) -> dict[str, FactorStat]:
        """All factor statistics keyed by factor name."""
        return _parse_map(await self._store.get_json(FACTOR_STATS_KEY), FactorStat.from_dict)

    async def _get_patterns(self, key: str) -> dict[str, PatternStat]:
        return _parse_map(await self._store.get_json(key), PatternStat.from_dict)

    async def _get_discovered(self) -> list[str]:
        raw = await self._store.get_json(DISCOVERED_PATTERNS_KEY)
        if not isinstance(raw, list):
            return []
        return [str(name) for name in raw]

    async def _get_combos(self) -> dict[str, FactorCombo]:
        raw = await self._store.get_json(FACTOR_COMBOS_KEY)
        if not isinstance(raw, dict):
            return {}
        combos: dict[str, FactorCombo] = {}
        for key, entry in raw.items():
            if isinstance(entry, dict):
                combo = FactorCombo.from_dict(str(key), entry)
                combos[combo.key] = combo
        return combos

    async def load_snapshot(self) -> LearningSnapshot:
        """Load factor stats and every pattern map."""
        return LearningSnapshot(
            factor_stats=await self.get_factor_stats(),
            market_types=await self._get_patterns(MARKET_TYPE_STATS_KEY),
            volume_brackets=await self._get_patterns(VOLUME_BRACKETS_KEY),
            time_patterns=await self._get_patterns(TIME_PATTERNS_KEY),
            candidates=await self._get_patterns(PATTERN_CANDIDATES_KEY),
        )

    # ------------------------------------------------------------------
    # Settlement updates
    # ------------------------------------------------------------------

    async def update_factor_stats(
        self,
        factors: Iterable[Any],
        outcome: SignalOutcome,
        *,
        now: datetime | None = None,
    ) -> dict[str, FactorStat] | None:
        """Count a settled outcome against every factor of a signal.

        Args:
            factors: Factor names or stored breakdown entries.
            outcome: WIN or LOSS.
            now: Update time (defaults to the current UTC time).

        Returns:
            The updated statistics, or None if there was nothing to update.
        """
        names = factor_names(factors)
        if not names or not outcome.is_decisive:
            return None
        now = now or datetime.now(UTC)

        stats = await self.get_factor_stats()
        for name in names:
            stat = stats.setdefault(name, FactorStat())
            stat.record(outcome, now=now, full_confidence_samples=self._full_confidence_samples)

        await self._store.set_json(FACTOR_STATS_KEY, _dump_map(stats), ex=LEARNING_TTL_SECONDS)
        logger.debug("Updated %d factor stats with %s", len(names), outcome.value)
        return stats

    async def track_signal_metadata(
        self,
        meta: SignalMetadata,
        outcome: SignalOutcome,
        *,
        now: datetime | None = None,
    ) -> list[str]:
        """Update every pattern map for a settled signal, then run discovery.

        Returns:
            Names of patterns promoted by the discovery pass.
        """
        if not outcome.is_decisive:
            return []

        if meta.market_type:
            market_types = await self._get_patterns(MARKET_TYPE_STATS_KEY)
            market_types.setdefault(meta.market_type, PatternStat()).record(outcome)
            await self._write_patterns(MARKET_TYPE_STATS_KEY, market_types)

        brackets = await self._get_patterns(VOLUME_BRACKETS_KEY)
        brackets.setdefault(volume_bracket(meta.total_volume), PatternStat()).record(outcome)
        await self._write_patterns(VOLUME_BRACKETS_KEY, brackets)

        if meta.detected_at is not None:
            time_patterns = await self._get_patterns(TIME_PATTERNS_KEY)
            for pattern in (time_block(meta.detected_at), weekday_pattern(meta.detected_at)):
                time_patterns.setdefault(pattern, PatternStat()).record(outcome)
            await self._write_patterns(TIME_PATTERNS_KEY, time_patterns)

        candidates = await self._get_patterns(PATTERN_CANDIDATES_KEY)
        bucket = wallet_count_bucket(meta.wallet_count)
        candidates.setdefault(bucket, PatternStat(category=WALLET_COUNT_CATEGORY)).record(outcome)

        hours = hours_before_event(meta.market_slug, meta.last_trade_time or meta.detected_at)
        if hours is not None:
            timing_name, _, _ = event_timing_factor(hours)
            candidates.setdefault(
                timing_name, PatternStat(category=EVENT_TIMING_CATEGORY)
            ).record(outcome)
        await self._write_patterns(PATTERN_CANDIDATES_KEY, candidates)

        return await self.discover_new_patterns(now=now)

    async def _write_patterns(self, key: str, patterns: dict[str, PatternStat]) -> None:
        await self._store.set_json(key, _dump_map(patterns), ex=LEARNING_TTL_SECONDS)

    async def _all_patterns(self) -> dict[str, PatternStat]:
        # Later maps override earlier ones on name collisions.
        merged: dict[str, PatternStat] = {}
        for key in (
            PATTERN_CANDIDATES_KEY,
            TIME_PATTERNS_KEY,
            VOLUME_BRACKETS_KEY,
            MARKET_TYPE_STATS_KEY,
        ):
            merged.update(await self._get_patterns(key))
        return merged

    async def discover_new_patterns(self, *, now: datetime | None = None) -> list[str]:
        """Promote strong patterns to factors.

        A pattern is promoted once it has enough samples and a win rate at
        or beyond either promotion threshold. Patterns that already exist
        as factors are left alone, so promotion happens at most once.

        Returns:
            Names promoted in this pass.
        """
        now = now or datetime.now(UTC)
        patterns = await self._all_patterns()
        stats = await self.get_factor_stats()
        discovered = await self._get_discovered()

        promoted: list[str] = []
        for name, pattern in patterns.items():
            if name in stats or pattern.total < self._promotion_min_samples:
                continue
            if self._promotion_low < pattern.win_rate < self._promotion_high:
                continue
            stats[name] = FactorStat(
                wins=pattern.wins,
                losses=pattern.losses,
                win_rate=pattern.win_rate,
                weight=clamp_weight(performance_weight(pattern.win_rate)),
                sample_size=pattern.total,
                last_updated=now,
                is_discovered=True,
                discovered_at=now,
                category=pattern.category or DEFAULT_DISCOVERED_CATEGORY,
            )
            if name not in discovered:
                discovered.append(name)
            promoted.append(name)
            logger.info(
                "Discovered new pattern: %s (%d%% over %d samples)",
                name,
                pattern.win_rate,
                pattern.total,
            )

        if promoted:
            await self._store.set_json(FACTOR_STATS_KEY, _dump_map(stats), ex=LEARNING_TTL_SECONDS)
            await self._store.set_json(DISCOVERED_PATTERNS_KEY, discovered, ex=LEARNING_TTL_SECONDS)
        return promoted

    async def track_factor_combo(
        self,
        factors: Iterable[Any],
        outcome: SignalOutcome,
        *,
        now: datetime | None = None,
    ) -> dict[str, FactorCombo] | None:
        """Count a settled outcome against every unordered pair of factors.

        Pairs below the minimum sample count are pruned on every rewrite.
        With the default of 2, a pair seen for the first time is not kept.
        """
        names = factor_names(factors)
        if len(names) < 2 or not outcome.is_decisive:
            return None
        now = now or datetime.now(UTC)

        combos = await self._get_combos()
        for first, second in combinations(names, 2):
            key = combo_key(first, second)
            combo = combos.get(key)
            if combo is None:
                a, b = sorted((first, second))
                combo = FactorCombo(factors=(a, b))
                combos[key] = combo
            combo.record(outcome, now=now)

        pruned = {k: c for k, c in combos.items() if c.total >= self._combo_min_samples}
        await self._store.set_json(
            FACTOR_COMBOS_KEY,
            {k: c.to_dict() for k, c in pruned.items()},
            ex=LEARNING_TTL_SECONDS,
        )
        return pruned

    # ------------------------------------------------------------------
    # Views
    # ------------------------------------------------------------------

    async def get_factor_combos(self) -> dict[str, Any]:
        """Best and worst factor pairs with enough data."""
        combos = await self._get_combos()
        ranked = sorted(
            (c for c in combos.values() if c.total >= COMBO_VIEW_MIN_SAMPLES),
            key=lambda c: c.win_rate,
            reverse=True,
        )
        rows = [{"name": c.key, **c.to_dict()} for c in ranked]
        worst = [r for r in rows if r["win_rate"] <= COMBO_WORST_WIN_RATE][-COMBO_VIEW_LIMIT:]
        return {
            "combos": rows,
            "best_combos": [r for r in rows if r["win_rate"] >= COMBO_BEST_WIN_RATE][
                :COMBO_VIEW_LIMIT
            ],
            "worst_combos": list(reversed(worst)),
            "total_tracked": len(combos),
        }

    async def has_strong_combo(self, factors: Sequence[Any]) -> dict[str, Any] | None:
        """The best-performing proven pair among a signal's factors, if any."""
        names = factor_names(factors)
        if len(names) < 2:
            return None
        combos = await self._get_combos()

        best: FactorCombo | None = None
        for first, second in combinations(names, 2):
            combo = combos.get(combo_key(first, second))
            if combo is None or combo.total < STRONG_COMBO_MIN_SAMPLES:
                continue
            if combo.win_rate > (best.win_rate if best else 0):
                best = combo
        if best is None:
            return None
        return {"combo": best.key, "win_rate": best.win_rate, "record": best.record_label}

    async def get_discovered_patterns(self) -> dict[str, Any]:
        """Promoted patterns, patterns near promotion, and tracking counts."""
        discovered = await self._get_discovered()
        candidates = await self._get_patterns(PATTERN_CANDIDATES_KEY)
        time_patterns = await self._get_patterns(TIME_PATTERNS_KEY)
        brackets = await self._get_patterns(VOLUME_BRACKETS_KEY)
        market_types = await self._get_patterns(MARKET_TYPE_STATS_KEY)

        merged = {**candidates, **time_patterns, **brackets, **market_types}
        near = [
            {
                "name": name,
                **pattern.to_dict(),
                "samples_needed": self._promotion_min_samples - pattern.total,
            }
            for name, pattern in merged.items()
            if NEAR_PROMOTION_MIN_SAMPLES <= pattern.total < self._promotion_min_samples
        ]
        near.sort(key=lambda row: row["win_rate"], reverse=True)

        return {
            "promoted_patterns": discovered,
            "near_promotion": near,
            "all_tracking": {
                "candidates": len(candidates),
                "time_patterns": len(time_patterns),
                "volume_brackets": len(brackets),
                "market_types": len(market_types),
            },
        }

    async def get_ai_recommendation(self) -> dict[str, Any]:
        """Summarize current factor performance into a recommendation."""
        stats = await self.get_factor_stats()
        patterns = await self.get_discovered_patterns()

        if len(stats) < RECOMMENDATION_MIN_FACTORS:
            return {
                "has_recommendation": False,
                "message": "Need more data to generate recommendations",
                "patterns_tracking": patterns["all_tracking"],
            }

        ranked = sorted(
            ((name, s) for name, s in stats.items() if s.total >= RECOMMENDATION_MIN_SAMPLES),
            key=lambda item: item[1].win_rate,
            reverse=True,
        )
        if len(ranked) < 2:
            return {
                "has_recommendation": False,
                "message": "Need more settled bets to generate recommendations",
                "patterns_tracking": patterns["all_tracking"],
            }

        def summarize(name: str, stat: FactorStat) -> dict[str, Any]:
            return {
                "name": name,
                "win_rate": stat.win_rate,
                "record": f"{stat.wins}W-{stat.losses}L",
                "is_discovered": stat.is_discovered,
            }

        avg_win_rate = sum(s.win_rate for _, s in ranked) / len(ranked)
        message = RECOMMENDATION_FLOOR
        for floor, band_message in RECOMMENDATION_BANDS:
            if avg_win_rate >= floor:
                message = band_message
                break

        discovered_count = sum(1 for s in stats.values() if s.is_discovered)
        return {
            "has_recommendation": True,
            "overall_confidence": round_half_up(avg_win_rate),
            "best_factors": [summarize(n, s) for n, s in ranked[:3]],
            "worst_factors": [summarize(n, s) for n, s in reversed(ranked[-3:])],
            "recommendation": message,
            "total_factors_tracked": len(stats),
            "factors_with_data": len(ranked),
            "discovered_count": discovered_count,
            "core_factors_count": len(stats) - discovered_count,
            "patterns_near_promotion": patterns["near_promotion"][:3],
            "patterns_tracking": patterns["all_tracking"],
        }
