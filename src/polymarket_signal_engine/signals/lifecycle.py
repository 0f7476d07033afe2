"""Signal persistence and settlement.

A signal is stored when a scan emits it and stays on the pending index until
it settles. Settlement is attempted in order:

1. Signals whose event has not started stay pending.
2. The score oracle, for sports it covers, settles from the final score.
3. The price oracle settles from the latest trade price on the market.

A WIN or LOSS feeds the wallet ledger and the learning store before the
settled record is written, so a failed effect leaves the signal pending. An
UNKNOWN outcome is terminal and feeds nothing.

Storage layout:
    signal_<id>              signal record (7 days pending/unknown, 30 days settled)
    pending_signals_v2       ids awaiting settlement (30 days)
    settlement_effects_<id>  effect groups already applied for a signal (30 days)
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

from redis.asyncio import Redis

from polymarket_signal_engine.ingestor.classifier import MarketClassifier
from polymarket_signal_engine.outcomes import SignalOutcome
from polymarket_signal_engine.signals.models import SettlementReport, Signal, profit_pct
from polymarket_signal_engine.signals.settlement import evaluate_game_result
from polymarket_signal_engine.storage.kv import JsonStore, ttl_days

if TYPE_CHECKING:
    from polymarket_signal_engine.interfaces import ScoreOracle, SettlementOracle
    from polymarket_signal_engine.learning.store import FactorLearningStore
    from polymarket_signal_engine.profiler.ledger import WalletLedger

logger = logging.getLogger(__name__)

# Storage keys
SIGNAL_KEY_PREFIX = "signal_"
PENDING_INDEX_KEY = "pending_signals_v2"
EFFECTS_KEY_PREFIX = "settlement_effects_"

PENDING_SIGNAL_TTL_SECONDS = ttl_days(7)
SETTLED_SIGNAL_TTL_SECONDS = ttl_days(30)
PENDING_INDEX_TTL_SECONDS = ttl_days(30)
EFFECTS_TTL_SECONDS = ttl_days(30)

# Default configuration
DEFAULT_PENDING_INDEX_CAP = 300

SETTLED_BY_SCORES = "odds-api"
SETTLED_BY_PRICE = "polymarket"

# Settlement effect groups, applied in this order
EFFECT_WALLETS = "wallets"
EFFECT_FACTORS = "factors"
EFFECT_COMBOS = "combos"
EFFECT_METADATA = "metadata"


@dataclass(frozen=True)
class _Resolution:
    """Settlement decision; a None outcome means the signal stays pending."""

    outcome: SignalOutcome | None
    settled_by: str
    game_score: str | None = None


class SignalLifecycleManager:
    """Stores signals and drives them from pending to settled.

    Example:
        ```python
        manager = SignalLifecycleManager(
            redis,
            wallet_ledger=ledger,
            learning_store=learning,
            settlement_oracle=PriceSettlementOracle(client),
        )
        await manager.store_signal(signal)
        report = await manager.process_pending()
        print(report.wins, report.losses)
        ```
    """

    def __init__(
        self,
        redis: Redis,
        *,
        wallet_ledger: WalletLedger,
        learning_store: FactorLearningStore,
        settlement_oracle: SettlementOracle,
        classifier: MarketClassifier | None = None,
        score_oracle: ScoreOracle | None = None,
        odds_enabled: bool = False,
        pending_index_cap: int = DEFAULT_PENDING_INDEX_CAP,
    ) -> None:
        """Initialize the manager.

        Args:
            redis: Redis client used for persistence.
            wallet_ledger: Receives the outcome of each contributing wallet.
            learning_store: Receives factor and pattern updates.
            settlement_oracle: Price-based settlement source.
            classifier: Detects the sport and teams of a market.
            score_oracle: Optional final-score source for sports markets.
            odds_enabled: Whether the score oracle may be consulted.
            pending_index_cap: Maximum number of ids on the pending index.
        """
        self._store = JsonStore(redis)
        self._wallet_ledger = wallet_ledger
        self._learning_store = learning_store
        self._settlement_oracle = settlement_oracle
        self._classifier = classifier or MarketClassifier()
        self._score_oracle = score_oracle
        self._odds_enabled = odds_enabled
        self._pending_index_cap = pending_index_cap

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    async def get_signal(self, signal_id: str) -> Signal | None:
        """Load a stored signal."""
        data = await self._store.get_json(SIGNAL_KEY_PREFIX + signal_id)
        if not isinstance(data, dict):
            return None
        return Signal.from_dict(data)

    async def _save(self, signal: Signal, ttl: int) -> bool:
        return await self._store.set_json(SIGNAL_KEY_PREFIX + signal.id, signal.to_dict(), ex=ttl)

    async def pending_ids(self) -> list[str]:
        """Ids on the pending index, oldest first."""
        data = await self._store.get_json(PENDING_INDEX_KEY)
        if not isinstance(data, list):
            return []
        return [str(i) for i in data if i]

    async def _write_pending(self, ids: list[str]) -> None:
        await self._store.set_json(PENDING_INDEX_KEY, ids, ex=PENDING_INDEX_TTL_SECONDS)

    async def store_signal(self, signal: Signal) -> bool:
        """Persist a new signal and add it to the pending index.

        The index keeps only the newest ids once it reaches its cap.
        """
        await self._save(signal, PENDING_SIGNAL_TTL_SECONDS)

        ids = await self.pending_ids()
        if signal.id in ids:
            return False
        ids.append(signal.id)
        if len(ids) > self._pending_index_cap:
            ids = ids[-self._pending_index_cap :]
        await self._write_pending(ids)
        return True

    async def _remove_pending(self, signal_id: str) -> None:
        ids = await self.pending_ids()
        if signal_id in ids:
            await self._write_pending([i for i in ids if i != signal_id])

    # ------------------------------------------------------------------
    # Settlement
    # ------------------------------------------------------------------

    async def settle_signal(
        self,
        signal_id: str,
        *,
        now: datetime | None = None,
    ) -> SignalOutcome | None:
        """Try to settle one signal.

        An already-settled signal is returned as-is without side effects.

        Returns:
            The signal's outcome (WIN, LOSS or UNKNOWN), or None while pending.
        """
        signal = await self.get_signal(signal_id)
        if signal is None:
            return None
        if not signal.is_pending:
            return signal.outcome

        outcome = await self._settle(signal, now or datetime.now(UTC))
        if outcome is not None:
            await self._remove_pending(signal_id)
        return outcome

    async def process_pending(self, *, now: datetime | None = None) -> SettlementReport:
        """Attempt to settle every signal on the pending index.

        Missing and already-settled signals drop off the index. A signal whose
        settlement raises stays pending and counts as an error.
        """
        now = now or datetime.now(UTC)
        report = SettlementReport()
        ids = await self.pending_ids()
        still_pending: list[str] = []

        logger.info("Checking %d pending signals", len(ids))

        for signal_id in ids:
            signal = await self.get_signal(signal_id)
            if signal is None or not signal.is_pending:
                continue
            try:
                outcome = await self._settle(signal, now)
            except Exception as e:
                logger.warning("Settlement failed for signal %s: %s", signal_id, e)
                report.errors += 1
                still_pending.append(signal_id)
                continue

            if outcome is None:
                still_pending.append(signal_id)
                continue
            report.processed += 1
            if outcome == SignalOutcome.WIN:
                report.wins += 1
            elif outcome == SignalOutcome.LOSS:
                report.losses += 1
            else:
                report.unknown += 1

        # Keep ids stored by a scan that ran during this pass.
        seen = set(ids)
        added = [i for i in await self.pending_ids() if i not in seen]
        await self._write_pending(still_pending + added)
        report.still_pending = len(still_pending)

        logger.info(
            "Settlement pass: %d processed (%dW/%dL/%d unknown), %d errors, %d pending",
            report.processed,
            report.wins,
            report.losses,
            report.unknown,
            report.errors,
            report.still_pending,
        )
        return report

    async def _settle(self, signal: Signal, now: datetime) -> SignalOutcome | None:
        """Resolve and record a pending signal; None if it stays pending."""
        if signal.event_start_time is not None and signal.event_start_time > now:
            logger.debug("Signal %s not due until %s", signal.id, signal.event_start_time)
            return None

        resolution = await self._resolve(signal, now)
        if resolution is None or resolution.outcome is None:
            return None

        if resolution.outcome == SignalOutcome.UNKNOWN:
            signal.outcome = SignalOutcome.UNKNOWN
            signal.settled_at = now
            await self._save(signal, PENDING_SIGNAL_TTL_SECONDS)
            logger.info("Signal %s settled UNKNOWN", signal.id)
            return SignalOutcome.UNKNOWN

        if not await self._record(signal, resolution, now):
            return None
        return resolution.outcome

    async def _resolve(self, signal: Signal, now: datetime) -> _Resolution | None:
        score_result = await self._resolve_by_score(signal)
        if score_result is not None:
            return score_result if score_result.outcome is not None else None

        verdict = await self._settlement_oracle.check_market(
            signal.market_slug, signal.detected_at, now
        )
        if verdict is None or not verdict.settled:
            return None
        if verdict.is_unknown:
            return _Resolution(SignalOutcome.UNKNOWN, SETTLED_BY_PRICE)
        outcome = verdict.outcome_for(signal.direction, signal.dominant_outcome)
        if outcome is None:
            return None
        return _Resolution(outcome, SETTLED_BY_PRICE)

    async def _resolve_by_score(self, signal: Signal) -> _Resolution | None:
        """Settle from a final game score.

        Returns None when the score oracle cannot answer, so the price oracle
        is consulted. A game still in progress returns a resolution without
        an outcome, which keeps the signal pending.
        """
        if not self._odds_enabled or self._score_oracle is None:
            return None
        slug = signal.market_slug
        sport_key = self._classifier.sport_key(self._classifier.detect_sport(slug))
        if not sport_key:
            return None
        teams = self._classifier.extract_teams_from_slug(slug)
        if teams is None:
            return None
        away, home = teams

        game = await self._score_oracle.find_game(sport_key, home, away)
        if game is None:
            logger.debug("No matching game found for %s", slug)
            return None

        pick = signal.dominant_outcome or signal.direction
        evaluation = evaluate_game_result(game, slug, pick, self._classifier)
        if evaluation.status == "pending":
            return _Resolution(None, SETTLED_BY_SCORES)
        if not evaluation.is_settled or evaluation.outcome is None:
            return None
        return _Resolution(evaluation.outcome, SETTLED_BY_SCORES, evaluation.game_score)

    async def _record(self, signal: Signal, resolution: _Resolution, now: datetime) -> bool:
        """Feed a WIN or LOSS to the ledger and learning store, then persist it.

        Each effect group is marked once applied, so a settlement that fails
        part-way resumes on the next pass without applying any group twice.
        The settled record is written last; until then the signal stays
        pending.

        Returns:
            True once the settled record is stored.
        """
        outcome = resolution.outcome
        marker_key = EFFECTS_KEY_PREFIX + signal.id
        raw = await self._store.get_json(marker_key)
        applied: list[str] = [str(g) for g in raw] if isinstance(raw, list) else []

        async def apply(group: str, effect: Callable[[], Awaitable[Any]]) -> None:
            if group in applied:
                return
            await effect()
            applied.append(group)
            await self._store.set_json(marker_key, applied, ex=EFFECTS_TTL_SECONDS)

        async def settle_wallets() -> None:
            for wallet in signal.wallets:
                await self._wallet_ledger.record_outcome(
                    wallet, signal.id, outcome, market=signal.market_slug, now=now
                )

        await apply(EFFECT_WALLETS, settle_wallets)
        await apply(
            EFFECT_FACTORS,
            lambda: self._learning_store.update_factor_stats(
                signal.score_breakdown, outcome, now=now
            ),
        )
        await apply(
            EFFECT_COMBOS,
            lambda: self._learning_store.track_factor_combo(
                signal.score_breakdown, outcome, now=now
            ),
        )
        await apply(
            EFFECT_METADATA,
            lambda: self._learning_store.track_signal_metadata(
                signal.learning_metadata(), outcome, now=now
            ),
        )

        signal.outcome = outcome
        signal.settled_at = now
        signal.profit_pct = profit_pct(outcome, signal.display_price)
        signal.settled_by = resolution.settled_by
        if resolution.game_score:
            signal.game_score = resolution.game_score
        if not await self._save(signal, SETTLED_SIGNAL_TTL_SECONDS):
            logger.warning("Signal %s resolved %s but could not be saved", signal.id, outcome.value)
            return False

        logger.info(
            "Signal %s settled %s via %s (%s)",
            signal.id,
            outcome.value,
            resolution.settled_by,
            signal.market_slug,
        )
        return True
