"""Scan orchestrator and query facade for the Polymarket Signal Engine.

This module provides the SignalEngine class that wires together the
aggregator, scorers, wallet ledger, learning store and signal lifecycle,
and exposes the scan, settlement and query operations.
"""

from __future__ import annotations

import asyncio
import logging
import time
import uuid
from dataclasses import dataclass, field, replace
from datetime import UTC, datetime
from enum import Enum
from typing import TYPE_CHECKING, Any, TypeVar

from redis.asyncio import Redis

from polymarket_signal_engine.config import Settings, WalletSettings, get_settings
from polymarket_signal_engine.detector.ai_scorer import AIScoreAdjuster
from polymarket_signal_engine.detector.confidence import ConfidenceEstimator, blend_confidence
from polymarket_signal_engine.detector.scorer import HeuristicScorer
from polymarket_signal_engine.ingestor.aggregator import AggregationStats, TradeAggregator
from polymarket_signal_engine.ingestor.classifier import MarketClassifier
from polymarket_signal_engine.ingestor.polymarket_api import DataSourceError, PolymarketDataClient
from polymarket_signal_engine.learning.store import FactorLearningStore
from polymarket_signal_engine.profiler.ledger import WalletLedger
from polymarket_signal_engine.profiler.models import WalletTier
from polymarket_signal_engine.profiler.tiers import DEFAULT_TIER_RULES, TierRule
from polymarket_signal_engine.rounding import round_half_up
from polymarket_signal_engine.signals.lifecycle import SignalLifecycleManager
from polymarket_signal_engine.signals.models import SettlementReport, Signal, TopTrade
from polymarket_signal_engine.signals.settlement import PriceSettlementOracle
from polymarket_signal_engine.storage.kv import JsonStore

if TYPE_CHECKING:
    from polymarket_signal_engine.detector.models import HeuristicScore
    from polymarket_signal_engine.ingestor.models import EventTiming, MarketWindow, Trade
    from polymarket_signal_engine.interfaces import (
        MarketMetadata,
        ScoreOracle,
        SettlementOracle,
        TradeFeed,
    )
    from polymarket_signal_engine.learning.models import FactorStat
    from polymarket_signal_engine.outcomes import SignalOutcome
    from polymarket_signal_engine.profiler.models import WalletStat, WinnerInfo

logger = logging.getLogger(__name__)

SCAN_GUARD_KEY = "last_scan_run"
LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"

T = TypeVar("T")


class SignalEngineError(Exception):
    """Raised when the engine is used outside its running state."""


class EngineState(str, Enum):
    """Engine lifecycle states."""

    STOPPED = "stopped"
    STARTING = "starting"
    RUNNING = "running"
    STOPPING = "stopping"
    ERROR = "error"


@dataclass
class EngineStats:
    """Statistics for the engine."""

    started_at: datetime | None = None
    scans_run: int = 0
    scans_skipped: int = 0
    trades_fetched: int = 0
    signals_emitted: int = 0
    signals_hidden: int = 0
    settlements_processed: int = 0
    errors: int = 0
    last_scan_at: datetime | None = None
    last_error: str | None = None


@dataclass(frozen=True)
class ScanFilters:
    """Optional market filters for a scan."""

    sports_only: bool = False


@dataclass
class ScanResult:
    """Outcome of one scan.

    Attributes:
        signals: Emitted signals, winning-wallet signals first, then by score.
        trades_fetched: Raw trades returned by the feed.
        markets_analyzed: Market windows built by the aggregator.
        hidden: Windows suppressed by the learned fade rule.
        skipped: True when the scan guard suppressed this run.
        aggregation: Per-filter drop counts.
        duration_seconds: Wall-clock duration of the scan.
    """

    signals: list[Signal] = field(default_factory=list)
    trades_fetched: int = 0
    markets_analyzed: int = 0
    hidden: int = 0
    skipped: bool = False
    aggregation: AggregationStats = field(default_factory=AggregationStats)
    duration_seconds: float = 0.0

    def to_dict(self) -> dict[str, Any]:
        """Convert to a JSON-serializable dictionary."""
        return {
            "signals": [s.to_dict() for s in self.signals],
            "trades_fetched": self.trades_fetched,
            "markets_analyzed": self.markets_analyzed,
            "hidden": self.hidden,
            "skipped": self.skipped,
            "aggregation": self.aggregation.to_dict(),
            "duration_seconds": self.duration_seconds,
        }


@dataclass
class _Candidate:
    """A market window under evaluation; ``base`` is set once it clears the minimum score."""

    window: MarketWindow
    top: list[Trade]
    top_trades: list[TopTrade] = field(default_factory=list)
    winner_wallet: str | None = None
    winner_info: WinnerInfo | None = None
    base: HeuristicScore | None = None

    @property
    def has_winner(self) -> bool:
        return self.winner_info is not None


def _short(address: str) -> str:
    return address[:10] + "..."


def _require(component: T | None, name: str) -> T:
    if component is None:
        raise RuntimeError(f"{name} is not initialized")
    return component


def configure_logging(settings: Settings) -> None:
    """Apply ``LOG_LEVEL`` to the engine's loggers.

    A root handler is installed only when the host has not configured one.
    """
    level = settings.get_logging_level()
    logging.basicConfig(level=level, format=LOG_FORMAT)
    logging.getLogger("polymarket_signal_engine").setLevel(level)


def _tier_rules(wallet: WalletSettings) -> tuple[TierRule, ...]:
    """Default tier table with its win-rate thresholds taken from settings."""
    min_win_rates = {
        WalletTier.INSIDER: wallet.insider_min_win_rate,
        WalletTier.ELITE: wallet.elite_min_win_rate,
        WalletTier.STRONG: wallet.strong_min_win_rate,
        WalletTier.AVERAGE: wallet.average_min_win_rate,
    }
    rules: list[TierRule] = []
    for rule in DEFAULT_TIER_RULES:
        if rule.tier == WalletTier.FADE:
            rules.append(replace(rule, max_win_rate=wallet.fade_max_win_rate))
        else:
            min_win_rate = min_win_rates.get(rule.tier, rule.min_win_rate)
            rules.append(replace(rule, min_win_rate=min_win_rate))
    return tuple(rules)


def rank_signals(signals: list[Signal]) -> list[Signal]:
    """Winning-wallet signals first, then by descending base score."""
    return sorted(signals, key=lambda s: (not s.has_winning_wallet, -s.score))


class SignalEngine:
    """Scan orchestrator for the Polymarket Signal Engine.

    This class wires the scan pipeline together and exposes settlement and
    query operations over the persisted state.

    Scan flow:
        Trade Feed → Aggregator → Heuristic Scorer (+ Wallet Ledger)
        → AI multiplier → Confidence Estimator → Lifecycle Manager

    Every collaborator can be injected; missing ones are built from settings
    when the engine starts.

    Example:
        ```python
        from polymarket_signal_engine.config import get_settings
        from polymarket_signal_engine.pipeline import SignalEngine

        async with SignalEngine(get_settings()) as engine:
            result = await engine.run_scan(hours_back=24, min_score=50)
            for signal in result.signals:
                print(signal.market_slug, signal.score, signal.confidence)
            report = await engine.process_pending_settlements()
        ```
    """

    def __init__(
        self,
        settings: Settings | None = None,
        *,
        redis: Redis | None = None,
        feed: TradeFeed | None = None,
        metadata: MarketMetadata | None = None,
        settlement_oracle: SettlementOracle | None = None,
        score_oracle: ScoreOracle | None = None,
        classifier: MarketClassifier | None = None,
    ) -> None:
        """Initialize the engine.

        Args:
            settings: Application settings. If not provided, uses get_settings().
            redis: Redis client. Built from ``settings.redis.url`` if omitted.
            feed: Trade feed. Defaults to the Polymarket Data API client.
            metadata: Event timing source. Defaults to the Polymarket client.
            settlement_oracle: Price settlement source. Defaults to a
                ``PriceSettlementOracle`` over the trade feed.
            score_oracle: Optional final-score source for sports markets.
            classifier: Market classifier shared by every component.
        """
        self._settings = settings or get_settings()

        self._state = EngineState.STOPPED
        self._stats = EngineStats()

        self._redis = redis
        self._owns_redis = redis is None
        self._feed = feed
        self._metadata = metadata
        self._settlement_oracle = settlement_oracle
        self._score_oracle = score_oracle
        self._classifier = classifier or MarketClassifier()

        # Components (initialized in start())
        self._client: PolymarketDataClient | None = None
        self._store: JsonStore | None = None
        self._aggregator: TradeAggregator | None = None
        self._scorer: HeuristicScorer | None = None
        self._wallet_ledger: WalletLedger | None = None
        self._learning_store: FactorLearningStore | None = None
        self._ai_adjuster: AIScoreAdjuster | None = None
        self._confidence: ConfidenceEstimator | None = None
        self._lifecycle: SignalLifecycleManager | None = None

    @property
    def state(self) -> EngineState:
        """Current engine state."""
        return self._state

    @property
    def stats(self) -> EngineStats:
        """Current engine statistics."""
        return self._stats

    @property
    def is_running(self) -> bool:
        """Check if the engine is running."""
        return self._state == EngineState.RUNNING

    async def start(self) -> None:
        """Start the engine.

        Raises:
            RuntimeError: If the engine is already running.
            Exception: If any component fails to initialize.
        """
        if self._state != EngineState.STOPPED:
            raise RuntimeError(f"Cannot start engine in state {self._state}")

        self._state = EngineState.STARTING
        configure_logging(self._settings)
        logger.info("Starting signal engine...")

        try:
            self._initialize_components()
            self._stats.started_at = datetime.now(UTC)
            self._state = EngineState.RUNNING
            logger.info("Signal engine started")
        except Exception as e:
            self._state = EngineState.ERROR
            self._stats.last_error = str(e)
            logger.error("Failed to start signal engine: %s", e)
            await self._cleanup()
            raise

    async def stop(self) -> None:
        """Stop the engine and release owned connections."""
        if self._state == EngineState.STOPPED:
            return

        self._state = EngineState.STOPPING
        logger.info("Stopping signal engine...")
        await self._cleanup()
        self._state = EngineState.STOPPED
        logger.info("Signal engine stopped")

    def _initialize_components(self) -> None:
        """Initialize all engine components."""
        settings = self._settings

        if self._redis is None:
            logger.debug("Initializing Redis connection...")
            self._redis = Redis.from_url(settings.redis.url)
        redis = self._redis

        if self._feed is None or self._metadata is None:
            logger.debug("Initializing Polymarket client...")
            self._client = PolymarketDataClient(
                settings.polymarket.data_api_url,
                settings.polymarket.gamma_api_url,
                timeout_seconds=settings.polymarket.fetch_timeout_seconds,
                redis=redis,
            )
            self._feed = self._feed or self._client
            self._metadata = self._metadata or self._client
        if self._settlement_oracle is None:
            self._settlement_oracle = PriceSettlementOracle(
                self._feed,
                trade_limit=settings.polymarket.settlement_trade_limit,
            )

        self._store = JsonStore(redis)
        self._aggregator = TradeAggregator(
            self._classifier,
            min_trade_usd=settings.scan.min_trade_usd,
            max_trades_per_market=settings.scan.max_trades_per_market,
        )
        self._scorer = HeuristicScorer(
            winning_wallet_points=settings.scoring.winning_wallet_points
        )

        wallet = settings.wallet
        self._wallet_ledger = WalletLedger(
            redis,
            min_bets=wallet.min_bets,
            winner_min_win_rate=wallet.winner_min_win_rate,
            keep_min_volume_usd=wallet.keep_min_volume_usd,
            keep_recent_days=wallet.keep_recent_days,
            evict_min_bets=wallet.evict_min_bets,
            evict_max_win_rate=wallet.evict_max_win_rate,
            duplicate_window_seconds=wallet.duplicate_window_seconds,
            duplicate_amount_tolerance_usd=wallet.duplicate_amount_tolerance_usd,
            winners_cache_fresh_seconds=wallet.winners_cache_fresh_seconds,
            winners_cache_size=wallet.winners_cache_size,
            tier_rules=_tier_rules(wallet),
        )

        learning = settings.learning
        self._learning_store = FactorLearningStore(
            redis,
            full_confidence_samples=learning.full_confidence_samples,
            promotion_min_samples=learning.promotion_min_samples,
            promotion_high_win_rate=learning.promotion_high_win_rate,
            promotion_low_win_rate=learning.promotion_low_win_rate,
            combo_min_samples=learning.combo_min_samples,
        )
        self._ai_adjuster = AIScoreAdjuster(
            self._learning_store,
            fade_factors=learning.fade_factors,
            min_samples=learning.multiplier_min_samples,
        )
        self._confidence = ConfidenceEstimator(
            self._learning_store,
            factor_min_samples=settings.scoring.factor_min_samples,
            pattern_min_samples=settings.scoring.pattern_min_samples,
        )

        self._lifecycle = SignalLifecycleManager(
            redis,
            wallet_ledger=self._wallet_ledger,
            learning_store=self._learning_store,
            settlement_oracle=self._settlement_oracle,
            classifier=self._classifier,
            score_oracle=self._score_oracle,
            odds_enabled=settings.odds_api_enabled,
            pending_index_cap=settings.scan.pending_index_cap,
        )

    async def _cleanup(self) -> None:
        """Clean up resources."""
        if self._client:
            await self._client.close()
            self._client = None

        if self._redis and self._owns_redis:
            await self._redis.aclose()
            self._redis = None

        logger.debug("Resources cleaned up")

    def _require_running(self) -> None:
        if self._state != EngineState.RUNNING:
            raise SignalEngineError(f"Signal engine is not running (state {self._state.value})")

    @property
    def lifecycle(self) -> SignalLifecycleManager:
        """Signal lifecycle manager."""
        self._require_running()
        return _require(self._lifecycle, "Lifecycle manager")

    @property
    def wallet_ledger(self) -> WalletLedger:
        """Wallet reputation ledger."""
        self._require_running()
        return _require(self._wallet_ledger, "Wallet ledger")

    @property
    def learning_store(self) -> FactorLearningStore:
        """Factor learning store."""
        self._require_running()
        return _require(self._learning_store, "Learning store")

    # ------------------------------------------------------------------
    # Scan
    # ------------------------------------------------------------------

    async def _acquire_scan_guard(self, now: datetime) -> bool:
        """Claim the scan slot unless a scan ran within the minimum interval."""
        store = _require(self._store, "Key-value store")
        interval = self._settings.scan.min_interval_seconds
        if interval <= 0:
            return True
        now_ms = int(now.timestamp() * 1000)
        last = await store.get_json(SCAN_GUARD_KEY)
        if isinstance(last, (int, float)) and 0 <= now_ms - last < interval * 1000:
            return False
        await store.set_json(SCAN_GUARD_KEY, now_ms, ex=interval)
        return True

    async def _fetch_trades(self) -> list[dict[str, Any]]:
        """Fetch the trade batch; a timeout or upstream failure yields no trades."""
        feed = _require(self._feed, "Trade feed")
        polymarket = self._settings.polymarket
        try:
            return await asyncio.wait_for(
                feed.fetch_recent_trades(polymarket.trade_limit),
                timeout=polymarket.fetch_timeout_seconds,
            )
        except TimeoutError:
            logger.warning(
                "Trade feed timed out after %.1fs", polymarket.fetch_timeout_seconds
            )
        except DataSourceError as e:
            logger.warning("Trade feed unavailable: %s", e)
        self._stats.errors += 1
        return []

    async def run_scan(
        self,
        hours_back: float | None = None,
        min_score: int | None = None,
        filters: ScanFilters | None = None,
        *,
        now: datetime | None = None,
    ) -> ScanResult:
        """Scan recent trades and emit signals.

        Every window is scored first; event timing for the windows that
        cleared ``min_score`` is then fetched in one batch. Qualifying
        windows are emitted one at a time so that wallet bets recorded for
        one market are visible when the next one is stored.

        Args:
            hours_back: Lookback horizon. Defaults to ``scan.hours_back``.
            min_score: Minimum base score. Defaults to ``scan.min_score``.
            filters: Optional market filters.
            now: Scan time (defaults to the current UTC time).

        Returns:
            ScanResult with the ranked signals; ``skipped`` is set when a
            scan ran too recently.

        Raises:
            SignalEngineError: If the engine is not running.
        """
        self._require_running()
        aggregator = _require(self._aggregator, "Trade aggregator")
        ledger = _require(self._wallet_ledger, "Wallet ledger")
        learning = _require(self._learning_store, "Learning store")

        scan = self._settings.scan
        hours_back = scan.hours_back if hours_back is None else hours_back
        min_score = scan.min_score if min_score is None else min_score
        filters = filters or ScanFilters()
        now = now or datetime.now(UTC)
        started = time.monotonic()

        if not await self._acquire_scan_guard(now):
            self._stats.scans_skipped += 1
            logger.info("Skipping scan: previous scan ran within %ds", scan.min_interval_seconds)
            return ScanResult(skipped=True)

        payloads = await self._fetch_trades()
        aggregation = aggregator.aggregate(
            payloads,
            hours_back=hours_back,
            now=now,
            sports_only=filters.sports_only,
        )
        result = ScanResult(
            trades_fetched=len(payloads),
            markets_analyzed=len(aggregation.windows),
            aggregation=aggregation.stats,
        )

        winners = await ledger.get_winners_cache(now_ms=int(now.timestamp() * 1000))
        factor_stats = await learning.get_factor_stats()

        candidates: list[_Candidate] = []
        for window in aggregation.windows.values():
            candidate = await self._score_window(window, min_score=min_score, winners=winners)
            if candidate is not None:
                candidates.append(candidate)

        timings = await self._event_timings([c.window.market_key for c in candidates])

        signals: list[Signal] = []
        for candidate in candidates:
            signal = await self._emit_signal(
                candidate,
                result,
                timing=timings.get(candidate.window.market_key),
                factor_stats=factor_stats,
                now=now,
            )
            if signal is not None:
                signals.append(signal)

        result.signals = rank_signals(signals)
        result.duration_seconds = round(time.monotonic() - started, 3)

        self._stats.scans_run += 1
        self._stats.trades_fetched += result.trades_fetched
        self._stats.signals_emitted += len(result.signals)
        self._stats.signals_hidden += result.hidden
        self._stats.last_scan_at = now

        logger.info(
            "Scan complete: %d trades, %d markets, %d signals (%d hidden) in %.2fs",
            result.trades_fetched,
            result.markets_analyzed,
            len(result.signals),
            result.hidden,
            result.duration_seconds,
        )
        return result

    async def _score_window(
        self,
        window: MarketWindow,
        *,
        min_score: int,
        winners: dict[str, WinnerInfo],
    ) -> _Candidate | None:
        """Check the window's largest trades against the ledger and score it."""
        scorer = _require(self._scorer, "Heuristic scorer")
        ledger = _require(self._wallet_ledger, "Wallet ledger")

        top = window.top_trades(self._settings.scan.top_trades_checked)
        candidate = _Candidate(window=window, top=top)
        for trade in top:
            info = await ledger.is_winning_wallet(trade.wallet_address, winners)
            if info is not None:
                candidate.winner_wallet, candidate.winner_info = trade.wallet_address, info
            candidate.top_trades.append(_top_trade(trade, info))

        base = scorer.score(window, has_winning_wallet=candidate.has_winner)
        if base.score < min_score:
            logger.debug("Skipping %s: score %d below %d", window.market_key, base.score, min_score)
            return None
        candidate.base = base
        return candidate

    async def _emit_signal(
        self,
        candidate: _Candidate,
        result: ScanResult,
        *,
        timing: EventTiming | None,
        factor_stats: dict[str, FactorStat],
        now: datetime,
    ) -> Signal | None:
        """Apply the learned adjustments and persist the window as a signal."""
        ai_adjuster = _require(self._ai_adjuster, "AI score adjuster")
        confidence_estimator = _require(self._confidence, "Confidence estimator")
        lifecycle = _require(self._lifecycle, "Lifecycle manager")

        scan = self._settings.scan
        window = candidate.window
        base = _require(candidate.base, "Heuristic score")
        winner_info = candidate.winner_info
        has_winner = candidate.has_winner

        market_type = self._classifier.detect_market_type(
            window.title or window.market_key, window.market_key
        )
        ai = await ai_adjuster.adjust(
            base.score,
            base.factor_names,
            market_type=market_type,
            has_winning_wallet=has_winner,
            factor_stats=factor_stats,
        )
        if ai.should_hide:
            result.hidden += 1
            logger.debug("Hiding %s: %s", window.market_key, ", ".join(ai.penalty_reasons))
            return None

        estimate = await confidence_estimator.estimate(
            [*base.factor_names, market_type],
            market_type=market_type,
            total_volume=float(window.total_volume),
            detected_at=window.first_trade_time,
        )
        confidence = blend_confidence(
            ai.ai_score,
            estimate,
            winner_win_rate=winner_info.win_rate if winner_info else None,
            history_blend=self._settings.scoring.confidence_history_blend,
        )

        largest = window.largest_trade
        tracked = candidate.top[: scan.wallets_tracked_per_signal]

        signal = Signal(
            id=uuid.uuid4().hex[:16],
            market_slug=window.market_key,
            event_slug=window.event_slug,
            market_title=window.title,
            direction=window.direction,
            dominant_outcome=window.dominant_outcome,
            direction_percent=window.direction_percent,
            display_price=largest.price_cents if largest else None,
            score=base.score,
            ai_score=ai.ai_score,
            ai_multiplier=ai.multiplier,
            confidence=confidence,
            score_breakdown=list(base.breakdown),
            top_trades=candidate.top_trades,
            has_winning_wallet=has_winner,
            winning_wallet_info=(
                {"wallet": candidate.winner_wallet, **winner_info.to_dict()}
                if winner_info
                else None
            ),
            market_type=market_type,
            total_volume=round_half_up(window.total_volume),
            largest_bet=round_half_up(window.largest_bet),
            unique_wallets=window.wallet_count,
            trade_count=len(window.trades),
            first_trade_time=window.first_trade_time,
            last_trade_time=window.last_trade_time,
            event_start_time=timing.event_start_time if timing else None,
            event_end_time=timing.event_end_time if timing else None,
            detected_at=now,
            wallets=[t.wallet_address for t in tracked if t.wallet_address],
            boost_reasons=list(ai.boost_reasons),
            penalty_reasons=list(ai.penalty_reasons),
        )

        await lifecycle.store_signal(signal)
        await self._track_wallets(signal, tracked, now)

        logger.debug(
            "Signal %s on %s: score=%d ai=%d confidence=%d",
            signal.id,
            signal.market_slug,
            signal.score,
            signal.ai_score,
            signal.confidence,
        )
        return signal

    async def _event_timings(self, slugs: list[str]) -> dict[str, EventTiming]:
        """Event timing for the qualifying markets; a failed lookup yields none."""
        if not slugs:
            return {}
        metadata = _require(self._metadata, "Market metadata")
        try:
            return await metadata.batch_event_timing(
                slugs, max_lookups=self._settings.scan.max_timing_lookups
            )
        except DataSourceError as e:
            logger.warning("Event timing lookup failed for %d markets: %s", len(slugs), e)
            return {}

    async def _track_wallets(self, signal: Signal, trades: list[Trade], now: datetime) -> None:
        """Record the bets of the signal's largest trades in the wallet ledger."""
        ledger = _require(self._wallet_ledger, "Wallet ledger")
        scan = self._settings.scan
        worthy_signal = signal.score >= scan.track_min_score or signal.has_winning_wallet
        for trade in trades:
            if not trade.wallet_address:
                continue
            if not worthy_signal and float(trade.size_usd) < scan.track_min_amount_usd:
                continue
            bet = await ledger.record_bet(
                trade.wallet_address,
                market=signal.market_slug,
                amount=float(trade.size_usd),
                price=float(trade.price),
                direction=signal.direction,
                signal_id=signal.id,
                market_title=signal.market_title,
                now=now,
            )
            if bet is not None:
                logger.debug(
                    "Tracked $%.0f bet for wallet %s", bet.amount, _short(trade.wallet_address)
                )

    # ------------------------------------------------------------------
    # Settlement
    # ------------------------------------------------------------------

    async def record_settlement(
        self,
        signal_id: str,
        *,
        now: datetime | None = None,
    ) -> SignalOutcome | None:
        """Try to settle one signal; replaying a settled signal is a no-op."""
        return await self.lifecycle.settle_signal(signal_id, now=now)

    async def process_pending_settlements(
        self,
        *,
        now: datetime | None = None,
    ) -> SettlementReport:
        """Attempt to settle every pending signal."""
        report = await self.lifecycle.process_pending(now=now)
        self._stats.settlements_processed += report.processed
        self._stats.errors += report.errors
        return report

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    async def get_signal(self, signal_id: str) -> Signal | None:
        """Load a stored signal."""
        return await self.lifecycle.get_signal(signal_id)

    async def wallet_stats(self, address: str) -> WalletStat | None:
        """Reputation record of a wallet."""
        return await self.wallet_ledger.wallet_stats(address)

    async def wallet_leaderboard(self, limit: int = 50) -> list[dict[str, Any]]:
        """Tracked wallets ordered by tier, then win rate."""
        return await self.wallet_ledger.leaderboard(limit)

    async def wallet_pnl(self, address: str) -> dict[str, Any] | None:
        """Realized and unrealized P&L of a wallet."""
        return await self.wallet_ledger.pnl(address)

    async def factor_stats(self) -> dict[str, FactorStat]:
        """Learned statistics of every factor."""
        return await self.learning_store.get_factor_stats()

    async def discovered_patterns(self) -> dict[str, Any]:
        """Promoted patterns and candidates close to promotion."""
        return await self.learning_store.get_discovered_patterns()

    async def factor_combos(self) -> dict[str, Any]:
        """Best and worst factor pairs."""
        return await self.learning_store.get_factor_combos()

    async def ai_recommendation(self) -> dict[str, Any]:
        """Summary of the strongest and weakest factors."""
        return await self.learning_store.get_ai_recommendation()

    async def deduplicate_wallet_bets(self) -> dict[str, int]:
        """Merge duplicated bets across all tracked wallets."""
        return await self.wallet_ledger.deduplicate_wallet_bets()

    async def prune_losing_wallets(self) -> dict[str, int]:
        """Drop consistently losing wallets from the ledger."""
        return await self.wallet_ledger.prune_losing_wallets()

    async def __aenter__(self) -> SignalEngine:
        """Async context manager entry."""
        await self.start()
        return self

    async def __aexit__(self, *args: Any) -> None:
        """Async context manager exit."""
        await self.stop()


def _top_trade(trade: Trade, info: WinnerInfo | None) -> TopTrade:
    return TopTrade(
        wallet=trade.wallet_address,
        amount=round_half_up(trade.size_usd),
        price=float(trade.price),
        time=trade.timestamp,
        outcome=trade.outcome,
        outcome_index=trade.outcome_index,
        side=trade.side,
        is_winner=info is not None,
        winner_info=info.to_dict() if info else None,
    )
