"""Wallet reputation ledger.

Tracks the bets of wallets seen in emitted signals, settles them when the
signal settles, and classifies each wallet into a reputation tier. Proven
winners are denormalized into a short-lived cache that the scan reads
before falling back to the per-wallet record.

Storage layout:
    wallet:<address>          wallet record (90 days)
    wallet_trades_<address>   open/resolved bet ledger (180 days)
    tracked_wallet_index      list of tracked addresses (365 days)
    winning_wallets_cache     winners keyed by address (24 hours)
"""

from __future__ import annotations

import logging
import time
import uuid
from datetime import UTC, datetime, timedelta
from typing import Any

from redis.asyncio import Redis

from polymarket_signal_engine.outcomes import SignalOutcome
from polymarket_signal_engine.profiler.models import (
    DEFAULT_ENTRY_PRICE,
    WalletBet,
    WalletStat,
    WalletTradeLedger,
    WinnerInfo,
)
from polymarket_signal_engine.profiler.tiers import DEFAULT_TIER_RULES, TierRule, tier_for
from polymarket_signal_engine.rounding import round_cents, round_half_up
from polymarket_signal_engine.storage.kv import DAY_SECONDS, JsonStore, ttl_days

logger = logging.getLogger(__name__)

# Storage keys
WALLET_KEY_PREFIX = "wallet:"
WALLET_TRADES_KEY_PREFIX = "wallet_trades_"
WALLET_INDEX_KEY = "tracked_wallet_index"
WINNERS_CACHE_KEY = "winning_wallets_cache"

WALLET_TTL_SECONDS = ttl_days(90)
WALLET_TRADES_TTL_SECONDS = ttl_days(180)
WALLET_INDEX_TTL_SECONDS = ttl_days(365)
WINNERS_CACHE_TTL_SECONDS = DAY_SECONDS

# Default configuration
DEFAULT_MIN_BETS = 3
DEFAULT_WINNER_MIN_WIN_RATE = 55
DEFAULT_KEEP_MIN_VOLUME_USD = 50_000.0
DEFAULT_KEEP_RECENT_DAYS = 7.0
DEFAULT_EVICT_MIN_BETS = 5
DEFAULT_EVICT_MAX_WIN_RATE = 45
DEFAULT_DUPLICATE_WINDOW_SECONDS = 300
DEFAULT_DUPLICATE_AMOUNT_TOLERANCE_USD = 10.0
DEFAULT_WINNERS_CACHE_FRESH_SECONDS = 300
DEFAULT_WINNERS_CACHE_SIZE = 100
DEFAULT_LEADERBOARD_LIMIT = 50

RECENT_BETS_CAP = 50
OPEN_BETS_CAP = 100
RESOLVED_BETS_CAP = 200
LEADERBOARD_SCAN_LIMIT = 200

# Leaderboard ordering; PENDING and NEW label wallets without a tier.
TIER_ORDER: dict[str, int] = {
    "INSIDER": 0,
    "ELITE": 1,
    "STRONG": 2,
    "AVERAGE": 3,
    "PENDING": 4,
    "NEW": 5,
    "FADE": 6,
}
UNRANKED_TIER_ORDER = 99


def _short(address: str) -> str:
    return address[:10] + "..."


class WalletLedger:
    """Reputation ledger over Redis.

    Example:
        ```python
        ledger = WalletLedger(redis)
        await ledger.record_bet(
            "0xabc...", market="nba-lal-bos-2026-01-28", amount=12_000, price=0.35,
            direction="YES", signal_id="sig_123",
        )
        await ledger.record_outcome("0xabc...", "sig_123", SignalOutcome.WIN)
        print(await ledger.wallet_stats("0xabc..."))
        ```
    """

    def __init__(
        self,
        redis: Redis,
        *,
        min_bets: int = DEFAULT_MIN_BETS,
        winner_min_win_rate: int = DEFAULT_WINNER_MIN_WIN_RATE,
        keep_min_volume_usd: float = DEFAULT_KEEP_MIN_VOLUME_USD,
        keep_recent_days: float = DEFAULT_KEEP_RECENT_DAYS,
        evict_min_bets: int = DEFAULT_EVICT_MIN_BETS,
        evict_max_win_rate: int = DEFAULT_EVICT_MAX_WIN_RATE,
        duplicate_window_seconds: int = DEFAULT_DUPLICATE_WINDOW_SECONDS,
        duplicate_amount_tolerance_usd: float = DEFAULT_DUPLICATE_AMOUNT_TOLERANCE_USD,
        winners_cache_fresh_seconds: int = DEFAULT_WINNERS_CACHE_FRESH_SECONDS,
        winners_cache_size: int = DEFAULT_WINNERS_CACHE_SIZE,
        tier_rules: tuple[TierRule, ...] = DEFAULT_TIER_RULES,
    ) -> None:
        """Initialize the ledger.

        Args:
            redis: Async Redis client.
            min_bets: Settled bets before a wallet can be a winner or get a tier.
            winner_min_win_rate: Win rate at or above which a wallet is a winner.
            keep_min_volume_usd: Wallets with at least this volume are never evicted.
            keep_recent_days: Wallets that bet more recently than this are never evicted.
            evict_min_bets: Settled bets before a losing wallet may be evicted.
            evict_max_win_rate: Wallets below this win rate may be evicted.
            duplicate_window_seconds: Window in which an equivalent bet is a duplicate.
            duplicate_amount_tolerance_usd: Amount difference under which bets are equivalent.
            winners_cache_fresh_seconds: Age under which the winners cache is trusted.
            winners_cache_size: Maximum wallets kept in the winners cache.
            tier_rules: Tier thresholds, checked in order.
        """
        self._store = JsonStore(redis)
        self._min_bets = min_bets
        self._winner_min_win_rate = winner_min_win_rate
        self._keep_min_volume = keep_min_volume_usd
        self._keep_recent = timedelta(days=keep_recent_days)
        self._evict_min_bets = evict_min_bets
        self._evict_max_win_rate = evict_max_win_rate
        self._duplicate_window = timedelta(seconds=duplicate_window_seconds)
        self._duplicate_tolerance = duplicate_amount_tolerance_usd
        self._winners_fresh_ms = winners_cache_fresh_seconds * 1000
        self._winners_cache_size = winners_cache_size
        self._tier_rules = tier_rules

    # ------------------------------------------------------------------
    # Records
    # ------------------------------------------------------------------

    async def get_wallet(self, address: str) -> WalletStat | None:
        """Load a wallet record."""
        if not address:
            return None
        raw = await self._store.get_json(WALLET_KEY_PREFIX + address.lower())
        if not isinstance(raw, dict):
            return None
        stat = WalletStat.from_dict(raw)
        if not stat.address:
            stat.address = address.lower()
        return stat

    async def _save_wallet(self, stat: WalletStat) -> None:
        await self._store.set_json(
            WALLET_KEY_PREFIX + stat.address, stat.to_dict(), ex=WALLET_TTL_SECONDS
        )

    async def _get_trades(self, address: str) -> WalletTradeLedger | None:
        raw = await self._store.get_json(WALLET_TRADES_KEY_PREFIX + address.lower())
        if not isinstance(raw, dict):
            return None
        return WalletTradeLedger.from_dict(raw)

    async def _save_trades(self, address: str, trades: WalletTradeLedger) -> None:
        await self._store.set_json(
            WALLET_TRADES_KEY_PREFIX + address.lower(),
            trades.to_dict(),
            ex=WALLET_TRADES_TTL_SECONDS,
        )

    # ------------------------------------------------------------------
    # Tracked index
    # ------------------------------------------------------------------

    async def tracked_wallets(self) -> list[str]:
        """Addresses in the tracked-wallet index."""
        raw = await self._store.get_json(WALLET_INDEX_KEY)
        if not isinstance(raw, list):
            return []
        return [str(a) for a in raw if a]

    async def _add_to_index(self, address: str) -> None:
        index = await self.tracked_wallets()
        if address not in index:
            index.append(address)
            await self._store.set_json(WALLET_INDEX_KEY, index, ex=WALLET_INDEX_TTL_SECONDS)

    async def _remove_from_index(self, addresses: set[str]) -> None:
        index = await self.tracked_wallets()
        await self._store.set_json(
            WALLET_INDEX_KEY,
            [a for a in index if a not in addresses],
            ex=WALLET_INDEX_TTL_SECONDS,
        )

    # ------------------------------------------------------------------
    # Bets and outcomes
    # ------------------------------------------------------------------

    def _is_duplicate(
        self,
        stat: WalletStat,
        *,
        market: str,
        signal_id: str | None,
        amount: float,
        now: datetime,
    ) -> bool:
        cutoff = now - self._duplicate_window
        market_lower = market.lower()
        for existing in stat.recent_bets:
            if not existing.is_pending:
                continue
            same_market = existing.market.lower() == market_lower or (
                signal_id is not None and existing.signal_id == signal_id
            )
            if (
                same_market
                and abs(existing.amount - amount) < self._duplicate_tolerance
                and existing.timestamp > cutoff
            ):
                return True
        return False

    async def record_bet(
        self,
        address: str,
        *,
        market: str,
        amount: float,
        price: float,
        direction: str | None = None,
        signal_id: str | None = None,
        market_title: str | None = None,
        now: datetime | None = None,
    ) -> WalletBet | None:
        """Record a pending bet for a wallet.

        Args:
            address: Wallet address.
            market: Market slug.
            amount: Bet size in USD.
            price: Entry price in (0, 1).
            direction: Side of the signal the bet belongs to.
            signal_id: Signal the bet was observed in.
            market_title: Human-readable market title.
            now: Record time (defaults to the current UTC time).

        Returns:
            The recorded bet, or None for a duplicate or an empty address.
        """
        if not address:
            return None
        address = address.lower()
        now = now or datetime.now(UTC)

        stat = await self.get_wallet(address) or WalletStat(address=address, first_seen=now)
        if self._is_duplicate(stat, market=market, signal_id=signal_id, amount=amount, now=now):
            logger.debug("Skipping duplicate bet for wallet %s on %s", _short(address), market)
            return None

        bet = WalletBet(
            id=f"{signal_id or market}-{int(now.timestamp() * 1000)}-{uuid.uuid4().hex[:6]}",
            signal_id=signal_id,
            market=market,
            market_title=market_title or market,
            direction=direction,
            amount=amount,
            price=price,
            timestamp=now,
            invested=amount,
            current_price=price,
            current_value=amount,
        )

        stat.pending += 1
        stat.total_volume += amount
        stat.last_bet_at = now
        stat.recent_bets.insert(0, bet)
        del stat.recent_bets[RECENT_BETS_CAP:]

        trades = await self._get_trades(address) or WalletTradeLedger()
        trades.open.insert(0, bet)
        del trades.open[OPEN_BETS_CAP:]
        trades.last_updated = now
        await self._save_trades(address, trades)

        await self._save_wallet(stat)
        await self._add_to_index(address)
        return bet

    def _find_open_bet(
        self,
        bets: list[WalletBet],
        signal_id: str | None,
        market: str | None,
    ) -> WalletBet | None:
        if signal_id:
            for bet in bets:
                if bet.is_pending and bet.signal_id == signal_id:
                    return bet
        needle = market or signal_id
        for bet in bets:
            if bet.is_pending and bet.matches_market(needle):
                return bet
        return None

    def _should_keep(self, stat: WalletStat, now: datetime) -> bool:
        if stat.pending > 0 or stat.total_bets < self._min_bets:
            return True
        if stat.win_rate >= self._winner_min_win_rate:
            return True
        if stat.total_volume >= self._keep_min_volume:
            return True
        return stat.last_bet_at is not None and now - stat.last_bet_at < self._keep_recent

    def _should_evict(self, stat: WalletStat) -> bool:
        return (
            stat.total_bets >= self._evict_min_bets
            and stat.win_rate < self._evict_max_win_rate
        )

    def _is_winner(self, stat: WalletStat) -> bool:
        return stat.is_winner(min_bets=self._min_bets, min_win_rate=self._winner_min_win_rate)

    async def record_outcome(
        self,
        address: str,
        signal_id: str | None,
        outcome: SignalOutcome,
        *,
        market: str | None = None,
        now: datetime | None = None,
    ) -> WalletStat | None:
        """Settle a wallet's open bet on a signal.

        The bet is matched by signal id, falling back to a market substring
        match. A wallet without a matching open bet is left untouched, so
        replaying a settlement never double-counts.

        Returns:
            The updated wallet record, or None if nothing was settled.
        """
        if not address or not outcome.is_decisive:
            return None
        address = address.lower()
        now = now or datetime.now(UTC)

        stat = await self.get_wallet(address)
        if stat is None:
            return None
        bet = self._find_open_bet(stat.recent_bets, signal_id, market)
        if bet is None:
            logger.debug("No open bet for wallet %s on %s", _short(address), signal_id or market)
            return None

        bet.settle(outcome, now=now)
        stat.apply_outcome(outcome, bet.pnl)
        stat.tier = tier_for(stat, rules=self._tier_rules, min_bets=self._min_bets)
        await self._resolve_trade(address, bet, signal_id, market, now)

        if self._is_winner(stat) and self._should_keep(stat, now):
            await self._save_wallet(stat)
            await self._update_winners_cache(stat)
            return stat

        # A wallet that is no longer a winner must not be served from the cache.
        await self._drop_from_winners_cache({address})
        if self._should_keep(stat, now):
            await self._save_wallet(stat)
        elif self._should_evict(stat):
            logger.info(
                "Evicting losing wallet %s (%d%% over %d bets)",
                _short(address),
                stat.win_rate,
                stat.total_bets,
            )
            await self._remove_from_index({address})
            await self._store.delete(WALLET_KEY_PREFIX + address)
        else:
            await self._save_wallet(stat)
        return stat

    async def _resolve_trade(
        self,
        address: str,
        settled: WalletBet,
        signal_id: str | None,
        market: str | None,
        now: datetime,
    ) -> None:
        trades = await self._get_trades(address)
        if trades is None:
            return
        match = next((b for b in trades.open if b.id == settled.id), None)
        if match is None:
            match = self._find_open_bet(trades.open, signal_id, market)
        if match is None:
            return
        trades.open.remove(match)
        match.outcome = settled.outcome
        match.settled_at = now
        match.returned = settled.returned
        match.pnl = settled.pnl
        match.roi = settled.roi
        trades.resolved.insert(0, match)
        del trades.resolved[RESOLVED_BETS_CAP:]
        trades.last_updated = now
        await self._save_trades(address, trades)

    # ------------------------------------------------------------------
    # Winners
    # ------------------------------------------------------------------

    async def _update_winners_cache(self, stat: WalletStat) -> None:
        raw = await self._store.get_json(WINNERS_CACHE_KEY)
        wallets: dict[str, Any] = {}
        if isinstance(raw, dict) and isinstance(raw.get("wallets"), dict):
            wallets = raw["wallets"]
        wallets[stat.address] = WinnerInfo.from_stat(stat).to_dict()
        if len(wallets) > self._winners_cache_size:
            ranked = sorted(
                wallets.items(), key=lambda item: item[1].get("win_rate", 0), reverse=True
            )
            wallets = dict(ranked[: self._winners_cache_size])
        await self._store.set_json(
            WINNERS_CACHE_KEY,
            {"wallets": wallets, "timestamp": int(time.time() * 1000)},
            ex=WINNERS_CACHE_TTL_SECONDS,
        )

    async def _drop_from_winners_cache(self, addresses: set[str]) -> None:
        """Remove wallets from the winners cache, keeping its timestamp."""
        raw = await self._store.get_json(WINNERS_CACHE_KEY)
        if not isinstance(raw, dict) or not isinstance(raw.get("wallets"), dict):
            return
        wallets: dict[str, Any] = raw["wallets"]
        stale = {a for a in wallets if a.lower() in addresses}
        if not stale:
            return
        raw["wallets"] = {a: info for a, info in wallets.items() if a not in stale}
        await self._store.set_json(WINNERS_CACHE_KEY, raw, ex=WINNERS_CACHE_TTL_SECONDS)
        logger.debug("Dropped %d wallets from the winners cache", len(stale))

    def _qualifies(self, info: WinnerInfo) -> bool:
        return (
            info.is_winner
            and info.total_bets >= self._min_bets
            and info.win_rate >= self._winner_min_win_rate
        )

    async def get_winners_cache(self, *, now_ms: int | None = None) -> dict[str, WinnerInfo]:
        """Winners from the denormalized cache, or empty if it is stale."""
        raw = await self._store.get_json(WINNERS_CACHE_KEY)
        if not isinstance(raw, dict):
            return {}
        timestamp = raw.get("timestamp")
        now_ms = now_ms if now_ms is not None else int(time.time() * 1000)
        if not isinstance(timestamp, (int, float)) or now_ms - timestamp >= self._winners_fresh_ms:
            return {}
        wallets = raw.get("wallets")
        if not isinstance(wallets, dict):
            return {}
        return {
            addr.lower(): WinnerInfo.from_dict(info)
            for addr, info in wallets.items()
            if isinstance(info, dict)
        }

    async def is_winning_wallet(
        self,
        address: str,
        winners: dict[str, WinnerInfo] | None = None,
    ) -> WinnerInfo | None:
        """Winner details for a proven winning wallet, else None.

        Args:
            address: Wallet address.
            winners: Winners cache loaded once per scan.
        """
        if not address:
            return None
        address = address.lower()
        if winners and address in winners:
            info = winners[address]
            return info if self._qualifies(info) else None
        stat = await self.get_wallet(address)
        if stat is None or not self._is_winner(stat):
            return None
        return WinnerInfo.from_stat(stat)

    # ------------------------------------------------------------------
    # Views
    # ------------------------------------------------------------------

    async def wallet_stats(self, address: str) -> WalletStat | None:
        """Wallet record with its tier recomputed."""
        stat = await self.get_wallet(address)
        if stat is not None:
            stat.tier = tier_for(stat, rules=self._tier_rules, min_bets=self._min_bets)
        return stat

    async def leaderboard(self, limit: int = DEFAULT_LEADERBOARD_LIMIT) -> list[dict[str, Any]]:
        """Active wallets ranked winners first, then by tier, then by win rate."""
        rows: list[dict[str, Any]] = []
        for address in (await self.tracked_wallets())[:LEADERBOARD_SCAN_LIMIT]:
            stat = await self.get_wallet(address)
            if stat is None or (stat.total_bets < 1 and stat.pending <= 0):
                continue
            tier = stat.tier.value if stat.tier else ("PENDING" if stat.pending > 0 else "NEW")
            rows.append(
                {
                    "address": stat.address,
                    "wins": stat.wins,
                    "losses": stat.losses,
                    "pending": stat.pending,
                    "total_bets": stat.total_bets,
                    "win_rate": stat.win_rate,
                    "total_volume": stat.total_volume,
                    "tier": tier,
                    "is_winner": self._is_winner(stat),
                    "profit_loss": stat.profit_loss,
                    "current_streak": stat.current_streak,
                    "best_streak": stat.best_streak,
                    "last_bet_at": stat.last_bet_at.isoformat() if stat.last_bet_at else None,
                }
            )

        rows.sort(
            key=lambda row: (
                not row["is_winner"],
                TIER_ORDER.get(row["tier"], UNRANKED_TIER_ORDER),
                -row["win_rate"],
            )
        )
        return rows[:limit]

    async def pnl(self, address: str) -> dict[str, Any] | None:
        """Profit and loss summary with open and resolved bets.

        Falls back to the wallet's recent bets when the trade ledger is gone.
        """
        stat = await self.get_wallet(address)
        if stat is None:
            return None
        trades = await self._get_trades(stat.address)
        if trades is None:
            trades = self._rebuild_trades(stat)

        total_invested = sum(b.invested or b.amount for b in [*trades.open, *trades.resolved])
        total_returned = sum(b.returned for b in trades.resolved)
        realized = sum(b.pnl for b in trades.resolved)
        unrealized = 0.0
        for bet in trades.open:
            bet.unrealized_pnl = (bet.current_value or bet.amount) - (bet.invested or bet.amount)
            unrealized += bet.unrealized_pnl
        total = realized + unrealized
        roi = round_half_up(total / total_invested * 100) if total_invested > 0 else 0

        last_updated = trades.last_updated or stat.last_bet_at
        return {
            "address": stat.address,
            "summary": {
                "total_pnl": round_cents(total),
                "realized_pnl": round_cents(realized),
                "unrealized_pnl": round_cents(unrealized),
                "total_invested": round_cents(total_invested),
                "total_returned": round_cents(total_returned),
                "roi": roi,
                "wins": stat.wins,
                "losses": stat.losses,
                "pending": stat.pending,
                "win_rate": stat.win_rate,
                "total_volume": stat.total_volume,
                "current_streak": stat.current_streak,
                "best_streak": stat.best_streak,
            },
            "open_bets": [
                {
                    "id": b.id,
                    "market": b.market,
                    "market_title": b.market_title or b.market,
                    "direction": b.direction,
                    "invested": b.invested or b.amount,
                    "entry_price": b.price,
                    "current_price": b.current_price or b.price,
                    "current_value": b.current_value or b.invested,
                    "unrealized_pnl": b.unrealized_pnl,
                    "roi": b.roi,
                    "timestamp": b.timestamp.isoformat(),
                }
                for b in trades.open
            ],
            "resolved_bets": [
                {
                    "id": b.id,
                    "market": b.market,
                    "market_title": b.market_title or b.market,
                    "direction": b.direction,
                    "outcome": b.outcome.value if b.outcome else None,
                    "invested": b.invested or b.amount,
                    "entry_price": b.price,
                    "returned": b.returned,
                    "pnl": b.pnl,
                    "roi": b.roi,
                    "timestamp": b.timestamp.isoformat(),
                    "settled_at": b.settled_at.isoformat() if b.settled_at else None,
                }
                for b in trades.resolved
            ],
            "last_updated": last_updated.isoformat() if last_updated else None,
        }

    @staticmethod
    def _rebuild_trades(stat: WalletStat) -> WalletTradeLedger:
        trades = WalletTradeLedger()
        seen: set[str] = set()
        for bet in stat.recent_bets:
            if bet.dedup_key in seen:
                continue
            seen.add(bet.dedup_key)
            invested = bet.invested or bet.amount
            if bet.outcome == SignalOutcome.WIN and bet.pnl == 0 and invested > 0:
                bet.returned = round_cents(invested / (bet.price or DEFAULT_ENTRY_PRICE))
                bet.pnl = round_cents(bet.returned - invested)
                bet.roi = round_half_up(bet.pnl / invested * 100)
            elif bet.outcome == SignalOutcome.LOSS and bet.pnl == 0 and invested > 0:
                bet.returned = 0.0
                bet.pnl = -invested
                bet.roi = -100
            if bet.outcome is not None and bet.outcome.is_decisive:
                trades.resolved.append(bet)
            else:
                trades.open.append(bet)
        return trades

    # ------------------------------------------------------------------
    # Maintenance
    # ------------------------------------------------------------------

    async def prune_losing_wallets(self) -> dict[str, int]:
        """Delete settled losing wallets and drop orphaned index entries."""
        index = await self.tracked_wallets()
        removed: set[str] = set()
        kept = 0
        for address in index:
            stat = await self.get_wallet(address)
            if stat is None:
                removed.add(address)
                continue
            if self._should_evict(stat) and stat.pending == 0:
                await self._store.delete(WALLET_KEY_PREFIX + address.lower())
                removed.add(address)
                logger.debug(
                    "Pruned %s (%d%% over %d bets)", _short(address), stat.win_rate, stat.total_bets
                )
            else:
                kept += 1
        if removed:
            await self._remove_from_index(removed)
            await self._drop_from_winners_cache({a.lower() for a in removed})
        logger.info("Pruning complete: %d removed, %d kept", len(removed), kept)
        return {"pruned": len(removed), "kept": kept}

    async def deduplicate_wallet_bets(self) -> dict[str, int]:
        """Merge colliding recent bets and recompute each wallet's counters."""
        processed = 0
        duplicates = 0
        for address in await self.tracked_wallets():
            stat = await self.get_wallet(address)
            if stat is None or not stat.recent_bets:
                continue

            unique: dict[str, WalletBet] = {}
            for bet in stat.recent_bets:
                existing = unique.get(bet.dedup_key)
                if existing is None:
                    unique[bet.dedup_key] = bet
                elif bet.outcome is not None and existing.outcome is None:
                    existing.outcome = bet.outcome
                    existing.settled_at = bet.settled_at

            removed = len(stat.recent_bets) - len(unique)
            if removed > 0:
                stat.recent_bets = list(unique.values())
                stat.recount()
                stat.tier = tier_for(stat, rules=self._tier_rules, min_bets=self._min_bets)
                await self._save_wallet(stat)
                duplicates += removed
                logger.info(
                    "Wallet %s: removed %d duplicates, now %s (%d%%)",
                    _short(address),
                    removed,
                    stat.record_label,
                    stat.win_rate,
                )
            processed += 1

        logger.info("Deduplication complete: %d wallets, %d duplicates removed", processed, duplicates)
        return {"wallets_processed": processed, "duplicates_removed": duplicates}
