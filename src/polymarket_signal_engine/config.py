"""Configuration management service with Pydantic Settings.

This module provides centralized configuration management for the
Polymarket Signal Engine, loading and validating environment variables
at startup. The resulting ``Settings`` value is immutable and is handed
explicitly to every component; no component reads the environment itself.
"""

from __future__ import annotations

import logging
from functools import lru_cache
from typing import Annotated, Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict

_ENV_FILE = ".env"
_ENV_FILE_ENCODING = "utf-8"


def _parse_csv(v: object, *, name: str) -> tuple[str, ...]:
    if isinstance(v, str):
        return tuple(p.strip().lower() for p in v.split(",") if p.strip())
    if isinstance(v, (list, tuple)):
        return tuple(str(x).strip().lower() for x in v)
    raise TypeError(f"Invalid {name} type")


class RedisSettings(BaseSettings):
    """Redis connection settings."""

    model_config = SettingsConfigDict(env_prefix="", extra="ignore", frozen=True)

    url: str = Field(
        default="redis://localhost:6379",
        alias="REDIS_URL",
        description="Redis connection string for the signal/ledger store",
    )

    @field_validator("url")
    @classmethod
    def validate_url(cls, v: str) -> str:
        """Validate Redis URL format."""
        if not v.startswith(("redis://", "rediss://")):
            raise ValueError("REDIS_URL must start with redis:// or rediss://")
        return v


class PolymarketSettings(BaseSettings):
    """Polymarket public API settings."""

    model_config = SettingsConfigDict(env_prefix="POLYMARKET_", extra="ignore", frozen=True)

    data_api_url: str = Field(
        default="https://data-api.polymarket.com",
        alias="POLYMARKET_DATA_API_URL",
        description="Data API base URL (recent trades feed)",
    )
    gamma_api_url: str = Field(
        default="https://gamma-api.polymarket.com",
        alias="POLYMARKET_GAMMA_API_URL",
        description="Gamma API base URL (event start/end metadata)",
    )
    trade_limit: int = Field(
        default=1500,
        alias="POLYMARKET_TRADE_LIMIT",
        ge=1,
        le=10_000,
        description="Number of recent trades fetched per scan",
    )
    settlement_trade_limit: int = Field(
        default=2000,
        alias="POLYMARKET_SETTLEMENT_TRADE_LIMIT",
        ge=1,
        le=10_000,
        description="Number of recent trades inspected by the price settlement oracle",
    )
    fetch_timeout_seconds: float = Field(
        default=8.0,
        alias="POLYMARKET_FETCH_TIMEOUT_SECONDS",
        gt=0.0,
        le=120.0,
        description="Upper bound on a single trade-feed fetch",
    )

    @field_validator("data_api_url", "gamma_api_url")
    @classmethod
    def validate_http_url(cls, v: str) -> str:
        """Validate API URL format."""
        if not v.startswith(("http://", "https://")):
            raise ValueError("Polymarket API URLs must be HTTP(S) endpoints")
        return v.rstrip("/")


class ScanSettings(BaseSettings):
    """Scan (trade aggregation and scoring) settings."""

    model_config = SettingsConfigDict(env_prefix="SCAN_", extra="ignore", frozen=True)

    hours_back: float = Field(
        default=48.0,
        alias="SCAN_HOURS_BACK",
        gt=0.0,
        le=24 * 30,
        description="Default lookback horizon for a scan",
    )
    min_score: int = Field(
        default=40,
        alias="SCAN_MIN_SCORE",
        ge=0,
        le=100,
        description="Default minimum base score for a market to become a signal",
    )
    min_trade_usd: float = Field(
        default=10.0,
        alias="SCAN_MIN_TRADE_USD",
        ge=0.0,
        description="Trades below this notional are ignored",
    )
    max_trades_per_market: int = Field(
        default=10,
        alias="SCAN_MAX_TRADES_PER_MARKET",
        ge=1,
        le=1000,
        description="Raw trades retained per market window for inspection",
    )
    top_trades_checked: int = Field(
        default=5,
        alias="SCAN_TOP_TRADES_CHECKED",
        ge=1,
        le=50,
        description="Largest trades per market checked against the wallet ledger",
    )
    wallets_tracked_per_signal: int = Field(
        default=3,
        alias="SCAN_WALLETS_TRACKED_PER_SIGNAL",
        ge=0,
        le=50,
        description="Largest trades per signal recorded into the wallet ledger",
    )
    track_min_amount_usd: float = Field(
        default=5_000.0,
        alias="SCAN_TRACK_MIN_AMOUNT_USD",
        ge=0.0,
        description="A bet at least this large is always recorded in the ledger",
    )
    track_min_score: int = Field(
        default=60,
        alias="SCAN_TRACK_MIN_SCORE",
        ge=0,
        le=100,
        description="Bets on signals scoring at least this are recorded in the ledger",
    )
    min_interval_seconds: int = Field(
        default=60,
        alias="SCAN_MIN_INTERVAL_SECONDS",
        ge=0,
        le=86_400,
        description="A scan is skipped if the previous one started more recently than this",
    )
    pending_index_cap: int = Field(
        default=300,
        alias="SCAN_PENDING_INDEX_CAP",
        ge=1,
        le=100_000,
        description="Maximum number of ids kept in the pending-signal index",
    )
    max_timing_lookups: int = Field(
        default=20,
        alias="SCAN_MAX_TIMING_LOOKUPS",
        ge=0,
        le=500,
        description="Event timing lookups per scan; further qualifying markets get none",
    )


class WalletSettings(BaseSettings):
    """Wallet reputation ledger settings."""

    model_config = SettingsConfigDict(env_prefix="WALLET_", extra="ignore", frozen=True)

    min_bets: int = Field(
        default=3,
        alias="WALLET_MIN_BETS",
        ge=1,
        description="Settled bets required before a wallet gets a tier or winner status",
    )
    winner_min_win_rate: int = Field(
        default=55,
        alias="WALLET_WINNER_MIN_WIN_RATE",
        ge=0,
        le=100,
        description="Win rate at or above which a wallet is a winner (and kept)",
    )
    keep_min_volume_usd: float = Field(
        default=50_000.0,
        alias="WALLET_KEEP_MIN_VOLUME_USD",
        ge=0.0,
        description="Wallets with at least this volume are never evicted",
    )
    keep_recent_days: float = Field(
        default=7.0,
        alias="WALLET_KEEP_RECENT_DAYS",
        ge=0.0,
        description="Wallets with a bet newer than this are never evicted",
    )
    evict_min_bets: int = Field(
        default=5,
        alias="WALLET_EVICT_MIN_BETS",
        ge=1,
        description="Settled bets required before a losing wallet may be evicted",
    )
    evict_max_win_rate: int = Field(
        default=45,
        alias="WALLET_EVICT_MAX_WIN_RATE",
        ge=0,
        le=100,
        description="Wallets below this win rate are eviction candidates",
    )
    duplicate_window_seconds: int = Field(
        default=300,
        alias="WALLET_DUPLICATE_WINDOW_SECONDS",
        ge=0,
        description="Window in which an equivalent bet is treated as a duplicate",
    )
    duplicate_amount_tolerance_usd: float = Field(
        default=10.0,
        alias="WALLET_DUPLICATE_AMOUNT_TOLERANCE_USD",
        ge=0.0,
        description="Amount difference under which two bets are equivalent",
    )
    winners_cache_fresh_seconds: int = Field(
        default=300,
        alias="WALLET_WINNERS_CACHE_FRESH_SECONDS",
        ge=0,
        description="Age under which the denormalized winners cache is trusted",
    )
    winners_cache_size: int = Field(
        default=100,
        alias="WALLET_WINNERS_CACHE_SIZE",
        ge=1,
        description="Maximum number of wallets held in the winners cache",
    )
    insider_min_win_rate: int = Field(
        default=75,
        alias="WALLET_INSIDER_MIN_WIN_RATE",
        ge=0,
        le=100,
    )
    elite_min_win_rate: int = Field(
        default=68,
        alias="WALLET_ELITE_MIN_WIN_RATE",
        ge=0,
        le=100,
    )
    strong_min_win_rate: int = Field(
        default=60,
        alias="WALLET_STRONG_MIN_WIN_RATE",
        ge=0,
        le=100,
    )
    average_min_win_rate: int = Field(
        default=50,
        alias="WALLET_AVERAGE_MIN_WIN_RATE",
        ge=0,
        le=100,
    )
    fade_max_win_rate: int = Field(
        default=42,
        alias="WALLET_FADE_MAX_WIN_RATE",
        ge=0,
        le=100,
        description="Wallets at or below this win rate (with enough bets) are tiered FADE",
    )


class ScoringSettings(BaseSettings):
    """Heuristic scorer and confidence estimator settings."""

    model_config = SettingsConfigDict(env_prefix="SCORING_", extra="ignore", frozen=True)

    winning_wallet_points: int = Field(
        default=30,
        alias="SCORING_WINNING_WALLET_POINTS",
        ge=0,
        le=100,
        description="Points added when a top trade comes from a proven winner",
    )
    factor_min_samples: int = Field(
        default=3,
        alias="SCORING_FACTOR_MIN_SAMPLES",
        ge=1,
        description="Samples a factor needs before it feeds the confidence estimate",
    )
    pattern_min_samples: int = Field(
        default=5,
        alias="SCORING_PATTERN_MIN_SAMPLES",
        ge=1,
        description="Samples a pattern bucket needs before it feeds the confidence estimate",
    )
    confidence_history_blend: float = Field(
        default=0.6,
        alias="SCORING_CONFIDENCE_HISTORY_BLEND",
        ge=0.0,
        le=1.0,
        description="Weight of the historical estimate in the final confidence",
    )


class LearningSettings(BaseSettings):
    """Factor learning store settings."""

    model_config = SettingsConfigDict(env_prefix="LEARNING_", extra="ignore", frozen=True)

    full_confidence_samples: int = Field(
        default=10,
        alias="LEARNING_FULL_CONFIDENCE_SAMPLES",
        ge=1,
        description="Samples after which a factor weight fully reflects its win rate",
    )
    promotion_min_samples: int = Field(
        default=10,
        alias="LEARNING_PROMOTION_MIN_SAMPLES",
        ge=1,
        description="Samples required before a pattern candidate can be promoted",
    )
    promotion_high_win_rate: int = Field(
        default=60,
        alias="LEARNING_PROMOTION_HIGH_WIN_RATE",
        ge=0,
        le=100,
    )
    promotion_low_win_rate: int = Field(
        default=35,
        alias="LEARNING_PROMOTION_LOW_WIN_RATE",
        ge=0,
        le=100,
    )
    multiplier_min_samples: int = Field(
        default=5,
        alias="LEARNING_MULTIPLIER_MIN_SAMPLES",
        ge=1,
        description="Samples required before a factor moves the AI multiplier",
    )
    combo_min_samples: int = Field(
        default=2,
        alias="LEARNING_COMBO_MIN_SAMPLES",
        ge=1,
        description="Factor pairs with fewer samples are pruned on every rewrite",
    )
    fade_factors: Annotated[tuple[str, ...], NoDecode] = Field(
        default=("sports-mma",),
        alias="LEARNING_FADE_FACTORS",
        description="Factors whose collapse hides a signal (comma-separated)",
    )

    @field_validator("fade_factors", mode="before")
    @classmethod
    def _parse_fade_factors(cls, v: object) -> tuple[str, ...]:
        return _parse_csv(v, name="LEARNING_FADE_FACTORS")


class Settings(BaseSettings):
    """Main application settings.

    Loads configuration from environment variables with support for
    .env files via python-dotenv.

    Example:
        ```python
        from polymarket_signal_engine.config import get_settings

        settings = get_settings()
        print(settings.redis.url)
        print(settings.scan.min_score)
        ```
    """

    model_config = SettingsConfigDict(
        env_file=_ENV_FILE,
        env_file_encoding=_ENV_FILE_ENCODING,
        extra="ignore",
        frozen=True,
    )

    # NOTE: Each nested BaseSettings must be given the same env_file, otherwise it
    # will only read from the process environment (and ignore `.env`).
    redis: RedisSettings = Field(
        default_factory=lambda: RedisSettings(
            _env_file=_ENV_FILE,
            _env_file_encoding=_ENV_FILE_ENCODING,
        )
    )
    polymarket: PolymarketSettings = Field(
        default_factory=lambda: PolymarketSettings(
            _env_file=_ENV_FILE,
            _env_file_encoding=_ENV_FILE_ENCODING,
        )
    )
    scan: ScanSettings = Field(
        default_factory=lambda: ScanSettings(
            _env_file=_ENV_FILE,
            _env_file_encoding=_ENV_FILE_ENCODING,
        )
    )
    wallet: WalletSettings = Field(
        default_factory=lambda: WalletSettings(
            _env_file=_ENV_FILE,
            _env_file_encoding=_ENV_FILE_ENCODING,
        )
    )
    learning: LearningSettings = Field(
        default_factory=lambda: LearningSettings(
            _env_file=_ENV_FILE,
            _env_file_encoding=_ENV_FILE_ENCODING,
        )
    )
    scoring: ScoringSettings = Field(
        default_factory=lambda: ScoringSettings(
            _env_file=_ENV_FILE,
            _env_file_encoding=_ENV_FILE_ENCODING,
        )
    )

    # Application settings
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO",
        alias="LOG_LEVEL",
        description="Logging level",
    )
    odds_api_enabled: bool = Field(
        default=False,
        alias="ODDS_API_ENABLED",
        description="Consult the game-score oracle before the price heuristic",
    )

    def get_logging_level(self) -> int:
        """Get the numeric logging level."""
        level: int = getattr(logging, self.log_level)
        return level

    def redacted_summary(self) -> dict[str, str | dict[str, str]]:
        """Get a summary of settings with secrets redacted.

        Returns:
            Dictionary of settings with sensitive values masked.
        """
        return {
            "redis_url": self._redact_url(self.redis.url),
            "polymarket": {
                "data_api_url": self.polymarket.data_api_url,
                "gamma_api_url": self.polymarket.gamma_api_url,
                "trade_limit": str(self.polymarket.trade_limit),
                "fetch_timeout_seconds": str(self.polymarket.fetch_timeout_seconds),
            },
            "scan": {
                "hours_back": str(self.scan.hours_back),
                "min_score": str(self.scan.min_score),
                "min_trade_usd": str(self.scan.min_trade_usd),
                "min_interval_seconds": str(self.scan.min_interval_seconds),
            },
            "wallet": {
                "min_bets": str(self.wallet.min_bets),
                "winner_min_win_rate": str(self.wallet.winner_min_win_rate),
            },
            "learning": {
                "promotion_min_samples": str(self.learning.promotion_min_samples),
                "fade_factors": ",".join(self.learning.fade_factors),
            },
            "scoring": {
                "winning_wallet_points": str(self.scoring.winning_wallet_points),
                "confidence_history_blend": str(self.scoring.confidence_history_blend),
            },
            "log_level": self.log_level,
            "odds_api_enabled": str(self.odds_api_enabled),
        }

    @staticmethod
    def _redact_url(url: str) -> str:
        """Redact password from URL if present."""
        if "@" in url and "://" in url:
            # URL has credentials - redact the password
            protocol_end = url.index("://") + 3
            at_pos = url.index("@")
            creds_part = url[protocol_end:at_pos]
            if ":" in creds_part:
                username = creds_part.split(":")[0]
                return f"{url[:protocol_end]}{username}:***@{url[at_pos + 1 :]}"
        return url


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Get the application settings singleton.

    Uses LRU cache to ensure settings are loaded only once and
    reused across the application.

    Returns:
        The Settings instance.

    Raises:
        ValidationError: If environment variables have invalid values.
    """
    return Settings()


def clear_settings_cache() -> None:
    """Clear the settings cache.

    Useful for testing when you need to reload settings with
    different environment variables.
    """
    get_settings.cache_clear()
