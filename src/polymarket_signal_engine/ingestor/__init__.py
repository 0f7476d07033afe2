"""Data ingestion layer - trade parsing, market classification and aggregation."""

from polymarket_signal_engine.ingestor.aggregator import (
    AggregationResult,
    AggregationStats,
    TradeAggregator,
)
from polymarket_signal_engine.ingestor.classifier import (
    ClassificationRules,
    MarketClassification,
    MarketClassifier,
)
from polymarket_signal_engine.ingestor.models import (
    EventTiming,
    MarketWindow,
    Trade,
    TradeParseError,
)
from polymarket_signal_engine.ingestor.polymarket_api import (
    DataSourceError,
    PolymarketDataClient,
    RetryError,
)

__all__ = [
    "AggregationResult",
    "AggregationStats",
    "ClassificationRules",
    "DataSourceError",
    "EventTiming",
    "MarketClassification",
    "MarketClassifier",
    "MarketWindow",
    "PolymarketDataClient",
    "RetryError",
    "Trade",
    "TradeAggregator",
    "TradeParseError",
]
