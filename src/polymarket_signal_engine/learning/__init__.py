"""Settlement-driven factor learning."""

from polymarket_signal_engine.learning.buckets import (
    TIMING_FACTOR_NAMES,
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
    combo_key,
)
from polymarket_signal_engine.learning.store import FactorLearningStore, LearningSnapshot

__all__ = [
    "FactorCombo",
    "FactorLearningStore",
    "FactorStat",
    "LearningSnapshot",
    "PatternStat",
    "SignalMetadata",
    "TIMING_FACTOR_NAMES",
    "combo_key",
    "event_timing_factor",
    "hours_before_event",
    "time_block",
    "volume_bracket",
    "wallet_count_bucket",
    "weekday_pattern",
]
