"""Scoring of aggregated market windows."""

from polymarket_signal_engine.detector.ai_scorer import AIScoreAdjuster, compute_ai_multiplier
from polymarket_signal_engine.detector.confidence import (
    ConfidenceEstimator,
    blend_confidence,
    estimate_confidence,
)
from polymarket_signal_engine.detector.models import (
    AIScoreResult,
    ConfidenceComponent,
    ConfidenceResult,
    FactorRef,
    HeuristicScore,
    factor_names,
)
from polymarket_signal_engine.detector.scorer import HeuristicScorer

__all__ = [
    "AIScoreAdjuster",
    "AIScoreResult",
    "ConfidenceComponent",
    "ConfidenceEstimator",
    "ConfidenceResult",
    "FactorRef",
    "HeuristicScore",
    "HeuristicScorer",
    "blend_confidence",
    "compute_ai_multiplier",
    "estimate_confidence",
    "factor_names",
]
