"""Data models for the detector module."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True)
class FactorRef:
    """A named scoring factor and the points it contributed.

    Stored breakdowns use the compact ``{"factor", "points", "desc"}`` form.
    Older records may hold bare factor names or ``{"name": ...}`` objects;
    ``from_value`` accepts all three.
    """

    name: str
    points: int = 0
    description: str | None = None

    def to_dict(self) -> dict[str, Any]:
        """Serialize to the stored breakdown form."""
        data: dict[str, Any] = {"factor": self.name, "points": self.points}
        if self.description:
            data["desc"] = self.description
        return data

    @classmethod
    def from_value(cls, value: Any) -> FactorRef | None:
        """Build from a stored breakdown entry, or None if it has no name."""
        if isinstance(value, FactorRef):
            return value
        if isinstance(value, str):
            return cls(name=value) if value else None
        if isinstance(value, dict):
            name = value.get("factor") or value.get("name")
            if not isinstance(name, str) or not name:
                return None
            try:
                points = int(value.get("points", value.get("score", 0)) or 0)
            except (TypeError, ValueError):
                points = 0
            desc = value.get("desc") or value.get("detail")
            return cls(name=name, points=points, description=str(desc) if desc else None)
        return None


def factor_names(values: Iterable[Any]) -> list[str]:
    """Resolve breakdown entries of any stored shape to their factor names."""
    names: list[str] = []
    for value in values:
        ref = FactorRef.from_value(value)
        if ref is not None:
            names.append(ref.name)
    return names


@dataclass(frozen=True)
class HeuristicScore:
    """Outcome of the heuristic scorer for one market window.

    Attributes:
        score: Sum of factor points clamped to [0, 100].
        breakdown: Factors that fired, in evaluation order.
        entry_price_cents: Effective entry price of the largest trade, if any.
    """

    score: int
    breakdown: tuple[FactorRef, ...] = ()
    entry_price_cents: int | None = None

    @property
    def factor_names(self) -> list[str]:
        """Names of the factors that fired."""
        return [f.name for f in self.breakdown]


@dataclass(frozen=True)
class AIScoreResult:
    """Learned multiplier applied on top of the heuristic score."""

    ai_score: int
    multiplier: float
    should_hide: bool = False
    boost_reasons: tuple[str, ...] = ()
    penalty_reasons: tuple[str, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        """Convert to a JSON-serializable dictionary."""
        return {
            "ai_score": self.ai_score,
            "multiplier": self.multiplier,
            "should_hide": self.should_hide,
            "boost_reasons": list(self.boost_reasons),
            "penalty_reasons": list(self.penalty_reasons),
        }


@dataclass(frozen=True)
class ConfidenceComponent:
    """One historical win-rate source feeding the confidence estimate."""

    source: str
    confidence: int
    weight: float

    def to_dict(self) -> dict[str, Any]:
        """Convert to a JSON-serializable dictionary."""
        return {"source": self.source, "confidence": self.confidence, "weight": self.weight}


@dataclass(frozen=True)
class ConfidenceResult:
    """Weighted-mean confidence from the learning store."""

    confidence: int
    components: tuple[ConfidenceComponent, ...] = field(default_factory=tuple)

    @property
    def data_points(self) -> int:
        """Number of components that qualified."""
        return len(self.components)

    def to_dict(self) -> dict[str, Any]:
        """Convert to a JSON-serializable dictionary."""
        return {
            "confidence": self.confidence,
            "components": [c.to_dict() for c in self.components],
            "data_points": self.data_points,
        }
