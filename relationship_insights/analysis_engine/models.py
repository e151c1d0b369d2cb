"""
Data models for relationship analytics.

Closed category enumeration, rating records, and the immutable result types
every analyzer returns. All results expose to_dict() for persistence and for
the narrative-generation context.
"""

from __future__ import annotations

import datetime as dt
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any, Mapping

from relationship_insights.core.exceptions import RatingValidationError


class Category(str, Enum):
    """One scored dimension of relationship wellness. The set is closed."""

    COMMUNICATION = "communication"
    EMOTIONAL_CONNECTION = "emotional_connection"
    MUTUAL_SUPPORT = "mutual_support"
    TRUST = "trust"
    PHYSICAL_INTIMACY = "physical_intimacy"
    MENTAL_HEALTH = "mental_health"
    CONFLICT_RESOLUTION = "conflict_resolution"
    RELATIONAL_SECURITY = "relational_security"
    GOAL_ALIGNMENT = "goal_alignment"
    OVERALL_SATISFACTION = "overall_satisfaction"
    SELF_CARE = "self_care"
    GRATITUDE = "gratitude"
    QUALITY_TIME = "quality_time"

    @property
    def label(self) -> str:
        return self.value.replace("_", " ")

    @classmethod
    def parse(cls, key: Any) -> "Category":
        """
        Resolve a category from its value, its camelCase form, or a legacy
        form key (e.g. "resolucaoConflitos"). Raises RatingValidationError.
        """
        if isinstance(key, Category):
            return key
        if not isinstance(key, str) or not key.strip():
            raise RatingValidationError("category key must be a non-empty string", key=repr(key))
        raw = key.strip()
        normalized = _camel_to_snake(raw)
        if normalized in _BY_VALUE:
            return _BY_VALUE[normalized]
        if raw in LEGACY_CATEGORY_KEYS:
            return LEGACY_CATEGORY_KEYS[raw]
        raise RatingValidationError(f"unknown category: {raw}", key=raw)


def _camel_to_snake(key: str) -> str:
    out: list[str] = []
    for ch in key:
        if ch.isupper():
            if out:
                out.append("_")
            out.append(ch.lower())
        else:
            out.append(ch)
    return "".join(out).replace("-", "_").replace(" ", "_").lower()


_BY_VALUE: dict[str, Category] = {c.value: c for c in Category}

# Keys used by the first version of the assessment forms.
LEGACY_CATEGORY_KEYS: dict[str, Category] = {
    "comunicacao": Category.COMMUNICATION,
    "conexaoEmocional": Category.EMOTIONAL_CONNECTION,
    "apoioMutuo": Category.MUTUAL_SUPPORT,
    "transparenciaConfianca": Category.TRUST,
    "intimidadeFisica": Category.PHYSICAL_INTIMACY,
    "saudeMental": Category.MENTAL_HEALTH,
    "resolucaoConflitos": Category.CONFLICT_RESOLUTION,
    "segurancaRelacionamento": Category.RELATIONAL_SECURITY,
    "alinhamentoObjetivos": Category.GOAL_ALIGNMENT,
    "satisfacaoGeral": Category.OVERALL_SATISFACTION,
    "autocuidado": Category.SELF_CARE,
    "gratidao": Category.GRATITUDE,
    "qualidadeTempo": Category.QUALITY_TIME,
}


class CategoryGroup(str, Enum):
    """Sub-groups used by the psychological classifiers."""

    CONSENSUS = "consensus"
    AFFECTION = "affection"
    COHESION = "cohesion"
    SATISFACTION = "satisfaction"
    CONFLICT = "conflict"
    GENERAL = "general"


# Every category belongs to exactly one group.
CATEGORY_GROUPS: Mapping[Category, CategoryGroup] = MappingProxyType({
    Category.GOAL_ALIGNMENT: CategoryGroup.CONSENSUS,
    Category.MUTUAL_SUPPORT: CategoryGroup.CONSENSUS,
    Category.EMOTIONAL_CONNECTION: CategoryGroup.AFFECTION,
    Category.PHYSICAL_INTIMACY: CategoryGroup.AFFECTION,
    Category.GRATITUDE: CategoryGroup.AFFECTION,
    Category.QUALITY_TIME: CategoryGroup.COHESION,
    Category.COMMUNICATION: CategoryGroup.COHESION,
    Category.OVERALL_SATISFACTION: CategoryGroup.SATISFACTION,
    Category.RELATIONAL_SECURITY: CategoryGroup.SATISFACTION,
    Category.TRUST: CategoryGroup.SATISFACTION,
    Category.CONFLICT_RESOLUTION: CategoryGroup.CONFLICT,
    Category.MENTAL_HEALTH: CategoryGroup.GENERAL,
    Category.SELF_CARE: CategoryGroup.GENERAL,
})


def group_members(group: CategoryGroup) -> tuple[Category, ...]:
    """Categories in a group, in enumeration order."""
    return tuple(c for c in Category if CATEGORY_GROUPS[c] is group)


# Importance weights for pairwise gaps; unlisted categories weigh 1.0.
CATEGORY_WEIGHTS: Mapping[Category, float] = MappingProxyType({
    Category.COMMUNICATION: 1.2,
    Category.TRUST: 1.2,
    Category.EMOTIONAL_CONNECTION: 1.1,
    Category.MUTUAL_SUPPORT: 1.1,
    Category.CONFLICT_RESOLUTION: 1.0,
    Category.PHYSICAL_INTIMACY: 0.9,
    Category.MENTAL_HEALTH: 0.9,
    Category.OVERALL_SATISFACTION: 0.8,
})


@dataclass(frozen=True)
class RatingRecord:
    """
    One party's assessment for one day.

    ratings may be partial; categories the party skipped are simply absent.
    Values are validated to [1, 5] at the boundary (see validation.py).
    """

    date: dt.date
    owner_id: str
    ratings: Mapping[Category, float]
    note: str | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "ratings", MappingProxyType(dict(self.ratings)))

    def score(self, category: Category) -> float | None:
        return self.ratings.get(category)

    def to_dict(self) -> dict[str, Any]:
        return {
            "date": self.date.isoformat(),
            "owner_id": self.owner_id,
            "ratings": {c.value: v for c, v in self.ratings.items()},
            "note": self.note,
        }


@dataclass(frozen=True)
class CategoryAverages:
    """
    Pooled averages per category and per group, each in [0, 5].

    None marks "no ratings at all", distinct from a genuine low score.
    score() returns a numeric value for classifiers, substituting default.
    """

    categories: Mapping[Category, float | None]
    groups: Mapping[CategoryGroup, float | None]

    def __post_init__(self) -> None:
        object.__setattr__(self, "categories", MappingProxyType(dict(self.categories)))
        object.__setattr__(self, "groups", MappingProxyType(dict(self.groups)))

    def get(self, key: Category | CategoryGroup) -> float | None:
        if isinstance(key, Category):
            return self.categories.get(key)
        return self.groups.get(key)

    def score(self, key: Category | CategoryGroup, default: float = 0.0) -> float:
        value = self.get(key)
        return default if value is None else value

    def has_data(self, key: Category | CategoryGroup) -> bool:
        return self.get(key) is not None

    def to_dict(self) -> dict[str, Any]:
        return {
            "categories": {c.value: self.categories.get(c) for c in Category},
            "groups": {g.value: self.groups.get(g) for g in CategoryGroup},
        }


class Significance(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


CONSISTENTLY_HIGHER = "consistently higher"
CONSISTENTLY_LOWER = "consistently lower"


@dataclass(frozen=True)
class DiscrepancyResult:
    """
    Historical gap between the two parties for one category.

    pattern is "consistently higher"/"consistently lower" (from party A's side)
    when every shared day's signed gap points the same way.
    insufficient_data is True when either party never rated the category.
    """

    category: Category
    difference: float
    significance: Significance
    pattern: str | None = None
    paired_days: int = 0
    insufficient_data: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "category": self.category.value,
            "difference": self.difference,
            "significance": self.significance.value,
            "pattern": self.pattern,
            "paired_days": self.paired_days,
            "insufficient_data": self.insufficient_data,
        }


class CommentaryStatus(str, Enum):
    NOT_REQUESTED = "not_requested"
    OK = "ok"
    UNAVAILABLE = "unavailable"
    DEADLINE_EXCEEDED = "deadline_exceeded"


@dataclass(frozen=True)
class PairwiseDiscrepancy:
    """A flagged gap between two single-day snapshots, optionally with prose commentary."""

    category: Category
    rating_a: float
    rating_b: float
    difference: float
    weighted_difference: float
    significance: Significance
    recommendation_ref: str
    commentary: str | None = None
    commentary_status: CommentaryStatus = CommentaryStatus.NOT_REQUESTED

    def to_dict(self) -> dict[str, Any]:
        return {
            "category": self.category.value,
            "rating_a": self.rating_a,
            "rating_b": self.rating_b,
            "difference": self.difference,
            "weighted_difference": self.weighted_difference,
            "significance": self.significance.value,
            "recommendation_ref": self.recommendation_ref,
            "commentary": self.commentary,
            "commentary_status": self.commentary_status.value,
        }


class TrendDirection(str, Enum):
    IMPROVING = "improving"
    STABLE = "stable"
    DECLINING = "declining"


class Convergence(str, Enum):
    CONVERGING = "converging"
    STABLE = "stable"
    DIVERGING = "diverging"


@dataclass(frozen=True)
class TrendResult:
    """
    Long-range trend for one category over the pooled daily series.

    magnitude: |mean(last 7) - mean(first 7)|, always >= 0.
    confidence: 1 - variance/5 clamped to [0, 1]; 0 when there is no data.
    """

    direction: TrendDirection
    magnitude: float
    confidence: float
    description: str = ""
    sample_size: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "direction": self.direction.value,
            "magnitude": self.magnitude,
            "confidence": self.confidence,
            "description": self.description,
            "sample_size": self.sample_size,
        }


@dataclass(frozen=True)
class CategoryDynamics:
    """Per-party short trend, convergence of the two series, and pooled volatility."""

    category: Category
    trend_a: TrendDirection
    trend_b: TrendDirection
    convergence: Convergence
    volatility: float

    def to_dict(self) -> dict[str, Any]:
        return {
            "category": self.category.value,
            "trend_a": self.trend_a.value,
            "trend_b": self.trend_b.value,
            "convergence": self.convergence.value,
            "volatility": self.volatility,
        }


@dataclass(frozen=True)
class TemporalPattern:
    """Persistent or emerging trend pattern; party is "a", "b" or "both"."""

    category: Category
    kind: str
    description: str
    party: str = "both"

    def to_dict(self) -> dict[str, Any]:
        return {
            "category": self.category.value,
            "kind": self.kind,
            "description": self.description,
            "party": self.party,
        }


class PatternType(str, Enum):
    CYCLIC = "cyclic"
    PROGRESSIVE = "progressive"
    REACTIVE = "reactive"


@dataclass(frozen=True)
class Pattern:
    category: Category
    type: PatternType
    significance: float
    description: str
    period: int | None = None
    amplitude: float | None = None
    correlation: float | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "category": self.category.value,
            "type": self.type.value,
            "significance": self.significance,
            "description": self.description,
            "period": self.period,
            "amplitude": self.amplitude,
            "correlation": self.correlation,
        }


class CycleKind(str, Enum):
    WEEKLY = "weekly"
    BIWEEKLY = "biweekly"
    MONTHLY = "monthly"


@dataclass(frozen=True)
class CyclicalBehavior:
    """
    A detected cycle: period in days, amplitude (half the spread of the
    folded bucket means), phase (bucket index of the peak), and the notes
    written on days where the score moved noticeably.
    """

    category: Category
    cycle: CycleKind
    period: int
    amplitude: float
    phase: int
    triggers: tuple[str, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        return {
            "category": self.category.value,
            "cycle": self.cycle.value,
            "period": self.period,
            "amplitude": self.amplitude,
            "phase": self.phase,
            "triggers": list(self.triggers),
        }


@dataclass(frozen=True)
class ClassificationResult:
    """
    Primary label from an ordered rule table, the metrics it was decided on,
    and a reference key into the external recommendation set.
    """

    kind: str
    label: str
    description: str
    metrics: Mapping[str, Any] = field(default_factory=dict)
    recommendation_ref: str = ""
    rationale: str = ""
    notes: tuple[str, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        return {
            "kind": self.kind,
            "label": self.label,
            "description": self.description,
            "metrics": dict(self.metrics),
            "recommendation_ref": self.recommendation_ref,
            "rationale": self.rationale,
            "notes": list(self.notes),
        }


@dataclass(frozen=True)
class IntimacyBalance:
    score: float
    emotional: float
    physical: float
    intellectual: float
    shared: float

    def to_dict(self) -> dict[str, Any]:
        return {
            "score": self.score,
            "emotional": self.emotional,
            "physical": self.physical,
            "intellectual": self.intellectual,
            "shared": self.shared,
        }


@dataclass(frozen=True)
class FocusArea:
    """A category singled out as a growth area or a strength, with why."""

    category: Category
    score: float | None
    reasons: tuple[str, ...]

    def to_dict(self) -> dict[str, Any]:
        return {
            "category": self.category.value,
            "score": self.score,
            "reasons": list(self.reasons),
        }
