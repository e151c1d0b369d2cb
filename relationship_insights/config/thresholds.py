"""
Analysis thresholds shared by every analyzer.

One frozen, versioned object so that the discrepancy tiers, trend deltas,
cycle amplitudes and classifier cutoffs cannot drift apart between modules.
The version string is stamped into every combined analysis so cached payloads
can be invalidated when thresholds change.

Boundary inclusivity is part of the contract and noted per field:
"inclusive" means value >= threshold qualifies, "strict" means value > threshold.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any

THRESHOLDS_VERSION = "2024.2"


@dataclass(frozen=True)
class AnalysisThresholds:
    """
    Configurable thresholds for the analytics engine.

    Override per deployment with dataclasses.replace(DEFAULT_THRESHOLDS, ...)
    and bump version so cached analyses are recomputed.
    """

    version: str = THRESHOLDS_VERSION

    # Rating scale. Boundary validation rejects values outside [rating_min, rating_max];
    # averaging caps each value and the mean at score_cap.
    rating_min: float = 1.0
    rating_max: float = 5.0
    score_cap: float = 5.0

    # Discrepancy tiers (inclusive): high if diff >= 2, medium if diff >= 1, else low.
    high_discrepancy: float = 2.0
    medium_discrepancy: float = 1.0
    # Pairwise snapshots only emit entries with diff >= this (inclusive).
    pairwise_min_difference: float = 2.0

    # Short trend (strict): mean of last 3 vs the 3 before, change > 0.5.
    trend_window: int = 3
    trend_delta: float = 0.5
    # Long trend: mean of last 7 vs first 7 (strict 0.5 on the signed change).
    long_trend_window: int = 7
    # Convergence (strict): gap shrinking / growing by more than 0.3.
    convergence_delta: float = 0.3

    # identify_patterns: cyclic candidate periods, each needing 2x period points.
    pattern_periods: tuple[int, ...] = (7, 14, 30)
    pattern_min_amplitude: float = 0.3  # strict
    pattern_long_period: int = 14  # periods > this get the long significance
    pattern_long_significance: float = 0.8
    pattern_short_significance: float = 0.6
    progressive_significance: float = 0.7
    reactive_min_points: int = 3
    reactive_correlation: float = 0.5  # strict, on |r|
    reactive_mean_gap: float = 0.5  # strict

    # detect_cyclical_behaviors (amplitudes strict).
    weekly_period: int = 7
    weekly_min_points: int = 14
    biweekly_period: int = 14
    biweekly_min_points: int = 28
    monthly_periods: tuple[int, ...] = (28, 29, 30, 31)
    monthly_min_points: int = 60
    cycle_min_amplitude: float = 0.2
    trigger_min_change: float = 0.2  # strict, day-over-day

    # Attachment style.
    anxious_high_discrepancies: int = 3  # inclusive count
    avoidant_cutoff: float = 3.0  # strict below
    secure_min_score: float = 4.0  # inclusive

    # Communication pattern.
    assertive_min: float = 4.0  # inclusive, both scores
    communication_low: float = 3.0  # strict below
    conflict_pivot: float = 3.0  # strict above -> passive, strict below -> aggressive

    # Conflict style (strict above).
    collaborative_min: float = 4.0
    compromising_min: float = 3.0
    avoiding_min: float = 2.0
    perception_gap: float = 2.0  # strict, per-party difference
    mutual_difficulty_cutoff: float = 3.0  # strict below, both parties

    # Growth areas (strict below) and strengths (inclusive).
    growth_area_max: float = 3.0
    strength_min: float = 4.0

    # Relationship stage (strict above on overall group mean).
    consolidation_min: float = 4.0
    development_min: float = 3.0

    # Supplementary trend detectors.
    consistent_trend_min_points: int = 14
    consistent_trend_chunk: int = 3
    consistent_trend_step: float = 0.2  # strict
    recent_change_min_points: int = 7
    recent_change_delta: float = 1.0  # strict
    emerging_window: int = 14

    # Timeframe insights (strict).
    attention_max: float = 2.0
    highlight_min: float = 4.0
    short_horizon_days: int = 7  # inclusive
    long_horizon_days: int = 30  # inclusive

    def __post_init__(self) -> None:
        if self.medium_discrepancy > self.high_discrepancy:
            raise ValueError("medium_discrepancy must not exceed high_discrepancy")
        if self.rating_min > self.rating_max:
            raise ValueError("rating_min must not exceed rating_max")
        if self.trend_window < 1 or self.long_trend_window < 1:
            raise ValueError("trend windows must be positive")
        if any(p < 1 for p in self.pattern_periods + self.monthly_periods):
            raise ValueError("cycle periods must be positive")

    def to_dict(self) -> dict[str, Any]:
        out = asdict(self)
        out["pattern_periods"] = list(self.pattern_periods)
        out["monthly_periods"] = list(self.monthly_periods)
        return out


DEFAULT_THRESHOLDS = AnalysisThresholds()


def resolve_thresholds(thresholds: AnalysisThresholds | None) -> AnalysisThresholds:
    """Return thresholds, falling back to the shared defaults."""
    return thresholds if thresholds is not None else DEFAULT_THRESHOLDS
