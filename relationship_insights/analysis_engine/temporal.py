"""
Temporal trend analyzer: direction, convergence and volatility of score series.

Short trends compare the last three points with the three before them; the
long trend per category compares the first and last week of the pooled daily
series and attaches a variance-based confidence. The supplementary detectors
(consistent trend, recent change) feed persistent and emerging patterns.
"""

from __future__ import annotations

from typing import Iterable, Sequence

import numpy as np

from relationship_insights.analysis_engine.aggregator import (
    average,
    category_scores,
    daily_series,
    ordered,
    standard_deviation,
)
from relationship_insights.analysis_engine.discrepancy import paired_scores
from relationship_insights.analysis_engine.models import (
    Category,
    CategoryDynamics,
    Convergence,
    RatingRecord,
    TemporalPattern,
    TrendDirection,
    TrendResult,
)
from relationship_insights.config.thresholds import AnalysisThresholds, resolve_thresholds
from relationship_insights.insight_logging import get_logger

logger = get_logger(__name__)

CONSISTENT_IMPROVEMENT = "consistent improvement"
CONSISTENT_DECLINE = "consistent decline"
RECENT_IMPROVEMENT = "recent significant improvement"
RECENT_DECLINE = "recent significant decline"


def _direction(change: float, delta: float) -> TrendDirection:
    if change > delta:
        return TrendDirection.IMPROVING
    if change < -delta:
        return TrendDirection.DECLINING
    return TrendDirection.STABLE


def calculate_trend(
    scores: Sequence[float],
    thresholds: AnalysisThresholds | None = None,
) -> TrendDirection:
    """
    Mean of the last 3 points vs the 3 before them; a change beyond 0.5 is a trend.

    Fewer than 2 points is stable. Short series (under 6 points) shrink both
    windows to half the series so neither side is ever empty.
    """
    t = resolve_thresholds(thresholds)
    if len(scores) < 2:
        return TrendDirection.STABLE
    window = min(t.trend_window, len(scores) // 2)
    recent = scores[-window:]
    previous = scores[-2 * window:-window]
    return _direction(average(recent) - average(previous), t.trend_delta)


def analyze_convergence(
    scores_a: Sequence[float],
    scores_b: Sequence[float],
    thresholds: AnalysisThresholds | None = None,
) -> Convergence:
    """Latest gap vs the gap one step earlier: shrinking beyond 0.3 converges, growing diverges."""
    t = resolve_thresholds(thresholds)
    if len(scores_a) < 2 or len(scores_b) < 2:
        return Convergence.STABLE
    current_gap = abs(scores_a[-1] - scores_b[-1])
    previous_gap = abs(scores_a[-2] - scores_b[-2])
    if previous_gap - current_gap > t.convergence_delta:
        return Convergence.CONVERGING
    if current_gap - previous_gap > t.convergence_delta:
        return Convergence.DIVERGING
    return Convergence.STABLE


def calculate_volatility(scores: Sequence[float]) -> float:
    if len(scores) < 2:
        return 0.0
    return standard_deviation(scores)


def _trend_for_series(
    category: Category,
    series: Sequence[float],
    ratings: Sequence[float],
    t: AnalysisThresholds,
) -> TrendResult:
    if not series:
        return TrendResult(
            direction=TrendDirection.STABLE,
            magnitude=0.0,
            confidence=0.0,
            description=f"Not enough data to assess {category.label}",
            sample_size=0,
        )
    change = average(series[-t.long_trend_window:]) - average(series[:t.long_trend_window])
    direction = _direction(change, t.trend_delta)
    variance = float(np.var(np.asarray(ratings, dtype=float)))
    confidence = min(1.0, max(0.0, 1.0 - variance / t.score_cap))
    if direction is TrendDirection.STABLE:
        description = f"{category.label.capitalize()} has held steady"
    else:
        description = f"{category.label.capitalize()} is {direction.value} ({change:+.2f})"
    return TrendResult(
        direction=direction,
        magnitude=abs(change),
        confidence=confidence,
        description=description,
        sample_size=len(series),
    )


def analyze_trends(
    history_a: Iterable[RatingRecord],
    history_b: Iterable[RatingRecord],
    thresholds: AnalysisThresholds | None = None,
) -> dict[Category, TrendResult]:
    """
    Long trend per category over the pooled daily series of both parties.

    magnitude = |mean(last 7) - mean(first 7)|, direction from the signed
    change (strict 0.5). confidence = 1 - variance/5 clamped to [0, 1], with
    the variance taken over every individual rating of both parties so that
    disagreement between partners lowers it.
    """
    t = resolve_thresholds(thresholds)
    hist_a = list(history_a)
    hist_b = list(history_b)
    trends = {
        c: _trend_for_series(
            c,
            daily_series(hist_a, hist_b, c),
            category_scores(hist_a, c) + category_scores(hist_b, c),
            t,
        )
        for c in Category
    }
    logger.debug(
        "trends_analyzed",
        improving=sum(1 for r in trends.values() if r.direction is TrendDirection.IMPROVING),
        declining=sum(1 for r in trends.values() if r.direction is TrendDirection.DECLINING),
    )
    return trends


def analyze_category_dynamics(
    history_a: Iterable[RatingRecord],
    history_b: Iterable[RatingRecord],
    thresholds: AnalysisThresholds | None = None,
) -> dict[Category, CategoryDynamics]:
    """Per category: each party's short trend, convergence on shared days, pooled volatility."""
    t = resolve_thresholds(thresholds)
    hist_a = ordered(history_a)
    hist_b = ordered(history_b)
    dynamics: dict[Category, CategoryDynamics] = {}
    for category in Category:
        pa, pb = paired_scores(hist_a, hist_b, category)
        dynamics[category] = CategoryDynamics(
            category=category,
            trend_a=calculate_trend(category_scores(hist_a, category), t),
            trend_b=calculate_trend(category_scores(hist_b, category), t),
            convergence=analyze_convergence(pa, pb, t),
            volatility=calculate_volatility(daily_series(hist_a, hist_b, category)),
        )
    return dynamics


def detect_consistent_trend(
    scores: Sequence[float],
    thresholds: AnalysisThresholds | None = None,
) -> str | None:
    """
    Average the series in 3-point blocks; every block-to-block step above +0.2
    is a consistent improvement, every step below -0.2 a consistent decline.
    Needs at least 14 points.
    """
    t = resolve_thresholds(thresholds)
    if len(scores) < t.consistent_trend_min_points:
        return None
    size = t.consistent_trend_chunk
    blocks = [average(scores[i:i + size]) for i in range(0, len(scores), size)]
    steps = [b - a for a, b in zip(blocks, blocks[1:])]
    if not steps:
        return None
    if all(s > t.consistent_trend_step for s in steps):
        return CONSISTENT_IMPROVEMENT
    if all(s < -t.consistent_trend_step for s in steps):
        return CONSISTENT_DECLINE
    return None


def detect_recent_change(
    scores: Sequence[float],
    thresholds: AnalysisThresholds | None = None,
) -> str | None:
    """Mean of the last 3 points vs the 4 before them; a jump beyond 1.0 is significant."""
    t = resolve_thresholds(thresholds)
    if len(scores) < t.recent_change_min_points:
        return None
    recent = average(scores[-3:])
    prior = average(scores[-t.recent_change_min_points:-3])
    change = recent - prior
    if change > t.recent_change_delta:
        return RECENT_IMPROVEMENT
    if change < -t.recent_change_delta:
        return RECENT_DECLINE
    return None


def identify_persistent_patterns(
    history_a: Iterable[RatingRecord],
    history_b: Iterable[RatingRecord],
    thresholds: AnalysisThresholds | None = None,
) -> list[TemporalPattern]:
    """Categories where both parties independently show the same consistent trend."""
    t = resolve_thresholds(thresholds)
    hist_a = ordered(history_a)
    hist_b = ordered(history_b)
    patterns: list[TemporalPattern] = []
    for category in Category:
        trend_a = detect_consistent_trend(category_scores(hist_a, category), t)
        trend_b = detect_consistent_trend(category_scores(hist_b, category), t)
        if trend_a is not None and trend_a == trend_b:
            patterns.append(
                TemporalPattern(
                    category=category,
                    kind="persistent",
                    description=f"{category.label.capitalize()}: {trend_a} for both partners",
                )
            )
    return patterns


def identify_emerging_patterns(
    history_a: Iterable[RatingRecord],
    history_b: Iterable[RatingRecord],
    thresholds: AnalysisThresholds | None = None,
) -> list[TemporalPattern]:
    """Recent jumps within each party's last 14 records; merged when both moved the same way."""
    t = resolve_thresholds(thresholds)
    recent_a = ordered(history_a)[-t.emerging_window:]
    recent_b = ordered(history_b)[-t.emerging_window:]
    patterns: list[TemporalPattern] = []
    for category in Category:
        change_a = detect_recent_change(category_scores(recent_a, category), t)
        change_b = detect_recent_change(category_scores(recent_b, category), t)
        if change_a is not None and change_a == change_b:
            patterns.append(
                TemporalPattern(
                    category=category,
                    kind="emerging",
                    description=f"{category.label.capitalize()}: {change_a} for both partners",
                )
            )
            continue
        for party, change in (("a", change_a), ("b", change_b)):
            if change is not None:
                patterns.append(
                    TemporalPattern(
                        category=category,
                        kind="emerging",
                        description=f"{category.label.capitalize()}: {change}",
                        party=party,
                    )
                )
    return patterns
