"""
Cyclical pattern detector: periodic behavior via score folding.

Folding buckets index i of a series into i mod P and averages each bucket;
half the spread of the bucket means is the cycle amplitude and the index of
the highest bucket is the phase. Series are the pooled daily series (one point
per calendar day), so bucket indices line up with days of the cycle.

identify_patterns reports cyclic, progressive and reactive patterns per
category. detect_cyclical_behaviors looks for weekly, bi-weekly and monthly
cycles and pulls trigger notes from days where the score moved.
"""

from __future__ import annotations

import math
from typing import Iterable, Sequence

import numpy as np

from relationship_insights.analysis_engine.aggregator import (
    average,
    category_scores,
    daily_series,
    ordered,
)
from relationship_insights.analysis_engine.discrepancy import paired_scores
from relationship_insights.analysis_engine.models import (
    Category,
    CycleKind,
    CyclicalBehavior,
    Pattern,
    PatternType,
    RatingRecord,
    TrendDirection,
)
from relationship_insights.analysis_engine.temporal import calculate_trend
from relationship_insights.config.thresholds import AnalysisThresholds, resolve_thresholds
from relationship_insights.insight_logging import get_logger

logger = get_logger(__name__)


def fold_scores(scores: Sequence[float], period: int) -> list[float]:
    """Mean of each i mod period bucket; empty when the series is shorter than one period."""
    if period < 1 or len(scores) < period:
        return []
    buckets: list[list[float]] = [[] for _ in range(period)]
    for i, score in enumerate(scores):
        buckets[i % period].append(score)
    return [sum(b) / len(b) for b in buckets]


def cycle_amplitude(scores: Sequence[float], period: int) -> float:
    folded = fold_scores(scores, period)
    if not folded:
        return 0.0
    return (max(folded) - min(folded)) / 2


def cycle_phase(scores: Sequence[float], period: int) -> int:
    """Bucket index of the peak; first index wins ties."""
    folded = fold_scores(scores, period)
    if not folded:
        return 0
    return int(np.argmax(np.asarray(folded)))


def pearson_correlation(scores_a: Sequence[float], scores_b: Sequence[float]) -> float:
    """Pearson r; 0.0 for unequal lengths, fewer than 2 points, or a flat series."""
    if len(scores_a) != len(scores_b) or len(scores_a) < 2:
        return 0.0
    x = np.asarray(scores_a, dtype=float)
    y = np.asarray(scores_b, dtype=float)
    dx = x - x.mean()
    dy = y - y.mean()
    denominator = math.sqrt(float(np.sum(dx * dx)) * float(np.sum(dy * dy)))
    if denominator == 0:
        return 0.0
    return float(np.sum(dx * dy)) / denominator


def _best_period(
    series: Sequence[float],
    periods: Iterable[int],
    min_points_factor: int | None = None,
) -> tuple[int | None, float]:
    best_period: int | None = None
    best_amplitude = 0.0
    for period in periods:
        if min_points_factor is not None and len(series) < min_points_factor * period:
            continue
        amplitude = cycle_amplitude(series, period)
        if best_period is None or amplitude > best_amplitude:
            best_period, best_amplitude = period, amplitude
    return best_period, best_amplitude


def identify_patterns(
    history_a: Iterable[RatingRecord],
    history_b: Iterable[RatingRecord],
    thresholds: AnalysisThresholds | None = None,
) -> list[Pattern]:
    """
    Per category, in enumeration order:
    cyclic: best of periods 7/14/30 (each needs 2x period days) if amplitude > 0.3;
    progressive: the pooled series has a non-stable short trend;
    reactive: both parties have 3+ ratings and |r| > 0.5 on shared days,
    or their means differ by more than 0.5.
    """
    t = resolve_thresholds(thresholds)
    hist_a = ordered(history_a)
    hist_b = ordered(history_b)
    patterns: list[Pattern] = []
    for category in Category:
        series = daily_series(hist_a, hist_b, category)

        period, amplitude = _best_period(series, t.pattern_periods, min_points_factor=2)
        if period is not None and amplitude > t.pattern_min_amplitude:
            significance = (
                t.pattern_long_significance
                if period > t.pattern_long_period
                else t.pattern_short_significance
            )
            patterns.append(
                Pattern(
                    category=category,
                    type=PatternType.CYCLIC,
                    significance=significance,
                    description=f"{category.label.capitalize()} repeats every {period} days",
                    period=period,
                    amplitude=amplitude,
                )
            )

        trend = calculate_trend(series, t)
        if trend is not TrendDirection.STABLE:
            patterns.append(
                Pattern(
                    category=category,
                    type=PatternType.PROGRESSIVE,
                    significance=t.progressive_significance,
                    description=f"{category.label.capitalize()} is steadily {trend.value}",
                )
            )

        scores_a = category_scores(hist_a, category)
        scores_b = category_scores(hist_b, category)
        if len(scores_a) >= t.reactive_min_points and len(scores_b) >= t.reactive_min_points:
            pa, pb = paired_scores(hist_a, hist_b, category)
            correlation = pearson_correlation(pa, pb)
            mean_gap = abs(average(scores_a) - average(scores_b))
            if abs(correlation) > t.reactive_correlation or mean_gap > t.reactive_mean_gap:
                patterns.append(
                    Pattern(
                        category=category,
                        type=PatternType.REACTIVE,
                        significance=abs(correlation),
                        description=(
                            f"Partners' {category.label} scores respond to each other "
                            f"(r={correlation:.2f}, gap={mean_gap:.2f})"
                        ),
                        correlation=correlation,
                    )
                )
    logger.debug("patterns_identified", count=len(patterns))
    return patterns


def detect_triggers(
    history: Iterable[RatingRecord],
    category: Category,
    period: int,
    thresholds: AnalysisThresholds | None = None,
) -> list[str]:
    """
    Notes from the last 2x period rated days where the score changed by more
    than 0.2 from the previous rated day. Stripped, deduplicated, first-seen order.
    """
    t = resolve_thresholds(thresholds)
    rated = [r for r in ordered(history) if category in r.ratings][-2 * period:]
    triggers: list[str] = []
    for prev, cur in zip(rated, rated[1:]):
        change = abs(cur.ratings[category] - prev.ratings[category])
        if change <= t.trigger_min_change:
            continue
        note = (cur.note or "").strip()
        if note and note not in triggers:
            triggers.append(note)
    return triggers


def _behavior(
    category: Category,
    cycle: CycleKind,
    period: int,
    series: Sequence[float],
    hist_a: list[RatingRecord],
    hist_b: list[RatingRecord],
    t: AnalysisThresholds,
) -> CyclicalBehavior:
    triggers: list[str] = []
    for note in detect_triggers(hist_a, category, period, t) + detect_triggers(hist_b, category, period, t):
        if note not in triggers:
            triggers.append(note)
    return CyclicalBehavior(
        category=category,
        cycle=cycle,
        period=period,
        amplitude=cycle_amplitude(series, period),
        phase=cycle_phase(series, period),
        triggers=tuple(triggers),
    )


def detect_cyclical_behaviors(
    history_a: Iterable[RatingRecord],
    history_b: Iterable[RatingRecord],
    thresholds: AnalysisThresholds | None = None,
) -> list[CyclicalBehavior]:
    """
    Weekly (7 days, needs 14), bi-weekly (14, needs 28) and monthly (best of
    28-31, needs 60) cycles whose amplitude exceeds 0.2, per category.
    Triggers come from party A's notes first, then party B's.
    """
    t = resolve_thresholds(thresholds)
    hist_a = ordered(history_a)
    hist_b = ordered(history_b)
    behaviors: list[CyclicalBehavior] = []
    for category in Category:
        series = daily_series(hist_a, hist_b, category)
        n = len(series)
        if n >= t.weekly_min_points and cycle_amplitude(series, t.weekly_period) > t.cycle_min_amplitude:
            behaviors.append(_behavior(category, CycleKind.WEEKLY, t.weekly_period, series, hist_a, hist_b, t))
        if n >= t.biweekly_min_points and cycle_amplitude(series, t.biweekly_period) > t.cycle_min_amplitude:
            behaviors.append(_behavior(category, CycleKind.BIWEEKLY, t.biweekly_period, series, hist_a, hist_b, t))
        if n >= t.monthly_min_points:
            period, amplitude = _best_period(series, t.monthly_periods)
            if period is not None and amplitude > t.cycle_min_amplitude:
                behaviors.append(_behavior(category, CycleKind.MONTHLY, period, series, hist_a, hist_b, t))
    logger.debug("cyclical_behaviors_detected", count=len(behaviors))
    return behaviors
