"""
Discrepancy analyzer: where the two partners see the relationship differently.

Two operations:
- analyze_discrepancies: full histories, one entry per category, tagged with
  a consistent directional bias when every shared day points the same way.
- analyze_pairwise_discrepancies: one day's snapshot per party, only gaps of
  at least pairwise_min_difference are emitted. These drive the optional
  narrative enrichment stage (narrative/enrichment.py).

Both share the significance tiers in AnalysisThresholds.
"""

from __future__ import annotations

from typing import Any, Iterable, Mapping, Sequence

from relationship_insights.analysis_engine.aggregator import average, category_scores, ordered
from relationship_insights.analysis_engine.models import (
    CATEGORY_WEIGHTS,
    CONSISTENTLY_HIGHER,
    CONSISTENTLY_LOWER,
    Category,
    DiscrepancyResult,
    PairwiseDiscrepancy,
    RatingRecord,
    Significance,
)
from relationship_insights.config.thresholds import AnalysisThresholds, resolve_thresholds
from relationship_insights.insight_logging import get_logger

logger = get_logger(__name__)


def classify_significance(
    difference: float,
    thresholds: AnalysisThresholds | None = None,
) -> Significance:
    """high if difference >= high_discrepancy, medium if >= medium_discrepancy, else low."""
    t = resolve_thresholds(thresholds)
    if difference >= t.high_discrepancy:
        return Significance.HIGH
    if difference >= t.medium_discrepancy:
        return Significance.MEDIUM
    return Significance.LOW


def detect_consistent_discrepancy(
    scores_a: Sequence[float],
    scores_b: Sequence[float],
) -> str | None:
    """
    "consistently higher" / "consistently lower" when every signed gap (A - B)
    has the sign of the mean gap. None for empty or unequal series, a zero
    mean gap, or any day that breaks the direction (including a zero gap).
    """
    if not scores_a or len(scores_a) != len(scores_b):
        return None
    diffs = [a - b for a, b in zip(scores_a, scores_b)]
    mean_diff = sum(diffs) / len(diffs)
    if mean_diff > 0 and all(d > 0 for d in diffs):
        return CONSISTENTLY_HIGHER
    if mean_diff < 0 and all(d < 0 for d in diffs):
        return CONSISTENTLY_LOWER
    return None


def paired_scores(
    history_a: Iterable[RatingRecord],
    history_b: Iterable[RatingRecord],
    category: Category,
) -> tuple[list[float], list[float]]:
    """Both parties' ratings on the dates both of them rated the category, in date order."""
    b_by_day = {r.date: r.ratings[category] for r in history_b if category in r.ratings}
    scores_a: list[float] = []
    scores_b: list[float] = []
    for rec in ordered(history_a):
        if category in rec.ratings and rec.date in b_by_day:
            scores_a.append(rec.ratings[category])
            scores_b.append(b_by_day[rec.date])
    return scores_a, scores_b


def analyze_discrepancies(
    history_a: Iterable[RatingRecord],
    history_b: Iterable[RatingRecord],
    thresholds: AnalysisThresholds | None = None,
) -> list[DiscrepancyResult]:
    """
    One DiscrepancyResult per category, sorted by difference descending.

    difference is |avg(A) - avg(B)| over each party's full history. When one
    party never rated a category the entry is low with insufficient_data set.
    """
    t = resolve_thresholds(thresholds)
    hist_a = ordered(history_a)
    hist_b = ordered(history_b)
    results: list[DiscrepancyResult] = []
    for category in Category:
        scores_a = category_scores(hist_a, category)
        scores_b = category_scores(hist_b, category)
        if not scores_a or not scores_b:
            results.append(
                DiscrepancyResult(
                    category=category,
                    difference=0.0,
                    significance=Significance.LOW,
                    insufficient_data=True,
                )
            )
            continue
        difference = abs(average(scores_a) - average(scores_b))
        pa, pb = paired_scores(hist_a, hist_b, category)
        results.append(
            DiscrepancyResult(
                category=category,
                difference=difference,
                significance=classify_significance(difference, t),
                pattern=detect_consistent_discrepancy(pa, pb),
                paired_days=len(pa),
            )
        )
    results.sort(key=lambda r: r.difference, reverse=True)
    logger.debug(
        "discrepancies_analyzed",
        high=sum(1 for r in results if r.significance is Significance.HIGH),
        medium=sum(1 for r in results if r.significance is Significance.MEDIUM),
        insufficient=sum(1 for r in results if r.insufficient_data),
    )
    return results


def count_high(discrepancies: Iterable[DiscrepancyResult]) -> int:
    return sum(1 for d in discrepancies if d.significance is Significance.HIGH)


def _snapshot(ratings: RatingRecord | Mapping[Any, float]) -> dict[Category, float]:
    if isinstance(ratings, RatingRecord):
        return dict(ratings.ratings)
    return {Category.parse(k): float(v) for k, v in ratings.items()}


def recommendation_ref(category: Category, significance: Significance) -> str:
    return f"discrepancy.{category.value}.{significance.value}"


def analyze_pairwise_discrepancies(
    ratings_a: RatingRecord | Mapping[Any, float],
    ratings_b: RatingRecord | Mapping[Any, float],
    thresholds: AnalysisThresholds | None = None,
) -> list[PairwiseDiscrepancy]:
    """
    Compare two single-day snapshots. Only categories rated by both parties
    with a gap >= pairwise_min_difference are returned, sorted descending.
    """
    t = resolve_thresholds(thresholds)
    snap_a = _snapshot(ratings_a)
    snap_b = _snapshot(ratings_b)
    flagged: list[PairwiseDiscrepancy] = []
    for category in Category:
        if category not in snap_a or category not in snap_b:
            continue
        difference = abs(snap_a[category] - snap_b[category])
        if difference < t.pairwise_min_difference:
            continue
        significance = classify_significance(difference, t)
        flagged.append(
            PairwiseDiscrepancy(
                category=category,
                rating_a=snap_a[category],
                rating_b=snap_b[category],
                difference=difference,
                weighted_difference=difference * CATEGORY_WEIGHTS.get(category, 1.0),
                significance=significance,
                recommendation_ref=recommendation_ref(category, significance),
            )
        )
    flagged.sort(key=lambda d: d.difference, reverse=True)
    logger.debug("pairwise_discrepancies_analyzed", flagged=len(flagged))
    return flagged
