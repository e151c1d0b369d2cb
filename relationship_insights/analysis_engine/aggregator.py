"""
Rating aggregator: reduce rating histories to per-category averages.

average() caps every value at 5 before summing and caps the mean again, so a
stray out-of-range value can never inflate a score. Category averages pool
both parties' ratings into one mean per category (not a blend of per-party
means), always over the full Category enumeration.
"""

from __future__ import annotations

import math
from collections import defaultdict
from typing import Iterable, Sequence

from relationship_insights.analysis_engine.models import (
    CATEGORY_GROUPS,
    Category,
    CategoryAverages,
    CategoryGroup,
    RatingRecord,
)
from relationship_insights.insight_logging import get_logger

logger = get_logger(__name__)

SCORE_CAP = 5.0
SCORE_FLOOR = 0.0


def average(values: Iterable[float], cap: float = SCORE_CAP) -> float:
    """Capped mean in [0, cap]; 0.0 for empty input."""
    vals = [float(v) for v in values]
    if not vals:
        return 0.0
    total = sum(min(cap, v) for v in vals)
    return max(SCORE_FLOOR, min(cap, total / len(vals)))


def standard_deviation(values: Iterable[float], cap: float = SCORE_CAP) -> float:
    """Population standard deviation around average(); squared deviations go through the same cap."""
    vals = [float(v) for v in values]
    if not vals:
        return 0.0
    mean = average(vals, cap)
    return math.sqrt(average(((v - mean) ** 2 for v in vals), cap))


def ordered(history: Iterable[RatingRecord]) -> list[RatingRecord]:
    """Records sorted by date; ties keep their input order."""
    return sorted(history, key=lambda r: r.date)


def category_scores(history: Iterable[RatingRecord], category: Category) -> list[float]:
    """One party's ratings for a category in date order, skipping days it was not rated."""
    return [r.ratings[category] for r in ordered(history) if category in r.ratings]


def daily_series(
    history_a: Iterable[RatingRecord],
    history_b: Iterable[RatingRecord],
    category: Category,
) -> list[float]:
    """
    Pooled per-day series for a category: on each date, the mean of whichever
    parties rated it. One point per calendar day keeps cycle folding aligned.
    """
    by_day: dict = defaultdict(list)
    for rec in list(history_a) + list(history_b):
        if category in rec.ratings:
            by_day[rec.date].append(rec.ratings[category])
    return [average(by_day[day]) for day in sorted(by_day)]


def _pool(histories: Sequence[Iterable[RatingRecord]]) -> dict[Category, list[float]]:
    pooled: dict[Category, list[float]] = {c: [] for c in Category}
    for history in histories:
        for rec in history:
            for category, value in rec.ratings.items():
                pooled[category].append(value)
    return pooled


def _averages_from_pool(pooled: dict[Category, list[float]]) -> CategoryAverages:
    categories = {c: (average(pooled[c]) if pooled[c] else None) for c in Category}
    groups: dict[CategoryGroup, float | None] = {}
    for group in CategoryGroup:
        members: list[float] = []
        for c in Category:
            if CATEGORY_GROUPS[c] is group:
                members.extend(pooled[c])
        groups[group] = average(members) if members else None
    return CategoryAverages(categories=categories, groups=groups)


def calculate_average_scores(
    history_a: Iterable[RatingRecord],
    history_b: Iterable[RatingRecord],
) -> CategoryAverages:
    """
    Pool all of A's and B's ratings per category and average them.

    Group averages pool every rating of the group's member categories.
    Categories or groups nobody rated are None.
    """
    averages = _averages_from_pool(_pool([list(history_a), list(history_b)]))
    logger.debug(
        "averages_calculated",
        categories_with_data=sum(1 for v in averages.categories.values() if v is not None),
    )
    return averages


def calculate_party_averages(history: Iterable[RatingRecord]) -> CategoryAverages:
    """Averages over a single party's history."""
    return _averages_from_pool(_pool([list(history)]))
