"""
Daily, weekly and monthly summaries over a trailing window of days.
"""

from __future__ import annotations

import datetime as dt
from dataclasses import dataclass
from typing import Any, Iterable

from relationship_insights.analysis_engine.aggregator import calculate_average_scores, ordered
from relationship_insights.analysis_engine.discrepancy import analyze_discrepancies
from relationship_insights.analysis_engine.models import (
    Category,
    CategoryAverages,
    DiscrepancyResult,
    RatingRecord,
    Significance,
)
from relationship_insights.config.thresholds import AnalysisThresholds, resolve_thresholds

TIMEFRAMES = {"daily": 1, "weekly": 7, "monthly": 30}


@dataclass(frozen=True)
class TimeframeSummary:
    days: int
    start: dt.date
    end: dt.date
    records_a: int
    records_b: int
    averages: CategoryAverages
    discrepancies: tuple[DiscrepancyResult, ...]
    insights: tuple[str, ...]

    def to_dict(self) -> dict[str, Any]:
        return {
            "days": self.days,
            "start": self.start.isoformat(),
            "end": self.end.isoformat(),
            "records_a": self.records_a,
            "records_b": self.records_b,
            "averages": self.averages.to_dict(),
            "discrepancies": [d.to_dict() for d in self.discrepancies],
            "insights": list(self.insights),
        }


def latest_date(*histories: Iterable[RatingRecord]) -> dt.date | None:
    dates = [r.date for h in histories for r in h]
    return max(dates) if dates else None


def filter_since(history: Iterable[RatingRecord], as_of: dt.date, days: int) -> list[RatingRecord]:
    """Records in the window (as_of - days, as_of], in date order."""
    start = as_of - dt.timedelta(days=days)
    return [r for r in ordered(history) if start < r.date <= as_of]


def _insights(
    averages: CategoryAverages,
    discrepancies: Iterable[DiscrepancyResult],
    days: int,
    t: AnalysisThresholds,
) -> list[str]:
    insights: list[str] = []
    for category in Category:
        value = averages.get(category)
        if value is None:
            continue
        if value < t.attention_max:
            insights.append(f"{category.label.capitalize()} needs attention ({value:.1f})")
        elif value > t.highlight_min:
            insights.append(f"{category.label.capitalize()} is a strength ({value:.1f})")
    for d in discrepancies:
        if d.significance is Significance.HIGH:
            insights.append(f"Partners see {d.category.label} differently (gap {d.difference:.1f})")
    if days <= t.short_horizon_days:
        insights.append("Short-term view: day-to-day swings are expected")
    if days >= t.long_horizon_days:
        insights.append("Long-term view: consistent patterns carry the most weight")
    return insights


def generate_timeframe_summary(
    history_a: Iterable[RatingRecord],
    history_b: Iterable[RatingRecord],
    days: int,
    as_of: dt.date | None = None,
    thresholds: AnalysisThresholds | None = None,
) -> TimeframeSummary:
    """Averages, discrepancies and insight lines for the last `days` days ending at as_of."""
    t = resolve_thresholds(thresholds)
    hist_a = list(history_a)
    hist_b = list(history_b)
    end = as_of or latest_date(hist_a, hist_b) or dt.date.today()
    window_a = filter_since(hist_a, end, days)
    window_b = filter_since(hist_b, end, days)
    averages = calculate_average_scores(window_a, window_b)
    discrepancies = analyze_discrepancies(window_a, window_b, t)
    return TimeframeSummary(
        days=days,
        start=end - dt.timedelta(days=days - 1),
        end=end,
        records_a=len(window_a),
        records_b=len(window_b),
        averages=averages,
        discrepancies=tuple(discrepancies),
        insights=tuple(_insights(averages, discrepancies, days, t)),
    )


def generate_timeframe_summaries(
    history_a: Iterable[RatingRecord],
    history_b: Iterable[RatingRecord],
    as_of: dt.date | None = None,
    thresholds: AnalysisThresholds | None = None,
) -> dict[str, TimeframeSummary]:
    hist_a = list(history_a)
    hist_b = list(history_b)
    return {
        name: generate_timeframe_summary(hist_a, hist_b, days, as_of, thresholds)
        for name, days in TIMEFRAMES.items()
    }
