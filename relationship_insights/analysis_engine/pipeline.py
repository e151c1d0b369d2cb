"""
Combined relationship analysis: run every analyzer over two rating histories.

Pure and synchronous. The result is what callers persist and what the
narrative stage receives as context; narrative enrichment of the latest
shared day's discrepancies happens separately (narrative/enrichment.py).
"""

from __future__ import annotations

import datetime as dt
import time
from dataclasses import dataclass
from typing import Any, Iterable

from relationship_insights.analysis_engine.aggregator import (
    calculate_average_scores,
    calculate_party_averages,
    ordered,
)
from relationship_insights.analysis_engine.cyclical import detect_cyclical_behaviors, identify_patterns
from relationship_insights.analysis_engine.discrepancy import (
    analyze_discrepancies,
    analyze_pairwise_discrepancies,
    count_high,
)
from relationship_insights.analysis_engine.models import (
    Category,
    CategoryAverages,
    CategoryDynamics,
    ClassificationResult,
    CyclicalBehavior,
    DiscrepancyResult,
    FocusArea,
    IntimacyBalance,
    PairwiseDiscrepancy,
    Pattern,
    RatingRecord,
    TemporalPattern,
    TrendResult,
)
from relationship_insights.analysis_engine.psychological import (
    analyze_attachment_style,
    analyze_communication_pattern,
    analyze_conflict_style,
    analyze_intimacy_balance,
    analyze_relationship_strengths,
    calculate_emotional_security,
    determine_relationship_stage,
    identify_growth_areas,
)
from relationship_insights.analysis_engine.temporal import (
    analyze_category_dynamics,
    analyze_trends,
    identify_emerging_patterns,
    identify_persistent_patterns,
)
from relationship_insights.analysis_engine.timeframe import (
    TimeframeSummary,
    generate_timeframe_summaries,
    latest_date,
)
from relationship_insights.config.thresholds import AnalysisThresholds, resolve_thresholds
from relationship_insights.insight_logging import bind_pair, get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class RelationshipAnalysis:
    """Everything the engine derives for one pair as of one date."""

    user_a: str | None
    user_b: str | None
    as_of: dt.date | None
    thresholds_version: str
    averages: CategoryAverages
    discrepancies: tuple[DiscrepancyResult, ...]
    daily_discrepancies: tuple[PairwiseDiscrepancy, ...]
    trends: dict[Category, TrendResult]
    dynamics: dict[Category, CategoryDynamics]
    patterns: tuple[Pattern, ...]
    cyclical_behaviors: tuple[CyclicalBehavior, ...]
    persistent_patterns: tuple[TemporalPattern, ...]
    emerging_patterns: tuple[TemporalPattern, ...]
    attachment_style: ClassificationResult
    communication_pattern: ClassificationResult
    conflict_style: ClassificationResult
    relationship_stage: ClassificationResult
    emotional_security: float
    intimacy_balance: IntimacyBalance
    growth_areas: tuple[FocusArea, ...]
    strengths: tuple[FocusArea, ...]
    timeframes: dict[str, TimeframeSummary]

    def to_dict(self) -> dict[str, Any]:
        return {
            "user_a": self.user_a,
            "user_b": self.user_b,
            "as_of": self.as_of.isoformat() if self.as_of else None,
            "thresholds_version": self.thresholds_version,
            "averages": self.averages.to_dict(),
            "discrepancies": [d.to_dict() for d in self.discrepancies],
            "daily_discrepancies": [d.to_dict() for d in self.daily_discrepancies],
            "trends": {c.value: r.to_dict() for c, r in self.trends.items()},
            "dynamics": {c.value: d.to_dict() for c, d in self.dynamics.items()},
            "patterns": [p.to_dict() for p in self.patterns],
            "cyclical_behaviors": [b.to_dict() for b in self.cyclical_behaviors],
            "persistent_patterns": [p.to_dict() for p in self.persistent_patterns],
            "emerging_patterns": [p.to_dict() for p in self.emerging_patterns],
            "attachment_style": self.attachment_style.to_dict(),
            "communication_pattern": self.communication_pattern.to_dict(),
            "conflict_style": self.conflict_style.to_dict(),
            "relationship_stage": self.relationship_stage.to_dict(),
            "emotional_security": self.emotional_security,
            "intimacy_balance": self.intimacy_balance.to_dict(),
            "growth_areas": [a.to_dict() for a in self.growth_areas],
            "strengths": [s.to_dict() for s in self.strengths],
            "timeframes": {name: s.to_dict() for name, s in self.timeframes.items()},
        }


def latest_shared_day(
    history_a: Iterable[RatingRecord],
    history_b: Iterable[RatingRecord],
) -> tuple[RatingRecord, RatingRecord] | None:
    """Both parties' records for the most recent date they both submitted."""
    by_day_b = {r.date: r for r in history_b}
    for rec in reversed(ordered(history_a)):
        if rec.date in by_day_b:
            return rec, by_day_b[rec.date]
    return None


def run_relationship_analysis(
    history_a: Iterable[RatingRecord],
    history_b: Iterable[RatingRecord],
    *,
    thresholds: AnalysisThresholds | None = None,
    as_of: dt.date | None = None,
    user_a: str | None = None,
    user_b: str | None = None,
) -> RelationshipAnalysis:
    """
    Run aggregation, discrepancy, temporal, cyclical and classification stages.

    When as_of is given, records after it are ignored. Identical inputs give
    identical output.
    """
    t = resolve_thresholds(thresholds)
    started = time.perf_counter()
    hist_a = ordered(history_a)
    hist_b = ordered(history_b)
    if as_of is not None:
        hist_a = [r for r in hist_a if r.date <= as_of]
        hist_b = [r for r in hist_b if r.date <= as_of]
    end = as_of or latest_date(hist_a, hist_b)

    averages = calculate_average_scores(hist_a, hist_b)
    averages_a = calculate_party_averages(hist_a)
    averages_b = calculate_party_averages(hist_b)
    discrepancies = analyze_discrepancies(hist_a, hist_b, t)

    shared = latest_shared_day(hist_a, hist_b)
    daily = analyze_pairwise_discrepancies(shared[0], shared[1], t) if shared else []

    analysis = RelationshipAnalysis(
        user_a=user_a,
        user_b=user_b,
        as_of=end,
        thresholds_version=t.version,
        averages=averages,
        discrepancies=tuple(discrepancies),
        daily_discrepancies=tuple(daily),
        trends=analyze_trends(hist_a, hist_b, t),
        dynamics=analyze_category_dynamics(hist_a, hist_b, t),
        patterns=tuple(identify_patterns(hist_a, hist_b, t)),
        cyclical_behaviors=tuple(detect_cyclical_behaviors(hist_a, hist_b, t)),
        persistent_patterns=tuple(identify_persistent_patterns(hist_a, hist_b, t)),
        emerging_patterns=tuple(identify_emerging_patterns(hist_a, hist_b, t)),
        attachment_style=analyze_attachment_style(averages, discrepancies, t),
        communication_pattern=analyze_communication_pattern(averages, t),
        conflict_style=analyze_conflict_style(averages, averages_a, averages_b, t),
        relationship_stage=determine_relationship_stage(averages, discrepancies, t),
        emotional_security=calculate_emotional_security(averages, t),
        intimacy_balance=analyze_intimacy_balance(averages, t),
        growth_areas=tuple(identify_growth_areas(averages, discrepancies, t)),
        strengths=tuple(analyze_relationship_strengths(averages, t)),
        timeframes=generate_timeframe_summaries(hist_a, hist_b, end, t) if end else {},
    )
    bind_pair(user_a, user_b, logger).info(
        "relationship_analysis_completed",
        records_a=len(hist_a),
        records_b=len(hist_b),
        discrepancies_high=count_high(discrepancies),
        attachment_style=analysis.attachment_style.label,
        duration_ms=round((time.perf_counter() - started) * 1000, 2),
    )
    return analysis
