"""
Psychological classifier: labels derived from aggregated scores.

Every decision is an ordered table of ClassificationRule evaluated top-down;
the first matching rule wins and its rationale is carried in the result, so
the priority order is explicit and each branch is testable on its own. Each
table ends with an unconditional fallback.

Absent groups or categories score 0.0 here (see CategoryAverages.score).
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Any, Callable, Iterable, Mapping, Sequence

from relationship_insights.analysis_engine.discrepancy import count_high
from relationship_insights.analysis_engine.models import (
    Category,
    CategoryAverages,
    CategoryGroup,
    ClassificationResult,
    DiscrepancyResult,
    FocusArea,
    IntimacyBalance,
    Significance,
)
from relationship_insights.config.thresholds import AnalysisThresholds, resolve_thresholds
from relationship_insights.insight_logging import get_logger

logger = get_logger(__name__)

Facts = Mapping[str, float]


@dataclass(frozen=True)
class ClassificationRule:
    label: str
    predicate: Callable[[Facts, AnalysisThresholds], bool]
    rationale: str
    description: str


def _always(facts: Facts, t: AnalysisThresholds) -> bool:
    return True


def evaluate_rules(
    rules: Sequence[ClassificationRule],
    facts: Facts,
    thresholds: AnalysisThresholds | None = None,
) -> ClassificationRule:
    """Return the first rule whose predicate holds."""
    t = resolve_thresholds(thresholds)
    for rule in rules:
        if rule.predicate(facts, t):
            return rule
    raise ValueError("rule table has no matching rule")


def _result(kind: str, rule: ClassificationRule, facts: Facts, notes: Iterable[str] = ()) -> ClassificationResult:
    return ClassificationResult(
        kind=kind,
        label=rule.label,
        description=rule.description,
        metrics=dict(facts),
        recommendation_ref=f"{kind}.{rule.label}",
        rationale=rule.rationale,
        notes=tuple(notes),
    )


# -----------------------------------------------------------------------------
# Attachment style
# -----------------------------------------------------------------------------

ATTACHMENT_RULES: tuple[ClassificationRule, ...] = (
    ClassificationRule(
        label="anxious",
        predicate=lambda f, t: f["high_discrepancies"] >= t.anxious_high_discrepancies,
        rationale="three or more categories with high-significance discrepancies",
        description="Frequent worry about the partner's availability and responsiveness.",
    ),
    ClassificationRule(
        label="avoidant",
        predicate=lambda f, t: f["affection"] < t.avoidant_cutoff and f["cohesion"] < t.avoidant_cutoff,
        rationale="affection and cohesion both below 3",
        description="Tendency to keep emotional distance and limit closeness.",
    ),
    ClassificationRule(
        label="secure",
        predicate=lambda f, t: f["security_score"] >= t.secure_min_score,
        rationale="security score of 4 or more",
        description="Comfortable with intimacy and independence; trust is stable.",
    ),
    ClassificationRule(
        label="disorganized",
        predicate=_always,
        rationale="no clearer attachment signal",
        description="Mixed signals of closeness and distance without a stable pattern.",
    ),
)


def security_score(averages: CategoryAverages) -> float:
    return (
        0.3 * averages.score(CategoryGroup.SATISFACTION)
        + 0.2 * averages.score(CategoryGroup.CONSENSUS)
        + 0.3 * averages.score(CategoryGroup.AFFECTION)
        + 0.2 * averages.score(CategoryGroup.COHESION)
    )


def analyze_attachment_style(
    averages: CategoryAverages,
    discrepancies: Sequence[DiscrepancyResult],
    thresholds: AnalysisThresholds | None = None,
) -> ClassificationResult:
    facts = {
        "satisfaction": averages.score(CategoryGroup.SATISFACTION),
        "consensus": averages.score(CategoryGroup.CONSENSUS),
        "affection": averages.score(CategoryGroup.AFFECTION),
        "cohesion": averages.score(CategoryGroup.COHESION),
        "security_score": security_score(averages),
        "high_discrepancies": float(count_high(discrepancies)),
    }
    rule = evaluate_rules(ATTACHMENT_RULES, facts, thresholds)
    logger.debug("attachment_style_classified", label=rule.label, security_score=facts["security_score"])
    return _result("attachment_style", rule, facts)


# -----------------------------------------------------------------------------
# Communication pattern
# -----------------------------------------------------------------------------

COMMUNICATION_RULES: tuple[ClassificationRule, ...] = (
    ClassificationRule(
        label="assertive",
        predicate=lambda f, t: f["communication"] >= t.assertive_min and f["conflict_resolution"] >= t.assertive_min,
        rationale="communication and conflict resolution both 4 or more",
        description="Needs and feelings are expressed clearly and respectfully.",
    ),
    ClassificationRule(
        label="passive",
        predicate=lambda f, t: f["communication"] < t.communication_low and f["conflict_resolution"] > t.conflict_pivot,
        rationale="low communication while conflicts still get resolved",
        description="Needs go unspoken to keep the peace.",
    ),
    ClassificationRule(
        label="aggressive",
        predicate=lambda f, t: f["communication"] < t.communication_low and f["conflict_resolution"] < t.conflict_pivot,
        rationale="low communication and low conflict resolution",
        description="Disagreements escalate and needs are pressed at the other's expense.",
    ),
    ClassificationRule(
        label="passive-aggressive",
        predicate=_always,
        rationale="mixed communication signals",
        description="Frustration is expressed indirectly rather than addressed openly.",
    ),
)


def analyze_communication_pattern(
    averages: CategoryAverages,
    thresholds: AnalysisThresholds | None = None,
) -> ClassificationResult:
    facts = {
        "communication": averages.score(Category.COMMUNICATION),
        "conflict_resolution": averages.score(Category.CONFLICT_RESOLUTION),
    }
    rule = evaluate_rules(COMMUNICATION_RULES, facts, thresholds)
    logger.debug("communication_pattern_classified", label=rule.label)
    return _result("communication_pattern", rule, facts)


# -----------------------------------------------------------------------------
# Emotional security and intimacy balance
# -----------------------------------------------------------------------------


def calculate_emotional_security(
    averages: CategoryAverages,
    thresholds: AnalysisThresholds | None = None,
) -> float:
    t = resolve_thresholds(thresholds)
    blend = (
        0.3 * averages.score(CategoryGroup.SATISFACTION)
        + 0.3 * averages.score(CategoryGroup.AFFECTION)
        + 0.2 * averages.score(CategoryGroup.CONSENSUS)
        + 0.2 * averages.score(CategoryGroup.COHESION)
    )
    return min(t.score_cap, blend)


def analyze_intimacy_balance(
    averages: CategoryAverages,
    thresholds: AnalysisThresholds | None = None,
) -> IntimacyBalance:
    t = resolve_thresholds(thresholds)
    affection = averages.score(CategoryGroup.AFFECTION)
    cohesion = averages.score(CategoryGroup.COHESION)
    cap = t.score_cap
    return IntimacyBalance(
        score=min(cap, affection),
        emotional=min(cap, affection * 1.2),
        physical=min(cap, affection * 0.8),
        intellectual=min(cap, cohesion),
        shared=min(cap, cohesion * 0.9),
    )


# -----------------------------------------------------------------------------
# Conflict style
# -----------------------------------------------------------------------------

CONFLICT_RULES: tuple[ClassificationRule, ...] = (
    ClassificationRule(
        label="collaborative",
        predicate=lambda f, t: f["conflict_resolution"] > t.collaborative_min,
        rationale="conflict resolution above 4",
        description="Disagreements are worked through together toward shared solutions.",
    ),
    ClassificationRule(
        label="compromising",
        predicate=lambda f, t: f["conflict_resolution"] > t.compromising_min,
        rationale="conflict resolution above 3",
        description="Each partner gives ground to reach a workable middle.",
    ),
    ClassificationRule(
        label="avoiding",
        predicate=lambda f, t: f["conflict_resolution"] > t.avoiding_min,
        rationale="conflict resolution above 2",
        description="Difficult topics tend to be postponed or sidestepped.",
    ),
    ClassificationRule(
        label="confrontational",
        predicate=_always,
        rationale="conflict resolution of 2 or less",
        description="Conflicts are fought out and often left unresolved.",
    ),
)


def _conflict_notes(
    averages_a: CategoryAverages | None,
    averages_b: CategoryAverages | None,
    t: AnalysisThresholds,
) -> list[str]:
    if averages_a is None or averages_b is None:
        return []
    notes: list[str] = []
    cr_a, cr_b = averages_a.get(Category.CONFLICT_RESOLUTION), averages_b.get(Category.CONFLICT_RESOLUTION)
    if cr_a is not None and cr_b is not None and abs(cr_a - cr_b) > t.perception_gap:
        notes.append("Partners perceive conflict resolution very differently")
    comm_a, comm_b = averages_a.get(Category.COMMUNICATION), averages_b.get(Category.COMMUNICATION)
    if comm_a is not None and comm_b is not None:
        if abs(comm_a - comm_b) > t.perception_gap:
            notes.append("Partners perceive communication very differently")
        if comm_a < t.mutual_difficulty_cutoff and comm_b < t.mutual_difficulty_cutoff:
            notes.append("Both partners find communication difficult")
    return notes


def analyze_conflict_style(
    averages: CategoryAverages,
    averages_a: CategoryAverages | None = None,
    averages_b: CategoryAverages | None = None,
    thresholds: AnalysisThresholds | None = None,
) -> ClassificationResult:
    """
    Style from the pooled conflict-resolution score. With per-party averages,
    notes flag diverging perceptions (gap > 2) and mutual communication difficulty.
    """
    t = resolve_thresholds(thresholds)
    facts = {"conflict_resolution": averages.score(Category.CONFLICT_RESOLUTION)}
    rule = evaluate_rules(CONFLICT_RULES, facts, t)
    return _result("conflict_style", rule, facts, _conflict_notes(averages_a, averages_b, t))


# -----------------------------------------------------------------------------
# Growth areas, strengths, relationship stage
# -----------------------------------------------------------------------------


def identify_growth_areas(
    averages: CategoryAverages,
    discrepancies: Sequence[DiscrepancyResult],
    thresholds: AnalysisThresholds | None = None,
) -> list[FocusArea]:
    """Categories averaging below 3, plus categories with a high-significance discrepancy."""
    t = resolve_thresholds(thresholds)
    high = {d.category for d in discrepancies if d.significance is Significance.HIGH}
    areas: list[FocusArea] = []
    for category in Category:
        value = averages.get(category)
        reasons: list[str] = []
        if value is not None and value < t.growth_area_max:
            reasons.append("low_score")
        if category in high:
            reasons.append("high_discrepancy")
        if reasons:
            areas.append(FocusArea(category=category, score=value, reasons=tuple(reasons)))
    return areas


def analyze_relationship_strengths(
    averages: CategoryAverages,
    thresholds: AnalysisThresholds | None = None,
) -> list[FocusArea]:
    t = resolve_thresholds(thresholds)
    return [
        FocusArea(category=c, score=averages.get(c), reasons=("high_score",))
        for c in Category
        if averages.get(c) is not None and averages.score(c) >= t.strength_min
    ]


STAGE_RULES: tuple[ClassificationRule, ...] = (
    ClassificationRule(
        label="consolidation",
        predicate=lambda f, t: f["overall_score"] > t.consolidation_min and f["high_discrepancies"] == 0,
        rationale="overall score above 4 with no high discrepancies",
        description="A stable, mature bond with well-aligned expectations.",
    ),
    ClassificationRule(
        label="development",
        predicate=lambda f, t: f["overall_score"] > t.development_min,
        rationale="overall score above 3",
        description="Building shared routines and deepening mutual understanding.",
    ),
    ClassificationRule(
        label="adjustment",
        predicate=_always,
        rationale="overall score of 3 or less",
        description="Partners are still adapting to each other's needs.",
    ),
)

NEXT_STAGE = {"adjustment": "development", "development": "consolidation", "consolidation": None}


def determine_relationship_stage(
    averages: CategoryAverages,
    discrepancies: Sequence[DiscrepancyResult],
    thresholds: AnalysisThresholds | None = None,
) -> ClassificationResult:
    """Stage from the mean of the group averages that have data."""
    rated = [averages.groups[g] for g in CategoryGroup if averages.groups.get(g) is not None]
    overall = sum(rated) / len(rated) if rated else 0.0
    facts: dict[str, Any] = {
        "overall_score": overall,
        "high_discrepancies": float(count_high(discrepancies)),
    }
    rule = evaluate_rules(STAGE_RULES, facts, thresholds)
    result = _result("relationship_stage", rule, facts)
    return replace(result, metrics={**facts, "next_stage": NEXT_STAGE[rule.label]})
