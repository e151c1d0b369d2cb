"""
Tests for the rule-table classifiers: attachment, communication, conflict, stage,
plus emotional security, intimacy balance, growth areas and strengths.
"""

from __future__ import annotations

import pytest


def _averages(groups=None, **categories):
    from relationship_insights.analysis_engine.models import Category, CategoryAverages, CategoryGroup

    return CategoryAverages(
        categories={Category(k): v for k, v in categories.items()},
        groups={CategoryGroup(k): v for k, v in (groups or {}).items()},
    )


def _pair(uniform_history, score_a, score_b, days=3):
    from relationship_insights.analysis_engine.aggregator import calculate_average_scores
    from relationship_insights.analysis_engine.discrepancy import analyze_discrepancies

    a = uniform_history("a", score_a, days=days)
    b = uniform_history("b", score_b, days=days)
    return calculate_average_scores(a, b), analyze_discrepancies(a, b)


@pytest.mark.parametrize(
    "score_a, score_b, expected",
    [
        (5, 5, "secure"),
        (5, 1, "anxious"),
        (2, 2, "avoidant"),
        (3.5, 3.5, "disorganized"),
    ],
)
def test_attachment_style(uniform_history, score_a, score_b, expected):
    from relationship_insights.analysis_engine.psychological import analyze_attachment_style

    averages, discrepancies = _pair(uniform_history, score_a, score_b)
    result = analyze_attachment_style(averages, discrepancies)
    assert result.label == expected
    assert result.recommendation_ref == f"attachment_style.{expected}"
    assert result.rationale
    assert result.description


def test_attachment_priority_anxious_before_secure():
    """Rule order decides: three high discrepancies win even with a high security score."""
    from relationship_insights.analysis_engine.psychological import ATTACHMENT_RULES, evaluate_rules

    facts = {
        "satisfaction": 5.0,
        "consensus": 5.0,
        "affection": 5.0,
        "cohesion": 5.0,
        "security_score": 5.0,
        "high_discrepancies": 3.0,
    }
    assert evaluate_rules(ATTACHMENT_RULES, facts).label == "anxious"
    facts["high_discrepancies"] = 2.0
    assert evaluate_rules(ATTACHMENT_RULES, facts).label == "secure"


def test_security_score_weights():
    from relationship_insights.analysis_engine.psychological import security_score

    averages = _averages(groups={"satisfaction": 4, "consensus": 3, "affection": 5, "cohesion": 2})
    assert security_score(averages) == pytest.approx(0.3 * 4 + 0.2 * 3 + 0.3 * 5 + 0.2 * 2)


@pytest.mark.parametrize(
    "communication, conflict, expected",
    [
        (4, 4, "assertive"),
        (2, 4, "passive"),
        (2, 2, "aggressive"),
        (2, 3, "passive-aggressive"),
        (3.5, 2, "passive-aggressive"),
    ],
)
def test_communication_pattern(communication, conflict, expected):
    from relationship_insights.analysis_engine.psychological import analyze_communication_pattern

    averages = _averages(communication=communication, conflict_resolution=conflict)
    result = analyze_communication_pattern(averages)
    assert result.label == expected
    assert result.metrics["communication"] == communication


def test_emotional_security_capped():
    from relationship_insights.analysis_engine.psychological import calculate_emotional_security

    full = _averages(groups={"satisfaction": 5, "affection": 5, "consensus": 5, "cohesion": 5})
    assert calculate_emotional_security(full) == pytest.approx(5.0)
    mixed = _averages(groups={"satisfaction": 4, "affection": 2, "consensus": 3, "cohesion": 1})
    assert calculate_emotional_security(mixed) == pytest.approx(2.6)


def test_intimacy_balance_multipliers_capped():
    from relationship_insights.analysis_engine.psychological import analyze_intimacy_balance

    balance = analyze_intimacy_balance(_averages(groups={"affection": 4.5, "cohesion": 5}))
    assert balance.score == pytest.approx(4.5)
    assert balance.emotional == pytest.approx(5.0)
    assert balance.physical == pytest.approx(3.6)
    assert balance.intellectual == pytest.approx(5.0)
    assert balance.shared == pytest.approx(4.5)


@pytest.mark.parametrize(
    "score, expected",
    [(4.5, "collaborative"), (4.0, "compromising"), (3.0, "avoiding"), (2.0, "confrontational")],
)
def test_conflict_style_thresholds(score, expected):
    from relationship_insights.analysis_engine.psychological import analyze_conflict_style

    assert analyze_conflict_style(_averages(conflict_resolution=score)).label == expected


def test_conflict_style_perception_notes():
    from relationship_insights.analysis_engine.psychological import analyze_conflict_style

    pooled = _averages(conflict_resolution=3.5, communication=2.25)
    party_a = _averages(conflict_resolution=5, communication=2)
    party_b = _averages(conflict_resolution=2, communication=2.5)
    result = analyze_conflict_style(pooled, party_a, party_b)
    assert result.label == "compromising"
    assert result.notes == (
        "Partners perceive conflict resolution very differently",
        "Both partners find communication difficult",
    )


def test_growth_areas_and_strengths():
    from relationship_insights.analysis_engine.models import Category, DiscrepancyResult, Significance
    from relationship_insights.analysis_engine.psychological import (
        analyze_relationship_strengths,
        identify_growth_areas,
    )

    averages = _averages(trust=2.0, communication=4.0, gratitude=3.9, self_care=4.5)
    discrepancies = [
        DiscrepancyResult(category=Category.COMMUNICATION, difference=2.5, significance=Significance.HIGH),
        DiscrepancyResult(category=Category.GRATITUDE, difference=1.0, significance=Significance.MEDIUM),
    ]
    growth = identify_growth_areas(averages, discrepancies)
    assert [(g.category, g.reasons) for g in growth] == [
        (Category.COMMUNICATION, ("high_discrepancy",)),
        (Category.TRUST, ("low_score",)),
    ]
    strengths = analyze_relationship_strengths(averages)
    assert [s.category for s in strengths] == [Category.COMMUNICATION, Category.SELF_CARE]


def test_growth_areas_skip_unrated_categories():
    """An absent category is not a low score."""
    from relationship_insights.analysis_engine.psychological import identify_growth_areas

    assert identify_growth_areas(_averages(), []) == []


@pytest.mark.parametrize(
    "score_a, score_b, expected, next_stage",
    [
        (5, 5, "consolidation", None),
        (5, 3, "development", "consolidation"),
        (2, 2, "adjustment", "development"),
    ],
)
def test_relationship_stage(uniform_history, score_a, score_b, expected, next_stage):
    from relationship_insights.analysis_engine.psychological import determine_relationship_stage

    averages, discrepancies = _pair(uniform_history, score_a, score_b)
    result = determine_relationship_stage(averages, discrepancies)
    assert result.label == expected
    assert result.metrics["next_stage"] == next_stage


def test_high_discrepancy_blocks_consolidation():
    from relationship_insights.analysis_engine.models import Category, DiscrepancyResult, Significance
    from relationship_insights.analysis_engine.psychological import determine_relationship_stage

    averages = _averages(groups={g: 4.5 for g in ("consensus", "affection", "cohesion")})
    high = [DiscrepancyResult(category=Category.TRUST, difference=2.0, significance=Significance.HIGH)]
    assert determine_relationship_stage(averages, high).label == "development"
    assert determine_relationship_stage(averages, []).label == "consolidation"
