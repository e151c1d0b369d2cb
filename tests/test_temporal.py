"""
Tests for trend direction, convergence, volatility and the long-range trend map.
"""

from __future__ import annotations

import pytest


def test_calculate_trend_reference_series():
    from relationship_insights.analysis_engine.models import TrendDirection
    from relationship_insights.analysis_engine.temporal import calculate_trend

    rising = [3, 3.2, 3.4, 3.6, 3.8, 4]
    assert calculate_trend(rising) is TrendDirection.IMPROVING
    assert calculate_trend(list(reversed(rising))) is TrendDirection.DECLINING
    assert calculate_trend([3.5, 3.4, 3.6, 3.5, 3.4, 3.5]) is TrendDirection.STABLE
    assert calculate_trend([4]) is TrendDirection.STABLE
    assert calculate_trend([]) is TrendDirection.STABLE


def test_calculate_trend_threshold_is_strict():
    """A change of exactly 0.5 is still stable."""
    from relationship_insights.analysis_engine.models import TrendDirection
    from relationship_insights.analysis_engine.temporal import calculate_trend

    assert calculate_trend([3, 3, 3, 3.5, 3.5, 3.5]) is TrendDirection.STABLE


def test_calculate_trend_short_series_compares_halves():
    from relationship_insights.analysis_engine.models import TrendDirection
    from relationship_insights.analysis_engine.temporal import calculate_trend

    assert calculate_trend([2, 4]) is TrendDirection.IMPROVING
    assert calculate_trend([4, 4, 2, 2]) is TrendDirection.DECLINING


def test_analyze_convergence_reference_series():
    from relationship_insights.analysis_engine.models import Convergence
    from relationship_insights.analysis_engine.temporal import analyze_convergence

    assert analyze_convergence([4, 3.8, 3.6], [3, 3.2, 3.4]) is Convergence.CONVERGING
    assert analyze_convergence([3.5, 3.7, 4], [3.5, 3.3, 3]) is Convergence.DIVERGING
    assert analyze_convergence([3, 3, 3], [3, 3, 3]) is Convergence.STABLE
    assert analyze_convergence([3], [4, 5]) is Convergence.STABLE


def test_volatility():
    from relationship_insights.analysis_engine.temporal import calculate_volatility

    assert calculate_volatility([]) == 0.0
    assert calculate_volatility([4]) == 0.0
    assert calculate_volatility([2, 4]) == pytest.approx(1.0)


def test_analyze_trends_improving_pooled(make_history):
    """First week around 2, last week around 4: improving with magnitude 2."""
    from relationship_insights.analysis_engine.models import Category, TrendDirection
    from relationship_insights.analysis_engine.temporal import analyze_trends

    a = make_history("a", {"trust": [2] * 7 + [4] * 7})
    b = make_history("b", {"trust": [2] * 7 + [4] * 7})
    trends = analyze_trends(a, b)
    assert set(trends) == set(Category)
    trust = trends[Category.TRUST]
    assert trust.direction is TrendDirection.IMPROVING
    assert trust.magnitude == pytest.approx(2.0)
    # population variance 1.0 -> confidence 0.8
    assert trust.confidence == pytest.approx(0.8)
    assert trust.sample_size == 14


def test_analyze_trends_confidence_clamped_and_empty(make_history):
    """Confidence never leaves [0, 1]; empty categories are stable with zero confidence."""
    from relationship_insights.analysis_engine.models import Category, TrendDirection
    from relationship_insights.analysis_engine.temporal import analyze_trends

    wild = make_history("a", {"communication": [1, 5] * 10})
    trends = analyze_trends(wild, [])
    comm = trends[Category.COMMUNICATION]
    assert 0.0 <= comm.confidence <= 1.0
    gratitude = trends[Category.GRATITUDE]
    assert gratitude.direction is TrendDirection.STABLE
    assert gratitude.magnitude == 0.0
    assert gratitude.confidence == 0.0


def test_category_dynamics(make_history):
    from relationship_insights.analysis_engine.models import Category, Convergence, TrendDirection
    from relationship_insights.analysis_engine.temporal import analyze_category_dynamics

    a = make_history("a", {"trust": [2, 2, 2, 4, 4, 4]})
    b = make_history("b", {"trust": [4, 4, 4, 4, 4, 4]})
    dyn = analyze_category_dynamics(a, b)[Category.TRUST]
    assert dyn.trend_a is TrendDirection.IMPROVING
    assert dyn.trend_b is TrendDirection.STABLE
    assert dyn.convergence is Convergence.STABLE
    assert dyn.volatility > 0


def test_consistent_trend_and_recent_change():
    from relationship_insights.analysis_engine.temporal import (
        CONSISTENT_DECLINE,
        CONSISTENT_IMPROVEMENT,
        RECENT_DECLINE,
        RECENT_IMPROVEMENT,
        detect_consistent_trend,
        detect_recent_change,
    )

    steps = [1.0, 1.0, 1.0, 1.5, 1.5, 1.5, 2.0, 2.0, 2.0, 2.5, 2.5, 2.5, 3.0, 3.0, 3.0]
    assert detect_consistent_trend(steps) == CONSISTENT_IMPROVEMENT
    assert detect_consistent_trend(list(reversed(steps))) == CONSISTENT_DECLINE
    assert detect_consistent_trend(steps[:10]) is None

    assert detect_recent_change([2, 2, 2, 2, 4, 4, 4]) == RECENT_IMPROVEMENT
    assert detect_recent_change([4, 4, 4, 4, 2, 2, 2]) == RECENT_DECLINE
    assert detect_recent_change([3, 3, 3, 3, 3.5, 3.5, 3.5]) is None
    assert detect_recent_change([2, 4]) is None


def test_persistent_and_emerging_patterns(make_history):
    from relationship_insights.analysis_engine.models import Category
    from relationship_insights.analysis_engine.temporal import (
        identify_emerging_patterns,
        identify_persistent_patterns,
    )

    steps = [1.0, 1.0, 1.0, 1.5, 1.5, 1.5, 2.0, 2.0, 2.0, 2.5, 2.5, 2.5, 3.0, 3.0, 3.0]
    a = make_history("a", {"gratitude": steps, "trust": [4] * 11 + [2, 2, 2]})
    b = make_history("b", {"gratitude": steps, "trust": [4] * 14})
    persistent = identify_persistent_patterns(a, b)
    assert [p.category for p in persistent] == [Category.GRATITUDE]
    assert persistent[0].party == "both"

    emerging = identify_emerging_patterns(a, b)
    trust = [p for p in emerging if p.category is Category.TRUST]
    assert len(trust) == 1
    assert trust[0].party == "a"
    assert "decline" in trust[0].description


def test_analyze_trends_confidence_reflects_partner_disagreement(make_history):
    """Partners rating 5 and 1 every day: daily means are flat but confidence drops to 0.2."""
    from relationship_insights.analysis_engine.models import Category, TrendDirection
    from relationship_insights.analysis_engine.temporal import analyze_trends

    a = make_history("a", {"trust": [5] * 14})
    b = make_history("b", {"trust": [1] * 14})
    trust = analyze_trends(a, b)[Category.TRUST]
    assert trust.direction is TrendDirection.STABLE
    assert trust.magnitude == pytest.approx(0.0)
    # pooled ratings are fourteen 5s and fourteen 1s: population variance 4
    assert trust.confidence == pytest.approx(0.2)
    assert trust.sample_size == 14
