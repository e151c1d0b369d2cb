"""
Tests for historical and pairwise discrepancy analysis.
"""

from __future__ import annotations

import pytest


def test_all_five_vs_all_one_is_high_everywhere(uniform_history):
    """Every category: difference 4, significance high, A consistently higher."""
    from relationship_insights.analysis_engine.discrepancy import analyze_discrepancies
    from relationship_insights.analysis_engine.models import Category, Significance

    results = analyze_discrepancies(uniform_history("a", 5, days=5), uniform_history("b", 1, days=5))
    assert len(results) == len(Category)
    for r in results:
        assert r.difference == 4
        assert r.significance is Significance.HIGH
        assert r.pattern == "consistently higher"
        assert r.paired_days == 5


def test_identical_histories_are_low(make_history):
    from relationship_insights.analysis_engine.discrepancy import analyze_discrepancies
    from relationship_insights.analysis_engine.models import Significance

    series = {"trust": [3, 4, 2, 5], "communication": [1, 2, 3, 4]}
    results = analyze_discrepancies(make_history("a", series), make_history("b", series))
    for r in results:
        assert r.significance is Significance.LOW
        assert r.difference < 1


def test_significance_boundaries_are_inclusive():
    """2.0 is high and 1.0 is medium."""
    from relationship_insights.analysis_engine.discrepancy import classify_significance
    from relationship_insights.analysis_engine.models import Significance

    assert classify_significance(2.0) is Significance.HIGH
    assert classify_significance(1.999) is Significance.MEDIUM
    assert classify_significance(1.0) is Significance.MEDIUM
    assert classify_significance(0.999) is Significance.LOW


def test_results_sorted_descending_and_full_enumeration(make_history):
    """Every category appears even if the first record lacks it; sorted by difference."""
    from relationship_insights.analysis_engine.discrepancy import analyze_discrepancies
    from relationship_insights.analysis_engine.models import Category

    a = make_history("a", {"trust": [3, 3], "gratitude": [None, 5]})
    b = make_history("b", {"trust": [2, 2], "gratitude": [None, 2]})
    results = analyze_discrepancies(a, b)
    assert {r.category for r in results} == set(Category)
    diffs = [r.difference for r in results]
    assert diffs == sorted(diffs, reverse=True)
    assert results[0].category is Category.GRATITUDE
    assert results[0].difference == pytest.approx(3.0)


def test_missing_party_marks_insufficient_data(make_history):
    from relationship_insights.analysis_engine.discrepancy import analyze_discrepancies
    from relationship_insights.analysis_engine.models import Category, Significance

    results = analyze_discrepancies(make_history("a", {"trust": [5, 5]}), [])
    trust = next(r for r in results if r.category is Category.TRUST)
    assert trust.insufficient_data is True
    assert trust.difference == 0.0
    assert trust.significance is Significance.LOW


def test_consistent_discrepancy_constant_gap():
    from relationship_insights.analysis_engine.discrepancy import detect_consistent_discrepancy

    assert detect_consistent_discrepancy([4, 4, 5], [3, 3, 4]) == "consistently higher"
    assert detect_consistent_discrepancy([1, 2, 2], [3, 4, 4]) == "consistently lower"


def test_consistent_discrepancy_none_cases():
    """Alternating signs, zero gaps, empty or unequal series give no pattern."""
    from relationship_insights.analysis_engine.discrepancy import detect_consistent_discrepancy

    assert detect_consistent_discrepancy([4, 2, 4, 2], [3, 3, 3, 3]) is None
    assert detect_consistent_discrepancy([3, 3], [3, 3]) is None
    assert detect_consistent_discrepancy([4, 3], [3, 3]) is None
    assert detect_consistent_discrepancy([], []) is None
    assert detect_consistent_discrepancy([4, 4], [3]) is None


def test_pattern_uses_shared_days_only(make_history):
    """Days only one partner rated do not break the direction."""
    from relationship_insights.analysis_engine.discrepancy import analyze_discrepancies
    from relationship_insights.analysis_engine.models import Category

    a = make_history("a", {"trust": [4, 1, 4]})
    b = make_history("b", {"trust": [3, None, 3]})
    trust = next(r for r in analyze_discrepancies(a, b) if r.category is Category.TRUST)
    assert trust.pattern == "consistently higher"
    assert trust.paired_days == 2


def test_pairwise_identical_snapshots_empty():
    from relationship_insights.analysis_engine.discrepancy import analyze_pairwise_discrepancies
    from relationship_insights.analysis_engine.models import Category

    snapshot = {c: 3 for c in Category}
    assert analyze_pairwise_discrepancies(snapshot, dict(snapshot)) == []


def test_pairwise_filters_below_two_and_weights():
    """Only gaps >= 2 are emitted; weighted difference uses category importance."""
    from relationship_insights.analysis_engine.discrepancy import analyze_pairwise_discrepancies
    from relationship_insights.analysis_engine.models import Category, Significance

    a = {"communication": 5, "trust": 4, "self_care": 3, "gratitude": 1}
    b = {"communication": 2, "trust": 2, "self_care": 2}
    flagged = analyze_pairwise_discrepancies(a, b)
    assert [d.category for d in flagged] == [Category.COMMUNICATION, Category.TRUST]
    comm = flagged[0]
    assert comm.difference == 3
    assert comm.weighted_difference == pytest.approx(3.6)
    assert comm.significance is Significance.HIGH
    assert comm.recommendation_ref == "discrepancy.communication.high"
    assert comm.commentary is None


def test_pairwise_accepts_rating_records(uniform_history):
    from relationship_insights.analysis_engine.discrepancy import analyze_pairwise_discrepancies
    from relationship_insights.analysis_engine.models import Category

    flagged = analyze_pairwise_discrepancies(uniform_history("a", 5)[0], uniform_history("b", 2)[0])
    assert len(flagged) == len(Category)


def test_discrepancy_analysis_is_idempotent(make_history):
    from relationship_insights.analysis_engine.discrepancy import analyze_discrepancies

    a = make_history("a", {"trust": [4, 3, 5], "communication": [2, 2, 3]})
    b = make_history("b", {"trust": [1, 3, 2], "communication": [5, 4, 4]})
    assert analyze_discrepancies(a, b) == analyze_discrepancies(a, b)
