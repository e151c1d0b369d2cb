"""
Analysis engine package: pure analytics over two partners' rating histories.

Aggregation, discrepancy, temporal trend, cyclical pattern and psychological
classification stages, plus the pipeline that combines them.
"""

from relationship_insights.analysis_engine.aggregator import (
    average,
    calculate_average_scores,
    calculate_party_averages,
    standard_deviation,
)
from relationship_insights.analysis_engine.cyclical import (
    detect_cyclical_behaviors,
    fold_scores,
    identify_patterns,
)
from relationship_insights.analysis_engine.discrepancy import (
    analyze_discrepancies,
    analyze_pairwise_discrepancies,
    detect_consistent_discrepancy,
)
from relationship_insights.analysis_engine.models import (
    Category,
    CategoryAverages,
    CategoryGroup,
    ClassificationResult,
    Convergence,
    CyclicalBehavior,
    DiscrepancyResult,
    PairwiseDiscrepancy,
    Pattern,
    RatingRecord,
    Significance,
    TrendDirection,
    TrendResult,
)
from relationship_insights.analysis_engine.pipeline import (
    RelationshipAnalysis,
    run_relationship_analysis,
)
from relationship_insights.analysis_engine.temporal import (
    analyze_convergence,
    analyze_trends,
    calculate_trend,
    calculate_volatility,
)
from relationship_insights.analysis_engine.validation import (
    validate_history,
    validate_rating_record,
)

__all__ = [
    "average",
    "standard_deviation",
    "calculate_average_scores",
    "calculate_party_averages",
    "analyze_discrepancies",
    "analyze_pairwise_discrepancies",
    "detect_consistent_discrepancy",
    "calculate_trend",
    "analyze_convergence",
    "calculate_volatility",
    "analyze_trends",
    "fold_scores",
    "identify_patterns",
    "detect_cyclical_behaviors",
    "run_relationship_analysis",
    "RelationshipAnalysis",
    "validate_rating_record",
    "validate_history",
    "Category",
    "CategoryAverages",
    "CategoryGroup",
    "ClassificationResult",
    "Convergence",
    "CyclicalBehavior",
    "DiscrepancyResult",
    "PairwiseDiscrepancy",
    "Pattern",
    "RatingRecord",
    "Significance",
    "TrendDirection",
    "TrendResult",
]
