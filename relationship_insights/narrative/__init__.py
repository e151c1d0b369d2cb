"""
Narrative enrichment: optional prose commentary from an external text service.
"""

from relationship_insights.narrative.client import HttpNarrativeClient, NarrativeGenerator
from relationship_insights.narrative.enrichment import (
    EnrichmentConfig,
    analyze_daily_pair,
    enrich_discrepancies,
)

__all__ = [
    "HttpNarrativeClient",
    "NarrativeGenerator",
    "EnrichmentConfig",
    "analyze_daily_pair",
    "enrich_discrepancies",
]
