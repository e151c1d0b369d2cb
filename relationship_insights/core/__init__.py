"""Shared core types: exceptions."""

from relationship_insights.core.exceptions import (
    InsightError,
    NarrativeUnavailableError,
    RatingValidationError,
)

__all__ = ["InsightError", "NarrativeUnavailableError", "RatingValidationError"]
