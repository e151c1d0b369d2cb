"""
Application-level exceptions.

Analyzers degrade gracefully on sparse data and never raise; these are for the
boundaries: rating validation on the way in, and the narrative collaborator on
the way out.
"""

from __future__ import annotations

from typing import Any


class InsightError(Exception):
    """Base class for relationship insights errors."""

    code = "insight_error"

    def __init__(self, message: str, **details: Any) -> None:
        super().__init__(message)
        self.message = message
        self.details = details

    def to_dict(self) -> dict[str, Any]:
        return {"code": self.code, "message": self.message, "details": self.details}


class RatingValidationError(InsightError, ValueError):
    """A rating submission is malformed: unknown category, bad value, missing owner or date."""

    code = "rating_invalid"


class NarrativeUnavailableError(InsightError):
    """The narrative generator failed or returned nothing usable."""

    code = "narrative_unavailable"

    def __init__(self, message: str, transient: bool = False, **details: Any) -> None:
        super().__init__(message, **details)
        self.transient = transient
