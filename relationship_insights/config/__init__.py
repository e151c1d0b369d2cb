"""
Configuration for relationship insights.

Runtime settings come from environment variables and an optional .env file;
analysis thresholds are one shared, versioned object injected into analyzers.
"""

from relationship_insights.config.settings import Settings, get_settings  # noqa: F401
from relationship_insights.config.thresholds import (  # noqa: F401
    DEFAULT_THRESHOLDS,
    AnalysisThresholds,
    resolve_thresholds,
)

__all__ = [
    "Settings",
    "get_settings",
    "AnalysisThresholds",
    "DEFAULT_THRESHOLDS",
    "resolve_thresholds",
]
