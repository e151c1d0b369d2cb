"""
Structured logging for relationship insights.

JSON logs with timestamp, partner ids and event_type.
Use get_logger() in all modules for aggregation-friendly output.
"""

from relationship_insights.insight_logging.logger import bind_pair, get_logger

__all__ = ["get_logger", "bind_pair"]
