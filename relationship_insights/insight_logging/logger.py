"""
Structured logging for analysis runs, narrative calls and recompute cycles.

Every event carries event_type, level, an ISO timestamp and, for pair-scoped
work, a canonical ``pair`` key so both partners' runs group together however
the ids were ordered by the caller. Partners' free text (notes, triggers,
generated commentary) is never written to the log; only its size is kept.

No relationship_insights imports here: every other module imports this one.
"""

from __future__ import annotations

import logging
import os
import sys
from datetime import datetime, timezone
from typing import Any

import structlog

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
LOG_LEVEL_VALUE = getattr(logging, LOG_LEVEL, logging.INFO)

# json in deployed workers, console renderer for local runs
LOG_FORMAT = os.getenv("LOG_FORMAT", "json").strip().lower()

FREE_TEXT_KEYS = frozenset({"note", "notes", "triggers", "commentary", "prompt"})
SCORE_DECIMALS = 3


def pair_key(user_a: str, user_b: str) -> str:
    """Order-independent key for a couple, e.g. ``alice|bob``."""
    first, second = sorted((str(user_a), str(user_b)))
    return f"{first}|{second}"


def _add_timestamp(logger: Any, method_name: str, event_dict: dict[str, Any]) -> dict[str, Any]:
    event_dict.setdefault("timestamp", datetime.now(timezone.utc).isoformat())
    return event_dict


def _normalize_event(logger: Any, method_name: str, event_dict: dict[str, Any]) -> dict[str, Any]:
    """structlog's 'event' becomes event_type; message defaults to the same text."""
    if "event" in event_dict and "event_type" not in event_dict:
        event_dict["event_type"] = event_dict.pop("event")
    if "message" not in event_dict and "event_type" in event_dict:
        event_dict["message"] = str(event_dict["event_type"])
    return event_dict


def _add_pair(logger: Any, method_name: str, event_dict: dict[str, Any]) -> dict[str, Any]:
    user_a = event_dict.get("user_a")
    user_b = event_dict.get("user_b")
    if user_a is not None and user_b is not None and "pair" not in event_dict:
        event_dict["pair"] = pair_key(user_a, user_b)
    return event_dict


def _redact_free_text(logger: Any, method_name: str, event_dict: dict[str, Any]) -> dict[str, Any]:
    """Replace partners' free text with its length (chars, or items for sequences)."""
    for key in FREE_TEXT_KEYS & event_dict.keys():
        value = event_dict.pop(key)
        if value is None:
            continue
        event_dict[f"{key}_len"] = len(value) if hasattr(value, "__len__") else 1
    return event_dict


def _round_scores(logger: Any, method_name: str, event_dict: dict[str, Any]) -> dict[str, Any]:
    for key, value in event_dict.items():
        if isinstance(value, float):
            event_dict[key] = round(value, SCORE_DECIMALS)
    return event_dict


def configure_structlog() -> None:
    processors: list[Any] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        _add_timestamp,
        _normalize_event,
        _add_pair,
        _redact_free_text,
        _round_scores,
    ]
    if LOG_FORMAT == "json":
        processors.append(structlog.processors.JSONRenderer(sort_keys=True))
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty()))
    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(LOG_LEVEL_VALUE),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stdout),
        cache_logger_on_first_use=True,
    )


if not structlog.is_configured():
    configure_structlog()


def get_logger(name: str) -> structlog.BoundLogger:
    """
    Module logger; the first positional argument of each call is the event_type.

        logger = get_logger(__name__)
        logger.info("relationship_analysis_completed", discrepancies_high=2)
    """
    return structlog.get_logger(name).bind(logger=name)


def bind_pair(
    user_a: str | None,
    user_b: str | None,
    logger: structlog.BoundLogger | None = None,
) -> structlog.BoundLogger:
    """
    Bind both partner ids (and the canonical pair key) to ``logger``.

    Anonymous runs (either id missing) get the logger back unchanged.
    """
    base = logger if logger is not None else get_logger("relationship_insights")
    if user_a is None or user_b is None:
        return base
    return base.bind(user_a=user_a, user_b=user_b, pair=pair_key(user_a, user_b))
