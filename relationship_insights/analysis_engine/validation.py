"""
Boundary validation for rating submissions.

Raw submissions (dicts from the store or an API) are turned into RatingRecord
here, and only here. Unknown category keys, non-numeric or non-finite values,
and ratings outside [rating_min, rating_max] raise RatingValidationError; the
analyzers downstream never re-check bounds.
"""

from __future__ import annotations

import datetime as dt
import math
from typing import Any, Iterable, Mapping

from relationship_insights.analysis_engine.models import Category, RatingRecord
from relationship_insights.config.thresholds import AnalysisThresholds, resolve_thresholds
from relationship_insights.core.exceptions import RatingValidationError
from relationship_insights.insight_logging import get_logger

logger = get_logger(__name__)


def _parse_date(raw: Any) -> dt.date:
    if isinstance(raw, dt.datetime):
        return raw.date()
    if isinstance(raw, dt.date):
        return raw
    if isinstance(raw, str) and raw.strip():
        text = raw.strip()
        try:
            return dt.date.fromisoformat(text[:10])
        except ValueError as e:
            raise RatingValidationError(f"invalid date: {text}", date=text) from e
    raise RatingValidationError("date is required", date=repr(raw))


def _parse_rating(category: Category, raw: Any, t: AnalysisThresholds) -> float:
    if isinstance(raw, bool) or not isinstance(raw, (int, float)):
        raise RatingValidationError(
            f"rating for {category.value} must be a number",
            category=category.value,
            value=repr(raw),
        )
    value = float(raw)
    if not math.isfinite(value) or value < t.rating_min or value > t.rating_max:
        raise RatingValidationError(
            f"rating for {category.value} out of range [{t.rating_min}, {t.rating_max}]: {value}",
            category=category.value,
            value=value,
        )
    return value


def validate_rating_record(
    raw: Mapping[str, Any],
    thresholds: AnalysisThresholds | None = None,
) -> RatingRecord:
    """
    Validate one raw submission and return an immutable RatingRecord.

    Accepts owner_id (or userId), date (date or ISO string), ratings mapping
    keyed by category value, camelCase or legacy form key, and an optional
    note (or comments). Partial rating maps are allowed.
    """
    t = resolve_thresholds(thresholds)
    if not isinstance(raw, Mapping):
        raise RatingValidationError("rating record must be a mapping")

    owner = raw.get("owner_id", raw.get("userId"))
    if not isinstance(owner, str) or not owner.strip():
        raise RatingValidationError("owner_id is required")

    day = _parse_date(raw.get("date"))

    ratings_raw = raw.get("ratings")
    if not isinstance(ratings_raw, Mapping):
        raise RatingValidationError("ratings must be a mapping", owner_id=owner)

    ratings: dict[Category, float] = {}
    for key, value in ratings_raw.items():
        category = Category.parse(key)
        if category in ratings:
            raise RatingValidationError(f"duplicate rating for {category.value}", owner_id=owner)
        ratings[category] = _parse_rating(category, value, t)

    note = raw.get("note", raw.get("comments"))
    if note is not None and not isinstance(note, str):
        raise RatingValidationError("note must be text", owner_id=owner)

    return RatingRecord(date=day, owner_id=owner.strip(), ratings=ratings, note=note)


def validate_history(
    raws: Iterable[Mapping[str, Any]],
    thresholds: AnalysisThresholds | None = None,
) -> list[RatingRecord]:
    """Validate a batch for one owner; result is sorted by date. Duplicate days are rejected."""
    records = [validate_rating_record(r, thresholds) for r in raws]
    seen: set[tuple[str, dt.date]] = set()
    for rec in records:
        key = (rec.owner_id, rec.date)
        if key in seen:
            raise RatingValidationError(
                f"duplicate submission for {rec.owner_id} on {rec.date.isoformat()}",
                owner_id=rec.owner_id,
                date=rec.date.isoformat(),
            )
        seen.add(key)
    records.sort(key=lambda r: r.date)
    logger.debug("history_validated", records=len(records))
    return records
