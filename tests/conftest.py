"""
Pytest fixtures for relationship insights tests. Uses a temporary SQLite DB for the store.
"""

from __future__ import annotations

import datetime as dt

import pytest

START = dt.date(2024, 3, 4)


@pytest.fixture
def insights_db(tmp_path, monkeypatch):
    """
    Point the store at a temporary SQLite DB and init tables.
    Resets engine cache so each test gets a fresh DB. Unset DB URLs so we use SQLite.
    """
    monkeypatch.delenv("DATABASE_URL", raising=False)
    monkeypatch.delenv("INSIGHTS_DB_URL", raising=False)
    monkeypatch.setenv("INSIGHTS_DB_PATH", str(tmp_path / "insights.db"))

    import relationship_insights.database.store as store

    store.reset_engine_for_test()
    store.init_db()
    yield store
    store.reset_engine_for_test()


@pytest.fixture
def make_history():
    """
    Factory: make_history(owner, {category: [scores...]}, notes=None, start=START)
    -> list[RatingRecord], one record per day. A None score skips that category on that day.
    """
    from relationship_insights.analysis_engine.models import Category, RatingRecord

    def _make(owner, series, notes=None, start=START):
        length = max(len(v) for v in series.values())
        records = []
        for i in range(length):
            ratings = {}
            for key, values in series.items():
                if i < len(values) and values[i] is not None:
                    ratings[Category(key)] = values[i]
            note = notes[i] if notes and i < len(notes) else None
            records.append(
                RatingRecord(date=start + dt.timedelta(days=i), owner_id=owner, ratings=ratings, note=note)
            )
        return records

    return _make


@pytest.fixture
def uniform_history():
    """Factory: uniform_history(owner, score, days) with every category rated `score` each day."""
    from relationship_insights.analysis_engine.models import Category, RatingRecord

    def _make(owner, score, days=1, start=START):
        return [
            RatingRecord(
                date=start + dt.timedelta(days=i),
                owner_id=owner,
                ratings={c: score for c in Category},
            )
            for i in range(days)
        ]

    return _make
