"""
Tests for the SQLAlchemy store: rating history, cached analyses and the recompute queue.
Uses a temporary SQLite DB via the insights_db fixture.
"""

from __future__ import annotations

import datetime as dt

DAY = dt.date(2024, 3, 4)


def _record(owner, day, **ratings):
    from relationship_insights.analysis_engine.models import Category, RatingRecord

    return RatingRecord(date=day, owner_id=owner, ratings={Category(k): v for k, v in ratings.items()})


def test_save_and_load_history(insights_db):
    """History comes back as RatingRecords in date order, optionally cut at a date."""
    from relationship_insights.analysis_engine.models import Category

    insights_db.save_rating_record(_record("alice", DAY + dt.timedelta(days=1), trust=4))
    insights_db.save_rating_record(_record("alice", DAY, trust=3, communication=5))
    insights_db.save_rating_record(_record("bob", DAY, trust=1))

    history = insights_db.load_history("alice")
    assert [r.date for r in history] == [DAY, DAY + dt.timedelta(days=1)]
    assert history[0].ratings == {Category.TRUST: 3.0, Category.COMMUNICATION: 5.0}
    assert len(insights_db.load_history("alice", until=DAY)) == 1
    assert insights_db.load_history("nobody") == []


def test_resubmission_replaces_same_day(insights_db):
    from relationship_insights.analysis_engine.models import Category

    insights_db.save_rating_record(_record("alice", DAY, trust=3))
    insights_db.save_rating_record(_record("alice", DAY, trust=5))
    history = insights_db.load_history("alice")
    assert len(history) == 1
    assert history[0].ratings[Category.TRUST] == 5.0


def test_cached_analysis_roundtrip_normalizes_pair(insights_db):
    insights_db.save_analysis("bob", "alice", DAY, {"score": 1}, thresholds_version="v1")
    cached = insights_db.get_cached_analysis("alice", "bob", DAY)
    assert cached["payload"] == {"score": 1}
    assert cached["user_a"] == "alice"
    assert cached["thresholds_version"] == "v1"
    insights_db.save_analysis("alice", "bob", DAY, {"score": 2})
    assert insights_db.get_cached_analysis("bob", "alice", DAY)["payload"] == {"score": 2}
    assert insights_db.get_cached_analysis("alice", "bob", DAY + dt.timedelta(days=1)) is None


def test_late_submission_enqueues_recompute(insights_db):
    """Only a submission for a date with a cached joint analysis creates a task."""
    assert insights_db.save_rating_record(_record("alice", DAY, trust=3), partner_id="bob") is False
    assert insights_db.list_tasks() == []

    insights_db.save_analysis("alice", "bob", DAY, {"score": 1})
    assert insights_db.save_rating_record(_record("bob", DAY, trust=2), partner_id="alice") is True
    tasks = insights_db.list_tasks()
    assert len(tasks) == 1
    assert (tasks[0].user_a, tasks[0].user_b, tasks[0].date) == ("alice", "bob", DAY)
    assert tasks[0].status == "pending"


def test_enqueue_is_idempotent_per_key(insights_db):
    assert insights_db.enqueue_recompute("bob", "alice", DAY) is True
    assert insights_db.enqueue_recompute("alice", "bob", DAY) is False
    assert len(insights_db.list_tasks()) == 1
    assert insights_db.enqueue_recompute("alice", "bob", DAY + dt.timedelta(days=1)) is True
    assert len(insights_db.list_tasks()) == 2


def test_claim_complete_and_requeue(insights_db):
    insights_db.enqueue_recompute("alice", "bob", DAY)
    claimed = insights_db.claim_pending_tasks(limit=10)
    assert len(claimed) == 1
    assert claimed[0].status == "running"
    assert claimed[0].attempts == 1
    assert insights_db.claim_pending_tasks(limit=10) == []

    insights_db.complete_task(claimed[0].id)
    assert insights_db.list_tasks(status="done")[0].id == claimed[0].id

    # new data after completion queues the same key again
    assert insights_db.enqueue_recompute("alice", "bob", DAY) is True
    task = insights_db.list_tasks()[0]
    assert task.status == "pending"
    assert task.attempts == 0


def test_fail_task_retries_until_max_attempts(insights_db):
    insights_db.enqueue_recompute("alice", "bob", DAY)
    task = insights_db.claim_pending_tasks()[0]
    assert insights_db.fail_task(task.id, "db hiccup", max_attempts=2) == "pending"
    task = insights_db.claim_pending_tasks()[0]
    assert task.attempts == 2
    assert insights_db.fail_task(task.id, "db hiccup again", max_attempts=2) == "failed"
    failed = insights_db.list_tasks(status="failed")
    assert failed[0].last_error == "db hiccup again"
    assert insights_db.fail_task(9999, "missing") is None
