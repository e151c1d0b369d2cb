"""
SQLAlchemy-backed store for rating submissions, cached analyses and the
recompute queue.

Uses INSIGHTS_DB_URL / DATABASE_URL when set; otherwise SQLite
(INSIGHTS_DB_PATH or insights.db).

A late submission from one partner for a date that already has a cached
joint analysis enqueues a recompute task keyed by (user_a, user_b, date).
Pairs are stored in sorted order so (a, b) and (b, a) share one key, and
enqueueing the same key twice is a no-op while the task is still pending.
"""

from __future__ import annotations

import datetime as dt
import json
import time
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any, Iterator

from sqlalchemy import Column, Date, Integer, String, Text, UniqueConstraint, create_engine
from sqlalchemy.orm import Session, declarative_base, sessionmaker

from relationship_insights.analysis_engine.models import Category, RatingRecord
from relationship_insights.config.settings import get_database_url
from relationship_insights.insight_logging import get_logger

logger = get_logger(__name__)

Base = declarative_base()

TASK_PENDING = "pending"
TASK_RUNNING = "running"
TASK_DONE = "done"
TASK_FAILED = "failed"

DEFAULT_MAX_ATTEMPTS = 3

# -----------------------------------------------------------------------------
# SQLAlchemy models
# -----------------------------------------------------------------------------


class RatingRecordRow(Base):
    """One submission per owner per day. ratings is a JSON object keyed by category value."""

    __tablename__ = "rating_records"
    __table_args__ = (UniqueConstraint("owner_id", "date", name="uq_rating_owner_date"),)

    id = Column(Integer, primary_key=True, autoincrement=True)
    owner_id = Column(String(128), nullable=False, index=True)
    partner_id = Column(String(128), nullable=True, index=True)
    date = Column(Date, nullable=False, index=True)
    ratings = Column(Text, nullable=False)
    note = Column(Text, nullable=True)
    submitted_at = Column(Integer, nullable=False)  # Unix

    def to_record(self) -> RatingRecord:
        raw = json.loads(self.ratings or "{}")
        return RatingRecord(
            date=self.date,
            owner_id=self.owner_id,
            ratings={Category(k): float(v) for k, v in raw.items()},
            note=self.note,
        )


class CachedAnalysisRow(Base):
    """Latest computed joint analysis for a pair on a date."""

    __tablename__ = "cached_analyses"
    __table_args__ = (UniqueConstraint("user_a", "user_b", "date", name="uq_analysis_pair_date"),)

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_a = Column(String(128), nullable=False, index=True)
    user_b = Column(String(128), nullable=False, index=True)
    date = Column(Date, nullable=False, index=True)
    payload = Column(Text, nullable=False)
    thresholds_version = Column(String(32), nullable=True)
    computed_at = Column(Integer, nullable=False)

    def to_dict(self) -> dict[str, Any]:
        return {
            "user_a": self.user_a,
            "user_b": self.user_b,
            "date": self.date.isoformat(),
            "payload": json.loads(self.payload),
            "thresholds_version": self.thresholds_version,
            "computed_at": self.computed_at,
        }


class RecomputeTaskRow(Base):
    """Queue entry: recompute the joint analysis for (user_a, user_b, date)."""

    __tablename__ = "recompute_tasks"
    __table_args__ = (UniqueConstraint("user_a", "user_b", "date", name="uq_task_pair_date"),)

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_a = Column(String(128), nullable=False)
    user_b = Column(String(128), nullable=False)
    date = Column(Date, nullable=False)
    status = Column(String(16), nullable=False, default=TASK_PENDING, index=True)
    attempts = Column(Integer, nullable=False, default=0)
    last_error = Column(String(1024), nullable=True)
    created_at = Column(Integer, nullable=False)
    updated_at = Column(Integer, nullable=False)


@dataclass(frozen=True)
class RecomputeTask:
    id: int
    user_a: str
    user_b: str
    date: dt.date
    status: str
    attempts: int
    last_error: str | None = None

    @classmethod
    def from_row(cls, row: RecomputeTaskRow) -> "RecomputeTask":
        return cls(
            id=row.id,
            user_a=row.user_a,
            user_b=row.user_b,
            date=row.date,
            status=row.status,
            attempts=row.attempts,
            last_error=row.last_error,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "user_a": self.user_a,
            "user_b": self.user_b,
            "date": self.date.isoformat(),
            "status": self.status,
            "attempts": self.attempts,
            "last_error": self.last_error,
        }


# -----------------------------------------------------------------------------
# Engine and session
# -----------------------------------------------------------------------------

_engine = None
_SessionLocal: sessionmaker | None = None


def _get_engine():
    """Create or return cached engine."""
    global _engine
    if _engine is None:
        url = get_database_url()
        connect_args = {}
        if url.startswith("sqlite"):
            connect_args["check_same_thread"] = False
        _engine = create_engine(url, connect_args=connect_args, pool_pre_ping=True)
        logger.info("insights_store_engine", url=url.split("?")[0].split("//")[-1])
    return _engine


def _get_session_factory() -> sessionmaker:
    global _SessionLocal
    if _SessionLocal is None:
        _SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=_get_engine())
    return _SessionLocal


@contextmanager
def _session_scope() -> Iterator[Session]:
    """Context manager for a single session. Commits on success, rolls back on error."""
    factory = _get_session_factory()
    session = factory()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


def init_db() -> None:
    """Create tables if they do not exist. Safe to call on every startup."""
    try:
        Base.metadata.create_all(bind=_get_engine())
        logger.info("insights_store_init_db")
    except Exception as e:
        logger.exception("insights_store_init_db_failed", error=str(e))
        raise


def reset_engine_for_test() -> None:
    """Dispose and forget the cached engine. For tests only; use with a new INSIGHTS_DB_PATH."""
    global _engine, _SessionLocal
    if _engine is not None:
        _engine.dispose()
    _engine = None
    _SessionLocal = None


def normalize_pair(user_a: str, user_b: str) -> tuple[str, str]:
    a, b = sorted((user_a.strip(), user_b.strip()))
    return a, b


# -----------------------------------------------------------------------------
# Ratings
# -----------------------------------------------------------------------------


def save_rating_record(record: RatingRecord, partner_id: str | None = None) -> bool:
    """
    Insert or replace the owner's submission for record.date.

    Returns True if a recompute task was enqueued because a cached joint
    analysis already existed for the pair on that date.
    """
    payload = json.dumps({c.value: v for c, v in record.ratings.items()}, sort_keys=True)
    now = int(time.time())
    with _session_scope() as session:
        row = (
            session.query(RatingRecordRow)
            .filter(RatingRecordRow.owner_id == record.owner_id, RatingRecordRow.date == record.date)
            .one_or_none()
        )
        if row is None:
            session.add(
                RatingRecordRow(
                    owner_id=record.owner_id,
                    partner_id=partner_id,
                    date=record.date,
                    ratings=payload,
                    note=record.note,
                    submitted_at=now,
                )
            )
        else:
            row.ratings = payload
            row.note = record.note
            row.submitted_at = now
            if partner_id:
                row.partner_id = partner_id

        if not partner_id:
            return False
        user_a, user_b = normalize_pair(record.owner_id, partner_id)
        cached = (
            session.query(CachedAnalysisRow.id)
            .filter(
                CachedAnalysisRow.user_a == user_a,
                CachedAnalysisRow.user_b == user_b,
                CachedAnalysisRow.date == record.date,
            )
            .first()
        )
        if cached is None:
            return False
        created = _enqueue(session, user_a, user_b, record.date, now)
    logger.info(
        "rating_invalidated_cached_analysis",
        owner_id=record.owner_id,
        partner_id=partner_id,
        date=record.date.isoformat(),
        enqueued=created,
    )
    return True


def load_history(owner_id: str, until: dt.date | None = None) -> list[RatingRecord]:
    """All submissions for owner_id (up to and including until), in date order."""
    with _session_scope() as session:
        q = session.query(RatingRecordRow).filter(RatingRecordRow.owner_id == owner_id)
        if until is not None:
            q = q.filter(RatingRecordRow.date <= until)
        rows = q.order_by(RatingRecordRow.date.asc()).all()
        return [row.to_record() for row in rows]


# -----------------------------------------------------------------------------
# Cached analyses
# -----------------------------------------------------------------------------


def save_analysis(
    user_a: str,
    user_b: str,
    day: dt.date,
    payload: dict[str, Any],
    thresholds_version: str | None = None,
) -> None:
    """Upsert the cached joint analysis for the pair on day."""
    a, b = normalize_pair(user_a, user_b)
    body = json.dumps(payload, sort_keys=True, default=str)
    now = int(time.time())
    with _session_scope() as session:
        row = (
            session.query(CachedAnalysisRow)
            .filter(CachedAnalysisRow.user_a == a, CachedAnalysisRow.user_b == b, CachedAnalysisRow.date == day)
            .one_or_none()
        )
        if row is None:
            session.add(
                CachedAnalysisRow(
                    user_a=a,
                    user_b=b,
                    date=day,
                    payload=body,
                    thresholds_version=thresholds_version,
                    computed_at=now,
                )
            )
        else:
            row.payload = body
            row.thresholds_version = thresholds_version
            row.computed_at = now
    logger.debug("analysis_cached", user_a=a, user_b=b, date=day.isoformat())


def get_cached_analysis(user_a: str, user_b: str, day: dt.date) -> dict[str, Any] | None:
    a, b = normalize_pair(user_a, user_b)
    with _session_scope() as session:
        row = (
            session.query(CachedAnalysisRow)
            .filter(CachedAnalysisRow.user_a == a, CachedAnalysisRow.user_b == b, CachedAnalysisRow.date == day)
            .one_or_none()
        )
        return row.to_dict() if row is not None else None


# -----------------------------------------------------------------------------
# Recompute queue
# -----------------------------------------------------------------------------


def _enqueue(session: Session, user_a: str, user_b: str, day: dt.date, now: int) -> bool:
    row = (
        session.query(RecomputeTaskRow)
        .filter(RecomputeTaskRow.user_a == user_a, RecomputeTaskRow.user_b == user_b, RecomputeTaskRow.date == day)
        .one_or_none()
    )
    if row is None:
        session.add(
            RecomputeTaskRow(
                user_a=user_a,
                user_b=user_b,
                date=day,
                status=TASK_PENDING,
                attempts=0,
                created_at=now,
                updated_at=now,
            )
        )
        return True
    if row.status == TASK_PENDING:
        return False
    # done, failed or running: new data arrived, so the key is queued again
    row.status = TASK_PENDING
    row.attempts = 0
    row.last_error = None
    row.updated_at = now
    return True


def enqueue_recompute(user_a: str, user_b: str, day: dt.date) -> bool:
    """Queue a recompute for the pair on day. Returns False if one is already pending."""
    a, b = normalize_pair(user_a, user_b)
    with _session_scope() as session:
        created = _enqueue(session, a, b, day, int(time.time()))
    logger.debug("recompute_enqueued", user_a=a, user_b=b, date=day.isoformat(), created=created)
    return created


def claim_pending_tasks(limit: int = 50) -> list[RecomputeTask]:
    """Mark up to limit pending tasks as running (oldest first) and return them."""
    now = int(time.time())
    with _session_scope() as session:
        rows = (
            session.query(RecomputeTaskRow)
            .filter(RecomputeTaskRow.status == TASK_PENDING)
            .order_by(RecomputeTaskRow.created_at.asc(), RecomputeTaskRow.id.asc())
            .limit(max(1, int(limit)))
            .all()
        )
        for row in rows:
            row.status = TASK_RUNNING
            row.attempts = (row.attempts or 0) + 1
            row.updated_at = now
        session.flush()
        return [RecomputeTask.from_row(row) for row in rows]


def complete_task(task_id: int) -> None:
    with _session_scope() as session:
        row = session.get(RecomputeTaskRow, task_id)
        if row is None:
            return
        if row.status == TASK_RUNNING:
            row.status = TASK_DONE
            row.last_error = None
        row.updated_at = int(time.time())


def fail_task(task_id: int, error: str, max_attempts: int = DEFAULT_MAX_ATTEMPTS) -> str | None:
    """Record a failure; the task goes back to pending until max_attempts, then failed."""
    with _session_scope() as session:
        row = session.get(RecomputeTaskRow, task_id)
        if row is None:
            return None
        row.last_error = (error or "")[:1024]
        row.status = TASK_FAILED if row.attempts >= max_attempts else TASK_PENDING
        row.updated_at = int(time.time())
        return row.status


def list_tasks(status: str | None = None) -> list[RecomputeTask]:
    with _session_scope() as session:
        q = session.query(RecomputeTaskRow)
        if status is not None:
            q = q.filter(RecomputeTaskRow.status == status)
        return [RecomputeTask.from_row(row) for row in q.order_by(RecomputeTaskRow.id.asc()).all()]
