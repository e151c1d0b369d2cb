"""
Recompute worker: drains the (user_a, user_b, date) task queue.

Runs as a separate process (CLI entrypoint). Each cycle claims pending tasks,
reloads both partners' histories up to the task date, reruns the analysis and
replaces the cached payload. Exception isolation per task; the loop never
crashes. Safe shutdown on KeyboardInterrupt/SIGTERM.

Usage: python -m relationship_insights.agent_worker.runtime
"""

from __future__ import annotations

import datetime as dt
import signal
import sys
import time
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field

from relationship_insights.analysis_engine.pipeline import RelationshipAnalysis, run_relationship_analysis
from relationship_insights.config.settings import get_settings
from relationship_insights.config.thresholds import DEFAULT_THRESHOLDS, AnalysisThresholds
from relationship_insights.database import store
from relationship_insights.insight_logging import bind_pair, get_logger

logger = get_logger(__name__)

DEFAULT_INTERVAL_SEC = 300.0
DEFAULT_BATCH_SIZE = 50
DEFAULT_CONCURRENCY = 4
DEFAULT_MAX_ATTEMPTS = 3
MIN_INTERVAL_SEC = 1.0
MIN_CONCURRENCY = 1


@dataclass
class WorkerConfig:
    """
    interval_seconds: Sleep between cycles.
    batch_size: Max tasks claimed per cycle.
    concurrency: Parallel recomputes per cycle.
    max_attempts: Failures before a task is parked as failed.
    """

    interval_seconds: float = DEFAULT_INTERVAL_SEC
    batch_size: int = DEFAULT_BATCH_SIZE
    concurrency: int = DEFAULT_CONCURRENCY
    max_attempts: int = DEFAULT_MAX_ATTEMPTS
    thresholds: AnalysisThresholds = field(default_factory=lambda: DEFAULT_THRESHOLDS)

    def __post_init__(self) -> None:
        self.interval_seconds = max(MIN_INTERVAL_SEC, float(self.interval_seconds))
        self.batch_size = max(1, int(self.batch_size))
        self.concurrency = max(MIN_CONCURRENCY, min(int(self.concurrency), self.batch_size))
        self.max_attempts = max(1, int(self.max_attempts))


def analyze_and_cache(
    user_a: str,
    user_b: str,
    day: dt.date,
    thresholds: AnalysisThresholds | None = None,
) -> RelationshipAnalysis:
    """Load both histories up to day, run the joint analysis and replace the cached payload."""
    user_a, user_b = store.normalize_pair(user_a, user_b)
    analysis = run_relationship_analysis(
        store.load_history(user_a, until=day),
        store.load_history(user_b, until=day),
        thresholds=thresholds,
        as_of=day,
        user_a=user_a,
        user_b=user_b,
    )
    store.save_analysis(
        user_a,
        user_b,
        day,
        analysis.to_dict(),
        thresholds_version=analysis.thresholds_version,
    )
    return analysis


def _process_task_safe(task: store.RecomputeTask, config: WorkerConfig) -> bool:
    """
    Recompute one task. Swallow all exceptions and log; never raise.
    Returns True on success; on failure the task is retried or parked by fail_task.
    """
    log = bind_pair(task.user_a, task.user_b, logger).bind(task_id=task.id)
    try:
        analyze_and_cache(task.user_a, task.user_b, task.date, config.thresholds)
        store.complete_task(task.id)
        return True
    except Exception as e:
        log.warning(
            "recompute_task_failed",
            date=task.date.isoformat(),
            attempts=task.attempts,
            error=str(e),
            exc_info=True,
        )
        try:
            store.fail_task(task.id, str(e), max_attempts=config.max_attempts)
        except Exception as mark_err:
            log.exception("recompute_task_mark_failed", error=str(mark_err))
        return False


def run_cycle(config: WorkerConfig) -> tuple[int, int]:
    """
    One cycle: claim pending tasks and recompute them with concurrency.
    Returns (processed_count, error_count). Exceptions are isolated per task.
    """
    tasks = store.claim_pending_tasks(config.batch_size)
    if not tasks:
        return 0, 0

    processed = 0
    errors = 0
    with ThreadPoolExecutor(max_workers=config.concurrency) as executor:
        futures = {executor.submit(_process_task_safe, t, config): t for t in tasks}
        for fut in as_completed(futures):
            if fut.result():
                processed += 1
            else:
                errors += 1
    return processed, errors


def run_loop(config: WorkerConfig) -> None:
    """
    Infinite worker loop: cycle (claim -> recompute -> store) then sleep.
    Handles KeyboardInterrupt and SIGTERM for clean shutdown.
    """
    store.init_db()
    shutdown = False

    def request_shutdown(*args, **kwargs) -> None:
        nonlocal shutdown
        shutdown = True

    try:
        signal.signal(signal.SIGTERM, request_shutdown)
    except (AttributeError, ValueError):
        # Windows or not on the main thread
        pass

    cycle = 0
    logger.info(
        "recompute_worker_started",
        interval_sec=config.interval_seconds,
        batch_size=config.batch_size,
        concurrency=config.concurrency,
        thresholds_version=config.thresholds.version,
    )

    while not shutdown:
        cycle += 1
        cycle_start = time.monotonic()
        try:
            processed, errors = run_cycle(config)
            logger.info(
                "recompute_cycle_done",
                cycle=cycle,
                processed=processed,
                errors=errors,
                duration_sec=round(time.monotonic() - cycle_start, 2),
            )
        except Exception as e:
            logger.exception("recompute_cycle_failed", cycle=cycle, error=str(e))

        # Sleep until next cycle; wake periodically to check shutdown
        deadline = cycle_start + config.interval_seconds
        while not shutdown and time.monotonic() < deadline:
            sleep_for = min(1.0, max(0.0, deadline - time.monotonic()))
            if sleep_for > 0:
                time.sleep(sleep_for)

    logger.info("recompute_worker_stopped", cycle=cycle)


def _load_config_from_env() -> WorkerConfig:
    """Build WorkerConfig from settings (environment + .env)."""
    s = get_settings()
    return WorkerConfig(
        interval_seconds=s.recompute_interval_sec,
        batch_size=s.recompute_batch_size,
        concurrency=s.recompute_concurrency,
        max_attempts=s.recompute_max_attempts,
    )


def main() -> int:
    """CLI entrypoint: load config from env and run the worker loop."""
    try:
        config = _load_config_from_env()
        run_loop(config)
        return 0
    except KeyboardInterrupt:
        logger.info("recompute_shutdown_signal")
        return 0
    except Exception as e:
        logger.exception("recompute_fatal", error=str(e))
        return 1


if __name__ == "__main__":
    sys.exit(main())
