"""
Persistence for rating histories, cached analyses and the recompute queue.
"""

from relationship_insights.database.store import (
    RecomputeTask,
    claim_pending_tasks,
    complete_task,
    enqueue_recompute,
    fail_task,
    get_cached_analysis,
    init_db,
    list_tasks,
    load_history,
    save_analysis,
    save_rating_record,
)

__all__ = [
    "RecomputeTask",
    "claim_pending_tasks",
    "complete_task",
    "enqueue_recompute",
    "fail_task",
    "get_cached_analysis",
    "init_db",
    "list_tasks",
    "load_history",
    "save_analysis",
    "save_rating_record",
]
