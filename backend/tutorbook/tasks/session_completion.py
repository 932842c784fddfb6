# backend/tutorbook/tasks/session_completion.py
"""
Celery task driving the session completion sweep.

Only one sweep runs at a time per process. A tick that arrives while the
previous one is still running is skipped, not queued. Sweeps from separate
processes are still safe, because every step is idempotent.
"""

from datetime import datetime
import logging
import threading
from typing import Any, Dict, Optional

from ..database import get_db_session
from ..services.session_completion_service import SessionCompletionService
from .celery_app import celery_app

logger = logging.getLogger(__name__)

_sweep_lock = threading.Lock()


def run_completion_sweep(
    now: Optional[datetime] = None, batch_size: Optional[int] = None
) -> Dict[str, Any]:
    """
    Run one sweep unless another is already in flight in this process.

    Returns:
        The sweep counters, or {"skipped": True} when a sweep was in flight
    """
    if not _sweep_lock.acquire(blocking=False):
        logger.info("Completion sweep already running; skipping tick")
        return {"skipped": True}

    try:
        with get_db_session() as db:
            result: Dict[str, Any] = dict(
                SessionCompletionService(db).complete_ended_sessions(
                    now=now, batch_size=batch_size
                )
            )
        result["skipped"] = False
        return result
    finally:
        _sweep_lock.release()


@celery_app.task(  # type: ignore[misc]
    bind=True,
    max_retries=0,
    name="tutorbook.tasks.session_completion.complete_ended_sessions",
)
def complete_ended_sessions(self: Any, batch_size: Optional[int] = None) -> Dict[str, Any]:
    """
    Periodic sweep: complete elapsed sessions and charge the ledger.

    Not retried; the next beat tick picks up anything this one missed.
    """
    try:
        result = run_completion_sweep(batch_size=batch_size)
    except Exception as exc:
        logger.error(f"Completion sweep failed: {exc}", exc_info=True)
        raise

    if not result.get("skipped") and result.get("failed"):
        logger.warning(f"Completion sweep finished with {result['failed']} failures")
    return result
