# backend/tutorbook/tasks/beat_schedule.py
"""
Celery Beat schedule configuration for tutorbook.

The completion sweep runs on a fixed interval rather than a crontab so
elapsed sessions are picked up within one interval of ending.
"""

from datetime import timedelta
from typing import Any, Optional

from ..core.config import settings

COMPLETION_TASK = "tutorbook.tasks.session_completion.complete_ended_sessions"


def get_beat_schedule(
    environment: str = "production", interval_seconds: Optional[int] = None
) -> dict[str, dict[str, Any]]:
    """
    Get the beat schedule for the specified environment.

    Args:
        environment: The environment name (production, development, testing)
        interval_seconds: Override for the sweep interval

    Returns:
        Mapping of task name to Celery beat configuration dict
    """
    interval = interval_seconds or settings.session_completion_interval_seconds
    schedule: dict[str, dict[str, Any]] = {
        "complete-ended-sessions": {
            "task": COMPLETION_TASK,
            "schedule": timedelta(seconds=interval),
            "kwargs": {},
            "options": {
                "queue": "sessions",
                # A tick older than its interval is superseded by the next one
                "expires": interval,
            },
        },
    }
    if environment == "testing":
        # Tests drive the sweep directly
        return {}
    return schedule
