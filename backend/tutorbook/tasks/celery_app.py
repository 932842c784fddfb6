# backend/tutorbook/tasks/celery_app.py
"""
Celery application configuration for tutorbook.

This module sets up the Celery app with Redis as the broker and backend,
configures task serialization and registers the beat schedule that drives
the session completion sweep.
"""

import os
from typing import Any, Type, cast

from celery import Celery, Task
from celery.signals import setup_logging

from ..core.config import settings


def create_celery_app() -> Celery:
    """
    Create and configure the Celery application.

    Returns:
        Celery: Configured Celery application instance
    """
    # Priority: CELERY_BROKER_URL -> settings.redis_url
    broker_url = os.getenv("CELERY_BROKER_URL") or settings.redis_url
    result_backend = os.getenv("CELERY_RESULT_BACKEND") or broker_url

    celery_app = Celery(
        "tutorbook",
        broker=broker_url,
        backend=result_backend,
    )

    celery_app.conf.update(
        {
            # Task settings
            "task_serializer": "json",
            "accept_content": ["json"],
            "result_serializer": "json",
            "timezone": "UTC",
            "enable_utc": True,
            # Worker settings
            "worker_prefetch_multiplier": 1,
            "worker_max_tasks_per_child": 1000,
            # Task execution settings
            "task_soft_time_limit": 240,
            "task_time_limit": 300,
            "task_acks_late": True,
            "task_reject_on_worker_lost": True,
            "task_default_retry_delay": 60,
            "task_max_retries": 3,
            "beat_schedule_filename": "celerybeat-schedule",
            "worker_hijack_root_logger": False,
            "broker_transport_options": {"visibility_timeout": 3600},
        }
    )

    celery_app.conf.imports = ("tutorbook.tasks.session_completion",)
    celery_app.conf.task_routes = {
        "tutorbook.tasks.session_completion.*": {"queue": "sessions"},
    }

    from .beat_schedule import get_beat_schedule

    celery_app.conf.beat_schedule = get_beat_schedule(settings.environment)

    return celery_app


# Disable Celery's default logging configuration
@setup_logging.connect  # type: ignore[misc]
def config_loggers(*args: Any, **kwargs: Any) -> None:
    """Configure logging to integrate with the application's logging setup."""
    from ..core.logging import setup_logging as setup_root_logging

    setup_root_logging()


celery_app = create_celery_app()


class BaseTask(Task):  # type: ignore[misc]
    """Base task with failure logging."""

    def on_failure(self, exc: Exception, task_id: str, args: Any, kwargs: Any, einfo: Any) -> None:
        import logging

        logger = logging.getLogger(__name__)
        logger.error(
            f"Task {self.name}[{task_id}] failed with exception: {exc}",
            exc_info=True,
            extra={"task_id": task_id, "task_name": self.name},
        )
        super().on_failure(exc, task_id, args, kwargs, einfo)


# Register BaseTask as default task base for the app
celery_app.Task = cast(Type[Task], BaseTask)
