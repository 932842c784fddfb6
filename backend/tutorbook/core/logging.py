"""Process-wide logging setup for the worker, commands and Celery."""

import logging
from typing import Optional

from .config import settings

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def setup_logging(level: Optional[str] = None) -> None:
    """Configure the root logger once; later calls are no-ops."""
    logging.basicConfig(level=level or settings.log_level, format=LOG_FORMAT)
    # SQL echo is controlled by the engine, not the root level
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
