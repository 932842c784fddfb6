"""Database engine factory.

The engine is created on first use so importing models, services or tests
never opens a connection or requires the PostgreSQL driver.
"""

from __future__ import annotations

import logging
from typing import Any

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine

from tutorbook.core.config import settings

logger = logging.getLogger(__name__)

_POOL_KWARGS: dict[str, Any] = {
    "pool_size": 5,
    "max_overflow": 5,
    "pool_timeout": 10,
    "pool_recycle": 300,
    "pool_pre_ping": True,
    "future": True,
}


def _add_pool_events(engine: Engine, pool_name: str) -> None:
    @event.listens_for(engine, "connect")
    def _on_connect(_dbapi_connection: Any, _connection_record: Any) -> None:
        logger.info("[%s] Database connection established", pool_name)

    @event.listens_for(engine, "checkout")
    def _on_checkout(
        _dbapi_connection: Any, _connection_record: Any, _connection_proxy: Any
    ) -> None:
        logger.debug("[%s] Connection checked out from pool", pool_name)

    @event.listens_for(engine, "checkin")
    def _on_checkin(_dbapi_connection: Any, _connection_record: Any) -> None:
        logger.debug("[%s] Connection returned to pool", pool_name)


def create_app_engine(db_url: str | None = None, pool_name: str = "Main") -> Engine:
    url = db_url or settings.get_database_url()
    kwargs: dict[str, Any] = {"future": True}
    if not url.startswith("sqlite"):
        kwargs = dict(_POOL_KWARGS)
    engine = create_engine(url, **kwargs)
    _add_pool_events(engine, pool_name)
    return engine


_engine: Engine | None = None


def get_engine() -> Engine:
    global _engine
    if _engine is None:
        _engine = create_app_engine()
    return _engine


def dispose_engine() -> None:
    global _engine
    if _engine is not None:
        _engine.dispose()
        _engine = None


__all__ = ["create_app_engine", "dispose_engine", "get_engine"]
