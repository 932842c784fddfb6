"""Session factory and unit-of-work helpers."""

from __future__ import annotations

from contextlib import contextmanager
from typing import Generator, Optional

from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from .engines import get_engine

SessionLocal = sessionmaker(autocommit=False, autoflush=False, expire_on_commit=False)

_bound = False


def init_session_factory(engine: Optional[Engine] = None) -> None:
    """Bind the session factory (idempotent unless an explicit engine is given)."""
    global _bound
    if _bound and engine is None:
        return
    SessionLocal.configure(bind=engine or get_engine())
    _bound = True


@contextmanager
def get_db_session() -> Generator[Session, None, None]:
    """Context manager for short-lived DB operations (workers, commands)."""
    init_session_factory()
    db = SessionLocal()
    try:
        yield db
        db.commit()
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


__all__ = [
    "SessionLocal",
    "get_db_session",
    "init_session_factory",
]
