"""
Helpers for working with SQLAlchemy sessions in a dialect-agnostic way.
"""

from __future__ import annotations

from typing import Optional

from sqlalchemy.engine import Connection, Engine
from sqlalchemy.exc import UnboundExecutionError
from sqlalchemy.orm import Session


def resolve_session_bind(session: Session) -> Optional[Connection | Engine]:
    """Return the engine/connection bound to a session, or None when unbound."""
    try:
        return session.get_bind()
    except UnboundExecutionError:
        return None


def get_dialect_name(session: Session, default: str = "sqlite") -> str:
    """
    Return the SQLAlchemy dialect name for the session's bind.

    Falls back to ``default`` when the session is not bound.
    """
    bind = resolve_session_bind(session)
    if bind is None:
        return default
    return bind.dialect.name or default
