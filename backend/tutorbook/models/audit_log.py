# backend/tutorbook/models/audit_log.py
"""
Audit trail: one structured fact per state-changing operation.

Rows are written in the same transaction as the change they describe.
"""

from __future__ import annotations

from typing import Any, Mapping, Optional

from sqlalchemy import Column, Index, String
import ulid

from ..database import Base
from .types import JSONType, UTCDateTime, utcnow


class AuditLog(Base):
    """Persistence model for audit trail entries."""

    __tablename__ = "audit_log"

    id = Column(String(26), primary_key=True, default=lambda: str(ulid.ULID()))
    action = Column(String(40), nullable=False)
    entity_type = Column(String(50), nullable=False)
    entity_id = Column(String(64), nullable=False)
    actor_id = Column(String(26), nullable=True)
    actor_role = Column(String(20), nullable=True)
    meta = Column(JSONType, nullable=True)
    occurred_at = Column(UTCDateTime(), nullable=False, default=utcnow)

    __table_args__ = (Index("ix_audit_log_entity", "entity_type", "entity_id"),)

    @classmethod
    def from_fact(
        cls,
        action: str,
        entity_type: str,
        entity_id: str,
        actor: Any | None,
        meta: Optional[Mapping[str, Any]] = None,
    ) -> "AuditLog":
        """Factory helper building a row from an actor-like object or mapping."""
        actor_id: str | None = None
        actor_role: str | None = None

        if actor is not None:
            if isinstance(actor, Mapping):
                actor_id = actor.get("actor_id") or actor.get("id")
                role_value = actor.get("role")
            else:
                actor_id = getattr(actor, "actor_id", None) or getattr(actor, "id", None)
                role_value = getattr(actor, "role", None)
            if role_value is not None:
                actor_role = getattr(role_value, "value", role_value)

        return cls(
            action=action,
            entity_type=entity_type,
            entity_id=entity_id,
            actor_id=actor_id,
            actor_role=actor_role,
            meta=dict(meta) if meta is not None else None,
        )

    def __repr__(self) -> str:
        return f"<AuditLog {self.action} {self.entity_type}:{self.entity_id} by {self.actor_id}>"
