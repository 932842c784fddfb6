# backend/tutorbook/models/change_request.py
"""
Student change requests (cancel or reschedule) against a session.

At most one PENDING request may exist per session; a partial unique index
enforces this on both PostgreSQL and SQLite. Requests are immutable once
APPROVED or REJECTED.
"""

from typing import Any

from sqlalchemy import CheckConstraint, Column, ForeignKey, Index, String, text
from sqlalchemy.orm import relationship
import ulid

from ..core.enums import ChangeRequestStatus
from ..database import Base
from .types import UTCDateTime, utcnow


class ChangeRequest(Base):
    __tablename__ = "change_requests"

    id = Column(String(26), primary_key=True, index=True, default=lambda: str(ulid.ULID()))
    session_id = Column(String(26), ForeignKey("tutoring_sessions.id"), nullable=False)
    requester_id = Column(String(26), ForeignKey("users.id"), nullable=False, index=True)
    type = Column(String(20), nullable=False)

    proposed_start_at = Column(UTCDateTime(), nullable=True)
    proposed_end_at = Column(UTCDateTime(), nullable=True)
    proposed_time_zone = Column(String(64), nullable=True)

    status = Column(String(20), nullable=False, default=ChangeRequestStatus.PENDING.value)
    decided_by_id = Column(String(26), ForeignKey("users.id"), nullable=True)
    decided_at = Column(UTCDateTime(), nullable=True)

    created_at = Column(UTCDateTime(), nullable=False, default=utcnow)
    updated_at = Column(UTCDateTime(), nullable=False, default=utcnow, onupdate=utcnow)

    session = relationship("TutoringSession")

    __table_args__ = (
        CheckConstraint("type IN ('CANCEL', 'RESCHEDULE')", name="ck_change_requests_type"),
        CheckConstraint(
            "status IN ('PENDING', 'APPROVED', 'REJECTED')",
            name="ck_change_requests_status",
        ),
        CheckConstraint(
            "proposed_start_at IS NULL OR proposed_end_at IS NULL "
            "OR proposed_end_at > proposed_start_at",
            name="ck_change_requests_proposed_order",
        ),
        Index("ix_change_requests_status_created", "status", "created_at"),
        Index(
            "uq_change_requests_one_pending_per_session",
            "session_id",
            unique=True,
            postgresql_where=text("status = 'PENDING'"),
            sqlite_where=text("status = 'PENDING'"),
        ),
    )

    def __repr__(self) -> str:
        return (
            f"<ChangeRequest {self.id}: session={self.session_id}, type={self.type}, "
            f"status={self.status}>"
        )

    @property
    def is_pending(self) -> bool:
        return self.status == ChangeRequestStatus.PENDING.value

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "session_id": self.session_id,
            "requester_id": self.requester_id,
            "type": self.type,
            "proposed_start_at": (
                self.proposed_start_at.isoformat() if self.proposed_start_at else None
            ),
            "proposed_end_at": self.proposed_end_at.isoformat() if self.proposed_end_at else None,
            "proposed_time_zone": self.proposed_time_zone,
            "status": self.status,
            "decided_by_id": self.decided_by_id,
        }
