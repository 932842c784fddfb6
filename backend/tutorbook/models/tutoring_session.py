# backend/tutorbook/models/tutoring_session.py
"""
Tutoring session model.

A session is a scheduled one-on-one engagement between a teacher and a
student. Times are absolute UTC instants; class_time_zone is display
metadata and never takes part in conflict math.

Pricing is a snapshot copied from the rate table when the session is
created or its subject changes, so later rate edits never alter scheduled
or completed sessions.

Sessions are never deleted. Status follows a closed transition table:
SCHEDULED may move to CANCELLED, COMPLETED or stay SCHEDULED (edit,
reschedule); CANCELLED and COMPLETED are terminal.
"""

from datetime import datetime, timedelta
import logging
from typing import Any, Dict, FrozenSet, Optional

from sqlalchemy import CheckConstraint, Column, ForeignKey, Index, Integer, String
from sqlalchemy.orm import relationship
import ulid

from ..core.enums import SessionStatus, Subject
from ..core.exceptions import SessionNotEditableException
from ..database import Base
from .types import UTCDateTime, utcnow

logger = logging.getLogger(__name__)

ALLOWED_TRANSITIONS: Dict[SessionStatus, FrozenSet[SessionStatus]] = {
    SessionStatus.SCHEDULED: frozenset(
        {SessionStatus.SCHEDULED, SessionStatus.CANCELLED, SessionStatus.COMPLETED}
    ),
    SessionStatus.CANCELLED: frozenset(),
    SessionStatus.COMPLETED: frozenset(),
}


def can_transition(current: SessionStatus | str, target: SessionStatus | str) -> bool:
    """Return True if (current -> target) is in the transition table."""
    return SessionStatus(target) in ALLOWED_TRANSITIONS[SessionStatus(current)]


class TutoringSession(Base):
    """Scheduled teaching engagement with its own pricing snapshot."""

    __tablename__ = "tutoring_sessions"

    id = Column(String(26), primary_key=True, index=True, default=lambda: str(ulid.ULID()))

    teacher_id = Column(String(26), ForeignKey("users.id"), nullable=False)
    student_id = Column(String(26), ForeignKey("users.id"), nullable=False, index=True)

    start_at = Column(UTCDateTime(), nullable=False)
    end_at = Column(UTCDateTime(), nullable=False)
    class_time_zone = Column(String(64), nullable=False)

    subject = Column(String(20), nullable=False, default=Subject.GENERAL.value)
    consumes_units = Column(Integer, nullable=False, default=1)

    # Pricing snapshot
    student_hourly_rate_cents = Column(Integer, nullable=False)
    teacher_hourly_wage_cents = Column(Integer, nullable=False)
    currency = Column(String(3), nullable=False)

    status = Column(String(20), nullable=False, default=SessionStatus.SCHEDULED.value)

    created_by_id = Column(String(26), ForeignKey("users.id"), nullable=True)
    created_at = Column(UTCDateTime(), nullable=False, default=utcnow)
    updated_at = Column(UTCDateTime(), nullable=False, default=utcnow, onupdate=utcnow)
    cancelled_at = Column(UTCDateTime(), nullable=True)
    completed_at = Column(UTCDateTime(), nullable=True)

    teacher = relationship("User", foreign_keys=[teacher_id])
    student = relationship("User", foreign_keys=[student_id])

    __table_args__ = (
        CheckConstraint("end_at > start_at", name="ck_sessions_end_after_start"),
        CheckConstraint("consumes_units > 0", name="ck_sessions_consumes_units_positive"),
        CheckConstraint(
            "status IN ('SCHEDULED', 'CANCELLED', 'COMPLETED')",
            name="ck_sessions_status",
        ),
        Index("ix_sessions_teacher_start", "teacher_id", "start_at"),
        Index("ix_sessions_status_end", "status", "end_at"),
    )

    def __repr__(self) -> str:
        return (
            f"<TutoringSession {self.id}: teacher={self.teacher_id}, "
            f"student={self.student_id}, {self.start_at}-{self.end_at}, status={self.status}>"
        )

    @property
    def duration(self) -> timedelta:
        return self.end_at - self.start_at

    def transition_to(self, target: SessionStatus) -> None:
        """Apply a status change, rejecting anything outside the transition table."""
        if not can_transition(self.status, target):
            raise SessionNotEditableException(self.id, self.status)
        self.status = target.value

    def cancel(self, when: Optional[datetime] = None) -> None:
        """Cancel this session."""
        self.transition_to(SessionStatus.CANCELLED)
        self.cancelled_at = when or utcnow()
        logger.info(f"Session {self.id} cancelled")

    def complete(self, when: Optional[datetime] = None) -> None:
        """Mark session as completed."""
        self.transition_to(SessionStatus.COMPLETED)
        self.completed_at = when or utcnow()
        logger.info(f"Session {self.id} marked as completed")

    def snapshot(self) -> Dict[str, Any]:
        """Time/status fields recorded in audit before/after payloads."""
        return {
            "status": self.status,
            "start_at": self.start_at.isoformat() if self.start_at else None,
            "end_at": self.end_at.isoformat() if self.end_at else None,
            "class_time_zone": self.class_time_zone,
        }

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "teacher_id": self.teacher_id,
            "student_id": self.student_id,
            "start_at": self.start_at.isoformat() if self.start_at else None,
            "end_at": self.end_at.isoformat() if self.end_at else None,
            "class_time_zone": self.class_time_zone,
            "subject": self.subject,
            "consumes_units": self.consumes_units,
            "student_hourly_rate_cents": self.student_hourly_rate_cents,
            "teacher_hourly_wage_cents": self.teacher_hourly_wage_cents,
            "currency": self.currency,
            "status": self.status,
            "created_by_id": self.created_by_id,
        }
