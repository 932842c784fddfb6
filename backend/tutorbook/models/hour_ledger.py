# backend/tutorbook/models/hour_ledger.py
"""
Append-only hour ledger.

Each row is an immutable fact about a student's unit balance. A student's
remaining balance is the sum of delta_units over their rows; rows with a
null teacher_id form the unassigned pool.

session_id is unique when present, which is what makes session completion
idempotent: a second consumption row for the same session cannot exist.
"""

from typing import Any

from sqlalchemy import CheckConstraint, Column, ForeignKey, Index, Integer, String
import ulid

from ..database import Base
from .types import UTCDateTime, utcnow


class HourLedgerEntry(Base):
    __tablename__ = "hour_ledger_entries"

    id = Column(String(26), primary_key=True, index=True, default=lambda: str(ulid.ULID()))
    student_id = Column(String(26), ForeignKey("users.id"), nullable=False)
    teacher_id = Column(String(26), ForeignKey("users.id"), nullable=True)
    delta_units = Column(Integer, nullable=False)
    reason = Column(String(20), nullable=False)
    session_id = Column(
        String(26),
        ForeignKey("tutoring_sessions.id"),
        nullable=True,
        unique=True,
    )
    created_by_id = Column(String(26), ForeignKey("users.id"), nullable=True)
    created_at = Column(UTCDateTime(), nullable=False, default=utcnow)

    __table_args__ = (
        CheckConstraint(
            "reason IN ('PURCHASE', 'ADJUSTMENT', 'SESSION_CONSUME')",
            name="ck_ledger_reason",
        ),
        Index("ix_ledger_student_created", "student_id", "created_at"),
        Index("ix_ledger_student_teacher", "student_id", "teacher_id"),
    )

    def __repr__(self) -> str:
        return (
            f"<HourLedgerEntry {self.id}: student={self.student_id}, "
            f"teacher={self.teacher_id}, delta={self.delta_units}, reason={self.reason}>"
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "student_id": self.student_id,
            "teacher_id": self.teacher_id,
            "delta_units": self.delta_units,
            "reason": self.reason,
            "session_id": self.session_id,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }
