# backend/tutorbook/models/rate.py
"""
Teacher/student/subject rate table.

Rates are live and editable. Sessions copy the values they need at creation
(or subject change) and never dereference this table afterwards.
"""

from typing import Any

from sqlalchemy import CheckConstraint, Column, ForeignKey, Integer, String, UniqueConstraint
import ulid

from ..core.enums import Subject
from ..database import Base
from .types import UTCDateTime, utcnow


class TeacherStudentRate(Base):
    __tablename__ = "teacher_student_rates"

    id = Column(String(26), primary_key=True, index=True, default=lambda: str(ulid.ULID()))
    teacher_id = Column(String(26), ForeignKey("users.id"), nullable=False, index=True)
    student_id = Column(String(26), ForeignKey("users.id"), nullable=False, index=True)
    subject = Column(String(20), nullable=False, default=Subject.GENERAL.value)
    student_hourly_rate_cents = Column(Integer, nullable=False)
    teacher_hourly_wage_cents = Column(Integer, nullable=False)
    currency = Column(String(3), nullable=False)
    created_at = Column(UTCDateTime(), nullable=False, default=utcnow)
    updated_at = Column(UTCDateTime(), nullable=False, default=utcnow, onupdate=utcnow)

    __table_args__ = (
        UniqueConstraint(
            "teacher_id", "student_id", "subject", name="uq_rates_teacher_student_subject"
        ),
        CheckConstraint("student_hourly_rate_cents > 0", name="ck_rates_student_rate_positive"),
        CheckConstraint("teacher_hourly_wage_cents > 0", name="ck_rates_teacher_wage_positive"),
        CheckConstraint("currency IN ('AUD', 'CNY', 'USD')", name="ck_rates_currency"),
    )

    def __repr__(self) -> str:
        return (
            f"<TeacherStudentRate {self.id}: teacher={self.teacher_id}, "
            f"student={self.student_id}, subject={self.subject}, "
            f"{self.student_hourly_rate_cents}/{self.teacher_hourly_wage_cents} {self.currency}>"
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "teacher_id": self.teacher_id,
            "student_id": self.student_id,
            "subject": self.subject,
            "student_hourly_rate_cents": self.student_hourly_rate_cents,
            "teacher_hourly_wage_cents": self.teacher_hourly_wage_cents,
            "currency": self.currency,
        }
