# backend/tutorbook/models/__init__.py
"""
SQLAlchemy models for tutorbook.

Importing this package registers every table on Base.metadata.
"""

from .audit_log import AuditLog
from .change_request import ChangeRequest
from .hour_ledger import HourLedgerEntry
from .rate import TeacherStudentRate
from .tutoring_session import ALLOWED_TRANSITIONS, TutoringSession, can_transition
from .user import User

__all__ = [
    "ALLOWED_TRANSITIONS",
    "AuditLog",
    "ChangeRequest",
    "HourLedgerEntry",
    "TeacherStudentRate",
    "TutoringSession",
    "User",
    "can_transition",
]
