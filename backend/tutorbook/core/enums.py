# backend/tutorbook/core/enums.py
"""
Core enums for the tutorbook engine.

All enums persist by VALUE, so every member defines its value explicitly
and the value matches the name.
"""

from enum import Enum


class RoleName(str, Enum):
    """Roles supplied by the identity collaborator."""

    STUDENT = "STUDENT"
    TEACHER = "TEACHER"
    ADMIN = "ADMIN"


class Currency(str, Enum):
    AUD = "AUD"
    CNY = "CNY"
    USD = "USD"


class Subject(str, Enum):
    GENERAL = "GENERAL"
    ENGLISH = "ENGLISH"
    MATH = "MATH"
    CHINESE = "CHINESE"


class SessionStatus(str, Enum):
    """Session lifecycle states. SCHEDULED is the only initial state."""

    SCHEDULED = "SCHEDULED"
    CANCELLED = "CANCELLED"
    COMPLETED = "COMPLETED"


class HourLedgerReason(str, Enum):
    PURCHASE = "PURCHASE"
    ADJUSTMENT = "ADJUSTMENT"
    SESSION_CONSUME = "SESSION_CONSUME"


class ChangeRequestType(str, Enum):
    CANCEL = "CANCEL"
    RESCHEDULE = "RESCHEDULE"


class ChangeRequestStatus(str, Enum):
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"


class AuditAction(str, Enum):
    """Actions recorded in the audit log, one per state-changing operation."""

    ADMIN_CREATE_SESSION = "ADMIN_CREATE_SESSION"
    ADMIN_UPDATE_SESSION = "ADMIN_UPDATE_SESSION"
    ADMIN_CANCEL_SESSION = "ADMIN_CANCEL_SESSION"
    ADMIN_RESCHEDULE_SESSION = "ADMIN_RESCHEDULE_SESSION"
    STUDENT_CREATE_CHANGE_REQUEST = "STUDENT_CREATE_CHANGE_REQUEST"
    ADMIN_APPROVE_CHANGE_REQUEST = "ADMIN_APPROVE_CHANGE_REQUEST"
    ADMIN_REJECT_CHANGE_REQUEST = "ADMIN_REJECT_CHANGE_REQUEST"
    ADMIN_ADD_HOURS = "ADMIN_ADD_HOURS"
    ADMIN_UPSERT_RATE = "ADMIN_UPSERT_RATE"
    ADMIN_DELETE_RATE = "ADMIN_DELETE_RATE"
    SYSTEM_COMPLETE_SESSION = "SYSTEM_COMPLETE_SESSION"


class AuditEntityType(str, Enum):
    SESSION = "Session"
    CHANGE_REQUEST = "ChangeRequest"
    HOUR_LEDGER_ENTRY = "HourLedgerEntry"
    RATE = "TeacherStudentRate"
