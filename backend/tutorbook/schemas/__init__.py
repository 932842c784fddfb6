# backend/tutorbook/schemas/__init__.py
"""
Pydantic schemas for tutorbook operations.

Request models forbid unknown fields; result models load straight from ORM
rows (from_attributes) and serialize enums by value.
"""

from .change_request import ChangeRequestCreate, ChangeRequestResponse
from .hour_ledger import (
    HourLedgerAdd,
    HourLedgerEntryResponse,
    RemainingUnitsByTeacher,
    TeacherUnits,
)
from .payroll import PayrollCurrencyTotal, PayrollStudentBreakdown, TeacherPayrollReport
from .rate import RateResponse, RateUpsert, ResolvedRate
from .session import SessionCreate, SessionResponse, SessionUpdate

__all__ = [
    "ChangeRequestCreate",
    "ChangeRequestResponse",
    "HourLedgerAdd",
    "HourLedgerEntryResponse",
    "PayrollCurrencyTotal",
    "PayrollStudentBreakdown",
    "RateResponse",
    "RateUpsert",
    "RemainingUnitsByTeacher",
    "ResolvedRate",
    "SessionCreate",
    "SessionResponse",
    "SessionUpdate",
    "TeacherPayrollReport",
    "TeacherUnits",
]
