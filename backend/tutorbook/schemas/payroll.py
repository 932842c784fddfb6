# backend/tutorbook/schemas/payroll.py
"""
Weekly teacher payroll report.

Amounts are integer cents and are never summed across currencies.
"""

from datetime import date, datetime
from typing import List, Optional

from pydantic import Field

from ..core.enums import Currency
from .base import StandardizedModel


class PayrollCurrencyTotal(StandardizedModel):
    currency: Currency
    total_cents: int
    total_hours: float
    sessions_count: int


class PayrollStudentBreakdown(StandardizedModel):
    student_id: str
    student_name: Optional[str] = None
    totals: List[PayrollCurrencyTotal] = Field(default_factory=list)


class TeacherPayrollReport(StandardizedModel):
    teacher_id: str
    payroll_time_zone: str
    week_start_local: date
    week_end_local: date
    range_start_utc: datetime
    range_end_utc: datetime
    totals: List[PayrollCurrencyTotal] = Field(default_factory=list)
    by_student: List[PayrollStudentBreakdown] = Field(default_factory=list)
