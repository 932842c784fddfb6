# backend/tutorbook/schemas/hour_ledger.py
from datetime import datetime
from typing import List, Literal, Optional

from pydantic import Field

from ..core.enums import HourLedgerReason
from .base import StandardizedModel, StrictRequestModel


class HourLedgerAdd(StrictRequestModel):
    """Staff-entered purchase or adjustment. Consumption is written by the completion job only."""

    student_id: str = Field(..., min_length=1)
    delta_units: int = Field(..., gt=0)
    reason: Literal["PURCHASE", "ADJUSTMENT"] = HourLedgerReason.PURCHASE.value
    teacher_id: Optional[str] = None


class HourLedgerEntryResponse(StandardizedModel):
    id: str
    student_id: str
    teacher_id: Optional[str] = None
    delta_units: int
    reason: HourLedgerReason
    session_id: Optional[str] = None
    created_at: Optional[datetime] = None


class TeacherUnits(StandardizedModel):
    teacher_id: str
    teacher_name: Optional[str] = None
    remaining_units: int


class RemainingUnitsByTeacher(StandardizedModel):
    """Total balance split into the unassigned pool and per-teacher buckets."""

    student_id: str
    total_remaining_units: int
    unassigned_units: int
    by_teacher: List[TeacherUnits] = Field(default_factory=list)
