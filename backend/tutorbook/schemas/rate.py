# backend/tutorbook/schemas/rate.py
from typing import Optional

from pydantic import Field

from ..core.enums import Currency, Subject
from .base import StandardizedModel, StrictRequestModel


class RateUpsert(StrictRequestModel):
    teacher_id: str = Field(..., min_length=1)
    student_id: str = Field(..., min_length=1)
    subject: Subject = Subject.GENERAL
    student_hourly_rate_cents: int = Field(..., gt=0)
    teacher_hourly_wage_cents: int = Field(..., gt=0)
    currency: Currency


class RateResponse(StandardizedModel):
    id: str
    teacher_id: str
    student_id: str
    subject: Subject
    student_hourly_rate_cents: int
    teacher_hourly_wage_cents: int
    currency: Currency


class ResolvedRate(StandardizedModel):
    """The values a session snapshots at creation or subject change."""

    rate_id: Optional[str] = None
    student_hourly_rate_cents: int
    teacher_hourly_wage_cents: int
    currency: Currency
