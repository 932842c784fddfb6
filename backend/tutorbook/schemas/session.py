# backend/tutorbook/schemas/session.py
"""
Session schemas.

Times are absolute instants and must carry an offset; they are normalised
to UTC on the way in. class_time_zone must be a known IANA zone.
"""

from datetime import datetime
from typing import Optional

from pydantic import Field, field_validator, model_validator

from ..core.enums import Currency, SessionStatus, Subject
from .base import StandardizedModel, StrictRequestModel, UTCInstant, ensure_known_zone, to_utc


class SessionCreate(StrictRequestModel):
    """Create a session for a teacher/student pair."""

    teacher_id: str = Field(..., min_length=1)
    student_id: str = Field(..., min_length=1)
    subject: Subject = Subject.GENERAL
    start_at: UTCInstant
    end_at: UTCInstant
    class_time_zone: str = Field(..., min_length=1)
    consumes_units: int = Field(1, ge=1)

    @field_validator("start_at", "end_at")
    @classmethod
    def _normalize_instant(cls, v: datetime) -> datetime:
        return to_utc(v)

    @field_validator("class_time_zone")
    @classmethod
    def _validate_zone(cls, v: str) -> str:
        return ensure_known_zone(v)

    @model_validator(mode="after")
    def validate_time_order(self) -> "SessionCreate":
        if self.end_at <= self.start_at:
            raise ValueError("end_at must be after start_at")
        return self


class SessionUpdate(StrictRequestModel):
    """
    Partial edit of a SCHEDULED session.

    Only fields that are explicitly set are applied. The service decides
    which status targets are allowed.
    """

    start_at: Optional[UTCInstant] = None
    end_at: Optional[UTCInstant] = None
    class_time_zone: Optional[str] = None
    consumes_units: Optional[int] = Field(None, ge=1)
    subject: Optional[Subject] = None
    status: Optional[SessionStatus] = None

    @field_validator("start_at", "end_at")
    @classmethod
    def _normalize_instant(cls, v: Optional[datetime]) -> Optional[datetime]:
        return to_utc(v)

    @field_validator("class_time_zone")
    @classmethod
    def _validate_zone(cls, v: Optional[str]) -> Optional[str]:
        return ensure_known_zone(v)


class SessionResponse(StandardizedModel):
    id: str
    teacher_id: str
    student_id: str
    subject: Subject
    start_at: datetime
    end_at: datetime
    class_time_zone: str
    consumes_units: int
    student_hourly_rate_cents: int
    teacher_hourly_wage_cents: int
    currency: Currency
    status: SessionStatus
    created_by_id: Optional[str] = None
