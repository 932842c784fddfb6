# backend/tutorbook/schemas/change_request.py
from datetime import datetime
from typing import Optional

from pydantic import Field, field_validator, model_validator

from ..core.enums import ChangeRequestStatus, ChangeRequestType
from .base import StandardizedModel, StrictRequestModel, UTCInstant, ensure_known_zone, to_utc


class ChangeRequestCreate(StrictRequestModel):
    """
    A student's cancel or reschedule proposal.

    RESCHEDULE must carry all three proposed fields; CANCEL ignores them.
    The proposed end > start rule is checked by the service, after the
    session-state checks.
    """

    type: ChangeRequestType
    proposed_start_at: Optional[UTCInstant] = None
    proposed_end_at: Optional[UTCInstant] = None
    proposed_time_zone: Optional[str] = Field(None, min_length=1)

    @field_validator("proposed_start_at", "proposed_end_at")
    @classmethod
    def _normalize_instant(cls, v: Optional[datetime]) -> Optional[datetime]:
        return to_utc(v)

    @field_validator("proposed_time_zone")
    @classmethod
    def _validate_zone(cls, v: Optional[str]) -> Optional[str]:
        return ensure_known_zone(v)

    @model_validator(mode="after")
    def _require_reschedule_fields(self) -> "ChangeRequestCreate":
        if self.type == ChangeRequestType.RESCHEDULE:
            missing = [
                name
                for name in ("proposed_start_at", "proposed_end_at", "proposed_time_zone")
                if getattr(self, name) is None
            ]
            if missing:
                raise ValueError(f"RESCHEDULE requires {', '.join(missing)}")
        return self


class ChangeRequestResponse(StandardizedModel):
    id: str
    session_id: str
    requester_id: str
    type: ChangeRequestType
    status: ChangeRequestStatus
    proposed_start_at: Optional[datetime] = None
    proposed_end_at: Optional[datetime] = None
    proposed_time_zone: Optional[str] = None
    decided_by_id: Optional[str] = None
    created_at: Optional[datetime] = None
