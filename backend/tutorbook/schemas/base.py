"""
Base schemas shared by every operation payload and result.
"""

from datetime import datetime, timezone
from typing import Optional

from pydantic import AwareDatetime, BaseModel, ConfigDict
import pytz


class StandardizedModel(BaseModel):
    """Base model for results: enums serialize by value, ORM rows load by attribute."""

    model_config = ConfigDict(use_enum_values=True, populate_by_name=True, from_attributes=True)


class StrictRequestModel(BaseModel):
    """Request DTO base that always forbids unexpected fields."""

    model_config = ConfigDict(extra="forbid", validate_assignment=True)


UTCInstant = AwareDatetime


def to_utc(value: Optional[datetime]) -> Optional[datetime]:
    if value is None:
        return None
    return value.astimezone(timezone.utc)


def ensure_known_zone(value: Optional[str]) -> Optional[str]:
    """Field-validator helper: reject unknown IANA zone names."""
    if value is None:
        return value
    candidate = value.strip()
    if candidate not in pytz.all_timezones_set:
        raise ValueError(f"Unknown timezone: {value}")
    return candidate
