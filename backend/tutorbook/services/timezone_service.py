"""
Centralized timezone handling for tutorbook.

Rules:
- All storage: UTC
- All comparisons (conflicts, cutoff, completion): UTC
- A session's class timezone is display metadata only
- Payroll weeks are calendar weeks in the fixed payroll timezone
"""

from datetime import date, datetime, timedelta, timezone
import re

import pytz

from ..core.exceptions import ValidationException

ISO_DATE_REGEX = re.compile(r"^\d{4}-\d{2}-\d{2}$")


class TimezoneService:
    """Pure conversions between wall-clock time in a named zone and UTC instants."""

    @staticmethod
    def get_timezone(tz_str: str) -> pytz.BaseTzInfo:
        """Get timezone object; unknown identifiers are rejected, never defaulted."""
        if not tz_str:
            raise ValidationException("Timezone is required", code="INVALID_TIMEZONE")
        try:
            return pytz.timezone(tz_str)
        except pytz.UnknownTimeZoneError:
            raise ValidationException(
                f"Unknown timezone: {tz_str}",
                code="INVALID_TIMEZONE",
                details={"timezone": tz_str},
            )

    @staticmethod
    def validate_timezone(tz_str: str) -> str:
        TimezoneService.get_timezone(tz_str)
        return tz_str

    @staticmethod
    def parse_iso_date(value: str) -> date:
        """
        Parse a strict YYYY-MM-DD calendar date.

        Raises:
            ValidationException: If the string is not a real calendar date
        """
        candidate = value.strip() if isinstance(value, str) else value
        if not isinstance(candidate, str) or not ISO_DATE_REGEX.fullmatch(candidate):
            raise ValidationException(
                f"Invalid date: {value!r}. Expected YYYY-MM-DD.", code="INVALID_DATE"
            )
        try:
            return date.fromisoformat(candidate)
        except ValueError:
            raise ValidationException(f"Invalid date: {value!r}", code="INVALID_DATE")

    @staticmethod
    def utc_offset(instant: datetime, tz_str: str) -> timedelta:
        """Offset of the zone's wall clock from UTC at the given instant."""
        tz = TimezoneService.get_timezone(tz_str)
        return _as_utc(instant).astimezone(tz).utcoffset() or timedelta(0)

    @staticmethod
    def local_date_of(instant: datetime, tz_str: str) -> date:
        """The calendar date the instant falls on when viewed in the zone."""
        tz = TimezoneService.get_timezone(tz_str)
        return _as_utc(instant).astimezone(tz).date()

    @staticmethod
    def to_instant(
        local_date: date,
        hour: int,
        minute: int,
        second: int,
        tz_str: str,
    ) -> datetime:
        """
        Convert a wall-clock time in a zone to a UTC instant.

        The local fields are first read as if they were UTC. The zone offset at
        that guess gives a corrected instant, and the offset is read again at
        the corrected instant. If both offsets agree the corrected instant is
        returned; otherwise the guess is shifted by the second offset.

        Only one correction pass is made. Inside a DST gap the result lands
        on the far side of the transition (02:30 on a spring-forward night
        comes back as 03:30 DST), and inside a repeated hour the earlier or
        later occurrence may be chosen depending on the zone. Callers that
        need uniqueness must avoid wall-clock times inside a transition.
        """
        try:
            guess = datetime(
                local_date.year,
                local_date.month,
                local_date.day,
                hour,
                minute,
                second,
                tzinfo=timezone.utc,
            )
        except ValueError as exc:
            raise ValidationException(f"Invalid wall-clock time: {exc}", code="INVALID_TIME")

        first_offset = TimezoneService.utc_offset(guess, tz_str)
        corrected = guess - first_offset
        second_offset = TimezoneService.utc_offset(corrected, tz_str)
        if second_offset == first_offset:
            return corrected
        return guess - second_offset

    @staticmethod
    def local_midnight(local_date: date, tz_str: str) -> datetime:
        return TimezoneService.to_instant(local_date, 0, 0, 0, tz_str)

    @staticmethod
    def add_days(local_date: date, days: int) -> date:
        """Pure calendar arithmetic across month, year and leap-day boundaries."""
        return local_date + timedelta(days=days)

    @staticmethod
    def utc_to_local(utc_dt: datetime, tz_str: str) -> datetime:
        """Convert UTC datetime to local timezone."""
        tz = TimezoneService.get_timezone(tz_str)
        return _as_utc(utc_dt).astimezone(tz)

    @staticmethod
    def format_for_display(utc_dt: datetime, tz_str: str) -> str:
        """
        Format a UTC datetime for display in a specific timezone.

        Returns: e.g., "Jun 03, 2030 at 01:00 AM AEST"
        """
        return TimezoneService.utc_to_local(utc_dt, tz_str).strftime("%b %d, %Y at %I:%M %p %Z")


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)
