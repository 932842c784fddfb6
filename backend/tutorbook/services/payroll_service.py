# backend/tutorbook/services/payroll_service.py
"""
Weekly teacher payroll.

A payroll week runs Monday 00:00 to the following Monday 00:00 in the
fixed payroll zone. A COMPLETED session belongs to the week its end_at
falls in. Wages are prorated from the session's own wage snapshot and
rounded half-up to the cent with integer arithmetic; currencies are
totalled independently.
"""

from collections import defaultdict
from datetime import date, datetime
import logging
from typing import Dict, Iterable, List, Optional, Tuple

from sqlalchemy.orm import Session

from ..core.config import settings
from ..core.exceptions import ValidationException
from ..models.tutoring_session import TutoringSession
from ..repositories.factory import RepositoryFactory
from ..schemas.payroll import (
    PayrollCurrencyTotal,
    PayrollStudentBreakdown,
    TeacherPayrollReport,
)
from .base import BaseService
from .timezone_service import TimezoneService

logger = logging.getLogger(__name__)

HOUR_MS = 3_600_000
HALF_HOUR_MS = HOUR_MS // 2

# date.weekday() value of the first day of a payroll week
WEEK_START_WEEKDAY = 0


def session_duration_ms(session: TutoringSession) -> int:
    delta = session.duration
    return (delta.days * 86_400 + delta.seconds) * 1000 + delta.microseconds // 1000


def prorate_wage_cents(duration_ms: int, hourly_wage_cents: int) -> int:
    """floor((duration_ms * wage + half_hour) / hour): round half up on the exact value."""
    if duration_ms <= 0:
        return 0
    return (duration_ms * hourly_wage_cents + HALF_HOUR_MS) // HOUR_MS


class _Bucket:
    __slots__ = ("total_cents", "duration_ms", "sessions_count")

    def __init__(self) -> None:
        self.total_cents = 0
        self.duration_ms = 0
        self.sessions_count = 0

    def add(self, cents: int, duration_ms: int) -> None:
        self.total_cents += cents
        self.duration_ms += duration_ms
        self.sessions_count += 1


def _currency_totals(buckets: Dict[str, _Bucket]) -> List[PayrollCurrencyTotal]:
    return [
        PayrollCurrencyTotal(
            currency=currency,
            total_cents=bucket.total_cents,
            total_hours=bucket.duration_ms / HOUR_MS,
            sessions_count=bucket.sessions_count,
        )
        for currency, bucket in sorted(buckets.items())
    ]


class PayrollService(BaseService):
    def __init__(self, db: Session, payroll_timezone: Optional[str] = None):
        super().__init__(db)
        self.session_repository = RepositoryFactory.create_session_repository(db)
        self.user_repository = RepositoryFactory.create_user_repository(db)
        self.payroll_timezone = TimezoneService.validate_timezone(
            payroll_timezone or settings.payroll_timezone
        )

    def week_range(self, week_start_local: date | str) -> Tuple[date, date, datetime, datetime]:
        """
        Resolve a payroll week.

        Returns:
            (week_start_local, week_end_local, range_start_utc, range_end_utc)
            where the UTC range is half-open

        Raises:
            ValidationException: Unparseable date, or not a Monday
        """
        if isinstance(week_start_local, str):
            week_start_local = TimezoneService.parse_iso_date(week_start_local)
        if week_start_local.weekday() != WEEK_START_WEEKDAY:
            raise ValidationException(
                "week_start_local must be a Monday",
                code="INVALID_WEEK_START",
                details={
                    "week_start_local": week_start_local.isoformat(),
                    "weekday": week_start_local.strftime("%A"),
                },
            )

        week_end_local = TimezoneService.add_days(week_start_local, 6)
        next_week_start = TimezoneService.add_days(week_start_local, 7)
        range_start = TimezoneService.local_midnight(week_start_local, self.payroll_timezone)
        range_end = TimezoneService.local_midnight(next_week_start, self.payroll_timezone)
        return week_start_local, week_end_local, range_start, range_end

    @BaseService.measure_operation("teacher_weekly_payroll")
    def teacher_weekly_payroll(
        self, teacher_id: str, week_start_local: date | str
    ) -> TeacherPayrollReport:
        week_start, week_end, range_start, range_end = self.week_range(week_start_local)

        sessions = self.session_repository.get_completed_for_teacher_ending_between(
            teacher_id, range_start, range_end
        )
        totals, by_student = self._aggregate(sessions)
        names = self.user_repository.get_display_names(by_student.keys())

        students = [
            PayrollStudentBreakdown(
                student_id=student_id,
                student_name=names.get(student_id),
                totals=_currency_totals(buckets),
            )
            for student_id, buckets in by_student.items()
        ]
        students.sort(key=lambda item: (item.student_name or item.student_id, item.student_id))

        self.logger.debug(
            f"Payroll for teacher {teacher_id} week {week_start.isoformat()}: "
            f"{len(sessions)} sessions"
        )
        return TeacherPayrollReport(
            teacher_id=teacher_id,
            payroll_time_zone=self.payroll_timezone,
            week_start_local=week_start,
            week_end_local=week_end,
            range_start_utc=range_start,
            range_end_utc=range_end,
            totals=_currency_totals(totals),
            by_student=students,
        )

    @staticmethod
    def _aggregate(
        sessions: Iterable[TutoringSession],
    ) -> Tuple[Dict[str, _Bucket], Dict[str, Dict[str, _Bucket]]]:
        totals: Dict[str, _Bucket] = defaultdict(_Bucket)
        by_student: Dict[str, Dict[str, _Bucket]] = defaultdict(lambda: defaultdict(_Bucket))

        for session in sessions:
            duration_ms = session_duration_ms(session)
            if duration_ms <= 0:
                continue
            cents = prorate_wage_cents(duration_ms, session.teacher_hourly_wage_cents)
            totals[session.currency].add(cents, duration_ms)
            by_student[session.student_id][session.currency].add(cents, duration_ms)

        return totals, by_student
