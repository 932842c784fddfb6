"""Tests for the weekly teacher payroll report."""

from datetime import date, datetime, timedelta, timezone

import pytest

from tutorbook.core.enums import Currency, RoleName, SessionStatus
from tutorbook.core.exceptions import ValidationException
from tutorbook.services.payroll_service import PayrollService, prorate_wage_cents

UTC = timezone.utc
WEEK = "2030-06-03"  # a Monday; Sydney midnight is 2030-06-02T14:00Z


@pytest.fixture
def service(db):
    return PayrollService(db, payroll_timezone="Australia/Sydney")


@pytest.fixture
def completed(session_factory, teacher):
    def _create(student, start, minutes, wage=10000, currency=Currency.AUD):
        return session_factory(
            teacher,
            student,
            start,
            duration=timedelta(minutes=minutes),
            status=SessionStatus.COMPLETED,
            teacher_wage=wage,
            currency=currency,
        )

    return _create


class TestProration:
    @pytest.mark.parametrize(
        "duration_ms,wage,expected",
        [
            (5_400_000, 10000, 15000),  # 1.5h
            (3_600_000, 3333, 3333),
            (1_800_000, 1, 1),  # 0.5 cent rounds half up
            (1_799_999, 1, 0),
            (0, 10000, 0),
            (-1, 10000, 0),
        ],
    )
    def test_round_half_up(self, duration_ms, wage, expected):
        assert prorate_wage_cents(duration_ms, wage) == expected


class TestWeeklyPayroll:
    def test_session_in_sydney_week(self, service, teacher, student, completed):
        completed(student, datetime(2030, 6, 2, 15, 0, tzinfo=UTC), 90)

        report = service.teacher_weekly_payroll(teacher.id, WEEK)

        assert report.range_start_utc == datetime(2030, 6, 2, 14, 0, tzinfo=UTC)
        assert report.range_end_utc == datetime(2030, 6, 9, 14, 0, tzinfo=UTC)
        assert report.week_start_local == date(2030, 6, 3)
        assert report.week_end_local == date(2030, 6, 9)
        assert len(report.totals) == 1
        total = report.totals[0]
        assert total.currency == "AUD"
        assert total.total_cents == 15000
        assert total.total_hours == pytest.approx(1.5)
        assert total.sessions_count == 1

    def test_range_is_half_open_on_end_at(self, service, teacher, student, completed):
        # Ends exactly at range start: belongs to the week
        completed(student, datetime(2030, 6, 2, 13, 0, tzinfo=UTC), 60)
        # Ends exactly at range end: belongs to the next week
        completed(student, datetime(2030, 6, 9, 13, 0, tzinfo=UTC), 60)

        report = service.teacher_weekly_payroll(teacher.id, date(2030, 6, 3))
        assert report.totals[0].sessions_count == 1

    def test_only_completed_sessions_count(
        self, service, session_factory, teacher, student, completed
    ):
        start = datetime(2030, 6, 4, 1, 0, tzinfo=UTC)
        completed(student, start, 60)
        session_factory(teacher, student, start + timedelta(hours=2))
        session_factory(
            teacher, student, start + timedelta(hours=4), status=SessionStatus.CANCELLED
        )

        report = service.teacher_weekly_payroll(teacher.id, WEEK)
        assert report.totals[0].sessions_count == 1
        assert report.totals[0].total_cents == 10000

    def test_currencies_never_mix(self, service, teacher, student, completed):
        start = datetime(2030, 6, 4, 1, 0, tzinfo=UTC)
        completed(student, start, 60, wage=10000, currency=Currency.USD)
        completed(student, start + timedelta(hours=2), 30, wage=8000, currency=Currency.AUD)

        report = service.teacher_weekly_payroll(teacher.id, WEEK)

        assert [(t.currency, t.total_cents) for t in report.totals] == [
            ("AUD", 4000),
            ("USD", 10000),
        ]

    def test_by_student_sorted_by_name(
        self, service, user_factory, teacher, completed
    ):
        bea = user_factory(RoleName.STUDENT, "Bea")
        al = user_factory(RoleName.STUDENT, "Al")
        start = datetime(2030, 6, 4, 1, 0, tzinfo=UTC)
        completed(bea, start, 60)
        completed(al, start + timedelta(hours=2), 60, currency=Currency.CNY)
        completed(al, start + timedelta(hours=4), 60)

        report = service.teacher_weekly_payroll(teacher.id, WEEK)

        assert [s.student_name for s in report.by_student] == ["Al", "Bea"]
        assert [t.currency for t in report.by_student[0].totals] == ["AUD", "CNY"]
        assert report.by_student[1].student_id == bea.id

    def test_other_teachers_sessions_excluded(
        self, service, session_factory, user_factory, teacher, student
    ):
        other = user_factory(RoleName.TEACHER, "Other")
        session_factory(
            other,
            student,
            datetime(2030, 6, 4, 1, 0, tzinfo=UTC),
            status=SessionStatus.COMPLETED,
        )
        report = service.teacher_weekly_payroll(teacher.id, WEEK)
        assert report.totals == []
        assert report.by_student == []

    @pytest.mark.parametrize(
        "week_start,weekday",
        [
            ("2030-01-01", "Tuesday"),
            ("2030-01-02", "Wednesday"),
            ("2030-01-03", "Thursday"),
            ("2030-01-04", "Friday"),
            ("2030-01-05", "Saturday"),
            ("2030-01-06", "Sunday"),
        ],
    )
    def test_non_monday_rejected(self, service, teacher, week_start, weekday):
        with pytest.raises(ValidationException) as exc_info:
            service.teacher_weekly_payroll(teacher.id, week_start)
        assert exc_info.value.code == "INVALID_WEEK_START"
        assert exc_info.value.details["weekday"] == weekday

    def test_following_monday_accepted(self, service, teacher):
        report = service.teacher_weekly_payroll(teacher.id, "2030-01-07")
        assert report.week_end_local == date(2030, 1, 13)

    def test_malformed_date_rejected(self, service, teacher):
        with pytest.raises(ValidationException):
            service.teacher_weekly_payroll(teacher.id, "2030-13-01")

    def test_dst_week_range(self, service, teacher):
        start, end, range_start, range_end = service.week_range("2024-09-30")
        assert range_start == datetime(2024, 9, 29, 14, 0, tzinfo=UTC)
        assert range_end == datetime(2024, 10, 6, 13, 0, tzinfo=UTC)
        assert end == date(2024, 10, 6)
