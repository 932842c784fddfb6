"""Tests for SessionService: create, edit, cancel and listing."""

from datetime import datetime, timedelta, timezone

import pytest

from tutorbook.core.enums import AuditAction, AuditEntityType, Currency, SessionStatus, Subject
from tutorbook.core.exceptions import (
    IntegrityViolation,
    NotFoundException,
    SessionConflictException,
    SessionNotEditableException,
    ValidationException,
)
from tutorbook.models import AuditLog
from tutorbook.services.session_service import OVERLAP_CONSTRAINT, SessionService

UTC = timezone.utc
T0 = datetime(2030, 3, 4, 9, 0, tzinfo=UTC)


@pytest.fixture
def service(db, clock):
    return SessionService(db, clock=clock)


def payload(teacher, student, start=T0, hours=1.0, **extra):
    data = {
        "teacher_id": teacher.id,
        "student_id": student.id,
        "start_at": start,
        "end_at": start + timedelta(hours=hours),
        "class_time_zone": "Australia/Sydney",
    }
    data.update(extra)
    return data


class TestCreateSession:
    def test_creates_scheduled_session_with_rate_snapshot(
        self, service, db, teacher, student, rate, admin_actor
    ):
        session = service.create_session(payload(teacher, student), actor=admin_actor)

        assert session.status == SessionStatus.SCHEDULED.value
        assert session.student_hourly_rate_cents == 12000
        assert session.teacher_hourly_wage_cents == 10000
        assert session.currency == Currency.AUD.value
        assert session.consumes_units == 1
        assert session.created_by_id == admin_actor.actor_id

        audit = db.query(AuditLog).filter_by(entity_id=session.id).one()
        assert audit.action == AuditAction.ADMIN_CREATE_SESSION.value
        assert audit.entity_type == AuditEntityType.SESSION.value
        assert audit.actor_id == admin_actor.actor_id

    def test_offset_input_is_stored_as_utc(self, service, teacher, student, rate):
        sydney = timezone(timedelta(hours=11))
        start = datetime(2030, 3, 4, 20, 0, tzinfo=sydney)
        session = service.create_session(payload(teacher, student, start=start))
        assert session.start_at == datetime(2030, 3, 4, 9, 0, tzinfo=UTC)

    def test_missing_rate_is_not_found(self, service, teacher, student):
        with pytest.raises(NotFoundException) as exc_info:
            service.create_session(payload(teacher, student))
        assert exc_info.value.code == "RATE_NOT_FOUND"

    def test_rate_for_other_subject_is_not_used(self, service, teacher, student, rate):
        with pytest.raises(NotFoundException):
            service.create_session(payload(teacher, student, subject=Subject.MATH))

    @pytest.mark.parametrize("hours", [0, -1])
    def test_end_not_after_start_is_invalid(self, service, teacher, student, rate, hours):
        with pytest.raises(ValidationException):
            service.create_session(payload(teacher, student, hours=hours))

    def test_unknown_zone_is_invalid(self, service, teacher, student, rate):
        with pytest.raises(ValidationException):
            service.create_session(payload(teacher, student, class_time_zone="Moon/Base"))

    def test_naive_datetime_is_invalid(self, service, teacher, student, rate):
        with pytest.raises(ValidationException):
            service.create_session(
                payload(teacher, student, start=datetime(2030, 3, 4, 9, 0))
            )

    def test_non_positive_units_invalid(self, service, teacher, student, rate):
        with pytest.raises(ValidationException):
            service.create_session(payload(teacher, student, consumes_units=0))

    def test_overlap_names_existing_session(self, service, teacher, student, rate):
        first = service.create_session(payload(teacher, student))
        with pytest.raises(SessionConflictException) as exc_info:
            service.create_session(payload(teacher, student, start=T0 + timedelta(minutes=30)))
        assert exc_info.value.details["conflict_session_id"] == first.id

    def test_back_to_back_sessions_do_not_conflict(self, service, teacher, student, rate):
        service.create_session(payload(teacher, student))
        second = service.create_session(payload(teacher, student, start=T0 + timedelta(hours=1)))
        earlier = service.create_session(payload(teacher, student, start=T0 - timedelta(hours=1)))
        assert second.status == earlier.status == SessionStatus.SCHEDULED.value

    def test_cancelled_session_does_not_block(self, service, teacher, student, rate):
        first = service.create_session(payload(teacher, student))
        service.cancel_session(first.id)
        replacement = service.create_session(payload(teacher, student))
        assert replacement.id != first.id

    def test_other_teacher_does_not_conflict(
        self, service, user_factory, rate_factory, teacher, student, rate
    ):
        from tutorbook.core.enums import RoleName

        other = user_factory(RoleName.TEACHER, "Other Teacher")
        rate_factory(other, student)
        service.create_session(payload(teacher, student))
        assert service.create_session(payload(other, student)).teacher_id == other.id

    def test_rate_edit_does_not_touch_existing_snapshot(
        self, service, db, teacher, student, rate
    ):
        session = service.create_session(payload(teacher, student))
        rate.teacher_hourly_wage_cents = 99999
        db.commit()
        db.refresh(session)
        assert session.teacher_hourly_wage_cents == 10000

    def test_store_overlap_violation_is_conflict(
        self, service, monkeypatch, teacher, student, rate
    ):
        def create(**_):
            raise IntegrityViolation("overlap", constraint=OVERLAP_CONSTRAINT)

        monkeypatch.setattr(service.repository, "create", create)
        with pytest.raises(SessionConflictException) as exc_info:
            service.create_session(payload(teacher, student))
        assert isinstance(exc_info.value.__cause__, IntegrityViolation)

    def test_other_integrity_violation_propagates_unchanged(
        self, service, monkeypatch, teacher, student, rate
    ):
        original = IntegrityViolation("fk", constraint="fk_tutoring_sessions_teacher_id")

        def create(**_):
            raise original

        monkeypatch.setattr(service.repository, "create", create)
        with pytest.raises(IntegrityViolation) as exc_info:
            service.create_session(payload(teacher, student))
        assert exc_info.value is original
        assert exc_info.value.__cause__ is None


class TestUpdateSession:
    def test_move_within_own_interval_is_allowed(self, service, teacher, student, rate):
        session = service.create_session(payload(teacher, student))
        updated = service.update_session(
            session.id, {"end_at": T0 + timedelta(minutes=90)}
        )
        assert updated.end_at == T0 + timedelta(minutes=90)

    def test_edit_into_overlap_rejected(self, service, teacher, student, rate):
        first = service.create_session(payload(teacher, student))
        second = service.create_session(payload(teacher, student, start=T0 + timedelta(hours=2)))
        with pytest.raises(SessionConflictException) as exc_info:
            service.update_session(second.id, {"start_at": T0 + timedelta(minutes=30)})
        assert exc_info.value.details["conflict_session_id"] == first.id

    def test_edit_resulting_in_inverted_interval_rejected(self, service, teacher, student, rate):
        session = service.create_session(payload(teacher, student))
        with pytest.raises(ValidationException):
            service.update_session(session.id, {"end_at": T0 - timedelta(minutes=1)})

    def test_unknown_session_not_found(self, service):
        with pytest.raises(NotFoundException):
            service.update_session("01HXXXXXXXXXXXXXXXXXXXXXXX", {"consumes_units": 2})

    @pytest.mark.parametrize("status", [SessionStatus.CANCELLED, SessionStatus.COMPLETED])
    def test_terminal_session_not_editable(
        self, service, session_factory, teacher, student, status
    ):
        session = session_factory(teacher, student, T0, status=status)
        with pytest.raises(SessionNotEditableException):
            service.update_session(session.id, {"consumes_units": 2})

    def test_status_cancelled_cancels(self, service, teacher, student, rate, clock):
        session = service.create_session(payload(teacher, student))
        updated = service.update_session(session.id, {"status": "CANCELLED"})
        assert updated.status == SessionStatus.CANCELLED.value
        assert updated.cancelled_at == clock.now()

    def test_status_completed_rejected(self, service, teacher, student, rate):
        session = service.create_session(payload(teacher, student))
        with pytest.raises(ValidationException):
            service.update_session(session.id, {"status": "COMPLETED"})

    def test_subject_change_resnapshots_rate(
        self, service, rate_factory, teacher, student, rate
    ):
        rate_factory(
            teacher, student, subject=Subject.MATH, teacher_wage=15000, currency=Currency.USD
        )
        session = service.create_session(payload(teacher, student))
        updated = service.update_session(session.id, {"subject": "MATH"})
        assert updated.subject == Subject.MATH.value
        assert updated.teacher_hourly_wage_cents == 15000
        assert updated.currency == Currency.USD.value

    def test_subject_change_without_rate_not_found(self, service, teacher, student, rate):
        session = service.create_session(payload(teacher, student))
        with pytest.raises(NotFoundException):
            service.update_session(session.id, {"subject": "CHINESE"})

    def test_store_violation_on_edit_propagates_unchanged(
        self, service, monkeypatch, teacher, student, rate
    ):
        session = service.create_session(payload(teacher, student))
        original = IntegrityViolation("check", constraint="ck_sessions_consumes_units_positive")

        def flush():
            raise original

        monkeypatch.setattr(service.repository, "flush", flush)
        with pytest.raises(IntegrityViolation) as exc_info:
            service.update_session(session.id, {"consumes_units": 2})
        assert exc_info.value is original
        assert exc_info.value.__cause__ is None

    def test_update_audit_carries_before_and_after(self, service, db, teacher, student, rate):
        session = service.create_session(payload(teacher, student))
        service.update_session(session.id, {"start_at": T0 + timedelta(minutes=15)})
        audit = (
            db.query(AuditLog)
            .filter_by(entity_id=session.id, action=AuditAction.ADMIN_UPDATE_SESSION.value)
            .one()
        )
        assert audit.meta["before"]["start_at"] == T0.isoformat()
        assert audit.meta["after"]["start_at"] == (T0 + timedelta(minutes=15)).isoformat()


class TestCancelSession:
    def test_cancel_is_idempotent(self, service, teacher, student, rate, clock):
        session = service.create_session(payload(teacher, student))
        first = service.cancel_session(session.id)
        cancelled_at = first.cancelled_at
        clock.advance(timedelta(hours=1))
        second = service.cancel_session(session.id)
        assert second.status == SessionStatus.CANCELLED.value
        assert second.cancelled_at == cancelled_at

    def test_cancel_completed_is_conflict(self, service, session_factory, teacher, student):
        session = session_factory(teacher, student, T0, status=SessionStatus.COMPLETED)
        with pytest.raises(SessionNotEditableException):
            service.cancel_session(session.id)

    def test_cancel_unknown_not_found(self, service):
        with pytest.raises(NotFoundException):
            service.cancel_session("missing")


class TestGetSession:
    def test_returns_session(self, service, session_factory, teacher, student):
        session = session_factory(teacher, student, T0)
        assert service.get_session(session.id).id == session.id

    def test_unknown_not_found(self, service):
        with pytest.raises(NotFoundException) as exc_info:
            service.get_session("missing")
        assert exc_info.value.code == "SESSION_NOT_FOUND"


class TestListSessions:
    def test_window_and_ordering(self, service, session_factory, teacher, student):
        late = session_factory(teacher, student, T0 + timedelta(days=2))
        early = session_factory(teacher, student, T0)
        session_factory(teacher, student, T0 + timedelta(days=9))

        result = service.list_teacher_sessions(
            teacher.id, start_from=T0, start_to=T0 + timedelta(days=7)
        )
        assert [s.id for s in result] == [early.id, late.id]

    def test_student_scope(self, service, session_factory, user_factory, teacher, student):
        from tutorbook.core.enums import RoleName

        other = user_factory(RoleName.STUDENT, "Other")
        mine = session_factory(teacher, student, T0)
        session_factory(teacher, other, T0 + timedelta(hours=3))
        assert [s.id for s in service.list_student_sessions(student.id)] == [mine.id]

    def test_empty_window_rejected(self, service, teacher):
        with pytest.raises(ValidationException):
            service.list_sessions(teacher_id=teacher.id, start_from=T0, start_to=T0)

    def test_teacher_and_student_together_rejected(self, service, teacher, student):
        with pytest.raises(ValidationException):
            service.list_sessions(teacher_id=teacher.id, student_id=student.id)

    def test_status_filter(self, service, session_factory, teacher, student):
        session_factory(teacher, student, T0, status=SessionStatus.CANCELLED)
        kept = session_factory(teacher, student, T0 + timedelta(hours=2))
        result = service.list_sessions(teacher_id=teacher.id, status=SessionStatus.SCHEDULED)
        assert [s.id for s in result] == [kept.id]
