"""Tests for the student change-request workflow."""

from datetime import datetime, timedelta, timezone

import pytest

from tutorbook.core.enums import (
    AuditAction,
    AuditEntityType,
    ChangeRequestStatus,
    RoleName,
    SessionStatus,
)
from tutorbook.core.exceptions import (
    ChangeRequestCutoffException,
    ChangeRequestNotPendingException,
    ForbiddenException,
    NotFoundException,
    PendingChangeRequestExistsException,
    SessionNotEditableException,
    ValidationException,
)
from tutorbook.models import ChangeRequest
from tutorbook.principal import Actor
from tutorbook.services.audit_service import AuditService
from tutorbook.services.change_request_service import ChangeRequestService

UTC = timezone.utc
SESSION_START = datetime(2030, 1, 2, 0, 0, tzinfo=UTC)
CUTOFF = SESSION_START - timedelta(hours=24)


@pytest.fixture
def service(db, clock):
    return ChangeRequestService(db, clock=clock)


@pytest.fixture
def scheduled(session_factory, teacher, student):
    return session_factory(teacher, student, SESSION_START)


def reschedule_payload(start=SESSION_START + timedelta(days=1), hours=1):
    return {
        "type": "RESCHEDULE",
        "proposed_start_at": start,
        "proposed_end_at": start + timedelta(hours=hours),
        "proposed_time_zone": "Australia/Sydney",
    }


class TestCreate:
    def test_exactly_at_cutoff_is_allowed(self, service, clock, scheduled, student_actor):
        clock.set(CUTOFF)
        cr = service.create_change_request(scheduled.id, {"type": "CANCEL"}, student_actor)
        assert cr.status == ChangeRequestStatus.PENDING.value
        assert cr.requester_id == student_actor.actor_id

    def test_one_millisecond_past_cutoff_is_forbidden(
        self, service, clock, scheduled, student_actor
    ):
        clock.set(CUTOFF + timedelta(milliseconds=1))
        with pytest.raises(ChangeRequestCutoffException) as exc_info:
            service.create_change_request(scheduled.id, {"type": "CANCEL"}, student_actor)
        assert isinstance(exc_info.value, ForbiddenException)
        assert exc_info.value.details["cutoff"] == CUTOFF.isoformat()

    def test_other_students_session_is_not_found(
        self, service, clock, scheduled, user_factory
    ):
        clock.set(CUTOFF)
        stranger = Actor.student(user_factory(RoleName.STUDENT, "Stranger").id)
        with pytest.raises(NotFoundException):
            service.create_change_request(scheduled.id, {"type": "CANCEL"}, stranger)

    def test_missing_session_is_not_found(self, service, student_actor):
        with pytest.raises(NotFoundException):
            service.create_change_request("missing", {"type": "CANCEL"}, student_actor)

    def test_non_scheduled_session_is_conflict(
        self, service, session_factory, teacher, student, student_actor
    ):
        done = session_factory(teacher, student, SESSION_START, status=SessionStatus.COMPLETED)
        with pytest.raises(SessionNotEditableException):
            service.create_change_request(done.id, {"type": "CANCEL"}, student_actor)

    def test_second_pending_request_is_conflict(self, service, scheduled, student_actor):
        service.create_change_request(scheduled.id, {"type": "CANCEL"}, student_actor)
        with pytest.raises(PendingChangeRequestExistsException):
            service.create_change_request(scheduled.id, reschedule_payload(), student_actor)

    def test_new_request_allowed_after_rejection(
        self, service, scheduled, student_actor, admin_actor
    ):
        first = service.create_change_request(scheduled.id, {"type": "CANCEL"}, student_actor)
        service.reject(first.id, admin_actor)
        second = service.create_change_request(scheduled.id, {"type": "CANCEL"}, student_actor)
        assert second.id != first.id

    def test_reschedule_requires_all_proposed_fields(self, service, scheduled, student_actor):
        data = reschedule_payload()
        del data["proposed_time_zone"]
        with pytest.raises(ValidationException):
            service.create_change_request(scheduled.id, data, student_actor)

    def test_reschedule_with_inverted_interval_is_invalid(
        self, service, scheduled, student_actor
    ):
        with pytest.raises(ValidationException):
            service.create_change_request(scheduled.id, reschedule_payload(hours=-1), student_actor)

    def test_cancel_drops_proposed_fields(self, service, scheduled, student_actor):
        data = {**reschedule_payload(), "type": "CANCEL"}
        cr = service.create_change_request(scheduled.id, data, student_actor)
        assert cr.proposed_start_at is None
        assert cr.proposed_time_zone is None

    def test_unknown_type_is_invalid(self, service, scheduled, student_actor):
        with pytest.raises(ValidationException):
            service.create_change_request(scheduled.id, {"type": "SWAP"}, student_actor)

    def test_create_is_audited(self, db, service, scheduled, student_actor):
        cr = service.create_change_request(scheduled.id, {"type": "CANCEL"}, student_actor)
        history = AuditService(db).history(AuditEntityType.CHANGE_REQUEST, cr.id)
        assert [h.action for h in history] == [AuditAction.STUDENT_CREATE_CHANGE_REQUEST.value]
        assert history[0].actor_role == RoleName.STUDENT.value


class TestApprove:
    def test_approve_cancel_cancels_session(
        self, db, service, scheduled, student_actor, admin_actor
    ):
        cr = service.create_change_request(scheduled.id, {"type": "CANCEL"}, student_actor)
        approved = service.approve(cr.id, admin_actor)

        db.refresh(scheduled)
        assert approved.status == ChangeRequestStatus.APPROVED.value
        assert approved.decided_by_id == admin_actor.actor_id
        assert approved.decided_at is not None
        assert scheduled.status == SessionStatus.CANCELLED.value

    def test_approve_reschedule_moves_session(
        self, db, service, scheduled, student_actor, admin_actor
    ):
        new_start = SESSION_START + timedelta(days=3)
        cr = service.create_change_request(
            scheduled.id, reschedule_payload(start=new_start, hours=2), student_actor
        )
        service.approve(cr.id, admin_actor)

        db.refresh(scheduled)
        assert scheduled.status == SessionStatus.SCHEDULED.value
        assert scheduled.start_at == new_start
        assert scheduled.end_at == new_start + timedelta(hours=2)
        assert scheduled.class_time_zone == "Australia/Sydney"

        session_history = AuditService(db).history(AuditEntityType.SESSION, scheduled.id)
        reschedule = [
            h for h in session_history if h.action == AuditAction.ADMIN_RESCHEDULE_SESSION.value
        ]
        assert len(reschedule) == 1
        assert reschedule[0].meta["before"]["start_at"] == SESSION_START.isoformat()
        assert reschedule[0].meta["after"]["start_at"] == new_start.isoformat()

        cr_history = AuditService(db).history(AuditEntityType.CHANGE_REQUEST, cr.id)
        assert AuditAction.ADMIN_APPROVE_CHANGE_REQUEST.value in {h.action for h in cr_history}

    def test_approved_reschedule_skips_overlap_check(
        self, db, service, session_factory, teacher, student, scheduled, student_actor, admin_actor
    ):
        blocker_start = SESSION_START + timedelta(days=1)
        session_factory(teacher, student, blocker_start)
        cr = service.create_change_request(
            scheduled.id, reschedule_payload(start=blocker_start), student_actor
        )
        service.approve(cr.id, admin_actor)
        db.refresh(scheduled)
        assert scheduled.start_at == blocker_start

    def test_approve_twice_is_conflict(self, service, scheduled, student_actor, admin_actor):
        cr = service.create_change_request(scheduled.id, {"type": "CANCEL"}, student_actor)
        service.approve(cr.id, admin_actor)
        with pytest.raises(ChangeRequestNotPendingException):
            service.approve(cr.id, admin_actor)
        with pytest.raises(ChangeRequestNotPendingException):
            service.reject(cr.id, admin_actor)

    def test_approve_missing_is_not_found(self, service, admin_actor):
        with pytest.raises(NotFoundException):
            service.approve("missing", admin_actor)

    def test_session_no_longer_scheduled_is_conflict_and_nothing_changes(
        self, db, service, scheduled, student_actor, admin_actor
    ):
        cr = service.create_change_request(scheduled.id, {"type": "CANCEL"}, student_actor)
        scheduled.status = SessionStatus.COMPLETED.value
        db.commit()

        with pytest.raises(SessionNotEditableException):
            service.approve(cr.id, admin_actor)

        db.refresh(cr)
        assert cr.status == ChangeRequestStatus.PENDING.value

    def test_reschedule_missing_fields_at_approval_rolls_back(
        self, db, service, scheduled, student_actor, admin_actor
    ):
        cr = service.create_change_request(scheduled.id, reschedule_payload(), student_actor)
        cr.proposed_time_zone = None
        db.commit()

        with pytest.raises(ValidationException):
            service.approve(cr.id, admin_actor)

        db.refresh(cr)
        db.refresh(scheduled)
        assert cr.status == ChangeRequestStatus.PENDING.value
        assert scheduled.start_at == SESSION_START


class TestReject:
    def test_reject_leaves_session_alone(
        self, db, service, scheduled, student_actor, admin_actor
    ):
        cr = service.create_change_request(scheduled.id, reschedule_payload(), student_actor)
        rejected = service.reject(cr.id, admin_actor)

        db.refresh(scheduled)
        assert rejected.status == ChangeRequestStatus.REJECTED.value
        assert rejected.decided_by_id == admin_actor.actor_id
        assert scheduled.start_at == SESSION_START
        assert scheduled.status == SessionStatus.SCHEDULED.value


class TestListing:
    def test_pending_queue_oldest_first(
        self, db, service, session_factory, teacher, student, student_actor, clock
    ):
        a = session_factory(teacher, student, SESSION_START)
        b = session_factory(teacher, student, SESSION_START + timedelta(hours=2))
        first = service.create_change_request(a.id, {"type": "CANCEL"}, student_actor)
        second = service.create_change_request(b.id, {"type": "CANCEL"}, student_actor)

        assert [cr.id for cr in service.list_by_status()] == [first.id, second.id]
        assert [cr.id for cr in service.list_for_student(student_actor.actor_id)] == [
            second.id,
            first.id,
        ]
        assert service.list_by_status(ChangeRequestStatus.APPROVED) == []

    def test_unknown_status_rejected(self, service):
        with pytest.raises(ValidationException):
            service.list_by_status("MAYBE")

    def test_get_reflects_decision(self, service, scheduled, student_actor, admin_actor):
        cr = service.create_change_request(scheduled.id, {"type": "CANCEL"}, student_actor)
        service.reject(cr.id, admin_actor)

        fetched = service.get_change_request(cr.id)
        assert fetched.status == ChangeRequestStatus.REJECTED.value
        assert fetched.decided_by_id == admin_actor.actor_id

    def test_get_unknown_not_found(self, service):
        with pytest.raises(NotFoundException) as exc_info:
            service.get_change_request("missing")
        assert exc_info.value.code == "CHANGE_REQUEST_NOT_FOUND"


def test_pending_uniqueness_enforced_by_store(db, scheduled, student):
    """The partial unique index rejects a second PENDING row even without the service check."""
    from sqlalchemy.exc import IntegrityError

    db.add(ChangeRequest(session_id=scheduled.id, requester_id=student.id, type="CANCEL"))
    db.commit()
    db.add(ChangeRequest(session_id=scheduled.id, requester_id=student.id, type="CANCEL"))
    with pytest.raises(IntegrityError):
        db.commit()
    db.rollback()
