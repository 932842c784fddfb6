# backend/tutorbook/services/session_service.py
"""
Session Service for tutorbook.

Owns session create, edit and cancel. Each operation is one unit of work:
the conflict read, the write and the audit fact commit together.

State machine:
    SCHEDULED -> CANCELLED   (cancel, edit with status=CANCELLED, approved CANCEL)
    SCHEDULED -> COMPLETED   (completion sweep only)
    SCHEDULED -> SCHEDULED   (edit, approved RESCHEDULE)
CANCELLED and COMPLETED are terminal.
"""

from datetime import datetime
import logging
from typing import Any, Dict, List, Mapping, Optional

from sqlalchemy.orm import Session

from ..core.clock import Clock
from ..core.enums import AuditAction, AuditEntityType, SessionStatus, Subject
from ..core.exceptions import (
    IntegrityViolation,
    NotFoundException,
    SessionConflictException,
    SessionNotEditableException,
    ValidationException,
)
from ..models.tutoring_session import TutoringSession
from ..principal import Actor
from ..repositories.factory import RepositoryFactory
from ..schemas.session import SessionCreate, SessionUpdate
from .audit_service import AuditService
from .base import BaseService
from .conflict_checker import ConflictChecker
from .rate_service import RateService

logger = logging.getLogger(__name__)

# PostgreSQL exclusion constraint backing the conflict check
OVERLAP_CONSTRAINT = "ex_tutoring_sessions_teacher_no_overlap"

EDIT_TARGET_STATUSES = (SessionStatus.SCHEDULED, SessionStatus.CANCELLED)

CONCURRENT_OVERLAP_MESSAGE = "Session time conflicts with a concurrently written session"


def _is_overlap_violation(exc: IntegrityViolation) -> bool:
    return exc.constraint == OVERLAP_CONSTRAINT or OVERLAP_CONSTRAINT in str(exc)


class SessionService(BaseService):
    """Service for session lifecycle operations."""

    def __init__(self, db: Session, clock: Optional[Clock] = None):
        super().__init__(db, clock)
        self.repository = RepositoryFactory.create_session_repository(db)
        self.conflict_checker = ConflictChecker(db)
        self.rate_service = RateService(db)
        self.audit = AuditService(db)

    def get_session(self, session_id: str) -> TutoringSession:
        session = self.repository.get_by_id(session_id)
        if session is None:
            raise NotFoundException("Session not found", code="SESSION_NOT_FOUND")
        return session

    @BaseService.measure_operation("create_session")
    def create_session(
        self, data: SessionCreate | Mapping[str, Any], actor: Optional[Actor] = None
    ) -> TutoringSession:
        """
        Create a SCHEDULED session with a rate snapshot.

        Raises:
            ValidationException: end_at <= start_at, unknown zone, bad enum
            NotFoundException: No rate for (teacher, student, subject)
            SessionConflictException: Overlaps a non-cancelled session of the teacher
        """
        payload = self.parse_payload(SessionCreate, data)

        with self.transaction():
            rate = self.rate_service.resolve_rate(
                payload.teacher_id, payload.student_id, payload.subject
            )
            self.conflict_checker.ensure_no_conflict(
                payload.teacher_id, payload.start_at, payload.end_at
            )

            try:
                session = self.repository.create(
                    teacher_id=payload.teacher_id,
                    student_id=payload.student_id,
                    subject=payload.subject.value,
                    start_at=payload.start_at,
                    end_at=payload.end_at,
                    class_time_zone=payload.class_time_zone,
                    consumes_units=payload.consumes_units,
                    student_hourly_rate_cents=rate.student_hourly_rate_cents,
                    teacher_hourly_wage_cents=rate.teacher_hourly_wage_cents,
                    currency=rate.currency,
                    status=SessionStatus.SCHEDULED.value,
                    created_by_id=actor.actor_id if actor else None,
                )
            except IntegrityViolation as exc:
                if _is_overlap_violation(exc):
                    raise SessionConflictException(message=CONCURRENT_OVERLAP_MESSAGE) from exc
                raise

            self.audit.record(
                AuditAction.ADMIN_CREATE_SESSION,
                AuditEntityType.SESSION,
                session.id,
                actor,
                meta={
                    "teacher_id": session.teacher_id,
                    "student_id": session.student_id,
                    "subject": session.subject,
                    "start_at": session.start_at.isoformat(),
                    "end_at": session.end_at.isoformat(),
                    "class_time_zone": session.class_time_zone,
                    "consumes_units": session.consumes_units,
                    "student_hourly_rate_cents": session.student_hourly_rate_cents,
                    "teacher_hourly_wage_cents": session.teacher_hourly_wage_cents,
                    "currency": session.currency,
                },
            )

        self.log_operation("create_session", session_id=session.id, teacher_id=session.teacher_id)
        return session

    @BaseService.measure_operation("update_session")
    def update_session(
        self,
        session_id: str,
        data: SessionUpdate | Mapping[str, Any],
        actor: Optional[Actor] = None,
    ) -> TutoringSession:
        """
        Apply a partial edit to a SCHEDULED session.

        The resulting interval is re-checked against every other non-cancelled
        session of the teacher. A subject change re-snapshots the rate.
        status=CANCELLED cancels in the same write; status=SCHEDULED is a no-op.

        Raises:
            NotFoundException: Unknown session, or no rate for a new subject
            SessionNotEditableException: Session is CANCELLED or COMPLETED
            ValidationException: Resulting end <= start, or a disallowed status
            SessionConflictException: Resulting interval overlaps another session
        """
        payload = self.parse_payload(SessionUpdate, data)
        changes: Dict[str, Any] = payload.model_dump(exclude_unset=True, exclude_none=True)

        with self.transaction():
            session = self.repository.get_for_update(session_id)
            if session is None:
                raise NotFoundException("Session not found", code="SESSION_NOT_FOUND")
            if session.status != SessionStatus.SCHEDULED.value:
                raise SessionNotEditableException(session.id, session.status)

            next_start: datetime = changes.get("start_at", session.start_at)
            next_end: datetime = changes.get("end_at", session.end_at)
            next_subject = changes.get("subject", session.subject)
            next_status = SessionStatus(changes.get("status", session.status))

            if next_end <= next_start:
                raise ValidationException(
                    "end_at must be after start_at",
                    code="INVALID_INTERVAL",
                    details={"start_at": next_start.isoformat(), "end_at": next_end.isoformat()},
                )
            if next_status not in EDIT_TARGET_STATUSES:
                raise ValidationException(
                    "Invalid status transition",
                    code="INVALID_STATUS_TRANSITION",
                    details={"status": next_status.value},
                )

            self.conflict_checker.ensure_no_conflict(
                session.teacher_id, next_start, next_end, exclude_session_id=session.id
            )

            before = session.snapshot()

            if next_subject != session.subject:
                rate = self.rate_service.resolve_rate(
                    session.teacher_id, session.student_id, next_subject
                )
                session.subject = Subject(next_subject).value
                session.student_hourly_rate_cents = rate.student_hourly_rate_cents
                session.teacher_hourly_wage_cents = rate.teacher_hourly_wage_cents
                session.currency = rate.currency

            session.start_at = next_start
            session.end_at = next_end
            if "class_time_zone" in changes:
                session.class_time_zone = changes["class_time_zone"]
            if "consumes_units" in changes:
                session.consumes_units = changes["consumes_units"]
            if next_status == SessionStatus.CANCELLED:
                session.cancel(self.now())

            try:
                self.repository.flush()
            except IntegrityViolation as exc:
                if _is_overlap_violation(exc):
                    raise SessionConflictException(message=CONCURRENT_OVERLAP_MESSAGE) from exc
                raise

            self.audit.record(
                AuditAction.ADMIN_UPDATE_SESSION,
                AuditEntityType.SESSION,
                session.id,
                actor,
                meta={
                    "before": before,
                    "after": session.snapshot(),
                    "subject": session.subject,
                    "consumes_units": session.consumes_units,
                },
            )

        self.log_operation("update_session", session_id=session.id)
        return session

    @BaseService.measure_operation("cancel_session")
    def cancel_session(self, session_id: str, actor: Optional[Actor] = None) -> TutoringSession:
        """
        Cancel a session. Already-cancelled sessions are left untouched.

        Raises:
            NotFoundException: Unknown session
            SessionNotEditableException: Session is COMPLETED
        """
        with self.transaction():
            session = self.repository.get_for_update(session_id)
            if session is None:
                raise NotFoundException("Session not found", code="SESSION_NOT_FOUND")
            if session.status == SessionStatus.COMPLETED.value:
                raise SessionNotEditableException(session.id, session.status)

            already_cancelled = session.status == SessionStatus.CANCELLED.value
            if not already_cancelled:
                session.cancel(self.now())
                self.repository.flush()

            self.audit.record(
                AuditAction.ADMIN_CANCEL_SESSION,
                AuditEntityType.SESSION,
                session.id,
                actor,
                meta={"status": session.status, "already_cancelled": already_cancelled},
            )

        return session

    def list_sessions(
        self,
        teacher_id: Optional[str] = None,
        student_id: Optional[str] = None,
        status: Optional[SessionStatus] = None,
        start_from: Optional[datetime] = None,
        start_to: Optional[datetime] = None,
    ) -> List[TutoringSession]:
        """
        Sessions ordered by start time within an optional [start_from, start_to) window.

        Raises:
            ValidationException: start_to <= start_from, or both teacher and student given
        """
        if teacher_id and student_id:
            raise ValidationException(
                "Filter by teacher or by student, not both", code="INVALID_FILTER"
            )
        if start_from is not None and start_to is not None and start_to <= start_from:
            raise ValidationException("start_to must be after start_from", code="INVALID_RANGE")
        if status is not None:
            try:
                status = SessionStatus(status)
            except ValueError:
                raise ValidationException(f"Unknown status: {status}", code="INVALID_STATUS")

        return self.repository.list_sessions(
            teacher_id=teacher_id,
            student_id=student_id,
            status=status,
            start_from=start_from,
            start_to=start_to,
        )

    def list_teacher_sessions(
        self,
        teacher_id: str,
        start_from: Optional[datetime] = None,
        start_to: Optional[datetime] = None,
    ) -> List[TutoringSession]:
        return self.list_sessions(teacher_id=teacher_id, start_from=start_from, start_to=start_to)

    def list_student_sessions(
        self,
        student_id: str,
        start_from: Optional[datetime] = None,
        start_to: Optional[datetime] = None,
    ) -> List[TutoringSession]:
        return self.list_sessions(student_id=student_id, start_from=start_from, start_to=start_to)
