# backend/tutorbook/services/change_request_service.py
"""
Change Request Service for tutorbook.

Students propose a CANCEL or RESCHEDULE for one of their SCHEDULED
sessions; staff approve or reject. Approval mutates the session and
resolves the request in one transaction, so neither effect can persist
without the other.

An approved RESCHEDULE overwrites the session's times without re-running
the overlap check that manual edits perform.
"""

from datetime import timedelta
import logging
from typing import Any, List, Mapping, Optional

from sqlalchemy.orm import Session

from ..core.clock import Clock
from ..core.config import settings
from ..core.enums import (
    AuditAction,
    AuditEntityType,
    ChangeRequestStatus,
    ChangeRequestType,
    SessionStatus,
)
from ..core.exceptions import (
    ChangeRequestCutoffException,
    ChangeRequestNotPendingException,
    ConflictException,
    IntegrityViolation,
    NotFoundException,
    PendingChangeRequestExistsException,
    SessionNotEditableException,
    ValidationException,
)
from ..models.change_request import ChangeRequest
from ..models.tutoring_session import TutoringSession
from ..principal import Actor
from ..repositories.factory import RepositoryFactory
from ..schemas.change_request import ChangeRequestCreate
from .audit_service import AuditService
from .base import BaseService

logger = logging.getLogger(__name__)

PENDING_CONSTRAINT = "uq_change_requests_one_pending_per_session"


class ChangeRequestService(BaseService):
    """Service for the student change-request workflow."""

    def __init__(
        self,
        db: Session,
        clock: Optional[Clock] = None,
        cutoff_hours: Optional[int] = None,
    ):
        super().__init__(db, clock)
        self.repository = RepositoryFactory.create_change_request_repository(db)
        self.session_repository = RepositoryFactory.create_session_repository(db)
        self.audit = AuditService(db)
        self.cutoff_hours = cutoff_hours or settings.change_request_cutoff_hours

    def get_change_request(self, change_request_id: str) -> ChangeRequest:
        change_request = self.repository.get_by_id(change_request_id)
        if change_request is None:
            raise NotFoundException("Change request not found", code="CHANGE_REQUEST_NOT_FOUND")
        return change_request

    @BaseService.measure_operation("create_change_request")
    def create_change_request(
        self,
        session_id: str,
        data: ChangeRequestCreate | Mapping[str, Any],
        actor: Actor,
    ) -> ChangeRequest:
        """
        Open a PENDING change request for one of the requester's sessions.

        Raises:
            ValidationException: Malformed payload, or proposed end <= proposed start
            NotFoundException: Session missing or owned by another student
            SessionNotEditableException: Session is not SCHEDULED
            ChangeRequestCutoffException: Less than the cutoff window before start
            PendingChangeRequestExistsException: A PENDING request already exists
        """
        payload = self.parse_payload(ChangeRequestCreate, data)
        now = self.now()

        with self.transaction():
            session = self.session_repository.get_for_student(session_id, actor.actor_id)
            if session is None:
                raise NotFoundException("Session not found", code="SESSION_NOT_FOUND")
            if session.status != SessionStatus.SCHEDULED.value:
                raise SessionNotEditableException(session.id, session.status)

            # Exactly at the cutoff is still allowed
            cutoff = session.start_at - timedelta(hours=self.cutoff_hours)
            if now > cutoff:
                raise ChangeRequestCutoffException(cutoff, self.cutoff_hours)

            if self.repository.get_pending_for_session(session.id) is not None:
                raise PendingChangeRequestExistsException(session.id)

            is_reschedule = payload.type == ChangeRequestType.RESCHEDULE
            if is_reschedule and payload.proposed_end_at <= payload.proposed_start_at:
                raise ValidationException(
                    "proposed_end_at must be after proposed_start_at",
                    code="INVALID_INTERVAL",
                    details={
                        "proposed_start_at": payload.proposed_start_at.isoformat(),
                        "proposed_end_at": payload.proposed_end_at.isoformat(),
                    },
                )

            try:
                change_request = self.repository.create(
                    session_id=session.id,
                    requester_id=actor.actor_id,
                    type=payload.type.value,
                    proposed_start_at=payload.proposed_start_at if is_reschedule else None,
                    proposed_end_at=payload.proposed_end_at if is_reschedule else None,
                    proposed_time_zone=payload.proposed_time_zone if is_reschedule else None,
                    status=ChangeRequestStatus.PENDING.value,
                )
            except IntegrityViolation as exc:
                if exc.constraint == PENDING_CONSTRAINT or PENDING_CONSTRAINT in str(exc):
                    raise PendingChangeRequestExistsException(session.id) from exc
                raise

            self.audit.record(
                AuditAction.STUDENT_CREATE_CHANGE_REQUEST,
                AuditEntityType.CHANGE_REQUEST,
                change_request.id,
                actor,
                meta=change_request.to_dict(),
            )

        self.log_operation(
            "create_change_request",
            change_request_id=change_request.id,
            session_id=session.id,
            type=change_request.type,
        )
        return change_request

    @BaseService.measure_operation("approve_change_request")
    def approve(self, change_request_id: str, actor: Actor) -> ChangeRequest:
        """
        Apply a PENDING request to its session and mark it APPROVED.

        Raises:
            NotFoundException: Unknown change request
            ChangeRequestNotPendingException: Already APPROVED or REJECTED
            SessionNotEditableException: Session is no longer SCHEDULED
            ValidationException: RESCHEDULE missing a proposed field
        """
        with self.transaction():
            change_request, session = self._load_pending(change_request_id)
            before = session.snapshot()

            if change_request.type == ChangeRequestType.CANCEL.value:
                session.cancel(self.now())
                session_action = AuditAction.ADMIN_CANCEL_SESSION
            else:
                self._apply_reschedule(change_request, session)
                session_action = AuditAction.ADMIN_RESCHEDULE_SESSION

            self._decide(change_request, ChangeRequestStatus.APPROVED, actor)
            self.repository.flush()

            self.audit.record(
                AuditAction.ADMIN_APPROVE_CHANGE_REQUEST,
                AuditEntityType.CHANGE_REQUEST,
                change_request.id,
                actor,
                meta={"session_id": session.id, "type": change_request.type},
            )
            self.audit.record(
                session_action,
                AuditEntityType.SESSION,
                session.id,
                actor,
                meta={
                    "change_request_id": change_request.id,
                    "before": before,
                    "after": session.snapshot(),
                },
            )

        self.log_operation(
            "approve_change_request",
            change_request_id=change_request.id,
            session_id=session.id,
        )
        return change_request

    @BaseService.measure_operation("reject_change_request")
    def reject(self, change_request_id: str, actor: Actor) -> ChangeRequest:
        """
        Mark a PENDING request REJECTED. The session is not touched.

        Raises:
            NotFoundException: Unknown change request
            ChangeRequestNotPendingException: Already APPROVED or REJECTED
            SessionNotEditableException: Session is no longer SCHEDULED
        """
        with self.transaction():
            change_request, session = self._load_pending(change_request_id)
            self._decide(change_request, ChangeRequestStatus.REJECTED, actor)
            self.repository.flush()

            self.audit.record(
                AuditAction.ADMIN_REJECT_CHANGE_REQUEST,
                AuditEntityType.CHANGE_REQUEST,
                change_request.id,
                actor,
                meta={"session_id": session.id, "type": change_request.type},
            )

        self.log_operation("reject_change_request", change_request_id=change_request.id)
        return change_request

    def list_by_status(
        self, status: ChangeRequestStatus | str = ChangeRequestStatus.PENDING
    ) -> List[ChangeRequest]:
        """Staff queue, oldest first."""
        try:
            status = ChangeRequestStatus(status)
        except ValueError:
            raise ValidationException(f"Unknown status: {status}", code="INVALID_STATUS")
        return self.repository.list_by_status(status)

    def list_for_student(self, student_id: str) -> List[ChangeRequest]:
        """A student's own requests, newest first."""
        return self.repository.list_for_requester(student_id)

    def _load_pending(self, change_request_id: str) -> tuple[ChangeRequest, TutoringSession]:
        change_request = self.repository.get_for_update(change_request_id)
        if change_request is None:
            raise NotFoundException("Change request not found", code="CHANGE_REQUEST_NOT_FOUND")
        if not change_request.is_pending:
            raise ChangeRequestNotPendingException(change_request.id, change_request.status)

        session = self.session_repository.get_for_update(change_request.session_id)
        if session is None:
            # FK keeps this unreachable unless rows were removed out of band
            raise ConflictException(
                "Session for change request no longer exists",
                code="SESSION_NOT_FOUND",
                details={"change_request_id": change_request.id},
            )
        if session.status != SessionStatus.SCHEDULED.value:
            raise SessionNotEditableException(session.id, session.status)
        return change_request, session

    @staticmethod
    def _apply_reschedule(change_request: ChangeRequest, session: TutoringSession) -> None:
        missing = [
            name
            for name in ("proposed_start_at", "proposed_end_at", "proposed_time_zone")
            if getattr(change_request, name) is None
        ]
        if missing:
            raise ValidationException(
                "Reschedule request is missing proposed fields",
                code="INVALID_ARGUMENT",
                details={"missing": missing},
            )
        session.start_at = change_request.proposed_start_at
        session.end_at = change_request.proposed_end_at
        session.class_time_zone = change_request.proposed_time_zone

    def _decide(
        self, change_request: ChangeRequest, status: ChangeRequestStatus, actor: Actor
    ) -> None:
        change_request.status = status.value
        change_request.decided_by_id = actor.actor_id
        change_request.decided_at = self.now()
