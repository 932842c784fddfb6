# backend/tutorbook/repositories/session_repository.py
"""
Session Repository for tutorbook.

Data access for tutoring sessions: scoped lookups, listing, the completion
sweep's due-session query and its guarded status flip, and the payroll
range query.
"""

from datetime import datetime
import logging
from typing import List, Optional, cast

from sqlalchemy import update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..core.enums import SessionStatus
from ..core.exceptions import RepositoryException
from ..models.tutoring_session import TutoringSession
from .base_repository import BaseRepository

logger = logging.getLogger(__name__)


class SessionRepository(BaseRepository[TutoringSession]):
    def __init__(self, db: Session):
        super().__init__(db, TutoringSession)

    def get_for_update(self, session_id: str) -> Optional[TutoringSession]:
        """Fetch a session, taking a row lock on PostgreSQL."""
        try:
            query = self.db.query(TutoringSession).filter(TutoringSession.id == session_id)
            if self.dialect_name == "postgresql":
                query = query.with_for_update()
            return cast(Optional[TutoringSession], query.populate_existing().first())
        except SQLAlchemyError as e:
            self.logger.error(f"Error locking session {session_id}: {str(e)}")
            raise RepositoryException(f"Failed to load session: {str(e)}")

    def get_for_student(self, session_id: str, student_id: str) -> Optional[TutoringSession]:
        return self.find_one_by(id=session_id, student_id=student_id)

    def list_sessions(
        self,
        teacher_id: Optional[str] = None,
        student_id: Optional[str] = None,
        status: Optional[SessionStatus] = None,
        start_from: Optional[datetime] = None,
        start_to: Optional[datetime] = None,
    ) -> List[TutoringSession]:
        """Sessions ordered by start time, with an optional [start_from, start_to) window."""
        query = self._build_query()
        if teacher_id:
            query = query.filter(TutoringSession.teacher_id == teacher_id)
        if student_id:
            query = query.filter(TutoringSession.student_id == student_id)
        if status is not None:
            query = query.filter(TutoringSession.status == SessionStatus(status).value)
        if start_from is not None:
            query = query.filter(TutoringSession.start_at >= start_from)
        if start_to is not None:
            query = query.filter(TutoringSession.start_at < start_to)
        query = query.order_by(TutoringSession.start_at.asc(), TutoringSession.id.asc())
        return self._execute_query(query)

    def get_due_for_completion(self, now: datetime, limit: int) -> List[TutoringSession]:
        """SCHEDULED sessions whose end has passed, oldest end first."""
        query = (
            self._build_query()
            .filter(
                TutoringSession.status == SessionStatus.SCHEDULED.value,
                TutoringSession.end_at <= now,
            )
            .order_by(TutoringSession.end_at.asc(), TutoringSession.id.asc())
            .limit(limit)
        )
        return self._execute_query(query)

    def mark_completed_if_scheduled(self, session_id: str, completed_at: datetime) -> int:
        """
        Flip SCHEDULED -> COMPLETED only if the row is still SCHEDULED.

        Returns the number of rows changed (0 when a concurrent cancel won).
        """
        try:
            result = self.db.execute(
                update(TutoringSession)
                .where(
                    TutoringSession.id == session_id,
                    TutoringSession.status == SessionStatus.SCHEDULED.value,
                )
                .values(
                    status=SessionStatus.COMPLETED.value,
                    completed_at=completed_at,
                    updated_at=completed_at,
                )
                .execution_options(synchronize_session="fetch")
            )
            return int(result.rowcount or 0)
        except SQLAlchemyError as e:
            self.logger.error(f"Error completing session {session_id}: {str(e)}")
            raise RepositoryException(f"Failed to complete session: {str(e)}")

    def get_completed_for_teacher_ending_between(
        self, teacher_id: str, range_start: datetime, range_end: datetime
    ) -> List[TutoringSession]:
        """COMPLETED sessions of the teacher with end_at in [range_start, range_end)."""
        query = (
            self._build_query()
            .filter(
                TutoringSession.teacher_id == teacher_id,
                TutoringSession.status == SessionStatus.COMPLETED.value,
                TutoringSession.end_at >= range_start,
                TutoringSession.end_at < range_end,
            )
            .order_by(TutoringSession.end_at.asc(), TutoringSession.id.asc())
        )
        return self._execute_query(query)
