# backend/tutorbook/repositories/conflict_checker_repository.py
"""
ConflictChecker Repository for tutorbook.

Range queries used to keep a teacher's non-cancelled sessions pairwise
non-overlapping. Intervals are half-open [start_at, end_at), so two
sessions that merely touch (end of A == start of B) never collide.
"""

from datetime import datetime
import logging
from typing import List, Optional, cast

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..core.enums import SessionStatus
from ..core.exceptions import RepositoryException
from ..models.tutoring_session import TutoringSession
from .base_repository import BaseRepository

logger = logging.getLogger(__name__)


class ConflictCheckerRepository(BaseRepository[TutoringSession]):
    """Repository for conflict checking data access."""

    def __init__(self, db: Session):
        """Initialize with TutoringSession model as primary."""
        super().__init__(db, TutoringSession)
        self.logger = logging.getLogger(__name__)

    def get_overlapping_sessions(
        self,
        teacher_id: str,
        start_at: datetime,
        end_at: datetime,
        exclude_session_id: Optional[str] = None,
    ) -> List[TutoringSession]:
        """
        Non-cancelled sessions of the teacher whose interval intersects [start_at, end_at).

        Ordered by start time so the earliest collision is reported first.
        """
        try:
            query = self.db.query(TutoringSession).filter(
                TutoringSession.teacher_id == teacher_id,
                TutoringSession.status != SessionStatus.CANCELLED.value,
                TutoringSession.start_at < end_at,
                TutoringSession.end_at > start_at,
            )
            if exclude_session_id:
                query = query.filter(TutoringSession.id != exclude_session_id)

            return cast(
                List[TutoringSession],
                query.order_by(TutoringSession.start_at.asc(), TutoringSession.id.asc()).all(),
            )
        except SQLAlchemyError as e:
            self.logger.error(f"Error getting sessions for conflict check: {str(e)}")
            raise RepositoryException(f"Failed to get conflict sessions: {str(e)}")
