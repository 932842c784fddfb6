# backend/tutorbook/services/conflict_checker.py
"""
Conflict Checker Service for tutorbook.

For a fixed teacher, the set of non-cancelled sessions must have pairwise
non-overlapping [start_at, end_at) intervals. Overlap is half-open:
existing.start < new.end and existing.end > new.start, so back-to-back
sessions never conflict.

The check runs inside the caller's transaction; on PostgreSQL an exclusion
constraint rejects whatever a concurrent writer slips past it.
"""

from datetime import datetime
import logging
from typing import Optional

from sqlalchemy.orm import Session

from ..core.exceptions import SessionConflictException, ValidationException
from ..models.tutoring_session import TutoringSession
from ..repositories.conflict_checker_repository import ConflictCheckerRepository
from ..repositories.factory import RepositoryFactory
from .base import BaseService

logger = logging.getLogger(__name__)


def intervals_overlap(
    a_start: datetime, a_end: datetime, b_start: datetime, b_end: datetime
) -> bool:
    """Half-open interval intersection."""
    return a_start < b_end and a_end > b_start


class ConflictChecker(BaseService):
    """Service for checking session conflicts."""

    def __init__(self, db: Session, repository: Optional[ConflictCheckerRepository] = None):
        super().__init__(db)
        self.repository = repository or RepositoryFactory.create_conflict_checker_repository(db)

    @BaseService.measure_operation("find_conflict")
    def find_conflict(
        self,
        teacher_id: str,
        start_at: datetime,
        end_at: datetime,
        exclude_session_id: Optional[str] = None,
    ) -> Optional[TutoringSession]:
        """Earliest non-cancelled session of the teacher overlapping [start_at, end_at)."""
        if end_at <= start_at:
            raise ValidationException(
                "end_at must be after start_at",
                code="INVALID_INTERVAL",
                details={"start_at": start_at.isoformat(), "end_at": end_at.isoformat()},
            )

        candidates = self.repository.get_overlapping_sessions(
            teacher_id, start_at, end_at, exclude_session_id
        )
        for existing in candidates:
            if intervals_overlap(existing.start_at, existing.end_at, start_at, end_at):
                self.logger.warning(
                    f"Session conflict for teacher {teacher_id}: "
                    f"{start_at.isoformat()}-{end_at.isoformat()} overlaps {existing.id}"
                )
                return existing
        return None

    def ensure_no_conflict(
        self,
        teacher_id: str,
        start_at: datetime,
        end_at: datetime,
        exclude_session_id: Optional[str] = None,
    ) -> None:
        """
        Raises:
            SessionConflictException: naming the colliding session
        """
        conflict = self.find_conflict(teacher_id, start_at, end_at, exclude_session_id)
        if conflict is not None:
            raise SessionConflictException(conflict_session_id=conflict.id)
