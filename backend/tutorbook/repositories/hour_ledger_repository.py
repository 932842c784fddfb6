# backend/tutorbook/repositories/hour_ledger_repository.py
"""Repository for the append-only hour ledger."""

from __future__ import annotations

import logging
from typing import List, Optional, Tuple, cast

from sqlalchemy import func, insert, select
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
import ulid

from ..core.enums import HourLedgerReason
from ..core.exceptions import RepositoryException
from ..models.hour_ledger import HourLedgerEntry
from ..models.tutoring_session import TutoringSession
from .base_repository import BaseRepository

logger = logging.getLogger(__name__)


class HourLedgerRepository(BaseRepository[HourLedgerEntry]):
    """Data access helpers for ledger rows. Rows are inserted, never updated."""

    def __init__(self, db: Session):
        super().__init__(db, HourLedgerEntry)

    def add_entry(
        self,
        *,
        student_id: str,
        delta_units: int,
        reason: HourLedgerReason,
        teacher_id: Optional[str] = None,
        session_id: Optional[str] = None,
        created_by_id: Optional[str] = None,
    ) -> HourLedgerEntry:
        return self.create(
            student_id=student_id,
            teacher_id=teacher_id,
            delta_units=delta_units,
            reason=HourLedgerReason(reason).value,
            session_id=session_id,
            created_by_id=created_by_id,
        )

    def get_by_session_id(self, session_id: str) -> Optional[HourLedgerEntry]:
        return self.find_one_by(session_id=session_id)

    def insert_consumption_if_absent(self, session: TutoringSession) -> bool:
        """
        Insert the SESSION_CONSUME row for a session unless one already exists.

        The unique session_id column arbitrates concurrent callers: the loser's
        insert is skipped by the database rather than raising.

        Returns:
            True if this call inserted the row, False if it already existed
        """
        entry_id = str(ulid.ULID())
        values = {
            "id": entry_id,
            "student_id": session.student_id,
            "teacher_id": session.teacher_id,
            "delta_units": -int(session.consumes_units),
            "reason": HourLedgerReason.SESSION_CONSUME.value,
            "session_id": session.id,
        }
        dialect = self.dialect_name

        try:
            if dialect == "postgresql":
                stmt = (
                    pg_insert(HourLedgerEntry)
                    .values(**values)
                    .on_conflict_do_nothing(index_elements=["session_id"])
                    .returning(HourLedgerEntry.id)
                )
                inserted_value = self.db.execute(stmt).scalar_one_or_none()
                return inserted_value is not None

            if dialect == "sqlite":
                stmt = insert(HourLedgerEntry).values(**values).prefix_with("OR IGNORE")
                result = self.db.execute(stmt)
                return bool(getattr(result, "rowcount", 0))

            if self.get_by_session_id(session.id) is not None:
                return False
            self.db.execute(insert(HourLedgerEntry).values(**values))
            return True
        except SQLAlchemyError as e:
            self.logger.error(f"Error writing consumption for session {session.id}: {str(e)}")
            raise RepositoryException(f"Failed to write ledger consumption: {str(e)}")

    def sum_for_student(self, student_id: str) -> int:
        """Remaining units: sum of every delta for the student."""
        query = self.db.query(func.coalesce(func.sum(HourLedgerEntry.delta_units), 0)).filter(
            HourLedgerEntry.student_id == student_id
        )
        return int(self._execute_scalar(query) or 0)

    def sum_by_teacher(self, student_id: str) -> List[Tuple[Optional[str], int]]:
        """(teacher_id, units) pairs; teacher_id None is the unassigned pool."""
        try:
            stmt = (
                select(
                    HourLedgerEntry.teacher_id,
                    func.coalesce(func.sum(HourLedgerEntry.delta_units), 0),
                )
                .where(HourLedgerEntry.student_id == student_id)
                .group_by(HourLedgerEntry.teacher_id)
            )
            rows = self.db.execute(stmt).all()
            return [(cast(Optional[str], row[0]), int(row[1] or 0)) for row in rows]
        except SQLAlchemyError as e:
            self.logger.error(f"Error summing ledger by teacher: {str(e)}")
            raise RepositoryException(f"Failed to sum ledger: {str(e)}")

    def recent_entries(self, student_id: str, limit: int = 50) -> List[HourLedgerEntry]:
        query = (
            self._build_query()
            .filter(HourLedgerEntry.student_id == student_id)
            .order_by(HourLedgerEntry.created_at.desc(), HourLedgerEntry.id.desc())
            .limit(limit)
        )
        return self._execute_query(query)


__all__ = ["HourLedgerRepository"]
