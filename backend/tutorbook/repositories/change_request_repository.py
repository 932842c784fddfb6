# backend/tutorbook/repositories/change_request_repository.py
"""Repository for student change requests."""

import logging
from typing import List, Optional, cast

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..core.enums import ChangeRequestStatus
from ..core.exceptions import RepositoryException
from ..models.change_request import ChangeRequest
from .base_repository import BaseRepository

logger = logging.getLogger(__name__)


class ChangeRequestRepository(BaseRepository[ChangeRequest]):
    def __init__(self, db: Session):
        super().__init__(db, ChangeRequest)

    def get_for_update(self, change_request_id: str) -> Optional[ChangeRequest]:
        try:
            query = self.db.query(ChangeRequest).filter(ChangeRequest.id == change_request_id)
            if self.dialect_name == "postgresql":
                query = query.with_for_update()
            return cast(Optional[ChangeRequest], query.populate_existing().first())
        except SQLAlchemyError as e:
            self.logger.error(f"Error locking change request {change_request_id}: {str(e)}")
            raise RepositoryException(f"Failed to load change request: {str(e)}")

    def get_pending_for_session(self, session_id: str) -> Optional[ChangeRequest]:
        return self.find_one_by(session_id=session_id, status=ChangeRequestStatus.PENDING.value)

    def list_by_status(
        self, status: ChangeRequestStatus = ChangeRequestStatus.PENDING, limit: int = 200
    ) -> List[ChangeRequest]:
        """Staff queue: oldest first."""
        query = (
            self._build_query()
            .filter(ChangeRequest.status == ChangeRequestStatus(status).value)
            .order_by(ChangeRequest.created_at.asc(), ChangeRequest.id.asc())
            .limit(limit)
        )
        return self._execute_query(query)

    def list_for_requester(self, requester_id: str, limit: int = 200) -> List[ChangeRequest]:
        """A student's own requests: newest first."""
        query = (
            self._build_query()
            .filter(ChangeRequest.requester_id == requester_id)
            .order_by(ChangeRequest.created_at.desc(), ChangeRequest.id.desc())
            .limit(limit)
        )
        return self._execute_query(query)
