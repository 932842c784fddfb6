# backend/tutorbook/repositories/user_repository.py
"""Read access to the identity collaborator's user mirror."""

from typing import Dict, Iterable

from sqlalchemy.orm import Session

from ..models.user import User
from .base_repository import BaseRepository


class UserRepository(BaseRepository[User]):
    def __init__(self, db: Session):
        super().__init__(db, User)

    def get_display_names(self, user_ids: Iterable[str]) -> Dict[str, str]:
        """Map user id -> display name for the given ids (missing ids omitted)."""
        ids = [uid for uid in set(user_ids) if uid]
        if not ids:
            return {}
        query = self.db.query(User.id, User.display_name).filter(User.id.in_(ids))
        return {row[0]: row[1] for row in self._execute_query(query)}
