# backend/tutorbook/models/user.py
"""
Minimal mirror of the identity collaborator's user record.

Accounts, credentials and tokens live elsewhere; the engine only needs
ids for foreign keys, a role, and a display name for reports.
"""

from sqlalchemy import Boolean, CheckConstraint, Column, String
import ulid

from ..database import Base
from .types import UTCDateTime, utcnow


class User(Base):
    __tablename__ = "users"

    id = Column(String(26), primary_key=True, index=True, default=lambda: str(ulid.ULID()))
    role = Column(String(20), nullable=False, index=True)
    display_name = Column(String(255), nullable=False)
    email = Column(String(255), nullable=True, unique=True)
    timezone = Column(String(50), nullable=False, default="Australia/Sydney")
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(UTCDateTime(), nullable=False, default=utcnow)

    __table_args__ = (
        CheckConstraint(
            "role IN ('STUDENT', 'TEACHER', 'ADMIN')",
            name="ck_users_role",
        ),
    )

    def __repr__(self) -> str:
        return f"<User {self.id}: {self.display_name} ({self.role})>"
