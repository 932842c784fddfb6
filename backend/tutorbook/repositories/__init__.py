# backend/tutorbook/repositories/__init__.py
"""
Repository layer for tutorbook.

Repositories own every query; services own transactions. Create them through
RepositoryFactory so services can be handed fakes in tests.

Usage:
    from tutorbook.repositories import RepositoryFactory

    repository = RepositoryFactory.create_session_repository(db)
    due = repository.get_due_for_completion(now, limit=100)
"""

from .audit_repository import AuditRepository
from .base_repository import BaseRepository
from .change_request_repository import ChangeRequestRepository
from .conflict_checker_repository import ConflictCheckerRepository
from .factory import RepositoryFactory
from .hour_ledger_repository import HourLedgerRepository
from .rate_repository import RateRepository
from .session_repository import SessionRepository
from .user_repository import UserRepository

__all__ = [
    "AuditRepository",
    "BaseRepository",
    "ChangeRequestRepository",
    "ConflictCheckerRepository",
    "HourLedgerRepository",
    "RateRepository",
    "RepositoryFactory",
    "SessionRepository",
    "UserRepository",
]
