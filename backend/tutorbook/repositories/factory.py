# backend/tutorbook/repositories/factory.py
"""
Repository Factory for tutorbook.

Provides centralized creation of repository instances,
ensuring consistent initialization and dependency injection.
"""

from typing import TYPE_CHECKING

from sqlalchemy.orm import Session

# Avoid circular imports
if TYPE_CHECKING:
    from .audit_repository import AuditRepository
    from .change_request_repository import ChangeRequestRepository
    from .conflict_checker_repository import ConflictCheckerRepository
    from .hour_ledger_repository import HourLedgerRepository
    from .rate_repository import RateRepository
    from .session_repository import SessionRepository
    from .user_repository import UserRepository


class RepositoryFactory:
    """
    Factory class for creating repository instances.

    Centralizes repository creation to ensure consistent initialization
    and makes it easy to swap implementations if needed.
    """

    @staticmethod
    def create_session_repository(db: Session) -> "SessionRepository":
        """Create repository for tutoring session operations."""
        from .session_repository import SessionRepository

        return SessionRepository(db)

    @staticmethod
    def create_conflict_checker_repository(db: Session) -> "ConflictCheckerRepository":
        """Create repository for conflict checking queries."""
        from .conflict_checker_repository import ConflictCheckerRepository

        return ConflictCheckerRepository(db)

    @staticmethod
    def create_hour_ledger_repository(db: Session) -> "HourLedgerRepository":
        """Create repository for hour ledger operations."""
        from .hour_ledger_repository import HourLedgerRepository

        return HourLedgerRepository(db)

    @staticmethod
    def create_change_request_repository(db: Session) -> "ChangeRequestRepository":
        """Create repository for change request operations."""
        from .change_request_repository import ChangeRequestRepository

        return ChangeRequestRepository(db)

    @staticmethod
    def create_rate_repository(db: Session) -> "RateRepository":
        """Create repository for rate table operations."""
        from .rate_repository import RateRepository

        return RateRepository(db)

    @staticmethod
    def create_user_repository(db: Session) -> "UserRepository":
        """Create repository for user lookups."""
        from .user_repository import UserRepository

        return UserRepository(db)

    @staticmethod
    def create_audit_repository(db: Session) -> "AuditRepository":
        """Create repository for audit log writes."""
        from .audit_repository import AuditRepository

        return AuditRepository(db)
