# backend/tutorbook/core/exceptions.py
"""
Domain-specific exceptions for the tutorbook engine.

Every business outcome a caller is expected to branch on is a
DomainException subclass. Persistence failures the engine cannot recover
from surface as RepositoryException / ServiceException instead.
"""

from datetime import datetime
from typing import Any, Dict, Optional

from pydantic import ValidationError


class DomainException(Exception):
    """Base exception for all domain-specific errors."""

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.message = message
        self.code = code or self.__class__.__name__
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "message": self.message,
            "code": self.code,
            "details": self.details,
        }


class ValidationException(DomainException):
    """Raised when input is malformed (bad interval, bad enum, bad date)."""


class NotFoundException(DomainException):
    """Raised when a referenced entity is absent or outside the actor's scope."""


class ConflictException(DomainException):
    """Raised when a state invariant would be violated."""


class ForbiddenException(DomainException):
    """Raised when the caller acts outside an allowed time window."""


class ServiceException(DomainException):
    """Raised when a service operation fails."""


# Specific business exceptions


class SessionConflictException(ConflictException):
    """Raised when a session overlaps another non-cancelled session of the same teacher."""

    def __init__(
        self,
        conflict_session_id: Optional[str] = None,
        message: Optional[str] = None,
    ):
        super().__init__(
            message=message or "Session time conflicts with an existing session",
            code="SESSION_CONFLICT",
            details={"conflict_session_id": conflict_session_id},
        )


class SessionNotEditableException(ConflictException):
    """Raised when a terminal session is asked to change."""

    def __init__(self, session_id: str, status: str):
        super().__init__(
            message=f"Session {session_id} is {status} and cannot be modified",
            code="SESSION_NOT_EDITABLE",
            details={"session_id": session_id, "status": status},
        )


class PendingChangeRequestExistsException(ConflictException):
    """Raised when a session already has a pending change request."""

    def __init__(self, session_id: str):
        super().__init__(
            message="A pending change request already exists for this session",
            code="PENDING_CHANGE_REQUEST_EXISTS",
            details={"session_id": session_id},
        )


class ChangeRequestNotPendingException(ConflictException):
    """Raised when resolving a change request that was already decided."""

    def __init__(self, change_request_id: str, status: str):
        super().__init__(
            message=f"Change request is already {status}",
            code="CHANGE_REQUEST_NOT_PENDING",
            details={"change_request_id": change_request_id, "status": status},
        )


class ChangeRequestCutoffException(ForbiddenException):
    """Raised when a student asks for a change too close to the session start."""

    def __init__(self, cutoff: datetime, cutoff_hours: int):
        super().__init__(
            message=f"Change requests must be made at least {cutoff_hours} hours before start",
            code="CHANGE_REQUEST_CUTOFF",
            details={"cutoff": cutoff.isoformat(), "cutoff_hours": cutoff_hours},
        )


class RepositoryException(Exception):
    """
    Exception raised for repository layer errors.

    This exception is used when data access operations fail,
    such as database connection issues, query failures, or
    constraint violations.
    """


class IntegrityViolation(RepositoryException):
    """A unique/exclusion constraint rejected a write."""

    def __init__(self, message: str, constraint: Optional[str] = None):
        super().__init__(message)
        self.constraint = constraint


def validation_error_to_exception(exc: ValidationError) -> ValidationException:
    """Convert a Pydantic payload error into the InvalidArgument outcome."""
    errors = [
        {
            "loc": [str(part) for part in err.get("loc", ())],
            "msg": err.get("msg", ""),
            "type": err.get("type", ""),
        }
        for err in exc.errors()
    ]
    first = errors[0]["msg"] if errors else "Invalid input"
    return ValidationException(first, code="INVALID_ARGUMENT", details={"errors": errors})
