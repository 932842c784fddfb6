"""Actor abstraction supplied by the identity collaborator.

The engine trusts (actor_id, role) as given and never re-derives it.
"""

from __future__ import annotations

from dataclasses import dataclass

from .core.enums import RoleName


@dataclass(frozen=True)
class Actor:
    """The authenticated caller of an operation."""

    actor_id: str
    role: RoleName

    @classmethod
    def admin(cls, actor_id: str) -> "Actor":
        return cls(actor_id=actor_id, role=RoleName.ADMIN)

    @classmethod
    def student(cls, actor_id: str) -> "Actor":
        return cls(actor_id=actor_id, role=RoleName.STUDENT)
