"""
Audit fact emission.

Every state-changing operation writes exactly one fact per affected entity,
inside the caller's open transaction so the fact commits or rolls back with
the change it describes.
"""

import logging
from typing import Any, List, Mapping, Optional

from sqlalchemy.orm import Session

from ..core.enums import AuditAction, AuditEntityType
from ..models.audit_log import AuditLog
from ..principal import Actor
from ..repositories.factory import RepositoryFactory
from .base import BaseService

logger = logging.getLogger(__name__)


class AuditService(BaseService):
    def __init__(self, db: Session):
        super().__init__(db)
        self.repository = RepositoryFactory.create_audit_repository(db)

    def record(
        self,
        action: AuditAction,
        entity_type: AuditEntityType,
        entity_id: str,
        actor: Optional[Actor],
        meta: Optional[Mapping[str, Any]] = None,
    ) -> AuditLog:
        """Stage an audit row; the caller's transaction commits it."""
        entry = AuditLog.from_fact(
            action=AuditAction(action).value,
            entity_type=AuditEntityType(entity_type).value,
            entity_id=entity_id,
            actor=actor,
            meta=meta,
        )
        self.repository.write(entry)
        self.logger.debug("Audit %s %s:%s", entry.action, entry.entity_type, entity_id)
        return entry

    def history(self, entity_type: AuditEntityType, entity_id: str) -> List[AuditLog]:
        return self.repository.list_for_entity(AuditEntityType(entity_type).value, entity_id)
