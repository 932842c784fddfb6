# backend/tutorbook/services/session_completion_service.py
"""
Session completion sweep.

Turns elapsed SCHEDULED sessions into COMPLETED and charges one
SESSION_CONSUME ledger row per session. Each session is its own unit of
work, so one failing row never blocks the rest of the batch.

Idempotency has two layers: the guarded status flip only touches rows that
are still SCHEDULED, and the ledger's unique session_id makes a second
consumption insert a no-op. A crash between the two steps is repaired by
the next sweep, because only the ledger insert arbitrates the charge.
"""

from datetime import datetime
import logging
from typing import Dict, Optional

from sqlalchemy.orm import Session

from ..core.clock import Clock
from ..core.config import settings
from ..core.enums import AuditAction, AuditEntityType, SessionStatus
from ..monitoring.prometheus_metrics import prometheus_metrics
from ..repositories.factory import RepositoryFactory
from .audit_service import AuditService
from .base import BaseService

logger = logging.getLogger(__name__)


class SessionCompletionService(BaseService):
    def __init__(self, db: Session, clock: Optional[Clock] = None):
        super().__init__(db, clock)
        self.session_repository = RepositoryFactory.create_session_repository(db)
        self.ledger_repository = RepositoryFactory.create_hour_ledger_repository(db)
        self.audit = AuditService(db)

    @BaseService.measure_operation("complete_ended_sessions")
    def complete_ended_sessions(
        self, now: Optional[datetime] = None, batch_size: Optional[int] = None
    ) -> Dict[str, int]:
        """
        Run one sweep.

        Returns:
            {"processed": n, "completed": k, "failed": f} where processed counts
            every selected session, including no-op skips
        """
        now = now or self.now()
        limit = batch_size or settings.session_completion_batch_size

        due_ids = [s.id for s in self.session_repository.get_due_for_completion(now, limit)]
        # Release the read transaction before per-session units of work
        self.db.rollback()

        completed = 0
        failed = 0
        for session_id in due_ids:
            try:
                if self._complete_one(session_id, now):
                    completed += 1
            except Exception:
                failed += 1
                prometheus_metrics.inc_session_completion_failure()
                self.logger.warning(f"Failed to complete session {session_id}", exc_info=True)

        prometheus_metrics.inc_sessions_completed(completed)
        self.logger.info(
            f"Completion sweep: processed={len(due_ids)} completed={completed} failed={failed}"
        )
        return {"processed": len(due_ids), "completed": completed, "failed": failed}

    def _complete_one(self, session_id: str, now: datetime) -> bool:
        """
        Complete a single session in its own transaction.

        Returns True when this call flipped the status or wrote the missing
        consumption row.
        """
        with self.measure_operation_context("complete_one"), self.transaction():
            session = self.session_repository.get_for_update(session_id)
            if session is None:
                return False
            if session.end_at > now or session.status == SessionStatus.CANCELLED.value:
                return False

            flipped = self.session_repository.mark_completed_if_scheduled(session.id, now) > 0
            if not flipped and session.status != SessionStatus.COMPLETED.value:
                # A concurrent writer moved it somewhere other than COMPLETED
                return False

            inserted = self.ledger_repository.insert_consumption_if_absent(session)
            prometheus_metrics.inc_ledger_consumption("inserted" if inserted else "existing")

            if flipped or inserted:
                self.audit.record(
                    AuditAction.SYSTEM_COMPLETE_SESSION,
                    AuditEntityType.SESSION,
                    session.id,
                    None,
                    meta={
                        "status_updated": flipped,
                        "ledger_inserted": inserted,
                        "consumes_units": session.consumes_units,
                    },
                )
            return flipped or inserted
