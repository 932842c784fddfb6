"""
Hour ledger service.

Balances are always derived by summation over the append-only ledger;
nothing stores a running total. Staff may add purchases and positive
adjustments here. Consumption rows are written only by the completion
sweep, one per session.
"""

import logging
from typing import List, Optional

from sqlalchemy.orm import Session

from ..core.enums import AuditAction, AuditEntityType, HourLedgerReason
from ..models.hour_ledger import HourLedgerEntry
from ..principal import Actor
from ..repositories.factory import RepositoryFactory
from ..schemas.hour_ledger import HourLedgerAdd, RemainingUnitsByTeacher, TeacherUnits
from .audit_service import AuditService
from .base import BaseService

logger = logging.getLogger(__name__)


class HourLedgerService(BaseService):
    def __init__(self, db: Session):
        super().__init__(db)
        self.repository = RepositoryFactory.create_hour_ledger_repository(db)
        self.user_repository = RepositoryFactory.create_user_repository(db)
        self.audit = AuditService(db)

    @BaseService.measure_operation("add_units")
    def add_units(
        self,
        student_id: str,
        delta_units: int,
        reason: HourLedgerReason | str = HourLedgerReason.PURCHASE,
        teacher_id: Optional[str] = None,
        actor: Optional[Actor] = None,
    ) -> HourLedgerEntry:
        """
        Append a PURCHASE or ADJUSTMENT row with a positive delta.

        Raises:
            ValidationException: Non-positive delta or a reason other than PURCHASE/ADJUSTMENT
        """
        payload = self.parse_payload(
            HourLedgerAdd,
            {
                "student_id": student_id,
                "delta_units": delta_units,
                "reason": getattr(reason, "value", reason),
                "teacher_id": teacher_id,
            },
        )

        with self.transaction():
            entry = self.repository.add_entry(
                student_id=payload.student_id,
                teacher_id=payload.teacher_id,
                delta_units=payload.delta_units,
                reason=HourLedgerReason(payload.reason),
                created_by_id=actor.actor_id if actor else None,
            )
            self.audit.record(
                AuditAction.ADMIN_ADD_HOURS,
                AuditEntityType.HOUR_LEDGER_ENTRY,
                entry.id,
                actor,
                meta={
                    "student_id": entry.student_id,
                    "teacher_id": entry.teacher_id,
                    "delta_units": entry.delta_units,
                    "reason": entry.reason,
                },
            )

        self.log_operation("add_units", student_id=entry.student_id, delta_units=entry.delta_units)
        return entry

    def remaining_units(self, student_id: str) -> int:
        """Sum of every delta recorded for the student."""
        return self.repository.sum_for_student(student_id)

    def remaining_units_by_teacher(self, student_id: str) -> RemainingUnitsByTeacher:
        """
        Balance split by teacher.

        Rows with no teacher form the unassigned bucket. by_teacher is sorted by
        teacher display name, falling back to id; unassigned plus every
        teacher bucket equals the total.
        """
        buckets = self.repository.sum_by_teacher(student_id)
        unassigned = sum(units for teacher_id, units in buckets if teacher_id is None)
        assigned = [(teacher_id, units) for teacher_id, units in buckets if teacher_id is not None]
        names = self.user_repository.get_display_names(teacher_id for teacher_id, _ in assigned)

        by_teacher = [
            TeacherUnits(
                teacher_id=teacher_id,
                teacher_name=names.get(teacher_id),
                remaining_units=units,
            )
            for teacher_id, units in assigned
        ]
        by_teacher.sort(key=lambda item: (item.teacher_name or item.teacher_id, item.teacher_id))

        return RemainingUnitsByTeacher(
            student_id=student_id,
            total_remaining_units=unassigned + sum(item.remaining_units for item in by_teacher),
            unassigned_units=unassigned,
            by_teacher=by_teacher,
        )

    def recent_entries(self, student_id: str, limit: int = 50) -> List[HourLedgerEntry]:
        return self.repository.recent_entries(student_id, limit=limit)
