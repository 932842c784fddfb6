"""
Rate table service.

The rate table is live and editable by staff. Sessions never reference it
after creation: resolve_rate hands back values for the session to copy.
"""

import logging
from typing import Any, List, Mapping, Optional

from sqlalchemy.orm import Session

from ..core.enums import AuditAction, AuditEntityType, Subject
from ..core.exceptions import NotFoundException
from ..models.rate import TeacherStudentRate
from ..principal import Actor
from ..repositories.factory import RepositoryFactory
from ..schemas.rate import RateUpsert, ResolvedRate
from .audit_service import AuditService
from .base import BaseService

logger = logging.getLogger(__name__)


class RateService(BaseService):
    def __init__(self, db: Session):
        super().__init__(db)
        self.repository = RepositoryFactory.create_rate_repository(db)
        self.audit = AuditService(db)

    def resolve_rate(self, teacher_id: str, student_id: str, subject: Subject) -> ResolvedRate:
        """
        Active rate for (teacher, student, subject).

        Raises:
            NotFoundException: If no rate is configured
        """
        rate = self.repository.get_rate(teacher_id, student_id, subject)
        if rate is None:
            raise NotFoundException(
                "Rate not found for teacher/student/subject",
                code="RATE_NOT_FOUND",
                details={
                    "teacher_id": teacher_id,
                    "student_id": student_id,
                    "subject": Subject(subject).value,
                },
            )
        return ResolvedRate(
            rate_id=rate.id,
            student_hourly_rate_cents=rate.student_hourly_rate_cents,
            teacher_hourly_wage_cents=rate.teacher_hourly_wage_cents,
            currency=rate.currency,
        )

    @BaseService.measure_operation("upsert_rate")
    def upsert_rate(
        self, data: RateUpsert | Mapping[str, Any], actor: Optional[Actor] = None
    ) -> TeacherStudentRate:
        payload = self.parse_payload(RateUpsert, data)
        values = {
            "student_hourly_rate_cents": payload.student_hourly_rate_cents,
            "teacher_hourly_wage_cents": payload.teacher_hourly_wage_cents,
            "currency": payload.currency.value,
        }

        with self.transaction():
            rate = self.repository.get_rate(payload.teacher_id, payload.student_id, payload.subject)
            if rate is None:
                rate = self.repository.create(
                    teacher_id=payload.teacher_id,
                    student_id=payload.student_id,
                    subject=payload.subject.value,
                    **values,
                )
            else:
                for key, value in values.items():
                    setattr(rate, key, value)
                self.repository.flush()

            self.audit.record(
                AuditAction.ADMIN_UPSERT_RATE,
                AuditEntityType.RATE,
                rate.id,
                actor,
                meta=rate.to_dict(),
            )

        self.log_operation("upsert_rate", rate_id=rate.id)
        return rate

    @BaseService.measure_operation("delete_rate")
    def delete_rate(self, rate_id: str, actor: Optional[Actor] = None) -> None:
        """Existing sessions keep their snapshots; only future creates are affected."""
        with self.transaction():
            rate = self.repository.get_by_id(rate_id)
            if rate is None:
                raise NotFoundException("Rate not found", code="RATE_NOT_FOUND")
            meta = rate.to_dict()
            self.repository.delete(rate)
            self.audit.record(
                AuditAction.ADMIN_DELETE_RATE, AuditEntityType.RATE, rate_id, actor, meta=meta
            )

    def list_rates(
        self, teacher_id: Optional[str] = None, student_id: Optional[str] = None
    ) -> List[TeacherStudentRate]:
        return self.repository.list_rates(teacher_id=teacher_id, student_id=student_id)
