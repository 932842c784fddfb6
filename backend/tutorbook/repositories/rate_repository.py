# backend/tutorbook/repositories/rate_repository.py
"""Repository for the teacher/student/subject rate table."""

from typing import List, Optional

from sqlalchemy.orm import Session

from ..core.enums import Subject
from ..models.rate import TeacherStudentRate
from .base_repository import BaseRepository


class RateRepository(BaseRepository[TeacherStudentRate]):
    def __init__(self, db: Session):
        super().__init__(db, TeacherStudentRate)

    def get_rate(
        self, teacher_id: str, student_id: str, subject: Subject
    ) -> Optional[TeacherStudentRate]:
        return self.find_one_by(
            teacher_id=teacher_id, student_id=student_id, subject=Subject(subject).value
        )

    def list_rates(
        self, teacher_id: Optional[str] = None, student_id: Optional[str] = None
    ) -> List[TeacherStudentRate]:
        query = self._build_query()
        if teacher_id:
            query = query.filter(TeacherStudentRate.teacher_id == teacher_id)
        if student_id:
            query = query.filter(TeacherStudentRate.student_id == student_id)
        query = query.order_by(
            TeacherStudentRate.teacher_id.asc(),
            TeacherStudentRate.student_id.asc(),
            TeacherStudentRate.subject.asc(),
        )
        return self._execute_query(query)

    def delete(self, rate: TeacherStudentRate) -> None:
        self.db.delete(rate)
        self.flush()
