"""
Shared fixtures for tutorbook tests.

Every test gets its own in-memory SQLite engine with the full schema, so
commits made by services are visible to later reads and never leak
between tests.
"""

from datetime import datetime, timedelta, timezone
from typing import Callable, Optional

import pytest
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from tutorbook.core.clock import FixedClock
from tutorbook.core.enums import Currency, RoleName, SessionStatus, Subject
from tutorbook.database import Base

# Import models so Base.metadata is populated for create_all.
import tutorbook.models  # noqa: F401
from tutorbook.models import TeacherStudentRate, TutoringSession, User
from tutorbook.principal import Actor

UTC = timezone.utc


def make_engine() -> Engine:
    engine = create_engine(
        "sqlite+pysqlite:///:memory:",
        future=True,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    Base.metadata.create_all(engine)
    return engine


@pytest.fixture
def engine():
    engine = make_engine()
    yield engine
    Base.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture
def db(engine) -> Session:
    factory = sessionmaker(bind=engine, autoflush=False, expire_on_commit=False, future=True)
    session = factory()
    try:
        yield session
    finally:
        session.rollback()
        session.close()


@pytest.fixture
def clock() -> FixedClock:
    return FixedClock(datetime(2030, 1, 1, 0, 0, tzinfo=UTC))


@pytest.fixture
def user_factory(db: Session) -> Callable[..., User]:
    def _create(role: RoleName = RoleName.STUDENT, display_name: Optional[str] = None) -> User:
        user = User(
            role=role.value,
            display_name=display_name or f"{role.value.title()} User",
        )
        db.add(user)
        db.commit()
        return user

    return _create


@pytest.fixture
def admin(user_factory) -> User:
    return user_factory(RoleName.ADMIN, "Admin")


@pytest.fixture
def teacher(user_factory) -> User:
    return user_factory(RoleName.TEACHER, "Tina Teacher")


@pytest.fixture
def student(user_factory) -> User:
    return user_factory(RoleName.STUDENT, "Sam Student")


@pytest.fixture
def admin_actor(admin: User) -> Actor:
    return Actor.admin(admin.id)


@pytest.fixture
def student_actor(student: User) -> Actor:
    return Actor.student(student.id)


@pytest.fixture
def rate_factory(db: Session) -> Callable[..., TeacherStudentRate]:
    def _create(
        teacher: User,
        student: User,
        subject: Subject = Subject.GENERAL,
        student_rate: int = 12000,
        teacher_wage: int = 10000,
        currency: Currency = Currency.AUD,
    ) -> TeacherStudentRate:
        rate = TeacherStudentRate(
            teacher_id=teacher.id,
            student_id=student.id,
            subject=subject.value,
            student_hourly_rate_cents=student_rate,
            teacher_hourly_wage_cents=teacher_wage,
            currency=currency.value,
        )
        db.add(rate)
        db.commit()
        return rate

    return _create


@pytest.fixture
def rate(rate_factory, teacher, student) -> TeacherStudentRate:
    return rate_factory(teacher, student)


@pytest.fixture
def session_factory(db: Session) -> Callable[..., TutoringSession]:
    """Insert a session row directly, bypassing service checks."""

    def _create(
        teacher: User,
        student: User,
        start_at: datetime,
        duration: timedelta = timedelta(hours=1),
        status: SessionStatus = SessionStatus.SCHEDULED,
        teacher_wage: int = 10000,
        currency: Currency = Currency.AUD,
        consumes_units: int = 1,
    ) -> TutoringSession:
        session = TutoringSession(
            teacher_id=teacher.id,
            student_id=student.id,
            subject=Subject.GENERAL.value,
            start_at=start_at,
            end_at=start_at + duration,
            class_time_zone="Australia/Sydney",
            consumes_units=consumes_units,
            student_hourly_rate_cents=12000,
            teacher_hourly_wage_cents=teacher_wage,
            currency=currency.value,
            status=status.value,
        )
        db.add(session)
        db.commit()
        return session

    return _create
