from datetime import datetime, timedelta, timezone

import pytest

from tutorbook.core.enums import HourLedgerReason, RoleName
from tutorbook.core.exceptions import ValidationException
from tutorbook.repositories.factory import RepositoryFactory
from tutorbook.services.hour_ledger_service import HourLedgerService


@pytest.fixture
def service(db):
    return HourLedgerService(db)


def test_purchase_then_consumption_leaves_nine(db, service, student, teacher, session_factory):
    service.add_units(student.id, 10, HourLedgerReason.PURCHASE)
    session = session_factory(
        teacher, student, datetime(2030, 1, 1, 10, 0, tzinfo=timezone.utc)
    )
    RepositoryFactory.create_hour_ledger_repository(db).insert_consumption_if_absent(session)
    db.commit()

    assert service.remaining_units(student.id) == 9


def test_unknown_student_has_zero_balance(service):
    assert service.remaining_units("nobody") == 0


@pytest.mark.parametrize("delta", [0, -3])
def test_non_positive_delta_rejected(service, student, delta):
    with pytest.raises(ValidationException):
        service.add_units(student.id, delta)


def test_session_consume_reason_rejected(service, student):
    with pytest.raises(ValidationException):
        service.add_units(student.id, 1, HourLedgerReason.SESSION_CONSUME)


def test_add_units_is_audited(db, service, student, admin_actor):
    from tutorbook.core.enums import AuditEntityType
    from tutorbook.services.audit_service import AuditService

    entry = service.add_units(student.id, 5, "ADJUSTMENT", actor=admin_actor)
    assert entry.created_by_id == admin_actor.actor_id
    history = AuditService(db).history(AuditEntityType.HOUR_LEDGER_ENTRY, entry.id)
    assert history[0].meta["delta_units"] == 5


def test_balance_by_teacher_buckets(service, user_factory, student):
    zed = user_factory(RoleName.TEACHER, "Zed")
    amy = user_factory(RoleName.TEACHER, "Amy")

    service.add_units(student.id, 4)
    service.add_units(student.id, 3, teacher_id=zed.id)
    service.add_units(student.id, 2, teacher_id=amy.id)
    service.add_units(student.id, 1, "ADJUSTMENT", teacher_id=amy.id)

    result = service.remaining_units_by_teacher(student.id)

    assert result.total_remaining_units == 10
    assert result.unassigned_units == 4
    assert [(b.teacher_name, b.remaining_units) for b in result.by_teacher] == [
        ("Amy", 3),
        ("Zed", 3),
    ]
    assert result.unassigned_units + sum(b.remaining_units for b in result.by_teacher) == (
        service.remaining_units(student.id)
    )


def test_recent_entries_newest_first(service, student):
    first = service.add_units(student.id, 1)
    second = service.add_units(student.id, 2)
    entries = service.recent_entries(student.id, limit=1)
    assert [e.id for e in entries] == [second.id]
    assert {e.id for e in service.recent_entries(student.id)} == {first.id, second.id}
