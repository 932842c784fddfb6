from datetime import datetime, timezone

import pytest

from tutorbook.core.enums import SessionStatus
from tutorbook.core.exceptions import SessionNotEditableException
from tutorbook.models import ALLOWED_TRANSITIONS, TutoringSession, can_transition


@pytest.mark.parametrize(
    "current,target,allowed",
    [
        (SessionStatus.SCHEDULED, SessionStatus.SCHEDULED, True),
        (SessionStatus.SCHEDULED, SessionStatus.CANCELLED, True),
        (SessionStatus.SCHEDULED, SessionStatus.COMPLETED, True),
        (SessionStatus.CANCELLED, SessionStatus.SCHEDULED, False),
        (SessionStatus.CANCELLED, SessionStatus.COMPLETED, False),
        (SessionStatus.COMPLETED, SessionStatus.CANCELLED, False),
        (SessionStatus.COMPLETED, SessionStatus.SCHEDULED, False),
    ],
)
def test_transition_table(current, target, allowed):
    assert can_transition(current, target) is allowed
    assert can_transition(current.value, target.value) is allowed


def test_terminal_states_have_no_exits():
    assert ALLOWED_TRANSITIONS[SessionStatus.CANCELLED] == frozenset()
    assert ALLOWED_TRANSITIONS[SessionStatus.COMPLETED] == frozenset()


def test_cancel_then_complete_rejected():
    session = TutoringSession(id="s1", status=SessionStatus.SCHEDULED.value)
    when = datetime(2030, 1, 1, tzinfo=timezone.utc)
    session.cancel(when)
    assert session.status == SessionStatus.CANCELLED.value
    assert session.cancelled_at == when
    with pytest.raises(SessionNotEditableException):
        session.complete(when)
