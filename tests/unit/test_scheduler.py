from unittest.mock import MagicMock, patch

import pytest
from sqlalchemy.exc import OperationalError

from studio_booking.core import scheduler
from studio_booking.core.scheduler import retry_on_db_error
from studio_booking.schemas.notification import ReminderRunResult


def test_retry_on_db_error_retries_then_succeeds():
    calls = []

    @retry_on_db_error(max_retries=3, delay=0)
    def flaky():
        calls.append(1)
        if len(calls) < 3:
            raise OperationalError("SELECT 1", {}, Exception("server closed the connection"))
        return "ok"

    assert flaky() == "ok"
    assert len(calls) == 3


def test_retry_on_db_error_gives_up():
    @retry_on_db_error(max_retries=2, delay=0)
    def always_down():
        raise OperationalError("SELECT 1", {}, Exception("down"))

    with pytest.raises(OperationalError):
        always_down()


def test_reminder_job_uses_own_session_and_closes_it():
    session = MagicMock()
    relay = MagicMock()
    relay.send_reminders.return_value = ReminderRunResult(
        target_date="2025-07-01", target_hour=10, candidates=1, sent=1, failed=0
    )

    with patch.object(scheduler, "get_session_factory", return_value=MagicMock(return_value=session)):
        scheduler.send_reservation_reminders(relay)

    relay.send_reminders.assert_called_once_with(session)
    session.close.assert_called_once()


def test_export_job_closes_session_on_error():
    session = MagicMock()
    relay = MagicMock()
    relay.sync_unsynced.side_effect = RuntimeError("boom")

    with patch.object(scheduler, "get_session_factory", return_value=MagicMock(return_value=session)):
        with pytest.raises(RuntimeError):
            scheduler.export_unsynced_reservations(relay)

    session.close.assert_called_once()
