"""
Tests del relay de notificaciones: exportación a Sheets, mensajes de LINE y
recordatorios. Las llamadas HTTP se simulan con una sesión de requests falsa.
"""
from datetime import date, datetime, time, timezone
from unittest.mock import MagicMock

import pytest
import requests

from studio_booking.models.customer import Customer
from studio_booking.models.notification_log import NotificationLog, NotificationType
from studio_booking.models.reservation import Reservation, ReservationStatus
from studio_booking.schemas.notification import ReservationNotice
from studio_booking.services.line_messaging import LineMessagingClient
from studio_booking.services.notification import NotificationRelay, build_sheets_record
from studio_booking.services.sheets import SpreadsheetWebhookClient


def _response(status_code=200, body=None):
    response = MagicMock(spec=requests.Response)
    response.status_code = status_code
    response.ok = 200 <= status_code < 400
    response.text = "" if body is None else str(body)
    response.json.return_value = body if body is not None else {}
    return response


def _notice(reservation_id, **overrides):
    data = {
        "reservation_id": reservation_id,
        "status": "confirmed",
        "reserved_at": datetime(2025, 6, 20, 3, 0, tzinfo=timezone.utc),
        "customer_name": "山田 太郎",
        "customer_name_kana": "ヤマダ タロウ",
        "line_id": "U-line-1",
        "phone": "090-1234-5678",
        "schedule_date": date(2025, 7, 1),
        "start_time": time(10, 0),
        "end_time": time(11, 0),
        "program_name": "ヨガ",
        "instructor_name": "田中 美香",
        "studio_name": "スタジオ1",
        "capacity": 20,
    }
    data.update(overrides)
    return ReservationNotice(**data)


@pytest.fixture
def http():
    return MagicMock(spec=requests.Session)


@pytest.fixture
def line_client(http):
    return LineMessagingClient("line-token", session=http)


@pytest.fixture
def sheets_client(http):
    return SpreadsheetWebhookClient("https://script.google.com/macros/s/abc/exec", spreadsheet_id="sheet-1", session=http)


@pytest.fixture
def confirmed_reservation(db, make_schedule):
    schedule = make_schedule(date(2025, 7, 1), time(10, 0), time(11, 0))
    customer = Customer(name="山田 太郎", name_kana="ヤマダ タロウ", line_id="U-line-1", phone="090-1234-5678")
    db.add(customer)
    db.flush()
    reservation = Reservation(schedule_id=schedule.id, customer_id=customer.id, status=ReservationStatus.CONFIRMED)
    db.add(reservation)
    db.commit()
    db.refresh(reservation)
    return reservation


class TestOutboundClients:
    def test_line_push_posts_bearer_request(self, line_client, http):
        http.post.return_value = _response(200)

        result = line_client.push_text("U-line-1", "こんにちは")

        assert result == {"success": True}
        url = http.post.call_args.args[0]
        kwargs = http.post.call_args.kwargs
        assert url == "https://api.line.me/v2/bot/message/push"
        assert kwargs["json"] == {"to": "U-line-1", "messages": [{"type": "text", "text": "こんにちは"}]}
        assert kwargs["headers"]["Authorization"] == "Bearer line-token"

    def test_line_without_token_skips(self, http):
        client = LineMessagingClient(None, session=http)

        result = client.push_text("U-line-1", "hi")

        assert result["success"] is False
        assert result["skipped"] is True
        http.post.assert_not_called()

    def test_line_debug_mode_only_logs(self, http):
        client = LineMessagingClient(None, debug_mode=True, session=http)

        assert client.push_text("U-line-1", "hi")["success"] is True
        http.post.assert_not_called()

    def test_line_error_status(self, line_client, http):
        http.post.return_value = _response(400, {"message": "Invalid reply token"})

        result = line_client.push_text("U-line-1", "hi")

        assert result["success"] is False
        assert result["status_code"] == 400

    def test_line_network_error(self, line_client, http):
        http.post.side_effect = requests.ConnectionError("boom")

        assert line_client.push_text("U-line-1", "hi")["success"] is False

    def test_sheets_payload(self, sheets_client, http):
        http.post.return_value = _response(200, {"success": True})

        result = sheets_client.add_booking(build_sheets_record(_notice(7)))

        assert result == {"success": True}
        payload = http.post.call_args.kwargs["json"]
        assert payload["action"] == "addBooking"
        assert payload["spreadsheetId"] == "sheet-1"
        assert payload["data"]["reservationId"] == 7
        assert payload["data"]["customerName"] == "山田 太郎 (ヤマダ タロウ)"
        assert payload["data"]["experienceDate"] == "2025/07/01"
        assert payload["data"]["timeSlot"] == "10:00-11:00"

    def test_sheets_rejected_row(self, sheets_client, http):
        http.post.return_value = _response(200, {"success": False, "error": "sheet not found"})

        assert sheets_client.add_booking(build_sheets_record(_notice(7)))["success"] is False

    def test_sheets_disabled_skips(self, http):
        client = SpreadsheetWebhookClient(None, session=http)

        assert client.add_booking(build_sheets_record(_notice(7)))["skipped"] is True
        http.post.assert_not_called()


class TestNotificationRelay:
    def test_completed_exports_marks_synced_and_pushes(
        self, db, session_factory, confirmed_reservation, line_client, sheets_client, http
    ):
        http.post.return_value = _response(200, {"success": True})
        relay = NotificationRelay(line_client, sheets_client, session_factory=session_factory)

        relay.notify_reservation_completed(_notice(confirmed_reservation.id))

        urls = [call.args[0] for call in http.post.call_args_list]
        assert urls == ["https://script.google.com/macros/s/abc/exec", "https://api.line.me/v2/bot/message/push"]
        pushed = http.post.call_args_list[1].kwargs["json"]["messages"][0]["text"]
        assert "2025年7月1日(火)" in pushed
        assert "ヨガ" in pushed
        db.expire_all()
        assert db.get(Reservation, confirmed_reservation.id).synced_to_sheets is True

    def test_failures_are_swallowed(self, session_factory, confirmed_reservation, line_client, sheets_client, http):
        http.post.side_effect = RuntimeError("unexpected")
        relay = NotificationRelay(line_client, sheets_client, session_factory=session_factory)

        # No debe propagar: la reserva ya está confirmada
        relay.notify_reservation_completed(_notice(confirmed_reservation.id))
        relay.notify_cancellation(_notice(confirmed_reservation.id))

        assert http.post.call_count == 3

    def test_confirmation_skipped_without_line_id(self, session_factory, line_client, http):
        sheets = SpreadsheetWebhookClient(None, session=http)
        relay = NotificationRelay(line_client, sheets, session_factory=session_factory)

        relay.notify_reservation_completed(_notice(1, line_id=None))

        http.post.assert_not_called()

    def test_sync_unsynced(self, db, confirmed_reservation, line_client, sheets_client, http):
        http.post.return_value = _response(200, {"success": True})
        relay = NotificationRelay(line_client, sheets_client)

        result = relay.sync_unsynced(db)

        assert (result.total, result.synced, result.failed) == (1, 1, 0)
        assert relay.sync_unsynced(db).total == 0

    def test_sync_unsynced_disabled_sheets(self, db, confirmed_reservation, line_client, http):
        relay = NotificationRelay(line_client, SpreadsheetWebhookClient(None, session=http))

        result = relay.sync_unsynced(db)

        assert (result.total, result.synced, result.failed) == (1, 0, 1)
        http.post.assert_not_called()

    def test_send_reminders_targets_hour_window(self, db, confirmed_reservation, line_client, sheets_client, http):
        http.post.return_value = _response(200)
        relay = NotificationRelay(line_client, sheets_client, reminder_hours_before=24)
        # 2025-06-30 10:20 JST = 01:20 UTC; objetivo: 2025-07-01 entre 10:00 y 11:00 JST
        now = datetime(2025, 6, 30, 1, 20, tzinfo=timezone.utc)

        result = relay.send_reminders(db, now=now)

        assert result.target_date == date(2025, 7, 1)
        assert result.target_hour == 10
        assert (result.candidates, result.sent, result.failed) == (1, 1, 0)
        assert http.post.call_args.kwargs["json"]["to"] == "U-line-1"

    def test_send_reminders_outside_window(self, db, confirmed_reservation, line_client, sheets_client, http):
        relay = NotificationRelay(line_client, sheets_client, reminder_hours_before=24)
        now = datetime(2025, 6, 30, 3, 0, tzinfo=timezone.utc)

        result = relay.send_reminders(db, now=now)

        assert result.candidates == 0
        http.post.assert_not_called()


class TestNotificationLogs:
    def test_confirmation_is_recorded(
        self, db, session_factory, confirmed_reservation, line_client, sheets_client, http
    ):
        http.post.return_value = _response(200, {"success": True})
        relay = NotificationRelay(line_client, sheets_client, session_factory=session_factory)

        relay.notify_reservation_completed(_notice(confirmed_reservation.id))

        logs = db.query(NotificationLog).all()
        assert len(logs) == 1
        assert logs[0].notification_type == NotificationType.BOOKING_CONFIRMATION
        assert logs[0].reservation_id == confirmed_reservation.id
        assert logs[0].customer_line_id == "U-line-1"
        assert logs[0].success is True
        assert logs[0].error_message is None
        assert "ヨガ" in logs[0].message_content

    def test_failed_cancellation_is_recorded_with_error(
        self, db, session_factory, confirmed_reservation, line_client, sheets_client, http
    ):
        http.post.return_value = _response(400, {"message": "Invalid user"})
        relay = NotificationRelay(line_client, sheets_client, session_factory=session_factory)

        relay.notify_cancellation(_notice(confirmed_reservation.id, status="cancelled"))

        log = db.query(NotificationLog).one()
        assert log.notification_type == NotificationType.CANCELLATION
        assert log.success is False
        assert log.error_message

    def test_unexpected_push_error_is_recorded(
        self, db, session_factory, confirmed_reservation, line_client, sheets_client, http
    ):
        http.post.side_effect = RuntimeError("unexpected")
        relay = NotificationRelay(line_client, SpreadsheetWebhookClient(None, session=http), session_factory=session_factory)

        relay.notify_reservation_completed(_notice(confirmed_reservation.id))

        log = db.query(NotificationLog).one()
        assert log.success is False
        assert "unexpected" in log.error_message

    def test_each_reminder_is_recorded(self, db, confirmed_reservation, line_client, sheets_client, http):
        http.post.return_value = _response(200)
        relay = NotificationRelay(line_client, sheets_client, reminder_hours_before=24)

        relay.send_reminders(db, now=datetime(2025, 6, 30, 1, 20, tzinfo=timezone.utc))

        log = db.query(NotificationLog).one()
        assert log.notification_type == NotificationType.REMINDER
        assert log.reservation_id == confirmed_reservation.id
        assert log.success is True

    def test_log_survives_reservation_delete(self, db, session_factory, confirmed_reservation, line_client, sheets_client, http):
        http.post.return_value = _response(200, {"success": True})
        relay = NotificationRelay(line_client, sheets_client, session_factory=session_factory)
        relay.notify_cancellation(_notice(confirmed_reservation.id, status="cancelled"))

        db.delete(confirmed_reservation)
        db.commit()

        log = db.query(NotificationLog).one()
        assert log.reservation_id is None


class TestReminderWindow:
    def test_zero_hours_before_targets_current_hour(self, db, confirmed_reservation, line_client, sheets_client, http):
        http.post.return_value = _response(200)
        relay = NotificationRelay(line_client, sheets_client, reminder_hours_before=0)
        # 2025-07-01 10:20 JST
        now = datetime(2025, 7, 1, 1, 20, tzinfo=timezone.utc)

        result = relay.send_reminders(db, now=now)

        assert (result.target_date, result.target_hour) == (date(2025, 7, 1), 10)
        assert result.sent == 1

    def test_last_hour_of_day_includes_late_start(self, db, make_schedule, line_client, sheets_client, http):
        http.post.return_value = _response(200)
        schedule = make_schedule(date(2025, 7, 1), time(23, 59, 59), time(23, 59, 59, 999999))
        customer = Customer(name="佐藤 花子", line_id="U-late")
        db.add(customer)
        db.flush()
        db.add(Reservation(schedule_id=schedule.id, customer_id=customer.id, status=ReservationStatus.CONFIRMED))
        db.commit()
        relay = NotificationRelay(line_client, sheets_client, reminder_hours_before=0)
        # 2025-07-01 23:10 JST
        now = datetime(2025, 7, 1, 14, 10, tzinfo=timezone.utc)

        result = relay.send_reminders(db, now=now)

        assert result.target_hour == 23
        assert (result.candidates, result.sent) == (1, 1)
        assert http.post.call_args.kwargs["json"]["to"] == "U-late"
