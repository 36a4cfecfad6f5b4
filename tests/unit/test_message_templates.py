import json
from datetime import date, datetime, time, timezone

from studio_booking.schemas.notification import MessageSettings, ReservationNotice
from studio_booking.services.message_templates import (
    format_japanese_date,
    load_message_settings,
    render_template,
    template_values,
)


def _notice(**overrides):
    data = {
        "reservation_id": 7,
        "status": "confirmed",
        "reserved_at": datetime(2025, 6, 20, 3, 0, tzinfo=timezone.utc),
        "customer_name": "山田 太郎",
        "customer_name_kana": "ヤマダ タロウ",
        "line_id": "U1234567890abcdef",
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


def test_format_japanese_date():
    assert format_japanese_date(date(2025, 7, 1)) == "2025年7月1日(火)"
    assert format_japanese_date(date(2025, 7, 6)) == "2025年7月6日(日)"


def test_render_template_replaces_known_placeholders():
    text = render_template("{date} {time} {program} @ {studio}", template_values(_notice()))
    assert text == "2025年7月1日(火) 10:00-11:00 ヨガ @ スタジオ1"


def test_render_template_leaves_missing_and_unknown_placeholders():
    values = template_values(_notice(instructor_name=None))
    text = render_template("{instructor} {unknown} {capacity}", values)
    assert text == "{instructor} {unknown} 20"


def test_load_message_settings_defaults_when_missing(tmp_path):
    settings = load_message_settings(str(tmp_path / "missing.json"))
    assert settings == MessageSettings()
    assert settings.reminder.hours_before == 24


def test_load_message_settings_reads_camel_case_file(tmp_path):
    path = tmp_path / "message-settings.json"
    path.write_text(
        json.dumps(
            {
                "bookingConfirmation": {"enabled": False, "textMessage": "OK {date}"},
                "reminder": {"hoursBefore": 3, "messageText": "まもなく {program}"},
            },
            ensure_ascii=False,
        ),
        encoding="utf-8",
    )
    settings = load_message_settings(str(path))
    assert settings.booking_confirmation.enabled is False
    assert settings.booking_confirmation.text_message == "OK {date}"
    assert settings.reminder.hours_before == 3
    assert settings.cancellation.enabled is True


def test_load_message_settings_invalid_json_falls_back(tmp_path):
    path = tmp_path / "broken.json"
    path.write_text("{not json", encoding="utf-8")
    assert load_message_settings(str(path)) == MessageSettings()
