"""
Plantillas de los mensajes de LINE (confirmación, recordatorio, cancelación).

Los textos se pueden personalizar con un JSON (MESSAGE_SETTINGS_PATH); si el
fichero no existe o no es válido se usan los textos por defecto.
"""
import json
import logging
from datetime import date
from pathlib import Path
from typing import Any, Dict, Optional

from pydantic import ValidationError as PydanticValidationError

from studio_booking.schemas.notification import MessageSettings, ReservationNotice

logger = logging.getLogger(__name__)

PLACEHOLDERS = ("date", "time", "program", "instructor", "studio", "capacity")
WEEKDAYS_JA = ("月", "火", "水", "木", "金", "土", "日")


def load_message_settings(path: Optional[str]) -> MessageSettings:
    if not path:
        return MessageSettings()
    settings_path = Path(path)
    if not settings_path.exists():
        return MessageSettings()
    try:
        content = json.loads(settings_path.read_text(encoding="utf-8"))
        return MessageSettings.model_validate(content)
    except (OSError, ValueError, PydanticValidationError) as e:
        logger.warning(f"No se pudo leer {settings_path}, usando plantillas por defecto: {e}")
        return MessageSettings()


def format_japanese_date(value: date) -> str:
    """2025-07-01 -> '2025年7月1日(火)'"""
    return f"{value.year}年{value.month}月{value.day}日({WEEKDAYS_JA[value.weekday()]})"


def template_values(notice: ReservationNotice) -> Dict[str, Any]:
    return {
        "date": format_japanese_date(notice.schedule_date),
        "time": notice.time_slot,
        "program": notice.program_name,
        "instructor": notice.instructor_name,
        "studio": notice.studio_name,
        "capacity": notice.capacity,
    }


def render_template(template: str, values: Dict[str, Any]) -> str:
    """
    Sustituye los marcadores {date}, {time}, {program}, {instructor},
    {studio} y {capacity}. Los marcadores sin valor se dejan tal cual y las
    llaves ajenas al conjunto no se interpretan.
    """
    message = template
    for key in PLACEHOLDERS:
        value = values.get(key)
        if value is None or value == "":
            continue
        message = message.replace("{" + key + "}", str(value))
    return message
