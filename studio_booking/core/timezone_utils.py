"""
Utilidades para el manejo de zonas horarias del estudio.

Las fechas y horas de los horarios se guardan como hora local del estudio
(columnas DATE y TIME sin zona); estas funciones traducen entre esa hora local
y instantes aware.
"""
from datetime import date, datetime, time, timedelta, timezone
from typing import Optional, Tuple

import pytz


def get_current_time_in_studio_timezone(studio_timezone: str) -> datetime:
    """
    Obtiene la hora actual en la zona horaria del estudio.

    Args:
        studio_timezone: Zona horaria del estudio (ej: 'Asia/Tokyo')

    Returns:
        Datetime aware en la zona horaria del estudio
    """
    tz = pytz.timezone(studio_timezone)
    return datetime.now(timezone.utc).astimezone(tz)


def today_in_studio_timezone(studio_timezone: str) -> date:
    return get_current_time_in_studio_timezone(studio_timezone).date()


def combine_in_studio_timezone(day: date, at: time, studio_timezone: str) -> datetime:
    """Combina fecha y hora locales del estudio en un datetime aware."""
    tz = pytz.timezone(studio_timezone)
    return tz.localize(datetime.combine(day, at))


def convert_to_studio_timezone(dt: datetime, studio_timezone: str) -> datetime:
    """
    Convierte un datetime a la zona del estudio.

    - Si `dt` es naive se interpreta como UTC.
    - Si `dt` es aware se convierte preservando el instante.
    """
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(pytz.timezone(studio_timezone))


def week_bounds(day: date) -> Tuple[date, date]:
    """Lunes y domingo de la semana que contiene `day`."""
    monday = day - timedelta(days=day.weekday())
    return monday, monday + timedelta(days=6)


def hour_window(dt: datetime) -> Tuple[date, time, Optional[time]]:
    """
    Ventana [HH:00, HH+1:00) de la hora local que contiene `dt`.

    Para la última hora del día el límite superior es None (hasta fin del día).
    """
    end = None if dt.hour == 23 else time(dt.hour + 1, 0)
    return dt.date(), time(dt.hour, 0), end
