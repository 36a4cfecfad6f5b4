"""
Generación de fechas para series recurrentes.

Funciones puras (sin base de datos): cada fecha se calcula desde la fecha base
(`base + n * paso`) y no desde la anterior, de modo que una serie mensual que
empieza el día 31 vuelve al 31 en los meses que lo tienen.
"""
from datetime import date, timedelta
from typing import List, Optional, Sequence

from dateutil.relativedelta import relativedelta

from studio_booking.core.exceptions import ValidationError
from studio_booking.models.schedule import RepeatKind

DEFAULT_MAX_OCCURRENCES = 365


def step_date(base: date, kind: RepeatKind, n: int) -> date:
    """
    Fecha de la ocurrencia `n` (0 = la fecha base).

    relativedelta ajusta al último día del mes cuando el día no existe
    (31 de enero + 1 mes = 28/29 de febrero; 29 de febrero + 1 año = 28 de febrero).
    """
    if kind == RepeatKind.DAILY:
        return base + timedelta(days=n)
    if kind == RepeatKind.WEEKLY:
        return base + timedelta(weeks=n)
    if kind == RepeatKind.MONTHLY:
        return base + relativedelta(months=n)
    if kind == RepeatKind.YEARLY:
        return base + relativedelta(years=n)
    if n == 0:
        return base
    raise ValueError(f"Tipo de repetición no soportado: {kind}")


def validate_bounds(
    base: date,
    kind: RepeatKind,
    end_date: Optional[date],
    count: Optional[int],
) -> None:
    """
    Valida los límites de una regla de repetición.

    Raises:
        ValidationError: Si la combinación de límites no es válida
    """
    if kind == RepeatKind.NONE:
        if end_date is not None or count is not None:
            raise ValidationError("Un horario sin repetición no admite repeat_end_date ni repeat_count")
        return

    if end_date is None and count is None:
        raise ValidationError("Una serie recurrente necesita repeat_end_date o repeat_count")
    if end_date is not None and count is not None:
        raise ValidationError("Indica solo uno de repeat_end_date o repeat_count")
    if count is not None and count < 1:
        raise ValidationError("repeat_count debe ser al menos 1")
    if end_date is not None and end_date < base:
        raise ValidationError("repeat_end_date no puede ser anterior a la fecha base")


def generate_occurrence_dates(
    base: date,
    kind: RepeatKind,
    end_date: Optional[date] = None,
    count: Optional[int] = None,
    max_occurrences: int = DEFAULT_MAX_OCCURRENCES,
) -> List[date]:
    """
    Fechas de una serie, en orden.

    La generación se detiene en el primer límite alcanzado: `count`,
    `end_date` (inclusive) o `max_occurrences`.

    Args:
        base: Fecha de la primera ocurrencia
        kind: Tipo de repetición
        end_date: Última fecha permitida (opcional)
        count: Número de ocurrencias (opcional)
        max_occurrences: Tope absoluto de ocurrencias

    Returns:
        Lista de fechas; con `RepeatKind.NONE` solo la fecha base
    """
    validate_bounds(base, kind, end_date, count)
    if kind == RepeatKind.NONE:
        return [base]

    limit = max_occurrences if count is None else min(count, max_occurrences)
    dates: List[date] = []
    n = 0
    while len(dates) < limit:
        current = step_date(base, kind, n)
        if end_date is not None and current > end_date:
            break
        dates.append(current)
        n += 1
    return dates


def weekday_pattern_dates(base: date, days_of_week: Sequence[int], repeat_weeks: int) -> List[date]:
    """
    Fechas para un patrón semanal por días de la semana.

    Args:
        base: Fecha base; las fechas anteriores se descartan
        days_of_week: Días a incluir (0=domingo ... 6=sábado)
        repeat_weeks: Número de semanas a cubrir (1..52)

    Returns:
        Lista ordenada de fechas sin duplicados
    """
    if repeat_weeks < 1 or repeat_weeks > 52:
        raise ValidationError("repeat_weeks debe estar entre 1 y 52")
    if not days_of_week:
        raise ValidationError("days_of_week no puede estar vacío")

    # Semana que empieza en domingo (0=domingo, convención de la interfaz del estudio)
    days_since_sunday = (base.weekday() + 1) % 7
    week_start = base - timedelta(days=days_since_sunday)

    dates = set()
    for week in range(repeat_weeks):
        for day in days_of_week:
            current = week_start + timedelta(weeks=week, days=day)
            if current >= base:
                dates.add(current)
    return sorted(dates)
