"""
Datos de demostración para las rutas de lectura cuando la base de datos no
responde (solo con DEMO_FALLBACK_ENABLED).

El calendario de demostración es una plantilla semanal: se proyecta sobre
cualquier rango de fechas pedido.
"""
from datetime import date, time, timedelta
from typing import Dict, List

from studio_booking.schemas.catalog import Instructor, Program, Studio
from studio_booking.schemas.schedule import ScheduleSlot

FALLBACK_WARNING = "Base de datos no disponible: se muestran datos de demostración"

FIXTURE_PROGRAMS: List[Program] = [
    Program(id=1, name="ヨガ", description="リラックス効果のあるヨガクラス", default_duration=60,
            color_class="bg-green-500", text_color_class="text-white"),
    Program(id=2, name="ピラティス", description="コア強化に特化したピラティス", default_duration=45,
            color_class="bg-purple-500", text_color_class="text-white"),
    Program(id=3, name="ズンバ", description="ダンスフィットネス", default_duration=60,
            color_class="bg-red-500", text_color_class="text-white"),
    Program(id=4, name="HIIT", description="高強度インターバルトレーニング", default_duration=30,
            color_class="bg-orange-500", text_color_class="text-white"),
]

FIXTURE_INSTRUCTORS: List[Instructor] = [
    Instructor(id=1, name="田中 美香", email="mika.tanaka@studio.com", bio="ヨガインストラクター歴10年のベテラン講師"),
    Instructor(id=2, name="佐藤 健太", email="kenta.sato@studio.com", bio="エネルギッシュなレッスンが人気の講師"),
    Instructor(id=3, name="山田 さくら", email="sakura.yamada@studio.com", bio="丁寧な指導で初心者にも人気"),
]

FIXTURE_STUDIOS: List[Studio] = [
    Studio(id=1, name="スタジオ1", capacity=30, description="メインスタジオ"),
    Studio(id=2, name="スタジオ2", capacity=20, description="サブスタジオ"),
]

# weekday() -> [(inicio, fin, program_id, instructor_id, studio_id, capacidad, reservadas)]
WEEKLY_TEMPLATE = {
    0: [(time(10, 0), time(11, 0), 1, 1, 1, 20, 15), (time(14, 0), time(14, 45), 2, 3, 2, 15, 12)],
    1: [(time(9, 0), time(10, 0), 4, 2, 1, 25, 20), (time(19, 0), time(20, 0), 3, 2, 1, 30, 28)],
    2: [(time(11, 0), time(12, 0), 1, 1, 1, 20, 18)],
    3: [(time(18, 0), time(18, 45), 2, 3, 2, 15, 15)],
    4: [(time(10, 0), time(11, 0), 1, 3, 1, 20, 9)],
    5: [(time(10, 0), time(10, 30), 4, 2, 2, 20, 6), (time(13, 0), time(14, 0), 3, 2, 1, 30, 11)],
    6: [],
}


def _by_id(items):
    return {item.id: item for item in items}


def fixture_schedules(start_date: date, end_date: date) -> Dict[str, List[ScheduleSlot]]:
    """Calendario de demostración agrupado por fecha ("YYYY-MM-DD")."""
    programs = _by_id(FIXTURE_PROGRAMS)
    instructors = _by_id(FIXTURE_INSTRUCTORS)
    studios = _by_id(FIXTURE_STUDIOS)

    grouped: Dict[str, List[ScheduleSlot]] = {}
    current = start_date
    while current <= end_date:
        slots = []
        for index, entry in enumerate(WEEKLY_TEMPLATE[current.weekday()]):
            start, end, program_id, instructor_id, studio_id, capacity, booked = entry
            program = programs[program_id]
            slots.append(ScheduleSlot(
                # Identificadores sintéticos estables por fecha
                id=current.toordinal() * 10 + index,
                time=f"{start.strftime('%H:%M')} - {end.strftime('%H:%M')}",
                start_time=start,
                end_time=end,
                program=program.name,
                instructor=instructors[instructor_id].name,
                studio=studios[studio_id].name,
                capacity=capacity,
                booked=booked,
                available=max(capacity - booked, 0),
                color=program.color_class,
                text_color=program.text_color_class,
                program_id=program_id,
                instructor_id=instructor_id,
                studio_id=studio_id,
            ))
        if slots:
            grouped[current.isoformat()] = slots
        current += timedelta(days=1)
    return grouped
