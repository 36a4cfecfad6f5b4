from datetime import date, time
from typing import Dict, Iterable, List, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session, joinedload

from studio_booking.repositories.base import BaseRepository
from studio_booking.models.reservation import Reservation, ReservationStatus
from studio_booking.models.schedule import Schedule
from studio_booking.schemas.schedule import ScheduleCreate, ScheduleUpdate


class ScheduleRepository(BaseRepository[Schedule, ScheduleCreate, ScheduleUpdate]):
    def get_with_relations(self, db: Session, *, schedule_id: int) -> Optional[Schedule]:
        """Obtener un horario con programa, instructor y sala cargados"""
        return db.query(Schedule).options(
            joinedload(Schedule.program),
            joinedload(Schedule.instructor),
            joinedload(Schedule.studio),
        ).filter(Schedule.id == schedule_id).first()

    def get_by_date_range(
        self, db: Session, *, start_date: date, end_date: date, include_cancelled: bool = False
    ) -> List[Schedule]:
        """
        Obtener horarios entre dos fechas (ambas inclusive).

        Args:
            db: Sesión de base de datos
            start_date: Fecha de inicio
            end_date: Fecha de fin
            include_cancelled: Incluir horarios cancelados
        """
        query = db.query(Schedule).options(
            joinedload(Schedule.program),
            joinedload(Schedule.instructor),
            joinedload(Schedule.studio),
        ).filter(
            Schedule.date >= start_date,
            Schedule.date <= end_date,
        )

        if not include_cancelled:
            query = query.filter(Schedule.is_cancelled.is_(False))

        return query.order_by(Schedule.date, Schedule.start_time, Schedule.id).all()

    def get_by_date_and_hour(
        self, db: Session, *, on_date: date, start_from: time, start_before: Optional[time]
    ) -> List[Schedule]:
        """
        Horarios no cancelados de `on_date` que empiezan en [start_from, start_before).

        Con `start_before=None` no hay límite superior (última hora del día).
        """
        query = db.query(Schedule).options(
            joinedload(Schedule.program),
            joinedload(Schedule.instructor),
            joinedload(Schedule.studio),
        ).filter(
            Schedule.date == on_date,
            Schedule.start_time >= start_from,
            Schedule.is_cancelled.is_(False),
        )
        if start_before is not None:
            query = query.filter(Schedule.start_time < start_before)
        return query.order_by(Schedule.start_time).all()

    def get_confirmed_counts(self, db: Session, *, schedule_ids: Iterable[int]) -> Dict[int, int]:
        """
        Número de reservas confirmadas por horario.

        Returns:
            Diccionario {schedule_id: reservas confirmadas}; los horarios sin
            reservas no aparecen.
        """
        ids = list(schedule_ids)
        if not ids:
            return {}
        rows = db.query(Reservation.schedule_id, func.count(Reservation.id)).filter(
            Reservation.schedule_id.in_(ids),
            Reservation.status == ReservationStatus.CONFIRMED,
        ).group_by(Reservation.schedule_id).all()
        return {schedule_id: count for schedule_id, count in rows}

    def find_conflicts(
        self,
        db: Session,
        *,
        studio_id: int,
        on_date: date,
        start_time: time,
        end_time: time,
        exclude_id: Optional[int] = None,
    ) -> List[Schedule]:
        """
        Horarios no cancelados de la misma sala cuyo intervalo se solapa con
        [start_time, end_time) en la fecha indicada.
        """
        query = db.query(Schedule).filter(
            Schedule.studio_id == studio_id,
            Schedule.date == on_date,
            Schedule.is_cancelled.is_(False),
            Schedule.start_time < end_time,
            Schedule.end_time > start_time,
        )
        if exclude_id is not None:
            query = query.filter(Schedule.id != exclude_id)
        return query.all()

    def lock_for_update(self, db: Session, *, schedule_id: int) -> Optional[Schedule]:
        """
        Bloquea la fila del horario (SELECT ... FOR UPDATE) hasta el final de
        la transacción. En SQLite la cláusula se omite.
        """
        return db.query(Schedule).filter(Schedule.id == schedule_id).with_for_update().first()

    def get_ids_by_group(self, db: Session, *, group_id: str) -> List[int]:
        rows = db.query(Schedule.id).filter(Schedule.recurring_group_id == group_id).all()
        return [row[0] for row in rows]

    def get_by_group(self, db: Session, *, group_id: str) -> List[Schedule]:
        return db.query(Schedule).filter(
            Schedule.recurring_group_id == group_id
        ).order_by(Schedule.date, Schedule.start_time).all()

    def delete_by_ids(self, db: Session, *, schedule_ids: List[int]) -> int:
        """Borrado masivo sin commit; devuelve las filas eliminadas"""
        if not schedule_ids:
            return 0
        return db.query(Schedule).filter(
            Schedule.id.in_(schedule_ids)
        ).delete(synchronize_session=False)


schedule_repository = ScheduleRepository(Schedule)
