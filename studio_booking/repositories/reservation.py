from datetime import datetime
from typing import List, Optional

from sqlalchemy import or_
from sqlalchemy.orm import Session, joinedload

from studio_booking.repositories.base import BaseRepository
from studio_booking.models.reservation import Reservation, ReservationStatus
from studio_booking.models.schedule import Schedule
from studio_booking.schemas.reservation import ReservationUpdate


class ReservationRepository(BaseRepository[Reservation, ReservationUpdate, ReservationUpdate]):
    def _with_details(self, db: Session):
        return db.query(Reservation).options(
            joinedload(Reservation.customer),
            joinedload(Reservation.schedule).joinedload(Schedule.program),
            joinedload(Reservation.schedule).joinedload(Schedule.instructor),
            joinedload(Reservation.schedule).joinedload(Schedule.studio),
        )

    def get_with_details(self, db: Session, *, reservation_id: int) -> Optional[Reservation]:
        return self._with_details(db).filter(Reservation.id == reservation_id).first()

    def get_by_schedule_and_customer(
        self, db: Session, *, schedule_id: int, customer_id: int
    ) -> Optional[Reservation]:
        """Obtener la reserva de un cliente en un horario específico (cualquier estado)"""
        return db.query(Reservation).filter(
            Reservation.schedule_id == schedule_id,
            Reservation.customer_id == customer_id,
        ).first()

    def count_confirmed(self, db: Session, *, schedule_id: int) -> int:
        return db.query(Reservation).filter(
            Reservation.schedule_id == schedule_id,
            Reservation.status == ReservationStatus.CONFIRMED,
        ).count()

    def get_filtered(
        self,
        db: Session,
        *,
        status: Optional[ReservationStatus] = None,
        schedule_id: Optional[int] = None,
        skip: int = 0,
        limit: int = 100,
    ) -> List[Reservation]:
        """
        Listado para administración, más recientes primero.

        Args:
            db: Sesión de base de datos
            status: Filtrar por estado (opcional)
            schedule_id: Filtrar por horario (opcional)
            skip: Número de registros a omitir (paginación)
            limit: Número máximo de registros a devolver
        """
        query = self._with_details(db)
        if status is not None:
            query = query.filter(Reservation.status == status)
        if schedule_id is not None:
            query = query.filter(Reservation.schedule_id == schedule_id)
        return query.order_by(Reservation.created_at.desc(), Reservation.id.desc()).offset(skip).limit(limit).all()

    def get_unsynced(self, db: Session, *, since: Optional[datetime] = None) -> List[Reservation]:
        """Reservas confirmadas pendientes de exportar a la hoja de cálculo"""
        query = self._with_details(db).filter(
            Reservation.status == ReservationStatus.CONFIRMED,
            or_(Reservation.synced_to_sheets.is_(None), Reservation.synced_to_sheets.is_(False)),
        )
        if since is not None:
            query = query.filter(Reservation.created_at >= since)
        return query.order_by(Reservation.created_at, Reservation.id).all()

    def get_confirmed_for_schedules(self, db: Session, *, schedule_ids: List[int]) -> List[Reservation]:
        if not schedule_ids:
            return []
        return db.query(Reservation).options(joinedload(Reservation.customer)).filter(
            Reservation.schedule_id.in_(schedule_ids),
            Reservation.status == ReservationStatus.CONFIRMED,
        ).all()

    def mark_synced(self, db: Session, *, reservation: Reservation, synced_at: datetime) -> Reservation:
        reservation.synced_to_sheets = True
        reservation.synced_at = synced_at
        db.add(reservation)
        db.commit()
        db.refresh(reservation)
        return reservation

    def delete_by_schedule_ids(self, db: Session, *, schedule_ids: List[int]) -> int:
        """Borrado masivo sin commit; devuelve las filas eliminadas"""
        if not schedule_ids:
            return 0
        return db.query(Reservation).filter(
            Reservation.schedule_id.in_(schedule_ids)
        ).delete(synchronize_session=False)


reservation_repository = ReservationRepository(Reservation)
