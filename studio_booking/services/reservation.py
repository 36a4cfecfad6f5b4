import logging
from datetime import datetime, timezone
from typing import List, Optional, Tuple

from sqlalchemy.exc import DBAPIError, IntegrityError, OperationalError
from sqlalchemy.orm import Session

from studio_booking.core.config import get_settings
from studio_booking.core.exceptions import (
    CapacityExceededError,
    DuplicateReservationError,
    NotFoundError,
    UpstreamUnavailableError,
    ValidationError,
)
from studio_booking.core.timezone_utils import today_in_studio_timezone
from studio_booking.db.session import write_transaction
from studio_booking.models.customer import Customer
from studio_booking.models.reservation import BookingType, Reservation, ReservationStatus
from studio_booking.models.schedule import Schedule
from studio_booking.repositories.customer import customer_repository
from studio_booking.repositories.reservation import reservation_repository
from studio_booking.repositories.schedule import schedule_repository
from studio_booking.schemas.notification import ReservationNotice
from studio_booking.schemas.reservation import ReservationCreate, ReservationCreated, ReservationUpdate

logger = logging.getLogger(__name__)

ACTIVE_STATUSES = (ReservationStatus.PENDING, ReservationStatus.CONFIRMED)


def build_notice(reservation: Reservation) -> ReservationNotice:
    """
    Copia los datos necesarios para notificar una reserva, de forma que la
    notificación no dependa de la sesión de base de datos del request.
    """
    schedule = reservation.schedule
    customer = reservation.customer
    return ReservationNotice(
        reservation_id=reservation.id,
        status=reservation.status.value,
        reserved_at=reservation.created_at or datetime.now(timezone.utc),
        customer_name=customer.name,
        customer_name_kana=customer.name_kana,
        line_id=customer.line_id,
        phone=customer.phone,
        email=customer.email,
        schedule_date=schedule.date,
        start_time=schedule.start_time,
        end_time=schedule.end_time,
        program_name=schedule.program.name if schedule.program else "",
        instructor_name=schedule.instructor.name if schedule.instructor else None,
        studio_name=schedule.studio.name if schedule.studio else None,
        capacity=schedule.capacity,
    )


class ReservationService:
    """
    Reservas de clientes con control de aforo.

    El conteo de reservas confirmadas y la inserción se hacen en la misma
    transacción con la fila del horario bloqueada (SELECT ... FOR UPDATE),
    de modo que dos peticiones concurrentes no pueden superar el aforo.
    """

    def create_reservation(
        self, db: Session, *, reservation_in: ReservationCreate
    ) -> Tuple[ReservationCreated, ReservationNotice]:
        """
        Registrar la reserva de un cliente en un horario.

        Args:
            db: Sesión de base de datos
            reservation_in: Datos validados del formulario de reserva

        Returns:
            Tupla (respuesta, aviso para la notificación en segundo plano)

        Raises:
            NotFoundError: Si el horario no existe
            ValidationError: Si el horario está cancelado
            DuplicateReservationError: Si el cliente ya tiene reserva activa
            CapacityExceededError: Si el horario está completo
        """
        settings = get_settings()
        with write_transaction(db, "create_reservation"):
            schedule = schedule_repository.lock_for_update(db, schedule_id=reservation_in.schedule_id)
            if not schedule:
                raise NotFoundError(f"Horario {reservation_in.schedule_id} no encontrado")
            if schedule.is_cancelled:
                raise ValidationError("No se puede reservar un horario cancelado")

            customer = self._upsert_customer(db, reservation_in, settings.STUDIO_TIMEZONE)

            existing = reservation_repository.get_by_schedule_and_customer(
                db, schedule_id=schedule.id, customer_id=customer.id
            )
            if existing and existing.status in ACTIVE_STATUSES:
                raise DuplicateReservationError(
                    "Ya tienes una reserva para esta clase", reservation_id=existing.id
                )

            confirmed = reservation_repository.count_confirmed(db, schedule_id=schedule.id)
            if confirmed >= schedule.capacity:
                logger.info(f"Horario {schedule.id} completo ({confirmed}/{schedule.capacity})")
                raise CapacityExceededError(
                    "La clase está completa",
                    capacity=schedule.capacity,
                    booked=confirmed,
                )

            if existing:
                # Reactivar la reserva cancelada en lugar de duplicar la fila
                reservation = reservation_repository.update(
                    db,
                    db_obj=existing,
                    obj_in={
                        "status": ReservationStatus.CONFIRMED,
                        "booking_type": BookingType.ADVANCE,
                        "cancelled_at": None,
                        "cancellation_reason": None,
                        "synced_to_sheets": None,
                        "synced_at": None,
                    },
                    commit=False,
                )
            else:
                reservation = reservation_repository.create(
                    db,
                    obj_in={
                        "schedule_id": schedule.id,
                        "customer_id": customer.id,
                        "status": ReservationStatus.CONFIRMED,
                        "booking_type": BookingType.ADVANCE,
                    },
                    commit=False,
                )

            try:
                db.commit()
            except IntegrityError as e:
                # Otra petición del mismo cliente ganó la carrera (uq_reservation_schedule_customer)
                raise DuplicateReservationError("Ya tienes una reserva para esta clase") from e

        db.refresh(reservation)
        logger.info(
            f"Reserva {reservation.id} confirmada: horario={schedule.id}, cliente={customer.id} "
            f"({confirmed + 1}/{schedule.capacity})"
        )

        created = ReservationCreated(
            id=reservation.id,
            status=reservation.status,
            schedule_id=reservation.schedule_id,
            customer_id=reservation.customer_id,
            message="予約が完了しました",
        )
        return created, build_notice(reservation)

    def _upsert_customer(self, db: Session, reservation_in: ReservationCreate, studio_timezone: str) -> Customer:
        """Obtiene o crea el cliente por LINE ID y actualiza sus datos de contacto"""
        data = {
            "name": reservation_in.customer_name_kanji,
            "name_kana": reservation_in.customer_name_katakana,
            "phone": reservation_in.phone,
            "last_booking_date": today_in_studio_timezone(studio_timezone),
        }
        if reservation_in.email:
            data["email"] = reservation_in.email

        customer = customer_repository.get_by_line_id(db, line_id=reservation_in.line_id)
        if customer:
            return customer_repository.update(db, db_obj=customer, obj_in=data, commit=False)

        data["line_id"] = reservation_in.line_id
        logger.info(f"Nuevo cliente desde LINE {reservation_in.line_id[:8]}...")
        return customer_repository.create(db, obj_in=data, commit=False)

    # ------------------------------------------------------------------
    # Administración
    # ------------------------------------------------------------------

    def list_reservations(
        self,
        db: Session,
        *,
        status: Optional[ReservationStatus] = None,
        schedule_id: Optional[int] = None,
        skip: int = 0,
        limit: int = 100,
    ) -> List[Reservation]:
        try:
            return reservation_repository.get_filtered(
                db, status=status, schedule_id=schedule_id, skip=skip, limit=limit
            )
        except (OperationalError, DBAPIError) as e:
            db.rollback()
            logger.error(f"Error listando reservas: {e}")
            raise UpstreamUnavailableError("La base de datos no está disponible") from e

    def get_reservation(self, db: Session, *, reservation_id: int) -> Reservation:
        reservation = reservation_repository.get_with_details(db, reservation_id=reservation_id)
        if not reservation:
            raise NotFoundError(f"Reserva {reservation_id} no encontrada")
        return reservation

    def update_reservation(
        self, db: Session, *, reservation_id: int, reservation_in: ReservationUpdate
    ) -> Tuple[Reservation, bool]:
        """
        Actualizar estado, tipo o motivo de cancelación.

        Pasar a `confirmed` vuelve a comprobar el aforo; pasar a `cancelled`
        registra la fecha y suma una cancelación al cliente.

        Returns:
            Tupla (reserva, True si la reserva acaba de cancelarse)
        """
        with write_transaction(db, "update_reservation"):
            reservation = reservation_repository.get(db, id=reservation_id)
            if not reservation:
                raise NotFoundError(f"Reserva {reservation_id} no encontrada")

            update_data = reservation_in.model_dump(exclude_unset=True)
            new_status = update_data.get("status")
            just_cancelled = False

            if new_status == ReservationStatus.CONFIRMED and reservation.status != ReservationStatus.CONFIRMED:
                self._ensure_capacity(db, reservation.schedule_id)
                update_data["cancelled_at"] = None
            elif new_status == ReservationStatus.CANCELLED and reservation.status != ReservationStatus.CANCELLED:
                self._register_cancellation(reservation)
                update_data["cancelled_at"] = reservation.cancelled_at
                just_cancelled = True

            reservation_repository.update(db, db_obj=reservation, obj_in=update_data, commit=False)
            db.commit()

        logger.info(f"Reserva {reservation_id} actualizada: {sorted(reservation_in.model_dump(exclude_unset=True))}")
        return self.get_reservation(db, reservation_id=reservation_id), just_cancelled

    def cancel_reservation(
        self, db: Session, *, reservation_id: int, reason: Optional[str] = None
    ) -> Tuple[Reservation, Optional[ReservationNotice]]:
        """
        Cancelar una reserva.

        Returns:
            Tupla (reserva, aviso de cancelación o None si ya estaba cancelada)
        """
        with write_transaction(db, "cancel_reservation"):
            reservation = reservation_repository.get(db, id=reservation_id)
            if not reservation:
                raise NotFoundError(f"Reserva {reservation_id} no encontrada")
            if reservation.status == ReservationStatus.CANCELLED:
                return self.get_reservation(db, reservation_id=reservation_id), None

            self._register_cancellation(reservation)
            reservation.status = ReservationStatus.CANCELLED
            reservation.cancellation_reason = reason
            db.commit()

        logger.info(f"Reserva {reservation_id} cancelada")
        reservation = self.get_reservation(db, reservation_id=reservation_id)
        return reservation, build_notice(reservation)

    def delete_reservation(self, db: Session, *, reservation_id: int) -> None:
        with write_transaction(db, "delete_reservation"):
            if not reservation_repository.exists(db, reservation_id):
                raise NotFoundError(f"Reserva {reservation_id} no encontrada")
            reservation_repository.remove(db, id=reservation_id)
        logger.info(f"Reserva {reservation_id} eliminada")

    def get_unsynced(self, db: Session, *, since: Optional[datetime] = None) -> List[Reservation]:
        return reservation_repository.get_unsynced(db, since=since)

    def mark_synced(self, db: Session, *, reservation_id: int) -> Reservation:
        with write_transaction(db, "mark_synced"):
            reservation = reservation_repository.get(db, id=reservation_id)
            if not reservation:
                raise NotFoundError(f"Reserva {reservation_id} no encontrada")
            reservation_repository.mark_synced(db, reservation=reservation, synced_at=datetime.now(timezone.utc))
        return self.get_reservation(db, reservation_id=reservation_id)

    def _ensure_capacity(self, db: Session, schedule_id: int) -> Schedule:
        schedule = schedule_repository.lock_for_update(db, schedule_id=schedule_id)
        if not schedule:
            raise NotFoundError(f"Horario {schedule_id} no encontrado")
        if schedule.is_cancelled:
            raise ValidationError("No se puede confirmar una reserva de un horario cancelado")
        confirmed = reservation_repository.count_confirmed(db, schedule_id=schedule_id)
        if confirmed >= schedule.capacity:
            raise CapacityExceededError("La clase está completa", capacity=schedule.capacity, booked=confirmed)
        return schedule

    @staticmethod
    def _register_cancellation(reservation: Reservation) -> None:
        reservation.cancelled_at = datetime.now(timezone.utc)
        customer = reservation.customer
        if customer is not None:
            customer.cancellation_count = (customer.cancellation_count or 0) + 1


reservation_service = ReservationService()
