import logging
import uuid
from datetime import date, time
from typing import Dict, List, Optional, Tuple

from sqlalchemy.exc import DBAPIError, IntegrityError, OperationalError
from sqlalchemy.orm import Session

from studio_booking.core.config import get_settings
from studio_booking.core.exceptions import (
    NotFoundError,
    ScheduleConflictError,
    UpstreamUnavailableError,
    ValidationError,
)
from studio_booking.core.timezone_utils import today_in_studio_timezone, week_bounds
from studio_booking.db.session import write_transaction
from studio_booking.models.schedule import RepeatKind, Schedule
from studio_booking.repositories.catalog import instructor_repository, program_repository, studio_repository
from studio_booking.repositories.reservation import reservation_repository
from studio_booking.repositories.schedule import schedule_repository
from studio_booking.schemas.schedule import (
    RecurringGroupDeleted,
    Schedule as ScheduleSchema,
    ScheduleBatch,
    ScheduleCreate,
    ScheduleDetail,
    ScheduleRange,
    ScheduleSlot,
    ScheduleUpdate,
    WeekdayPatternCreate,
    WeeklySchedule,
)
from studio_booking.services.fixtures import FALLBACK_WARNING, fixture_schedules
from studio_booking.services.recurrence import generate_occurrence_dates, weekday_pattern_dates

logger = logging.getLogger(__name__)


def format_time_range(start: time, end: time) -> str:
    return f"{start.strftime('%H:%M')} - {end.strftime('%H:%M')}"


def build_slot(schedule: Schedule, booked: int) -> ScheduleSlot:
    """Convierte un horario con sus relaciones cargadas en una celda del calendario"""
    program = schedule.program
    return ScheduleSlot(
        id=schedule.id,
        time=format_time_range(schedule.start_time, schedule.end_time),
        start_time=schedule.start_time,
        end_time=schedule.end_time,
        program=program.name if program else "",
        instructor=schedule.instructor.name if schedule.instructor else "",
        studio=schedule.studio.name if schedule.studio else "",
        capacity=schedule.capacity,
        booked=booked,
        available=max(schedule.capacity - booked, 0),
        color=program.color_class if program else None,
        text_color=program.text_color_class if program else None,
        program_id=schedule.program_id,
        instructor_id=schedule.instructor_id,
        studio_id=schedule.studio_id,
        recurring_group_id=schedule.recurring_group_id,
    )


class ScheduleService:
    """
    Consulta del calendario y alta/baja de horarios (simples y recurrentes).
    """

    # ------------------------------------------------------------------
    # Consultas
    # ------------------------------------------------------------------

    def get_schedules_by_date_range(self, db: Session, *, start_date: date, end_date: date) -> ScheduleRange:
        """
        Horarios no cancelados entre dos fechas, agrupados por fecha.

        Args:
            db: Sesión de base de datos
            start_date: Fecha de inicio (inclusive)
            end_date: Fecha de fin (inclusive)

        Returns:
            ScheduleRange con `schedules` = {"YYYY-MM-DD": [ScheduleSlot...]}
            ordenado por fecha y hora de inicio

        Raises:
            ValidationError: Si start_date > end_date
            UpstreamUnavailableError: Si la base de datos falla y el modo
                demostración está desactivado
        """
        if start_date > end_date:
            raise ValidationError("La fecha de inicio no puede ser posterior a la fecha de fin")

        grouped, source = self._load_grouped(db, start_date, end_date)
        return ScheduleRange(
            start_date=start_date,
            end_date=end_date,
            schedules=grouped,
            source=source,
            warning=FALLBACK_WARNING if source == "fallback" else None,
        )

    def get_weekly_schedules(self, db: Session, *, day: Optional[date] = None) -> WeeklySchedule:
        """Semana lunes-domingo que contiene `day` (por defecto hoy en la zona del estudio)"""
        if day is None:
            day = today_in_studio_timezone(get_settings().STUDIO_TIMEZONE)
        week_start, week_end = week_bounds(day)

        grouped, source = self._load_grouped(db, week_start, week_end)
        return WeeklySchedule(
            start_date=week_start,
            end_date=week_end,
            week_start=week_start,
            week_end=week_end,
            schedules=grouped,
            source=source,
            warning=FALLBACK_WARNING if source == "fallback" else None,
        )

    def _load_grouped(self, db: Session, start_date: date, end_date: date) -> Tuple[Dict[str, List[ScheduleSlot]], str]:
        try:
            schedules = schedule_repository.get_by_date_range(db, start_date=start_date, end_date=end_date)
            counts = schedule_repository.get_confirmed_counts(db, schedule_ids=[s.id for s in schedules])
        except (OperationalError, DBAPIError) as e:
            db.rollback()
            if not get_settings().DEMO_FALLBACK_ENABLED:
                logger.error(f"Error consultando horarios {start_date}..{end_date}: {e}")
                raise UpstreamUnavailableError("La base de datos no está disponible") from e
            logger.warning(f"Base de datos no disponible, usando datos de demostración: {e}")
            return fixture_schedules(start_date, end_date), "fallback"

        grouped: Dict[str, List[ScheduleSlot]] = {}
        for schedule in schedules:
            key = schedule.date.isoformat()
            grouped.setdefault(key, []).append(build_slot(schedule, counts.get(schedule.id, 0)))
        return grouped, "database"

    def get_schedule(self, db: Session, *, schedule_id: int) -> ScheduleDetail:
        """
        Detalle de un horario con disponibilidad.

        Raises:
            NotFoundError: Si el horario no existe
        """
        try:
            schedule = schedule_repository.get_with_relations(db, schedule_id=schedule_id)
            booked = reservation_repository.count_confirmed(db, schedule_id=schedule_id) if schedule else 0
        except (OperationalError, DBAPIError) as e:
            db.rollback()
            logger.error(f"Error obteniendo horario {schedule_id}: {e}")
            raise UpstreamUnavailableError("La base de datos no está disponible") from e

        if not schedule:
            raise NotFoundError(f"Horario {schedule_id} no encontrado")

        available = max(schedule.capacity - booked, 0)
        base = ScheduleSchema.model_validate(schedule).model_dump()
        return ScheduleDetail(
            **base,
            program_name=schedule.program.name,
            instructor_name=schedule.instructor.name,
            studio_name=schedule.studio.name,
            time=format_time_range(schedule.start_time, schedule.end_time),
            booked=booked,
            available=available,
            status="full" if available <= 0 else "available",
        )

    # ------------------------------------------------------------------
    # Alta
    # ------------------------------------------------------------------

    def create_schedules(self, db: Session, *, schedule_in: ScheduleCreate) -> ScheduleBatch:
        """
        Crear un horario o una serie recurrente.

        Todas las ocurrencias comparten un `recurring_group_id` nuevo (UUID4) y
        se insertan en una sola transacción: un solapamiento con otro horario
        de la misma sala rechaza la serie completa.

        Raises:
            ValidationError: Límites de repetición inválidos o catálogo inexistente
            ScheduleConflictError: Si alguna ocurrencia se solapa con otro horario
        """
        settings = get_settings()
        dates = generate_occurrence_dates(
            schedule_in.date,
            schedule_in.repeat,
            end_date=schedule_in.repeat_end_date,
            count=schedule_in.repeat_count,
            max_occurrences=settings.MAX_RECURRING_OCCURRENCES,
        )

        group_id = None if schedule_in.repeat == RepeatKind.NONE else str(uuid.uuid4())
        base_data = {
            "start_time": schedule_in.start_time,
            "end_time": schedule_in.end_time,
            "program_id": schedule_in.program_id,
            "instructor_id": schedule_in.instructor_id,
            "studio_id": schedule_in.studio_id,
            "capacity": schedule_in.capacity,
            "recurring_group_id": group_id,
            "recurring_type": schedule_in.repeat,
            "recurring_end_date": schedule_in.repeat_end_date,
            "recurring_count": schedule_in.repeat_count,
        }
        return self._insert_batch(db, dates, base_data, operation="create_schedules")

    def create_weekday_pattern(self, db: Session, *, pattern_in: WeekdayPatternCreate) -> ScheduleBatch:
        """Serie semanal por días de la semana (0=domingo) durante `repeat_weeks` semanas"""
        dates = weekday_pattern_dates(pattern_in.base_date, pattern_in.days_of_week, pattern_in.repeat_weeks)
        if not dates:
            raise ValidationError("El patrón no genera ninguna fecha a partir de la fecha base")

        base_data = {
            "start_time": pattern_in.start_time,
            "end_time": pattern_in.end_time,
            "program_id": pattern_in.program_id,
            "instructor_id": pattern_in.instructor_id,
            "studio_id": pattern_in.studio_id,
            "capacity": pattern_in.capacity,
            "recurring_group_id": str(uuid.uuid4()),
            "recurring_type": RepeatKind.WEEKLY,
            "recurring_end_date": dates[-1],
            "recurring_count": None,
        }
        return self._insert_batch(db, dates, base_data, operation="create_weekday_pattern")

    def _insert_batch(self, db: Session, dates: List[date], base_data: dict, *, operation: str) -> ScheduleBatch:
        created: List[Schedule] = []
        with write_transaction(db, operation):
            self._check_catalog(db, base_data["program_id"], base_data["instructor_id"], base_data["studio_id"])
            for occurrence in dates:
                self._check_conflicts(
                    db,
                    studio_id=base_data["studio_id"],
                    on_date=occurrence,
                    start_time=base_data["start_time"],
                    end_time=base_data["end_time"],
                )
                created.append(schedule_repository.create(db, obj_in={**base_data, "date": occurrence}, commit=False))
            try:
                db.commit()
            except IntegrityError as e:
                # Restricción de exclusión de PostgreSQL (solapamiento concurrente)
                logger.warning(f"Conflicto de sala al confirmar {operation}: {e}")
                raise ScheduleConflictError("El horario se solapa con otra clase en la misma sala") from e

        for schedule in created:
            db.refresh(schedule)

        logger.info(
            f"{operation}: {len(created)} horario(s) creados "
            f"(grupo={base_data['recurring_group_id']}, sala={base_data['studio_id']})"
        )
        return ScheduleBatch(
            recurring_group_id=base_data["recurring_group_id"],
            count=len(created),
            schedules=[ScheduleSchema.model_validate(s) for s in created],
        )

    def _check_catalog(self, db: Session, program_id: int, instructor_id: int, studio_id: int) -> None:
        if not program_repository.exists(db, program_id):
            raise ValidationError(f"Programa {program_id} no encontrado")
        if not instructor_repository.exists(db, instructor_id):
            raise ValidationError(f"Instructor {instructor_id} no encontrado")
        if not studio_repository.exists(db, studio_id):
            raise ValidationError(f"Sala {studio_id} no encontrada")

    def _check_conflicts(
        self,
        db: Session,
        *,
        studio_id: int,
        on_date: date,
        start_time: time,
        end_time: time,
        exclude_id: Optional[int] = None,
    ) -> None:
        conflicts = schedule_repository.find_conflicts(
            db,
            studio_id=studio_id,
            on_date=on_date,
            start_time=start_time,
            end_time=end_time,
            exclude_id=exclude_id,
        )
        if conflicts:
            existing = conflicts[0]
            raise ScheduleConflictError(
                f"La sala ya tiene una clase el {on_date.isoformat()} de "
                f"{format_time_range(existing.start_time, existing.end_time)}",
                conflicting_schedule_id=existing.id,
            )

    # ------------------------------------------------------------------
    # Modificación y baja
    # ------------------------------------------------------------------

    def update_schedule(self, db: Session, *, schedule_id: int, schedule_in: ScheduleUpdate) -> ScheduleSchema:
        """
        Actualizar hora, programa, instructor, sala o capacidad de un horario.

        Raises:
            NotFoundError: Si el horario no existe
            ValidationError: Si la capacidad queda por debajo de las reservas confirmadas
            ScheduleConflictError: Si el nuevo intervalo se solapa con otro horario
        """
        with write_transaction(db, "update_schedule"):
            schedule = schedule_repository.lock_for_update(db, schedule_id=schedule_id)
            if not schedule:
                raise NotFoundError(f"Horario {schedule_id} no encontrado")

            update_data = {
                field: value
                for field, value in schedule_in.model_dump(exclude_unset=True).items()
                if value is not None
            }
            new_start = update_data.get("start_time", schedule.start_time)
            new_end = update_data.get("end_time", schedule.end_time)
            if new_end <= new_start:
                raise ValidationError("end_time debe ser posterior a start_time")

            self._check_catalog(
                db,
                update_data.get("program_id", schedule.program_id),
                update_data.get("instructor_id", schedule.instructor_id),
                update_data.get("studio_id", schedule.studio_id),
            )

            if "capacity" in update_data:
                booked = reservation_repository.count_confirmed(db, schedule_id=schedule_id)
                if update_data["capacity"] < booked:
                    raise ValidationError(
                        f"La capacidad no puede ser menor que las reservas confirmadas ({booked})"
                    )

            if not schedule.is_cancelled:
                self._check_conflicts(
                    db,
                    studio_id=update_data.get("studio_id", schedule.studio_id),
                    on_date=update_data.get("date", schedule.date),
                    start_time=new_start,
                    end_time=new_end,
                    exclude_id=schedule_id,
                )

            schedule_repository.update(db, db_obj=schedule, obj_in=update_data, commit=False)
            try:
                db.commit()
            except IntegrityError as e:
                raise ScheduleConflictError("El horario se solapa con otra clase en la misma sala") from e

        db.refresh(schedule)
        logger.info(f"Horario {schedule_id} actualizado: {sorted(update_data)}")
        return ScheduleSchema.model_validate(schedule)

    def cancel_schedule(self, db: Session, *, schedule_id: int, reason: Optional[str] = None) -> ScheduleSchema:
        """Marca un horario como cancelado; deja de aparecer en el calendario"""
        with write_transaction(db, "cancel_schedule"):
            schedule = schedule_repository.get(db, id=schedule_id)
            if not schedule:
                raise NotFoundError(f"Horario {schedule_id} no encontrado")
            schedule.is_cancelled = True
            schedule.cancellation_reason = reason
            db.commit()

        db.refresh(schedule)
        logger.info(f"Horario {schedule_id} cancelado")
        return ScheduleSchema.model_validate(schedule)

    def delete_schedule(self, db: Session, *, schedule_id: int) -> int:
        """
        Eliminar un horario y sus reservas.

        Returns:
            Número de reservas eliminadas
        """
        with write_transaction(db, "delete_schedule"):
            if not schedule_repository.exists(db, schedule_id):
                raise NotFoundError(f"Horario {schedule_id} no encontrado")
            deleted_reservations = reservation_repository.delete_by_schedule_ids(db, schedule_ids=[schedule_id])
            schedule_repository.delete_by_ids(db, schedule_ids=[schedule_id])
            db.commit()

        logger.info(f"Horario {schedule_id} eliminado ({deleted_reservations} reservas)")
        return deleted_reservations

    def delete_recurring_group(self, db: Session, *, group_id: str) -> RecurringGroupDeleted:
        """
        Eliminar todos los horarios de una serie y sus reservas en una sola
        transacción.

        Raises:
            NotFoundError: Si no hay horarios con ese grupo
        """
        with write_transaction(db, "delete_recurring_group"):
            schedule_ids = schedule_repository.get_ids_by_group(db, group_id=group_id)
            if not schedule_ids:
                raise NotFoundError(f"Grupo recurrente {group_id} no encontrado")

            # Primero las reservas (FK), luego los horarios
            deleted_reservations = reservation_repository.delete_by_schedule_ids(db, schedule_ids=schedule_ids)
            deleted_count = schedule_repository.delete_by_ids(db, schedule_ids=schedule_ids)
            db.commit()

        logger.info(
            f"Grupo recurrente {group_id} eliminado: {deleted_count} horarios, {deleted_reservations} reservas"
        )
        return RecurringGroupDeleted(
            recurring_group_id=group_id,
            deleted_count=deleted_count,
            deleted_reservations=deleted_reservations,
        )


schedule_service = ScheduleService()
