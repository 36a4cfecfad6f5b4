"""
Relay de notificaciones posteriores a una reserva: exportación a Google Sheets
y mensajes de LINE.

Todo es "best effort": cada paso registra su propio error y continúa. Un fallo
aquí nunca deshace una reserva ya confirmada.
"""
import logging
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from studio_booking.core.timezone_utils import convert_to_studio_timezone, hour_window
from studio_booking.models.notification_log import NotificationType
from studio_booking.repositories.notification_log import notification_log_repository
from studio_booking.repositories.reservation import reservation_repository
from studio_booking.repositories.schedule import schedule_repository
from studio_booking.schemas.notification import (
    MessageSettings,
    NotificationLogCreate,
    ReminderRunResult,
    ReservationNotice,
    SheetsBookingRecord,
)
from studio_booking.schemas.reservation import SyncResult
from studio_booking.services.line_messaging import LineMessagingClient
from studio_booking.services.message_templates import (
    format_japanese_date,
    load_message_settings,
    render_template,
    template_values,
)
from studio_booking.services.reservation import build_notice
from studio_booking.services.sheets import SpreadsheetWebhookClient

logger = logging.getLogger(__name__)


def build_sheets_record(notice: ReservationNotice) -> SheetsBookingRecord:
    customer_name = notice.customer_name
    if notice.customer_name_kana:
        customer_name = f"{notice.customer_name} ({notice.customer_name_kana})"
    return SheetsBookingRecord(
        reservation_id=notice.reservation_id,
        reserved_at=notice.reserved_at.isoformat(),
        customer_name=customer_name,
        experience_date=notice.schedule_date.strftime("%Y/%m/%d"),
        time_slot=notice.time_slot,
        program_name=notice.program_name,
        phone=notice.phone,
        line_id=notice.line_id,
        email=notice.email,
        status=notice.status,
    )


class NotificationRelay:
    def __init__(
        self,
        line_client: LineMessagingClient,
        sheets_client: SpreadsheetWebhookClient,
        session_factory: Optional[Callable[[], Session]] = None,
        message_settings_path: Optional[str] = None,
        studio_timezone: str = "Asia/Tokyo",
        reminder_hours_before: Optional[int] = None,
    ):
        self.line_client = line_client
        self.sheets_client = sheets_client
        self._session_factory = session_factory
        self.message_settings_path = message_settings_path
        self.studio_timezone = studio_timezone
        self.reminder_hours_before = reminder_hours_before

    @property
    def message_settings(self) -> MessageSettings:
        # Se relee en cada uso para aplicar cambios del fichero sin reiniciar
        return load_message_settings(self.message_settings_path)

    def _open_session(self) -> Session:
        if self._session_factory is None:
            from studio_booking.db.session import get_session_factory
            self._session_factory = get_session_factory()
        return self._session_factory()

    # ------------------------------------------------------------------
    # Reserva completada / cancelada
    # ------------------------------------------------------------------

    def notify_reservation_completed(self, notice: ReservationNotice) -> None:
        """
        Tarea en segundo plano tras confirmar una reserva.

        1. Exporta la fila a Google Sheets y, si tiene éxito, marca la reserva
           como sincronizada (con su propia sesión).
        2. Envía la confirmación por LINE.
        """
        try:
            result = self.sheets_client.add_booking(build_sheets_record(notice))
            if result.get("success"):
                self._mark_synced(notice.reservation_id)
        except Exception as e:
            logger.error(f"Error exportando reserva {notice.reservation_id} a Sheets: {e}", exc_info=True)

        try:
            settings = self.message_settings.booking_confirmation
            if not settings.enabled:
                logger.info("Mensaje de confirmación desactivado")
            elif not notice.line_id:
                logger.info(f"Reserva {notice.reservation_id} sin LINE ID, confirmación omitida")
            else:
                text = render_template(settings.text_message, template_values(notice))
                self._push_and_log(
                    notice.line_id, text, NotificationType.BOOKING_CONFIRMATION, reservation_id=notice.reservation_id
                )
        except Exception as e:
            logger.error(f"Error enviando confirmación LINE de la reserva {notice.reservation_id}: {e}", exc_info=True)

    def notify_cancellation(self, notice: ReservationNotice) -> None:
        try:
            settings = self.message_settings.cancellation
            if not settings.enabled or not notice.line_id:
                return
            text = render_template(settings.message_text, template_values(notice))
            self._push_and_log(
                notice.line_id, text, NotificationType.CANCELLATION, reservation_id=notice.reservation_id
            )
        except Exception as e:
            logger.error(f"Error enviando cancelación LINE de la reserva {notice.reservation_id}: {e}", exc_info=True)

    def _push_and_log(
        self,
        line_id: str,
        text: str,
        notification_type: NotificationType,
        *,
        reservation_id: Optional[int] = None,
        db: Optional[Session] = None,
    ) -> bool:
        """
        Envía un texto por LINE y deja constancia en notification_logs.

        Sin `db` el registro se guarda con una sesión propia. Un fallo al
        guardar el registro solo se loguea.

        Returns:
            True si LINE aceptó el mensaje
        """
        try:
            outcome = self.line_client.push_text(line_id, text)
        except Exception as e:
            logger.error(f"Error enviando {notification_type.value} de la reserva {reservation_id}: {e}", exc_info=True)
            outcome = {"success": False, "errors": [str(e)]}

        success = bool(outcome.get("success"))
        entry = NotificationLogCreate(
            customer_line_id=line_id,
            reservation_id=reservation_id,
            notification_type=notification_type,
            message_content=text,
            success=success,
            error_message=None if success else "; ".join(outcome.get("errors") or ["envío fallido"]),
        )
        session = db if db is not None else self._open_session()
        try:
            notification_log_repository.create(session, obj_in=entry)
        except SQLAlchemyError as e:
            session.rollback()
            logger.error(f"No se pudo registrar el envío {notification_type.value} a {line_id}: {e}")
        finally:
            if db is None:
                session.close()
        return success

    def _mark_synced(self, reservation_id: int) -> None:
        db = self._open_session()
        try:
            reservation = reservation_repository.get(db, id=reservation_id)
            if reservation:
                reservation_repository.mark_synced(db, reservation=reservation, synced_at=datetime.now(timezone.utc))
        except SQLAlchemyError as e:
            db.rollback()
            logger.error(f"No se pudo marcar la reserva {reservation_id} como sincronizada: {e}")
        finally:
            db.close()

    # ------------------------------------------------------------------
    # Tareas periódicas
    # ------------------------------------------------------------------

    def send_reminders(self, db: Session, now: Optional[datetime] = None) -> ReminderRunResult:
        """
        Envía el recordatorio a los clientes con reserva confirmada en las
        clases que empiezan dentro de la hora objetivo (`now + hours_before`,
        hora local del estudio).
        """
        settings = self.message_settings.reminder
        hours_before = settings.hours_before if self.reminder_hours_before is None else self.reminder_hours_before
        local_now = convert_to_studio_timezone(now or datetime.now(timezone.utc), self.studio_timezone)
        target = local_now + timedelta(hours=hours_before)
        target_date, window_start, window_end = hour_window(target)

        result = ReminderRunResult(target_date=target_date, target_hour=target.hour, candidates=0, sent=0, failed=0)
        if not settings.enabled:
            logger.info("Recordatorios desactivados")
            return result

        schedules = schedule_repository.get_by_date_and_hour(
            db, on_date=target_date, start_from=window_start, start_before=window_end
        )
        by_id = {schedule.id: schedule for schedule in schedules}
        reservations = reservation_repository.get_confirmed_for_schedules(db, schedule_ids=list(by_id))
        logger.info(
            f"Recordatorios {target_date} {target.hour:02d}h: {len(schedules)} clases, {len(reservations)} reservas"
        )

        for reservation in reservations:
            line_id = reservation.customer.line_id if reservation.customer else None
            if not line_id:
                continue
            result.candidates += 1
            schedule = by_id[reservation.schedule_id]
            values = {
                "date": format_japanese_date(schedule.date),
                "time": f"{schedule.start_time.strftime('%H:%M')}-{schedule.end_time.strftime('%H:%M')}",
                "program": schedule.program.name if schedule.program else None,
                "instructor": schedule.instructor.name if schedule.instructor else None,
                "studio": schedule.studio.name if schedule.studio else None,
                "capacity": schedule.capacity,
            }
            sent = self._push_and_log(
                line_id,
                render_template(settings.message_text, values),
                NotificationType.REMINDER,
                reservation_id=reservation.id,
                db=db,
            )
            if sent:
                result.sent += 1
            else:
                result.failed += 1

        return result

    def sync_unsynced(self, db: Session) -> SyncResult:
        """Exporta a Sheets todas las reservas confirmadas pendientes"""
        reservations = reservation_repository.get_unsynced(db)
        result = SyncResult(total=len(reservations), synced=0, failed=0)
        if not reservations:
            return result
        if not self.sheets_client.enabled:
            logger.info(f"{len(reservations)} reservas pendientes, exportación a Sheets desactivada")
            result.failed = len(reservations)
            return result

        for reservation in reservations:
            try:
                outcome = self.sheets_client.add_booking(build_sheets_record(build_notice(reservation)))
                if outcome.get("success"):
                    reservation_repository.mark_synced(
                        db, reservation=reservation, synced_at=datetime.now(timezone.utc)
                    )
                    result.synced += 1
                else:
                    result.failed += 1
            except SQLAlchemyError as e:
                db.rollback()
                logger.error(f"Error marcando la reserva {reservation.id} como sincronizada: {e}")
                result.failed += 1

        logger.info(f"Sincronización con Sheets: {result.synced}/{result.total} (fallidas: {result.failed})")
        return result


def build_notification_relay(settings) -> NotificationRelay:
    """Construye el relay con los clientes de LINE y Sheets según la configuración"""
    line_client = LineMessagingClient(
        settings.LINE_CHANNEL_ACCESS_TOKEN,
        base_url=settings.LINE_API_BASE_URL,
        debug_mode=settings.LINE_DEBUG_MODE,
        timeout=settings.OUTBOUND_TIMEOUT_SECONDS,
    )
    sheets_client = SpreadsheetWebhookClient(
        settings.GAS_WEBAPP_URL,
        spreadsheet_id=settings.GOOGLE_SPREADSHEET_ID,
        enabled=settings.SHEETS_ENABLED,
        timeout=settings.OUTBOUND_TIMEOUT_SECONDS,
    )
    token = settings.LINE_CHANNEL_ACCESS_TOKEN
    logger.info(
        f"Relay de notificaciones: LINE={'token ' + token[:6] + '...' if token else 'sin token'}"
        f"{' (debug)' if settings.LINE_DEBUG_MODE else ''}, Sheets={'activo' if sheets_client.enabled else 'inactivo'}"
    )
    return NotificationRelay(
        line_client,
        sheets_client,
        message_settings_path=settings.MESSAGE_SETTINGS_PATH,
        studio_timezone=settings.STUDIO_TIMEZONE,
        reminder_hours_before=settings.REMINDER_HOURS_BEFORE,
    )
