import logging
import time
from datetime import timezone
from functools import wraps
from typing import Callable, Optional

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger
from sqlalchemy.exc import DBAPIError, OperationalError, SQLAlchemyError
from sqlalchemy.orm import Session

from studio_booking.db.session import get_session_factory
from studio_booking.services.notification import NotificationRelay

logger = logging.getLogger(__name__)

REMINDER_JOB_ID = "reservation_reminders"
SHEETS_SYNC_JOB_ID = "sheets_sync"

_scheduler: Optional[AsyncIOScheduler] = None


def retry_on_db_error(max_retries=3, delay=2):
    """
    Reintenta un job cuando la base de datos corta la conexión.

    Solo reintenta OperationalError/DBAPIError. La espera crece linealmente:
    `delay` segundos tras el primer fallo, `2 * delay` tras el segundo, etc.
    Agotados los intentos se relanza la última excepción.
    """
    def decorator(func):
        @wraps(func)
        def wrapper(*args, **kwargs):
            attempt = 1
            while True:
                try:
                    return func(*args, **kwargs)
                except (OperationalError, DBAPIError) as e:
                    if attempt >= max_retries:
                        logger.error(
                            f"{func.__name__}: sin conexión a la BD tras {attempt} intentos: {e}",
                            exc_info=True
                        )
                        raise
                    pause = delay * attempt
                    logger.warning(
                        f"{func.__name__}: error de BD (intento {attempt}/{max_retries}), "
                        f"reintento en {pause}s: {e}"
                    )
                    time.sleep(pause)
                    attempt += 1
        return wrapper
    return decorator


def _with_job_session(job: Callable[[Session], object]):
    # Cada ejecución abre su propia sesión; no hay request que la provea
    db = get_session_factory()()
    try:
        return job(db)
    except SQLAlchemyError:
        db.rollback()
        raise
    finally:
        db.close()


@retry_on_db_error(max_retries=3, delay=2)
def send_reservation_reminders(relay: NotificationRelay):
    """Job horario: recordatorio LINE para las clases de la hora objetivo"""
    logger.info("Job de recordatorios iniciado")
    result = _with_job_session(relay.send_reminders)
    logger.info(
        f"Recordatorios {result.target_date} {result.target_hour}:00 -> "
        f"enviados {result.sent}/{result.candidates}, fallidos {result.failed}"
    )


@retry_on_db_error(max_retries=3, delay=2)
def export_unsynced_reservations(relay: NotificationRelay):
    logger.info("Job de exportación a Google Sheets iniciado")
    _with_job_session(relay.sync_unsynced)


def init_scheduler(relay: NotificationRelay, sync_interval_minutes: int = 15) -> AsyncIOScheduler:
    """
    Registra los dos jobs periódicos y arranca el scheduler (en UTC).

    - reservation_reminders: minuto 0 de cada hora
    - sheets_sync: cada `sync_interval_minutes` minutos
    """
    global _scheduler

    scheduler = AsyncIOScheduler(timezone=timezone.utc)
    jobs = (
        (send_reservation_reminders, CronTrigger(minute=0), REMINDER_JOB_ID),
        (export_unsynced_reservations, CronTrigger(minute=f"*/{sync_interval_minutes}"), SHEETS_SYNC_JOB_ID),
    )
    for func, trigger, job_id in jobs:
        scheduler.add_job(func, trigger=trigger, args=[relay], id=job_id, replace_existing=True)

    scheduler.start()
    _scheduler = scheduler
    logger.info(f"Scheduler en marcha con {len(jobs)} jobs (sincronización cada {sync_interval_minutes} min)")
    return scheduler


def shutdown_scheduler():
    global _scheduler
    if _scheduler is not None and _scheduler.running:
        _scheduler.shutdown(wait=False)
        logger.info("Scheduler detenido")
    _scheduler = None
