from typing import Any, List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from studio_booking.api.deps import get_notification_relay
from studio_booking.core.security import require_session
from studio_booking.db.session import get_db
from studio_booking.models.notification_log import NotificationType
from studio_booking.repositories.notification_log import notification_log_repository
from studio_booking.schemas.auth import TokenPayload
from studio_booking.schemas.notification import NotificationLog, ReminderRunResult
from studio_booking.schemas.reservation import SyncResult
from studio_booking.services.notification import NotificationRelay

router = APIRouter()


@router.post("/sync/unsynced", response_model=SyncResult)
async def sync_unsynced_reservations(
    db: Session = Depends(get_db),
    session: TokenPayload = Depends(require_session),
    relay: NotificationRelay = Depends(get_notification_relay),
) -> Any:
    """
    Export Unsynced Reservations

    Posts every confirmed reservation not yet exported to the spreadsheet
    webhook and marks the successful ones as synced. The same job runs
    periodically from the scheduler.
    """
    return relay.sync_unsynced(db)


@router.post("/reminders/run", response_model=ReminderRunResult)
async def run_reminders(
    db: Session = Depends(get_db),
    session: TokenPayload = Depends(require_session),
    relay: NotificationRelay = Depends(get_notification_relay),
) -> Any:
    """
    Run Reminders Now

    Pushes the reminder message for classes starting in the target hour
    (now + configured hours before). The same job runs hourly from the scheduler.
    """
    return relay.send_reminders(db)


@router.get("/notification-logs", response_model=List[NotificationLog])
async def list_notification_logs(
    reservation_id: Optional[int] = None,
    notification_type: Optional[NotificationType] = Query(None, alias="type"),
    success: Optional[bool] = None,
    skip: int = 0,
    limit: int = Query(100, le=500),
    db: Session = Depends(get_db),
    session: TokenPayload = Depends(require_session),
) -> Any:
    """
    List Notification Logs

    Every LINE confirmation, reminder and cancellation message the relay tried
    to send, newest first, with its delivery result.
    """
    return notification_log_repository.get_filtered(
        db,
        reservation_id=reservation_id,
        notification_type=notification_type,
        success=success,
        skip=skip,
        limit=limit,
    )
