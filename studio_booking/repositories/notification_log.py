from typing import List, Optional

from sqlalchemy.orm import Session

from studio_booking.models.notification_log import NotificationLog, NotificationType
from studio_booking.repositories.base import BaseRepository
from studio_booking.schemas.notification import NotificationLogCreate


class NotificationLogRepository(BaseRepository[NotificationLog, NotificationLogCreate, NotificationLogCreate]):
    def get_filtered(
        self,
        db: Session,
        *,
        reservation_id: Optional[int] = None,
        notification_type: Optional[NotificationType] = None,
        success: Optional[bool] = None,
        skip: int = 0,
        limit: int = 100,
    ) -> List[NotificationLog]:
        """Registros de envío, los más recientes primero"""
        query = db.query(NotificationLog)
        if reservation_id is not None:
            query = query.filter(NotificationLog.reservation_id == reservation_id)
        if notification_type is not None:
            query = query.filter(NotificationLog.notification_type == notification_type)
        if success is not None:
            query = query.filter(NotificationLog.success.is_(success))
        return query.order_by(NotificationLog.id.desc()).offset(skip).limit(limit).all()


notification_log_repository = NotificationLogRepository(NotificationLog)
