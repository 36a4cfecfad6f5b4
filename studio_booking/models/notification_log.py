import enum

from sqlalchemy import Boolean, Column, DateTime, Enum, ForeignKey, Integer, String, Text
from sqlalchemy.sql import func

from studio_booking.db.base_class import Base


class NotificationType(str, enum.Enum):
    BOOKING_CONFIRMATION = "booking_confirmation"
    REMINDER = "reminder"
    CANCELLATION = "cancellation"


class NotificationLog(Base):
    """Registro de cada mensaje LINE enviado (o intentado) a un cliente"""
    __tablename__ = "notification_logs"

    id = Column(Integer, primary_key=True, index=True)
    customer_line_id = Column(String(100), nullable=False, index=True)
    # Se conserva el registro aunque la reserva se elimine
    reservation_id = Column(Integer, ForeignKey("reservations.id", ondelete="SET NULL"), nullable=True, index=True)
    notification_type = Column(
        Enum(NotificationType, native_enum=False, length=30, values_callable=lambda e: [m.value for m in e]),
        nullable=False,
    )
    message_content = Column(Text, nullable=False)
    success = Column(Boolean, nullable=False, default=False)
    error_message = Column(Text, nullable=True)
    sent_at = Column(DateTime(timezone=True), server_default=func.now())
