import enum

from sqlalchemy import Boolean, Column, DateTime, Enum, ForeignKey, Integer, Text, UniqueConstraint
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from studio_booking.db.base_class import Base


class ReservationStatus(str, enum.Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"


class BookingType(str, enum.Enum):
    ADVANCE = "advance"
    WALK_IN = "walk_in"


def _enum_values(enum_cls):
    return [member.value for member in enum_cls]


class Reservation(Base):
    """Reserva de un cliente para un horario concreto"""
    __tablename__ = "reservations"

    id = Column(Integer, primary_key=True, index=True)
    schedule_id = Column(Integer, ForeignKey("schedules.id", ondelete="CASCADE"), nullable=False, index=True)
    customer_id = Column(Integer, ForeignKey("customers.id"), nullable=False, index=True)
    status = Column(
        Enum(ReservationStatus, native_enum=False, length=20, values_callable=_enum_values),
        nullable=False,
        default=ReservationStatus.CONFIRMED,
    )
    booking_type = Column(
        Enum(BookingType, native_enum=False, length=20, values_callable=_enum_values),
        nullable=False,
        default=BookingType.ADVANCE,
    )
    cancellation_reason = Column(Text, nullable=True)
    cancelled_at = Column(DateTime(timezone=True), nullable=True)

    # Exportación a la hoja de cálculo: NULL/False = pendiente
    synced_to_sheets = Column(Boolean, nullable=True)
    synced_at = Column(DateTime(timezone=True), nullable=True)

    # Relaciones
    schedule = relationship("Schedule", back_populates="reservations")
    customer = relationship("Customer", back_populates="reservations")

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    __table_args__ = (
        UniqueConstraint("schedule_id", "customer_id", name="uq_reservation_schedule_customer"),
    )
