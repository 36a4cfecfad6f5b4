import enum

from sqlalchemy import (
    Boolean, CheckConstraint, Column, Date, DateTime, Enum, ForeignKey, Index, Integer, String, Text, Time
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from studio_booking.db.base_class import Base


class RepeatKind(str, enum.Enum):
    NONE = "none"
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    YEARLY = "yearly"


class Schedule(Base):
    """Clase concreta en el calendario (fecha, hora, sala, instructor)"""
    __tablename__ = "schedules"

    id = Column(Integer, primary_key=True, index=True)
    date = Column(Date, nullable=False, index=True)  # Fecha local del estudio
    start_time = Column(Time, nullable=False)
    end_time = Column(Time, nullable=False)
    capacity = Column(Integer, nullable=False)

    program_id = Column(Integer, ForeignKey("programs.id"), nullable=False)
    instructor_id = Column(Integer, ForeignKey("instructors.id"), nullable=False)
    studio_id = Column(Integer, ForeignKey("studios.id"), nullable=False)

    # Serie recurrente: todas las sesiones generadas por una misma regla comparten el grupo
    recurring_group_id = Column(String(36), nullable=True, index=True)
    recurring_type = Column(
        Enum(RepeatKind, native_enum=False, length=20, values_callable=lambda kinds: [k.value for k in kinds]),
        nullable=False,
        default=RepeatKind.NONE,
    )
    recurring_end_date = Column(Date, nullable=True)
    recurring_count = Column(Integer, nullable=True)

    is_cancelled = Column(Boolean, nullable=False, default=False)
    cancellation_reason = Column(Text, nullable=True)

    # Relaciones
    program = relationship("Program", back_populates="schedules")
    instructor = relationship("Instructor", back_populates="schedules")
    studio = relationship("Studio", back_populates="schedules")
    reservations = relationship("Reservation", back_populates="schedule", passive_deletes=True)

    # Campos de auditoría
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    __table_args__ = (
        CheckConstraint("end_time > start_time", name="check_schedule_time_order"),
        CheckConstraint("capacity > 0", name="check_schedule_capacity_positive"),
        Index("ix_schedules_studio_date", "studio_id", "date"),
    )
