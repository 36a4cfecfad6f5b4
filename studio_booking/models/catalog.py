from sqlalchemy import Boolean, CheckConstraint, Column, DateTime, Integer, String, Text
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from studio_booking.db.base_class import Base


class Program(Base):
    """Programas que ofrece el estudio (yoga, pilates, HIIT...)"""
    __tablename__ = "programs"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), unique=True, nullable=False)
    description = Column(Text, nullable=True)
    default_duration = Column(Integer, nullable=False, default=60)  # Duración en minutos
    color_class = Column(String(50), default="bg-blue-500")  # Clases CSS para el calendario
    text_color_class = Column(String(50), default="text-white")
    is_active = Column(Boolean, default=True)

    schedules = relationship("Schedule", back_populates="program")

    # Campos de auditoría
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())


class Instructor(Base):
    """Instructores que imparten las clases"""
    __tablename__ = "instructors"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False)
    email = Column(String(255), nullable=True)
    phone = Column(String(50), nullable=True)
    bio = Column(Text, nullable=True)
    profile_image_url = Column(Text, nullable=True)
    is_active = Column(Boolean, default=True)

    schedules = relationship("Schedule", back_populates="instructor")

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())


class Studio(Base):
    """Salas físicas del estudio"""
    __tablename__ = "studios"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False)
    capacity = Column(Integer, nullable=False)
    description = Column(Text, nullable=True)
    is_active = Column(Boolean, default=True)

    schedules = relationship("Schedule", back_populates="studio")

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    __table_args__ = (
        CheckConstraint("capacity > 0", name="check_studio_capacity_positive"),
    )
