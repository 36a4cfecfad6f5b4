from sqlalchemy import Boolean, Column, Date, DateTime, Integer, String
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from studio_booking.db.base_class import Base


class Customer(Base):
    """Clientes que reservan clases (identificados por su LINE ID)"""
    __tablename__ = "customers"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False)  # Nombre en kanji
    name_kana = Column(String(255), nullable=True)  # Nombre en katakana
    line_id = Column(String(255), unique=True, nullable=True, index=True)
    phone = Column(String(50), nullable=True)
    email = Column(String(255), nullable=True)
    membership_type = Column(String(50), default="regular")
    cancellation_count = Column(Integer, default=0)
    last_booking_date = Column(Date, nullable=True)
    is_active = Column(Boolean, default=True)

    reservations = relationship("Reservation", back_populates="customer")

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())
