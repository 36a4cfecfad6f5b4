import datetime as dt
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from studio_booking.models.reservation import BookingType, ReservationStatus
from studio_booking.schemas.customer import Customer


class ReservationCreate(BaseModel):
    """
    Solicitud pública de reserva. Acepta tanto snake_case como los nombres
    camelCase que envía el formulario de LIFF (`scheduleId`, `lineId`...).
    """
    model_config = ConfigDict(populate_by_name=True)

    schedule_id: int = Field(..., alias="scheduleId")
    customer_name_kanji: str = Field(..., min_length=1, max_length=255, alias="customerNameKanji")
    customer_name_katakana: str = Field(..., min_length=1, max_length=255, alias="customerNameKatakana")
    line_id: str = Field(..., min_length=1, max_length=255, alias="lineId")
    phone: str = Field(..., min_length=1, max_length=50)
    email: Optional[str] = Field(None, max_length=255)

    @field_validator("customer_name_kanji", "customer_name_katakana", "line_id", "phone")
    def strip_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("el campo no puede estar vacío")
        return value


class ReservationUpdate(BaseModel):
    status: Optional[ReservationStatus] = None
    booking_type: Optional[BookingType] = None
    cancellation_reason: Optional[str] = None

    @field_validator("status", "booking_type")
    def reject_null(cls, value, info):
        # Se pueden omitir, pero no vaciar: son columnas NOT NULL
        if value is None:
            raise ValueError(f"{info.field_name} no puede ser null")
        return value


class ReservationCancel(BaseModel):
    reason: Optional[str] = None


class ReservationScheduleInfo(BaseModel):
    id: int
    date: dt.date
    start_time: dt.time
    end_time: dt.time
    program_name: Optional[str] = None
    instructor_name: Optional[str] = None
    studio_name: Optional[str] = None

    model_config = {"from_attributes": True}


class Reservation(BaseModel):
    id: int
    schedule_id: int
    customer_id: int
    status: ReservationStatus
    booking_type: BookingType
    cancellation_reason: Optional[str] = None
    cancelled_at: Optional[dt.datetime] = None
    synced_to_sheets: Optional[bool] = None
    synced_at: Optional[dt.datetime] = None
    created_at: Optional[dt.datetime] = None
    updated_at: Optional[dt.datetime] = None

    model_config = {"from_attributes": True}


class ReservationWithDetails(Reservation):
    schedule: Optional[ReservationScheduleInfo] = None
    customer: Optional[Customer] = None


class ReservationCreated(BaseModel):
    """Respuesta de `POST /reservations`."""
    id: int
    status: ReservationStatus
    schedule_id: int
    customer_id: int
    message: str


class UnsyncedReservations(BaseModel):
    reservations: List[ReservationWithDetails]
    count: int
    timestamp: dt.datetime


class SyncResult(BaseModel):
    total: int
    synced: int
    failed: int
