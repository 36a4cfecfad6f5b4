import datetime as dt
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from studio_booking.models.notification_log import NotificationType


class ReservationNotice(BaseModel):
    """
    Instantánea de una reserva completada, desacoplada de la sesión de base de
    datos para poder procesarse después de la respuesta HTTP.
    """
    reservation_id: int
    status: str
    reserved_at: dt.datetime
    customer_name: str
    customer_name_kana: Optional[str] = None
    line_id: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[str] = None
    schedule_date: dt.date
    start_time: dt.time
    end_time: dt.time
    program_name: str
    instructor_name: Optional[str] = None
    studio_name: Optional[str] = None
    capacity: Optional[int] = None

    @property
    def time_slot(self) -> str:
        return f"{self.start_time.strftime('%H:%M')}-{self.end_time.strftime('%H:%M')}"


class SheetsBookingRecord(BaseModel):
    """Fila plana que recibe la hoja de cálculo (claves en camelCase)."""
    model_config = ConfigDict(populate_by_name=True)

    reservation_id: int = Field(..., alias="reservationId")
    reserved_at: str = Field(..., alias="reservedAt")
    customer_name: str = Field(..., alias="customerName")
    experience_date: str = Field(..., alias="experienceDate")  # YYYY/MM/DD de la clase
    time_slot: str = Field(..., alias="timeSlot")
    program_name: str = Field(..., alias="programName")
    phone: Optional[str] = None
    line_id: Optional[str] = Field(None, alias="lineId")
    email: Optional[str] = None
    status: str


class _SettingsModel(BaseModel):
    # message-settings.json usa claves camelCase (bookingConfirmation, hoursBefore...)
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")


class BookingConfirmationSettings(_SettingsModel):
    enabled: bool = True
    text_message: str = (
        "✅ 予約が完了しました！\n\n"
        "📅 日時: {date} {time}\n"
        "🏃 プログラム: {program}\n"
        "👨‍🏫 インストラクター: {instructor}\n"
        "🏢 スタジオ: {studio}\n\n"
        "お忘れなくお越しください！"
    )


class ReminderSettings(_SettingsModel):
    enabled: bool = True
    hours_before: int = Field(24, ge=1, le=168)
    message_text: str = (
        "【レッスンのお知らせ】\n\n"
        "{program}\n📅 {date}\n⏰ {time}\n👨‍🏫 {instructor}\n🏢 {studio}\n\n"
        "お忘れなく！"
    )


class CancellationSettings(_SettingsModel):
    enabled: bool = True
    message_text: str = "ご予約をキャンセルしました。\n\n{date} {time} {program}\n\nまたのご利用をお待ちしております。"


class MessageSettings(_SettingsModel):
    booking_confirmation: BookingConfirmationSettings = Field(default_factory=BookingConfirmationSettings)
    reminder: ReminderSettings = Field(default_factory=ReminderSettings)
    cancellation: CancellationSettings = Field(default_factory=CancellationSettings)


class ReminderRunResult(BaseModel):
    target_date: dt.date
    target_hour: int
    candidates: int
    sent: int
    failed: int


class NotificationLogCreate(BaseModel):
    customer_line_id: str
    reservation_id: Optional[int] = None
    notification_type: NotificationType
    message_content: str
    success: bool
    error_message: Optional[str] = None


class NotificationLog(NotificationLogCreate):
    id: int
    sent_at: Optional[dt.datetime] = None

    model_config = {"from_attributes": True}
