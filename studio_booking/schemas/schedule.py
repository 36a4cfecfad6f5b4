import datetime as dt
from typing import Dict, List, Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from studio_booking.models.schedule import RepeatKind


class ScheduleBase(BaseModel):
    date: dt.date
    start_time: dt.time
    end_time: dt.time
    program_id: int
    instructor_id: int
    studio_id: int
    capacity: int = Field(..., ge=1, le=100)

    @model_validator(mode='after')
    def check_time_order(self):
        if self.end_time <= self.start_time:
            raise ValueError('end_time debe ser posterior a start_time')
        return self


class ScheduleCreate(ScheduleBase):
    """
    Alta de un horario. Con `repeat` distinto de `none` se genera una serie
    recurrente; el límite de la serie es `repeat_end_date` o `repeat_count`.
    """
    repeat: RepeatKind = RepeatKind.NONE
    repeat_end_date: Optional[dt.date] = None
    repeat_count: Optional[int] = Field(None, ge=1, le=365)


class WeekdayPatternCreate(BaseModel):
    """Serie semanal por días de la semana (0=domingo ... 6=sábado)."""
    base_date: dt.date
    start_time: dt.time
    end_time: dt.time
    program_id: int
    instructor_id: int
    studio_id: int
    capacity: int = Field(..., ge=1, le=100)
    repeat_weeks: int = Field(..., ge=1, le=52)
    days_of_week: List[int] = Field(..., min_length=1)

    @field_validator('days_of_week')
    def check_days(cls, value: List[int]) -> List[int]:
        if any(day < 0 or day > 6 for day in value):
            raise ValueError('days_of_week solo admite valores entre 0 (domingo) y 6 (sábado)')
        return sorted(set(value))

    @model_validator(mode='after')
    def check_time_order(self):
        if self.end_time <= self.start_time:
            raise ValueError('end_time debe ser posterior a start_time')
        return self


class ScheduleUpdate(BaseModel):
    date: Optional[dt.date] = None
    start_time: Optional[dt.time] = None
    end_time: Optional[dt.time] = None
    program_id: Optional[int] = None
    instructor_id: Optional[int] = None
    studio_id: Optional[int] = None
    capacity: Optional[int] = Field(None, ge=1, le=100)

    @model_validator(mode='after')
    def check_updated_times(self):
        if self.start_time and self.end_time and self.end_time <= self.start_time:
            raise ValueError('end_time debe ser posterior a start_time')
        return self


class ScheduleCancel(BaseModel):
    reason: Optional[str] = None


class Schedule(ScheduleBase):
    id: int
    recurring_group_id: Optional[str] = None
    recurring_type: RepeatKind = RepeatKind.NONE
    recurring_end_date: Optional[dt.date] = None
    recurring_count: Optional[int] = None
    is_cancelled: bool = False
    cancellation_reason: Optional[str] = None

    model_config = {"from_attributes": True}


class ScheduleSlot(BaseModel):
    """Celda del calendario semanal."""
    id: int
    time: str  # "HH:MM - HH:MM"
    start_time: dt.time
    end_time: dt.time
    program: str
    instructor: str
    studio: str
    capacity: int
    booked: int
    available: int
    color: Optional[str] = None
    text_color: Optional[str] = None
    program_id: Optional[int] = None
    instructor_id: Optional[int] = None
    studio_id: Optional[int] = None
    recurring_group_id: Optional[str] = None


class ScheduleRange(BaseModel):
    start_date: dt.date
    end_date: dt.date
    schedules: Dict[str, List[ScheduleSlot]]
    source: str = "database"  # "database" | "fallback"
    warning: Optional[str] = None


class WeeklySchedule(ScheduleRange):
    week_start: dt.date
    week_end: dt.date


class ScheduleDetail(Schedule):
    program_name: str
    instructor_name: str
    studio_name: str
    time: str
    booked: int
    available: int
    status: str  # "available" | "full"


class ScheduleBatch(BaseModel):
    recurring_group_id: Optional[str] = None
    count: int
    schedules: List[Schedule]


class RecurringGroupDeleted(BaseModel):
    recurring_group_id: str
    deleted_count: int
    deleted_reservations: int
