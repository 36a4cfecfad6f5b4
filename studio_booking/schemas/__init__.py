from studio_booking.schemas.catalog import (
    Program, ProgramCreate, ProgramUpdate,
    Instructor, InstructorCreate, InstructorUpdate,
    Studio, StudioCreate, StudioUpdate,
)
from studio_booking.schemas.customer import Customer, CustomerCreate, CustomerUpdate
from studio_booking.schemas.schedule import (
    Schedule, ScheduleCreate, ScheduleUpdate, ScheduleCancel, WeekdayPatternCreate,
    ScheduleSlot, ScheduleRange, WeeklySchedule, ScheduleDetail, ScheduleBatch, RecurringGroupDeleted,
)
from studio_booking.schemas.reservation import (
    Reservation, ReservationCreate, ReservationUpdate, ReservationCancel,
    ReservationWithDetails, ReservationCreated, UnsyncedReservations, SyncResult,
)
from studio_booking.schemas.notification import ReservationNotice, SheetsBookingRecord, MessageSettings
from studio_booking.schemas.auth import LoginRequest, Token, TokenPayload, SessionInfo
