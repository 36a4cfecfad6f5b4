from studio_booking.models.catalog import Program, Instructor, Studio
from studio_booking.models.customer import Customer
from studio_booking.models.schedule import Schedule, RepeatKind
from studio_booking.models.reservation import Reservation, ReservationStatus, BookingType
from studio_booking.models.notification_log import NotificationLog, NotificationType
