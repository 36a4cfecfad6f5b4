from studio_booking.repositories.catalog import instructor_repository, program_repository, studio_repository
from studio_booking.repositories.customer import customer_repository
from studio_booking.repositories.reservation import reservation_repository
from studio_booking.repositories.schedule import schedule_repository
