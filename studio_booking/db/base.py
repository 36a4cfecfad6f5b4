# Importar todos los modelos para que Alembic los detecte
from studio_booking.db.base_class import Base  # noqa
from studio_booking.models.catalog import Program, Instructor, Studio  # noqa
from studio_booking.models.customer import Customer  # noqa
from studio_booking.models.schedule import Schedule  # noqa
from studio_booking.models.reservation import Reservation  # noqa
from studio_booking.models.notification_log import NotificationLog  # noqa
