from fastapi import APIRouter

from studio_booking.api.v1.endpoints import auth, catalog, customers, health, operations, reservations, schedules

api_router = APIRouter()

# Authentication (admin session guard)
api_router.include_router(auth.router, prefix="/auth", tags=["auth"])

# Schedule module (calendar and recurring series)
api_router.include_router(schedules.router, prefix="/schedules", tags=["schedules"])

# Reservations module
api_router.include_router(reservations.router, prefix="/reservations", tags=["reservations"])

# Catalog
api_router.include_router(catalog.programs_router, prefix="/programs", tags=["programs"])
api_router.include_router(catalog.instructors_router, prefix="/instructors", tags=["instructors"])
api_router.include_router(catalog.studios_router, prefix="/studios", tags=["studios"])
api_router.include_router(customers.router, prefix="/customers", tags=["customers"])

# Sheets export and reminders
api_router.include_router(operations.router, tags=["operations"])

api_router.include_router(health.router, tags=["health"])
