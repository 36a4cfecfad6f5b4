import uvicorn

from studio_booking.core.config import get_settings
from studio_booking.main import app  # noqa: F401

if __name__ == "__main__":
    uvicorn.run("studio_booking.main:app", host="0.0.0.0", port=8000, reload=get_settings().DEBUG_MODE)
