import logging
from typing import Any

from fastapi import APIRouter, Depends
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from studio_booking.core.config import get_settings
from studio_booking.db.session import get_db

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/health")
async def health_check(db: Session = Depends(get_db)) -> Any:
    """
    Health Check

    Liveness check. Reports the database as `down` instead of failing so the
    read endpoints can keep serving the demo fallback.
    """
    settings = get_settings()
    database = "ok"
    try:
        db.execute(text("SELECT 1"))
    except SQLAlchemyError as e:
        logger.warning(f"Health check: base de datos no disponible: {e}")
        database = "down"
    return {"status": "ok", "version": settings.VERSION, "database": database}
