"""
Excepciones de dominio del sistema de reservas.

Los servicios lanzan estas excepciones; la aplicación FastAPI registra un único
handler (`register_exception_handlers`) que las traduce a respuestas JSON con
el formato `{"detail": ..., "code": ...}`.
"""

import logging
from typing import Any, Dict, Optional
from urllib.parse import quote

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse, RedirectResponse

logger = logging.getLogger(__name__)


class StudioBookingError(Exception):
    """Base de todos los errores de dominio."""
    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    code: str = "internal_error"

    def __init__(self, detail: str, **extra: Any):
        super().__init__(detail)
        self.detail = detail
        self.extra = extra

    def to_dict(self) -> Dict[str, Any]:
        body = {"detail": self.detail, "code": self.code}
        body.update(self.extra)
        return body


class ValidationError(StudioBookingError):
    status_code = status.HTTP_400_BAD_REQUEST
    code = "validation_error"


class NotFoundError(StudioBookingError):
    status_code = status.HTTP_404_NOT_FOUND
    code = "not_found"


class CapacityExceededError(StudioBookingError):
    status_code = status.HTTP_409_CONFLICT
    code = "capacity_exceeded"


class DuplicateReservationError(StudioBookingError):
    status_code = status.HTTP_409_CONFLICT
    code = "duplicate_reservation"


class ScheduleConflictError(StudioBookingError):
    status_code = status.HTTP_409_CONFLICT
    code = "schedule_conflict"


class UpstreamUnavailableError(StudioBookingError):
    """La base de datos o un servicio externo no responde."""
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    code = "upstream_unavailable"


class AuthRedirect(Exception):
    """Sesión ausente en una ruta protegida pedida desde un navegador."""

    def __init__(self, signin_url: str, next_path: Optional[str] = None):
        super().__init__(signin_url)
        self.signin_url = signin_url
        self.next_path = next_path

    @property
    def location(self) -> str:
        if not self.next_path:
            return self.signin_url
        return f"{self.signin_url}?next={quote(self.next_path)}"


async def studio_booking_error_handler(request: Request, exc: StudioBookingError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error(f"{exc.code} en {request.method} {request.url.path}: {exc.detail}")
    else:
        logger.info(f"{exc.code} en {request.method} {request.url.path}: {exc.detail}")
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


async def auth_redirect_handler(request: Request, exc: AuthRedirect) -> RedirectResponse:
    return RedirectResponse(url=exc.location, status_code=status.HTTP_303_SEE_OTHER)


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(StudioBookingError, studio_booking_error_handler)
    app.add_exception_handler(AuthRedirect, auth_redirect_handler)
