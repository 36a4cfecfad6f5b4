"""
Rate limiting con slowapi para los endpoints públicos de escritura
(formulario de reserva).

El almacenamiento es en memoria del proceso: con varios workers el límite es
por worker.
"""

import logging

from fastapi import Request
from fastapi.responses import JSONResponse
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address

from studio_booking.core.config import get_settings

logger = logging.getLogger(__name__)


def get_client_identifier(request: Request) -> str:
    """
    Identificador del cliente: primer IP de X-Forwarded-For si existe
    (detrás del proxy de la plataforma), si no la IP del socket.
    """
    fwd = request.headers.get("x-forwarded-for")
    if fwd:
        return fwd.split(",")[0].strip()
    return get_remote_address(request)


limiter = Limiter(key_func=get_client_identifier)


def reservation_rate_limit() -> str:
    return get_settings().RESERVATION_RATE_LIMIT


def custom_rate_limit_exceeded_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    """Handler personalizado para rate limit exceeded"""
    logger.warning(
        f"Rate limit exceeded para {get_client_identifier(request)} "
        f"en {request.url.path} - Límite: {exc.detail}"
    )
    return JSONResponse(
        status_code=429,
        content={
            "detail": "Demasiadas solicitudes. Intenta nuevamente más tarde.",
            "code": "rate_limited",
            "limit": exc.detail,
        },
    )
