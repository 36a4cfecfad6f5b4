import logging
import time

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint

logger = logging.getLogger(__name__)

# Umbrales en milisegundos, de mayor a menor
SPEED_THRESHOLDS = (
    (1500, "VERY_SLOW"),
    (700, "SLOW"),
    (300, "MEDIUM"),
)


def classify_speed(elapsed_ms: float) -> str:
    for limit, label in SPEED_THRESHOLDS:
        if elapsed_ms > limit:
            return label
    return "FAST"


class TimingMiddleware(BaseHTTPMiddleware):
    """Añade X-Process-Time y X-Process-Speed a cada respuesta."""

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        started = time.perf_counter()
        response = await call_next(request)
        elapsed_ms = (time.perf_counter() - started) * 1000

        speed = classify_speed(elapsed_ms)
        if speed == "VERY_SLOW":
            logger.warning(f"Petición lenta: {request.method} {request.url.path} tardó {elapsed_ms:.2f}ms")

        response.headers["X-Process-Time"] = f"{elapsed_ms:.2f}ms"
        response.headers["X-Process-Speed"] = speed
        return response
