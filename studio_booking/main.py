import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

# Importar la función de configuración de logging
from studio_booking.core.logging_config import setup_logging

# Llamar a la configuración de logging ANTES de importar/crear otros elementos
setup_logging()

from slowapi.errors import RateLimitExceeded

from studio_booking.api.v1.api import api_router
from studio_booking.core.config import get_settings
from studio_booking.core.exceptions import register_exception_handlers
from studio_booking.core.scheduler import init_scheduler, shutdown_scheduler
from studio_booking.middleware.rate_limit import custom_rate_limit_exceeded_handler, limiter
from studio_booking.middleware.timing import TimingMiddleware
from studio_booking.services.notification import build_notification_relay

logger = logging.getLogger(__name__)

# Obtener la instancia de configuración al inicio del módulo
settings_instance = get_settings()


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Lifespan: Startup iniciado...")

    # Clientes de LINE y Google Sheets, uno por proceso
    app.state.notification_relay = build_notification_relay(settings_instance)

    if settings_instance.SCHEDULER_ENABLED:
        try:
            app.state.scheduler = init_scheduler(
                app.state.notification_relay,
                sync_interval_minutes=settings_instance.SYNC_INTERVAL_MINUTES,
            )
            logger.info("Lifespan: Scheduler inicializado.")
        except Exception as e:
            logger.error(f"Lifespan: Error al inicializar scheduler: {e}", exc_info=True)
    else:
        logger.info("Lifespan: Scheduler desactivado (SCHEDULER_ENABLED=false)")

    yield  # Aplicación en ejecución

    logger.info("Lifespan: Shutdown iniciado...")
    shutdown_scheduler()


app = FastAPI(
    title=settings_instance.PROJECT_NAME,
    description=settings_instance.PROJECT_DESCRIPTION,
    version=settings_instance.VERSION,
    openapi_url=f"{settings_instance.API_V1_STR}/openapi.json",
    docs_url=f"{settings_instance.API_V1_STR}/docs",
    redoc_url=f"{settings_instance.API_V1_STR}/redoc",
    lifespan=lifespan,
)

# Configurar rate limiting
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, custom_rate_limit_exceeded_handler)

# Errores de dominio -> {"detail", "code"}; sesión ausente en navegador -> 303
register_exception_handlers(app)


def _masked_headers(request: Request) -> dict:
    headers_dict = dict(request.headers)
    auth_header = headers_dict.get("authorization")
    if auth_header:
        if auth_header.startswith("Bearer "):
            token = auth_header[7:]
            headers_dict["authorization"] = f"Bearer ****{token[-6:]}" if len(token) > 6 else "Bearer ****"
        else:
            headers_dict["authorization"] = "***masked***"
    if "cookie" in headers_dict:
        headers_dict["cookie"] = "***masked***"
    return headers_dict


@app.middleware("http")
async def log_requests(request: Request, call_next):
    logger.info(f"Middleware: Recibida petición: {request.method} {request.url}")
    if settings_instance.DEBUG_MODE:
        logger.debug(f"Middleware: Headers: {_masked_headers(request)}")

    response = await call_next(request)

    logger.info(f"Middleware: Enviando respuesta: {response.status_code}")
    return response


# Añadir middleware para medir el tiempo de respuesta
app.add_middleware(TimingMiddleware)

# Lista de orígenes permitidos para CORS
origins = [str(origin).rstrip("/") for origin in settings_instance.BACKEND_CORS_ORIGINS]

app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["X-Data-Source", "X-Process-Time"],
    max_age=86400,  # 24 horas en segundos
)

# Incluir routers
app.include_router(api_router, prefix=settings_instance.API_V1_STR)


# Ruta raíz
@app.get("/")
def root():
    return {
        "message": "Bienvenido a la API de reservas del estudio",
        "docs": f"{settings_instance.API_V1_STR}/docs",
    }
