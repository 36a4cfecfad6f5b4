import logging
from functools import lru_cache
from typing import List, Optional, Union

from pydantic import AnyHttpUrl, EmailStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# Configurar el logger
logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore"  # Permitir campos extra en .env
    )

    # Configuración básica
    API_V1_STR: str = "/api/v1"
    SECRET_KEY: str = "change-me"
    # 60 minutos * 24 horas = 1 día
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60 * 24

    # Información del proyecto
    PROJECT_NAME: str = "StudioBookingAPI"
    PROJECT_DESCRIPTION: str = "API con FastAPI para reservas y administración de un estudio de fitness"
    VERSION: str = "0.3.0"

    DEBUG_MODE: bool = False
    # Directorio de logs diarios; vacío desactiva el log a archivo
    LOG_DIR: str = "logs"

    # CORS
    BACKEND_CORS_ORIGINS: List[AnyHttpUrl] = []

    @field_validator("BACKEND_CORS_ORIGINS", mode="before")
    def assemble_cors_origins(cls, v: Union[str, List[str]]) -> List[str]:
        if isinstance(v, str) and not v.startswith("["):
            return [i.strip() for i in v.split(",") if i.strip()]
        elif isinstance(v, (list, str)):
            return v
        raise ValueError(v)

    DATABASE_URL: str = "sqlite:///./studio_booking.db"

    @field_validator("DATABASE_URL", mode="before")
    def ensure_proper_url_format(cls, v: Optional[str]) -> str:
        """Asegura que DATABASE_URL esté en el formato que entiende SQLAlchemy."""
        if not v:
            logger.warning("DATABASE_URL vacío, usando SQLite local")
            return "sqlite:///./studio_booking.db"
        # Heroku/Supabase entregan postgres://, SQLAlchemy 2 solo acepta postgresql://
        if v.startswith("postgres://"):
            logger.info("Corrigiendo formato de postgres:// a postgresql://")
            return "postgresql://" + v[len("postgres://"):]
        return v

    # Administrador del panel (credenciales de la guardia de sesión)
    ADMIN_EMAIL: EmailStr = "admin@example.com"
    ADMIN_PASSWORD: str = "admin"
    SESSION_COOKIE_NAME: str = "session"
    SIGNIN_URL: str = "/auth/signin"

    # Estudio
    STUDIO_TIMEZONE: str = "Asia/Tokyo"
    MAX_RECURRING_OCCURRENCES: int = 365
    # Fixture de demostración cuando la base de datos no responde (solo lectura)
    DEMO_FALLBACK_ENABLED: bool = True

    # LINE Messaging API
    LINE_CHANNEL_ACCESS_TOKEN: Optional[str] = None
    LINE_API_BASE_URL: str = "https://api.line.me/v2/bot"
    LINE_DEBUG_MODE: bool = False

    # Google Sheets vía Google Apps Script web app
    SHEETS_ENABLED: bool = True
    GAS_WEBAPP_URL: Optional[str] = None
    GOOGLE_SPREADSHEET_ID: Optional[str] = None

    OUTBOUND_TIMEOUT_SECONDS: float = 10.0
    MESSAGE_SETTINGS_PATH: str = "message-settings.json"
    # Si se define, tiene prioridad sobre reminder.hoursBefore del fichero de mensajes
    REMINDER_HOURS_BEFORE: Optional[int] = None

    # Tareas programadas
    SCHEDULER_ENABLED: bool = True
    SYNC_INTERVAL_MINUTES: int = 15

    # Rate limiting para el endpoint público de reservas
    RESERVATION_RATE_LIMIT: str = "30/minute"

    @field_validator("LINE_CHANNEL_ACCESS_TOKEN", mode="before")
    def discard_placeholder_token(cls, v: Optional[str]) -> Optional[str]:
        # Tokens de ejemplo copiados del .env.example equivalen a no tener token
        if not v or v == "test_token" or v.startswith("your_line_channel"):
            return None
        return v


@lru_cache()
def get_settings() -> Settings:
    """Devuelve la configuración cacheada (una instancia por proceso)."""
    return Settings()
