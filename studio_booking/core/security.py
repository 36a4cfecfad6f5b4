"""
Guardia de sesión del panel de administración.

Emite y valida tokens de sesión firmados (JWT HS256 con python-jose). El token
se acepta tanto en la cabecera `Authorization: Bearer` como en la cookie de
sesión.
"""
import logging
import secrets
from datetime import datetime, timedelta, timezone
from typing import Optional, Tuple

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt
from pydantic import ValidationError

from studio_booking.core.config import Settings, get_settings
from studio_booking.core.exceptions import AuthRedirect
from studio_booking.schemas.auth import TokenPayload

logger = logging.getLogger(__name__)

ALGORITHM = "HS256"

bearer_scheme = HTTPBearer(auto_error=False)


def verify_admin_credentials(email: str, password: str, settings: Settings) -> bool:
    """Compara las credenciales con las configuradas en tiempo constante"""
    email_ok = secrets.compare_digest(email.strip().lower().encode(), str(settings.ADMIN_EMAIL).lower().encode())
    password_ok = secrets.compare_digest(password.encode(), settings.ADMIN_PASSWORD.encode())
    return email_ok and password_ok


def create_session_token(subject: str, settings: Settings, expires_delta: Optional[timedelta] = None) -> Tuple[str, datetime]:
    """
    Crea un token de sesión firmado.

    Returns:
        Tupla (token, fecha de expiración UTC)
    """
    expires_at = datetime.now(timezone.utc) + (
        expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    )
    to_encode = {"sub": subject, "exp": int(expires_at.timestamp()), "type": "session"}
    token = jwt.encode(to_encode, settings.SECRET_KEY, algorithm=ALGORITHM)
    return token, expires_at


def decode_session_token(token: str, settings: Settings) -> Optional[TokenPayload]:
    """Valida firma y expiración; devuelve None si el token no es válido"""
    try:
        payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[ALGORITHM])
        token_data = TokenPayload(**payload)
    except (JWTError, ValidationError) as e:
        logger.debug(f"Token de sesión rechazado: {e}")
        return None
    if token_data.type != "session":
        return None
    return token_data


def _extract_token(
    request: Request, credentials: Optional[HTTPAuthorizationCredentials], settings: Settings
) -> Optional[str]:
    if credentials and credentials.credentials:
        return credentials.credentials
    return request.cookies.get(settings.SESSION_COOKIE_NAME)


async def get_optional_session(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    settings: Settings = Depends(get_settings),
) -> Optional[TokenPayload]:
    """Sesión actual o None; nunca falla"""
    token = _extract_token(request, credentials, settings)
    if not token:
        return None
    return decode_session_token(token, settings)


def _wants_html(request: Request) -> bool:
    return "text/html" in request.headers.get("accept", "")


async def require_session(
    request: Request,
    session: Optional[TokenPayload] = Depends(get_optional_session),
    settings: Settings = Depends(get_settings),
) -> TokenPayload:
    """
    Exige una sesión válida.

    Los navegadores (Accept: text/html) se redirigen a la página de acceso con
    `next=<ruta>`; los clientes de la API reciben 401.
    """
    if session is not None:
        return session

    if _wants_html(request):
        next_path = request.url.path
        if request.url.query:
            next_path = f"{next_path}?{request.url.query}"
        raise AuthRedirect(settings.SIGNIN_URL, next_path)

    raise HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Sesión no válida o expirada",
        headers={"WWW-Authenticate": "Bearer"},
    )
