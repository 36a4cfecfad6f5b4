import logging
from datetime import datetime, timezone
from typing import Any, Optional

from fastapi import APIRouter, Depends, HTTPException, Response, status

from studio_booking.core.config import Settings, get_settings
from studio_booking.core.security import create_session_token, get_optional_session, verify_admin_credentials
from studio_booking.schemas.auth import LoginRequest, SessionInfo, Token, TokenPayload

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/login", response_model=Token)
async def login(
    login_in: LoginRequest,
    response: Response,
    settings: Settings = Depends(get_settings),
) -> Any:
    """
    Admin Login

    Validates the admin credentials and returns a signed session token. The
    token is also set as an http-only cookie so the browser dashboard can use
    it without handling headers.

    Raises:
        HTTPException 401: Invalid credentials.
    """
    if not verify_admin_credentials(login_in.email, login_in.password, settings):
        logger.warning(f"Intento de acceso fallido para {login_in.email}")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Credenciales incorrectas",
        )

    token, expires_at = create_session_token(str(settings.ADMIN_EMAIL), settings)
    response.set_cookie(
        key=settings.SESSION_COOKIE_NAME,
        value=token,
        max_age=settings.ACCESS_TOKEN_EXPIRE_MINUTES * 60,
        httponly=True,
        secure=not settings.DEBUG_MODE,
        samesite="lax",
    )
    logger.info(f"Sesión iniciada: {settings.ADMIN_EMAIL}")
    return Token(access_token=token, expires_at=expires_at)


@router.get("/session", response_model=SessionInfo)
async def get_session(session: Optional[TokenPayload] = Depends(get_optional_session)) -> Any:
    """
    Poll Current Session

    Never fails: anonymous callers get `{"authenticated": false}`.
    """
    if session is None:
        return SessionInfo(authenticated=False)
    return SessionInfo(
        authenticated=True,
        email=session.sub,
        expires_at=datetime.fromtimestamp(session.exp, tz=timezone.utc),
    )


@router.post("/logout", response_model=SessionInfo)
async def logout(response: Response, settings: Settings = Depends(get_settings)) -> Any:
    """Logout: clears the session cookie."""
    response.delete_cookie(settings.SESSION_COOKIE_NAME)
    return SessionInfo(authenticated=False)
