import datetime as dt
from typing import Optional

from pydantic import BaseModel, Field


class LoginRequest(BaseModel):
    email: str = Field(..., min_length=3, max_length=255)
    password: str = Field(..., min_length=1)


class Token(BaseModel):
    access_token: str
    token_type: str = "bearer"
    expires_at: dt.datetime


class TokenPayload(BaseModel):
    sub: str
    exp: int
    type: str = "session"


class SessionInfo(BaseModel):
    authenticated: bool
    email: Optional[str] = None
    expires_at: Optional[dt.datetime] = None
