import uuid
from datetime import datetime, timedelta, timezone
from typing import Literal

import jwt
from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from pydantic import BaseModel, ValidationError

from config import (
    JWT_ACCESS_TOKEN_EXPIRE_MINUTES,
    JWT_ALGORITHM,
    JWT_AUDIENCE,
    JWT_ISSUER,
    JWT_SECRET_KEY,
)
from database import UserRole
from models import SessionUser
from services.session_store import SessionStore


class TokenPayload(BaseModel):
    """JWT token payload structure."""

    sub: str  # email address
    typ: Literal["otp", "login"]  # authentication type
    uid: int | None = None  # user id once the account exists
    sid: str | None = None  # server-side session id
    exp: datetime | None = None  # expiration time


security = HTTPBearer(auto_error=False)


def create_access_token(
    email: str,
    token_type: Literal["otp", "login"],
    user_id: int | None = None,
    session_id: str | None = None,
    expires_delta: timedelta | None = None,
) -> str:
    """
    Create a JWT access token.

    Args:
        email: The user's email address
        token_type: Either "otp" or "login"
        user_id: The user id (optional)
        session_id: The session the token is bound to (optional)
        expires_delta: Custom expiration time (optional)

    Returns:
        Encoded JWT token string
    """
    now = datetime.now(timezone.utc)

    if expires_delta:
        expire = now + expires_delta
    else:
        expire = now + timedelta(minutes=JWT_ACCESS_TOKEN_EXPIRE_MINUTES)

    to_encode = {
        "sub": email,
        "typ": token_type,
        "uid": user_id,
        "sid": session_id,
        "exp": expire,
        "iss": JWT_ISSUER,
        "aud": JWT_AUDIENCE,
        "iat": now,
        "jti": str(uuid.uuid4()),
    }

    return jwt.encode(to_encode, str(JWT_SECRET_KEY), algorithm=JWT_ALGORITHM)


def decode_token(token: str) -> TokenPayload:
    """
    Decode and validate a JWT token.

    Raises:
        HTTPException: If token is invalid or expired
    """
    try:
        payload = jwt.decode(
            token,
            str(JWT_SECRET_KEY),
            algorithms=[JWT_ALGORITHM],
            audience=JWT_AUDIENCE,
            issuer=JWT_ISSUER,
        )
        return TokenPayload(**payload)
    except (jwt.InvalidTokenError, ValidationError):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Invalid authentication credentials",
        )


def get_session_store(request: Request) -> SessionStore:
    return request.app.state.session_store


async def get_current_token(
    credentials: HTTPAuthorizationCredentials | None = Depends(security),
) -> TokenPayload:
    """
    Dependency to get and validate the current JWT token.

    Raises:
        HTTPException: If authorization header is missing or token is invalid
    """
    if credentials is None:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Not authenticated",
        )

    return decode_token(credentials.credentials)


async def require_otp(
    token: TokenPayload = Depends(get_current_token),
) -> TokenPayload:
    """Dependency that requires a token obtained by verifying an OTP."""
    if token.typ != "otp":
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Email verification required",
        )
    return token


async def require_login(
    token: TokenPayload = Depends(get_current_token),
    sessions: SessionStore = Depends(get_session_store),
) -> SessionUser:
    """
    Dependency that requires login authentication with a live session.

    Logging out deletes the session, which revokes every token bound to it.

    Returns:
        The user stored in the session
    """
    if token.typ != "login":
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Login authentication required",
        )

    session = sessions.get(token.sid)
    if not session or "user" not in session:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Session has ended. Please log in again.",
        )
    return SessionUser(**session["user"])


async def require_admin(
    user: SessionUser = Depends(require_login),
) -> SessionUser:
    if user.role != UserRole.ADMIN.value:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Access denied",
        )
    return user
