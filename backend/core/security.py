"""
Security utilities for the workflow marketplace.

Includes:
- Password hashing with bcrypt
- JWT token generation and verification
- Bearer token extraction for FastAPI dependencies
"""

from datetime import datetime, timedelta, timezone
from typing import Optional

from fastapi import Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials as HTTPAuthCredentials
from passlib.context import CryptContext
from pydantic import BaseModel
import jwt

from app.config import get_settings
from core.exceptions import AuthenticationRequired
from core import roles as role_checks

settings = get_settings()

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

ALGORITHM = settings.ALGORITHM
ACCESS_TOKEN_EXPIRE_MINUTES = settings.ACCESS_TOKEN_EXPIRE_MINUTES
REFRESH_TOKEN_EXPIRE_DAYS = settings.REFRESH_TOKEN_EXPIRE_DAYS

# auto_error=False so a missing header becomes our own 401
security_scheme = HTTPBearer(auto_error=False)


class TokenPayload(BaseModel):
    """JWT token payload structure."""
    sub: str  # user_id
    email: str
    exp: datetime
    iat: datetime
    type: str  # "access" or "refresh"


class CurrentUser(BaseModel):
    """Authenticated caller with roles loaded from the database."""
    id: str
    email: str
    name: Optional[str] = None
    roles: list[str] = []

    @property
    def is_admin(self) -> bool:
        return role_checks.is_admin(self.roles)

    @property
    def is_developer(self) -> bool:
        return role_checks.is_developer(self.roles)


def hash_password(password: str) -> str:
    """
    Hash a password using bcrypt.

    Args:
        password: Plain text password

    Returns:
        Hashed password
    """
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """
    Verify a plain password against a hash.

    Args:
        plain_password: Plain text password
        hashed_password: Hashed password to verify against

    Returns:
        True if password matches, False otherwise
    """
    return pwd_context.verify(plain_password, hashed_password)


def _encode(user_id: str, email: str, token_type: str, lifetime: timedelta) -> str:
    now = datetime.now(timezone.utc)
    payload = {
        "sub": user_id,
        "email": email,
        "type": token_type,
        "iat": now,
        "exp": now + lifetime,
    }
    return jwt.encode(payload, settings.SECRET_KEY, algorithm=ALGORITHM)


def create_access_token(user_id: str, email: str) -> str:
    """Create a short-lived JWT access token."""
    return _encode(user_id, email, "access", timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES))


def create_refresh_token(user_id: str, email: str) -> str:
    """Create a JWT refresh token."""
    return _encode(user_id, email, "refresh", timedelta(days=REFRESH_TOKEN_EXPIRE_DAYS))


def verify_token(token: str, expected_type: str = "access") -> TokenPayload:
    """
    Verify and decode a JWT token.

    Args:
        token: Encoded JWT token
        expected_type: "access" or "refresh"

    Returns:
        Decoded token payload

    Raises:
        AuthenticationRequired: If token is invalid, expired or of the wrong type
    """
    try:
        payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[ALGORITHM])
    except jwt.ExpiredSignatureError:
        raise AuthenticationRequired("Token has expired")
    except jwt.InvalidTokenError:
        raise AuthenticationRequired("Invalid authentication credentials")

    if payload.get("type") != expected_type:
        raise AuthenticationRequired("Invalid token type")

    return TokenPayload(**payload)


async def get_token_payload(
    credentials: Optional[HTTPAuthCredentials] = Depends(security_scheme),
) -> TokenPayload:
    """FastAPI dependency: decode the bearer token or raise 401."""
    if credentials is None:
        raise AuthenticationRequired("Not authenticated")
    return verify_token(credentials.credentials)


async def get_optional_token_payload(
    credentials: Optional[HTTPAuthCredentials] = Depends(security_scheme),
) -> Optional[TokenPayload]:
    """FastAPI dependency: decode the bearer token if one was sent and is valid."""
    if credentials is None:
        return None
    try:
        return verify_token(credentials.credentials)
    except AuthenticationRequired:
        return None
