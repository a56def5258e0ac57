"""FastAPI dependency injection functions."""

from typing import AsyncGenerator, Optional

from fastapi import Depends
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
import logging

from core.exceptions import AuthenticationRequired, AuthorizationDenied
from core.security import (
    CurrentUser,
    TokenPayload,
    get_optional_token_payload,
    get_token_payload,
)
from db import database

logger = logging.getLogger(__name__)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """
    Provide a database session for API endpoints.

    Yields an async SQLAlchemy session that is automatically
    committed on success or rolled back on error.
    """
    async with database.AsyncSessionLocal() as session:
        try:
            yield session
            await session.commit()
        except Exception as e:
            logger.error(f"Database error: {str(e)}")
            await session.rollback()
            raise


async def _load_user(db: AsyncSession, user_id: str) -> Optional[CurrentUser]:
    from db.models.user import User

    result = await db.execute(
        select(User).where(User.id == user_id, User.is_deleted == False)  # noqa: E712
    )
    user = result.scalar_one_or_none()
    if user is None:
        return None
    if not user.is_active:
        raise AuthorizationDenied("User account is deactivated")
    return CurrentUser(id=user.id, email=user.email, name=user.name, roles=list(user.roles or []))


async def get_current_active_user(
    token: TokenPayload = Depends(get_token_payload),
    db: AsyncSession = Depends(get_db),
) -> CurrentUser:
    """
    Resolve the authenticated caller and their current roles.

    Roles are read from the database on every request so an admin
    role change takes effect without re-login.

    Raises:
        AuthenticationRequired: If the user no longer exists
        AuthorizationDenied: If the account is deactivated
    """
    user = await _load_user(db, token.sub)
    if user is None:
        raise AuthenticationRequired("User not found")
    return user


async def get_optional_user(
    token: Optional[TokenPayload] = Depends(get_optional_token_payload),
    db: AsyncSession = Depends(get_db),
) -> Optional[CurrentUser]:
    """Like :func:`get_current_active_user` but anonymous callers get None."""
    if token is None:
        return None
    try:
        return await _load_user(db, token.sub)
    except AuthorizationDenied:
        return None
