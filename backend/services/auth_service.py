"""Authentication service — login, register, token management."""

from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from core.constants import DEFAULT_ROLES, Role, SellerVerificationStatus
from core.exceptions import AuthenticationRequired, ConflictAlreadyExists
from core.security import (
    create_access_token,
    create_refresh_token,
    hash_password,
    verify_password,
    verify_token,
)
from db.models.seller_verification import SellerVerification
from db.models.user import User


def user_to_dict(user: User) -> dict:
    return {
        "id": user.id,
        "email": user.email,
        "name": user.name,
        "roles": list(user.roles or []),
        "is_active": user.is_active,
    }


class AuthService:
    """Handles authentication, registration, and token operations."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def register(
        self,
        email: str,
        password: str,
        name: Optional[str] = None,
        as_seller: bool = False,
    ) -> User:
        """Register a new user.

        Every account starts as a BUYER. ``as_seller`` also grants
        DEVELOPER and opens a PENDING seller verification for admin review.

        Raises:
            ConflictAlreadyExists: If the email is already registered
        """
        email = email.lower()
        existing = await self.get_user_by_email(email)
        if existing:
            raise ConflictAlreadyExists(f"Email already registered: {email}")

        roles = list(DEFAULT_ROLES)
        if as_seller:
            roles.append(Role.DEVELOPER.value)

        user = User(
            email=email,
            password_hash=hash_password(password),
            name=name,
            roles=roles,
        )
        self.db.add(user)
        try:
            await self.db.flush()
        except IntegrityError:
            await self.db.rollback()
            raise ConflictAlreadyExists(f"Email already registered: {email}")

        if as_seller:
            self.db.add(SellerVerification(
                user_id=user.id,
                status=SellerVerificationStatus.PENDING.value,
            ))
            await self.db.flush()

        await self.db.refresh(user)
        return user

    def issue_tokens(self, user: User) -> dict:
        return {
            "access_token": create_access_token(user_id=user.id, email=user.email),
            "refresh_token": create_refresh_token(user_id=user.id, email=user.email),
            "token_type": "bearer",
            "user": user_to_dict(user),
        }

    async def login(self, email: str, password: str) -> dict:
        """Authenticate a user and return tokens.

        Raises:
            AuthenticationRequired: On unknown email, wrong password or
                a deactivated account
        """
        user = await self.get_user_by_email(email.lower())

        if not user or not user.is_active or not verify_password(password, user.password_hash):
            raise AuthenticationRequired("Invalid email or password")

        user.last_login_at = datetime.now(timezone.utc)
        await self.db.flush()

        return self.issue_tokens(user)

    async def refresh(self, refresh_token: str) -> dict:
        """Exchange a refresh token for a new token pair."""
        payload = verify_token(refresh_token, expected_type="refresh")
        user = await self.get_user_by_id(payload.sub)
        if not user or not user.is_active:
            raise AuthenticationRequired("User not found")
        return self.issue_tokens(user)

    async def get_user_by_id(self, user_id: str) -> Optional[User]:
        """Get a user by ID."""
        result = await self.db.execute(
            select(User).where(User.id == user_id, User.is_deleted == False)  # noqa: E712
        )
        return result.scalar_one_or_none()

    async def get_user_by_email(self, email: str) -> Optional[User]:
        """Get a user by email."""
        result = await self.db.execute(
            select(User).where(User.email == email, User.is_deleted == False)  # noqa: E712
        )
        return result.scalar_one_or_none()
