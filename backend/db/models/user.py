"""User model for the workflow marketplace."""

from datetime import datetime
from typing import Optional

from sqlalchemy import JSON
from sqlalchemy.orm import Mapped, mapped_column, relationship

from core.constants import DEFAULT_ROLES
from db.base import BaseModel, SoftDeleteMixin


class User(SoftDeleteMixin, BaseModel):
    """A marketplace account.

    Attributes:
        id: Unique identifier (UUID string)
        email: User email address (unique)
        password_hash: Bcrypt hashed password
        name: Display name
        roles: List of role names (ADMIN, DEVELOPER, BUYER); a user may hold several
        is_active: Whether the account may sign in
        last_login_at: Timestamp of last login
    """

    __tablename__ = "users"

    email: Mapped[str] = mapped_column(nullable=False, unique=True, index=True)
    password_hash: Mapped[str] = mapped_column(nullable=False)
    name: Mapped[Optional[str]] = mapped_column(nullable=True)
    roles: Mapped[list] = mapped_column(JSON, nullable=False, default=lambda: list(DEFAULT_ROLES))
    is_active: Mapped[bool] = mapped_column(default=True, index=True)
    last_login_at: Mapped[Optional[datetime]] = mapped_column(nullable=True)

    # Relationships
    seller_verification: Mapped[Optional["SellerVerification"]] = relationship(
        "SellerVerification",
        foreign_keys="SellerVerification.user_id",
        back_populates="user",
        uselist=False,
        lazy="raise",
    )
    workflows: Mapped[list["Workflow"]] = relationship(
        "Workflow", back_populates="owner", lazy="raise"
    )

    def __repr__(self) -> str:
        return f"<User {self.email} roles={self.roles}>"
