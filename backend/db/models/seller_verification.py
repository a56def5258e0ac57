"""Seller verification model."""

from datetime import datetime
from typing import Optional

from sqlalchemy import ForeignKey, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from core.constants import SellerVerificationStatus
from db.base import BaseModel


class SellerVerification(BaseModel):
    """Admin review of a developer who wants to sell workflows.

    A developer may edit their listings only once approved.
    """

    __tablename__ = "seller_verifications"

    user_id: Mapped[str] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
    )
    status: Mapped[str] = mapped_column(
        default=SellerVerificationStatus.PENDING.value, index=True
    )
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    reviewed_by_id: Mapped[Optional[str]] = mapped_column(
        ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )
    reviewed_at: Mapped[Optional[datetime]] = mapped_column(nullable=True)

    user: Mapped["User"] = relationship(
        "User",
        foreign_keys=[user_id],
        back_populates="seller_verification",
        lazy="raise",
    )
