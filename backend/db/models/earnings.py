"""Earnings model."""

from datetime import datetime
from decimal import Decimal
from typing import Optional

from sqlalchemy import ForeignKey, Numeric
from sqlalchemy.orm import Mapped, mapped_column, relationship

from core.constants import EarningsStatus
from db.base import BaseModel


class Earnings(BaseModel):
    """The seller's share of one purchase.

    One row per purchase (unique ``purchase_id``). ``amount`` keeps three
    decimals so the 70% share of a cent-precise price is exact.
    """

    __tablename__ = "earnings"

    purchase_id: Mapped[str] = mapped_column(
        ForeignKey("purchases.id", ondelete="CASCADE"), nullable=False, unique=True
    )
    developer_id: Mapped[str] = mapped_column(
        ForeignKey("users.id", ondelete="RESTRICT"), nullable=False, index=True
    )
    amount: Mapped[Decimal] = mapped_column(Numeric(12, 3), nullable=False)
    status: Mapped[str] = mapped_column(
        default=EarningsStatus.PENDING.value, index=True
    )
    paid_at: Mapped[Optional[datetime]] = mapped_column(nullable=True)

    purchase: Mapped["Purchase"] = relationship(
        "Purchase", back_populates="earnings", lazy="raise"
    )
