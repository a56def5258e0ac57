"""Purchase model."""

from decimal import Decimal
from typing import Optional

from sqlalchemy import ForeignKey, Index, Numeric
from sqlalchemy.orm import Mapped, mapped_column, relationship

from core.constants import PurchaseStatus
from db.base import BaseModel


class Purchase(BaseModel):
    """A buyer's purchase of a workflow.

    ``external_transaction_id`` holds the payment processor's checkout
    session id. Its unique constraint is what makes webhook replays
    harmless.
    """

    __tablename__ = "purchases"
    __table_args__ = (
        Index("ix_purchases_workflow_buyer", "workflow_id", "buyer_id"),
    )

    workflow_id: Mapped[str] = mapped_column(
        ForeignKey("workflows.id", ondelete="RESTRICT"), nullable=False
    )
    buyer_id: Mapped[str] = mapped_column(
        ForeignKey("users.id", ondelete="RESTRICT"), nullable=False, index=True
    )
    amount: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False, default=Decimal("0"))
    currency: Mapped[str] = mapped_column(default="usd")
    status: Mapped[str] = mapped_column(
        default=PurchaseStatus.PENDING.value, index=True
    )
    external_transaction_id: Mapped[Optional[str]] = mapped_column(
        nullable=True, unique=True
    )
    payment_intent_id: Mapped[Optional[str]] = mapped_column(nullable=True, index=True)

    # Relationships
    workflow: Mapped["Workflow"] = relationship("Workflow", lazy="selectin")
    buyer: Mapped["User"] = relationship("User", lazy="selectin")
    earnings: Mapped[Optional["Earnings"]] = relationship(
        "Earnings", back_populates="purchase", uselist=False, lazy="raise"
    )
