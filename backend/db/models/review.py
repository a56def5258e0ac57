"""Review model."""

from typing import Optional

from sqlalchemy import CheckConstraint, ForeignKey, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from db.base import BaseModel


class Review(BaseModel):
    """A buyer's rating of a workflow, at most one per (workflow, user)."""

    __tablename__ = "reviews"
    __table_args__ = (
        UniqueConstraint("workflow_id", "user_id", name="uq_reviews_workflow_user"),
        CheckConstraint("rating >= 1 AND rating <= 5", name="ck_reviews_rating_range"),
    )

    workflow_id: Mapped[str] = mapped_column(
        ForeignKey("workflows.id", ondelete="CASCADE"), nullable=False, index=True
    )
    user_id: Mapped[str] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    rating: Mapped[int] = mapped_column(nullable=False)
    review_text: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    workflow: Mapped["Workflow"] = relationship(
        "Workflow", back_populates="reviews", lazy="raise"
    )
    user: Mapped["User"] = relationship("User", lazy="selectin")
