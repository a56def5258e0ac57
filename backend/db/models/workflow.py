"""Workflow model for the workflow marketplace."""

from decimal import Decimal
from typing import Optional

from sqlalchemy import JSON, ForeignKey, Numeric, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from core.constants import WorkflowStatus
from db.base import BaseModel, SoftDeleteMixin
from db.models.tag import workflow_tags


class Workflow(SoftDeleteMixin, BaseModel):
    """A workflow file listed for sale.

    Attributes:
        id: Unique identifier (UUID string)
        user_id: Foreign key to the owning developer
        name: Listing title
        description: Listing description
        price: Price in major currency units
        file_url: Location of the workflow JSON file
        status: PENDING until an admin approves or rejects it
        is_public: Listed in the public catalogue
        is_featured: Hand-picked by an admin
        downloads: Purchases plus non-owner downloads, incremented atomically
    """

    __tablename__ = "workflows"

    user_id: Mapped[str] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    name: Mapped[str] = mapped_column(nullable=False, index=True)
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    price: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False, default=Decimal("0"))
    file_url: Mapped[str] = mapped_column(nullable=False)
    status: Mapped[str] = mapped_column(
        default=WorkflowStatus.PENDING.value, index=True
    )
    is_public: Mapped[bool] = mapped_column(default=True)
    is_featured: Mapped[bool] = mapped_column(default=False)
    downloads: Mapped[int] = mapped_column(default=0, nullable=False)
    prerequisites: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    documentation: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    media_urls: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    video_url: Mapped[Optional[str]] = mapped_column(nullable=True)

    # Relationships
    owner: Mapped["User"] = relationship(
        "User", back_populates="workflows", lazy="selectin"
    )
    tags: Mapped[list["Tag"]] = relationship(
        "Tag", secondary=workflow_tags, back_populates="workflows", lazy="selectin"
    )
    reviews: Mapped[list["Review"]] = relationship(
        "Review", back_populates="workflow", lazy="raise"
    )

    @property
    def tag_names(self) -> list[str]:
        return sorted(t.name for t in self.tags)
