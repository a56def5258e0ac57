"""Tag model and the workflow/tag association table."""

from sqlalchemy import Column, ForeignKey, Table
from sqlalchemy.orm import Mapped, mapped_column, relationship

from db.base import Base, BaseModel

workflow_tags = Table(
    "workflow_tags",
    Base.metadata,
    Column("workflow_id", ForeignKey("workflows.id", ondelete="CASCADE"), primary_key=True),
    Column("tag_id", ForeignKey("tags.id", ondelete="CASCADE"), primary_key=True),
)


class Tag(BaseModel):
    """A free-form label shared between workflows."""

    __tablename__ = "tags"

    name: Mapped[str] = mapped_column(nullable=False, unique=True, index=True)

    workflows: Mapped[list["Workflow"]] = relationship(
        "Workflow", secondary=workflow_tags, back_populates="tags", lazy="raise"
    )
