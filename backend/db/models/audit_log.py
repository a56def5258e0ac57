"""AuditLog model for admin actions."""

from typing import Optional

from sqlalchemy import JSON, ForeignKey
from sqlalchemy.orm import Mapped, mapped_column

from db.base import BaseModel


class AuditLog(BaseModel):
    """One admin action.

    Attributes:
        user_id: Admin who performed the action
        resource_type: 'workflow', 'user' or 'seller'
        resource_id: ID of the resource affected
        action: An ``AuditAction`` value
        old_values: JSON object with previous values
        new_values: JSON object with new values
    """

    __tablename__ = "audit_logs"

    user_id: Mapped[Optional[str]] = mapped_column(
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    resource_type: Mapped[str] = mapped_column(nullable=False, index=True)
    resource_id: Mapped[str] = mapped_column(nullable=False, index=True)
    action: Mapped[str] = mapped_column(nullable=False, index=True)
    old_values: Mapped[Optional[dict]] = mapped_column(JSON, nullable=True)
    new_values: Mapped[Optional[dict]] = mapped_column(JSON, nullable=True)
