"""Database models for the workflow marketplace.

This module imports all models to ensure they are registered
with SQLAlchemy's declarative base.
"""

from db.models.user import User
from db.models.seller_verification import SellerVerification
from db.models.tag import Tag, workflow_tags
from db.models.workflow import Workflow
from db.models.purchase import Purchase
from db.models.earnings import Earnings
from db.models.review import Review
from db.models.audit_log import AuditLog

__all__ = [
    "User",
    "SellerVerification",
    "Tag",
    "workflow_tags",
    "Workflow",
    "Purchase",
    "Earnings",
    "Review",
    "AuditLog",
]
