"""Admin schemas: role management and seller verification."""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field

from core.constants import Role


class UserRolesUpdate(BaseModel):
    """Replace a user's roles. Duplicates are dropped; an empty list is allowed."""

    roles: List[Role] = Field(description="Roles from ADMIN, DEVELOPER, BUYER")


class UserRolesResponse(BaseModel):
    user_id: str
    email: str
    name: Optional[str] = None
    roles: List[str]


class SellerReviewRequest(BaseModel):
    notes: Optional[str] = Field(default=None, max_length=2000, description="Reviewer notes")


class WorkflowRejectRequest(BaseModel):
    reason: Optional[str] = Field(default=None, max_length=2000)


class SellerResponse(BaseModel):
    user_id: str
    email: str
    name: Optional[str] = None
    status: str
    notes: Optional[str] = None
    reviewed_at: Optional[datetime] = None
    created_at: Optional[datetime] = None


class SellerListResponse(BaseModel):
    sellers: List[SellerResponse]
    total: int
    page: int
    per_page: int
    total_pages: int
