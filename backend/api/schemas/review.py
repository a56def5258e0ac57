"""Review schemas."""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field


class ReviewCreate(BaseModel):
    rating: int = Field(ge=1, le=5, description="Rating from 1 to 5")
    review_text: Optional[str] = Field(default=None, max_length=5000, description="Optional review text")


class ReviewUpdate(BaseModel):
    rating: Optional[int] = Field(default=None, ge=1, le=5)
    review_text: Optional[str] = Field(default=None, max_length=5000)


class ReviewResponse(BaseModel):
    id: str
    workflow_id: str
    user_id: str
    user_name: Optional[str] = None
    rating: int
    review_text: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class ReviewListResponse(BaseModel):
    reviews: List[ReviewResponse]
    average_rating: float = Field(description="Mean rating rounded to one decimal, 0 without reviews")
    review_count: int
