"""Workflow listing schemas."""

from datetime import datetime
from decimal import Decimal
from typing import Any, List, Optional

from pydantic import BaseModel, Field, HttpUrl, field_validator

from api.schemas.review import ReviewResponse


def _clean_tags(tags: Optional[List[str]]) -> Optional[List[str]]:
    if tags is None:
        return None
    cleaned = [t.strip() for t in tags if t and t.strip()]
    if not cleaned:
        raise ValueError("At least one tag is required")
    return cleaned


class WorkflowCreate(BaseModel):
    """Submit a workflow for sale."""

    name: str = Field(min_length=1, max_length=200, description="Listing title")
    description: str = Field(min_length=10, description="Listing description (min 10 characters)")
    price: Decimal = Field(ge=0, max_digits=10, decimal_places=2, description="Price in USD")
    file_url: HttpUrl = Field(description="URL of the workflow JSON file")
    tags: List[str] = Field(min_length=1, description="At least one tag")
    prerequisites: Optional[str] = Field(default=None, description="What the buyer needs beforehand")
    documentation: Optional[str] = Field(default=None, description="Setup documentation")
    media_urls: List[HttpUrl] = Field(default_factory=list, description="Screenshot URLs")
    video_url: Optional[HttpUrl] = Field(default=None, description="Demo video URL")

    @field_validator("tags")
    @classmethod
    def check_tags(cls, v):
        return _clean_tags(v)

    def model_fields_for_db(self) -> dict[str, Any]:
        """Column values, URLs as plain strings, tags excluded."""
        return {
            "name": self.name,
            "description": self.description,
            "price": self.price,
            "file_url": str(self.file_url),
            "prerequisites": self.prerequisites,
            "documentation": self.documentation,
            "media_urls": [str(u) for u in self.media_urls],
            "video_url": str(self.video_url) if self.video_url else None,
        }


class WorkflowUpdate(BaseModel):
    """Edit a listing; omitted fields are left unchanged."""

    name: Optional[str] = Field(default=None, min_length=1, max_length=200)
    description: Optional[str] = Field(default=None, min_length=10)
    price: Optional[Decimal] = Field(default=None, ge=0, max_digits=10, decimal_places=2)
    file_url: Optional[HttpUrl] = None
    tags: Optional[List[str]] = Field(default=None, min_length=1)
    prerequisites: Optional[str] = None
    documentation: Optional[str] = None
    media_urls: Optional[List[HttpUrl]] = None
    video_url: Optional[HttpUrl] = None

    @field_validator("tags")
    @classmethod
    def check_tags(cls, v):
        return _clean_tags(v)

    def model_fields_for_db(self) -> dict[str, Any]:
        data = self.model_dump(exclude_unset=True, exclude={"tags"})
        for key in ("file_url", "video_url"):
            if data.get(key) is not None:
                data[key] = str(data[key])
        if data.get("media_urls") is not None:
            data["media_urls"] = [str(u) for u in data["media_urls"]]
        return data


class WorkflowResponse(BaseModel):
    """A listing as shown in the catalogue. The file URL is never exposed."""

    id: str
    name: str
    description: str
    price: float
    status: str
    is_public: bool
    is_featured: bool
    downloads: int
    tags: List[str] = []
    owner_id: str
    owner_name: Optional[str] = None
    prerequisites: Optional[str] = None
    documentation: Optional[str] = None
    media_urls: List[str] = []
    video_url: Optional[str] = None
    average_rating: float = 0
    review_count: int = 0
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class WorkflowDetailResponse(WorkflowResponse):
    """A listing with its reviews."""

    reviews: List[ReviewResponse] = []


class WorkflowListResponse(BaseModel):
    """Paginated catalogue page."""

    workflows: List[WorkflowResponse]
    total: int
    page: int
    per_page: int
    total_pages: int


class TagResponse(BaseModel):
    name: str
    workflow_count: int
