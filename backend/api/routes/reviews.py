"""Review endpoints — list and create per workflow, edit and delete by id."""

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession
import logging

from api.routes.workflows import review_to_response
from api.schemas.common import MessageResponse
from api.schemas.review import (
    ReviewCreate,
    ReviewListResponse,
    ReviewResponse,
    ReviewUpdate,
)
from app.dependencies import get_current_active_user, get_db
from core.security import CurrentUser
from services.review_service import ReviewService

logger = logging.getLogger(__name__)

router = APIRouter(tags=["reviews"])


@router.get("/workflows/{workflow_id}/reviews", response_model=ReviewListResponse)
async def list_reviews(
    workflow_id: str,
    db: AsyncSession = Depends(get_db),
) -> ReviewListResponse:
    """Reviews of a workflow with the average rating."""
    reviews, average, count = await ReviewService(db).list_for_workflow(workflow_id)
    return ReviewListResponse(
        reviews=[review_to_response(r) for r in reviews],
        average_rating=average,
        review_count=count,
    )


@router.post(
    "/workflows/{workflow_id}/reviews",
    response_model=ReviewResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_review(
    workflow_id: str,
    request: ReviewCreate,
    current_user: CurrentUser = Depends(get_current_active_user),
    db: AsyncSession = Depends(get_db),
) -> ReviewResponse:
    """
    Review a purchased workflow. One review per buyer and workflow;
    a second attempt gets 409.
    """
    review = await ReviewService(db).create_review(
        workflow_id, current_user, request.rating, request.review_text
    )
    return review_to_response(review)


@router.put("/reviews/{review_id}", response_model=ReviewResponse)
async def update_review(
    review_id: str,
    request: ReviewUpdate,
    current_user: CurrentUser = Depends(get_current_active_user),
    db: AsyncSession = Depends(get_db),
) -> ReviewResponse:
    """Edit a review (author or admin)."""
    review = await ReviewService(db).update_review(
        review_id, current_user, request.rating, request.review_text
    )
    return review_to_response(review)


@router.delete("/reviews/{review_id}", response_model=MessageResponse)
async def delete_review(
    review_id: str,
    current_user: CurrentUser = Depends(get_current_active_user),
    db: AsyncSession = Depends(get_db),
) -> MessageResponse:
    """Delete a review (author or admin)."""
    await ReviewService(db).delete_review(review_id, current_user)
    return MessageResponse(message="Review deleted")
