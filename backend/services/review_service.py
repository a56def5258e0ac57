"""Review service — ratings with purchase-gated, one-per-buyer creation."""

import logging
from collections import defaultdict
from decimal import Decimal, ROUND_HALF_UP
from typing import Iterable, Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from core.exceptions import AuthorizationDenied, ConflictAlreadyExists, NotFound
from core.rbac import ensure_owner_or_admin
from core.security import CurrentUser
from db.models.review import Review
from db.models.workflow import Workflow
from services.base import BaseService
from services.purchase_service import PurchaseService

logger = logging.getLogger(__name__)

ALREADY_REVIEWED = "You have already reviewed this workflow"


def rating_mean(total: int, count: int) -> float:
    """``total / count`` rounded half-up to one decimal; 0 when ``count`` is 0."""
    if not count:
        return 0.0
    mean = Decimal(total) / Decimal(count)
    return float(mean.quantize(Decimal("0.1"), rounding=ROUND_HALF_UP))


def average_rating(ratings: Iterable[int]) -> float:
    """Mean rating rounded half-up to one decimal; 0 when there are none."""
    ratings = list(ratings)
    return rating_mean(sum(ratings), len(ratings))


class ReviewService(BaseService[Review]):
    """Service for workflow reviews."""

    def __init__(self, db: AsyncSession):
        super().__init__(Review, db)

    async def _load(self, review_id: str) -> Review:
        result = await self.db.execute(
            select(Review)
            .where(Review.id == review_id)
            .execution_options(populate_existing=True)
        )
        review = result.scalar_one_or_none()
        if review is None:
            raise NotFound("Review not found")
        return review

    async def _ensure_workflow(self, workflow_id: str) -> None:
        result = await self.db.execute(
            select(Workflow.id).where(Workflow.id == workflow_id, Workflow.is_deleted == False)  # noqa: E712
        )
        if result.first() is None:
            raise NotFound("Workflow not found")

    # ─── Read ──────────────────────────────────────────────

    async def list_for_workflow(self, workflow_id: str) -> tuple[list[Review], float, int]:
        """Reviews newest first with the average rating and count."""
        await self._ensure_workflow(workflow_id)
        result = await self.db.execute(
            select(Review)
            .where(Review.workflow_id == workflow_id)
            .order_by(Review.created_at.desc())
        )
        reviews = list(result.scalars().all())
        return reviews, average_rating(r.rating for r in reviews), len(reviews)

    async def rating_summaries(self, workflow_ids: Iterable[str]) -> dict[str, tuple[float, int]]:
        """Map workflow id to (average rating, review count) for a page of listings."""
        ids = list(workflow_ids)
        if not ids:
            return {}
        result = await self.db.execute(
            select(Review.workflow_id, Review.rating).where(Review.workflow_id.in_(ids))
        )
        grouped: dict[str, list[int]] = defaultdict(list)
        for workflow_id, rating in result.all():
            grouped[workflow_id].append(rating)
        return {wid: (average_rating(grouped[wid]), len(grouped[wid])) for wid in ids}

    # ─── Write ─────────────────────────────────────────────

    async def create_review(
        self,
        workflow_id: str,
        user: CurrentUser,
        rating: int,
        review_text: Optional[str] = None,
    ) -> Review:
        """Create the caller's review of a workflow.

        Raises:
            NotFound: Unknown workflow
            AuthorizationDenied: No completed purchase of the workflow
            ConflictAlreadyExists: The caller already reviewed it, including
                when a concurrent request wins the unique constraint
        """
        await self._ensure_workflow(workflow_id)

        if not await PurchaseService(self.db).has_completed_purchase(workflow_id, user.id):
            raise AuthorizationDenied("You must purchase this workflow before reviewing it")

        existing = await self.db.execute(
            select(Review.id).where(Review.workflow_id == workflow_id, Review.user_id == user.id)
        )
        if existing.first() is not None:
            raise ConflictAlreadyExists(ALREADY_REVIEWED)

        review = Review(
            workflow_id=workflow_id,
            user_id=user.id,
            rating=rating,
            review_text=review_text,
        )
        self.db.add(review)
        try:
            await self.db.flush()
        except IntegrityError:
            await self.db.rollback()
            logger.info(f"Concurrent duplicate review rejected: workflow={workflow_id} user={user.id}")
            raise ConflictAlreadyExists(ALREADY_REVIEWED)

        return await self._load(review.id)

    async def update_review(
        self,
        review_id: str,
        user: CurrentUser,
        rating: Optional[int] = None,
        review_text: Optional[str] = None,
    ) -> Review:
        """Edit a review. Author or admin only."""
        review = await self._load(review_id)
        ensure_owner_or_admin(review.user_id, user, "review")
        await self.apply(review, {"rating": rating, "review_text": review_text})
        return await self._load(review.id)

    async def delete_review(self, review_id: str, user: CurrentUser) -> None:
        """Delete a review. Author or admin only."""
        review = await self._load(review_id)
        ensure_owner_or_admin(review.user_id, user, "review")
        await self.db.delete(review)
        await self.db.flush()
