"""Analytics service — marketplace activity over a look-back period."""

import logging
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Any, Optional

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from core.constants import (
    ANALYTICS_PERIODS,
    ANALYTICS_TOP_LIMIT,
    DEFAULT_ANALYTICS_PERIOD,
    PurchaseStatus,
    WorkflowStatus,
)
from db.base import utcnow
from db.models.purchase import Purchase
from db.models.review import Review
from db.models.tag import Tag, workflow_tags
from db.models.user import User
from db.models.workflow import Workflow
from services.review_service import rating_mean

logger = logging.getLogger(__name__)


def period_start(period: str, now: Optional[datetime] = None) -> datetime:
    """Start of the look-back window; unknown periods fall back to 30 days."""
    days = ANALYTICS_PERIODS.get(period, ANALYTICS_PERIODS[DEFAULT_ANALYTICS_PERIOD])
    return (now or utcnow()) - timedelta(days=days)


def _day(value: Any) -> str:
    # SQLite returns date() as text, PostgreSQL as a date
    return value if isinstance(value, str) else value.isoformat()


class AnalyticsService:
    """Dashboard aggregates.

    With ``owner_id`` every figure is restricted to that developer's
    listings; without it the whole marketplace is counted.
    """

    def __init__(self, db: AsyncSession):
        self.db = db

    def _scope(self, owner_id: Optional[str]) -> list:
        conditions = [Workflow.is_deleted == False]  # noqa: E712
        if owner_id is not None:
            conditions.append(Workflow.user_id == owner_id)
        return conditions

    async def dashboard(self, period: str = DEFAULT_ANALYTICS_PERIOD, owner_id: Optional[str] = None) -> dict:
        start = period_start(period)
        scope = self._scope(owner_id)

        workflows_over_time = await self._workflows_per_day(start, scope)
        sales_over_time = await self._sales_per_day(start, scope)
        ratings_over_time = await self._ratings_per_day(start, scope)

        total_sales = sum((Decimal(str(row["amount"])) for row in sales_over_time), Decimal("0"))
        rating_totals = await self.db.execute(
            select(func.coalesce(func.sum(Review.rating), 0), func.count(Review.id))
            .select_from(Review)
            .join(Workflow, Workflow.id == Review.workflow_id)
            .where(Review.created_at >= start, *scope)
        )
        rating_total, rating_count = rating_totals.one()

        logger.debug(f"Analytics dashboard built: period={period} owner={owner_id or 'all'}")
        return {
            "workflows_over_time": workflows_over_time,
            "sales_over_time": sales_over_time,
            "ratings_over_time": ratings_over_time,
            "popular_categories": await self._popular_tags(scope),
            "top_workflows": await self._top_workflows(start, scope),
            "summary": {
                "total_workflows": sum(row["count"] for row in workflows_over_time),
                "total_sales": float(total_sales),
                "average_rating": rating_mean(rating_total, rating_count),
                "period": period,
            },
        }

    async def _workflows_per_day(self, start: datetime, scope: list) -> list[dict]:
        day = func.date(Workflow.created_at)
        result = await self.db.execute(
            select(day, func.count(Workflow.id))
            .select_from(Workflow)
            .where(Workflow.created_at >= start, *scope)
            .group_by(day)
            .order_by(day)
        )
        return [{"date": _day(d), "count": count} for d, count in result.all()]

    async def _sales_per_day(self, start: datetime, scope: list) -> list[dict]:
        day = func.date(Purchase.created_at)
        result = await self.db.execute(
            select(day, func.sum(Purchase.amount))
            .select_from(Purchase)
            .join(Workflow, Workflow.id == Purchase.workflow_id)
            .where(
                Purchase.created_at >= start,
                Purchase.status == PurchaseStatus.COMPLETED.value,
                *scope,
            )
            .group_by(day)
            .order_by(day)
        )
        return [{"date": _day(d), "amount": float(amount or 0)} for d, amount in result.all()]

    async def _ratings_per_day(self, start: datetime, scope: list) -> list[dict]:
        day = func.date(Review.created_at)
        result = await self.db.execute(
            select(day, func.sum(Review.rating), func.count(Review.id))
            .select_from(Review)
            .join(Workflow, Workflow.id == Review.workflow_id)
            .where(Review.created_at >= start, *scope)
            .group_by(day)
            .order_by(day)
        )
        return [
            {"date": _day(d), "rating": rating_mean(total, count)}
            for d, total, count in result.all()
        ]

    async def _popular_tags(self, scope: list) -> list[dict]:
        uses = func.count(Workflow.id)
        result = await self.db.execute(
            select(Tag.name, uses)
            .select_from(Tag)
            .join(workflow_tags, workflow_tags.c.tag_id == Tag.id)
            .join(Workflow, Workflow.id == workflow_tags.c.workflow_id)
            .where(*scope)
            .group_by(Tag.name)
            .order_by(uses.desc(), Tag.name)
            .limit(ANALYTICS_TOP_LIMIT)
        )
        return [{"name": name, "count": count} for name, count in result.all()]

    async def _top_workflows(self, start: datetime, scope: list) -> list[dict]:
        """Approved listings from the period, most downloaded first."""
        sales = (
            select(Purchase.workflow_id, func.count(Purchase.id).label("purchases"))
            .where(Purchase.status == PurchaseStatus.COMPLETED.value)
            .group_by(Purchase.workflow_id)
            .subquery()
        )
        ratings = (
            select(
                Review.workflow_id,
                func.sum(Review.rating).label("rating_total"),
                func.count(Review.id).label("review_count"),
            )
            .group_by(Review.workflow_id)
            .subquery()
        )
        purchases = func.coalesce(sales.c.purchases, 0)
        result = await self.db.execute(
            select(
                Workflow.id,
                Workflow.name,
                User.name,
                Workflow.downloads,
                purchases,
                func.coalesce(ratings.c.rating_total, 0),
                func.coalesce(ratings.c.review_count, 0),
            )
            .select_from(Workflow)
            .join(User, User.id == Workflow.user_id)
            .outerjoin(sales, sales.c.workflow_id == Workflow.id)
            .outerjoin(ratings, ratings.c.workflow_id == Workflow.id)
            .where(
                Workflow.status == WorkflowStatus.APPROVED.value,
                Workflow.created_at >= start,
                *scope,
            )
            .order_by(Workflow.downloads.desc(), purchases.desc(), Workflow.created_at.desc())
            .limit(ANALYTICS_TOP_LIMIT)
        )
        return [
            {
                "id": workflow_id,
                "name": name,
                "creator": creator,
                "downloads": downloads,
                "purchases": purchase_count,
                "average_rating": rating_mean(rating_total, review_count),
                "total_reviews": review_count,
            }
            for workflow_id, name, creator, downloads, purchase_count, rating_total, review_count in result.all()
        ]
