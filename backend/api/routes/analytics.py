"""Analytics endpoints."""

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from api.schemas.analytics import AnalyticsDashboardResponse
from app.dependencies import get_db
from core.constants import DEFAULT_ANALYTICS_PERIOD, Role
from core.rbac import require_any_role
from core.security import CurrentUser
from services.analytics_service import AnalyticsService

router = APIRouter(tags=["analytics"])


@router.get("/dashboard", response_model=AnalyticsDashboardResponse)
async def get_dashboard(
    period: str = Query(
        DEFAULT_ANALYTICS_PERIOD,
        pattern="^(7d|30d|90d|1y)$",
        description="Look-back window: 7d, 30d, 90d or 1y",
    ),
    current_user: CurrentUser = Depends(require_any_role(Role.ADMIN, Role.DEVELOPER)),
    db: AsyncSession = Depends(get_db),
) -> AnalyticsDashboardResponse:
    """
    Marketplace activity for the dashboard charts.

    Admins see the whole marketplace. Developers see only their own
    listings and the sales and reviews those listings received.

    Returns:
        Per-day series for new listings, completed sales and ratings,
        the most used tags, the top listings and period totals
    """
    owner_id = None if current_user.is_admin else current_user.id
    data = await AnalyticsService(db).dashboard(period=period, owner_id=owner_id)
    return AnalyticsDashboardResponse(**data)
