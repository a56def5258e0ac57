"""Seller earnings endpoints."""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from api.schemas.purchase import EarningsResponse, EarningsSummaryResponse
from app.dependencies import get_db
from core.constants import Role
from core.rbac import require_role
from core.security import CurrentUser
from services.purchase_service import PurchaseService

router = APIRouter(tags=["earnings"])


@router.get("/me", response_model=EarningsSummaryResponse)
async def my_earnings(
    current_user: CurrentUser = Depends(require_role(Role.DEVELOPER)),
    db: AsyncSession = Depends(get_db),
) -> EarningsSummaryResponse:
    """The calling developer's earnings and totals per payout status."""
    rows, totals = await PurchaseService(db).earnings_for_developer(current_user.id)
    return EarningsSummaryResponse(
        earnings=[
            EarningsResponse(
                id=e.id,
                purchase_id=e.purchase_id,
                amount=float(e.amount),
                status=e.status,
                created_at=e.created_at,
            )
            for e in rows
        ],
        totals={status: float(total) for status, total in totals.items()},
    )
