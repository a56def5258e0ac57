"""Purchase endpoints — ownership check, purchase history, receipts."""

from typing import Optional

from fastapi import APIRouter, Depends
from fastapi.responses import HTMLResponse
from sqlalchemy.ext.asyncio import AsyncSession

from api.schemas.purchase import PurchaseCheckResponse, PurchaseResponse
from app.dependencies import get_current_active_user, get_db, get_optional_user
from core.security import CurrentUser
from db.models.purchase import Purchase
from services.purchase_service import PurchaseService, render_receipt

router = APIRouter(tags=["purchases"])


def _purchase_to_response(purchase: Purchase) -> PurchaseResponse:
    return PurchaseResponse(
        id=purchase.id,
        workflow_id=purchase.workflow_id,
        workflow_name=purchase.workflow.name if purchase.workflow else None,
        amount=float(purchase.amount),
        currency=purchase.currency,
        status=purchase.status,
        created_at=purchase.created_at,
    )


@router.get("/check/{workflow_id}", response_model=PurchaseCheckResponse)
async def check_purchase(
    workflow_id: str,
    current_user: Optional[CurrentUser] = Depends(get_optional_user),
    db: AsyncSession = Depends(get_db),
) -> PurchaseCheckResponse:
    """Whether the caller owns a completed purchase. Anonymous callers get false."""
    if current_user is None:
        return PurchaseCheckResponse(has_purchased=False)
    has = await PurchaseService(db).has_completed_purchase(workflow_id, current_user.id)
    return PurchaseCheckResponse(has_purchased=has)


@router.get("/me", response_model=list[PurchaseResponse])
async def my_purchases(
    current_user: CurrentUser = Depends(get_current_active_user),
    db: AsyncSession = Depends(get_db),
) -> list[PurchaseResponse]:
    """The caller's completed purchases, newest first."""
    purchases = await PurchaseService(db).list_completed_for_buyer(current_user.id)
    return [_purchase_to_response(p) for p in purchases]


@router.get("/{purchase_id}/receipt", response_class=HTMLResponse)
async def purchase_receipt(
    purchase_id: str,
    current_user: CurrentUser = Depends(get_current_active_user),
    db: AsyncSession = Depends(get_db),
) -> HTMLResponse:
    """HTML receipt, for the buyer or an admin."""
    purchase = await PurchaseService(db).get_for_receipt(purchase_id, current_user)
    return HTMLResponse(
        content=render_receipt(purchase),
        headers={"Content-Disposition": f'attachment; filename="receipt-{purchase.id}.html"'},
    )
