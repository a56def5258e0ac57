"""Checkout endpoint — opens a payment session for one workflow."""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession
import logging

from api.schemas.purchase import CheckoutRequest, CheckoutResponse
from app.dependencies import get_current_active_user, get_db
from core.constants import WorkflowStatus
from core.exceptions import ConflictAlreadyExists, NotFound
from core.security import CurrentUser
from services.payment_gateway import PaymentGateway, get_payment_gateway, price_to_unit_amount
from services.purchase_service import PurchaseService
from services.workflow_service import WorkflowService

logger = logging.getLogger(__name__)

router = APIRouter(tags=["checkout"])


@router.post("/", response_model=CheckoutResponse)
async def create_checkout(
    request: CheckoutRequest,
    current_user: CurrentUser = Depends(get_current_active_user),
    db: AsyncSession = Depends(get_db),
    gateway: PaymentGateway = Depends(get_payment_gateway),
) -> CheckoutResponse:
    """
    Start buying an approved workflow. The purchase is recorded as
    PENDING and completed by the payment webhook.
    """
    workflow = await WorkflowService(db).get_or_404(request.workflow_id)
    if workflow.status != WorkflowStatus.APPROVED.value:
        raise NotFound("Workflow not found")

    purchases = PurchaseService(db)
    if await purchases.has_completed_purchase(workflow.id, current_user.id):
        raise ConflictAlreadyExists("You have already purchased this workflow")

    session = await gateway.create_checkout_session(
        workflow_id=workflow.id,
        workflow_name=workflow.name,
        description=workflow.description,
        unit_amount=price_to_unit_amount(workflow.price),
        buyer_id=current_user.id,
        buyer_email=current_user.email,
    )
    await purchases.record_checkout(
        session_id=session.id,
        workflow_id=workflow.id,
        buyer_id=current_user.id,
        amount=workflow.price,
        currency=gateway.currency,
    )
    logger.info(f"Checkout opened: session={session.id} workflow={workflow.id} buyer={current_user.id}")
    return CheckoutResponse(session_id=session.id, url=session.url, simulated=session.simulated)
