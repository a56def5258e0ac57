"""Payment processor webhooks.

Error policy:
- Missing or invalid signature: 400, nothing is processed.
- Database unavailable (OperationalError): 503 so Stripe redelivers.
- Any other processing error: logged with traceback and acknowledged
  with 200 ``processed: false``. Redelivering a payload that trips a bug
  would fail the same way every time.
"""

from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Request, status
from sqlalchemy.exc import OperationalError
from sqlalchemy.ext.asyncio import AsyncSession
import logging

from api.schemas.purchase import WebhookAck
from app.dependencies import get_db
from core.constants import (
    EVENT_CHECKOUT_COMPLETED,
    EVENT_PAYMENT_FAILED,
    EVENT_PAYMENT_SUCCEEDED,
    ReconcileOutcome,
)
from core.exceptions import UpstreamFailure
from notifications.manager import get_notification_manager
from services.payment_gateway import PaymentGateway, WebhookVerificationError, get_payment_gateway
from services.purchase_service import PurchaseService, ReconcileResult

logger = logging.getLogger(__name__)

router = APIRouter(tags=["webhooks"])


def _metadata(obj: dict[str, Any]) -> tuple[Any, Any]:
    metadata = obj.get("metadata") or {}
    return metadata.get("workflow_id"), metadata.get("buyer_id")


async def _send_confirmation(result: ReconcileResult) -> None:
    """Best effort; a failed email never fails the webhook."""
    try:
        await get_notification_manager().send_purchase_confirmation(
            email=result.buyer.email,
            name=result.buyer.name,
            workflow_name=result.workflow.name,
            amount=result.purchase.amount,
            purchase_id=result.purchase.id,
            user_id=result.buyer.id,
        )
    except Exception:
        logger.warning("Purchase confirmation email failed", exc_info=True)


async def _handle_event(event: dict, db: AsyncSession) -> WebhookAck:
    event_type = event.get("type")
    obj = (event.get("data") or {}).get("object") or {}

    if event_type == EVENT_CHECKOUT_COMPLETED:
        workflow_id, buyer_id = _metadata(obj)
        result = await PurchaseService(db).complete_purchase(
            session_id=obj.get("id"),
            workflow_id=workflow_id,
            buyer_id=buyer_id,
            amount_total=obj.get("amount_total"),
            currency=obj.get("currency"),
            payment_intent_id=obj.get("payment_intent"),
        )
        await db.commit()
        if result.outcome == ReconcileOutcome.CREATED:
            await _send_confirmation(result)
        return WebhookAck(outcome=result.outcome.value)

    if event_type == EVENT_PAYMENT_FAILED:
        workflow_id, buyer_id = _metadata(obj)
        updated = await PurchaseService(db).mark_failed(workflow_id, buyer_id)
        await db.commit()
        return WebhookAck(outcome="failed" if updated else ReconcileOutcome.IGNORED.value)

    if event_type == EVENT_PAYMENT_SUCCEEDED:
        # Fulfilment happens on checkout.session.completed
        logger.info(f"Payment intent succeeded: {obj.get('id')}")
        return WebhookAck(outcome=ReconcileOutcome.IGNORED.value)

    logger.info(f"Unhandled Stripe event type ignored: {event_type}")
    return WebhookAck(outcome=ReconcileOutcome.IGNORED.value)


@router.post("/stripe", response_model=WebhookAck)
async def stripe_webhook(
    request: Request,
    db: AsyncSession = Depends(get_db),
    gateway: PaymentGateway = Depends(get_payment_gateway),
) -> WebhookAck:
    """Receive a signed Stripe event."""
    payload = await request.body()
    try:
        event = gateway.construct_event(payload, request.headers.get("Stripe-Signature"))
    except WebhookVerificationError as e:
        logger.warning(f"Rejected Stripe webhook: {e}")
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid webhook signature")

    logger.info(f"Stripe event received: id={event.get('id')} type={event.get('type')}")
    try:
        return await _handle_event(event, db)
    except OperationalError as e:
        await db.rollback()
        logger.error(f"Database unavailable while processing Stripe event {event.get('id')}: {e}")
        raise UpstreamFailure("Database unavailable, retry later", transient=True)
    except Exception:
        await db.rollback()
        logger.exception(f"Stripe event {event.get('id')} could not be processed")
        return WebhookAck(processed=False, outcome="error")
