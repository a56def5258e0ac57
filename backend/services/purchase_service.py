"""Purchase service — checkout bookkeeping and payment reconciliation.

``complete_purchase`` applies a verified "payment completed" event:
the purchase is recorded as COMPLETED, the workflow's download counter
is bumped, and the seller's earnings row is written, all in the caller's
transaction. The processor's checkout session id is the idempotency
key; it is unique at the storage layer, so redelivered events (even
concurrent ones) land as a no-op.
"""

import html
import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Optional

from sqlalchemy import func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from core.constants import (
    EarningsStatus,
    PurchaseStatus,
    ReconcileOutcome,
    SELLER_SHARE,
)
from core.exceptions import NotFound
from core.rbac import ensure_owner_or_admin
from core.security import CurrentUser
from db.models.earnings import Earnings
from db.models.purchase import Purchase
from db.models.user import User
from db.models.workflow import Workflow
from services.base import BaseService

logger = logging.getLogger(__name__)

CENTS = Decimal("0.01")


def to_major_units(amount_minor: Optional[int]) -> Decimal:
    """Convert processor minor units (cents) to a currency amount."""
    if not amount_minor:
        return Decimal("0.00")
    return (Decimal(int(amount_minor)) / Decimal(100)).quantize(CENTS)


def to_minor_units(amount: Decimal) -> int:
    """Convert a price to processor minor units, rounding to the nearest cent."""
    return int((Decimal(amount) * 100).quantize(Decimal("1")))


def seller_share(amount: Decimal) -> Decimal:
    """The seller's 70% of a sale, kept to a tenth of a cent."""
    return (Decimal(amount) * SELLER_SHARE).quantize(Decimal("0.001"))


@dataclass
class ReconcileResult:
    """What applying one payment event did."""
    outcome: ReconcileOutcome
    purchase: Optional[Purchase] = None
    earnings: Optional[Earnings] = None
    buyer: Optional[User] = None
    workflow: Optional[Workflow] = None
    reason: str = ""


class PurchaseService(BaseService[Purchase]):
    """Service for purchases and seller earnings."""

    def __init__(self, db: AsyncSession):
        super().__init__(Purchase, db)

    # ─── Queries ───────────────────────────────────────────

    async def has_completed_purchase(self, workflow_id: str, buyer_id: str) -> bool:
        result = await self.db.execute(
            select(func.count()).select_from(Purchase).where(
                Purchase.workflow_id == workflow_id,
                Purchase.buyer_id == buyer_id,
                Purchase.status == PurchaseStatus.COMPLETED.value,
            )
        )
        return (result.scalar() or 0) > 0

    async def get_by_external_id(self, external_id: str) -> Optional[Purchase]:
        result = await self.db.execute(
            select(Purchase)
            .where(Purchase.external_transaction_id == external_id)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def list_completed_for_buyer(self, buyer_id: str) -> list[Purchase]:
        result = await self.db.execute(
            select(Purchase)
            .where(
                Purchase.buyer_id == buyer_id,
                Purchase.status == PurchaseStatus.COMPLETED.value,
            )
            .order_by(Purchase.created_at.desc())
        )
        return list(result.scalars().all())

    async def get_for_receipt(self, purchase_id: str, user: CurrentUser) -> Purchase:
        """A purchase visible to its buyer or an admin."""
        purchase = await self.get_by_id(purchase_id)
        if purchase is None:
            raise NotFound("Purchase not found")
        ensure_owner_or_admin(purchase.buyer_id, user, "purchase")
        return purchase

    async def earnings_for_developer(self, developer_id: str) -> tuple[list[Earnings], dict[str, Decimal]]:
        """Earnings rows newest first plus totals per payout status."""
        result = await self.db.execute(
            select(Earnings)
            .where(Earnings.developer_id == developer_id)
            .order_by(Earnings.created_at.desc())
        )
        rows = list(result.scalars().all())
        totals = {status.value: Decimal("0.000") for status in EarningsStatus}
        for row in rows:
            totals[row.status] = totals.get(row.status, Decimal("0.000")) + Decimal(row.amount)
        return rows, totals

    # ─── Checkout ──────────────────────────────────────────

    async def record_checkout(
        self,
        session_id: str,
        workflow_id: str,
        buyer_id: str,
        amount: Decimal,
        currency: str,
    ) -> Purchase:
        """Record a PENDING purchase for a checkout session just opened."""
        return await self.create({
            "external_transaction_id": session_id,
            "workflow_id": workflow_id,
            "buyer_id": buyer_id,
            "amount": amount,
            "currency": currency,
            "status": PurchaseStatus.PENDING.value,
        })

    # ─── Reconciliation ────────────────────────────────────

    async def complete_purchase(
        self,
        session_id: Optional[str],
        workflow_id: Optional[str],
        buyer_id: Optional[str],
        amount_total: Optional[int],
        currency: Optional[str] = None,
        payment_intent_id: Optional[str] = None,
    ) -> ReconcileResult:
        """Apply a verified payment-completed event exactly once.

        Does not commit. A replay of an already applied session returns
        ``DUPLICATE`` and writes nothing.
        """
        if not session_id:
            logger.error("Payment event without a checkout session id ignored")
            return ReconcileResult(ReconcileOutcome.IGNORED, reason="missing session id")

        amount = to_major_units(amount_total)
        if amount == 0:
            # Accepted on purpose; a paid checkout should never report zero
            logger.warning(
                f"Payment event with zero or missing amount: session={session_id} amount_total={amount_total!r}"
            )

        existing = await self.get_by_external_id(session_id)
        if existing is not None:
            workflow_id = workflow_id or existing.workflow_id
            buyer_id = buyer_id or existing.buyer_id

        if not workflow_id or not buyer_id:
            logger.error(f"Payment event without workflow/buyer metadata ignored: session={session_id}")
            return ReconcileResult(ReconcileOutcome.IGNORED, reason="missing metadata")

        workflow = await self.db.get(Workflow, workflow_id)
        buyer = await self.db.get(User, buyer_id)
        if workflow is None or buyer is None:
            logger.error(
                f"Payment event for unknown workflow or buyer ignored: session={session_id} "
                f"workflow={workflow_id} buyer={buyer_id}"
            )
            return ReconcileResult(ReconcileOutcome.IGNORED, reason="unknown workflow or buyer")

        if existing is not None:
            if existing.status != PurchaseStatus.PENDING.value:
                if existing.status == PurchaseStatus.FAILED.value:
                    logger.warning(f"Completion event for FAILED purchase ignored: session={session_id}")
                    return ReconcileResult(ReconcileOutcome.IGNORED, purchase=existing, reason="purchase failed")
                logger.info(f"Duplicate payment event ignored: session={session_id}")
                return ReconcileResult(ReconcileOutcome.DUPLICATE, purchase=existing)

            # Conditional transition so only one concurrent delivery wins
            result = await self.db.execute(
                update(Purchase)
                .where(
                    Purchase.id == existing.id,
                    Purchase.status == PurchaseStatus.PENDING.value,
                )
                .values(
                    status=PurchaseStatus.COMPLETED.value,
                    amount=amount,
                    currency=currency or existing.currency,
                    payment_intent_id=payment_intent_id,
                )
                .execution_options(synchronize_session=False)
            )
            if result.rowcount == 0:
                logger.info(f"Duplicate payment event ignored: session={session_id}")
                return ReconcileResult(ReconcileOutcome.DUPLICATE, purchase=existing)
            purchase = await self.get_by_external_id(session_id)
        else:
            purchase = Purchase(
                external_transaction_id=session_id,
                workflow_id=workflow_id,
                buyer_id=buyer_id,
                amount=amount,
                currency=currency or "usd",
                status=PurchaseStatus.COMPLETED.value,
                payment_intent_id=payment_intent_id,
            )
            self.db.add(purchase)
            try:
                await self.db.flush()
            except IntegrityError:
                await self.db.rollback()
                logger.info(f"Concurrent duplicate payment event ignored: session={session_id}")
                return ReconcileResult(ReconcileOutcome.DUPLICATE)

        await self.increment_downloads(workflow_id)

        earnings = Earnings(
            purchase_id=purchase.id,
            developer_id=workflow.user_id,
            amount=seller_share(amount),
            status=EarningsStatus.PENDING.value,
        )
        self.db.add(earnings)
        await self.db.flush()

        logger.info(
            f"Purchase completed: purchase={purchase.id} workflow={workflow_id} buyer={buyer_id} "
            f"amount={amount} earnings={earnings.amount}"
        )
        return ReconcileResult(
            ReconcileOutcome.CREATED,
            purchase=purchase,
            earnings=earnings,
            buyer=buyer,
            workflow=workflow,
        )

    async def mark_failed(self, workflow_id: Optional[str], buyer_id: Optional[str]) -> int:
        """Move the pair's PENDING purchases to FAILED. COMPLETED ones are untouched."""
        if not workflow_id or not buyer_id:
            logger.warning("Payment failure event without workflow/buyer metadata ignored")
            return 0
        result = await self.db.execute(
            update(Purchase)
            .where(
                Purchase.workflow_id == workflow_id,
                Purchase.buyer_id == buyer_id,
                Purchase.status == PurchaseStatus.PENDING.value,
            )
            .values(status=PurchaseStatus.FAILED.value)
            .execution_options(synchronize_session=False)
        )
        logger.info(f"Marked {result.rowcount} purchase(s) FAILED: workflow={workflow_id} buyer={buyer_id}")
        return result.rowcount

    async def increment_downloads(self, workflow_id: str) -> None:
        """Atomic ``downloads = downloads + 1`` in the database."""
        await self.db.execute(
            update(Workflow)
            .where(Workflow.id == workflow_id)
            .values(downloads=Workflow.downloads + 1)
            .execution_options(synchronize_session=False)
        )


def render_receipt(purchase: Purchase) -> str:
    """HTML receipt for a purchase."""
    workflow_name = html.escape(purchase.workflow.name if purchase.workflow else "Workflow")
    buyer = purchase.buyer
    buyer_line = html.escape(buyer.name or buyer.email) if buyer else ""
    date = purchase.created_at.strftime("%Y-%m-%d") if purchase.created_at else ""
    return f"""<!DOCTYPE html>
<html>
<head><meta charset="utf-8"><title>Receipt {purchase.id}</title></head>
<body style="font-family: sans-serif; max-width: 600px; margin: 40px auto; color: #333;">
  <h1>Workflow Marketplace</h1>
  <h2>Receipt</h2>
  <table style="width: 100%; border-collapse: collapse;">
    <tr><td>Receipt #</td><td>{purchase.id}</td></tr>
    <tr><td>Date</td><td>{date}</td></tr>
    <tr><td>Billed to</td><td>{buyer_line}</td></tr>
    <tr><td>Item</td><td>{workflow_name}</td></tr>
    <tr><td>Status</td><td>{purchase.status}</td></tr>
    <tr><td><strong>Total</strong></td><td><strong>{Decimal(purchase.amount):.2f} {purchase.currency.upper()}</strong></td></tr>
  </table>
</body>
</html>
"""
