"""Stripe payment integration.

Runs in simulated mode when no secret key is configured, so checkout
works on a developer machine. Webhook signatures are always verified
with the Stripe SDK against STRIPE_WEBHOOK_SECRET.
"""

import asyncio
import json
import logging
import uuid
from dataclasses import dataclass
from decimal import Decimal
from typing import Optional

import stripe

from app.config import get_settings
from core.exceptions import UpstreamFailure, ValidationFailed
from services.purchase_service import to_minor_units

logger = logging.getLogger(__name__)


class WebhookVerificationError(Exception):
    """The webhook body could not be authenticated or parsed."""


@dataclass
class CheckoutSession:
    id: str
    url: str
    simulated: bool = False


class PaymentGateway:
    """Stripe checkout sessions and webhook verification."""

    def __init__(
        self,
        secret_key: str = "",
        webhook_secret: str = "",
        tolerance: int = 300,
        currency: str = "usd",
        public_base_url: str = "http://localhost:3000",
    ):
        self.secret_key = secret_key
        self.webhook_secret = webhook_secret
        self.tolerance = tolerance
        self.currency = currency
        self.public_base_url = public_base_url.rstrip("/")
        self._simulated = not secret_key

        if not self._simulated:
            logger.info(
                "Stripe client initialized (mode=%s)",
                "test" if secret_key.startswith("sk_test_") else "live",
            )

    @property
    def simulated(self) -> bool:
        return self._simulated

    async def create_checkout_session(
        self,
        workflow_id: str,
        workflow_name: str,
        description: str,
        unit_amount: int,
        buyer_id: str,
        buyer_email: Optional[str] = None,
    ) -> CheckoutSession:
        """Open a hosted checkout for one workflow.

        The workflow and buyer ids travel as metadata on both the session
        and its payment intent, so success and failure events can be
        attributed.

        Raises:
            UpstreamFailure: If Stripe rejects or cannot be reached
        """
        metadata = {"workflow_id": workflow_id, "buyer_id": buyer_id}
        success_url = f"{self.public_base_url}/purchase/success?session_id={{CHECKOUT_SESSION_ID}}"
        cancel_url = f"{self.public_base_url}/workflows/{workflow_id}"

        if self._simulated:
            session_id = f"cs_sim_{uuid.uuid4().hex[:24]}"
            logger.info(f"Simulated checkout session {session_id} for workflow={workflow_id}")
            return CheckoutSession(
                id=session_id,
                url=success_url.replace("{CHECKOUT_SESSION_ID}", session_id),
                simulated=True,
            )

        params = dict(
            api_key=self.secret_key,
            mode="payment",
            payment_method_types=["card"],
            line_items=[{
                "price_data": {
                    "currency": self.currency,
                    "product_data": {
                        "name": workflow_name,
                        "description": description[:500],
                    },
                    "unit_amount": unit_amount,
                },
                "quantity": 1,
            }],
            metadata=metadata,
            payment_intent_data={"metadata": metadata},
            success_url=success_url,
            cancel_url=cancel_url,
        )
        if buyer_email:
            params["customer_email"] = buyer_email

        try:
            # The Stripe client is synchronous; keep it off the event loop
            loop = asyncio.get_running_loop()
            session = await loop.run_in_executor(
                None, lambda: stripe.checkout.Session.create(**params)
            )
        except stripe.StripeError as e:
            logger.error(f"Stripe checkout session creation failed: {e}")
            raise UpstreamFailure("Payment processor error")

        return CheckoutSession(id=session.id, url=session.url)

    def construct_event(self, payload: bytes, signature_header: Optional[str]) -> dict:
        """Verify the ``Stripe-Signature`` header and return the parsed event.

        Raises:
            WebhookVerificationError: Missing secret or header, bad or stale
                signature, or a body that is not a JSON event
        """
        if not self.webhook_secret:
            raise WebhookVerificationError("Webhook secret not configured")
        if not signature_header:
            raise WebhookVerificationError("Missing Stripe-Signature header")

        try:
            text = payload.decode("utf-8")
            stripe.WebhookSignature.verify_header(
                text, signature_header, self.webhook_secret, self.tolerance
            )
            event = json.loads(text)
        except stripe.SignatureVerificationError as e:
            raise WebhookVerificationError(f"Invalid signature: {e}")
        except (UnicodeDecodeError, json.JSONDecodeError) as e:
            raise WebhookVerificationError(f"Invalid payload: {e}")

        if not isinstance(event, dict) or "type" not in event:
            raise WebhookVerificationError("Invalid payload: not an event")
        return event


def price_to_unit_amount(price: Decimal) -> int:
    """Price in minor units; free listings cannot go through checkout."""
    unit_amount = to_minor_units(price)
    if unit_amount <= 0:
        raise ValidationFailed("Free workflows cannot be purchased through checkout")
    return unit_amount


_gateway: Optional[PaymentGateway] = None


def get_payment_gateway() -> PaymentGateway:
    """FastAPI dependency returning the configured gateway."""
    global _gateway
    if _gateway is None:
        settings = get_settings()
        _gateway = PaymentGateway(
            secret_key=settings.STRIPE_SECRET_KEY,
            webhook_secret=settings.STRIPE_WEBHOOK_SECRET,
            tolerance=settings.STRIPE_WEBHOOK_TOLERANCE,
            currency=settings.CURRENCY,
            public_base_url=settings.PUBLIC_BASE_URL,
        )
    return _gateway
