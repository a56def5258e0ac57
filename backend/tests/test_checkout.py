"""Tests for opening checkout sessions."""

from decimal import Decimal
from types import SimpleNamespace

import pytest
import stripe
from sqlalchemy import select

from conftest import auth_headers
from core.constants import PurchaseStatus, WorkflowStatus
from core.exceptions import ValidationFailed
from db.models.purchase import Purchase
from services.payment_gateway import PaymentGateway, get_payment_gateway, price_to_unit_amount


@pytest.mark.unit
class TestUnitAmount:

    def test_price_in_cents(self):
        assert price_to_unit_amount(Decimal("29.99")) == 2999
        assert price_to_unit_amount(Decimal("5")) == 500

    def test_free_listing_rejected(self):
        with pytest.raises(ValidationFailed):
            price_to_unit_amount(Decimal("0"))


@pytest.mark.integration
class TestSimulatedCheckout:

    async def test_opens_session_and_records_pending_purchase(self, client, db_session, workflow, buyer):
        resp = await client.post(
            "/api/v1/checkout/", json={"workflow_id": workflow.id}, headers=auth_headers(buyer)
        )
        assert resp.status_code == 200
        data = resp.json()
        assert data["simulated"] is True
        assert data["session_id"].startswith("cs_sim_")
        assert data["session_id"] in data["url"]

        purchase = await db_session.scalar(
            select(Purchase).where(Purchase.external_transaction_id == data["session_id"])
        )
        assert purchase.status == PurchaseStatus.PENDING.value
        assert purchase.amount == Decimal("29.99")
        assert purchase.buyer_id == buyer.id

    async def test_requires_authentication(self, client, workflow):
        resp = await client.post("/api/v1/checkout/", json={"workflow_id": workflow.id})
        assert resp.status_code == 401

    async def test_unapproved_workflow_not_found(self, client, make_workflow, buyer):
        pending = await make_workflow(status=WorkflowStatus.PENDING)
        resp = await client.post(
            "/api/v1/checkout/", json={"workflow_id": pending.id}, headers=auth_headers(buyer)
        )
        assert resp.status_code == 404

    async def test_already_purchased(self, client, workflow, buyer, completed_purchase):
        resp = await client.post(
            "/api/v1/checkout/", json={"workflow_id": workflow.id}, headers=auth_headers(buyer)
        )
        assert resp.status_code == 409

    async def test_free_workflow(self, client, make_workflow, buyer):
        free = await make_workflow(price=Decimal("0"))
        resp = await client.post(
            "/api/v1/checkout/", json={"workflow_id": free.id}, headers=auth_headers(buyer)
        )
        assert resp.status_code == 422


@pytest.mark.integration
class TestStripeCheckout:

    @pytest.fixture
    def live_gateway(self, app):
        gateway = PaymentGateway(secret_key="sk_test_123", webhook_secret="whsec_x")
        app.dependency_overrides[get_payment_gateway] = lambda: gateway
        return gateway

    async def test_session_carries_metadata(self, client, live_gateway, workflow, buyer, monkeypatch):
        captured = {}

        def fake_create(**params):
            captured.update(params)
            return SimpleNamespace(id="cs_test_live", url="https://checkout.stripe.com/c/pay/cs_test_live")

        monkeypatch.setattr(stripe.checkout.Session, "create", fake_create)

        resp = await client.post(
            "/api/v1/checkout/", json={"workflow_id": workflow.id}, headers=auth_headers(buyer)
        )
        assert resp.status_code == 200
        assert resp.json() == {
            "session_id": "cs_test_live",
            "url": "https://checkout.stripe.com/c/pay/cs_test_live",
            "simulated": False,
        }
        assert captured["metadata"] == {"workflow_id": workflow.id, "buyer_id": buyer.id}
        assert captured["payment_intent_data"]["metadata"] == captured["metadata"]
        assert captured["line_items"][0]["price_data"]["unit_amount"] == 2999
        assert captured["customer_email"] == buyer.email

    async def test_processor_error_is_bad_gateway(self, client, db_session, live_gateway, workflow, buyer, monkeypatch):
        def failing_create(**params):
            raise stripe.StripeError("card network down")

        monkeypatch.setattr(stripe.checkout.Session, "create", failing_create)

        resp = await client.post(
            "/api/v1/checkout/", json={"workflow_id": workflow.id}, headers=auth_headers(buyer)
        )
        assert resp.status_code == 502
        assert await db_session.scalar(select(Purchase)) is None
