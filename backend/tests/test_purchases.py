"""Tests for purchase history, receipts and seller earnings."""

from decimal import Decimal

import pytest

from conftest import auth_headers
from core.constants import EarningsStatus, PurchaseStatus
from db.models.earnings import Earnings


@pytest.mark.integration
class TestPurchaseCheck:

    async def test_completed_purchase(self, client, workflow, buyer, completed_purchase):
        resp = await client.get(f"/api/v1/purchases/check/{workflow.id}", headers=auth_headers(buyer))
        assert resp.json() == {"has_purchased": True}

    async def test_pending_purchase_does_not_count(self, client, workflow, buyer, make_purchase):
        await make_purchase(workflow, buyer, status=PurchaseStatus.PENDING)
        resp = await client.get(f"/api/v1/purchases/check/{workflow.id}", headers=auth_headers(buyer))
        assert resp.json() == {"has_purchased": False}

    async def test_anonymous(self, client, workflow):
        resp = await client.get(f"/api/v1/purchases/check/{workflow.id}")
        assert resp.status_code == 200
        assert resp.json() == {"has_purchased": False}


@pytest.mark.integration
class TestMyPurchases:

    async def test_lists_completed_only(self, client, make_workflow, buyer, make_purchase):
        bought = await make_workflow(name="Bought")
        abandoned = await make_workflow(name="Abandoned")
        await make_purchase(bought, buyer)
        await make_purchase(abandoned, buyer, status=PurchaseStatus.PENDING)

        resp = await client.get("/api/v1/purchases/me", headers=auth_headers(buyer))
        assert resp.status_code == 200
        data = resp.json()
        assert [p["workflow_name"] for p in data] == ["Bought"]
        assert data[0]["amount"] == 29.99

    async def test_other_buyers_purchases_hidden(self, client, other_buyer, completed_purchase):
        resp = await client.get("/api/v1/purchases/me", headers=auth_headers(other_buyer))
        assert resp.json() == []


@pytest.mark.integration
class TestReceipt:

    async def test_buyer_gets_html_receipt(self, client, buyer, completed_purchase):
        resp = await client.get(
            f"/api/v1/purchases/{completed_purchase.id}/receipt", headers=auth_headers(buyer)
        )
        assert resp.status_code == 200
        assert resp.headers["content-type"].startswith("text/html")
        assert "Invoice Mailer" in resp.text
        assert "29.99 USD" in resp.text
        assert completed_purchase.id in resp.headers["content-disposition"]

    async def test_admin_can_read_any_receipt(self, client, admin, completed_purchase):
        resp = await client.get(
            f"/api/v1/purchases/{completed_purchase.id}/receipt", headers=auth_headers(admin)
        )
        assert resp.status_code == 200

    async def test_stranger_is_forbidden(self, client, other_buyer, completed_purchase):
        resp = await client.get(
            f"/api/v1/purchases/{completed_purchase.id}/receipt", headers=auth_headers(other_buyer)
        )
        assert resp.status_code == 403

    async def test_unknown_purchase(self, client, buyer):
        resp = await client.get("/api/v1/purchases/nope/receipt", headers=auth_headers(buyer))
        assert resp.status_code == 404


@pytest.mark.integration
class TestEarnings:

    async def test_developer_sees_earnings_and_totals(self, client, db_session, developer, completed_purchase):
        db_session.add(Earnings(
            purchase_id=completed_purchase.id,
            developer_id=developer.id,
            amount=Decimal("20.993"),
            status=EarningsStatus.PENDING.value,
        ))
        await db_session.commit()

        resp = await client.get("/api/v1/earnings/me", headers=auth_headers(developer))
        assert resp.status_code == 200
        data = resp.json()
        assert [e["amount"] for e in data["earnings"]] == [20.993]
        assert data["totals"] == {"PENDING": 20.993, "PAID": 0.0, "FAILED": 0.0}

    async def test_buyer_has_no_earnings_page(self, client, buyer):
        resp = await client.get("/api/v1/earnings/me", headers=auth_headers(buyer))
        assert resp.status_code == 403
