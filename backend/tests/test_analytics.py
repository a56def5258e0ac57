"""Tests for the analytics dashboard."""

from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest
import pytest_asyncio

from conftest import auth_headers
from core.constants import PurchaseStatus, Role, WorkflowStatus
from db.base import utcnow
from db.models.review import Review
from services.analytics_service import period_start

URL = "/api/v1/analytics/dashboard"


@pytest.mark.unit
class TestPeriodStart:

    @pytest.mark.parametrize("period,days", [("7d", 7), ("30d", 30), ("90d", 90), ("1y", 365)])
    def test_known_periods(self, period, days):
        now = datetime(2026, 6, 30, 12, 0, tzinfo=timezone.utc)
        assert period_start(period, now) == now - timedelta(days=days)

    def test_unknown_period_is_thirty_days(self):
        now = datetime(2026, 6, 30, 12, 0, tzinfo=timezone.utc)
        assert period_start("forever", now) == now - timedelta(days=30)


@pytest_asyncio.fixture
async def activity(db_session, make_user, make_workflow, make_purchase, buyer, other_buyer):
    """Two sellers' listings with sales and reviews on the first one."""
    rival = await make_user([Role.DEVELOPER], name="Rival Seller")
    mine = await make_workflow(name="Mailer", tags=("email",))
    theirs = await make_workflow(name="Scraper", owner=rival, price=Decimal("10.00"), tags=("scraping",))
    await make_workflow(name="Draft", status=WorkflowStatus.PENDING)

    await make_purchase(mine, buyer)
    await make_purchase(mine, other_buyer)
    await make_purchase(theirs, buyer, status=PurchaseStatus.PENDING)

    db_session.add_all([
        Review(workflow_id=mine.id, user_id=buyer.id, rating=5),
        Review(workflow_id=mine.id, user_id=other_buyer.id, rating=4),
    ])
    await db_session.commit()
    return mine, theirs


@pytest.mark.integration
class TestDashboardAccess:

    async def test_buyer_is_forbidden(self, client, buyer):
        resp = await client.get(URL, headers=auth_headers(buyer))
        assert resp.status_code == 403

    async def test_anonymous_is_unauthenticated(self, client):
        resp = await client.get(URL)
        assert resp.status_code == 401

    async def test_unknown_period_is_rejected(self, client, admin):
        resp = await client.get(URL, params={"period": "2w"}, headers=auth_headers(admin))
        assert resp.status_code == 422


@pytest.mark.integration
class TestDashboard:

    async def test_admin_sees_whole_marketplace(self, client, admin, activity):
        mine, theirs = activity
        resp = await client.get(URL, headers=auth_headers(admin))
        assert resp.status_code == 200
        data = resp.json()

        assert data["summary"] == {
            "total_workflows": 3,
            "total_sales": 59.98,
            "average_rating": 4.5,
            "period": "30d",
        }
        assert [day["amount"] for day in data["sales_over_time"]] == [59.98]
        assert sum(day["count"] for day in data["workflows_over_time"]) == 3
        assert data["popular_categories"] == [
            {"name": "email", "count": 1},
            {"name": "scraping", "count": 1},
        ]

        top = data["top_workflows"]
        assert [w["id"] for w in top] == [mine.id, theirs.id]
        assert top[0] == {
            "id": mine.id,
            "name": "Mailer",
            "creator": "Dev Eloper",
            "downloads": 0,
            "purchases": 2,
            "average_rating": 4.5,
            "total_reviews": 2,
        }
        assert top[1]["purchases"] == 0
        assert top[1]["average_rating"] == 0

    async def test_developer_sees_only_own_listings(self, client, developer, activity):
        mine, _ = activity
        resp = await client.get(URL, headers=auth_headers(developer))
        assert resp.status_code == 200
        data = resp.json()

        assert data["summary"]["total_workflows"] == 2
        assert data["summary"]["total_sales"] == 59.98
        assert data["popular_categories"] == [{"name": "email", "count": 1}]
        assert [w["id"] for w in data["top_workflows"]] == [mine.id]

    async def test_period_limits_the_window(self, client, db_session, admin, make_workflow):
        old = await make_workflow(name="Old Listing")
        old.created_at = utcnow() - timedelta(days=60)
        await db_session.commit()

        recent = (await client.get(URL, params={"period": "30d"}, headers=auth_headers(admin))).json()
        assert recent["summary"]["total_workflows"] == 0
        assert recent["top_workflows"] == []

        wider = (await client.get(URL, params={"period": "90d"}, headers=auth_headers(admin))).json()
        assert wider["summary"]["total_workflows"] == 1
        assert wider["summary"]["period"] == "90d"
        assert [w["name"] for w in wider["top_workflows"]] == ["Old Listing"]

    async def test_empty_marketplace(self, client, admin):
        data = (await client.get(URL, params={"period": "7d"}, headers=auth_headers(admin))).json()
        assert data["summary"] == {
            "total_workflows": 0,
            "total_sales": 0,
            "average_rating": 0,
            "period": "7d",
        }
        assert data["workflows_over_time"] == []
        assert data["top_workflows"] == []
