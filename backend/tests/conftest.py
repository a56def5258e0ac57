"""Shared pytest fixtures for the Workflow Marketplace test suite.

Provides:
- A file-backed async SQLite database per test (real locking, so the
  concurrency tests behave like production)
- FastAPI test client (httpx.AsyncClient) wired to that database
- Users in each role, listings and purchases
- Auth and Stripe-signature helpers
"""

import hashlib
import hmac
import json
import os
import time
from decimal import Decimal
from typing import AsyncGenerator, Optional
from uuid import uuid4

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

# Override settings BEFORE any app imports
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("SECRET_KEY", "test-secret-key-not-for-production")
os.environ.setdefault("ENVIRONMENT", "testing")
os.environ.setdefault("STRIPE_SECRET_KEY", "")
os.environ.setdefault("STRIPE_WEBHOOK_SECRET", "whsec_test_secret")
os.environ.setdefault("RATE_LIMIT_ENABLED", "false")
os.environ.setdefault("LOG_FORMAT", "console")

from core.constants import (  # noqa: E402
    PurchaseStatus,
    Role,
    SellerVerificationStatus,
    WorkflowStatus,
)
from core.security import create_access_token, hash_password  # noqa: E402
from db.base import Base  # noqa: E402
from db.database import create_db_engine, create_session_factory  # noqa: E402

WEBHOOK_SECRET = os.environ["STRIPE_WEBHOOK_SECRET"]
PASSWORD = "TestPassword123!"


# ---------------------------------------------------------------------------
# Database fixtures
# ---------------------------------------------------------------------------

@pytest_asyncio.fixture
async def db_engine(tmp_path):
    """A fresh database file with every table created."""
    engine = create_db_engine(f"sqlite+aiosqlite:///{tmp_path / 'marketplace-test.db'}")
    import db.models  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
def session_factory(db_engine):
    return create_session_factory(db_engine)


@pytest_asyncio.fixture
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    """Session for arranging data. Fixtures commit so the app can see it."""
    async with session_factory() as session:
        yield session


# ---------------------------------------------------------------------------
# App / HTTP client fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def sent_emails(monkeypatch) -> list[dict]:
    """Purchase confirmations the webhook tried to send."""
    sent: list[dict] = []

    class RecordingManager:
        async def send_purchase_confirmation(self, **kwargs):
            sent.append(kwargs)

    monkeypatch.setattr("api.routes.webhooks.get_notification_manager", lambda: RecordingManager())
    return sent


@pytest.fixture
def app(session_factory, sent_emails):
    """A FastAPI app whose request sessions come from the test database."""
    from app.dependencies import get_db
    from app.main import create_app
    from services.payment_gateway import PaymentGateway, get_payment_gateway

    async def override_get_db():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    gateway = PaymentGateway(webhook_secret=WEBHOOK_SECRET)

    test_app = create_app()
    test_app.dependency_overrides[get_db] = override_get_db
    test_app.dependency_overrides[get_payment_gateway] = lambda: gateway
    yield test_app
    test_app.dependency_overrides.clear()


@pytest_asyncio.fixture
async def client(app) -> AsyncGenerator[AsyncClient, None]:
    """Async HTTP test client."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test", follow_redirects=True) as ac:
        yield ac


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def auth_headers(user) -> dict:
    """Authorization header with a valid access token for ``user``."""
    token = create_access_token(user_id=user.id, email=user.email)
    return {"Authorization": f"Bearer {token}"}


def stripe_signature(payload: bytes, secret: str = WEBHOOK_SECRET, timestamp: Optional[int] = None) -> str:
    """A ``Stripe-Signature`` header value, signed the way Stripe signs."""
    timestamp = int(time.time()) if timestamp is None else timestamp
    signed = f"{timestamp}.{payload.decode('utf-8')}".encode("utf-8")
    digest = hmac.new(secret.encode("utf-8"), signed, hashlib.sha256).hexdigest()
    return f"t={timestamp},v1={digest}"


def checkout_completed_event(
    session_id: str,
    workflow_id: Optional[str],
    buyer_id: Optional[str],
    amount_total: Optional[int] = 2999,
) -> bytes:
    metadata = {}
    if workflow_id:
        metadata["workflow_id"] = workflow_id
    if buyer_id:
        metadata["buyer_id"] = buyer_id
    obj = {
        "id": session_id,
        "object": "checkout.session",
        "currency": "usd",
        "payment_intent": f"pi_{uuid4().hex[:16]}",
        "metadata": metadata,
    }
    if amount_total is not None:
        obj["amount_total"] = amount_total
    return json.dumps({
        "id": f"evt_{uuid4().hex[:16]}",
        "type": "checkout.session.completed",
        "data": {"object": obj},
    }).encode("utf-8")


async def post_event(client: AsyncClient, payload: bytes, signature: Optional[str] = "sign"):
    headers = {"Content-Type": "application/json"}
    if signature == "sign":
        signature = stripe_signature(payload)
    if signature is not None:
        headers["Stripe-Signature"] = signature
    return await client.post("/api/v1/webhooks/stripe", content=payload, headers=headers)


# ---------------------------------------------------------------------------
# Test data fixtures
# ---------------------------------------------------------------------------

@pytest_asyncio.fixture
async def make_user(db_session):
    """Factory: ``await make_user(roles, seller_status=None)``."""
    from db.models.seller_verification import SellerVerification
    from db.models.user import User

    password_hash = hash_password(PASSWORD)

    async def _make(roles, seller_status: Optional[SellerVerificationStatus] = None, name: str = "Test User"):
        user = User(
            id=str(uuid4()),
            email=f"user-{uuid4().hex[:8]}@example.com",
            password_hash=password_hash,
            name=name,
            roles=[r.value for r in roles],
            is_active=True,
        )
        db_session.add(user)
        if seller_status is not None:
            db_session.add(SellerVerification(user_id=user.id, status=seller_status.value))
        await db_session.commit()
        return user

    return _make


@pytest_asyncio.fixture
async def buyer(make_user):
    return await make_user([Role.BUYER], name="Bea Buyer")


@pytest_asyncio.fixture
async def other_buyer(make_user):
    return await make_user([Role.BUYER], name="Otto Other")


@pytest_asyncio.fixture
async def developer(make_user):
    """A developer whose seller verification is approved."""
    return await make_user(
        [Role.DEVELOPER, Role.BUYER],
        seller_status=SellerVerificationStatus.APPROVED,
        name="Dev Eloper",
    )


@pytest_asyncio.fixture
async def admin(make_user):
    return await make_user([Role.ADMIN], name="Ada Admin")


@pytest_asyncio.fixture
async def make_workflow(db_session, developer):
    """Factory: ``await make_workflow(status=..., price=..., owner=...)``."""
    from db.models.tag import Tag
    from db.models.workflow import Workflow

    async def _make(
        status: WorkflowStatus = WorkflowStatus.APPROVED,
        price: Decimal = Decimal("29.99"),
        owner=None,
        name: str = "Invoice Mailer",
        tags: tuple = (),
    ):
        workflow = Workflow(
            id=str(uuid4()),
            user_id=(owner or developer).id,
            name=name,
            description="Sends monthly invoices to every customer.",
            price=price,
            file_url="https://files.example.com/invoice-mailer.json",
            status=status.value,
            is_public=status == WorkflowStatus.APPROVED,
            tags=[Tag(name=t) for t in tags],
        )
        db_session.add(workflow)
        await db_session.commit()
        return workflow

    return _make


@pytest_asyncio.fixture
async def workflow(make_workflow):
    """An approved listing priced 29.99, owned by ``developer``."""
    return await make_workflow()


@pytest_asyncio.fixture
async def make_purchase(db_session):
    """Factory: ``await make_purchase(workflow, buyer, status=COMPLETED)``."""
    from db.models.purchase import Purchase

    async def _make(workflow, buyer, status: PurchaseStatus = PurchaseStatus.COMPLETED, session_id: Optional[str] = None):
        purchase = Purchase(
            id=str(uuid4()),
            workflow_id=workflow.id,
            buyer_id=buyer.id,
            amount=Decimal(workflow.price),
            currency="usd",
            status=status.value,
            external_transaction_id=session_id or f"cs_test_{uuid4().hex[:16]}",
        )
        db_session.add(purchase)
        await db_session.commit()
        return purchase

    return _make


@pytest_asyncio.fixture
async def completed_purchase(make_purchase, workflow, buyer):
    return await make_purchase(workflow, buyer)
