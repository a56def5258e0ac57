"""Tests for authentication and security utilities."""

from datetime import datetime, timedelta, timezone

import jwt
import pytest
from sqlalchemy import select

from app.config import get_settings
from conftest import PASSWORD, auth_headers
from core.exceptions import AuthenticationRequired
from core.security import (
    create_access_token,
    create_refresh_token,
    hash_password,
    verify_password,
    verify_token,
)


@pytest.mark.unit
class TestPasswordHashing:
    """Password hash/verify tests."""

    def test_hash_and_verify(self):
        raw = "SuperSecret123!"
        hashed = hash_password(raw)
        assert hashed != raw
        assert verify_password(raw, hashed) is True

    def test_wrong_password_rejected(self):
        hashed = hash_password("correct")
        assert verify_password("wrong", hashed) is False

    def test_different_hashes_for_same_password(self):
        """Each call should produce a different hash (salt)."""
        assert hash_password("same") != hash_password("same")


@pytest.mark.unit
class TestJWT:
    """JWT token creation and verification tests."""

    def test_access_token_round_trip(self):
        payload = verify_token(create_access_token(user_id="user-123", email="test@example.com"))
        assert payload.sub == "user-123"
        assert payload.email == "test@example.com"
        assert payload.type == "access"

    def test_refresh_token_is_not_an_access_token(self):
        token = create_refresh_token(user_id="user-123", email="test@example.com")
        with pytest.raises(AuthenticationRequired):
            verify_token(token, expected_type="access")
        assert verify_token(token, expected_type="refresh").sub == "user-123"

    def test_garbage_token(self):
        with pytest.raises(AuthenticationRequired):
            verify_token("not.a.valid.token")

    def test_expired_token(self):
        settings = get_settings()
        past = datetime.now(timezone.utc) - timedelta(hours=2)
        token = jwt.encode(
            {"sub": "u", "email": "e@example.com", "type": "access", "iat": past, "exp": past + timedelta(minutes=1)},
            settings.SECRET_KEY,
            algorithm=settings.ALGORITHM,
        )
        with pytest.raises(AuthenticationRequired) as exc:
            verify_token(token)
        assert exc.value.message == "Token has expired"

    def test_wrong_signing_key(self):
        token = jwt.encode({"sub": "u", "type": "access"}, "another-key", algorithm="HS256")
        with pytest.raises(AuthenticationRequired):
            verify_token(token)


@pytest.mark.integration
class TestAuthEndpoints:

    async def test_register_buyer(self, client):
        resp = await client.post("/api/v1/auth/register", json={
            "email": "New.Buyer@Example.com", "password": "longenough", "name": "New Buyer",
        })
        assert resp.status_code == 201
        data = resp.json()
        assert data["user"]["email"] == "new.buyer@example.com"
        assert data["user"]["roles"] == ["BUYER"]
        assert data["access_token"] and data["refresh_token"]

    async def test_register_as_seller_queues_verification(self, client, db_session):
        from db.models.seller_verification import SellerVerification

        resp = await client.post("/api/v1/auth/register", json={
            "email": "seller@example.com", "password": "longenough", "as_seller": True,
        })
        assert resp.status_code == 201
        user = resp.json()["user"]
        assert set(user["roles"]) == {"BUYER", "DEVELOPER"}

        result = await db_session.execute(
            select(SellerVerification).where(SellerVerification.user_id == user["id"])
        )
        assert result.scalar_one().status == "PENDING"

    async def test_register_duplicate_email(self, client, buyer):
        resp = await client.post("/api/v1/auth/register", json={
            "email": buyer.email.upper(), "password": "longenough",
        })
        assert resp.status_code == 409

    async def test_register_short_password(self, client):
        resp = await client.post("/api/v1/auth/register", json={
            "email": "short@example.com", "password": "short",
        })
        assert resp.status_code == 422

    async def test_login(self, client, buyer):
        resp = await client.post("/api/v1/auth/login", json={"email": buyer.email, "password": PASSWORD})
        assert resp.status_code == 200
        assert resp.json()["user"]["id"] == buyer.id

    async def test_login_wrong_password(self, client, buyer):
        resp = await client.post("/api/v1/auth/login", json={"email": buyer.email, "password": "nope"})
        assert resp.status_code == 401
        assert resp.json()["detail"] == "Invalid email or password"

    async def test_refresh(self, client, buyer):
        login = await client.post("/api/v1/auth/login", json={"email": buyer.email, "password": PASSWORD})
        resp = await client.post(
            "/api/v1/auth/refresh", json={"refresh_token": login.json()["refresh_token"]}
        )
        assert resp.status_code == 200
        assert resp.json()["user"]["email"] == buyer.email

    async def test_refresh_rejects_access_token(self, client, buyer):
        token = create_access_token(user_id=buyer.id, email=buyer.email)
        resp = await client.post("/api/v1/auth/refresh", json={"refresh_token": token})
        assert resp.status_code == 401

    async def test_me_reads_current_roles(self, client, buyer, db_session):
        buyer.roles = ["BUYER", "DEVELOPER"]
        await db_session.commit()

        resp = await client.get("/api/v1/auth/me", headers=auth_headers(buyer))
        assert resp.status_code == 200
        assert set(resp.json()["roles"]) == {"BUYER", "DEVELOPER"}

    async def test_me_requires_token(self, client):
        resp = await client.get("/api/v1/auth/me")
        assert resp.status_code == 401

    async def test_deactivated_user_is_forbidden(self, client, buyer, db_session):
        buyer.is_active = False
        await db_session.commit()

        resp = await client.get("/api/v1/auth/me", headers=auth_headers(buyer))
        assert resp.status_code == 403

    async def test_token_for_deleted_user(self, client):
        token = create_access_token(user_id="no-such-user", email="ghost@example.com")
        resp = await client.get("/api/v1/auth/me", headers={"Authorization": f"Bearer {token}"})
        assert resp.status_code == 401
