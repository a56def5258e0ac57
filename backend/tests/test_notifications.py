"""Tests for the notification manager and email channel."""

import smtplib
from decimal import Decimal

import pytest

from notifications.channels import EmailChannel, Notification, NotificationChannel
from notifications.manager import NotificationManager


class FakeSMTP:
    """Stands in for smtplib.SMTP and records what was sent."""

    sent: list = []
    fail_with = None

    def __init__(self, host, port, timeout=None):
        self.host = host
        self.port = port

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        return False

    def starttls(self):
        pass

    def login(self, user, password):
        pass

    def sendmail(self, from_addr, to_addr, body):
        if FakeSMTP.fail_with:
            raise FakeSMTP.fail_with
        FakeSMTP.sent.append((from_addr, to_addr, body))


@pytest.fixture
def fake_smtp(monkeypatch):
    FakeSMTP.sent = []
    FakeSMTP.fail_with = None
    monkeypatch.setattr(smtplib, "SMTP", FakeSMTP)
    return FakeSMTP


def _manager_with_email():
    manager = NotificationManager()
    manager.register_channel(EmailChannel({"smtp_host": "mail.example.com", "from_address": "shop@example.com"}))
    return manager


@pytest.mark.unit
class TestNotificationManager:

    async def test_unconfigured_channel_fails_softly(self):
        result = await NotificationManager().send(
            Notification(title="t", message="m", recipient="a@example.com")
        )
        assert result.success is False
        assert "not configured" in result.error

    async def test_purchase_confirmation(self, fake_smtp):
        result = await _manager_with_email().send_purchase_confirmation(
            email="buyer@example.com",
            name="Bea",
            workflow_name="Invoice Mailer",
            amount=Decimal("29.99"),
            purchase_id="p-1",
        )
        assert result.success is True
        assert result.channel == NotificationChannel.EMAIL

        [(from_addr, to_addr, body)] = fake_smtp.sent
        assert from_addr == "shop@example.com"
        assert to_addr == "buyer@example.com"
        assert "Invoice Mailer" in body

    async def test_smtp_error_becomes_failed_delivery(self, fake_smtp):
        fake_smtp.fail_with = smtplib.SMTPServerDisconnected("gone")
        result = await _manager_with_email().send_purchase_confirmation(
            email="buyer@example.com",
            name=None,
            workflow_name="Invoice Mailer",
            amount=Decimal("29.99"),
            purchase_id="p-1",
        )
        assert result.success is False
        assert "gone" in result.error

    def test_status(self):
        manager = _manager_with_email()
        assert manager.get_status()["channels"] == ["email"]
