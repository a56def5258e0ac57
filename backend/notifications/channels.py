"""Notification channel implementations.

Each channel handles delivery for one transport. The
NotificationManager dispatches to the registered channel.
"""

import asyncio
import html
import logging
import smtplib
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime, timezone
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from enum import Enum
from typing import Any, Optional

logger = logging.getLogger(__name__)


# ─── Data Types ────────────────────────────────────────────────

class NotificationChannel(str, Enum):
    EMAIL = "email"


@dataclass
class Notification:
    """A notification to be delivered."""
    title: str
    message: str
    channel: NotificationChannel = NotificationChannel.EMAIL
    recipient: str = ""
    metadata: dict[str, Any] = field(default_factory=dict)
    user_id: Optional[str] = None
    created_at: str = field(default_factory=lambda: datetime.now(timezone.utc).isoformat())


@dataclass
class DeliveryResult:
    """Result of a notification delivery attempt."""
    success: bool
    channel: NotificationChannel
    recipient: str
    message: str = ""
    error: Optional[str] = None
    delivered_at: Optional[str] = None


# ─── Base Channel ──────────────────────────────────────────────

class BaseChannel(ABC):
    """Abstract base for notification channels."""

    channel_type: NotificationChannel

    @abstractmethod
    async def send(self, notification: Notification) -> DeliveryResult:
        """Send a notification through this channel."""
        ...


# ─── Email Channel ─────────────────────────────────────────────

class EmailChannel(BaseChannel):
    """Send notifications via SMTP email.

    Config:
        smtp_host, smtp_port, smtp_user, smtp_password,
        from_address, use_tls, timeout
    """

    channel_type = NotificationChannel.EMAIL

    def __init__(self, config: dict = None):
        self.config = config or {}

    async def send(self, notification: Notification) -> DeliveryResult:
        """Send email notification. SMTP failures become a failed DeliveryResult."""
        smtp_host = self.config.get("smtp_host", "localhost")
        smtp_port = self.config.get("smtp_port", 587)
        from_addr = self.config.get("from_address", "noreply@localhost")

        msg = MIMEMultipart("alternative")
        msg["Subject"] = notification.title
        msg["From"] = from_addr
        msg["To"] = notification.recipient

        msg.attach(MIMEText(notification.message, "plain"))
        body = html.escape(notification.message).replace("\n", "<br>")
        msg.attach(MIMEText(
            f'<div style="font-family: sans-serif; max-width: 600px; margin: 0 auto;">'
            f'<h2 style="color: #333;">{html.escape(notification.title)}</h2>'
            f'<div style="color: #555; line-height: 1.6;">{body}</div>'
            f'<hr style="border: none; border-top: 1px solid #eee; margin: 20px 0;">'
            f'<p style="color: #999; font-size: 12px;">Sent by Workflow Marketplace</p>'
            f"</div>",
            "html",
        ))

        try:
            # smtplib blocks; keep it off the event loop
            loop = asyncio.get_running_loop()
            await loop.run_in_executor(
                None,
                lambda: self._send_smtp(smtp_host, smtp_port, from_addr, notification.recipient, msg),
            )
        except (smtplib.SMTPException, OSError) as e:
            logger.error(f"Email send failed: {e}")
            return DeliveryResult(
                success=False,
                channel=self.channel_type,
                recipient=notification.recipient,
                error=str(e),
            )

        return DeliveryResult(
            success=True,
            channel=self.channel_type,
            recipient=notification.recipient,
            message="Email sent",
            delivered_at=datetime.now(timezone.utc).isoformat(),
        )

    def _send_smtp(self, host, port, from_addr, to_addr, msg):
        """Synchronous SMTP send."""
        with smtplib.SMTP(host, port, timeout=self.config.get("timeout", 10)) as server:
            if self.config.get("use_tls", True):
                server.starttls()
            user = self.config.get("smtp_user")
            password = self.config.get("smtp_password")
            if user and password:
                server.login(user, password)
            server.sendmail(from_addr, to_addr, msg.as_string())
