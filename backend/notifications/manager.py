"""Notification Manager — central dispatcher for notification channels."""

import logging
from decimal import Decimal
from typing import Optional

from app.config import get_settings
from notifications.channels import (
    BaseChannel,
    DeliveryResult,
    EmailChannel,
    Notification,
    NotificationChannel,
)

logger = logging.getLogger(__name__)


class NotificationManager:
    """Central notification dispatcher.

    Singleton, use get_notification_manager(). A notification for a
    channel that was never registered is reported as a failed delivery.
    """

    def __init__(self):
        self._channels: dict[NotificationChannel, BaseChannel] = {}
        self._initialized = False

    def register_channel(self, channel: BaseChannel) -> None:
        """Register a notification channel."""
        self._channels[channel.channel_type] = channel
        logger.info(f"Notification channel registered: {channel.channel_type.value}")

    def configure_from_settings(self) -> None:
        """Register the email channel when SMTP is configured."""
        settings = get_settings()
        if settings.SMTP_HOST:
            self.register_channel(EmailChannel({
                "smtp_host": settings.SMTP_HOST,
                "smtp_port": settings.SMTP_PORT,
                "smtp_user": settings.SMTP_USER,
                "smtp_password": settings.SMTP_PASSWORD,
                "from_address": settings.EMAIL_FROM,
                "use_tls": settings.SMTP_USE_TLS,
            }))
        self._initialized = True

    async def send(self, notification: Notification) -> DeliveryResult:
        """Send a notification through the specified channel."""
        channel = self._channels.get(notification.channel)
        if not channel:
            return DeliveryResult(
                success=False,
                channel=notification.channel,
                recipient=notification.recipient,
                error=f"Channel not configured: {notification.channel.value}",
            )

        result = await channel.send(notification)

        if result.success:
            logger.info(
                f"Notification sent via {notification.channel.value} to {notification.recipient}"
            )
        else:
            logger.warning(
                f"Notification failed via {notification.channel.value}: {result.error}"
            )

        return result

    # ─── Convenience methods for common events ─────────────────

    async def send_purchase_confirmation(
        self,
        email: str,
        name: Optional[str],
        workflow_name: str,
        amount: Decimal,
        purchase_id: str,
        user_id: Optional[str] = None,
    ) -> DeliveryResult:
        """Tell a buyer their purchase went through."""
        greeting = f"Hi {name}," if name else "Hi,"
        return await self.send(Notification(
            title=f"Your purchase of {workflow_name}",
            message=(
                f"{greeting}\n\n"
                f"Thank you for purchasing \"{workflow_name}\" for ${amount:.2f}.\n"
                f"You can download it any time from your purchases page.\n\n"
                f"Order reference: {purchase_id}"
            ),
            channel=NotificationChannel.EMAIL,
            recipient=email,
            metadata={"purchase_id": purchase_id},
            user_id=user_id,
        ))

    def get_status(self) -> dict:
        """Get notification manager status."""
        return {
            "initialized": self._initialized,
            "channels": [ch.value for ch in self._channels.keys()],
        }


# ─── Singleton ─────────────────────────────────────────────────

_manager: Optional[NotificationManager] = None


def get_notification_manager() -> NotificationManager:
    """Get or create the singleton NotificationManager."""
    global _manager
    if _manager is None:
        _manager = NotificationManager()
        _manager.configure_from_settings()
    return _manager
