"""Push Notification Service - Send notifications via Expo Push API

Delivers the `push` channel of a notification to the owner's mobile device.

Architecture:
    NotificationService.create() -> PushService.send_to_user() -> Expo API -> FCM/APNs -> Device

Usage:
    sent = await push_service.send_notification(
        push_token="ExponentPushToken[xxx]",
        title="Price drop",
        body="12 Elm Street is now 5% cheaper",
        data={"type": "price_drop", "notification_id": "..."},
    )
"""

import logging
from typing import Any

import httpx

from realty_api.config import settings
from realty_api.models.user import User

logger = logging.getLogger(__name__)


class PushService:
    """Send push notifications via Expo Push API"""

    def __init__(
        self,
        push_url: str | None = None,
        timeout: float = 10.0,
        enabled: bool | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.push_url = push_url or settings.EXPO_PUSH_URL
        self.timeout = timeout
        self.transport = transport
        self.enabled = settings.PUSH_ENABLED if enabled is None else enabled

    @staticmethod
    def is_valid_token(push_token: str | None) -> bool:
        return bool(push_token) and push_token.startswith("ExponentPushToken[")

    async def send_notification(
        self,
        push_token: str,
        title: str,
        body: str,
        data: dict[str, Any] | None = None,
    ) -> bool:
        """Send a push notification to a device via Expo

        Args:
            push_token: Expo push token (e.g., "ExponentPushToken[xxx]")
            title: Notification title
            body: Notification body text
            data: Optional data payload (delivered to app when opened)

        Returns:
            True if Expo accepted the notification, False otherwise. Delivery
            problems are logged, never raised: push is best effort.
        """
        if not self.enabled:
            logger.debug("Push delivery disabled, skipping")
            return False

        if not self.is_valid_token(push_token):
            logger.warning(f"Invalid push token format: {str(push_token)[:20]}...")
            return False

        payload = {
            "to": push_token,
            "title": title,
            "body": body,
            "sound": "default",
            "data": data or {},
        }

        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                response = await client.post(self.push_url, json=payload)
        except httpx.TimeoutException:
            logger.error("Expo push timed out")
            return False
        except httpx.HTTPError as e:
            logger.error(f"Expo push error: {e}")
            return False

        if response.status_code != 200:
            logger.error(f"Expo push failed: {response.status_code} - {response.text}")
            return False

        ticket = response.json().get("data", {})
        if isinstance(ticket, list):  # Batch responses carry one ticket per message
            ticket = ticket[0] if ticket else {}

        if ticket.get("status") == "ok":
            logger.info(f"Push notification sent: {title}")
            return True

        error_type = ticket.get("details", {}).get("error", "")
        if error_type == "DeviceNotRegistered":
            # Normal when a device uninstalled the app
            logger.info(f"Push token not registered: {push_token[:30]}...")
        elif error_type == "InvalidCredentials":
            logger.error("Expo push credentials are invalid")
        else:
            logger.warning(f"Expo push returned error: {ticket.get('message', ticket)}")
        return False

    async def send_to_user(
        self,
        user: User,
        title: str,
        body: str,
        data: dict[str, Any] | None = None,
    ) -> bool:
        """Send push notification to a user if they have a push token"""
        if not user.push_token:
            logger.debug(f"User {user.id} has no push token, skipping")
            return False

        return await self.send_notification(push_token=user.push_token, title=title, body=body, data=data)


# Singleton instance
push_service = PushService()
