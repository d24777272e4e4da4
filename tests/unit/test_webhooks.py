"""Unit Tests for Webhook Endpoints

Property events pushed by producer services with X-API-Key authentication.
"""

from uuid import uuid4

import pytest
from fastapi import status
from fixtures import FakeWebSocket, TEST_PROPERTY_EVENTS_API_KEY, TEST_PROPERTY_ID
from httpx import AsyncClient

from realty_api.models import User

pytestmark = [pytest.mark.unit]

API_HEADERS = {"X-API-Key": TEST_PROPERTY_EVENTS_API_KEY}


def price_drop(*targets, **extra) -> dict:
    return {
        "event": "price_drop",
        "targetUserIds": [str(t) for t in targets],
        "title": "Price drop",
        "message": "12 Elm Street is now 5% cheaper",
        "propertyId": TEST_PROPERTY_ID,
        **extra,
    }


class TestPropertyEventWebhook:
    """Test property event webhook endpoint"""

    async def test_requires_api_key(self, client: AsyncClient, buyer: User):
        """Missing or wrong key is rejected before anything is created"""
        response = await client.post("/api/webhooks/property-events", json=price_drop(buyer.id))
        assert response.status_code == status.HTTP_401_UNAUTHORIZED
        assert response.json()["code"] == "invalid_api_key"

        response = await client.post(
            "/api/webhooks/property-events", json=price_drop(buyer.id), headers={"X-API-Key": "wrong"}
        )
        assert response.status_code == status.HTTP_401_UNAUTHORIZED

    async def test_creates_one_notification_per_target(
        self, client: AsyncClient, buyer: User, other_buyer: User, headers_for
    ):
        response = await client.post(
            "/api/webhooks/property-events",
            json=price_drop(buyer.id, other_buyer.id, buyer.id, priority="high"),
            headers=API_HEADERS,
        )

        assert response.status_code == status.HTTP_200_OK
        data = response.json()["data"]
        assert data["createdCount"] == 2
        assert len(data["notificationIds"]) == 2
        assert data["skippedUserIds"] == []

        for user in (buyer, other_buyer):
            listing = (await client.get("/api/notifications", headers=headers_for(user))).json()["data"]
            assert listing["unreadCount"] == 1
            notification = listing["notifications"][0]
            assert notification["type"] == "price_drop"
            assert notification["priority"] == "high"
            assert notification["data"]["propertyId"] == TEST_PROPERTY_ID

    async def test_unknown_targets_are_skipped(self, client: AsyncClient, buyer: User):
        missing = uuid4()
        response = await client.post(
            "/api/webhooks/property-events", json=price_drop(missing, buyer.id), headers=API_HEADERS
        )

        data = response.json()["data"]
        assert data["createdCount"] == 1
        assert data["skippedUserIds"] == [str(missing)]

    async def test_expiry_is_applied(self, client: AsyncClient, buyer: User, auth_headers):
        await client.post(
            "/api/webhooks/property-events", json=price_drop(buyer.id, expiresInHours=24), headers=API_HEADERS
        )

        notification = (await client.get("/api/notifications", headers=auth_headers)).json()["data"]["notifications"][0]
        assert notification["expiresAt"] is not None

    async def test_target_room_is_notified(self, client: AsyncClient, buyer: User, connections):
        websocket = FakeWebSocket()
        await connections.join(buyer.id, websocket)

        await client.post("/api/webhooks/property-events", json=price_drop(buyer.id), headers=API_HEADERS)

        assert len(websocket.events("new-notification")) == 1

    async def test_chat_notifications_cannot_be_injected(self, client: AsyncClient, buyer: User):
        body = price_drop(buyer.id)
        body["event"] = "new_message"
        response = await client.post("/api/webhooks/property-events", json=body, headers=API_HEADERS)
        assert response.status_code == status.HTTP_400_BAD_REQUEST

    async def test_targets_are_required(self, client: AsyncClient):
        response = await client.post("/api/webhooks/property-events", json=price_drop(), headers=API_HEADERS)
        assert response.status_code == status.HTTP_400_BAD_REQUEST
