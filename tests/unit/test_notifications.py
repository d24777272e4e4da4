"""Unit Tests for Notification Endpoints

Listing, single-notification transitions, deletion and creation.
"""

from datetime import datetime, timedelta, timezone
from uuid import uuid4

import pytest
from fixtures import FakeWebSocket, TEST_PROPERTY_ID
from httpx import AsyncClient

from realty_api.models import User
from realty_api.models.notification import NotificationType
from realty_api.schemas.notification import NotificationAction
from realty_api.services.notification_service import NotificationService

pytestmark = [pytest.mark.unit]


async def patch_action(client: AsyncClient, headers: dict, notification_id, action: str):
    return await client.patch(f"/api/notifications/{notification_id}", json={"action": action}, headers=headers)


class TestListNotifications:
    """GET /api/notifications"""

    async def test_requires_authentication(self, client: AsyncClient):
        response = await client.get("/api/notifications")
        assert response.status_code == 401
        body = response.json()
        assert body["success"] is False
        assert body["error"]

    async def test_lists_newest_first_with_unread_count(self, client: AsyncClient, buyer: User, auth_headers, notify):
        first = await notify(buyer, title="First")
        second = await notify(buyer, title="Second")
        third = await notify(buyer, title="Third")

        response = await client.get("/api/notifications", headers=auth_headers)
        assert response.status_code == 200
        data = response.json()["data"]
        assert [n["id"] for n in data["notifications"]] == [str(third.id), str(second.id), str(first.id)]
        assert data["unreadCount"] == 3
        assert data["pagination"] == {"page": 1, "limit": 20, "total": 3, "pages": 1}
        assert data["notifications"][0]["status"] == "unread"
        assert data["notifications"][0]["read"] is False

    async def test_pagination_describes_filtered_query(
        self, client: AsyncClient, db_session, buyer: User, auth_headers, notify
    ):
        created = [await notify(buyer, title=f"Listing {i}") for i in range(5)]
        service = NotificationService(db_session)
        for notification in created[:2]:
            await service.apply_action(buyer, notification.id, NotificationAction.MARK_READ)

        response = await client.get("/api/notifications?filter=read", headers=auth_headers)
        data = response.json()["data"]
        assert data["pagination"]["total"] == 2
        assert {n["status"] for n in data["notifications"]} == {"read"}
        assert data["unreadCount"] == 3

        response = await client.get("/api/notifications?page=2&limit=2", headers=auth_headers)
        data = response.json()["data"]
        assert data["pagination"] == {"page": 2, "limit": 2, "total": 5, "pages": 3}
        assert len(data["notifications"]) == 2

    async def test_only_own_notifications_are_listed(
        self, client: AsyncClient, buyer: User, other_buyer: User, auth_headers, notify
    ):
        await notify(buyer)
        await notify(other_buyer)

        response = await client.get("/api/notifications", headers=auth_headers)
        data = response.json()["data"]
        assert data["pagination"]["total"] == 1
        assert data["notifications"][0]["userId"] == str(buyer.id)

    async def test_expired_notifications_are_hidden(self, client: AsyncClient, buyer: User, auth_headers, notify):
        await notify(buyer, title="Old market update", expires_at=datetime.now(timezone.utc) - timedelta(hours=1))
        visible = await notify(buyer, title="Fresh", expires_at=datetime.now(timezone.utc) + timedelta(days=1))

        response = await client.get("/api/notifications", headers=auth_headers)
        data = response.json()["data"]
        assert [n["id"] for n in data["notifications"]] == [str(visible.id)]
        assert data["unreadCount"] == 1

    async def test_unknown_filter_is_rejected(self, client: AsyncClient, buyer: User, auth_headers):
        response = await client.get("/api/notifications?filter=starred", headers=auth_headers)
        assert response.status_code == 400
        assert response.json()["success"] is False

    async def test_unread_count_endpoint(self, client: AsyncClient, buyer: User, auth_headers, notify):
        await notify(buyer)
        await notify(buyer)

        response = await client.get("/api/notifications/unread-count", headers=auth_headers)
        assert response.json()["data"] == {"unreadCount": 2}


class TestNotificationActions:
    """PATCH and DELETE /api/notifications/{id}"""

    async def test_mark_read_then_unread(self, client: AsyncClient, buyer: User, auth_headers, notify):
        notification = await notify(buyer)

        response = await patch_action(client, auth_headers, notification.id, "mark_read")
        assert response.status_code == 200
        data = response.json()["data"]
        assert data["status"] == "read"
        assert data["readAt"] is not None

        response = await patch_action(client, auth_headers, notification.id, "mark_unread")
        data = response.json()["data"]
        assert data["status"] == "unread"
        assert data["readAt"] is None

    async def test_repeated_mark_read_is_a_no_op(self, client: AsyncClient, buyer: User, auth_headers, notify):
        notification = await notify(buyer)

        first = (await patch_action(client, auth_headers, notification.id, "mark_read")).json()["data"]
        second = (await patch_action(client, auth_headers, notification.id, "mark_read")).json()["data"]

        assert second["status"] == "read"
        assert second["updatedAt"] == first["updatedAt"]
        assert second["readAt"] == first["readAt"]

    async def test_archived_cannot_be_marked_read_or_unread(
        self, client: AsyncClient, buyer: User, auth_headers, notify
    ):
        notification = await notify(buyer)
        response = await patch_action(client, auth_headers, notification.id, "archive")
        assert response.json()["data"]["status"] == "archived"
        assert response.json()["data"]["archivedAt"] is not None

        for action in ("mark_read", "mark_unread"):
            response = await patch_action(client, auth_headers, notification.id, action)
            assert response.status_code == 409
            assert response.json()["code"] == "invalid_transition"

        response = await patch_action(client, auth_headers, notification.id, "archive")
        assert response.status_code == 200
        assert response.json()["data"]["status"] == "archived"

    async def test_archived_never_counts_as_unread(self, client: AsyncClient, buyer: User, auth_headers, notify):
        archived = await notify(buyer)
        await notify(buyer)
        await patch_action(client, auth_headers, archived.id, "archive")

        data = (await client.get("/api/notifications", headers=auth_headers)).json()["data"]
        assert data["unreadCount"] == 1

        data = (await client.get("/api/notifications?filter=archived", headers=auth_headers)).json()["data"]
        assert [n["id"] for n in data["notifications"]] == [str(archived.id)]

    async def test_lifecycle_keeps_unread_count_consistent(
        self, client: AsyncClient, buyer: User, auth_headers, notify
    ):
        notification = await notify(buyer)

        async def unread_count():
            return (await client.get("/api/notifications", headers=auth_headers)).json()["data"]["unreadCount"]

        assert await unread_count() == 1
        await patch_action(client, auth_headers, notification.id, "mark_read")
        assert await unread_count() == 0
        await patch_action(client, auth_headers, notification.id, "mark_unread")
        assert await unread_count() == 1
        await patch_action(client, auth_headers, notification.id, "archive")
        assert await unread_count() == 0
        response = await client.delete(f"/api/notifications/{notification.id}", headers=auth_headers)
        assert response.status_code == 200
        assert await unread_count() == 0

    async def test_other_users_notification_is_not_found(
        self, client: AsyncClient, buyer: User, other_buyer: User, auth_headers, notify
    ):
        foreign = await notify(other_buyer)

        response = await patch_action(client, auth_headers, foreign.id, "mark_read")
        assert response.status_code == 404
        assert response.json() == {"success": False, "error": f"Notification {foreign.id} not found", "code": "not_found"}

        response = await client.delete(f"/api/notifications/{foreign.id}", headers=auth_headers)
        assert response.status_code == 404

    async def test_unknown_and_malformed_ids_are_not_found(self, client: AsyncClient, buyer: User, auth_headers):
        assert (await patch_action(client, auth_headers, uuid4(), "mark_read")).status_code == 404
        assert (await patch_action(client, auth_headers, "not-a-uuid", "mark_read")).status_code == 404

    async def test_expired_notification_cannot_be_transitioned(
        self, client: AsyncClient, buyer: User, auth_headers, notify
    ):
        expired = await notify(buyer, expires_at=datetime.now(timezone.utc) - timedelta(minutes=5))

        response = await patch_action(client, auth_headers, expired.id, "mark_read")
        assert response.status_code == 404

    async def test_unknown_action_is_rejected(self, client: AsyncClient, buyer: User, auth_headers, notify):
        notification = await notify(buyer)
        response = await patch_action(client, auth_headers, notification.id, "star")
        assert response.status_code == 400

    async def test_delete_removes_notification(self, client: AsyncClient, buyer: User, auth_headers, notify):
        notification = await notify(buyer)

        response = await client.delete(f"/api/notifications/{notification.id}", headers=auth_headers)
        assert response.status_code == 200
        assert response.json()["success"] is True
        assert response.json()["message"] == "Notification deleted"

        response = await patch_action(client, auth_headers, notification.id, "mark_read")
        assert response.status_code == 404


class TestCreateNotification:
    """POST /api/notifications and NotificationService.create"""

    async def test_create_starts_unread(self, client: AsyncClient, buyer: User, agent: User, headers_for):
        response = await client.post(
            "/api/notifications",
            json={
                "type": "viewing_reminder",
                "title": "Viewing tomorrow",
                "message": "12 Elm Street at 10:00",
                "targetUserId": str(buyer.id),
                "priority": "high",
                "data": {"propertyId": TEST_PROPERTY_ID, "actionUrl": "/properties/12"},
            },
            headers=headers_for(agent),
        )
        assert response.status_code == 201
        data = response.json()["data"]
        assert data["status"] == "unread"
        assert data["priority"] == "high"
        assert data["userId"] == str(buyer.id)
        assert data["data"]["propertyId"] == TEST_PROPERTY_ID
        assert data["pushSent"] is False

    async def test_priority_defaults_to_medium(self, client: AsyncClient, buyer: User, auth_headers):
        response = await client.post(
            "/api/notifications",
            json={"type": "system_alert", "title": "Maintenance", "message": "Tonight", "targetUserId": str(buyer.id)},
            headers=auth_headers,
        )
        assert response.json()["data"]["priority"] == "medium"

    async def test_missing_target_user_is_not_found(self, client: AsyncClient, buyer: User, auth_headers):
        response = await client.post(
            "/api/notifications",
            json={"type": "price_drop", "title": "Price drop", "message": "Cheaper", "targetUserId": str(uuid4())},
            headers=auth_headers,
        )
        assert response.status_code == 404
        assert response.json()["code"] == "user_not_found"

    async def test_missing_fields_are_rejected(self, client: AsyncClient, buyer: User, auth_headers):
        response = await client.post(
            "/api/notifications", json={"type": "price_drop", "title": "Price drop"}, headers=auth_headers
        )
        assert response.status_code == 400
        assert response.json()["code"] == "validation_error"

    async def test_create_emits_to_owner_room(self, client: AsyncClient, buyer: User, auth_headers, connections):
        owner_socket, stranger_socket = FakeWebSocket(), FakeWebSocket()
        await connections.join(buyer.id, owner_socket)
        await connections.join(uuid4(), stranger_socket)

        response = await client.post(
            "/api/notifications",
            json={"type": "new_listing", "title": "New listing", "message": "3 rooms", "targetUserId": str(buyer.id)},
            headers=auth_headers,
        )

        events = owner_socket.events("new-notification")
        assert len(events) == 1
        assert events[0]["data"]["notification"]["id"] == response.json()["data"]["id"]
        assert events[0]["data"]["unreadCount"] == 1
        assert stranger_socket.sent == []

    async def test_push_is_recorded_when_delivered(self, db_session, make_user):
        from realty_api.services.connection_manager import ConnectionManager

        class RecordingPush:
            def __init__(self):
                self.calls = []

            async def send_to_user(self, user, title, body, data=None):
                self.calls.append((user.id, title, data))
                return True

        owner = await make_user("push@realty-test.com", push_token="ExponentPushToken[abc]")
        push = RecordingPush()
        service = NotificationService(db_session, connections=ConnectionManager(), push=push)

        notification, unread = await service.create(
            target_user_id=owner.id, type=NotificationType.PRICE_DROP, title="Price drop", message="5% cheaper"
        )

        assert unread == 1
        assert notification.push_sent is True
        assert notification.push_sent_at is not None
        assert push.calls[0][0] == owner.id
        assert push.calls[0][2]["notification_id"] == str(notification.id)
