"""Unit Tests for ConnectionManager rooms"""

from uuid import uuid4

import pytest
from fixtures import FakeWebSocket

from realty_api.services.connection_manager import ConnectionManager

pytestmark = [pytest.mark.unit]


class TestRooms:
    async def test_join_and_leave(self):
        manager = ConnectionManager()
        user_id = uuid4()
        phone, laptop = FakeWebSocket(), FakeWebSocket()

        await manager.join(user_id, phone)
        await manager.join(str(user_id), laptop)
        assert manager.is_online(user_id)
        assert manager.connection_count(user_id) == 2

        await manager.leave(user_id, phone)
        assert manager.connection_count(user_id) == 1
        await manager.leave(user_id, laptop)
        assert manager.is_online(user_id) is False

    async def test_leave_unknown_socket_is_a_no_op(self):
        manager = ConnectionManager()
        await manager.leave(uuid4(), FakeWebSocket())
        assert manager.connection_count(uuid4()) == 0

    async def test_join_is_idempotent_per_socket(self):
        manager = ConnectionManager()
        user_id, websocket = uuid4(), FakeWebSocket()

        await manager.join(user_id, websocket)
        await manager.join(user_id, websocket)
        assert manager.connection_count(user_id) == 1


class TestEmit:
    async def test_emit_reaches_only_the_room(self):
        manager = ConnectionManager()
        owner, stranger = uuid4(), uuid4()
        owner_socket, stranger_socket = FakeWebSocket(), FakeWebSocket()
        await manager.join(owner, owner_socket)
        await manager.join(stranger, stranger_socket)

        delivered = await manager.emit_to_user(owner, {"event": "pong", "data": {}})

        assert delivered == 1
        assert owner_socket.sent == [{"event": "pong", "data": {}}]
        assert stranger_socket.sent == []

    async def test_emit_to_empty_room(self):
        assert await ConnectionManager().emit_to_user(uuid4(), {"event": "pong", "data": {}}) == 0

    async def test_failed_sockets_are_pruned(self):
        manager = ConnectionManager()
        user_id = uuid4()
        dead, alive = FakeWebSocket(fail=True), FakeWebSocket()
        await manager.join(user_id, dead)
        await manager.join(user_id, alive)

        delivered = await manager.emit_to_user(user_id, {"event": "pong", "data": {}})

        assert delivered == 1
        assert manager.connection_count(user_id) == 1

    async def test_emit_to_users_deduplicates_rooms(self):
        manager = ConnectionManager()
        user_id = uuid4()
        websocket = FakeWebSocket()
        await manager.join(user_id, websocket)

        delivered = await manager.emit_to_users([user_id, str(user_id)], {"event": "pong", "data": {}})

        assert delivered == 1
        assert len(websocket.sent) == 1
