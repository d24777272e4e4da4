"""Live Channel Endpoint - WebSocket rooms for chat and notification events

Authentication: pass the JWT as query parameter (/ws/chat?token=xxx).
An invalid token closes the socket with 1008 before it is accepted.

After connecting, the client joins its room:

    {"event": "add-user", "data": {"userId": "<own user id>"}}

and then receives every `receive-message` for conversations it takes part in
and every `new-notification` addressed to it. Frame formats are documented in
realty_api.schemas.socket.
"""

import logging
from uuid import UUID

from fastapi import APIRouter, Depends, WebSocket, WebSocketDisconnect, status
from sqlalchemy.ext.asyncio import AsyncSession

from realty_api.database import get_db
from realty_api.schemas.socket import (
    AddUserData,
    ClientEvent,
    SendMessageData,
    ServerEvent,
    SocketFrame,
    error_frame,
    frame,
)
from realty_api.services.chat_service import ChatService
from realty_api.services.connection_manager import ConnectionManager, connection_manager
from realty_api.users import authenticate_token
from realty_api.utils.errors import AppError

logger = logging.getLogger(__name__)

router = APIRouter()


def get_connection_manager() -> ConnectionManager:
    return connection_manager


@router.websocket("/ws/chat")
async def chat_socket(
    websocket: WebSocket,
    token: str | None = None,
    db: AsyncSession = Depends(get_db),
    connections: ConnectionManager = Depends(get_connection_manager),
):
    """WebSocket endpoint for the live chat channel

    Client -> Server events: add-user, send-message, ping
    Server -> Client events: joined, receive-message, new-notification, pong, error
    """
    user = await authenticate_token(token, db)
    if user is None:
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION, reason="Invalid token")
        return

    await websocket.accept()
    user_id = user.id
    joined = False
    chat = ChatService(db, connections)

    try:
        while True:
            try:
                incoming = SocketFrame.model_validate(await websocket.receive_json())
            except ValueError:
                await websocket.send_json(error_frame("Malformed frame", "invalid_frame"))
                continue

            match incoming.event:
                case ClientEvent.ADD_USER.value:
                    try:
                        requested = AddUserData.model_validate(incoming.data).user_id
                    except ValueError:
                        await websocket.send_json(error_frame("userId is required", "validation_error"))
                        continue
                    try:
                        same_user = UUID(requested) == user_id
                    except ValueError:
                        same_user = False
                    if not same_user:
                        logger.warning(f"User {user_id} tried to join room {requested}")
                        await websocket.send_json(error_frame("Cannot join another user's room", "user_mismatch"))
                        continue
                    if not joined:
                        await connections.join(user_id, websocket)
                        joined = True
                    await websocket.send_json(frame(ServerEvent.JOINED, {"userId": str(user_id)}))

                case ClientEvent.SEND_MESSAGE.value:
                    try:
                        outgoing = SendMessageData.model_validate(incoming.data)
                    except ValueError:
                        await websocket.send_json(error_frame("receiverId and text are required", "validation_error"))
                        continue
                    try:
                        await chat.send(user, outgoing.receiver_id, outgoing.text, outgoing.property_id)
                    except AppError as e:
                        await websocket.send_json(error_frame(e.message, e.code))

                case ClientEvent.PING.value:
                    await websocket.send_json(frame(ServerEvent.PONG))

                case _:
                    await websocket.send_json(error_frame(f"Unknown event {incoming.event!r}", "unknown_event"))

    except WebSocketDisconnect:
        logger.info(f"Socket of user {user_id} disconnected")
    except Exception as e:
        logger.error(f"Socket of user {user_id} failed: {e}", exc_info=True)
        await websocket.close(code=status.WS_1011_INTERNAL_ERROR)
    finally:
        if joined:
            await connections.leave(user_id, websocket)
