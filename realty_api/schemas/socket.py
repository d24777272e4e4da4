"""Live Channel Schemas - frames exchanged over /ws/chat

Every frame is {"event": "<name>", "data": {...}}.

Client -> Server:
    add-user      {"userId": "<uuid>"}                          join the caller's room
    send-message  {"receiverId": "<uuid>", "text": "...", "propertyId"?: "..."}
    ping          {}

Server -> Client:
    joined            {"userId": "<uuid>"}
    receive-message   MessageResponse
    new-notification  {"notification": NotificationResponse, "unreadCount": int}
    pong              {}
    error             {"error": "...", "code": "..."}
"""

from enum import Enum
from typing import Any

from pydantic import BaseModel, Field

from realty_api.schemas.common import CamelModel


class ClientEvent(str, Enum):
    ADD_USER = "add-user"
    SEND_MESSAGE = "send-message"
    PING = "ping"


class ServerEvent(str, Enum):
    JOINED = "joined"
    RECEIVE_MESSAGE = "receive-message"
    NEW_NOTIFICATION = "new-notification"
    PONG = "pong"
    ERROR = "error"


class SocketFrame(BaseModel):
    """Envelope for every live channel frame"""

    event: str
    data: dict[str, Any] = Field(default_factory=dict)


class AddUserData(CamelModel):
    user_id: str


class SendMessageData(CamelModel):
    receiver_id: str
    text: str
    property_id: str | None = None


def frame(event: ServerEvent, data: dict[str, Any] | None = None) -> dict[str, Any]:
    """Build a server -> client frame ready for send_json"""
    return {"event": event.value, "data": data or {}}


def error_frame(error: str, code: str) -> dict[str, Any]:
    return frame(ServerEvent.ERROR, {"error": error, "code": code})
