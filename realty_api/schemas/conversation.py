"""Conversation and Message Schemas - Request/Response models for chat APIs"""

from datetime import datetime
from uuid import UUID

from pydantic import Field

from realty_api.models.conversation import Conversation, ConversationType
from realty_api.schemas.common import CamelModel


class MessageResponse(CamelModel):
    """Persisted chat message"""

    id: UUID
    conversation_id: UUID
    sender_id: UUID
    receiver_id: UUID
    text: str
    read_at: datetime | None = None
    created_at: datetime


class LastMessage(CamelModel):
    """Last message summary shown in thread lists"""

    sender_id: UUID | None = None
    text: str
    created_at: datetime | None = None


class ConversationResponse(CamelModel):
    """Conversation as seen by one participant (unread_count is the viewer's)"""

    id: UUID
    type: ConversationType
    participant_ids: list[UUID]
    initiator_id: UUID | None = None
    property_id: str | None = None
    last_message: LastMessage | None = None
    unread_count: int = 0
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_model(cls, conversation: Conversation, viewer_id: UUID) -> "ConversationResponse":
        last_message = None
        if conversation.last_message_text is not None:
            last_message = LastMessage(
                sender_id=conversation.last_message_sender_id,
                text=conversation.last_message_text,
                created_at=conversation.last_message_at,
            )
        return cls(
            id=conversation.id,
            type=ConversationType(conversation.type),
            participant_ids=conversation.participant_ids,
            initiator_id=conversation.initiator_id,
            property_id=conversation.property_id or None,
            last_message=last_message,
            unread_count=conversation.unread_for(viewer_id),
            created_at=conversation.created_at,
            updated_at=conversation.updated_at,
        )


class ConversationWithMessages(CamelModel):
    """GET /api/messages/{id} payload"""

    conversation: ConversationResponse
    messages: list[MessageResponse]


class ConversationCreate(CamelModel):
    """POST /api/messages request - explicit thread creation

    counterparty_id stays a string so a malformed id is reported as a validation
    error by the resolver rather than by request parsing.
    """

    counterparty_id: str
    property_id: str | None = Field(None, max_length=64)
    type: ConversationType | None = None


class SendMessageRequest(CamelModel):
    """POST /api/chatting request"""

    receiver_id: str
    text: str = Field(..., max_length=5000)
    property_id: str | None = Field(None, max_length=64)


class MarkReadResult(CamelModel):
    """PUT /api/messages/{id}/read outcome"""

    conversation_id: UUID
    marked_count: int
