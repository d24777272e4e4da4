"""Conversation Endpoints - list, resolve and read two-party conversations"""

from typing import Annotated

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from realty_api.database import get_db
from realty_api.models import User
from realty_api.schemas.common import ApiResponse
from realty_api.schemas.conversation import (
    ConversationCreate,
    ConversationResponse,
    ConversationWithMessages,
    MarkReadResult,
    MessageResponse,
)
from realty_api.services.chat_service import ChatService
from realty_api.services.conversation_resolver import resolve_conversation
from realty_api.users import current_active_user

router = APIRouter(prefix="/api/messages", tags=["conversations"])


@router.get("", response_model=ApiResponse[list[ConversationResponse]], summary="List user conversations")
async def list_conversations(
    current_user: Annotated[User, Depends(current_active_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> ApiResponse[list[ConversationResponse]]:
    """Retrieve the user's conversations, most recent activity first

    - `unreadCount` is the authenticated user's unread count in each thread
    - Does NOT include messages (use GET /api/messages/{id} for that)
    """
    conversations = await ChatService(db).list_conversations(current_user)
    return ApiResponse(data=[ConversationResponse.from_model(c, current_user.id) for c in conversations])


@router.get("/ensure-thread", response_model=ApiResponse[ConversationResponse], summary="Find or create a conversation")
async def ensure_thread(
    current_user: Annotated[User, Depends(current_active_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
    other_user_id: Annotated[str | None, Query(alias="otherUserId")] = None,
    property_id: Annotated[str | None, Query(alias="propertyId", max_length=64)] = None,
) -> ApiResponse[ConversationResponse]:
    """Return the conversation with another user, creating it on first contact

    Raises:
        400: Missing/malformed otherUserId, self-conversation, unsupported role pairing
        403: Restricted mode forbids creating this conversation
        404: Other user not found
    """
    conversation = await resolve_conversation(db, current_user, other_user_id, property_id)
    return ApiResponse(data=ConversationResponse.from_model(conversation, current_user.id))


@router.post("", response_model=ApiResponse[ConversationResponse], summary="Create a conversation")
async def create_conversation(
    data: ConversationCreate,
    current_user: Annotated[User, Depends(current_active_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> ApiResponse[ConversationResponse]:
    """Explicitly create a conversation

    Same rules as ensure-thread. When the conversation already exists it is
    returned unchanged. A supplied `type` must match the participants' roles.
    """
    conversation = await resolve_conversation(
        db, current_user, data.counterparty_id, data.property_id, conversation_type=data.type
    )
    return ApiResponse(data=ConversationResponse.from_model(conversation, current_user.id))


@router.get(
    "/{conversation_id}", response_model=ApiResponse[ConversationWithMessages], summary="Get conversation messages"
)
async def get_conversation(
    conversation_id: str,
    current_user: Annotated[User, Depends(current_active_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
    after: Annotated[str | None, Query(description="Only messages after this message id")] = None,
    limit: Annotated[int, Query(ge=1, le=200)] = 50,
) -> ApiResponse[ConversationWithMessages]:
    """Retrieve a conversation with its messages (oldest first)

    - Returns 404 if the conversation doesn't exist or the user is not a participant
    """
    conversation, messages = await ChatService(db).conversation_messages(current_user, conversation_id, after, limit)
    return ApiResponse(
        data=ConversationWithMessages(
            conversation=ConversationResponse.from_model(conversation, current_user.id),
            messages=[MessageResponse.model_validate(m) for m in messages],
        )
    )


@router.put("/{conversation_id}/read", response_model=ApiResponse[MarkReadResult], summary="Mark conversation read")
async def mark_conversation_read(
    conversation_id: str,
    current_user: Annotated[User, Depends(current_active_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> ApiResponse[MarkReadResult]:
    """Mark the counterparty's messages read and reset the user's unread count"""
    conversation, marked = await ChatService(db).mark_read(current_user, conversation_id)
    return ApiResponse(data=MarkReadResult(conversation_id=conversation.id, marked_count=marked))
