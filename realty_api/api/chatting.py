"""Chatting Endpoints - message history and REST send

Sending always goes through REST (or the equivalent `send-message` socket
event): the message is persisted first and then pushed to both participants'
live rooms as `receive-message`.
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from realty_api.database import get_db
from realty_api.models import User
from realty_api.schemas.common import ApiResponse
from realty_api.schemas.conversation import MessageResponse, SendMessageRequest
from realty_api.services.chat_service import ChatService
from realty_api.users import current_active_user

router = APIRouter(prefix="/api/chatting", tags=["chatting"])


@router.post(
    "",
    response_model=ApiResponse[MessageResponse],
    status_code=status.HTTP_201_CREATED,
    summary="Send a message",
)
async def send_message(
    data: SendMessageRequest,
    current_user: Annotated[User, Depends(current_active_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> ApiResponse[MessageResponse]:
    """Persist a message to the receiver and broadcast it

    The conversation is created on first contact (restricted mode applies).

    Args:
        data: receiverId, text and optional propertyId
        current_user: Authenticated sender
        db: Database session

    Returns:
        The persisted message

    Raises:
        400: Empty text, malformed receiverId, unsupported role pairing
        403: Restricted mode forbids starting this conversation
        404: Receiver not found
    """
    message = await ChatService(db).send(current_user, data.receiver_id, data.text, data.property_id)
    return ApiResponse(data=MessageResponse.model_validate(message))


@router.get("/{counterparty_id}", response_model=ApiResponse[list[MessageResponse]], summary="Message history")
async def get_history(
    counterparty_id: str,
    current_user: Annotated[User, Depends(current_active_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
    property_id: Annotated[str | None, Query(alias="propertyId", max_length=64)] = None,
    after: Annotated[str | None, Query(description="Only messages after this message id (resync)")] = None,
    limit: Annotated[int, Query(ge=1, le=200)] = 50,
) -> ApiResponse[list[MessageResponse]]:
    """Messages between the user and a counterparty, oldest first

    Returns an empty list when the two users have no conversation yet.
    """
    messages = await ChatService(db).history(current_user, counterparty_id, property_id, after, limit)
    return ApiResponse(data=[MessageResponse.model_validate(m) for m in messages])
