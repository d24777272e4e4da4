"""Chat Service - persist-then-broadcast messaging between two users

Send path (REST and live channel share it):
    1. validate text
    2. resolve the conversation (lookup or create, restricted mode applies)
    3. persist the message, update the last-message summary and the receiver's unread count
    4. commit
    5. emit `receive-message` to the sender's and receiver's rooms only
    6. receiver offline -> mirror into the notification store as `new_message`

Steps 5 and 6 never undo step 4: a failed broadcast is logged and the client
catches up through history.
"""

import logging
from datetime import datetime, timezone
from uuid import UUID

from sqlalchemy import and_, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from realty_api.config import settings
from realty_api.models.conversation import Conversation
from realty_api.models.message import Message
from realty_api.models.notification import NotificationType
from realty_api.models.user import User
from realty_api.schemas.conversation import MessageResponse
from realty_api.schemas.socket import ServerEvent, frame
from realty_api.services.connection_manager import ConnectionManager, connection_manager
from realty_api.services.conversation_resolver import find_conversation, parse_user_id, resolve_conversation
from realty_api.services.notification_service import NotificationService
from realty_api.utils.errors import NotFoundError, ValidationError

logger = logging.getLogger(__name__)

MAX_MESSAGE_LENGTH = 5000
PREVIEW_LENGTH = 140


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def message_payload(message: Message) -> dict:
    """JSON body of a `receive-message` event (same shape as the REST response)"""
    return MessageResponse.model_validate(message).model_dump(mode="json", by_alias=True)


class ChatService:
    """Session-bound chat operations for one request or socket"""

    def __init__(
        self,
        db: AsyncSession,
        connections: ConnectionManager = connection_manager,
        mirror_offline: bool | None = None,
    ):
        self.db = db
        self.connections = connections
        self.mirror_offline = settings.MIRROR_OFFLINE_MESSAGES if mirror_offline is None else mirror_offline

    async def send(self, sender: User, receiver_id: UUID | str, text: str | None, property_id: str | None = None) -> Message:
        """Persist a message and deliver it to both participants

        Raises:
            ValidationError: empty or oversized text, bad receiver id, unsupported pairing
            NotFoundError: receiver does not exist
            BusinessRuleError: restricted mode forbids creating the conversation
        """
        text = (text or "").strip()
        if not text:
            raise ValidationError("Message text is required", code="empty_message")
        if len(text) > MAX_MESSAGE_LENGTH:
            raise ValidationError(f"Message text exceeds {MAX_MESSAGE_LENGTH} characters", code="message_too_long")

        sender_id, sender_name = sender.id, sender.display_name
        conversation = await resolve_conversation(self.db, sender, receiver_id, property_id)
        receiver_uuid = conversation.other_participant(sender_id)

        now = utcnow()
        message = Message(
            conversation_id=conversation.id,
            sender_id=sender_id,
            receiver_id=receiver_uuid,
            text=text,
            created_at=now,
        )
        self.db.add(message)

        conversation.last_message_text = text[:PREVIEW_LENGTH]
        conversation.last_message_sender_id = sender_id
        conversation.last_message_at = now
        conversation.updated_at = now
        conversation.set_unread(receiver_uuid, conversation.unread_for(receiver_uuid) + 1)

        await self.db.commit()
        logger.info(f"Message {message.id} persisted in conversation {conversation.id}")

        await self._broadcast(message, sender_id, receiver_uuid)

        if self.mirror_offline and not self.connections.is_online(receiver_uuid):
            await self._mirror_to_notifications(message, conversation, sender_name)

        return message

    async def _broadcast(self, message: Message, sender_id: UUID, receiver_id: UUID) -> None:
        try:
            delivered = await self.connections.emit_to_users(
                [sender_id, receiver_id], frame(ServerEvent.RECEIVE_MESSAGE, message_payload(message))
            )
            logger.debug(f"Message {message.id} delivered to {delivered} sockets")
        except Exception as e:
            logger.error(f"Broadcast of message {message.id} failed: {e}", exc_info=True)

    async def _mirror_to_notifications(self, message: Message, conversation: Conversation, sender_name: str) -> None:
        try:
            await NotificationService(self.db, self.connections).create(
                target_user_id=message.receiver_id,
                type=NotificationType.NEW_MESSAGE,
                title=f"New message from {sender_name}",
                message=message.text[:PREVIEW_LENGTH],
                data={
                    "property_id": conversation.property_id or None,
                    "action_url": f"/chat/{message.sender_id}",
                    "metadata": {
                        "conversation_id": str(conversation.id),
                        "message_id": str(message.id),
                        "sender_id": str(message.sender_id),
                    },
                },
            )
        except Exception as e:
            logger.error(f"Offline notification for message {message.id} failed: {e}", exc_info=True)

    async def _messages(self, conversation: Conversation, after_id: UUID | str | None, limit: int) -> list[Message]:
        """Messages of a conversation in (created_at, id) order

        Without after_id: the latest `limit` messages. With after_id: the first
        `limit` messages strictly after that message. An after_id that is not in
        the conversation falls back to the latest messages.
        """
        # Rows may have been bulk-updated (read_at) behind the identity map
        base = (
            select(Message)
            .where(Message.conversation_id == conversation.id)
            .execution_options(populate_existing=True)
        )

        anchor = None
        if after_id:
            try:
                anchor_uuid = UUID(str(after_id))
            except ValueError as e:
                raise ValidationError("after is not a valid message id") from e
            anchor = (
                await self.db.execute(
                    select(Message).where(Message.id == anchor_uuid, Message.conversation_id == conversation.id)
                )
            ).scalar_one_or_none()
            if anchor is None:
                logger.info(f"Resync anchor {after_id} not in conversation {conversation.id}, sending latest")

        if anchor is not None:
            result = await self.db.execute(
                base.where(
                    or_(
                        Message.created_at > anchor.created_at,
                        and_(Message.created_at == anchor.created_at, Message.id > anchor.id),
                    )
                )
                .order_by(Message.created_at.asc(), Message.id.asc())
                .limit(limit)
            )
            return list(result.scalars().all())

        result = await self.db.execute(base.order_by(Message.created_at.desc(), Message.id.desc()).limit(limit))
        return list(reversed(result.scalars().all()))

    async def history(
        self,
        user: User,
        counterparty_id: UUID | str,
        property_id: str | None = None,
        after_id: UUID | str | None = None,
        limit: int = 50,
    ) -> list[Message]:
        """Messages between the user and a counterparty, oldest first

        Never creates a conversation: no thread yet means an empty history.
        """
        counterparty_uuid = parse_user_id(counterparty_id)
        conversation = await find_conversation(self.db, user.id, counterparty_uuid, property_id)
        if conversation is None:
            return []
        return await self._messages(conversation, after_id, limit)

    async def get_conversation(self, user: User, conversation_id: UUID | str) -> Conversation:
        """Load a conversation the user participates in

        Raises:
            NotFoundError: unknown id or the user is not a participant
        """
        try:
            conversation_uuid = UUID(str(conversation_id))
        except ValueError as e:
            raise NotFoundError(f"Conversation {conversation_id} not found") from e

        conversation = await self.db.get(Conversation, conversation_uuid)
        if conversation is None or not conversation.has_participant(user.id):
            raise NotFoundError(f"Conversation {conversation_id} not found")
        return conversation

    async def conversation_messages(
        self, user: User, conversation_id: UUID | str, after_id: UUID | str | None = None, limit: int = 50
    ) -> tuple[Conversation, list[Message]]:
        conversation = await self.get_conversation(user, conversation_id)
        return conversation, await self._messages(conversation, after_id, limit)

    async def list_conversations(self, user: User) -> list[Conversation]:
        """The user's conversations, most recent activity first"""
        result = await self.db.execute(
            select(Conversation)
            .where(or_(Conversation.participant_low_id == user.id, Conversation.participant_high_id == user.id))
            .order_by(Conversation.updated_at.desc())
        )
        return list(result.scalars().all())

    async def mark_read(self, user: User, conversation_id: UUID | str) -> tuple[Conversation, int]:
        """Mark the counterparty's messages as read and zero the user's unread count

        Returns:
            (conversation, number of messages newly marked read)
        """
        conversation = await self.get_conversation(user, conversation_id)
        result = await self.db.execute(
            update(Message)
            .where(
                Message.conversation_id == conversation.id,
                Message.receiver_id == user.id,
                Message.read_at.is_(None),
            )
            .values(read_at=utcnow())
            .execution_options(synchronize_session=False)
        )
        conversation.set_unread(user.id, 0)
        await self.db.commit()
        logger.info(f"User {user.id} read {result.rowcount} messages in conversation {conversation.id}")
        return conversation, result.rowcount
