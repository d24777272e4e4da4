"""Message Model - Store individual chat messages

Messages are immutable once created. They are ordered by (created_at, id).
read_at doubles as the delivered/read marker for the receiver.
"""

from datetime import datetime, timezone
from uuid import uuid4

from sqlalchemy import Column, DateTime, ForeignKey, Index, Text, Uuid
from sqlalchemy.orm import relationship

from realty_api.database import Base


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Message(Base):
    """Message model - individual chat message in a conversation

    Attributes:
        id: Unique message identifier (UUID)
        conversation_id: Foreign key to Conversation this message belongs to
        sender_id: User who sent the message
        receiver_id: The other participant
        text: Message body
        read_at: When the receiver read the message (null while unread)
        created_at: When message was persisted
    """

    __tablename__ = "messages"

    # Primary key
    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid4)

    # Foreign keys
    conversation_id = Column(
        Uuid(as_uuid=True), ForeignKey("conversations.id", ondelete="CASCADE"), nullable=False, index=True
    )
    sender_id = Column(Uuid(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    receiver_id = Column(Uuid(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)

    # Message data
    text = Column(Text, nullable=False)

    read_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)

    # Relationships
    conversation = relationship("Conversation", back_populates="messages")

    __table_args__ = (
        Index("ix_messages_conversation_created", "conversation_id", "created_at"),  # Chronological history
        Index("ix_messages_receiver_read", "receiver_id", "read_at"),
    )

    def __repr__(self) -> str:
        return f"<Message(id={self.id}, conversation_id={self.conversation_id}, sender_id={self.sender_id})>"
