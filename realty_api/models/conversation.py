"""Conversation Model - Two-party message threads

A conversation joins exactly two users, optionally in the context of a property.
At most one conversation exists per (participant pair, property): participants are
stored in canonical order (low id, high id) and covered by a unique constraint.
"""

from datetime import datetime, timezone
from enum import Enum as PyEnum
from uuid import UUID, uuid4

from sqlalchemy import JSON, Column, DateTime, ForeignKey, Index, String, Text, UniqueConstraint, Uuid
from sqlalchemy.orm import relationship

from realty_api.database import Base


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ConversationType(str, PyEnum):
    """Which roles the two participants hold"""

    BUYER_AGENT = "buyer_agent"
    AGENT_SELLER = "agent_seller"
    BUYER_SELLER = "buyer_seller"


def canonical_pair(first: UUID, second: UUID) -> tuple[UUID, UUID]:
    """Order two participant ids so the same pair always maps to the same row"""
    return (first, second) if str(first) < str(second) else (second, first)


class Conversation(Base):
    """Conversation model - one thread per participant pair and property

    Attributes:
        id: Unique conversation identifier (UUID)
        type: buyer_agent | agent_seller | buyer_seller
        participant_low_id / participant_high_id: The two participants, canonical order
        initiator_id: Participant who created the thread
        property_id: Property context ("" when the thread is not about a property)
        last_message_text / last_message_sender_id / last_message_at: Last message summary
        unread_counts: {"<user_id>": <unread messages for that participant>}
        created_at / updated_at: Timestamps (updated_at moves with every message)
    """

    __tablename__ = "conversations"

    # Primary key
    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid4)

    type = Column(String(20), nullable=False)

    # Participants (immutable after creation)
    participant_low_id = Column(
        Uuid(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    participant_high_id = Column(
        Uuid(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    initiator_id = Column(Uuid(as_uuid=True), ForeignKey("users.id", ondelete="SET NULL"), nullable=True)

    property_id = Column(String(64), nullable=False, default="")

    # Last message summary
    last_message_text = Column(Text, nullable=True)
    last_message_sender_id = Column(Uuid(as_uuid=True), nullable=True)
    last_message_at = Column(DateTime(timezone=True), nullable=True)

    unread_counts = Column(JSON, nullable=False, default=lambda: {})

    # Timestamps
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)

    # Relationships
    messages = relationship(
        "Message", back_populates="conversation", cascade="all, delete-orphan", order_by="Message.created_at"
    )

    __table_args__ = (
        UniqueConstraint("participant_low_id", "participant_high_id", "property_id", name="uq_conversation_pair"),
        Index("ix_conversations_updated", "updated_at"),
    )

    @property
    def participant_ids(self) -> list[UUID]:
        return [self.participant_low_id, self.participant_high_id]

    def has_participant(self, user_id: UUID) -> bool:
        return user_id in (self.participant_low_id, self.participant_high_id)

    def other_participant(self, user_id: UUID) -> UUID:
        return self.participant_high_id if user_id == self.participant_low_id else self.participant_low_id

    def unread_for(self, user_id: UUID) -> int:
        return int((self.unread_counts or {}).get(str(user_id), 0))

    def set_unread(self, user_id: UUID, count: int) -> None:
        # Reassign so SQLAlchemy sees the JSON column change
        counts = dict(self.unread_counts or {})
        counts[str(user_id)] = count
        self.unread_counts = counts

    def __repr__(self) -> str:
        return (
            f"<Conversation(id={self.id}, type={self.type}, "
            f"participants=({self.participant_low_id}, {self.participant_high_id}), property={self.property_id!r})>"
        )
