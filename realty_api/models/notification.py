"""Notification Model - Store user-directed notifications

Notifications are created by server-side event producers (new listing, price drop,
saved search match, ...), by the notification-creation API, and by the chat service
when a message reaches an offline receiver.

Lifecycle: unread -> read -> unread (explicit mark_unread), any -> archived.
Rows whose expires_at has passed are hidden from every query and purged by the
expiry job.
"""

import uuid
from datetime import datetime, timezone
from enum import Enum

from sqlalchemy import JSON, Boolean, Column, DateTime, ForeignKey, Index, String, Text, Uuid
from sqlalchemy.orm import relationship

from realty_api.database import Base


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class NotificationType(str, Enum):
    """Notification types"""

    NEW_LISTING = "new_listing"
    NEW_PROPERTY = "new_property"
    PRICE_DROP = "price_drop"
    SAVED_SEARCH_MATCH = "saved_search_match"
    MARKET_UPDATE = "market_update"
    VIEWING_REMINDER = "viewing_reminder"
    OFFER_UPDATE = "offer_update"
    DOCUMENT_REQUIRED = "document_required"
    SYSTEM_ALERT = "system_alert"
    NEW_MESSAGE = "new_message"  # Chat message mirrored for an offline receiver


class NotificationPriority(str, Enum):
    """Notification priority"""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    URGENT = "urgent"


class NotificationStatus(str, Enum):
    """Notification status"""

    UNREAD = "unread"
    READ = "read"
    ARCHIVED = "archived"


class Notification(Base):
    """Notification model - user notifications for marketplace events

    Attributes:
        id: Unique notification identifier (UUID)
        user_id: Foreign key to User who receives this notification
        type: Notification type (NotificationType value)
        title: Notification title (e.g., "Price drop")
        message: Notification message
        priority: low | medium | high | urgent
        status: unread | read | archived
        data: {"property_id": ..., "saved_search_id": ..., "action_url": ..., "metadata": {...}}
        email_sent / email_sent_at: Email channel delivery flag
        push_sent / push_sent_at: Push channel delivery flag
        in_app: Show in the in-app notification center
        read_at / archived_at: Transition timestamps
        expires_at: After this instant the notification is eligible for removal
        created_at / updated_at: Row timestamps (updated_at moves on every transition)
    """

    __tablename__ = "notifications"

    # Primary key
    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)

    # Foreign keys
    user_id = Column(Uuid(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)

    # Notification content
    type = Column(String(50), nullable=False, index=True)  # NotificationType enum value
    title = Column(String(200), nullable=False)
    message = Column(Text, nullable=False)
    priority = Column(String(20), nullable=False, default=NotificationPriority.MEDIUM.value)
    data = Column(JSON, nullable=True)

    # State
    status = Column(String(20), nullable=False, default=NotificationStatus.UNREAD.value, index=True)
    read_at = Column(DateTime(timezone=True), nullable=True)
    archived_at = Column(DateTime(timezone=True), nullable=True)
    expires_at = Column(DateTime(timezone=True), nullable=True, index=True)

    # Delivery channels
    email_sent = Column(Boolean, default=False, nullable=False)
    email_sent_at = Column(DateTime(timezone=True), nullable=True)
    push_sent = Column(Boolean, default=False, nullable=False)
    push_sent_at = Column(DateTime(timezone=True), nullable=True)
    in_app = Column(Boolean, default=True, nullable=False)

    # Timestamps (client-side defaults keep sub-second ordering on every backend)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)

    # Relationships
    user = relationship("User", back_populates="notifications")

    # Indexes (composite indexes for common queries)
    __table_args__ = (
        Index("ix_notifications_user_status", "user_id", "status"),  # Unread counts, filtered lists
        Index("ix_notifications_user_type", "user_id", "type"),
        Index("ix_notifications_user_created", "user_id", "created_at"),  # Newest-first listing
    )

    def __repr__(self) -> str:
        return f"<Notification(id={self.id}, user_id={self.user_id}, type={self.type}, status={self.status})>"
