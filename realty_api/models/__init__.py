"""Database Models

All models must be imported here for Alembic auto-detect to work.
"""

from realty_api.models.conversation import Conversation, ConversationType
from realty_api.models.message import Message
from realty_api.models.notification import (
    Notification,
    NotificationPriority,
    NotificationStatus,
    NotificationType,
)
from realty_api.models.user import User, UserRole

__all__ = [
    "User",
    "Conversation",
    "Message",
    "Notification",
    # Enums
    "UserRole",
    "ConversationType",
    "NotificationType",
    "NotificationPriority",
    "NotificationStatus",
]
