"""Pydantic Schemas"""

from realty_api.schemas.common import ApiResponse, CamelModel, Pagination
from realty_api.schemas.conversation import (
    ConversationCreate,
    ConversationResponse,
    ConversationWithMessages,
    LastMessage,
    MarkReadResult,
    MessageResponse,
    SendMessageRequest,
)
from realty_api.schemas.notification import (
    BulkAction,
    BulkResult,
    NotificationAction,
    NotificationActionRequest,
    NotificationBulkRequest,
    NotificationCreate,
    NotificationData,
    NotificationFilter,
    NotificationList,
    NotificationResponse,
    UnreadCount,
)
from realty_api.schemas.socket import ClientEvent, ServerEvent, SocketFrame
from realty_api.schemas.user import PushTokenRequest, PushTokenResponse, UserCreate, UserRead, UserUpdate
from realty_api.schemas.webhook import PropertyEventWebhookRequest, PropertyEventWebhookResponse

__all__ = [
    # Envelope
    "ApiResponse",
    "CamelModel",
    "Pagination",
    # User schemas
    "UserCreate",
    "UserRead",
    "UserUpdate",
    "PushTokenRequest",
    "PushTokenResponse",
    # Notification schemas
    "NotificationFilter",
    "NotificationAction",
    "BulkAction",
    "NotificationData",
    "NotificationCreate",
    "NotificationResponse",
    "NotificationActionRequest",
    "NotificationBulkRequest",
    "BulkResult",
    "NotificationList",
    "UnreadCount",
    # Conversation schemas
    "ConversationCreate",
    "ConversationResponse",
    "ConversationWithMessages",
    "LastMessage",
    "MessageResponse",
    "SendMessageRequest",
    "MarkReadResult",
    # Live channel
    "ClientEvent",
    "ServerEvent",
    "SocketFrame",
    # Webhook schemas
    "PropertyEventWebhookRequest",
    "PropertyEventWebhookResponse",
]
