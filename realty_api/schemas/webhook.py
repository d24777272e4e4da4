"""Webhook Schemas - Request/Response models for event producer webhooks"""

from uuid import UUID

from pydantic import Field, field_validator

from realty_api.models.notification import NotificationPriority, NotificationType
from realty_api.schemas.common import CamelModel


class PropertyEventWebhookRequest(CamelModel):
    """Marketplace event pushed by a listing/price/search service

    One notification is created per target user.
    """

    event: NotificationType = Field(..., description="Notification type to create")
    target_user_ids: list[UUID] = Field(..., min_length=1, description="Users to notify")
    title: str = Field(..., min_length=1, max_length=200)
    message: str = Field(..., min_length=1)
    property_id: str | None = Field(None, description="Property the event is about")
    saved_search_id: str | None = None
    action_url: str | None = None
    priority: NotificationPriority | None = None
    expires_in_hours: int | None = Field(None, gt=0, description="Optional time to live")

    @field_validator("event")
    @classmethod
    def reject_chat_type(cls, value: NotificationType) -> NotificationType:
        if value == NotificationType.NEW_MESSAGE:
            raise ValueError("new_message notifications are created by the chat service only")
        return value


class PropertyEventWebhookResponse(CamelModel):
    """Webhook response schema"""

    created_count: int
    notification_ids: list[UUID]
    skipped_user_ids: list[UUID] = Field(default_factory=list, description="Targets that do not exist")
