"""Notification Schemas - Request/Response models for notifications API"""

from datetime import datetime
from enum import Enum
from typing import Any
from uuid import UUID

from pydantic import Field, computed_field

from realty_api.models.notification import NotificationPriority, NotificationStatus, NotificationType
from realty_api.schemas.common import CamelModel, Pagination


class NotificationFilter(str, Enum):
    """Status filter for GET /api/notifications"""

    ALL = "all"
    UNREAD = "unread"
    READ = "read"
    ARCHIVED = "archived"


class NotificationAction(str, Enum):
    """Single-notification transitions (PATCH /api/notifications/{id})"""

    MARK_READ = "mark_read"
    MARK_UNREAD = "mark_unread"
    ARCHIVE = "archive"


class BulkAction(str, Enum):
    """Bulk transitions (PATCH /api/notifications/bulk)"""

    MARK_ALL_READ = "mark_all_read"
    DELETE_ALL = "delete_all"
    MARK_SELECTED_READ = "mark_selected_read"
    DELETE_SELECTED = "delete_selected"
    ARCHIVE_SELECTED = "archive_selected"

    @property
    def needs_selection(self) -> bool:
        return self in (BulkAction.MARK_SELECTED_READ, BulkAction.DELETE_SELECTED, BulkAction.ARCHIVE_SELECTED)


class NotificationData(CamelModel):
    """Free-form payload attached to a notification"""

    property_id: str | None = None
    saved_search_id: str | None = None
    action_url: str | None = None
    metadata: dict[str, Any] | None = None


class NotificationCreate(CamelModel):
    """POST /api/notifications request"""

    type: NotificationType
    title: str = Field(..., min_length=1, max_length=200)
    message: str = Field(..., min_length=1)
    target_user_id: UUID
    data: NotificationData | None = None
    priority: NotificationPriority | None = None
    expires_at: datetime | None = None


class NotificationResponse(CamelModel):
    """Notification response schema"""

    id: UUID
    user_id: UUID
    type: NotificationType
    title: str
    message: str
    priority: NotificationPriority
    status: NotificationStatus
    data: NotificationData | None = None
    email_sent: bool = False
    push_sent: bool = False
    in_app: bool = True
    read_at: datetime | None = None
    archived_at: datetime | None = None
    expires_at: datetime | None = None
    created_at: datetime
    updated_at: datetime

    @computed_field
    @property
    def read(self) -> bool:
        """Legacy boolean kept for older clients"""
        return self.status == NotificationStatus.READ


class NotificationActionRequest(CamelModel):
    """PATCH /api/notifications/{id} request"""

    action: NotificationAction


class NotificationBulkRequest(CamelModel):
    """PATCH /api/notifications/bulk request

    notification_ids stays a list of raw strings: malformed ids are filtered out
    by the service instead of failing the whole request.
    """

    action: BulkAction
    notification_ids: list[str] | None = None


class BulkResult(CamelModel):
    """Bulk operation outcome"""

    affected_count: int


class NotificationList(CamelModel):
    """GET /api/notifications payload"""

    notifications: list[NotificationResponse]
    pagination: Pagination
    unread_count: int


class UnreadCount(CamelModel):
    """Unread notification count"""

    unread_count: int
