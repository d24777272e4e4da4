"""Notification Endpoints - list, transition, delete and create notifications

All endpoints act on the authenticated user's notifications only; another
user's notification id behaves like an unknown id (404).
"""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from realty_api.config import settings
from realty_api.database import get_db
from realty_api.models import User
from realty_api.schemas.common import ApiResponse
from realty_api.schemas.notification import (
    BulkResult,
    NotificationActionRequest,
    NotificationBulkRequest,
    NotificationCreate,
    NotificationFilter,
    NotificationList,
    NotificationResponse,
    UnreadCount,
)
from realty_api.services.notification_service import NotificationService
from realty_api.users import current_active_user

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/notifications", tags=["notifications"])


@router.get("", response_model=ApiResponse[NotificationList], summary="List notifications")
async def list_notifications(
    current_user: Annotated[User, Depends(current_active_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
    page: Annotated[int, Query(ge=1)] = 1,
    limit: Annotated[int, Query(ge=1, le=settings.NOTIFICATION_PAGE_LIMIT_MAX)] = 20,
    status_filter: Annotated[NotificationFilter, Query(alias="filter")] = NotificationFilter.ALL,
) -> ApiResponse[NotificationList]:
    """List the user's notifications, newest first

    - **filter**: all | unread | read | archived
    - Expired notifications are never listed
    - `pagination` describes the filtered result, `unreadCount` is always the overall unread count
    """
    notifications, pagination, unread = await NotificationService(db).list_for_user(
        current_user, page=page, limit=limit, status_filter=status_filter
    )
    return ApiResponse(
        data=NotificationList(
            notifications=[NotificationResponse.model_validate(n) for n in notifications],
            pagination=pagination,
            unread_count=unread,
        )
    )


@router.get("/unread-count", response_model=ApiResponse[UnreadCount], summary="Unread notification count")
async def get_unread_count(
    current_user: Annotated[User, Depends(current_active_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> ApiResponse[UnreadCount]:
    unread = await NotificationService(db).unread_count(current_user.id)
    return ApiResponse(data=UnreadCount(unread_count=unread))


@router.post(
    "",
    response_model=ApiResponse[NotificationResponse],
    status_code=status.HTTP_201_CREATED,
    summary="Create a notification",
)
async def create_notification(
    data: NotificationCreate,
    current_user: Annotated[User, Depends(current_active_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> ApiResponse[NotificationResponse]:
    """Create a notification for a target user

    The notification always starts unread. The target's live sessions receive a
    `new-notification` event and a push is sent when they registered a token.

    Args:
        data: Notification content and target user
        current_user: Authenticated user (creator)
        db: Database session

    Returns:
        The created notification

    Raises:
        404: Target user not found
    """
    notification, _ = await NotificationService(db).create(
        target_user_id=data.target_user_id,
        type=data.type,
        title=data.title,
        message=data.message,
        data=data.data,
        priority=data.priority,
        expires_at=data.expires_at,
    )
    logger.info(f"User {current_user.id} created notification {notification.id}")
    return ApiResponse(data=NotificationResponse.model_validate(notification))


@router.patch("/bulk", response_model=ApiResponse[BulkResult], summary="Bulk notification action")
async def bulk_update_notifications(
    data: NotificationBulkRequest,
    current_user: Annotated[User, Depends(current_active_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> ApiResponse[BulkResult]:
    """Apply one action to many notifications

    - **mark_all_read** / **delete_all**: every notification of the user
    - **mark_selected_read** / **delete_selected** / **archive_selected**: `notificationIds` required

    Malformed ids are ignored. A selection with no usable id is rejected (400).
    `affectedCount` counts rows that actually changed.
    """
    affected = await NotificationService(db).bulk(current_user, data.action, data.notification_ids)
    return ApiResponse(data=BulkResult(affected_count=affected))


@router.patch("/{notification_id}", response_model=ApiResponse[NotificationResponse], summary="Transition a notification")
async def update_notification(
    notification_id: str,
    data: NotificationActionRequest,
    current_user: Annotated[User, Depends(current_active_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> ApiResponse[NotificationResponse]:
    """Apply mark_read, mark_unread or archive

    Raises:
        404: Unknown, expired or foreign notification
        409: mark_read / mark_unread on an archived notification
    """
    notification = await NotificationService(db).apply_action(current_user, notification_id, data.action)
    return ApiResponse(data=NotificationResponse.model_validate(notification))


@router.delete("/{notification_id}", response_model=ApiResponse[None], summary="Delete a notification")
async def delete_notification(
    notification_id: str,
    current_user: Annotated[User, Depends(current_active_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> ApiResponse[None]:
    await NotificationService(db).delete(current_user, notification_id)
    return ApiResponse(message="Notification deleted")
