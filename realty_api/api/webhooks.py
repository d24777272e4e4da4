"""Webhook Endpoints - Receive marketplace events from producer services

Listing, price tracking and saved-search services call these endpoints to
notify users. They use API key authentication (X-API-Key header) instead of
user bearer tokens.
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Annotated

from fastapi import APIRouter, Depends, Header, status
from sqlalchemy.ext.asyncio import AsyncSession

from realty_api.config import settings
from realty_api.database import get_db
from realty_api.schemas.common import ApiResponse
from realty_api.schemas.notification import NotificationData
from realty_api.schemas.webhook import PropertyEventWebhookRequest, PropertyEventWebhookResponse
from realty_api.services.notification_service import NotificationService
from realty_api.utils.errors import AuthenticationError, NotFoundError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/webhooks", tags=["webhooks"])


async def verify_api_key(x_api_key: Annotated[str | None, Header(alias="X-API-Key")] = None) -> str | None:
    """Verify API key for webhook authentication

    Raises:
        401: API key missing or wrong (when PROPERTY_EVENTS_API_KEY is configured)
    """
    if not settings.PROPERTY_EVENTS_API_KEY:
        logger.warning("PROPERTY_EVENTS_API_KEY not configured - webhook authentication disabled (development mode)")
        return x_api_key

    if x_api_key != settings.PROPERTY_EVENTS_API_KEY:
        logger.warning(f"Invalid API key provided: {(x_api_key or '')[:10]}...")
        raise AuthenticationError("Invalid API key", code="invalid_api_key")

    return x_api_key


@router.post(
    "/property-events",
    response_model=ApiResponse[PropertyEventWebhookResponse],
    status_code=status.HTTP_200_OK,
    summary="Receive a property event and notify target users",
)
async def property_event_webhook(
    event: PropertyEventWebhookRequest,
    api_key: Annotated[str | None, Depends(verify_api_key)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> ApiResponse[PropertyEventWebhookResponse]:
    """Create one notification per target user for a marketplace event

    Targets that do not exist are skipped and reported in `skippedUserIds`;
    the remaining notifications are still created.

    Args:
        event: Event type, targets and notification content
        api_key: Verified API key (from X-API-Key header)
        db: Database session

    Returns:
        Number and ids of created notifications
    """
    logger.info(f"Received {event.event.value} event for {len(event.target_user_ids)} users")

    data = NotificationData(property_id=event.property_id, saved_search_id=event.saved_search_id, action_url=event.action_url)
    expires_at = None
    if event.expires_in_hours:
        expires_at = datetime.now(timezone.utc) + timedelta(hours=event.expires_in_hours)

    service = NotificationService(db)
    created, skipped = [], []
    for target_user_id in dict.fromkeys(event.target_user_ids):
        try:
            notification, _ = await service.create(
                target_user_id=target_user_id,
                type=event.event,
                title=event.title,
                message=event.message,
                data=data,
                priority=event.priority,
                expires_at=expires_at,
            )
        except NotFoundError:
            logger.warning(f"Skipping {event.event.value} notification for unknown user {target_user_id}")
            skipped.append(target_user_id)
            continue
        created.append(notification.id)

    return ApiResponse(
        data=PropertyEventWebhookResponse(
            created_count=len(created), notification_ids=created, skipped_user_ids=skipped
        )
    )
