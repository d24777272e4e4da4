"""Users API - Current user profile and push notification token

Endpoints:
- GET /api/users/me - Current user profile
- PATCH /api/users/me - Update display name
- POST /api/users/push-token - Register Expo push token
"""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from realty_api.database import get_db
from realty_api.models import User
from realty_api.schemas.common import ApiResponse
from realty_api.schemas.user import PushTokenRequest, PushTokenResponse, UserRead
from realty_api.services.push_service import PushService
from realty_api.users import current_active_user
from realty_api.utils.errors import ValidationError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/users", tags=["users"])


class ProfileUpdate(BaseModel):
    """Request body for profile update"""

    first_name: str | None = None
    last_name: str | None = None


@router.get("/me", response_model=ApiResponse[UserRead])
async def get_me(
    current_user: Annotated[User, Depends(current_active_user)],
) -> ApiResponse[UserRead]:
    """Get the authenticated user's profile"""
    return ApiResponse(data=UserRead.model_validate(current_user, from_attributes=True))


@router.patch("/me", response_model=ApiResponse[UserRead])
async def update_me(
    data: ProfileUpdate,
    current_user: Annotated[User, Depends(current_active_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> ApiResponse[UserRead]:
    """Update the authenticated user's display name

    Only provided fields are updated.
    """
    for field, value in data.model_dump(exclude_unset=True).items():
        setattr(current_user, field, value)

    await db.commit()
    await db.refresh(current_user)
    return ApiResponse(data=UserRead.model_validate(current_user, from_attributes=True))


@router.post("/push-token", response_model=ApiResponse[PushTokenResponse])
async def register_push_token(
    data: PushTokenRequest,
    current_user: Annotated[User, Depends(current_active_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> ApiResponse[PushTokenResponse]:
    """Register Expo push notification token for the current user

    The mobile app calls this after obtaining a push token from Expo's
    Notifications API. New notifications are then also delivered as push.

    Args:
        data: Push token request containing the Expo push token
        current_user: Authenticated user
        db: Database session

    Returns:
        Status confirmation

    Raises:
        400: token is not an Expo push token
    """
    if not PushService.is_valid_token(data.push_token):
        raise ValidationError("push_token must be an Expo push token", code="invalid_push_token")

    current_user.push_token = data.push_token
    await db.commit()
    logger.info(f"Registered push token for user {current_user.id}")
    return ApiResponse(data=PushTokenResponse(status="registered"))
