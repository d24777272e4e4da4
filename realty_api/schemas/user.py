"""
User Schemas
Pydantic models for user request/response validation using fastapi-users base schemas
"""

import uuid

from fastapi_users import schemas
from pydantic import BaseModel, Field, field_validator

from realty_api.models.user import UserRole


class UserRead(schemas.BaseUser[uuid.UUID]):
    """Schema for user response (read operations)"""

    role: UserRole
    first_name: str | None = None
    last_name: str | None = None
    push_token: str | None = None


class UserCreate(schemas.BaseUserCreate):
    """Schema for user registration request

    Admin accounts are provisioned out of band, never self-registered.
    """

    role: UserRole = UserRole.BUYER
    first_name: str | None = None
    last_name: str | None = None

    @field_validator("role")
    @classmethod
    def reject_admin(cls, value: UserRole) -> UserRole:
        if value == UserRole.ADMIN:
            raise ValueError("admin role cannot be self-registered")
        return value


class UserUpdate(schemas.BaseUserUpdate):
    """Schema for user profile update request"""

    first_name: str | None = None
    last_name: str | None = None
    push_token: str | None = None


class PushTokenRequest(BaseModel):
    """Request body for push token registration"""

    push_token: str = Field(..., description="Expo push notification token")


class PushTokenResponse(BaseModel):
    """Response for push token registration"""

    status: str = "registered"
