"""FastAPI Users Configuration

Sets up user management and JWT bearer authentication with the fastapi-users library.
Every request resolves its acting user from the bearer token; no endpoint guesses
an identity.
"""

import logging
import uuid

from fastapi import Depends, Request
from fastapi_users import BaseUserManager, FastAPIUsers, UUIDIDMixin, models
from fastapi_users.authentication import (
    AuthenticationBackend,
    BearerTransport,
    JWTStrategy,
)
from fastapi_users.db import SQLAlchemyUserDatabase
from sqlalchemy.ext.asyncio import AsyncSession

from realty_api.config import settings
from realty_api.database import get_db
from realty_api.models.user import User

logger = logging.getLogger(__name__)


async def get_user_db(session: AsyncSession = Depends(get_db)) -> SQLAlchemyUserDatabase[User, uuid.UUID]:
    """Database adapter for fastapi-users"""
    yield SQLAlchemyUserDatabase(session, User)


class UserManager(UUIDIDMixin, BaseUserManager[User, uuid.UUID]):
    """User manager"""

    reset_password_token_secret = settings.SECRET_KEY
    verification_token_secret = settings.SECRET_KEY

    async def on_after_register(self, user: User, request: Request | None = None):
        """Called after user registration"""
        logger.info(f"Registered user {user.id} with role {user.role}")


async def get_user_manager(
    user_db: SQLAlchemyUserDatabase[User, uuid.UUID] = Depends(get_user_db),
) -> BaseUserManager[User, uuid.UUID]:
    """Dependency to get user manager"""
    yield UserManager(user_db)


# JWT Authentication Backend
bearer_transport = BearerTransport(tokenUrl="/api/auth/login")


def get_jwt_strategy() -> JWTStrategy[models.UP, models.ID]:
    """JWT authentication strategy"""
    return JWTStrategy(
        secret=settings.SECRET_KEY,
        lifetime_seconds=settings.ACCESS_TOKEN_EXPIRE_MINUTES * 60,
    )


auth_backend = AuthenticationBackend(
    name="jwt",
    transport=bearer_transport,
    get_strategy=get_jwt_strategy,
)

# FastAPI Users instance
fastapi_users = FastAPIUsers[User, uuid.UUID](get_user_manager, [auth_backend])

# Dependency for authenticated routes
current_active_user = fastapi_users.current_user(active=True)


async def authenticate_token(token: str | None, db: AsyncSession) -> User | None:
    """Resolve a raw JWT (e.g. from a WebSocket query string) to an active user

    Returns None when the token is missing, invalid, expired, or names an inactive user.
    """
    if not token:
        return None
    user_manager = UserManager(SQLAlchemyUserDatabase(db, User))
    user = await get_jwt_strategy().read_token(token, user_manager)
    if user is None or not user.is_active:
        return None
    return user
