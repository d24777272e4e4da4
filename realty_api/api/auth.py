"""
Authentication Endpoints using fastapi-users
Registration, login and logout with JWT bearer tokens
"""

from fastapi import APIRouter

from realty_api.schemas.user import UserCreate, UserRead
from realty_api.users import auth_backend, fastapi_users

router = APIRouter(tags=["auth"])

# JWT Authentication router (POST /login, POST /logout)
router.include_router(
    fastapi_users.get_auth_router(auth_backend, requires_verification=False),
)

# Registration router (POST /register)
router.include_router(
    fastapi_users.get_register_router(UserRead, UserCreate),
)
