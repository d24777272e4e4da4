"""
Pytest Configuration and Fixtures
Shared test fixtures for database, client, and test data

Tests run against a throwaway sqlite database (aiosqlite) per test, created
with Base.metadata.create_all. Settings are pinned through environment
variables before the application is imported.
"""

import os

from fixtures import (
    AGENT_EMAIL,
    BUYER_EMAIL,
    OTHER_BUYER_EMAIL,
    SELLER_EMAIL,
    TEST_PASSWORD,
    TEST_PROPERTY_EVENTS_API_KEY,
)

os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///./realty_test.db"
os.environ["SECRET_KEY"] = "test-secret-key"
os.environ["PUSH_ENABLED"] = "false"
os.environ["RESTRICTED_MODE"] = "true"
os.environ["MIRROR_OFFLINE_MESSAGES"] = "true"
os.environ["NOTIFICATION_PURGE_INTERVAL_SECONDS"] = "0"
os.environ["PROPERTY_EVENTS_API_KEY"] = TEST_PROPERTY_EVENTS_API_KEY

import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine  # noqa: E402
from sqlalchemy.pool import NullPool  # noqa: E402

from realty_api.database import Base, get_db  # noqa: E402
from realty_api.main import app  # noqa: E402
from realty_api.models.user import User, UserRole  # noqa: E402
from realty_api.services.connection_manager import connection_manager  # noqa: E402


@pytest_asyncio.fixture(scope="function")
async def db_engine(tmp_path):
    """Create a test database engine with a fresh schema"""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}", poolclass=NullPool, echo=False)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest_asyncio.fixture(scope="function")
async def db_session(db_engine):
    """Create a test database session"""
    async_session = async_sessionmaker(db_engine, class_=AsyncSession, expire_on_commit=False)

    async with async_session() as session:
        yield session


@pytest_asyncio.fixture(scope="function")
async def session_factory(db_engine):
    """Session factory bound to the test database (for code that opens its own sessions)"""
    return async_sessionmaker(db_engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture(scope="function")
async def client(db_session):
    """Create a test client with overridden database dependency

    Authentication is real: requests need a bearer token (see auth_headers / headers_for).
    """

    async def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest.fixture
def connections():
    """The process-wide connection manager, emptied after the test"""
    yield connection_manager
    connection_manager._rooms.clear()


@pytest_asyncio.fixture(scope="function")
async def make_user(db_session):
    """Factory creating fastapi-users compatible users with a marketplace role"""
    from fastapi_users.password import PasswordHelper

    hashed_password = PasswordHelper().hash(TEST_PASSWORD)

    async def _make_user(email: str, role: UserRole = UserRole.BUYER, **fields) -> User:
        fields = {"is_active": True, "is_verified": True, "is_superuser": False, **fields}
        user = User(email=email, hashed_password=hashed_password, role=role.value, **fields)
        db_session.add(user)
        await db_session.commit()
        await db_session.refresh(user)
        return user

    return _make_user


@pytest_asyncio.fixture(scope="function")
async def buyer(make_user):
    return await make_user(BUYER_EMAIL, UserRole.BUYER, first_name="Bea", last_name="Buyer")


@pytest_asyncio.fixture(scope="function")
async def other_buyer(make_user):
    """Another buyer (for authorization tests)"""
    return await make_user(OTHER_BUYER_EMAIL, UserRole.BUYER)


@pytest_asyncio.fixture(scope="function")
async def seller(make_user):
    return await make_user(SELLER_EMAIL, UserRole.SELLER, first_name="Sam", last_name="Seller")


@pytest_asyncio.fixture(scope="function")
async def agent(make_user):
    return await make_user(AGENT_EMAIL, UserRole.AGENT, first_name="Alex", last_name="Agent")


def make_token(user: User) -> str:
    """JWT in the fastapi-users format: sub contains the user id, audience fastapi-users:auth"""
    from datetime import datetime, timedelta, timezone

    from jose import jwt

    from realty_api.config import settings

    expire = datetime.now(timezone.utc) + timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    to_encode = {"sub": str(user.id), "aud": ["fastapi-users:auth"], "exp": expire}
    return jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


@pytest.fixture
def headers_for():
    """Build bearer auth headers for any user"""

    def _headers_for(user: User) -> dict[str, str]:
        return {"Authorization": f"Bearer {make_token(user)}"}

    return _headers_for


@pytest_asyncio.fixture(scope="function")
async def auth_headers(buyer, headers_for):
    """Auth headers of the default buyer"""
    return headers_for(buyer)


@pytest.fixture
def token_for():
    return make_token


@pytest_asyncio.fixture(scope="function")
async def notify(db_session):
    """Factory creating notifications through the notification service"""
    from realty_api.models.notification import NotificationType
    from realty_api.services.notification_service import NotificationService

    async def _notify(user: User, title: str = "Price drop", type: NotificationType = NotificationType.PRICE_DROP, **fields):
        notification, _ = await NotificationService(db_session).create(
            target_user_id=user.id, type=type, title=title, message=f"{title} on a saved property", **fields
        )
        return notification

    return _notify
