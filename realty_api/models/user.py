"""User Model - Store marketplace accounts (buyers, sellers, agents)

Uses fastapi-users SQLAlchemyBaseUserTableUUID which provides:
- id (UUID)
- email (unique, indexed)
- hashed_password
- is_active (bool, default True)
- is_superuser (bool, default False)
- is_verified (bool, default False)
"""

from datetime import datetime
from enum import Enum

from fastapi_users.db import SQLAlchemyBaseUserTableUUID
from sqlalchemy import DateTime, String, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from realty_api.database import Base


class UserRole(str, Enum):
    """Marketplace role - drives conversation type and restricted mode"""

    BUYER = "buyer"
    SELLER = "seller"
    AGENT = "agent"
    ADMIN = "admin"


class User(SQLAlchemyBaseUserTableUUID, Base):
    """User model for authentication

    Custom fields:
        role: buyer | seller | agent | admin (defaults to buyer)
        first_name / last_name: Display name parts
        push_token: Expo push notification token (mobile app)
        created_at / updated_at: Account timestamps
    """

    __tablename__ = "users"

    role: Mapped[str] = mapped_column(String(20), nullable=False, default=UserRole.BUYER.value, index=True)
    first_name: Mapped[str | None] = mapped_column(String(100), nullable=True)
    last_name: Mapped[str | None] = mapped_column(String(100), nullable=True)
    push_token: Mapped[str | None] = mapped_column(String, nullable=True)  # Expo push notification token

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False
    )

    # Relationships
    notifications = relationship("Notification", cascade="all, delete-orphan", back_populates="user")

    @property
    def display_name(self) -> str:
        name = " ".join(part for part in (self.first_name, self.last_name) if part)
        return name or self.email

    def __repr__(self) -> str:
        return f"<User(id={self.id}, email={self.email}, role={self.role})>"
