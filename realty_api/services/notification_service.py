"""Notification Service - notification store and state machine

Transitions:
    mark_read    unread -> read        (read: no-op, archived: rejected)
    mark_unread  read -> unread        (unread: no-op, archived: rejected)
    archive      unread|read -> archived (archived: no-op)

No-op transitions leave the row untouched, including updated_at.

Expired rows (expires_at <= now) are invisible to every query here: they are
not listed, not counted, cannot be transitioned and are eventually removed by
purge_expired().

The unread count is always recomputed from the table, never cached.
"""

import logging
import math
from datetime import datetime, timezone
from typing import Any
from uuid import UUID

from sqlalchemy import delete, func, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from realty_api.models.notification import Notification, NotificationPriority, NotificationStatus, NotificationType
from realty_api.models.user import User
from realty_api.schemas.common import Pagination
from realty_api.schemas.notification import (
    BulkAction,
    NotificationAction,
    NotificationData,
    NotificationFilter,
    NotificationResponse,
)
from realty_api.schemas.socket import ServerEvent, frame
from realty_api.services.connection_manager import ConnectionManager, connection_manager
from realty_api.services.push_service import PushService, push_service
from realty_api.utils.errors import InvalidTransitionError, NotFoundError, ValidationError

logger = logging.getLogger(__name__)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def parse_ids(raw_ids: list[str] | None) -> list[UUID]:
    """Keep the well-formed UUIDs of a client supplied id list, in order, without duplicates"""
    parsed: dict[UUID, None] = {}
    for raw in raw_ids or []:
        try:
            parsed[UUID(str(raw))] = None
        except ValueError:
            logger.debug(f"Dropping malformed notification id {raw!r}")
    return list(parsed)


class NotificationService:
    """Session-bound notification operations for one request"""

    def __init__(
        self,
        db: AsyncSession,
        connections: ConnectionManager = connection_manager,
        push: PushService = push_service,
    ):
        self.db = db
        self.connections = connections
        self.push = push

    @staticmethod
    def _visible(user_id: UUID, now: datetime | None = None) -> list:
        """WHERE clauses selecting the non-expired notifications of one user"""
        now = now or utcnow()
        return [
            Notification.user_id == user_id,
            or_(Notification.expires_at.is_(None), Notification.expires_at > now),
        ]

    async def _get_visible(self, user: User, notification_id: UUID | str) -> Notification:
        try:
            notification_uuid = UUID(str(notification_id))
        except ValueError as e:
            raise NotFoundError(f"Notification {notification_id} not found") from e

        result = await self.db.execute(
            select(Notification)
            .where(Notification.id == notification_uuid, *self._visible(user.id))
            .execution_options(populate_existing=True)
        )
        notification = result.scalar_one_or_none()
        if notification is None:
            raise NotFoundError(f"Notification {notification_id} not found")
        return notification

    async def unread_count(self, user_id: UUID) -> int:
        """Count of non-expired unread notifications (archived rows never count)"""
        result = await self.db.execute(
            select(func.count(Notification.id)).where(
                Notification.status == NotificationStatus.UNREAD.value, *self._visible(user_id)
            )
        )
        return result.scalar_one()

    async def list_for_user(
        self,
        user: User,
        page: int = 1,
        limit: int = 20,
        status_filter: NotificationFilter = NotificationFilter.ALL,
    ) -> tuple[list[Notification], Pagination, int]:
        """List the user's notifications, newest first

        Returns:
            (page of notifications, pagination for the filtered query, unread count)
        """
        conditions = self._visible(user.id)
        if status_filter != NotificationFilter.ALL:
            conditions.append(Notification.status == status_filter.value)

        total = (await self.db.execute(select(func.count(Notification.id)).where(*conditions))).scalar_one()

        result = await self.db.execute(
            select(Notification)
            .where(*conditions)
            .order_by(Notification.created_at.desc(), Notification.id.desc())
            .offset((page - 1) * limit)
            .limit(limit)
            .execution_options(populate_existing=True)
        )
        notifications = list(result.scalars().all())

        pagination = Pagination(page=page, limit=limit, total=total, pages=math.ceil(total / limit) if total else 0)
        return notifications, pagination, await self.unread_count(user.id)

    async def create(
        self,
        target_user_id: UUID,
        type: NotificationType,
        title: str,
        message: str,
        data: NotificationData | dict[str, Any] | None = None,
        priority: NotificationPriority | None = None,
        expires_at: datetime | None = None,
    ) -> tuple[Notification, int]:
        """Create an unread notification and fan it out to the owner

        The owner's live room receives `new-notification` with the fresh unread
        count. If the owner registered a push token, Expo delivery is attempted
        and recorded in push_sent / push_sent_at.

        Returns:
            (notification, owner's unread count)

        Raises:
            NotFoundError: target user does not exist
        """
        owner = await self.db.get(User, target_user_id)
        if owner is None:
            raise NotFoundError(f"User {target_user_id} not found", code="user_not_found")

        if isinstance(data, NotificationData):
            data = data.model_dump(exclude_none=True)

        notification = Notification(
            user_id=owner.id,
            type=NotificationType(type).value,
            title=title,
            message=message,
            priority=(priority or NotificationPriority.MEDIUM).value,
            data=data or None,
            status=NotificationStatus.UNREAD.value,
            expires_at=expires_at,
        )
        self.db.add(notification)
        await self.db.commit()
        await self.db.refresh(notification)
        logger.info(f"Created {notification.type} notification {notification.id} for user {owner.id}")

        if owner.push_token:
            push_data = {"type": notification.type, "notification_id": str(notification.id), **(data or {})}
            if await self.push.send_to_user(owner, title=title, body=message, data=push_data):
                notification.push_sent = True
                notification.push_sent_at = utcnow()
                await self.db.commit()

        unread = await self.unread_count(owner.id)
        await self._emit_new_notification(notification, unread)
        return notification, unread

    async def _emit_new_notification(self, notification: Notification, unread: int) -> None:
        payload = {
            "notification": NotificationResponse.model_validate(notification).model_dump(mode="json", by_alias=True),
            "unreadCount": unread,
        }
        try:
            await self.connections.emit_to_user(notification.user_id, frame(ServerEvent.NEW_NOTIFICATION, payload))
        except Exception as e:
            logger.error(f"Failed to emit notification {notification.id}: {e}", exc_info=True)

    async def apply_action(self, user: User, notification_id: UUID | str, action: NotificationAction) -> Notification:
        """Apply a single-notification transition

        Raises:
            NotFoundError: unknown, expired or foreign notification
            InvalidTransitionError: mark_read / mark_unread on an archived notification
        """
        notification = await self._get_visible(user, notification_id)
        current = NotificationStatus(notification.status)
        now = utcnow()

        if action == NotificationAction.ARCHIVE:
            if current == NotificationStatus.ARCHIVED:
                return notification
            notification.status = NotificationStatus.ARCHIVED.value
            notification.archived_at = now
        else:
            if current == NotificationStatus.ARCHIVED:
                raise InvalidTransitionError(f"Cannot {action.value} an archived notification")
            target = NotificationStatus.READ if action == NotificationAction.MARK_READ else NotificationStatus.UNREAD
            if current == target:
                return notification
            notification.status = target.value
            notification.read_at = now if target == NotificationStatus.READ else None

        notification.updated_at = now
        await self.db.commit()
        await self.db.refresh(notification)
        logger.info(f"Notification {notification.id}: {current.value} -> {notification.status}")
        return notification

    async def delete(self, user: User, notification_id: UUID | str) -> None:
        """Hard delete one notification

        Raises:
            NotFoundError: unknown, expired or foreign notification
        """
        notification = await self._get_visible(user, notification_id)
        await self.db.delete(notification)
        await self.db.commit()
        logger.info(f"Deleted notification {notification.id} for user {user.id}")

    async def bulk(self, user: User, action: BulkAction, notification_ids: list[str] | None = None) -> int:
        """Apply a bulk action and return the number of rows actually changed

        Selected actions drop malformed ids. When nothing usable is left, or none
        of the ids belong to the user, ValidationError is raised and no row changes.
        """
        now = utcnow()
        conditions = self._visible(user.id, now)

        if action.needs_selection:
            ids = parse_ids(notification_ids)
            if not ids:
                raise ValidationError("notificationIds must contain at least one valid id", code="empty_selection")
            owned = (
                await self.db.execute(select(Notification.id).where(Notification.id.in_(ids), *conditions))
            ).scalars().all()
            if not owned:
                raise ValidationError("None of the selected notifications were found", code="empty_selection")
            conditions.append(Notification.id.in_(owned))

        if action in (BulkAction.DELETE_ALL, BulkAction.DELETE_SELECTED):
            statement = delete(Notification).where(*conditions)
        elif action == BulkAction.ARCHIVE_SELECTED:
            statement = (
                update(Notification)
                .where(Notification.status != NotificationStatus.ARCHIVED.value, *conditions)
                .values(status=NotificationStatus.ARCHIVED.value, archived_at=now, updated_at=now)
            )
        else:
            statement = (
                update(Notification)
                .where(Notification.status == NotificationStatus.UNREAD.value, *conditions)
                .values(status=NotificationStatus.READ.value, read_at=now, updated_at=now)
            )

        result = await self.db.execute(statement.execution_options(synchronize_session=False))
        await self.db.commit()
        logger.info(f"Bulk {action.value} for user {user.id}: {result.rowcount} affected")
        return result.rowcount

    async def purge_expired(self, now: datetime | None = None) -> int:
        """Delete every notification whose expires_at has passed"""
        now = now or utcnow()
        result = await self.db.execute(
            delete(Notification)
            .where(Notification.expires_at.is_not(None), Notification.expires_at <= now)
            .execution_options(synchronize_session=False)
        )
        await self.db.commit()
        if result.rowcount:
            logger.info(f"Purged {result.rowcount} expired notifications")
        return result.rowcount
