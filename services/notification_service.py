import asyncio
from typing import Dict, List, Optional, Set

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import aliased

from core.config import settings
from core.errors import NotFoundError
from core.logging import logger
from db.models import Notification, NotificationType, User
from schemas.social import NotificationOut
from schemas.user import UserPublic


class NotificationHub:
    """In-process push channel; one queue per open subscription, keyed by user id."""

    def __init__(self):
        self._subscribers: Dict[str, Set[asyncio.Queue]] = {}

    def subscribe(self, user_id: str) -> asyncio.Queue:
        queue: asyncio.Queue = asyncio.Queue()
        self._subscribers.setdefault(user_id, set()).add(queue)
        logger.info(f"Notification channel opened for user {user_id}")
        return queue

    def unsubscribe(self, user_id: str, queue: asyncio.Queue) -> None:
        queues = self._subscribers.get(user_id)
        if not queues:
            return
        queues.discard(queue)
        if not queues:
            del self._subscribers[user_id]
        logger.info(f"Notification channel closed for user {user_id}")

    def subscriber_count(self, user_id: str) -> int:
        return len(self._subscribers.get(user_id, ()))

    def publish(self, user_id: str, event: dict) -> None:
        for queue in list(self._subscribers.get(user_id, ())):
            queue.put_nowait(event)


hub = NotificationHub()


async def create_notification(
    db: AsyncSession,
    user_id: str,
    type: NotificationType,
    actor_id: Optional[str] = None,
    trip_id: Optional[str] = None,
    message: Optional[str] = None,
) -> Notification:
    notification = Notification(
        user_id=user_id,
        actor_id=actor_id,
        type=type.value,
        trip_id=trip_id,
        message=message,
    )
    db.add(notification)
    try:
        await db.commit()
    except SQLAlchemyError as e:
        await db.rollback()
        logger.error(f"Error creating notification for {user_id}: {e}")
        raise

    # Subscribers only learn that something changed; they refetch.
    hub.publish(
        user_id,
        {
            "event": "INSERT",
            "table": "notifications",
            "user_id": user_id,
            "id": notification.id,
        },
    )
    return notification


async def get_notifications(
    db: AsyncSession, user_id: str, limit: Optional[int] = None
) -> List[NotificationOut]:
    """Most recent notifications for a user, newest first, with the actor's profile."""
    if not user_id:
        return []

    actor = aliased(User)
    stmt = (
        select(Notification, actor)
        .outerjoin(actor, Notification.actor_id == actor.id)
        .where(Notification.user_id == user_id)
        .order_by(Notification.created_at.desc())
        .limit(limit or settings.NOTIFICATIONS_LIMIT)
    )
    try:
        result = await db.execute(stmt)
    except SQLAlchemyError as e:
        logger.error(f"Error fetching notifications: {e}")
        raise

    notifications = []
    for notification, actor_row in result.all():
        out = NotificationOut.model_validate(notification)
        out.actor = UserPublic.model_validate(actor_row) if actor_row else None
        notifications.append(out)
    return notifications


async def mark_notification_as_read(
    db: AsyncSession, notification_id: str, user_id: str
) -> Notification:
    notification = await db.get(Notification, notification_id)
    if notification is None or notification.user_id != user_id:
        raise NotFoundError("Notification not found")

    notification.is_read = True
    try:
        await db.commit()
    except SQLAlchemyError as e:
        await db.rollback()
        logger.error(f"Error marking notification as read: {e}")
        raise
    return notification
