from typing import Dict, List

from sqlalchemy import or_, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from core.errors import ConflictError, NotFoundError, ValidationFailedError
from core.logging import logger
from db.models import Friend, FriendStatus, NotificationType, User
from schemas.social import FriendRequestOut
from schemas.user import UserPublic
from services.notification_service import create_notification


async def send_friend_request(db: AsyncSession, user_id: str, friend_id: str) -> Friend:
    logger.info(f"Friend request {user_id} -> {friend_id}")

    if user_id == friend_id:
        raise ValidationFailedError("You cannot add yourself as a friend")
    if await db.get(User, friend_id) is None:
        raise NotFoundError("User not found")

    existing = await db.execute(
        select(Friend.id).where(
            or_(
                (Friend.user_id == user_id) & (Friend.friend_id == friend_id),
                (Friend.user_id == friend_id) & (Friend.friend_id == user_id),
            )
        )
    )
    if existing.first() is not None:
        raise ConflictError("Friend request already sent")

    request = Friend(user_id=user_id, friend_id=friend_id, status=FriendStatus.PENDING.value)
    db.add(request)
    try:
        await db.commit()
    except IntegrityError as e:
        await db.rollback()
        logger.error(f"Error sending friend request: {e}")
        raise ConflictError("Friend request already sent") from e

    await create_notification(db, friend_id, NotificationType.FRIEND_REQUEST, actor_id=user_id)
    return request


async def get_pending_requests(db: AsyncSession, user_id: str) -> List[FriendRequestOut]:
    """Requests other users have sent to ``user_id`` that are still pending."""
    stmt = (
        select(Friend, User)
        .join(User, Friend.user_id == User.id)
        .where(Friend.friend_id == user_id, Friend.status == FriendStatus.PENDING.value)
        .order_by(Friend.created_at.desc())
    )
    try:
        result = await db.execute(stmt)
    except SQLAlchemyError as e:
        logger.error(f"Error fetching pending requests: {e}")
        raise
    return [
        FriendRequestOut(request_id=request.id, sender=UserPublic.model_validate(sender))
        for request, sender in result.all()
    ]


async def _ensure_reverse_edge(db: AsyncSession, user_id: str, friend_id: str) -> None:
    db.add(Friend(user_id=user_id, friend_id=friend_id, status=FriendStatus.ACCEPTED.value))
    try:
        await db.commit()
        return
    except IntegrityError as e:
        await db.rollback()
        logger.warning(f"Reverse friendship {user_id} -> {friend_id} already exists: {e}")

    # The row may still be pending if both users had sent a request.
    await db.execute(
        update(Friend)
        .where(Friend.user_id == user_id, Friend.friend_id == friend_id)
        .values(status=FriendStatus.ACCEPTED.value)
    )
    await db.commit()


async def accept_friend_request(db: AsyncSession, request_id: str, user_id: str) -> Friend:
    """Accept a request addressed to ``user_id`` and make the friendship symmetric."""
    request = await db.get(Friend, request_id)
    if request is None or request.friend_id != user_id:
        raise NotFoundError("Friend request not found")
    if request.status == FriendStatus.ACCEPTED.value:
        return request

    sender_id = request.user_id
    request.status = FriendStatus.ACCEPTED.value
    try:
        await db.commit()
    except SQLAlchemyError as e:
        await db.rollback()
        logger.error(f"Error accepting friend request: {e}")
        raise

    await _ensure_reverse_edge(db, user_id, sender_id)
    await create_notification(db, sender_id, NotificationType.FRIEND_ACCEPTED, actor_id=user_id)
    await db.refresh(request)
    return request


async def get_friends(db: AsyncSession, user_id: str) -> List[User]:
    """Accepted friends, whichever side sent the original request."""
    sent_by_me = (
        select(User)
        .join(Friend, Friend.friend_id == User.id)
        .where(Friend.user_id == user_id, Friend.status == FriendStatus.ACCEPTED.value)
    )
    sent_to_me = (
        select(User)
        .join(Friend, Friend.user_id == User.id)
        .where(Friend.friend_id == user_id, Friend.status == FriendStatus.ACCEPTED.value)
    )
    try:
        sent = (await db.execute(sent_by_me)).scalars().all()
        received = (await db.execute(sent_to_me)).scalars().all()
    except SQLAlchemyError as e:
        logger.error(f"Error fetching friends: {e}")
        raise

    friends: Dict[str, User] = {}
    for friend in list(sent) + list(received):
        friends.setdefault(friend.id, friend)
    return list(friends.values())
