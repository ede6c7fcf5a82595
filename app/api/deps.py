from typing import Optional

from fastapi import Depends, Header
from sqlalchemy.ext.asyncio import AsyncSession

from core.errors import AuthenticationError
from core.security import decode_access_token
from db.database import get_db
from db.models import User
from services.trip_service import ensure_trip_access


async def resolve_user(db: AsyncSession, authorization: Optional[str]) -> User:
    """Look up the user behind an ``Authorization: Bearer <token>`` value."""
    if not authorization:
        raise AuthenticationError("Missing authorization header")

    user_id = decode_access_token(authorization.replace("Bearer ", "", 1).strip())
    user = await db.get(User, user_id)
    if user is None:
        raise AuthenticationError("Invalid or expired token")
    return user


async def get_current_user(
    authorization: Optional[str] = Header(default=None),
    db: AsyncSession = Depends(get_db),
) -> User:
    return await resolve_user(db, authorization)


async def readable_trip(
    trip_id: str,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> str:
    await ensure_trip_access(db, trip_id, user.id)
    return trip_id


async def writable_trip(
    trip_id: str,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> str:
    await ensure_trip_access(db, trip_id, user.id, write=True)
    return trip_id
