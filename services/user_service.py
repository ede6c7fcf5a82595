from typing import List, Optional

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from core.config import settings
from core.errors import AuthenticationError, ConflictError, NotFoundError
from core.logging import logger
from core.security import hash_password, verify_password
from db.models import User, new_id
from schemas.user import DashboardStats, UserUpdate
from services.expense_service import get_user_total_expenses
from services.trip_service import get_upcoming_trips, get_user_trips_count

SEARCH_MIN_LENGTH = 2
SEARCH_LIMIT = 10


async def create_user(
    db: AsyncSession,
    email: str,
    password: str,
    name: Optional[str] = None,
    user_name: Optional[str] = None,
) -> User:
    logger.info(f"Creating user {email}")

    existing = await get_user_by_email(db, email)
    if existing:
        raise ConflictError("Email already registered")

    user_id = new_id()
    user = User(
        id=user_id,
        email=email,
        password_hash=hash_password(password),
        name=name or user_name,
        user_name=user_name or f"User_{user_id[:8]}",
        home_currency=settings.DEFAULT_CURRENCY,
        role="USER",
    )
    db.add(user)
    try:
        await db.commit()
    except IntegrityError as e:
        await db.rollback()
        logger.error(f"Error creating user: {e}")
        raise ConflictError("User name already taken") from e
    return user


async def authenticate(db: AsyncSession, email: str, password: str) -> User:
    user = await get_user_by_email(db, email)
    if not user or not verify_password(password, user.password_hash):
        raise AuthenticationError("Invalid credentials")
    return user


async def get_user_by_email(db: AsyncSession, email: str) -> Optional[User]:
    result = await db.execute(select(User).where(User.email == email))
    return result.scalar_one_or_none()


async def get_user_profile(db: AsyncSession, user_id: str) -> User:
    user = await db.get(User, user_id)
    if user is None:
        raise NotFoundError("User not found")
    return user


async def update_user_profile(
    db: AsyncSession, user_id: str, updates: UserUpdate
) -> User:
    user = await get_user_profile(db, user_id)
    for key, value in updates.model_dump(exclude_unset=True).items():
        setattr(user, key, value)
    try:
        await db.commit()
    except IntegrityError as e:
        await db.rollback()
        logger.error(f"Error updating user profile: {e}")
        raise ConflictError("User name already taken") from e
    return user


async def search_users_by_username(
    db: AsyncSession, query: str, exclude_user_id: str
) -> List[User]:
    query = (query or "").strip()
    if len(query) < SEARCH_MIN_LENGTH:
        return []

    stmt = (
        select(User)
        .where(func.lower(User.user_name).contains(query.lower()))
        .where(User.id != exclude_user_id)
        .order_by(User.user_name)
        .limit(SEARCH_LIMIT)
    )
    try:
        result = await db.execute(stmt)
    except SQLAlchemyError as e:
        logger.error(f"Error searching users: {e}")
        raise
    return list(result.scalars().all())


async def get_dashboard_stats(db: AsyncSession, user_id: str) -> DashboardStats:
    trips_count = await get_user_trips_count(db, user_id)
    upcoming = await get_upcoming_trips(db, user_id)
    total = await get_user_total_expenses(db, user_id)
    return DashboardStats(
        trips_count=trips_count,
        upcoming_trips_count=len(upcoming),
        total_expenses=total,
    )
