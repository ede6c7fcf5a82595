import datetime
import math
from typing import Dict, List, Optional, Sequence

from sqlalchemy import delete, func, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from core.config import settings
from core.errors import ConflictError, NotFoundError, PermissionDeniedError
from core.logging import logger
from db.models import (
    CityStop,
    Expense,
    ItineraryItem,
    Notification,
    NotificationType,
    Poi,
    Trip,
    TripMember,
    TripRole,
    User,
)
from schemas.trip import (
    TripCreate,
    TripCreateResponse,
    TripMemberOut,
    TripOut,
    TripSummary,
    TripUpdate,
    TripWithOwner,
)
from schemas.user import UserPublic
from services.notification_service import create_notification

MS_PER_DAY = 1000 * 60 * 60 * 24


def calculate_days(start_date: datetime.date, end_date: datetime.date) -> int:
    diff_ms = abs((end_date - start_date).total_seconds()) * 1000
    return math.ceil(diff_ms / MS_PER_DAY)


def format_date(value: datetime.date) -> str:
    """en-US short form, e.g. ``Mar 5, 2025``."""
    return f"{value:%b} {value.day}, {value.year}"


def decorate_trips(trips: Sequence[Trip], member_counts: Dict[str, int]) -> List[TripSummary]:
    summaries = []
    for trip in trips:
        members_count = member_counts.get(trip.id, 0)
        summaries.append(
            TripSummary(
                **TripOut.model_validate(trip).model_dump(),
                days=calculate_days(trip.start_date, trip.end_date),
                formatted_start_date=format_date(trip.start_date),
                members_count=members_count,
                travelers=members_count + 1,
            )
        )
    return summaries


async def count_members_by_trip(db: AsyncSession, trip_ids: Sequence[str]) -> Dict[str, int]:
    """Member row counts for many trips in one grouped query."""
    if not trip_ids:
        return {}
    stmt = (
        select(TripMember.trip_id, func.count(TripMember.id))
        .where(TripMember.trip_id.in_(list(trip_ids)))
        .group_by(TripMember.trip_id)
    )
    result = await db.execute(stmt)
    return {trip_id: count for trip_id, count in result.all()}


async def create_trip(db: AsyncSession, owner_id: str, payload: TripCreate) -> TripCreateResponse:
    logger.info(f"Creating trip '{payload.title}' for {owner_id}")

    trip = Trip(
        owner_id=owner_id,
        title=payload.title,
        start_date=payload.start_date,
        end_date=payload.end_date,
        currency=payload.currency or settings.DEFAULT_CURRENCY,
        budget_cap=payload.budget_cap,
        visibility=payload.visibility.value,
    )
    db.add(trip)
    try:
        await db.commit()
    except SQLAlchemyError as e:
        await db.rollback()
        logger.error(f"Error creating trip: {e}")
        raise

    trip_id = trip.id
    response = TripCreateResponse(trip=TripOut.model_validate(trip))
    if not payload.member_ids:
        return response

    # Separate write: the trip stays even if the members can't be added.
    try:
        members = await add_trip_members(db, trip_id, payload.member_ids, actor_id=owner_id)
        response.members = [TripMemberOut.model_validate(m) for m in members]
    except SQLAlchemyError as e:
        logger.error(f"Trip {trip_id} created but members failed: {e}")
        response.warnings.append(
            "Trip created, but members could not be added. You can invite them from the trip page."
        )
    return response


async def get_trip(db: AsyncSession, trip_id: str) -> Trip:
    trip = await db.get(Trip, trip_id)
    if trip is None:
        raise NotFoundError("Trip not found")
    return trip


async def get_member_role(db: AsyncSession, trip: Trip, user_id: str) -> Optional[str]:
    if trip.owner_id == user_id:
        return TripRole.OWNER.value
    result = await db.execute(
        select(TripMember.role).where(
            TripMember.trip_id == trip.id, TripMember.user_id == user_id
        )
    )
    return result.scalar_one_or_none()


async def ensure_trip_access(
    db: AsyncSession, trip_id: str, user_id: str, write: bool = False
) -> Trip:
    """Owner and members may read; owner and editors may write."""
    trip = await get_trip(db, trip_id)
    role = await get_member_role(db, trip, user_id)
    if role is None:
        raise NotFoundError("Trip not found")
    if write and role not in (TripRole.OWNER.value, TripRole.EDITOR.value):
        raise PermissionDeniedError("You do not have permission to edit this trip")
    return trip


async def ensure_trip_owner(db: AsyncSession, trip_id: str, user_id: str) -> Trip:
    trip = await get_trip(db, trip_id)
    if trip.owner_id != user_id:
        raise PermissionDeniedError("Only the trip owner can do this")
    return trip


async def get_user_trips(db: AsyncSession, user_id: str) -> List[TripSummary]:
    stmt = (
        select(Trip)
        .where(Trip.owner_id == user_id)
        .order_by(Trip.created_at.desc())
    )
    try:
        result = await db.execute(stmt)
        trips = list(result.scalars().all())
        member_counts = await count_members_by_trip(db, [t.id for t in trips])
    except SQLAlchemyError as e:
        logger.error(f"Error fetching trips: {e}")
        raise
    return decorate_trips(trips, member_counts)


async def get_upcoming_trips(
    db: AsyncSession, user_id: str, today: Optional[datetime.date] = None
) -> List[TripSummary]:
    today = today or datetime.date.today()
    trips = await get_user_trips(db, user_id)
    return [trip for trip in trips if trip.start_date >= today]


async def get_user_trips_count(db: AsyncSession, user_id: str) -> int:
    result = await db.execute(
        select(func.count(Trip.id)).where(Trip.owner_id == user_id)
    )
    return result.scalar_one()


async def get_trip_with_owner(db: AsyncSession, trip_id: str, user_id: str) -> TripWithOwner:
    trip = await ensure_trip_access(db, trip_id, user_id)
    owner = await db.get(User, trip.owner_id)
    out = TripWithOwner.model_validate(trip)
    out.owner = UserPublic.model_validate(owner) if owner else None
    return out


async def update_trip(db: AsyncSession, trip_id: str, user_id: str, updates: TripUpdate) -> Trip:
    trip = await ensure_trip_access(db, trip_id, user_id, write=True)
    for key, value in updates.model_dump(exclude_unset=True).items():
        if key == "visibility" and value is not None:
            value = value.value
        setattr(trip, key, value)
    try:
        await db.commit()
    except SQLAlchemyError as e:
        await db.rollback()
        logger.error(f"Error updating trip: {e}")
        raise
    return trip


async def delete_trip(db: AsyncSession, trip_id: str, user_id: str) -> None:
    trip = await ensure_trip_owner(db, trip_id, user_id)
    logger.info(f"Deleting trip {trip_id}")
    try:
        # Children first; items reference POIs, POIs reference city stops.
        for model in (ItineraryItem, Poi, CityStop, Expense, TripMember, Notification):
            await db.execute(delete(model).where(model.trip_id == trip.id))
        await db.delete(trip)
        await db.commit()
    except SQLAlchemyError as e:
        await db.rollback()
        logger.error(f"Error deleting trip: {e}")
        raise


async def get_trip_members(db: AsyncSession, trip_id: str) -> List[TripMemberOut]:
    stmt = (
        select(TripMember, User)
        .outerjoin(User, TripMember.user_id == User.id)
        .where(TripMember.trip_id == trip_id)
    )
    try:
        result = await db.execute(stmt)
    except SQLAlchemyError as e:
        logger.error(f"Error fetching trip members: {e}")
        raise

    members = []
    for member, user in result.all():
        out = TripMemberOut.model_validate(member)
        out.user = UserPublic.model_validate(user) if user else None
        members.append(out)
    return members


async def add_trip_members(
    db: AsyncSession, trip_id: str, member_ids: Sequence[str], actor_id: Optional[str] = None
) -> List[TripMember]:
    if not member_ids:
        return []

    trip = await get_trip(db, trip_id)
    result = await db.execute(select(User.id).where(User.id.in_(set(member_ids))))
    known = set(result.scalars().all())
    # The owner already counts as a traveler.
    member_ids = [user_id for user_id in member_ids if user_id in known and user_id != trip.owner_id]
    if not member_ids:
        return []

    members = [
        TripMember(trip_id=trip_id, user_id=user_id, role=TripRole.VIEWER.value, status="ACCEPTED")
        for user_id in member_ids
    ]
    db.add_all(members)
    try:
        await db.commit()
    except SQLAlchemyError as e:
        await db.rollback()
        logger.error(f"Error adding trip members: {e}")
        raise

    for member in members:
        await create_notification(
            db, member.user_id, NotificationType.TRIP_INVITE, actor_id=actor_id, trip_id=trip_id
        )
    return members


async def invite_member(
    db: AsyncSession, trip_id: str, user_id: str, role: TripRole, actor_id: str
) -> TripMember:
    trip = await get_trip(db, trip_id)
    if trip.owner_id == user_id or await get_member_role(db, trip, user_id):
        raise ConflictError("Already a member")
    if await db.get(User, user_id) is None:
        raise NotFoundError("User not found")

    member = TripMember(trip_id=trip_id, user_id=user_id, role=role.value, status="ACCEPTED")
    db.add(member)
    try:
        await db.commit()
    except IntegrityError as e:
        await db.rollback()
        logger.error(f"Error inviting member: {e}")
        raise ConflictError("Already a member") from e

    await create_notification(
        db, user_id, NotificationType.TRIP_INVITE, actor_id=actor_id, trip_id=trip_id
    )
    return member


async def _get_member(db: AsyncSession, trip_id: str, member_id: str) -> TripMember:
    member = await db.get(TripMember, member_id)
    if member is None or member.trip_id != trip_id:
        raise NotFoundError("Member not found")
    return member


async def update_member_role(
    db: AsyncSession, trip_id: str, member_id: str, role: TripRole
) -> TripMember:
    member = await _get_member(db, trip_id, member_id)
    member.role = role.value
    try:
        await db.commit()
    except SQLAlchemyError as e:
        await db.rollback()
        logger.error(f"Error updating member role: {e}")
        raise
    return member


async def remove_trip_member(db: AsyncSession, trip_id: str, member_id: str) -> None:
    member = await _get_member(db, trip_id, member_id)
    if member.role == TripRole.OWNER.value:
        raise PermissionDeniedError("The trip owner cannot be removed")
    try:
        await db.delete(member)
        await db.commit()
    except SQLAlchemyError as e:
        await db.rollback()
        logger.error(f"Error removing trip member: {e}")
        raise
