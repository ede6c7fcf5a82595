from typing import List

from fastapi import APIRouter, Depends, Response
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import get_current_user, readable_trip, writable_trip
from db.database import get_db
from db.models import User
from schemas.trip import (
    MemberInvite,
    MemberRoleUpdate,
    MembersAdd,
    TripCreate,
    TripCreateResponse,
    TripMemberOut,
    TripOut,
    TripSummary,
    TripUpdate,
    TripWithOwner,
)
from services import trip_service

router = APIRouter(prefix="/trips", tags=["trips"])


@router.post("", response_model=TripCreateResponse, status_code=201)
async def create_trip(
    payload: TripCreate,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await trip_service.create_trip(db, user.id, payload)


@router.get("", response_model=List[TripSummary])
async def list_my_trips(user: User = Depends(get_current_user), db: AsyncSession = Depends(get_db)):
    return await trip_service.get_user_trips(db, user.id)


@router.get("/upcoming", response_model=List[TripSummary])
async def list_upcoming_trips(
    user: User = Depends(get_current_user), db: AsyncSession = Depends(get_db)
):
    return await trip_service.get_upcoming_trips(db, user.id)


@router.get("/{trip_id}", response_model=TripWithOwner)
async def get_trip(
    trip_id: str,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await trip_service.get_trip_with_owner(db, trip_id, user.id)


@router.patch("/{trip_id}", response_model=TripOut)
async def update_trip(
    trip_id: str,
    updates: TripUpdate,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await trip_service.update_trip(db, trip_id, user.id, updates)


@router.delete("/{trip_id}", status_code=204)
async def delete_trip(
    trip_id: str,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    await trip_service.delete_trip(db, trip_id, user.id)
    return Response(status_code=204)


# Members


@router.get("/{trip_id}/members", response_model=List[TripMemberOut])
async def list_members(trip_id: str = Depends(readable_trip), db: AsyncSession = Depends(get_db)):
    return await trip_service.get_trip_members(db, trip_id)


@router.post("/{trip_id}/members", response_model=TripMemberOut, status_code=201)
async def invite_member(
    invite: MemberInvite,
    trip_id: str = Depends(writable_trip),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await trip_service.invite_member(db, trip_id, invite.user_id, invite.role, user.id)


@router.post("/{trip_id}/members/bulk", response_model=List[TripMemberOut], status_code=201)
async def add_members(
    payload: MembersAdd,
    trip_id: str = Depends(writable_trip),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await trip_service.add_trip_members(db, trip_id, payload.user_ids, actor_id=user.id)


@router.patch("/{trip_id}/members/{member_id}", response_model=TripMemberOut)
async def change_member_role(
    member_id: str,
    payload: MemberRoleUpdate,
    trip_id: str = Depends(writable_trip),
    db: AsyncSession = Depends(get_db),
):
    return await trip_service.update_member_role(db, trip_id, member_id, payload.role)


@router.delete("/{trip_id}/members/{member_id}", status_code=204)
async def remove_member(
    member_id: str,
    trip_id: str = Depends(writable_trip),
    db: AsyncSession = Depends(get_db),
):
    await trip_service.remove_trip_member(db, trip_id, member_id)
    return Response(status_code=204)
