from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import get_current_user
from db.database import get_db
from db.models import User
from schemas.social import FriendEdgeOut, FriendRequestCreate, FriendRequestOut
from schemas.user import UserPublic
from services import friend_service

router = APIRouter(prefix="/friends", tags=["friends"])


@router.get("", response_model=List[UserPublic])
async def list_friends(user: User = Depends(get_current_user), db: AsyncSession = Depends(get_db)):
    return await friend_service.get_friends(db, user.id)


@router.get("/requests", response_model=List[FriendRequestOut])
async def list_pending_requests(
    user: User = Depends(get_current_user), db: AsyncSession = Depends(get_db)
):
    return await friend_service.get_pending_requests(db, user.id)


@router.post("/requests", response_model=FriendEdgeOut, status_code=201)
async def send_request(
    payload: FriendRequestCreate,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await friend_service.send_friend_request(db, user.id, payload.friend_id)


@router.post("/requests/{request_id}/accept", response_model=FriendEdgeOut)
async def accept_request(
    request_id: str,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await friend_service.accept_friend_request(db, request_id, user.id)
