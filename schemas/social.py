import datetime
from pydantic import BaseModel
from typing import Optional

from schemas.user import UserPublic


class FriendRequestCreate(BaseModel):
    friend_id: str


class FriendRequestOut(BaseModel):
    request_id: str
    sender: UserPublic


class FriendEdgeOut(BaseModel):
    id: str
    user_id: str
    friend_id: str
    status: str

    class Config:
        from_attributes = True


class NotificationOut(BaseModel):
    id: str
    user_id: str
    actor_id: Optional[str] = None
    type: str
    trip_id: Optional[str] = None
    message: Optional[str] = None
    is_read: bool
    created_at: datetime.datetime
    actor: Optional[UserPublic] = None

    class Config:
        from_attributes = True
