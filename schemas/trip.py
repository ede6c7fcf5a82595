import datetime
from pydantic import BaseModel, Field, field_validator
from typing import List, Optional

from db.models import TripRole, TripVisibility
from schemas.user import UserPublic


class TripCreate(BaseModel):
    title: str = Field(min_length=1)
    start_date: datetime.date
    end_date: datetime.date
    currency: Optional[str] = None
    budget_cap: Optional[float] = None
    visibility: TripVisibility = TripVisibility.PRIVATE
    member_ids: List[str] = Field(default_factory=list)


class TripUpdate(BaseModel):
    title: Optional[str] = None
    start_date: Optional[datetime.date] = None
    end_date: Optional[datetime.date] = None
    currency: Optional[str] = None
    budget_cap: Optional[float] = None
    visibility: Optional[TripVisibility] = None

    @field_validator("title", "start_date", "end_date", "currency", "visibility")
    @classmethod
    def _not_null(cls, v):
        if v is None:
            raise ValueError("may not be null")
        return v


class TripOut(BaseModel):
    id: str
    owner_id: str
    title: str
    start_date: datetime.date
    end_date: datetime.date
    currency: str
    budget_cap: Optional[float] = None
    visibility: str
    public_id: Optional[str] = None
    created_at: datetime.datetime
    updated_at: datetime.datetime

    class Config:
        from_attributes = True


class TripSummary(TripOut):
    days: int
    formatted_start_date: str
    members_count: int
    travelers: int


class TripWithOwner(TripOut):
    owner: Optional[UserPublic] = None


class TripMemberOut(BaseModel):
    id: str
    trip_id: str
    user_id: str
    role: str
    status: str
    user: Optional[UserPublic] = None

    class Config:
        from_attributes = True


class TripCreateResponse(BaseModel):
    trip: TripOut
    members: List[TripMemberOut] = Field(default_factory=list)
    warnings: List[str] = Field(default_factory=list)


class MemberInvite(BaseModel):
    user_id: str
    role: TripRole = TripRole.VIEWER


class MembersAdd(BaseModel):
    user_ids: List[str]


class MemberRoleUpdate(BaseModel):
    role: TripRole
