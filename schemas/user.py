from pydantic import BaseModel, field_validator
from typing import List, Optional


class UserPublic(BaseModel):
    id: str
    name: Optional[str] = None
    user_name: Optional[str] = None
    image: Optional[str] = None

    class Config:
        from_attributes = True


class UserProfile(UserPublic):
    email: str
    home_city: Optional[str] = None
    home_currency: str
    interests: Optional[List[str]] = None
    role: str


class UserUpdate(BaseModel):
    name: Optional[str] = None
    user_name: Optional[str] = None
    home_city: Optional[str] = None
    home_currency: Optional[str] = None
    image: Optional[str] = None
    interests: Optional[List[str]] = None

    @field_validator("home_currency")
    @classmethod
    def _not_null(cls, v):
        if v is None:
            raise ValueError("may not be null")
        return v


class DashboardStats(BaseModel):
    trips_count: int
    upcoming_trips_count: int
    total_expenses: float
