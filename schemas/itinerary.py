from pydantic import BaseModel, Field, field_validator
from typing import List, Optional

from db.models import ItineraryItemKind


class ItineraryItemCreate(BaseModel):
    day: str = Field(min_length=1)
    title: str = Field(min_length=1)
    kind: ItineraryItemKind
    start_time: Optional[str] = None
    end_time: Optional[str] = None
    cost: Optional[float] = None
    notes: Optional[str] = None
    poi_id: Optional[str] = None


class ItineraryItemUpdate(BaseModel):
    """Partial update; an explicit ``cost: null`` clears the cost."""

    day: Optional[str] = None
    title: Optional[str] = None
    kind: Optional[ItineraryItemKind] = None
    start_time: Optional[str] = None
    end_time: Optional[str] = None
    cost: Optional[float] = None
    notes: Optional[str] = None
    poi_id: Optional[str] = None

    @field_validator("day", "title", "kind")
    @classmethod
    def _not_null(cls, v):
        if v is None:
            raise ValueError("may not be null")
        return v


class ItineraryItemOut(BaseModel):
    id: str
    trip_id: str
    day: str
    title: str
    kind: str
    start_time: Optional[str] = None
    end_time: Optional[str] = None
    cost: Optional[float] = None
    notes: Optional[str] = None
    poi_id: Optional[str] = None

    class Config:
        from_attributes = True


class PoiCreate(BaseModel):
    name: str = Field(min_length=1)
    lat: float
    lng: float
    city_stop_id: Optional[str] = None
    tags: Optional[List[str]] = None
    photo_url: Optional[str] = None
    website_url: Optional[str] = None
    rating: Optional[float] = None
    price_level: Optional[int] = None
    description: Optional[str] = None
    cost: Optional[float] = None
    duration: Optional[str] = None


class PoiOut(PoiCreate):
    id: str
    trip_id: str
    external_id: Optional[str] = None

    class Config:
        from_attributes = True


class CityStopOut(BaseModel):
    id: str
    trip_id: str
    name: str
    lat: float
    lng: float
    arrival: str
    departure: str
    order: int
    notes: Optional[str] = None

    class Config:
        from_attributes = True


class ExpenseItemCreate(BaseModel):
    title: str = Field(min_length=1)
    day: str = Field(min_length=1)
    kind: ItineraryItemKind = ItineraryItemKind.STAY
    cost: float = Field(gt=0)
    notes: Optional[str] = None


class ExpenseItemUpdate(BaseModel):
    cost: float = Field(gt=0)
    notes: Optional[str] = None


class BudgetSummaryOut(BaseModel):
    total_spent: float
    spent_on_stay: float
    spent_on_food: float
    spent_on_move: float
    spent_on_activity: float
    budget_remaining: float
    budget_progress: float
    expense_items: List[ItineraryItemOut]
