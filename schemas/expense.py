import datetime
from pydantic import BaseModel, field_validator
from typing import Optional

from db.models import ExpenseCategory


class ExpenseCreate(BaseModel):
    amount: float
    currency: Optional[str] = None
    category: ExpenseCategory = ExpenseCategory.OTHER
    notes: Optional[str] = None
    payer_id: Optional[str] = None


class ExpenseUpdate(BaseModel):
    amount: Optional[float] = None
    currency: Optional[str] = None
    category: Optional[ExpenseCategory] = None
    notes: Optional[str] = None

    @field_validator("amount", "currency", "category")
    @classmethod
    def _not_null(cls, v):
        if v is None:
            raise ValueError("may not be null")
        return v


class ExpenseOut(BaseModel):
    id: str
    trip_id: str
    payer_id: str
    amount: float
    currency: str
    category: str
    notes: Optional[str] = None
    created_at: datetime.datetime

    class Config:
        from_attributes = True


class ExpenseTotal(BaseModel):
    total: float
