from typing import List

from fastapi import APIRouter, Depends, Response
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import get_current_user, readable_trip, writable_trip
from db.database import get_db
from db.models import User
from schemas.expense import ExpenseCreate, ExpenseOut, ExpenseTotal, ExpenseUpdate
from services import expense_service

router = APIRouter(prefix="/trips/{trip_id}/expenses", tags=["expenses"])


@router.get("", response_model=List[ExpenseOut])
async def list_expenses(trip_id: str = Depends(readable_trip), db: AsyncSession = Depends(get_db)):
    return await expense_service.get_trip_expenses(db, trip_id)


@router.get("/total", response_model=ExpenseTotal)
async def total_expenses(trip_id: str = Depends(readable_trip), db: AsyncSession = Depends(get_db)):
    return ExpenseTotal(total=await expense_service.get_trip_total_expenses(db, trip_id))


@router.post("", response_model=ExpenseOut, status_code=201)
async def create_expense(
    payload: ExpenseCreate,
    trip_id: str = Depends(writable_trip),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await expense_service.create_expense(db, trip_id, user.id, payload)


@router.patch("/{expense_id}", response_model=ExpenseOut)
async def update_expense(
    expense_id: str,
    updates: ExpenseUpdate,
    trip_id: str = Depends(writable_trip),
    db: AsyncSession = Depends(get_db),
):
    return await expense_service.update_expense(db, trip_id, expense_id, updates)


@router.delete("/{expense_id}", status_code=204)
async def delete_expense(
    expense_id: str, trip_id: str = Depends(writable_trip), db: AsyncSession = Depends(get_db)
):
    await expense_service.delete_expense(db, trip_id, expense_id)
    return Response(status_code=204)
