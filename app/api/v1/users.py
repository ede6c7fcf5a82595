from typing import List

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import get_current_user
from db.database import get_db
from db.models import User
from schemas.expense import ExpenseTotal
from schemas.user import DashboardStats, UserProfile, UserPublic, UserUpdate
from services.expense_service import get_user_total_expenses
from services.user_service import (
    get_dashboard_stats,
    search_users_by_username,
    update_user_profile,
)

router = APIRouter(prefix="/users", tags=["users"])


@router.get("/me", response_model=UserProfile)
async def get_me(user: User = Depends(get_current_user)):
    return user


@router.patch("/me", response_model=UserProfile)
async def update_me(
    updates: UserUpdate,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await update_user_profile(db, user.id, updates)


@router.get("/me/stats", response_model=DashboardStats)
async def my_stats(user: User = Depends(get_current_user), db: AsyncSession = Depends(get_db)):
    return await get_dashboard_stats(db, user.id)


@router.get("/me/expenses/total", response_model=ExpenseTotal)
async def my_expense_total(
    user: User = Depends(get_current_user), db: AsyncSession = Depends(get_db)
):
    return ExpenseTotal(total=await get_user_total_expenses(db, user.id))


@router.get("/search", response_model=List[UserPublic])
async def search_users(
    q: str = Query(default=""),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await search_users_by_username(db, q, user.id)
