from typing import List

from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from core.errors import NotFoundError
from core.logging import logger
from db.models import Expense
from schemas.expense import ExpenseCreate, ExpenseUpdate
from services.trip_service import get_trip


async def get_trip_expenses(db: AsyncSession, trip_id: str) -> List[Expense]:
    try:
        result = await db.execute(
            select(Expense).where(Expense.trip_id == trip_id).order_by(Expense.created_at.desc())
        )
    except SQLAlchemyError as e:
        logger.error(f"Error fetching expenses: {e}")
        raise
    return list(result.scalars().all())


async def get_trip_total_expenses(db: AsyncSession, trip_id: str) -> float:
    expenses = await get_trip_expenses(db, trip_id)
    return sum(expense.amount for expense in expenses)


async def get_user_total_expenses(db: AsyncSession, user_id: str) -> float:
    """Everything a user has paid for, across all trips."""
    try:
        result = await db.execute(
            select(func.coalesce(func.sum(Expense.amount), 0)).where(Expense.payer_id == user_id)
        )
    except SQLAlchemyError as e:
        logger.error(f"Error fetching user expenses: {e}")
        raise
    return float(result.scalar_one())


async def create_expense(
    db: AsyncSession, trip_id: str, payer_id: str, payload: ExpenseCreate
) -> Expense:
    trip = await get_trip(db, trip_id)
    expense = Expense(
        trip_id=trip_id,
        payer_id=payload.payer_id or payer_id,
        amount=payload.amount,
        currency=payload.currency or trip.currency,
        category=payload.category.value,
        notes=payload.notes,
    )
    db.add(expense)
    try:
        await db.commit()
    except SQLAlchemyError as e:
        await db.rollback()
        logger.error(f"Error creating expense: {e}")
        raise
    return expense


async def _get_expense(db: AsyncSession, trip_id: str, expense_id: str) -> Expense:
    expense = await db.get(Expense, expense_id)
    if expense is None or expense.trip_id != trip_id:
        raise NotFoundError("Expense not found")
    return expense


async def update_expense(
    db: AsyncSession, trip_id: str, expense_id: str, updates: ExpenseUpdate
) -> Expense:
    expense = await _get_expense(db, trip_id, expense_id)
    for key, value in updates.model_dump(exclude_unset=True).items():
        if key == "category" and value is not None:
            value = value.value
        setattr(expense, key, value)
    try:
        await db.commit()
    except SQLAlchemyError as e:
        await db.rollback()
        logger.error(f"Error updating expense: {e}")
        raise
    return expense


async def delete_expense(db: AsyncSession, trip_id: str, expense_id: str) -> None:
    expense = await _get_expense(db, trip_id, expense_id)
    try:
        await db.delete(expense)
        await db.commit()
    except SQLAlchemyError as e:
        await db.rollback()
        logger.error(f"Error deleting expense: {e}")
        raise
