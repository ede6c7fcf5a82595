from typing import List

from fastapi import APIRouter, Depends, Response
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import readable_trip, writable_trip
from db.database import get_db
from schemas.itinerary import (
    BudgetSummaryOut,
    CityStopOut,
    ExpenseItemCreate,
    ExpenseItemUpdate,
    ItineraryItemCreate,
    ItineraryItemOut,
    ItineraryItemUpdate,
    PoiCreate,
    PoiOut,
)
from services import itinerary_service

router = APIRouter(prefix="/trips/{trip_id}", tags=["itinerary"])


@router.get("/itinerary", response_model=List[ItineraryItemOut])
async def list_itinerary(trip_id: str = Depends(readable_trip), db: AsyncSession = Depends(get_db)):
    return await itinerary_service.get_trip_itinerary(db, trip_id)


@router.get("/itinerary/{item_id}", response_model=ItineraryItemOut)
async def get_itinerary_item(
    item_id: str, trip_id: str = Depends(readable_trip), db: AsyncSession = Depends(get_db)
):
    return await itinerary_service.get_itinerary_item(db, trip_id, item_id)


@router.post("/itinerary", response_model=ItineraryItemOut, status_code=201)
async def create_itinerary_item(
    payload: ItineraryItemCreate,
    trip_id: str = Depends(writable_trip),
    db: AsyncSession = Depends(get_db),
):
    return await itinerary_service.create_itinerary_item(db, trip_id, payload)


@router.patch("/itinerary/{item_id}", response_model=ItineraryItemOut)
async def update_itinerary_item(
    item_id: str,
    updates: ItineraryItemUpdate,
    trip_id: str = Depends(writable_trip),
    db: AsyncSession = Depends(get_db),
):
    return await itinerary_service.update_itinerary_item(db, trip_id, item_id, updates)


@router.delete("/itinerary/{item_id}", status_code=204)
async def delete_itinerary_item(
    item_id: str, trip_id: str = Depends(writable_trip), db: AsyncSession = Depends(get_db)
):
    await itinerary_service.delete_itinerary_item(db, trip_id, item_id)
    return Response(status_code=204)


@router.get("/pois", response_model=List[PoiOut])
async def list_pois(trip_id: str = Depends(readable_trip), db: AsyncSession = Depends(get_db)):
    return await itinerary_service.get_trip_pois(db, trip_id)


@router.post("/pois", response_model=PoiOut, status_code=201)
async def create_poi(
    payload: PoiCreate, trip_id: str = Depends(writable_trip), db: AsyncSession = Depends(get_db)
):
    return await itinerary_service.create_poi(db, trip_id, payload)


@router.delete("/pois/{poi_id}", status_code=204)
async def delete_poi(
    poi_id: str, trip_id: str = Depends(writable_trip), db: AsyncSession = Depends(get_db)
):
    await itinerary_service.delete_poi(db, trip_id, poi_id)
    return Response(status_code=204)


@router.get("/city-stops", response_model=List[CityStopOut])
async def list_city_stops(trip_id: str = Depends(readable_trip), db: AsyncSession = Depends(get_db)):
    return await itinerary_service.get_trip_city_stops(db, trip_id)


# Budget tab


@router.get("/budget", response_model=BudgetSummaryOut)
async def get_budget(trip_id: str = Depends(readable_trip), db: AsyncSession = Depends(get_db)):
    summary = await itinerary_service.get_budget_summary(db, trip_id)
    return BudgetSummaryOut(
        total_spent=summary.total_spent,
        spent_on_stay=summary.spent_on_stay,
        spent_on_food=summary.spent_on_food,
        spent_on_move=summary.spent_on_move,
        spent_on_activity=summary.spent_on_activity,
        budget_remaining=summary.budget_remaining,
        budget_progress=summary.budget_progress,
        expense_items=[ItineraryItemOut.model_validate(i) for i in summary.expense_items],
    )


@router.post("/budget/expenses", response_model=ItineraryItemOut, status_code=201)
async def add_expense(
    payload: ExpenseItemCreate,
    trip_id: str = Depends(writable_trip),
    db: AsyncSession = Depends(get_db),
):
    return await itinerary_service.create_expense_item(db, trip_id, payload)


@router.patch("/budget/expenses/{item_id}", response_model=ItineraryItemOut)
async def edit_expense(
    item_id: str,
    payload: ExpenseItemUpdate,
    trip_id: str = Depends(writable_trip),
    db: AsyncSession = Depends(get_db),
):
    return await itinerary_service.update_expense_item(db, trip_id, item_id, payload)


@router.delete("/budget/expenses/{item_id}", response_model=ItineraryItemOut)
async def remove_expense(
    item_id: str, trip_id: str = Depends(writable_trip), db: AsyncSession = Depends(get_db)
):
    return await itinerary_service.clear_expense(db, trip_id, item_id)
