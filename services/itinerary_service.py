import enum
from typing import Any, Dict, List, Sequence

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from core.errors import NotFoundError
from core.logging import logger
from db.models import CityStop, ItineraryItem, ItineraryItemKind, Poi, new_id
from schemas.itinerary import (
    ExpenseItemCreate,
    ExpenseItemUpdate,
    ItineraryItemCreate,
    ItineraryItemUpdate,
    PoiCreate,
)
from services.budget import BudgetSummary, summarize_budget
from services.trip_service import get_trip


def _plain(values: Dict[str, Any]) -> Dict[str, Any]:
    return {k: v.value if isinstance(v, enum.Enum) else v for k, v in values.items()}


async def _commit(db: AsyncSession, what: str) -> None:
    try:
        await db.commit()
    except SQLAlchemyError as e:
        await db.rollback()
        logger.error(f"Error {what}: {e}")
        raise


# Itinerary items


async def get_trip_itinerary(db: AsyncSession, trip_id: str) -> List[ItineraryItem]:
    stmt = (
        select(ItineraryItem)
        .where(ItineraryItem.trip_id == trip_id)
        .order_by(ItineraryItem.day.asc(), ItineraryItem.start_time.asc())
    )
    try:
        result = await db.execute(stmt)
    except SQLAlchemyError as e:
        logger.error(f"Error fetching itinerary: {e}")
        raise
    return list(result.scalars().all())


async def get_itinerary_item(db: AsyncSession, trip_id: str, item_id: str) -> ItineraryItem:
    item = await db.get(ItineraryItem, item_id)
    if item is None or item.trip_id != trip_id:
        raise NotFoundError("Itinerary item not found")
    return item


async def create_itinerary_item(
    db: AsyncSession, trip_id: str, payload: ItineraryItemCreate
) -> ItineraryItem:
    item = ItineraryItem(trip_id=trip_id, **_plain(payload.model_dump()))
    db.add(item)
    await _commit(db, "creating itinerary item")
    return item


async def update_itinerary_item(
    db: AsyncSession, trip_id: str, item_id: str, updates: ItineraryItemUpdate
) -> ItineraryItem:
    item = await get_itinerary_item(db, trip_id, item_id)
    for key, value in _plain(updates.model_dump(exclude_unset=True)).items():
        setattr(item, key, value)
    await _commit(db, "updating itinerary item")
    return item


async def delete_itinerary_item(db: AsyncSession, trip_id: str, item_id: str) -> None:
    item = await get_itinerary_item(db, trip_id, item_id)
    await db.delete(item)
    await _commit(db, "deleting itinerary item")


async def save_itinerary_items(
    db: AsyncSession, trip_id: str, items: Sequence[Dict[str, Any]]
) -> List[ItineraryItem]:
    rows = [
        ItineraryItem(
            id=item.get("id") or new_id(),
            trip_id=trip_id,
            day=item["day"],
            title=item["title"],
            kind=item.get("kind") or ItineraryItemKind.ACTIVITY.value,
            start_time=item.get("start_time") or None,
            end_time=item.get("end_time") or None,
            cost=item.get("cost"),
            notes=item.get("notes") or None,
            poi_id=item.get("poi_id") or None,
        )
        for item in items
    ]
    db.add_all(rows)
    await _commit(db, "saving itinerary items")
    return rows


# POIs and city stops


async def get_trip_pois(db: AsyncSession, trip_id: str) -> List[Poi]:
    result = await db.execute(select(Poi).where(Poi.trip_id == trip_id))
    return list(result.scalars().all())


async def create_poi(db: AsyncSession, trip_id: str, payload: PoiCreate) -> Poi:
    poi = Poi(trip_id=trip_id, **payload.model_dump())
    db.add(poi)
    await _commit(db, "creating POI")
    return poi


async def delete_poi(db: AsyncSession, trip_id: str, poi_id: str) -> None:
    poi = await db.get(Poi, poi_id)
    if poi is None or poi.trip_id != trip_id:
        raise NotFoundError("POI not found")

    # Items pointing at the POI keep their row and lose the link.
    result = await db.execute(select(ItineraryItem).where(ItineraryItem.poi_id == poi_id))
    for item in result.scalars().all():
        item.poi_id = None
    await db.flush()
    await db.delete(poi)
    await _commit(db, "deleting POI")


async def save_pois(db: AsyncSession, trip_id: str, pois: Sequence[Dict[str, Any]]) -> List[Poi]:
    rows = [Poi(trip_id=trip_id, **poi) for poi in pois]
    db.add_all(rows)
    await _commit(db, "saving POIs")
    return rows


async def get_trip_city_stops(db: AsyncSession, trip_id: str) -> List[CityStop]:
    result = await db.execute(
        select(CityStop).where(CityStop.trip_id == trip_id).order_by(CityStop.order.asc())
    )
    return list(result.scalars().all())


async def save_city_stops(
    db: AsyncSession, trip_id: str, stops: Sequence[Dict[str, Any]]
) -> List[CityStop]:
    rows = []
    for index, stop in enumerate(stops):
        order = stop.get("order")
        row = CityStop(
            trip_id=trip_id,
            name=stop["name"],
            lat=stop["lat"],
            lng=stop["lng"],
            arrival=stop["arrival"],
            departure=stop["departure"],
            order=order if order is not None else index,
            notes=stop.get("notes") or None,
        )
        if stop.get("id"):
            row.id = stop["id"]
        rows.append(row)
    db.add_all(rows)
    await _commit(db, "saving city stops")
    return rows


# Budget tab: expenses are itinerary items carrying a cost.


async def get_budget_summary(db: AsyncSession, trip_id: str) -> BudgetSummary:
    trip = await get_trip(db, trip_id)
    itinerary = await get_trip_itinerary(db, trip_id)
    return summarize_budget(itinerary, trip.budget_cap)


async def create_expense_item(
    db: AsyncSession, trip_id: str, payload: ExpenseItemCreate
) -> ItineraryItem:
    return await create_itinerary_item(
        db,
        trip_id,
        ItineraryItemCreate(
            day=payload.day,
            title=payload.title,
            kind=payload.kind,
            cost=payload.cost,
            notes=payload.notes,
        ),
    )


async def update_expense_item(
    db: AsyncSession, trip_id: str, item_id: str, payload: ExpenseItemUpdate
) -> ItineraryItem:
    # Title, day and kind belong to the itinerary entry and stay untouched.
    return await update_itinerary_item(
        db,
        trip_id,
        item_id,
        ItineraryItemUpdate(cost=payload.cost, notes=payload.notes),
    )


async def clear_expense(db: AsyncSession, trip_id: str, item_id: str) -> ItineraryItem:
    """Drop an item out of the expense log by clearing its cost; the item stays."""
    logger.info(f"Clearing cost on itinerary item {item_id}")
    return await update_itinerary_item(
        db, trip_id, item_id, ItineraryItemUpdate(cost=None)
    )

