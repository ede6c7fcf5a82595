from typing import Any, Dict, List

from pydantic import ValidationError
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from core.logging import logger
from db.models import ItineraryItemKind, new_id
from schemas.itinerary import CityStopOut, ItineraryItemOut, PoiOut
from services.itinerary_service import save_city_stops, save_itinerary_items, save_pois

KINDS = {kind.value for kind in ItineraryItemKind}


def _number(value: Any):
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    return value


def _integer(value: Any):
    number = _number(value)
    return int(number) if number is not None else None


def _text(value: Any):
    if value is None or isinstance(value, (dict, list)):
        return None
    return str(value) or None


def _temp_id(value: Any):
    # Only scalars can key the lookup tables.
    if isinstance(value, bool) or not isinstance(value, (str, int)):
        return None
    return str(value) or None


def _as_list(value: Any) -> List[dict]:
    if not isinstance(value, list):
        return []
    return [entry for entry in value if isinstance(entry, dict)]


def city_stop_rows(plan: dict, start_date: str, end_date: str, city_ids: Dict[str, str]) -> List[dict]:
    rows = []
    for index, stop in enumerate(_as_list(plan.get("cityStops"))):
        stop_id = new_id()
        temp_id = _temp_id(stop.get("tempId"))
        if temp_id:
            city_ids[temp_id] = stop_id
        order = _integer(stop.get("order"))
        rows.append(
            {
                "id": stop_id,
                "name": _text(stop.get("name")) or f"City {index + 1}",
                "lat": _number(stop.get("lat")) or 0,
                "lng": _number(stop.get("lng")) or 0,
                "arrival": _text(stop.get("arrival")) or start_date,
                "departure": _text(stop.get("departure")) or end_date,
                "order": order if order is not None else index,
                "notes": _text(stop.get("notes")),
            }
        )
    return rows


def poi_rows(plan: dict, city_ids: Dict[str, str], poi_ids: Dict[str, str]) -> List[dict]:
    rows = []
    for poi in _as_list(plan.get("pois")):
        poi_id = new_id()
        temp_id = _temp_id(poi.get("tempId"))
        if temp_id:
            poi_ids[temp_id] = poi_id
        style = _text(poi.get("style"))
        tags = [t for t in (style, _text(poi.get("category"))) if t] if style else None
        rows.append(
            {
                "id": poi_id,
                "name": _text(poi.get("name")) or "Unnamed place",
                "lat": _number(poi.get("lat")) or 0,
                "lng": _number(poi.get("lng")) or 0,
                "city_stop_id": city_ids.get(_temp_id(poi.get("cityTempId"))),
                "tags": tags,
                "photo_url": _text(poi.get("photoUrl")),
                "website_url": _text(poi.get("websiteUrl")),
                "rating": _number(poi.get("rating")),
                "price_level": _integer(poi.get("priceLevel")),
                "external_id": None,
                "description": _text(poi.get("description")),
                "cost": _number(poi.get("cost")),
                "duration": _text(poi.get("duration")),
            }
        )
    return rows


def itinerary_rows(plan: dict, start_date: str, poi_ids: Dict[str, str]) -> List[dict]:
    rows = []
    for day in _as_list(plan.get("itinerary")):
        for item in _as_list(day.get("items")):
            kind = item.get("kind")
            if not isinstance(kind, str) or kind not in KINDS:
                kind = ItineraryItemKind.ACTIVITY.value
            rows.append(
                {
                    "day": _text(day.get("date")) or start_date,
                    "title": _text(item.get("title")) or "Untitled",
                    "kind": kind,
                    "start_time": _text(item.get("startTime")),
                    "end_time": _text(item.get("endTime")),
                    "cost": _number(item.get("cost")),
                    "notes": _text(item.get("notes")),
                    "poi_id": poi_ids.get(_temp_id(item.get("poiTempId"))),
                }
            )
    return rows


async def save_generated_plan(
    db: AsyncSession, trip_id: str, plan: dict, start_date: str, end_date: str
) -> Dict[str, List[Dict[str, Any]]]:
    """Bulk-insert a generated plan's city stops, POIs and itinerary items.

    The model refers to its own records by temporary ids (``tempId``,
    ``cityTempId``, ``poiTempId``). They are swapped for freshly generated
    ids here, and the lookup tables are dropped once the save is done.

    Each table is written on its own: a failure is logged and leaves that
    table's saved list empty, the other tables are still written.
    """
    saved: Dict[str, List[Dict[str, Any]]] = {}
    city_ids: Dict[str, str] = {}
    poi_ids: Dict[str, str] = {}

    stops = city_stop_rows(plan, start_date, end_date, city_ids)
    if stops:
        try:
            rows = await save_city_stops(db, trip_id, stops)
            saved["city_stops"] = [CityStopOut.model_validate(r).model_dump(mode="json") for r in rows]
        except (SQLAlchemyError, ValidationError) as e:
            logger.error(f"Error saving city stops: {e}")
            saved["city_stops"] = []
            city_ids.clear()

    pois = poi_rows(plan, city_ids, poi_ids)
    if pois:
        try:
            rows = await save_pois(db, trip_id, pois)
            saved["pois"] = [PoiOut.model_validate(r).model_dump(mode="json") for r in rows]
        except (SQLAlchemyError, ValidationError) as e:
            logger.error(f"Error saving POIs: {e}")
            saved["pois"] = []
            poi_ids.clear()

    if isinstance(plan.get("itinerary"), list) and plan["itinerary"]:
        items = itinerary_rows(plan, start_date, poi_ids)
        saved["itinerary_items"] = []
        if items:
            try:
                rows = await save_itinerary_items(db, trip_id, items)
                saved["itinerary_items"] = [
                    ItineraryItemOut.model_validate(r).model_dump(mode="json") for r in rows
                ]
            except (SQLAlchemyError, ValidationError) as e:
                logger.error(f"Error saving itinerary items: {e}")

    logger.info(
        f"Saved plan for trip {trip_id}: "
        + ", ".join(f"{name}={len(rows)}" for name, rows in saved.items())
    )
    return saved
