import pytest
from sqlalchemy import inspect
from sqlalchemy.ext.asyncio import create_async_engine
from sqlalchemy.pool import StaticPool

from core.cors import DEV_ORIGINS, allowed_origins
from initial import init_db


def test_allowed_origins():
    origins = allowed_origins("https://trips.example.com, http://localhost:5173,,")

    assert origins[0] == "https://trips.example.com"
    assert origins.count("http://localhost:5173") == 1
    assert set(DEV_ORIGINS) <= set(origins)


@pytest.mark.asyncio
async def test_root(client):
    response = await client.get("/")

    assert response.status_code == 200
    assert response.json() == {"message": "Trip Planner API"}


@pytest.mark.asyncio
async def test_cors_preflight(client):
    response = await client.options(
        "/api/v1/trips",
        headers={
            "Origin": "http://localhost:5173",
            "Access-Control-Request-Method": "POST",
            "Access-Control-Request-Headers": "authorization",
        },
    )

    assert response.status_code == 200
    assert response.headers["access-control-allow-origin"] == "http://localhost:5173"


@pytest.mark.asyncio
async def test_init_db_creates_every_table():
    engine = create_async_engine("sqlite+aiosqlite:///:memory:", poolclass=StaticPool)
    try:
        await init_db(engine)
        async with engine.connect() as conn:
            tables = await conn.run_sync(lambda sync_conn: inspect(sync_conn).get_table_names())
    finally:
        await engine.dispose()

    assert {
        "users",
        "trips",
        "trip_members",
        "city_stops",
        "pois",
        "itinerary_items",
        "expenses",
        "friends",
        "notifications",
    } <= set(tables)
