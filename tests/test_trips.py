import datetime

import pytest
from sqlalchemy import event

from db.models import Trip
from services.trip_service import (
    calculate_days,
    decorate_trips,
    format_date,
    get_upcoming_trips,
    get_user_trips,
)


def make_trip(trip_id, start, end):
    now = datetime.datetime(2030, 1, 1, tzinfo=datetime.timezone.utc)
    return Trip(
        id=trip_id,
        owner_id="owner",
        title=f"Trip {trip_id}",
        start_date=start,
        end_date=end,
        currency="INR",
        visibility="PRIVATE",
        created_at=now,
        updated_at=now,
    )


def test_calculate_days():
    assert calculate_days(datetime.date(2030, 3, 1), datetime.date(2030, 3, 5)) == 4
    assert calculate_days(datetime.date(2030, 3, 1), datetime.date(2030, 3, 1)) == 0
    # Reversed dates still give a positive span.
    assert calculate_days(datetime.date(2030, 3, 5), datetime.date(2030, 3, 1)) == 4


def test_format_date():
    assert format_date(datetime.date(2025, 3, 5)) == "Mar 5, 2025"
    assert format_date(datetime.date(2025, 12, 25)) == "Dec 25, 2025"


def test_decorate_trips():
    trips = [
        make_trip("a", datetime.date(2030, 3, 1), datetime.date(2030, 3, 8)),
        make_trip("b", datetime.date(2030, 5, 10), datetime.date(2030, 5, 10)),
    ]

    summaries = decorate_trips(trips, {"a": 3})

    assert summaries[0].days == 7
    assert summaries[0].formatted_start_date == "Mar 1, 2030"
    assert summaries[0].members_count == 3
    assert summaries[0].travelers == 4
    assert summaries[1].members_count == 0
    assert summaries[1].travelers == 1


@pytest.mark.asyncio
async def test_create_trip_with_members(client, signup, create_trip):
    _, headers = await signup("owner@example.com")
    friend, _ = await signup("friend@example.com")

    created = await create_trip(headers, budget_cap=1000, member_ids=[friend["id"]])

    assert created["trip"]["currency"] == "INR"
    assert created["warnings"] == []
    assert [m["user_id"] for m in created["members"]] == [friend["id"]]
    assert created["members"][0]["role"] == "VIEWER"

    listing = await client.get("/api/v1/trips", headers=headers)
    summary = listing.json()[0]
    assert summary["members_count"] == 1
    assert summary["travelers"] == 2
    assert summary["days"] == 4
    assert summary["formatted_start_date"] == "Mar 1, 2030"


@pytest.mark.asyncio
async def test_owner_and_unknown_member_ids_are_skipped(client, signup, create_trip):
    owner, headers = await signup("owner@example.com")
    friend, _ = await signup("friend@example.com")

    created = await create_trip(headers, member_ids=[owner["id"], "ghost", friend["id"]])

    assert created["warnings"] == []
    assert [m["user_id"] for m in created["members"]] == [friend["id"]]

    summary = (await client.get("/api/v1/trips", headers=headers)).json()[0]
    assert summary["members_count"] == 1
    assert summary["travelers"] == 2

    again = await client.post(
        f"/api/v1/trips/{created['trip']['id']}/members/bulk",
        json={"user_ids": [owner["id"], "ghost"]},
        headers=headers,
    )
    assert again.status_code == 201
    assert again.json() == []


@pytest.mark.asyncio
async def test_failed_member_insert_keeps_trip(client, signup, create_trip):
    _, headers = await signup("owner@example.com")
    friend, _ = await signup("friend@example.com")

    # The same member twice violates the per-trip uniqueness.
    created = await create_trip(headers, member_ids=[friend["id"], friend["id"]])

    assert created["members"] == []
    assert created["warnings"] == [
        "Trip created, but members could not be added. You can invite them from the trip page."
    ]
    fetched = await client.get(f"/api/v1/trips/{created['trip']['id']}", headers=headers)
    assert fetched.status_code == 200


@pytest.mark.asyncio
async def test_trip_list_counts_members_in_one_query(engine, db, client, signup, create_trip):
    owner, headers = await signup("owner@example.com")
    friend, _ = await signup("friend@example.com")
    other, _ = await signup("other@example.com")
    await create_trip(headers, member_ids=[friend["id"], other["id"]])
    await create_trip(headers, member_ids=[friend["id"]])
    await create_trip(headers)

    statements = []

    def record(conn, cursor, statement, parameters, context, executemany):
        statements.append(statement)

    event.listen(engine.sync_engine, "before_cursor_execute", record)
    try:
        trips = await get_user_trips(db, owner["id"])
    finally:
        event.remove(engine.sync_engine, "before_cursor_execute", record)

    assert sorted(t.members_count for t in trips) == [0, 1, 2]
    assert sum("trip_members" in s for s in statements) == 1


@pytest.mark.asyncio
async def test_upcoming_trips(db, client, signup, create_trip):
    owner, headers = await signup("owner@example.com")
    await create_trip(headers, title="Past", start_date="2020-01-01", end_date="2020-01-02")
    await create_trip(headers, title="Soon", start_date="2030-06-01", end_date="2030-06-03")

    upcoming = await get_upcoming_trips(db, owner["id"], today=datetime.date(2025, 1, 1))

    assert [t.title for t in upcoming] == ["Soon"]


@pytest.mark.asyncio
async def test_get_trip_includes_owner(client, signup, create_trip):
    owner, headers = await signup("owner@example.com", user_name="owner")
    created = await create_trip(headers)

    response = await client.get(f"/api/v1/trips/{created['trip']['id']}", headers=headers)

    assert response.json()["owner"]["user_name"] == "owner"


@pytest.mark.asyncio
async def test_trip_access_rules(client, signup, create_trip):
    _, owner_headers = await signup("owner@example.com")
    viewer, viewer_headers = await signup("viewer@example.com")
    _, stranger_headers = await signup("stranger@example.com")
    created = await create_trip(owner_headers, member_ids=[viewer["id"]])
    trip_id = created["trip"]["id"]

    stranger = await client.get(f"/api/v1/trips/{trip_id}", headers=stranger_headers)
    assert stranger.status_code == 404

    as_viewer = await client.get(f"/api/v1/trips/{trip_id}", headers=viewer_headers)
    assert as_viewer.status_code == 200

    edit = await client.patch(
        f"/api/v1/trips/{trip_id}", json={"title": "Mine now"}, headers=viewer_headers
    )
    assert edit.status_code == 403

    delete = await client.delete(f"/api/v1/trips/{trip_id}", headers=viewer_headers)
    assert delete.status_code == 403


@pytest.mark.asyncio
async def test_update_and_delete_trip(client, signup, create_trip):
    _, headers = await signup("owner@example.com")
    created = await create_trip(headers)
    trip_id = created["trip"]["id"]
    await client.post(
        f"/api/v1/trips/{trip_id}/itinerary",
        json={"day": "2030-03-01", "title": "Beach", "kind": "SIGHT"},
        headers=headers,
    )

    updated = await client.patch(
        f"/api/v1/trips/{trip_id}",
        json={"title": "Goa Again", "budget_cap": 5000, "visibility": "PUBLIC"},
        headers=headers,
    )
    assert updated.json()["title"] == "Goa Again"
    assert updated.json()["visibility"] == "PUBLIC"

    deleted = await client.delete(f"/api/v1/trips/{trip_id}", headers=headers)
    assert deleted.status_code == 204
    gone = await client.get(f"/api/v1/trips/{trip_id}", headers=headers)
    assert gone.status_code == 404


@pytest.mark.asyncio
async def test_null_on_required_trip_field_is_rejected(client, signup, create_trip):
    _, headers = await signup("owner@example.com")
    created = await create_trip(headers, budget_cap=900)
    trip_id = created["trip"]["id"]

    for field in ("title", "start_date", "end_date", "currency", "visibility"):
        response = await client.patch(f"/api/v1/trips/{trip_id}", json={field: None}, headers=headers)
        assert response.status_code == 422

    uncapped = await client.patch(f"/api/v1/trips/{trip_id}", json={"budget_cap": None}, headers=headers)
    assert uncapped.status_code == 200
    assert uncapped.json()["budget_cap"] is None
    assert uncapped.json()["title"] == "Goa Getaway"


@pytest.mark.asyncio
async def test_member_management(client, signup, create_trip):
    owner, headers = await signup("owner@example.com")
    friend, friend_headers = await signup("friend@example.com")
    created = await create_trip(headers)
    trip_id = created["trip"]["id"]

    invited = await client.post(
        f"/api/v1/trips/{trip_id}/members",
        json={"user_id": friend["id"], "role": "EDITOR"},
        headers=headers,
    )
    assert invited.status_code == 201
    member_id = invited.json()["id"]

    again = await client.post(
        f"/api/v1/trips/{trip_id}/members", json={"user_id": friend["id"]}, headers=headers
    )
    assert again.status_code == 409
    assert again.json()["detail"] == "Already a member"

    owner_invite = await client.post(
        f"/api/v1/trips/{trip_id}/members", json={"user_id": owner["id"]}, headers=headers
    )
    assert owner_invite.status_code == 409

    # Editors may change the trip.
    edit = await client.patch(
        f"/api/v1/trips/{trip_id}", json={"title": "Shared"}, headers=friend_headers
    )
    assert edit.status_code == 200

    members = await client.get(f"/api/v1/trips/{trip_id}/members", headers=headers)
    assert members.json()[0]["user"]["id"] == friend["id"]

    demoted = await client.patch(
        f"/api/v1/trips/{trip_id}/members/{member_id}", json={"role": "VIEWER"}, headers=headers
    )
    assert demoted.json()["role"] == "VIEWER"

    removed = await client.delete(f"/api/v1/trips/{trip_id}/members/{member_id}", headers=headers)
    assert removed.status_code == 204
    assert (await client.get(f"/api/v1/trips/{trip_id}/members", headers=headers)).json() == []


@pytest.mark.asyncio
async def test_invite_notifies_member(client, signup, create_trip):
    owner, headers = await signup("owner@example.com")
    friend, friend_headers = await signup("friend@example.com")

    created = await create_trip(headers, member_ids=[friend["id"]])

    notifications = (await client.get("/api/v1/notifications", headers=friend_headers)).json()
    assert notifications[0]["type"] == "trip_invite"
    assert notifications[0]["trip_id"] == created["trip"]["id"]
    assert notifications[0]["actor"]["id"] == owner["id"]
