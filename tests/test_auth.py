import datetime

import pytest

from core.security import create_access_token, decode_access_token, hash_password, verify_password
from core.errors import AuthenticationError


def test_password_hashing():
    hashed = hash_password("secret123")

    assert hashed != "secret123"
    assert verify_password("secret123", hashed)
    assert not verify_password("wrong", hashed)


def test_token_round_trip_and_expiry():
    assert decode_access_token(create_access_token("user-1")) == "user-1"

    expired = create_access_token("user-1", expires_delta=datetime.timedelta(seconds=-1))
    with pytest.raises(AuthenticationError):
        decode_access_token(expired)


@pytest.mark.asyncio
async def test_signup_defaults(signup):
    user, _ = await signup("asha@example.com")

    assert user["email"] == "asha@example.com"
    assert user["user_name"] == f"User_{user['id'][:8]}"
    assert user["home_currency"] == "INR"


@pytest.mark.asyncio
async def test_duplicate_email_conflicts(client, signup):
    await signup("asha@example.com")

    response = await client.post(
        "/api/v1/auth/signup", json={"email": "asha@example.com", "password": "secret123"}
    )

    assert response.status_code == 409
    assert response.json()["detail"] == "Email already registered"


@pytest.mark.asyncio
async def test_login_and_session(client, signup):
    user, _ = await signup("asha@example.com", user_name="asha")

    response = await client.post(
        "/api/v1/auth/login", json={"email": "asha@example.com", "password": "secret123"}
    )
    assert response.status_code == 200
    token = response.json()["access_token"]

    session = await client.get(
        "/api/v1/auth/session", headers={"Authorization": f"Bearer {token}"}
    )
    assert session.status_code == 200
    assert session.json()["id"] == user["id"]


@pytest.mark.asyncio
async def test_wrong_password(client, signup):
    await signup("asha@example.com")

    response = await client.post(
        "/api/v1/auth/login", json={"email": "asha@example.com", "password": "nope-nope"}
    )

    assert response.status_code == 401
    assert response.json()["detail"] == "Invalid credentials"


@pytest.mark.asyncio
async def test_missing_and_invalid_tokens(client):
    missing = await client.get("/api/v1/users/me")
    assert missing.status_code == 401
    assert missing.json()["detail"] == "Missing authorization header"

    invalid = await client.get("/api/v1/users/me", headers={"Authorization": "Bearer garbage"})
    assert invalid.status_code == 401
    assert invalid.json()["detail"] == "Invalid or expired token"


@pytest.mark.asyncio
async def test_update_profile(client, signup):
    _, headers = await signup("asha@example.com")

    response = await client.patch(
        "/api/v1/users/me",
        json={"home_city": "Pune", "interests": ["food", "hiking"]},
        headers=headers,
    )

    assert response.status_code == 200
    assert response.json()["home_city"] == "Pune"
    assert response.json()["interests"] == ["food", "hiking"]


@pytest.mark.asyncio
async def test_profile_rejects_null_home_currency(client, signup):
    _, headers = await signup("asha@example.com")

    rejected = await client.patch("/api/v1/users/me", json={"home_currency": None}, headers=headers)
    cleared = await client.patch("/api/v1/users/me", json={"home_city": None}, headers=headers)

    assert rejected.status_code == 422
    assert cleared.status_code == 200
    assert cleared.json()["home_currency"] == "INR"


@pytest.mark.asyncio
async def test_taken_user_name(client, signup):
    await signup("asha@example.com", user_name="asha")
    _, headers = await signup("ravi@example.com", user_name="ravi")

    response = await client.patch("/api/v1/users/me", json={"user_name": "asha"}, headers=headers)

    assert response.status_code == 409


@pytest.mark.asyncio
async def test_search_users(client, signup):
    me, headers = await signup("asha@example.com", user_name="asha_k")
    await signup("ravi@example.com", user_name="Ravi_S")
    await signup("ravina@example.com", user_name="ravina")

    short = await client.get("/api/v1/users/search", params={"q": "r"}, headers=headers)
    assert short.json() == []

    found = await client.get("/api/v1/users/search", params={"q": " RAV "}, headers=headers)
    names = sorted(u["user_name"] for u in found.json())
    assert names == ["Ravi_S", "ravina"]

    self_search = await client.get("/api/v1/users/search", params={"q": "asha"}, headers=headers)
    assert me["id"] not in [u["id"] for u in self_search.json()]


@pytest.mark.asyncio
async def test_dashboard_stats(client, signup, create_trip):
    _, headers = await signup("asha@example.com")
    trip = await create_trip(headers)
    await create_trip(headers, start_date="2001-01-01", end_date="2001-01-03")
    await client.post(
        f"/api/v1/trips/{trip['trip']['id']}/expenses", json={"amount": 250}, headers=headers
    )

    response = await client.get("/api/v1/users/me/stats", headers=headers)

    assert response.json() == {
        "trips_count": 2,
        "upcoming_trips_count": 1,
        "total_expenses": 250,
    }
