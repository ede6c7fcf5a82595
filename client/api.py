import json
from typing import Any, Callable, Dict, Iterable, List, Optional

import requests

from client.cache import QueryCache, QueryKey
from client.session import SessionEvent, SessionProvider, logger, session_from_token_response


class ApiError(Exception):
    def __init__(self, message: str, status_code: Optional[int] = None, body: Any = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.body = body


def _error_message(response: requests.Response, default: str) -> str:
    try:
        body = response.json()
    except ValueError:
        return f"HTTP {response.status_code}: {response.reason}"
    if not isinstance(body, dict):
        return default
    for field in ("error", "detail", "message", "details"):
        if body.get(field):
            return str(body[field])
    return default


class TripPlannerClient:
    """HTTP client for the Trip Planner API.

    Reads go through the query cache and return ``{"data": ..., "error": ...}``
    instead of raising. Mutations raise ``ApiError`` and, on success,
    invalidate the cache keys whose results they change.
    """

    def __init__(
        self,
        base_url: str,
        provider: Optional[SessionProvider] = None,
        cache: Optional[QueryCache] = None,
        http: Optional[requests.Session] = None,
        timeout: float = 30,
    ):
        self.base_url = base_url.rstrip("/")
        self.provider = provider or SessionProvider()
        self.cache = cache or QueryCache()
        self.http = http or requests.Session()
        self.timeout = timeout

    # Transport

    def _url(self, path: str) -> str:
        return f"{self.base_url}/api/v1{path}"

    def _headers(self) -> Dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self.provider.access_token:
            headers["Authorization"] = f"Bearer {self.provider.access_token}"
        return headers

    def _request(self, method: str, path: str, default_error: str, **kwargs) -> Any:
        try:
            response = self.http.request(
                method, self._url(path), headers=self._headers(), timeout=self.timeout, **kwargs
            )
        except requests.RequestException as e:
            logger.error(f"{method} {path} failed: {e}")
            raise ApiError(str(e)) from e

        if not response.ok:
            message = _error_message(response, default_error)
            logger.error(f"{method} {path} returned {response.status_code}: {message}")
            raise ApiError(message, response.status_code)
        if response.status_code == 204 or not response.content:
            return None
        return response.json()

    def _read(self, key: QueryKey, path: str, params: Optional[dict] = None) -> Dict[str, Any]:
        try:
            data = self.cache.fetch(
                key, lambda: self._request("GET", path, "Request failed", params=params)
            )
        except ApiError as e:
            return {"data": None, "error": e.message}
        return {"data": data, "error": None}

    def _mutate(
        self, method: str, path: str, invalidates: Iterable[QueryKey], default_error: str, **kwargs
    ) -> Any:
        result = self._request(method, path, default_error, **kwargs)
        self.cache.invalidate(*invalidates)
        return result

    def _user_id(self) -> Optional[str]:
        user = self.provider.user
        return user.get("id") if user else None

    # Auth

    def sign_up(self, email: str, password: str, name: str = None, user_name: str = None) -> dict:
        body = self._request(
            "POST",
            "/auth/signup",
            "Sign up failed",
            json={"email": email, "password": password, "name": name, "user_name": user_name},
        )
        self.provider.apply(SessionEvent.SIGNED_IN, session_from_token_response(body))
        return body

    def sign_in(self, email: str, password: str) -> dict:
        body = self._request(
            "POST", "/auth/login", "Sign in failed", json={"email": email, "password": password}
        )
        self.provider.apply(SessionEvent.SIGNED_IN, session_from_token_response(body))
        return body

    def sign_out(self) -> None:
        self.provider.apply(SessionEvent.SIGNED_OUT, None)
        self.cache.clear()

    def load_session(self) -> Optional[dict]:
        """Session loader for ``SessionProvider.init`` when a token is already known."""
        if not self.provider.access_token:
            return None
        user = self._request("GET", "/auth/session", "Session lookup failed")
        return {"access_token": self.provider.access_token, "user": user}

    # Users

    def get_profile(self) -> Dict[str, Any]:
        return self._read(("profile", self._user_id()), "/users/me")

    def update_profile(self, **updates) -> dict:
        user_id = self._user_id()
        profile = self._mutate(
            "PATCH", "/users/me", [("profile", user_id)], "Profile update failed", json=updates
        )
        self.provider.apply(
            SessionEvent.USER_UPDATED,
            {"access_token": self.provider.access_token, "user": profile},
        )
        return profile

    def get_dashboard_stats(self) -> Dict[str, Any]:
        return self._read(("dashboard_stats", self._user_id()), "/users/me/stats")

    def search_users(self, query: str) -> Dict[str, Any]:
        return self._read(("user_search", query), "/users/search", params={"q": query})

    # Trips

    def get_trips(self) -> Dict[str, Any]:
        return self._read(("trips", self._user_id()), "/trips")

    def get_upcoming_trips(self) -> Dict[str, Any]:
        return self._read(("upcoming_trips", self._user_id()), "/trips/upcoming")

    def get_trip(self, trip_id: str) -> Dict[str, Any]:
        return self._read(("trip", trip_id), f"/trips/{trip_id}")

    def _trip_list_keys(self) -> List[QueryKey]:
        user_id = self._user_id()
        return [("trips", user_id), ("upcoming_trips", user_id), ("dashboard_stats", user_id)]

    def create_trip(self, trip: dict) -> dict:
        result = self._mutate("POST", "/trips", self._trip_list_keys(), "Failed to create trip", json=trip)
        for warning in result.get("warnings", []):
            logger.warning(warning)
        return result

    def update_trip(self, trip_id: str, updates: dict) -> dict:
        return self._mutate(
            "PATCH",
            f"/trips/{trip_id}",
            [("trip", trip_id), *self._trip_list_keys()],
            "Failed to update trip",
            json=updates,
        )

    def delete_trip(self, trip_id: str) -> None:
        self._mutate(
            "DELETE",
            f"/trips/{trip_id}",
            [("trip", trip_id), *self._trip_list_keys()],
            "Failed to delete trip",
        )

    # Itinerary, POIs and budget

    def get_itinerary(self, trip_id: str) -> Dict[str, Any]:
        return self._read(("itinerary", trip_id), f"/trips/{trip_id}/itinerary")

    def create_itinerary_item(self, trip_id: str, item: dict) -> dict:
        return self._mutate(
            "POST",
            f"/trips/{trip_id}/itinerary",
            [("itinerary", trip_id), ("budget", trip_id)],
            "Failed to create itinerary item",
            json=item,
        )

    def update_itinerary_item(self, trip_id: str, item_id: str, updates: dict) -> dict:
        return self._mutate(
            "PATCH",
            f"/trips/{trip_id}/itinerary/{item_id}",
            [("itinerary", trip_id), ("budget", trip_id)],
            "Failed to update itinerary item",
            json=updates,
        )

    def delete_itinerary_item(self, trip_id: str, item_id: str) -> None:
        self._mutate(
            "DELETE",
            f"/trips/{trip_id}/itinerary/{item_id}",
            [("itinerary", trip_id), ("budget", trip_id)],
            "Failed to delete itinerary item",
        )

    def get_pois(self, trip_id: str) -> Dict[str, Any]:
        return self._read(("pois", trip_id), f"/trips/{trip_id}/pois")

    def create_poi(self, trip_id: str, poi: dict) -> dict:
        return self._mutate(
            "POST", f"/trips/{trip_id}/pois", [("pois", trip_id)], "Failed to add place", json=poi
        )

    def delete_poi(self, trip_id: str, poi_id: str) -> None:
        self._mutate(
            "DELETE",
            f"/trips/{trip_id}/pois/{poi_id}",
            [("pois", trip_id), ("itinerary", trip_id)],
            "Failed to delete place",
        )

    def get_city_stops(self, trip_id: str) -> Dict[str, Any]:
        return self._read(("city_stops", trip_id), f"/trips/{trip_id}/city-stops")

    def get_budget(self, trip_id: str) -> Dict[str, Any]:
        return self._read(("budget", trip_id), f"/trips/{trip_id}/budget")

    def add_budget_expense(self, trip_id: str, title: str, day: str, cost: float, kind: str = "STAY", notes: str = None) -> dict:
        if not title or not day:
            raise ApiError("Please fill in all required fields")
        if cost is None or cost <= 0:
            raise ApiError("Cost must be greater than zero")
        return self._mutate(
            "POST",
            f"/trips/{trip_id}/budget/expenses",
            [("itinerary", trip_id), ("budget", trip_id)],
            "Failed to add expense",
            json={"title": title, "day": day, "kind": kind, "cost": cost, "notes": notes},
        )

    def update_budget_expense(self, trip_id: str, item_id: str, cost: float, notes: str = None) -> dict:
        if cost is None or cost <= 0:
            raise ApiError("Cost must be greater than zero")
        return self._mutate(
            "PATCH",
            f"/trips/{trip_id}/budget/expenses/{item_id}",
            [("itinerary", trip_id), ("budget", trip_id)],
            "Failed to update expense",
            json={"cost": cost, "notes": notes},
        )

    def remove_budget_expense(self, trip_id: str, item_id: str) -> dict:
        return self._mutate(
            "DELETE",
            f"/trips/{trip_id}/budget/expenses/{item_id}",
            [("itinerary", trip_id), ("budget", trip_id)],
            "Failed to remove expense",
        )

    # Expense ledger

    def get_expenses(self, trip_id: str) -> Dict[str, Any]:
        return self._read(("expenses", trip_id), f"/trips/{trip_id}/expenses")

    def create_expense(self, trip_id: str, expense: dict) -> dict:
        return self._mutate(
            "POST",
            f"/trips/{trip_id}/expenses",
            [("expenses", trip_id), ("dashboard_stats", self._user_id())],
            "Failed to add expense",
            json=expense,
        )

    def delete_expense(self, trip_id: str, expense_id: str) -> None:
        self._mutate(
            "DELETE",
            f"/trips/{trip_id}/expenses/{expense_id}",
            [("expenses", trip_id), ("dashboard_stats", self._user_id())],
            "Failed to delete expense",
        )

    # Members

    def get_members(self, trip_id: str) -> Dict[str, Any]:
        return self._read(("members", trip_id), f"/trips/{trip_id}/members")

    def invite_member(self, trip_id: str, user_id: str, role: str = "VIEWER") -> dict:
        return self._mutate(
            "POST",
            f"/trips/{trip_id}/members",
            [("members", trip_id), ("trips", self._user_id())],
            "Failed to invite member",
            json={"user_id": user_id, "role": role},
        )

    def update_member_role(self, trip_id: str, member_id: str, role: str) -> dict:
        return self._mutate(
            "PATCH",
            f"/trips/{trip_id}/members/{member_id}",
            [("members", trip_id)],
            "Failed to update role",
            json={"role": role},
        )

    def remove_member(self, trip_id: str, member_id: str) -> None:
        self._mutate(
            "DELETE",
            f"/trips/{trip_id}/members/{member_id}",
            [("members", trip_id), ("trips", self._user_id())],
            "Failed to remove member",
        )

    # Friends

    def get_friends(self) -> Dict[str, Any]:
        return self._read(("friends", self._user_id()), "/friends")

    def get_pending_requests(self) -> Dict[str, Any]:
        return self._read(("pending_requests", self._user_id()), "/friends/requests")

    def send_friend_request(self, friend_id: str) -> dict:
        return self._mutate(
            "POST",
            "/friends/requests",
            [("pending_requests", friend_id)],
            "Failed to send friend request",
            json={"friend_id": friend_id},
        )

    def accept_friend_request(self, request_id: str) -> dict:
        user_id = self._user_id()
        return self._mutate(
            "POST",
            f"/friends/requests/{request_id}/accept",
            [("friends", user_id), ("pending_requests", user_id)],
            "Failed to accept friend request",
        )

    # Notifications

    def get_notifications(self) -> Dict[str, Any]:
        return self._read(("notifications", self._user_id()), "/notifications")

    def mark_notification_as_read(self, notification_id: str) -> dict:
        updated = self._request(
            "POST", f"/notifications/{notification_id}/read", "Failed to mark notification as read"
        )

        def replace(notifications):
            if not notifications:
                return notifications
            return [updated if n.get("id") == notification_id else n for n in notifications]

        self.cache.set_data(("notifications", self._user_id()), replace)
        return updated

    def handle_stream_lines(self, user_id: str, lines: Iterable[str]) -> int:
        """Invalidate the user's notifications once per pushed event; returns the event count."""
        events = 0
        for line in lines:
            if not line or not line.startswith("data:"):
                continue
            try:
                event = json.loads(line[len("data:"):].strip())
            except ValueError:
                logger.warning(f"Ignoring malformed notification event: {line[:100]}")
                continue
            logger.info(f"New notification received: {event}")
            self.cache.invalidate(("notifications", user_id))
            events += 1
        return events

    def listen_notifications(self, on_event: Optional[Callable[[], None]] = None) -> None:
        """Block on the notification stream, invalidating the cache per event."""
        user_id = self._user_id()
        if not user_id:
            return
        with self.http.get(
            self._url("/notifications/stream"), headers=self._headers(), stream=True, timeout=None
        ) as response:
            if not response.ok:
                raise ApiError(_error_message(response, "Notification stream failed"), response.status_code)
            for line in response.iter_lines(decode_unicode=True):
                if self.handle_stream_lines(user_id, [line]) and on_event is not None:
                    on_event()

    # AI plan generation

    def generate_trip_plan(self, trip_id: str, trip_data: dict) -> Dict[str, Any]:
        logger.info(f"Calling AI plan generation for trip {trip_id}")
        try:
            result = self._mutate(
                "POST",
                "/generate-trip-plan",
                [
                    ("itinerary", trip_id),
                    ("pois", trip_id),
                    ("city_stops", trip_id),
                    ("budget", trip_id),
                ],
                "Failed to generate travel plan",
                json={"trip_id": trip_id, **trip_data},
            )
        except ApiError as e:
            return {"data": None, "error": e.message, "status_code": e.status_code}
        return {"data": result, "error": None, "status_code": None}
