import json

import pytest
import requests

from client.api import ApiError, TripPlannerClient
from client.cache import QueryCache
from client.hints import describe_generation_error
from client.session import SessionEvent, SessionPhase, SessionProvider


class FakeResponse:
    def __init__(self, status_code=200, body=None, reason="OK", lines=()):
        self.status_code = status_code
        self.body = body
        self.reason = reason
        self.lines = lines

    @property
    def ok(self):
        return self.status_code < 400

    @property
    def content(self):
        return b"" if self.body is None else json.dumps(self.body).encode()

    def json(self):
        if self.body is None:
            raise ValueError("No JSON body")
        return self.body

    def iter_lines(self, decode_unicode=False):
        return iter(self.lines)

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        return False


class FakeHttp:
    """Stands in for ``requests.Session``; responses are keyed by (method, path)."""

    def __init__(self, responses):
        self.responses = responses
        self.calls = []

    def request(self, method, url, headers=None, timeout=None, **kwargs):
        path = url.split("/api/v1", 1)[1]
        self.calls.append((method, path, headers, kwargs))
        response = self.responses[(method, path)]
        if isinstance(response, Exception):
            raise response
        return response

    def get(self, url, headers=None, stream=False, timeout=None):
        return self.request("GET", url, headers=headers, timeout=timeout)


def signed_in_client(responses):
    http = FakeHttp(responses)
    provider = SessionProvider()
    provider.apply(SessionEvent.SIGNED_IN, {"access_token": "tok", "user": {"id": "u1"}})
    return TripPlannerClient("http://api.test", provider=provider, http=http), http


def test_query_cache_prefix_invalidation():
    cache = QueryCache()
    cache.set_data(("trips", "u1"), [1])
    cache.set_data(("trips", "u2"), [2])
    cache.set_data(("trip", "t1"), {})

    assert cache.invalidate(("trips",)) == 2
    assert ("trips", "u1") not in cache
    assert ("trip", "t1") in cache

    cache.set_data(("trip", "t1"), lambda old: {**old, "title": "Goa"})
    assert cache.get(("trip", "t1")) == {"title": "Goa"}


def test_session_provider_lifecycle():
    provider = SessionProvider(load_session=lambda: {"access_token": "abc", "user": {"id": "u1"}})
    seen = []
    unsubscribe = provider.subscribe(seen.append)

    assert provider.phase == SessionPhase.LOADING
    provider.init()
    assert provider.phase == SessionPhase.READY
    assert provider.user == {"id": "u1"}
    assert provider.access_token == "abc"

    provider.apply(SessionEvent.SIGNED_OUT, {"access_token": "ignored"})
    assert provider.session is None
    assert seen == [{"access_token": "abc", "user": {"id": "u1"}}, None]

    unsubscribe()
    provider.apply(SessionEvent.SIGNED_IN, {"access_token": "new"})
    assert len(seen) == 2


def test_session_provider_ready_after_failed_load():
    def broken():
        raise RuntimeError("storage unavailable")

    provider = SessionProvider(load_session=broken)
    provider.init()

    assert provider.phase == SessionPhase.READY
    assert provider.session is None
    assert not provider.is_loading


def test_sign_in_sets_session_and_token():
    http = FakeHttp(
        {
            ("POST", "/auth/login"): FakeResponse(
                body={"access_token": "tok", "token_type": "bearer", "user": {"id": "u1"}}
            ),
            ("GET", "/trips"): FakeResponse(body=[]),
        }
    )
    client = TripPlannerClient("http://api.test/", http=http)

    client.sign_in("asha@example.com", "secret123")
    client.get_trips()

    assert client.provider.user == {"id": "u1"}
    assert http.calls[-1][2]["Authorization"] == "Bearer tok"


def test_reads_are_cached_and_report_errors():
    client, http = signed_in_client(
        {
            ("GET", "/trips"): FakeResponse(body=[{"id": "t1"}]),
            ("GET", "/trips/t9"): FakeResponse(404, {"detail": "Trip not found"}),
            ("GET", "/friends"): requests.ConnectionError("offline"),
        }
    )

    assert client.get_trips() == {"data": [{"id": "t1"}], "error": None}
    assert client.get_trips()["data"] == [{"id": "t1"}]
    assert len(http.calls) == 1

    assert client.get_trip("t9") == {"data": None, "error": "Trip not found"}
    assert client.get_friends() == {"data": None, "error": "offline"}


def test_mutations_invalidate_and_raise():
    client, http = signed_in_client(
        {
            ("GET", "/trips/t1/budget"): FakeResponse(body={"total_spent": 0}),
            ("GET", "/trips/t1/itinerary"): FakeResponse(body=[]),
            ("POST", "/trips/t1/budget/expenses"): FakeResponse(201, {"id": "i1", "cost": 400}),
            ("POST", "/trips/t1/members"): FakeResponse(409, {"detail": "Already a member"}),
        }
    )
    client.get_budget("t1")
    client.get_itinerary("t1")

    client.add_budget_expense("t1", "Hotel", "2030-03-01", 400)

    assert ("budget", "t1") not in client.cache
    assert ("itinerary", "t1") not in client.cache

    with pytest.raises(ApiError) as excinfo:
        client.invite_member("t1", "u2")
    assert excinfo.value.status_code == 409
    assert excinfo.value.message == "Already a member"


def test_expense_validation_happens_before_request():
    client, http = signed_in_client({})

    with pytest.raises(ApiError, match="greater than zero"):
        client.add_budget_expense("t1", "Hotel", "2030-03-01", 0)
    with pytest.raises(ApiError, match="required fields"):
        client.add_budget_expense("t1", "", "2030-03-01", 10)
    assert http.calls == []


def test_mark_read_updates_cached_list():
    client, http = signed_in_client(
        {
            ("GET", "/notifications"): FakeResponse(
                body=[{"id": "n1", "is_read": False}, {"id": "n2", "is_read": False}]
            ),
            ("POST", "/notifications/n1/read"): FakeResponse(body={"id": "n1", "is_read": True}),
        }
    )
    client.get_notifications()

    client.mark_notification_as_read("n1")

    cached = client.cache.get(("notifications", "u1"))
    assert cached == [{"id": "n1", "is_read": True}, {"id": "n2", "is_read": False}]
    assert [c[0] for c in http.calls] == ["GET", "POST"]


def test_stream_events_invalidate_notifications():
    client, _ = signed_in_client({})
    client.cache.set_data(("notifications", "u1"), [])

    count = client.handle_stream_lines(
        "u1", [": keep-alive", "", 'data: {"event": "INSERT", "table": "notifications"}', "data: {"]
    )

    assert count == 1
    assert ("notifications", "u1") not in client.cache


def test_listen_notifications():
    lines = ['data: {"event": "INSERT"}', ": keep-alive", 'data: {"event": "INSERT"}']
    client, _ = signed_in_client(
        {("GET", "/notifications/stream"): FakeResponse(lines=lines)}
    )
    events = []

    client.listen_notifications(on_event=lambda: events.append(1))

    assert events == [1, 1]


def test_generate_trip_plan_errors():
    client, _ = signed_in_client(
        {("POST", "/generate-trip-plan"): FakeResponse(500, {"detail": "Gemini API key not configured."})}
    )

    result = client.generate_trip_plan("t1", {"title": "Goa"})

    assert result["data"] is None
    assert result["status_code"] == 500
    assert describe_generation_error(result["error"], result["status_code"]).startswith(
        "The AI service is not configured"
    )


def test_non_json_error_uses_status_line():
    client, _ = signed_in_client(
        {("POST", "/generate-trip-plan"): FakeResponse(502, None, reason="Bad Gateway")}
    )

    result = client.generate_trip_plan("t1", {})

    assert result["error"] == "HTTP 502: Bad Gateway"


@pytest.mark.parametrize(
    "message, status, expected",
    [
        ("Not Found", 404, "not deployed"),
        ("HTTP 404: Not Found", None, "not deployed"),
        ("Invalid or expired token", None, "session has expired"),
        ("Unauthorized", 401, "session has expired"),
        ("Gemini API key not configured.", None, "not configured"),
        ("Failed to parse AI response", None, "Failed to generate trip plan: Failed to parse"),
    ],
)
def test_describe_generation_error(message, status, expected):
    assert expected in describe_generation_error(message, status)
