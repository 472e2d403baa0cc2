import asyncio

import httpx
import pytest

from venue_checkin.api import VenueClient


class ManualClock:
    """Monotonic clock that only advances when something sleeps on it."""

    def __init__(self, start: float = 0.0) -> None:
        self.now = start
        self.sleeps: list[float] = []

    def __call__(self) -> float:
        return self.now

    async def sleep(self, delay: float) -> None:
        self.sleeps.append(delay)
        self.now += delay
        await asyncio.sleep(0)


def venue_payload(venue_id, name=None):
    return {
        "id": venue_id,
        "name": name or f"Venue {venue_id}",
        "location": {"lat": 40.68, "lng": -73.94, "cc": "US", "country": "United States"},
        "categories": [],
        "stats": {"checkinsCount": 1, "usersCount": 1, "tipCount": 0},
    }


def search_payload(*venue_ids):
    return {
        "meta": {"code": 200, "requestId": "req-1"},
        "response": {
            "venues": [venue_payload(venue_id) for venue_id in venue_ids],
            "confident": False,
        },
    }


class FakeFoursquare:
    """MockTransport handler serving canned search and check-in responses."""

    def __init__(self, clock: ManualClock) -> None:
        self.clock = clock
        self.searches: dict[str, httpx.Response | Exception] = {}
        self.checkins: dict[str, int | Exception] = {}
        self.calls: list[tuple[str, str, float]] = []
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if request.url.path.endswith("/venues/search"):
            near = request.url.params["near"]
            self.calls.append(("search", near, self.clock.now))
            outcome = self.searches.get(near, httpx.Response(200, json=search_payload()))
        elif request.url.path.endswith("/checkins/add"):
            venue_id = request.url.params["venueId"]
            self.calls.append(("checkin", venue_id, self.clock.now))
            status = self.checkins.get(venue_id, 200)
            outcome = (
                status
                if isinstance(status, Exception)
                else httpx.Response(status, json={"meta": {"code": status}})
            )
        else:
            return httpx.Response(404)

        if isinstance(outcome, Exception):
            raise outcome
        return outcome


@pytest.fixture
def clock():
    return ManualClock()


@pytest.fixture
def fake_api(clock):
    return FakeFoursquare(clock)


@pytest.fixture
def make_client(fake_api):
    def factory(handler=None, **kwargs):
        return VenueClient(
            oauth_token="test-token",
            transport=httpx.MockTransport(handler or fake_api),
            **kwargs,
        )

    return factory
