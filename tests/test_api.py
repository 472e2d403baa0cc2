import asyncio

import httpx
import pytest

from venue_checkin.api import CheckinError, SearchError, VenueClient
from venue_checkin.models import SearchRequest

from conftest import search_payload


def _search(client: VenueClient, location: str):
    request = SearchRequest(
        location=location,
        line_number=1,
        http_request=client.build_search_request(location),
    )
    return client.search(request)


def test_search_request_carries_query_parameters(make_client):
    client = make_client()
    request = client.build_search_request("Brooklyn, NY")

    assert request.method == "GET"
    assert request.url.host == "api.foursquare.com"
    assert request.url.path == "/v2/venues/search"
    assert list(request.url.params.multi_items()) == [
        ("v", "20131016"),
        ("limit", "50"),
        ("near", "Brooklyn, NY"),
        ("oauth_token", "test-token"),
    ]


def test_search_request_honours_overrides(make_client):
    client = make_client(
        search_url="http://localhost:9000/search",
        api_version="20240101",
        search_limit=10,
    )
    request = client.build_search_request("Queens")

    assert request.url.host == "localhost"
    assert request.url.params["v"] == "20240101"
    assert request.url.params["limit"] == "10"


def test_invalid_search_url_raises_search_error(make_client):
    client = make_client(search_url="http://localhost:notaport/search")

    with pytest.raises(SearchError):
        client.build_search_request("Brooklyn, NY")


def test_search_decodes_venues(make_client):
    def handler(request):
        return httpx.Response(200, json=search_payload("v1", "v2"))

    async def scenario():
        async with make_client(handler) as client:
            return await _search(client, "Brooklyn, NY")

    result = asyncio.run(scenario())

    assert [venue.id for venue in result.venues] == ["v1", "v2"]
    assert result.code == 200
    assert result.request_id == "req-1"


def test_search_with_malformed_json_returns_empty_result(make_client):
    def handler(request):
        return httpx.Response(200, content=b"{not json")

    async def scenario():
        async with make_client(handler) as client:
            return await _search(client, "Brooklyn, NY")

    result = asyncio.run(scenario())

    assert result.venues == []
    assert result.code is None


def test_search_transport_error_raises(make_client):
    def handler(request):
        raise httpx.ReadTimeout("read timed out", request=request)

    async def scenario():
        async with make_client(handler) as client:
            await _search(client, "Brooklyn, NY")

    with pytest.raises(SearchError, match="Brooklyn, NY"):
        asyncio.run(scenario())


def test_checkin_posts_empty_json_request(make_client):
    seen = []

    def handler(request):
        seen.append(request)
        return httpx.Response(200, json={"meta": {"code": 200}})

    async def scenario():
        async with make_client(handler) as client:
            return await client.checkin("v1")

    result = asyncio.run(scenario())

    request = seen[0]
    assert request.method == "POST"
    assert request.url.path == "/v2/checkins/add"
    assert list(request.url.params.multi_items()) == [
        ("v", "20131016"),
        ("venueId", "v1"),
        ("oauth_token", "test-token"),
    ]
    assert request.headers["Content-Type"] == "application/json"
    assert request.content == b""
    assert result.ok
    assert result.status_code == 200


@pytest.mark.parametrize("status", [201, 400, 403, 500])
def test_checkin_only_200_is_success(make_client, status):
    def handler(request):
        return httpx.Response(status, text="nope")

    async def scenario():
        async with make_client(handler) as client:
            return await client.checkin("v1")

    result = asyncio.run(scenario())

    assert not result.ok
    assert result.status_code == status
    assert result.body == "nope"
    assert result.error is None


def test_checkin_transport_error_is_returned(make_client):
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    async def scenario():
        async with make_client(handler) as client:
            return await client.checkin("v1")

    result = asyncio.run(scenario())

    assert not result.ok
    assert result.status_code is None
    assert result.error == "connection refused"


def test_invalid_checkin_url_raises_checkin_error(make_client):
    async def scenario():
        async with make_client(checkin_url="http://fake.test:notaport/checkins/add") as client:
            await client.checkin("v1")

    with pytest.raises(CheckinError, match="v1"):
        asyncio.run(scenario())
