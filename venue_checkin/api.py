"""HTTP client for the Foursquare venue search and check-in endpoints."""

from __future__ import annotations

import logging

import httpx

from .models import CheckinResult, SearchRequest, SearchResult

logger = logging.getLogger(__name__)

SEARCH_URL = "https://api.foursquare.com/v2/venues/search"
CHECKIN_URL = "https://api.foursquare.com/v2/checkins/add"
DEFAULT_API_VERSION = "20131016"
DEFAULT_SEARCH_LIMIT = 50
DEFAULT_TIMEOUT = 5.0
DEFAULT_USER_AGENT = "VenueCheckin/0.1"


class VenueApiError(RuntimeError):
    """Base class for fatal errors talking to the venue API."""


class SearchError(VenueApiError):
    """Raised when a venue search cannot be built or sent."""


class CheckinError(VenueApiError):
    """Raised when a check-in request cannot be built."""


class VenueClient:
    """Thin async wrapper around a single reused ``httpx.AsyncClient``."""

    def __init__(
        self,
        *,
        oauth_token: str,
        search_url: str = SEARCH_URL,
        checkin_url: str = CHECKIN_URL,
        api_version: str = DEFAULT_API_VERSION,
        search_limit: int = DEFAULT_SEARCH_LIMIT,
        timeout: float = DEFAULT_TIMEOUT,
        user_agent: str = DEFAULT_USER_AGENT,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._oauth_token = oauth_token
        self._search_url = search_url
        self._checkin_url = checkin_url
        self._api_version = api_version
        self._search_limit = search_limit

        self._client = httpx.AsyncClient(
            headers={
                "User-Agent": user_agent,
                "Accept": "application/json",
            },
            timeout=httpx.Timeout(timeout),
            http2=True,
            transport=transport,
        )

    async def __aenter__(self) -> "VenueClient":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    def build_search_request(self, location: str) -> httpx.Request:
        """Build the GET request searching for venues near *location*."""

        params = {
            "v": self._api_version,
            "limit": str(self._search_limit),
            "near": location,
            "oauth_token": self._oauth_token,
        }
        try:
            return self._client.build_request("GET", self._search_url, params=params)
        except (httpx.InvalidURL, ValueError) as exc:
            raise SearchError(f"Cannot build search request for {location!r}: {exc}") from exc

    async def search(self, request: SearchRequest) -> SearchResult:
        """Send a queued search.

        Transport failures and non-2xx responses raise :class:`SearchError`.
        A body that is not the expected JSON decodes to an empty result.
        """

        try:
            response = await self._client.send(request.http_request)
        except httpx.RequestError as exc:
            raise SearchError(
                f"Search for {request.location!r} (line {request.line_number}) failed: {exc}"
            ) from exc

        if not response.is_success:
            raise SearchError(
                f"Search for {request.location!r} (line {request.line_number}) "
                f"returned HTTP {response.status_code}"
            )

        try:
            payload = response.json()
        except ValueError:
            payload = None
        return SearchResult.from_payload(payload)

    async def checkin(self, venue_id: str) -> CheckinResult:
        """Check in at *venue_id*.

        Transport failures and error statuses are reported in the result;
        only a request that cannot be built raises :class:`CheckinError`.
        """

        params = {
            "v": self._api_version,
            "venueId": venue_id,
            "oauth_token": self._oauth_token,
        }
        try:
            request = self._client.build_request(
                "POST",
                self._checkin_url,
                params=params,
                headers={"Content-Type": "application/json"},
            )
        except (httpx.InvalidURL, ValueError) as exc:
            raise CheckinError(f"Cannot build check-in request for {venue_id!r}: {exc}") from exc

        try:
            response = await self._client.send(request)
        except httpx.RequestError as exc:
            logger.debug("Check-in transport error for %s: %s", venue_id, exc)
            return CheckinResult(
                venue_id=venue_id,
                status_code=None,
                body=None,
                error=str(exc) or exc.__class__.__name__,
            )

        return CheckinResult(
            venue_id=venue_id,
            status_code=response.status_code,
            body=response.text,
            error=None,
        )
