"""Data models used across the venue check-in runner."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Optional

import httpx


@dataclass(slots=True)
class SearchRequest:
    """A venue search queued for the worker, one per input line."""

    location: str
    line_number: int
    http_request: httpx.Request


@dataclass(slots=True)
class VenueLocation:
    lat: Optional[float] = None
    lng: Optional[float] = None
    cc: str = ""
    country: str = ""
    formatted_address: tuple[str, ...] = ()


@dataclass(slots=True)
class VenueCategory:
    id: str
    name: str
    short_name: str = ""
    primary: bool = False


@dataclass(slots=True)
class VenueStats:
    checkins_count: int = 0
    users_count: int = 0
    tip_count: int = 0


@dataclass(slots=True)
class Venue:
    """Represents a venue returned by the search endpoint."""

    id: str
    name: str
    location: VenueLocation = field(default_factory=VenueLocation)
    categories: tuple[VenueCategory, ...] = ()
    verified: bool = False
    stats: VenueStats = field(default_factory=VenueStats)
    url: str = ""
    referral_id: str = ""

    @classmethod
    def from_payload(cls, payload: Any) -> Optional["Venue"]:
        """Build a venue from one entry of ``response.venues``.

        Returns ``None`` for entries that cannot be checked in (no id).
        """
        if not isinstance(payload, dict):
            return None
        venue_id = _as_str(payload.get("id"))
        if not venue_id:
            return None

        location = _as_dict(payload.get("location"))
        stats = _as_dict(payload.get("stats"))
        categories = tuple(
            VenueCategory(
                id=_as_str(item.get("id")),
                name=_as_str(item.get("name")),
                short_name=_as_str(item.get("shortName")),
                primary=bool(item.get("primary", False)),
            )
            for item in _as_list(payload.get("categories"))
            if isinstance(item, dict)
        )

        return cls(
            id=venue_id,
            name=_as_str(payload.get("name")),
            location=VenueLocation(
                lat=_as_float(location.get("lat")),
                lng=_as_float(location.get("lng")),
                cc=_as_str(location.get("cc")),
                country=_as_str(location.get("country")),
                formatted_address=tuple(
                    line for line in _as_list(location.get("formattedAddress"))
                    if isinstance(line, str)
                ),
            ),
            categories=categories,
            verified=bool(payload.get("verified", False)),
            stats=VenueStats(
                checkins_count=_as_int(stats.get("checkinsCount")) or 0,
                users_count=_as_int(stats.get("usersCount")) or 0,
                tip_count=_as_int(stats.get("tipCount")) or 0,
            ),
            url=_as_str(payload.get("url")),
            referral_id=_as_str(payload.get("referralId")),
        )


@dataclass(slots=True)
class SearchResult:
    """Decoded body of a venue search call."""

    code: Optional[int] = None
    request_id: Optional[str] = None
    venues: list[Venue] = field(default_factory=list)
    confident: bool = False
    geocode_name: str = ""

    @classmethod
    def from_payload(cls, payload: Any) -> "SearchResult":
        """Lenient decoder: anything that does not fit the shape is left empty."""
        if not isinstance(payload, dict):
            return cls()

        meta = _as_dict(payload.get("meta"))
        response = _as_dict(payload.get("response"))
        feature = _as_dict(_as_dict(response.get("geocode")).get("feature"))

        venues = []
        for item in _as_list(response.get("venues")):
            venue = Venue.from_payload(item)
            if venue is not None:
                venues.append(venue)

        return cls(
            code=_as_int(meta.get("code")),
            request_id=_as_str(meta.get("requestId")) or None,
            venues=venues,
            confident=bool(response.get("confident", False)),
            geocode_name=_as_str(feature.get("displayName")),
        )


@dataclass(slots=True)
class CheckinResult:
    """Outcome of a single check-in call."""

    venue_id: str
    status_code: int | None
    body: str | None
    error: str | None

    @property
    def ok(self) -> bool:
        return self.error is None and self.status_code == 200


@dataclass(slots=True)
class RunSummary:
    """Counters reported by the worker once it stops."""

    requests: int = 0
    searches: int = 0
    venues_seen: int = 0
    checkins: int = 0
    failed_checkins: int = 0
    limit_reached: bool = False


def _as_dict(value: Any) -> dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _as_list(value: Any) -> list[Any]:
    return value if isinstance(value, list) else []


def _as_str(value: Any) -> str:
    return value if isinstance(value, str) else ""


def _as_int(value: Any) -> int | None:
    if isinstance(value, bool) or not isinstance(value, int):
        return None
    return value


def _as_float(value: Any) -> float | None:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    return float(value)
