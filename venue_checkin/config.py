"""Runtime settings assembled from CLI flags and environment variables.

Precedence: CLI flag > environment variable > default.
"""

from __future__ import annotations

import argparse
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping

import httpx

from .api import (
    CHECKIN_URL,
    DEFAULT_API_VERSION,
    DEFAULT_SEARCH_LIMIT,
    DEFAULT_TIMEOUT,
    DEFAULT_USER_AGENT,
    SEARCH_URL,
)
from .throttle import SECONDS_PER_HOUR

DEFAULT_INPUT = "./geos/xaa.txt"
# Verified accounts may call the API 500 times an hour.
DEFAULT_RATE = 475.0
# The API also caps check-ins per day.
DEFAULT_CHECKIN_LIMIT = 90
MAX_SEARCH_LIMIT = 50


class ConfigError(ValueError):
    """Raised when the supplied settings are unusable."""


@dataclass(slots=True)
class Settings:
    oauth_token: str
    input_path: Path = Path(DEFAULT_INPUT)
    rate: float = DEFAULT_RATE
    checkin_limit: int = DEFAULT_CHECKIN_LIMIT
    api_version: str = DEFAULT_API_VERSION
    search_limit: int = DEFAULT_SEARCH_LIMIT
    search_url: str = SEARCH_URL
    checkin_url: str = CHECKIN_URL
    timeout: float = DEFAULT_TIMEOUT
    queue_size: int = 0
    user_agent: str = DEFAULT_USER_AGENT

    @property
    def tick_interval(self) -> float:
        return SECONDS_PER_HOUR / self.rate

    def validate(self) -> "Settings":
        if not self.oauth_token:
            raise ConfigError(
                "An OAuth token is required (--oauth-token or FOURSQUARE_OAUTH_TOKEN)"
            )
        if self.rate <= 0:
            raise ConfigError("rate must be > 0 calls per hour")
        if self.checkin_limit < 1:
            raise ConfigError("checkin limit must be >= 1")
        if not 1 <= self.search_limit <= MAX_SEARCH_LIMIT:
            raise ConfigError(f"search limit must be between 1 and {MAX_SEARCH_LIMIT}")
        if self.timeout <= 0:
            raise ConfigError("timeout must be > 0 seconds")
        if self.queue_size < 0:
            raise ConfigError("queue size must be >= 0 (0 means unbounded)")
        for label, value in (("search", self.search_url), ("check-in", self.checkin_url)):
            _check_endpoint(label, value)
        return self


def _check_endpoint(label: str, value: str) -> None:
    try:
        url = httpx.URL(value)
    except (httpx.InvalidURL, ValueError) as exc:
        raise ConfigError(f"Invalid {label} URL {value!r}: {exc}") from exc
    if url.scheme not in {"http", "https"} or not url.host:
        raise ConfigError(f"Invalid {label} URL {value!r}: expected an http(s) URL")


def settings_from_args(
    args: argparse.Namespace,
    environ: Mapping[str, str] | None = None,
) -> Settings:
    """Merge parsed CLI arguments with environment overrides and validate."""

    env = os.environ if environ is None else environ

    def pick(value, env_key: str, default, cast=str):
        if value is not None:
            return value
        raw = env.get(env_key)
        if raw is None or not raw.strip():
            return default
        try:
            return cast(raw.strip())
        except ValueError as exc:
            raise ConfigError(f"Invalid value for {env_key}: {raw!r}") from exc

    settings = Settings(
        oauth_token=pick(args.oauth_token, "FOURSQUARE_OAUTH_TOKEN", ""),
        input_path=Path(pick(args.input, "CHECKIN_INPUT", DEFAULT_INPUT)),
        rate=pick(args.rate, "CHECKIN_RATE", DEFAULT_RATE, float),
        checkin_limit=pick(args.checkin_limit, "CHECKIN_LIMIT", DEFAULT_CHECKIN_LIMIT, int),
        api_version=pick(args.api_version, "FOURSQUARE_API_VERSION", DEFAULT_API_VERSION),
        search_limit=args.search_limit,
        search_url=pick(args.search_url, "FOURSQUARE_SEARCH_URL", SEARCH_URL),
        checkin_url=pick(args.checkin_url, "FOURSQUARE_CHECKIN_URL", CHECKIN_URL),
        timeout=args.timeout,
        queue_size=args.queue_size,
        user_agent=args.user_agent,
    )
    return settings.validate()
