"""CLI entry point: search venues near each listed location and check in."""

from __future__ import annotations

import argparse
import asyncio
import logging
from typing import Sequence

from .api import (
    DEFAULT_SEARCH_LIMIT,
    DEFAULT_TIMEOUT,
    DEFAULT_USER_AGENT,
    VenueApiError,
    VenueClient,
)
from .config import ConfigError, Settings, settings_from_args
from .models import RunSummary
from .pipeline import InputError, ThrottledWorker, run_pipeline
from .throttle import Ticker


def main(argv: Sequence[str] | None = None) -> None:
    """Execute the CLI."""

    args = _parse_args(argv)
    _configure_logging(args.log_level)

    try:
        settings = settings_from_args(args)
    except ConfigError as exc:
        raise SystemExit(f"Invalid configuration: {exc}") from exc

    logging.info(
        "Reading locations from %s at %.0f calls/hour (one call every %.2fs), check-in limit %d",
        settings.input_path,
        settings.rate,
        settings.tick_interval,
        settings.checkin_limit,
    )

    try:
        summary = asyncio.run(run(settings))
    except (InputError, VenueApiError) as exc:
        logging.error("Aborting: %s", exc)
        raise SystemExit(1) from exc

    logging.info(
        "Done: %d requests, %d searches, %d venues, %d check-ins (%d failed)%s",
        summary.requests,
        summary.searches,
        summary.venues_seen,
        summary.checkins,
        summary.failed_checkins,
        ", check-in limit reached" if summary.limit_reached else "",
    )


async def run(settings: Settings, **client_kwargs) -> RunSummary:
    """Wire the client, ticker and worker together and run the pipeline."""

    ticker = Ticker(settings.tick_interval)
    async with VenueClient(
        oauth_token=settings.oauth_token,
        search_url=settings.search_url,
        checkin_url=settings.checkin_url,
        api_version=settings.api_version,
        search_limit=settings.search_limit,
        timeout=settings.timeout,
        user_agent=settings.user_agent,
        **client_kwargs,
    ) as client:
        worker = ThrottledWorker(client, ticker, checkin_limit=settings.checkin_limit)
        return await run_pipeline(
            settings.input_path,
            client.build_search_request,
            worker,
            queue_size=settings.queue_size,
        )


def _parse_args(argv: Sequence[str] | None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument(
        "input",
        nargs="?",
        default=None,
        help="Text file with one location query per line (env CHECKIN_INPUT)",
    )
    parser.add_argument(
        "--oauth-token",
        default=None,
        help="Foursquare OAuth token (env FOURSQUARE_OAUTH_TOKEN)",
    )
    parser.add_argument(
        "--rate",
        type=float,
        default=None,
        help="Maximum API calls per hour, shared by searches and check-ins (env CHECKIN_RATE)",
    )
    parser.add_argument(
        "--checkin-limit",
        type=int,
        default=None,
        help="Stop after this many successful check-ins (env CHECKIN_LIMIT)",
    )
    parser.add_argument(
        "--api-version",
        default=None,
        help="Foursquare API version date (env FOURSQUARE_API_VERSION)",
    )
    parser.add_argument(
        "--search-limit",
        type=int,
        default=DEFAULT_SEARCH_LIMIT,
        help="Venues requested per search (max 50)",
    )
    parser.add_argument(
        "--search-url",
        default=None,
        help="Override the venue search endpoint (env FOURSQUARE_SEARCH_URL)",
    )
    parser.add_argument(
        "--checkin-url",
        default=None,
        help="Override the check-in endpoint (env FOURSQUARE_CHECKIN_URL)",
    )
    parser.add_argument(
        "--timeout",
        type=float,
        default=DEFAULT_TIMEOUT,
        help="Per-request HTTP timeout in seconds",
    )
    parser.add_argument(
        "--queue-size",
        type=int,
        default=0,
        help="Bound on pending search requests (0 = unbounded)",
    )
    parser.add_argument(
        "--user-agent",
        default=DEFAULT_USER_AGENT,
        help="User-Agent header to send with HTTP requests",
    )
    parser.add_argument(
        "--log-level",
        default="INFO",
        help="Logging level (e.g. INFO, DEBUG)",
    )

    return parser.parse_args(argv)


def _configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(levelname)s %(message)s",
    )
    # httpx request lines include the oauth_token query parameter.
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)


if __name__ == "__main__":
    main()
