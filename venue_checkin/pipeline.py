"""Producer/consumer pipeline turning location queries into venue check-ins."""

from __future__ import annotations

import asyncio
import logging
from collections import deque
from pathlib import Path
from typing import Callable, Generic, TypeVar

import httpx

from .api import VenueClient
from .models import RunSummary, SearchRequest
from .throttle import Ticker

logger = logging.getLogger(__name__)

T = TypeVar("T")


class InputError(RuntimeError):
    """Raised when the input file cannot be opened or read."""


class QueueClosed(RuntimeError):
    """Raised when putting into a queue that was already closed."""


class RequestQueue(Generic[T]):
    """FIFO hand-off channel that can be closed by the producer.

    ``maxsize <= 0`` means unbounded. Items buffered before ``close()`` are
    still delivered; async iteration ends once the queue is closed and empty.
    """

    def __init__(self, maxsize: int = 0) -> None:
        self._items: deque[T] = deque()
        self._maxsize = maxsize
        self._closed = False
        self._condition = asyncio.Condition()

    @property
    def closed(self) -> bool:
        return self._closed

    def qsize(self) -> int:
        return len(self._items)

    def _full(self) -> bool:
        return self._maxsize > 0 and len(self._items) >= self._maxsize

    async def put(self, item: T) -> None:
        async with self._condition:
            await self._condition.wait_for(lambda: self._closed or not self._full())
            if self._closed:
                raise QueueClosed("put on a closed queue")
            self._items.append(item)
            self._condition.notify_all()

    async def close(self) -> None:
        async with self._condition:
            self._closed = True
            self._condition.notify_all()

    async def get(self) -> T:
        """Return the next item; raise ``QueueClosed`` once closed and drained."""

        async with self._condition:
            await self._condition.wait_for(lambda: self._closed or bool(self._items))
            if not self._items:
                raise QueueClosed("queue closed and drained")
            item = self._items.popleft()
            self._condition.notify_all()
            return item

    def __aiter__(self) -> "RequestQueue[T]":
        return self

    async def __anext__(self) -> T:
        try:
            return await self.get()
        except QueueClosed:
            raise StopAsyncIteration from None


async def produce_requests(
    path: Path,
    queue: RequestQueue[SearchRequest],
    build_request: Callable[[str], httpx.Request],
) -> int:
    """Enqueue one search per non-empty line of *path*, in file order.

    Only the line terminator is removed; lines holding just whitespace are
    queued as-is. The queue is closed on return, including when reading fails.
    """

    count = 0
    try:
        try:
            handle = path.open("rb")
        except OSError as exc:
            raise InputError(f"Cannot open input file {path}: {exc}") from exc

        with handle:
            line_number = 0
            while True:
                try:
                    raw = handle.readline()
                    location = raw.decode("utf-8").rstrip("\r\n")
                except (OSError, UnicodeDecodeError) as exc:
                    raise InputError(
                        f"Failed reading {path} after line {line_number}: {exc}"
                    ) from exc
                if not raw:
                    break
                line_number += 1
                if not location:
                    continue
                await queue.put(
                    SearchRequest(
                        location=location,
                        line_number=line_number,
                        http_request=build_request(location),
                    )
                )
                count += 1
    finally:
        await queue.close()

    logger.info("Queued %d search requests from %s", count, path)
    return count


class ThrottledWorker:
    """Single consumer performing searches and check-ins behind one ticker."""

    def __init__(
        self,
        client: VenueClient,
        ticker: Ticker,
        *,
        checkin_limit: int,
    ) -> None:
        if checkin_limit < 1:
            raise ValueError("checkin_limit must be >= 1")
        self._client = client
        self._ticker = ticker
        self._checkin_limit = checkin_limit
        self.checkins = 0
        self.summary = RunSummary()

    @property
    def limit_reached(self) -> bool:
        return self.checkins >= self._checkin_limit

    async def run(self, queue: RequestQueue[SearchRequest]) -> RunSummary:
        """Consume *queue* until it is drained or the check-in limit is hit."""

        self._ticker.start()
        async for request in queue:
            self.summary.requests += 1
            await self._process(request)
            if self.limit_reached:
                self.summary.limit_reached = True
                logger.info(
                    "Reached check-in limit of %d; stopping", self._checkin_limit
                )
                break
        return self.summary

    async def _process(self, request: SearchRequest) -> None:
        logger.info("Waiting for throttle before searching %r", request.location)
        await self._ticker.wait()

        logger.info("Searching venues near %r (line %d)", request.location, request.line_number)
        result = await self._client.search(request)
        self.summary.searches += 1

        logger.info("Iterating on %d venues", len(result.venues))
        for venue in result.venues:
            self.summary.venues_seen += 1
            logger.debug("Waiting for throttle before checking in %s", venue.id)
            await self._ticker.wait()

            logger.info("Checking in %s (%s)...", venue.id, venue.name)
            outcome = await self._client.checkin(venue.id)
            if not outcome.ok:
                self.summary.failed_checkins += 1
                logger.warning(
                    "Error checking in %s: error=%s status=%s body=%s",
                    venue.id,
                    outcome.error,
                    outcome.status_code,
                    (outcome.body or "")[:500],
                )
                continue

            self.checkins += 1
            self.summary.checkins = self.checkins
            if self.limit_reached:
                return


async def run_pipeline(
    input_path: Path,
    build_request: Callable[[str], httpx.Request],
    worker: ThrottledWorker,
    *,
    queue_size: int = 0,
) -> RunSummary:
    """Run the producer and the worker until the worker stops.

    Producer failures (:class:`InputError`) and fatal worker errors propagate;
    neither task is left running on return.
    """

    queue: RequestQueue[SearchRequest] = RequestQueue(maxsize=queue_size)
    producer = asyncio.create_task(
        produce_requests(input_path, queue, build_request), name="producer"
    )
    consumer = asyncio.create_task(worker.run(queue), name="worker")

    try:
        done, _ = await asyncio.wait(
            {producer, consumer}, return_when=asyncio.FIRST_COMPLETED
        )
        if producer in done:
            # Raises if reading the input failed.
            producer.result()
        return await consumer
    finally:
        for task in (producer, consumer):
            if not task.done():
                task.cancel()
        await asyncio.gather(producer, consumer, return_exceptions=True)
