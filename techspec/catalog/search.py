"""Debounced product search for interactive clients.

Keystrokes arrive faster than queries should be issued. ``submit``
restarts a short timer; only the filter that is still current when the
timer fires is fetched. Fetches are never cancelled once started, so
each one is tagged with a monotonically increasing request id and a
response is applied only if no newer request has been issued since.
"""

import asyncio
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Generic, TypeVar

import structlog

from techspec.catalog.filters import ProductFilter
from techspec.infrastructure.config import settings

T = TypeVar("T")

logger = structlog.get_logger()


@dataclass
class SearchOutcome(Generic[T]):
    """Result of one issued search.

    Attributes:
        request_id: Sequence number of the request.
        product_filter: Filter the request was issued for.
        result: Fetch result, None if the fetch failed.
        error: Exception raised by the fetch, if any.
    """

    request_id: int
    product_filter: ProductFilter
    result: T | None = None
    error: Exception | None = None


class DebouncedSearch(Generic[T]):
    """Debounce search triggers and drop stale responses.

    Example usage:
        search = DebouncedSearch(
            fetch=lambda f: service.search_products(f),
            delay=0.4,
            on_result=render,
        )
        search.submit(ProductFilter(query="pix"))
        search.submit(ProductFilter(query="pixel"))  # only this one is fetched
    """

    def __init__(
        self,
        fetch: Callable[[ProductFilter], Awaitable[T]],
        delay: float | None = None,
        on_result: Callable[[SearchOutcome[T]], None] | None = None,
    ) -> None:
        """Initialize the debouncer.

        Args:
            fetch: Coroutine function issuing the actual query.
            delay: Quiet period in seconds before a trigger fires;
                SEARCH_DEBOUNCE_MS when None.
            on_result: Called with each outcome that is still current.
        """
        self._fetch = fetch
        self.delay = settings.search_debounce_ms / 1000 if delay is None else delay
        self._on_result = on_result
        self._timer: asyncio.Task | None = None
        self._pending_filter: ProductFilter | None = None
        self._in_flight: set[asyncio.Task] = set()
        self._last_issued = 0
        self.latest: SearchOutcome[T] | None = None
        self.discarded = 0

    @property
    def last_issued(self) -> int:
        """Id of the most recently issued request (0 if none)."""
        return self._last_issued

    @property
    def has_pending(self) -> bool:
        return self._timer is not None and not self._timer.done()

    def submit(self, product_filter: ProductFilter) -> None:
        """Schedule a search, superseding any trigger not yet fired."""
        self._cancel_timer()
        self._pending_filter = product_filter
        self._timer = asyncio.create_task(self._fire_later(product_filter))

    async def flush(self) -> None:
        """Fire the pending trigger now and wait for every fetch."""
        if self.has_pending and self._pending_filter is not None:
            product_filter = self._pending_filter
            self._cancel_timer()
            self._issue(product_filter)
        await self.wait()

    async def wait(self) -> None:
        """Wait for the pending trigger and all in-flight fetches."""
        if self._timer is not None:
            try:
                await self._timer
            except asyncio.CancelledError:
                pass
        if self._in_flight:
            await asyncio.gather(*self._in_flight, return_exceptions=True)

    async def close(self) -> None:
        """Cancel the pending trigger and any in-flight fetch."""
        self._cancel_timer()
        for task in list(self._in_flight):
            task.cancel()
        if self._in_flight:
            await asyncio.gather(*self._in_flight, return_exceptions=True)

    def _cancel_timer(self) -> None:
        if self._timer is not None and not self._timer.done():
            self._timer.cancel()
        self._timer = None
        self._pending_filter = None

    async def _fire_later(self, product_filter: ProductFilter) -> None:
        await asyncio.sleep(self.delay)
        self._timer = None
        self._pending_filter = None
        self._issue(product_filter)

    def _issue(self, product_filter: ProductFilter) -> None:
        self._last_issued += 1
        task = asyncio.create_task(self._run(self._last_issued, product_filter))
        self._in_flight.add(task)
        task.add_done_callback(self._in_flight.discard)

    async def _run(self, request_id: int, product_filter: ProductFilter) -> None:
        outcome: SearchOutcome[T] = SearchOutcome(request_id, product_filter)
        try:
            outcome.result = await self._fetch(product_filter)
        except Exception as e:
            logger.warning("Search request failed", request_id=request_id, error=str(e))
            outcome.error = e

        if request_id != self._last_issued:
            self.discarded += 1
            logger.debug(
                "Discarding stale search response",
                request_id=request_id,
                latest_request_id=self._last_issued,
            )
            return

        self.latest = outcome
        if self._on_result is not None:
            self._on_result(outcome)
