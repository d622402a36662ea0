"""Platform stats aggregator.

The counters come from a backend aggregate function. Results are kept
for a short time so that frequent polling does not turn into one
remote call per request.
"""

import asyncio
import time
from collections.abc import Callable
from dataclasses import dataclass

import structlog

from techspec.domain.entities import PlatformStats
from techspec.infrastructure.backend_client import BackendClient

logger = structlog.get_logger()

STATS_RPC = "get_platform_stats"


@dataclass
class StatsCache:
    """Last fetched stats and when they were fetched (clock seconds)."""

    value: PlatformStats | None = None
    fetched_at: float | None = None

    def is_fresh(self, now: float, ttl: float) -> bool:
        return (
            self.value is not None
            and self.fetched_at is not None
            and now - self.fetched_at < ttl
        )

    def store(self, value: PlatformStats, now: float) -> None:
        self.value = value
        self.fetched_at = now


class StatsAggregator:
    """Serve platform counters with a TTL cache.

    Whatever the remote call returns is cached, including the all-zero
    fallback used when it fails; errors are logged and never raised.
    """

    def __init__(
        self,
        client: BackendClient,
        ttl: float = 15.0,
        clock: Callable[[], float] = time.monotonic,
        cache: StatsCache | None = None,
    ) -> None:
        """Initialize the aggregator.

        Args:
            client: Backend service client.
            ttl: Seconds a cached value stays fresh.
            clock: Monotonic clock returning seconds.
            cache: Cache to use; a new empty one by default.
        """
        self.client = client
        self.ttl = ttl
        self._clock = clock
        self.cache = cache or StatsCache()
        self._lock = asyncio.Lock()

    def cached(self) -> PlatformStats | None:
        """Fresh cached value, without any remote call."""
        if self.cache.is_fresh(self._clock(), self.ttl):
            return self.cache.value
        return None

    async def get_stats(self) -> PlatformStats:
        """Get the current platform counters.

        Returns:
            Cached counters when fresh, otherwise freshly fetched ones
            (all zero if the fetch failed).
        """
        cached = self.cached()
        if cached is not None:
            return cached

        async with self._lock:
            # Another caller may have refreshed while we waited.
            cached = self.cached()
            if cached is not None:
                return cached

            now = self._clock()
            try:
                stats = await self._fetch()
            except Exception as e:
                logger.exception("Platform stats fetch crashed", error=str(e))
                stats = PlatformStats.zero()
            self.cache.store(stats, now)
            return stats

    async def _fetch(self) -> PlatformStats:
        response = await self.client.rpc(STATS_RPC)
        if not response.success or not response.data:
            logger.error(
                "Error fetching platform stats",
                error=response.error.message if response.error else "empty result",
            )
            return PlatformStats.zero()

        data = response.data
        if isinstance(data, list):
            data = data[0] if data else {}
        try:
            return PlatformStats.from_payload(data)
        except (TypeError, ValueError, AttributeError) as e:
            logger.error("Malformed platform stats", error=str(e))
            return PlatformStats.zero()

    async def run_poller(self, interval: float = 30.0) -> None:
        """Refresh the counters every ``interval`` seconds until cancelled."""
        logger.info("Starting platform stats poller", interval=interval)
        while True:
            await self.get_stats()
            await asyncio.sleep(interval)
