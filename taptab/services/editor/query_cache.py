"""
Keyed query cache for the editor.

Keys are tuples such as ``("dishes", subcategory_id)``; invalidation and
cancellation take a key prefix, so ``("dishes",)`` matches every dish
list. Each key has at most one fetch in flight: concurrent readers and
concurrent invalidations await the same task.
"""

import asyncio
import logging
import time
from collections import Counter
from typing import Any, Awaitable, Callable, Optional

logger = logging.getLogger(__name__)

Key = tuple
Fetcher = Callable[[], Awaitable[Any]]


def key_matches(key: Key, prefix: Key) -> bool:
    return key[:len(prefix)] == prefix


class QueryCache:
    """
    In-process query cache.

    Attributes:
        stale_time: Seconds after which cached data is refetched on read
        fetch_counts: Number of fetches started per key
    """

    def __init__(self, stale_time: float = 60.0):
        self.stale_time = stale_time
        self._data: dict[Key, Any] = {}
        self._updated_at: dict[Key, float] = {}
        self._fetchers: dict[Key, Fetcher] = {}
        self._in_flight: dict[Key, asyncio.Task] = {}
        self.fetch_counts: Counter = Counter()

    # =========================================================================
    # DIRECT ACCESS
    # =========================================================================

    def has(self, key: Key) -> bool:
        return key in self._data

    def get_data(self, key: Key, default: Any = None) -> Any:
        return self._data.get(key, default)

    def set_data(self, key: Key, value: Any) -> None:
        """Write ``value``; a callable receives the current data and returns the new data."""
        if callable(value):
            value = value(self._data.get(key))
        self._data[key] = value
        self._updated_at[key] = time.monotonic()

    def remove(self, key: Key) -> None:
        self._data.pop(key, None)
        self._updated_at.pop(key, None)

    def keys(self, prefix: Key = ()) -> list[Key]:
        return [key for key in self._data if key_matches(key, prefix)]

    def get_queries_data(self, prefix: Key) -> list[tuple[Key, Any]]:
        return [(key, self._data[key]) for key in self.keys(prefix)]

    def set_queries_data(self, prefix: Key, updater: Callable[[Any], Any]) -> None:
        for key in self.keys(prefix):
            self.set_data(key, updater)

    def is_stale(self, key: Key) -> bool:
        updated = self._updated_at.get(key)
        return updated is None or time.monotonic() - updated >= self.stale_time

    def is_fetching(self, key: Key) -> bool:
        return key in self._in_flight

    # =========================================================================
    # FETCHING
    # =========================================================================

    async def fetch(self, key: Key, fetcher: Fetcher, force: bool = False) -> Any:
        """
        Return cached data for ``key``, fetching it when missing or stale.

        The fetcher is remembered so later invalidations can refetch.
        """
        self._fetchers[key] = fetcher
        if not force and self.has(key) and not self.is_stale(key):
            return self._data[key]
        return await self._refetch(key)

    async def _load(self, key: Key) -> Any:
        self.fetch_counts[key] += 1
        data = await self._fetchers[key]()
        self.set_data(key, data)
        return data

    async def _refetch(self, key: Key) -> Any:
        task = self._in_flight.get(key)
        if task is None:
            task = asyncio.ensure_future(self._load(key))
            self._in_flight[key] = task
            task.add_done_callback(lambda t, key=key: self._forget(key, t))
        try:
            return await asyncio.shield(task)
        except asyncio.CancelledError:
            # Fetch was cancelled by an optimistic mutation
            if task.cancelled():
                return self._data.get(key)
            raise

    def _forget(self, key: Key, task: asyncio.Task) -> None:
        if self._in_flight.get(key) is task:
            del self._in_flight[key]
        if not task.cancelled() and task.exception() is not None:
            logger.warning(f"Query {key} failed: {task.exception()}")

    def cancel(self, prefix: Key) -> int:
        """Cancel in-flight fetches under ``prefix`` so they cannot overwrite local edits."""
        cancelled = 0
        for key, task in list(self._in_flight.items()):
            if key_matches(key, prefix) and not task.done():
                task.cancel()
                del self._in_flight[key]
                cancelled += 1
        if cancelled:
            logger.debug(f"Cancelled {cancelled} fetch(es) under {prefix}")
        return cancelled

    async def invalidate(self, prefix: Key) -> None:
        """
        Mark every key under ``prefix`` stale and refetch the ones that have
        a registered fetcher. Refetch errors are logged, never raised.
        """
        keys = self.keys(prefix)
        for key in keys:
            self._updated_at[key] = float("-inf")
        refetchable = [key for key in keys if key in self._fetchers]
        if not refetchable:
            return
        results = await asyncio.gather(
            *(self._refetch(key) for key in refetchable), return_exceptions=True
        )
        for key, result in zip(refetchable, results):
            if isinstance(result, Exception):
                logger.warning(f"Refetch of {key} after invalidation failed: {result}")

    def clear(self) -> None:
        for task in self._in_flight.values():
            task.cancel()
        self._in_flight.clear()
        self._data.clear()
        self._updated_at.clear()
        self._fetchers.clear()
