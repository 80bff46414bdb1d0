"""
Per-key debouncing of editor field updates.

Each key (typically ``(entity_id, field)``) holds at most one pending
call; a new call for the same key replaces the pending one and restarts
its timer, so only the latest value is committed.
"""

import asyncio
import logging
from typing import Any, Awaitable, Callable, Hashable

logger = logging.getLogger(__name__)


class Debouncer:
    def __init__(self, delay: float = 0.3):
        self.delay = delay
        self._callbacks: dict[Hashable, Callable[[], Awaitable[Any]]] = {}
        self._timers: dict[Hashable, asyncio.Task] = {}
        self._running: set[asyncio.Task] = set()

    @property
    def pending(self) -> list[Hashable]:
        return list(self._callbacks)

    def call(self, key: Hashable, func: Callable[[], Awaitable[Any]]) -> None:
        """Schedule ``func`` to run after the quiet period for ``key``."""
        self.cancel(key)
        self._callbacks[key] = func
        self._timers[key] = asyncio.ensure_future(self._fire_later(key))

    def cancel(self, key: Hashable) -> bool:
        """Drop the pending call for ``key``; calls already running are not interrupted."""
        timer = self._timers.pop(key, None)
        if timer is not None:
            timer.cancel()
        return self._callbacks.pop(key, None) is not None

    async def _fire_later(self, key: Hashable) -> None:
        await asyncio.sleep(self.delay)
        self._timers.pop(key, None)
        func = self._callbacks.pop(key, None)
        if func is None:
            return
        task = asyncio.current_task()
        self._running.add(task)
        try:
            await func()
        except Exception:
            logger.exception(f"Debounced call {key} failed")
        finally:
            self._running.discard(task)

    async def flush(self) -> list[Any]:
        """Run every pending call now and return their results."""
        keys = list(self._callbacks)
        funcs = []
        for key in keys:
            timer = self._timers.pop(key, None)
            if timer is not None:
                timer.cancel()
            funcs.append(self._callbacks.pop(key))
        results = await asyncio.gather(*(func() for func in funcs))
        await self.wait_idle()
        return list(results)

    async def wait_idle(self) -> None:
        """Wait for calls whose timer already fired."""
        if self._running:
            await asyncio.gather(*list(self._running), return_exceptions=True)
