"""
Full-menu loader for the public renderer.

Cache-first: a persisted copy is served immediately and refreshed in the
background (at most one refresh per restaurant at a time); on a miss the
aggregate is fetched from the backend and persisted.
"""

import asyncio
import logging
from functools import lru_cache
from typing import Optional

from taptab.services.backend import get_menu_backend
from taptab.services.backend.base import BaseMenuBackend, BackendError
from taptab.services.menu_cache import BaseMenuStore, get_menu_store

logger = logging.getLogger(__name__)


class FullMenuLoader:
    def __init__(self, backend: BaseMenuBackend, store: BaseMenuStore):
        self.backend = backend
        self.store = store
        self._refreshing: dict[str, asyncio.Task] = {}
        # Bumped on every invalidation; fetches started earlier are not persisted.
        self._generations: dict[str, int] = {}

    async def load(self, restaurant_id: str) -> Optional[dict]:
        """Full menu of a restaurant, or None when unavailable. Never raises."""
        cached = await self.store.get(restaurant_id)
        if cached is not None:
            logger.debug(f"Full menu cache hit for {restaurant_id}")
            self._schedule_refresh(restaurant_id)
            return cached
        return await self.fetch(restaurant_id)

    async def fetch(self, restaurant_id: str) -> Optional[dict]:
        generation = self._generations.get(restaurant_id, 0)
        try:
            menu = await self.backend.get_restaurant_full_menu(restaurant_id)
        except BackendError as e:
            logger.error(f"Full menu fetch failed for {restaurant_id}: {e}")
            return None

        if generation != self._generations.get(restaurant_id, 0):
            logger.debug(f"Dropping stale full menu for {restaurant_id}")
            return menu
        if menu is None:
            await self.store.remove(restaurant_id)
            return None
        await self.store.set(restaurant_id, menu)
        return menu

    def _schedule_refresh(self, restaurant_id: str) -> None:
        task = self._refreshing.get(restaurant_id)
        if task is not None and not task.done():
            return
        task = asyncio.ensure_future(self.fetch(restaurant_id))
        self._refreshing[restaurant_id] = task
        task.add_done_callback(lambda t: self._forget(restaurant_id, t))

    def _forget(self, restaurant_id: str, task: asyncio.Task) -> None:
        if self._refreshing.get(restaurant_id) is task:
            del self._refreshing[restaurant_id]

    @property
    def refreshing(self) -> list[str]:
        return list(self._refreshing)

    async def wait_for_refreshes(self) -> None:
        if self._refreshing:
            await asyncio.gather(*list(self._refreshing.values()), return_exceptions=True)

    async def invalidate(self, restaurant_id: str) -> None:
        """Drop the persisted menu and cancel any refresh already in flight."""
        self._generations[restaurant_id] = self._generations.get(restaurant_id, 0) + 1
        task = self._refreshing.pop(restaurant_id, None)
        if task is not None and not task.done():
            task.cancel()
        await self.store.remove(restaurant_id)


@lru_cache()
def get_full_menu_loader() -> FullMenuLoader:
    return FullMenuLoader(get_menu_backend(), get_menu_store())
