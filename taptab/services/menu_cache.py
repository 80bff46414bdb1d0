"""
Persisted full-menu cache.

Stores the nested full-menu aggregate per restaurant under
``fullMenu:<restaurant_id>`` with a TTL (30 minutes by default):

    - ENV_MODE=development → MemoryMenuStore (in-process)
    - ENV_MODE=staging / production → RedisMenuStore

Cache failures are never fatal: they are logged and treated as a miss.
"""

import json
import logging
import time
from abc import ABC, abstractmethod
from functools import lru_cache
from typing import Optional

import redis.asyncio as aioredis
from redis.exceptions import RedisError

from taptab.core.config import get_settings

logger = logging.getLogger(__name__)


def menu_cache_key(restaurant_id: str) -> str:
    return f"fullMenu:{restaurant_id}"


class BaseMenuStore(ABC):
    def __init__(self, ttl_seconds: int = 1800):
        self.ttl_seconds = ttl_seconds

    @abstractmethod
    async def get(self, restaurant_id: str) -> Optional[dict]:
        pass

    @abstractmethod
    async def set(self, restaurant_id: str, payload: dict) -> None:
        pass

    @abstractmethod
    async def remove(self, restaurant_id: str) -> None:
        pass


class MemoryMenuStore(BaseMenuStore):
    """In-process store; entries expire lazily on read."""

    def __init__(self, ttl_seconds: int = 1800):
        super().__init__(ttl_seconds)
        self._entries: dict[str, tuple[float, str]] = {}

    async def get(self, restaurant_id: str) -> Optional[dict]:
        key = menu_cache_key(restaurant_id)
        entry = self._entries.get(key)
        if entry is None:
            return None
        expires_at, raw = entry
        if time.monotonic() >= expires_at:
            del self._entries[key]
            return None
        return json.loads(raw)

    async def set(self, restaurant_id: str, payload: dict) -> None:
        self._entries[menu_cache_key(restaurant_id)] = (
            time.monotonic() + self.ttl_seconds,
            json.dumps(payload),
        )

    async def remove(self, restaurant_id: str) -> None:
        self._entries.pop(menu_cache_key(restaurant_id), None)


class RedisMenuStore(BaseMenuStore):
    def __init__(self, redis_url: str, ttl_seconds: int = 1800):
        super().__init__(ttl_seconds)
        self._redis = aioredis.from_url(redis_url, socket_timeout=2, decode_responses=True)

    async def get(self, restaurant_id: str) -> Optional[dict]:
        try:
            raw = await self._redis.get(menu_cache_key(restaurant_id))
        except RedisError as e:
            logger.warning(f"Menu cache read failed for {restaurant_id}: {e}")
            return None
        if raw is None:
            return None
        try:
            return json.loads(raw)
        except json.JSONDecodeError:
            logger.warning(f"Corrupt menu cache entry for {restaurant_id}, dropping it")
            await self.remove(restaurant_id)
            return None

    async def set(self, restaurant_id: str, payload: dict) -> None:
        try:
            await self._redis.set(
                menu_cache_key(restaurant_id), json.dumps(payload), ex=self.ttl_seconds
            )
        except RedisError as e:
            logger.warning(f"Menu cache write failed for {restaurant_id}: {e}")

    async def remove(self, restaurant_id: str) -> None:
        try:
            await self._redis.delete(menu_cache_key(restaurant_id))
        except RedisError as e:
            logger.warning(f"Menu cache delete failed for {restaurant_id}: {e}")

    async def ping(self) -> bool:
        try:
            return bool(await self._redis.ping())
        except RedisError as e:
            logger.error(f"Redis health check failed: {e}")
            return False


@lru_cache()
def get_menu_store() -> BaseMenuStore:
    settings = get_settings()
    if settings.is_development:
        logger.info("Menu Cache: Using MemoryMenuStore (development mode)")
        return MemoryMenuStore(settings.full_menu_cache_ttl_seconds)
    logger.info(f"Menu Cache: Using RedisMenuStore ({settings.env_mode.value} mode)")
    return RedisMenuStore(settings.redis_url, settings.full_menu_cache_ttl_seconds)


def reset_menu_store() -> None:
    get_menu_store.cache_clear()
