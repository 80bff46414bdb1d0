"""
Menu Backend Factory

Single entry point for obtaining the persistence backend.

Usage:
    from taptab.services.backend import get_menu_backend

    backend = get_menu_backend()
    menu = await backend.get_restaurant_full_menu(restaurant_id)

Environment Switching:
    - ENV_MODE=development → MockMenuBackend (in-memory)
    - ENV_MODE=staging     → SqlMenuBackend
    - ENV_MODE=production  → SqlMenuBackend
"""

import logging
from functools import lru_cache

from taptab.core.config import get_settings
from taptab.services.backend.base import (
    BaseMenuBackend,
    BackendError,
    RecordNotFound,
    UniqueViolation,
    UnknownTable,
    TABLES,
    ORDERED_TABLES,
)
from taptab.services.backend.mock import MockMenuBackend

logger = logging.getLogger(__name__)


@lru_cache()
def get_menu_backend() -> BaseMenuBackend:
    """
    Get the configured menu backend instance (cached).

    The SQL backend is imported lazily so development mode needs no
    database driver.
    """
    settings = get_settings()

    if settings.is_development:
        logger.info("Menu Backend: Using MockMenuBackend (development mode)")
        return MockMenuBackend()

    from taptab.services.backend.sql import SqlMenuBackend

    logger.info(f"Menu Backend: Using SqlMenuBackend ({settings.env_mode.value} mode)")
    return SqlMenuBackend()


def reset_menu_backend() -> None:
    """Clear the cached backend; the next call builds a fresh one."""
    get_menu_backend.cache_clear()
    logger.debug("Menu backend cache cleared")


__all__ = [
    "get_menu_backend",
    "reset_menu_backend",
    "BaseMenuBackend",
    "BackendError",
    "RecordNotFound",
    "UniqueViolation",
    "UnknownTable",
    "MockMenuBackend",
    "TABLES",
    "ORDERED_TABLES",
]
