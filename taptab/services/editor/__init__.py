"""
Editor data layer.

Async counterpart of the browser editor's query hooks: a keyed query
cache, optimistic mutations with snapshot/rollback, per-field debouncing,
drag-and-drop reordering and cross-entity invalidation.

Usage:
    from taptab.services.editor import EditorSession

    session = EditorSession(backend)
    categories = await session.categories.list(restaurant_id)
    result = await session.categories.reorder(restaurant_id, 2, 0)
    if not result.success:
        print(session.notifier.errors[-1].message)
"""

from typing import Optional

from taptab.core.config import get_settings
from taptab.services.backend.base import BaseMenuBackend, Row
from taptab.services.editor.debounce import Debouncer
from taptab.services.editor.mutations import (
    MutationResult,
    OptimisticMutation,
    generate_temp_id,
    is_temp_id,
)
from taptab.services.editor.notifier import Notifier
from taptab.services.editor.query_cache import QueryCache
from taptab.services.editor.stores import (
    CategoryStore,
    DishStore,
    ModifierStore,
    OptionStore,
    RestaurantStore,
    SubcategoryStore,
)
from taptab.services.menu_cache import BaseMenuStore, MemoryMenuStore


class EditorSession:
    """
    One editing session against a backend.

    Attributes:
        cache: Shared query cache of every store
        notifier: Transient notifications raised by failed mutations
        debouncer: Coalesces text field updates
        menu_store: Persisted full-menu copies dropped on every edit
    """

    def __init__(
        self,
        backend: BaseMenuBackend,
        menu_store: Optional[BaseMenuStore] = None,
        debounce_seconds: Optional[float] = None,
        stale_time: Optional[float] = None,
    ):
        settings = get_settings()
        self.backend = backend
        self.menu_store = menu_store or MemoryMenuStore(settings.full_menu_cache_ttl_seconds)
        self.cache = QueryCache(
            stale_time=settings.query_stale_seconds if stale_time is None else stale_time
        )
        self.notifier = Notifier()
        self.debouncer = Debouncer(
            settings.update_debounce_seconds if debounce_seconds is None else debounce_seconds
        )

        self.restaurants = RestaurantStore(self)
        self.categories = CategoryStore(self)
        self.subcategories = SubcategoryStore(self)
        self.dishes = DishStore(self)
        self.options = OptionStore(self)
        self.modifiers = ModifierStore(self)

    async def full_menu(self, restaurant_id: str, force: bool = False) -> Optional[Row]:
        return await self.cache.fetch(
            ("full-menu", restaurant_id),
            lambda: self.backend.get_restaurant_full_menu(restaurant_id),
            force=force,
        )

    async def flush(self) -> list[MutationResult]:
        """Send every pending debounced update now."""
        return await self.debouncer.flush()

    async def close(self) -> None:
        await self.flush()
        self.cache.clear()


__all__ = [
    "EditorSession",
    "MutationResult",
    "OptimisticMutation",
    "QueryCache",
    "Notifier",
    "Debouncer",
    "generate_temp_id",
    "is_temp_id",
]
