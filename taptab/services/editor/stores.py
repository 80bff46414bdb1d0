"""
Editor stores: cached queries and optimistic mutations per entity.

Cache keys:
    ("restaurants", owner_id)                    restaurant list
    ("restaurant", restaurant_id)                single restaurant
    ("categories", restaurant_id)
    ("subcategories", category_id)
    ("dishes", subcategory_id)
    ("dish-options", dish_id)
    ("dish-modifiers", dish_id)
    ("subcategory-dishes-with-options", subcategory_id)
    ("full-menu", restaurant_id)
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Optional

from taptab.services.backend.base import BackendError, Row
from taptab.services.editor.mutations import (
    MutationResult,
    OptimisticMutation,
    generate_temp_id,
    is_temp_id,
)
from taptab.services.editor.ordering import move_item, order_updates, reindex
from taptab.services.editor.query_cache import Key
from taptab.services.pricing import normalize_price
from taptab.services.restaurants import create_restaurant, resolve_restaurant_id

if TYPE_CHECKING:
    from taptab.services.editor import EditorSession

logger = logging.getLogger(__name__)


class EntityStore:
    """
    Ordered child collection of a parent (e.g. the categories of a restaurant).

    Subclasses set the table, the foreign key to the parent and the cache
    key name, and may extend ``invalidation_keys``.
    """

    table: str = ""
    parent_column: str = ""
    parent_table: str = ""
    key_name: str = ""
    label: str = ""
    plural: str = ""

    def __init__(self, session: "EditorSession"):
        self.session = session

    @property
    def backend(self):
        return self.session.backend

    @property
    def cache(self):
        return self.session.cache

    def list_key(self, parent_id: str) -> Key:
        return (self.key_name, parent_id)

    async def list(self, parent_id: str, force: bool = False) -> list[Row]:
        return await self.cache.fetch(
            self.list_key(parent_id),
            lambda: self.backend.select(self.table, {self.parent_column: parent_id}),
            force=force,
        )

    def prepare(self, values: Row) -> Row:
        """Normalize values before they are cached or sent."""
        return dict(values)

    def validate(self, parent_id: Optional[str], values: Row) -> Optional[str]:
        if not parent_id:
            return f"A parent is required to create a {self.label}"
        return None

    def invalidation_keys(self, parent_id: str, restaurant_id: Optional[str]) -> list[Key]:
        keys = [self.list_key(parent_id)]
        if restaurant_id:
            keys.append(("full-menu", restaurant_id))
        return keys

    async def invalidate(self, parent_id: str) -> None:
        """Invalidate dependent queries and drop the persisted full menu."""
        try:
            restaurant_id = await resolve_restaurant_id(self.backend, self.parent_table, parent_id)
        except BackendError as e:
            logger.warning(f"Could not resolve restaurant for {self.table} {parent_id}: {e}")
            restaurant_id = None
        for key in self.invalidation_keys(parent_id, restaurant_id):
            await self.cache.invalidate(key)
        if restaurant_id:
            await self.session.menu_store.remove(restaurant_id)

    def _mutation(self, keys, apply, commit, parent_id: str, error_title: str) -> OptimisticMutation:
        async def settle(_data):
            await self.invalidate(parent_id)

        return OptimisticMutation(
            self.cache,
            self.session.notifier,
            keys=keys,
            apply=apply,
            commit=commit,
            invalidate=settle,
            error_title=error_title,
        )

    # =========================================================================
    # MUTATIONS
    # =========================================================================

    async def create(self, parent_id: Optional[str], values: Row) -> MutationResult:
        error = self.validate(parent_id, values)
        if error:
            self.session.notifier.error(f"Failed to create {self.label}", error)
            return MutationResult(success=False, error_message=error)

        key = self.list_key(parent_id)
        if not self.cache.has(key):
            try:
                await self.list(parent_id)
            except BackendError as e:
                self.session.notifier.error(f"Failed to create {self.label}", e.message)
                return MutationResult(success=False, error_message=e.message)
        current = self.cache.get_data(key) or []
        payload = {
            **self.prepare(values),
            self.parent_column: parent_id,
            "order_index": len(current),
        }
        temp_row = {**payload, "id": generate_temp_id()}

        return await self._mutation(
            keys=[key],
            apply=lambda cache: cache.set_data(key, lambda rows: [*(rows or []), temp_row]),
            commit=lambda: self.backend.insert(self.table, payload),
            parent_id=parent_id,
            error_title=f"Failed to create {self.label}",
        ).run()

    async def update(self, parent_id: str, record_id: str, updates: Row) -> MutationResult:
        key = self.list_key(parent_id)
        updates = self.prepare(updates)

        def apply(cache):
            cache.set_data(key, lambda rows: [
                {**row, **updates} if row["id"] == record_id else row for row in (rows or [])
            ])

        return await self._mutation(
            keys=[key],
            apply=apply,
            commit=lambda: self.backend.update(self.table, record_id, updates),
            parent_id=parent_id,
            error_title=f"Failed to update {self.label}",
        ).run()

    async def update_field(
        self, parent_id: str, record_id: str, field: str, value: Any
    ) -> Optional[MutationResult]:
        """
        Field-level edit. Booleans commit immediately; other values are
        debounced per (record, field) and only the latest value is sent.
        """
        if isinstance(value, bool):
            self.session.debouncer.cancel((self.table, record_id, field))
            return await self.update(parent_id, record_id, {field: value})

        self.session.debouncer.call(
            (self.table, record_id, field),
            lambda: self.update(parent_id, record_id, {field: value}),
        )
        return None

    async def delete(self, parent_id: str, record_id: str) -> MutationResult:
        key = self.list_key(parent_id)
        return await self._mutation(
            keys=[key],
            apply=lambda cache: cache.set_data(
                key, lambda rows: [row for row in (rows or []) if row["id"] != record_id]
            ),
            commit=lambda: self.backend.delete(self.table, record_id),
            parent_id=parent_id,
            error_title=f"Failed to delete {self.label}",
        ).run()

    async def reorder(self, parent_id: str, from_index: int, to_index: int) -> MutationResult:
        """Move one row and persist the contiguous ``order_index`` of the whole list."""
        key = self.list_key(parent_id)
        error_title = f"Failed to reorder {self.plural}"
        rows = self.cache.get_data(key)
        if rows is None:
            try:
                rows = await self.list(parent_id)
            except BackendError as e:
                self.session.notifier.error(error_title, e.message)
                return MutationResult(success=False, error_message=e.message)
        try:
            reordered = reindex(move_item(rows, from_index, to_index))
        except IndexError:
            message = f"Cannot move {self.label} from {from_index} to {to_index}"
            self.session.notifier.error(error_title, message)
            return MutationResult(success=False, error_message=message)

        # Rows still being created get their index once they exist.
        persisted = reindex([row for row in reordered if not is_temp_id(row["id"])])
        updates = order_updates(persisted)

        async def commit():
            if updates:
                await self.backend.batch_update_order_indexes(self.table, updates)

        return await self._mutation(
            keys=[key],
            apply=lambda cache: cache.set_data(key, reordered),
            commit=commit,
            parent_id=parent_id,
            error_title=error_title,
        ).run()


class CategoryStore(EntityStore):
    table = "categories"
    parent_column = "restaurant_id"
    parent_table = "restaurants"
    key_name = "categories"
    label = "category"
    plural = "categories"


class SubcategoryStore(EntityStore):
    table = "subcategories"
    parent_column = "category_id"
    parent_table = "categories"
    key_name = "subcategories"
    label = "subcategory"
    plural = "subcategories"


class DishStore(EntityStore):
    table = "dishes"
    parent_column = "subcategory_id"
    parent_table = "subcategories"
    key_name = "dishes"
    label = "dish"
    plural = "dishes"

    def validate(self, parent_id: Optional[str], values: Row) -> Optional[str]:
        if not parent_id:
            return "Dishes must belong to a subcategory"
        if not (values.get("name") or "").strip():
            return "Dish name is required"
        return None

    def invalidation_keys(self, parent_id: str, restaurant_id: Optional[str]) -> list[Key]:
        keys = [("dishes",), ("subcategory-dishes-with-options",)]
        if restaurant_id:
            keys.append(("full-menu", restaurant_id))
        return keys

    async def list_with_options(self, subcategory_id: str, force: bool = False) -> list[Row]:
        """Dishes of a subcategory with their options and modifiers (two IN queries)."""

        async def fetcher():
            dishes = await self.backend.select("dishes", {"subcategory_id": subcategory_id})
            dish_ids = [d["id"] for d in dishes]
            if not dish_ids:
                return []
            options = await self.backend.select("dish_options", in_filters={"dish_id": dish_ids})
            modifiers = await self.backend.select("dish_modifiers", in_filters={"dish_id": dish_ids})
            return [
                {
                    **dish,
                    "options": [o for o in options if o["dish_id"] == dish["id"]],
                    "modifiers": [m for m in modifiers if m["dish_id"] == dish["id"]],
                }
                for dish in dishes
            ]

        return await self.cache.fetch(
            ("subcategory-dishes-with-options", subcategory_id), fetcher, force=force
        )


class _DishChildStore(EntityStore):
    """Options and modifiers: prices are normalized and every mutation
    refreshes the dish-level aggregates."""

    parent_column = "dish_id"
    parent_table = "dishes"

    def prepare(self, values: Row) -> Row:
        values = dict(values)
        if "price" in values:
            values["price"] = normalize_price(values.get("price"))
        return values

    def invalidation_keys(self, parent_id: str, restaurant_id: Optional[str]) -> list[Key]:
        keys = [
            ("dish-options", parent_id),
            ("dish-modifiers", parent_id),
            ("dishes",),
            ("subcategory-dishes-with-options",),
        ]
        if restaurant_id:
            keys.append(("full-menu", restaurant_id))
        return keys


class OptionStore(_DishChildStore):
    table = "dish_options"
    key_name = "dish-options"
    label = "option"
    plural = "options"


class ModifierStore(_DishChildStore):
    table = "dish_modifiers"
    key_name = "dish-modifiers"
    label = "modifier"
    plural = "modifiers"


class RestaurantStore:
    """Restaurant list and settings of an owner."""

    def __init__(self, session: "EditorSession"):
        self.session = session

    async def list(self, owner_id: str, force: bool = False) -> list[Row]:
        async def fetcher():
            rows = await self.session.backend.select(
                "restaurants", {"owner_id": owner_id}, order_by="created_at"
            )
            return list(reversed(rows))

        return await self.session.cache.fetch(("restaurants", owner_id), fetcher, force=force)

    async def get(self, restaurant_id: str, force: bool = False) -> Optional[Row]:
        return await self.session.cache.fetch(
            ("restaurant", restaurant_id),
            lambda: self.session.backend.select_one("restaurants", {"id": restaurant_id}),
            force=force,
        )

    async def create(self, owner_id: str, name: str, **fields) -> MutationResult:
        try:
            restaurant = await create_restaurant(
                self.session.backend, name, owner_id=owner_id, **fields
            )
        except (BackendError, ValueError) as e:
            message = getattr(e, "message", str(e))
            self.session.notifier.error("Failed to create restaurant", message)
            return MutationResult(success=False, error_message=message)

        await self.session.cache.invalidate(("restaurants",))
        self.session.notifier.success("Restaurant created successfully!")
        return MutationResult(success=True, data=restaurant)

    async def update(self, restaurant_id: str, updates: Row) -> MutationResult:
        key = ("restaurant", restaurant_id)

        async def settle(_data):
            await self.session.cache.invalidate(("restaurants",))
            await self.session.cache.invalidate(key)
            await self.session.cache.invalidate(("full-menu", restaurant_id))
            await self.session.menu_store.remove(restaurant_id)

        return await OptimisticMutation(
            self.session.cache,
            self.session.notifier,
            keys=[key],
            apply=lambda cache: cache.set_data(key, lambda row: {**(row or {}), **updates}),
            commit=lambda: self.session.backend.update("restaurants", restaurant_id, updates),
            invalidate=settle,
            error_title="Failed to update restaurant",
        ).run()

    async def delete(self, restaurant_id: str) -> MutationResult:
        async def settle(_data):
            self.session.cache.remove(("restaurant", restaurant_id))
            self.session.cache.remove(("full-menu", restaurant_id))
            await self.session.cache.invalidate(("restaurants",))
            await self.session.menu_store.remove(restaurant_id)

        def apply(cache):
            cache.set_queries_data(
                ("restaurants",),
                lambda rows: [r for r in (rows or []) if r["id"] != restaurant_id],
            )

        keys = [key for key in self.session.cache.keys(("restaurants",))]
        return await OptimisticMutation(
            self.session.cache,
            self.session.notifier,
            keys=keys,
            apply=apply,
            commit=lambda: self.session.backend.delete("restaurants", restaurant_id),
            invalidate=settle,
            error_title="Failed to delete restaurant",
        ).run()
