"""
Menu Backend Abstract Base Class

Defines the persistence contract used by the HTTP service and the editor
data layer. Every implementation (in-memory mock, SQL, HTTP client) must
behave identically for:

    - per-table CRUD on rows represented as plain dicts
    - ``upsert`` keyed on a unique column
    - the two remote procedures: batch ``order_index`` writes and the
      nested full-menu aggregate
    - cascading deletes from a parent to its children

Rows returned by a backend are copies; mutating them never changes the
stored data.
"""

from abc import ABC, abstractmethod
from typing import Any, Optional

Row = dict[str, Any]


# =============================================================================
# SCHEMA METADATA
# =============================================================================

TABLES = (
    "restaurants",
    "categories",
    "subcategories",
    "dishes",
    "dish_options",
    "dish_modifiers",
    "subscriptions",
    "menu_links",
)

# Tables whose rows are manually ordered inside their parent
ORDERED_TABLES = ("categories", "subcategories", "dishes", "dish_options", "dish_modifiers")

# parent table -> [(child table, foreign key column)]
CHILD_TABLES = {
    "restaurants": [("categories", "restaurant_id"), ("menu_links", "restaurant_id")],
    "categories": [("subcategories", "category_id")],
    "subcategories": [("dishes", "subcategory_id")],
    "dishes": [("dish_options", "dish_id"), ("dish_modifiers", "dish_id")],
}

UNIQUE_KEYS = {
    "restaurants": [("slug",)],
    "menu_links": [("restaurant_id",), ("restaurant_hash", "menu_id")],
    "subscriptions": [("user_id",)],
}

# Tables carrying an ``updated_at`` column
TIMESTAMPED_TABLES = ("restaurants", "subscriptions")


# =============================================================================
# EXCEPTIONS
# =============================================================================

class BackendError(Exception):
    """
    Base error raised by a menu backend.

    Attributes:
        transient: True when retrying the same call may succeed
            (connection reset, timeout, simulated outage)
    """

    def __init__(self, message: str, transient: bool = False):
        super().__init__(message)
        self.message = message
        self.transient = transient


class UnknownTable(BackendError):
    def __init__(self, table: str):
        super().__init__(f"Unknown table: {table}")
        self.table = table


class RecordNotFound(BackendError):
    def __init__(self, table: str, record_id: str):
        super().__init__(f"{table} row {record_id} not found")
        self.table = table
        self.record_id = record_id


class UniqueViolation(BackendError):
    def __init__(self, table: str, columns: tuple[str, ...]):
        super().__init__(f"Duplicate value for {table}({', '.join(columns)})")
        self.table = table
        self.columns = columns


def check_table(table: str) -> None:
    if table not in TABLES:
        raise UnknownTable(table)


def default_order(table: str) -> str:
    return "order_index" if table in ORDERED_TABLES else "created_at"


def sort_rows(rows: list[Row], order_by: Optional[str]) -> list[Row]:
    """Sort rows by ``order_by`` then creation time; missing values sort last."""
    if not order_by:
        return rows

    def key(row: Row):
        value = row.get(order_by)
        return (value is None, value if value is not None else 0, row.get("created_at") or "")

    return sorted(rows, key=key)


def assemble_full_menu(
    restaurant: Row,
    categories: list[Row],
    subcategories: list[Row],
    dishes: list[Row],
    options: list[Row],
    modifiers: list[Row],
) -> Row:
    """
    Nest flat table rows into the full-menu aggregate.

    Every level is ordered by ``order_index``; dishes carry their
    ``options`` and ``modifiers`` lists.
    """
    options_by_dish: dict[str, list[Row]] = {}
    for option in sort_rows(options, "order_index"):
        options_by_dish.setdefault(option["dish_id"], []).append(option)

    modifiers_by_dish: dict[str, list[Row]] = {}
    for modifier in sort_rows(modifiers, "order_index"):
        modifiers_by_dish.setdefault(modifier["dish_id"], []).append(modifier)

    dishes_by_sub: dict[str, list[Row]] = {}
    for dish in sort_rows(dishes, "order_index"):
        dish = {
            **dish,
            "options": options_by_dish.get(dish["id"], []),
            "modifiers": modifiers_by_dish.get(dish["id"], []),
        }
        dishes_by_sub.setdefault(dish["subcategory_id"], []).append(dish)

    subs_by_category: dict[str, list[Row]] = {}
    for sub in sort_rows(subcategories, "order_index"):
        sub = {**sub, "dishes": dishes_by_sub.get(sub["id"], [])}
        subs_by_category.setdefault(sub["category_id"], []).append(sub)

    return {
        "restaurant": restaurant,
        "categories": [
            {**category, "subcategories": subs_by_category.get(category["id"], [])}
            for category in sort_rows(categories, "order_index")
        ],
    }


# =============================================================================
# INTERFACE
# =============================================================================

class BaseMenuBackend(ABC):
    """
    Abstract base class for menu persistence.

    Filters are exact-match (``column == value``); ``in_filters`` match any
    of the given values. ``order_by=None`` uses ``order_index`` for ordered
    tables and ``created_at`` otherwise.

    Example:
        >>> backend = get_menu_backend()
        >>> rows = await backend.select("categories", {"restaurant_id": rid})
        >>> await backend.batch_update_order_indexes(
        ...     "categories", [{"id": c["id"], "order_index": i} for i, c in enumerate(rows)]
        ... )
    """

    @property
    @abstractmethod
    def provider_name(self) -> str:
        pass

    @abstractmethod
    async def select(
        self,
        table: str,
        filters: Optional[dict[str, Any]] = None,
        in_filters: Optional[dict[str, list]] = None,
        order_by: Optional[str] = None,
    ) -> list[Row]:
        pass

    async def select_one(self, table: str, filters: dict[str, Any]) -> Optional[Row]:
        """First row matching ``filters`` or None."""
        rows = await self.select(table, filters)
        return rows[0] if rows else None

    async def get(self, table: str, record_id: str) -> Row:
        """
        Fetch a row by primary key.

        Raises:
            RecordNotFound: If no row has this id
        """
        row = await self.select_one(table, {"id": record_id})
        if row is None:
            raise RecordNotFound(table, record_id)
        return row

    @abstractmethod
    async def insert(self, table: str, row: Row) -> Row:
        """
        Insert a row, assigning ``id`` and ``created_at`` when absent.

        Raises:
            UniqueViolation: If a unique key is already taken
        """
        pass

    @abstractmethod
    async def update(self, table: str, record_id: str, updates: Row) -> Row:
        """
        Apply a partial update and return the full row.

        Raises:
            RecordNotFound: If no row has this id
        """
        pass

    @abstractmethod
    async def delete(self, table: str, record_id: str) -> None:
        """Delete a row and, recursively, its children."""
        pass

    @abstractmethod
    async def upsert(self, table: str, row: Row, on_conflict: str) -> Row:
        """
        Insert ``row`` or update the row sharing its ``on_conflict`` columns.

        ``on_conflict`` is a comma-separated list of column names.
        """
        pass

    @abstractmethod
    async def batch_update_order_indexes(self, table: str, updates: list[Row]) -> None:
        """
        Write ``order_index`` for many rows in a single call.

        ``updates`` is a list of ``{"id": ..., "order_index": ...}``. Either
        every row is written or none is.
        """
        pass

    async def get_restaurant_full_menu(self, restaurant_id: str) -> Optional[Row]:
        """
        Nested restaurant → categories → subcategories → dishes →
        options/modifiers aggregate, or None for an unknown restaurant.
        """
        restaurant = await self.select_one("restaurants", {"id": restaurant_id})
        if restaurant is None:
            return None

        categories = await self.select("categories", {"restaurant_id": restaurant_id})
        category_ids = [c["id"] for c in categories]
        subcategories = (
            await self.select("subcategories", in_filters={"category_id": category_ids})
            if category_ids else []
        )
        sub_ids = [s["id"] for s in subcategories]
        dishes = (
            await self.select("dishes", in_filters={"subcategory_id": sub_ids})
            if sub_ids else []
        )
        dish_ids = [d["id"] for d in dishes]
        options, modifiers = [], []
        if dish_ids:
            options = await self.select("dish_options", in_filters={"dish_id": dish_ids})
            modifiers = await self.select("dish_modifiers", in_filters={"dish_id": dish_ids})

        return assemble_full_menu(restaurant, categories, subcategories, dishes, options, modifiers)

    @abstractmethod
    async def health_check(self) -> bool:
        pass

    async def close(self) -> None:
        """Release connections held by the backend."""
        return None
