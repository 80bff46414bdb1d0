"""
Restaurant creation and hierarchy helpers.

A new restaurant always starts with a default category ("Menu") holding
a default subcategory ("Main"), so the editor has somewhere to put the
first dish.
"""

import logging
import re
import unicodedata
from typing import Optional

from taptab.core.retry import retry_transient
from taptab.services.backend.base import BaseMenuBackend, Row

logger = logging.getLogger(__name__)

DEFAULT_CATEGORY_NAME = "Menu"
DEFAULT_SUBCATEGORY_NAME = "Main"
MAX_SLUG_LENGTH = 60

# table -> (foreign key column, parent table)
PARENT_OF = {
    "dish_options": ("dish_id", "dishes"),
    "dish_modifiers": ("dish_id", "dishes"),
    "dishes": ("subcategory_id", "subcategories"),
    "subcategories": ("category_id", "categories"),
    "categories": ("restaurant_id", "restaurants"),
    "menu_links": ("restaurant_id", "restaurants"),
}


def generate_slug(name: str) -> str:
    """
    URL slug of a restaurant name.

    >>> generate_slug("  Café Sol & Grill ")
    'cafe-sol-grill'
    """
    normalized = unicodedata.normalize("NFD", name or "")
    normalized = "".join(ch for ch in normalized if not unicodedata.combining(ch))
    slug = normalized.lower().strip()
    slug = re.sub(r"[^a-z0-9\s-]", "", slug)
    slug = re.sub(r"\s+", "-", slug)
    slug = re.sub(r"-+", "-", slug)
    return slug.strip("-")[:MAX_SLUG_LENGTH]


@retry_transient(max_attempts=4, base_delay=0.3)
async def _insert(backend: BaseMenuBackend, table: str, row: Row) -> Row:
    return await backend.insert(table, row)


async def create_restaurant(
    backend: BaseMenuBackend,
    name: str,
    owner_id: Optional[str] = None,
    slug: Optional[str] = None,
    **fields,
) -> Row:
    """
    Create a restaurant with its default category and subcategory.

    Each insert is retried on transient backend errors.

    Raises:
        ValueError: If the name yields an empty slug
        UniqueViolation: If the slug is already taken
    """
    slug = slug or generate_slug(name)
    if not slug:
        raise ValueError("Restaurant name must contain at least one letter or number")

    restaurant = await _insert(backend, "restaurants", {
        "owner_id": owner_id,
        "name": name.strip(),
        "slug": slug,
        "published": False,
        **fields,
    })
    category = await _insert(backend, "categories", {
        "restaurant_id": restaurant["id"],
        "name": DEFAULT_CATEGORY_NAME,
        "order_index": 0,
    })
    await _insert(backend, "subcategories", {
        "category_id": category["id"],
        "name": DEFAULT_SUBCATEGORY_NAME,
        "order_index": 0,
    })

    logger.info(f"Restaurant created: {restaurant['slug']} ({restaurant['id']})")
    return restaurant


async def resolve_restaurant_id(
    backend: BaseMenuBackend, table: str, record_id: str
) -> Optional[str]:
    """
    Walk up the hierarchy (e.g. dish → subcategory → category) to the
    owning restaurant. Returns None when a link in the chain is missing.
    """
    while table != "restaurants":
        row = await backend.select_one(table, {"id": record_id})
        if row is None:
            return None
        column, table = PARENT_OF[table]
        record_id = row[column]
    return record_id
