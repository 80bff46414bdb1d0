"""
Public (diner-facing) menu read path.

Resolves a slug to a restaurant and turns its full-menu aggregate into
the view model rendered by ``templates/menu.html``. Nothing here raises
on missing or broken data: every outcome is an explicit ``MenuStatus``.
"""

import logging
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

from taptab.services.backend.base import BaseMenuBackend, BackendError, Row
from taptab.services.full_menu import FullMenuLoader
from taptab.services.menu_filter import (
    ALLERGEN_OPTIONS,
    BADGE_LABELS,
    DIETARY_OPTIONS,
    FilterSelection,
    dish_badges,
    filter_dishes,
    ordered_options,
)
from taptab.services.pricing import modifier_label, price_label
from taptab.services.theme import ThemeContext, build_theme_context

logger = logging.getLogger(__name__)


class MenuStatus(str, Enum):
    FOUND = "found"
    NOT_FOUND = "not_found"
    UNPUBLISHED = "unpublished"
    ERROR = "error"


@dataclass
class PublicMenu:
    status: MenuStatus
    restaurant: Optional[Row] = None
    categories: list[dict] = field(default_factory=list)
    theme: Optional[ThemeContext] = None
    selection: FilterSelection = field(default_factory=FilterSelection)
    allergen_options: list[tuple[str, str]] = field(default_factory=list)
    dietary_options: list[tuple[str, str]] = field(default_factory=list)
    visible_dish_count: int = 0


def clean_slug(raw: Optional[str]) -> str:
    """
    Canonical slug of a legacy ``/:slug`` path.

    Trims, lowercases, strips leading colons and an accidental ``menu/``
    prefix, collapses slashes and keeps the last path segment.

    >>> clean_slug("  :Menu/Cafe-Sol// ")
    'cafe-sol'
    """
    slug = (raw or "").strip().lower()
    slug = re.sub(r"^:+", "", slug)
    slug = re.sub(r"^menu/", "", slug)
    slug = re.sub(r"/+", "/", slug)
    segments = [segment for segment in slug.split("/") if segment]
    return segments[-1] if segments else ""


async def find_restaurant(backend: BaseMenuBackend, slug: str) -> tuple[MenuStatus, Optional[Row]]:
    try:
        restaurant = await backend.select_one("restaurants", {"slug": slug})
    except BackendError as e:
        logger.error(f"Restaurant lookup failed for slug '{slug}': {e}")
        return MenuStatus.ERROR, None
    if restaurant is None:
        return MenuStatus.NOT_FOUND, None
    if not restaurant.get("published"):
        return MenuStatus.UNPUBLISHED, restaurant
    return MenuStatus.FOUND, restaurant


def _dish_view(dish: dict, badge_order: Optional[list[str]]) -> dict:
    return {
        **dish,
        "price_label": price_label(dish),
        "badges": [BADGE_LABELS[b] for b in dish_badges(dish, badge_order)],
        "has_options": bool(dish.get("has_options") or dish.get("options")),
        "modifiers": [
            {**modifier, "price_label": modifier_label(modifier)}
            for modifier in dish.get("modifiers") or []
        ],
    }


def build_menu_view(full_menu: dict, selection: FilterSelection) -> tuple[list[dict], int]:
    """Categories → subcategories → filtered dishes with display labels."""
    restaurant = full_menu.get("restaurant") or {}
    badge_order = restaurant.get("badge_display_order")
    categories = []
    visible = 0
    for category in full_menu.get("categories") or []:
        subcategories = []
        for sub in category.get("subcategories") or []:
            dishes = [_dish_view(d, badge_order) for d in filter_dishes(sub.get("dishes") or [], selection)]
            visible += len(dishes)
            subcategories.append({"id": sub["id"], "name": sub["name"], "dishes": dishes})
        categories.append({"id": category["id"], "name": category["name"], "subcategories": subcategories})
    return categories, visible


async def load_public_menu(
    backend: BaseMenuBackend,
    loader: FullMenuLoader,
    slug: str,
    selection: Optional[FilterSelection] = None,
) -> PublicMenu:
    selection = selection or FilterSelection()
    status, restaurant = await find_restaurant(backend, slug)
    if status != MenuStatus.FOUND:
        return PublicMenu(status=status, restaurant=restaurant, selection=selection)

    full_menu = await loader.load(restaurant["id"])
    if full_menu is None:
        return PublicMenu(status=MenuStatus.ERROR, restaurant=restaurant, selection=selection)

    # The aggregate may come from the persisted cache; the restaurant row is fresher
    restaurant = {**(full_menu.get("restaurant") or {}), **restaurant}
    categories, visible = build_menu_view(full_menu, selection)

    return PublicMenu(
        status=MenuStatus.FOUND,
        restaurant=restaurant,
        categories=categories,
        theme=build_theme_context(restaurant.get("theme")),
        selection=selection,
        allergen_options=ordered_options(ALLERGEN_OPTIONS, restaurant.get("allergen_filter_order")),
        dietary_options=ordered_options(DIETARY_OPTIONS, restaurant.get("dietary_filter_order")),
        visible_dish_count=visible,
    )
