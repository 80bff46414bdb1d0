import asyncio
from typing import Any, Optional

from taptab.services.backend.base import BaseMenuBackend
from taptab.services.restaurants import create_restaurant


def run(coro) -> Any:
    """Run a coroutine from a synchronous test."""
    return asyncio.run(coro)


async def create_menu(
    backend: BaseMenuBackend,
    name: str = "Cafe Sol",
    published: bool = True,
    owner_id: Optional[str] = "owner-1",
) -> dict[str, Any]:
    """
    A restaurant with two categories:

        Menu / Main:    Margherita (sizes 12/15, extra cheese), Vegan Curry, Steak
        Drinks / Coffee: Espresso
    """
    restaurant = await create_restaurant(backend, name, owner_id=owner_id)
    if published:
        restaurant = await backend.update("restaurants", restaurant["id"], {"published": True})

    category = (await backend.select("categories", {"restaurant_id": restaurant["id"]}))[0]
    subcategory = (await backend.select("subcategories", {"category_id": category["id"]}))[0]
    drinks = await backend.insert("categories", {
        "restaurant_id": restaurant["id"], "name": "Drinks", "order_index": 1,
    })
    coffee = await backend.insert("subcategories", {
        "category_id": drinks["id"], "name": "Coffee", "order_index": 0,
    })

    pizza = await backend.insert("dishes", {
        "subcategory_id": subcategory["id"],
        "name": "Margherita",
        "price": "15",
        "is_vegetarian": True,
        "is_popular": True,
        "allergens": ["gluten", "dairy"],
        "has_options": True,
        "order_index": 0,
    })
    curry = await backend.insert("dishes", {
        "subcategory_id": subcategory["id"],
        "name": "Vegan Curry",
        "price": "13.50",
        "is_vegan": True,
        "is_spicy": True,
        "is_new": True,
        "allergens": ["soy"],
        "order_index": 1,
    })
    steak = await backend.insert("dishes", {
        "subcategory_id": subcategory["id"],
        "name": "Steak",
        "price": "24",
        "is_chef_recommendation": True,
        "allergens": ["beef"],
        "order_index": 2,
    })
    espresso = await backend.insert("dishes", {
        "subcategory_id": coffee["id"], "name": "Espresso", "price": "3", "order_index": 0,
    })
    small = await backend.insert("dish_options", {"dish_id": pizza["id"], "name": "Small", "price": "12.00", "order_index": 0})
    large = await backend.insert("dish_options", {"dish_id": pizza["id"], "name": "Large", "price": "15.00", "order_index": 1})
    cheese = await backend.insert("dish_modifiers", {"dish_id": pizza["id"], "name": "Extra cheese", "price": "2.00", "order_index": 0})

    return {
        "restaurant": restaurant,
        "category": category,
        "subcategory": subcategory,
        "drinks": drinks,
        "coffee": coffee,
        "dishes": {"pizza": pizza, "curry": curry, "steak": steak, "espresso": espresso},
        "options": {"small": small, "large": large},
        "modifiers": {"cheese": cheese},
    }
