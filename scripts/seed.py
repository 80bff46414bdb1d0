"""
Demo Menu Seeder

Builds a complete demo restaurant against a running server through the
editor data layer (HTTP backend), then publishes it and prints its links.
Run from project root: python scripts/seed.py
"""

import argparse
import asyncio
import sys

import httpx

from taptab.services.backend.http import HttpMenuBackend
from taptab.services.editor import EditorSession

API_BASE_URL = "http://localhost:8001"

DEMO_MENU = {
    "Starters": {
        "Soups": [
            {"name": "Tomato Basil Soup", "price": "7", "is_vegetarian": True, "allergens": ["dairy"]},
            {"name": "Miso Soup", "price": "6.5", "is_vegan": True, "allergens": ["soy"]},
        ],
        "Small Plates": [
            {"name": "Garlic Bread", "price": "5.99", "is_popular": True, "allergens": ["gluten", "dairy"]},
            {"name": "Chili Wings", "price": "11", "is_spicy": True, "is_new": True},
        ],
    },
    "Mains": {
        "Pasta": [
            {"name": "Pasta Carbonara", "price": "15", "is_chef_recommendation": True,
             "allergens": ["gluten", "eggs", "pork"]},
            {"name": "Arrabbiata", "price": "13.5", "is_vegan": True, "is_spicy": True, "allergens": ["gluten"]},
        ],
        "Grill": [
            {"name": "Catch of the Day", "price": "Market price", "is_special": True, "allergens": ["fish"]},
        ],
    },
}

PIZZA_SIZES = [("Small", "12"), ("Medium", "15"), ("Large", "18")]
PIZZA_EXTRAS = [("Extra cheese", "2"), ("Mushrooms", "1.5")]


async def seed(base_url: str, owner_id: str, name: str, publish: bool) -> None:
    backend = HttpMenuBackend(base_url)
    session = EditorSession(backend, debounce_seconds=0.15)

    async with httpx.AsyncClient(base_url=base_url, timeout=10) as client:
        print("=" * 70)
        print(f"Seeding '{name}' on {base_url}")
        print("=" * 70)

        created = await session.restaurants.create(owner_id, name, tagline="Seasonal food, served simply")
        if not created.success:
            print(f"   Failed: {created.error_message}")
            sys.exit(1)
        restaurant = created.data
        print(f"   Restaurant {restaurant['slug']} ({restaurant['id']})")

        for category_name, subcategories in DEMO_MENU.items():
            category = (await session.categories.create(restaurant["id"], {"name": category_name})).data
            for sub_name, dishes in subcategories.items():
                sub = (await session.subcategories.create(category["id"], {"name": sub_name})).data
                for dish in dishes:
                    result = await session.dishes.create(sub["id"], dish)
                    status = "ok" if result.success else f"failed: {result.error_message}"
                    print(f"   {category_name} / {sub_name} / {dish['name']}: {status}")

        # Pizza with sizes and extras in the starter "Menu / Main" section
        starter = (await session.categories.list(restaurant["id"]))[0]
        main = (await session.subcategories.list(starter["id"]))[0]
        pizza = (await session.dishes.create(main["id"], {"name": "Margherita", "has_options": True})).data
        for option_name, price in PIZZA_SIZES:
            await session.options.create(pizza["id"], {"name": option_name, "price": price})
        for modifier_name, price in PIZZA_EXTRAS:
            await session.modifiers.create(pizza["id"], {"name": modifier_name, "price": price})
        print("   Margherita with 3 sizes and 2 extras")

        if publish:
            response = await client.post(f"/api/restaurants/{restaurant['id']}/publish")
            response.raise_for_status()
            link = (await client.post(f"/api/restaurants/{restaurant['id']}/link")).json()
            print(f"\n   Menu:       {base_url}/menu/{restaurant['slug']}")
            print(f"   Short link: {link['short_url']}")

        for notification in session.notifier.errors:
            print(f"   Error: {notification.title} - {notification.message}")

    await session.close()
    await backend.close()
    print("=" * 70)


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Demo Menu Seeder")
    parser.add_argument("--url", default=API_BASE_URL, help="Server base URL")
    parser.add_argument("--owner", default="demo-owner", help="Owner id of the restaurant")
    parser.add_argument("--name", default="Cafe Sol", help="Restaurant name")
    parser.add_argument("--draft", action="store_true", help="Leave the menu unpublished")
    args = parser.parse_args()

    asyncio.run(seed(args.url, args.owner, args.name, publish=not args.draft))
