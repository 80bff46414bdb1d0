import pytest

from taptab.services.backend.base import BackendError, UniqueViolation
from taptab.services.restaurants import (
    create_restaurant,
    generate_slug,
    resolve_restaurant_id,
)
from test.utils.fixtures import backend
from test.utils.menu_data import create_menu


@pytest.mark.parametrize("name, slug", [
    ("Cafe Sol", "cafe-sol"),
    ("  Café Sol & Grill ", "cafe-sol-grill"),
    ("Joe's -- Diner", "joes-diner"),
    ("!!!", ""),
])
def test_generate_slug(name, slug):
    assert generate_slug(name) == slug


def test_slug_is_truncated():
    assert len(generate_slug("a" * 200)) == 60


async def test_create_restaurant_adds_default_sections(backend):
    restaurant = await create_restaurant(backend, "Cafe Sol", owner_id="owner-1")

    assert restaurant["slug"] == "cafe-sol"
    assert restaurant["published"] is False
    categories = await backend.select("categories", {"restaurant_id": restaurant["id"]})
    assert [(c["name"], c["order_index"]) for c in categories] == [("Menu", 0)]
    subcategories = await backend.select("subcategories", {"category_id": categories[0]["id"]})
    assert [(s["name"], s["order_index"]) for s in subcategories] == [("Main", 0)]


async def test_create_restaurant_retries_transient_errors(backend):
    backend.fail_next(count=2)

    restaurant = await create_restaurant(backend, "Cafe Sol")

    assert restaurant["slug"] == "cafe-sol"
    assert backend.calls[:3] == [("insert", "restaurants")] * 3


async def test_create_restaurant_gives_up_on_permanent_errors(backend):
    backend.fail_next(error=BackendError("permission denied"))

    with pytest.raises(BackendError, match="permission denied"):
        await create_restaurant(backend, "Cafe Sol")
    assert backend.calls == [("insert", "restaurants")]


async def test_create_restaurant_validation(backend):
    with pytest.raises(ValueError):
        await create_restaurant(backend, "???")

    await create_restaurant(backend, "Cafe Sol")
    with pytest.raises(UniqueViolation):
        await create_restaurant(backend, "Café Sol")


async def test_resolve_restaurant_id(backend):
    data = await create_menu(backend)
    rid = data["restaurant"]["id"]

    assert await resolve_restaurant_id(backend, "dish_options", data["options"]["small"]["id"]) == rid
    assert await resolve_restaurant_id(backend, "subcategories", data["coffee"]["id"]) == rid
    assert await resolve_restaurant_id(backend, "restaurants", rid) == rid
    assert await resolve_restaurant_id(backend, "dishes", "missing") is None
