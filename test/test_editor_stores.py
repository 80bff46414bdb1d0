import asyncio
import importlib
import typing

from taptab.services.backend.base import BackendError
from taptab.services.editor.mutations import generate_temp_id, is_temp_id
from test.utils.fixtures import backend, session
from test.utils.menu_data import create_menu


def names(rows):
    return [row["name"] for row in rows]


async def test_create_category_appends_with_next_order_index(backend, session):
    data = await create_menu(backend)
    rid = data["restaurant"]["id"]

    result = await session.categories.create(rid, {"name": "Desserts"})

    assert result.success
    assert result.data["order_index"] == 2
    assert names(await session.categories.list(rid)) == ["Menu", "Drinks", "Desserts"]
    assert session.notifier.errors == []


async def test_failed_create_rolls_back_cache_and_notifies(backend, session):
    data = await create_menu(backend)
    rid = data["restaurant"]["id"]
    before = await session.categories.list(rid)

    backend.fail_next(error=BackendError("insert rejected"))
    result = await session.categories.create(rid, {"name": "Desserts"})

    assert not result.success
    assert result.error_message == "insert rejected"
    assert session.cache.get_data(("categories", rid)) == before
    assert not any(is_temp_id(row["id"]) for row in session.cache.get_data(("categories", rid)))
    assert session.notifier.errors[-1].title == "Failed to create category"
    assert len(await backend.select("categories", {"restaurant_id": rid})) == 2


async def test_failed_update_restores_previous_values(backend, session):
    data = await create_menu(backend)
    sub_id = data["subcategory"]["id"]
    steak = data["dishes"]["steak"]
    before = await session.dishes.list(sub_id)

    backend.fail_next()
    result = await session.dishes.update(sub_id, steak["id"], {"name": "Ribeye", "price": "30"})

    assert not result.success
    assert session.cache.get_data(("dishes", sub_id)) == before
    assert (await backend.get("dishes", steak["id"]))["name"] == "Steak"


async def test_failed_delete_restores_row(backend, session):
    data = await create_menu(backend)
    sub_id = data["subcategory"]["id"]
    before = await session.dishes.list(sub_id)

    backend.fail_next()
    result = await session.dishes.delete(sub_id, data["dishes"]["curry"]["id"])

    assert not result.success
    assert session.cache.get_data(("dishes", sub_id)) == before


async def test_delete_dish(backend, session):
    data = await create_menu(backend)
    sub_id = data["subcategory"]["id"]

    result = await session.dishes.delete(sub_id, data["dishes"]["curry"]["id"])

    assert result.success
    assert names(await session.dishes.list(sub_id)) == ["Margherita", "Steak"]


async def test_reorder_persists_contiguous_indexes(backend, session):
    data = await create_menu(backend)
    sub_id = data["subcategory"]["id"]
    await session.dishes.list(sub_id)

    result = await session.dishes.reorder(sub_id, 2, 0)

    assert result.success
    rows = await backend.select("dishes", {"subcategory_id": sub_id})
    assert names(rows) == ["Steak", "Margherita", "Vegan Curry"]
    assert [row["order_index"] for row in rows] == [0, 1, 2]


async def test_failed_reorder_restores_order(backend, session):
    data = await create_menu(backend)
    sub_id = data["subcategory"]["id"]
    before = await session.dishes.list(sub_id)

    backend.fail_next()
    result = await session.dishes.reorder(sub_id, 0, 2)

    assert not result.success
    assert session.cache.get_data(("dishes", sub_id)) == before
    assert session.notifier.errors[-1].title == "Failed to reorder dishes"
    rows = await backend.select("dishes", {"subcategory_id": sub_id})
    assert names(rows) == ["Margherita", "Vegan Curry", "Steak"]


async def test_reorder_of_uncached_list_notifies_when_fetch_fails(backend, session):
    data = await create_menu(backend)
    sub_id = data["subcategory"]["id"]

    backend.fail_next()
    result = await session.dishes.reorder(sub_id, 0, 1)

    assert not result.success
    assert result.error_message == "Simulated backend failure"
    assert session.notifier.errors[-1].title == "Failed to reorder dishes"
    assert ("batch_update_order_indexes", "dishes") not in backend.calls


async def test_reorder_out_of_range_is_rejected(backend, session):
    data = await create_menu(backend)
    sub_id = data["subcategory"]["id"]
    before = await session.dishes.list(sub_id)

    result = await session.dishes.reorder(sub_id, 0, 5)

    assert not result.success
    assert result.error_message == "Cannot move dish from 0 to 5"
    assert session.notifier.errors[-1].title == "Failed to reorder dishes"
    assert session.cache.get_data(("dishes", sub_id)) == before
    assert ("batch_update_order_indexes", "dishes") not in backend.calls


async def test_reorder_of_unsaved_rows_skips_backend(backend, session):
    sub_id = "sub-1"
    session.cache.set_data(("dishes", sub_id), [
        {"id": generate_temp_id(), "name": "Soup", "subcategory_id": sub_id, "order_index": 0},
        {"id": generate_temp_id(), "name": "Salad", "subcategory_id": sub_id, "order_index": 1},
    ])

    result = await session.dishes.reorder(sub_id, 1, 0)

    assert result.success
    assert ("batch_update_order_indexes", "dishes") not in backend.calls
    assert session.notifier.errors == []


async def test_reorder_around_unsaved_row_keeps_saved_indexes_contiguous(backend, session):
    data = await create_menu(backend)
    sub_id = data["subcategory"]["id"]
    rows = await session.dishes.list(sub_id)
    pending = {"id": generate_temp_id(), "name": "Soup", "subcategory_id": sub_id, "order_index": 3}
    session.cache.set_data(("dishes", sub_id), [*rows, pending])

    result = await session.dishes.reorder(sub_id, 3, 0)

    assert result.success
    saved = await backend.select("dishes", {"subcategory_id": sub_id})
    assert names(saved) == ["Margherita", "Vegan Curry", "Steak"]
    assert [row["order_index"] for row in saved] == [0, 1, 2]


def test_store_annotations_resolve():
    stores = importlib.import_module("taptab.services.editor.stores")

    for method in (
        stores.EntityStore.invalidation_keys,
        stores.DishStore.invalidation_keys,
        stores.DishStore.list_with_options,
        stores.OptionStore.invalidation_keys,
    ):
        assert typing.get_origin(typing.get_type_hints(method)["return"]) is list


async def test_dish_requires_subcategory_and_name(backend, session):
    no_parent = await session.dishes.create(None, {"name": "Soup"})
    no_name = await session.dishes.create("sub-1", {"name": "  "})

    assert not no_parent.success
    assert no_parent.error_message == "Dishes must belong to a subcategory"
    assert not no_name.success
    assert backend.calls == []


async def test_option_mutation_invalidates_dish_aggregates(backend, session):
    data = await create_menu(backend)
    rid = data["restaurant"]["id"]
    sub_id = data["subcategory"]["id"]
    pizza_id = data["dishes"]["pizza"]["id"]

    with_options = await session.dishes.list_with_options(sub_id)
    assert names(with_options[0]["options"]) == ["Small", "Large"]
    await session.full_menu(rid)
    await session.menu_store.set(rid, {"stale": True})

    result = await session.options.create(pizza_id, {"name": "Family", "price": "22"})

    assert result.success
    assert result.data["price"] == "22.00"
    refreshed = session.cache.get_data(("subcategory-dishes-with-options", sub_id))
    assert names(refreshed[0]["options"]) == ["Small", "Large", "Family"]
    menu = session.cache.get_data(("full-menu", rid))
    pizza = menu["categories"][0]["subcategories"][0]["dishes"][0]
    assert names(pizza["options"]) == ["Small", "Large", "Family"]
    assert await session.menu_store.get(rid) is None


async def test_boolean_field_updates_commit_immediately(backend, session):
    data = await create_menu(backend)
    sub_id = data["subcategory"]["id"]
    steak_id = data["dishes"]["steak"]["id"]

    result = await session.dishes.update_field(sub_id, steak_id, "is_spicy", True)

    assert result.success
    assert (await backend.get("dishes", steak_id))["is_spicy"] is True


async def test_text_field_updates_are_debounced(backend, session):
    data = await create_menu(backend)
    sub_id = data["subcategory"]["id"]
    steak_id = data["dishes"]["steak"]["id"]
    await session.dishes.list(sub_id)

    for name in ("R", "Ri", "Rib", "Ribeye"):
        assert await session.dishes.update_field(sub_id, steak_id, "name", name) is None

    updates_before = [call for call in backend.calls if call == ("update", "dishes")]
    await asyncio.sleep(0.15)
    await session.debouncer.wait_idle()

    updates = [call for call in backend.calls if call == ("update", "dishes")]
    assert len(updates) - len(updates_before) == 1
    assert (await backend.get("dishes", steak_id))["name"] == "Ribeye"


async def test_flush_sends_pending_updates(backend, session):
    data = await create_menu(backend)
    sub_id = data["subcategory"]["id"]
    curry_id = data["dishes"]["curry"]["id"]

    await session.dishes.update_field(sub_id, curry_id, "description", "Coconut and lime")
    results = await session.flush()

    assert len(results) == 1 and results[0].success
    assert (await backend.get("dishes", curry_id))["description"] == "Coconut and lime"


async def test_restaurant_store_create_and_update(backend, session):
    created = await session.restaurants.create("owner-9", "Blue Door", tagline="Brunch")

    assert created.success
    assert created.data["slug"] == "blue-door"
    assert names(await session.restaurants.list("owner-9")) == ["Blue Door"]
    assert session.notifier.items[-1].title == "Restaurant created successfully!"

    updated = await session.restaurants.update(created.data["id"], {"show_prices": False})
    assert updated.success
    assert (await session.restaurants.get(created.data["id"]))["show_prices"] is False


async def test_restaurant_store_create_reports_duplicate_slug(backend, session):
    await session.restaurants.create("owner-9", "Blue Door")
    duplicate = await session.restaurants.create("owner-9", "Blue Door")

    assert not duplicate.success
    assert session.notifier.errors[-1].title == "Failed to create restaurant"


async def test_restaurant_store_delete_rolls_back_on_failure(backend, session):
    created = await session.restaurants.create("owner-9", "Blue Door")
    before = await session.restaurants.list("owner-9")

    backend.fail_next()
    result = await session.restaurants.delete(created.data["id"])

    assert not result.success
    assert session.cache.get_data(("restaurants", "owner-9")) == before

    result = await session.restaurants.delete(created.data["id"])
    assert result.success
    assert await backend.select("categories", {"restaurant_id": created.data["id"]}) == []
