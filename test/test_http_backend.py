import pytest

from taptab.services.backend import get_menu_backend
from taptab.services.backend.base import RecordNotFound, UniqueViolation, UnknownTable
from taptab.services.backend.http import encode_filters
from taptab.services.editor import EditorSession
from test.utils.fixtures import http_backend
from test.utils.menu_data import create_menu


def test_encode_filters():
    params = encode_filters({"restaurant_id": "r1", "active": True, "deleted_at": None}, {"id": ["a", "b"]})

    assert params == {
        "restaurant_id": "eq.r1",
        "active": "eq.true",
        "deleted_at": "is.null",
        "id": "in.(a,b)",
    }


async def test_round_trip_through_table_api(http_backend):
    data = await create_menu(http_backend)

    menu = await http_backend.get_restaurant_full_menu(data["restaurant"]["id"])
    assert [c["name"] for c in menu["categories"]] == ["Menu", "Drinks"]
    assert await http_backend.get_restaurant_full_menu("missing") is None

    stored = await get_menu_backend().get("restaurants", data["restaurant"]["id"])
    assert stored["published"] is True


async def test_errors_map_to_backend_exceptions(http_backend):
    await create_menu(http_backend)

    with pytest.raises(UniqueViolation) as exc:
        await http_backend.insert("restaurants", {"name": "Again", "slug": "cafe-sol"})
    assert exc.value.columns == ("slug",)
    with pytest.raises(RecordNotFound):
        await http_backend.update("dishes", "missing", {"name": "x"})
    with pytest.raises(UnknownTable):
        await http_backend.select("orders")


async def test_editor_session_over_http(http_backend):
    data = await create_menu(http_backend)
    session = EditorSession(http_backend, debounce_seconds=0.05)
    sub_id = data["subcategory"]["id"]

    await session.dishes.list(sub_id)
    result = await session.dishes.reorder(sub_id, 2, 0)

    assert result.success
    rows = await http_backend.select("dishes", {"subcategory_id": sub_id})
    assert [r["name"] for r in rows] == ["Steak", "Margherita", "Vegan Curry"]
    await session.close()
