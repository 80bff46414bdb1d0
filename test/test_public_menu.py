import pytest

from taptab.services.backend.base import BackendError
from taptab.services.full_menu import FullMenuLoader
from taptab.services.menu_cache import MemoryMenuStore
from taptab.services.menu_filter import FilterSelection
from taptab.services.public_menu import MenuStatus, clean_slug, load_public_menu
from test.utils.fixtures import backend
from test.utils.menu_data import create_menu


@pytest.fixture
def loader(backend):
    return FullMenuLoader(backend, MemoryMenuStore())


@pytest.mark.parametrize("raw, slug", [
    ("cafe-sol", "cafe-sol"),
    ("  :Menu/Cafe-Sol// ", "cafe-sol"),
    ("::cafe-sol", "cafe-sol"),
    ("menu//cafe-sol", "cafe-sol"),
    ("", ""),
    (None, ""),
])
def test_clean_slug(raw, slug):
    assert clean_slug(raw) == slug


async def test_published_menu(backend, loader):
    await create_menu(backend)

    menu = await load_public_menu(backend, loader, "cafe-sol")

    assert menu.status == MenuStatus.FOUND
    assert menu.visible_dish_count == 4
    pizza = menu.categories[0]["subcategories"][0]["dishes"][0]
    assert pizza["price_label"] == "$12 / $15"
    assert pizza["has_options"] is True
    assert pizza["modifiers"][0]["price_label"] == "+$2"
    assert menu.theme is not None


async def test_filters_are_applied(backend, loader):
    await create_menu(backend)

    menu = await load_public_menu(
        backend, loader, "cafe-sol", FilterSelection.from_query(exclude="gluten", diet="vegan")
    )

    main = menu.categories[0]["subcategories"][0]
    assert [d["name"] for d in main["dishes"]] == ["Vegan Curry"]
    assert menu.categories[1]["subcategories"][0]["dishes"] == []
    assert menu.visible_dish_count == 1


async def test_unknown_and_unpublished(backend, loader):
    await create_menu(backend, published=False)

    assert (await load_public_menu(backend, loader, "nowhere")).status == MenuStatus.NOT_FOUND
    draft = await load_public_menu(backend, loader, "cafe-sol")
    assert draft.status == MenuStatus.UNPUBLISHED
    assert draft.categories == []


async def test_backend_failure_is_an_error_status(backend, loader):
    await create_menu(backend)
    backend.fail_next(error=BackendError("connection reset"))

    menu = await load_public_menu(backend, loader, "cafe-sol")

    assert menu.status == MenuStatus.ERROR


async def test_full_menu_failure_is_an_error_status(backend, loader, monkeypatch):
    await create_menu(backend)

    async def broken_full_menu(_restaurant_id):
        raise BackendError("aggregate timed out", transient=True)

    monkeypatch.setattr(backend, "get_restaurant_full_menu", broken_full_menu)
    menu = await load_public_menu(backend, loader, "cafe-sol")

    assert menu.status == MenuStatus.ERROR
    assert menu.restaurant["slug"] == "cafe-sol"
