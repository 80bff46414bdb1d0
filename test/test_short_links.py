import asyncio

import pytest

from taptab.services.backend.base import BackendError
from taptab.services.short_links import (
    LinkStatus,
    derive_short_link,
    ensure_menu_link,
    is_valid_link,
    resolve_short_link,
    sanitize_link_parts,
    short_path,
)
from test.utils.fixtures import backend
from test.utils.menu_data import create_menu


def test_derive_short_link_is_deterministic():
    first = derive_short_link("7f1c1d2e-0000-4000-8000-000000000001")
    second = derive_short_link("7f1c1d2e-0000-4000-8000-000000000001")
    other = derive_short_link("7f1c1d2e-0000-4000-8000-000000000002")

    assert first == second
    assert first != other
    restaurant_hash, menu_id = first
    assert len(restaurant_hash) == 8
    assert len(menu_id) == 5 and menu_id.isdigit()
    assert is_valid_link(restaurant_hash, menu_id)


def test_sanitize_link_parts():
    assert sanitize_link_parts("AB-cd12!", "12a34") == ("abcd12", "1234")
    assert not is_valid_link("xyz", "12345")
    assert not is_valid_link("abcdef12", "12")


async def test_ensure_menu_link_reuses_existing_link(backend):
    data = await create_menu(backend)
    rid = data["restaurant"]["id"]

    first = await ensure_menu_link(backend, rid)
    second = await ensure_menu_link(backend, rid)

    assert first["id"] == second["id"]
    assert (first["restaurant_hash"], first["menu_id"]) == derive_short_link(rid)
    assert short_path(first) == f"/m/{first['restaurant_hash']}/{first['menu_id']}"


async def test_concurrent_ensure_creates_single_link(backend):
    data = await create_menu(backend)
    rid = data["restaurant"]["id"]

    links = await asyncio.gather(*(ensure_menu_link(backend, rid) for _ in range(5)))

    assert len({link["id"] for link in links}) == 1
    assert len(await backend.select("menu_links", {"restaurant_id": rid})) == 1


async def test_resolve_published_link(backend):
    data = await create_menu(backend)
    link = await ensure_menu_link(backend, data["restaurant"]["id"])

    resolution = await resolve_short_link(backend, link["restaurant_hash"].upper(), link["menu_id"])

    assert resolution.found
    assert resolution.slug == "cafe-sol"
    assert resolution.restaurant_id == data["restaurant"]["id"]


async def test_resolve_unpublished_link(backend):
    data = await create_menu(backend, published=False)
    link = await ensure_menu_link(backend, data["restaurant"]["id"])

    resolution = await resolve_short_link(backend, link["restaurant_hash"], link["menu_id"])

    assert resolution.status == LinkStatus.UNPUBLISHED
    assert resolution.slug == "cafe-sol"


@pytest.mark.parametrize("restaurant_hash, menu_id", [
    ("abcdef12", "54321"),
    ("zz", "1"),
    ("", ""),
])
async def test_resolve_unknown_or_malformed_link(backend, restaurant_hash, menu_id):
    resolution = await resolve_short_link(backend, restaurant_hash, menu_id)
    assert resolution.status == LinkStatus.NOT_FOUND


async def test_resolve_backend_failure_is_not_found(backend):
    data = await create_menu(backend)
    link = await ensure_menu_link(backend, data["restaurant"]["id"])
    backend.fail_next(error=BackendError("connection reset", transient=True))

    resolution = await resolve_short_link(backend, link["restaurant_hash"], link["menu_id"])

    assert resolution.status == LinkStatus.NOT_FOUND
