import pytest
from pydantic import ValidationError

from taptab.core.sanitize import sanitize_input, sanitize_url
from taptab.schemas import ReorderRequest, RestaurantCreate, sanitize_row


def test_sanitize_input():
    assert sanitize_input("  <script>alert(1)</script>Soup ") == "alert(1)Soup"
    assert sanitize_input("x" * 10, max_length=4) == "xxxx"
    assert sanitize_input(None) is None


@pytest.mark.parametrize("url, expected", [
    ("https://cdn.example.com/a.png", "https://cdn.example.com/a.png"),
    ("/static/uploads/dish-images/a.png", "/static/uploads/dish-images/a.png"),
    ("javascript:alert(1)", ""),
    ("//evil.example.com/a.png", ""),
    ("   ", ""),
])
def test_sanitize_url(url, expected):
    assert sanitize_url(url) == expected


def test_sanitize_row_only_touches_known_fields():
    row = sanitize_row({
        "name": "<i>Pho</i>",
        "price": " 12 ",
        "image_url": "data:image/png;base64,xxx",
        "allergens": ["<soy>"],
    })

    assert row == {"name": "Pho", "price": "12", "image_url": None, "allergens": ["<soy>"]}


def test_restaurant_create_cleans_fields():
    data = RestaurantCreate(name=" <b>Cafe Sol</b> ", hero_image_url="javascript:void(0)")

    assert data.name == "Cafe Sol"
    assert data.hero_image_url is None


def test_restaurant_create_rejects_markup_only_name():
    with pytest.raises(ValidationError):
        RestaurantCreate(name="<br>")


def test_reorder_request_validation():
    with pytest.raises(ValidationError):
        ReorderRequest(table="dishes", updates=[])
    with pytest.raises(ValidationError):
        ReorderRequest(table="dishes", updates=[{"id": "a", "order_index": -1}])
