import pytest

from taptab.services.pricing import (
    format_amount,
    modifier_label,
    normalize_price,
    parse_price,
    price_label,
)


@pytest.mark.parametrize("raw, expected", [
    ("5", "5.00"),
    ("$5", "5.00"),
    ("4.5", "4.50"),
    ("12.99", "12.99"),
    ("", "0.00"),
    (None, "0.00"),
])
def test_normalize_price(raw, expected):
    assert normalize_price(raw) == expected


def test_parse_price():
    assert parse_price("$15") == 15.0
    assert parse_price("1,200.50") == 1200.5
    assert parse_price("Market price") is None
    assert parse_price(None) is None


def test_format_amount_drops_zero_decimals():
    assert format_amount(15.0) == "$15"
    assert format_amount(15.5) == "$15.50"


def test_price_label_of_plain_dish():
    assert price_label({"price": "15"}) == "$15"
    assert price_label({"price": "15.00"}) == "$15"
    assert price_label({"price": "13.5"}) == "$13.50"


def test_price_label_keeps_free_text():
    assert price_label({"price": "Market price"}) == "Market price"
    assert price_label({"price": ""}) == ""


def test_price_label_lists_distinct_option_prices():
    dish = {
        "price": "99",
        "options": [
            {"name": "Large", "price": "15.00"},
            {"name": "Small", "price": "12"},
            {"name": "Medium", "price": "15"},
        ],
    }
    assert price_label(dish) == "$12 / $15"


def test_modifier_label():
    assert modifier_label({"price": "2.00"}) == "+$2"
    assert modifier_label({"price": "0.00"}) == ""
