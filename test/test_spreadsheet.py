from pathlib import Path

import pandas as pd
import pytest

from taptab.services.spreadsheet import (
    COLUMNS,
    SpreadsheetError,
    export_menu_file,
    import_rows,
    parse_allergens,
    parse_boolean,
    read_rows,
    to_excel_bytes,
)
from test.utils.fixtures import backend
from test.utils.menu_data import create_menu

CSV = (
    "Category,Subcategory,Name,Description,Price,Calories,Allergens,Vegan,Spicy,Chef's Pick\n"
    "Mains,Grill,Burger,Beef patty,14,850,\"Gluten, Dairy\",no,no,yes\n"
    "Mains,Grill,Halloumi Skewer,,12.5,,dairy,no,yes,no\n"
    "Desserts,Cakes,Carrot Cake,,6,,,yes,,\n"
    ",,Bread Basket,,,,gluten,,,\n"
)


@pytest.mark.parametrize("value, expected", [
    ("yes", True), ("TRUE", True), ("1", True), (1.0, True), (True, True),
    ("no", False), ("", False), (None, False), (0.0, False),
])
def test_parse_boolean(value, expected):
    assert parse_boolean(value) is expected


def test_parse_allergens():
    assert parse_allergens(" Gluten, dairy ,,") == ["gluten", "dairy"]
    assert parse_allergens(None) == []


def test_read_rows_csv():
    rows = read_rows(CSV.encode(), "menu.csv")

    assert len(rows) == 4
    assert rows[0]["Name"] == "Burger"
    assert rows[3]["Category"] is None


def test_read_rows_rejects_other_files():
    with pytest.raises(SpreadsheetError):
        read_rows(b"%PDF", "menu.pdf")
    with pytest.raises(SpreadsheetError):
        read_rows(b"not a workbook", "menu.xlsx")


async def test_import_creates_missing_sections(backend):
    data = await create_menu(backend)
    rid = data["restaurant"]["id"]

    result = await import_rows(backend, rid, read_rows(CSV.encode(), "menu.csv"))

    assert result.imported == 4
    assert result.created_categories == ["Mains", "Desserts"]
    assert result.created_subcategories == ["Grill", "Cakes"]

    categories = await backend.select("categories", {"restaurant_id": rid})
    assert [(c["name"], c["order_index"]) for c in categories] == [
        ("Menu", 0), ("Drinks", 1), ("Mains", 2), ("Desserts", 3),
    ]
    grill = await backend.select_one("subcategories", {"category_id": categories[2]["id"]})
    burger, skewer = await backend.select("dishes", {"subcategory_id": grill["id"]})
    assert burger["price"] == "14"
    assert burger["calories"] == 850
    assert burger["allergens"] == ["gluten", "dairy"]
    assert burger["is_chef_recommendation"] is True
    assert skewer["is_spicy"] is True
    assert skewer["order_index"] == 1

    main_dishes = await backend.select("dishes", {"subcategory_id": data["subcategory"]["id"]})
    assert [(d["name"], d["order_index"]) for d in main_dishes][-1] == ("Bread Basket", 3)
    assert main_dishes[-1]["price"] == "0"


async def test_import_matches_existing_sections_case_insensitively(backend):
    data = await create_menu(backend)
    rows = [{"Category": "drinks", "Subcategory": "COFFEE", "Name": "Latte", "Price": "4.5"}]

    result = await import_rows(backend, data["restaurant"]["id"], rows)

    assert result.created_categories == []
    coffee = await backend.select("dishes", {"subcategory_id": data["coffee"]["id"]})
    assert [d["name"] for d in coffee] == ["Espresso", "Latte"]


async def test_import_without_any_subcategory_fails(backend):
    restaurant = await backend.insert("restaurants", {"name": "Empty", "slug": "empty"})

    with pytest.raises(SpreadsheetError, match="No subcategory"):
        await import_rows(backend, restaurant["id"], [{"Name": "Soup"}])


async def test_export_file(backend, tmp_path):
    data = await create_menu(backend)
    menu = await backend.get_restaurant_full_menu(data["restaurant"]["id"])

    result = export_menu_file(menu, str(tmp_path))

    assert result["success"] is True
    assert result["message"] == "4 dishes exported"
    df = pd.read_excel(Path(result["path"]), engine="openpyxl")
    assert list(df.columns) == COLUMNS
    assert df["Name"].tolist() == ["Margherita", "Vegan Curry", "Steak", "Espresso"]
    assert df.loc[1, "Vegan"] == "yes"


async def test_export_then_import_keeps_dishes(backend):
    data = await create_menu(backend)
    menu = await backend.get_restaurant_full_menu(data["restaurant"]["id"])
    other = await backend.insert("restaurants", {"name": "Copy", "slug": "copy"})

    result = await import_rows(backend, other["id"], read_rows(to_excel_bytes(menu), "menu.xlsx"))

    assert result.imported == 4
    copy = await backend.get_restaurant_full_menu(other["id"])
    curry = copy["categories"][0]["subcategories"][0]["dishes"][1]
    assert curry["name"] == "Vegan Curry"
    assert curry["price"] == "13.50"
    assert curry["is_vegan"] and curry["is_spicy"] and curry["is_new"]
