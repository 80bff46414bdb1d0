"""
Menu Spreadsheet Import/Export

Import: one dish per row. Columns (header case-insensitive):
    Category, Subcategory, Name, Description, Price, Calories, Allergens,
    Vegetarian, Vegan, Spicy, New, Special, Popular, Chef's Pick

Category and subcategory are matched by case-insensitive name and created
when missing; rows without them go to the default subcategory. Booleans
accept yes/true/1, allergens are comma-separated.

Export: the full menu flattened to the same columns, written with a file
lock so concurrent exports of the same restaurant never interleave.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from io import BytesIO
from pathlib import Path
from typing import Any, Optional

import pandas as pd
from filelock import FileLock, Timeout

from taptab.core.config import get_settings
from taptab.services.backend.base import BaseMenuBackend

logger = logging.getLogger(__name__)

COLUMNS = [
    "Category",
    "Subcategory",
    "Name",
    "Description",
    "Price",
    "Calories",
    "Allergens",
    "Vegetarian",
    "Vegan",
    "Spicy",
    "New",
    "Special",
    "Popular",
    "Chef's Pick",
]

FLAG_COLUMNS = {
    "Vegetarian": "is_vegetarian",
    "Vegan": "is_vegan",
    "Spicy": "is_spicy",
    "New": "is_new",
    "Special": "is_special",
    "Popular": "is_popular",
    "Chef's Pick": "is_chef_recommendation",
}


class SpreadsheetError(ValueError):
    pass


@dataclass
class ImportResult:
    imported: int = 0
    created_categories: list[str] = field(default_factory=list)
    created_subcategories: list[str] = field(default_factory=list)


# =============================================================================
# CELL PARSING
# =============================================================================

def parse_boolean(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if value is None:
        return False
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    return str(value).strip().lower() in ("yes", "true", "1")


def parse_allergens(value: Any) -> list[str]:
    if not value:
        return []
    return [a.strip().lower() for a in str(value).split(",") if a.strip()]


def parse_calories(value: Any) -> Optional[int]:
    if value is None or value == "":
        return None
    try:
        return int(float(value))
    except (TypeError, ValueError):
        return None


def format_price_cell(value: Any) -> str:
    if value is None or value == "":
        return "0"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value).strip()


def _cell(row: dict, column: str) -> Any:
    """Value of ``column`` matched case-insensitively; blank cells are None."""
    for key, value in row.items():
        if str(key).strip().lower() == column.lower():
            if isinstance(value, str) and not value.strip():
                return None
            return value
    return None


def read_rows(data: bytes, filename: str) -> list[dict]:
    """
    Parse an uploaded .xlsx/.xls/.csv file into row dicts.

    Raises:
        SpreadsheetError: If the file cannot be read
    """
    suffix = Path(filename or "").suffix.lower()
    try:
        if suffix == ".csv":
            df = pd.read_csv(BytesIO(data), dtype=object)
        elif suffix in (".xlsx", ".xls"):
            df = pd.read_excel(BytesIO(data), engine="openpyxl", dtype=object)
        else:
            raise SpreadsheetError("Upload an .xlsx or .csv file")
    except SpreadsheetError:
        raise
    except Exception as e:
        raise SpreadsheetError(f"Could not read spreadsheet: {e}") from e

    df = df.astype(object).where(pd.notna(df), None)
    return df.to_dict("records")


# =============================================================================
# IMPORT
# =============================================================================

async def import_rows(
    backend: BaseMenuBackend,
    restaurant_id: str,
    rows: list[dict],
    default_subcategory_id: Optional[str] = None,
) -> ImportResult:
    """
    Create one dish per row, creating categories and subcategories on demand.

    New rows are appended after the existing rows of their parent so
    ``order_index`` stays contiguous.

    Raises:
        SpreadsheetError: If a row has no category/subcategory and no default exists
    """
    result = ImportResult()

    categories = await backend.select("categories", {"restaurant_id": restaurant_id})
    category_ids = {c["name"].strip().lower(): c["id"] for c in categories}
    subcategories = (
        await backend.select("subcategories", in_filters={"category_id": [c["id"] for c in categories]})
        if categories else []
    )
    subcategory_ids = {
        (s["category_id"], s["name"].strip().lower()): s["id"] for s in subcategories
    }
    sub_counts: dict[str, int] = {}
    for sub in subcategories:
        sub_counts[sub["category_id"]] = sub_counts.get(sub["category_id"], 0) + 1

    if default_subcategory_id is None and subcategories:
        default_subcategory_id = subcategories[0]["id"] if len(categories) else None

    dish_counts: dict[str, int] = {}

    async def next_dish_index(subcategory_id: str) -> int:
        if subcategory_id not in dish_counts:
            existing = await backend.select("dishes", {"subcategory_id": subcategory_id})
            dish_counts[subcategory_id] = len(existing)
        index = dish_counts[subcategory_id]
        dish_counts[subcategory_id] += 1
        return index

    for row in rows:
        target_subcategory_id = default_subcategory_id
        category_name = _cell(row, "Category")
        subcategory_name = _cell(row, "Subcategory")

        if category_name and subcategory_name:
            category_name = str(category_name).strip()
            subcategory_name = str(subcategory_name).strip()

            category_id = category_ids.get(category_name.lower())
            if category_id is None:
                category = await backend.insert("categories", {
                    "restaurant_id": restaurant_id,
                    "name": category_name,
                    "order_index": len(category_ids),
                })
                category_id = category_ids[category_name.lower()] = category["id"]
                result.created_categories.append(category_name)

            target_subcategory_id = subcategory_ids.get((category_id, subcategory_name.lower()))
            if target_subcategory_id is None:
                subcategory = await backend.insert("subcategories", {
                    "category_id": category_id,
                    "name": subcategory_name,
                    "order_index": sub_counts.get(category_id, 0),
                })
                sub_counts[category_id] = sub_counts.get(category_id, 0) + 1
                target_subcategory_id = subcategory["id"]
                subcategory_ids[(category_id, subcategory_name.lower())] = target_subcategory_id
                result.created_subcategories.append(subcategory_name)

        if not target_subcategory_id:
            raise SpreadsheetError("No subcategory specified for import")

        dish = {
            "subcategory_id": target_subcategory_id,
            "name": str(_cell(row, "Name") or "Unnamed Dish").strip(),
            "description": str(_cell(row, "Description") or "").strip(),
            "price": format_price_cell(_cell(row, "Price")),
            "calories": parse_calories(_cell(row, "Calories")),
            "allergens": parse_allergens(_cell(row, "Allergens")),
            "order_index": await next_dish_index(target_subcategory_id),
        }
        for column, field_name in FLAG_COLUMNS.items():
            value = _cell(row, column)
            if value is None and column == "Chef's Pick":
                value = _cell(row, "chef")
            dish[field_name] = parse_boolean(value)

        await backend.insert("dishes", dish)
        result.imported += 1

    logger.info(
        f"Imported {result.imported} dishes into {restaurant_id} "
        f"({len(result.created_categories)} new categories, "
        f"{len(result.created_subcategories)} new subcategories)"
    )
    return result


# =============================================================================
# EXPORT
# =============================================================================

def menu_to_rows(full_menu: dict) -> list[dict]:
    rows = []
    for category in full_menu.get("categories") or []:
        for sub in category.get("subcategories") or []:
            for dish in sub.get("dishes") or []:
                row = {
                    "Category": category["name"],
                    "Subcategory": sub["name"],
                    "Name": dish.get("name"),
                    "Description": dish.get("description") or "",
                    "Price": dish.get("price") or "",
                    "Calories": dish.get("calories"),
                    "Allergens": ", ".join(dish.get("allergens") or []),
                }
                for column, field_name in FLAG_COLUMNS.items():
                    row[column] = "yes" if dish.get(field_name) else "no"
                rows.append(row)
    return rows


def to_excel_bytes(full_menu: dict) -> bytes:
    buffer = BytesIO()
    pd.DataFrame(menu_to_rows(full_menu), columns=COLUMNS).to_excel(
        buffer, index=False, engine="openpyxl"
    )
    return buffer.getvalue()


def export_menu_file(full_menu: dict, data_directory: Optional[str] = None) -> dict[str, Any]:
    """Write the menu to ``<data_directory>/menu_<slug>.xlsx`` under a file lock."""
    settings = get_settings()
    data_dir = Path(data_directory or settings.data_directory)
    data_dir.mkdir(parents=True, exist_ok=True)

    slug = (full_menu.get("restaurant") or {}).get("slug") or "menu"
    file_path = data_dir / f"menu_{slug}.xlsx"
    lock_path = data_dir / f"menu_{slug}.xlsx.lock"

    result = {"success": False, "message": "", "path": str(file_path), "exported_at": None}

    try:
        with FileLock(str(lock_path), timeout=settings.excel_lock_timeout):
            logger.debug(f"Lock acquired for {file_path}")
            df = pd.DataFrame(menu_to_rows(full_menu), columns=COLUMNS)
            df.to_excel(str(file_path), index=False, engine="openpyxl")
            result["success"] = True
            result["message"] = f"{len(df)} dishes exported"
            result["exported_at"] = datetime.now().isoformat()
        logger.info(f"Menu {slug} exported to {file_path}")

    except Timeout:
        result["message"] = f"Lock timeout ({settings.excel_lock_timeout}s)"
        logger.error(f"Lock timeout exporting {slug}")

    return result
