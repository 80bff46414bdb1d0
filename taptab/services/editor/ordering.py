"""
Drag-and-drop list helpers.
"""

from typing import Any


def move_item(items: list, from_index: int, to_index: int) -> list:
    """Return a copy of ``items`` with the element at ``from_index`` moved to ``to_index``."""
    if not 0 <= from_index < len(items):
        raise IndexError(f"from_index {from_index} out of range")
    if not 0 <= to_index < len(items):
        raise IndexError(f"to_index {to_index} out of range")
    moved = list(items)
    item = moved.pop(from_index)
    moved.insert(to_index, item)
    return moved


def reindex(rows: list[dict[str, Any]]) -> list[dict[str, Any]]:
    """Copies of ``rows`` with ``order_index`` set to 0..n-1 in list order."""
    return [{**row, "order_index": index} for index, row in enumerate(rows)]


def order_updates(rows: list[dict[str, Any]]) -> list[dict[str, Any]]:
    """Payload for ``batch_update_order_indexes``."""
    return [{"id": row["id"], "order_index": row["order_index"]} for row in rows]
