"""
Price normalization and display.

Prices are stored as the strings owners type. Option and modifier prices
are normalized on write (``"5"`` → ``"5.00"``); dish prices are kept
verbatim so free text such as "Market price" survives.
"""

import re
from typing import Any, Optional

_NON_PRICE_CHARS = re.compile(r"[^0-9.]")
_AMOUNT_RE = re.compile(r"^\$?\s*(\d+(?:\.\d+)?|\.\d+)$")


def normalize_price(price: Optional[str]) -> str:
    """
    Permissive normalization: keep digits and dots, pad to two decimals.

    >>> normalize_price("$5")
    '5.00'
    >>> normalize_price("4.5")
    '4.50'
    >>> normalize_price("free")
    '0.00'
    """
    normalized = _NON_PRICE_CHARS.sub("", price or "")
    if normalized and "." not in normalized:
        normalized += ".00"
    elif "." in normalized and len(normalized.split(".")[1]) == 1:
        normalized += "0"
    return normalized or "0.00"


def parse_price(price: Any) -> Optional[float]:
    """Numeric value of a price string, or None when it is not a plain amount."""
    if price is None:
        return None
    if isinstance(price, (int, float)):
        return float(price)
    text = str(price).strip().replace(",", "")
    match = _AMOUNT_RE.match(text)
    if not match:
        return None
    return float(match.group(1))


def format_amount(amount: float) -> str:
    """``15.0`` → ``$15``; ``15.5`` → ``$15.50``."""
    if float(amount).is_integer():
        return f"${int(amount)}"
    return f"${amount:.2f}"


def price_label(dish: dict) -> str:
    """
    Display label of a dish.

    With options: the distinct option prices in ascending order joined by
    `` / ``. Without: the dish price, formatted when numeric and shown
    verbatim otherwise.
    """
    options = dish.get("options") or []
    amounts = sorted({
        amount for amount in (parse_price(normalize_price(o.get("price"))) for o in options)
        if amount is not None
    })
    if amounts:
        return " / ".join(format_amount(amount) for amount in amounts)

    raw = dish.get("price")
    amount = parse_price(raw)
    if amount is not None:
        return format_amount(amount)
    return str(raw or "").strip()


def modifier_label(modifier: dict) -> str:
    amount = parse_price(modifier.get("price"))
    if not amount:
        return ""
    return f"+{format_amount(amount)}"
