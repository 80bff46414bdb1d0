"""
Short links: ``/m/<restaurant_hash>/<menu_id>``.

The pair is derived deterministically from the restaurant id, so the same
restaurant always gets the same link and printed QR codes stay valid.
Exactly one ``menu_links`` row exists per restaurant: it is ensured
(read, else upsert on ``restaurant_id``), never blindly created.
"""

import hashlib
import logging
import re
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from taptab.services.backend.base import BaseMenuBackend, BackendError, Row, UniqueViolation

logger = logging.getLogger(__name__)

HASH_RE = re.compile(r"^[a-f0-9]{6,12}$")
MENU_ID_RE = re.compile(r"^\d{3,8}$")


class LinkStatus(str, Enum):
    FOUND = "found"
    NOT_FOUND = "not_found"
    UNPUBLISHED = "unpublished"


@dataclass
class LinkResolution:
    status: LinkStatus
    restaurant_id: Optional[str] = None
    slug: Optional[str] = None

    @property
    def found(self) -> bool:
        return self.status == LinkStatus.FOUND


def derive_short_link(restaurant_id: str) -> tuple[str, str]:
    """
    ``(restaurant_hash, menu_id)`` of a restaurant.

    The hash is the first 8 hex characters of SHA-256 over the id; the
    menu id is the next 8 hex characters reduced to a zero-padded
    five-digit number.
    """
    digest = hashlib.sha256(restaurant_id.encode("utf-8")).hexdigest()
    restaurant_hash = digest[:8]
    menu_id = f"{int(digest[8:16], 16) % 100000:05d}"
    return restaurant_hash, menu_id


def short_path(link: Row) -> str:
    return f"/m/{link['restaurant_hash']}/{link['menu_id']}"


async def ensure_menu_link(backend: BaseMenuBackend, restaurant_id: str) -> Row:
    """
    Return the restaurant's active link, creating it on first use.

    Concurrent callers converge on a single row: the write is an upsert on
    ``restaurant_id`` and a unique violation means another caller won, in
    which case the winner's row is returned.
    """
    existing = await backend.select_one(
        "menu_links", {"restaurant_id": restaurant_id, "active": True}
    )
    if existing:
        return existing

    restaurant_hash, menu_id = derive_short_link(restaurant_id)
    row = {
        "restaurant_id": restaurant_id,
        "restaurant_hash": restaurant_hash,
        "menu_id": menu_id,
        "active": True,
    }
    try:
        link = await backend.upsert("menu_links", row, on_conflict="restaurant_id")
    except UniqueViolation:
        winner = await backend.select_one("menu_links", {"restaurant_id": restaurant_id})
        if winner is None:
            raise
        logger.debug(f"Short link for {restaurant_id} created concurrently, reusing it")
        return winner

    logger.info(f"Short link ensured for {restaurant_id}: {short_path(link)}")
    return link


def sanitize_link_parts(restaurant_hash: str, menu_id: str) -> tuple[str, str]:
    clean_hash = re.sub(r"[^a-z0-9]", "", (restaurant_hash or "").lower())
    clean_id = re.sub(r"[^0-9]", "", menu_id or "")
    return clean_hash, clean_id


def is_valid_link(restaurant_hash: str, menu_id: str) -> bool:
    return bool(HASH_RE.match(restaurant_hash)) and bool(MENU_ID_RE.match(menu_id))


async def resolve_short_link(
    backend: BaseMenuBackend, restaurant_hash: str, menu_id: str
) -> LinkResolution:
    """
    Resolve a short link to its restaurant.

    Never raises: malformed input, missing rows and backend errors all
    resolve to NOT_FOUND; an existing but unpublished restaurant resolves
    to UNPUBLISHED.
    """
    restaurant_hash, menu_id = sanitize_link_parts(restaurant_hash, menu_id)
    if not is_valid_link(restaurant_hash, menu_id):
        return LinkResolution(LinkStatus.NOT_FOUND)

    try:
        link = await backend.select_one("menu_links", {
            "restaurant_hash": restaurant_hash,
            "menu_id": menu_id,
            "active": True,
        })
        if link is None:
            return LinkResolution(LinkStatus.NOT_FOUND)

        restaurant = await backend.select_one("restaurants", {"id": link["restaurant_id"]})
    except BackendError as e:
        logger.error(f"Short link lookup failed for {restaurant_hash}/{menu_id}: {e}")
        return LinkResolution(LinkStatus.NOT_FOUND)

    if restaurant is None:
        return LinkResolution(LinkStatus.NOT_FOUND)
    if not restaurant.get("published"):
        return LinkResolution(LinkStatus.UNPUBLISHED, restaurant["id"], restaurant["slug"])
    return LinkResolution(LinkStatus.FOUND, restaurant["id"], restaurant["slug"])
