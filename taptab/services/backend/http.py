"""
HTTP Menu Backend Implementation

Client for the service's own table API (``/api/tables``, ``/api/rpc``).
Lets the editor data layer and the seed script run outside the server
process against a live deployment.

Status codes map back onto the backend exceptions:
    404 → RecordNotFound, 409 → UniqueViolation,
    5xx / connection errors → BackendError(transient=True)
"""

import logging
from typing import Any, Optional

import httpx

from taptab.services.backend.base import (
    BaseMenuBackend,
    BackendError,
    RecordNotFound,
    UniqueViolation,
    UnknownTable,
    Row,
    check_table,
)

logger = logging.getLogger(__name__)


def encode_filters(
    filters: Optional[dict[str, Any]] = None,
    in_filters: Optional[dict[str, list]] = None,
) -> dict[str, str]:
    """Encode filters as ``col=eq.value`` / ``col=in.(a,b)`` query params."""
    params = {}
    for key, value in (filters or {}).items():
        if value is None:
            params[key] = "is.null"
        elif isinstance(value, bool):
            params[key] = f"eq.{str(value).lower()}"
        else:
            params[key] = f"eq.{value}"
    for key, values in (in_filters or {}).items():
        params[key] = f"in.({','.join(str(v) for v in values)})"
    return params


class HttpMenuBackend(BaseMenuBackend):
    """
    Remote implementation of the menu backend.

    Example:
        >>> backend = HttpMenuBackend("http://localhost:8001")
        >>> rows = await backend.select("restaurants", {"slug": "cafe-sol"})
    """

    def __init__(
        self,
        base_url: str,
        timeout: float = 10.0,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self._client = client or httpx.AsyncClient(base_url=base_url, timeout=timeout)
        logger.info(f"HttpMenuBackend initialized ({base_url})")

    @property
    def provider_name(self) -> str:
        return "http"

    async def _request(self, method: str, url: str, table: str, record_id: str = "", **kwargs):
        try:
            response = await self._client.request(method, url, **kwargs)
        except httpx.HTTPError as e:
            logger.error(f"HTTP backend: {method} {url} failed - {e}")
            raise BackendError(f"Request to {url} failed", transient=True) from e

        if response.status_code == 404:
            if table and not record_id:
                raise UnknownTable(table)
            raise RecordNotFound(table, record_id)
        if response.status_code == 409:
            detail = response.json().get("detail", {})
            columns = tuple(detail.get("columns", ())) if isinstance(detail, dict) else ()
            raise UniqueViolation(table, columns)
        if response.status_code >= 500:
            raise BackendError(f"Server error {response.status_code}", transient=True)
        if response.status_code >= 400:
            raise BackendError(f"Request rejected ({response.status_code}): {response.text}")
        if response.status_code == 204 or not response.content:
            return None
        return response.json()

    async def select(
        self,
        table: str,
        filters: Optional[dict[str, Any]] = None,
        in_filters: Optional[dict[str, list]] = None,
        order_by: Optional[str] = None,
    ) -> list[Row]:
        check_table(table)
        params = encode_filters(filters, in_filters)
        if order_by:
            params["order"] = order_by
        return await self._request("GET", f"/api/tables/{table}", table, params=params)

    async def insert(self, table: str, row: Row) -> Row:
        check_table(table)
        return await self._request("POST", f"/api/tables/{table}", table, json=row)

    async def update(self, table: str, record_id: str, updates: Row) -> Row:
        check_table(table)
        return await self._request(
            "PATCH", f"/api/tables/{table}/{record_id}", table, record_id, json=updates
        )

    async def delete(self, table: str, record_id: str) -> None:
        check_table(table)
        await self._request("DELETE", f"/api/tables/{table}/{record_id}", table, record_id)

    async def upsert(self, table: str, row: Row, on_conflict: str) -> Row:
        check_table(table)
        return await self._request(
            "POST",
            f"/api/tables/{table}/upsert",
            table,
            params={"on_conflict": on_conflict},
            json=row,
        )

    async def batch_update_order_indexes(self, table: str, updates: list[Row]) -> None:
        check_table(table)
        await self._request(
            "POST",
            "/api/rpc/batch_update_order_indexes",
            table,
            "batch",
            json={"table": table, "updates": updates},
        )

    async def get_restaurant_full_menu(self, restaurant_id: str) -> Optional[Row]:
        try:
            return await self._request(
                "GET",
                f"/api/rpc/get_restaurant_full_menu/{restaurant_id}",
                "restaurants",
                restaurant_id,
            )
        except RecordNotFound:
            return None

    async def health_check(self) -> bool:
        try:
            response = await self._client.get("/health")
            return response.status_code == 200
        except httpx.HTTPError as e:
            logger.error(f"HTTP backend: health check failed - {e}")
            return False

    async def close(self) -> None:
        await self._client.aclose()
