"""
Mock Menu Backend Implementation

In-memory stand-in for the relational store, used in development mode and
throughout the test suite.

Behavior:
    - Enforces the same unique keys and cascading deletes as the database
    - Fills unset columns with the model defaults
    - Simulates latency and random failures (both off by default)
    - ``fail_next`` makes the next N calls fail deterministically, which is
      how rollback paths are exercised in tests
"""

import asyncio
import copy
import logging
import random
import uuid
from datetime import datetime, timezone
from typing import Any, Optional

from taptab.models import MODELS_BY_TABLE
from taptab.services.backend.base import (
    BaseMenuBackend,
    BackendError,
    RecordNotFound,
    UniqueViolation,
    Row,
    CHILD_TABLES,
    TIMESTAMPED_TABLES,
    UNIQUE_KEYS,
    check_table,
    default_order,
    sort_rows,
)

logger = logging.getLogger(__name__)


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _column_defaults(table: str) -> Row:
    """Scalar column defaults of the SQLAlchemy model, None for the rest."""
    defaults = {}
    for column in MODELS_BY_TABLE[table].__table__.columns:
        if column.default is not None and column.default.is_scalar:
            defaults[column.name] = column.default.arg
        else:
            defaults[column.name] = None
    return defaults


class MockMenuBackend(BaseMenuBackend):
    """
    In-memory implementation of the menu backend.

    Attributes:
        failure_rate: Probability of a simulated transient failure (0.0-1.0)
        min_latency: Minimum simulated response time in seconds
        max_latency: Maximum simulated response time in seconds

    Example:
        >>> backend = MockMenuBackend()
        >>> backend.fail_next()
        >>> await backend.insert("categories", {...})  # raises BackendError
    """

    def __init__(
        self,
        failure_rate: float = 0.0,
        min_latency: float = 0.0,
        max_latency: float = 0.0,
    ):
        self.failure_rate = failure_rate
        self.min_latency = min_latency
        self.max_latency = max_latency
        self._tables: dict[str, dict[str, Row]] = {table: {} for table in MODELS_BY_TABLE}
        self._forced_failures: list[Exception] = []
        self.calls: list[tuple[str, str]] = []

        logger.info(
            f"MockMenuBackend initialized "
            f"(failure_rate={failure_rate:.0%}, "
            f"latency={min_latency}-{max_latency}s)"
        )

    @property
    def provider_name(self) -> str:
        return "mock"

    # =========================================================================
    # FAILURE SIMULATION
    # =========================================================================

    def fail_next(self, count: int = 1, error: Optional[Exception] = None) -> None:
        """Make the next ``count`` backend calls raise ``error``."""
        for _ in range(count):
            self._forced_failures.append(
                error or BackendError("Simulated backend failure", transient=True)
            )

    async def _simulate(self, operation: str, table: str) -> None:
        self.calls.append((operation, table))
        if self.max_latency > 0:
            await asyncio.sleep(random.uniform(self.min_latency, self.max_latency))
        if self._forced_failures:
            error = self._forced_failures.pop(0)
            logger.debug(f"Mock: forced failure on {operation} {table}")
            raise error
        if self.failure_rate and random.random() < self.failure_rate:
            logger.debug(f"Mock: random failure on {operation} {table}")
            raise BackendError("Simulated backend outage", transient=True)

    # =========================================================================
    # HELPERS
    # =========================================================================

    def _rows(self, table: str) -> dict[str, Row]:
        check_table(table)
        return self._tables[table]

    def _check_columns(self, table: str, row: Row) -> None:
        known = MODELS_BY_TABLE[table].__table__.columns.keys()
        unknown = [key for key in row if key not in known]
        if unknown:
            raise BackendError(f"Unknown column(s) for {table}: {', '.join(unknown)}")

    def _check_unique(self, table: str, row: Row, ignore_id: Optional[str] = None) -> None:
        for columns in UNIQUE_KEYS.get(table, []):
            values = tuple(row.get(c) for c in columns)
            if any(v is None for v in values):
                continue
            for other in self._rows(table).values():
                if other["id"] == ignore_id:
                    continue
                if tuple(other.get(c) for c in columns) == values:
                    raise UniqueViolation(table, columns)

    def _insert_now(self, table: str, row: Row) -> Row:
        self._check_columns(table, row)
        new_row = {**_column_defaults(table), **copy.deepcopy(row)}
        new_row["id"] = new_row.get("id") or str(uuid.uuid4())
        if "created_at" in new_row and not new_row["created_at"]:
            new_row["created_at"] = _now()
        if table in TIMESTAMPED_TABLES:
            new_row["updated_at"] = _now()

        rows = self._rows(table)
        if new_row["id"] in rows:
            raise UniqueViolation(table, ("id",))
        self._check_unique(table, new_row)
        rows[new_row["id"]] = new_row
        return copy.deepcopy(new_row)

    def _update_now(self, table: str, record_id: str, updates: Row) -> Row:
        self._check_columns(table, updates)
        rows = self._rows(table)
        if record_id not in rows:
            raise RecordNotFound(table, record_id)
        changes = {k: copy.deepcopy(v) for k, v in updates.items() if k != "id"}
        merged = {**rows[record_id], **changes}
        self._check_unique(table, merged, ignore_id=record_id)
        if table in TIMESTAMPED_TABLES:
            merged["updated_at"] = _now()
        rows[record_id] = merged
        return copy.deepcopy(merged)

    def _delete_now(self, table: str, record_id: str) -> None:
        for child_table, foreign_key in CHILD_TABLES.get(table, []):
            children = [
                child_id for child_id, child in self._rows(child_table).items()
                if child.get(foreign_key) == record_id
            ]
            for child_id in children:
                self._delete_now(child_table, child_id)
        self._rows(table).pop(record_id, None)

    # =========================================================================
    # INTERFACE
    # =========================================================================

    async def select(
        self,
        table: str,
        filters: Optional[dict[str, Any]] = None,
        in_filters: Optional[dict[str, list]] = None,
        order_by: Optional[str] = None,
    ) -> list[Row]:
        await self._simulate("select", table)
        rows = [
            row for row in self._rows(table).values()
            if all(row.get(k) == v for k, v in (filters or {}).items())
            and all(row.get(k) in values for k, values in (in_filters or {}).items())
        ]
        return copy.deepcopy(sort_rows(rows, order_by or default_order(table)))

    async def insert(self, table: str, row: Row) -> Row:
        await self._simulate("insert", table)
        return self._insert_now(table, row)

    async def update(self, table: str, record_id: str, updates: Row) -> Row:
        await self._simulate("update", table)
        return self._update_now(table, record_id, updates)

    async def delete(self, table: str, record_id: str) -> None:
        await self._simulate("delete", table)
        if record_id not in self._rows(table):
            raise RecordNotFound(table, record_id)
        self._delete_now(table, record_id)

    async def upsert(self, table: str, row: Row, on_conflict: str) -> Row:
        await self._simulate("upsert", table)
        columns = [c.strip() for c in on_conflict.split(",") if c.strip()]
        for existing in self._rows(table).values():
            if all(existing.get(c) == row.get(c) for c in columns):
                return self._update_now(table, existing["id"], row)
        return self._insert_now(table, row)

    async def batch_update_order_indexes(self, table: str, updates: list[Row]) -> None:
        await self._simulate("batch_update_order_indexes", table)
        rows = self._rows(table)
        missing = [u["id"] for u in updates if u["id"] not in rows]
        if missing:
            raise RecordNotFound(table, missing[0])
        for update in updates:
            rows[update["id"]]["order_index"] = int(update["order_index"])

    async def health_check(self) -> bool:
        return True
