"""
SQL Menu Backend Implementation

Production implementation on top of the SQLAlchemy async engine
(PostgreSQL via psycopg; SQLite via aiosqlite in tests).
Used when ENV_MODE=production or ENV_MODE=staging.

Each call runs in its own session and transaction. Database errors are
translated into the backend exception hierarchy:

    - IntegrityError      → UniqueViolation
    - OperationalError    → BackendError(transient=True)
    - other SQLAlchemyError → BackendError
"""

import logging
import uuid
from contextlib import asynccontextmanager
from datetime import datetime
from typing import Any, Optional

from sqlalchemy import select, delete, update, text, DateTime
from sqlalchemy.exc import IntegrityError, OperationalError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession

from taptab.database import get_engine, get_session_maker
from taptab.models import MODELS_BY_TABLE
from taptab.services.backend.base import (
    BaseMenuBackend,
    BackendError,
    RecordNotFound,
    UniqueViolation,
    Row,
    CHILD_TABLES,
    UNIQUE_KEYS,
    check_table,
    default_order,
)

logger = logging.getLogger(__name__)


def _to_dict(obj) -> Row:
    row = {}
    for column in obj.__table__.columns:
        value = getattr(obj, column.key)
        row[column.name] = value.isoformat() if isinstance(value, datetime) else value
    return row


def _coerce(model, values: Row) -> Row:
    """Validate column names and parse ISO timestamps for DateTime columns."""
    columns = model.__table__.columns
    coerced = {}
    for key, value in values.items():
        if key not in columns:
            raise BackendError(f"Unknown column(s) for {model.__tablename__}: {key}")
        if isinstance(columns[key].type, DateTime) and isinstance(value, str):
            value = datetime.fromisoformat(value.replace("Z", "+00:00"))
        coerced[key] = value
    return coerced


class SqlMenuBackend(BaseMenuBackend):
    """
    Relational implementation of the menu backend.

    Example:
        >>> backend = SqlMenuBackend()
        >>> await backend.insert("restaurants", {"name": "Cafe Sol", "slug": "cafe-sol"})
    """

    def __init__(self, engine: Optional[AsyncEngine] = None):
        self._engine = engine or get_engine()
        self._session_maker = get_session_maker(self._engine)
        logger.info(f"SqlMenuBackend initialized ({self._engine.url.drivername})")

    @property
    def provider_name(self) -> str:
        return "sql"

    @property
    def engine(self) -> AsyncEngine:
        return self._engine

    @asynccontextmanager
    async def _session(self, table: str):
        """Session with a transaction; errors mapped to backend exceptions."""
        try:
            async with self._session_maker() as session:
                async with session.begin():
                    yield session
        except IntegrityError as e:
            logger.warning(f"SQL: integrity error on {table} - {e.orig}")
            raise UniqueViolation(table, self._guess_columns(table, str(e.orig))) from e
        except OperationalError as e:
            logger.error(f"SQL: operational error on {table} - {e}")
            raise BackendError("Database unavailable", transient=True) from e
        except SQLAlchemyError as e:
            logger.error(f"SQL: error on {table} - {e}")
            raise BackendError(f"Database error on {table}") from e

    @staticmethod
    def _guess_columns(table: str, message: str) -> tuple[str, ...]:
        for columns in UNIQUE_KEYS.get(table, []):
            if all(c in message for c in columns):
                return columns
        return ("id",)

    def _model(self, table: str):
        check_table(table)
        return MODELS_BY_TABLE[table]

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
        model = self._model(table)
        stmt = select(model)
        for key, value in _coerce(model, filters or {}).items():
            stmt = stmt.where(getattr(model, key) == value)
        for key, values in (in_filters or {}).items():
            _coerce(model, {key: None})
            stmt = stmt.where(getattr(model, key).in_(list(values)))

        order_column = order_by or default_order(table)
        if order_column in model.__table__.columns:
            stmt = stmt.order_by(getattr(model, order_column))
        if "created_at" in model.__table__.columns and order_column != "created_at":
            stmt = stmt.order_by(model.created_at)

        async with self._session(table) as session:
            result = await session.execute(stmt)
            return [_to_dict(obj) for obj in result.scalars().all()]

    async def insert(self, table: str, row: Row) -> Row:
        model = self._model(table)
        values = _coerce(model, row)
        values.setdefault("id", str(uuid.uuid4()))
        async with self._session(table) as session:
            obj = model(**values)
            session.add(obj)
            await session.flush()
            return _to_dict(obj)

    async def _update_in(self, session: AsyncSession, model, record_id: str, values: Row):
        obj = await session.get(model, record_id)
        if obj is None:
            raise RecordNotFound(model.__tablename__, record_id)
        for key, value in values.items():
            if key != "id":
                setattr(obj, key, value)
        await session.flush()
        return obj

    async def update(self, table: str, record_id: str, updates: Row) -> Row:
        model = self._model(table)
        values = _coerce(model, updates)
        async with self._session(table) as session:
            obj = await self._update_in(session, model, record_id, values)
            return _to_dict(obj)

    async def _collect_children(self, session: AsyncSession, table: str, ids: list[str]):
        """Yield (table, ids) pairs of all descendants, deepest first."""
        pairs = []
        for child_table, foreign_key in CHILD_TABLES.get(table, []):
            child_model = MODELS_BY_TABLE[child_table]
            result = await session.execute(
                select(child_model.id).where(getattr(child_model, foreign_key).in_(ids))
            )
            child_ids = list(result.scalars().all())
            if child_ids:
                pairs.extend(await self._collect_children(session, child_table, child_ids))
                pairs.append((child_table, child_ids))
        return pairs

    async def delete(self, table: str, record_id: str) -> None:
        model = self._model(table)
        async with self._session(table) as session:
            if await session.get(model, record_id) is None:
                raise RecordNotFound(table, record_id)
            for child_table, child_ids in await self._collect_children(session, table, [record_id]):
                child_model = MODELS_BY_TABLE[child_table]
                await session.execute(delete(child_model).where(child_model.id.in_(child_ids)))
            await session.execute(delete(model).where(model.id == record_id))
        logger.debug(f"SQL: deleted {table} {record_id}")

    async def upsert(self, table: str, row: Row, on_conflict: str) -> Row:
        model = self._model(table)
        values = _coerce(model, row)
        columns = [c.strip() for c in on_conflict.split(",") if c.strip()]
        async with self._session(table) as session:
            stmt = select(model)
            for column in columns:
                stmt = stmt.where(getattr(model, column) == values.get(column))
            existing = (await session.execute(stmt)).scalars().first()
            if existing is not None:
                obj = await self._update_in(session, model, existing.id, values)
            else:
                values.setdefault("id", str(uuid.uuid4()))
                obj = model(**values)
                session.add(obj)
                await session.flush()
            return _to_dict(obj)

    async def batch_update_order_indexes(self, table: str, updates: list[Row]) -> None:
        model = self._model(table)
        async with self._session(table) as session:
            for item in updates:
                result = await session.execute(
                    update(model)
                    .where(model.id == item["id"])
                    .values(order_index=int(item["order_index"]))
                )
                if result.rowcount == 0:
                    raise RecordNotFound(table, item["id"])
        logger.debug(f"SQL: reordered {len(updates)} {table} rows")

    async def health_check(self) -> bool:
        try:
            async with self._engine.connect() as conn:
                await conn.execute(text("SELECT 1"))
            return True
        except SQLAlchemyError as e:
            logger.error(f"SQL: health check failed - {e}")
            return False

    async def close(self) -> None:
        await self._engine.dispose()
