"""Raw-driver backend: hand-written SQL over an asyncpg connection pool."""
import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Dict, List, Optional, Tuple

import asyncpg

from catalog.exceptions import StorageError
from catalog.fields import COLUMNS, SEARCH_FIELDS, internal_record, writable_values
from catalog.query import ProductQuery, like_pattern
from catalog.storage.base import ProductStore, Record, StorageBackend

logger = logging.getLogger(__name__)

DRIVER_ERRORS = (asyncpg.PostgresError, asyncpg.InterfaceError, OSError)

SELECT_COLUMNS = ", ".join(COLUMNS)

SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS products (
    id SERIAL PRIMARY KEY,
    article_no VARCHAR(50) NOT NULL,
    product VARCHAR(255) NOT NULL,
    in_price NUMERIC(10, 2) NOT NULL DEFAULT 0 CONSTRAINT ck_products_in_price_non_negative CHECK (in_price >= 0),
    price NUMERIC(10, 2) NOT NULL DEFAULT 0 CONSTRAINT ck_products_price_non_negative CHECK (price >= 0),
    unit VARCHAR(50) NOT NULL DEFAULT 'pcs',
    in_stock INTEGER NOT NULL DEFAULT 0 CONSTRAINT ck_products_in_stock_non_negative CHECK (in_stock >= 0),
    description TEXT,
    created_at TIMESTAMPTZ NOT NULL DEFAULT now(),
    updated_at TIMESTAMPTZ NOT NULL DEFAULT now()
);
CREATE INDEX IF NOT EXISTS ix_products_article_no ON products (article_no);
"""


def build_where(query: ProductQuery, params: List[Any]) -> str:
    """Append filter params to ``params`` and return the WHERE clause (or '')."""
    clauses = []
    for column, term in query.filters.items():
        params.append(like_pattern(term))
        clauses.append(f"{column} ILIKE ${len(params)} ESCAPE '\\'")

    if query.search:
        params.append(like_pattern(query.search))
        index = len(params)
        alternatives = " OR ".join(
            f"{column} ILIKE ${index} ESCAPE '\\'" for column in SEARCH_FIELDS
        )
        clauses.append(f"({alternatives})")

    if not clauses:
        return ""
    return " WHERE " + " AND ".join(clauses)


def build_select(query: ProductQuery) -> Tuple[str, List[Any]]:
    params: List[Any] = []
    sql = f"SELECT {SELECT_COLUMNS} FROM products" + build_where(query, params)
    sql += " ORDER BY id ASC"
    params.append(query.limit)
    sql += f" LIMIT ${len(params)}"
    params.append(query.offset)
    sql += f" OFFSET ${len(params)}"
    return sql, params


def build_count(query: ProductQuery) -> Tuple[str, List[Any]]:
    params: List[Any] = []
    sql = "SELECT COUNT(*) FROM products" + build_where(query, params)
    return sql, params


def build_insert(values: Dict[str, Any]) -> Tuple[str, List[Any]]:
    values = writable_values(values)
    columns = list(values)
    placeholders = ", ".join(f"${i}" for i in range(1, len(columns) + 1))
    sql = (
        f"INSERT INTO products ({', '.join(columns)}) "
        f"VALUES ({placeholders}) RETURNING {SELECT_COLUMNS}"
    )
    return sql, [values[c] for c in columns]


def build_update(product_id: int, values: Dict[str, Any]) -> Tuple[str, List[Any]]:
    values = writable_values(values)
    assignments = []
    params: List[Any] = []
    for column, value in values.items():
        params.append(value)
        assignments.append(f"{column} = ${len(params)}")
    assignments.append("updated_at = now()")
    params.append(product_id)
    sql = (
        f"UPDATE products SET {', '.join(assignments)} "
        f"WHERE id = ${len(params)} RETURNING {SELECT_COLUMNS}"
    )
    return sql, params


def asyncpg_dsn(database_url: str) -> str:
    """asyncpg takes a plain postgresql:// DSN, not the SQLAlchemy form."""
    return database_url.replace("+asyncpg", "")


class AsyncpgProductStore(ProductStore):
    """Product store on one pooled asyncpg connection."""

    def __init__(self, connection: asyncpg.Connection):
        self.connection = connection

    @asynccontextmanager
    async def _errors(self, action: str) -> AsyncIterator[None]:
        try:
            yield
        except DRIVER_ERRORS as e:
            raise StorageError(f"Failed to {action}: {e}") from e

    async def query(self, query: ProductQuery) -> Tuple[List[Record], int]:
        select_sql, select_params = build_select(query)
        count_sql, count_params = build_count(query)
        async with self._errors("list products"):
            total = await self.connection.fetchval(count_sql, *count_params)
            rows = await self.connection.fetch(select_sql, *select_params)
        return [internal_record(dict(row)) for row in rows], total or 0

    async def get(self, product_id: int) -> Optional[Record]:
        async with self._errors("load product"):
            row = await self.connection.fetchrow(
                f"SELECT {SELECT_COLUMNS} FROM products WHERE id = $1", product_id
            )
        return internal_record(dict(row)) if row else None

    async def insert(self, values: Dict[str, Any]) -> Record:
        sql, params = build_insert(values)
        async with self._errors("create product"):
            row = await self.connection.fetchrow(sql, *params)
        return internal_record(dict(row))

    async def update(self, product_id: int, values: Dict[str, Any]) -> Optional[Record]:
        sql, params = build_update(product_id, values)
        async with self._errors("update product"):
            row = await self.connection.fetchrow(sql, *params)
        return internal_record(dict(row)) if row else None

    async def delete(self, product_id: int) -> bool:
        async with self._errors("delete product"):
            deleted_id = await self.connection.fetchval(
                "DELETE FROM products WHERE id = $1 RETURNING id", product_id
            )
        return deleted_id is not None


class AsyncpgBackend(StorageBackend):
    name = "asyncpg"

    def __init__(self, database_url: str, min_size: int = 1, max_size: int = 10):
        self.dsn = asyncpg_dsn(database_url)
        self.min_size = min_size
        self.max_size = max_size
        self.pool = None

    async def startup(self) -> None:
        try:
            self.pool = await asyncpg.create_pool(
                self.dsn,
                min_size=self.min_size,
                max_size=self.max_size,
            )
            async with self.pool.acquire() as conn:
                await conn.execute(SCHEMA_SQL)
        except DRIVER_ERRORS as e:
            raise StorageError(f"Could not initialise database: {e}") from e
        logger.info("asyncpg storage ready (pool max_size=%d)", self.max_size)

    async def shutdown(self) -> None:
        if self.pool is not None:
            await self.pool.close()
            self.pool = None

    async def ping(self) -> None:
        if self.pool is None:
            raise StorageError("Storage backend has not been started")
        try:
            async with self.pool.acquire() as conn:
                await conn.fetchval("SELECT 1")
        except DRIVER_ERRORS as e:
            raise StorageError(f"Database ping failed: {e}") from e

    @asynccontextmanager
    async def store(self) -> AsyncIterator[ProductStore]:
        if self.pool is None:
            raise StorageError("Storage backend has not been started")
        try:
            connection = await self.pool.acquire()
        except DRIVER_ERRORS as e:
            raise StorageError(f"Could not acquire a connection: {e}") from e
        try:
            yield AsyncpgProductStore(connection)
        finally:
            await self.pool.release(connection)
