import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Dict, List, Optional, Tuple

from sqlalchemy import and_, func, or_, select, text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from catalog.database import Base, create_engine_and_session
from catalog.exceptions import StorageError
from catalog.fields import COLUMNS, SEARCH_FIELDS, writable_values
from catalog.models.product import Product, utcnow
from catalog.query import LIKE_ESCAPE, ProductQuery, like_pattern
from catalog.storage.base import ProductStore, Record, StorageBackend

logger = logging.getLogger(__name__)


def filter_conditions(query: ProductQuery) -> list:
    """ANDed field filters plus the OR-across-fields search term."""
    conditions = []
    for column, term in query.filters.items():
        conditions.append(
            getattr(Product, column).ilike(like_pattern(term), escape=LIKE_ESCAPE)
        )
    if query.search:
        pattern = like_pattern(query.search)
        conditions.append(or_(*[
            getattr(Product, column).ilike(pattern, escape=LIKE_ESCAPE)
            for column in SEARCH_FIELDS
        ]))
    return conditions


def _to_record(product: Product) -> Record:
    return {column: getattr(product, column) for column in COLUMNS}


class SqlAlchemyProductStore(ProductStore):
    """Product store on one ORM session."""

    def __init__(self, session: AsyncSession):
        self.session = session

    @asynccontextmanager
    async def _errors(self, action: str) -> AsyncIterator[None]:
        try:
            yield
        except (SQLAlchemyError, OSError) as e:
            await self.session.rollback()
            raise StorageError(f"Failed to {action}: {e}") from e

    async def _get_product(self, product_id: int) -> Optional[Product]:
        result = await self.session.execute(
            select(Product).where(Product.id == product_id)
        )
        return result.scalar_one_or_none()

    async def query(self, query: ProductQuery) -> Tuple[List[Record], int]:
        stmt = select(Product)
        count_stmt = select(func.count()).select_from(Product)

        conditions = filter_conditions(query)
        if conditions:
            stmt = stmt.where(and_(*conditions))
            count_stmt = count_stmt.where(and_(*conditions))

        stmt = stmt.order_by(Product.id.asc()).offset(query.offset).limit(query.limit)

        async with self._errors("list products"):
            total_result = await self.session.execute(count_stmt)
            total = total_result.scalar() or 0
            result = await self.session.execute(stmt)
            products = result.scalars().all()

        return [_to_record(p) for p in products], total

    async def get(self, product_id: int) -> Optional[Record]:
        async with self._errors("load product"):
            product = await self._get_product(product_id)
        return _to_record(product) if product else None

    async def insert(self, values: Dict[str, Any]) -> Record:
        async with self._errors("create product"):
            product = Product(**writable_values(values))
            self.session.add(product)
            await self.session.commit()
            await self.session.refresh(product)
        return _to_record(product)

    async def update(self, product_id: int, values: Dict[str, Any]) -> Optional[Record]:
        async with self._errors("update product"):
            product = await self._get_product(product_id)
            if not product:
                return None

            for key, value in writable_values(values).items():
                setattr(product, key, value)
            # Set explicitly: onupdate does not fire when no column changed.
            product.updated_at = utcnow()

            await self.session.commit()
            await self.session.refresh(product)
        return _to_record(product)

    async def delete(self, product_id: int) -> bool:
        async with self._errors("delete product"):
            product = await self._get_product(product_id)
            if not product:
                return False

            await self.session.delete(product)
            await self.session.commit()
        return True


class SqlAlchemyBackend(StorageBackend):
    """ORM backend: PostgreSQL through asyncpg, or SQLite through aiosqlite."""

    name = "sqlalchemy"

    def __init__(self, database_url: str, echo: bool = False):
        self.database_url = database_url
        self.echo = echo
        self.engine = None
        self.async_session = None

    async def startup(self) -> None:
        self.engine, self.async_session = create_engine_and_session(self.database_url, echo=self.echo)
        try:
            async with self.engine.begin() as conn:
                await conn.run_sync(Base.metadata.create_all)
        except (SQLAlchemyError, OSError) as e:
            raise StorageError(f"Could not initialise database: {e}") from e
        logger.info("SQLAlchemy storage ready (dialect=%s)", self.engine.dialect.name)

    async def shutdown(self) -> None:
        if self.engine is not None:
            await self.engine.dispose()
            self.engine = None
            self.async_session = None

    async def ping(self) -> None:
        if self.engine is None:
            raise StorageError("Storage backend has not been started")
        try:
            async with self.engine.connect() as conn:
                await conn.execute(text("SELECT 1"))
        except (SQLAlchemyError, OSError) as e:
            raise StorageError(f"Database ping failed: {e}") from e

    @asynccontextmanager
    async def store(self) -> AsyncIterator[ProductStore]:
        if self.async_session is None:
            raise StorageError("Storage backend has not been started")
        async with self.async_session() as session:
            yield SqlAlchemyProductStore(session)
