from typing import List, Tuple
import logging

from catalog.exceptions import NotFound, ValidationError
from catalog.query import ProductQuery
from catalog.schemas.product import ProductCreate, ProductUpdate
from catalog.storage.base import ProductStore, Record

logger = logging.getLogger(__name__)


class ProductService:
    """Service for product CRUD operations.

    Talks to storage only through ``ProductStore``.
    """

    @staticmethod
    async def create_product(
        store: ProductStore,
        product_data: ProductCreate
    ) -> Record:
        """Create a new product; optional fields get their defaults."""
        product = await store.insert(product_data.model_dump())
        logger.info("Created product id=%s articleNo=%s", product["id"], product["article_no"])
        return product

    @staticmethod
    async def get_product(store: ProductStore, product_id: int) -> Record:
        """Get a product by ID."""
        product = await store.get(product_id)
        if product is None:
            raise NotFound()
        return product

    @staticmethod
    async def list_products(
        store: ProductStore,
        query: ProductQuery
    ) -> Tuple[List[Record], int]:
        """List products matching ``query``, ordered by id, with the total count."""
        return await store.query(query)

    @staticmethod
    async def update_product(
        store: ProductStore,
        product_id: int,
        product_data: ProductUpdate
    ) -> Record:
        """Apply the fields present in ``product_data``; the rest keep their values."""
        changes = product_data.changes()
        if not changes:
            raise ValidationError("No fields to update")

        product = await store.update(product_id, changes)
        if product is None:
            raise NotFound()
        logger.info("Updated product id=%s fields=%s", product_id, sorted(changes))
        return product

    @staticmethod
    async def delete_product(store: ProductStore, product_id: int) -> None:
        """Delete a product permanently."""
        deleted = await store.delete(product_id)
        if not deleted:
            raise NotFound()
        logger.info("Deleted product id=%s", product_id)
