from decimal import Decimal

import pytest
import pytest_asyncio

from catalog.exceptions import StorageError
from catalog.query import ProductQuery
from catalog.storage.sqlalchemy_store import SqlAlchemyBackend


@pytest_asyncio.fixture
async def backend(database_url):
    backend = SqlAlchemyBackend(database_url)
    await backend.startup()
    yield backend
    await backend.shutdown()


async def _insert(store, **values):
    row = {"article_no": "ART1", "product": "Widget"}
    row.update(values)
    return await store.insert(row)


class TestSqlAlchemyStore:

    @pytest.mark.asyncio
    async def test_insert_returns_full_record(self, backend):
        async with backend.store() as store:
            record = await _insert(store, price=Decimal("9.50"))
        assert record["id"] >= 1
        assert record["price"] == Decimal("9.50")
        assert record["unit"] == "pcs"
        assert record["in_stock"] == 0
        assert record["created_at"] is not None
        assert record["updated_at"] is not None

    @pytest.mark.asyncio
    async def test_insert_ignores_read_only_columns(self, backend):
        async with backend.store() as store:
            record = await _insert(store, id=500)
        assert record["id"] != 500

    @pytest.mark.asyncio
    async def test_query_filters_and_counts(self, backend):
        async with backend.store() as store:
            first = await _insert(store, article_no="ART001")
            await _insert(store, article_no="XYZ999")
            third = await _insert(store, article_no="art002")
            records, total = await store.query(ProductQuery.from_params({"articleNo": "ART", "limit": "1"}))
        assert total == 2
        assert [r["id"] for r in records] == [first["id"]]

        async with backend.store() as store:
            records, _ = await store.query(ProductQuery.from_params({"articleNo": "ART", "page": "2", "limit": "1"}))
        assert [r["id"] for r in records] == [third["id"]]

    @pytest.mark.asyncio
    async def test_update_applies_values_and_refreshes_timestamp(self, backend):
        async with backend.store() as store:
            record = await _insert(store, description="Old")
            updated = await store.update(record["id"], {"in_stock": 3})
        assert updated["in_stock"] == 3
        assert updated["description"] == "Old"
        assert updated["updated_at"] >= record["updated_at"]

    @pytest.mark.asyncio
    async def test_update_and_delete_unknown_id(self, backend):
        async with backend.store() as store:
            assert await store.update(12345, {"price": Decimal("1")}) is None
            assert await store.delete(12345) is False
            assert await store.get(12345) is None

    @pytest.mark.asyncio
    async def test_delete(self, backend):
        async with backend.store() as store:
            record = await _insert(store)
            assert await store.delete(record["id"]) is True
            assert await store.get(record["id"]) is None

    @pytest.mark.asyncio
    async def test_check_constraint_violation_is_a_storage_error(self, backend):
        async with backend.store() as store:
            with pytest.raises(StorageError):
                await _insert(store, in_stock=-1)

    @pytest.mark.asyncio
    async def test_ping(self, backend):
        await backend.ping()

    @pytest.mark.asyncio
    async def test_store_before_startup_fails(self, database_url):
        backend = SqlAlchemyBackend(database_url)
        with pytest.raises(StorageError):
            async with backend.store():
                pass
