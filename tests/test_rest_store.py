import json
from decimal import Decimal

import httpx
import pytest
import pytest_asyncio

from catalog.exceptions import StorageError
from catalog.query import ProductQuery
from catalog.storage.rest_store import RestBackend, parse_total, quote_value

ROW = {
    "id": 1,
    "article_no": "ART001",
    "product": "Widget",
    "in_price": 0,
    "price": 19.99,
    "unit": "pcs",
    "in_stock": 0,
    "description": None,
    "created_at": "2024-05-01T12:00:00+00:00",
    "updated_at": "2024-05-01T12:00:00+00:00",
}


class FakePostgrest:
    """Records requests and answers with canned responses."""

    def __init__(self):
        self.requests = []
        self.responses = []

    def respond(self, status_code=200, json_body=None, headers=None):
        self.responses.append(httpx.Response(status_code, json=json_body, headers=headers))

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.responses:
            return self.responses.pop(0)
        return httpx.Response(200, json=[])


@pytest.fixture
def postgrest():
    return FakePostgrest()


@pytest_asyncio.fixture
async def backend(postgrest):
    backend = RestBackend(
        "http://rest.test/rest/v1",
        api_key="secret",
        transport=httpx.MockTransport(postgrest),
    )
    await backend.startup()
    yield backend
    await backend.shutdown()


class TestRestStore:

    @pytest.mark.asyncio
    async def test_startup_pings_the_table(self, backend, postgrest):
        request = postgrest.requests[0]
        assert request.method == "GET"
        assert request.url.path == "/rest/v1/products"
        assert request.headers["apikey"] == "secret"
        assert request.headers["authorization"] == "Bearer secret"

    @pytest.mark.asyncio
    async def test_query_builds_postgrest_filters(self, backend, postgrest):
        postgrest.respond(json_body=[ROW], headers={"Content-Range": "0-0/7"})
        query = ProductQuery.from_params({"articleNo": "RT00", "search": "wid", "page": "2", "limit": "5"})
        async with backend.store() as store:
            records, total = await store.query(query)

        assert total == 7
        assert records[0]["article_no"] == "ART001"
        request = postgrest.requests[-1]
        assert request.headers["prefer"] == "count=exact"
        params = request.url.params
        assert params["article_no"] == "ilike.%RT00%"
        assert params["or"] == '(article_no.ilike."%wid%",product.ilike."%wid%")'
        assert params["order"] == "id.asc"
        assert params["limit"] == "5"
        assert params["offset"] == "5"

    @pytest.mark.asyncio
    async def test_insert_sends_decimals_as_strings(self, backend, postgrest):
        postgrest.respond(201, json_body=[ROW])
        async with backend.store() as store:
            record = await store.insert({"article_no": "ART001", "product": "Widget", "price": Decimal("19.99")})

        assert record["id"] == 1
        request = postgrest.requests[-1]
        assert request.method == "POST"
        assert request.headers["prefer"] == "return=representation"
        assert json.loads(request.content) == {"article_no": "ART001", "product": "Widget", "price": "19.99"}

    @pytest.mark.asyncio
    async def test_update_targets_one_id_and_sets_updated_at(self, backend, postgrest):
        postgrest.respond(json_body=[dict(ROW, price=42)])
        async with backend.store() as store:
            record = await store.update(1, {"price": Decimal("42")})

        assert record["price"] == 42
        request = postgrest.requests[-1]
        assert request.method == "PATCH"
        assert request.url.params["id"] == "eq.1"
        body = json.loads(request.content)
        assert body["price"] == "42"
        assert "updated_at" in body

    @pytest.mark.asyncio
    async def test_missing_rows(self, backend, postgrest):
        async with backend.store() as store:
            assert await store.get(9) is None
            assert await store.update(9, {"price": Decimal("1")}) is None
            assert await store.delete(9) is False

    @pytest.mark.asyncio
    async def test_delete(self, backend, postgrest):
        postgrest.respond(json_body=[{"id": 3}])
        async with backend.store() as store:
            assert await store.delete(3) is True
        assert postgrest.requests[-1].method == "DELETE"

    @pytest.mark.asyncio
    async def test_http_errors_become_storage_errors(self, backend, postgrest):
        postgrest.respond(500, json_body={"message": "boom"})
        async with backend.store() as store:
            with pytest.raises(StorageError):
                await store.get(1)


def test_parse_total():
    assert parse_total("0-49/123") == 123
    assert parse_total("*/0") == 0
    with pytest.raises(StorageError):
        parse_total(None)
    with pytest.raises(StorageError):
        parse_total("0-49/*")


def test_quote_value_escapes_quotes_and_backslashes():
    assert quote_value('a"b') == '"a\\"b"'
    assert quote_value("a\\b") == '"a\\\\b"'


@pytest.mark.asyncio
async def test_unreachable_endpoint_fails_startup():
    def refuse(request):
        raise httpx.ConnectError("connection refused", request=request)

    backend = RestBackend("http://rest.test", transport=httpx.MockTransport(refuse))
    with pytest.raises(StorageError):
        await backend.startup()
    await backend.shutdown()


@pytest.mark.asyncio
async def test_malformed_replies_become_storage_errors(backend, postgrest):
    postgrest.respond(json_body=[ROW], headers={"Content-Range": "0-0/lots"})
    postgrest.responses.append(httpx.Response(200, content=b"<html>gateway</html>"))
    async with backend.store() as store:
        with pytest.raises(StorageError):
            await store.query(ProductQuery())
        with pytest.raises(StorageError):
            await store.get(1)
