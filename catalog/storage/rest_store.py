"""Hosted backend: a PostgREST endpoint, e.g. Supabase's ``/rest/v1``.

The table itself is managed by the hosted service; startup only checks that
``products`` is reachable.
"""
import logging
from contextlib import asynccontextmanager
from decimal import Decimal
from typing import Any, AsyncIterator, Dict, List, Optional, Tuple

import httpx

from catalog.exceptions import StorageError
from catalog.fields import COLUMNS, SEARCH_FIELDS, internal_record, writable_values
from catalog.models.product import utcnow
from catalog.query import ProductQuery, like_pattern
from catalog.storage.base import ProductStore, Record, StorageBackend

logger = logging.getLogger(__name__)

TABLE_PATH = "/products"
SELECT_COLUMNS = ",".join(COLUMNS)
RETURN_REPRESENTATION = {"Prefer": "return=representation"}


def quote_value(value: str) -> str:
    """Quote a value for use inside a PostgREST ``or=(...)`` expression."""
    return '"' + value.replace("\\", "\\\\").replace('"', '\\"') + '"'


def list_params(query: ProductQuery) -> List[Tuple[str, str]]:
    params = [("select", SELECT_COLUMNS)]
    for column, term in query.filters.items():
        params.append((column, f"ilike.{like_pattern(term)}"))
    if query.search:
        pattern = quote_value(like_pattern(query.search))
        alternatives = ",".join(f"{column}.ilike.{pattern}" for column in SEARCH_FIELDS)
        params.append(("or", f"({alternatives})"))
    params.append(("order", "id.asc"))
    params.append(("limit", str(query.limit)))
    params.append(("offset", str(query.offset)))
    return params


def parse_total(content_range: Optional[str]) -> int:
    """Read the total from a ``Content-Range: 0-49/123`` header."""
    if not content_range or "/" not in content_range:
        raise StorageError(f"Missing row count in Content-Range: {content_range!r}")
    total = content_range.rsplit("/", 1)[1]
    if total == "*":
        raise StorageError("Row count not returned; exact count was not honoured")
    return int(total)


def _json_values(values: Dict[str, Any]) -> Dict[str, Any]:
    body = {}
    for key, value in writable_values(values).items():
        body[key] = str(value) if isinstance(value, Decimal) else value
    return body


class RestProductStore(ProductStore):
    """Product store over the backend's shared HTTP client."""

    def __init__(self, client: httpx.AsyncClient):
        self.client = client

    @asynccontextmanager
    async def _errors(self, action: str) -> AsyncIterator[None]:
        try:
            yield
        except (httpx.HTTPError, ValueError) as e:
            raise StorageError(f"Failed to {action}: {e}") from e

    async def _request(self, method: str, params: List[Tuple[str, str]], **kwargs) -> httpx.Response:
        response = await self.client.request(method, TABLE_PATH, params=params, **kwargs)
        response.raise_for_status()
        return response

    async def query(self, query: ProductQuery) -> Tuple[List[Record], int]:
        async with self._errors("list products"):
            response = await self._request(
                "GET", list_params(query), headers={"Prefer": "count=exact"}
            )
            total = parse_total(response.headers.get("Content-Range"))
            rows = response.json()
        return [internal_record(row) for row in rows], total

    async def get(self, product_id: int) -> Optional[Record]:
        params = [("select", SELECT_COLUMNS), ("id", f"eq.{product_id}")]
        async with self._errors("load product"):
            response = await self._request("GET", params)
            rows = response.json()
        return internal_record(rows[0]) if rows else None

    async def insert(self, values: Dict[str, Any]) -> Record:
        params = [("select", SELECT_COLUMNS)]
        async with self._errors("create product"):
            response = await self._request(
                "POST", params, json=_json_values(values), headers=RETURN_REPRESENTATION
            )
            rows = response.json()
        if not rows:
            raise StorageError("Insert returned no row")
        return internal_record(rows[0])

    async def update(self, product_id: int, values: Dict[str, Any]) -> Optional[Record]:
        params = [("select", SELECT_COLUMNS), ("id", f"eq.{product_id}")]
        body = _json_values(values)
        body["updated_at"] = utcnow().isoformat()
        async with self._errors("update product"):
            response = await self._request(
                "PATCH", params, json=body, headers=RETURN_REPRESENTATION
            )
            rows = response.json()
        return internal_record(rows[0]) if rows else None

    async def delete(self, product_id: int) -> bool:
        params = [("select", "id"), ("id", f"eq.{product_id}")]
        async with self._errors("delete product"):
            response = await self._request("DELETE", params, headers=RETURN_REPRESENTATION)
            rows = response.json()
        return bool(rows)


class RestBackend(StorageBackend):
    name = "rest"

    def __init__(
        self,
        base_url: str,
        api_key: Optional[str] = None,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.timeout = timeout
        self.transport = transport
        self.client = None

    def _headers(self) -> Dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self.api_key:
            headers["apikey"] = self.api_key
            headers["Authorization"] = f"Bearer {self.api_key}"
        return headers

    async def startup(self) -> None:
        self.client = httpx.AsyncClient(
            base_url=self.base_url,
            headers=self._headers(),
            timeout=self.timeout,
            transport=self.transport,
        )
        await self.ping()
        logger.info("REST storage ready at %s", self.base_url)

    async def shutdown(self) -> None:
        if self.client is not None:
            await self.client.aclose()
            self.client = None

    async def ping(self) -> None:
        if self.client is None:
            raise StorageError("Storage backend has not been started")
        try:
            response = await self.client.get(TABLE_PATH, params={"select": "id", "limit": "1"})
            response.raise_for_status()
        except httpx.HTTPError as e:
            raise StorageError(f"REST endpoint ping failed: {e}") from e

    @asynccontextmanager
    async def store(self) -> AsyncIterator[ProductStore]:
        if self.client is None:
            raise StorageError("Storage backend has not been started")
        yield RestProductStore(self.client)
