import pytest
from fastapi.testclient import TestClient

from catalog.main import create_app
from catalog.storage.sqlalchemy_store import SqlAlchemyBackend


@pytest.fixture
def database_url(tmp_path):
    """SQLite file in a per-test temporary directory."""
    return f"sqlite+aiosqlite:///{tmp_path / 'catalog.db'}"


@pytest.fixture
def client(database_url):
    app = create_app(backend=SqlAlchemyBackend(database_url))
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def make_product(client):
    """POST a product and return its JSON representation."""

    def _make(**fields):
        payload = {"articleNo": "ART001", "product": "Widget"}
        payload.update(fields)
        response = client.post("/api/products", json=payload)
        assert response.status_code == 201, response.text
        return response.json()["product"]

    return _make
