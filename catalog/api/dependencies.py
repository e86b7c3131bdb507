from typing import AsyncIterator
from fastapi import Request
from catalog.storage.base import ProductStore, StorageBackend


def get_backend(request: Request) -> StorageBackend:
    return request.app.state.backend


async def get_store(request: Request) -> AsyncIterator[ProductStore]:
    """Yield a store for the request and release it on every exit path."""
    backend = get_backend(request)
    async with backend.store() as store:
        yield store
