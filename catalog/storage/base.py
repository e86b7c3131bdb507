from abc import ABC, abstractmethod
from typing import Any, AsyncContextManager, Dict, List, Optional, Tuple

from catalog.query import ProductQuery

Record = Dict[str, Any]


class ProductStore(ABC):
    """One acquired storage handle.

    Records are plain dicts keyed by storage column names.
    """

    @abstractmethod
    async def query(self, query: ProductQuery) -> Tuple[List[Record], int]:
        """Return one page of matching records and the total match count."""

    @abstractmethod
    async def get(self, product_id: int) -> Optional[Record]:
        pass

    @abstractmethod
    async def insert(self, values: Dict[str, Any]) -> Record:
        pass

    @abstractmethod
    async def update(self, product_id: int, values: Dict[str, Any]) -> Optional[Record]:
        """Apply ``values`` and refresh ``updated_at``; None if the id is unknown."""

    @abstractmethod
    async def delete(self, product_id: int) -> bool:
        pass


class StorageBackend(ABC):
    """Owns the engine, pool or HTTP client for the life of the process."""

    name = "base"

    @abstractmethod
    async def startup(self) -> None:
        """Open connections, verify connectivity and ensure the schema."""

    @abstractmethod
    async def shutdown(self) -> None:
        pass

    @abstractmethod
    async def ping(self) -> None:
        """Raise StorageError if the storage cannot be reached."""

    @abstractmethod
    def store(self) -> AsyncContextManager[ProductStore]:
        """Acquire a store; it is released when the context exits."""
