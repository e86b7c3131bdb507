from catalog.config import Settings
from catalog.storage.base import ProductStore, StorageBackend


def create_backend(settings: Settings) -> StorageBackend:
    """Build the storage backend selected by ``settings.storage_backend``."""
    if settings.storage_backend == "sqlalchemy":
        from catalog.storage.sqlalchemy_store import SqlAlchemyBackend
        return SqlAlchemyBackend(settings.database_url, echo=settings.debug)

    if settings.storage_backend == "asyncpg":
        from catalog.storage.asyncpg_store import AsyncpgBackend
        return AsyncpgBackend(settings.database_url)

    if settings.storage_backend == "rest":
        if not settings.rest_url:
            raise ValueError("REST_URL must be set when STORAGE_BACKEND=rest")
        from catalog.storage.rest_store import RestBackend
        return RestBackend(
            settings.rest_url,
            api_key=settings.rest_api_key,
            timeout=settings.rest_timeout,
        )

    raise ValueError(f"Unknown storage backend: {settings.storage_backend}")


__all__ = ["ProductStore", "StorageBackend", "create_backend"]
