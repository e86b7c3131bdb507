from typing import Any, List, Optional


class CatalogError(Exception):
    """Base class for errors the API turns into JSON responses."""

    status_code = 500

    def __init__(self, message: str, details: Optional[List[Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details


class ValidationError(CatalogError):
    """Missing/empty required field, bad value, or an empty update payload."""

    status_code = 400


class InvalidParameter(CatalogError):
    """Malformed id, page, limit or offset."""

    status_code = 400


class NotFound(CatalogError):
    status_code = 404

    def __init__(self, message: str = "Product not found"):
        super().__init__(message)


class StorageError(CatalogError):
    """Connectivity or query failure in a storage backend.

    The message is only logged; callers get a generic response.
    """

    status_code = 500
