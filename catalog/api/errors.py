"""Turn exceptions into ``{"error": ...}`` JSON responses."""
import logging
from typing import Any, Dict, List, Optional
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
from catalog.exceptions import CatalogError, InvalidParameter, StorageError, ValidationError

logger = logging.getLogger(__name__)


def error_response(
    status_code: int,
    message: str,
    details: Optional[List[Any]] = None,
    headers: Optional[Dict[str, str]] = None
) -> JSONResponse:
    content: Dict[str, Any] = {"error": message}
    if details:
        content["details"] = details
    return JSONResponse(status_code=status_code, content=content, headers=headers)


async def catalog_error_handler(request: Request, exc: CatalogError) -> JSONResponse:
    return error_response(exc.status_code, exc.message, exc.details)


async def storage_error_handler(request: Request, exc: StorageError) -> JSONResponse:
    logger.error(
        "Storage error on %s %s: %s",
        request.method,
        request.url.path,
        exc.message,
        exc_info=exc,
    )
    return error_response(500, "Internal server error")


def _describe(errors) -> List[Dict[str, Any]]:
    return [
        {"field": ".".join(str(part) for part in err.get("loc", ())[1:]), "message": err.get("msg")}
        for err in errors
    ]


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = exc.errors()
    details = _describe(errors)
    if any(err.get("loc") and err["loc"][0] == "body" for err in errors):
        error: CatalogError = ValidationError("Invalid request body", details)
    else:
        error = InvalidParameter("Invalid request parameters", details)
    return await catalog_error_handler(request, error)


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    return error_response(exc.status_code, str(exc.detail), headers=getattr(exc, "headers", None))


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(CatalogError, catalog_error_handler)
    app.add_exception_handler(StorageError, storage_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
