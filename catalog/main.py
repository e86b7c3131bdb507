from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles
from fastapi.responses import FileResponse
from typing import Optional
import logging
import os
from catalog.api.errors import register_error_handlers
from catalog.api.routes import health, products
from catalog.config import settings
from catalog.logging_config import configure_logging
from catalog.storage import StorageBackend, create_backend

logger = logging.getLogger(__name__)

STATIC_DIR = os.path.join(os.path.dirname(__file__), "static")


def create_app(backend: Optional[StorageBackend] = None) -> FastAPI:
    """Build the API. Without ``backend`` one is created from settings at startup."""
    configure_logging(settings.log_level)

    app = FastAPI(
        title="Product Catalog API",
        description="CRUD, search and pagination over a single products table",
        version="1.0.0"
    )
    app.state.backend = backend

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization"],
    )
    register_error_handlers(app)

    # Include routers
    app.include_router(products.router)
    app.include_router(health.router)

    # Mount static files
    if os.path.exists(STATIC_DIR):
        app.mount("/static", StaticFiles(directory=STATIC_DIR), name="static")

    @app.get("/", include_in_schema=False)
    async def root():
        """Serve the product table editor."""
        html_path = os.path.join(STATIC_DIR, "index.html")
        if os.path.exists(html_path):
            return FileResponse(html_path)
        return {"message": "Product Catalog API", "docs": "/docs"}

    @app.on_event("startup")
    async def startup():
        """Open storage, verify connectivity and ensure the schema before serving."""
        if app.state.backend is None:
            app.state.backend = create_backend(settings)
        await app.state.backend.startup()
        logger.info("Serving products from %s backend", app.state.backend.name)

    @app.on_event("shutdown")
    async def shutdown():
        """Release storage connections."""
        if app.state.backend is not None:
            await app.state.backend.shutdown()

    return app


app = create_app()
