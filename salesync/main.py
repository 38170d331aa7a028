"""
FastAPI Application

HTTP entry point for the sales sync pipeline.
"""

import asyncio
from contextlib import asynccontextmanager
from typing import Optional

import structlog
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from salesync.config import Settings, get_settings
from salesync.database.connection import close_database, create_tables, init_database
from salesync.database.sink import DatabaseTableSink
from salesync.exceptions import ConfigurationError, SalesSyncError
from salesync.serving.api.middleware import RequestLoggingMiddleware
from salesync.serving.api.routes import health_router, sync_router
from salesync.storage.base import TableSink
from salesync.sync.engine import AdapterFactory

logger = structlog.get_logger(__name__)


def create_app(
    sink: Optional[TableSink] = None,
    settings: Optional[Settings] = None,
    adapter_factory: Optional[AdapterFactory] = None,
) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Args:
        sink: Table sink to use; defaults to the database sink, in which case
            the lifespan opens the database and ensures the tables exist
        settings: Settings override, mainly for tests
        adapter_factory: Channel adapter factory override, mainly for tests
    """
    settings = settings or get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Application lifespan manager."""
        from salesync.config.logging import configure_logging
        configure_logging()

        logger.info("Starting sales sync API", environment=settings.app_env)

        owns_database = sink is None
        if owns_database:
            await init_database()
            await create_tables()
            app.state.sink = DatabaseTableSink()

        yield

        logger.info("Shutting down...")
        await app.state.sink.close()
        if owns_database:
            await close_database()

    app = FastAPI(
        title="Sales Sync API",
        description="Multi-channel order sync, profitability and inventory feeds",
        version=settings.version,
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.sink = sink
    app.state.adapter_factory = adapter_factory
    app.state.run_lock = asyncio.Lock()

    app.add_middleware(RequestLoggingMiddleware)

    @app.exception_handler(StarletteHTTPException)
    async def http_error(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        return JSONResponse(status_code=exc.status_code, content={"ok": False, "error": exc.detail})

    @app.exception_handler(ConfigurationError)
    async def configuration_error(request: Request, exc: ConfigurationError) -> JSONResponse:
        logger.error("Run failed: missing configuration", missing=exc.missing)
        return JSONResponse(status_code=500, content={"ok": False, "error": str(exc)})

    @app.exception_handler(SalesSyncError)
    async def pipeline_error(request: Request, exc: SalesSyncError) -> JSONResponse:
        logger.error("Run failed", error=str(exc), error_type=type(exc).__name__)
        return JSONResponse(status_code=500, content={"ok": False, "error": str(exc)})

    @app.exception_handler(ValueError)
    async def bad_request(request: Request, exc: ValueError) -> JSONResponse:
        return JSONResponse(status_code=400, content={"ok": False, "error": str(exc)})

    app.include_router(health_router, prefix="/api/v1", tags=["Health"])
    app.include_router(sync_router, prefix="/api/v1/sync", tags=["Sync"])

    @app.get("/api/v1/info")
    async def api_info():
        """API information endpoint."""
        return {
            "name": "Sales Sync API",
            "version": settings.version,
            "environment": settings.app_env,
            "documentation": "/docs",
        }

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8080)
