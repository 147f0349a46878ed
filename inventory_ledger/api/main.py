"""
FastAPI application for the inventory ledger.

Startup migrates the database before the pool opens. A failed migration
aborts startup rather than serving requests against a partial schema.
"""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from inventory_ledger import __version__
from inventory_ledger.api.middleware import ErrorHandlerMiddleware, LoggingMiddleware
from inventory_ledger.api.middleware.error_handler import setup_exception_handlers
from inventory_ledger.api.routes import (
    health_router,
    inventory_router,
    purchase_orders_router,
)
from inventory_ledger.config import Settings, configure_logging, get_logger, get_settings
from inventory_ledger.core.exceptions import DatabaseError

logger = get_logger(__name__)


async def _prepare_database(settings: Settings) -> None:
    from inventory_ledger.infrastructure.storage.sqlite import get_connection_pool
    from inventory_ledger.infrastructure.storage.sqlite.migrations.migrator import (
        run_migrations,
    )

    results = await run_migrations(settings.storage.db_path)
    for result in results:
        if not result.success:
            raise DatabaseError("migrate", f"v{result.version} ({result.name}): {result.error}")
    logger.info("database_migrated", applied=[r.version for r in results])

    pool = await get_connection_pool()
    logger.info("connection_pool_ready", pool_size=pool.pool_size)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    settings = get_settings()
    logger.info(
        "application_starting",
        host=settings.api.host,
        port=settings.api.port,
        environment=settings.environment,
        db_path=str(settings.storage.db_path),
        lock_timeout=settings.ledger.lock_timeout,
    )

    try:
        await _prepare_database(settings)
    except Exception as e:
        logger.error("database_init_failed", error=e)
        raise

    logger.info("application_started")
    try:
        yield
    finally:
        from inventory_ledger.infrastructure.storage.sqlite import close_connection_pool

        await close_connection_pool()
        logger.info("application_stopped")


def create_app() -> FastAPI:
    """Build the app: middleware, error handlers and routers."""
    settings = get_settings()
    configure_logging()

    app = FastAPI(
        title=settings.app_name,
        description="Purchase order receipts, stock ledger and weighted-average valuation",
        version=__version__,
        docs_url="/docs" if settings.api.debug else None,
        redoc_url="/redoc" if settings.api.debug else None,
        lifespan=lifespan,
    )

    # Added last runs first: errors are rendered inside the logged span
    app.add_middleware(ErrorHandlerMiddleware)
    app.add_middleware(LoggingMiddleware)
    if settings.api.cors_origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=settings.api.cors_origins,
            allow_methods=["GET", "POST", "PUT", "DELETE"],
            allow_headers=["*"],
            expose_headers=["Retry-After", "X-Request-ID"],
        )

    setup_exception_handlers(app)

    for router in (health_router, purchase_orders_router, inventory_router):
        app.include_router(router)

    @app.get("/health", tags=["health"])
    async def root_health() -> dict[str, str]:
        """Probe for container orchestrators."""
        return {"status": "healthy", "version": __version__}

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "inventory_ledger.api.main:app",
        host=settings.api.host,
        port=settings.api.port,
        reload=settings.api.debug,
    )
