"""
FastAPI application factory.

``app`` is the module-level instance uvicorn serves; tests build their own
with ``create_app(use_lifespan=False)`` and override the coordinator.
"""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from kasebyar import __version__
from kasebyar.api.middleware import ErrorHandlerMiddleware, LoggingMiddleware
from kasebyar.api.middleware.error_handler import setup_exception_handlers
from kasebyar.api.routes import (
    accounting_router,
    activity_router,
    health_router,
    in_transit_router,
    parties_router,
    products_router,
    purchases_router,
    sales_router,
    services_router,
)
from kasebyar.config import configure_logging, get_logger, get_settings

logger = get_logger(__name__)

ROUTERS = (
    health_router,
    products_router,
    services_router,
    parties_router,
    sales_router,
    purchases_router,
    in_transit_router,
    accounting_router,
    activity_router,
)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Migrate and load the first snapshot; on shutdown flush activity and close the pool."""
    from kasebyar.application.services import get_point_of_sale
    from kasebyar.infrastructure.storage.sqlite import close_pool, get_pool
    from kasebyar.infrastructure.storage.sqlite.migrations.migrator import run_migrations

    configure_logging()
    settings = get_settings()
    logger.info("application_starting", db_path=str(settings.storage.db_path), port=settings.api.port)

    pos = get_point_of_sale()
    try:
        applied = await run_migrations()
        await get_pool()
        state = await pos.refresh()
    except Exception as e:
        logger.error("startup_failed", error=str(e))
        raise

    logger.info(
        "application_started",
        migrations_applied=len(applied),
        products=len(state.products),
        parties=len(state.parties),
    )

    yield

    await pos.drain_activity()
    try:
        await close_pool()
    except Exception as e:
        logger.warning("connection_pool_close_failed", error=str(e))
    logger.info("application_stopped")


def create_app(use_lifespan: bool = True) -> FastAPI:
    settings = get_settings()

    app = FastAPI(
        title=f"{settings.app_name} API",
        description="Multi-currency point of sale: sales, purchases, shipments and party ledgers",
        version=__version__,
        docs_url="/docs" if settings.api.debug else None,
        redoc_url="/redoc" if settings.api.debug else None,
        lifespan=lifespan if use_lifespan else None,
    )

    # Added last runs first: errors are caught inside the request log
    app.add_middleware(ErrorHandlerMiddleware)
    app.add_middleware(LoggingMiddleware)
    if settings.api.cors_origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=settings.api.cors_origins,
            allow_methods=["*"],
            allow_headers=["*"],
        )

    setup_exception_handlers(app)
    for router in ROUTERS:
        app.include_router(router)
    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "kasebyar.api.main:app",
        host=settings.api.host,
        port=settings.api.port,
        reload=settings.api.debug,
    )
