"""Item generation API application.

``create_app`` assembles the service: logging and optional table
creation at startup, the middleware stack, error handlers and the
health, item and option routers. ``app`` is the instance uvicorn serves.
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from itemgen.api.errors import install_error_handlers
from itemgen.api.health import router as health_router
from itemgen.api.items import router as items_router
from itemgen.api.middleware import setup_middleware
from itemgen.api.options import router as options_router
from itemgen.infrastructure.config import settings
from itemgen.infrastructure.logging import configure_logging

logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Prepare storage on startup and release the SQL pool on shutdown."""
    configure_logging()
    uses_sql = settings.storage_backend == "sql"
    logger.info(
        "Item generation API starting",
        version=settings.api_version,
        storage_backend=settings.storage_backend,
        max_option_dimensions=settings.max_option_dimensions,
        regeneration_timeout_seconds=settings.regeneration_timeout_seconds,
    )

    if uses_sql and settings.create_tables_on_startup:
        from itemgen.infrastructure.database import create_tables

        await create_tables()
        logger.info("Catalog tables ensured")

    yield

    if uses_sql:
        from itemgen.infrastructure.database import engine

        await engine.dispose()
    logger.info("Item generation API stopped")


def create_app() -> FastAPI:
    """Build the FastAPI application.

    Returns:
        Configured application.
    """
    application = FastAPI(
        title="Item Generation API",
        description="Generates product items from option values and provisions their stock",
        version=settings.api_version,
        lifespan=lifespan,
        docs_url="/docs",
        redoc_url="/redoc",
    )

    setup_middleware(application)
    # Outermost, so preflight requests are answered before the key check
    application.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    install_error_handlers(application)

    application.include_router(health_router, tags=["Health"])
    application.include_router(items_router)
    application.include_router(options_router)
    return application


app = create_app()
