"""Application lifespan event handlers.

This module defines the lifespan context manager that handles:
- Application startup: logging, database pool, allergen highlighter
- Application shutdown: release clients and close the pool
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import TYPE_CHECKING

from app.core.config import CatalogBackend, Settings, get_settings
from app.database.connection import close_database_pool, init_database_pool
from app.observability.logging import get_logger, setup_logging
from app.services.allergen.factory import create_highlighter


if TYPE_CHECKING:
    from collections.abc import AsyncGenerator

    from fastapi import FastAPI

logger = get_logger(__name__)


async def _startup(app: FastAPI, settings: Settings) -> None:
    """Initialize all application services during startup."""
    setup_logging(
        log_level=settings.logging.level,
        log_format=settings.logging.format,
        is_development=settings.is_development,
        log_file=settings.logging.file,
    )

    logger.info(
        "Starting application",
        app_name=settings.app.name,
        environment=settings.APP_ENV,
        catalog_backend=settings.catalog.backend,
    )

    if CatalogBackend(settings.catalog.backend) == CatalogBackend.POSTGRES:
        await _init_database()

    await _init_highlighter(app, settings)

    logger.info("Application startup complete")


async def _init_database() -> None:
    """Open the database pool.

    A failure is not fatal: the catalog repository retries on the next fetch
    and highlighting uses fallback terms meanwhile.
    """
    try:
        await init_database_pool()
    except Exception:
        logger.exception("Failed to initialize database, will retry on demand")


async def _init_highlighter(app: FastAPI, settings: Settings) -> None:
    """Build the allergen highlighter and optionally warm its term cache."""
    try:
        highlighter = create_highlighter(settings)
        await highlighter.initialize(warm=settings.catalog.warm_on_startup)
        app.state.allergen_highlighter = highlighter
    except Exception:
        logger.exception(
            "Failed to initialize AllergenHighlighter - highlighting unavailable"
        )
        app.state.allergen_highlighter = None


async def _shutdown(app: FastAPI) -> None:
    """Shutdown all application services."""
    logger.info("Shutting down application")

    highlighter = getattr(app.state, "allergen_highlighter", None)
    if highlighter is not None:
        await highlighter.shutdown()

    await close_database_pool()

    logger.info("Application shutdown complete")


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None]:
    """Manage application lifespan events.

    Args:
        app: The FastAPI application instance.

    Yields:
        None - control returns to the application to handle requests.
    """
    settings = getattr(app.state, "settings", None) or get_settings()
    await _startup(app, settings)
    yield
    await _shutdown(app)
