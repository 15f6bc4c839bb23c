"""Build the allergen highlighter from application settings."""

from __future__ import annotations

from typing import TYPE_CHECKING

from app.clients.catalog_rest.client import CatalogRestClient
from app.core.config import CatalogBackend, get_settings
from app.database.repositories.allergen_catalog import AllergenCatalogRepository
from app.observability.logging import get_logger
from app.services.allergen.catalog import TermCatalogCache
from app.services.allergen.exceptions import CatalogConfigurationError
from app.services.allergen.service import AllergenHighlighter


if TYPE_CHECKING:
    from app.core.config import Settings
    from app.services.allergen.protocol import CatalogSource

logger = get_logger(__name__)


def create_catalog_source(settings: Settings | None = None) -> CatalogSource:
    """Create the catalog source selected by ``catalog.backend``.

    Raises:
        CatalogConfigurationError: If the REST backend has no URL configured.
    """
    settings = settings or get_settings()
    backend = CatalogBackend(settings.catalog.backend)

    if backend == CatalogBackend.REST:
        endpoint = settings.catalog_rest_endpoint
        if endpoint is None:
            msg = "catalog.rest.url must be set when catalog.backend is 'rest'"
            raise CatalogConfigurationError(msg)
        logger.debug("Using REST allergen catalog", endpoint=endpoint)
        return CatalogRestClient(
            endpoint,
            settings.CATALOG_API_KEY,
            timeout=settings.catalog.rest.timeout,
        )

    logger.debug(
        "Using PostgreSQL allergen catalog",
        schema=settings.database.db_schema,
        table=settings.catalog.table,
    )
    return AllergenCatalogRepository(
        schema=settings.database.db_schema,
        table=settings.catalog.table,
    )


def create_highlighter(
    settings: Settings | None = None,
    source: CatalogSource | None = None,
) -> AllergenHighlighter:
    """Wire a catalog source, term cache and highlighter together."""
    settings = settings or get_settings()
    cache = TermCatalogCache(
        source or create_catalog_source(settings),
        ttl_seconds=settings.catalog.ttl_seconds,
        fetch_timeout=settings.catalog.fetch_timeout,
        min_term_length=settings.catalog.min_term_length,
    )
    return AllergenHighlighter(
        cache,
        max_text_length=settings.highlighting.max_text_length,
    )
