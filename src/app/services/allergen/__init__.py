"""Allergen highlighting package.

Detects regulated allergen terms in free-text ingredient lists, backed by a
TTL cache over the allergen catalog with stale and built-in fallbacks.
"""

from app.services.allergen.catalog import (
    CacheState,
    TermCatalogCache,
    TermLookup,
    TermSet,
    build_term_set,
)
from app.services.allergen.exceptions import (
    CatalogConfigurationError,
    CatalogError,
    CatalogResponseError,
    CatalogTimeoutError,
    CatalogUnavailableError,
)
from app.services.allergen.protocol import CatalogSource
from app.services.allergen.segmenter import Run, segment
from app.services.allergen.service import AllergenHighlighter


__all__ = [
    "AllergenHighlighter",
    "CacheState",
    "CatalogConfigurationError",
    "CatalogError",
    "CatalogResponseError",
    "CatalogSource",
    "CatalogTimeoutError",
    "CatalogUnavailableError",
    "Run",
    "TermCatalogCache",
    "TermLookup",
    "TermSet",
    "build_term_set",
    "segment",
]
