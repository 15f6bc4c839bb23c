"""Allergen catalog exceptions.

Raised by catalog sources and absorbed by the term catalog cache, which
degrades to stale or fallback terms instead of propagating them.
"""

from __future__ import annotations


class CatalogError(Exception):
    """Base exception for allergen catalog errors."""


class CatalogUnavailableError(CatalogError):
    """Raised when the catalog store cannot be reached."""


class CatalogTimeoutError(CatalogUnavailableError):
    """Raised when a catalog fetch does not complete in time."""


class CatalogResponseError(CatalogError):
    """Raised when the catalog store answers with an error or malformed data."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        self.status_code = status_code
        super().__init__(message)


class CatalogConfigurationError(CatalogError):
    """Raised when the configured catalog backend cannot be built."""
