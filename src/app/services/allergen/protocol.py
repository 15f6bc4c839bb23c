"""Catalog source protocol.

Any store able to return the complete allergen catalog can back the
term cache: the asyncpg repository, the PostgREST client, or a test double.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable


if TYPE_CHECKING:
    from app.schemas.allergen import AllergenCatalogEntry


@runtime_checkable
class CatalogSource(Protocol):
    """Read-only access to the allergen catalog."""

    async def initialize(self) -> None:
        """Acquire client resources (HTTP connections, etc.)."""
        ...

    async def shutdown(self) -> None:
        """Release client resources."""
        ...

    async def fetch_all(self) -> list[AllergenCatalogEntry]:
        """Return every catalog entry, ordered by category number.

        Raises:
            CatalogError: If the catalog cannot be read.
        """
        ...
