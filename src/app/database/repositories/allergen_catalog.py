"""Allergen catalog repository.

Reads the allergen category table (one row per regulatory category with
comma-separated official and common-example terms) from PostgreSQL.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import asyncpg
from pydantic import ValidationError

from app.database.connection import ensure_database_pool
from app.observability.logging import get_logger
from app.schemas.allergen import AllergenCatalogEntry
from app.services.allergen.exceptions import (
    CatalogResponseError,
    CatalogUnavailableError,
)


if TYPE_CHECKING:
    from asyncpg import Pool, Record

logger = get_logger(__name__)


_CATALOG_QUERY = """
    SELECT
        number,
        category_name,
        official_ingredients,
        common_examples
    FROM {schema}.{table}
    ORDER BY number
"""


class AllergenCatalogRepository:
    """Catalog source backed by the ``allergens`` table.

    Uses raw asyncpg queries; the pool is the process-wide one unless
    injected.
    """

    def __init__(
        self,
        pool: Pool | None = None,
        *,
        schema: str = "public",
        table: str = "allergens",
    ) -> None:
        """Initialize repository with optional connection pool.

        Args:
            pool: asyncpg connection pool. If None, uses global pool.
            schema: PostgreSQL schema holding the table.
            table: Allergen catalog table name.
        """
        self._pool = pool
        self._query = _CATALOG_QUERY.format(
            schema=_quote_identifier(schema),
            table=_quote_identifier(table),
        )

    async def get_pool(self) -> Pool:
        """Return the injected pool, or the application pool (created on demand)."""
        if self._pool is not None:
            return self._pool
        return await ensure_database_pool()

    async def initialize(self) -> None:
        """Nothing to prepare; the pool lifecycle belongs to the application."""

    async def shutdown(self) -> None:
        """Nothing to release; the pool lifecycle belongs to the application."""

    async def fetch_all(self) -> list[AllergenCatalogEntry]:
        """Fetch every allergen category ordered by number.

        Returns:
            Catalog entries, possibly empty.

        Raises:
            CatalogUnavailableError: If the database cannot be reached or the
                query fails.
            CatalogResponseError: If a row cannot be parsed.
        """
        try:
            pool = await self.get_pool()
            async with pool.acquire() as conn:
                rows = await conn.fetch(self._query)
        except (asyncpg.PostgresError, asyncpg.InterfaceError, OSError) as e:
            msg = f"Allergen catalog query failed: {e}"
            raise CatalogUnavailableError(msg) from e

        entries = [self._row_to_entry(row) for row in rows]
        logger.debug("Fetched allergen catalog", entries=len(entries))
        return entries

    @staticmethod
    def _row_to_entry(row: Record) -> AllergenCatalogEntry:
        """Convert a database row to an AllergenCatalogEntry."""
        try:
            return AllergenCatalogEntry.model_validate(dict(row))
        except ValidationError as e:
            msg = f"Malformed allergen catalog row: {e}"
            raise CatalogResponseError(msg) from e


def _quote_identifier(name: str) -> str:
    """Double-quote a SQL identifier, escaping embedded quotes."""
    return '"' + name.replace('"', '""') + '"'
